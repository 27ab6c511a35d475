"""Path canonicalization, classification and filename validation.

Every other component goes through :class:`PathResolver` instead of touching
path strings directly, so platform rules (drive letters, case folding,
reserved names) live in one place. Nothing here mutates the filesystem.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

from .errors import InvalidName, NotFound, PathError, PermissionDenied
from .types import DirEntry, EntryKind

WINDOWS_RESERVED_CHARS = frozenset('<>:"/\\|?*')
WINDOWS_RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{idx}" for idx in range(1, 10)}
    | {f"LPT{idx}" for idx in range(1, 10)}
)
_FILE_ATTRIBUTE_HIDDEN = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0x2)


class PathResolver:
    """Platform-aware path queries.

    ``windows`` selects the filename rules and ``case_sensitive`` the path
    comparison rules; both default to the running platform and can be forced
    for tests.
    """

    def __init__(self, *, windows: bool | None = None, case_sensitive: bool | None = None) -> None:
        self.windows = (os.name == "nt") if windows is None else windows
        self.case_sensitive = (not self.windows) if case_sensitive is None else case_sensitive

    # canonical paths
    def canonicalize(
        self,
        raw: str | os.PathLike[str],
        *,
        base: Path | None = None,
        resolve_symlinks: bool = False,
        must_exist: bool = True,
    ) -> Path:
        """Return an absolute, normalized path for ``raw``.

        Relative input is anchored at ``base`` (or the working directory) and
        ``~`` is expanded. Symlinks are only resolved when requested, so a
        save target typed through a link keeps the user's spelling.

        Raises:
            InvalidName: ``raw`` is empty or contains a NUL byte.
            NotFound: ``must_exist`` and nothing exists at the location.
            PermissionDenied: the location cannot be inspected.
        """
        text = os.fspath(raw)
        if not text or not text.strip():
            raise InvalidName("path is empty")
        if "\x00" in text:
            raise InvalidName("path contains a NUL character")

        expanded = os.path.expanduser(text)
        if not os.path.isabs(expanded):
            anchor = os.fspath(base) if base is not None else os.getcwd()
            expanded = os.path.join(anchor, expanded)

        if resolve_symlinks:
            canonical = Path(os.path.realpath(expanded))
        else:
            canonical = Path(os.path.normpath(os.path.abspath(expanded)))

        if must_exist:
            self._require_exists(canonical)
        return canonical

    def _require_exists(self, path: Path) -> None:
        try:
            os.lstat(path)
        except PermissionError as exc:
            raise PermissionDenied(f"permission denied: {path}", path=path) from exc
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise NotFound(f"no such file or folder: {path}", path=path) from exc
        except OSError as exc:
            raise NotFound(f"{exc.strerror or 'cannot access'}: {path}", path=path) from exc

    def exists(self, path: Path) -> bool:
        try:
            self._require_exists(path)
        except PathError:
            return False
        return True

    # classification
    def classify(self, path: Path, *, follow_symlinks: bool = False) -> EntryKind:
        """Return the kind of ``path`` without following symlinks by default.

        Dangling or unreadable entries classify as ``INACCESSIBLE``.
        """
        try:
            st = os.lstat(path)
        except OSError:
            return EntryKind.INACCESSIBLE
        if stat.S_ISLNK(st.st_mode):
            try:
                target_st = os.stat(path)
            except OSError:
                return EntryKind.INACCESSIBLE
            target_is_dir = stat.S_ISDIR(target_st.st_mode)
            if follow_symlinks:
                return EntryKind.DIRECTORY if target_is_dir else EntryKind.FILE
            return EntryKind.SYMLINK_DIR if target_is_dir else EntryKind.SYMLINK_FILE
        if stat.S_ISDIR(st.st_mode):
            return EntryKind.DRIVE_ROOT if self.is_root(path) else EntryKind.DIRECTORY
        return EntryKind.FILE

    def symlink_target(self, path: Path) -> Path | None:
        """Return the literal link target of ``path`` made absolute, if it is a link."""
        try:
            target = os.readlink(path)
        except OSError:
            return None
        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(os.fspath(path)), target)
        return Path(os.path.normpath(target))

    def inspect(self, path: Path) -> DirEntry:
        """Build a :class:`DirEntry` for one path."""
        kind = self.classify(path)
        size: int | None = None
        mtime_ns: int | None = None
        hidden = self.is_hidden_name(path.name)
        if kind is not EntryKind.INACCESSIBLE:
            try:
                st = os.stat(path) if kind.is_symlink else os.lstat(path)
                mtime_ns = int(st.st_mtime_ns)
                if kind.is_file:
                    size = int(st.st_size)
                hidden = hidden or self._has_hidden_attribute(st)
            except OSError:
                pass
        return DirEntry(
            name=path.name or str(path),
            path=path,
            kind=kind,
            size=size,
            mtime_ns=mtime_ns,
            hidden=hidden,
            symlink_target=self.symlink_target(path) if kind.is_symlink else None,
        )

    def inspect_dirent(self, child: os.DirEntry[str]) -> DirEntry:
        """Build a :class:`DirEntry` from an ``os.scandir`` result.

        Any metadata failure turns the child into ``INACCESSIBLE`` instead of
        propagating.
        """
        path = Path(child.path)
        hidden = self.is_hidden_name(child.name)
        try:
            is_link = child.is_symlink()
            st = child.stat(follow_symlinks=False)
        except OSError:
            return DirEntry(name=child.name, path=path, kind=EntryKind.INACCESSIBLE, hidden=hidden)

        if is_link:
            try:
                target_st = child.stat(follow_symlinks=True)
            except OSError:
                return DirEntry(
                    name=child.name,
                    path=path,
                    kind=EntryKind.INACCESSIBLE,
                    mtime_ns=int(st.st_mtime_ns),
                    hidden=hidden,
                    symlink_target=self.symlink_target(path),
                )
            target_is_dir = stat.S_ISDIR(target_st.st_mode)
            return DirEntry(
                name=child.name,
                path=path,
                kind=EntryKind.SYMLINK_DIR if target_is_dir else EntryKind.SYMLINK_FILE,
                size=None if target_is_dir else int(target_st.st_size),
                mtime_ns=int(target_st.st_mtime_ns),
                hidden=hidden or self._has_hidden_attribute(st),
                symlink_target=self.symlink_target(path),
            )

        is_dir = stat.S_ISDIR(st.st_mode)
        return DirEntry(
            name=child.name,
            path=path,
            kind=EntryKind.DIRECTORY if is_dir else EntryKind.FILE,
            size=None if is_dir else int(st.st_size),
            mtime_ns=int(st.st_mtime_ns),
            hidden=hidden or self._has_hidden_attribute(st),
        )

    @staticmethod
    def is_hidden_name(name: str) -> bool:
        return name.startswith(".") and name not in (".", "..")

    @staticmethod
    def _has_hidden_attribute(st: os.stat_result) -> bool:
        attributes = getattr(st, "st_file_attributes", 0)
        return bool(attributes & _FILE_ATTRIBUTE_HIDDEN)

    # filenames
    def filename_problem(self, name: str) -> str | None:
        """Return a human-readable reason ``name`` is unusable, or ``None``."""
        if not name or not name.strip():
            return "The file name cannot be empty"
        if name in (".", ".."):
            return f"{name!r} is not a valid file name"
        if "/" in name or "\x00" in name:
            return "The file name cannot contain '/'"
        if any(ord(ch) < 32 for ch in name):
            return "The file name cannot contain control characters"
        if self.windows:
            bad = sorted({ch for ch in name if ch in WINDOWS_RESERVED_CHARS})
            if bad:
                return f"The file name cannot contain {' '.join(bad)}"
            if name.endswith((" ", ".")):
                return "The file name cannot end with a space or a dot"
            stem = name.split(".", 1)[0].strip().upper()
            if stem in WINDOWS_RESERVED_NAMES:
                return f"{stem} is a reserved name"
        return None

    def is_valid_filename(self, name: str) -> bool:
        return self.filename_problem(name) is None

    # structure
    @staticmethod
    def is_root(path: Path) -> bool:
        path = Path(path)
        return path.parent == path

    def parent(self, path: Path) -> Path | None:
        """Return the parent directory of ``path`` or ``None`` at a root."""
        path = Path(path)
        if self.is_root(path):
            return None
        return path.parent

    def join(self, directory: Path, name: str) -> Path:
        return Path(os.path.normpath(os.path.join(os.fspath(directory), name)))

    def path_key(self, path: Path) -> str:
        """Comparison key honoring platform case rules."""
        text = os.path.normpath(os.fspath(path))
        return text if self.case_sensitive else text.casefold()

    def same_path(self, first: Path | None, second: Path | None) -> bool:
        if first is None or second is None:
            return first is second
        return self.path_key(first) == self.path_key(second)

    def breadcrumb(self, path: Path) -> list[tuple[str, Path]]:
        """Return ``(label, path)`` pairs from the root down to ``path``."""
        path = Path(path)
        parts = path.parts
        if not parts:
            return []
        crumbs: list[tuple[str, Path]] = []
        current = Path(parts[0])
        crumbs.append((parts[0], current))
        for part in parts[1:]:
            current = current / part
            crumbs.append((part, current))
        return crumbs


__all__ = [
    "PathResolver",
    "WINDOWS_RESERVED_CHARS",
    "WINDOWS_RESERVED_NAMES",
]
