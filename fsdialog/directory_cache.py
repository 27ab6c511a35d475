"""Directory scanning with a bounded LRU cache of immutable snapshots.

Each directory maps to at most one :class:`DirectorySnapshot`. Rescans build
a new snapshot and swap it in wholesale; nothing mutates a stored snapshot.
Failed scans are cached too (with ``error`` set) so that repeatedly visiting
a dead mount does not block on the filesystem every frame.
"""

from __future__ import annotations

import logging
import os
import time
from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path

from .errors import (
    DirectoryUnreadable,
    DirectoryVanished,
    InvalidName,
    NotFound,
    PermissionDenied,
    ScanError,
)
from .paths import PathResolver
from .types import DirEntry, DirectorySnapshot

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 20


def safe_mtime_ns(path: Path) -> int | None:
    """Return ``st_mtime_ns`` for ``path`` or ``None`` on stat failure."""
    try:
        return int(os.stat(path).st_mtime_ns)
    except OSError:
        return None


def _entry_sort_key(entry: DirEntry) -> tuple[str, str]:
    return (entry.name.casefold(), entry.name)


def read_directory(
    directory: Path,
    resolver: PathResolver,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> DirectorySnapshot:
    """List ``directory`` into a fresh snapshot without touching any cache.

    Children whose metadata cannot be read are kept as ``INACCESSIBLE``.
    When the directory itself cannot be listed the snapshot carries a
    :class:`ScanError` and no entries.
    """
    directory = Path(directory)
    mtime_ns = safe_mtime_ns(directory)
    error: ScanError | None = None
    entries: list[DirEntry] = []
    try:
        with os.scandir(directory) as children:
            for child in children:
                entries.append(resolver.inspect_dirent(child))
    except (FileNotFoundError, NotADirectoryError):
        error = DirectoryVanished(f"folder no longer exists: {directory}", path=directory)
    except PermissionError:
        error = DirectoryUnreadable(f"permission denied: {directory}", path=directory)
    except OSError as exc:
        if os.path.lexists(directory):
            error = DirectoryUnreadable(
                f"cannot read this folder ({exc.strerror or exc}): {directory}",
                path=directory,
            )
        else:
            error = DirectoryVanished(f"folder no longer exists: {directory}", path=directory)

    if error is not None:
        logger.debug("scan of %s failed: %s", directory, error)
        return DirectorySnapshot(
            directory=directory,
            entries=(),
            scanned_at=clock(),
            mtime_ns=mtime_ns,
            error=error,
        )

    entries.sort(key=_entry_sort_key)
    logger.debug("scanned %s: %d entries", directory, len(entries))
    return DirectorySnapshot(
        directory=directory,
        entries=tuple(entries),
        scanned_at=clock(),
        mtime_ns=mtime_ns,
    )


def _reraise(error: ScanError) -> ScanError:
    """Return a fresh copy of a cached error so tracebacks do not pile up."""
    return type(error)(error.message, path=error.path)


class DirectoryCache:
    """LRU map from canonical directory path to its latest snapshot."""

    def __init__(
        self,
        resolver: PathResolver | None = None,
        *,
        max_entries: int = DEFAULT_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.resolver = resolver or PathResolver()
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._snapshots: OrderedDict[str, DirectorySnapshot] = OrderedDict()

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, directory: object) -> bool:
        if not isinstance(directory, (str, os.PathLike)):
            return False
        return self.resolver.path_key(Path(directory)) in self._snapshots

    def directories(self) -> list[Path]:
        """Cached directories from least to most recently used."""
        return [snapshot.directory for snapshot in self._snapshots.values()]

    def get(self, directory: Path) -> DirectorySnapshot | None:
        """Return the cached snapshot without scanning or touching LRU order."""
        return self._snapshots.get(self.resolver.path_key(directory))

    def scan(self, directory: Path, force: bool = False) -> DirectorySnapshot:
        """Return the snapshot for ``directory``, scanning when needed.

        Raises:
            DirectoryUnreadable: the directory cannot be opened.
            DirectoryVanished: the directory no longer exists.
        """
        key = self.resolver.path_key(directory)
        if not force:
            cached = self._snapshots.get(key)
            if cached is not None:
                self._snapshots.move_to_end(key)
                if cached.error is not None:
                    raise _reraise(cached.error)
                return cached

        snapshot = read_directory(directory, self.resolver, clock=self._clock)
        self.store(snapshot)
        if snapshot.error is not None:
            raise _reraise(snapshot.error)
        return snapshot

    def store(self, snapshot: DirectorySnapshot) -> None:
        """Swap ``snapshot`` in as the one cached result for its directory."""
        key = self.resolver.path_key(snapshot.directory)
        self._snapshots[key] = snapshot
        self._snapshots.move_to_end(key)
        while len(self._snapshots) > self.max_entries:
            _evicted_key, evicted = self._snapshots.popitem(last=False)
            logger.debug("evicted cached listing of %s", evicted.directory)

    def create_directory(self, parent: Path, name: str) -> Path:
        """Create ``parent/name`` and drop the parent's now outdated snapshot.

        Raises:
            InvalidName: ``name`` is not a usable folder name or already exists.
            PermissionDenied: the folder cannot be created.
            NotFound: ``parent`` no longer exists.
        """
        problem = self.resolver.filename_problem(name)
        if problem is not None:
            raise InvalidName(problem.replace("file name", "folder name"))
        target = self.resolver.join(parent, name)
        try:
            os.mkdir(target)
        except FileExistsError as exc:
            raise InvalidName("A folder or file with this name already exists", path=target) from exc
        except PermissionError as exc:
            raise PermissionDenied(f"permission denied: {target}", path=target) from exc
        except FileNotFoundError as exc:
            raise NotFound(f"folder no longer exists: {parent}", path=parent) from exc
        except OSError as exc:
            raise PermissionDenied(f"cannot create folder ({exc.strerror or exc}): {target}", path=target) from exc
        logger.debug("created folder %s", target)
        self.invalidate(parent)
        return target

    def invalidate(self, directory: Path) -> bool:
        """Drop the cached snapshot for ``directory``; return whether one existed."""
        return self._snapshots.pop(self.resolver.path_key(directory), None) is not None

    def invalidate_all(self) -> None:
        self._snapshots.clear()

    def is_stale(self, directory: Path) -> bool:
        """Return whether the cached snapshot no longer matches the filesystem.

        Uncached directories are stale. A changed directory mtime, or a
        directory that disappeared, marks the snapshot stale.
        """
        snapshot = self.get(directory)
        if snapshot is None:
            return True
        current_mtime = safe_mtime_ns(Path(directory))
        if current_mtime is None:
            return not isinstance(snapshot.error, DirectoryVanished)
        return current_mtime != snapshot.mtime_ns


__all__ = [
    "DEFAULT_CACHE_SIZE",
    "DirectoryCache",
    "read_directory",
    "safe_mtime_ns",
]
