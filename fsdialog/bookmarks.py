"""User bookmarks and recently used paths.

Both stores only know their logical persisted shape (lists of plain dicts or
strings); encoding and storage medium belong to the host (see
:mod:`fsdialog.config` for the default JSON adapter).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace
from pathlib import Path

from .errors import DuplicateLabel, InvalidName
from .paths import PathResolver
from .types import EntryKind

logger = logging.getLogger(__name__)

KIND_DIRECTORY = "directory"
KIND_FILE = "file"
MAX_RECENT_PATHS = 10


@dataclass(frozen=True)
class Bookmark:
    """Labeled shortcut to a directory or file.

    ``stale`` is set when the target was missing at the last validation.
    """

    label: str
    path: Path
    kind: str = KIND_DIRECTORY
    stale: bool = False

    def to_record(self) -> dict[str, str]:
        """Return the persisted dict form; ``stale`` is recomputed on load."""
        return {"label": self.label, "path": str(self.path), "kind": self.kind}


def _kind_for(resolver: PathResolver, path: Path) -> str | None:
    kind = resolver.classify(path)
    if kind is EntryKind.INACCESSIBLE:
        return None
    return KIND_DIRECTORY if kind.is_dir else KIND_FILE


class BookmarkStore:
    """Insertion-ordered bookmarks with unique labels."""

    def __init__(self, resolver: PathResolver | None = None) -> None:
        self.resolver = resolver or PathResolver()
        self._bookmarks: dict[str, Bookmark] = {}

    def __len__(self) -> int:
        return len(self._bookmarks)

    def __iter__(self) -> Iterator[Bookmark]:
        return iter(list(self._bookmarks.values()))

    def __contains__(self, label: object) -> bool:
        return label in self._bookmarks

    def list(self) -> list[Bookmark]:
        """Return bookmarks in insertion order."""
        return list(self._bookmarks.values())

    def get(self, label: str) -> Bookmark | None:
        """Return the bookmark named ``label``, or ``None``."""
        return self._bookmarks.get(label)

    def add(self, label: str, path: Path, kind: str | None = None) -> Bookmark:
        """Add a bookmark; the kind is detected from the target when omitted.

        Raises:
            InvalidName: ``label`` is blank.
            DuplicateLabel: ``label`` is already used.
        """
        label = label.strip()
        if not label:
            raise InvalidName("bookmark label cannot be empty")
        if label in self._bookmarks:
            raise DuplicateLabel(f"bookmark {label!r} already exists", path=self._bookmarks[label].path)
        detected = _kind_for(self.resolver, path)
        bookmark = Bookmark(
            label=label,
            path=path,
            kind=kind or detected or KIND_DIRECTORY,
            stale=detected is None,
        )
        self._bookmarks[label] = bookmark
        logger.debug("added bookmark %r -> %s", label, path)
        return bookmark

    def remove(self, label: str) -> bool:
        """Remove ``label`` and return whether it existed."""
        return self._bookmarks.pop(label, None) is not None

    def rename(self, old_label: str, new_label: str) -> Bookmark:
        """Relabel a bookmark in place, keeping its position.

        Raises:
            KeyError: ``old_label`` does not exist.
            InvalidName: ``new_label`` is blank.
            DuplicateLabel: ``new_label`` is used by another bookmark.
        """
        bookmark = self._bookmarks[old_label]
        new_label = new_label.strip()
        if not new_label:
            raise InvalidName("bookmark label cannot be empty")
        if new_label == old_label:
            return bookmark
        if new_label in self._bookmarks:
            raise DuplicateLabel(f"bookmark {new_label!r} already exists")
        renamed = replace(bookmark, label=new_label)
        self._bookmarks = {
            (new_label if label == old_label else label): (renamed if label == old_label else item)
            for label, item in self._bookmarks.items()
        }
        return renamed

    def validate_all(self) -> list[Bookmark]:
        """Re-check every target; flag missing ones stale and return them."""
        stale: list[Bookmark] = []
        for label, bookmark in list(self._bookmarks.items()):
            is_stale = not self.resolver.exists(bookmark.path)
            if is_stale != bookmark.stale:
                bookmark = replace(bookmark, stale=is_stale)
                self._bookmarks[label] = bookmark
            if is_stale:
                stale.append(bookmark)
        return stale

    def prune_stale(self) -> list[Bookmark]:
        """Remove bookmarks currently flagged stale and return them."""
        removed = [bookmark for bookmark in self._bookmarks.values() if bookmark.stale]
        for bookmark in removed:
            del self._bookmarks[bookmark.label]
        return removed

    def to_records(self) -> list[dict[str, str]]:
        """Return bookmarks as persisted dict records, in order."""
        return [bookmark.to_record() for bookmark in self._bookmarks.values()]

    @classmethod
    def from_records(cls, records: object, resolver: PathResolver | None = None) -> BookmarkStore:
        """Rebuild a store from persisted records.

        Malformed records and duplicate labels are skipped. Targets are
        validated so missing ones load flagged stale rather than dropped.
        """
        store = cls(resolver)
        if not isinstance(records, list):
            return store
        for record in records:
            if not isinstance(record, dict):
                continue
            label = record.get("label")
            raw_path = record.get("path")
            kind = record.get("kind")
            if not isinstance(label, str) or not label.strip():
                continue
            if not isinstance(raw_path, str) or not raw_path:
                continue
            if kind not in (KIND_DIRECTORY, KIND_FILE):
                kind = None
            label = label.strip()
            if label in store._bookmarks:
                logger.debug("skipping duplicate persisted bookmark %r", label)
                continue
            store._bookmarks[label] = Bookmark(label=label, path=Path(raw_path), kind=kind or KIND_DIRECTORY)
        store.validate_all()
        return store


class RecentPaths:
    """Most-recent-first list of committed paths without duplicates."""

    def __init__(self, max_entries: int = MAX_RECENT_PATHS, resolver: PathResolver | None = None) -> None:
        self.max_entries = max(1, max_entries)
        self.resolver = resolver or PathResolver()
        self._paths: list[Path] = []

    def __len__(self) -> int:
        return len(self._paths)

    def list(self) -> list[Path]:
        """Return paths, most recent first."""
        return list(self._paths)

    def push(self, path: Path) -> None:
        """Move ``path`` to the front, dropping duplicates and the oldest overflow."""
        self._paths = [existing for existing in self._paths if not self.resolver.same_path(existing, path)]
        self._paths.insert(0, path)
        del self._paths[self.max_entries :]

    def to_records(self) -> list[str]:
        """Return paths as persisted strings, most recent first."""
        return [str(path) for path in self._paths]

    @classmethod
    def from_records(
        cls,
        records: object,
        max_entries: int = MAX_RECENT_PATHS,
        resolver: PathResolver | None = None,
    ) -> RecentPaths:
        """Rebuild the list from persisted strings; non-string records are skipped."""
        recent = cls(max_entries=max_entries, resolver=resolver)
        if not isinstance(records, list):
            return recent
        for raw in reversed(records):
            if isinstance(raw, str) and raw:
                recent.push(Path(raw))
        return recent


__all__ = [
    "KIND_DIRECTORY",
    "KIND_FILE",
    "MAX_RECENT_PATHS",
    "Bookmark",
    "BookmarkStore",
    "RecentPaths",
]
