"""Lazy filtered/sorted projections over a directory snapshot.

:func:`apply` returns an :class:`EntryView`, a sequence of indices into the
snapshot's entry tuple. The view is computed on first access and can be
iterated any number of times; entries themselves are never copied.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import overload

from .types import DirEntry, EntryKind


class SortKey(Enum):
    NAME = "name"
    SIZE = "size"
    MODIFIED = "modified"
    KIND = "kind"


@dataclass(frozen=True)
class FileTypeFilter:
    """Named pattern preset offered by a host, e.g. ``Images: *.png *.jpg``."""

    label: str
    patterns: tuple[str, ...]

    def describe(self) -> str:
        if not self.patterns:
            return self.label
        return f"{self.label} ({' '.join(self.patterns)})"


ALL_FILES = FileTypeFilter("All files", ())


def normalize_pattern(pattern: str) -> str:
    """Turn bare extensions (``png``, ``.png``) into globs; keep globs as-is."""
    stripped = pattern.strip()
    if not stripped:
        return ""
    if any(ch in stripped for ch in "*?["):
        return stripped
    return f"*.{stripped.lstrip('.')}"


@dataclass(frozen=True)
class FilterSpec:
    """Which entries are visible.

    ``patterns`` are globs over file names (any one must match); directories
    bypass them unless ``apply_patterns_to_directories``. ``search`` is a
    substring match over every name. Matching is case-insensitive unless
    ``case_sensitive``.
    """

    patterns: tuple[str, ...] = ()
    search: str = ""
    show_hidden: bool = False
    case_sensitive: bool = False
    apply_patterns_to_directories: bool = False

    def __post_init__(self) -> None:
        normalized = tuple(p for p in (normalize_pattern(raw) for raw in self.patterns) if p)
        object.__setattr__(self, "patterns", normalized)

    def with_file_type(self, file_type: FileTypeFilter) -> FilterSpec:
        return replace(self, patterns=file_type.patterns)

    def _fold(self, text: str) -> str:
        return text if self.case_sensitive else text.casefold()

    def matches(self, entry: DirEntry) -> bool:
        if entry.hidden and not self.show_hidden:
            return False
        name = self._fold(entry.name)
        if self.search and self._fold(self.search) not in name:
            return False
        if not self.patterns:
            return True
        if entry.is_dir and not self.apply_patterns_to_directories:
            return True
        return any(fnmatch.fnmatchcase(name, self._fold(pattern)) for pattern in self.patterns)


@dataclass(frozen=True)
class SortSpec:
    """Ordering of visible entries.

    Directories come first regardless of direction when ``directories_first``.
    Equal primary keys fall back to case-insensitive name ascending, so the
    order is total and repeatable.
    """

    key: SortKey = SortKey.NAME
    descending: bool = False
    directories_first: bool = True


_KIND_RANK = {
    EntryKind.DRIVE_ROOT: 0,
    EntryKind.DIRECTORY: 1,
    EntryKind.SYMLINK_DIR: 2,
    EntryKind.FILE: 3,
    EntryKind.SYMLINK_FILE: 4,
    EntryKind.INACCESSIBLE: 5,
}


def _primary_key(entry: DirEntry, key: SortKey) -> tuple:
    if key is SortKey.NAME:
        return (entry.name.casefold(),)
    if key is SortKey.SIZE:
        return (-1 if entry.size is None else entry.size,)
    if key is SortKey.MODIFIED:
        return (-1 if entry.mtime_ns is None else entry.mtime_ns,)
    return (_KIND_RANK[entry.kind], entry.extension)


def _sorted_indices(entries: Sequence[DirEntry], indices: list[int], sort_spec: SortSpec) -> list[int]:
    # Successive stable sorts: tie-break first, then primary, then grouping.
    indices.sort(key=lambda idx: (entries[idx].name.casefold(), entries[idx].name))
    if sort_spec.key is not SortKey.NAME or sort_spec.descending:
        indices.sort(key=lambda idx: _primary_key(entries[idx], sort_spec.key), reverse=sort_spec.descending)
    if sort_spec.directories_first:
        indices.sort(key=lambda idx: not entries[idx].is_dir)
    return indices


class EntryView(Sequence[int]):
    """Restartable, lazily computed index view over a tuple of entries."""

    def __init__(self, entries: Sequence[DirEntry], filter_spec: FilterSpec, sort_spec: SortSpec) -> None:
        self._entries = entries
        self.filter_spec = filter_spec
        self.sort_spec = sort_spec
        self._indices: list[int] | None = None

    @property
    def source(self) -> Sequence[DirEntry]:
        return self._entries

    def _materialize(self) -> list[int]:
        if self._indices is None:
            matching = [idx for idx, entry in enumerate(self._entries) if self.filter_spec.matches(entry)]
            self._indices = _sorted_indices(self._entries, matching, self.sort_spec)
        return self._indices

    @property
    def computed(self) -> bool:
        return self._indices is not None

    @overload
    def __getitem__(self, position: int) -> int: ...

    @overload
    def __getitem__(self, position: slice) -> list[int]: ...

    def __getitem__(self, position):
        return self._materialize()[position]

    def __len__(self) -> int:
        return len(self._materialize())

    def __iter__(self) -> Iterator[int]:
        return iter(self._materialize())

    def entry(self, position: int) -> DirEntry:
        """Return the entry shown at visible ``position``."""
        return self._entries[self._materialize()[position]]

    def entries(self) -> Iterator[DirEntry]:
        for idx in self._materialize():
            yield self._entries[idx]

    def position_of(self, entry: DirEntry) -> int | None:
        for position, idx in enumerate(self._materialize()):
            if self._entries[idx] is entry:
                return position
        return None


def apply(entries: Sequence[DirEntry], filter_spec: FilterSpec, sort_spec: SortSpec) -> EntryView:
    """Return the visible projection of ``entries`` under the given specs."""
    return EntryView(entries, filter_spec, sort_spec)


__all__ = [
    "ALL_FILES",
    "EntryView",
    "FileTypeFilter",
    "FilterSpec",
    "SortKey",
    "SortSpec",
    "apply",
    "normalize_pattern",
]
