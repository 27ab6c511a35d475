"""Domain datatypes for scanned directory entries and snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ScanError


class EntryKind(Enum):
    """Filesystem object classification for one directory entry."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK_FILE = "symlink-to-file"
    SYMLINK_DIR = "symlink-to-dir"
    DRIVE_ROOT = "drive-root"
    INACCESSIBLE = "inaccessible"

    @property
    def is_dir(self) -> bool:
        return self in (EntryKind.DIRECTORY, EntryKind.SYMLINK_DIR, EntryKind.DRIVE_ROOT)

    @property
    def is_file(self) -> bool:
        return self in (EntryKind.FILE, EntryKind.SYMLINK_FILE)

    @property
    def is_symlink(self) -> bool:
        return self in (EntryKind.SYMLINK_FILE, EntryKind.SYMLINK_DIR)


@dataclass(frozen=True)
class DirEntry:
    """One listed child of a directory plus metadata observed at scan time."""

    name: str
    path: Path
    kind: EntryKind
    size: int | None = None
    mtime_ns: int | None = None
    hidden: bool = False
    symlink_target: Path | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind.is_dir

    @property
    def is_file(self) -> bool:
        return self.kind.is_file

    @property
    def extension(self) -> str:
        """Lowercase suffix without the dot, or ``""`` for none."""
        if self.is_dir:
            return ""
        _stem, dot, suffix = self.name.rpartition(".")
        if not dot or not _stem:
            return ""
        return suffix.lower()


@dataclass(frozen=True)
class DirectorySnapshot:
    """Immutable scan result for one directory.

    ``error`` is set when the directory itself could not be listed; in that
    case ``entries`` is empty.
    """

    directory: Path
    entries: tuple[DirEntry, ...]
    scanned_at: float
    mtime_ns: int | None = None
    error: ScanError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "EntryKind",
    "DirEntry",
    "DirectorySnapshot",
]
