"""Exception taxonomy shared by every dialog component.

Path and scan failures are real errors; navigation signals are expected
boundary conditions (no more history, already at a root) that callers catch
and surface as notices. Nothing here is fatal to the host process.
"""

from __future__ import annotations

from pathlib import Path


class FileDialogError(Exception):
    """Base class for all dialog errors and signals."""

    default_message = "file dialog error"

    def __init__(self, message: str | None = None, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.default_message


class PathError(FileDialogError):
    default_message = "invalid path"


class NotFound(PathError):
    default_message = "path does not exist"


class PermissionDenied(PathError):
    default_message = "permission denied"


class InvalidName(PathError):
    default_message = "invalid name"


class ScanError(FileDialogError):
    default_message = "cannot read this folder"


class DirectoryUnreadable(ScanError):
    default_message = "cannot read this folder"


class DirectoryVanished(ScanError):
    default_message = "this folder no longer exists"


class SelectionError(FileDialogError):
    default_message = "selection error"


class InvalidSelection(SelectionError):
    default_message = "nothing valid is selected"


class DuplicateLabel(SelectionError):
    default_message = "a bookmark with this label already exists"


class NavigationSignal(FileDialogError):
    default_message = "navigation boundary"


class NoHistory(NavigationSignal):
    default_message = "no more history in this direction"


class AtRoot(NavigationSignal):
    default_message = "already at the top of the filesystem"


__all__ = [
    "FileDialogError",
    "PathError",
    "NotFound",
    "PermissionDenied",
    "InvalidName",
    "ScanError",
    "DirectoryUnreadable",
    "DirectoryVanished",
    "SelectionError",
    "InvalidSelection",
    "DuplicateLabel",
    "NavigationSignal",
    "NoHistory",
    "AtRoot",
]
