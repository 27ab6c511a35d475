"""Public package surface for fsdialog.

A framework-agnostic file/folder selection dialog core: hosts feed user
actions into :class:`DialogController` and render the :class:`DialogView`
it returns each frame. Submodules hold the individual components.
"""

from __future__ import annotations

from .actions import (
    AddBookmark,
    Cancel,
    ClickEntry,
    Confirm,
    CreateDirectory,
    DoubleClickEntry,
    GoBack,
    GoForward,
    GoUp,
    NavigateTo,
    OpenBookmark,
    OpenPlace,
    Refresh,
    RefreshPlaces,
    RemoveBookmark,
    SetFilter,
    SetSearch,
    SetSort,
    ToggleHidden,
    TypeFilename,
    TypePath,
)
from .cli import main
from .controller import DialogController, DialogView, VisibleEntry
from .filter_sort import FileTypeFilter, FilterSpec, SortKey, SortSpec
from .selection import DialogOutcome, DialogState, SelectionMode
from .types import DirEntry, EntryKind

__all__ = [
    "AddBookmark",
    "Cancel",
    "ClickEntry",
    "Confirm",
    "CreateDirectory",
    "DialogController",
    "DialogOutcome",
    "DialogState",
    "DialogView",
    "DirEntry",
    "DoubleClickEntry",
    "EntryKind",
    "FileTypeFilter",
    "FilterSpec",
    "GoBack",
    "GoForward",
    "GoUp",
    "NavigateTo",
    "OpenBookmark",
    "OpenPlace",
    "Refresh",
    "RefreshPlaces",
    "RemoveBookmark",
    "SelectionMode",
    "SetFilter",
    "SetSearch",
    "SetSort",
    "SortKey",
    "SortSpec",
    "ToggleHidden",
    "TypeFilename",
    "TypePath",
    "VisibleEntry",
    "main",
]
