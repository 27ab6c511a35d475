"""Discrete user actions a host adapter feeds into the dialog controller.

Each action is a small frozen dataclass; ``DialogController.handle``
dispatches on the type. Indices refer to positions in the currently visible
(filtered and sorted) entry list.
"""

from __future__ import annotations

from dataclasses import dataclass

from .filter_sort import FilterSpec, SortKey


@dataclass(frozen=True)
class ClickEntry:
    index: int
    extend: bool = False


@dataclass(frozen=True)
class DoubleClickEntry:
    index: int


@dataclass(frozen=True)
class NavigateTo:
    path: str


@dataclass(frozen=True)
class GoBack:
    pass


@dataclass(frozen=True)
class GoForward:
    pass


@dataclass(frozen=True)
class GoUp:
    pass


@dataclass(frozen=True)
class TypePath:
    """Path typed into the location bar; folders navigate, files select."""

    text: str


@dataclass(frozen=True)
class TypeFilename:
    text: str


@dataclass(frozen=True)
class ToggleHidden:
    pass


@dataclass(frozen=True)
class SetSort:
    key: SortKey
    descending: bool = False


@dataclass(frozen=True)
class SetFilter:
    spec: FilterSpec


@dataclass(frozen=True)
class SetSearch:
    text: str


@dataclass(frozen=True)
class AddBookmark:
    """Bookmark the current directory (or ``path`` when given)."""

    label: str
    path: str | None = None


@dataclass(frozen=True)
class RemoveBookmark:
    label: str


@dataclass(frozen=True)
class OpenBookmark:
    label: str


@dataclass(frozen=True)
class OpenPlace:
    label: str


@dataclass(frozen=True)
class RefreshPlaces:
    pass


@dataclass(frozen=True)
class CreateDirectory:
    name: str


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Refresh:
    pass


DialogAction = (
    ClickEntry
    | DoubleClickEntry
    | NavigateTo
    | GoBack
    | GoForward
    | GoUp
    | TypePath
    | TypeFilename
    | ToggleHidden
    | SetSort
    | SetFilter
    | SetSearch
    | AddBookmark
    | RemoveBookmark
    | OpenBookmark
    | OpenPlace
    | RefreshPlaces
    | CreateDirectory
    | Confirm
    | Cancel
    | Refresh
)


__all__ = [
    "AddBookmark",
    "Cancel",
    "ClickEntry",
    "Confirm",
    "CreateDirectory",
    "DialogAction",
    "DoubleClickEntry",
    "GoBack",
    "GoForward",
    "GoUp",
    "NavigateTo",
    "OpenBookmark",
    "OpenPlace",
    "Refresh",
    "RefreshPlaces",
    "RemoveBookmark",
    "SetFilter",
    "SetSearch",
    "SetSort",
    "ToggleHidden",
    "TypeFilename",
    "TypePath",
]
