"""Dialog orchestration: user actions in, per-frame view snapshot out.

The controller owns no filesystem logic. It routes each action to the
resolver, cache, history, filter/sort projection, bookmark store and
selection engine, converts their errors and signals into view messages, and
decides when the current directory has to be rescanned.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from . import actions as act
from .background_scan import BackgroundScanner
from .bookmarks import Bookmark, BookmarkStore, RecentPaths
from .config import (
    DialogSettings,
    load_bookmarks,
    load_last_directory,
    load_recent_paths,
    load_settings,
    save_persisted_state,
    save_show_hidden,
    save_sort_spec,
)
from .directory_cache import DirectoryCache, read_directory
from .errors import (
    FileDialogError,
    InvalidSelection,
    NavigationSignal,
    NotFound,
    PathError,
    ScanError,
)
from .filter_sort import EntryView, FilterSpec, SortSpec, apply
from .history import NavigationHistory
from .paths import PathResolver
from .places import Place, default_places
from .selection import DialogOutcome, DialogState, SelectionEngine, SelectionMode
from .types import DirEntry, DirectorySnapshot, EntryKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisibleEntry:
    """Display row for one visible entry; ``index`` is its visible position."""

    index: int
    name: str
    path: Path
    kind: EntryKind
    size: int | None
    mtime_ns: int | None
    hidden: bool
    selected: bool


@dataclass(frozen=True)
class DialogView:
    """Everything a host renderer needs for one frame."""

    mode: SelectionMode
    state: DialogState
    current_directory: Path | None
    breadcrumb: tuple[tuple[str, Path], ...]
    entries: tuple[VisibleEntry, ...]
    selection: tuple[Path, ...]
    filename: str
    filter_spec: FilterSpec
    sort_spec: SortSpec
    error: str | None
    path_error: str | None
    filename_error: str | None
    notice: str | None
    can_go_back: bool
    can_go_forward: bool
    can_go_up: bool
    can_confirm: bool
    loading: bool
    places: tuple[Place, ...]
    bookmarks: tuple[Bookmark, ...]


class DialogController:
    """Coordinates one dialog session for a host frame loop.

    Hosts call :meth:`handle` for every user action, :meth:`tick` once per
    frame, :meth:`view` to render, and :meth:`take_outcome` once the state is
    terminal.
    """

    def __init__(
        self,
        mode: SelectionMode,
        initial_directory: str | Path | None = None,
        *,
        settings: DialogSettings | None = None,
        resolver: PathResolver | None = None,
        cache: DirectoryCache | None = None,
        bookmarks: BookmarkStore | None = None,
        recent: RecentPaths | None = None,
        places_provider: Callable[[PathResolver], list[Place]] | None = None,
        scanner: BackgroundScanner | None = None,
        filter_spec: FilterSpec | None = None,
        sort_spec: SortSpec | None = None,
        allow_files: bool = True,
        allow_directories: bool = True,
        default_extension: str | None = None,
        persist_preferences: bool = False,
        persist_state: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or DialogSettings()
        self.resolver = resolver or PathResolver()
        self.cache = cache or DirectoryCache(self.resolver, max_entries=self.settings.cache_size, clock=clock)
        self.bookmarks = bookmarks if bookmarks is not None else BookmarkStore(self.resolver)
        self.recent = recent if recent is not None else RecentPaths(self.settings.recent_limit, self.resolver)
        self.history = NavigationHistory(self.settings.history_limit, same_path=self.resolver.same_path)
        self.selection = SelectionEngine(
            mode,
            self.resolver,
            allow_files=allow_files,
            allow_directories=allow_directories,
            default_extension=default_extension,
        )
        if scanner is None and self.settings.background_scan:
            scanner = BackgroundScanner(
                lambda directory: read_directory(directory, self.resolver, clock=clock),
                path_key=self.resolver.path_key,
            )
        self.scanner = scanner
        self.filter_spec = filter_spec or FilterSpec(show_hidden=self.settings.show_hidden)
        self.sort_spec = sort_spec or self.settings.sort
        self.persist_preferences = persist_preferences
        self.persist_state = persist_state
        self._places_provider = places_provider or default_places
        self._places: list[Place] | None = None
        self._clock = clock

        self._snapshot: DirectorySnapshot | None = None
        self._visible: EntryView | None = None
        self._loading = False
        self._error: str | None = None
        self._path_error: str | None = None
        self._notice: str | None = None
        self._last_change_check = clock()

        self._handlers: dict[type, Callable[..., bool]] = {
            act.ClickEntry: self._on_click_entry,
            act.DoubleClickEntry: self._on_double_click_entry,
            act.NavigateTo: self._on_navigate_to,
            act.GoBack: self._on_go_back,
            act.GoForward: self._on_go_forward,
            act.GoUp: self._on_go_up,
            act.TypePath: self._on_type_path,
            act.TypeFilename: self._on_type_filename,
            act.ToggleHidden: self._on_toggle_hidden,
            act.SetSort: self._on_set_sort,
            act.SetFilter: self._on_set_filter,
            act.SetSearch: self._on_set_search,
            act.AddBookmark: self._on_add_bookmark,
            act.RemoveBookmark: self._on_remove_bookmark,
            act.OpenBookmark: self._on_open_bookmark,
            act.OpenPlace: self._on_open_place,
            act.RefreshPlaces: self._on_refresh_places,
            act.CreateDirectory: self._on_create_directory,
            act.Confirm: self._on_confirm,
            act.Cancel: self._on_cancel,
            act.Refresh: self._on_refresh,
        }

        self._open_initial(initial_directory)

    @classmethod
    def from_config(
        cls,
        mode: SelectionMode,
        initial_directory: str | Path | None = None,
        **kwargs,
    ) -> DialogController:
        """Build a controller from the persisted config and keep it saved.

        Settings, bookmarks and recent paths come from :mod:`fsdialog.config`.
        Without ``initial_directory`` the last used directory is reopened when
        it still exists. Preferences, bookmarks and the final outcome are
        written back as they change.
        """
        settings = kwargs.pop("settings", None) or load_settings()
        resolver = kwargs.pop("resolver", None) or PathResolver()
        if initial_directory is None:
            last_directory = load_last_directory()
            if last_directory is not None and resolver.exists(last_directory):
                initial_directory = last_directory
        kwargs.setdefault("bookmarks", load_bookmarks(resolver))
        kwargs.setdefault("recent", load_recent_paths(settings.recent_limit, resolver))
        kwargs.setdefault("persist_preferences", True)
        kwargs.setdefault("persist_state", True)
        return cls(mode, initial_directory, settings=settings, resolver=resolver, **kwargs)

    # read-only state
    @property
    def mode(self) -> SelectionMode:
        return self.selection.mode

    @property
    def state(self) -> DialogState:
        return self.selection.state

    @property
    def current_directory(self) -> Path | None:
        return self.history.current

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def places(self) -> list[Place]:
        if self._places is None:
            self._places = self._load_places()
        return list(self._places)

    def visible_entries(self) -> EntryView | None:
        """Lazy index view over the current snapshot, or ``None`` on error."""
        return self._visible

    # bootstrap
    def _open_initial(self, initial_directory: str | Path | None) -> None:
        """Open ``initial_directory``, falling back to cwd, home, then the root.

        An initial file opens its parent with the file selected.
        """
        path_error: str | None = None
        if initial_directory is not None:
            try:
                path = self.resolver.canonicalize(initial_directory)
            except PathError as exc:
                path_error = exc.message
            else:
                self._open_target(path)
                path_error = self._path_error

        if self.current_directory is None:
            for fallback in (Path.cwd, Path.home):
                try:
                    path = self.resolver.canonicalize(fallback())
                except (PathError, OSError, RuntimeError):
                    continue
                if self._navigate(path):
                    break
        if self.current_directory is None:
            self._navigate(Path(os.path.abspath(os.sep)))
        self._path_error = path_error

    def _load_places(self) -> list[Place]:
        try:
            return list(self._places_provider(self.resolver))
        except Exception:
            logger.exception("places provider failed")
            return []

    # action dispatch
    def handle(self, action: act.DialogAction) -> bool:
        """Apply one user action and return whether the view changed.

        Terminal states ignore everything except a (no-op) cancel.
        """
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"unsupported dialog action: {action!r}")
        if self.selection.is_terminal:
            return False
        logger.debug("handling %r", action)
        self._notice = None
        changed = handler(action)
        if self.selection.is_terminal:
            self._save_state()
        return changed

    def tick(self) -> bool:
        """Per-frame housekeeping; returns whether a redraw is needed.

        Applies finished background scans and, at most every
        ``change_check_seconds``, rescans the current directory when it
        changed or disappeared on disk.
        """
        if self.selection.is_terminal:
            return False
        changed = self._apply_background_results()
        now = self._clock()
        if now - self._last_change_check >= self.settings.change_check_seconds:
            self._last_change_check = now
            current = self.current_directory
            if current is not None and not self._loading and self.cache.is_stale(current):
                logger.debug("%s changed on disk, rescanning", current)
                self._load_current(force=True)
                changed = True
        return changed

    def take_outcome(self) -> DialogOutcome | None:
        return self.selection.take_outcome()

    # navigation helpers
    def _navigate(self, directory: Path, *, record: bool = True) -> bool:
        if record and not self.history.visit(directory):
            return False
        self._path_error = None
        self.selection.on_navigate(directory)
        self._load_current(force=False)
        return True

    def _load_current(self, *, force: bool) -> None:
        directory = self.current_directory
        if directory is None:
            return
        self._last_change_check = self._clock()
        if self.scanner is not None:
            cached = self.cache.get(directory)
            if force or cached is None:
                self.scanner.schedule(directory)
                self._loading = True
                self._show_snapshot(cached)
                return
            self._loading = self.scanner.is_scanning(directory)
            self._show_snapshot(cached)
            return

        try:
            snapshot = self.cache.scan(directory, force=force)
        except ScanError as exc:
            self._show_snapshot(self.cache.get(directory))
            self._error = exc.message
            return
        self._show_snapshot(snapshot)

    def _show_snapshot(self, snapshot: DirectorySnapshot | None) -> None:
        self._snapshot = snapshot
        if snapshot is None:
            self._visible = None
            self._error = None
            return
        if snapshot.error is not None:
            self._visible = None
            self._error = snapshot.error.message
            return
        self._error = None
        self._recompute_view()

    def _recompute_view(self) -> None:
        if self._snapshot is None or self._snapshot.error is not None:
            self._visible = None
            return
        self._visible = apply(self._snapshot.entries, self.filter_spec, self.sort_spec)

    def _apply_background_results(self) -> bool:
        if self.scanner is None:
            return False
        changed = False
        current = self.current_directory
        for result in self.scanner.drain_results():
            if not self.resolver.same_path(result.snapshot.directory, current):
                logger.debug("discarding scan of %s, no longer current", result.snapshot.directory)
                continue
            self.cache.store(result.snapshot)
            self._loading = False
            self._show_snapshot(result.snapshot)
            changed = True
        return changed

    def _entry_at(self, index: int) -> DirEntry | None:
        if self._visible is None or not 0 <= index < len(self._visible):
            return None
        return self._visible.entry(index)

    def _select_path(self, path: Path) -> bool:
        """Select ``path`` (a child of the current directory) by name."""
        if self.mode is SelectionMode.SAVE_FILE and not self.resolver.classify(path, follow_symlinks=True).is_dir:
            self._type_filename(path.name)
            return True
        entry = self._find_entry(path)
        if entry is None:
            entry = self.resolver.inspect(path)
        if not self.selection.select(entry):
            self._notice = f"{entry.name} cannot be selected here"
            return False
        return True

    def _find_entry(self, path: Path) -> DirEntry | None:
        if self._snapshot is None:
            return None
        for entry in self._snapshot.entries:
            if self.resolver.same_path(entry.path, path):
                return entry
        return None

    def _canonicalize_input(self, text: str) -> Path | None:
        try:
            return self.resolver.canonicalize(text.strip(), base=self.current_directory)
        except PathError as exc:
            self._path_error = exc.message
            return None

    def _open_target(self, path: Path) -> bool:
        """Navigate into a directory or select a file in its parent."""
        kind = self.resolver.classify(path, follow_symlinks=True)
        if kind.is_dir:
            self._navigate(path)
            return True
        if kind is EntryKind.INACCESSIBLE:
            self._path_error = f"cannot access {path}"
            return True
        parent = self.resolver.parent(path)
        if parent is not None:
            self._navigate(parent)
        self._select_path(path)
        return True

    def _type_filename(self, text: str) -> None:
        directory = self.current_directory
        if directory is not None:
            self.selection.type_filename(text, directory)

    # handlers
    def _on_click_entry(self, action: act.ClickEntry) -> bool:
        entry = self._entry_at(action.index)
        if entry is None:
            return False
        if entry.kind is EntryKind.INACCESSIBLE:
            self._notice = f"cannot access {entry.name}"
            return True
        if not self.selection.select(entry, extend=action.extend):
            return False
        return True

    def _on_double_click_entry(self, action: act.DoubleClickEntry) -> bool:
        entry = self._entry_at(action.index)
        if entry is None:
            return False
        if entry.kind is EntryKind.INACCESSIBLE:
            self._notice = f"cannot access {entry.name}"
            return True
        if entry.is_dir:
            self._navigate(entry.path)
            return True
        if not self.selection.select(entry):
            return False
        return self._on_confirm(act.Confirm())

    def _on_navigate_to(self, action: act.NavigateTo) -> bool:
        path = self._canonicalize_input(action.path)
        if path is None:
            return True
        if not self.resolver.classify(path, follow_symlinks=True).is_dir:
            self._path_error = f"not a folder: {path}"
            return True
        self._navigate(path)
        return True

    def _move_history(self, move: Callable[[], Path]) -> bool:
        try:
            move()
        except NavigationSignal as exc:
            self._notice = exc.message
            return True
        self._navigate(self.history.current, record=False)  # type: ignore[arg-type]
        return True

    def _on_go_back(self, _action: act.GoBack) -> bool:
        return self._move_history(self.history.back)

    def _on_go_forward(self, _action: act.GoForward) -> bool:
        return self._move_history(self.history.forward)

    def _on_go_up(self, _action: act.GoUp) -> bool:
        try:
            parent = self.history.parent_of_current(self.resolver)
        except NavigationSignal as exc:
            self._notice = exc.message
            return True
        self._navigate(parent)
        return True

    def _on_type_path(self, action: act.TypePath) -> bool:
        text = action.text.strip()
        try:
            path = self.resolver.canonicalize(text, base=self.current_directory)
        except NotFound as exc:
            if self.mode is SelectionMode.SAVE_FILE and exc.path is not None:
                parent = self.resolver.parent(exc.path)
                if parent is not None and self.resolver.classify(parent, follow_symlinks=True).is_dir:
                    self._navigate(parent)
                    self._type_filename(exc.path.name)
                    return True
            self._path_error = exc.message
            return True
        except PathError as exc:
            self._path_error = exc.message
            return True
        self._path_error = None
        return self._open_target(path)

    def _on_type_filename(self, action: act.TypeFilename) -> bool:
        if self.mode is SelectionMode.SAVE_FILE:
            self._type_filename(action.text)
            return True
        directory = self.current_directory
        if directory is None or not action.text.strip():
            return False
        entry = self._find_entry(self.resolver.join(directory, action.text.strip()))
        if entry is None:
            self._path_error = f"no such item: {action.text.strip()}"
            return True
        self._path_error = None
        if not self.selection.select(entry):
            self._notice = f"{entry.name} cannot be selected here"
        return True

    def _on_toggle_hidden(self, _action: act.ToggleHidden) -> bool:
        self.filter_spec = replace(self.filter_spec, show_hidden=not self.filter_spec.show_hidden)
        if self.persist_preferences:
            save_show_hidden(self.filter_spec.show_hidden)
        self._recompute_view()
        return True

    def _on_set_sort(self, action: act.SetSort) -> bool:
        self.sort_spec = replace(self.sort_spec, key=action.key, descending=action.descending)
        if self.persist_preferences:
            save_sort_spec(self.sort_spec)
        self._recompute_view()
        return True

    def _on_set_filter(self, action: act.SetFilter) -> bool:
        self.filter_spec = action.spec
        self._recompute_view()
        return True

    def _on_set_search(self, action: act.SetSearch) -> bool:
        if action.text == self.filter_spec.search:
            return False
        self.filter_spec = replace(self.filter_spec, search=action.text)
        self._recompute_view()
        return True

    def _on_add_bookmark(self, action: act.AddBookmark) -> bool:
        if action.path is not None:
            target = self._canonicalize_input(action.path)
            if target is None:
                return True
        else:
            target = self.current_directory
        if target is None:
            return False
        try:
            self.bookmarks.add(action.label, target)
        except FileDialogError as exc:
            self._notice = exc.message
            return True
        self._save_state()
        return True

    def _on_remove_bookmark(self, action: act.RemoveBookmark) -> bool:
        if not self.bookmarks.remove(action.label):
            self._notice = f"no bookmark named {action.label!r}"
            return True
        self._save_state()
        return True

    def _on_open_bookmark(self, action: act.OpenBookmark) -> bool:
        bookmark = self.bookmarks.get(action.label)
        if bookmark is None:
            self._notice = f"no bookmark named {action.label!r}"
            return True
        if not self.resolver.exists(bookmark.path):
            self.bookmarks.validate_all()
            self._notice = f"bookmark {bookmark.label!r} points to a missing location"
            return True
        return self._open_target(bookmark.path)

    def _on_open_place(self, action: act.OpenPlace) -> bool:
        for place in self.places:
            if place.label == action.label:
                if not self.resolver.exists(place.path):
                    self._notice = f"{place.label} is not available"
                    return True
                self._navigate(place.path)
                return True
        self._notice = f"no place named {action.label!r}"
        return True

    def _on_refresh_places(self, _action: act.RefreshPlaces) -> bool:
        self._places = self._load_places()
        self.bookmarks.validate_all()
        self.cache.invalidate_all()
        self._load_current(force=True)
        return True

    def _on_create_directory(self, action: act.CreateDirectory) -> bool:
        directory = self.current_directory
        if directory is None:
            return False
        try:
            created = self.cache.create_directory(directory, action.name.strip())
        except FileDialogError as exc:
            self._notice = exc.message
            return True
        self._load_current(force=False)
        entry = self._find_entry(created) or self.resolver.inspect(created)
        if self.selection.accepts(entry.kind):
            self.selection.select(entry)
        return True

    def _on_confirm(self, _action: act.Confirm) -> bool:
        try:
            outcome = self.selection.confirm(self.current_directory)
        except InvalidSelection as exc:
            self._notice = exc.message
            return True
        if outcome is None:
            self._notice = "A file with this name already exists. Confirm again to replace it."
            return True
        for path in outcome.paths:
            self.recent.push(path)
        return True

    def _on_cancel(self, _action: act.Cancel) -> bool:
        self.selection.cancel()
        return True

    def _on_refresh(self, _action: act.Refresh) -> bool:
        self._load_current(force=True)
        return True

    # outward state
    def view(self) -> DialogView:
        """Build the frame snapshot for the host renderer."""
        current = self.current_directory
        rows: list[VisibleEntry] = []
        if self._visible is not None:
            for position, entry in enumerate(self._visible.entries()):
                rows.append(
                    VisibleEntry(
                        index=position,
                        name=entry.name,
                        path=entry.path,
                        kind=entry.kind,
                        size=entry.size,
                        mtime_ns=entry.mtime_ns,
                        hidden=entry.hidden,
                        selected=self.selection.is_selected(entry.path),
                    )
                )
        return DialogView(
            mode=self.mode,
            state=self.state,
            current_directory=current,
            breadcrumb=tuple(self.resolver.breadcrumb(current)) if current is not None else (),
            entries=tuple(rows),
            selection=self.selection.selection,
            filename=self.selection.filename,
            filter_spec=self.filter_spec,
            sort_spec=self.sort_spec,
            error=self._error,
            path_error=self._path_error,
            filename_error=self.selection.filename_error,
            notice=self._notice,
            can_go_back=self.history.can_go_back,
            can_go_forward=self.history.can_go_forward,
            can_go_up=current is not None and self.resolver.parent(current) is not None,
            can_confirm=self.selection.can_confirm(current),
            loading=self._loading,
            places=tuple(self.places),
            bookmarks=tuple(self.bookmarks.list()),
        )

    def _save_state(self) -> None:
        if self.persist_state:
            save_persisted_state(self.persisted_state())

    def persisted_state(self) -> dict[str, object]:
        """Logical cross-session state for the host to store however it likes."""
        current = self.current_directory
        return {
            "bookmarks": self.bookmarks.to_records(),
            "recent_paths": self.recent.to_records(),
            "last_directory": str(current) if current is not None else None,
        }


__all__ = [
    "DialogController",
    "DialogView",
    "VisibleEntry",
]
