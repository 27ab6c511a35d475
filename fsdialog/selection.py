"""Selection state machine for one dialog invocation.

States move ``BROWSING`` <-> ``ITEM_SELECTED`` while the user clicks around,
through ``AWAITING_CONFIRMATION`` when a save target would overwrite an
existing file, and end in exactly one of ``COMMITTED`` or ``CANCELLED``.
Terminal states ignore further input; their outcome is handed out once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import InvalidSelection
from .paths import PathResolver
from .types import DirEntry, EntryKind

logger = logging.getLogger(__name__)


class SelectionMode(Enum):
    SELECT_FILE = "select-file"
    SELECT_FOLDER = "select-folder"
    SELECT_MULTIPLE = "select-multiple"
    SAVE_FILE = "save-file"


class DialogState(Enum):
    BROWSING = "browsing"
    ITEM_SELECTED = "item-selected"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    COMMITTED = "committed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (DialogState.COMMITTED, DialogState.CANCELLED)


@dataclass(frozen=True)
class DialogOutcome:
    """Final result of a dialog; ``paths`` is empty when cancelled."""

    state: DialogState
    mode: SelectionMode
    paths: tuple[Path, ...] = ()
    overwrite: bool = False

    @property
    def committed(self) -> bool:
        return self.state is DialogState.COMMITTED

    @property
    def path(self) -> Path | None:
        return self.paths[0] if self.paths else None


class SelectionEngine:
    """Mode-constrained selection plus the save-mode filename.

    ``allow_files`` / ``allow_directories`` only matter in
    ``SELECT_MULTIPLE``; the other modes fix the accepted kind.
    ``default_extension`` (save mode) is appended to typed names that have
    no suffix.
    """

    def __init__(
        self,
        mode: SelectionMode,
        resolver: PathResolver | None = None,
        *,
        allow_files: bool = True,
        allow_directories: bool = True,
        default_extension: str | None = None,
    ) -> None:
        self.mode = mode
        self.resolver = resolver or PathResolver()
        self.allow_files = allow_files
        self.allow_directories = allow_directories
        self.default_extension = (default_extension or "").lstrip(".") or None
        self._state = DialogState.BROWSING
        self._selected: list[DirEntry] = []
        self._filename = ""
        self._filename_error: str | None = None
        self._outcome: DialogOutcome | None = None
        self._outcome_taken = False

    # read-only state
    @property
    def state(self) -> DialogState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    @property
    def selection(self) -> tuple[Path, ...]:
        return tuple(entry.path for entry in self._selected)

    @property
    def selected_entries(self) -> tuple[DirEntry, ...]:
        return tuple(self._selected)

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def filename_error(self) -> str | None:
        return self._filename_error

    def is_selected(self, path: Path) -> bool:
        return any(self.resolver.same_path(entry.path, path) for entry in self._selected)

    def accepts(self, kind: EntryKind) -> bool:
        """Return whether an entry of ``kind`` may be selected in this mode."""
        if self.mode in (SelectionMode.SELECT_FILE, SelectionMode.SAVE_FILE):
            return kind.is_file
        if self.mode is SelectionMode.SELECT_FOLDER:
            return kind.is_dir
        return (kind.is_file and self.allow_files) or (kind.is_dir and self.allow_directories)

    # transitions
    def _settle(self) -> None:
        if self._state.is_terminal:
            return
        if self.mode is SelectionMode.SAVE_FILE and self._state is DialogState.AWAITING_CONFIRMATION:
            return
        self._state = DialogState.ITEM_SELECTED if self._has_target() else DialogState.BROWSING

    def _has_target(self) -> bool:
        if self.mode is SelectionMode.SAVE_FILE:
            return bool(self._filename) and self._filename_error is None
        return bool(self._selected)

    def select(self, entry: DirEntry, *, extend: bool = False) -> bool:
        """Handle a click on ``entry``.

        Entries whose kind the mode does not accept are ignored and the state
        is left untouched. ``extend`` toggles membership in
        ``SELECT_MULTIPLE`` and is ignored elsewhere.
        """
        if self.is_terminal or not self.accepts(entry.kind):
            return False

        if self.mode is SelectionMode.SELECT_MULTIPLE and extend:
            if self.is_selected(entry.path):
                self._selected = [item for item in self._selected if not self.resolver.same_path(item.path, entry.path)]
            else:
                self._selected.append(entry)
        else:
            self._selected = [entry]

        if self.mode is SelectionMode.SAVE_FILE:
            self._filename = entry.name
            self._filename_error = None
            self._state = DialogState.ITEM_SELECTED
            return True

        self._settle()
        return True

    def deselect(self, path: Path | None = None) -> bool:
        """Drop ``path`` (or everything) from the selection."""
        if self.is_terminal or not self._selected:
            return False
        if path is None:
            self._selected = []
        else:
            remaining = [entry for entry in self._selected if not self.resolver.same_path(entry.path, path)]
            if len(remaining) == len(self._selected):
                return False
            self._selected = remaining
        self._settle()
        return True

    def on_navigate(self, directory: Path | None = None) -> None:
        """Reset selection after the current directory changed.

        ``SELECT_MULTIPLE`` keeps its selection across folders. Save mode
        keeps the typed name and re-validates it against ``directory``.
        """
        if self.is_terminal:
            return
        if self.mode is not SelectionMode.SELECT_MULTIPLE:
            self._selected = []
        if self.mode is SelectionMode.SAVE_FILE and directory is not None and self._filename:
            self.type_filename(self._filename, directory)
            return
        self._settle()

    def _effective_filename(self, name: str) -> str:
        """Append ``default_extension`` to suffix-less names; dotfiles stay as typed."""
        is_dotfile = name.startswith(".") and "." not in name[1:]
        if self.default_extension and not Path(name).suffix and not is_dotfile:
            return f"{name}.{self.default_extension}"
        return name

    def type_filename(self, name: str, directory: Path) -> DialogState:
        """Set the save-mode filename and re-evaluate the save target.

        An invalid name or an existing folder records ``filename_error``; an
        existing file moves to ``AWAITING_CONFIRMATION``; anything else makes
        the target eligible for commit.
        """
        if self.is_terminal:
            return self._state
        if self.mode is not SelectionMode.SAVE_FILE:
            raise InvalidSelection("file names can only be typed when saving")

        self._filename = name
        self._selected = [entry for entry in self._selected if entry.name == name]
        problem = self.resolver.filename_problem(name)
        if problem is not None:
            self._filename_error = problem
            self._state = DialogState.BROWSING
            return self._state

        target = self.resolver.join(directory, self._effective_filename(name))
        kind = self.resolver.classify(target, follow_symlinks=True)
        if kind.is_dir:
            self._filename_error = "A folder with this name already exists"
            self._state = DialogState.BROWSING
        elif kind.is_file:
            self._filename_error = None
            self._state = DialogState.AWAITING_CONFIRMATION
        else:
            self._filename_error = None
            self._state = DialogState.ITEM_SELECTED
        return self._state

    def save_target(self, directory: Path | None) -> Path | None:
        """Return the path a save would write to, or ``None`` when not valid."""
        if self.mode is not SelectionMode.SAVE_FILE or directory is None:
            return None
        if not self._filename or self.resolver.filename_problem(self._filename) is not None:
            return None
        return self.resolver.join(directory, self._effective_filename(self._filename))

    def can_confirm(self, directory: Path | None = None) -> bool:
        if self.is_terminal:
            return False
        if self.mode is SelectionMode.SAVE_FILE:
            return self._filename_error is None and self.save_target(directory) is not None
        return bool(self._selected)

    def _validated_selection(self) -> tuple[Path, ...]:
        if not self._selected:
            raise InvalidSelection("nothing is selected")
        for entry in self._selected:
            kind = self.resolver.classify(entry.path, follow_symlinks=True)
            if kind is EntryKind.INACCESSIBLE:
                raise InvalidSelection(f"{entry.name} is no longer available", path=entry.path)
            if not self.accepts(kind):
                expected = "a folder" if self.mode is SelectionMode.SELECT_FOLDER else "a file"
                raise InvalidSelection(f"{entry.name} is not {expected}", path=entry.path)
        return self.selection

    def confirm(self, directory: Path | None = None) -> DialogOutcome | None:
        """Try to commit.

        Returns the outcome when committed. In save mode, a target that would
        overwrite an existing file first moves to ``AWAITING_CONFIRMATION``
        and returns ``None``; confirming again commits.

        Raises:
            InvalidSelection: the selection or typed name does not satisfy the
                mode; the state is left unchanged.
        """
        if self.is_terminal:
            return self._outcome

        if self.mode is SelectionMode.SAVE_FILE:
            if self._filename_error is not None:
                raise InvalidSelection(self._filename_error)
            target = self.save_target(directory)
            if target is None:
                raise InvalidSelection("enter a file name")
            kind = self.resolver.classify(target, follow_symlinks=True)
            if kind.is_dir:
                raise InvalidSelection("A folder with this name already exists", path=target)
            overwrite = kind.is_file
            if overwrite and self._state is not DialogState.AWAITING_CONFIRMATION:
                self._state = DialogState.AWAITING_CONFIRMATION
                return None
            return self._commit((target,), overwrite=overwrite)

        return self._commit(self._validated_selection())

    def _commit(self, paths: tuple[Path, ...], *, overwrite: bool = False) -> DialogOutcome:
        self._state = DialogState.COMMITTED
        self._outcome = DialogOutcome(state=self._state, mode=self.mode, paths=paths, overwrite=overwrite)
        logger.debug("dialog committed: %s", ", ".join(str(path) for path in paths))
        return self._outcome

    def cancel(self) -> DialogOutcome:
        """Cancel from any non-terminal state; terminal states are kept."""
        if self._outcome is not None:
            return self._outcome
        self._state = DialogState.CANCELLED
        self._selected = []
        self._outcome = DialogOutcome(state=self._state, mode=self.mode)
        return self._outcome

    def take_outcome(self) -> DialogOutcome | None:
        """Return the terminal outcome the first time it is asked for."""
        if self._outcome is None or self._outcome_taken:
            return None
        self._outcome_taken = True
        return self._outcome


__all__ = [
    "DialogOutcome",
    "DialogState",
    "SelectionEngine",
    "SelectionMode",
]
