"""Directory navigation history with a cursor.

``visit`` appends after the cursor and drops any forward entries, browser
style. Boundary moves raise :class:`NoHistory` / :class:`AtRoot` without
changing state.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from .errors import AtRoot, NoHistory
from .paths import PathResolver

MAX_HISTORY = 256


class NavigationHistory:
    """Bounded list of visited directories plus the index of the current one."""

    def __init__(
        self,
        max_entries: int = MAX_HISTORY,
        same_path: Callable[[Path, Path], bool] | None = None,
    ) -> None:
        self.max_entries = max(1, max_entries)
        self._same_path = same_path or (lambda first, second: first == second)
        self._entries: list[Path] = []
        self._cursor = -1

    @property
    def entries(self) -> list[Path]:
        """Return a copy of the visited directories, oldest first."""
        return list(self._entries)

    @property
    def cursor(self) -> int:
        """Return the index of the current entry, or ``-1`` when empty."""
        return self._cursor

    @property
    def current(self) -> Path | None:
        """Return the current directory, or ``None`` before the first visit."""
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    @property
    def can_go_back(self) -> bool:
        """Return whether an older entry exists before the cursor."""
        return self._cursor > 0

    @property
    def can_go_forward(self) -> bool:
        """Return whether a newer entry exists after the cursor."""
        return 0 <= self._cursor < len(self._entries) - 1

    def visit(self, path: Path) -> bool:
        """Make ``path`` current, truncating forward history.

        Returns ``False`` when ``path`` already is the current directory.
        """
        current = self.current
        if current is not None and self._same_path(current, path):
            return False
        del self._entries[self._cursor + 1 :]
        self._entries.append(path)
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            del self._entries[:overflow]
        self._cursor = len(self._entries) - 1
        return True

    def back(self) -> Path:
        """Step to the previous directory and return it.

        Raises:
            NoHistory: the cursor is already at the oldest entry.
        """
        if not self.can_go_back:
            raise NoHistory("no previous folder", path=self.current)
        self._cursor -= 1
        return self._entries[self._cursor]

    def forward(self) -> Path:
        """Step to the next directory and return it.

        Raises:
            NoHistory: the cursor is already at the newest entry.
        """
        if not self.can_go_forward:
            raise NoHistory("no next folder", path=self.current)
        self._cursor += 1
        return self._entries[self._cursor]

    def parent_of_current(self, resolver: PathResolver) -> Path:
        """Return the parent of the current directory without moving.

        Raises:
            AtRoot: the current directory is a filesystem root.
            NoHistory: nothing has been visited yet.
        """
        current = self.current
        if current is None:
            raise NoHistory("no current folder")
        parent = resolver.parent(current)
        if parent is None:
            raise AtRoot(path=current)
        return parent

    def up(self, resolver: PathResolver) -> Path:
        """Visit and return the parent of the current directory."""
        parent = self.parent_of_current(resolver)
        self.visit(parent)
        return parent

    def clear(self) -> None:
        """Forget every entry and reset the cursor."""
        self._entries.clear()
        self._cursor = -1


__all__ = [
    "MAX_HISTORY",
    "NavigationHistory",
]
