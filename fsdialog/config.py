"""Persistent JSON settings: the default host-side persistence adapter.

Stores dialog preferences, bookmarks, recent paths and the last directory.
Malformed or missing config falls back to defaults and write failures are
logged, never raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .bookmarks import MAX_RECENT_PATHS, BookmarkStore, RecentPaths
from .directory_cache import DEFAULT_CACHE_SIZE
from .filter_sort import SortKey, SortSpec
from .history import MAX_HISTORY
from .paths import PathResolver

logger = logging.getLogger(__name__)

APP_NAME = "fsdialog"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH


@dataclass(frozen=True)
class DialogSettings:
    """Tunables for one dialog controller."""

    cache_size: int = DEFAULT_CACHE_SIZE
    history_limit: int = MAX_HISTORY
    recent_limit: int = MAX_RECENT_PATHS
    change_check_seconds: float = 1.0
    show_hidden: bool = False
    sort: SortSpec = SortSpec()
    background_scan: bool = False


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem and serialization errors are logged and otherwise ignored so
    an unwritable config never breaks the dialog.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("could not save config %s: %s", CONFIG_PATH, exc)


def _update_config(**values: object) -> None:
    config = load_config()
    config.update(values)
    save_config(config)


def _coerce_positive_int(value: object, default: int) -> int:
    """Booleans and non-integers are invalid and fall back to ``default``."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def _coerce_positive_float(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    return float(value)


def load_show_hidden() -> bool:
    """Return the persisted hidden-file preference; only real booleans count."""
    value = load_config().get("show_hidden")
    return bool(value) if isinstance(value, bool) else False


def save_show_hidden(show_hidden: bool) -> None:
    _update_config(show_hidden=bool(show_hidden))


def load_sort_spec() -> SortSpec:
    config = load_config()
    raw_key = config.get("sort_key")
    try:
        key = SortKey(raw_key) if isinstance(raw_key, str) else SortKey.NAME
    except ValueError:
        key = SortKey.NAME
    descending = config.get("sort_descending")
    directories_first = config.get("directories_first")
    return SortSpec(
        key=key,
        descending=descending if isinstance(descending, bool) else False,
        directories_first=directories_first if isinstance(directories_first, bool) else True,
    )


def save_sort_spec(sort: SortSpec) -> None:
    _update_config(
        sort_key=sort.key.value,
        sort_descending=bool(sort.descending),
        directories_first=bool(sort.directories_first),
    )


def load_settings() -> DialogSettings:
    """Build :class:`DialogSettings` from config, sanitizing every field."""
    config = load_config()
    background_scan = config.get("background_scan")
    return DialogSettings(
        cache_size=_coerce_positive_int(config.get("cache_size"), DEFAULT_CACHE_SIZE),
        history_limit=_coerce_positive_int(config.get("history_limit"), MAX_HISTORY),
        recent_limit=_coerce_positive_int(config.get("recent_limit"), MAX_RECENT_PATHS),
        change_check_seconds=_coerce_positive_float(config.get("change_check_seconds"), 1.0),
        show_hidden=load_show_hidden(),
        sort=load_sort_spec(),
        background_scan=background_scan if isinstance(background_scan, bool) else False,
    )


def load_bookmarks(resolver: PathResolver | None = None) -> BookmarkStore:
    return BookmarkStore.from_records(load_config().get("bookmarks"), resolver)


def save_bookmarks(bookmarks: BookmarkStore) -> None:
    _update_config(bookmarks=bookmarks.to_records())


def load_recent_paths(max_entries: int = MAX_RECENT_PATHS, resolver: PathResolver | None = None) -> RecentPaths:
    return RecentPaths.from_records(load_config().get("recent_paths"), max_entries=max_entries, resolver=resolver)


def load_last_directory() -> Path | None:
    value = load_config().get("last_directory")
    if not isinstance(value, str) or not value.strip():
        return None
    return Path(value)


def save_persisted_state(state: dict[str, object]) -> None:
    """Merge a controller's ``persisted_state()`` into the config file."""
    values = {key: state[key] for key in ("bookmarks", "recent_paths", "last_directory") if key in state}
    _update_config(**values)


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_CONFIG_PATH",
    "DialogSettings",
    "load_bookmarks",
    "load_config",
    "load_last_directory",
    "load_recent_paths",
    "load_settings",
    "load_show_hidden",
    "load_sort_spec",
    "save_bookmarks",
    "save_config",
    "save_persisted_state",
    "save_show_hidden",
    "save_sort_spec",
]
