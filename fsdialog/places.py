"""Navigation shortcuts: well-known user folders and mounted drives.

User folders come from ``platformdirs`` and drives from
``psutil.disk_partitions``. Both are queried on demand only; every candidate
is validated through the resolver before it is offered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import platformdirs
import psutil

from .errors import PathError
from .paths import PathResolver

logger = logging.getLogger(__name__)

PLACE_USER = "user"
PLACE_DRIVE = "drive"

# Pseudo filesystems that are mounted but never useful as a save/open target.
PSEUDO_FILESYSTEMS = frozenset(
    {
        "autofs",
        "binfmt_misc",
        "cgroup",
        "cgroup2",
        "configfs",
        "debugfs",
        "devpts",
        "devtmpfs",
        "fusectl",
        "hugetlbfs",
        "mqueue",
        "nsfs",
        "overlay",
        "proc",
        "pstore",
        "securityfs",
        "squashfs",
        "sysfs",
        "tracefs",
    }
)


@dataclass(frozen=True)
class Place:
    """One shortcut shown in the dialog's side panel."""

    label: str
    path: Path
    kind: str = PLACE_USER


USER_FOLDERS: tuple[tuple[str, Callable[[], str]], ...] = (
    ("Home", lambda: str(Path.home())),
    ("Desktop", platformdirs.user_desktop_dir),
    ("Documents", platformdirs.user_documents_dir),
    ("Downloads", platformdirs.user_downloads_dir),
    ("Music", platformdirs.user_music_dir),
    ("Pictures", platformdirs.user_pictures_dir),
    ("Videos", platformdirs.user_videos_dir),
)


def validated_places(
    candidates: list[tuple[str, str]],
    resolver: PathResolver,
    kind: str = PLACE_USER,
) -> list[Place]:
    """Keep candidates that canonicalize to an existing directory, first label wins."""
    places: list[Place] = []
    seen: set[str] = set()
    for label, raw_path in candidates:
        try:
            path = resolver.canonicalize(raw_path)
        except PathError:
            logger.debug("skipping place %s: %s is not available", label, raw_path)
            continue
        if not resolver.classify(path, follow_symlinks=True).is_dir:
            continue
        key = resolver.path_key(path)
        if key in seen:
            continue
        seen.add(key)
        places.append(Place(label=label, path=path, kind=kind))
    return places


def user_places(resolver: PathResolver | None = None) -> list[Place]:
    """Return existing well-known user folders."""
    resolver = resolver or PathResolver()
    candidates: list[tuple[str, str]] = []
    for label, lookup in USER_FOLDERS:
        try:
            candidates.append((label, lookup()))
        except Exception:
            logger.debug("user folder lookup for %s failed", label, exc_info=True)
    return validated_places(candidates, resolver, PLACE_USER)


def _drive_label(mountpoint: str, device: str) -> str:
    if device and device != mountpoint and not device.startswith("/dev/"):
        return f"{device} ({mountpoint})"
    return mountpoint


def drive_places(resolver: PathResolver | None = None) -> list[Place]:
    """Return mounted volumes, skipping pseudo filesystems."""
    resolver = resolver or PathResolver()
    try:
        partitions = psutil.disk_partitions(all=False)
    except (OSError, RuntimeError):
        logger.warning("could not enumerate mounted drives", exc_info=True)
        return []
    candidates: list[tuple[str, str]] = []
    for partition in partitions:
        if not partition.mountpoint or partition.fstype in PSEUDO_FILESYSTEMS:
            continue
        candidates.append((_drive_label(partition.mountpoint, partition.device), partition.mountpoint))
    return validated_places(candidates, resolver, PLACE_DRIVE)


def default_places(resolver: PathResolver | None = None) -> list[Place]:
    """User folders followed by drives."""
    resolver = resolver or PathResolver()
    return user_places(resolver) + drive_places(resolver)


__all__ = [
    "PLACE_DRIVE",
    "PLACE_USER",
    "Place",
    "default_places",
    "drive_places",
    "user_places",
    "validated_places",
]
