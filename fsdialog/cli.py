"""Command-line front door for fsdialog.

Opens a dialog controller on a directory without any GUI and prints the
listing it would show: entries after filtering and sorting, or the known
places. Useful for checking filters and platform path handling quickly.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .controller import DialogController, DialogView
from .filter_sort import FilterSpec, SortKey, SortSpec
from .selection import SelectionMode
from .types import EntryKind

MODE_CHOICES = {
    "file": SelectionMode.SELECT_FILE,
    "folder": SelectionMode.SELECT_FOLDER,
    "multiple": SelectionMode.SELECT_MULTIPLE,
    "save": SelectionMode.SAVE_FILE,
}

KIND_MARKERS = {
    EntryKind.FILE: "-",
    EntryKind.DIRECTORY: "d",
    EntryKind.SYMLINK_FILE: "l",
    EntryKind.SYMLINK_DIR: "L",
    EntryKind.DRIVE_ROOT: "D",
    EntryKind.INACCESSIBLE: "!",
}


def format_size(size: int | None) -> str:
    """Human-readable byte size, blank for unknown."""
    if size is None:
        return ""
    value = float(size)
    for unit in ("B", "K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            return f"{int(value)}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024
    return f"{size}B"


def render_listing(view: DialogView) -> str:
    """Render a view's entries as plain text lines."""
    out = [f"{view.current_directory}"]
    for entry in view.entries:
        suffix = "/" if entry.kind.is_dir else ""
        out.append(f"{KIND_MARKERS[entry.kind]} {format_size(entry.size):>8}  {entry.name}{suffix}")
    return "\n".join(out) + "\n"


def render_places(view: DialogView) -> str:
    lines = [f"{place.kind:<6} {place.label}\t{place.path}" for place in view.places]
    lines.extend(f"mark   {bookmark.label}\t{bookmark.path}" for bookmark in view.bookmarks)
    return "\n".join(lines) + ("\n" if lines else "")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and print the dialog listing for a directory."""
    parser = argparse.ArgumentParser(
        prog="fsdialog",
        description="Show what the file dialog would list for a directory.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Directory to list. Defaults to current directory.")
    parser.add_argument("--mode", choices=sorted(MODE_CHOICES), default="file", help="Selection mode.")
    parser.add_argument("--show-hidden", action="store_true", help="Include hidden entries.")
    parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=SortKey.NAME.value,
        help="Sort key.",
    )
    parser.add_argument("--desc", action="store_true", help="Sort descending.")
    parser.add_argument("--no-dirs-first", action="store_true", help="Mix folders and files when sorting.")
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        metavar="PATTERN",
        help="File name glob or extension; repeatable.",
    )
    parser.add_argument("--search", default="", help="Only show names containing this text.")
    parser.add_argument("--places", action="store_true", help="List user folders, drives and saved bookmarks instead.")
    parser.add_argument("--verbose", action="store_true", help="Log scanning details to stderr.")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    path = Path(args.path) if args.path is not None else Path.cwd()
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")

    controller = DialogController.from_config(
        MODE_CHOICES[args.mode],
        path,
        filter_spec=FilterSpec(patterns=tuple(args.filter), search=args.search, show_hidden=args.show_hidden),
        sort_spec=SortSpec(
            key=SortKey(args.sort),
            descending=args.desc,
            directories_first=not args.no_dirs_first,
        ),
    )
    view = controller.view()

    if args.places:
        sys.stdout.write(render_places(view))
        return
    if view.error is not None:
        raise SystemExit(view.error)
    sys.stdout.write(render_listing(view))
