"""End-to-end tests for the dialog controller over real temporary trees."""

from __future__ import annotations

import os
import shutil
import tempfile
import time
import unittest
from pathlib import Path
from unittest import mock

from fsdialog import actions as act
from fsdialog import config
from fsdialog.background_scan import BackgroundScanner, ScanRequest, ScanResult
from fsdialog.config import DialogSettings
from fsdialog.controller import DialogController
from fsdialog.directory_cache import read_directory
from fsdialog.filter_sort import SortKey
from fsdialog.paths import PathResolver
from fsdialog.places import Place
from fsdialog.selection import DialogState, SelectionMode
from fsdialog.types import DirectorySnapshot


def _no_places(_resolver: PathResolver) -> list[Place]:
    return []


class FakeScanner:
    """Records schedule calls; tests hand results back explicitly."""

    def __init__(self) -> None:
        self.scheduled: list[Path] = []
        self.results: list[ScanResult] = []

    def schedule(self, directory: Path) -> int:
        self.scheduled.append(directory)
        return len(self.scheduled)

    def is_scanning(self, directory: Path) -> bool:
        return directory in self.scheduled

    def drain_results(self) -> list[ScanResult]:
        out, self.results = self.results, []
        return out


class ControllerFixture(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        (self.root / "Documents").mkdir()
        (self.root / "Documents" / "report.txt").write_text("report", encoding="utf-8")
        (self.root / "photo.png").write_text("png-bytes", encoding="utf-8")
        (self.root / ".hidden").write_text("h", encoding="utf-8")
        self.now = [100.0]

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def clock(self) -> float:
        return self.now[0]

    def make(self, mode: SelectionMode, initial: Path | None = None, **kwargs) -> DialogController:
        kwargs.setdefault("places_provider", _no_places)
        kwargs.setdefault("clock", self.clock)
        return DialogController(mode, self.root if initial is None else initial, **kwargs)

    @staticmethod
    def names(controller: DialogController) -> list[str]:
        return [entry.name for entry in controller.view().entries]


class SelectionFlowTests(ControllerFixture):
    def test_select_folder_commits_clicked_folder(self) -> None:
        controller = self.make(SelectionMode.SELECT_FOLDER)
        self.assertEqual(self.names(controller), ["Documents", "photo.png"])

        controller.handle(act.ClickEntry(0))
        self.assertIs(controller.state, DialogState.ITEM_SELECTED)
        self.assertTrue(controller.view().can_confirm)

        controller.handle(act.Confirm())

        self.assertIs(controller.state, DialogState.COMMITTED)
        outcome = controller.take_outcome()
        self.assertEqual(outcome.paths, (self.root / "Documents",))
        self.assertIsNone(controller.take_outcome())
        self.assertEqual(controller.recent.list(), [self.root / "Documents"])

    def test_select_folder_ignores_file_clicks(self) -> None:
        controller = self.make(SelectionMode.SELECT_FOLDER)

        self.assertFalse(controller.handle(act.ClickEntry(1)))
        self.assertIs(controller.state, DialogState.BROWSING)
        controller.handle(act.Confirm())
        self.assertIs(controller.state, DialogState.BROWSING)
        self.assertIsNotNone(controller.view().notice)

    def test_select_multiple_then_cancel_returns_nothing(self) -> None:
        (self.root / "a.txt").write_text("a", encoding="utf-8")
        controller = self.make(SelectionMode.SELECT_MULTIPLE)
        self.assertEqual(self.names(controller), ["Documents", "a.txt", "photo.png"])

        controller.handle(act.ClickEntry(1))
        controller.handle(act.ClickEntry(2, extend=True))
        view = controller.view()
        self.assertEqual(view.selection, (self.root / "a.txt", self.root / "photo.png"))
        self.assertEqual([entry.selected for entry in view.entries], [False, True, True])

        controller.handle(act.Cancel())

        outcome = controller.take_outcome()
        self.assertIs(outcome.state, DialogState.CANCELLED)
        self.assertEqual(outcome.paths, ())
        self.assertFalse(controller.handle(act.GoUp()))

    def test_double_click_file_commits_in_select_file_mode(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        controller.handle(act.DoubleClickEntry(1))

        self.assertEqual(controller.take_outcome().path, self.root / "photo.png")

    def test_save_over_clicked_file_needs_second_confirm(self) -> None:
        controller = self.make(SelectionMode.SAVE_FILE)
        controller.handle(act.ClickEntry(1))
        self.assertEqual(controller.view().filename, "photo.png")

        controller.handle(act.Confirm())
        view = controller.view()
        self.assertIs(view.state, DialogState.AWAITING_CONFIRMATION)
        self.assertEqual(view.notice, "A file with this name already exists. Confirm again to replace it.")

        controller.handle(act.Confirm())
        outcome = controller.take_outcome()
        self.assertTrue(outcome.overwrite)
        self.assertEqual(outcome.path, self.root / "photo.png")

    def test_save_with_typed_new_name(self) -> None:
        controller = self.make(SelectionMode.SAVE_FILE, default_extension="txt")

        controller.handle(act.TypeFilename("draft"))
        controller.handle(act.Confirm())

        outcome = controller.take_outcome()
        self.assertFalse(outcome.overwrite)
        self.assertEqual(outcome.path, self.root / "draft.txt")

    def test_initial_file_opens_parent_with_file_selected(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE, self.root / "photo.png")

        self.assertEqual(controller.current_directory, self.root)
        self.assertEqual(controller.view().selection, (self.root / "photo.png",))

    def test_missing_initial_directory_falls_back_and_reports(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE, self.root / "missing")

        view = controller.view()
        self.assertIsNotNone(view.current_directory)
        self.assertTrue(view.path_error.startswith("no such file or folder"))

    def test_unknown_action_is_rejected(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        with self.assertRaises(TypeError):
            controller.handle(object())  # type: ignore[arg-type]


class NavigationTests(ControllerFixture):
    def test_back_forward_and_boundaries(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        controller.handle(act.DoubleClickEntry(0))
        self.assertEqual(controller.current_directory, self.root / "Documents")
        self.assertEqual(self.names(controller), ["report.txt"])

        controller.handle(act.GoBack())
        self.assertEqual(controller.current_directory, self.root)
        controller.handle(act.GoForward())
        self.assertEqual(controller.current_directory, self.root / "Documents")

        controller.handle(act.GoForward())
        view = controller.view()
        self.assertEqual(view.current_directory, self.root / "Documents")
        self.assertEqual(view.notice, "no next folder")
        self.assertFalse(view.can_go_forward)

        controller.handle(act.GoUp())
        self.assertEqual(controller.current_directory, self.root)
        self.assertEqual(controller.history.entries[-2:], [self.root / "Documents", self.root])

    def test_unreadable_directory_reports_error_and_keeps_history(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)
        locked = self.root / "Documents"

        with mock.patch("fsdialog.directory_cache.os.scandir", side_effect=PermissionError("denied")):
            controller.handle(act.NavigateTo(str(locked)))

        view = controller.view()
        self.assertEqual(view.current_directory, locked)
        self.assertEqual(view.entries, ())
        self.assertIn("permission denied", view.error)
        self.assertTrue(view.can_go_back)

        controller.handle(act.GoBack())
        view = controller.view()
        self.assertIsNone(view.error)
        self.assertEqual(view.current_directory, self.root)
        self.assertEqual([entry.name for entry in view.entries], ["Documents", "photo.png"])

    def test_type_path_to_file_selects_it_in_its_folder(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        controller.handle(act.TypePath(str(self.root / "Documents" / "report.txt")))

        self.assertEqual(controller.current_directory, self.root / "Documents")
        self.assertEqual(controller.view().selection, (self.root / "Documents" / "report.txt",))

    def test_type_path_errors_are_reported_without_moving(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        controller.handle(act.TypePath("nowhere/at/all"))

        view = controller.view()
        self.assertEqual(view.current_directory, self.root)
        self.assertTrue(view.path_error.startswith("no such file or folder"))

        controller.handle(act.TypePath("Documents"))
        self.assertEqual(controller.current_directory, self.root / "Documents")
        self.assertIsNone(controller.view().path_error)

    def test_type_path_to_new_file_in_save_mode_fills_filename(self) -> None:
        controller = self.make(SelectionMode.SAVE_FILE)

        controller.handle(act.TypePath(str(self.root / "Documents" / "new.txt")))

        view = controller.view()
        self.assertEqual(view.current_directory, self.root / "Documents")
        self.assertEqual(view.filename, "new.txt")
        self.assertIs(view.state, DialogState.ITEM_SELECTED)

    def test_open_place(self) -> None:
        places = [Place("Docs", self.root / "Documents")]
        controller = self.make(SelectionMode.SELECT_FILE, places_provider=lambda _resolver: places)

        controller.handle(act.OpenPlace("Docs"))
        self.assertEqual(controller.current_directory, self.root / "Documents")
        self.assertEqual(controller.view().places, tuple(places))

        controller.handle(act.OpenPlace("Nope"))
        self.assertEqual(controller.view().notice, "no place named 'Nope'")


class ViewOptionTests(ControllerFixture):
    def test_toggle_hidden_and_sort(self) -> None:
        (self.root / "big.bin").write_text("x" * 100, encoding="utf-8")
        controller = self.make(SelectionMode.SELECT_FILE)
        self.assertNotIn(".hidden", self.names(controller))

        controller.handle(act.ToggleHidden())
        self.assertIn(".hidden", self.names(controller))

        controller.handle(act.SetSort(SortKey.SIZE, descending=True))
        self.assertEqual(self.names(controller), ["Documents", "big.bin", "photo.png", ".hidden"])

    def test_search_and_filter(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        controller.handle(act.SetSearch("PHO"))
        self.assertEqual(self.names(controller), ["photo.png"])
        self.assertFalse(controller.handle(act.SetSearch("PHO")))

    def test_toggle_hidden_persists_when_enabled(self) -> None:
        config_path = self.root / "config" / "fsdialog.json"
        with mock.patch("fsdialog.config.CONFIG_PATH", config_path):
            controller = self.make(SelectionMode.SELECT_FILE, persist_preferences=True)
            controller.handle(act.ToggleHidden())
            self.assertTrue(config.load_show_hidden())


class ChangeDetectionTests(ControllerFixture):
    def test_tick_picks_up_new_files(self) -> None:
        os.utime(self.root, ns=(1_000_000_000, 1_000_000_000))
        controller = self.make(SelectionMode.SELECT_FILE)
        self.assertFalse(controller.tick())

        (self.root / "added.txt").write_text("new", encoding="utf-8")
        os.utime(self.root, ns=(3_000_000_000, 3_000_000_000))
        self.assertFalse(controller.tick())

        self.now[0] += 5
        self.assertTrue(controller.tick())
        self.assertIn("added.txt", self.names(controller))

    def test_vanished_directory_surfaces_error(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)
        controller.handle(act.DoubleClickEntry(0))

        shutil.rmtree(self.root / "Documents")
        self.now[0] += 5
        self.assertTrue(controller.tick())

        view = controller.view()
        self.assertIn("no longer exists", view.error)
        self.assertEqual(view.entries, ())
        self.assertTrue(view.can_go_back)

    def test_refresh_forces_rescan(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)
        (self.root / "later.txt").write_text("l", encoding="utf-8")

        controller.handle(act.Refresh())

        self.assertIn("later.txt", self.names(controller))


class BackgroundScanTests(ControllerFixture):
    def test_stale_results_are_discarded(self) -> None:
        scanner = FakeScanner()
        resolver = PathResolver()
        controller = self.make(SelectionMode.SELECT_FILE, resolver=resolver, scanner=scanner)
        self.assertTrue(controller.view().loading)
        self.assertEqual(controller.view().entries, ())

        docs = self.root / "Documents"
        controller.handle(act.NavigateTo(str(docs)))
        scanner.results = [
            ScanResult(ScanRequest(1, self.root, str(self.root)), read_directory(self.root, resolver)),
            ScanResult(ScanRequest(2, docs, str(docs)), read_directory(docs, resolver)),
        ]

        self.assertTrue(controller.tick())

        view = controller.view()
        self.assertFalse(view.loading)
        self.assertEqual([entry.name for entry in view.entries], ["report.txt"])
        self.assertIsNone(controller.cache.get(self.root))
        self.assertIsNotNone(controller.cache.get(docs))
        self.assertEqual(scanner.scheduled, [self.root, docs])

    def test_real_background_scanner_delivers_listing(self) -> None:
        controller = DialogController(
            SelectionMode.SELECT_FILE,
            self.root,
            settings=DialogSettings(background_scan=True),
            places_provider=_no_places,
        )

        deadline = time.monotonic() + 2.0
        while controller.loading and time.monotonic() < deadline:
            controller.tick()
            time.sleep(0.01)

        self.assertFalse(controller.loading)
        self.assertEqual(self.names(controller), ["Documents", "photo.png"])

    def test_crashing_reader_ends_loading_with_error(self) -> None:
        def read(directory: Path) -> DirectorySnapshot:
            raise RuntimeError("boom")

        def wait_until_loaded(controller: DialogController) -> None:
            deadline = time.monotonic() + 2.0
            while controller.loading and time.monotonic() < deadline:
                controller.tick()
                time.sleep(0.01)

        with self.assertLogs("fsdialog.background_scan", level="ERROR"):
            controller = self.make(SelectionMode.SELECT_FILE, scanner=BackgroundScanner(read))
            wait_until_loaded(controller)

            view = controller.view()
            self.assertFalse(view.loading)
            self.assertEqual(view.entries, ())
            self.assertIn("boom", view.error)

            controller.handle(act.Refresh())
            self.assertTrue(controller.loading)
            wait_until_loaded(controller)

        view = controller.view()
        self.assertFalse(view.loading)
        self.assertIn("boom", view.error)

    def test_created_folder_is_selected_before_scan_arrives(self) -> None:
        scanner = FakeScanner()
        controller = self.make(SelectionMode.SELECT_FOLDER, scanner=scanner)

        controller.handle(act.CreateDirectory("New Folder"))

        self.assertTrue((self.root / "New Folder").is_dir())
        self.assertEqual(controller.view().selection, (self.root / "New Folder",))
        self.assertIs(controller.state, DialogState.ITEM_SELECTED)


class BookmarkAndFolderTests(ControllerFixture):
    def test_bookmarks_add_reject_duplicates_and_open(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)

        controller.handle(act.AddBookmark("Home"))
        controller.handle(act.AddBookmark("Home", path=str(self.root / "Documents")))

        view = controller.view()
        self.assertEqual([bookmark.path for bookmark in view.bookmarks], [self.root])
        self.assertEqual(view.notice, "bookmark 'Home' already exists")

        controller.handle(act.NavigateTo(str(self.root / "Documents")))
        controller.handle(act.OpenBookmark("Home"))
        self.assertEqual(controller.current_directory, self.root)

        controller.handle(act.RemoveBookmark("Home"))
        self.assertEqual(controller.view().bookmarks, ())

    def test_create_directory_selects_it_in_folder_mode(self) -> None:
        controller = self.make(SelectionMode.SELECT_FOLDER)

        controller.handle(act.CreateDirectory("New Folder"))

        self.assertTrue((self.root / "New Folder").is_dir())
        self.assertIn("New Folder", self.names(controller))
        self.assertEqual(controller.view().selection, (self.root / "New Folder",))

        controller.handle(act.CreateDirectory("New Folder"))
        self.assertEqual(controller.view().notice, "A folder or file with this name already exists")

    def test_persisted_state_shape(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)
        controller.handle(act.AddBookmark("Root"))
        controller.handle(act.DoubleClickEntry(1))

        state = controller.persisted_state()

        self.assertEqual(state["bookmarks"], [{"label": "Root", "path": str(self.root), "kind": "directory"}])
        self.assertEqual(state["recent_paths"], [str(self.root / "photo.png")])
        self.assertEqual(state["last_directory"], str(self.root))


class PersistedConfigTests(ControllerFixture):
    def setUp(self) -> None:
        super().setUp()
        config_dir = tempfile.TemporaryDirectory()
        self.addCleanup(config_dir.cleanup)
        patcher = mock.patch("fsdialog.config.CONFIG_PATH", Path(config_dir.name) / "config.json")
        patcher.start()
        self.addCleanup(patcher.stop)

    def from_config(self, mode: SelectionMode, initial: Path | None = None) -> DialogController:
        return DialogController.from_config(mode, initial, places_provider=_no_places, clock=self.clock)

    def test_saved_bookmark_and_last_folder_reach_next_dialog(self) -> None:
        docs = self.root / "Documents"
        first = self.from_config(SelectionMode.SELECT_FILE, docs)
        first.handle(act.AddBookmark("Docs"))

        self.assertEqual([bookmark.label for bookmark in config.load_bookmarks()], ["Docs"])

        second = self.from_config(SelectionMode.SELECT_FILE)

        self.assertEqual(second.current_directory, docs)
        self.assertEqual([(bookmark.label, bookmark.path) for bookmark in second.view().bookmarks], [("Docs", docs)])

    def test_removed_bookmark_is_saved(self) -> None:
        controller = self.from_config(SelectionMode.SELECT_FILE, self.root)
        controller.handle(act.AddBookmark("Root"))
        self.assertEqual(len(config.load_bookmarks()), 1)

        controller.handle(act.RemoveBookmark("Root"))

        self.assertEqual(len(config.load_bookmarks()), 0)
        self.assertEqual(self.from_config(SelectionMode.SELECT_FILE).view().bookmarks, ())

    def test_commit_saves_recent_paths_and_last_directory(self) -> None:
        controller = self.from_config(SelectionMode.SELECT_FILE, self.root)
        controller.handle(act.DoubleClickEntry(1))

        self.assertIs(controller.state, DialogState.COMMITTED)
        self.assertEqual(config.load_recent_paths().list(), [self.root / "photo.png"])
        self.assertEqual(config.load_last_directory(), self.root)

        reopened = self.from_config(SelectionMode.SELECT_FILE)
        self.assertEqual(reopened.current_directory, self.root)
        self.assertEqual(reopened.recent.list(), [self.root / "photo.png"])

    def test_cancel_saves_last_directory(self) -> None:
        controller = self.from_config(SelectionMode.SELECT_FOLDER, self.root / "Documents")
        controller.handle(act.Cancel())

        self.assertEqual(config.load_last_directory(), self.root / "Documents")

    def test_vanished_last_directory_is_not_reopened(self) -> None:
        config.save_persisted_state({"last_directory": str(self.root / "gone")})

        controller = self.from_config(SelectionMode.SELECT_FILE)

        self.assertNotEqual(controller.current_directory, self.root / "gone")
        self.assertIsNone(controller.view().path_error)

    def test_plain_controller_writes_nothing(self) -> None:
        controller = self.make(SelectionMode.SELECT_FILE)
        controller.handle(act.AddBookmark("Root"))
        controller.handle(act.Cancel())

        self.assertEqual(config.load_config(), {})


if __name__ == "__main__":
    unittest.main()
