"""Background directory scanning for hosts that must not block a frame.

One daemon worker drains pending requests. A directory that already has a
pending or in-flight request is not queued again; the existing request id is
returned instead. Finished snapshots wait in a queue until the owning
controller drains them from its per-frame ``tick``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from queue import Empty, Queue

from .directory_cache import safe_mtime_ns
from .errors import DirectoryUnreadable
from .types import DirectorySnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanRequest:
    """One queued directory scan."""

    request_id: int
    directory: Path
    key: str


@dataclass(frozen=True)
class ScanResult:
    """Completed scan handed back to the frame loop."""

    request: ScanRequest
    snapshot: DirectorySnapshot


def _failed_snapshot(directory: Path, exc: Exception) -> DirectorySnapshot:
    """Error snapshot for a reader that raised instead of reporting a scan error."""
    error = DirectoryUnreadable(f"cannot read this folder ({exc}): {directory}", path=directory)
    return DirectorySnapshot(
        directory=directory,
        entries=(),
        scanned_at=time.monotonic(),
        mtime_ns=safe_mtime_ns(directory),
        error=error,
    )


class BackgroundScanner:
    """Single-worker scan scheduler keyed by canonical directory path."""

    def __init__(
        self,
        read_directory: Callable[[Path], DirectorySnapshot],
        path_key: Callable[[Path], str] = str,
    ) -> None:
        self._read_directory = read_directory
        self._path_key = path_key
        self._lock = threading.Lock()
        self._pending: OrderedDict[str, ScanRequest] = OrderedDict()
        self._in_flight: dict[str, ScanRequest] = {}
        self._running = False
        self._next_request_id = 1
        self._results: Queue[ScanResult] = Queue()

    def _worker(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._running = False
                    return
                key, request = self._pending.popitem(last=False)
                self._in_flight[key] = request

            try:
                snapshot = self._read_directory(request.directory)
            except Exception as exc:
                logger.exception("background scan of %s failed", request.directory)
                snapshot = _failed_snapshot(request.directory, exc)

            with self._lock:
                self._in_flight.pop(key, None)
            self._results.put(ScanResult(request=request, snapshot=snapshot))

    def is_scanning(self, directory: Path) -> bool:
        """Return whether ``directory`` has a pending or in-flight request."""
        key = self._path_key(directory)
        with self._lock:
            return key in self._pending or key in self._in_flight

    def schedule(self, directory: Path) -> int:
        """Queue a scan of ``directory`` unless one is already outstanding.

        Returns the id of the new or already outstanding request.
        """
        key = self._path_key(directory)
        with self._lock:
            existing = self._pending.get(key) or self._in_flight.get(key)
            if existing is not None:
                return existing.request_id
            request_id = self._next_request_id
            self._next_request_id += 1
            self._pending[key] = ScanRequest(request_id=request_id, directory=directory, key=key)
            if self._running:
                return request_id
            self._running = True

        worker = threading.Thread(
            target=self._worker,
            name="fsdialog-directory-scan",
            daemon=True,
        )
        worker.start()
        return request_id

    def drain_results(self) -> list[ScanResult]:
        """Drain all completed scans."""
        out: list[ScanResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out


__all__ = [
    "BackgroundScanner",
    "ScanRequest",
    "ScanResult",
]
