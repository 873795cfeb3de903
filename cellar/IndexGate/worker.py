"""
Snapshot holder and background rebuild worker.

The holder publishes one immutable FileIndex at a time. The worker runs
rebuilds off the request path: callers enqueue a request and return
immediately, and requests that pile up while a rebuild is pending are
served by a single build.
"""

import queue
import threading
from typing import Callable, List, Optional

from cellar.shared.gate import GateErrorHandler, GateLogger

from .indexer import build_index
from .models import FileIndex

_log = GateLogger.get("IndexGate")

_STOP = object()


class IndexHolder:
    """Holds the current snapshot. Readers never block on a rebuild."""

    def __init__(self, snapshot: Optional[FileIndex] = None):
        self._snapshot = snapshot or FileIndex.empty()
        self._lock = threading.Lock()

    def get(self) -> FileIndex:
        """Return the most recently installed snapshot."""
        return self._snapshot

    def install(self, snapshot: FileIndex) -> None:
        """Replace the published snapshot in one reference swap."""
        with self._lock:
            self._snapshot = snapshot


class RebuildWorker:
    """
    Daemon thread that rebuilds the index on request.

    Args:
        root: Served root directory
        holder: Where finished snapshots are installed
        builder: Function producing a snapshot from the root
    """

    def __init__(
        self,
        root: str,
        holder: IndexHolder,
        builder: Callable[[str], FileIndex] = build_index,
    ):
        self.root = root
        self.holder = holder
        self._builder = builder
        self._queue: "queue.Queue" = queue.Queue()
        self._idle = threading.Condition()
        self._outstanding = 0
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self.builds_completed = 0

    @property
    def is_running(self) -> bool:
        return self._running and self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the background thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._run, name="cellar-index-rebuild", daemon=True
        )
        self._thread.start()
        _log.debug("Rebuild worker started")

    def stop(self, timeout: Optional[float] = 5.0):
        """Stop the background thread after any rebuild in progress."""
        with self._idle:
            if not self._running:
                return
            self._running = False
        self._queue.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        # Requests left in the queue will never run
        with self._idle:
            self._outstanding = 0
            self._idle.notify_all()
        _log.debug("Rebuild worker stopped")

    def request(self, reason: str = "manual"):
        """Queue a rebuild and return immediately."""
        with self._idle:
            if not self._running:
                _log.warning(f"Rebuild requested while worker is stopped ({reason})")
                return
            self._outstanding += 1
            self._queue.put(reason)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no rebuild is queued or running.

        Returns:
            True if the worker went idle within the timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._outstanding == 0, timeout)

    def _drain(self, first) -> List:
        """Collect everything queued behind ``first`` so one build serves it all."""
        items = [first]
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def _run(self):
        """Worker loop."""
        while self._running:
            item = self._queue.get()
            items = self._drain(item)
            reasons = [i for i in items if i is not _STOP]

            if reasons and self._running:
                if len(reasons) > 1:
                    _log.debug(f"Coalesced {len(reasons)} rebuild requests")
                try:
                    snapshot = self._builder(self.root)
                    self.holder.install(snapshot)
                    self.builds_completed += 1
                except Exception as e:
                    # Previous snapshot stays installed
                    GateErrorHandler.handle("IndexGate", f"Background rebuild ({reasons[0]})", e)

            with self._idle:
                self._outstanding = max(0, self._outstanding - len(reasons))
                self._idle.notify_all()

            if len(reasons) != len(items):
                break
