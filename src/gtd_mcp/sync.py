"""Background watcher that keeps the task index in sync with the vault.

Runs a daemon thread that periodically snapshots the in-scope documents and
turns the differences into change events for the index, so edits made outside
the MCP tools (an editor, a sync client) show up in bucket listings.
"""

import logging
import threading
from collections.abc import Callable

from gtd_mcp.index import ChangeEvent, ChangeKind, TaskIndex
from gtd_mcp.core.models import TaskScope
from gtd_mcp.store import DocumentStore

logger = logging.getLogger(__name__)

Snapshot = dict[str, tuple[float, str]]  # path -> (mtime, content hash)


def diff_snapshots(old: Snapshot, new: Snapshot) -> list[ChangeEvent]:
    """
    Compute change events between two document snapshots.

    A removed path and an added path with the same content hash are reported
    as a single rename.

    Returns:
        Events in order: renames, deletions, creations, modifications
    """
    removed = sorted(set(old) - set(new))
    added = sorted(set(new) - set(old))

    events = []
    for old_path in list(removed):
        content_hash = old[old_path][1]
        match = next((p for p in added if new[p][1] == content_hash), None)
        if match is not None:
            events.append(ChangeEvent(ChangeKind.RENAMED, match, old_path=old_path))
            removed.remove(old_path)
            added.remove(match)

    events.extend(ChangeEvent(ChangeKind.DELETED, path) for path in removed)
    events.extend(ChangeEvent(ChangeKind.CREATED, path) for path in added)
    events.extend(
        ChangeEvent(ChangeKind.MODIFIED, path)
        for path in sorted(set(old) & set(new))
        if old[path] != new[path]
    )
    return events


class SyncManager:
    """Manages periodic background polling of the vault.

    The sync thread is a daemon, so it automatically terminates when the
    main process exits.
    """

    def __init__(
        self,
        store: DocumentStore,
        index: TaskIndex,
        get_scope: Callable[[], TaskScope],
        interval: int,
    ):
        """Initialize the sync manager.

        Args:
            store: Document store to poll.
            index: Index that receives change events.
            get_scope: Returns the current task scope.
            interval: Poll interval in seconds. Must be > 0.
        """
        if interval <= 0:
            raise ValueError(f"Sync interval must be positive, got {interval}")

        self._store = store
        self._index = index
        self._get_scope = get_scope
        self._interval = interval
        self._snapshot: Snapshot = {}
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def snapshot(self) -> Snapshot:
        return {
            info.path: (info.mtime, info.content_hash)
            for info in self._store.walk(self._get_scope())
        }

    def poll(self) -> list[ChangeEvent]:
        """Take a new snapshot and apply every difference to the index.

        Returns:
            The events applied, in order.
        """
        current = self.snapshot()
        events = diff_snapshots(self._snapshot, current)
        self._snapshot = current
        for event in events:
            self._index.handle_event(event)
        return events

    def start(self) -> None:
        """Start the background sync thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Sync thread already running")
            return

        # Baseline matches what the index was just built from
        self._snapshot = self.snapshot()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sync_loop,
            name="gtd-sync",
            daemon=True,
        )
        self._thread.start()
        logger.info("Sync manager started (interval: %ds)", self._interval)

    def stop(self) -> None:
        """Stop the background sync thread.

        Blocks until the thread terminates (up to one interval).
        """
        if self._thread is None or not self._thread.is_alive():
            return

        self._stop_event.set()
        self._thread.join(timeout=self._interval + 1)
        if self._thread.is_alive():
            logger.warning("Sync thread did not stop cleanly")
        else:
            logger.info("Sync manager stopped")
        self._thread = None

    def _sync_loop(self) -> None:
        """Main sync loop - runs in background thread."""
        logger.debug("Sync loop started")

        while not self._stop_event.is_set():
            if self._stop_event.wait(timeout=self._interval):
                break

            try:
                events = self.poll()
                if events:
                    logger.info("Auto-sync: %d document changes applied", len(events))
                else:
                    logger.debug("Auto-sync: no changes detected")
            except Exception:
                logger.exception("Error during auto-sync")

        logger.debug("Sync loop stopped")
