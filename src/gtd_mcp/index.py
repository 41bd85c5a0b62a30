"""Live index of task records across the vault.

The vault is always the source of truth: the index only caches parsed
records, keyed by document path, and is rebuilt per document whenever a
change notification arrives.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from gtd_mcp.core.models import TaskRecord, TaskScope
from gtd_mcp.core.parser import parse_file
from gtd_mcp.store import DocumentStore, DocumentStoreError, in_scope

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[list[TaskRecord]], None]


class ChangeKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass
class ChangeEvent:
    """A change to one document in the vault."""

    kind: ChangeKind
    path: str
    old_path: str | None = None  # Only for renames


class TaskIndex:
    """
    Maps document path to the tasks parsed from it.

    Thread Safety:
        Index updates are protected by a lock so the sync thread and tool
        handlers can both trigger re-indexing. Listeners are called outside
        the lock with a snapshot of all tasks.
    """

    def __init__(self, store: DocumentStore, get_scope: Callable[[], TaskScope]):
        """
        Args:
            store: Document store to read from
            get_scope: Returns the current task scope (settings may change)
        """
        self.store = store
        self._get_scope = get_scope
        self._index: dict[str, list[TaskRecord]] = {}
        self._listeners: list[ChangeCallback] = []
        self._lock = threading.Lock()

    def initial_scan(self) -> int:
        """
        Rebuild the whole index from every in-scope document.

        Returns the number of tasks indexed.
        """
        paths = self.store.list_documents(self._get_scope())
        fresh: dict[str, list[TaskRecord]] = {}
        for path in paths:
            tasks = self._parse(path)
            if tasks is not None:
                fresh[path] = tasks

        with self._lock:
            self._index = fresh
        count = sum(len(tasks) for tasks in fresh.values())
        logger.info("Indexed %d tasks from %d documents", count, len(fresh))
        self._emit()
        return count

    def get_all_tasks(self) -> list[TaskRecord]:
        """All indexed tasks, grouped by document in path order."""
        with self._lock:
            return [task for path in sorted(self._index) for task in self._index[path]]

    def get_tasks(self, path: str) -> list[TaskRecord]:
        """Tasks indexed from one document (empty if not indexed)."""
        with self._lock:
            return list(self._index.get(path, []))

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            for tasks in self._index.values():
                for task in tasks:
                    if task.id == task_id:
                        return task
        return None

    def on_change(self, callback: ChangeCallback) -> None:
        """Register a callback invoked with all tasks after every index change."""
        self._listeners.append(callback)

    def reindex_file(self, path: str) -> None:
        """Re-parse one document (e.g. after a failed write)."""
        self._index_file(path)
        self._emit()

    def handle_event(self, event: ChangeEvent) -> None:
        """Apply a vault change notification to the index."""
        scope = self._get_scope()

        if event.kind in (ChangeKind.CREATED, ChangeKind.MODIFIED):
            if not in_scope(event.path, scope):
                return
            self._index_file(event.path)

        elif event.kind == ChangeKind.DELETED:
            with self._lock:
                if self._index.pop(event.path, None) is None:
                    return

        elif event.kind == ChangeKind.RENAMED:
            with self._lock:
                was_indexed = (
                    event.old_path is not None
                    and self._index.pop(event.old_path, None) is not None
                )
            if in_scope(event.path, scope):
                self._index_file(event.path)
            elif not was_indexed:
                return

        logger.debug("Index updated for %s %s", event.kind.value, event.path)
        self._emit()

    def _parse(self, path: str) -> list[TaskRecord] | None:
        """Parse one document; None if it cannot be read."""
        try:
            content = self.store.read(path)
        except DocumentStoreError as e:
            logger.warning("Skipping unreadable document %s: %s", path, e)
            return None
        return parse_file(path, content)

    def _index_file(self, path: str) -> None:
        tasks = self._parse(path)
        with self._lock:
            if tasks is None:
                self._index.pop(path, None)
            else:
                self._index[path] = tasks

    def _emit(self) -> None:
        tasks = self.get_all_tasks()
        for callback in self._listeners:
            callback(tasks)
