"""Write bucket assignments and completion changes back to task lines.

A task is located by its exact raw line, so every write re-reads the document
first. If the line has changed since the last index, the write is abandoned
and reported as stale; the caller should re-index that document.
"""

import logging
import re
from collections.abc import Callable, Sequence
from datetime import date

from gtd_mcp.core.codec import set_inline_field_value, set_tag_value
from gtd_mcp.core.dates import set_completion_date, today
from gtd_mcp.core.models import (
    BucketConfig,
    BucketSettings,
    StorageMode,
    TaskRecord,
    WriteResult,
)
from gtd_mcp.store import DocumentNotFoundError, DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)

STALE_INDEX_ERROR = "Task line not found in file (stale index)"

_CHECKED_BOX = re.compile(r"\[[ xX]\]")
_UNCHECKED_BOX = re.compile(r"\[ \]")


class TaskLineNotFoundError(Exception):
    """Raised inside a document transform when the task's line has drifted away."""

    pass


def find_task_line(lines: Sequence[str], task: TaskRecord) -> int | None:
    """
    Locate a task's line in the current document lines.

    Checks the recorded line number first, then falls back to the first line
    exactly equal to the task's raw line (insertions or deletions elsewhere in
    the document move it).

    Returns:
        Line index, or None if no line matches
    """
    if 0 <= task.line_number < len(lines) and lines[task.line_number] == task.raw_line:
        return task.line_number
    for i, line in enumerate(lines):
        if line == task.raw_line:
            return i
    return None


def apply_bucket_change(
    raw_line: str,
    bucket_id: str | None,
    storage_mode: StorageMode,
    tag_prefix: str,
) -> str:
    """Write (or with None, clear) the bucket annotation on a line."""
    if storage_mode == StorageMode.INLINE_TAG:
        return set_tag_value(raw_line, tag_prefix, bucket_id)
    return set_inline_field_value(raw_line, tag_prefix, bucket_id)


def toggle_completion_line(
    raw_line: str,
    was_completed: bool,
    stamp_completion_date: bool,
    completed_on: date | None = None,
) -> str:
    """
    Flip a task line's checkbox.

    Unchecking also removes any ✅ completion date. Checking appends one
    (``completed_on``, default today) when ``stamp_completion_date`` is set.
    """
    if was_completed:
        line = _CHECKED_BOX.sub("[ ]", raw_line, count=1)
        return set_completion_date(line, None)

    line = _UNCHECKED_BOX.sub("[x]", raw_line, count=1)
    if stamp_completion_date:
        line = set_completion_date(line, completed_on or today())
    return line


def rewrite_line(line: str, rewrite: Callable[[str], str]) -> str:
    """Apply ``rewrite`` to a line split from CRLF text, keeping its carriage return."""
    if line.endswith("\r"):
        return rewrite(line[:-1]) + "\r"
    return rewrite(line)


def rewrite_task_line(content: str, task: TaskRecord, rewrite: Callable[[str], str]) -> str:
    """
    Apply ``rewrite`` to the task's line within full document text.

    Raises:
        TaskLineNotFoundError: If the task's line is no longer in the document
    """
    lines = content.split("\n")
    index = find_task_line(lines, task)
    if index is None:
        raise TaskLineNotFoundError(task.raw_line)
    lines[index] = rewrite_line(lines[index], rewrite)
    return "\n".join(lines)


def _write_task(
    store: DocumentStore,
    task: TaskRecord,
    rewrite: Callable[[str], str],
    action: str,
) -> WriteResult:
    try:
        store.modify(task.file_path, lambda content: rewrite_task_line(content, task, rewrite))
    except TaskLineNotFoundError:
        logger.warning("Could not locate task in %s (stale index)", task.file_path)
        return WriteResult(success=False, error=STALE_INDEX_ERROR, stale=True)
    except DocumentNotFoundError:
        logger.warning("%s failed: file not found: %s", action, task.file_path)
        return WriteResult(success=False, error=f"File not found: {task.file_path}")
    except DocumentStoreError as e:
        logger.warning("%s failed for %s: %s", action, task.file_path, e)
        return WriteResult(success=False, error=str(e))
    except ValueError as e:
        logger.warning("%s rejected for %s: %s", action, task.file_path, e)
        return WriteResult(success=False, error=str(e))

    logger.info("%s: %s:%d", action, task.file_path, task.line_number)
    return WriteResult(success=True)


def move_task_to_bucket(
    store: DocumentStore,
    task: TaskRecord,
    target_bucket: BucketConfig | None,
    settings: BucketSettings,
) -> WriteResult:
    """
    Write a manual bucket assignment onto a task's line.

    Args:
        store: Document store holding the task's file
        task: Task as last indexed
        target_bucket: Destination bucket, or None for the to-review bucket
            (removes the annotation)
        settings: Provides storage mode and tag prefix
    """
    bucket_id = target_bucket.id if target_bucket is not None else None

    def rewrite(line: str) -> str:
        return apply_bucket_change(line, bucket_id, settings.storage_mode, settings.tag_prefix)

    return _write_task(store, task, rewrite, f"Moved task to {bucket_id or 'to-review'}")


def confirm_task_placement(
    store: DocumentStore,
    task: TaskRecord,
    bucket_id: str,
    settings: BucketSettings,
) -> WriteResult:
    """Pin an auto-placed task to its bucket by writing the explicit annotation.

    An id that names no configured bucket clears the annotation instead.
    """
    return move_task_to_bucket(store, task, settings.get_bucket(bucket_id), settings)


def toggle_task_completion(
    store: DocumentStore,
    task: TaskRecord,
    settings: BucketSettings,
    completed_on: date | None = None,
) -> WriteResult:
    """Check or uncheck a task in its source file."""

    def rewrite(line: str) -> str:
        return toggle_completion_line(
            line, task.completed, settings.stamp_completion_date, completed_on
        )

    action = "Unchecked task" if task.completed else "Checked task"
    return _write_task(store, task, rewrite, action)
