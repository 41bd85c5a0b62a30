"""Write tools for gtdMCP - move, confirm and check off tasks in the vault."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from gtd_mcp.auth import check_write_permission
from gtd_mcp.config import Config
from gtd_mcp.core import (
    TO_REVIEW_ID,
    TaskRecord,
    WriteResult,
    confirm_task_placement,
    migrate_storage_mode,
    move_task_to_bucket,
    toggle_task_completion,
)
from gtd_mcp.index import TaskIndex
from gtd_mcp.settings import SettingsProvider, parse_storage_mode
from gtd_mcp.store import DocumentStore

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)


def _get_task(index: TaskIndex, task_id: str) -> TaskRecord:
    task = index.get_task(task_id)
    if task is None:
        raise ValueError(f"Unknown task: {task_id}")
    return task


def _result(
    result: WriteResult,
    task: TaskRecord,
    index: TaskIndex,
    status: str,
    **extra,
) -> dict:
    """
    Build the tool response for a single-task write.

    The task's document is re-indexed either way: on success so the new line
    is visible immediately, on failure so a stale index is corrected.
    """
    index.reindex_file(task.file_path)
    if not result.success:
        return {
            "status": "failed",
            "task_id": task.id,
            "error": result.error,
            "stale": result.stale,
        }
    return {"status": status, "task_id": task.id, "file_path": task.file_path, **extra}


def register_tools_write(
    mcp: "FastMCP",
    config: Config,
    store: DocumentStore,
    index: TaskIndex,
    settings_provider: SettingsProvider,
) -> None:
    """Register all write tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Config instance for the read-only check
        store: Document store the tasks live in
        index: Task index, re-indexed after every write
        settings_provider: Current bucket settings, replaced on migration
    """

    @mcp.tool()
    def move_task(task_id: str, bucket_id: str | None = None) -> dict:
        """Move a task into a bucket by writing its annotation on the task line.

        Args:
            task_id: Task id from list_buckets or list_tasks
            bucket_id: Destination bucket id; None or "to-review" removes the
                annotation so the task falls back to due-date placement

        Returns:
            Dict with status ("moved" or "failed"), task id and bucket id; on
            failure also error and stale (the line changed since indexing)
        """
        check_write_permission(config)

        settings = settings_provider.current
        task = _get_task(index, task_id)

        target = None
        if bucket_id is not None and bucket_id != TO_REVIEW_ID:
            target = settings.get_bucket(bucket_id)
            if target is None:
                raise ValueError(f"Unknown bucket: {bucket_id}")

        result = move_task_to_bucket(store, task, target, settings)
        return _result(
            result,
            task,
            index,
            "moved",
            bucket_id=target.id if target else TO_REVIEW_ID,
        )

    @mcp.tool()
    def confirm_task(task_id: str, bucket_id: str) -> dict:
        """Pin an auto-placed task to its bucket with an explicit annotation.

        After confirming, the task stays in the bucket even when its due date
        would place it elsewhere.

        Args:
            task_id: Task id
            bucket_id: Bucket the task is currently auto-placed in

        Returns:
            Dict with status ("confirmed" or "failed") and task id
        """
        check_write_permission(config)

        settings = settings_provider.current
        task = _get_task(index, task_id)
        if settings.get_bucket(bucket_id) is None:
            raise ValueError(f"Unknown bucket: {bucket_id}")

        result = confirm_task_placement(store, task, bucket_id, settings)
        return _result(result, task, index, "confirmed", bucket_id=bucket_id)

    @mcp.tool()
    def toggle_task(task_id: str) -> dict:
        """Check or uncheck a task.

        Checking stamps a ✅ completion date when enabled in the settings;
        unchecking removes it.

        Args:
            task_id: Task id

        Returns:
            Dict with status ("toggled" or "failed"), task id and the new
            completed state
        """
        check_write_permission(config)

        task = _get_task(index, task_id)
        result = toggle_task_completion(store, task, settings_provider.current)
        return _result(result, task, index, "toggled", completed=not task.completed)

    @mcp.tool()
    def migrate_storage(to_mode: str) -> dict:
        """Convert every bucket annotation in the vault to another storage mode.

        Args:
            to_mode: "inline-tag" (#gtd/today) or "inline-field" ([gtd:: today])

        Returns:
            Dict with status ("migrated" or "unchanged"), from/to modes and
            the number of tasks migrated and failed
        """
        check_write_permission(config)

        new_mode = parse_storage_mode(to_mode)
        settings = settings_provider.current
        from_mode = settings.storage_mode
        if new_mode == from_mode:
            return {
                "status": "unchanged",
                "from": from_mode.value,
                "to": new_mode.value,
                "migrated": 0,
                "failed": 0,
            }

        new_settings = dataclasses.replace(settings, storage_mode=new_mode)
        summary = migrate_storage_mode(store, index.get_all_tasks(), from_mode, new_settings)
        settings_provider.replace(new_settings)
        index.initial_scan()

        return {
            "status": "migrated",
            "from": from_mode.value,
            "to": new_mode.value,
            "migrated": summary.migrated,
            "failed": summary.failed,
        }

    @mcp.tool()
    def reindex() -> dict:
        """Re-scan every in-scope document in the vault.

        Returns:
            Dict with status and the number of tasks indexed
        """
        check_write_permission(config)

        count = index.initial_scan()
        logger.info("Manual reindex: %d tasks", count)
        return {"status": "reindexed", "task_count": count}
