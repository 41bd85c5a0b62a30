"""MCP read tools for gtdMCP.

This module defines the read-only tools exposed by the MCP server:
- list_buckets: Every bucket with the tasks classified into it
- get_bucket: One bucket by id
- bucket_summary: Compact per-bucket counts
- list_tasks: Raw extracted tasks, optionally for one document
"""

from typing import Any

from fastmcp import FastMCP

from gtd_mcp.core import group_tasks_into_buckets, summarize_groups
from gtd_mcp.core.dates import format_date
from gtd_mcp.core.models import TO_REVIEW_ID, BucketGroup, BucketSettings, TaskRecord
from gtd_mcp.index import TaskIndex
from gtd_mcp.settings import SettingsProvider


def serialize_task(task: TaskRecord) -> dict[str, Any]:
    return {
        "id": task.id,
        "file_path": task.file_path,
        "line_number": task.line_number,
        "label": task.label,
        "completed": task.completed,
        "completed_at": format_date(task.completed_at) if task.completed_at else None,
        "due_date": format_date(task.due_date) if task.due_date else None,
        "tags": task.tags,
        "indent_level": task.indent_level,
        "parent_id": task.parent_id,
        "child_ids": task.child_ids,
    }


def quick_move_targets(group: BucketGroup, settings: BucketSettings) -> list[str]:
    """Quick-move targets for a group, without ids of buckets that no longer exist."""
    if group.is_system:
        targets = settings.to_review_quick_move_targets
    else:
        bucket = settings.get_bucket(group.bucket_id)
        targets = bucket.quick_move_targets if bucket else []

    known = settings.bucket_ids() | {TO_REVIEW_ID}
    return [t for t in targets if t in known and t != group.bucket_id]


def serialize_group(
    group: BucketGroup,
    settings: BucketSettings,
    include_completed: bool = True,
) -> dict[str, Any]:
    """Serialize a bucket group with per-task stale and auto-placed flags."""
    tasks = []
    for task in group.tasks:
        if task.completed and not include_completed:
            continue
        data = serialize_task(task)
        data["stale"] = task.id in group.stale_task_ids
        data["auto_placed"] = task.id in group.auto_placed_task_ids
        tasks.append(data)

    return {
        "bucket_id": group.bucket_id,
        "name": group.name,
        "emoji": group.emoji,
        "is_system": group.is_system,
        "quick_move_targets": quick_move_targets(group, settings),
        "task_count": len(tasks),
        "tasks": tasks,
    }


def register_tools(mcp: FastMCP, index: TaskIndex, settings_provider: SettingsProvider) -> None:
    """Register all read tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        index: Live task index
        settings_provider: Source of the current bucket settings
    """

    @mcp.tool()
    def list_buckets(include_completed: bool = True) -> list[dict]:
        """List every bucket with the tasks classified into it.

        The "to-review" system bucket comes first, then the configured buckets
        in order. A task is placed by its explicit annotation, else by its 📅
        due date, else by its parent task's bucket, else into "to-review".

        Args:
            include_completed: Include checked-off tasks (default: True)

        Returns:
            List of buckets with:
            - bucket_id, name, emoji, is_system
            - quick_move_targets: Bucket ids suggested for one-step moves
            - task_count: Number of tasks listed
            - tasks: Tasks with id, file_path, line_number, label, completed,
              due_date, tags, parent/child ids, plus "stale" (due date is
              behind the bucket's window) and "auto_placed" (placed by due
              date rather than an explicit annotation)
        """
        settings = settings_provider.current
        groups = group_tasks_into_buckets(index.get_all_tasks(), settings)
        return [serialize_group(group, settings, include_completed) for group in groups]

    @mcp.tool()
    def get_bucket(bucket_id: str, include_completed: bool = True) -> dict:
        """Get one bucket with the tasks classified into it.

        Args:
            bucket_id: Bucket id (e.g. "today", or "to-review")
            include_completed: Include checked-off tasks (default: True)

        Returns:
            Bucket in the same format as list_buckets entries
        """
        settings = settings_provider.current
        groups = group_tasks_into_buckets(index.get_all_tasks(), settings)
        for group in groups:
            if group.bucket_id == bucket_id:
                return serialize_group(group, settings, include_completed)
        raise ValueError(f"Unknown bucket: {bucket_id}")

    @mcp.tool()
    def bucket_summary() -> dict:
        """Get compact task counts for the buckets shown in the summary.

        Returns:
            Dict with:
            - buckets: List of {bucket_id, emoji, active, total, label}; total
              also counts tasks completed today
            - text: All labels joined with spaces (e.g. "3📅 1/2🗓️")
        """
        settings = settings_provider.current
        groups = group_tasks_into_buckets(index.get_all_tasks(), settings)
        summaries = summarize_groups(groups, settings)
        return {
            "buckets": [
                {
                    "bucket_id": s.bucket_id,
                    "emoji": s.emoji,
                    "active": s.active,
                    "total": s.total,
                    "label": s.label,
                }
                for s in summaries
            ],
            "text": " ".join(s.label for s in summaries),
        }

    @mcp.tool()
    def list_tasks(file_path: str | None = None) -> list[dict]:
        """List extracted checkbox tasks, unclassified.

        Args:
            file_path: Optional vault-relative document path to filter by

        Returns:
            List of tasks with id, file_path, line_number, label, completed,
            completed_at, due_date, tags, indent_level, parent_id, child_ids
        """
        if file_path is None:
            tasks = index.get_all_tasks()
        else:
            tasks = index.get_tasks(file_path)
        return [serialize_task(task) for task in tasks]
