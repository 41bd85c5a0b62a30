"""
Core task pipeline for gtdmcp.

Text in, buckets out: the parser extracts checkbox tasks from a document, the
bucket engine files every task into exactly one bucket, and the writer and
migrator push changes back onto the task lines. Everything here except the
outer write functions is pure and works on strings.
"""

from gtd_mcp.core.buckets import group_tasks_into_buckets, summarize_groups
from gtd_mcp.core.migrator import migrate_storage_mode
from gtd_mcp.core.models import (
    TO_REVIEW_ID,
    BucketConfig,
    BucketGroup,
    BucketSettings,
    MigrationSummary,
    StorageMode,
    TaskRecord,
    WriteResult,
)
from gtd_mcp.core.parser import parse_file
from gtd_mcp.core.rules import DateRangeRule, rule_from_dict
from gtd_mcp.core.writer import (
    confirm_task_placement,
    move_task_to_bucket,
    toggle_task_completion,
)

__all__ = [
    "TO_REVIEW_ID",
    "BucketConfig",
    "BucketGroup",
    "BucketSettings",
    "DateRangeRule",
    "MigrationSummary",
    "StorageMode",
    "TaskRecord",
    "WriteResult",
    "confirm_task_placement",
    "group_tasks_into_buckets",
    "migrate_storage_mode",
    "move_task_to_bucket",
    "parse_file",
    "rule_from_dict",
    "summarize_groups",
    "toggle_task_completion",
]
