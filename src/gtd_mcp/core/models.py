"""Data models for tasks, buckets and write results."""

import copy
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from gtd_mcp.core.rules import DateRangeRule, NextWeek, ThisMonth, ThisWeek, Today

# Id of the system bucket that catches every unassigned task
TO_REVIEW_ID = "to-review"
TO_REVIEW_NAME = "To Review"


@dataclass
class TaskScope:
    """Which documents of the vault are scanned for tasks.

    type is "vault" (everything), "folders" (path prefix) or "files" (exact).
    """

    type: str = "vault"
    paths: list[str] = field(default_factory=list)


class StorageMode(str, Enum):
    """Which on-line format records a manual bucket assignment."""

    INLINE_TAG = "inline-tag"  # #gtd/today
    INLINE_FIELD = "inline-field"  # [gtd:: today]


@dataclass
class TaskRecord:
    """One checkbox line extracted from a markdown document.

    ``parent_id`` / ``child_ids`` are id references into the same document's
    records, rebuilt on every parse and never persisted.
    """

    id: str
    file_path: str
    line_number: int  # 0-indexed
    raw_line: str  # Verbatim line, the key for write-back
    label: str  # Text with all metadata stripped
    completed: bool = False
    completed_at: date | None = None
    due_date: date | None = None
    tags: list[str] = field(default_factory=list)
    inline_field: str | None = None  # First [key:: value] value, any key
    indent_level: int = 0
    parent_id: str | None = None
    child_ids: list[str] = field(default_factory=list)


@dataclass
class BucketConfig:
    """A user-defined bucket."""

    id: str
    name: str
    emoji: str = ""
    date_range_rule: DateRangeRule | None = None
    quick_move_targets: list[str] = field(default_factory=list)  # At most two ids
    show_in_summary: bool = False


@dataclass
class BucketGroup:
    """Tasks filed into one bucket by a classification pass."""

    bucket_id: str
    name: str
    emoji: str
    tasks: list[TaskRecord] = field(default_factory=list)
    stale_task_ids: set[str] = field(default_factory=set)
    auto_placed_task_ids: set[str] = field(default_factory=set)
    is_system: bool = False


@dataclass
class WriteResult:
    """Outcome of a single-task write; ``stale`` means the line was not found."""

    success: bool
    error: str | None = None
    stale: bool = False


@dataclass
class MigrationSummary:
    """Counts from a storage-mode migration."""

    migrated: int = 0
    failed: int = 0


DEFAULT_TO_REVIEW_EMOJI = "📥"

DEFAULT_BUCKETS = [
    BucketConfig(
        id="today",
        name="Today",
        emoji="⚡",
        date_range_rule=Today(),
        quick_move_targets=["this-week", "someday"],
        show_in_summary=True,
    ),
    BucketConfig(
        id="this-week",
        name="This Week",
        emoji="📌",
        date_range_rule=ThisWeek(),
        quick_move_targets=["today", "next-week"],
    ),
    BucketConfig(
        id="next-week",
        name="Next Week",
        emoji="🔭",
        date_range_rule=NextWeek(),
        quick_move_targets=["this-week", "this-month"],
    ),
    BucketConfig(
        id="this-month",
        name="This Month",
        emoji="📅",
        date_range_rule=ThisMonth(),
        quick_move_targets=["next-week", "someday"],
    ),
    BucketConfig(
        id="someday",
        name="Someday / Maybe",
        emoji="💭",
        date_range_rule=None,
        quick_move_targets=["today", "this-week"],
    ),
]


def default_buckets() -> list[BucketConfig]:
    """Fresh copies of the default buckets."""
    return copy.deepcopy(DEFAULT_BUCKETS)


@dataclass
class BucketSettings:
    """Everything classification and write-back need to know.

    Passed explicitly into every call; the core keeps no settings of its own.
    """

    buckets: list[BucketConfig] = field(default_factory=default_buckets)
    storage_mode: StorageMode = StorageMode.INLINE_TAG
    # Tag prefix in inline-tag mode (#<prefix>/id), field key in inline-field mode
    tag_prefix: str = "gtd"
    auto_assign_from_due_date: bool = True
    stale_indicator_enabled: bool = True
    stamp_completion_date: bool = True
    completed_visible_until_midnight: bool = True
    to_review_emoji: str = DEFAULT_TO_REVIEW_EMOJI
    to_review_quick_move_targets: list[str] = field(
        default_factory=lambda: ["today", "this-week"]
    )
    to_review_show_in_summary: bool = False
    task_scope: TaskScope = field(default_factory=TaskScope)

    def get_bucket(self, bucket_id: str | None) -> BucketConfig | None:
        """The configured bucket with this id, or None."""
        if bucket_id is None:
            return None
        for bucket in self.buckets:
            if bucket.id == bucket_id:
                return bucket
        return None

    def bucket_ids(self) -> set[str]:
        return {bucket.id for bucket in self.buckets}
