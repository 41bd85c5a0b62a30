"""Sort tasks into buckets.

Assignment priority (highest first):
    1. Manual annotation on the line, in the configured storage mode
    2. Auto-assignment from the 📅 due date, first matching bucket rule wins
    3. Inheritance from the parent task's resolved bucket
    4. Nothing: the "to-review" system bucket

Classification is a pure function of (tasks, settings, now). It never touches
the filesystem and never mutates the tasks, so it is re-run on every change.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from gtd_mcp.core.codec import get_inline_field_value, get_tag_value
from gtd_mcp.core.dates import diff_in_days, today
from gtd_mcp.core.models import (
    TO_REVIEW_ID,
    TO_REVIEW_NAME,
    BucketConfig,
    BucketGroup,
    BucketSettings,
    StorageMode,
    TaskRecord,
)

logger = logging.getLogger(__name__)


def read_bucket_id(raw_line: str, mode: StorageMode, tag_prefix: str) -> str | None:
    """The bucket id written on a line in the given storage mode, if any."""
    if mode == StorageMode.INLINE_TAG:
        return get_tag_value(raw_line, tag_prefix)
    return get_inline_field_value(raw_line, tag_prefix)


def resolve_manual_assignment(task: TaskRecord, settings: BucketSettings) -> str | None:
    """Bucket id from the task's own annotation, if it names a known bucket."""
    value = read_bucket_id(task.raw_line, settings.storage_mode, settings.tag_prefix)
    if value and settings.get_bucket(value) is not None:
        return value
    return None


def auto_assign(due_date: date, buckets: Sequence[BucketConfig], now: date) -> str | None:
    """Id of the first bucket (in configured order) whose rule contains the date."""
    diff = diff_in_days(due_date, now)
    for bucket in buckets:
        rule = bucket.date_range_rule
        if rule is not None and rule.contains(diff, now):
            return bucket.id
    return None


def is_stale(due_date: date, bucket: BucketConfig | None, now: date) -> bool:
    """True when a task due on ``due_date`` is behind its bucket's window."""
    if bucket is None or bucket.date_range_rule is None:
        return False
    return bucket.date_range_rule.is_stale(diff_in_days(due_date, now), now)


def _system_group(settings: BucketSettings) -> BucketGroup:
    return BucketGroup(
        bucket_id=TO_REVIEW_ID,
        name=TO_REVIEW_NAME,
        emoji=settings.to_review_emoji,
        is_system=True,
    )


def group_tasks_into_buckets(
    tasks: Sequence[TaskRecord],
    settings: BucketSettings,
    now: date | None = None,
) -> list[BucketGroup]:
    """
    File every task into exactly one bucket group.

    Args:
        tasks: All extracted tasks (any documents, any order)
        settings: Buckets and assignment options
        now: The day to evaluate date rules against (default: today)

    Returns:
        One group per bucket: the system bucket first, then the configured
        buckets in order. Tasks keep their input order within a group.
    """
    if now is None:
        now = today()

    groups: dict[str, BucketGroup] = {TO_REVIEW_ID: _system_group(settings)}
    for bucket in settings.buckets:
        groups[bucket.id] = BucketGroup(
            bucket_id=bucket.id, name=bucket.name, emoji=bucket.emoji
        )

    # Parents come before children within a document, so one pass can inherit
    ordered = sorted(tasks, key=lambda t: (t.file_path, t.line_number))

    effective: dict[str, str | None] = {}
    auto_placed: set[str] = set()

    for task in ordered:
        manual = resolve_manual_assignment(task, settings)
        if manual:
            effective[task.id] = manual
            continue

        if task.due_date is not None and settings.auto_assign_from_due_date:
            auto = auto_assign(task.due_date, settings.buckets, now)
            if auto:
                effective[task.id] = auto
                auto_placed.add(task.id)
                continue

        if task.parent_id is not None:
            effective[task.id] = effective.get(task.parent_id)
        else:
            effective[task.id] = None

    for task in tasks:
        bucket_id = effective.get(task.id)
        group = groups.get(bucket_id) if bucket_id is not None else None
        if group is None:
            groups[TO_REVIEW_ID].tasks.append(task)
            continue

        group.tasks.append(task)
        if task.id in auto_placed:
            group.auto_placed_task_ids.add(task.id)

        if settings.stale_indicator_enabled and task.due_date is not None:
            if is_stale(task.due_date, settings.get_bucket(bucket_id), now):
                group.stale_task_ids.add(task.id)

    logger.debug(
        "Classified %d tasks into %d buckets (%d auto-placed)",
        len(tasks),
        len(groups),
        len(auto_placed),
    )
    return [groups[TO_REVIEW_ID]] + [groups[b.id] for b in settings.buckets]


@dataclass
class BucketSummary:
    """Task counts for one bucket, as shown in a compact summary."""

    bucket_id: str
    emoji: str
    active: int
    total: int

    @property
    def label(self) -> str:
        if self.active < self.total:
            return f"{self.active}/{self.total}{self.emoji}"
        return f"{self.total}{self.emoji}"


def summarize_groups(
    groups: Sequence[BucketGroup],
    settings: BucketSettings,
    now: date | None = None,
) -> list[BucketSummary]:
    """
    Count active (and recently completed) tasks for buckets shown in the summary.

    Completed tasks count toward the total only when
    ``completed_visible_until_midnight`` is set and they were completed today
    (or carry no completion date at all).
    """
    if now is None:
        now = today()

    summaries = []
    for group in groups:
        if group.is_system:
            shown = settings.to_review_show_in_summary
        else:
            bucket = settings.get_bucket(group.bucket_id)
            shown = bucket.show_in_summary if bucket else False
        if not shown:
            continue

        active = sum(1 for t in group.tasks if not t.completed)
        total = active
        if settings.completed_visible_until_midnight:
            total += sum(
                1
                for t in group.tasks
                if t.completed and (t.completed_at is None or t.completed_at >= now)
            )

        summaries.append(
            BucketSummary(
                bucket_id=group.bucket_id,
                emoji=group.emoji,
                active=active,
                total=total,
            )
        )
    return summaries
