"""Migrate bucket annotations when the storage mode changes.

Reads each task's assignment in the old format and rewrites it in the new one
(#gtd/today <-> [gtd:: today]). Each document is read once and written at most
once, through the store's atomic modify.
"""

import logging
from collections.abc import Collection, Sequence

from gtd_mcp.core.buckets import read_bucket_id
from gtd_mcp.core.models import BucketSettings, MigrationSummary, StorageMode, TaskRecord
from gtd_mcp.core.writer import apply_bucket_change, find_task_line, rewrite_line
from gtd_mcp.store import DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)


def convert_line(
    raw_line: str,
    bucket_id: str,
    from_mode: StorageMode,
    to_mode: StorageMode,
    tag_prefix: str,
) -> str:
    """Clear the old-format annotation, then write ``bucket_id`` in the new one."""
    line = apply_bucket_change(raw_line, None, from_mode, tag_prefix)
    return apply_bucket_change(line, bucket_id, to_mode, tag_prefix)


def migrate_lines(
    lines: list[str],
    tasks: Sequence[TaskRecord],
    from_mode: StorageMode,
    to_mode: StorageMode,
    tag_prefix: str,
    bucket_ids: Collection[str],
) -> MigrationSummary:
    """
    Migrate the annotations of one document's tasks, in place.

    Tasks with no old-format annotation, or one naming an unknown bucket, are
    skipped without counting. Tasks whose line can no longer be found, or
    whose bucket id cannot be written in the new format, count as failed and
    keep their line as it was.

    Args:
        lines: Current document lines (mutated)
        tasks: Tasks indexed from this document
        from_mode: Format the annotations are in now
        to_mode: Format to write
        tag_prefix: Tag prefix / field key shared by both formats
        bucket_ids: Ids of the configured buckets

    Returns:
        Counts of migrated and failed tasks
    """
    summary = MigrationSummary()
    for task in tasks:
        bucket_id = read_bucket_id(task.raw_line, from_mode, tag_prefix)
        if not bucket_id or bucket_id not in bucket_ids:
            continue

        index = find_task_line(lines, task)
        if index is None:
            summary.failed += 1
            continue

        try:
            lines[index] = rewrite_line(
                lines[index],
                lambda line: convert_line(line, bucket_id, from_mode, to_mode, tag_prefix),
            )
        except ValueError as e:
            logger.warning("Cannot migrate %s:%d: %s", task.file_path, task.line_number, e)
            summary.failed += 1
            continue
        summary.migrated += 1
    return summary


def migrate_storage_mode(
    store: DocumentStore,
    all_tasks: Sequence[TaskRecord],
    from_mode: StorageMode,
    to_settings: BucketSettings,
) -> MigrationSummary:
    """
    Rewrite every task's bucket annotation from ``from_mode`` to the mode in
    ``to_settings``.

    Does nothing when the modes are equal. A document that cannot be read or
    written counts all of its would-be migrations as failed and the run
    continues with the next document.

    Returns:
        Totals across all documents
    """
    to_mode = to_settings.storage_mode
    if from_mode == to_mode:
        return MigrationSummary()

    tag_prefix = to_settings.tag_prefix
    bucket_ids = to_settings.bucket_ids()

    by_file: dict[str, list[TaskRecord]] = {}
    for task in all_tasks:
        by_file.setdefault(task.file_path, []).append(task)

    total = MigrationSummary()
    for file_path, tasks in by_file.items():
        result = MigrationSummary()

        def transform(content: str) -> str:
            lines = content.split("\n")
            counts = migrate_lines(lines, tasks, from_mode, to_mode, tag_prefix, bucket_ids)
            result.migrated, result.failed = counts.migrated, counts.failed
            return "\n".join(lines)

        try:
            store.modify(file_path, transform)
        except DocumentStoreError as e:
            pending = sum(
                1
                for t in tasks
                if read_bucket_id(t.raw_line, from_mode, tag_prefix) in bucket_ids
            )
            logger.warning("Migration skipped %s: %s", file_path, e)
            total.failed += pending
            continue

        if result.migrated or result.failed:
            logger.debug(
                "Migrated %s: %d updated, %d failed", file_path, result.migrated, result.failed
            )
        total.migrated += result.migrated
        total.failed += result.failed

    logger.info(
        "Migration %s -> %s complete: %d tasks updated, %d failed",
        from_mode.value,
        to_mode.value,
        total.migrated,
        total.failed,
    )
    return total
