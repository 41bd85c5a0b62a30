"""Tests for storage-mode migration."""

import dataclasses

from gtd_mcp.core.migrator import convert_line, migrate_lines, migrate_storage_mode
from gtd_mcp.core.models import BucketConfig, BucketSettings, StorageMode
from gtd_mcp.core.parser import parse_file
from gtd_mcp.store import DocumentStore

TAG = StorageMode.INLINE_TAG
FIELD = StorageMode.INLINE_FIELD
IDS = {"today", "this-week", "someday"}


def _all_tasks(store: DocumentStore):
    tasks = []
    for path in store.list_documents(BucketSettings().task_scope):
        tasks.extend(parse_file(path, store.read(path)))
    return tasks


class TestConvertLine:
    """Tests for single-line conversion."""

    def test_tag_to_field(self):
        assert convert_line("- [ ] A #gtd/today #home", "today", TAG, FIELD, "gtd") == (
            "- [ ] A #home [gtd:: today]"
        )

    def test_field_to_tag(self):
        assert convert_line("- [ ] A [gtd:: someday] 📅 2026-02-24", "someday", FIELD, TAG, "gtd") == (
            "- [ ] A 📅 2026-02-24 #gtd/someday"
        )


class TestMigrateLines:
    """Tests for the pure per-document transform."""

    def test_counts(self):
        content = "- [ ] A #gtd/today\n- [ ] B\n- [ ] C #gtd/unknown\n- [ ] D #gtd/someday"
        lines = content.split("\n")
        tasks = parse_file("a.md", content)

        summary = migrate_lines(lines, tasks, TAG, FIELD, "gtd", IDS)

        assert summary.migrated == 2
        assert summary.failed == 0
        assert lines == [
            "- [ ] A [gtd:: today]",
            "- [ ] B",
            "- [ ] C #gtd/unknown",
            "- [ ] D [gtd:: someday]",
        ]

    def test_moved_line_found(self):
        content = "- [ ] A #gtd/today"
        tasks = parse_file("a.md", content)
        lines = ["Inserted", "- [ ] A #gtd/today"]

        summary = migrate_lines(lines, tasks, TAG, FIELD, "gtd", IDS)

        assert summary.migrated == 1
        assert lines[1] == "- [ ] A [gtd:: today]"

    def test_missing_line_counts_as_failed(self):
        tasks = parse_file("a.md", "- [ ] A #gtd/today")
        lines = ["- [ ] A was edited #gtd/today"]

        summary = migrate_lines(lines, tasks, TAG, FIELD, "gtd", IDS)

        assert summary.migrated == 0
        assert summary.failed == 1
        assert lines == ["- [ ] A was edited #gtd/today"]

    def test_unwritable_bucket_id_counts_as_failed(self):
        content = "- [ ] A [gtd:: today]\n- [ ] B [gtd:: waiting on]"
        lines = content.split("\n")
        tasks = parse_file("a.md", content)

        summary = migrate_lines(lines, tasks, FIELD, TAG, "gtd", IDS | {"waiting on"})

        assert summary.migrated == 1
        assert summary.failed == 1
        assert lines == ["- [ ] A #gtd/today", "- [ ] B [gtd:: waiting on]"]


class TestMigrateStorageMode:
    """Tests for migrating a whole vault through the store."""

    def _vault(self, tmp_path):
        (tmp_path / "Inbox.md").write_text(
            "- [ ] A #gtd/today\n- [ ] B\n", encoding="utf-8"
        )
        (tmp_path / "Projects").mkdir()
        (tmp_path / "Projects" / "launch.md").write_text(
            "# Launch\n- [ ] C #gtd/this-week\n  - [ ] D #gtd/someday\n", encoding="utf-8"
        )
        return DocumentStore(tmp_path)

    def test_migrates_every_document(self, tmp_path):
        store = self._vault(tmp_path)
        to_settings = BucketSettings(storage_mode=FIELD)

        summary = migrate_storage_mode(store, _all_tasks(store), TAG, to_settings)

        assert summary.migrated == 3
        assert summary.failed == 0
        assert (tmp_path / "Inbox.md").read_text(encoding="utf-8") == (
            "- [ ] A [gtd:: today]\n- [ ] B\n"
        )
        assert (tmp_path / "Projects" / "launch.md").read_text(encoding="utf-8") == (
            "# Launch\n- [ ] C [gtd:: this-week]\n  - [ ] D [gtd:: someday]\n"
        )

    def test_same_mode_is_a_no_op(self, tmp_path):
        store = self._vault(tmp_path)
        before = (tmp_path / "Inbox.md").read_text(encoding="utf-8")

        summary = migrate_storage_mode(store, _all_tasks(store), TAG, BucketSettings())

        assert summary.migrated == 0
        assert (tmp_path / "Inbox.md").read_text(encoding="utf-8") == before

    def test_second_run_changes_nothing(self, tmp_path):
        store = self._vault(tmp_path)
        to_settings = BucketSettings(storage_mode=FIELD)
        migrate_storage_mode(store, _all_tasks(store), TAG, to_settings)
        after_first = (tmp_path / "Inbox.md").read_text(encoding="utf-8")

        summary = migrate_storage_mode(store, _all_tasks(store), TAG, to_settings)

        assert summary.migrated == 0
        assert summary.failed == 0
        assert (tmp_path / "Inbox.md").read_text(encoding="utf-8") == after_first

    def test_round_trip_restores_text(self, tmp_path):
        store = self._vault(tmp_path)
        original = (tmp_path / "Projects" / "launch.md").read_text(encoding="utf-8")
        field_settings = BucketSettings(storage_mode=FIELD)

        migrate_storage_mode(store, _all_tasks(store), TAG, field_settings)
        tag_settings = dataclasses.replace(field_settings, storage_mode=TAG)
        migrate_storage_mode(store, _all_tasks(store), FIELD, tag_settings)

        assert (tmp_path / "Projects" / "launch.md").read_text(encoding="utf-8") == original

    def test_missing_document_counts_failures_and_continues(self, tmp_path):
        store = self._vault(tmp_path)
        tasks = _all_tasks(store)
        (tmp_path / "Inbox.md").unlink()

        summary = migrate_storage_mode(store, tasks, TAG, BucketSettings(storage_mode=FIELD))

        assert summary.failed == 1
        assert summary.migrated == 2
        assert "[gtd:: this-week]" in (tmp_path / "Projects" / "launch.md").read_text(
            encoding="utf-8"
        )

    def test_unchanged_document_not_rewritten(self, tmp_path):
        store = self._vault(tmp_path)
        (tmp_path / "Plain.md").write_text("- [ ] Nothing here\n", encoding="utf-8")
        mtime = (tmp_path / "Plain.md").stat().st_mtime_ns

        migrate_storage_mode(store, _all_tasks(store), TAG, BucketSettings(storage_mode=FIELD))

        assert (tmp_path / "Plain.md").stat().st_mtime_ns == mtime

    def test_unwritable_bucket_id_leaves_its_document_alone(self, tmp_path):
        (tmp_path / "a.md").write_text("- [ ] A [gtd:: today]\n", encoding="utf-8")
        (tmp_path / "b.md").write_text("- [ ] B [gtd:: waiting on]\n", encoding="utf-8")
        store = DocumentStore(tmp_path)
        buckets = BucketSettings().buckets + [BucketConfig(id="waiting on", name="Waiting")]
        to_settings = BucketSettings(buckets=buckets, storage_mode=TAG)

        summary = migrate_storage_mode(store, _all_tasks(store), FIELD, to_settings)

        assert summary.migrated == 1
        assert summary.failed == 1
        assert (tmp_path / "a.md").read_text(encoding="utf-8") == "- [ ] A #gtd/today\n"
        assert (tmp_path / "b.md").read_text(encoding="utf-8") == "- [ ] B [gtd:: waiting on]\n"
