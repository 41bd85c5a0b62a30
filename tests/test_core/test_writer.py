"""Tests for writing bucket and completion changes back to documents."""

from datetime import date

import pytest

from gtd_mcp.core.models import BucketConfig, BucketSettings, StorageMode
from gtd_mcp.core.parser import parse_file
from gtd_mcp.core.writer import (
    STALE_INDEX_ERROR,
    TaskLineNotFoundError,
    apply_bucket_change,
    confirm_task_placement,
    find_task_line,
    move_task_to_bucket,
    rewrite_task_line,
    toggle_completion_line,
    toggle_task_completion,
)
from gtd_mcp.store import DocumentStore

MONDAY = date(2026, 2, 23)


@pytest.fixture
def vault(tmp_path):
    """A vault with one document and a store over it."""
    (tmp_path / "Inbox.md").write_text(
        "# Inbox\n- [ ] Call Bob\n- [ ] Pay rent 📅 2026-02-24\n", encoding="utf-8"
    )
    return tmp_path, DocumentStore(tmp_path)


def _task(store: DocumentStore, label: str):
    tasks = parse_file("Inbox.md", store.read("Inbox.md"))
    return next(t for t in tasks if t.label == label)


class TestFindTaskLine:
    """Tests for locating a task in current text."""

    def test_recorded_line(self):
        (task,) = parse_file("a.md", "- [ ] A")
        assert find_task_line(["- [ ] A"], task) == 0

    def test_drifted_line(self):
        (task,) = parse_file("a.md", "- [ ] A")
        assert find_task_line(["new line", "- [ ] A"], task) == 1

    def test_missing_line(self):
        (task,) = parse_file("a.md", "- [ ] A")
        assert find_task_line(["- [ ] A edited"], task) is None

    def test_rewrite_raises_when_missing(self):
        (task,) = parse_file("a.md", "- [ ] A")
        with pytest.raises(TaskLineNotFoundError):
            rewrite_task_line("something else", task, str.upper)


class TestLineEdits:
    """Tests for the pure line rewrites."""

    def test_apply_bucket_change_tag(self):
        line = apply_bucket_change("- [ ] A #gtd/today", "someday", StorageMode.INLINE_TAG, "gtd")
        assert line == "- [ ] A #gtd/someday"

    def test_apply_bucket_change_field(self):
        line = apply_bucket_change("- [ ] A", "today", StorageMode.INLINE_FIELD, "gtd")
        assert line == "- [ ] A [gtd:: today]"

    def test_clear_bucket(self):
        line = apply_bucket_change("- [ ] A [gtd:: today]", None, StorageMode.INLINE_FIELD, "gtd")
        assert line == "- [ ] A"

    def test_check_stamps_date(self):
        assert toggle_completion_line("- [ ] A", False, True, MONDAY) == "- [x] A ✅ 2026-02-23"

    def test_check_without_stamp(self):
        assert toggle_completion_line("- [ ] A", False, False, MONDAY) == "- [x] A"

    def test_uncheck_removes_date(self):
        assert toggle_completion_line("  - [X] A ✅ 2026-02-20", True, True) == "  - [ ] A"

    def test_only_first_checkbox_changes(self):
        line = toggle_completion_line("- [ ] Read [ ] later", False, False)
        assert line == "- [x] Read [ ] later"


class TestMoveTaskToBucket:
    """Tests for writing manual assignments through the store."""

    def test_move_writes_tag(self, vault):
        root, store = vault
        settings = BucketSettings()
        task = _task(store, "Call Bob")

        result = move_task_to_bucket(store, task, settings.get_bucket("today"), settings)

        assert result.success is True
        assert "- [ ] Call Bob #gtd/today\n" in (root / "Inbox.md").read_text(encoding="utf-8")

    def test_move_to_none_clears_annotation(self, vault):
        root, store = vault
        settings = BucketSettings()
        move_task_to_bucket(store, _task(store, "Call Bob"), settings.get_bucket("today"), settings)

        result = move_task_to_bucket(store, _task(store, "Call Bob"), None, settings)

        assert result.success is True
        assert "- [ ] Call Bob\n" in (root / "Inbox.md").read_text(encoding="utf-8")

    def test_move_in_field_mode(self, vault):
        root, store = vault
        settings = BucketSettings(storage_mode=StorageMode.INLINE_FIELD)
        task = _task(store, "Pay rent")

        move_task_to_bucket(store, task, settings.get_bucket("someday"), settings)

        text = (root / "Inbox.md").read_text(encoding="utf-8")
        assert "- [ ] Pay rent 📅 2026-02-24 [gtd:: someday]\n" in text

    def test_drift_tolerance(self, vault):
        root, store = vault
        settings = BucketSettings()
        task = _task(store, "Pay rent")
        path = root / "Inbox.md"
        path.write_text("Inserted line\n" + path.read_text(encoding="utf-8"), encoding="utf-8")

        result = move_task_to_bucket(store, task, settings.get_bucket("today"), settings)

        assert result.success is True
        lines = path.read_text(encoding="utf-8").split("\n")
        assert lines[0] == "Inserted line"
        assert lines[3] == "- [ ] Pay rent 📅 2026-02-24 #gtd/today"

    def test_stale_when_line_edited(self, vault):
        root, store = vault
        settings = BucketSettings()
        task = _task(store, "Call Bob")
        path = root / "Inbox.md"
        original = path.read_text(encoding="utf-8").replace("Call Bob", "Call Robert")
        path.write_text(original, encoding="utf-8")

        result = move_task_to_bucket(store, task, settings.get_bucket("today"), settings)

        assert result.success is False
        assert result.stale is True
        assert result.error == STALE_INDEX_ERROR
        assert path.read_text(encoding="utf-8") == original

    def test_missing_file(self, vault):
        root, store = vault
        settings = BucketSettings()
        task = _task(store, "Call Bob")
        (root / "Inbox.md").unlink()

        result = move_task_to_bucket(store, task, settings.get_bucket("today"), settings)

        assert result.success is False
        assert result.stale is False
        assert result.error == "File not found: Inbox.md"

    def test_unwritable_bucket_id_is_a_failed_result(self, vault):
        root, store = vault
        settings = BucketSettings()
        before = (root / "Inbox.md").read_text(encoding="utf-8")
        waiting = BucketConfig(id="waiting on", name="Waiting")

        result = move_task_to_bucket(store, _task(store, "Call Bob"), waiting, settings)

        assert result.success is False
        assert result.stale is False
        assert "Invalid tag value" in result.error
        assert (root / "Inbox.md").read_text(encoding="utf-8") == before

    def test_bracket_in_field_value_is_a_failed_result(self, vault):
        root, store = vault
        settings = BucketSettings(storage_mode=StorageMode.INLINE_FIELD)
        before = (root / "Inbox.md").read_text(encoding="utf-8")
        odd = BucketConfig(id="later]", name="Later")

        result = move_task_to_bucket(store, _task(store, "Call Bob"), odd, settings)

        assert result.success is False
        assert "cannot contain ']'" in result.error
        assert (root / "Inbox.md").read_text(encoding="utf-8") == before

    def test_other_lines_untouched(self, vault):
        root, store = vault
        settings = BucketSettings()
        before = (root / "Inbox.md").read_text(encoding="utf-8").split("\n")

        move_task_to_bucket(store, _task(store, "Call Bob"), settings.get_bucket("today"), settings)

        after = (root / "Inbox.md").read_text(encoding="utf-8").split("\n")
        assert len(after) == len(before)
        assert [a for a, b in zip(after, before) if a != b] == ["- [ ] Call Bob #gtd/today"]


class TestConfirmTaskPlacement:
    """Tests for pinning an auto-placed task."""

    def test_confirm_writes_annotation(self, vault):
        root, store = vault
        settings = BucketSettings()

        result = confirm_task_placement(store, _task(store, "Pay rent"), "this-week", settings)

        assert result.success is True
        text = (root / "Inbox.md").read_text(encoding="utf-8")
        assert "- [ ] Pay rent 📅 2026-02-24 #gtd/this-week" in text

    def test_unknown_bucket_clears(self, vault):
        root, store = vault
        settings = BucketSettings()
        move_task_to_bucket(store, _task(store, "Call Bob"), settings.get_bucket("today"), settings)

        confirm_task_placement(store, _task(store, "Call Bob"), "gone", settings)

        assert "- [ ] Call Bob\n" in (root / "Inbox.md").read_text(encoding="utf-8")


class TestToggleTaskCompletion:
    """Tests for checking tasks off in place."""

    def test_check_then_uncheck(self, vault):
        root, store = vault
        settings = BucketSettings()
        path = root / "Inbox.md"

        result = toggle_task_completion(store, _task(store, "Call Bob"), settings, MONDAY)
        assert result.success is True
        assert "- [x] Call Bob ✅ 2026-02-23\n" in path.read_text(encoding="utf-8")

        result = toggle_task_completion(store, _task(store, "Call Bob"), settings)
        assert result.success is True
        assert "- [ ] Call Bob\n" in path.read_text(encoding="utf-8")

    def test_crlf_document_keeps_line_endings(self, tmp_path):
        (tmp_path / "Win.md").write_bytes("- [ ] A\r\n- [ ] B\r\n".encode("utf-8"))
        store = DocumentStore(tmp_path)
        task = parse_file("Win.md", store.read("Win.md"))[1]

        result = toggle_task_completion(
            store, task, BucketSettings(stamp_completion_date=False)
        )

        assert result.success is True
        assert (tmp_path / "Win.md").read_bytes() == "- [ ] A\r\n- [x] B\r\n".encode("utf-8")

    def test_crlf_stamp_goes_before_carriage_return(self, tmp_path):
        (tmp_path / "Win.md").write_bytes("- [ ] A\r\n".encode("utf-8"))
        store = DocumentStore(tmp_path)
        (task,) = parse_file("Win.md", store.read("Win.md"))

        toggle_task_completion(store, task, BucketSettings(), MONDAY)

        assert (tmp_path / "Win.md").read_bytes() == (
            "- [x] A ✅ 2026-02-23\r\n".encode("utf-8")
        )
