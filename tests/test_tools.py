"""Tests for read tools."""

from datetime import date, timedelta

import pytest
from fastmcp import FastMCP

from gtd_mcp.core.dates import format_date
from gtd_mcp.core.models import BucketConfig, BucketSettings
from gtd_mcp.index import TaskIndex
from gtd_mcp.settings import SettingsProvider
from gtd_mcp.store import DocumentStore
from gtd_mcp.tools import register_tools

TODAY = date.today()


@pytest.fixture
def vault_and_tools(tmp_path):
    """Create a temporary vault with read tools registered for testing."""
    yesterday = format_date(TODAY - timedelta(days=1))
    (tmp_path / "Inbox.md").write_text(
        "\n".join(
            [
                "# Inbox",
                f"- [ ] Due today 📅 {format_date(TODAY)}",
                f"- [ ] Overdue 📅 {yesterday}",
                "- [ ] Pinned #gtd/someday",
                "  - [ ] Child of pinned",
                "- [x] Finished #gtd/today",
                "- [ ] Unfiled",
                "",
            ]
        ),
        encoding="utf-8",
    )
    (tmp_path / "Projects").mkdir()
    (tmp_path / "Projects" / "launch.md").write_text("- [ ] Ship it\n", encoding="utf-8")

    store = DocumentStore(tmp_path)
    provider = SettingsProvider(None)
    index = TaskIndex(store, lambda: provider.current.task_scope)
    index.initial_scan()

    mcp = FastMCP()
    register_tools(mcp, index, provider)

    # Extract tool functions
    tools = {}
    for tool in mcp._tool_manager._tools.values():
        tools[tool.fn.__name__] = tool.fn

    return provider, index, tools


def _labels(bucket):
    return [t["label"] for t in bucket["tasks"]]


class TestListBuckets:
    """Tests for list_buckets tool."""

    def test_all_buckets_in_order(self, vault_and_tools):
        _, _, tools = vault_and_tools
        buckets = tools["list_buckets"]()

        assert [b["bucket_id"] for b in buckets] == [
            "to-review",
            "today",
            "this-week",
            "next-week",
            "this-month",
            "someday",
        ]
        assert buckets[0]["is_system"] is True
        assert buckets[0]["emoji"] == "📥"

    def test_classification(self, vault_and_tools):
        _, _, tools = vault_and_tools
        buckets = {b["bucket_id"]: b for b in tools["list_buckets"]()}

        assert _labels(buckets["to-review"]) == ["Unfiled", "Ship it"]
        assert _labels(buckets["today"]) == ["Due today", "Overdue", "Finished"]
        assert _labels(buckets["someday"]) == ["Pinned", "Child of pinned"]

    def test_task_flags(self, vault_and_tools):
        _, _, tools = vault_and_tools
        today = next(b for b in tools["list_buckets"]() if b["bucket_id"] == "today")
        flags = {t["label"]: (t["stale"], t["auto_placed"]) for t in today["tasks"]}

        assert flags == {
            "Due today": (False, True),
            "Overdue": (True, True),
            "Finished": (False, False),
        }

    def test_task_fields(self, vault_and_tools):
        _, _, tools = vault_and_tools
        someday = next(b for b in tools["list_buckets"]() if b["bucket_id"] == "someday")
        parent, child = someday["tasks"]

        assert parent["file_path"] == "Inbox.md"
        assert parent["line_number"] == 3
        assert parent["tags"] == ["gtd/someday"]
        assert parent["child_ids"] == [child["id"]]
        assert child["parent_id"] == parent["id"]
        assert child["indent_level"] == 1
        assert parent["due_date"] is None

    def test_exclude_completed(self, vault_and_tools):
        _, _, tools = vault_and_tools
        today = tools["list_buckets"](include_completed=False)[1]
        assert _labels(today) == ["Due today", "Overdue"]
        assert today["task_count"] == 2

    def test_quick_move_targets_drop_deleted_buckets(self, vault_and_tools):
        provider, _, tools = vault_and_tools
        provider.replace(
            BucketSettings(
                buckets=[
                    BucketConfig(id="today", name="Today", quick_move_targets=["gone", "later"]),
                    BucketConfig(id="later", name="Later"),
                ],
                to_review_quick_move_targets=["today", "this-week"],
            )
        )

        buckets = {b["bucket_id"]: b for b in tools["list_buckets"]()}
        assert buckets["today"]["quick_move_targets"] == ["later"]
        assert buckets["to-review"]["quick_move_targets"] == ["today"]


class TestGetBucket:
    """Tests for get_bucket tool."""

    def test_get_bucket(self, vault_and_tools):
        _, _, tools = vault_and_tools
        bucket = tools["get_bucket"]("someday")
        assert bucket["name"] == "Someday / Maybe"
        assert _labels(bucket) == ["Pinned", "Child of pinned"]

    def test_get_system_bucket(self, vault_and_tools):
        _, _, tools = vault_and_tools
        assert tools["get_bucket"]("to-review")["is_system"] is True

    def test_unknown_bucket(self, vault_and_tools):
        _, _, tools = vault_and_tools
        with pytest.raises(ValueError, match="Unknown bucket"):
            tools["get_bucket"]("nope")


class TestBucketSummary:
    """Tests for bucket_summary tool."""

    def test_summary_counts(self, vault_and_tools):
        _, _, tools = vault_and_tools
        summary = tools["bucket_summary"]()

        # "Finished" carries no completion date, so it counts as done today
        assert summary["buckets"] == [
            {"bucket_id": "today", "emoji": "⚡", "active": 2, "total": 3, "label": "2/3⚡"}
        ]
        assert summary["text"] == "2/3⚡"


class TestListTasks:
    """Tests for list_tasks tool."""

    def test_all_tasks(self, vault_and_tools):
        _, _, tools = vault_and_tools
        tasks = tools["list_tasks"]()
        assert len(tasks) == 7
        assert tasks[-1]["file_path"] == "Projects/launch.md"

    def test_one_file(self, vault_and_tools):
        _, _, tools = vault_and_tools
        tasks = tools["list_tasks"](file_path="Projects/launch.md")
        assert [t["label"] for t in tasks] == ["Ship it"]
        assert "stale" not in tasks[0]

    def test_unknown_file(self, vault_and_tools):
        _, _, tools = vault_and_tools
        assert tools["list_tasks"](file_path="Missing.md") == []
