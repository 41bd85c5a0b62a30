"""Parser for markdown checkbox tasks.

Recognized lines:
    - [ ] Incomplete task
    - [x] Completed task  (x or X)
    * [ ] Task with inline field [gtd:: today]
    + [ ] Task with #gtd/today tag
    1. [ ] Task with 📅 2026-02-18 due date
      - [ ] Indented child task

Everything else in the document is ignored.
"""

import hashlib
import logging
import re

from gtd_mcp.core.codec import extract_inline_field, extract_tags, strip_metadata
from gtd_mcp.core.dates import parse_completion_date, parse_due_date
from gtd_mcp.core.models import TaskRecord

logger = logging.getLogger(__name__)

# Optional leading whitespace, list marker, space, checkbox, space, content
TASK_PATTERN = re.compile(r"^(\s*[-*+]|\s*\d+[.)]) \[([ xX])\] (.*)$")


def make_id(file_path: str, line_number: int, label: str) -> str:
    """Stable task id from its path, line and label."""
    key = f"{file_path}:{line_number}:{label}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


def extract_indent_level(raw_line: str) -> int:
    """Indentation depth: two spaces or one tab per level."""
    width = 0
    for ch in raw_line:
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += 2
        else:
            break
    return width // 2


def parse_task_line(file_path: str, line_number: int, line: str) -> TaskRecord | None:
    """Build a TaskRecord from one line, or None if it is not a checkbox item."""
    match = TASK_PATTERN.match(line)
    if not match:
        return None

    completed = match.group(2) in ("x", "X")
    rest = match.group(3)
    label = strip_metadata(rest)

    return TaskRecord(
        id=make_id(file_path, line_number, label),
        file_path=file_path,
        line_number=line_number,
        raw_line=line,
        label=label,
        completed=completed,
        completed_at=parse_completion_date(line) if completed else None,
        due_date=parse_due_date(line),
        tags=extract_tags(rest),
        inline_field=extract_inline_field(rest),
        indent_level=extract_indent_level(line),
    )


def parse_file(file_path: str, content: str) -> list[TaskRecord]:
    """
    Extract all checkbox tasks from a document, with parent/child links.

    Args:
        file_path: Document path, recorded on every task
        content: Full document text

    Returns:
        Tasks in line order.
    """
    records = []
    for i, line in enumerate(content.split("\n")):
        record = parse_task_line(file_path, i, line)
        if record is not None:
            records.append(record)

    logger.debug("Parsed %d tasks from %s", len(records), file_path)
    return build_task_hierarchy(records)


def build_task_hierarchy(tasks: list[TaskRecord]) -> list[TaskRecord]:
    """
    Link parent/child relationships from indentation.

    Tasks are grouped by document and walked in line order with a stack of
    potential ancestors. Entries at the same or deeper indent are popped before
    each task; whatever remains on top is its parent. A task whose indent
    matches no earlier level attaches to the nearest shallower task.

    Mutates the tasks in place and returns the same list.
    """
    by_file: dict[str, list[TaskRecord]] = {}
    for task in tasks:
        task.parent_id = None
        task.child_ids = []
        by_file.setdefault(task.file_path, []).append(task)

    lookup = {task.id: task for task in tasks}

    for file_tasks in by_file.values():
        file_tasks.sort(key=lambda t: t.line_number)
        stack: list[tuple[int, str]] = []  # (indent_level, id)

        for task in file_tasks:
            while stack and stack[-1][0] >= task.indent_level:
                stack.pop()

            if stack:
                parent = lookup[stack[-1][1]]
                task.parent_id = parent.id
                parent.child_ids.append(task.id)

            stack.append((task.indent_level, task.id))

    return tasks
