"""Calendar-relative date range rules attached to buckets.

A rule answers two questions about a task's due date, relative to "now":

- ``contains``: does the due date fall inside the bucket's window?
- ``is_stale``: has a task filed in this bucket fallen behind the window?

Both take ``diff`` (whole days from now to the due date) and ``now`` itself,
since the week and month windows depend on the calendar position of today.
Every rule kind must implement both methods; ``RULE_TYPES`` maps the
``type`` string used in settings files to the class.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, ClassVar

from gtd_mcp.core.dates import (
    day_of_week,
    days_to_end_of_month,
    days_to_end_of_next_month,
    days_to_start_of_next_month,
)


class DateRangeRule(ABC):
    """Base class for all bucket date rules."""

    type: ClassVar[str]

    @abstractmethod
    def contains(self, diff: int, now: date) -> bool:
        """True when a due date ``diff`` days away falls in this window."""

    @abstractmethod
    def is_stale(self, diff: int, now: date) -> bool:
        """True when a due date ``diff`` days away is behind this window."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


def _days_to_next_monday(now: date) -> int:
    return 1 if day_of_week(now) == 0 else 8 - day_of_week(now)


@dataclass(frozen=True)
class Today(DateRangeRule):
    type: ClassVar[str] = "today"

    def contains(self, diff: int, now: date) -> bool:
        return diff <= 0

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < 0


@dataclass(frozen=True)
class ThisWeek(DateRangeRule):
    """Tomorrow through the coming Sunday."""

    type: ClassVar[str] = "this-week"

    def contains(self, diff: int, now: date) -> bool:
        dow = day_of_week(now)
        days_to_sunday = 0 if dow == 0 else 7 - dow
        return 1 <= diff <= days_to_sunday

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < 1


@dataclass(frozen=True)
class NextWeek(DateRangeRule):
    """Next Monday through the Sunday after it."""

    type: ClassVar[str] = "next-week"

    def contains(self, diff: int, now: date) -> bool:
        start = _days_to_next_monday(now)
        return start <= diff <= start + 6

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < _days_to_next_monday(now)


@dataclass(frozen=True)
class ThisMonth(DateRangeRule):
    """Tomorrow through the last day of the current month."""

    type: ClassVar[str] = "this-month"

    def contains(self, diff: int, now: date) -> bool:
        return 1 <= diff <= days_to_end_of_month(now)

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < 1


@dataclass(frozen=True)
class NextMonth(DateRangeRule):
    """The whole of the following calendar month."""

    type: ClassVar[str] = "next-month"

    def contains(self, diff: int, now: date) -> bool:
        return days_to_start_of_next_month(now) <= diff <= days_to_end_of_next_month(now)

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < days_to_start_of_next_month(now)


@dataclass(frozen=True)
class WithinDays(DateRangeRule):
    type: ClassVar[str] = "within-days"

    days: int

    def contains(self, diff: int, now: date) -> bool:
        return 1 <= diff <= self.days

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < 1


@dataclass(frozen=True)
class WithinDaysRange(DateRangeRule):
    type: ClassVar[str] = "within-days-range"

    start: int
    end: int

    def contains(self, diff: int, now: date) -> bool:
        return self.start <= diff <= self.end

    def is_stale(self, diff: int, now: date) -> bool:
        return diff < self.start - 1

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "from": self.start, "to": self.end}


@dataclass(frozen=True)
class BeyondDays(DateRangeRule):
    """Catch-all for far-off due dates (e.g. a Someday bucket)."""

    type: ClassVar[str] = "beyond-days"

    days: int

    def contains(self, diff: int, now: date) -> bool:
        return diff > self.days

    def is_stale(self, diff: int, now: date) -> bool:
        return diff <= self.days


RULE_TYPES: dict[str, type[DateRangeRule]] = {
    cls.type: cls
    for cls in (
        Today,
        ThisWeek,
        NextWeek,
        ThisMonth,
        NextMonth,
        WithinDays,
        WithinDaysRange,
        BeyondDays,
    )
}


def _int_field(data: dict, key: str, rule_type: str) -> int:
    value = data.get(key)
    # bool is an int subclass; 'days: yes' in YAML is not a number
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Rule '{rule_type}' needs an integer '{key}', got {value!r}")
    return value


def rule_from_dict(data: dict[str, Any] | None) -> DateRangeRule | None:
    """Build a rule from its settings-file form, e.g. {"type": "within-days", "days": 3}.

    Raises:
        ValueError: If the type is unknown or a required number is missing.
    """
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"Date rule must be a mapping, got {data!r}")

    rule_type = data.get("type")
    if rule_type not in RULE_TYPES:
        raise ValueError(
            f"Unknown date rule type: {rule_type!r}. "
            f"Must be one of: {', '.join(sorted(RULE_TYPES))}"
        )

    if rule_type in (WithinDays.type, BeyondDays.type):
        return RULE_TYPES[rule_type](days=_int_field(data, "days", rule_type))
    if rule_type == WithinDaysRange.type:
        start = _int_field(data, "from", rule_type)
        end = _int_field(data, "to", rule_type)
        if start > end:
            raise ValueError(f"Rule '{rule_type}' has from > to ({start} > {end})")
        return WithinDaysRange(start=start, end=end)
    return RULE_TYPES[rule_type]()
