"""Bucket and rule settings for gtdmcp.

Settings live in a YAML file (``GTD_SETTINGS``, by default
``<vault>/.gtd/settings.yaml``)::

    storage_mode: inline-tag
    tag_prefix: gtd
    task_scope:
      type: folders
      paths: [Projects, Inbox.md]
    buckets:
      - id: today
        name: Today
        emoji: "⚡"
        date_range_rule: {type: today}
        quick_move_targets: [this-week, someday]
        show_in_summary: true

A missing file means "all defaults". The core never reads this module's state
directly: callers pass a BucketSettings into every classification or write.
"""

import logging
import re
import threading
from pathlib import Path
from typing import Any

import yaml

from gtd_mcp.core.models import (
    DEFAULT_BUCKETS,
    TO_REVIEW_ID,
    BucketConfig,
    BucketSettings,
    StorageMode,
    TaskScope,
    default_buckets,
)
from gtd_mcp.core.rules import rule_from_dict

logger = logging.getLogger(__name__)

BUCKET_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
SCOPE_TYPES = {"vault", "folders", "files"}


class SettingsError(ValueError):
    """Raised when the settings file holds an invalid configuration."""

    pass


# ---------------------------------------------------------------------------
# dict <-> dataclass
# ---------------------------------------------------------------------------


def _parse_targets(raw: Any, where: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SettingsError(f"{where}: quick_move_targets must be a list")
    targets = [str(t) for t in raw if t]
    if len(targets) > 2:
        raise SettingsError(f"{where}: at most two quick_move_targets allowed")
    return targets


def _parse_bucket(raw: Any, index: int) -> BucketConfig:
    where = f"buckets[{index}]"
    if not isinstance(raw, dict):
        raise SettingsError(f"{where}: must be a mapping")

    bucket_id = str(raw.get("id", ""))
    if not BUCKET_ID_PATTERN.match(bucket_id):
        raise SettingsError(f"{where}: invalid bucket id {bucket_id!r}")
    if bucket_id == TO_REVIEW_ID:
        raise SettingsError(f"{where}: '{TO_REVIEW_ID}' is reserved for the system bucket")

    try:
        rule = rule_from_dict(raw.get("date_range_rule"))
    except ValueError as e:
        raise SettingsError(f"{where}: {e}") from e

    emoji = raw.get("emoji")
    if not emoji:
        # Backfill the glyph from the matching default bucket
        default = next((b for b in DEFAULT_BUCKETS if b.id == bucket_id), None)
        emoji = default.emoji if default else "📌"

    return BucketConfig(
        id=bucket_id,
        name=str(raw.get("name") or bucket_id),
        emoji=str(emoji),
        date_range_rule=rule,
        quick_move_targets=_parse_targets(raw.get("quick_move_targets"), where),
        show_in_summary=bool(raw.get("show_in_summary", False)),
    )


def _parse_scope(raw: Any) -> TaskScope:
    if raw is None:
        return TaskScope()
    if not isinstance(raw, dict):
        raise SettingsError("task_scope must be a mapping")
    scope_type = raw.get("type", "vault")
    if scope_type not in SCOPE_TYPES:
        raise SettingsError(
            f"Invalid task_scope type: {scope_type!r}. "
            f"Must be one of: {', '.join(sorted(SCOPE_TYPES))}"
        )
    paths = raw.get("paths") or []
    if not isinstance(paths, list):
        raise SettingsError("task_scope.paths must be a list")
    return TaskScope(type=scope_type, paths=[str(p) for p in paths])


def parse_storage_mode(value: Any) -> StorageMode:
    try:
        return StorageMode(value)
    except ValueError as e:
        valid = ", ".join(m.value for m in StorageMode)
        raise SettingsError(f"Invalid storage_mode: {value!r}. Must be one of: {valid}") from e


def settings_from_dict(raw: dict[str, Any]) -> BucketSettings:
    """Build BucketSettings from a parsed settings file.

    Raises:
        SettingsError: If any value is invalid.
    """
    if not isinstance(raw, dict):
        raise SettingsError("Settings file must contain a mapping")

    defaults = BucketSettings()

    raw_buckets = raw.get("buckets")
    if raw_buckets:
        if not isinstance(raw_buckets, list):
            raise SettingsError("buckets must be a list")
        buckets = [_parse_bucket(b, i) for i, b in enumerate(raw_buckets)]
    else:
        buckets = default_buckets()

    seen: set[str] = set()
    for bucket in buckets:
        if bucket.id in seen:
            raise SettingsError(f"Duplicate bucket id: {bucket.id}")
        seen.add(bucket.id)

    tag_prefix = str(raw.get("tag_prefix", defaults.tag_prefix))
    if not BUCKET_ID_PATTERN.match(tag_prefix):
        raise SettingsError(f"Invalid tag_prefix: {tag_prefix!r}")

    return BucketSettings(
        buckets=buckets,
        storage_mode=parse_storage_mode(raw.get("storage_mode", defaults.storage_mode.value)),
        tag_prefix=tag_prefix,
        auto_assign_from_due_date=bool(
            raw.get("auto_assign_from_due_date", defaults.auto_assign_from_due_date)
        ),
        stale_indicator_enabled=bool(
            raw.get("stale_indicator_enabled", defaults.stale_indicator_enabled)
        ),
        stamp_completion_date=bool(
            raw.get("stamp_completion_date", defaults.stamp_completion_date)
        ),
        completed_visible_until_midnight=bool(
            raw.get(
                "completed_visible_until_midnight",
                defaults.completed_visible_until_midnight,
            )
        ),
        to_review_emoji=str(raw.get("to_review_emoji") or defaults.to_review_emoji),
        to_review_quick_move_targets=_parse_targets(
            raw.get("to_review_quick_move_targets", defaults.to_review_quick_move_targets),
            "to_review",
        ),
        to_review_show_in_summary=bool(raw.get("to_review_show_in_summary", False)),
        task_scope=_parse_scope(raw.get("task_scope")),
    )


def settings_to_dict(settings: BucketSettings) -> dict[str, Any]:
    """Plain-data form of BucketSettings, as written to the settings file."""
    return {
        "storage_mode": settings.storage_mode.value,
        "tag_prefix": settings.tag_prefix,
        "auto_assign_from_due_date": settings.auto_assign_from_due_date,
        "stale_indicator_enabled": settings.stale_indicator_enabled,
        "stamp_completion_date": settings.stamp_completion_date,
        "completed_visible_until_midnight": settings.completed_visible_until_midnight,
        "to_review_emoji": settings.to_review_emoji,
        "to_review_quick_move_targets": list(settings.to_review_quick_move_targets),
        "to_review_show_in_summary": settings.to_review_show_in_summary,
        "task_scope": {
            "type": settings.task_scope.type,
            "paths": list(settings.task_scope.paths),
        },
        "buckets": [
            {
                "id": b.id,
                "name": b.name,
                "emoji": b.emoji,
                "date_range_rule": b.date_range_rule.to_dict() if b.date_range_rule else None,
                "quick_move_targets": list(b.quick_move_targets),
                "show_in_summary": b.show_in_summary,
            }
            for b in settings.buckets
        ],
    }


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def load_settings(path: Path) -> BucketSettings:
    """
    Load settings from a YAML file.

    Args:
        path: Settings file path; a missing file yields the defaults

    Raises:
        SettingsError: If the file is not valid YAML or holds invalid values.
    """
    if not path.exists():
        logger.info("No settings file at %s, using defaults", path)
        return BucketSettings()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {path}: {e}") from e

    if raw is None:
        return BucketSettings()
    return settings_from_dict(raw)


def save_settings(settings: BucketSettings, path: Path) -> None:
    """Write settings to a YAML file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(
        settings_to_dict(settings),
        allow_unicode=True,
        sort_keys=False,
    )
    path.write_text(text, encoding="utf-8")
    logger.info("Saved settings to %s", path)


class SettingsProvider:
    """Holds the current settings and persists replacements.

    Thread Safety:
        ``current`` and ``replace`` may be called from tool handlers and the
        sync thread; replacement swaps the whole object under a lock.
    """

    def __init__(self, path: Path | None, settings: BucketSettings | None = None):
        """
        Args:
            path: Settings file, or None to keep settings in memory only
            settings: Initial settings; loaded from ``path`` when omitted
        """
        self.path = path
        self._lock = threading.Lock()
        if settings is None:
            settings = load_settings(path) if path is not None else BucketSettings()
        self._settings = settings

    @property
    def current(self) -> BucketSettings:
        with self._lock:
            return self._settings

    def replace(self, settings: BucketSettings) -> None:
        with self._lock:
            if self.path is not None:
                save_settings(settings, self.path)
            self._settings = settings
