"""Pure string functions for the metadata embedded in a single task line.

Formats handled:
    #<prefix>/<value>     prefixed (hierarchical) tag, value is [A-Za-z0-9_-]+
    [<key>:: <value>]     inline field, value runs to the closing bracket
    #<tag>                plain tag

Insertion appends at end of line with one separating space. Removal strips the
marker plus the whitespace run before it, then trims trailing whitespace.
"""

import re

from gtd_mcp.core.dates import DONE_MARKER, DUE_MARKER

TAG_PATTERN = re.compile(r"#[\w/-]+")
INLINE_FIELD_PATTERN = re.compile(r"\[[\w-]+::\s*([^\]]+)\]")
TAG_VALUE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Metadata stripped from the human-readable label, applied in order
_LABEL_STRIP_PATTERNS = [
    re.compile(DUE_MARKER + r"\s*\d{4}-\d{2}-\d{2}"),
    re.compile(DONE_MARKER + r"\s*\d{4}-\d{2}-\d{2}"),
    re.compile("🔁[^#\\[" + DUE_MARKER + DONE_MARKER + "]*"),  # recurrence
    re.compile("[🔺⏫🔼🔽⏬]"),  # priority
    TAG_PATTERN,
    re.compile(r"\[[\w-]+::\s*[^\]]*\]"),
]
_MULTI_SPACE = re.compile(r"\s{2,}")


def extract_tags(text: str) -> list[str]:
    """Return every #tag in text, without the leading #, in order."""
    return [tag[1:] for tag in TAG_PATTERN.findall(text)]


def extract_inline_field(text: str) -> str | None:
    """Return the value of the first [key:: value] field, whatever its key."""
    match = INLINE_FIELD_PATTERN.search(text)
    return match.group(1).strip() if match else None


def strip_metadata(text: str) -> str:
    """Strip dates, recurrence, priority, tags and inline fields from text."""
    for pattern in _LABEL_STRIP_PATTERNS:
        text = pattern.sub("", text)
    return _MULTI_SPACE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# Inline field: [key:: value]
# ---------------------------------------------------------------------------


def _field_pattern(key: str, with_leading_space: bool = False) -> re.Pattern:
    prefix = r"\s*" if with_leading_space else ""
    return re.compile(
        prefix + r"\[" + re.escape(key) + r"::\s*[^\]]*\]", re.IGNORECASE
    )


def get_inline_field_value(raw_line: str, key: str) -> str | None:
    """Value of the [key:: value] field (key matched case-insensitively)."""
    pattern = re.compile(
        r"\[" + re.escape(key) + r"::\s*([^\]]+)\]", re.IGNORECASE
    )
    match = pattern.search(raw_line)
    return match.group(1).strip() if match else None


def set_inline_field_value(raw_line: str, key: str, value: str | None) -> str:
    """Set, replace, or (with None) remove the [key:: value] field."""
    if value is None:
        return _field_pattern(key, with_leading_space=True).sub("", raw_line).rstrip()

    if "]" in value:
        raise ValueError(f"Inline field value cannot contain ']': {value!r}")

    token = f"[{key}:: {value}]"
    pattern = _field_pattern(key)
    if pattern.search(raw_line):
        return pattern.sub(lambda _: token, raw_line, count=1)
    return f"{raw_line.rstrip()} {token}"


# ---------------------------------------------------------------------------
# Prefixed tag: #prefix/value
# ---------------------------------------------------------------------------


def get_tag_value(raw_line: str, prefix: str) -> str | None:
    """Value of the #prefix/value tag, e.g. 'today' from '#gtd/today'."""
    pattern = re.compile("#" + re.escape(prefix) + r"/([A-Za-z0-9_-]+)", re.IGNORECASE)
    match = pattern.search(raw_line)
    return match.group(1) if match else None


def set_tag_value(raw_line: str, prefix: str, value: str | None) -> str:
    """Set or (with None) remove the #prefix/value tag.

    Any existing tags with the prefix are removed first, so the line ends up
    with at most one, appended at the end.
    """
    if value is not None and not TAG_VALUE_PATTERN.match(value):
        raise ValueError(f"Invalid tag value: {value!r}")

    pattern = re.compile(r"\s*#" + re.escape(prefix) + r"/[A-Za-z0-9_-]+", re.IGNORECASE)
    cleaned = pattern.sub("", raw_line).rstrip()
    if value is None:
        return cleaned
    return f"{cleaned} #{prefix}/{value}"


# ---------------------------------------------------------------------------
# Plain tag: #tag
# ---------------------------------------------------------------------------


def _simple_tag_pattern(tag: str) -> re.Pattern:
    # Lookahead keeps '#gtd' from matching the start of '#gtd/today'
    return re.compile(r"\s*#" + re.escape(tag) + r"(?=[\s,]|$)", re.IGNORECASE)


def has_simple_tag(raw_line: str, tag: str) -> bool:
    return _simple_tag_pattern(tag).search(raw_line) is not None


def set_simple_tag(raw_line: str, tag: str, present: bool) -> str:
    """Add or remove a plain #tag on a line."""
    cleaned = _simple_tag_pattern(tag).sub("", raw_line).rstrip()
    if not present:
        return cleaned
    return f"{cleaned} #{tag}"
