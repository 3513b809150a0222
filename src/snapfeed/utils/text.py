# src/snapfeed/utils/text.py
"""Caption parsing and slug helpers."""

from __future__ import annotations

import re

HASHTAG_PATTERN = re.compile(r"#\w+")
MENTION_PATTERN = re.compile(r"@\w+")

_SLUG_STRIP = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACES = re.compile(r"\s+")


def _unique(values: list[str]) -> list[str]:
    # dict preserves first-seen order
    return list(dict.fromkeys(values))


def extract_hashtags(caption: str | None) -> list[str]:
    """Return lowercased `#tags` in first-seen order, leading `#` kept."""
    if not caption:
        return []
    return _unique([tag.lower() for tag in HASHTAG_PATTERN.findall(caption)])


def extract_mentions(caption: str | None) -> list[str]:
    """Return lowercased usernames mentioned with `@`, without the `@`."""
    if not caption:
        return []
    return _unique([mention[1:].lower() for mention in MENTION_PATTERN.findall(caption)])


def normalize_hashtag(tag: str) -> str:
    """Normalize a user-supplied tag filter to the stored `#tag` form."""
    tag = tag.strip().lower()
    if tag and not tag.startswith("#"):
        tag = f"#{tag}"
    return tag


def slugify(name: str) -> str:
    """Build a URL slug: lowercase, strip specials, spaces to hyphens."""
    slug = _SLUG_STRIP.sub("", name.lower())
    return _SLUG_SPACES.sub("-", slug).strip()


def truncate_for_share(text: str, limit: int = 280) -> str:
    """Clip text to `limit` characters, ending in an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
