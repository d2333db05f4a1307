"""Slug normalization."""

import re
from typing import Any

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_REPEATED_HYPHENS = re.compile(r"-+")


def sanitize_slug(raw: Any) -> str:
    """
    Normalize free text into a URL-safe slug.

    Lower-cases and trims, replaces anything outside ``[a-z0-9-]`` with a
    hyphen, collapses hyphen runs and strips hyphens from both ends.

    Args:
        raw: Slug, name or id to normalize

    Returns:
        The slug, or an empty string when nothing usable is left. Callers
        treat an empty result as "skip this record".
    """
    if raw is None:
        return ""
    slug = str(raw).lower().strip()
    slug = _INVALID_CHARS.sub("-", slug)
    slug = _REPEATED_HYPHENS.sub("-", slug)
    return slug.strip("-")


def normalize_key(value: Any) -> str:
    """Lookup key used for case-insensitive comparisons."""
    if value is None:
        return ""
    return str(value).strip().lower()
