"""Poll slug generation from titles."""

from __future__ import annotations

import re

SLUG_MAX_LENGTH = 50

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def slugify(title: str) -> str:
    """Lowercase, drop everything but letters, digits and spaces, join words with dashes."""
    slug = _NON_ALNUM.sub("", title.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    return slug[:SLUG_MAX_LENGTH].strip("-")
