# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import math
import re

SLUG_RE = re.compile(r"^[a-z0-9-]+$")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")

WORDS_PER_MINUTE = 200


def canon_slug(s: str) -> str:
    """Canonicalise a slug for lookups and writes (trim + lower)."""
    return (s or "").strip().lower()


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_RE.match(slug or ""))


def slugify(title: str) -> str:
    """Derive a slug from a title: lowercase, collapse non-alphanumerics to '-', trim '-'."""
    return _NON_ALNUM_RUN.sub("-", (title or "").lower()).strip("-")


def word_count(content: str) -> int:
    # Empty content still counts as one word, so reading time is never 0.
    return max(1, len((content or "").split()))


def reading_time(content: str) -> int:
    """Minutes to read ``content`` at 200 words per minute, rounded up."""
    return math.ceil(word_count(content) / WORDS_PER_MINUTE)
