# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from quill.core.utils import canon_slug, is_valid_slug, reading_time
from quill.errors import ConflictError, NotFoundError, ValidationError
from quill.infra import post_repo
from quill.infra.db import Database, PostRow
from quill.logs import logger
from quill.schemas import PostIn

REQUIRED_FIELDS = "Title, slug, and content are required"
BAD_SLUG = "Slug must contain only lowercase letters, numbers, and dashes"
POST_NOT_FOUND = "Post not found"


def utc_now() -> datetime:
    # Stored naive, always UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def serialize_post(row: PostRow) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": str(row.id),
        "title": row.title,
        "slug": row.slug,
        "content": row.content,
        "tags": list(row.tags or []),
        "published": bool(row.published),
        "readingTime": row.reading_time,
        "createdAt": row.created_at.isoformat(),
        "updatedAt": row.updated_at.isoformat(),
    }
    if row.excerpt:
        out["excerpt"] = row.excerpt
    return out


def _clean_excerpt(excerpt: Optional[str]) -> Optional[str]:
    e = (excerpt or "").strip()
    return e or None


def _require_fields(data: PostIn, slug: str) -> None:
    if not data.title.strip() or not slug or not data.content.strip():
        raise ValidationError(REQUIRED_FIELDS)
    if not is_valid_slug(slug):
        raise ValidationError(BAD_SLUG)


def _lookup(session: Session, slug: str) -> Optional[PostRow]:
    """Exact match first; stale mixed-case links fall back to the lowercased slug."""
    raw = (slug or "").strip()
    if not raw:
        return None
    row = post_repo.get_by_slug(session, raw)
    normalized = canon_slug(raw)
    if row is None and normalized != raw:
        row = post_repo.get_by_slug(session, normalized)
    return row


def create_post(db: Database, data: PostIn) -> Tuple[str, str]:
    """Create a post and return ``(post_id, slug)``.

    The slug is validated as submitted; it is never re-derived from the title.
    """
    slug = (data.slug or "").strip()
    _require_fields(data, slug)

    now = utc_now()
    with db.session_scope() as session:
        if post_repo.slug_taken(session, slug):
            logger.info("Rejected create: slug '{}' already taken", slug)
            raise ConflictError(post_repo.SLUG_TAKEN)

        row = PostRow(
            title=data.title.strip(),
            slug=slug,
            content=data.content,
            excerpt=_clean_excerpt(data.excerpt),
            tags=list(data.tags),
            published=bool(data.published),
            reading_time=reading_time(data.content),
            created_at=now,
            updated_at=now,
        )
        post_repo.add_post(session, row)
        post_id = str(row.id)

    logger.info("Created post {} with slug '{}'", post_id, slug)
    return post_id, slug


def update_post(db: Database, current_slug: str, data: PostIn) -> str:
    """Replace the editable fields of the post at ``current_slug``; return its (new) slug."""
    next_slug = canon_slug(data.slug)
    _require_fields(data, next_slug)

    with db.session_scope() as session:
        row = _lookup(session, current_slug)
        if row is None:
            raise NotFoundError(POST_NOT_FOUND)

        if next_slug != row.slug and post_repo.slug_taken(session, next_slug, exclude_id=row.id):
            logger.info("Rejected rename '{}' -> '{}': slug taken", row.slug, next_slug)
            raise ConflictError(post_repo.SLUG_TAKEN)

        old_slug = row.slug
        now = utc_now()
        if now <= row.updated_at:
            now = row.updated_at + timedelta(microseconds=1)

        row.title = data.title.strip()
        row.slug = next_slug
        row.content = data.content
        row.tags = list(data.tags)
        row.published = bool(data.published)
        row.reading_time = reading_time(data.content)
        # An empty excerpt removes the field instead of storing "".
        row.excerpt = _clean_excerpt(data.excerpt)
        row.updated_at = now
        post_repo.flush_unique(session)

    if old_slug != next_slug:
        logger.info("Renamed post '{}' -> '{}'", old_slug, next_slug)
    else:
        logger.info("Updated post '{}'", next_slug)
    return next_slug


def find_by_slug(db: Database, slug: str) -> Optional[Dict[str, Any]]:
    with db.session_scope() as session:
        row = _lookup(session, slug)
        return serialize_post(row) if row else None


def find_published_by_slug(db: Database, slug: str) -> Optional[Dict[str, Any]]:
    post = find_by_slug(db, slug)
    if post is None or not post["published"]:
        return None
    return post


def list_all(db: Database) -> List[Dict[str, Any]]:
    with db.session_scope() as session:
        return [serialize_post(r) for r in post_repo.list_posts(session)]


def list_published(db: Database) -> List[Dict[str, Any]]:
    with db.session_scope() as session:
        return [serialize_post(r) for r in post_repo.list_posts(session, published_only=True)]


def dashboard_stats(db: Database, *, recent: int = 5) -> Dict[str, Any]:
    """Counts and most recent posts for the admin dashboard."""
    posts = list_all(db)
    published = sum(1 for p in posts if p["published"])
    return {
        "total": len(posts),
        "published": published,
        "drafts": len(posts) - published,
        "recent": posts[:recent],
    }
