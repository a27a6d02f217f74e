# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quill.errors import ConflictError
from quill.infra.db import PostRow

SLUG_TAKEN = "A post with this slug already exists"


def get_by_slug(session: Session, slug: str) -> Optional[PostRow]:
    """Exact (case-sensitive) slug lookup."""
    return session.scalars(select(PostRow).where(PostRow.slug == slug)).first()


def slug_taken(session: Session, slug: str, *, exclude_id: Optional[int] = None) -> bool:
    stmt = select(PostRow.id).where(PostRow.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(PostRow.id != exclude_id)
    return session.scalars(stmt).first() is not None


def list_posts(session: Session, *, published_only: bool = False) -> List[PostRow]:
    """Posts ordered by creation time, newest first."""
    stmt = select(PostRow)
    if published_only:
        stmt = stmt.where(PostRow.published.is_(True))
    stmt = stmt.order_by(PostRow.created_at.desc(), PostRow.id.desc())
    return list(session.scalars(stmt))


def add_post(session: Session, row: PostRow) -> PostRow:
    session.add(row)
    flush_unique(session)
    return row


def flush_unique(session: Session) -> None:
    """Flush pending writes, turning a slug UNIQUE violation into ConflictError.

    Catches the create/rename that slipped in between a pre-check and the write.
    """
    try:
        session.flush()
    except IntegrityError as e:
        if not _is_slug_violation(e):
            raise
        raise ConflictError(SLUG_TAKEN) from e


def _is_slug_violation(e: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: posts.slug"
    # postgres: duplicate key value violates unique constraint "ix_posts_slug"
    msg = str(e.orig).lower()
    return "slug" in msg and ("unique" in msg or "duplicate" in msg)
