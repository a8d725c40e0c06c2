"""
vibes.services.story_service — 24h Stories
===========================================

A story is visible iff ``now < expires_at``; ``expires_at`` is fixed at
creation (``created_at + STORY_TTL``).  Expiry is a query-time filter.
:func:`purge_expired_stories` only reclaims space, it never decides
visibility.

Deletion is batched in the reaper so a large backlog does not hold long
row locks.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from vibes.constants import STORY_TTL
from vibes.database.engine import get_session
from vibes.database.models import Story, utcnow
from vibes.engine.enrichment import load_authors
from vibes.engine.views import StoryGroup, StoryView
from vibes.errors import NotFoundError, UnauthorizedError
from vibes.services.social_graph_service import followee_ids

logger = logging.getLogger(__name__)

# How many rows the reaper deletes per transaction.
BATCH_SIZE = 1_000


def _story_view(s: Story) -> StoryView:
    return StoryView(
        id=s.id,
        user_id=s.user_id,
        media_type=s.media_type,
        media_url=s.media_url,
        preview_url=s.preview_url,
        created_at=s.created_at,
        expires_at=s.expires_at,
        view_count=s.view_count or 0,
    )


def create_story(
    engine: Engine,
    user_id: str,
    *,
    media_type: str,
    media_url: str,
    preview_url: str | None = None,
    now: datetime | None = None,
    ttl: timedelta = STORY_TTL,
) -> StoryView:
    now = now or utcnow()
    with get_session(engine) as session:
        story = Story(
            user_id=user_id,
            media_type=media_type,
            media_url=media_url,
            preview_url=preview_url,
            created_at=now,
            expires_at=now + ttl,
        )
        session.add(story)
        session.flush()
        logger.info("Story %s posted by %s (expires %s)", story.id, user_id, story.expires_at)
        return _story_view(story)


def get_stories(engine: Engine, viewer_id: str, *, now: datetime | None = None) -> list[StoryGroup]:
    """Live stories of the viewer and everyone they follow, grouped by author.

    Groups are ordered by each author's newest story; stories within a
    group run oldest first (playback order).
    """
    now = now or utcnow()
    with Session(engine) as session:
        audience = followee_ids(session, viewer_id) | {viewer_id}
        rows = session.scalars(
            select(Story)
            .where(Story.user_id.in_(audience), Story.expires_at > now)
            .order_by(Story.created_at.desc(), Story.id.desc())
        ).all()

        grouped: dict[str, list[StoryView]] = defaultdict(list)
        for s in rows:
            grouped[s.user_id].append(_story_view(s))
        authors = load_authors(session, grouped)

    return [
        StoryGroup(
            user=authors.get(author_id),
            stories=list(reversed(stories)),
            story_count=len(stories),
        )
        for author_id, stories in grouped.items()
    ]


def get_stories_by_user(engine: Engine, user_id: str, *, now: datetime | None = None) -> list[StoryView]:
    """One author's live stories, newest first."""
    now = now or utcnow()
    with Session(engine) as session:
        rows = session.scalars(
            select(Story)
            .where(Story.user_id == user_id, Story.expires_at > now)
            .order_by(Story.created_at.desc(), Story.id.desc())
        ).all()
        return [_story_view(s) for s in rows]


def delete_story(engine: Engine, story_id: str, user_id: str) -> None:
    """Delete a story.  Only its author may do so."""
    with get_session(engine) as session:
        story = session.get(Story, story_id)
        if story is None:
            raise NotFoundError(f"Story {story_id} not found")
        if story.user_id != user_id:
            raise UnauthorizedError(f"Story {story_id} does not belong to {user_id}")
        session.delete(story)
    logger.info("Story %s deleted by %s", story_id, user_id)


def purge_expired_stories(engine: Engine, *, now: datetime | None = None) -> int:
    """Hard-delete expired stories in batches; return how many were removed."""
    now = now or utcnow()
    deleted = 0
    while True:
        with get_session(engine) as session:
            ids = session.scalars(
                select(Story.id).where(Story.expires_at <= now).limit(BATCH_SIZE)
            ).all()
            if not ids:
                break
            result = session.execute(delete(Story).where(Story.id.in_(ids)))
            deleted += result.rowcount or 0

    if deleted:
        logger.info("Story reaper: removed %d expired stories (cutoff=%s)", deleted, now.isoformat())
    return deleted
