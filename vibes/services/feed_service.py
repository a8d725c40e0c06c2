"""
vibes.services.feed_service — Feed Composition
===============================================

The home feed is a heterogeneous merge, not a ranking:

1. audience = everyone the viewer follows ∪ the viewer;
2. newest ``per_kind_limit`` posts and newest ``per_kind_limit`` projects
   authored by the audience;
3. each list enriched by its own kind (posts: likes/comments/``has_liked``;
   projects: votes/comments/``has_upvoted``);
4. merged, sorted by ``created_at`` descending with ``id`` descending as
   the tie-break, and cut to ``page_size``.

No scoring, decay or personalization happens here.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from vibes.constants import FEED_PAGE_SIZE, FEED_PER_KIND_LIMIT, LIST_LIMIT
from vibes.database.models import Post, Project
from vibes.engine.enrichment import enrich_posts, enrich_projects
from vibes.engine.views import FeedItem, PostView
from vibes.errors import NotFoundError
from vibes.services.social_graph_service import followee_ids

logger = logging.getLogger(__name__)


def _feed_key(item: FeedItem):
    return (item.created_at, item.id)


def compose_feed(
    engine: Engine,
    viewer_id: str,
    *,
    per_kind_limit: int = FEED_PER_KIND_LIMIT,
    page_size: int = FEED_PAGE_SIZE,
) -> list[FeedItem]:
    """Mixed post/project stream for *viewer_id*, newest first."""
    with Session(engine) as session:
        audience = followee_ids(session, viewer_id) | {viewer_id}

        posts = session.scalars(
            select(Post)
            .where(Post.user_id.in_(audience))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(per_kind_limit)
        ).all()
        projects = session.scalars(
            select(Project)
            .where(Project.user_id.in_(audience))
            .order_by(Project.created_at.desc(), Project.id.desc())
            .limit(per_kind_limit)
        ).all()

        items: list[FeedItem] = [
            *enrich_posts(session, posts, viewer_id),
            *enrich_projects(session, projects, viewer_id),
        ]

    items.sort(key=_feed_key, reverse=True)
    logger.debug(
        "Feed for %s: %d posts + %d projects from %d authors",
        viewer_id, len(posts), len(projects), len(audience),
    )
    return items[:page_size]


def list_posts(
    engine: Engine, viewer_id: str | None = None, *, limit: int = LIST_LIMIT
) -> list[PostView]:
    """Latest posts from everyone (the "Explore" tab)."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Post).order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
        ).all()
        return enrich_posts(session, rows, viewer_id)


def get_posts_by_user(
    engine: Engine, user_id: str, viewer_id: str | None = None
) -> list[PostView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Post)
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
        ).all()
        return enrich_posts(session, rows, viewer_id)


def get_post(engine: Engine, post_id: str, viewer_id: str | None = None) -> PostView:
    with Session(engine) as session:
        post = session.get(Post, post_id)
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")
        return enrich_posts(session, [post], viewer_id)[0]
