"""
vibes.services.social_graph_service — Follow Edges
===================================================

Directed follower → following edges.  The composite primary key makes a
duplicate follow a no-op and a check constraint forbids self-edges, so
both invariants hold even under concurrent requests.

A *new* edge notifies the followed user; repeats do not.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vibes.database.models import Follow, NotificationType, User
from vibes.engine.enrichment import load_authors
from vibes.engine.views import AuthorView
from vibes.errors import NotFoundError
from vibes.services import notification_service

logger = logging.getLogger(__name__)


def follow(engine: Engine, follower_id: str, following_id: str) -> bool:
    """Create the edge *follower_id* → *following_id*.

    Returns ``True`` if a new edge was written.  Following yourself and
    following someone twice are silent no-ops that return ``False``.

    Raises
    ------
    NotFoundError
        If either user does not exist.
    """
    if follower_id == following_id:
        return False

    with Session(engine) as session:
        if session.get(User, following_id) is None:
            raise NotFoundError(f"User {following_id} not found")
        follower = session.get(User, follower_id)
        if follower is None:
            raise NotFoundError(f"User {follower_id} not found")
        follower_name = follower.first_name or "Someone"

        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(Follow(follower_id=follower_id, following_id=following_id))
                session.flush()
        except IntegrityError:
            # Already following; the SAVEPOINT rolled back, nothing to commit.
            return False
        session.commit()

    logger.info("%s followed %s", follower_id, following_id)
    notification_service.fan_out(
        engine,
        recipient_id=following_id,
        kind=NotificationType.FOLLOW,
        title="New follower",
        message=f"{follower_name} started following you",
        reference_id=follower_id,
        reference_type="user",
        from_user_id=follower_id,
    )
    return True


def unfollow(engine: Engine, follower_id: str, following_id: str) -> bool:
    """Remove the edge if present.  Returns ``True`` if an edge was deleted."""
    with Session(engine) as session:
        result = session.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id, Follow.following_id == following_id
            )
        )
        session.commit()
        removed = bool(result.rowcount)
    if removed:
        logger.info("%s unfollowed %s", follower_id, following_id)
    return removed


def is_following(engine: Engine, follower_id: str, following_id: str) -> bool:
    with Session(engine) as session:
        return session.get(Follow, (follower_id, following_id)) is not None


def followee_ids(session: Session, user_id: str) -> set[str]:
    """Ids of everyone *user_id* follows."""
    return set(session.scalars(
        select(Follow.following_id).where(Follow.follower_id == user_id)
    ).all())


def get_followers(engine: Engine, user_id: str) -> list[AuthorView]:
    with Session(engine) as session:
        ids = session.scalars(
            select(Follow.follower_id)
            .where(Follow.following_id == user_id)
            .order_by(Follow.created_at.desc())
        ).all()
        authors = load_authors(session, ids)
        return [authors[i] for i in ids if i in authors]


def get_following(engine: Engine, user_id: str) -> list[AuthorView]:
    with Session(engine) as session:
        ids = session.scalars(
            select(Follow.following_id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc())
        ).all()
        authors = load_authors(session, ids)
        return [authors[i] for i in ids if i in authors]
