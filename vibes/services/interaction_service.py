"""
vibes.services.interaction_service — Votes, Likes, Bookmarks, Emoji
====================================================================

The interaction ledger.  Every edge is guarded by a unique constraint, and
every write is idempotent: repeating a request changes nothing and never
raises.

Votes are a three-state machine per (target, user):

    none ──upvote──▶ upvoted ◀──upvote── downvoted
      │                 │                   ▲
      └────downvote─────┴─────downvote──────┘

Both polarities live in **one** ``votes`` row, so switching is a single
``UPDATE`` of ``value`` and "upvoted and downvoted at once" cannot exist.
A concurrent first vote that loses the insert race re-reads the winner and
falls through to the same swap.

Accepted kinds per target:

========  =================================
post      like
project   upvote, downvote, bookmark
resource  upvote, downvote, bookmark
========  =================================
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import Engine, and_, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vibes.database.models import (
    Bookmark,
    Comment,
    EmojiReaction,
    NotificationType,
    Post,
    PostLike,
    Project,
    ReactionKind,
    Resource,
    TargetType,
    User,
    Vote,
    utcnow,
)
from vibes.engine.enrichment import enrich_projects, enrich_resources, load_user_summaries
from vibes.engine.views import ProjectView, ResourceView
from vibes.errors import InvalidActionError, NotFoundError
from vibes.services import notification_service

logger = logging.getLogger(__name__)

VOTE_VALUES: dict[ReactionKind, int] = {
    ReactionKind.UPVOTE: 1,
    ReactionKind.DOWNVOTE: -1,
}

ALLOWED_KINDS: dict[TargetType, frozenset[ReactionKind]] = {
    TargetType.POST: frozenset({ReactionKind.LIKE}),
    TargetType.PROJECT: frozenset({
        ReactionKind.UPVOTE, ReactionKind.DOWNVOTE, ReactionKind.BOOKMARK,
    }),
    TargetType.RESOURCE: frozenset({
        ReactionKind.UPVOTE, ReactionKind.DOWNVOTE, ReactionKind.BOOKMARK,
    }),
}

_TARGET_MODELS = {
    TargetType.POST: Post,
    TargetType.PROJECT: Project,
    TargetType.RESOURCE: Resource,
    TargetType.COMMENT: Comment,
}

EMOJI_TARGETS = frozenset({TargetType.PROJECT, TargetType.POST, TargetType.COMMENT})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _parse(target_type: str, kind: str) -> tuple[TargetType, ReactionKind]:
    try:
        target = TargetType(target_type)
        reaction = ReactionKind(kind)
    except ValueError:
        raise InvalidActionError(f"Unsupported reaction {kind!r} on {target_type!r}") from None
    if reaction not in ALLOWED_KINDS.get(target, frozenset()):
        raise InvalidActionError(f"Cannot {reaction.value} a {target.value}")
    return target, reaction


def _require_user(session: Session, user_id: str) -> None:
    # Checked up front: a foreign-key IntegrityError would read as a duplicate.
    if session.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")


def _insert_edge(session: Session, edge) -> bool:
    """Insert a unique edge under a SAVEPOINT; ``False`` if it already exists."""
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(edge)
            session.flush()
    except IntegrityError:
        return False
    return True


def _vote_filter(target_type: str, target_id: str, user_id: str):
    return and_(
        Vote.target_type == target_type,
        Vote.target_id == target_id,
        Vote.user_id == user_id,
    )


def set_vote(session: Session, target_type: str, target_id: str, user_id: str, value: int) -> bool:
    """Move the vote state for (target, user) to *value* (+1 or -1).

    Returns ``True`` if the state changed.
    """
    where = _vote_filter(target_type, target_id, user_id)
    current = session.scalar(select(Vote.value).where(where))
    if current == value:
        return False

    if current is None:
        inserted = _insert_edge(session, Vote(
            target_type=target_type, target_id=target_id, user_id=user_id, value=value,
        ))
        if inserted:
            return True
        # Lost the race: someone else wrote the row first.
        current = session.scalar(select(Vote.value).where(where))
        if current == value:
            return False

    result = session.execute(
        update(Vote)
        .where(where, Vote.value != value)
        .values(value=value, updated_at=utcnow())
    )
    return bool(result.rowcount)


def current_vote(engine: Engine, target_type: str, target_id: str, user_id: str) -> int:
    """``1`` upvoted, ``-1`` downvoted, ``0`` no vote."""
    with Session(engine) as session:
        value = session.scalar(
            select(Vote.value).where(_vote_filter(target_type, target_id, user_id))
        )
    return value or 0


# ---------------------------------------------------------------------------
# react / unreact
# ---------------------------------------------------------------------------
def react(engine: Engine, target_type: str, target_id: str, user_id: str, kind: str) -> bool:
    """Apply *kind* (upvote, downvote, like, bookmark) to a target.

    Returns ``True`` if the ledger changed; repeats return ``False``.
    Moving a project into the upvoted state notifies its owner.

    Raises
    ------
    InvalidActionError
        If *kind* is not accepted for *target_type*.
    NotFoundError
        If the target or the acting user does not exist.
    """
    target, reaction = _parse(target_type, kind)

    with Session(engine) as session:
        item = session.get(_TARGET_MODELS[target], target_id)
        if item is None:
            raise NotFoundError(f"{target.value.capitalize()} {target_id} not found")
        _require_user(session, user_id)
        owner_id = item.user_id
        title = getattr(item, "title", None)

        if reaction in VOTE_VALUES:
            changed = set_vote(session, target, target_id, user_id, VOTE_VALUES[reaction])
        elif reaction is ReactionKind.LIKE:
            changed = _insert_edge(session, PostLike(post_id=target_id, user_id=user_id))
        else:
            changed = _insert_edge(session, Bookmark(
                target_type=target, target_id=target_id, user_id=user_id,
            ))
        session.commit()

    if not changed:
        return False

    logger.info("%s %s %s:%s", user_id, reaction.value, target.value, target_id)
    if (
        reaction is ReactionKind.UPVOTE
        and target is TargetType.PROJECT
        and owner_id
        and owner_id != user_id
    ):
        notification_service.fan_out(
            engine,
            recipient_id=owner_id,
            kind=NotificationType.UPVOTE,
            title="New upvote on your project",
            message=f'Someone upvoted "{title}"',
            reference_id=target_id,
            reference_type=TargetType.PROJECT,
            from_user_id=user_id,
        )
    return True


def unreact(engine: Engine, target_type: str, target_id: str, user_id: str, kind: str) -> bool:
    """Remove a reaction.  Removing something that isn't there is a no-op.

    ``unreact(..., "upvote")`` on a downvoted target leaves the downvote
    in place.
    """
    target, reaction = _parse(target_type, kind)

    with Session(engine) as session:
        if reaction in VOTE_VALUES:
            stmt = delete(Vote).where(
                _vote_filter(target, target_id, user_id),
                Vote.value == VOTE_VALUES[reaction],
            )
        elif reaction is ReactionKind.LIKE:
            stmt = delete(PostLike).where(
                PostLike.post_id == target_id, PostLike.user_id == user_id
            )
        else:
            stmt = delete(Bookmark).where(
                Bookmark.target_type == target,
                Bookmark.target_id == target_id,
                Bookmark.user_id == user_id,
            )
        result = session.execute(stmt)
        session.commit()
        removed = bool(result.rowcount)

    if removed:
        logger.info("%s removed %s on %s:%s", user_id, reaction.value, target.value, target_id)
    return removed


# ---------------------------------------------------------------------------
# Bookmark listings
# ---------------------------------------------------------------------------
def _bookmarked_ids(session: Session, target_type: str, user_id: str) -> list[str]:
    return list(session.scalars(
        select(Bookmark.target_id)
        .where(Bookmark.target_type == target_type, Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
    ).all())


def get_bookmarked_projects(engine: Engine, user_id: str) -> list[ProjectView]:
    """Projects *user_id* bookmarked, most recently saved first.

    Bookmarks pointing at deleted projects are skipped.
    """
    with Session(engine) as session:
        ids = _bookmarked_ids(session, TargetType.PROJECT, user_id)
        if not ids:
            return []
        rows = {p.id: p for p in session.scalars(
            select(Project).where(Project.id.in_(ids))
        ).all()}
        ordered = [rows[i] for i in ids if i in rows]
        return enrich_projects(session, ordered, user_id)


def get_bookmarked_resources(engine: Engine, user_id: str) -> list[ResourceView]:
    with Session(engine) as session:
        ids = _bookmarked_ids(session, TargetType.RESOURCE, user_id)
        if not ids:
            return []
        rows = {r.id: r for r in session.scalars(
            select(Resource).where(Resource.id.in_(ids))
        ).all()}
        ordered = [rows[i] for i in ids if i in rows]
        return enrich_resources(session, ordered, user_id)


# ---------------------------------------------------------------------------
# Emoji reactions
# ---------------------------------------------------------------------------
def _emoji_target(target_type: str) -> TargetType:
    try:
        target = TargetType(target_type)
    except ValueError:
        target = None
    if target not in EMOJI_TARGETS:
        raise InvalidActionError(f"Emoji reactions are not supported on {target_type!r}")
    return target


def add_reaction(engine: Engine, user_id: str, emoji: str, target_type: str, target_id: str) -> bool:
    """Add *emoji* from *user_id*; ``False`` if that exact reaction exists."""
    target = _emoji_target(target_type)
    with Session(engine) as session:
        if session.get(_TARGET_MODELS[target], target_id) is None:
            raise NotFoundError(f"{target.value.capitalize()} {target_id} not found")
        _require_user(session, user_id)
        added = _insert_edge(session, EmojiReaction(
            user_id=user_id, emoji=emoji, target_type=target, target_id=target_id,
        ))
        session.commit()
    return added


def remove_reaction(engine: Engine, user_id: str, emoji: str, target_type: str, target_id: str) -> bool:
    target = _emoji_target(target_type)
    with Session(engine) as session:
        result = session.execute(
            delete(EmojiReaction).where(
                EmojiReaction.user_id == user_id,
                EmojiReaction.emoji == emoji,
                EmojiReaction.target_type == target,
                EmojiReaction.target_id == target_id,
            )
        )
        session.commit()
        return bool(result.rowcount)


def get_reactions(
    engine: Engine, target_type: str, target_id: str, viewer_id: str | None = None
) -> list[dict]:
    """Emoji reactions on a target, grouped by emoji in first-used order.

    Each group is ``{"emoji", "count", "users", "has_reacted"}``.
    """
    target = _emoji_target(target_type)
    with Session(engine) as session:
        rows = session.scalars(
            select(EmojiReaction)
            .where(EmojiReaction.target_type == target, EmojiReaction.target_id == target_id)
            .order_by(EmojiReaction.created_at, EmojiReaction.id)
        ).all()
        users = load_user_summaries(session, (r.user_id for r in rows))

    grouped: dict[str, list[str]] = defaultdict(list)
    for r in rows:
        grouped[r.emoji].append(r.user_id)

    return [
        {
            "emoji": emoji,
            "count": len(user_ids),
            "users": [users[u] for u in user_ids if u in users],
            "has_reacted": bool(viewer_id) and viewer_id in user_ids,
        }
        for emoji, user_ids in grouped.items()
    ]


def delete_edges_for(session: Session, target_type: str, target_id: str) -> None:
    """Drop every vote, bookmark and emoji reaction on a target.

    Used by content deletes; runs in the caller's transaction.
    """
    session.execute(delete(Vote).where(
        Vote.target_type == target_type, Vote.target_id == target_id
    ))
    session.execute(delete(Bookmark).where(
        Bookmark.target_type == target_type, Bookmark.target_id == target_id
    ))
    session.execute(delete(EmojiReaction).where(
        EmojiReaction.target_type == target_type, EmojiReaction.target_id == target_id
    ))
