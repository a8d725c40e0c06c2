"""
vibes.engine.enrichment — Batched Enrichment of Content Rows
=============================================================

Turns raw ORM rows into viewer-specific view records: author, aggregate
counts, and viewer-relative flags (``has_liked``, ``has_upvoted`` …).

Every concern is loaded with **one set-based query per page**, keyed by
the list of ids, so enriching 50 posts costs the same number of round
trips as enriching one.  Without a viewer the per-viewer queries are
skipped entirely and every flag is ``False``.

Enrichment is read-only:
- a user without a profile gets a transient default profile (nothing is
  written);
- an author id that resolves to no user yields ``author=None``;
- an id with no reaction rows (including a deleted entity) yields zero
  counts.

Usage::

    with Session(engine) as session:
        posts = session.scalars(select(Post).limit(50)).all()
        views = enrich_posts(session, posts, viewer_id="u1")
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from vibes.database.models import (
    Bookmark,
    Comment,
    Grant,
    GrantApplication,
    GrantSubmission,
    Post,
    PostLike,
    PostMedia,
    Profile,
    Project,
    Resource,
    TargetType,
    User,
    Vote,
)
from vibes.engine.views import (
    AuthorView,
    CommentView,
    GrantView,
    MediaView,
    PostView,
    ProjectView,
    ResourceView,
    UserSummary,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------
def load_authors(session: Session, user_ids: Iterable[str | None]) -> dict[str, AuthorView]:
    """Map each existing user id to an :class:`AuthorView`.

    Ids with no user row are simply absent from the result.
    """
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    users = session.scalars(select(User).where(User.id.in_(ids))).all()
    profiles = {
        p.user_id: p
        for p in session.scalars(select(Profile).where(Profile.user_id.in_(ids))).all()
    }
    return {u.id: AuthorView.from_rows(u, profiles.get(u.id)) for u in users}


def load_user_summaries(
    session: Session, user_ids: Iterable[str | None]
) -> dict[str, UserSummary]:
    """Map each existing user id to a :class:`UserSummary` (two queries total)."""
    return {
        uid: UserSummary(
            id=a.id,
            username=a.username,
            first_name=a.first_name,
            last_name=a.last_name,
            profile_image_url=a.profile_image_url,
        )
        for uid, a in load_authors(session, user_ids).items()
    }


# ---------------------------------------------------------------------------
# Set-based count/flag loaders
# ---------------------------------------------------------------------------
def vote_counts(
    session: Session, target_type: str, ids: Sequence[str]
) -> dict[str, tuple[int, int]]:
    """``{target_id: (upvotes, downvotes)}`` for every id that has votes."""
    if not ids:
        return {}
    rows = session.execute(
        select(
            Vote.target_id,
            func.sum(case((Vote.value == 1, 1), else_=0)).label("up"),
            func.sum(case((Vote.value == -1, 1), else_=0)).label("down"),
        )
        .where(Vote.target_type == target_type, Vote.target_id.in_(ids))
        .group_by(Vote.target_id)
    ).all()
    return {row.target_id: (int(row.up or 0), int(row.down or 0)) for row in rows}


def viewer_votes(
    session: Session, target_type: str, ids: Sequence[str], viewer_id: str
) -> dict[str, int]:
    """``{target_id: +1 | -1}`` for the viewer's votes on *ids*."""
    if not ids:
        return {}
    rows = session.execute(
        select(Vote.target_id, Vote.value).where(
            Vote.target_type == target_type,
            Vote.target_id.in_(ids),
            Vote.user_id == viewer_id,
        )
    ).all()
    return {row.target_id: row.value for row in rows}


def viewer_bookmarks(
    session: Session, target_type: str, ids: Sequence[str], viewer_id: str
) -> set[str]:
    if not ids:
        return set()
    return set(session.scalars(
        select(Bookmark.target_id).where(
            Bookmark.target_type == target_type,
            Bookmark.target_id.in_(ids),
            Bookmark.user_id == viewer_id,
        )
    ).all())


def comment_counts(session: Session, target_type: str, ids: Sequence[str]) -> dict[str, int]:
    if not ids:
        return {}
    rows = session.execute(
        select(Comment.target_id, func.count().label("cnt"))
        .where(Comment.target_type == target_type, Comment.target_id.in_(ids))
        .group_by(Comment.target_id)
    ).all()
    return {row.target_id: row.cnt for row in rows}


def like_counts(session: Session, post_ids: Sequence[str]) -> dict[str, int]:
    if not post_ids:
        return {}
    rows = session.execute(
        select(PostLike.post_id, func.count().label("cnt"))
        .where(PostLike.post_id.in_(post_ids))
        .group_by(PostLike.post_id)
    ).all()
    return {row.post_id: row.cnt for row in rows}


def viewer_likes(session: Session, post_ids: Sequence[str], viewer_id: str) -> set[str]:
    if not post_ids:
        return set()
    return set(session.scalars(
        select(PostLike.post_id).where(
            PostLike.post_id.in_(post_ids), PostLike.user_id == viewer_id
        )
    ).all())


def media_for(session: Session, post_ids: Sequence[str]) -> dict[str, list[MediaView]]:
    """Attachments per post, ordered by ``order_index``."""
    if not post_ids:
        return {}
    out: dict[str, list[MediaView]] = defaultdict(list)
    rows = session.scalars(
        select(PostMedia)
        .where(PostMedia.post_id.in_(post_ids))
        .order_by(PostMedia.post_id, PostMedia.order_index, PostMedia.id)
    ).all()
    for m in rows:
        out[m.post_id].append(MediaView(
            id=m.id,
            media_type=m.media_type,
            media_url=m.media_url,
            preview_url=m.preview_url,
            aspect_ratio=m.aspect_ratio,
            order_index=m.order_index or 0,
        ))
    return out


# ---------------------------------------------------------------------------
# Per-kind enrichment
# ---------------------------------------------------------------------------
def enrich_posts(
    session: Session, posts: Sequence[Post], viewer_id: str | None = None
) -> list[PostView]:
    """Posts get media, like/comment counts and ``has_liked``."""
    if not posts:
        return []
    ids = [p.id for p in posts]
    authors = load_authors(session, (p.user_id for p in posts))
    media = media_for(session, ids)
    likes = like_counts(session, ids)
    comments = comment_counts(session, TargetType.POST, ids)
    liked = viewer_likes(session, ids, viewer_id) if viewer_id else set()

    return [
        PostView(
            id=p.id,
            user_id=p.user_id,
            content=p.content,
            voice_note_url=p.voice_note_url,
            view_count=p.view_count or 0,
            created_at=p.created_at,
            author=authors.get(p.user_id),
            media=media.get(p.id, []),
            like_count=likes.get(p.id, 0),
            comment_count=comments.get(p.id, 0),
            has_liked=p.id in liked,
        )
        for p in posts
    ]


def enrich_projects(
    session: Session, projects: Sequence[Project], viewer_id: str | None = None
) -> list[ProjectView]:
    """Projects get vote/comment counts plus upvote/downvote/bookmark flags."""
    if not projects:
        return []
    ids = [p.id for p in projects]
    authors = load_authors(session, (p.user_id for p in projects))
    votes = vote_counts(session, TargetType.PROJECT, ids)
    comments = comment_counts(session, TargetType.PROJECT, ids)
    mine: dict[str, int] = {}
    marked: set[str] = set()
    if viewer_id:
        mine = viewer_votes(session, TargetType.PROJECT, ids, viewer_id)
        marked = viewer_bookmarks(session, TargetType.PROJECT, ids, viewer_id)

    views = []
    for p in projects:
        up, down = votes.get(p.id, (0, 0))
        views.append(ProjectView(
            id=p.id,
            user_id=p.user_id,
            title=p.title,
            description=p.description,
            demo_url=p.demo_url,
            github_url=p.github_url,
            image_url=p.image_url,
            voice_note_url=p.voice_note_url,
            tags=list(p.tags or []),
            is_featured=bool(p.is_featured),
            view_count=p.view_count or 0,
            created_at=p.created_at,
            author=authors.get(p.user_id),
            upvote_count=up,
            downvote_count=down,
            comment_count=comments.get(p.id, 0),
            has_upvoted=mine.get(p.id) == 1,
            has_downvoted=mine.get(p.id) == -1,
            has_bookmarked=p.id in marked,
        ))
    return views


def enrich_resources(
    session: Session, resources: Sequence[Resource], viewer_id: str | None = None
) -> list[ResourceView]:
    if not resources:
        return []
    ids = [r.id for r in resources]
    authors = load_authors(session, (r.user_id for r in resources))
    votes = vote_counts(session, TargetType.RESOURCE, ids)
    comments = comment_counts(session, TargetType.RESOURCE, ids)
    mine: dict[str, int] = {}
    marked: set[str] = set()
    if viewer_id:
        mine = viewer_votes(session, TargetType.RESOURCE, ids, viewer_id)
        marked = viewer_bookmarks(session, TargetType.RESOURCE, ids, viewer_id)

    views = []
    for r in resources:
        up, down = votes.get(r.id, (0, 0))
        views.append(ResourceView(
            id=r.id,
            user_id=r.user_id,
            title=r.title,
            description=r.description,
            url=r.url,
            category=r.category,
            resource_type=r.type,
            tags=list(r.tags or []),
            image_url=r.image_url,
            is_approved=bool(r.is_approved),
            is_featured=bool(r.is_featured),
            created_at=r.created_at,
            author=authors.get(r.user_id) if r.user_id else None,
            upvote_count=up,
            downvote_count=down,
            comment_count=comments.get(r.id, 0),
            has_upvoted=mine.get(r.id) == 1,
            has_downvoted=mine.get(r.id) == -1,
            has_bookmarked=r.id in marked,
        ))
    return views


def enrich_grants(
    session: Session, grants: Sequence[Grant], viewer_id: str | None = None
) -> list[GrantView]:
    if not grants:
        return []
    ids = [g.id for g in grants]
    authors = load_authors(session, (g.user_id for g in grants))
    sub_counts = dict(session.execute(
        select(GrantSubmission.grant_id, func.count())
        .where(GrantSubmission.grant_id.in_(ids))
        .group_by(GrantSubmission.grant_id)
    ).all())
    app_counts = dict(session.execute(
        select(GrantApplication.grant_id, func.count())
        .where(GrantApplication.grant_id.in_(ids))
        .group_by(GrantApplication.grant_id)
    ).all())
    submitted: set[str] = set()
    applied: set[str] = set()
    if viewer_id:
        submitted = set(session.scalars(
            select(GrantSubmission.grant_id).where(
                GrantSubmission.grant_id.in_(ids), GrantSubmission.user_id == viewer_id
            )
        ).all())
        applied = set(session.scalars(
            select(GrantApplication.grant_id).where(
                GrantApplication.grant_id.in_(ids), GrantApplication.user_id == viewer_id
            )
        ).all())

    return [
        GrantView(
            id=g.id,
            user_id=g.user_id,
            title=g.title,
            description=g.description,
            amount=g.amount,
            deadline=g.deadline,
            requirements=g.requirements,
            image_url=g.image_url,
            status=g.status,
            created_at=g.created_at,
            author=authors.get(g.user_id),
            submission_count=sub_counts.get(g.id, 0),
            application_count=app_counts.get(g.id, 0),
            has_submitted=g.id in submitted,
            has_applied=g.id in applied,
        )
        for g in grants
    ]


def enrich_comments(session: Session, comments: Sequence[Comment]) -> list[CommentView]:
    if not comments:
        return []
    authors = load_authors(session, (c.user_id for c in comments))
    return [
        CommentView(
            id=c.id,
            target_type=c.target_type,
            target_id=c.target_id,
            user_id=c.user_id,
            content=c.content,
            created_at=c.created_at,
            author=authors.get(c.user_id),
        )
        for c in comments
    ]


# ---------------------------------------------------------------------------
# Single-item dispatch
# ---------------------------------------------------------------------------
def enrich(session: Session, item, viewer_id: str | None = None):
    """Enrich one row of any supported kind.

    Raises
    ------
    TypeError
        If *item* is not a Post, Project, Resource, Grant or Comment.
    """
    if isinstance(item, Post):
        return enrich_posts(session, [item], viewer_id)[0]
    if isinstance(item, Project):
        return enrich_projects(session, [item], viewer_id)[0]
    if isinstance(item, Resource):
        return enrich_resources(session, [item], viewer_id)[0]
    if isinstance(item, Grant):
        return enrich_grants(session, [item], viewer_id)[0]
    if isinstance(item, Comment):
        return enrich_comments(session, [item])[0]
    raise TypeError(f"Cannot enrich {type(item).__name__}")
