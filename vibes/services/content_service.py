"""
vibes.services.content_service — Posts, Projects, Resources, Comments
======================================================================

Owner-scoped CRUD for content items.  Deletes are explicit cascades: a
deleted post or project takes its reaction edges, comments (and the emoji
reactions on those comments), media and any notifications that point at
it along in the same transaction, so nothing downstream has to cope with
half-deleted state.

Reads return enriched view records; see :mod:`vibes.engine.enrichment`.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.orm import Session

from vibes.constants import LIST_LIMIT, PREVIEW_LENGTH
from vibes.database.engine import get_session
from vibes.database.models import (
    Comment,
    EmojiReaction,
    GrantSubmission,
    NotificationType,
    Post,
    PostLike,
    PostMedia,
    Project,
    Resource,
    TargetType,
    utcnow,
)
from vibes.engine.enrichment import (
    enrich_comments,
    enrich_posts,
    enrich_projects,
    enrich_resources,
)
from vibes.engine.views import CommentView, MediaView, PostView, ProjectView, ResourceView
from vibes.errors import InvalidActionError, NotFoundError, UnauthorizedError
from vibes.services import interaction_service, notification_service

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6

_PROJECT_FIELDS = frozenset({
    "title",
    "description",
    "demo_url",
    "github_url",
    "image_url",
    "voice_note_url",
    "tags",
})

_COMMENT_TARGETS = {
    TargetType.POST: Post,
    TargetType.PROJECT: Project,
    TargetType.RESOURCE: Resource,
}


def _owned(session: Session, model, item_id: str, user_id: str, label: str):
    item = session.get(model, item_id)
    if item is None:
        raise NotFoundError(f"{label} {item_id} not found")
    if item.user_id != user_id:
        raise UnauthorizedError(f"{label} {item_id} does not belong to {user_id}")
    return item


def _delete_comments_on(session: Session, target_type: str, target_id: str) -> int:
    comment_ids = session.scalars(
        select(Comment.id).where(
            Comment.target_type == target_type, Comment.target_id == target_id
        )
    ).all()
    if not comment_ids:
        return 0
    session.execute(delete(EmojiReaction).where(
        EmojiReaction.target_type == TargetType.COMMENT,
        EmojiReaction.target_id.in_(comment_ids),
    ))
    session.execute(delete(Comment).where(Comment.id.in_(comment_ids)))
    return len(comment_ids)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
def create_post(
    engine: Engine,
    user_id: str,
    *,
    content: str | None = None,
    voice_note_url: str | None = None,
    media: list[dict] | None = None,
) -> PostView:
    """Create a post, optionally with attachments.

    Each *media* entry takes ``media_type``, ``media_url`` and optionally
    ``preview_url``, ``aspect_ratio`` and ``order_index`` (defaults to its
    position in the list).

    Raises
    ------
    InvalidActionError
        If the post has no text, voice note or media.
    """
    if not (content or voice_note_url or media):
        raise InvalidActionError("A post needs content, a voice note or media")

    with get_session(engine) as session:
        post = Post(user_id=user_id, content=content, voice_note_url=voice_note_url)
        session.add(post)
        session.flush()
        for index, item in enumerate(media or []):
            session.add(PostMedia(
                post_id=post.id,
                media_type=item["media_type"],
                media_url=item["media_url"],
                preview_url=item.get("preview_url"),
                aspect_ratio=item.get("aspect_ratio"),
                order_index=item.get("order_index", index),
            ))
        session.flush()
        logger.info("Post %s created by %s (%d media)", post.id, user_id, len(media or []))
        return enrich_posts(session, [post], user_id)[0]


def add_post_media(
    engine: Engine,
    post_id: str,
    user_id: str,
    *,
    media_type: str,
    media_url: str,
    preview_url: str | None = None,
    aspect_ratio: str | None = None,
    order_index: int = 0,
) -> MediaView:
    """Attach one media item to an existing post (owner only)."""
    with get_session(engine) as session:
        _owned(session, Post, post_id, user_id, "Post")
        media = PostMedia(
            post_id=post_id,
            media_type=media_type,
            media_url=media_url,
            preview_url=preview_url,
            aspect_ratio=aspect_ratio,
            order_index=order_index,
        )
        session.add(media)
        session.flush()
        return MediaView(
            id=media.id,
            media_type=media.media_type,
            media_url=media.media_url,
            preview_url=media.preview_url,
            aspect_ratio=media.aspect_ratio,
            order_index=media.order_index,
        )


def delete_post(engine: Engine, post_id: str, user_id: str) -> None:
    """Delete a post and everything hanging off it.

    Raises
    ------
    NotFoundError
        If the post does not exist.
    UnauthorizedError
        If *user_id* is not the author.
    """
    with get_session(engine) as session:
        post = _owned(session, Post, post_id, user_id, "Post")
        session.execute(delete(PostLike).where(PostLike.post_id == post_id))
        session.execute(delete(PostMedia).where(PostMedia.post_id == post_id))
        comments = _delete_comments_on(session, TargetType.POST, post_id)
        session.execute(delete(EmojiReaction).where(
            EmojiReaction.target_type == TargetType.POST,
            EmojiReaction.target_id == post_id,
        ))
        notes = notification_service.delete_for_reference(session, TargetType.POST, post_id)
        session.expunge(post)
        session.execute(delete(Post).where(Post.id == post_id))
    logger.info(
        "Post %s deleted by %s (%d comments, %d notifications)",
        post_id, user_id, comments, notes,
    )


def record_post_view(engine: Engine, post_id: str) -> int:
    """Atomically bump a post's view counter and return the new value."""
    with get_session(engine) as session:
        result = session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(view_count=Post.view_count + 1)
        )
        if not result.rowcount:
            raise NotFoundError(f"Post {post_id} not found")
        return session.scalar(select(Post.view_count).where(Post.id == post_id)) or 0


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------
def create_project(
    engine: Engine,
    user_id: str,
    *,
    title: str,
    description: str,
    demo_url: str | None = None,
    github_url: str | None = None,
    image_url: str | None = None,
    voice_note_url: str | None = None,
    tags: list[str] | None = None,
) -> ProjectView:
    with get_session(engine) as session:
        project = Project(
            user_id=user_id,
            title=title,
            description=description,
            demo_url=demo_url,
            github_url=github_url,
            image_url=image_url,
            voice_note_url=voice_note_url,
            tags=list(tags or []),
        )
        session.add(project)
        session.flush()
        logger.info("Project %s (%r) created by %s", project.id, title, user_id)
        return enrich_projects(session, [project], user_id)[0]


def update_project(engine: Engine, project_id: str, user_id: str, **fields) -> ProjectView:
    """Apply editable fields to a project (owner only); unknown keys are ignored."""
    with get_session(engine) as session:
        project = _owned(session, Project, project_id, user_id, "Project")
        for key, value in fields.items():
            if key in _PROJECT_FIELDS:
                setattr(project, key, value)
        project.updated_at = utcnow()
        session.flush()
        return enrich_projects(session, [project], user_id)[0]


def delete_project(engine: Engine, project_id: str, user_id: str) -> None:
    """Delete a project with its votes, bookmarks, comments, emoji reactions,
    notifications and grant submissions.

    Raises
    ------
    NotFoundError
        If the project does not exist.
    UnauthorizedError
        If *user_id* is not the owner.
    """
    with get_session(engine) as session:
        project = _owned(session, Project, project_id, user_id, "Project")
        interaction_service.delete_edges_for(session, TargetType.PROJECT, project_id)
        comments = _delete_comments_on(session, TargetType.PROJECT, project_id)
        notes = notification_service.delete_for_reference(
            session, TargetType.PROJECT, project_id
        )
        session.execute(delete(GrantSubmission).where(GrantSubmission.project_id == project_id))
        session.expunge(project)
        session.execute(delete(Project).where(Project.id == project_id))
    logger.info(
        "Project %s deleted by %s (%d comments, %d notifications)",
        project_id, user_id, comments, notes,
    )


def list_projects(
    engine: Engine, viewer_id: str | None = None, *, limit: int | None = None
) -> list[ProjectView]:
    with Session(engine) as session:
        stmt = select(Project).order_by(Project.created_at.desc(), Project.id.desc())
        if limit:
            stmt = stmt.limit(limit)
        return enrich_projects(session, session.scalars(stmt).all(), viewer_id)


def get_featured_projects(
    engine: Engine, viewer_id: str | None = None, *, limit: int = FEATURED_LIMIT
) -> list[ProjectView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Project)
            .where(Project.is_featured.is_(True))
            .order_by(Project.created_at.desc(), Project.id.desc())
            .limit(limit)
        ).all()
        return enrich_projects(session, rows, viewer_id)


def get_project(engine: Engine, project_id: str, viewer_id: str | None = None) -> ProjectView:
    with Session(engine) as session:
        project = session.get(Project, project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return enrich_projects(session, [project], viewer_id)[0]


def get_projects_by_user(
    engine: Engine, user_id: str, viewer_id: str | None = None
) -> list[ProjectView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        ).all()
        return enrich_projects(session, rows, viewer_id)


def get_projects_mine(engine: Engine, user_id: str) -> list[dict]:
    """Lightweight ``{"id", "title"}`` list used by the grant-submission picker."""
    with Session(engine) as session:
        rows = session.execute(
            select(Project.id, Project.title)
            .where(Project.user_id == user_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        ).all()
    return [{"id": row.id, "title": row.title} for row in rows]


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------
def create_resource(
    engine: Engine,
    user_id: str,
    *,
    title: str,
    description: str,
    url: str,
    category: str,
    resource_type: str = "article",
    tags: list[str] | None = None,
    image_url: str | None = None,
) -> ResourceView:
    """Submit a resource.  New submissions start unapproved."""
    with get_session(engine) as session:
        resource = Resource(
            user_id=user_id,
            title=title,
            description=description,
            url=url,
            category=category,
            type=resource_type,
            tags=list(tags or []),
            image_url=image_url,
            is_approved=False,
        )
        session.add(resource)
        session.flush()
        logger.info("Resource %s (%r) submitted by %s", resource.id, title, user_id)
        return enrich_resources(session, [resource], user_id)[0]


def list_resources(
    engine: Engine, viewer_id: str | None = None, *, limit: int = LIST_LIMIT
) -> list[ResourceView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Resource)
            .order_by(Resource.created_at.desc(), Resource.id.desc())
            .limit(limit)
        ).all()
        return enrich_resources(session, rows, viewer_id)


def get_resources_by_user(engine: Engine, user_id: str) -> list[ResourceView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Resource)
            .where(Resource.user_id == user_id)
            .order_by(Resource.created_at.desc(), Resource.id.desc())
        ).all()
        return enrich_resources(session, rows, user_id)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
def _comment_target(target_type: str) -> TargetType:
    try:
        target = TargetType(target_type)
    except ValueError:
        target = None
    if target not in _COMMENT_TARGETS:
        raise InvalidActionError(f"Comments are not supported on {target_type!r}")
    return target


def list_comments(engine: Engine, target_type: str, target_id: str) -> list[CommentView]:
    """Comments on a content item, newest first."""
    target = _comment_target(target_type)
    with Session(engine) as session:
        rows = session.scalars(
            select(Comment)
            .where(Comment.target_type == target, Comment.target_id == target_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        ).all()
        return enrich_comments(session, rows)


def create_comment(
    engine: Engine, target_type: str, target_id: str, user_id: str, content: str
) -> CommentView:
    """Comment on a post, project or resource.

    Commenting on someone else's project notifies its owner.
    """
    target = _comment_target(target_type)
    if not content or not content.strip():
        raise InvalidActionError("Comment content is empty")

    with get_session(engine) as session:
        item = session.get(_COMMENT_TARGETS[target], target_id)
        if item is None:
            raise NotFoundError(f"{target.value.capitalize()} {target_id} not found")
        owner_id = item.user_id
        comment = Comment(
            target_type=target, target_id=target_id, user_id=user_id, content=content,
        )
        session.add(comment)
        session.flush()
        view = enrich_comments(session, [comment])[0]

    if target is TargetType.PROJECT and owner_id and owner_id != user_id:
        notification_service.fan_out(
            engine,
            recipient_id=owner_id,
            kind=NotificationType.COMMENT,
            title="New comment on your project",
            message=content[:PREVIEW_LENGTH],
            reference_id=target_id,
            reference_type=TargetType.PROJECT,
            from_user_id=user_id,
        )
    return view


def delete_comment(engine: Engine, comment_id: str, user_id: str) -> None:
    """Delete a comment.  Only its author may do so."""
    with get_session(engine) as session:
        comment = _owned(session, Comment, comment_id, user_id, "Comment")
        session.execute(delete(EmojiReaction).where(
            EmojiReaction.target_type == TargetType.COMMENT,
            EmojiReaction.target_id == comment_id,
        ))
        session.delete(comment)
    logger.info("Comment %s deleted by %s", comment_id, user_id)
