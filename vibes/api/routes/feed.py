"""
vibes.api.routes.feed — Feed & post endpoints
==============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from vibes.api.deps import ConfigDep, EngineDep, OptionalViewerDep, ViewerDep
from vibes.constants import LIST_LIMIT
from vibes.services import content_service, feed_service, interaction_service

router = APIRouter(tags=["feed"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MediaIn(BaseModel):
    media_type: str
    media_url: str
    preview_url: str | None = None
    aspect_ratio: str | None = None
    order_index: int | None = None


class PostCreate(BaseModel):
    content: str | None = None
    voice_note_url: str | None = None
    media: list[MediaIn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------
@router.get("/feed")
def get_feed(engine: EngineDep, viewer: ViewerDep, cfg: ConfigDep):
    """Posts and projects from the viewer and everyone they follow."""
    return feed_service.compose_feed(
        engine,
        viewer,
        per_kind_limit=cfg.feed_per_kind_limit,
        page_size=cfg.feed_page_size,
    )


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
@router.get("/posts")
def list_posts(
    engine: EngineDep,
    viewer: OptionalViewerDep,
    limit: int = Query(LIST_LIMIT, ge=1, le=100),
):
    return feed_service.list_posts(engine, viewer, limit=limit)


@router.post("/posts", status_code=status.HTTP_201_CREATED)
def create_post(body: PostCreate, engine: EngineDep, viewer: ViewerDep):
    media = [m.model_dump(exclude_none=True) for m in body.media]
    return content_service.create_post(
        engine,
        viewer,
        content=body.content,
        voice_note_url=body.voice_note_url,
        media=media,
    )


@router.get("/posts/{post_id}")
def get_post(post_id: str, engine: EngineDep, viewer: OptionalViewerDep):
    return feed_service.get_post(engine, post_id, viewer)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: str, engine: EngineDep, viewer: ViewerDep):
    content_service.delete_post(engine, post_id, viewer)


@router.post("/posts/{post_id}/media", status_code=status.HTTP_201_CREATED)
def add_post_media(post_id: str, body: MediaIn, engine: EngineDep, viewer: ViewerDep):
    return content_service.add_post_media(
        engine,
        post_id,
        viewer,
        media_type=body.media_type,
        media_url=body.media_url,
        preview_url=body.preview_url,
        aspect_ratio=body.aspect_ratio,
        order_index=body.order_index or 0,
    )


@router.post("/posts/{post_id}/view")
def record_post_view(post_id: str, engine: EngineDep):
    return {"view_count": content_service.record_post_view(engine, post_id)}


@router.post("/posts/{post_id}/like")
def like_post(post_id: str, engine: EngineDep, viewer: ViewerDep):
    interaction_service.react(engine, "post", post_id, viewer, "like")
    return {"ok": True}


@router.delete("/posts/{post_id}/like")
def unlike_post(post_id: str, engine: EngineDep, viewer: ViewerDep):
    interaction_service.unreact(engine, "post", post_id, viewer, "like")
    return {"ok": True}


@router.get("/users/{user_id}/posts")
def get_posts_by_user(user_id: str, engine: EngineDep, viewer: OptionalViewerDep):
    return feed_service.get_posts_by_user(engine, user_id, viewer)
