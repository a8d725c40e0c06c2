"""
vibes.api.routes.engagement — Comments & emoji reactions
=========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from vibes.api.deps import EngineDep, OptionalViewerDep, ViewerDep
from vibes.services import content_service, interaction_service

router = APIRouter(tags=["engagement"])


class CommentCreate(BaseModel):
    target_type: str
    target_id: str
    content: str


class ReactionIn(BaseModel):
    emoji: str
    target_type: str
    target_id: str


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
@router.get("/comments")
def list_comments(
    engine: EngineDep,
    target_type: str = Query(...),
    target_id: str = Query(...),
):
    return content_service.list_comments(engine, target_type, target_id)


@router.post("/comments", status_code=status.HTTP_201_CREATED)
def create_comment(body: CommentCreate, engine: EngineDep, viewer: ViewerDep):
    return content_service.create_comment(
        engine, body.target_type, body.target_id, viewer, body.content
    )


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(comment_id: str, engine: EngineDep, viewer: ViewerDep):
    content_service.delete_comment(engine, comment_id, viewer)


# ---------------------------------------------------------------------------
# Emoji reactions
# ---------------------------------------------------------------------------
@router.get("/reactions")
def get_reactions(
    engine: EngineDep,
    viewer: OptionalViewerDep,
    target_type: str = Query(...),
    target_id: str = Query(...),
):
    return interaction_service.get_reactions(engine, target_type, target_id, viewer)


@router.post("/reactions")
def add_reaction(body: ReactionIn, engine: EngineDep, viewer: ViewerDep):
    added = interaction_service.add_reaction(
        engine, viewer, body.emoji, body.target_type, body.target_id
    )
    return {"ok": True, "added": added}


@router.delete("/reactions")
def remove_reaction(
    engine: EngineDep,
    viewer: ViewerDep,
    emoji: str = Query(...),
    target_type: str = Query(...),
    target_id: str = Query(...),
):
    removed = interaction_service.remove_reaction(engine, viewer, emoji, target_type, target_id)
    return {"ok": True, "removed": removed}
