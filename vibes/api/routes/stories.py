"""
vibes.api.routes.stories — 24h stories
=======================================
"""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel

from vibes.api.deps import ConfigDep, EngineDep, ViewerDep
from vibes.services import story_service

router = APIRouter(tags=["stories"])


class StoryCreate(BaseModel):
    media_type: str
    media_url: str
    preview_url: str | None = None


@router.get("/stories")
def get_stories(engine: EngineDep, viewer: ViewerDep):
    return story_service.get_stories(engine, viewer)


@router.post("/stories", status_code=status.HTTP_201_CREATED)
def create_story(body: StoryCreate, engine: EngineDep, viewer: ViewerDep, cfg: ConfigDep):
    return story_service.create_story(engine, viewer, ttl=cfg.story_ttl, **body.model_dump())


@router.get("/users/{user_id}/stories")
def stories_by_user(user_id: str, engine: EngineDep):
    return story_service.get_stories_by_user(engine, user_id)


@router.delete("/stories/{story_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_story(story_id: str, engine: EngineDep, viewer: ViewerDep):
    story_service.delete_story(engine, story_id, viewer)
