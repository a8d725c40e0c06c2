"""
vibes.api.routes.projects — Project & resource endpoints
=========================================================

Votes and bookmarks share one pair of verbs:
``POST /projects/{id}/{kind}`` applies, ``DELETE`` removes, where ``kind``
is ``upvote``, ``downvote`` or ``bookmark``.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from vibes.api.deps import EngineDep, OptionalViewerDep, ViewerDep
from vibes.services import content_service, interaction_service

router = APIRouter(tags=["projects"])

VoteKind = Literal["upvote", "downvote", "bookmark"]


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProjectCreate(BaseModel):
    title: str
    description: str
    demo_url: str | None = None
    github_url: str | None = None
    image_url: str | None = None
    voice_note_url: str | None = None
    tags: list[str] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    demo_url: str | None = None
    github_url: str | None = None
    image_url: str | None = None
    voice_note_url: str | None = None
    tags: list[str] | None = None


class ResourceCreate(BaseModel):
    title: str
    description: str
    url: str
    category: str
    type: str = "article"
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------
@router.get("/projects")
def list_projects(engine: EngineDep, viewer: OptionalViewerDep):
    return content_service.list_projects(engine, viewer)


@router.get("/projects/featured")
def featured_projects(engine: EngineDep, viewer: OptionalViewerDep):
    return content_service.get_featured_projects(engine, viewer)


@router.get("/projects/mine")
def my_projects(engine: EngineDep, viewer: ViewerDep):
    return content_service.get_projects_mine(engine, viewer)


@router.get("/projects/bookmarked")
def bookmarked_projects(engine: EngineDep, viewer: ViewerDep):
    return interaction_service.get_bookmarked_projects(engine, viewer)


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(body: ProjectCreate, engine: EngineDep, viewer: ViewerDep):
    return content_service.create_project(engine, viewer, **body.model_dump())


@router.get("/projects/{project_id}")
def get_project(project_id: str, engine: EngineDep, viewer: OptionalViewerDep):
    return content_service.get_project(engine, project_id, viewer)


@router.patch("/projects/{project_id}")
def update_project(project_id: str, body: ProjectUpdate, engine: EngineDep, viewer: ViewerDep):
    return content_service.update_project(
        engine, project_id, viewer, **body.model_dump(exclude_unset=True)
    )


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: str, engine: EngineDep, viewer: ViewerDep):
    content_service.delete_project(engine, project_id, viewer)


@router.post("/projects/{project_id}/{kind}")
def react_to_project(project_id: str, kind: VoteKind, engine: EngineDep, viewer: ViewerDep):
    interaction_service.react(engine, "project", project_id, viewer, kind)
    return {"ok": True}


@router.delete("/projects/{project_id}/{kind}")
def unreact_to_project(project_id: str, kind: VoteKind, engine: EngineDep, viewer: ViewerDep):
    interaction_service.unreact(engine, "project", project_id, viewer, kind)
    return {"ok": True}


@router.get("/users/{user_id}/projects")
def projects_by_user(user_id: str, engine: EngineDep, viewer: OptionalViewerDep):
    return content_service.get_projects_by_user(engine, user_id, viewer)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------
@router.get("/resources")
def list_resources(engine: EngineDep, viewer: OptionalViewerDep):
    return content_service.list_resources(engine, viewer)


@router.get("/resources/bookmarked")
def bookmarked_resources(engine: EngineDep, viewer: ViewerDep):
    return interaction_service.get_bookmarked_resources(engine, viewer)


@router.post("/resources", status_code=status.HTTP_201_CREATED)
def create_resource(body: ResourceCreate, engine: EngineDep, viewer: ViewerDep):
    data = body.model_dump()
    data["resource_type"] = data.pop("type")
    return content_service.create_resource(engine, viewer, **data)


@router.post("/resources/{resource_id}/{kind}")
def react_to_resource(resource_id: str, kind: VoteKind, engine: EngineDep, viewer: ViewerDep):
    interaction_service.react(engine, "resource", resource_id, viewer, kind)
    return {"ok": True}


@router.delete("/resources/{resource_id}/{kind}")
def unreact_to_resource(resource_id: str, kind: VoteKind, engine: EngineDep, viewer: ViewerDep):
    interaction_service.unreact(engine, "resource", resource_id, viewer, kind)
    return {"ok": True}


@router.get("/users/{user_id}/resources")
def resources_by_user(user_id: str, engine: EngineDep):
    return content_service.get_resources_by_user(engine, user_id)
