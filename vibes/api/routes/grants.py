"""
vibes.api.routes.grants — Grants, submissions, applications
============================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from vibes.api.deps import EngineDep, OptionalViewerDep, ViewerDep
from vibes.services import grant_service

router = APIRouter(tags=["grants"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class GrantCreate(BaseModel):
    title: str
    description: str
    amount: str | None = None
    deadline: datetime | None = None
    requirements: str | None = None
    image_url: str | None = None


class GrantUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    amount: str | None = None
    deadline: datetime | None = None
    requirements: str | None = None
    image_url: str | None = None
    status: str | None = None


class SubmissionCreate(BaseModel):
    project_id: str


class ApplicationCreate(BaseModel):
    pitch: str
    project_url: str | None = None


class ApplicationStatusUpdate(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------
@router.get("/grants")
def list_grants(engine: EngineDep, viewer: OptionalViewerDep):
    return grant_service.list_grants(engine, viewer)


@router.post("/grants", status_code=status.HTTP_201_CREATED)
def create_grant(body: GrantCreate, engine: EngineDep, viewer: ViewerDep):
    return grant_service.create_grant(engine, viewer, **body.model_dump())


@router.get("/grants/{grant_id}")
def get_grant(grant_id: str, engine: EngineDep, viewer: OptionalViewerDep):
    return grant_service.get_grant(engine, grant_id, viewer)


@router.patch("/grants/{grant_id}")
def update_grant(grant_id: str, body: GrantUpdate, engine: EngineDep, viewer: ViewerDep):
    return grant_service.update_grant(
        engine, grant_id, viewer, **body.model_dump(exclude_unset=True)
    )


@router.delete("/grants/{grant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_grant(grant_id: str, engine: EngineDep, viewer: ViewerDep):
    grant_service.delete_grant(engine, grant_id, viewer)


@router.get("/users/{user_id}/grants")
def grants_by_user(user_id: str, engine: EngineDep):
    return grant_service.get_grants_by_user(engine, user_id)


# ---------------------------------------------------------------------------
# Submissions & applications
# ---------------------------------------------------------------------------
@router.post("/grants/{grant_id}/submissions", status_code=status.HTTP_201_CREATED)
def submit(grant_id: str, body: SubmissionCreate, engine: EngineDep, viewer: ViewerDep):
    return grant_service.submit_to_grant(engine, grant_id, body.project_id, viewer)


@router.post("/grants/{grant_id}/applications", status_code=status.HTTP_201_CREATED)
def apply(grant_id: str, body: ApplicationCreate, engine: EngineDep, viewer: ViewerDep):
    return grant_service.apply_to_grant(
        engine, grant_id, viewer, pitch=body.pitch, project_url=body.project_url
    )


@router.get("/grants/{grant_id}/applications")
def grant_applications(grant_id: str, engine: EngineDep, viewer: ViewerDep):
    return grant_service.get_grant_applications(engine, grant_id, viewer)


@router.get("/applications/mine")
def my_applications(engine: EngineDep, viewer: ViewerDep):
    return grant_service.get_user_applications(engine, viewer)


@router.patch("/applications/{application_id}")
def update_application(
    application_id: str, body: ApplicationStatusUpdate, engine: EngineDep, viewer: ViewerDep
):
    return grant_service.update_application_status(engine, application_id, viewer, body.status)
