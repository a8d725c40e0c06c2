"""
vibes.api.routes.notifications — Recipient-scoped inbox
========================================================
"""

from __future__ import annotations

from fastapi import APIRouter

from vibes.api.deps import EngineDep, ViewerDep
from vibes.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(engine: EngineDep, viewer: ViewerDep):
    return notification_service.list_notifications(engine, viewer)


@router.get("/unread-count")
def unread_count(engine: EngineDep, viewer: ViewerDep):
    return {"count": notification_service.unread_count(engine, viewer)}


@router.post("/read-all")
def mark_all_read(engine: EngineDep, viewer: ViewerDep):
    return {"marked": notification_service.mark_all_read(engine, viewer)}


@router.post("/{notification_id}/read")
def mark_read(notification_id: str, engine: EngineDep, viewer: ViewerDep):
    return {"ok": notification_service.mark_read(engine, notification_id, viewer)}
