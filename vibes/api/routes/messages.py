"""
vibes.api.routes.messages — Conversations & direct messages
============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel

from vibes.api.deps import EngineDep, ViewerDep
from vibes.services import messaging_service

router = APIRouter(tags=["messages"])


class ConversationOpen(BaseModel):
    user_id: str


class MessageSend(BaseModel):
    content: str | None = None
    message_type: str = "text"
    voice_note_url: str | None = None
    image_url: str | None = None
    file_url: str | None = None
    file_name: str | None = None


@router.get("/conversations")
def list_conversations(engine: EngineDep, viewer: ViewerDep):
    return messaging_service.list_conversations(engine, viewer)


@router.post("/conversations")
def open_conversation(body: ConversationOpen, engine: EngineDep, viewer: ViewerDep):
    return messaging_service.get_or_create_conversation(engine, viewer, body.user_id)


@router.get("/conversations/{conversation_id}/messages")
def get_messages(conversation_id: str, engine: EngineDep, viewer: ViewerDep):
    return messaging_service.get_messages(engine, conversation_id, viewer)


@router.post(
    "/conversations/{conversation_id}/messages",
    status_code=status.HTTP_201_CREATED,
)
def send_message(conversation_id: str, body: MessageSend, engine: EngineDep, viewer: ViewerDep):
    return messaging_service.send_message(
        engine, conversation_id, viewer, **body.model_dump()
    )


@router.post("/conversations/{conversation_id}/read")
def mark_read(conversation_id: str, engine: EngineDep, viewer: ViewerDep):
    return {"marked": messaging_service.mark_read(engine, conversation_id, viewer)}


@router.get("/messages/unread-count")
def unread_conversations(engine: EngineDep, viewer: ViewerDep):
    return {"count": messaging_service.unread_conversation_count(engine, viewer)}
