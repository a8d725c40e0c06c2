"""
vibes.services.messaging_service — Conversations & Direct Messages
===================================================================

Conversation identity is deterministic: the two participant ids are sorted
before any lookup or insert, and ``(user1_id, user2_id)`` is unique, so
``get_or_create_conversation(a, b)`` and ``(b, a)`` always land on the
same row, even when both ends race to create it.

Unread accounting is per viewer: a message is unread for V when
``sender_id != V and not is_read``.  The global badge counts *threads*
with something unread, not messages.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from vibes.constants import PREVIEW_LENGTH
from vibes.database.models import Conversation, Message, MessageType, NotificationType, User, utcnow
from vibes.engine.enrichment import load_user_summaries
from vibes.engine.views import ConversationView, MessageView, UserSummary
from vibes.errors import InvalidActionError, NotFoundError, UnauthorizedError
from vibes.services import notification_service

logger = logging.getLogger(__name__)

# Which URL field a non-text message must carry.
_REQUIRED_PAYLOAD = {
    MessageType.VOICE: "voice_note_url",
    MessageType.IMAGE: "image_url",
    MessageType.FILE: "file_url",
}

_PAYLOAD_PREVIEW = {
    MessageType.VOICE: "Sent a voice note",
    MessageType.IMAGE: "Sent an image",
    MessageType.FILE: "Sent a file",
}


def canonical_pair(a: str, b: str) -> tuple[str, str]:
    """Order two user ids so the smaller one comes first."""
    return (a, b) if a < b else (b, a)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _message_view(msg: Message, sender: UserSummary | None = None) -> MessageView:
    return MessageView(
        id=msg.id,
        conversation_id=msg.conversation_id,
        sender_id=msg.sender_id,
        content=msg.content,
        message_type=msg.message_type,
        voice_note_url=msg.voice_note_url,
        image_url=msg.image_url,
        file_url=msg.file_url,
        file_name=msg.file_name,
        is_read=bool(msg.is_read),
        created_at=msg.created_at,
        sender=sender,
    )


def _conversation_for(session: Session, conversation_id: str, user_id: str) -> Conversation:
    convo = session.get(Conversation, conversation_id)
    if convo is None:
        raise NotFoundError(f"Conversation {conversation_id} not found")
    if not convo.has_participant(user_id):
        raise UnauthorizedError(f"{user_id} is not part of conversation {conversation_id}")
    return convo


def _unread_filter(viewer_id: str):
    return and_(Message.sender_id != viewer_id, Message.is_read.is_(False))


def _conversation_view(
    convo: Conversation,
    viewer_id: str,
    users: dict[str, UserSummary],
    *,
    unread: int = 0,
    last: MessageView | None = None,
) -> ConversationView:
    return ConversationView(
        id=convo.id,
        user1_id=convo.user1_id,
        user2_id=convo.user2_id,
        last_message_at=convo.last_message_at,
        created_at=convo.created_at,
        other_user=users.get(convo.other_participant(viewer_id)),
        unread_count=unread,
        last_message=last,
    )


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------
def get_or_create_conversation(engine: Engine, user_id: str, other_user_id: str) -> ConversationView:
    """Return the conversation between two users, creating it if needed.

    ``other_user`` on the result is always the party that isn't *user_id*.

    Raises
    ------
    InvalidActionError
        If both ids are the same user.
    NotFoundError
        If either participant does not exist.
    """
    if user_id == other_user_id:
        raise InvalidActionError("Cannot start a conversation with yourself")

    user1_id, user2_id = canonical_pair(user_id, other_user_id)
    pair = and_(Conversation.user1_id == user1_id, Conversation.user2_id == user2_id)

    with Session(engine) as session:
        for participant in (other_user_id, user_id):
            if session.get(User, participant) is None:
                raise NotFoundError(f"User {participant} not found")

        convo = session.scalar(select(Conversation).where(pair))
        if convo is None:
            candidate = Conversation(user1_id=user1_id, user2_id=user2_id)
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(candidate)
                    session.flush()
                convo = candidate
                logger.info("Conversation %s opened between %s and %s", convo.id, user1_id, user2_id)
            except IntegrityError:
                # The other side created it first.
                convo = session.scalar(select(Conversation).where(pair))
                if convo is None:
                    raise
        session.commit()

        users = load_user_summaries(session, [other_user_id])
        return _conversation_view(convo, user_id, users)


def list_conversations(engine: Engine, user_id: str) -> list[ConversationView]:
    """The viewer's threads, most recent activity first.

    Each carries the other party's summary, the viewer's unread count and
    the last message.  Four queries regardless of thread count.
    """
    with Session(engine) as session:
        convos = session.scalars(
            select(Conversation)
            .where(or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id))
            .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        ).all()
        if not convos:
            return []
        ids = [c.id for c in convos]

        unread = dict(session.execute(
            select(Message.conversation_id, func.count())
            .where(Message.conversation_id.in_(ids), _unread_filter(user_id))
            .group_by(Message.conversation_id)
        ).all())

        ranked = (
            select(
                Message,
                func.row_number().over(
                    partition_by=Message.conversation_id,
                    order_by=(Message.created_at.desc(), Message.id.desc()),
                ).label("rn"),
            )
            .where(Message.conversation_id.in_(ids))
            .subquery()
        )
        latest_msg = aliased(Message, ranked)
        last = {
            m.conversation_id: _message_view(m)
            for m in session.scalars(select(latest_msg).where(ranked.c.rn == 1)).all()
        }

        users = load_user_summaries(session, (c.other_participant(user_id) for c in convos))
        return [
            _conversation_view(
                c, user_id, users, unread=unread.get(c.id, 0), last=last.get(c.id)
            )
            for c in convos
        ]


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
def get_messages(engine: Engine, conversation_id: str, user_id: str) -> list[MessageView]:
    """A thread, oldest first, with sender summaries.  Participants only."""
    with Session(engine) as session:
        _conversation_for(session, conversation_id, user_id)
        msgs = session.scalars(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at, Message.id)
        ).all()
        senders = load_user_summaries(session, {m.sender_id for m in msgs})
        return [_message_view(m, senders.get(m.sender_id)) for m in msgs]


def send_message(
    engine: Engine,
    conversation_id: str,
    sender_id: str,
    *,
    content: str | None = None,
    message_type: str = MessageType.TEXT,
    voice_note_url: str | None = None,
    image_url: str | None = None,
    file_url: str | None = None,
    file_name: str | None = None,
) -> MessageView:
    """Append a message, advance ``last_message_at`` and notify the recipient.

    Raises
    ------
    NotFoundError
        If the conversation does not exist.
    UnauthorizedError
        If *sender_id* is not one of the two participants.
    InvalidActionError
        If the payload does not match *message_type*.
    """
    try:
        kind = MessageType(message_type)
    except ValueError:
        raise InvalidActionError(f"Unknown message type {message_type!r}") from None
    payload = {
        "voice_note_url": voice_note_url,
        "image_url": image_url,
        "file_url": file_url,
    }
    if kind is MessageType.TEXT and not (content and content.strip()):
        raise InvalidActionError("Text messages need content")
    if kind in _REQUIRED_PAYLOAD and not payload[_REQUIRED_PAYLOAD[kind]]:
        raise InvalidActionError(f"{kind.value} messages need {_REQUIRED_PAYLOAD[kind]}")

    with Session(engine) as session:
        convo = _conversation_for(session, conversation_id, sender_id)
        recipient_id = convo.other_participant(sender_id)

        msg = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=kind.value,
            voice_note_url=voice_note_url,
            image_url=image_url,
            file_url=file_url,
            file_name=file_name,
        )
        session.add(msg)
        session.flush()
        convo.last_message_at = msg.created_at or utcnow()
        session.commit()

        senders = load_user_summaries(session, [sender_id])
        view = _message_view(msg, senders.get(sender_id))

    sender = view.sender
    sender_name = (sender.first_name or sender.username) if sender else None
    notification_service.fan_out(
        engine,
        recipient_id=recipient_id,
        kind=NotificationType.MESSAGE,
        title=f"New message from {sender_name or 'Someone'}",
        message=(content or "")[:PREVIEW_LENGTH] or _PAYLOAD_PREVIEW.get(kind),
        reference_id=conversation_id,
        reference_type="conversation",
        from_user_id=sender_id,
    )
    return view


def mark_read(engine: Engine, conversation_id: str, user_id: str) -> int:
    """Flip every message *user_id* received in the thread to read.

    Messages *user_id* sent are untouched, so the other side's unread
    count is unaffected.  Returns how many messages changed.
    """
    with Session(engine) as session:
        _conversation_for(session, conversation_id, user_id)
        result = session.execute(
            update(Message)
            .where(Message.conversation_id == conversation_id, _unread_filter(user_id))
            .values(is_read=True)
        )
        session.commit()
        return result.rowcount or 0


def unread_count(engine: Engine, conversation_id: str, user_id: str) -> int:
    """Unread messages for *user_id* in one thread."""
    with Session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(Message)
            .where(Message.conversation_id == conversation_id, _unread_filter(user_id))
        ) or 0


def unread_conversation_count(engine: Engine, user_id: str) -> int:
    """How many of *user_id*'s threads contain at least one unread message."""
    with Session(engine) as session:
        return session.scalar(
            select(func.count(func.distinct(Message.conversation_id)))
            .select_from(Message)
            .join(Conversation, Conversation.id == Message.conversation_id)
            .where(
                or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id),
                _unread_filter(user_id),
            )
        ) or 0
