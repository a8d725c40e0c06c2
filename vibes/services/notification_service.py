"""
vibes.services.notification_service — Notification Fan-out & Inbox
===================================================================

Write side: :func:`fan_out` appends one notification for one recipient.
It is called **after** the triggering transaction has committed, in its own
session, and never raises: a failed notification is logged and dropped so
the primary action (upvote, follow, message …) is never rolled back.

Read side: newest-first inbox with the sender snippet resolved in one
batched query, unread count, and recipient-scoped read flags.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, func, select, update
from sqlalchemy.orm import Session

from vibes.database.engine import get_session
from vibes.database.models import Notification
from vibes.engine.enrichment import load_user_summaries
from vibes.engine.views import NotificationView

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------
def fan_out(
    engine: Engine,
    *,
    recipient_id: str,
    kind: str,
    title: str,
    message: str | None = None,
    reference_id: str | None = None,
    reference_type: str | None = None,
    from_user_id: str | None = None,
) -> str | None:
    """Append one notification; return its id, or ``None`` if skipped/failed.

    A user is never notified about their own action.
    """
    if from_user_id is not None and from_user_id == recipient_id:
        return None

    try:
        with get_session(engine) as session:
            note = Notification(
                user_id=recipient_id,
                type=str(kind),
                title=title,
                message=message,
                reference_id=reference_id,
                reference_type=reference_type,
                from_user_id=from_user_id,
            )
            session.add(note)
            session.flush()
            note_id = note.id
    except Exception:
        logger.exception(
            "Notification fan-out failed (kind=%s recipient=%s ref=%s:%s)",
            kind, recipient_id, reference_type, reference_id,
        )
        return None

    logger.debug("Notified %s (%s) ref=%s:%s", recipient_id, kind, reference_type, reference_id)
    return note_id


def delete_for_reference(session: Session, reference_type: str, reference_id: str) -> int:
    """Remove every notification pointing at a deleted entity.

    Runs inside the caller's session so it commits with the delete.
    """
    result = session.execute(
        delete(Notification).where(
            Notification.reference_type == reference_type,
            Notification.reference_id == reference_id,
        )
    )
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------
def list_notifications(
    engine: Engine, user_id: str, *, limit: int = DEFAULT_PAGE_SIZE
) -> list[NotificationView]:
    """Return the recipient's notifications, newest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).all()
        senders = load_user_summaries(session, (n.from_user_id for n in rows))
        return [
            NotificationView(
                id=n.id,
                type=n.type,
                title=n.title,
                message=n.message,
                reference_id=n.reference_id,
                reference_type=n.reference_type,
                is_read=bool(n.is_read),
                created_at=n.created_at,
                from_user=senders.get(n.from_user_id) if n.from_user_id else None,
            )
            for n in rows
        ]


def unread_count(engine: Engine, user_id: str) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        ) or 0


def mark_read(engine: Engine, notification_id: str, user_id: str) -> bool:
    """Flip one notification to read.

    Scoped to the recipient: marking someone else's notification is a
    no-op and returns ``False``.
    """
    with get_session(engine) as session:
        result = session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True)
        )
        return bool(result.rowcount)


def mark_all_read(engine: Engine, user_id: str) -> int:
    """Flip every unread notification of *user_id*; return how many changed."""
    with get_session(engine) as session:
        result = session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        changed = result.rowcount or 0
    if changed:
        logger.info("Marked %d notifications read for %s", changed, user_id)
    return changed
