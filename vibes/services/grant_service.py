"""
vibes.services.grant_service — Grants, Submissions & Applications
==================================================================

A grant accepts two kinds of entry:

- a **submission** attaches one of the entrant's existing projects;
- an **application** is a free-form pitch.

A user holds at most one of each per grant.  The check lives here rather
than in a database constraint; a second attempt raises
:class:`~vibes.errors.DuplicateError`.

Only the grant owner sees applications and moves them between
``pending``, ``accepted`` and ``rejected``; each change notifies the
applicant.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from vibes.database.engine import get_session
from vibes.database.models import (
    ApplicationStatus,
    Grant,
    GrantApplication,
    GrantStatus,
    GrantSubmission,
    NotificationType,
    Project,
    User,
)
from vibes.engine.enrichment import enrich_grants, load_authors
from vibes.engine.views import GrantView
from vibes.errors import DuplicateError, InvalidActionError, NotFoundError, UnauthorizedError
from vibes.services import notification_service

logger = logging.getLogger(__name__)

_GRANT_FIELDS = frozenset({
    "title",
    "description",
    "amount",
    "deadline",
    "requirements",
    "image_url",
    "status",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _owned_grant(session: Session, grant_id: str, user_id: str) -> Grant:
    grant = session.get(Grant, grant_id)
    if grant is None:
        raise NotFoundError(f"Grant {grant_id} not found")
    if grant.user_id != user_id:
        raise UnauthorizedError(f"Grant {grant_id} does not belong to {user_id}")
    return grant


def _check_status(status: str) -> None:
    if status not in {s.value for s in GrantStatus}:
        raise InvalidActionError(f"Unknown grant status {status!r}")


def _application_dict(app: GrantApplication) -> dict:
    return {
        "id": app.id,
        "grant_id": app.grant_id,
        "user_id": app.user_id,
        "pitch": app.pitch,
        "project_url": app.project_url,
        "status": app.status,
        "created_at": app.created_at,
    }


def _submission_dict(sub: GrantSubmission) -> dict:
    return {
        "id": sub.id,
        "grant_id": sub.grant_id,
        "project_id": sub.project_id,
        "user_id": sub.user_id,
        "status": sub.status,
        "is_winner": bool(sub.is_winner),
        "created_at": sub.created_at,
    }


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------
def create_grant(
    engine: Engine,
    user_id: str,
    *,
    title: str,
    description: str,
    amount: str | None = None,
    deadline: datetime | None = None,
    requirements: str | None = None,
    image_url: str | None = None,
) -> GrantView:
    with get_session(engine) as session:
        grant = Grant(
            user_id=user_id,
            title=title,
            description=description,
            amount=amount,
            deadline=deadline,
            requirements=requirements,
            image_url=image_url,
            status=GrantStatus.OPEN.value,
        )
        session.add(grant)
        session.flush()
        logger.info("Grant %s (%r) created by %s", grant.id, title, user_id)
        return enrich_grants(session, [grant], user_id)[0]


def update_grant(engine: Engine, grant_id: str, user_id: str, **fields) -> GrantView:
    """Apply editable fields to a grant (owner only); unknown keys are ignored."""
    if "status" in fields:
        _check_status(fields["status"])
    with get_session(engine) as session:
        grant = _owned_grant(session, grant_id, user_id)
        for key, value in fields.items():
            if key in _GRANT_FIELDS:
                setattr(grant, key, value)
        session.flush()
        return enrich_grants(session, [grant], user_id)[0]


def delete_grant(engine: Engine, grant_id: str, user_id: str) -> None:
    """Delete a grant with its submissions, applications and notifications."""
    with get_session(engine) as session:
        grant = _owned_grant(session, grant_id, user_id)
        session.execute(delete(GrantSubmission).where(GrantSubmission.grant_id == grant_id))
        session.execute(delete(GrantApplication).where(GrantApplication.grant_id == grant_id))
        notification_service.delete_for_reference(session, "grant", grant_id)
        session.delete(grant)
    logger.info("Grant %s deleted by %s", grant_id, user_id)


def list_grants(engine: Engine, viewer_id: str | None = None) -> list[GrantView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Grant).order_by(Grant.created_at.desc(), Grant.id.desc())
        ).all()
        return enrich_grants(session, rows, viewer_id)


def get_grant(engine: Engine, grant_id: str, viewer_id: str | None = None) -> GrantView:
    with Session(engine) as session:
        grant = session.get(Grant, grant_id)
        if grant is None:
            raise NotFoundError(f"Grant {grant_id} not found")
        return enrich_grants(session, [grant], viewer_id)[0]


def get_grants_by_user(engine: Engine, user_id: str) -> list[GrantView]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Grant)
            .where(Grant.user_id == user_id)
            .order_by(Grant.created_at.desc(), Grant.id.desc())
        ).all()
        return enrich_grants(session, rows, user_id)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------
def submit_to_grant(engine: Engine, grant_id: str, project_id: str, user_id: str) -> dict:
    """Enter one of *user_id*'s projects into a grant.

    Raises
    ------
    NotFoundError
        If the grant or project does not exist.
    UnauthorizedError
        If the project belongs to someone else.
    DuplicateError
        If *user_id* already has a submission for this grant.
    """
    with get_session(engine) as session:
        if session.get(Grant, grant_id) is None:
            raise NotFoundError(f"Grant {grant_id} not found")
        project = session.get(Project, project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        if project.user_id != user_id:
            raise UnauthorizedError(f"Project {project_id} does not belong to {user_id}")

        existing = session.scalar(
            select(GrantSubmission.id).where(
                GrantSubmission.grant_id == grant_id, GrantSubmission.user_id == user_id
            )
        )
        if existing is not None:
            raise DuplicateError(f"{user_id} already submitted to grant {grant_id}")

        sub = GrantSubmission(grant_id=grant_id, project_id=project_id, user_id=user_id)
        session.add(sub)
        session.flush()
        logger.info("Project %s submitted to grant %s by %s", project_id, grant_id, user_id)
        return _submission_dict(sub)


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------
def apply_to_grant(
    engine: Engine,
    grant_id: str,
    user_id: str,
    *,
    pitch: str,
    project_url: str | None = None,
) -> dict:
    """File a pitch for a grant and notify the grant owner.

    Raises
    ------
    NotFoundError
        If the grant or the applicant does not exist.
    DuplicateError
        If *user_id* already applied.
    """
    with get_session(engine) as session:
        grant = session.get(Grant, grant_id)
        if grant is None:
            raise NotFoundError(f"Grant {grant_id} not found")
        applicant = session.get(User, user_id)
        if applicant is None:
            raise NotFoundError(f"User {user_id} not found")
        existing = session.scalar(
            select(GrantApplication.id).where(
                GrantApplication.grant_id == grant_id, GrantApplication.user_id == user_id
            )
        )
        if existing is not None:
            raise DuplicateError(f"{user_id} already applied to grant {grant_id}")

        app = GrantApplication(
            grant_id=grant_id, user_id=user_id, pitch=pitch, project_url=project_url,
        )
        session.add(app)
        session.flush()
        result = _application_dict(app)
        owner_id, title = grant.user_id, grant.title
        applicant_name = applicant.first_name or "Someone"

    logger.info("%s applied to grant %s", user_id, grant_id)
    notification_service.fan_out(
        engine,
        recipient_id=owner_id,
        kind=NotificationType.APPLICATION,
        title="New grant application",
        message=f'{applicant_name} applied to "{title}"',
        reference_id=grant_id,
        reference_type="grant",
        from_user_id=user_id,
    )
    return result


def get_grant_applications(engine: Engine, grant_id: str, user_id: str) -> list[dict]:
    """All applications to a grant, newest first, with applicant details.

    Only the grant owner may list them.
    """
    with Session(engine) as session:
        _owned_grant(session, grant_id, user_id)
        apps = session.scalars(
            select(GrantApplication)
            .where(GrantApplication.grant_id == grant_id)
            .order_by(GrantApplication.created_at.desc(), GrantApplication.id.desc())
        ).all()
        applicants = load_authors(session, (a.user_id for a in apps))
        return [
            {**_application_dict(a), "user": applicants.get(a.user_id)}
            for a in apps
        ]


def get_user_applications(engine: Engine, user_id: str) -> list[dict]:
    """*user_id*'s own applications, newest first, each with its grant."""
    with Session(engine) as session:
        apps = session.scalars(
            select(GrantApplication)
            .where(GrantApplication.user_id == user_id)
            .order_by(GrantApplication.created_at.desc(), GrantApplication.id.desc())
        ).all()
        grant_ids = {a.grant_id for a in apps}
        grants = {
            g.id: g for g in session.scalars(select(Grant).where(Grant.id.in_(grant_ids))).all()
        } if grant_ids else {}
        views = {
            v.id: v for v in enrich_grants(session, list(grants.values()), user_id)
        }
        return [
            {**_application_dict(a), "grant": views.get(a.grant_id)}
            for a in apps
        ]


def update_application_status(
    engine: Engine, application_id: str, user_id: str, status: str
) -> dict:
    """Move an application to *status* and notify the applicant.

    Raises
    ------
    NotFoundError
        If the application does not exist.
    UnauthorizedError
        If *user_id* does not own the grant.
    InvalidActionError
        If *status* is not pending, accepted or rejected.
    """
    try:
        new_status = ApplicationStatus(status)
    except ValueError:
        raise InvalidActionError(f"Unknown application status {status!r}") from None

    with get_session(engine) as session:
        app = session.get(GrantApplication, application_id)
        if app is None:
            raise NotFoundError(f"Application {application_id} not found")
        grant = session.get(Grant, app.grant_id)
        if grant is None or grant.user_id != user_id:
            raise UnauthorizedError(f"{user_id} does not own the grant for {application_id}")

        changed = app.status != new_status.value
        app.status = new_status.value
        session.flush()
        result = _application_dict(app)
        applicant_id, grant_id, title = app.user_id, grant.id, grant.title

    if changed:
        logger.info("Application %s → %s by %s", application_id, new_status.value, user_id)
        notification_service.fan_out(
            engine,
            recipient_id=applicant_id,
            kind=NotificationType.APPLICATION_UPDATE,
            title=f"Your application was {new_status.value}",
            message=f'Your application to "{title}" has been {new_status.value}',
            reference_id=grant_id,
            reference_type="grant",
            from_user_id=user_id,
        )
    return result
