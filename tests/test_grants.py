"""
tests/test_grants.py — Grants, Submissions & Applications
==========================================================
One submission and one application per user and grant; only the grant
owner reviews applications, and each status change notifies the
applicant.
"""

from __future__ import annotations

import pytest
from conftest import make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from vibes.database.models import GrantApplication, GrantSubmission, Notification, Project
from vibes.errors import DuplicateError, InvalidActionError, NotFoundError, UnauthorizedError
from vibes.services import grant_service


@pytest.fixture
def engine(db_engine):
    make_user(db_engine, "funder", first_name="Fiona")
    make_user(db_engine, "builder", first_name="Ben")
    make_user(db_engine, "rival")
    return db_engine


def _grant(engine, owner: str = "funder", title: str = "Climate Fund") -> str:
    return grant_service.create_grant(
        engine, owner, title=title, description="Money for builders", amount="$5k",
    ).id


def _project(engine, owner: str = "builder") -> str:
    with Session(engine) as session:
        project = Project(user_id=owner, title="Solar", description="d")
        session.add(project)
        session.commit()
        return project.id


def _notes(engine) -> list[Notification]:
    with Session(engine) as session:
        return list(session.scalars(select(Notification).order_by(Notification.created_at)).all())


class TestGrantCrud:
    def test_create_defaults_to_open(self, engine):
        view = grant_service.get_grant(engine, _grant(engine))
        assert view.status == "open"
        assert view.author.first_name == "Fiona"
        assert view.submission_count == 0

    def test_update_by_owner(self, engine):
        gid = _grant(engine)
        view = grant_service.update_grant(engine, gid, "funder", status="closed", amount="$10k")
        assert view.status == "closed"
        assert view.amount == "$10k"

    def test_update_rejects_bad_status(self, engine):
        gid = _grant(engine)
        with pytest.raises(InvalidActionError):
            grant_service.update_grant(engine, gid, "funder", status="paused")

    def test_update_by_stranger_rejected(self, engine):
        gid = _grant(engine)
        with pytest.raises(UnauthorizedError):
            grant_service.update_grant(engine, gid, "builder", title="Mine now")

    def test_delete_cascades(self, engine):
        gid = _grant(engine)
        grant_service.submit_to_grant(engine, gid, _project(engine), "builder")
        grant_service.apply_to_grant(engine, gid, "rival", pitch="pick me")
        grant_service.delete_grant(engine, gid, "funder")

        with Session(engine) as session:
            assert session.scalars(select(GrantSubmission)).all() == []
            assert session.scalars(select(GrantApplication)).all() == []
            assert session.scalars(select(Notification)).all() == []
        with pytest.raises(NotFoundError):
            grant_service.get_grant(engine, gid)

    def test_listings(self, engine):
        _grant(engine, title="A")
        _grant(engine, owner="rival", title="B")
        assert {g.title for g in grant_service.list_grants(engine)} == {"A", "B"}
        assert [g.title for g in grant_service.get_grants_by_user(engine, "rival")] == ["B"]


class TestSubmissions:
    def test_submit_own_project(self, engine):
        gid = _grant(engine)
        pid = _project(engine)
        sub = grant_service.submit_to_grant(engine, gid, pid, "builder")
        assert sub["project_id"] == pid
        assert sub["status"] == "pending"
        view = grant_service.get_grant(engine, gid, viewer_id="builder")
        assert view.submission_count == 1
        assert view.has_submitted is True

    def test_second_submission_is_duplicate(self, engine):
        gid = _grant(engine)
        pid = _project(engine)
        grant_service.submit_to_grant(engine, gid, pid, "builder")
        with pytest.raises(DuplicateError):
            grant_service.submit_to_grant(engine, gid, _project(engine), "builder")

    def test_cannot_submit_someone_elses_project(self, engine):
        gid = _grant(engine)
        with pytest.raises(UnauthorizedError):
            grant_service.submit_to_grant(engine, gid, _project(engine, "builder"), "rival")

    def test_missing_grant_or_project(self, engine):
        gid = _grant(engine)
        with pytest.raises(NotFoundError):
            grant_service.submit_to_grant(engine, "nope", _project(engine), "builder")
        with pytest.raises(NotFoundError):
            grant_service.submit_to_grant(engine, gid, "nope", "builder")


class TestApplications:
    def test_apply_notifies_owner(self, engine):
        gid = _grant(engine, title="Climate Fund")
        app = grant_service.apply_to_grant(engine, gid, "builder", pitch="Solar for all")
        assert app["status"] == "pending"

        [note] = _notes(engine)
        assert note.user_id == "funder"
        assert note.type == "application"
        assert note.title == "New grant application"
        assert note.message == 'Ben applied to "Climate Fund"'
        assert note.reference_id == gid
        assert note.reference_type == "grant"

    def test_second_application_is_duplicate(self, engine):
        gid = _grant(engine)
        grant_service.apply_to_grant(engine, gid, "builder", pitch="one")
        with pytest.raises(DuplicateError):
            grant_service.apply_to_grant(engine, gid, "builder", pitch="two")

    def test_only_owner_lists_applications(self, engine):
        gid = _grant(engine)
        grant_service.apply_to_grant(engine, gid, "builder", pitch="p")
        [app] = grant_service.get_grant_applications(engine, gid, "funder")
        assert app["user"].id == "builder"
        with pytest.raises(UnauthorizedError):
            grant_service.get_grant_applications(engine, gid, "builder")

    def test_user_applications_include_grant(self, engine):
        gid = _grant(engine, title="Climate Fund")
        grant_service.apply_to_grant(engine, gid, "builder", pitch="p")
        [app] = grant_service.get_user_applications(engine, "builder")
        assert app["grant"].title == "Climate Fund"
        assert app["grant"].has_applied is True
        assert grant_service.get_user_applications(engine, "rival") == []


class TestApplicationStatus:
    def test_status_change_notifies_applicant(self, engine):
        gid = _grant(engine, title="Climate Fund")
        app = grant_service.apply_to_grant(engine, gid, "builder", pitch="p")
        result = grant_service.update_application_status(engine, app["id"], "funder", "accepted")
        assert result["status"] == "accepted"

        note = _notes(engine)[-1]
        assert note.user_id == "builder"
        assert note.type == "application_update"
        assert note.title == "Your application was accepted"

    def test_unchanged_status_does_not_notify(self, engine):
        gid = _grant(engine)
        app = grant_service.apply_to_grant(engine, gid, "builder", pitch="p")
        grant_service.update_application_status(engine, app["id"], "funder", "pending")
        assert len(_notes(engine)) == 1

    def test_only_owner_can_review(self, engine):
        gid = _grant(engine)
        app = grant_service.apply_to_grant(engine, gid, "builder", pitch="p")
        with pytest.raises(UnauthorizedError):
            grant_service.update_application_status(engine, app["id"], "builder", "accepted")

    def test_bad_status_and_missing_application(self, engine):
        with pytest.raises(InvalidActionError):
            grant_service.update_application_status(engine, "any", "funder", "maybe")
        with pytest.raises(NotFoundError):
            grant_service.update_application_status(engine, "missing", "funder", "rejected")
