"""
tests/test_unknown_actors.py — Writes by Users That Don't Exist
================================================================
Runs against SQLite with foreign keys enforced, like PostgreSQL.  An
acting user without a ``users`` row is a 404, never a silent no-op that
looks like an idempotent repeat.
"""

from __future__ import annotations

import pytest
from conftest import make_user
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vibes.database.models import (
    Bookmark,
    Conversation,
    EmojiReaction,
    Follow,
    GrantApplication,
    PostLike,
    Vote,
)
from vibes.errors import NotFoundError
from vibes.services import (
    content_service,
    grant_service,
    interaction_service,
    messaging_service,
    social_graph_service,
)


@pytest.fixture
def engine(fk_engine):
    make_user(fk_engine, "alice", first_name="Alice")
    make_user(fk_engine, "bob", first_name="Bob")
    return fk_engine


def _count(engine, model) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model))


class TestFollow:
    def test_unknown_follower_raises(self, engine):
        with pytest.raises(NotFoundError, match="ghost"):
            social_graph_service.follow(engine, "ghost", "alice")
        assert _count(engine, Follow) == 0

    def test_repeat_follow_still_idempotent(self, engine):
        assert social_graph_service.follow(engine, "bob", "alice") is True
        assert social_graph_service.follow(engine, "bob", "alice") is False
        assert _count(engine, Follow) == 1


class TestReact:
    @pytest.mark.parametrize(
        ("kind", "model"),
        [("upvote", Vote), ("downvote", Vote), ("bookmark", Bookmark)],
    )
    def test_unknown_user_on_project(self, engine, kind, model):
        pid = content_service.create_project(engine, "alice", title="Rocket", description="d").id
        with pytest.raises(NotFoundError, match="ghost"):
            interaction_service.react(engine, "project", pid, "ghost", kind)
        assert _count(engine, model) == 0

    def test_unknown_user_like(self, engine):
        post_id = content_service.create_post(engine, "alice", content="hi").id
        with pytest.raises(NotFoundError):
            interaction_service.react(engine, "post", post_id, "ghost", "like")
        assert _count(engine, PostLike) == 0

    def test_unknown_user_emoji(self, engine):
        pid = content_service.create_project(engine, "alice", title="Rocket", description="d").id
        with pytest.raises(NotFoundError):
            interaction_service.add_reaction(engine, "ghost", "🔥", "project", pid)
        assert _count(engine, EmojiReaction) == 0

    def test_repeat_vote_still_idempotent(self, engine):
        pid = content_service.create_project(engine, "alice", title="Rocket", description="d").id
        assert interaction_service.react(engine, "project", pid, "bob", "upvote") is True
        assert interaction_service.react(engine, "project", pid, "bob", "upvote") is False
        assert interaction_service.react(engine, "project", pid, "bob", "downvote") is True
        assert _count(engine, Vote) == 1


class TestConversation:
    def test_unknown_initiator_raises(self, engine):
        with pytest.raises(NotFoundError, match="ghost"):
            messaging_service.get_or_create_conversation(engine, "ghost", "alice")
        assert _count(engine, Conversation) == 0

    def test_unknown_recipient_raises(self, engine):
        with pytest.raises(NotFoundError, match="ghost"):
            messaging_service.get_or_create_conversation(engine, "alice", "ghost")

    def test_known_pair_still_works(self, engine):
        convo = messaging_service.get_or_create_conversation(engine, "bob", "alice")
        assert convo.other_user.id == "alice"


class TestGrantApplication:
    def test_unknown_applicant_raises(self, engine):
        gid = grant_service.create_grant(engine, "alice", title="Fund", description="d").id
        with pytest.raises(NotFoundError, match="ghost"):
            grant_service.apply_to_grant(engine, gid, "ghost", pitch="me")
        assert _count(engine, GrantApplication) == 0
