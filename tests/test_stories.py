"""
tests/test_stories.py — 24h Stories
====================================
Visibility is decided at query time from ``expires_at``; the reaper only
reclaims rows that are already invisible.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import make_user
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vibes.database.models import Follow, Story
from vibes.errors import NotFoundError, UnauthorizedError
from vibes.services import story_service

T = datetime(2026, 5, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def engine(db_engine):
    for uid in ("viewer", "friend", "stranger"):
        make_user(db_engine, uid)
    with Session(db_engine) as session:
        session.add(Follow(follower_id="viewer", following_id="friend"))
        session.commit()
    return db_engine


def _story(engine, user_id: str, *, at: datetime = T, url: str = "/s.jpg") -> str:
    return story_service.create_story(
        engine, user_id, media_type="image", media_url=url, now=at,
    ).id


class TestExpiry:
    def test_expires_at_is_created_plus_ttl(self, engine):
        view = story_service.create_story(
            engine, "friend", media_type="image", media_url="/a.jpg", now=T,
        )
        assert view.expires_at - view.created_at == timedelta(hours=24)

    def test_visible_just_before_expiry(self, engine):
        _story(engine, "friend")
        groups = story_service.get_stories(engine, "viewer", now=T + timedelta(hours=23, minutes=59))
        assert len(groups) == 1
        assert groups[0].story_count == 1

    def test_gone_just_after_expiry(self, engine):
        _story(engine, "friend")
        groups = story_service.get_stories(engine, "viewer", now=T + timedelta(hours=24, minutes=1))
        assert groups == []

    def test_custom_ttl(self, engine):
        story_service.create_story(
            engine, "friend", media_type="image", media_url="/a.jpg",
            now=T, ttl=timedelta(hours=1),
        )
        assert story_service.get_stories(engine, "viewer", now=T + timedelta(minutes=59))
        assert not story_service.get_stories(engine, "viewer", now=T + timedelta(minutes=61))


class TestGrouping:
    def test_audience_is_followees_and_self(self, engine):
        _story(engine, "friend")
        _story(engine, "viewer")
        _story(engine, "stranger")

        groups = story_service.get_stories(engine, "viewer", now=T + timedelta(hours=1))
        assert {g.user.id for g in groups} == {"friend", "viewer"}

    def test_groups_by_newest_story_and_plays_oldest_first(self, engine):
        _story(engine, "viewer", at=T, url="/v1")
        _story(engine, "friend", at=T + timedelta(minutes=10), url="/f1")
        _story(engine, "friend", at=T + timedelta(minutes=20), url="/f2")
        _story(engine, "viewer", at=T + timedelta(minutes=30), url="/v2")

        groups = story_service.get_stories(engine, "viewer", now=T + timedelta(hours=1))
        assert [g.user.id for g in groups] == ["viewer", "friend"]
        assert [s.media_url for s in groups[0].stories] == ["/v1", "/v2"]
        assert [s.media_url for s in groups[1].stories] == ["/f1", "/f2"]
        assert [g.story_count for g in groups] == [2, 2]

    def test_stories_by_user(self, engine):
        _story(engine, "friend", at=T, url="/old")
        _story(engine, "friend", at=T + timedelta(minutes=5), url="/new")
        _story(engine, "friend", at=T - timedelta(days=2), url="/expired")

        stories = story_service.get_stories_by_user(engine, "friend", now=T + timedelta(hours=1))
        assert [s.media_url for s in stories] == ["/new", "/old"]
        assert [s.view_count for s in stories] == [0, 0]


class TestDeleteAndPurge:
    def test_only_author_can_delete(self, engine):
        sid = _story(engine, "friend")
        with pytest.raises(UnauthorizedError):
            story_service.delete_story(engine, sid, "viewer")
        story_service.delete_story(engine, sid, "friend")
        with pytest.raises(NotFoundError):
            story_service.delete_story(engine, sid, "friend")

    def test_purge_removes_only_expired(self, engine):
        _story(engine, "friend", at=T - timedelta(days=3))
        _story(engine, "friend", at=T - timedelta(days=2))
        live = _story(engine, "friend", at=T)

        assert story_service.purge_expired_stories(engine, now=T + timedelta(hours=1)) == 2
        with Session(engine) as session:
            assert session.scalars(select(Story.id)).all() == [live]

    def test_purge_runs_in_batches(self, engine, monkeypatch):
        monkeypatch.setattr(story_service, "BATCH_SIZE", 2)
        for i in range(5):
            _story(engine, "friend", at=T - timedelta(days=2, minutes=i))

        assert story_service.purge_expired_stories(engine, now=T) == 5
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Story)) == 0

    def test_purge_with_nothing_expired(self, engine):
        _story(engine, "friend")
        assert story_service.purge_expired_stories(engine, now=T) == 0
