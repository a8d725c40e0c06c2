"""
tests/test_enrichment.py — Batched Enrichment
==============================================
Enrichment is set-based (query count does not grow with page size),
read-only (a missing profile is never written), and tolerant of dangling
references.
"""

from __future__ import annotations

from contextlib import contextmanager

import pytest
from conftest import make_user
from sqlalchemy import event, func, select
from sqlalchemy.orm import Session

from vibes.database.models import (
    Comment,
    Grant,
    GrantApplication,
    Post,
    PostLike,
    PostMedia,
    Profile,
    Project,
    Vote,
)
from vibes.engine import enrichment
from vibes.engine.views import PostView, ProjectView


@pytest.fixture
def engine(db_engine):
    make_user(db_engine, "author", first_name="Ann")
    make_user(db_engine, "viewer")
    return db_engine


@contextmanager
def _count_queries(engine):
    """Collect every statement the engine executes inside the block."""
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", _record)


def _seed_posts(engine, n: int, user_id: str = "author") -> None:
    with Session(engine) as session:
        for i in range(n):
            post = Post(user_id=user_id, content=f"post {i}")
            session.add(post)
            session.flush()
            session.add(PostLike(post_id=post.id, user_id="viewer"))
            session.add(PostMedia(post_id=post.id, media_type="image", media_url=f"/m/{i}"))
        session.commit()


def _seed_projects(engine, n: int, user_id: str = "author") -> list[str]:
    ids = []
    with Session(engine) as session:
        for i in range(n):
            project = Project(user_id=user_id, title=f"P{i}", description="d")
            session.add(project)
            session.flush()
            session.add(Vote(target_type="project", target_id=project.id, user_id="viewer", value=1))
            ids.append(project.id)
        session.commit()
    return ids


class TestSetBasedQueries:
    def test_post_query_count_independent_of_page_size(self, engine):
        """Enriching 1 post and 40 posts costs the same number of queries."""
        _seed_posts(engine, 40)

        with Session(engine) as session:
            one = session.scalars(select(Post).limit(1)).all()
            with _count_queries(engine) as small:
                enrichment.enrich_posts(session, one, "viewer")

        with Session(engine) as session:
            many = session.scalars(select(Post)).all()
            with _count_queries(engine) as large:
                views = enrichment.enrich_posts(session, many, "viewer")

        assert len(views) == 40
        assert len(small) == len(large)

    def test_project_query_count_independent_of_page_size(self, engine):
        _seed_projects(engine, 25)

        with Session(engine) as session:
            one = session.scalars(select(Project).limit(1)).all()
            with _count_queries(engine) as small:
                enrichment.enrich_projects(session, one, "viewer")

        with Session(engine) as session:
            many = session.scalars(select(Project)).all()
            with _count_queries(engine) as large:
                enrichment.enrich_projects(session, many, "viewer")

        assert len(small) == len(large)

    def test_anonymous_viewer_skips_viewer_queries(self, engine):
        """Without a viewer, fewer queries run and every flag is False."""
        _seed_posts(engine, 3)
        with Session(engine) as session:
            posts = session.scalars(select(Post)).all()
            with _count_queries(engine) as anon:
                views = enrichment.enrich_posts(session, posts)
            with _count_queries(engine) as named:
                enrichment.enrich_posts(session, posts, "viewer")

        assert len(anon) == len(named) - 1
        assert all(v.has_liked is False for v in views)
        assert all(v.like_count == 1 for v in views)

    def test_empty_page_runs_no_queries(self, engine):
        with Session(engine) as session:
            with _count_queries(engine) as statements:
                assert enrichment.enrich_posts(session, [], "viewer") == []
                assert enrichment.enrich_projects(session, [], "viewer") == []
        assert statements == []


class TestPostEnrichment:
    def test_counts_flags_and_media(self, engine):
        _seed_posts(engine, 1)
        with Session(engine) as session:
            post = session.scalars(select(Post)).one()
            session.add(Comment(target_type="post", target_id=post.id, user_id="viewer", content="nice"))
            session.commit()
            [view] = enrichment.enrich_posts(session, [post], "viewer")

        assert isinstance(view, PostView)
        assert view.type == "post"
        assert view.like_count == 1
        assert view.comment_count == 1
        assert view.has_liked is True
        assert [m.media_url for m in view.media] == ["/m/0"]
        assert view.author.first_name == "Ann"
        assert view.author.username == "author"

    def test_media_follow_order_index(self, engine):
        with Session(engine) as session:
            post = Post(user_id="author", content="gallery")
            session.add(post)
            session.flush()
            session.add_all([
                PostMedia(post_id=post.id, media_type="image", media_url="/b", order_index=2),
                PostMedia(post_id=post.id, media_type="image", media_url="/a", order_index=1),
            ])
            session.commit()
            media = enrichment.media_for(session, [post.id])[post.id]
        assert [m.media_url for m in media] == ["/a", "/b"]


class TestProjectEnrichment:
    def test_vote_counts_and_flags(self, engine):
        [pid] = _seed_projects(engine, 1)
        with Session(engine) as session:
            session.add(Vote(target_type="project", target_id=pid, user_id="author", value=-1))
            session.commit()
            project = session.get(Project, pid)
            [view] = enrichment.enrich_projects(session, [project], "viewer")
            [anon] = enrichment.enrich_projects(session, [project])

        assert isinstance(view, ProjectView)
        assert (view.upvote_count, view.downvote_count) == (1, 1)
        assert view.has_upvoted is True
        assert view.has_downvoted is False
        assert anon.has_upvoted is False


class TestReadOnlyAndDangling:
    def test_missing_profile_gets_transient_defaults(self, engine):
        """A user without a profile gets defaults and nothing is written."""
        make_user(engine, "bare", first_name="Bea", with_profile=False)
        with Session(engine) as session:
            post = Post(user_id="bare", content="hi")
            session.add(post)
            session.commit()
            [view] = enrichment.enrich_posts(session, [post])

        assert view.author.first_name == "Bea"
        assert view.author.username is None
        assert view.author.skills == []
        with Session(engine) as session:
            assert session.get(Profile, "bare") is None

    def test_unknown_author_yields_none(self, engine):
        with Session(engine) as session:
            post = Post(user_id="ghost", content="orphan")
            session.add(post)
            session.commit()
            [view] = enrichment.enrich_posts(session, [post])
        assert view.author is None

    def test_dangling_ids_have_zero_counts(self, engine):
        """Counts for ids with no rows (e.g. a deleted entity) are absent, so zero."""
        with Session(engine) as session:
            assert enrichment.vote_counts(session, "project", ["gone"]) == {}
            assert enrichment.comment_counts(session, "project", ["gone"]) == {}
            assert enrichment.like_counts(session, ["gone"]) == {}
            assert enrichment.load_authors(session, ["ghost", None]) == {}


class TestDispatch:
    def test_enrich_grant_counts(self, engine):
        with Session(engine) as session:
            grant = Grant(user_id="author", title="Fund", description="d")
            session.add(grant)
            session.flush()
            session.add(GrantApplication(grant_id=grant.id, user_id="viewer", pitch="me"))
            session.commit()
            view = enrichment.enrich(session, grant, "viewer")
        assert view.application_count == 1
        assert view.has_applied is True
        assert view.has_submitted is False

    def test_enrich_rejects_unknown_type(self, db_session):
        with pytest.raises(TypeError):
            enrichment.enrich(db_session, object())

    def test_user_summaries(self, engine):
        with Session(engine) as session:
            summaries = enrichment.load_user_summaries(session, ["author", "ghost"])
        assert set(summaries) == {"author"}
        assert summaries["author"].username == "author"
        assert summaries["author"].first_name == "Ann"

    def test_enrichment_writes_nothing(self, engine):
        make_user(engine, "bare", with_profile=False)
        with Session(engine) as session:
            enrichment.load_authors(session, ["author", "viewer", "bare"])
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Profile)) == 2
