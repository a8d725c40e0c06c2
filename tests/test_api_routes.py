"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Exercises the REST surface against the in-memory database:

- bearer-token guards (401 on missing/invalid tokens)
- service errors mapped to 400/403/404/409
- basic response shapes of the main flows
"""

from __future__ import annotations

import pytest
from conftest import auth, make_user


@pytest.fixture
def users(db_engine):
    make_user(db_engine, "alice", first_name="Alice")
    make_user(db_engine, "bob", first_name="Bob")
    return db_engine


# ===========================================================================
# Health & auth guards
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestAuthGuards:
    PROTECTED_GET_ENDPOINTS = [
        "/api/feed",
        "/api/notifications",
        "/api/notifications/unread-count",
        "/api/conversations",
        "/api/messages/unread-count",
        "/api/stories",
        "/api/projects/mine",
        "/api/applications/mine",
    ]

    @pytest.mark.parametrize("endpoint", PROTECTED_GET_ENDPOINTS)
    def test_rejects_no_auth(self, client, endpoint):
        assert client.get(endpoint).status_code == 401

    @pytest.mark.parametrize("endpoint", PROTECTED_GET_ENDPOINTS)
    def test_rejects_invalid_token(self, client, endpoint):
        resp = client.get(endpoint, headers={"Authorization": "Bearer invalid"})
        assert resp.status_code == 401

    def test_optional_viewer_rejects_bad_token(self, client):
        """Anonymous reads are fine, but a broken token is still refused."""
        assert client.get("/api/projects").status_code == 200
        resp = client.get("/api/projects", headers={"Authorization": "Bearer invalid"})
        assert resp.status_code == 401


# ===========================================================================
# Posts & feed
# ===========================================================================
class TestPostsAndFeed:
    def test_create_post_and_read_feed(self, client, users):
        resp = client.post("/api/posts", json={"content": "hello"}, headers=auth("alice"))
        assert resp.status_code == 201
        post = resp.json()
        assert post["type"] == "post"
        assert post["author"]["first_name"] == "Alice"

        client.post("/api/users/alice/follow", headers=auth("bob"))
        feed = client.get("/api/feed", headers=auth("bob")).json()
        assert [item["id"] for item in feed] == [post["id"]]

    def test_empty_post_is_400(self, client, users):
        resp = client.post("/api/posts", json={}, headers=auth("alice"))
        assert resp.status_code == 400

    def test_like_flag_in_payload(self, client, users):
        post_id = client.post("/api/posts", json={"content": "x"}, headers=auth("alice")).json()["id"]
        assert client.post(f"/api/posts/{post_id}/like", headers=auth("bob")).status_code == 200
        body = client.get(f"/api/posts/{post_id}", headers=auth("bob")).json()
        assert body["like_count"] == 1
        assert body["has_liked"] is True
        anon = client.get(f"/api/posts/{post_id}").json()
        assert anon["has_liked"] is False

    def test_author_payload_omits_email(self, client, users):
        post_id = client.post("/api/posts", json={"content": "x"}, headers=auth("alice")).json()["id"]
        author = client.get(f"/api/posts/{post_id}").json()["author"]
        assert author["id"] == "alice"
        assert "email" not in author

    def test_delete_someone_elses_post_is_403(self, client, users):
        post_id = client.post("/api/posts", json={"content": "x"}, headers=auth("alice")).json()["id"]
        assert client.delete(f"/api/posts/{post_id}", headers=auth("bob")).status_code == 403
        assert client.delete(f"/api/posts/{post_id}", headers=auth("alice")).status_code == 204
        assert client.get(f"/api/posts/{post_id}").status_code == 404


# ===========================================================================
# Projects & votes
# ===========================================================================
class TestProjects:
    def test_vote_switch_via_api(self, client, users):
        resp = client.post(
            "/api/projects",
            json={"title": "Rocket", "description": "Goes up", "tags": ["space"]},
            headers=auth("alice"),
        )
        assert resp.status_code == 201
        pid = resp.json()["id"]

        client.post(f"/api/projects/{pid}/upvote", headers=auth("bob"))
        client.post(f"/api/projects/{pid}/downvote", headers=auth("bob"))
        body = client.get(f"/api/projects/{pid}", headers=auth("bob")).json()
        assert body["upvote_count"] == 0
        assert body["downvote_count"] == 1
        assert body["has_downvoted"] is True

    def test_unknown_project_is_404(self, client, users):
        resp = client.post("/api/projects/missing/upvote", headers=auth("bob"))
        assert resp.status_code == 404
        assert "not found" in resp.json()["detail"]

    def test_unknown_kind_is_422(self, client, users):
        assert client.post("/api/projects/any/like", headers=auth("bob")).status_code == 422


# ===========================================================================
# Social, messaging, notifications
# ===========================================================================
class TestSocial:
    def test_profile_and_follow_counts(self, client, users):
        client.post("/api/users/alice/follow", headers=auth("bob"))
        client.post("/api/users/alice/follow", headers=auth("bob"))
        body = client.get("/api/profiles/alice", headers=auth("bob")).json()
        assert body["follower_count"] == 1
        assert body["is_following"] is True

    def test_follow_unknown_user_is_404(self, client, users):
        assert client.post("/api/users/ghost/follow", headers=auth("bob")).status_code == 404

    def test_follow_from_unknown_account_is_404(self, client, users):
        resp = client.post("/api/users/alice/follow", headers=auth("ghost"))
        assert resp.status_code == 404

    def test_taken_username_is_409(self, client, users):
        resp = client.put("/api/profile", json={"username": "alice"}, headers=auth("bob"))
        assert resp.status_code == 409


class TestMessaging:
    def test_conversation_flow(self, client, users):
        convo = client.post(
            "/api/conversations", json={"user_id": "bob"}, headers=auth("alice"),
        ).json()
        resp = client.post(
            f"/api/conversations/{convo['id']}/messages",
            json={"content": "hi"},
            headers=auth("alice"),
        )
        assert resp.status_code == 201

        assert client.get("/api/messages/unread-count", headers=auth("bob")).json() == {"count": 1}
        notes = client.get("/api/notifications", headers=auth("bob")).json()
        assert notes[0]["title"] == "New message from Alice"

        client.post(f"/api/conversations/{convo['id']}/read", headers=auth("bob"))
        assert client.get("/api/messages/unread-count", headers=auth("bob")).json() == {"count": 0}

    def test_self_conversation_is_400(self, client, users):
        resp = client.post("/api/conversations", json={"user_id": "alice"}, headers=auth("alice"))
        assert resp.status_code == 400

    def test_outsider_cannot_read_thread(self, client, users):
        make_user(users, "eve")
        convo = client.post(
            "/api/conversations", json={"user_id": "bob"}, headers=auth("alice"),
        ).json()
        resp = client.get(f"/api/conversations/{convo['id']}/messages", headers=auth("eve"))
        assert resp.status_code == 403


class TestNotifications:
    def test_mark_all_read(self, client, users):
        client.post("/api/users/bob/follow", headers=auth("alice"))
        assert client.get("/api/notifications/unread-count", headers=auth("bob")).json() == {"count": 1}
        assert client.post("/api/notifications/read-all", headers=auth("bob")).json() == {"marked": 1}
        assert client.get("/api/notifications/unread-count", headers=auth("bob")).json() == {"count": 0}


# ===========================================================================
# Stories, grants, engagement
# ===========================================================================
class TestStories:
    def test_post_and_list_story(self, client, users):
        resp = client.post(
            "/api/stories",
            json={"media_type": "image", "media_url": "/s.jpg"},
            headers=auth("alice"),
        )
        assert resp.status_code == 201
        groups = client.get("/api/stories", headers=auth("alice")).json()
        assert len(groups) == 1
        assert groups[0]["story_count"] == 1
        assert groups[0]["user"]["id"] == "alice"


class TestGrants:
    def test_duplicate_application_is_409(self, client, users):
        gid = client.post(
            "/api/grants", json={"title": "Fund", "description": "d"}, headers=auth("alice"),
        ).json()["id"]
        first = client.post(
            f"/api/grants/{gid}/applications", json={"pitch": "me"}, headers=auth("bob"),
        )
        assert first.status_code == 201
        second = client.post(
            f"/api/grants/{gid}/applications", json={"pitch": "me again"}, headers=auth("bob"),
        )
        assert second.status_code == 409


class TestEngagement:
    def test_comments_and_reactions(self, client, users):
        pid = client.post(
            "/api/projects", json={"title": "R", "description": "d"}, headers=auth("alice"),
        ).json()["id"]
        resp = client.post(
            "/api/comments",
            json={"target_type": "project", "target_id": pid, "content": "great"},
            headers=auth("bob"),
        )
        assert resp.status_code == 201
        comments = client.get(
            "/api/comments", params={"target_type": "project", "target_id": pid},
        ).json()
        assert [c["content"] for c in comments] == ["great"]

        reaction = {"emoji": "🔥", "target_type": "project", "target_id": pid}
        assert client.post("/api/reactions", json=reaction, headers=auth("bob")).json()["added"] is True
        groups = client.get(
            "/api/reactions", params={"target_type": "project", "target_id": pid},
            headers=auth("bob"),
        ).json()
        assert groups[0]["count"] == 1
        assert groups[0]["has_reacted"] is True

        removed = client.delete("/api/reactions", params=reaction, headers=auth("bob")).json()
        assert removed["removed"] is True

    def test_stats(self, client, users):
        assert client.get("/api/stats").json() == {
            "project_count": 0,
            "user_count": 2,
            "grant_count": 0,
        }
