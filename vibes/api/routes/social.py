"""
vibes.api.routes.social — Profiles, follows, search, stats
===========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel

from vibes.api.deps import EngineDep, OptionalViewerDep, ViewerDep
from vibes.services import identity_service, social_graph_service

router = APIRouter(tags=["social"])


class ProfileUpdate(BaseModel):
    username: str | None = None
    bio: str | None = None
    skills: list[str] | None = None
    tools: list[str] | None = None
    twitter_url: str | None = None
    github_url: str | None = None
    website_url: str | None = None
    linkedin_url: str | None = None
    profile_image_url: str | None = None


def _profile_dict(profile) -> dict:
    return {
        "user_id": profile.user_id,
        "username": profile.username,
        "bio": profile.bio,
        "skills": list(profile.skills or []),
        "tools": list(profile.tools or []),
        "twitter_url": profile.twitter_url,
        "github_url": profile.github_url,
        "website_url": profile.website_url,
        "linkedin_url": profile.linkedin_url,
        "profile_image_url": profile.profile_image_url,
    }


# ---------------------------------------------------------------------------
# GET /stats
# ---------------------------------------------------------------------------
@router.get("/stats")
def get_stats(engine: EngineDep):
    return identity_service.get_stats(engine)


# ---------------------------------------------------------------------------
# Users & profiles
# ---------------------------------------------------------------------------
@router.get("/users/search")
def search_users(engine: EngineDep, q: str = Query(..., min_length=1)):
    return identity_service.search_users(engine, q)


@router.get("/username-available")
def username_available(engine: EngineDep, viewer: OptionalViewerDep, username: str = Query(...)):
    available = identity_service.is_username_available(
        engine, username, exclude_user_id=viewer
    )
    return {"username": username, "available": available}


@router.get("/profiles/{user_id}")
def get_profile(user_id: str, engine: EngineDep, viewer: OptionalViewerDep):
    return identity_service.get_profile_with_user(engine, user_id, viewer)


@router.put("/profile")
def update_profile(body: ProfileUpdate, engine: EngineDep, viewer: ViewerDep):
    profile = identity_service.upsert_profile(
        engine, viewer, **body.model_dump(exclude_unset=True)
    )
    return _profile_dict(profile)


# ---------------------------------------------------------------------------
# Follows
# ---------------------------------------------------------------------------
@router.post("/users/{user_id}/follow")
def follow(user_id: str, engine: EngineDep, viewer: ViewerDep):
    social_graph_service.follow(engine, viewer, user_id)
    return {"ok": True}


@router.delete("/users/{user_id}/follow")
def unfollow(user_id: str, engine: EngineDep, viewer: ViewerDep):
    social_graph_service.unfollow(engine, viewer, user_id)
    return {"ok": True}


@router.get("/users/{user_id}/followers")
def followers(user_id: str, engine: EngineDep):
    return social_graph_service.get_followers(engine, user_id)


@router.get("/users/{user_id}/following")
def following(user_id: str, engine: EngineDep):
    return social_graph_service.get_following(engine, user_id)
