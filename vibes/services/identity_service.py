"""
vibes.services.identity_service — Users & Profiles
===================================================

Users arrive from the auth provider; :func:`upsert_user` records them and
**explicitly** provisions their profile in the same transaction, so read
paths never have to create rows.  The profile page
(:func:`get_profile_with_user`) keeps a lazy fallback for accounts that
predate explicit provisioning.

Usernames are derived from the user's name or email and made unique with a
numeric suffix (``adalovelace``, ``adalovelace1`` …).  The unique constraint
on ``profiles.username`` is the final arbiter under concurrency.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import Engine, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vibes.constants import SEARCH_LIMIT, USERNAME_MAX_BASE
from vibes.database.engine import get_session
from vibes.database.models import Follow, Grant, GrantStatus, Profile, Project, User
from vibes.engine.views import AuthorView, ProfileView
from vibes.errors import DuplicateError, NotFoundError

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")

_PROFILE_FIELDS = frozenset({
    "username",
    "bio",
    "skills",
    "tools",
    "twitter_url",
    "github_url",
    "website_url",
    "linkedin_url",
    "profile_image_url",
})


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def upsert_user(
    engine: Engine,
    user_id: str,
    *,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    profile_image_url: str | None = None,
) -> User:
    """Insert or update a user and make sure a profile exists for it."""
    with Session(engine, expire_on_commit=False) as session:
        user = session.get(User, user_id)
        if user is None:
            user = User(
                id=user_id,
                email=email,
                first_name=first_name,
                last_name=last_name,
                profile_image_url=profile_image_url,
            )
            session.add(user)
            session.flush()
            logger.info("Created user %s", user_id)
        else:
            user.email = email
            user.first_name = first_name
            user.last_name = last_name
            user.profile_image_url = profile_image_url

        ensure_profile(session, user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
    return user


def get_user(engine: Engine, user_id: str) -> User | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.get(User, user_id)


def search_users(engine: Engine, query: str, *, limit: int = SEARCH_LIMIT) -> list[AuthorView]:
    """Case-insensitive substring match on username, email and names."""
    term = f"%{query.strip().lower()}%"
    with Session(engine) as session:
        rows = session.execute(
            select(User, Profile)
            .outerjoin(Profile, Profile.user_id == User.id)
            .where(or_(
                Profile.username.ilike(term),
                User.email.ilike(term),
                User.first_name.ilike(term),
                User.last_name.ilike(term),
            ))
            .order_by(User.id)
            .limit(limit)
        ).all()
        return [AuthorView.from_rows(user, profile) for user, profile in rows]


# ---------------------------------------------------------------------------
# Usernames
# ---------------------------------------------------------------------------
def _username_base(user: User) -> str:
    if user.first_name and user.last_name:
        raw = f"{user.first_name}{user.last_name}"
    elif user.first_name:
        raw = user.first_name
    elif user.email:
        raw = user.email.split("@")[0]
    else:
        raw = "user"
    return _NON_ALNUM.sub("", raw.lower())[:USERNAME_MAX_BASE] or "user"


def generate_unique_username(session: Session, user: User) -> str:
    """Derive a username for *user* that no profile currently holds."""
    base = _username_base(user)
    taken = set(session.scalars(
        select(Profile.username).where(Profile.username.like(f"{base}%"))
    ).all())
    if base not in taken:
        return base
    counter = 1
    while f"{base}{counter}" in taken:
        counter += 1
    return f"{base}{counter}"


def is_username_available(
    engine: Engine, username: str, *, exclude_user_id: str | None = None
) -> bool:
    with Session(engine) as session:
        stmt = select(Profile.user_id).where(Profile.username == username)
        if exclude_user_id:
            stmt = stmt.where(Profile.user_id != exclude_user_id)
        return session.scalar(stmt) is None


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------
def ensure_profile(session: Session, user: User) -> Profile:
    """Return *user*'s profile, creating it with a generated username if absent.

    The insert runs under a SAVEPOINT; losing a username race retries with a
    fresh candidate.
    """
    profile = session.get(Profile, user.id)
    if profile is not None:
        return profile

    for _attempt in range(3):
        candidate = Profile(
            user_id=user.id,
            username=generate_unique_username(session, user),
            skills=[],
            tools=[],
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(candidate)
                session.flush()
        except IntegrityError:
            existing = session.get(Profile, user.id)
            if existing is not None:
                return existing
            continue
        logger.info("Provisioned profile for %s (@%s)", user.id, candidate.username)
        return candidate

    raise DuplicateError(f"Could not allocate a username for user {user.id}")


def get_profile(engine: Engine, user_id: str) -> Profile | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.get(Profile, user_id)


def get_profile_with_user(
    engine: Engine, user_id: str, viewer_id: str | None = None
) -> ProfileView:
    """Profile page payload with follower/following counts.

    ``is_following`` is only ever true for a viewer other than the owner.

    Raises
    ------
    NotFoundError
        If the user does not exist.
    """
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        profile = ensure_profile(session, user)

        follower_count = session.scalar(
            select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
        ) or 0
        following_count = session.scalar(
            select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
        ) or 0
        is_following = False
        if viewer_id and viewer_id != user_id:
            is_following = session.get(Follow, (viewer_id, user_id)) is not None

        return ProfileView(
            author=AuthorView.from_rows(user, profile),
            twitter_url=profile.twitter_url,
            github_url=profile.github_url,
            website_url=profile.website_url,
            linkedin_url=profile.linkedin_url,
            follower_count=follower_count,
            following_count=following_count,
            is_following=is_following,
        )


def upsert_profile(engine: Engine, user_id: str, **fields) -> Profile:
    """Create or update *user_id*'s profile with the given editable fields.

    Unknown keys are ignored.  Staff, admin and bot flags are not editable
    here.

    Raises
    ------
    NotFoundError
        If the user does not exist.
    DuplicateError
        If the requested username belongs to another user.
    """
    data = {k: v for k, v in fields.items() if k in _PROFILE_FIELDS}
    username = data.get("username")
    if username is not None and not is_username_available(
        engine, username, exclude_user_id=user_id
    ):
        raise DuplicateError(f"Username {username!r} is already taken")

    with Session(engine, expire_on_commit=False) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        profile = ensure_profile(session, user)
        for key, value in data.items():
            setattr(profile, key, value)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise DuplicateError(f"Username {username!r} is already taken") from None
        session.refresh(profile)
    logger.info("Updated profile for %s (%s)", user_id, ", ".join(sorted(data)) or "no fields")
    return profile


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
def get_stats(engine: Engine) -> dict[str, int]:
    """Landing-page counters: projects, users, open grants."""
    with Session(engine) as session:
        project_count = session.scalar(select(func.count()).select_from(Project)) or 0
        user_count = session.scalar(select(func.count()).select_from(User)) or 0
        grant_count = session.scalar(
            select(func.count()).select_from(Grant).where(Grant.status == GrantStatus.OPEN)
        ) or 0
    return {
        "project_count": project_count,
        "user_count": user_count,
        "grant_count": grant_count,
    }
