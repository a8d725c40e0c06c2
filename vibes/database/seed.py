"""
vibes.database.seed — News-Bot Account Provisioning
====================================================

The external news ingester posts as a dedicated account.  Its id is a
configured value (``news_bot_user_id`` in ``config.yaml``); this module makes
sure the matching user and profile rows exist.

Idempotent — existing rows are left untouched apart from the bot flag.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from vibes.constants import NEWS_BOT_EMAIL, NEWS_BOT_USERNAME
from vibes.database.engine import get_session
from vibes.database.models import Profile, User

logger = logging.getLogger(__name__)


def ensure_news_bot_user(engine: Engine, user_id: str) -> str:
    """Create the news-bot user + profile if missing and return its id."""
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            email_taken = session.scalar(
                select(User.id).where(User.email == NEWS_BOT_EMAIL)
            )
            user = User(
                id=user_id,
                email=None if email_taken else NEWS_BOT_EMAIL,
                first_name="Vibes",
                last_name="News",
            )
            session.add(user)
            session.flush()
            logger.info("Seeded news-bot user %s", user_id)

        profile = session.get(Profile, user_id)
        if profile is None:
            username_taken = session.scalar(
                select(Profile.user_id).where(Profile.username == NEWS_BOT_USERNAME)
            )
            session.add(Profile(
                user_id=user_id,
                username=None if username_taken else NEWS_BOT_USERNAME,
                bio="Curated news for builders.",
                is_news_bot=True,
            ))
        elif not profile.is_news_bot:
            profile.is_news_bot = True

    return user_id
