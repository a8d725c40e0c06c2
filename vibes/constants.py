"""
vibes.constants — Policy Constants
===================================

Defaults used when no :class:`~vibes.config.VibesConfig` overrides them.
"""

from __future__ import annotations

from datetime import timedelta

# Stories are visible for exactly this long after creation.
STORY_TTL = timedelta(hours=24)

# Feed composition: newest N of each kind, then merged and cut to a page.
FEED_PER_KIND_LIMIT = 30
FEED_PAGE_SIZE = 50

# Global listings (latest posts, projects, resources).
LIST_LIMIT = 50

SEARCH_LIMIT = 20

USERNAME_MAX_BASE = 20

# Notification previews are cut to this many characters.
PREVIEW_LENGTH = 100

NEWS_BOT_EMAIL = "news@vibes.bot"
NEWS_BOT_USERNAME = "vibesnews"
