"""
vibes.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for community identity and feed/story tuning.
Secrets and infrastructure (``DATABASE_URL``, ``JWT_SECRET``) come from the
environment instead.

Usage::

    from vibes.config import load_config

    cfg = load_config()           # reads ./config.yaml by default
    print(cfg.community_name)     # "Vibes"
    print(cfg.story_ttl)          # datetime.timedelta(days=1)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import yaml

from vibes.constants import FEED_PAGE_SIZE, FEED_PER_KIND_LIMIT, STORY_TTL


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class VibesConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # API
    api_port: int

    # Feed
    feed_page_size: int = FEED_PAGE_SIZE
    feed_per_kind_limit: int = FEED_PER_KIND_LIMIT

    # Stories
    story_ttl_hours: int = int(STORY_TTL.total_seconds() // 3600)

    # Account that the external news ingester posts as.
    news_bot_user_id: str | None = None

    @property
    def story_ttl(self) -> timedelta:
        return timedelta(hours=self.story_ttl_hours)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> VibesConfig:
    """Read *path* and return a :class:`VibesConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return VibesConfig(
        community_name=raw["community_name"],
        api_port=int(raw["api_port"]),
        feed_page_size=int(raw.get("feed_page_size", FEED_PAGE_SIZE)),
        feed_per_kind_limit=int(raw.get("feed_per_kind_limit", FEED_PER_KIND_LIMIT)),
        story_ttl_hours=int(
            raw.get("story_ttl_hours", STORY_TTL.total_seconds() // 3600)
        ),
        news_bot_user_id=(
            str(raw["news_bot_user_id"]) if raw.get("news_bot_user_id") else None
        ),
    )
