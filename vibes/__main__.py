"""
vibes.__main__ — Entry point for ``python -m vibes``
=====================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine, ensure tables exist and provision the
   news-bot account.
4. Either serve the API (default) or run the story reaper once.

Run with::

    python -m vibes                 # serve on cfg.api_port
    python -m vibes purge-stories   # delete expired stories and exit
"""

from __future__ import annotations

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

from vibes.config import load_config
from vibes.database.engine import create_db_engine, init_db
from vibes.services.story_service import purge_expired_stories

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt="%H:%M:%S")
logger = logging.getLogger("vibes")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="vibes")
    parser.add_argument("command", nargs="?", default="serve", choices=["serve", "purge-stories"])
    args = parser.parse_args(argv)

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine, news_bot_user_id=cfg.news_bot_user_id)

    if args.command == "purge-stories":
        removed = purge_expired_stories(engine)
        logger.info("Removed %d expired stories", removed)
        return

    # 4. API (blocks until Ctrl+C or SIGTERM).
    uvicorn.run("vibes.api.main:app", host="0.0.0.0", port=cfg.api_port)


if __name__ == "__main__":
    main()
