"""
tests/test_config.py — Configuration, Engine Factory & News-Bot Seeding
========================================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import make_user
from sqlalchemy.orm import Session

from vibes.config import VibesConfig, load_config
from vibes.database import engine as engine_mod
from vibes.database.engine import create_db_engine, init_db
from vibes.database.models import Profile, User
from vibes.database.seed import ensure_news_bot_user


class TestLoadConfig:
    def test_loads_full_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "community_name: Builders\n"
            "api_port: 9000\n"
            "feed_per_kind_limit: 10\n"
            "feed_page_size: 15\n"
            "story_ttl_hours: 12\n"
            "news_bot_user_id: bot-1\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.community_name == "Builders"
        assert cfg.api_port == 9000
        assert cfg.feed_per_kind_limit == 10
        assert cfg.feed_page_size == 15
        assert cfg.story_ttl == timedelta(hours=12)
        assert cfg.news_bot_user_id == "bot-1"

    def test_defaults_for_optional_keys(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("community_name: Vibes\napi_port: 8000\n", encoding="utf-8")
        cfg = load_config(path)
        assert cfg.feed_per_kind_limit == 30
        assert cfg.feed_page_size == 50
        assert cfg.story_ttl == timedelta(hours=24)
        assert cfg.news_bot_user_id is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "absent.yaml")

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("community_name: Vibes\n", encoding="utf-8")
        with pytest.raises(KeyError):
            load_config(path)

    def test_config_is_frozen(self):
        cfg = VibesConfig(community_name="x", api_port=1)
        with pytest.raises(AttributeError):
            cfg.api_port = 2


class TestEngineFactory:
    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_db_engine()

    def test_statement_timeout_from_env(self, monkeypatch):
        monkeypatch.setenv("DB_STATEMENT_TIMEOUT_MS", "2500")
        assert engine_mod._statement_timeout_ms() == 2500

    def test_invalid_statement_timeout_falls_back(self, monkeypatch):
        monkeypatch.setenv("DB_STATEMENT_TIMEOUT_MS", "soon")
        assert engine_mod._statement_timeout_ms() == engine_mod.DEFAULT_STATEMENT_TIMEOUT_MS

    def test_file_database(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'vibes.db'}")
        init_db(engine, news_bot_user_id="bot")
        with Session(engine) as session:
            assert session.get(User, "bot") is not None
        engine.dispose()


class TestNewsBotSeed:
    def test_creates_user_and_profile(self, db_engine):
        assert ensure_news_bot_user(db_engine, "bot") == "bot"
        with Session(db_engine) as session:
            user = session.get(User, "bot")
            profile = session.get(Profile, "bot")
            assert user.email == "news@vibes.bot"
            assert profile.username == "vibesnews"
            assert profile.is_news_bot is True

    def test_idempotent(self, db_engine):
        ensure_news_bot_user(db_engine, "bot")
        ensure_news_bot_user(db_engine, "bot")
        with Session(db_engine) as session:
            assert session.query(User).count() == 1
            assert session.query(Profile).count() == 1

    def test_flags_existing_account(self, db_engine):
        make_user(db_engine, "bot", username="newsdesk")
        ensure_news_bot_user(db_engine, "bot")
        with Session(db_engine) as session:
            profile = session.get(Profile, "bot")
            assert profile.is_news_bot is True
            assert profile.username == "newsdesk"

    def test_avoids_username_collision(self, db_engine):
        make_user(db_engine, "someone", username="vibesnews")
        ensure_news_bot_user(db_engine, "bot")
        with Session(db_engine) as session:
            assert session.get(Profile, "bot").username is None
