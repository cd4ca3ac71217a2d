"""Tests for Settings configuration model."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config import Settings


class TestDefaults:
    def test_scheduler_defaults(self):
        s = Settings()
        assert s.tick_cron == "* * * * *"
        assert s.scheduler_timezone == "UTC"
        assert s.tick_concurrency == 10

    def test_keepalive_timeout_default(self):
        assert Settings().keepalive_default_timeout_ms == 30000

    def test_database_path_default(self):
        assert Settings().database_path == Path("data/taskpulse.db")

    def test_alerting_defaults(self):
        s = Settings()
        assert s.failure_lookback == 100
        assert s.log_retention_days == 30


    def test_env_ignored_under_pytest(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TICK_CRON", "0 0 * * *")
        assert Settings().tick_cron == "* * * * *"

class TestOverrides:
    def test_init_override(self):
        s = Settings(tick_cron="*/5 * * * *", scheduler_timezone="Asia/Shanghai")
        assert s.tick_cron == "*/5 * * * *"
        assert s.scheduler_timezone == "Asia/Shanghai"

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValidationError):
            Settings(tick_concurrency=0)

    def test_rejects_zero_timeout(self):
        with pytest.raises(ValidationError):
            Settings(keepalive_default_timeout_ms=0)


class TestLogLevel:
    def test_lowercase_normalized(self):
        assert Settings(log_level="info").log_level == "INFO"

    def test_surrounding_whitespace(self):
        assert Settings(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")
