"""Application settings loaded from environment variables."""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """TaskPulse configuration. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/taskpulse.db"))

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")
    tick_cron: str = Field(default="* * * * *")
    tick_concurrency: int = Field(default=10, ge=1)
    tick_max_instances: int = Field(default=2, ge=1)

    # Keepalive
    keepalive_default_timeout_ms: int = Field(default=30000, ge=1)

    # Notifications
    notification_timeout_seconds: float = Field(default=30.0, gt=0)
    default_notification_title: str = Field(default="System Notification")
    notifyx_api_url: str = Field(default="https://www.notifyx.cn/api/v1/send")
    resend_api_url: str = Field(default="https://api.resend.com/emails")
    webhook_user_agent: str = Field(default="TaskPulse-Notification-Service/1.0")

    # Alerting
    failure_lookback: int = Field(default=100, ge=1)

    # Execution log retention
    log_retention_days: int = Field(default=30, ge=1)
    log_cleanup_cron: str = Field(default="0 3 * * *")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
