"""
Configuration management for Pronote Notification Bot.

Loads and validates all required environment variables with clear error messages.
Uses Pydantic Settings for type safety and validation.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pronote_bot.models import MarksPeriod


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pronote credentials are required. Every notification channel is
    optional; a channel is enabled as soon as its credentials are set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Pronote Configuration
    pronote_url: str = Field(
        ...,
        description="URL of the Pronote instance (eleve.html page)"
    )
    pronote_username: str = Field(
        ...,
        description="Pronote login username"
    )
    pronote_password: str = Field(
        ...,
        description="Pronote login password"
    )
    pronote_ent: str = Field(
        default="none",
        description="Name of the pronotepy.ent function to log in through, 'none' for direct login"
    )

    # Notification channels
    discord_webhook_url: Optional[str] = Field(
        default=None,
        description="Discord webhook URL"
    )
    alertzy_account_key: Optional[str] = Field(
        default=None,
        description="Alertzy account key for push notifications"
    )
    telegram_bot_token: Optional[str] = Field(
        default=None,
        description="Telegram Bot API token (from @BotFather)"
    )
    telegram_chat_id: Optional[str] = Field(
        default=None,
        description="Telegram chat ID (user, group, or channel)"
    )

    # Synchronization
    cache_file: str = Field(
        default="cache.json",
        description="Path of the snapshot file"
    )
    poll_interval_minutes: int = Field(
        default=10,
        ge=1,
        description="Minutes between two synchronization cycles"
    )
    homework_window_days: int = Field(
        default=365,
        ge=1,
        description="How far ahead homeworks are fetched"
    )
    absence_window_days: int = Field(
        default=30,
        ge=1,
        description="How far ahead the timetable is scanned for absent teachers"
    )
    burst_threshold: int = Field(
        default=3,
        ge=1,
        description="Above this many new homeworks or changed subjects, nothing is sent"
    )
    marks_period: MarksPeriod = Field(
        default=MarksPeriod.SEMESTER,
        description="Grading period whose marks are tracked"
    )

    # Optional Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    timezone: str = Field(
        default="Europe/Paris",
        description="Timezone for fetch windows and message dates"
    )

    @field_validator("pronote_url")
    @classmethod
    def validate_pronote_url(cls, v: str) -> str:
        """Ensure the URL doesn't have a trailing slash."""
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return upper

    @property
    def uses_ent(self) -> bool:
        """Whether login goes through an ENT/CAS instead of Pronote directly."""
        return bool(self.pronote_ent) and self.pronote_ent.lower() != "none"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Validated application settings

    Raises:
        ValidationError: If required environment variables are missing or invalid
    """
    return Settings()


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure application logging.

    Args:
        settings: Optional settings instance, will be loaded if not provided

    Returns:
        logging.Logger: Configured logger instance
    """
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    return logging.getLogger("pronote_bot")
