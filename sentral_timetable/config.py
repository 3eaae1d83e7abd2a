"""Configuration loaded from environment variables (prefix SENTRAL_).

For local use, put the values in a .env file in the working directory, e.g.

    SENTRAL_PORTAL_URL=https://myschool.sentral.com.au
    SENTRAL_USERNAME=jsmith
    SENTRAL_PASSWORD=...
    SENTRAL_TIMEZONE=Australia/Sydney
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List

import pytz
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class TimetableConfig(BaseSettings):
    """Portal, extraction and logging settings."""

    # Portal
    portal_url: str = Field(
        default="https://school.sentral.com.au",
        description="Base URL of the school's Sentral portal",
    )
    username: str = Field(default="", description="Portal username")
    password: str = Field(default="", description="Portal password")
    request_timeout: float = Field(
        default=30.0,
        description="Per-request timeout in seconds",
    )
    retry_attempts: int = Field(
        default=3,
        description="Attempts per request on transient failures",
    )

    # Dates
    timezone: str = Field(
        default="UTC",
        description="Timezone used to decide what 'today' is",
    )
    next_offsets: List[int] = Field(
        default=[1, 2, 3],
        description="Day offsets tried, in order, to find the next school day",
    )
    previous_offsets: List[int] = Field(
        default=[0, -1, -2, -3],
        description="Day offsets tried, in order, to find the previous school day",
    )

    # Page template: the daily page stacks two 5-day blocks into one
    # sequence of 10 date columns, each block with its own period rows.
    days_per_block: int = Field(default=5, ge=1)
    rows_per_block: int = Field(default=12, ge=0)

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "SENTRAL_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("portal_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


def local_today(tz_name: str = "UTC") -> date:
    """Return the current date in the given timezone."""
    return datetime.now(pytz.timezone(tz_name)).date()


_config: TimetableConfig | None = None


def get_config() -> TimetableConfig:
    """Get the configuration singleton."""
    global _config
    if _config is None:
        _config = TimetableConfig()
    return _config
