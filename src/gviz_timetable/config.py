"""Timetable configuration loaded from environment variables.

The configuration is built once by the entry point (CLI or API factory) and
passed explicitly to the fetcher, cache and service. Nothing reads it from
module-level state.
"""

import json
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

WEEKDAYS: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

# gid 0 is the first tab of the spreadsheet
DEFAULT_DAY_GIDS: dict[str, str] = {day: "0" for day in WEEKDAYS}


class TimetableConfig(BaseSettings):
    """Timetable configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Google Sheets source (public GViz endpoint, no credentials)
    sheet_id: str = Field(
        default="",
        description="Spreadsheet ID from the sheet URL",
    )
    sheet_base_url: str = Field(
        default="https://docs.google.com/spreadsheets/d",
        description="Base URL the GViz query path is appended to",
    )
    sheet_day_gids: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_DAY_GIDS),
        description='Tab gid per weekday, JSON e.g. {"Monday":"0","Tuesday":"123456789"}',
    )

    # Fetch settings
    fetch_timeout_seconds: float = Field(
        default=15.0,
        description="Upper bound for fetching one tab, retries and waits included",
    )
    fetch_attempts: int = Field(
        default=2,
        description="Attempts per tab for transient failures (timeouts, network errors)",
    )
    fetch_retry_wait_seconds: float = Field(
        default=1.0,
        description="Fixed wait between fetch attempts",
    )

    # Parsing
    lab_lookahead: int = Field(
        default=5,
        description="Columns scanned after a lab cell without merge metadata",
    )

    # Cache
    cache_ttl_seconds: float = Field(
        default=30.0,
        description="Lifetime of cached day, week and search results",
    )
    clear_cache_secret: str = Field(
        default="",
        description="Shared secret expected in the X-TT-Secret header of /api/clear-cache",
    )

    # API server
    api_host: str = Field(default="127.0.0.1", description="Bind address for the API")
    api_port: int = Field(default=8000, description="Port for the API")
    warm_on_startup: bool = Field(
        default=True,
        description="Load the whole week in the background when the API starts",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("sheet_day_gids", mode="before")
    @classmethod
    def _merge_day_gids(cls, value: Any) -> dict[str, str]:
        # gids are numeric in sheet URLs; partial mappings only override the days they name
        if isinstance(value, str):
            value = json.loads(value) if value.strip() else {}
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ValueError("sheet_day_gids must be a mapping of weekday to tab gid")
        merged = dict(DEFAULT_DAY_GIDS)
        merged.update({str(k): str(v) for k, v in value.items()})
        return merged

    def gid_for(self, day_name: str) -> str:
        """Return the tab gid for a weekday name, falling back to the first tab."""
        return self.sheet_day_gids.get(day_name, "0")


def load_config(**overrides) -> TimetableConfig:
    """Build a fresh configuration from the environment.

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        TimetableConfig: New configuration instance
    """
    return TimetableConfig(**overrides)
