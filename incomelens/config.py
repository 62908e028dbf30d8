"""
Configuration management module for IncomeLens.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parameter
management, validation, and serialization. Supports environment variables
and .env files for application settings.

Design Principles
-----------------
- Type-safe: Pydantic enforces types and validates ranges
- Immutable: Frozen models prevent accidental mutation
- Explicit calendar: bucketing never depends on the host time zone
- Defaults: Sensible defaults for all parameters

Example
-------
>>> from incomelens.config import CalendarConfig, ReportConfig
>>> calendar = CalendarConfig(timezone="America/Bogota")
>>> report = ReportConfig(top_n=3, monthly_goal=25_000)
>>>
>>> # Serialize to dict/JSON
>>> calendar.model_dump()
{'timezone': 'America/Bogota', 'first_weekday': 0}
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CURRENCY,
    DEFAULT_DAILY_WINDOW_RADIUS,
    DEFAULT_TIMEZONE,
    DEFAULT_TOP_N,
    DEFAULT_YEARLY_TOP_N,
)
from .exceptions import ConfigurationError

__all__ = [
    "CalendarConfig",
    "ReportConfig",
    "AppSettings",
]


# ---------------------------------------------------------------------------
# Calendar Configuration
# ---------------------------------------------------------------------------

class CalendarConfig(BaseModel):
    """
    Calendar used to turn record timestamps into day and month buckets.

    Attributes
    ----------
    timezone : str
        IANA time zone name. Aware timestamps are converted into this zone
        before their date is taken; naive timestamps are read as wall clock
        time in this zone.
    first_weekday : int
        First column of calendar grids (0=Monday ... 6=Sunday).

    Examples
    --------
    >>> cal = CalendarConfig(timezone="America/Bogota")
    >>> cal.tzinfo()
    zoneinfo.ZoneInfo(key='America/Bogota')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA time zone used for bucketing"
    )
    first_weekday: int = Field(
        default=0,
        ge=0,
        le=6,
        description="First weekday of calendar grids (0=Monday)"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject names the IANA database does not know."""
        if v.upper() == "UTC":
            return "UTC"
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone {v!r}") from exc
        return v

    def tzinfo(self) -> datetime.tzinfo:
        """Return the tzinfo object for this calendar."""
        if self.timezone == "UTC":
            return datetime.timezone.utc
        return ZoneInfo(self.timezone)

    def today(self) -> datetime.date:
        """Current date in this calendar."""
        return datetime.datetime.now(self.tzinfo()).date()


# ---------------------------------------------------------------------------
# Report Configuration
# ---------------------------------------------------------------------------

class ReportConfig(BaseModel):
    """
    Presentation parameters for monthly and yearly reports.

    Attributes
    ----------
    top_n : int
        Sources listed in summary views (default 5).
    yearly_top_n : int
        Sources highlighted on the yearly report (default 3).
    daily_window_radius : int
        Days shown on each side of the selected day.
    monthly_goal : float, optional
        Income goal for the month; goal progress is omitted when None.
    yearly_goal : float, optional
        Income goal for the year.
    currency : {"COP", "USD"}
        Passthrough currency label used for formatting only.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    top_n: int = Field(
        default=DEFAULT_TOP_N,
        ge=1,
        le=100,
        description="Sources listed in summary views"
    )
    yearly_top_n: int = Field(
        default=DEFAULT_YEARLY_TOP_N,
        ge=1,
        le=100,
        description="Sources highlighted on the yearly report"
    )
    daily_window_radius: int = Field(
        default=DEFAULT_DAILY_WINDOW_RADIUS,
        ge=0,
        le=15,
        description="Days on each side of the selected day"
    )
    monthly_goal: Optional[float] = Field(
        default=None,
        gt=0,
        description="Monthly income goal"
    )
    yearly_goal: Optional[float] = Field(
        default=None,
        gt=0,
        description="Yearly income goal"
    )
    currency: Literal["COP", "USD"] = Field(
        default=DEFAULT_CURRENCY,
        description="Currency label (no conversion)"
    )


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Supports .env files for local development. Environment variables
    should be prefixed with INCOMELENS_ (e.g., INCOMELENS_TIMEZONE=America/Bogota).

    Attributes
    ----------
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR"
    timezone : str
        Default calendar for bucketing
    first_weekday : int
        First column of calendar grids (0=Monday)
    currency : str
        Default currency label
    data_file : Path, optional
        JSON file holding income records
    catalog_file : Path, optional
        JSON file holding the source catalog

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'INFO'
    """

    model_config = SettingsConfigDict(
        env_prefix="INCOMELENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="Calendar used for bucketing"
    )
    first_weekday: int = Field(
        default=0,
        ge=0,
        le=6,
        description="First weekday of calendar grids (0=Monday)"
    )
    currency: Literal["COP", "USD"] = Field(
        default=DEFAULT_CURRENCY,
        description="Currency label"
    )
    data_file: Optional[Path] = Field(
        default=None,
        description="Income records JSON file"
    )
    catalog_file: Optional[Path] = Field(
        default=None,
        description="Source catalog JSON file"
    )

    def calendar(self) -> CalendarConfig:
        """
        Build the CalendarConfig for these settings.

        Raises
        ------
        ConfigurationError
            If INCOMELENS_TIMEZONE names an unknown zone.
        """
        try:
            return CalendarConfig(timezone=self.timezone, first_weekday=self.first_weekday)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid calendar settings: {exc}") from exc
