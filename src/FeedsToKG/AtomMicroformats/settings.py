# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.settings",
#   "purpose": "Pydantic v2 settings for Atom microformat extraction.",
#   "sections": [
#     {
#       "id": "loglevel",
#       "name": "LogLevel",
#       "anchor": "class-loglevel",
#       "kind": "class"
#     },
#     {
#       "id": "logformat",
#       "name": "LogFormat",
#       "anchor": "class-logformat",
#       "kind": "class"
#     },
#     {
#       "id": "atommicroformatssettings",
#       "name": "AtomMicroformatsSettings",
#       "anchor": "class-atommicroformatssettings",
#       "kind": "class"
#     },
#     {
#       "id": "get-settings",
#       "name": "get_settings",
#       "anchor": "function-get-settings",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pydantic v2 settings for Atom microformat extraction.

Settings are read from ``ATOMMF_`` prefixed environment variables and can be
overridden by passing an explicit :class:`AtomMicroformatsSettings` instance
to :func:`FeedsToKG.AtomMicroformats.feed.new_feed`.

Example:
    >>> import os
    >>> os.environ["ATOMMF_ASSUME_PROFILES"] = "hCard, hCalendar"
    >>> get_settings().assume_profiles  # doctest: +SKIP
    ('hCard', 'hCalendar')
"""

from __future__ import annotations

from enum import Enum
import json
from typing import Annotated, Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

__all__ = [
    "LogLevel",
    "LogFormat",
    "AtomMicroformatsSettings",
    "get_settings",
    "reset_settings",
]


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Supported log output formats."""

    CONSOLE = "console"
    JSON = "json"


class AtomMicroformatsSettings(BaseSettings):
    """Runtime configuration for feed parsing and microformat extraction."""

    model_config = SettingsConfigDict(
        env_prefix="ATOMMF_",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: LogLevel = Field(
        LogLevel.WARNING, description="Package logging level when no -v flag is given"
    )
    log_format: LogFormat = Field(
        LogFormat.CONSOLE, description="Pretty console or structured JSON"
    )
    html_parser: str = Field(
        "html.parser", description="BeautifulSoup tree builder used for entry documents"
    )
    strict_xhtml: bool = Field(
        True,
        description="Reject application/xhtml+xml entry content that is not well-formed XML",
    )
    assume_profiles: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        description="Vocabulary names assumed for every entry when a feed is constructed",
    )
    include_structural_facts: bool = Field(
        False, description="Default for merging AtomOWL facts into output models"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> Any:
        """Accept lowercase level names."""
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("assume_profiles", mode="before")
    @classmethod
    def split_profiles(cls, value: Any) -> Any:
        """Allow comma separated vocabulary names or a JSON list."""
        if isinstance(value, str):
            if value.lstrip().startswith("["):
                return tuple(json.loads(value))
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value


_SETTINGS: Optional[AtomMicroformatsSettings] = None


def get_settings() -> AtomMicroformatsSettings:
    """Return the process-wide settings, loading them on first use."""

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = AtomMicroformatsSettings()
    return _SETTINGS


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""

    global _SETTINGS
    _SETTINGS = None
