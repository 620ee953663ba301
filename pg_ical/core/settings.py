"""Parser settings with environment variable support."""

import logging
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ParserSettings(BaseSettings):
    """Settings for one parse call.

    Every field can be set through a ``PGICAL_`` prefixed environment
    variable, e.g. ``PGICAL_STRICT=true``.
    """

    strict: bool = Field(
        default=False,
        description="Raise on malformed lines and invalid values instead of recording diagnostics",
    )
    decode_errors: Literal["strict", "replace"] = Field(
        default="replace", description="UTF-8 decode error handling for byte input"
    )
    chunk_size: int = Field(default=8192, description="Read size in bytes for file objects")

    # Logging
    debug: bool = Field(default=False, description="Enable debug logging for pg_ical modules")
    log_level: Optional[str] = Field(
        default=None, description="Root log level override: DEBUG, INFO, WARNING, ERROR"
    )

    model_config = SettingsConfigDict(
        env_prefix="PGICAL_",
        case_sensitive=False,
    )

    @field_validator("chunk_size")
    @classmethod
    def _positive_chunk_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chunk_size must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        upper = value.upper()
        if upper not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"unknown log level {value!r}")
        return upper


def load_settings(**overrides: Any) -> ParserSettings:
    """Build settings from the environment, applying explicit overrides.

    Overrides whose value is None are ignored so callers can pass optional
    CLI flags straight through.
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}
    settings = ParserSettings(**explicit)
    logger.debug("Parser settings loaded: %s", settings.model_dump())
    return settings
