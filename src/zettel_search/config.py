"""Centralized configuration for zettel-search using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every variable is read with the ``ZETTEL_SEARCH_`` prefix, e.g.
    ``ZETTEL_SEARCH_DEFAULT_MAX_RESULTS=25``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ZETTEL_SEARCH_",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Search defaults
    default_max_results: int = Field(default=50, ge=1, description="Result cap when the caller passes no options")
    case_sensitive: bool = Field(default=False, description="Default case sensitivity for substring matching")
    body_excerpt_length: int = Field(
        default=100, ge=10, description="Maximum body characters kept in a match excerpt"
    )
    suggestion_limit: int = Field(default=10, ge=1, description="Maximum completions returned per call")

    # Identity
    engine_name: str = Field(default="default", min_length=1, description="Label attached to logs and metrics")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported log level: {value}")
        return normalized
