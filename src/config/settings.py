# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for cache location, backend selection, similarity
defaults, free-tier limits and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache ===
    cache_root: Path = Path(".promptcache")
    cache_backend: Literal["json", "sqlite", "redis"] = "json"
    default_model: str = "default"

    # === Similarity search ===
    similarity_threshold: float = 0.3
    similarity_limit: int = 10
    best_match_threshold: float = 0.8

    # === Free tier limits ===
    free_max_entries: int = 50
    free_max_response_size: int = 10 * 1024

    # === License ===
    license_file: Path = Path("~/.promptcache/license.json")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("similarity_threshold", "best_match_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("similarity thresholds must be within [0, 1]")
        return v

    @field_validator("similarity_limit", "free_max_entries", "free_max_response_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("limits must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        if self.best_match_threshold < self.similarity_threshold:
            raise ConfigurationError(
                "BEST_MATCH_THRESHOLD must be >= SIMILARITY_THRESHOLD"
            )
        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
