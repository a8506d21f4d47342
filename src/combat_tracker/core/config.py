"""Configuration management for the combat tracker.

This module provides centralized configuration management using pydantic-settings,
supporting environment variables, .env files, and runtime configuration overrides.

Example:
    >>> from combat_tracker.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.combat.initiative_dice
    '1d20'

Environment Variables:
    COMBAT_TRACKER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    COMBAT_TRACKER_JSON_LOGS: Emit JSON logs instead of console output
    COMBAT_TRACKER_STORAGE_BACKEND: Record store backend ('memory' or 'sqlite')
    COMBAT_TRACKER_STORAGE_DATABASE_PATH: Path to the SQLite database file
    COMBAT_TRACKER_COMBAT_INITIATIVE_DICE: Dice expression rolled for initiative
    COMBAT_TRACKER_COMBAT_DICE_SEED: Fixed random seed for reproducible rolls
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from combat_tracker.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Configuration for the record store collaborator.

    Attributes:
        backend: Record store implementation to use.
        database_path: Path to the SQLite database file.
        max_retries: Attempts made on a locked SQLite database before failing.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMBAT_TRACKER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Record store backend",
    )
    database_path: Path = Field(
        default=Path("data/combat_tracker.db"),
        description="Path to SQLite database",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts on a locked database",
    )


class CombatSettings(BaseSettings):
    """Configuration for the rules engine.

    Attributes:
        initiative_dice: Dice expression rolled for initiative (bonus added separately).
        dice_seed: Optional random seed for reproducible rolls.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMBAT_TRACKER_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    initiative_dice: str = Field(
        default="1d20",
        min_length=1,
        description="Initiative dice expression",
    )
    dice_seed: int | None = Field(
        default=None,
        description="Random seed for reproducible rolls",
    )

    @field_validator("initiative_dice", mode="after")
    @classmethod
    def validate_initiative_dice(cls, value: str) -> str:
        """Ensure the initiative expression rolls at least one die.

        Args:
            value: The configured dice expression.

        Returns:
            The normalized expression.

        Raises:
            ConfigurationError: If the expression has no dice term.
        """
        normalized = value.strip().lower()
        if "d" not in normalized:
            raise ConfigurationError(
                f"initiative_dice must contain a dice term, got {value!r}",
                config_key="initiative_dice",
            )
        return normalized


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Emit JSON logs.
        storage: Record store settings.
        combat: Rules engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMBAT_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Combat Tracker",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON formatted logs",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    combat: CombatSettings = Field(default_factory=CombatSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "CombatSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
