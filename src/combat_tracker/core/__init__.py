"""Core module providing configuration, logging, and base exceptions.

This module is the foundation of the combat tracker, providing the
infrastructure shared by the models, the rules engine and the record stores.

Exports:
    Exceptions:
        CombatTrackerError: Base exception for all application errors.
        GameEngineError: Base exception for rules engine errors.
        PersistenceError: Record store failures.
        ConfigurationError: Configuration-related errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
        mirror_combat_event: Copy combat events into the diagnostic log.
"""

from __future__ import annotations

from combat_tracker.core.config import (
    CombatSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from combat_tracker.core.exceptions import (
    CombatTrackerError,
    ConfigurationError,
    DiceRollError,
    GameEngineError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
)
from combat_tracker.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    mirror_combat_event,
)


__all__ = [
    # Base exception
    "CombatTrackerError",
    # Rules engine exceptions
    "GameEngineError",
    "InvalidTransitionError",
    "InvalidArgumentError",
    "NotFoundError",
    "DiceRollError",
    # Persistence exceptions
    "PersistenceError",
    # Configuration exceptions
    "ConfigurationError",
    # Configuration
    "Settings",
    "StorageSettings",
    "CombatSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "mirror_combat_event",
]
