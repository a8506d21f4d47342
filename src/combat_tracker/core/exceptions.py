"""Custom exception hierarchy for the combat tracker.

This module defines the exception hierarchy shared by the rules engine,
the event log, and the persistence collaborators. All exceptions inherit
from CombatTrackerError, enabling unified error handling at the
application boundary while preserving domain-specific context.

Example:
    >>> from combat_tracker.core.exceptions import InvalidArgumentError
    >>> raise InvalidArgumentError("Damage must be non-negative", field_name="amount")
"""

from __future__ import annotations

from typing import Any


class CombatTrackerError(Exception):
    """Base exception for all combat tracker errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception.

        Returns:
            String representation suitable for debugging.
        """
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Rules Engine Exceptions
# =============================================================================


class GameEngineError(CombatTrackerError):
    """Base exception for all rules engine errors.

    Raised synchronously by encounter, ledger, effect and spell operations.
    The engine never retries these; retrying is a caller concern.
    """


class InvalidTransitionError(GameEngineError):
    """Raised when an operation is not allowed in the current state.

    This covers operations on an ended or not-yet-started encounter,
    turn operations on an empty combatant list, and HP changes on a
    dead combatant.
    """

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid transition error with state context.

        Args:
            message: Human-readable error description.
            current_state: The state the operation was attempted in.
            expected_states: States in which the operation is valid.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


class InvalidArgumentError(GameEngineError):
    """Raised when an operation receives a malformed argument.

    Negative damage or healing, spell levels outside 1-9 and unknown
    creature names in turn-bound durations are rejected rather than
    silently clamped.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid argument error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the argument that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class NotFoundError(GameEngineError):
    """Raised when an operation references a record that is not loaded."""

    def __init__(
        self,
        message: str,
        *,
        record_type: str | None = None,
        record_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not found error with record context.

        Args:
            message: Human-readable error description.
            record_type: Kind of record that was looked up.
            record_id: Identifier that could not be resolved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if record_type:
            combined_details["record_type"] = record_type
        if record_id is not None:
            combined_details["record_id"] = record_id
        super().__init__(message, details=combined_details)


class DiceRollError(GameEngineError):
    """Raised when dice rolling operations fail.

    This typically occurs when parsing invalid dice notation.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# Persistence Exceptions
# =============================================================================


class PersistenceError(CombatTrackerError):
    """Raised when the record store fails to read or write.

    The in-memory state that preceded the failed write is kept; the
    caller decides whether to retry the save.
    """

    def __init__(
        self,
        message: str,
        *,
        record_type: str | None = None,
        record_id: int | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize persistence error with record context.

        Args:
            message: Human-readable error description.
            record_type: Kind of record being persisted.
            record_id: Identifier of the record, if it has one.
            operation: Store operation that failed (get, save, delete, list).
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if record_type:
            combined_details["record_type"] = record_type
        if record_id is not None:
            combined_details["record_id"] = record_id
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(CombatTrackerError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


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
]
