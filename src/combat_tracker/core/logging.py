"""Structured logging configuration for the combat tracker.

Diagnostic logging goes through structlog. It is separate from the
combat event log: the event log is the table's record of the fight,
while these logs describe what the engine did and why a write failed.
mirror_combat_event bridges the two when debugging.

Example:
    >>> from combat_tracker.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Round started", encounter_id=3, round=2)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

from combat_tracker.core.exceptions import ConfigurationError


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from combat_tracker.core.config import Settings
    from combat_tracker.models.log import LogEntry


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def resolve_level(name: str) -> int:
    """Translate a level name into a logging level number.

    Raises:
        ConfigurationError: If the name is not a known level.
    """
    try:
        return _LEVELS[name.strip().upper()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown log level {name!r}",
            config_key="log_level",
            details={"allowed": sorted(_LEVELS)},
        ) from None


def app_context(app_name: str) -> Processor:
    """Build a processor stamping every entry with the application name."""

    def add_app_context(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        return event_dict

    return add_app_context


def build_processors(*, json_format: bool, app_name: str = "combat_tracker") -> list[Processor]:
    """Assemble the structlog processor chain.

    Args:
        json_format: End with a JSON renderer instead of the console one.
        app_name: Value of the ``app`` key on every entry.

    Returns:
        The processors, renderer last.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        app_context(app_name),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure application-wide logging.

    Explicit arguments win over the settings. Debug mode forces the
    DEBUG level. The standard library root logger (used by sqlite3 and
    tenacity) gets the same level and, if given, the log file.

    Args:
        settings: Application settings. Defaults to get_settings().
        level: Level name overriding settings.log_level.
        json_format: Override for settings.json_logs.
        log_file: Optional path of a file receiving standard library logs.

    Raises:
        ConfigurationError: If the level name is unknown.
    """
    if settings is None:
        from combat_tracker.core.config import get_settings

        settings = get_settings()

    level_name = level or ("DEBUG" if settings.debug else settings.log_level)
    level_no = resolve_level(level_name)
    use_json = settings.json_logs if json_format is None else json_format

    structlog.configure(
        processors=build_processors(json_format=use_json, app_name=settings.app_name),
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=not settings.debug,
    )

    logging.basicConfig(format=_STDLIB_FORMAT, level=level_no, stream=sys.stdout, force=True)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level_no)
        file_handler.setFormatter(logging.Formatter(_STDLIB_FORMAT))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


def mirror_combat_event(entry: LogEntry) -> None:
    """Event log subscriber copying combat events into the diagnostic log."""
    get_logger("combat_tracker.events").debug(
        "Combat event",
        kind=str(entry.kind),
        round=entry.round,
        sequence=entry.sequence,
        text=entry.formatted,
    )


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent logs.

    Example:
        >>> bind_context(encounter_id=12)
        >>> logger.info("Turn advanced")  # Will include encounter_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "resolve_level",
    "app_context",
    "build_processors",
    "configure_logging",
    "get_logger",
    "mirror_combat_event",
    "bind_context",
    "clear_context",
]
