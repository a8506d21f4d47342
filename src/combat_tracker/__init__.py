"""Combat Tracker - D&D 5E encounter engine.

Tracks the mechanical state of a tabletop combat encounter: initiative
order and turns, hit points, status effects with expiring durations,
spell resources and a chronological event log.

- The InitiativeTracker is the single owner of encounter state
- Every state change is recorded in the append-only event log
- Records persist through a pluggable record store (memory or SQLite)

Example:
    >>> from combat_tracker import InitiativeTracker, CombatantKind
    >>>
    >>> tracker = InitiativeTracker()
    >>> tracker.start_encounter("Goblin Ambush")
    >>> aria = tracker.add_combatant("Aria", CombatantKind.PLAYER, max_hp=20, armor_class=15)
    >>> goblin = tracker.add_combatant("Goblin", max_hp=7, armor_class=13, initiative_bonus=2)
    >>> tracker.apply_damage(goblin, 7, source="Aria").defeated
    True

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 records (combatants, effects, spell pools, log entries).
    storage: Record stores (in-memory and SQLite).
    engine: Initiative tracker, event log, effect registry and dice.
"""

from __future__ import annotations

# Core
from combat_tracker.core.config import Settings, get_settings
from combat_tracker.core.exceptions import (
    CombatTrackerError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
)
from combat_tracker.core.logging import configure_logging, get_logger

# Records
from combat_tracker.models import (
    CombatantKind,
    Combatant,
    CombatEncounter,
    EncounterPhase,
    LogEntry,
    LogEntryKind,
    SpellResourcePool,
    StatusEffect,
)

# Engine
from combat_tracker.engine import (
    DiceRoller,
    EventLog,
    InitiativeTracker,
    StatusEffectRegistry,
)

# Storage
from combat_tracker.storage import (
    InMemoryRecordStore,
    RecordStore,
    SqliteRecordStore,
    create_record_store,
)


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "CombatTrackerError",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "NotFoundError",
    "PersistenceError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Records
    "Combatant",
    "CombatantKind",
    "CombatEncounter",
    "EncounterPhase",
    "LogEntry",
    "LogEntryKind",
    "SpellResourcePool",
    "StatusEffect",
    # Engine
    "DiceRoller",
    "EventLog",
    "InitiativeTracker",
    "StatusEffectRegistry",
    # Storage
    "InMemoryRecordStore",
    "RecordStore",
    "SqliteRecordStore",
    "create_record_store",
]
