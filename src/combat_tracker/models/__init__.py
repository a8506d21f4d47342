"""Pydantic V2 records for the combat tracker.

This module provides the data model layer of the rules engine. Each
persisted record carries an integer id (0 until saved) and a record_kind
used by the record stores.

Submodules:
    enums: Enumeration types (CombatantKind, EncounterPhase, LogEntryKind, etc.)
    combatant: Combatant with its hit point ledger
    status_effect: Status effects with tagged durations and expiry hooks
    spell_slots: Spell slot, pact slot and sorcery point pools
    progression: Spell slot, pact magic and encounter XP tables
    encounter: Encounter aggregate root
    log: Event log entries and their formatter

Example:
    >>> from combat_tracker.models import Combatant, CombatantKind
    >>> aria = Combatant(name="Aria", kind=CombatantKind.PLAYER, max_hp=20, armor_class=15)
    >>> aria.apply_damage(5).hp_lost
    5
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from combat_tracker.models.enums import (
    Ability,
    CasterType,
    CombatantKind,
    Difficulty,
    EncounterPhase,
    LogEntryKind,
    SaveTiming,
)

# =============================================================================
# Records
# =============================================================================
from combat_tracker.models.combatant import Combatant, DamageResult, DeathSaveResult
from combat_tracker.models.encounter import CombatEncounter
from combat_tracker.models.log import LogEntry, format_entry
from combat_tracker.models.spell_slots import PactPool, ResourcePool, SpellResourcePool
from combat_tracker.models.status_effect import (
    Duration,
    Hours,
    Instantaneous,
    Minutes,
    Permanent,
    Rounds,
    SaveEnds,
    SaveRequirement,
    StatusEffect,
    UntilDispelled,
    UntilEndOfTurnOf,
    UntilStartOfTurnOf,
    condition_description,
    create_condition_effect,
    create_spell_effect,
)


__all__ = [
    # Enumerations
    "Ability",
    "CasterType",
    "CombatantKind",
    "Difficulty",
    "EncounterPhase",
    "LogEntryKind",
    "SaveTiming",
    # Combatant
    "Combatant",
    "DamageResult",
    "DeathSaveResult",
    # Encounter
    "CombatEncounter",
    # Log
    "LogEntry",
    "format_entry",
    # Spell resources
    "ResourcePool",
    "PactPool",
    "SpellResourcePool",
    # Status effects
    "Duration",
    "Instantaneous",
    "Rounds",
    "Minutes",
    "Hours",
    "UntilDispelled",
    "UntilEndOfTurnOf",
    "UntilStartOfTurnOf",
    "SaveEnds",
    "Permanent",
    "SaveRequirement",
    "StatusEffect",
    "condition_description",
    "create_condition_effect",
    "create_spell_effect",
]
