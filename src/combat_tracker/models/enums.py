"""Enumeration types for the combat tracker.

This module defines the closed sets of values used by the models and the
rules engine: combatant kinds, encounter phases, log entry kinds, saving
throw abilities and timings, difficulty ratings and caster types.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """D&D 5E ability scores used for saving throws."""

    STR = "strength"
    DEX = "dexterity"
    CON = "constitution"
    INT = "intelligence"
    WIS = "wisdom"
    CHA = "charisma"

    @property
    def abbreviation(self) -> str:
        """Get the three-letter abbreviation.

        Returns:
            Three-letter abbreviation (e.g., 'CON').
        """
        return self.name


class CombatantKind(StrEnum):
    """What an initiative entry stands for.

    Only players enter the death save state at 0 HP; every other kind is
    marked defeated instead.
    """

    MONSTER = "monster"
    NPC = "npc"
    PLAYER = "player"


class EncounterPhase(StrEnum):
    """Lifecycle of an encounter. ENDED is terminal."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    ENDED = "ended"


class SaveTiming(StrEnum):
    """When a status effect calls for its saving throw."""

    WHEN_APPLIED = "when_applied"
    START_OF_TURN = "start_of_turn"
    END_OF_TURN = "end_of_turn"
    WHEN_DAMAGED = "when_damaged"

    @property
    def display_name(self) -> str:
        """Get the label used in save display strings."""
        return {
            SaveTiming.WHEN_APPLIED: "when applied",
            SaveTiming.START_OF_TURN: "at start of turn",
            SaveTiming.END_OF_TURN: "at end of turn",
            SaveTiming.WHEN_DAMAGED: "when damaged",
        }[self]


class LogEntryKind(StrEnum):
    """Kinds of entries in the combat event log."""

    ATTACK = "attack"
    DAMAGE = "damage"
    HEAL = "heal"
    KILL = "kill"
    DEATH = "death"
    CONDITION_APPLIED = "condition_applied"
    CONDITION_REMOVED = "condition_removed"
    TURN_START = "turn_start"
    ROUND_START = "round_start"
    COMBAT_START = "combat_start"
    COMBAT_END = "combat_end"
    INITIATIVE_ROLL = "initiative_roll"
    SAVING_THROW = "saving_throw"
    SPELL_CAST = "spell_cast"
    CONCENTRATION = "concentration"
    DEATH_SAVE = "death_save"
    CUSTOM = "custom"


class Difficulty(StrEnum):
    """Encounter difficulty ratings."""

    TRIVIAL = "trivial"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    DEADLY = "deadly"
    UNKNOWN = "unknown"


class CasterType(StrEnum):
    """How a class gains spell slots."""

    FULL = "full"
    HALF = "half"
    PACT = "pact"
    NONE = "none"


__all__ = [
    "Ability",
    "CasterType",
    "CombatantKind",
    "EncounterPhase",
    "SaveTiming",
    "LogEntryKind",
    "Difficulty",
]
