"""Rules engine of the combat tracker.

This module provides the stateful parts of combat: the initiative
tracker, the event log, the status effect registry and dice rolling,
plus the encounter difficulty calculator.

Submodules:
    tracker: Initiative order, turns and every combat operation
    event_log: Append-only combat event log with subscribers
    effect_registry: Active status effects and their expiry processing
    dice: Dice rolling with D&D 5E mechanics (d20 library)
    difficulty: Encounter difficulty from the DMG XP thresholds

Example:
    >>> from combat_tracker.engine import InitiativeTracker
    >>> from combat_tracker.models import CombatantKind
    >>>
    >>> tracker = InitiativeTracker()
    >>> tracker.start_encounter("Goblin Ambush")
    >>> aria = tracker.add_combatant("Aria", CombatantKind.PLAYER, max_hp=20, armor_class=15,
    ...                             initiative_bonus=2)
    >>> tracker.roll_initiative(aria, roll=14)
    16
"""

from __future__ import annotations

# =============================================================================
# Dice Rolling
# =============================================================================
from combat_tracker.engine.dice import (
    DiceExpression,
    DiceRoller,
    RollType,
)

# =============================================================================
# Encounter Difficulty
# =============================================================================
from combat_tracker.engine.difficulty import (
    calculate_adjusted_xp,
    calculate_difficulty,
    get_xp_threshold,
)

# =============================================================================
# Effects and Event Log
# =============================================================================
from combat_tracker.engine.effect_registry import StatusEffectRegistry
from combat_tracker.engine.event_log import EventLog, LogSubscriber

# =============================================================================
# Initiative Tracker
# =============================================================================
from combat_tracker.engine.tracker import CombatantRef, InitiativeTracker


__all__ = [
    # Dice
    "DiceExpression",
    "DiceRoller",
    "RollType",
    # Difficulty
    "calculate_adjusted_xp",
    "calculate_difficulty",
    "get_xp_threshold",
    # Effects and log
    "StatusEffectRegistry",
    "EventLog",
    "LogSubscriber",
    # Tracker
    "CombatantRef",
    "InitiativeTracker",
]
