"""D&D 5E lookup tables used by the combat tracker.

This module contains the static rules data the engine reads but never
writes:
- Spell slots by class and level
- Warlock pact magic by level
- Encounter XP thresholds by character level
- Encounter multipliers by monster count
"""

from __future__ import annotations

from typing import assert_never

from combat_tracker.core.constants import MAX_SPELL_LEVEL
from combat_tracker.models.enums import CasterType

# =============================================================================
# Spell Slots by Level
# =============================================================================

# Full casters: Bard, Cleric, Druid, Sorcerer, Wizard
FULL_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1:  {1: 2},
    2:  {1: 3},
    3:  {1: 4, 2: 2},
    4:  {1: 4, 2: 3},
    5:  {1: 4, 2: 3, 3: 2},
    6:  {1: 4, 2: 3, 3: 3},
    7:  {1: 4, 2: 3, 3: 3, 4: 1},
    8:  {1: 4, 2: 3, 3: 3, 4: 2},
    9:  {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    10: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    11: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    12: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    13: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    16: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1, 9: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 1, 7: 1, 8: 1, 9: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 1, 8: 1, 9: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 2, 8: 1, 9: 1},
}

# Half casters: Paladin, Ranger (start at level 2)
HALF_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1:  {},
    2:  {1: 2},
    3:  {1: 3},
    4:  {1: 3},
    5:  {1: 4, 2: 2},
    6:  {1: 4, 2: 2},
    7:  {1: 4, 2: 3},
    8:  {1: 4, 2: 3},
    9:  {1: 4, 2: 3, 3: 2},
    10: {1: 4, 2: 3, 3: 2},
    11: {1: 4, 2: 3, 3: 3},
    12: {1: 4, 2: 3, 3: 3},
    13: {1: 4, 2: 3, 3: 3, 4: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 2},
    16: {1: 4, 2: 3, 3: 3, 4: 2},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
}

# Warlock pact magic
WARLOCK_PACT_SLOTS: dict[int, tuple[int, int]] = {
    # level: (num_slots, slot_level)
    1:  (1, 1),
    2:  (2, 1),
    3:  (2, 2),
    4:  (2, 2),
    5:  (2, 3),
    6:  (2, 3),
    7:  (2, 4),
    8:  (2, 4),
    9:  (2, 5),
    10: (2, 5),
    11: (3, 5),
    12: (3, 5),
    13: (3, 5),
    14: (3, 5),
    15: (3, 5),
    16: (3, 5),
    17: (4, 5),
    18: (4, 5),
    19: (4, 5),
    20: (4, 5),
}

# Caster type by lowercase class name; unlisted classes cast nothing
CASTER_TYPES: dict[str, CasterType] = {
    "bard": CasterType.FULL,
    "cleric": CasterType.FULL,
    "druid": CasterType.FULL,
    "sorcerer": CasterType.FULL,
    "wizard": CasterType.FULL,
    "paladin": CasterType.HALF,
    "ranger": CasterType.HALF,
    "warlock": CasterType.PACT,
}


def caster_type(class_name: str) -> CasterType:
    """Classify a class by how it gains spell slots (case-insensitive)."""
    return CASTER_TYPES.get(class_name.strip().lower(), CasterType.NONE)


def get_spell_slots(class_name: str, level: int) -> list[int]:
    """Get standard spell slot maxima for a class at a given level.

    Class names are matched case-insensitively. Warlocks and non-casters
    get no standard slots.

    Args:
        class_name: The character's class.
        level: The character's level in that class.

    Returns:
        Nine slot maxima, index 0 holding 1st-level slots.
    """
    kind = caster_type(class_name)
    match kind:
        case CasterType.FULL:
            table = FULL_CASTER_SLOTS.get(level, {})
        case CasterType.HALF:
            table = HALF_CASTER_SLOTS.get(level, {})
        case CasterType.PACT | CasterType.NONE:
            table = {}
        case _:
            assert_never(kind)
    return [table.get(spell_level, 0) for spell_level in range(1, MAX_SPELL_LEVEL + 1)]


def get_pact_magic(class_name: str, level: int) -> tuple[int, int] | None:
    """Get Warlock pact magic slots.

    Returns:
        Tuple of (num_slots, slot_level) or None if the class has no pact magic.
    """
    if caster_type(class_name) != CasterType.PACT:
        return None
    return WARLOCK_PACT_SLOTS.get(level)


# =============================================================================
# Encounter Difficulty (DMG p.82)
# =============================================================================

# level: (easy, medium, hard, deadly) XP per character
ENCOUNTER_XP_THRESHOLDS: dict[int, tuple[int, int, int, int]] = {
    1:  (25, 50, 75, 100),
    2:  (50, 100, 150, 200),
    3:  (75, 150, 225, 400),
    4:  (125, 250, 375, 500),
    5:  (250, 500, 750, 1100),
    6:  (300, 600, 900, 1400),
    7:  (350, 750, 1100, 1700),
    8:  (450, 900, 1400, 2100),
    9:  (550, 1100, 1600, 2400),
    10: (600, 1200, 1900, 2800),
    11: (800, 1600, 2400, 3600),
    12: (1000, 2000, 3000, 4500),
    13: (1100, 2200, 3400, 5100),
    14: (1250, 2500, 3800, 5700),
    15: (1400, 2800, 4300, 6400),
    16: (1600, 3200, 4800, 7200),
    17: (2000, 3900, 5900, 8800),
    18: (2100, 4200, 6300, 9500),
    19: (2400, 4900, 7300, 10900),
    20: (2800, 5700, 8500, 12700),
}

# (minimum monster count, multiplier), checked from the top
ENCOUNTER_MULTIPLIERS: list[tuple[int, float]] = [
    (15, 4.0),
    (11, 3.0),
    (7, 2.5),
    (3, 2.0),
    (2, 1.5),
    (1, 1.0),
]


def get_encounter_thresholds(level: int) -> tuple[int, int, int, int] | None:
    """Get the per-character XP thresholds for a level.

    Returns:
        Tuple of (easy, medium, hard, deadly) or None for an invalid level.
    """
    return ENCOUNTER_XP_THRESHOLDS.get(level)


def get_encounter_multiplier(monster_count: int) -> float:
    """Get the XP multiplier for the number of monsters in an encounter."""
    for minimum, multiplier in ENCOUNTER_MULTIPLIERS:
        if monster_count >= minimum:
            return multiplier
    return 1.0


__all__ = [
    # Spell slots
    "FULL_CASTER_SLOTS",
    "HALF_CASTER_SLOTS",
    "WARLOCK_PACT_SLOTS",
    "CASTER_TYPES",
    "caster_type",
    "get_spell_slots",
    "get_pact_magic",
    # Encounter difficulty
    "ENCOUNTER_XP_THRESHOLDS",
    "ENCOUNTER_MULTIPLIERS",
    "get_encounter_thresholds",
    "get_encounter_multiplier",
]
