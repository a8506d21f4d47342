"""Encounter difficulty from the DMG XP thresholds.

Pure reads of the encounter tables in combat_tracker.models.progression.
"""

from __future__ import annotations

import math

from combat_tracker.core.exceptions import InvalidArgumentError
from combat_tracker.models.enums import Difficulty
from combat_tracker.models.progression import (
    get_encounter_multiplier,
    get_encounter_thresholds,
)


_THRESHOLD_INDEX = {
    Difficulty.EASY: 0,
    Difficulty.MEDIUM: 1,
    Difficulty.HARD: 2,
    Difficulty.DEADLY: 3,
}


def get_xp_threshold(party_level: int, party_size: int, difficulty: Difficulty) -> int:
    """Get the party XP threshold for a difficulty.

    Args:
        party_level: Average character level.
        party_size: Number of characters.
        difficulty: Easy, medium, hard or deadly.

    Returns:
        The threshold for the whole party, or 0 for an unknown level.

    Raises:
        InvalidArgumentError: If the difficulty has no threshold.
    """
    if difficulty not in _THRESHOLD_INDEX:
        raise InvalidArgumentError(
            f"No XP threshold for difficulty {difficulty}",
            field_name="difficulty",
            invalid_value=str(difficulty),
        )
    thresholds = get_encounter_thresholds(party_level)
    if thresholds is None:
        return 0
    return thresholds[_THRESHOLD_INDEX[difficulty]] * party_size


def calculate_difficulty(total_xp: int, party_level: int, party_size: int) -> Difficulty:
    """Rate an encounter against the party thresholds.

    Args:
        total_xp: Adjusted XP of the monsters.
        party_level: Average character level.
        party_size: Number of characters.

    Returns:
        The highest difficulty whose threshold the XP reaches, TRIVIAL below
        easy, or UNKNOWN for an invalid level or empty party.
    """
    thresholds = get_encounter_thresholds(party_level)
    if thresholds is None or party_size <= 0:
        return Difficulty.UNKNOWN

    easy, medium, hard, deadly = (t * party_size for t in thresholds)
    if total_xp >= deadly:
        return Difficulty.DEADLY
    if total_xp >= hard:
        return Difficulty.HARD
    if total_xp >= medium:
        return Difficulty.MEDIUM
    if total_xp >= easy:
        return Difficulty.EASY
    return Difficulty.TRIVIAL


def calculate_adjusted_xp(base_xp: int, monster_count: int) -> int:
    """Apply the multiple-monster multiplier to base XP.

    Args:
        base_xp: Summed XP of the monsters.
        monster_count: Number of monsters.

    Returns:
        Adjusted XP, rounded down.
    """
    return math.floor(base_xp * get_encounter_multiplier(monster_count))


__all__ = [
    "get_xp_threshold",
    "calculate_difficulty",
    "calculate_adjusted_xp",
]
