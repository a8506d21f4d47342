"""Rules constants shared by the combat tracker.

This module defines the fixed numbers of the combat rules: death save
thresholds, spell level bounds, class level bounds and the names of the
standard conditions.
"""

from __future__ import annotations

# =============================================================================
# Death Saves
# =============================================================================

MAX_DEATH_SAVES = 3
"""Death save threshold (3 successes = stable, 3 failures = dead)."""

DEATH_SAVE_DC = 10
"""A d20 result at or above this value is a death save success."""

UNCONSCIOUS_CONDITION = "Unconscious"
"""Condition added on stabilizing and removed on healing above 0 HP."""

# =============================================================================
# Concentration
# =============================================================================

MIN_CONCENTRATION_DC = 10
"""Floor of the concentration check DC (half the damage, minimum 10)."""

# =============================================================================
# Spell Resources
# =============================================================================

MIN_SPELL_LEVEL = 1
"""Lowest spell slot level."""

MAX_SPELL_LEVEL = 9
"""Highest spell slot level."""

SORCERY_POINTS_MIN_LEVEL = 2
"""Sorcerer level at which Font of Magic grants sorcery points."""

# =============================================================================
# Character Levels
# =============================================================================

MIN_CHARACTER_LEVEL = 1
"""Minimum character level."""

MAX_CHARACTER_LEVEL = 20
"""Maximum character level."""

# =============================================================================
# Conditions
# =============================================================================

CONDITION_DESCRIPTIONS: dict[str, str] = {
    "blinded": "Can't see. Attack rolls against have advantage, attacks have disadvantage.",
    "charmed": "Can't attack the charmer. Charmer has advantage on social checks.",
    "deafened": "Can't hear. Automatically fails hearing-based checks.",
    "frightened": (
        "Disadvantage on ability checks and attacks while source is visible. "
        "Can't willingly move closer."
    ),
    "grappled": "Speed becomes 0. Ends if grappler is incapacitated or moved apart.",
    "incapacitated": "Can't take actions or reactions.",
    "invisible": (
        "Impossible to see without special senses. Attacks have advantage, "
        "attacks against have disadvantage."
    ),
    "paralyzed": (
        "Incapacitated. Can't move or speak. Auto-fail STR/DEX saves. "
        "Attacks have advantage. Hits within 5ft are crits."
    ),
    "petrified": (
        "Transformed to stone. Incapacitated. Resistant to all damage. "
        "Immune to poison and disease."
    ),
    "poisoned": "Disadvantage on attack rolls and ability checks.",
    "prone": (
        "Can only crawl. Disadvantage on attacks. Attacks within 5ft have advantage, "
        "ranged attacks have disadvantage."
    ),
    "restrained": (
        "Speed 0. Attacks have disadvantage. Attacks against have advantage. "
        "Disadvantage on DEX saves."
    ),
    "stunned": (
        "Incapacitated. Can't move. Can only speak falteringly. "
        "Auto-fail STR/DEX saves. Attacks have advantage."
    ),
    "unconscious": (
        "Incapacitated. Can't move or speak. Unaware of surroundings. Drops held items. "
        "Falls prone. Auto-fail STR/DEX saves. Attacks have advantage. "
        "Hits within 5ft are crits."
    ),
    "exhaustion": "Varies by level. See exhaustion rules.",
}
"""Short rules text for the standard conditions, keyed by lowercase name."""


__all__ = [
    # Death saves
    "MAX_DEATH_SAVES",
    "DEATH_SAVE_DC",
    "UNCONSCIOUS_CONDITION",
    # Concentration
    "MIN_CONCENTRATION_DC",
    # Spell resources
    "MIN_SPELL_LEVEL",
    "MAX_SPELL_LEVEL",
    "SORCERY_POINTS_MIN_LEVEL",
    # Levels
    "MIN_CHARACTER_LEVEL",
    "MAX_CHARACTER_LEVEL",
    # Conditions
    "CONDITION_DESCRIPTIONS",
]
