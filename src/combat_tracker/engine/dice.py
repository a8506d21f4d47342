"""Dice rolling for the combat rules engine.

This module wraps the d20 library to roll initiative, saving throws,
death saves and arbitrary damage expressions, with support for
advantage and disadvantage.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import d20

from combat_tracker.core.exceptions import DiceRollError
from combat_tracker.core.logging import get_logger


logger = get_logger(__name__)


class RollType(StrEnum):
    """Types of dice rolls."""

    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"


@dataclass(frozen=True)
class DiceExpression:
    """A rolled dice expression.

    Attributes:
        expression: The original dice expression string.
        total: The total result of the roll.
        dice: Kept dice results.
        modifier: Static modifier applied.
        is_critical: Whether a natural 20 was rolled on a d20.
        is_fumble: Whether a natural 1 was rolled on a d20.
        roll_type: The type of roll performed.
    """

    expression: str
    total: int
    dice: list[int]
    modifier: int
    is_critical: bool
    is_fumble: bool
    roll_type: RollType

    @property
    def natural(self) -> int:
        """The first kept die, i.e. the natural d20 of a check."""
        return self.dice[0] if self.dice else self.total - self.modifier


def _with_modifier(base: str, modifier: int) -> str:
    if modifier == 0:
        return base
    sign = "+" if modifier > 0 else ""
    return f"{base}{sign}{modifier}"


class DiceRoller:
    """Dice rolling with D&D 5E mechanics.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> result = roller.roll_initiative(2)
        >>> result.total == result.natural + 2
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls. d20 draws
                from the global random module, so the seed applies process-wide.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    def roll(
        self,
        expression: str,
        *,
        roll_type: RollType = RollType.NORMAL,
    ) -> DiceExpression:
        """Roll dice according to the given expression.

        Args:
            expression: Dice expression (e.g., '1d20+5', '2d6+3').
            roll_type: Type of roll (normal, advantage, disadvantage).

        Returns:
            DiceExpression containing roll results.

        Raises:
            DiceRollError: If the expression is invalid.
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)

        has_d20 = "d20" in expression.lower()
        modified_expression = expression
        if has_d20 and roll_type == RollType.ADVANTAGE:
            modified_expression = expression.replace("1d20", "d20").replace("d20", "2d20kh1")
        elif has_d20 and roll_type == RollType.DISADVANTAGE:
            modified_expression = expression.replace("1d20", "d20").replace("d20", "2d20kl1")

        try:
            result: d20.RollResult = d20.roll(modified_expression)
        except d20.RollError as exc:
            raise DiceRollError(
                f"Invalid dice expression: {exc}",
                expression=expression,
            ) from exc

        dice_values = self._extract_dice_values(result.expr)
        modifier = result.total - sum(dice_values)

        is_critical = False
        is_fumble = False
        if has_d20 and dice_values:
            is_critical = dice_values[0] == 20
            is_fumble = dice_values[0] == 1

        logger.debug(
            "Dice rolled",
            expression=modified_expression,
            total=result.total,
            is_critical=is_critical,
        )

        return DiceExpression(
            expression=expression,
            total=result.total,
            dice=dice_values,
            modifier=modifier,
            is_critical=is_critical,
            is_fumble=is_fumble,
            roll_type=roll_type,
        )

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Extract kept dice values from a d20 expression tree.

        Args:
            expr: The d20 expression tree.

        Returns:
            List of individual dice values.
        """
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                for die in node.values:
                    if die.kept:
                        values.append(die.number)
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values

    def roll_ability_check(
        self,
        modifier: int,
        *,
        roll_type: RollType = RollType.NORMAL,
    ) -> DiceExpression:
        """Roll a d20 plus a modifier."""
        return self.roll(_with_modifier("1d20", modifier), roll_type=roll_type)

    def roll_saving_throw(
        self,
        modifier: int,
        *,
        roll_type: RollType = RollType.NORMAL,
    ) -> DiceExpression:
        """Roll a saving throw."""
        return self.roll_ability_check(modifier, roll_type=roll_type)

    def roll_initiative(
        self,
        bonus: int,
        *,
        dice: str = "1d20",
        roll_type: RollType = RollType.NORMAL,
    ) -> DiceExpression:
        """Roll initiative.

        Args:
            bonus: Initiative bonus added to the roll.
            dice: Dice expression rolled before the bonus.
            roll_type: Type of roll (normal, advantage, disadvantage).

        Returns:
            DiceExpression containing roll results.
        """
        return self.roll(_with_modifier(dice, bonus), roll_type=roll_type)

    def roll_death_save(self) -> DiceExpression:
        """Roll an unmodified d20 death save."""
        return self.roll("1d20")


__all__ = [
    "RollType",
    "DiceExpression",
    "DiceRoller",
]
