"""Tests for dice rolling mechanics."""

from __future__ import annotations

import pytest

from combat_tracker.core.exceptions import DiceRollError
from combat_tracker.engine.dice import DiceExpression, DiceRoller, RollType


class TestDiceRoller:
    """Tests for the DiceRoller class."""

    def test_simple_d20_roll(self, dice_roller: DiceRoller) -> None:
        """Test simple d20 roll."""
        result = dice_roller.roll("1d20")

        assert isinstance(result, DiceExpression)
        assert 1 <= result.total <= 20
        assert len(result.dice) == 1
        assert result.roll_type == RollType.NORMAL

    def test_roll_with_modifier(self, dice_roller: DiceRoller) -> None:
        """Test roll with positive modifier."""
        result = dice_roller.roll("1d20+5")

        assert result.modifier == 5
        assert 6 <= result.total <= 25
        assert result.natural == result.total - 5

    def test_roll_with_negative_modifier(self, dice_roller: DiceRoller) -> None:
        """Test roll with negative modifier."""
        result = dice_roller.roll("1d20-3")

        assert result.modifier == -3

    def test_multiple_dice(self, dice_roller: DiceRoller) -> None:
        """Test rolling multiple dice."""
        result = dice_roller.roll("3d6")

        assert 3 <= result.total <= 18
        assert len(result.dice) == 3

    def test_complex_expression(self, dice_roller: DiceRoller) -> None:
        """Test complex dice expression."""
        result = dice_roller.roll("2d6+1d4+3")

        assert 6 <= result.total <= 19
        assert result.modifier == 3

    @pytest.mark.parametrize("roll_type", [RollType.ADVANTAGE, RollType.DISADVANTAGE])
    def test_advantage_keeps_one_die(self, dice_roller: DiceRoller, roll_type: RollType) -> None:
        """Test advantage and disadvantage keep a single d20."""
        result = dice_roller.roll("1d20+2", roll_type=roll_type)

        assert result.roll_type == roll_type
        assert len(result.dice) == 1
        assert result.total == result.dice[0] + 2

    def test_critical_flag_matches_natural(self, dice_roller: DiceRoller) -> None:
        """Test the critical and fumble flags follow the natural roll."""
        for _ in range(50):
            result = dice_roller.roll("1d20")
            assert result.is_critical == (result.natural == 20)
            assert result.is_fumble == (result.natural == 1)

    def test_seed_is_reproducible(self) -> None:
        """Test the same seed gives the same rolls."""
        roller = DiceRoller(seed=7)
        first = [roller.roll("1d20").total, roller.roll("4d6").total]
        roller = DiceRoller(seed=7)
        second = [roller.roll("1d20").total, roller.roll("4d6").total]

        assert first == second

    @pytest.mark.parametrize("expression", ["invalid", "", "   "])
    def test_bad_expression_raises_error(self, dice_roller: DiceRoller, expression: str) -> None:
        """Test that invalid expressions raise DiceRollError."""
        with pytest.raises(DiceRollError):
            dice_roller.roll(expression)


class TestDiceRollerSpecializedMethods:
    """Tests for specialized dice rolling methods."""

    def test_roll_ability_check(self, dice_roller: DiceRoller) -> None:
        """Test ability check rolling."""
        result = dice_roller.roll_ability_check(5)

        assert 6 <= result.total <= 25

    def test_roll_saving_throw_negative_modifier(self, dice_roller: DiceRoller) -> None:
        """Test saving throw with negative modifier."""
        result = dice_roller.roll_saving_throw(-2)

        assert -1 <= result.total <= 18

    def test_roll_initiative(self, dice_roller: DiceRoller) -> None:
        """Test initiative roll."""
        result = dice_roller.roll_initiative(2)

        assert 3 <= result.total <= 22
        assert result.modifier == 2

    def test_roll_initiative_custom_dice(self, dice_roller: DiceRoller) -> None:
        """Test initiative with another dice expression."""
        result = dice_roller.roll_initiative(0, dice="1d10")

        assert 1 <= result.total <= 10

    def test_roll_death_save(self, dice_roller: DiceRoller) -> None:
        """Test death saves are a bare d20."""
        result = dice_roller.roll_death_save()

        assert result.modifier == 0
        assert 1 <= result.natural <= 20


class TestDiceExpression:
    """Tests for the DiceExpression dataclass."""

    def test_expression_is_frozen(self) -> None:
        """Test that DiceExpression is immutable."""
        expr = DiceExpression(
            expression="1d20",
            total=15,
            dice=[15],
            modifier=0,
            is_critical=False,
            is_fumble=False,
            roll_type=RollType.NORMAL,
        )

        with pytest.raises(AttributeError):
            expr.total = 20  # type: ignore[misc]

    def test_natural_without_dice(self) -> None:
        """Test natural falls back to total minus modifier."""
        expr = DiceExpression(
            expression="5",
            total=5,
            dice=[],
            modifier=0,
            is_critical=False,
            is_fumble=False,
            roll_type=RollType.NORMAL,
        )

        assert expr.natural == 5
