"""Tests for the Combatant hit point ledger."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from combat_tracker.core.exceptions import InvalidArgumentError, InvalidTransitionError
from combat_tracker.models.combatant import Combatant
from combat_tracker.models.enums import CombatantKind


def _downed_player() -> Combatant:
    player = Combatant(name="Aria", kind=CombatantKind.PLAYER, max_hp=20)
    player.apply_damage(20)
    return player


class TestCombatantCreation:
    """Tests for Combatant construction and validation."""

    def test_current_hp_defaults_to_max(self, sample_combatant: Combatant) -> None:
        """Test current HP starts at the maximum."""
        assert sample_combatant.current_hp == 20
        assert sample_combatant.max_hp == 20
        assert sample_combatant.kind == CombatantKind.PLAYER

    def test_current_hp_cannot_exceed_max(self) -> None:
        """Test current HP above max is rejected."""
        with pytest.raises(ValidationError):
            Combatant(name="Ogre", max_hp=10, current_hp=11)

    def test_max_hp_must_be_positive(self) -> None:
        """Test max HP of 0 is rejected."""
        with pytest.raises(ValidationError):
            Combatant(name="Wisp", max_hp=0)

    def test_extra_fields_forbidden(self) -> None:
        """Test unknown fields are rejected."""
        with pytest.raises(ValidationError):
            Combatant(name="Ogre", max_hp=10, strength=19)

    def test_computed_flags(self, sample_combatant: Combatant) -> None:
        """Test derived flags on a healthy combatant."""
        assert sample_combatant.has_temp_hp is False
        assert sample_combatant.is_stabilized is False
        assert sample_combatant.is_dead is False
        assert sample_combatant.needs_death_saves is False


class TestDamage:
    """Tests for apply_damage."""

    def test_reduces_hp(self, sample_combatant: Combatant) -> None:
        """Test damage reduces current HP."""
        result = sample_combatant.apply_damage(5)

        assert sample_combatant.current_hp == 15
        assert result.hp_lost == 5
        assert result.dropped_to_zero is False

    def test_temp_hp_absorbs_first(self, sample_combatant: Combatant) -> None:
        """Test temporary HP is spent before current HP."""
        sample_combatant.add_temp_hp(5)

        result = sample_combatant.apply_damage(8)

        assert result.absorbed_by_temp_hp == 5
        assert result.hp_lost == 3
        assert sample_combatant.temp_hp == 0
        assert sample_combatant.current_hp == 17

    def test_floors_at_zero(self, goblin: Combatant) -> None:
        """Test HP never goes negative."""
        result = goblin.apply_damage(50)

        assert goblin.current_hp == 0
        assert result.hp_lost == 7
        assert result.dropped_to_zero is True

    def test_monster_defeated_at_zero(self, goblin: Combatant) -> None:
        """Test a monster at 0 HP is defeated."""
        result = goblin.apply_damage(7)

        assert result.defeated is True
        assert goblin.is_defeated is True

    def test_player_enters_death_saves(self, sample_combatant: Combatant) -> None:
        """Test a player at 0 HP is dying, not defeated."""
        result = sample_combatant.apply_damage(20)

        assert result.defeated is False
        assert sample_combatant.is_defeated is False
        assert sample_combatant.needs_death_saves is True

    def test_zero_hp_breaks_concentration(self, sample_combatant: Combatant) -> None:
        """Test dropping to 0 HP ends concentration."""
        sample_combatant.start_concentration("Bless")

        result = sample_combatant.apply_damage(20)

        assert result.concentration_broken == "Bless"
        assert sample_combatant.is_concentrating is False

    def test_damage_at_zero_is_death_save_failure(self) -> None:
        """Test damage to a dying player adds a failure."""
        player = _downed_player()

        result = player.apply_damage(3)

        assert result.death_save_failures == 1
        assert player.death_save_failures == 1

    def test_massive_damage_at_zero_is_two_failures(self) -> None:
        """Test damage at least max HP adds two failures."""
        player = _downed_player()

        result = player.apply_damage(20)

        assert result.death_save_failures == 2
        assert result.died is False

    def test_damage_unstabilizes(self) -> None:
        """Test damage to a stable player resets successes."""
        player = _downed_player()
        for _ in range(3):
            player.add_death_save_success()

        player.apply_damage(1)

        assert player.death_save_successes == 0
        assert player.death_save_failures == 1

    def test_negative_damage_rejected(self, sample_combatant: Combatant) -> None:
        """Test negative damage raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            sample_combatant.apply_damage(-1)

    def test_dead_combatant_rejected(self) -> None:
        """Test damaging a dead combatant raises InvalidTransitionError."""
        player = _downed_player()
        player.add_death_save_failure(3)

        with pytest.raises(InvalidTransitionError):
            player.apply_damage(1)

    @pytest.mark.parametrize("amounts", [[3, 4, 30], [0, 19, 1, 5], [25]])
    def test_hp_stays_in_bounds(self, amounts: list[int]) -> None:
        """Test current HP stays within 0 and max through a damage sequence."""
        ogre = Combatant(name="Ogre", max_hp=20)
        for amount in amounts:
            ogre.apply_damage(amount)
            assert 0 <= ogre.current_hp <= ogre.max_hp


class TestHealing:
    """Tests for apply_healing and temporary HP."""

    def test_caps_at_max(self, sample_combatant: Combatant) -> None:
        """Test healing never exceeds max HP."""
        sample_combatant.apply_damage(5)

        restored = sample_combatant.apply_healing(10)

        assert restored == 5
        assert sample_combatant.current_hp == 20

    def test_does_not_touch_temp_hp(self, sample_combatant: Combatant) -> None:
        """Test healing leaves temporary HP alone."""
        sample_combatant.add_temp_hp(4)
        sample_combatant.apply_damage(10)

        sample_combatant.apply_healing(10)

        assert sample_combatant.temp_hp == 0

    def test_heal_from_zero_resets_death_saves(self) -> None:
        """Test healing a dying player clears death saves and Unconscious."""
        player = _downed_player()
        for _ in range(3):
            player.add_death_save_success()
        assert player.has_condition("unconscious")

        player.apply_healing(5)

        assert player.current_hp == 5
        assert player.death_save_successes == 0
        assert player.death_save_failures == 0
        assert not player.has_condition("Unconscious")

    def test_heal_defeated_monster_clears_flag(self, goblin: Combatant) -> None:
        """Test healing a defeated monster brings it back."""
        goblin.apply_damage(7)

        goblin.apply_healing(3)

        assert goblin.is_defeated is False

    def test_temp_hp_does_not_stack(self, sample_combatant: Combatant) -> None:
        """Test a lower temp HP grant does not replace a higher one."""
        assert sample_combatant.add_temp_hp(8) is True
        assert sample_combatant.add_temp_hp(5) is False
        assert sample_combatant.add_temp_hp(8) is False
        assert sample_combatant.temp_hp == 8

    def test_remove_temp_hp(self, sample_combatant: Combatant) -> None:
        """Test removing temp HP returns the amount removed."""
        sample_combatant.add_temp_hp(6)

        assert sample_combatant.remove_temp_hp() == 6
        assert sample_combatant.temp_hp == 0


class TestDeathSaves:
    """Tests for the death save counters."""

    def test_three_successes_stabilize(self) -> None:
        """Test the third success stabilizes."""
        player = _downed_player()
        player.add_death_save_success()
        player.add_death_save_success()

        result = player.add_death_save_success()

        assert result.stabilized is True
        assert player.is_stabilized is True
        assert player.has_condition("Unconscious")

    def test_three_failures_kill(self) -> None:
        """Test the third failure kills and defeats."""
        player = _downed_player()
        player.add_death_save_failure()
        player.add_death_save_failure()

        result = player.add_death_save_failure()

        assert result.died is True
        assert player.is_dead is True
        assert player.is_defeated is True

    def test_failures_clamp_at_three(self) -> None:
        """Test failures never exceed three."""
        player = _downed_player()
        player.add_death_save_failure(2)

        result = player.add_death_save_failure(2)

        assert result.failures == 3

    def test_requires_zero_hp(self, sample_combatant: Combatant) -> None:
        """Test death saves above 0 HP are rejected."""
        with pytest.raises(InvalidTransitionError):
            sample_combatant.add_death_save_success()

    def test_failure_count_must_be_positive(self) -> None:
        """Test a failure count below 1 is rejected."""
        with pytest.raises(InvalidArgumentError):
            _downed_player().add_death_save_failure(0)

    def test_reset(self) -> None:
        """Test reset clears both counters."""
        player = _downed_player()
        player.add_death_save_success()
        player.add_death_save_failure()

        player.reset_death_saves()

        assert (player.death_save_successes, player.death_save_failures) == (0, 0)


class TestConcentrationAndConditions:
    """Tests for concentration and condition bookkeeping."""

    def test_start_replaces_previous(self, sample_combatant: Combatant) -> None:
        """Test starting concentration returns the replaced spell."""
        assert sample_combatant.start_concentration("Bless") is None
        assert sample_combatant.start_concentration("Hold Person") == "Bless"
        assert sample_combatant.concentration_spell == "Hold Person"

    def test_end_concentration(self, sample_combatant: Combatant) -> None:
        """Test ending concentration returns the spell."""
        sample_combatant.start_concentration("Bless")

        assert sample_combatant.end_concentration() == "Bless"
        assert sample_combatant.end_concentration() is None

    def test_blank_spell_rejected(self, sample_combatant: Combatant) -> None:
        """Test a blank spell name is rejected."""
        with pytest.raises(InvalidArgumentError):
            sample_combatant.start_concentration("  ")

    def test_conditions_deduplicate_case_insensitively(self, sample_combatant: Combatant) -> None:
        """Test the same condition is only added once."""
        assert sample_combatant.add_condition("Prone") is True
        assert sample_combatant.add_condition("prone") is False
        assert sample_combatant.conditions == ["Prone"]

    def test_remove_condition(self, sample_combatant: Combatant) -> None:
        """Test removing a condition by any casing."""
        sample_combatant.add_condition("Poisoned")

        assert sample_combatant.remove_condition("POISONED") is True
        assert sample_combatant.remove_condition("Poisoned") is False
        assert sample_combatant.conditions == []

    def test_blank_condition_rejected(self, sample_combatant: Combatant) -> None:
        """Test a blank condition name is rejected."""
        with pytest.raises(InvalidArgumentError):
            sample_combatant.add_condition("")
