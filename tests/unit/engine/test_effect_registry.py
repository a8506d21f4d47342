"""Tests for the status effect registry."""

from __future__ import annotations

import pytest

from combat_tracker.core.exceptions import NotFoundError
from combat_tracker.engine.effect_registry import StatusEffectRegistry
from combat_tracker.models.status_effect import (
    Rounds,
    StatusEffect,
    UntilEndOfTurnOf,
    UntilStartOfTurnOf,
    create_spell_effect,
)


class TestMembership:
    """Tests for adding, finding and removing effects."""

    def test_add_is_idempotent(self) -> None:
        """Test adding the same effect twice keeps one copy."""
        registry = StatusEffectRegistry()
        effect = StatusEffect(name="Bless")

        registry.add(effect)
        registry.add(effect)

        assert len(registry) == 1
        assert effect in registry

    def test_unsaved_effects_coexist(self) -> None:
        """Test distinct effects with id 0 are tracked separately."""
        registry = StatusEffectRegistry()
        registry.add(StatusEffect(name="Bless"))
        registry.add(StatusEffect(name="Bless"))

        assert len(registry) == 2

    def test_remove(self) -> None:
        """Test removing reports whether the effect was registered."""
        registry = StatusEffectRegistry()
        effect = registry.add(StatusEffect(name="Bless"))

        assert registry.remove(effect) is True
        assert registry.remove(effect) is False

    def test_get_by_id(self) -> None:
        """Test looking up a persisted effect."""
        registry = StatusEffectRegistry()
        effect = registry.add(StatusEffect(id=5, name="Bless"))

        assert registry.get(5) is effect
        with pytest.raises(NotFoundError):
            registry.get(6)

    def test_effects_for_combatant(self) -> None:
        """Test filtering by owner and target name."""
        registry = StatusEffectRegistry()
        mine = registry.add(StatusEffect(name="Bless", combatant_id=1, target_name="Aria"))
        registry.add(StatusEffect(name="Bane", combatant_id=2, target_name="Goblin"))

        assert registry.effects_for(1) == [mine]
        assert registry.effects_on("aria") == [mine]
        assert registry.remove_all_for(1) == [mine]
        assert len(registry) == 1

    def test_remove_concentration_effects(self) -> None:
        """Test only the caster's concentration effects are removed."""
        registry = StatusEffectRegistry()
        held = registry.add(create_spell_effect("Bless", "Aria", "Cleric", 10,
                                                is_concentration=True))
        registry.add(create_spell_effect("Shield of Faith", "Aria", "Paladin", 10,
                                         is_concentration=True))
        registry.add(create_spell_effect("Aid", "Aria", "Cleric", 10))

        removed = registry.remove_concentration_effects("cleric")

        assert removed == [held]
        assert len(registry) == 2


class TestExpiry:
    """Tests for expiry processing."""

    def test_round_start_removes_expired(self) -> None:
        """Test expired round effects are removed and returned."""
        registry = StatusEffectRegistry()
        short = registry.add(StatusEffect(name="Dazed", duration=Rounds(count=1)))
        long = registry.add(StatusEffect(name="Bless", duration=Rounds(count=3)))

        expired = registry.process_round_start()

        assert expired == [short]
        assert registry.all() == [long]
        assert long.rounds_remaining == 2

    def test_turn_hooks(self) -> None:
        """Test turn start and end hooks expire by creature name."""
        registry = StatusEffectRegistry()
        dodge = registry.add(StatusEffect(name="Dodge",
                                          duration=UntilStartOfTurnOf(creature="Aria")))
        hex_ = registry.add(StatusEffect(name="Hex",
                                         duration=UntilEndOfTurnOf(creature="Goblin")))

        assert registry.process_turn_end("Aria") == []
        assert registry.process_turn_end("Goblin") == [hex_]
        assert registry.process_turn_start("ARIA") == [dodge]
        assert len(registry) == 0

    def test_every_hook_runs_before_removal(self) -> None:
        """Test all effects count down even when some expire."""
        registry = StatusEffectRegistry()
        effects = [registry.add(StatusEffect(name=f"E{n}", duration=Rounds(count=n)))
                   for n in (1, 2, 1)]

        expired = registry.process_round_start()

        assert expired == [effects[0], effects[2]]
        assert effects[1].rounds_remaining == 1

    def test_clear(self) -> None:
        """Test clear empties the registry."""
        registry = StatusEffectRegistry()
        registry.add(StatusEffect(name="Bless"))

        registry.clear()

        assert registry.all() == []
