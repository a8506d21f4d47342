"""Membership of active status effects.

The StatusEffectRegistry owns which effects are active. It runs the
expiry hooks of its effects and removes the ones that report expiry,
returning them so the caller can clean up conditions and log.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

from combat_tracker.core.exceptions import NotFoundError
from combat_tracker.core.logging import get_logger
from combat_tracker.models.status_effect import StatusEffect


logger = get_logger(__name__)


class StatusEffectRegistry:
    """Active status effects in insertion order.

    Effects are held by object identity, so unsaved effects (id 0) can
    coexist.
    """

    def __init__(self) -> None:
        self._effects: list[StatusEffect] = []

    def __len__(self) -> int:
        return len(self._effects)

    def __iter__(self) -> Iterator[StatusEffect]:
        return iter(list(self._effects))

    def __contains__(self, effect: object) -> bool:
        return any(e is effect for e in self._effects)

    def add(self, effect: StatusEffect) -> StatusEffect:
        """Register an effect. Adding the same object twice is a no-op."""
        if effect not in self:
            self._effects.append(effect)
            logger.debug("Effect added", effect=effect.name, target=effect.target_name)
        return effect

    def remove(self, effect: StatusEffect) -> bool:
        """Unregister an effect.

        Returns:
            True if the effect was registered.
        """
        for index, existing in enumerate(self._effects):
            if existing is effect:
                del self._effects[index]
                logger.debug("Effect removed", effect=effect.name, target=effect.target_name)
                return True
        return False

    def get(self, effect_id: int) -> StatusEffect:
        """Get a persisted effect by id.

        Raises:
            NotFoundError: If no registered effect has the id.
        """
        for effect in self._effects:
            if effect.id and effect.id == effect_id:
                return effect
        raise NotFoundError(
            f"No active status effect with id {effect_id}",
            record_type=StatusEffect.record_kind,
            record_id=effect_id,
        )

    def all(self) -> list[StatusEffect]:
        """Every registered effect in insertion order."""
        return list(self._effects)

    def effects_for(self, combatant_id: int) -> list[StatusEffect]:
        """Effects owned by a combatant."""
        return [e for e in self._effects if e.combatant_id == combatant_id]

    def effects_on(self, target_name: str) -> list[StatusEffect]:
        """Effects whose target has the given name (case-insensitive)."""
        key = target_name.strip().casefold()
        return [e for e in self._effects if e.target_name.strip().casefold() == key]

    def remove_all_for(self, combatant_id: int) -> list[StatusEffect]:
        """Unregister every effect owned by a combatant, returning them."""
        return self._remove_where(lambda e: e.combatant_id == combatant_id)

    def remove_concentration_effects(self, caster_name: str) -> list[StatusEffect]:
        """Unregister the concentration effects a caster maintains, returning them."""
        key = caster_name.strip().casefold()
        return self._remove_where(
            lambda e: e.is_concentration and e.source_name.strip().casefold() == key
        )

    def clear(self) -> None:
        """Unregister every effect."""
        self._effects.clear()

    # -------------------------------------------------------------------------
    # Expiry processing
    # -------------------------------------------------------------------------

    def process_round_start(self) -> list[StatusEffect]:
        """Run the round-start hook of every effect and drop the expired ones.

        Returns:
            The effects that expired, in insertion order.
        """
        return self._expire(lambda e: e.on_round_start())

    def process_turn_start(self, creature_name: str) -> list[StatusEffect]:
        """Run the turn-start hook of every effect for a creature's turn."""
        return self._expire(lambda e: e.on_turn_start(creature_name))

    def process_turn_end(self, creature_name: str) -> list[StatusEffect]:
        """Run the turn-end hook of every effect for a creature's turn."""
        return self._expire(lambda e: e.on_turn_end(creature_name))

    def _expire(self, hook: Callable[[StatusEffect], bool]) -> list[StatusEffect]:
        # Every hook runs before anything is removed
        expired = [effect for effect in list(self._effects) if hook(effect)]
        for effect in expired:
            self.remove(effect)
        if expired:
            logger.info("Effects expired", effects=[e.name for e in expired])
        return expired

    def _remove_where(self, predicate: Callable[[StatusEffect], bool]) -> list[StatusEffect]:
        removed = [e for e in self._effects if predicate(e)]
        self._effects = [e for e in self._effects if not predicate(e)]
        return removed


__all__ = [
    "StatusEffectRegistry",
]
