"""Spell resource pools for spellcasting combatants.

A SpellResourcePool tracks the per-level spell slots, Warlock pact slots
and Sorcerer sorcery points of one combatant. Pools are built from the
class progression tables or from explicit maxima, and every pool keeps
its current value between 0 and its maximum.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from combat_tracker.core.constants import (
    MAX_CHARACTER_LEVEL,
    MAX_SPELL_LEVEL,
    MIN_CHARACTER_LEVEL,
    MIN_SPELL_LEVEL,
    SORCERY_POINTS_MIN_LEVEL,
)
from combat_tracker.core.exceptions import InvalidArgumentError
from combat_tracker.models.progression import get_pact_magic, get_spell_slots


class ResourcePool(BaseModel):
    """A bounded counter of an expendable resource.

    Attributes:
        maximum: Amount restored by a rest.
        current: Amount left.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    maximum: Annotated[int, Field(ge=0)] = 0
    current: Annotated[int, Field(ge=0)] = 0

    @model_validator(mode="after")
    def validate_bounds(self) -> ResourcePool:
        """Ensure the current amount never exceeds the maximum."""
        if self.current > self.maximum:
            raise ValueError(f"current ({self.current}) cannot exceed maximum ({self.maximum})")
        return self

    @classmethod
    def full(cls, maximum: int) -> ResourcePool:
        """Create a pool at its maximum."""
        return cls(maximum=maximum, current=maximum)

    def spend(self, amount: int = 1) -> bool:
        """Spend an amount if enough is left.

        Returns:
            True if the amount was spent.
        """
        if self.current < amount:
            return False
        self.current -= amount
        return True

    def restore(self, amount: int = 1) -> bool:
        """Restore an amount if the pool is below its maximum.

        Returns:
            True if anything was restored.
        """
        if self.current >= self.maximum:
            return False
        self.current = min(self.maximum, self.current + amount)
        return True

    def refill(self) -> None:
        """Set the pool back to its maximum."""
        self.current = self.maximum


class PactPool(ResourcePool):
    """Warlock pact slots, all cast at the same slot level."""

    slot_level: Annotated[int, Field(ge=0, le=MAX_SPELL_LEVEL)] = 0


def _empty_slots() -> list[ResourcePool]:
    return [ResourcePool() for _ in range(MAX_SPELL_LEVEL)]


class SpellResourcePool(BaseModel):
    """Spell resources of one combatant.

    Attributes:
        id: Record identifier, 0 until persisted.
        encounter_id: Owning encounter.
        combatant_id: Owning combatant.
        combatant_name: Name of the owning combatant.
        class_name: Spellcasting class ('Custom' for explicit maxima).
        class_level: Level in that class, 0 for custom pools.
        slots: Nine slot pools, index 0 holding 1st-level slots.
        pact: Warlock pact slots.
        sorcery_points: Sorcerer sorcery points.
    """

    record_kind: ClassVar[str] = "spell_pool"

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: Annotated[int, Field(ge=0, description="Record ID, 0 until persisted")] = 0
    encounter_id: Annotated[int, Field(ge=0, description="Owning encounter")] = 0
    combatant_id: Annotated[int, Field(ge=0, description="Owning combatant")] = 0
    combatant_name: str = Field(default="", max_length=100, description="Owning combatant")
    class_name: str = Field(default="Custom", description="Spellcasting class")
    class_level: Annotated[int, Field(ge=0, le=MAX_CHARACTER_LEVEL)] = 0
    slots: list[ResourcePool] = Field(default_factory=_empty_slots, description="Slots 1-9")
    pact: PactPool = Field(default_factory=PactPool, description="Pact slots")
    sorcery_points: ResourcePool = Field(default_factory=ResourcePool)

    @field_validator("slots", mode="after")
    @classmethod
    def validate_slot_count(cls, value: list[ResourcePool]) -> list[ResourcePool]:
        """Ensure there is exactly one pool per spell level."""
        if len(value) != MAX_SPELL_LEVEL:
            raise ValueError(f"expected {MAX_SPELL_LEVEL} slot pools, got {len(value)}")
        return value

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def for_class_level(
        cls,
        class_name: str,
        class_level: int,
        *,
        combatant_id: int = 0,
        combatant_name: str = "",
        encounter_id: int = 0,
    ) -> SpellResourcePool:
        """Build a full pool from the class progression tables.

        Args:
            class_name: Class name, matched case-insensitively.
            class_level: Level in that class (1-20).
            combatant_id: Owning combatant.
            combatant_name: Name of the owning combatant.
            encounter_id: Owning encounter.

        Returns:
            A pool with every resource at its maximum.

        Raises:
            InvalidArgumentError: If the level is outside 1-20.
        """
        if not MIN_CHARACTER_LEVEL <= class_level <= MAX_CHARACTER_LEVEL:
            raise InvalidArgumentError(
                f"Class level must be between {MIN_CHARACTER_LEVEL} and {MAX_CHARACTER_LEVEL}",
                field_name="class_level",
                invalid_value=class_level,
            )

        slots = [ResourcePool.full(n) for n in get_spell_slots(class_name, class_level)]

        pact = PactPool()
        pact_magic = get_pact_magic(class_name, class_level)
        if pact_magic is not None:
            count, slot_level = pact_magic
            pact = PactPool(maximum=count, current=count, slot_level=slot_level)

        sorcery = ResourcePool()
        if class_name.strip().lower() == "sorcerer" and class_level >= SORCERY_POINTS_MIN_LEVEL:
            sorcery = ResourcePool.full(class_level)

        return cls(
            encounter_id=encounter_id,
            combatant_id=combatant_id,
            combatant_name=combatant_name,
            class_name=class_name.strip(),
            class_level=class_level,
            slots=slots,
            pact=pact,
            sorcery_points=sorcery,
        )

    @classmethod
    def custom(
        cls,
        maxima: Sequence[int],
        *,
        combatant_id: int = 0,
        combatant_name: str = "",
        encounter_id: int = 0,
    ) -> SpellResourcePool:
        """Build a full pool from explicit per-level maxima.

        Args:
            maxima: Up to nine slot maxima, 1st level first. Missing levels are 0.

        Raises:
            InvalidArgumentError: If more than nine or negative maxima are given.
        """
        if len(maxima) > MAX_SPELL_LEVEL:
            raise InvalidArgumentError(
                f"At most {MAX_SPELL_LEVEL} slot maxima can be given",
                field_name="maxima",
                invalid_value=list(maxima),
            )
        if any(n < 0 for n in maxima):
            raise InvalidArgumentError(
                "Slot maxima must be non-negative",
                field_name="maxima",
                invalid_value=list(maxima),
            )
        padded = [*maxima, *([0] * (MAX_SPELL_LEVEL - len(maxima)))]
        return cls(
            encounter_id=encounter_id,
            combatant_id=combatant_id,
            combatant_name=combatant_name,
            slots=[ResourcePool.full(n) for n in padded],
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_spell_slots(self) -> bool:
        """Check if any standard or pact slot exists."""
        return any(s.maximum > 0 for s in self.slots) or self.pact.maximum > 0

    @property
    def maxima(self) -> list[int]:
        """Slot maxima for levels 1-9."""
        return [s.maximum for s in self.slots]

    @property
    def available(self) -> list[int]:
        """Slots left for levels 1-9."""
        return [s.current for s in self.slots]

    def slot(self, level: int) -> ResourcePool | None:
        """Get the pool of a spell level, or None if the level is out of range."""
        if not MIN_SPELL_LEVEL <= level <= MAX_SPELL_LEVEL:
            return None
        return self.slots[level - 1]

    # -------------------------------------------------------------------------
    # Spending and restoring
    # -------------------------------------------------------------------------

    def use_slot(self, level: int) -> bool:
        """Spend one slot of a level.

        Returns:
            False if the level is out of range or no slot is left.
        """
        pool = self.slot(level)
        return pool.spend() if pool is not None else False

    def restore_slot(self, level: int) -> bool:
        """Restore one slot of a level.

        Returns:
            False if the level is out of range or the pool is full.
        """
        pool = self.slot(level)
        return pool.restore() if pool is not None else False

    def use_pact_slot(self) -> bool:
        """Spend one pact slot."""
        return self.pact.spend()

    def use_sorcery_points(self, amount: int) -> int:
        """Spend sorcery points, flooring at 0.

        Returns:
            Sorcery points left.

        Raises:
            InvalidArgumentError: If amount is negative.
        """
        if amount < 0:
            raise InvalidArgumentError(
                "Sorcery points spent must be non-negative",
                field_name="amount",
                invalid_value=amount,
            )
        self.sorcery_points.current = max(0, self.sorcery_points.current - amount)
        return self.sorcery_points.current

    def short_rest(self) -> None:
        """Refill pact slots. Standard slots and sorcery points are unchanged."""
        self.pact.refill()

    def long_rest(self) -> None:
        """Refill every pool."""
        for pool in self.slots:
            pool.refill()
        self.pact.refill()
        self.sorcery_points.refill()


__all__ = [
    "ResourcePool",
    "PactPool",
    "SpellResourcePool",
]
