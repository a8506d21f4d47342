"""Combatant model and its hit point ledger.

A Combatant is one entry in an encounter's initiative order. Besides its
identity and initiative it carries the resource ledger of the rules engine:
hit points, temporary hit points, death saves, concentration and the list
of free-text conditions. The ledger methods mutate the model in place and
enforce the HP rules; they never touch the event log or the record store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from combat_tracker.core.constants import MAX_DEATH_SAVES, UNCONSCIOUS_CONDITION
from combat_tracker.core.exceptions import InvalidArgumentError, InvalidTransitionError
from combat_tracker.models.enums import CombatantKind


@dataclass(frozen=True)
class DamageResult:
    """Outcome of applying damage to a combatant.

    Attributes:
        amount: Damage requested.
        absorbed_by_temp_hp: Portion absorbed by temporary hit points.
        hp_lost: Portion subtracted from current hit points.
        dropped_to_zero: True if this damage brought the combatant to 0 HP.
        defeated: True if this damage marked the combatant defeated.
        death_save_failures: Death save failures added by damage at 0 HP.
        died: True if this damage killed the combatant.
        concentration_broken: Spell whose concentration ended, if any.
    """

    amount: int
    absorbed_by_temp_hp: int = 0
    hp_lost: int = 0
    dropped_to_zero: bool = False
    defeated: bool = False
    death_save_failures: int = 0
    died: bool = False
    concentration_broken: str | None = None


@dataclass(frozen=True)
class DeathSaveResult:
    """Death save counters after a success or failure was recorded."""

    successes: int
    failures: int
    stabilized: bool = False
    died: bool = False


class Combatant(BaseModel):
    """Entity participating in an encounter.

    Attributes:
        id: Record identifier, 0 until persisted.
        encounter_id: Owning encounter.
        kind: Monster, NPC or player.
        reference_id: Optional id of the monster, NPC or character sheet.
        name: Display name, also used to match turn-bound effect durations.
        initiative: Initiative total.
        initiative_bonus: Bonus added to the initiative roll.
        current_hp: Current hit points.
        max_hp: Maximum hit points.
        temp_hp: Temporary hit points.
        armor_class: Armor class.
        conditions: Active condition names, unique case-insensitively.
        is_defeated: Removed from the fight (0 HP monster or dead player).
        sort_order: Insertion counter used to break initiative ties.
        is_concentrating: Whether the combatant concentrates on a spell.
        concentration_spell: Name of that spell.
        death_save_successes: Death save successes (0-3).
        death_save_failures: Death save failures (0-3).
    """

    record_kind: ClassVar[str] = "combatant"

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: Annotated[int, Field(ge=0, description="Record ID, 0 until persisted")] = 0
    encounter_id: Annotated[int, Field(ge=0, description="Owning encounter")] = 0
    kind: CombatantKind = Field(default=CombatantKind.MONSTER, description="Combatant kind")
    reference_id: int | None = Field(default=None, description="Source creature reference")
    name: str = Field(min_length=1, max_length=100, description="Display name")
    initiative: int = Field(default=0, description="Initiative total")
    initiative_bonus: int = Field(default=0, description="Initiative bonus")
    current_hp: Annotated[int, Field(ge=0, description="Current HP")]
    max_hp: Annotated[int, Field(ge=1, description="Maximum HP")]
    temp_hp: Annotated[int, Field(ge=0, description="Temporary HP")] = 0
    armor_class: Annotated[int, Field(ge=0, le=30, description="Armor class")] = 10
    conditions: list[str] = Field(default_factory=list, description="Active conditions")
    is_defeated: bool = Field(default=False, description="Out of the fight")
    sort_order: Annotated[int, Field(ge=0, description="Insertion tiebreak")] = 0
    is_concentrating: bool = Field(default=False, description="Concentrating on a spell")
    concentration_spell: str | None = Field(default=None, description="Concentration spell")
    death_save_successes: Annotated[int, Field(ge=0, le=MAX_DEATH_SAVES)] = 0
    death_save_failures: Annotated[int, Field(ge=0, le=MAX_DEATH_SAVES)] = 0

    @model_validator(mode="before")
    @classmethod
    def default_current_hp(cls, data: Any) -> Any:
        """Start at full hit points when no current value is given."""
        if isinstance(data, dict) and data.get("current_hp") is None and "max_hp" in data:
            data = {**data, "current_hp": data["max_hp"]}
        return data

    @model_validator(mode="after")
    def validate_hit_points(self) -> Combatant:
        """Ensure current HP never exceeds maximum HP."""
        if self.current_hp > self.max_hp:
            raise ValueError(
                f"current_hp ({self.current_hp}) cannot exceed max_hp ({self.max_hp})"
            )
        return self

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_temp_hp(self) -> bool:
        """Check if the combatant has temporary hit points."""
        return self.temp_hp > 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_stabilized(self) -> bool:
        """Check if the combatant is stable at 0 HP.

        Returns:
            True if death save successes reached 3.
        """
        return self.death_save_successes >= MAX_DEATH_SAVES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_dead(self) -> bool:
        """Check if the combatant is dead.

        Returns:
            True if death save failures reached 3.
        """
        return self.death_save_failures >= MAX_DEATH_SAVES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def needs_death_saves(self) -> bool:
        """Check if the combatant is dying and rolls death saves.

        Returns:
            True for a player at 0 HP that is neither stable nor dead.
        """
        return (
            self.kind == CombatantKind.PLAYER
            and self.current_hp == 0
            and not self.is_stabilized
            and not self.is_dead
        )

    # -------------------------------------------------------------------------
    # Hit points
    # -------------------------------------------------------------------------

    def _ensure_alive(self, operation: str) -> None:
        if self.is_dead:
            raise InvalidTransitionError(
                f"{self.name} is dead and cannot {operation}",
                current_state="dead",
            )

    @staticmethod
    def _ensure_non_negative(amount: int, field_name: str) -> None:
        if amount < 0:
            raise InvalidArgumentError(
                f"{field_name} must be non-negative",
                field_name=field_name,
                invalid_value=amount,
            )

    def apply_damage(self, amount: int) -> DamageResult:
        """Apply damage, spending temporary hit points first.

        Reaching 0 HP marks a non-player defeated and ends concentration.
        Damage taken at 0 HP by a player counts as a death save failure,
        or two failures when it equals or exceeds the maximum HP.

        Args:
            amount: Damage to apply.

        Returns:
            What the damage did.

        Raises:
            InvalidArgumentError: If amount is negative.
            InvalidTransitionError: If the combatant is dead.
        """
        self._ensure_non_negative(amount, "amount")
        self._ensure_alive("take damage")

        if self.current_hp == 0:
            return self._damage_at_zero(amount)

        absorbed = min(self.temp_hp, amount)
        if absorbed:
            self.temp_hp -= absorbed
        hp_lost = min(self.current_hp, amount - absorbed)
        self.current_hp -= hp_lost

        dropped = hp_lost > 0 and self.current_hp == 0
        defeated = False
        broken: str | None = None
        if dropped:
            if self.kind != CombatantKind.PLAYER:
                self.is_defeated = True
                defeated = True
            broken = self.end_concentration()

        return DamageResult(
            amount=amount,
            absorbed_by_temp_hp=absorbed,
            hp_lost=hp_lost,
            dropped_to_zero=dropped,
            defeated=defeated,
            concentration_broken=broken,
        )

    def _damage_at_zero(self, amount: int) -> DamageResult:
        if self.is_defeated or amount == 0:
            return DamageResult(amount=amount)
        if self.kind != CombatantKind.PLAYER:
            self.is_defeated = True
            return DamageResult(amount=amount, defeated=True)

        # Any damage knocks a stable creature back into dying
        if self.is_stabilized:
            self.death_save_successes = 0
        failures = 2 if amount >= self.max_hp else 1
        result = self.add_death_save_failure(failures)
        return DamageResult(
            amount=amount,
            defeated=result.died,
            death_save_failures=failures,
            died=result.died,
        )

    def apply_healing(self, amount: int) -> int:
        """Restore hit points up to the maximum.

        Healing a combatant up from 0 HP clears its death saves, its
        defeated flag and the Unconscious condition. Temporary hit points
        are never changed.

        Args:
            amount: Healing to apply.

        Returns:
            Hit points actually restored.

        Raises:
            InvalidArgumentError: If amount is negative.
            InvalidTransitionError: If the combatant is dead.
        """
        self._ensure_non_negative(amount, "amount")
        self._ensure_alive("be healed")

        new_hp = min(self.max_hp, self.current_hp + amount)
        restored = new_hp - self.current_hp
        if restored == 0:
            return 0

        if self.current_hp == 0:
            self.reset_death_saves()
            self.is_defeated = False
            self.remove_condition(UNCONSCIOUS_CONDITION)
        self.current_hp = new_hp
        return restored

    def add_temp_hp(self, amount: int) -> bool:
        """Grant temporary hit points. They do not stack.

        Args:
            amount: Temporary hit points granted.

        Returns:
            True if the new value replaced the current one.

        Raises:
            InvalidArgumentError: If amount is negative.
        """
        self._ensure_non_negative(amount, "amount")
        if amount <= self.temp_hp:
            return False
        self.temp_hp = amount
        return True

    def remove_temp_hp(self) -> int:
        """Clear temporary hit points, returning the amount removed."""
        removed = self.temp_hp
        self.temp_hp = 0
        return removed

    # -------------------------------------------------------------------------
    # Death saves
    # -------------------------------------------------------------------------

    def _ensure_dying(self) -> None:
        self._ensure_alive("roll death saves")
        if self.current_hp != 0:
            raise InvalidTransitionError(
                f"{self.name} is not at 0 HP",
                current_state=f"hp={self.current_hp}",
                expected_states=["hp=0"],
            )

    def add_death_save_success(self) -> DeathSaveResult:
        """Record a death save success. Three successes stabilize.

        Raises:
            InvalidTransitionError: If the combatant is not at 0 HP or is dead.
        """
        self._ensure_dying()
        was_stable = self.is_stabilized
        self.death_save_successes = min(MAX_DEATH_SAVES, self.death_save_successes + 1)
        stabilized = self.is_stabilized and not was_stable
        if stabilized:
            self.add_condition(UNCONSCIOUS_CONDITION)
        return DeathSaveResult(
            successes=self.death_save_successes,
            failures=self.death_save_failures,
            stabilized=stabilized,
        )

    def add_death_save_failure(self, count: int = 1) -> DeathSaveResult:
        """Record death save failures. Three failures kill.

        Args:
            count: Failures to add (a natural 1 counts as two).

        Raises:
            InvalidArgumentError: If count is less than 1.
            InvalidTransitionError: If the combatant is not at 0 HP or is dead.
        """
        if count < 1:
            raise InvalidArgumentError(
                "count must be at least 1", field_name="count", invalid_value=count
            )
        self._ensure_dying()
        self.death_save_failures = min(MAX_DEATH_SAVES, self.death_save_failures + count)
        if self.is_dead:
            self.is_defeated = True
        return DeathSaveResult(
            successes=self.death_save_successes,
            failures=self.death_save_failures,
            died=self.is_dead,
        )

    def reset_death_saves(self) -> None:
        """Clear both death save counters."""
        self.death_save_successes = 0
        self.death_save_failures = 0

    # -------------------------------------------------------------------------
    # Concentration
    # -------------------------------------------------------------------------

    def start_concentration(self, spell_name: str) -> str | None:
        """Begin concentrating on a spell, replacing any current one.

        Returns:
            The spell that was replaced, if any.

        Raises:
            InvalidArgumentError: If the spell name is blank.
        """
        spell_name = spell_name.strip()
        if not spell_name:
            raise InvalidArgumentError("Spell name cannot be blank", field_name="spell_name")
        previous = self.end_concentration()
        self.concentration_spell = spell_name
        self.is_concentrating = True
        return previous

    def end_concentration(self) -> str | None:
        """Stop concentrating, returning the spell that ended."""
        if not self.is_concentrating:
            return None
        spell = self.concentration_spell
        self.is_concentrating = False
        self.concentration_spell = None
        return spell

    # -------------------------------------------------------------------------
    # Conditions
    # -------------------------------------------------------------------------

    def has_condition(self, name: str) -> bool:
        """Check for a condition by case-insensitive name."""
        key = name.strip().lower()
        return any(c.lower() == key for c in self.conditions)

    def add_condition(self, name: str) -> bool:
        """Add a condition unless it is already present.

        Returns:
            True if the condition was added.

        Raises:
            InvalidArgumentError: If the name is blank.
        """
        name = name.strip()
        if not name:
            raise InvalidArgumentError("Condition name cannot be blank", field_name="name")
        if self.has_condition(name):
            return False
        self.conditions = [*self.conditions, name]
        return True

    def remove_condition(self, name: str) -> bool:
        """Remove a condition by case-insensitive name.

        Returns:
            True if the condition was present.
        """
        key = name.strip().lower()
        remaining = [c for c in self.conditions if c.lower() != key]
        if len(remaining) == len(self.conditions):
            return False
        self.conditions = remaining
        return True


__all__ = [
    "Combatant",
    "DamageResult",
    "DeathSaveResult",
]
