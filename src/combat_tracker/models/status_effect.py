"""Status effect model with tagged durations and expiry hooks.

A StatusEffect is a timed condition or spell effect attached to one
combatant. Its duration is a discriminated union; the three expiry hooks
inspect the duration variant and report whether the effect has run out.
The hooks never add or remove the effect from anything; membership is
owned by the StatusEffectRegistry in the engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, ClassVar, Literal, assert_never

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from combat_tracker.core.constants import CONDITION_DESCRIPTIONS
from combat_tracker.models.enums import Ability, SaveTiming


# =============================================================================
# Durations
# =============================================================================


class _DurationBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Instantaneous(_DurationBase):
    """Takes effect once and leaves nothing to track."""

    kind: Literal["instantaneous"] = "instantaneous"


class Rounds(_DurationBase):
    """Lasts a number of rounds, counted down at each round start."""

    kind: Literal["rounds"] = "rounds"
    count: Annotated[int, Field(ge=1, description="Rounds of duration")]


class Minutes(_DurationBase):
    """Lasts a number of minutes. Not counted down by the engine."""

    kind: Literal["minutes"] = "minutes"
    count: Annotated[int, Field(ge=1, description="Minutes of duration")]


class Hours(_DurationBase):
    """Lasts a number of hours. Not counted down by the engine."""

    kind: Literal["hours"] = "hours"
    count: Annotated[int, Field(ge=1, description="Hours of duration")]


class UntilDispelled(_DurationBase):
    """Lasts until removed explicitly."""

    kind: Literal["until_dispelled"] = "until_dispelled"


class UntilEndOfTurnOf(_DurationBase):
    """Expires when the named creature's turn ends."""

    kind: Literal["until_end_of_turn_of"] = "until_end_of_turn_of"
    creature: str = Field(min_length=1, description="Creature whose turn ends it")


class UntilStartOfTurnOf(_DurationBase):
    """Expires when the named creature's turn starts."""

    kind: Literal["until_start_of_turn_of"] = "until_start_of_turn_of"
    creature: str = Field(min_length=1, description="Creature whose turn ends it")


class SaveEnds(_DurationBase):
    """Lasts until the target succeeds on a saving throw."""

    kind: Literal["save_ends"] = "save_ends"
    dc: Annotated[int, Field(ge=1, le=30, description="Save DC")]
    ability: Ability = Field(description="Saving throw ability")


class Permanent(_DurationBase):
    """Never expires."""

    kind: Literal["permanent"] = "permanent"


Duration = Annotated[
    Instantaneous
    | Rounds
    | Minutes
    | Hours
    | UntilDispelled
    | UntilEndOfTurnOf
    | UntilStartOfTurnOf
    | SaveEnds
    | Permanent,
    Field(discriminator="kind"),
]


class SaveRequirement(BaseModel):
    """Saving throw an effect calls for.

    Attributes:
        ability: Saving throw ability.
        dc: Difficulty class.
        timing: When the save is rolled.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ability: Ability = Field(description="Saving throw ability")
    dc: Annotated[int, Field(ge=1, le=30, description="Save DC")]
    timing: SaveTiming = Field(default=SaveTiming.END_OF_TURN, description="Save timing")


def _same_creature(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


# =============================================================================
# Status Effect
# =============================================================================


class StatusEffect(BaseModel):
    """A timed condition or spell effect on one combatant.

    Attributes:
        id: Record identifier, 0 until persisted.
        encounter_id: Owning encounter.
        combatant_id: Owning combatant.
        target_name: Name of the affected combatant.
        name: Effect name, matched against condition names on expiry.
        description: Rules text.
        source_name: Creature that applied the effect.
        source_spell: Spell that created the effect, if any.
        duration: How the effect expires.
        rounds_remaining: Countdown for Rounds durations.
        save: Saving throw the effect calls for, if any.
        is_concentration: Ends when the source loses concentration.
        is_beneficial: Buff rather than debuff.
        is_hidden: Visible to the DM only.
        holds_condition: The owner's condition of the same name was added
            by effects rather than set by hand, so expiry may remove it.
        applied_on_round: Round the effect was applied.
        applied_on_turn: Turn index the effect was applied.
        applied_at: Wall-clock time the effect was applied.
    """

    record_kind: ClassVar[str] = "status_effect"

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: Annotated[int, Field(ge=0, description="Record ID, 0 until persisted")] = 0
    encounter_id: Annotated[int, Field(ge=0, description="Owning encounter")] = 0
    combatant_id: Annotated[int, Field(ge=0, description="Owning combatant")] = 0
    target_name: str = Field(default="", max_length=100, description="Affected combatant")
    name: str = Field(min_length=1, max_length=100, description="Effect name")
    description: str = Field(default="", description="Rules text")
    source_name: str = Field(default="", max_length=100, description="Applied by")
    source_spell: str | None = Field(default=None, description="Source spell")
    duration: Duration = Field(default_factory=UntilDispelled, description="Duration")
    rounds_remaining: Annotated[int, Field(ge=0, description="Rounds left")] = 0
    save: SaveRequirement | None = Field(default=None, description="Save requirement")
    is_concentration: bool = Field(default=False, description="Concentration effect")
    is_beneficial: bool = Field(default=False, description="Beneficial effect")
    is_hidden: bool = Field(default=False, description="DM-only effect")
    holds_condition: bool = Field(
        default=False, description="Owner condition was added by effects, not by hand"
    )
    applied_on_round: Annotated[int, Field(ge=0)] = 0
    applied_on_turn: Annotated[int, Field(ge=0)] = 0
    applied_at: datetime = Field(default_factory=datetime.now, description="Applied at")

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data: Any) -> Any:
        """Start the round countdown and fill standard condition text."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "rounds_remaining" not in data:
            duration = data.get("duration")
            if isinstance(duration, Rounds):
                data["rounds_remaining"] = duration.count
            elif isinstance(duration, dict) and duration.get("kind") == "rounds":
                data["rounds_remaining"] = duration.get("count", 0)
        if not data.get("description") and isinstance(data.get("name"), str):
            data["description"] = condition_description(data["name"])
        return data

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_display(self) -> str:
        """Human-readable duration."""
        match self.duration:
            case Instantaneous():
                return "Instantaneous"
            case Rounds():
                return _plural(self.rounds_remaining, "round")
            case Minutes(count=count):
                return _plural(count, "minute")
            case Hours(count=count):
                return _plural(count, "hour")
            case UntilDispelled():
                return "Until dispelled"
            case UntilEndOfTurnOf(creature=creature):
                return f"Until end of {creature}'s turn"
            case UntilStartOfTurnOf(creature=creature):
                return f"Until start of {creature}'s turn"
            case SaveEnds(dc=dc, ability=ability):
                return f"Save ends (DC {dc} {ability.abbreviation})"
            case Permanent():
                return "Permanent"
            case _:
                assert_never(self.duration)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def save_display(self) -> str:
        """Human-readable save requirement."""
        if self.save is None:
            return "No save"
        return f"DC {self.save.dc} {self.save.ability.abbreviation} ({self.save.timing.display_name})"

    # -------------------------------------------------------------------------
    # Expiry hooks
    # -------------------------------------------------------------------------

    def on_round_start(self) -> bool:
        """Count down a round-based duration.

        Returns:
            True only on the call that brings the countdown to 0.
        """
        match self.duration:
            case Rounds():
                if self.rounds_remaining <= 0:
                    return False
                self.rounds_remaining -= 1
                return self.rounds_remaining == 0
            case (
                Instantaneous()
                | Minutes()
                | Hours()
                | UntilDispelled()
                | UntilEndOfTurnOf()
                | UntilStartOfTurnOf()
                | SaveEnds()
                | Permanent()
            ):
                return False
            case _:
                assert_never(self.duration)

    def on_turn_start(self, creature_name: str) -> bool:
        """Check whether the effect ends as the named creature's turn starts."""
        match self.duration:
            case UntilStartOfTurnOf(creature=creature):
                return _same_creature(creature, creature_name)
            case (
                Instantaneous()
                | Rounds()
                | Minutes()
                | Hours()
                | UntilDispelled()
                | UntilEndOfTurnOf()
                | SaveEnds()
                | Permanent()
            ):
                return False
            case _:
                assert_never(self.duration)

    def on_turn_end(self, creature_name: str) -> bool:
        """Check whether the effect ends as the named creature's turn ends."""
        match self.duration:
            case UntilEndOfTurnOf(creature=creature):
                return _same_creature(creature, creature_name)
            case (
                Instantaneous()
                | Rounds()
                | Minutes()
                | Hours()
                | UntilDispelled()
                | UntilStartOfTurnOf()
                | SaveEnds()
                | Permanent()
            ):
                return False
            case _:
                assert_never(self.duration)

    def ends_on_save(self, total: int) -> bool:
        """Check whether a saving throw total ends a save-ends effect."""
        match self.duration:
            case SaveEnds(dc=dc):
                return total >= dc
            case _:
                return False

    @property
    def referenced_creature(self) -> str | None:
        """Creature named by a turn-bound duration, if any."""
        match self.duration:
            case UntilEndOfTurnOf(creature=creature) | UntilStartOfTurnOf(creature=creature):
                return creature
            case _:
                return None


# =============================================================================
# Factories
# =============================================================================


def condition_description(name: str) -> str:
    """Get the rules text of a standard condition, or an empty string."""
    return CONDITION_DESCRIPTIONS.get(name.strip().lower(), "")


def create_condition_effect(
    name: str,
    target_name: str,
    source_name: str = "",
    duration_rounds: int = 0,
) -> StatusEffect:
    """Create an effect for a standard condition.

    Args:
        name: Condition name (e.g. 'Poisoned').
        target_name: Affected combatant.
        source_name: Creature that applied it.
        duration_rounds: Rounds of duration; 0 means until dispelled.

    Returns:
        The new, unregistered effect.
    """
    duration: Duration = Rounds(count=duration_rounds) if duration_rounds > 0 else UntilDispelled()
    return StatusEffect(
        name=name,
        target_name=target_name,
        source_name=source_name,
        duration=duration,
        description=condition_description(name),
    )


def create_spell_effect(
    spell_name: str,
    target_name: str,
    caster_name: str,
    duration_rounds: int,
    *,
    is_concentration: bool = False,
    is_beneficial: bool = False,
) -> StatusEffect:
    """Create a round-based effect for a spell.

    Args:
        spell_name: Spell name, also used as the effect name.
        target_name: Affected combatant.
        caster_name: Caster.
        duration_rounds: Rounds of duration (at least 1).
        is_concentration: Ends when the caster loses concentration.
        is_beneficial: Buff rather than debuff.

    Returns:
        The new, unregistered effect.
    """
    return StatusEffect(
        name=spell_name,
        target_name=target_name,
        source_name=caster_name,
        source_spell=spell_name,
        duration=Rounds(count=duration_rounds),
        is_concentration=is_concentration,
        is_beneficial=is_beneficial,
    )


__all__ = [
    # Durations
    "Duration",
    "Instantaneous",
    "Rounds",
    "Minutes",
    "Hours",
    "UntilDispelled",
    "UntilEndOfTurnOf",
    "UntilStartOfTurnOf",
    "SaveEnds",
    "Permanent",
    # Effects
    "SaveRequirement",
    "StatusEffect",
    "condition_description",
    "create_condition_effect",
    "create_spell_effect",
]
