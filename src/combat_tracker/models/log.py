"""Combat event log entries.

LogEntry records are immutable once created. Their display text is
derived by format_entry, a pure function of the entry kind and payload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, ClassVar, assert_never

from pydantic import BaseModel, ConfigDict, Field, computed_field

from combat_tracker.models.enums import LogEntryKind


class LogEntry(BaseModel):
    """One entry of the combat event log.

    Attributes:
        id: Record identifier, 0 until persisted.
        sequence: Position in the log, assigned on append.
        encounter_id: Encounter the entry belongs to.
        round: Round the event happened in.
        timestamp: Wall-clock time of the event.
        actor_name: Creature performing the action.
        target_name: Creature affected.
        kind: Kind of event.
        description: Free text (spell name, combat name, custom text).
        damage_dealt: Damage for damage entries.
        healing_done: Healing for heal entries.
        dice_roll: Natural die result.
        dice_total: Roll plus modifiers.
        difficulty_class: DC of a saving throw.
        condition_applied: Condition gained.
        condition_removed: Condition lost.
    """

    record_kind: ClassVar[str] = "log_entry"

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[int, Field(ge=0, description="Record ID, 0 until persisted")] = 0
    sequence: Annotated[int, Field(ge=0, description="Position in the log")] = 0
    encounter_id: Annotated[int, Field(ge=0, description="Owning encounter")] = 0
    round: Annotated[int, Field(ge=0, description="Round of the event")] = 0
    timestamp: datetime = Field(default_factory=datetime.now, description="Event time")
    actor_name: str = Field(default="", description="Acting creature")
    target_name: str = Field(default="", description="Affected creature")
    kind: LogEntryKind = Field(description="Event kind")
    description: str = Field(default="", description="Free text")
    damage_dealt: int | None = None
    healing_done: int | None = None
    dice_roll: int | None = None
    dice_total: int | None = None
    difficulty_class: int | None = None
    condition_applied: str | None = None
    condition_removed: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def formatted(self) -> str:
        """Display text of the entry."""
        return format_entry(self)


def _signed(value: int) -> str:
    return f"+ {value}" if value >= 0 else f"- {-value}"


def format_entry(entry: LogEntry) -> str:
    """Render a log entry as one line of display text.

    Args:
        entry: The entry to render.

    Returns:
        The display text for the entry kind.
    """
    actor = entry.actor_name
    target = entry.target_name
    match entry.kind:
        case LogEntryKind.ATTACK:
            return f"{actor} attacks {target}"
        case LogEntryKind.DAMAGE:
            return f"{actor} deals {entry.damage_dealt or 0} damage to {target}"
        case LogEntryKind.HEAL:
            return f"{actor} heals {target} for {entry.healing_done or 0} HP"
        case LogEntryKind.KILL:
            return f"{actor} defeats {target}!"
        case LogEntryKind.DEATH:
            return f"{actor} has fallen!"
        case LogEntryKind.CONDITION_APPLIED:
            return f"{target} is now {entry.condition_applied}"
        case LogEntryKind.CONDITION_REMOVED:
            return f"{target} is no longer {entry.condition_removed}"
        case LogEntryKind.TURN_START:
            return f"--- {actor}'s Turn ---"
        case LogEntryKind.ROUND_START:
            return f"=== ROUND {entry.round} ==="
        case LogEntryKind.COMBAT_START:
            return f"*** COMBAT BEGINS: {entry.description} ***"
        case LogEntryKind.COMBAT_END:
            return "*** COMBAT ENDS ***"
        case LogEntryKind.INITIATIVE_ROLL:
            roll = entry.dice_roll or 0
            total = entry.dice_total if entry.dice_total is not None else roll
            return f"{actor} rolls {roll} {_signed(total - roll)} = {total} initiative"
        case LogEntryKind.SAVING_THROW:
            total = entry.dice_total or 0
            dc = entry.difficulty_class or 0
            outcome = "succeeds" if total >= dc else "fails"
            ability = f"{entry.description} " if entry.description else ""
            return f"{actor} {outcome} {ability}saving throw ({total} vs DC {dc})"
        case LogEntryKind.SPELL_CAST:
            return f"{actor} casts {entry.description}"
        case LogEntryKind.CONCENTRATION:
            return f"{actor} {entry.description}"
        case LogEntryKind.DEATH_SAVE:
            return f"{actor} death save: {entry.description}"
        case LogEntryKind.CUSTOM:
            return entry.description
        case _:
            assert_never(entry.kind)


__all__ = [
    "LogEntry",
    "format_entry",
]
