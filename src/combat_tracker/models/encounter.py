"""Combat encounter aggregate root.

The CombatEncounter record holds the lifecycle phase, round counter and
turn pointer of one fight. The ordered combatants themselves live in the
InitiativeTracker; the record only keeps their ids in turn order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from combat_tracker.models.enums import EncounterPhase


class CombatEncounter(BaseModel):
    """State of a combat encounter.

    Attributes:
        id: Record identifier, 0 until persisted.
        session_id: Game session the encounter belongs to, if any.
        name: Encounter name.
        phase: Lifecycle phase.
        current_round: Current round, starting at 1.
        current_turn_index: Index of the acting combatant in turn order.
        combatant_ids: Combatant ids in turn order.
        started_at: When the encounter started.
        ended_at: When the encounter ended.
    """

    record_kind: ClassVar[str] = "encounter"

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: Annotated[int, Field(ge=0, description="Record ID, 0 until persisted")] = 0
    session_id: int | None = Field(default=None, description="Owning session")
    name: str = Field(
        default="Combat Encounter",
        min_length=1,
        max_length=100,
        description="Encounter name",
    )
    phase: EncounterPhase = Field(default=EncounterPhase.NOT_STARTED, description="Phase")
    current_round: Annotated[int, Field(ge=1, description="Current round")] = 1
    current_turn_index: Annotated[int, Field(ge=0, description="Current turn index")] = 0
    combatant_ids: list[int] = Field(default_factory=list, description="Turn order")
    started_at: datetime | None = Field(default=None, description="Start time")
    ended_at: datetime | None = Field(default=None, description="End time")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_active(self) -> bool:
        """Check if the encounter is running."""
        return self.phase == EncounterPhase.ACTIVE

    @property
    def encounter_id(self) -> int:
        """Alias of id, so every record can be listed by encounter."""
        return self.id


__all__ = [
    "CombatEncounter",
]
