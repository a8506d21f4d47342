"""Initiative and turn management for combat encounters.

The InitiativeTracker owns one encounter at a time: its aggregate record,
the combatants in turn order, their status effects and spell pools. Every
operation validates its input, mutates the in-memory state, appends to
the event log and only then writes the touched records to the record
store. Store failures of one operation are collected and raised together
as a PersistenceError; the in-memory state is kept.

Example:
    >>> tracker = InitiativeTracker()
    >>> tracker.start_encounter("Goblin Ambush")
    >>> aria = tracker.add_combatant("Aria", CombatantKind.PLAYER, max_hp=20, armor_class=15)
    >>> goblin = tracker.add_combatant("Goblin", max_hp=7, armor_class=13, initiative_bonus=2)
    >>> tracker.roll_all_initiative()
    >>> tracker.sort_by_initiative()
    >>> tracker.next_turn().name in {"Aria", "Goblin"}
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from combat_tracker.core.config import Settings, get_settings
from combat_tracker.core.constants import (
    DEATH_SAVE_DC,
    MAX_SPELL_LEVEL,
    MIN_CONCENTRATION_DC,
    MIN_SPELL_LEVEL,
)
from combat_tracker.core.exceptions import (
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
)
from combat_tracker.core.logging import bind_context, get_logger, mirror_combat_event
from combat_tracker.engine.dice import DiceRoller, RollType
from combat_tracker.engine.effect_registry import StatusEffectRegistry
from combat_tracker.engine.event_log import EventLog
from combat_tracker.models.combatant import Combatant, DamageResult, DeathSaveResult
from combat_tracker.models.encounter import CombatEncounter
from combat_tracker.models.enums import Ability, CombatantKind, EncounterPhase
from combat_tracker.models.log import LogEntry
from combat_tracker.models.spell_slots import SpellResourcePool
from combat_tracker.models.status_effect import (
    Rounds,
    SaveEnds,
    StatusEffect,
    condition_description,
    create_condition_effect,
)
from combat_tracker.storage.record_store import InMemoryRecordStore, RecordStore


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

CombatantRef = Combatant | int


def _same_name(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()


def _build(model: type[ModelT], **data: Any) -> ModelT:
    """Construct a record, reporting validation failures as bad arguments."""
    try:
        return model(**data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise InvalidArgumentError(
            f"Invalid {model.__name__}: {first['msg']}",
            field_name=field,
            invalid_value=first.get("input"),
        ) from exc


def _validate_spell_level(level: int) -> None:
    if not MIN_SPELL_LEVEL <= level <= MAX_SPELL_LEVEL:
        raise InvalidArgumentError(
            f"Spell level must be between {MIN_SPELL_LEVEL} and {MAX_SPELL_LEVEL}",
            field_name="level",
            invalid_value=level,
        )


class InitiativeTracker:
    """Turn order state machine and combat operations for one encounter.

    The encounter moves from not started to active to ended. Ended is
    terminal: a new fight needs start_encounter, which builds a fresh
    aggregate.

    Attributes:
        store: Record store the encounter is persisted to.
        dice: Dice roller for initiative, saves and death saves.
        log: Event log receiving every combat event.
        effects: Registry of active status effects.
    """

    def __init__(
        self,
        *,
        store: RecordStore | None = None,
        dice_roller: DiceRoller | None = None,
        event_log: EventLog | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Record store. Defaults to a new in-memory store.
            dice_roller: Dice roller. Defaults to one seeded from settings.
            event_log: Event log. Defaults to one persisting to the store.
            settings: Settings. Defaults to the application settings.
        """
        self._settings = settings or get_settings()
        self.store: RecordStore = store if store is not None else InMemoryRecordStore()
        self.dice = dice_roller or DiceRoller(seed=self._settings.combat.dice_seed)
        self.log = event_log if event_log is not None else EventLog(self.store)
        self.effects = StatusEffectRegistry()
        if self._settings.debug:
            self.log.subscribe(mirror_combat_event)

        self._encounter: CombatEncounter | None = None
        self._combatants: list[Combatant] = []
        self._pools: dict[int, SpellResourcePool] = {}
        self._next_sort_order = 0
        logger.debug("InitiativeTracker initialized")

    # =========================================================================
    # State
    # =========================================================================

    @property
    def encounter(self) -> CombatEncounter | None:
        """The current encounter aggregate, or None before the first start."""
        return self._encounter

    @property
    def phase(self) -> EncounterPhase:
        """Lifecycle phase of the current encounter."""
        if self._encounter is None:
            return EncounterPhase.NOT_STARTED
        return self._encounter.phase

    @property
    def current_round(self) -> int:
        """Current round (1 before the first start)."""
        return self._encounter.current_round if self._encounter else 1

    @property
    def current_turn_index(self) -> int:
        """Index of the acting combatant in turn order."""
        return self._encounter.current_turn_index if self._encounter else 0

    @property
    def combatants(self) -> list[Combatant]:
        """Combatants in turn order."""
        return list(self._combatants)

    @property
    def current_combatant(self) -> Combatant | None:
        """The acting combatant, or None if no turn is valid."""
        if self.phase != EncounterPhase.ACTIVE or not self._combatants:
            return None
        return self._combatants[self.current_turn_index]

    @property
    def spell_pools(self) -> list[SpellResourcePool]:
        """Spell pools of the combatants, in turn order."""
        return [self._pools[id(c)] for c in self._combatants if id(c) in self._pools]

    def get_combatant(self, ref: CombatantRef) -> Combatant:
        """Resolve a combatant by object or persisted id.

        Raises:
            NotFoundError: If the combatant is not in the encounter.
        """
        if isinstance(ref, Combatant):
            if any(c is ref for c in self._combatants):
                return ref
            record_id = ref.id
        else:
            record_id = ref
            for combatant in self._combatants:
                if combatant.id and combatant.id == ref:
                    return combatant
        raise NotFoundError(
            f"Combatant {record_id} is not in the encounter",
            record_type=Combatant.record_kind,
            record_id=record_id,
        )

    def find_combatant(self, name: str) -> Combatant | None:
        """Find a combatant by case-insensitive name."""
        return next((c for c in self._combatants if _same_name(c.name, name)), None)

    def _index_of(self, combatant: Combatant) -> int:
        return next(i for i, c in enumerate(self._combatants) if c is combatant)

    def _require_encounter(self) -> CombatEncounter:
        if self._encounter is None:
            raise InvalidTransitionError(
                "No encounter has been started",
                current_state=EncounterPhase.NOT_STARTED,
                expected_states=[EncounterPhase.ACTIVE],
            )
        return self._encounter

    def _require_open(self) -> CombatEncounter:
        encounter = self._require_encounter()
        if encounter.phase == EncounterPhase.ENDED:
            raise InvalidTransitionError(
                f"Encounter '{encounter.name}' has ended",
                current_state=encounter.phase,
                expected_states=[EncounterPhase.NOT_STARTED, EncounterPhase.ACTIVE],
            )
        return encounter

    def _require_active(self) -> CombatEncounter:
        encounter = self._require_encounter()
        if encounter.phase != EncounterPhase.ACTIVE:
            raise InvalidTransitionError(
                f"Encounter '{encounter.name}' is not active",
                current_state=encounter.phase,
                expected_states=[EncounterPhase.ACTIVE],
            )
        return encounter

    def _require_turns(self) -> CombatEncounter:
        encounter = self._require_active()
        if not self._combatants:
            raise InvalidTransitionError(
                "Encounter has no combatants",
                current_state="empty",
                expected_states=["has_combatants"],
            )
        return encounter

    # =========================================================================
    # Persistence
    # =========================================================================

    def _save(
        self,
        records: Iterable[BaseModel] = (),
        *,
        deleted: Iterable[BaseModel] = (),
        include_encounter: bool = True,
    ) -> None:
        """Write touched records, attempting every one before reporting failures.

        Raises:
            PersistenceError: If any write failed.
        """
        failures: list[PersistenceError] = []
        seen: set[int] = set()

        for record in records:
            if id(record) in seen:
                continue
            seen.add(id(record))
            try:
                record_id = self.store.save(record)
            except PersistenceError as exc:
                failures.append(exc)
                continue
            if getattr(record, "id", record_id) != record_id:
                record.id = record_id  # type: ignore[attr-defined]

        for record in deleted:
            record_id = getattr(record, "id", 0)
            if not record_id:
                continue
            try:
                self.store.delete(type(record), record_id)
            except PersistenceError as exc:
                failures.append(exc)

        if include_encounter and self._encounter is not None:
            self._encounter.combatant_ids = [c.id for c in self._combatants]
            try:
                encounter_id = self.store.save(self._encounter)
            except PersistenceError as exc:
                failures.append(exc)
            else:
                self._encounter.id = encounter_id

        if failures:
            for failure in failures:
                logger.error("Record write failed", error=failure.message, **failure.details)
            raise PersistenceError(
                f"{len(failures)} record write(s) failed",
                operation="save",
                details={"errors": [f.message for f in failures]},
            )

    # =========================================================================
    # Logging helpers
    # =========================================================================

    def _log_context(self) -> dict[str, int]:
        encounter = self._require_encounter()
        return {"encounter_id": encounter.id, "round": encounter.current_round}

    def _owner_of(self, effect: StatusEffect) -> Combatant | None:
        if effect.combatant_id:
            for combatant in self._combatants:
                if combatant.id == effect.combatant_id:
                    return combatant
        return self.find_combatant(effect.target_name)

    def _effects_of(self, combatant: Combatant) -> list[StatusEffect]:
        return [e for e in self.effects.all() if self._owner_of(e) is combatant]

    def _condition_holder(self, combatant: Combatant, name: str) -> StatusEffect | None:
        """Active effect keeping the combatant's condition of this name, if any."""
        return next(
            (
                e for e in self._effects_of(combatant)
                if e.holds_condition and _same_name(e.name, name)
            ),
            None,
        )

    def _clear_expired(self, expired: Sequence[StatusEffect]) -> list[Combatant]:
        """Remove the conditions held by expired effects from their owners.

        A condition stays while another active effect of the same name
        still holds it, and a condition set by hand is never removed here.
        """
        touched: list[Combatant] = []
        for effect in expired:
            owner = self._owner_of(effect)
            if owner is None or not effect.holds_condition:
                continue
            if self._condition_holder(owner, effect.name) is not None:
                continue
            if owner.remove_condition(effect.name):
                self.log.log_condition_removed(
                    **self._log_context(), target=owner.name, condition=effect.name
                )
                touched.append(owner)
        return touched

    def _drop_concentration(self, caster: Combatant, spell: str, description: str) -> tuple[
        list[Combatant], list[StatusEffect]
    ]:
        self.log.log_concentration(**self._log_context(), actor=caster.name,
                                   description=f"{description} {spell}")
        removed = self.effects.remove_concentration_effects(caster.name)
        touched = self._clear_expired(removed)
        return touched, removed

    # =========================================================================
    # Encounter lifecycle
    # =========================================================================

    def start_encounter(
        self,
        name: str = "Combat Encounter",
        *,
        session_id: int | None = None,
    ) -> CombatEncounter:
        """Start a fresh encounter, ending the current one if it is active.

        The new encounter is active at round 1, turn 0, with no combatants.

        Args:
            name: Encounter name.
            session_id: Game session the encounter belongs to.

        Returns:
            The new encounter aggregate.

        Raises:
            InvalidArgumentError: If the name is invalid.
            PersistenceError: If the encounter could not be saved.
        """
        encounter = _build(
            CombatEncounter,
            name=name,
            session_id=session_id,
            phase=EncounterPhase.ACTIVE,
            started_at=datetime.now(),
        )
        if self._encounter is not None and self._encounter.is_active:
            self.end_combat()

        self._encounter = encounter
        self._combatants = []
        self._pools = {}
        self._next_sort_order = 0
        self.effects.clear()

        failure: PersistenceError | None = None
        try:
            encounter.id = self.store.save(encounter)
        except PersistenceError as exc:
            failure = exc

        bind_context(encounter_id=encounter.id)
        self.log.log_combat_start(encounter_id=encounter.id, name=encounter.name)
        logger.info("Encounter started", name=encounter.name, session_id=session_id)

        if failure is not None:
            raise failure
        return encounter

    def end_combat(self) -> CombatEncounter:
        """End the active encounter.

        Raises:
            InvalidTransitionError: If the encounter is not active.
        """
        encounter = self._require_active()
        encounter.phase = EncounterPhase.ENDED
        encounter.ended_at = datetime.now()
        self.log.log_combat_end(**self._log_context())
        logger.info("Encounter ended", name=encounter.name, rounds=encounter.current_round)
        self._save()
        return encounter

    def load(self, encounter_id: int) -> CombatEncounter:
        """Rebuild an encounter and its records from the record store.

        Args:
            encounter_id: Id of a persisted encounter.

        Returns:
            The loaded encounter, now current.

        Raises:
            NotFoundError: If no encounter has the id.
            PersistenceError: If the store cannot be read.
        """
        encounter = self.store.get(CombatEncounter, encounter_id)
        if encounter is None:
            raise NotFoundError(
                f"Encounter {encounter_id} does not exist",
                record_type=CombatEncounter.record_kind,
                record_id=encounter_id,
            )

        stored = {c.id: c for c in self.store.list_by_encounter(Combatant, encounter_id)}
        ordered = [stored.pop(cid) for cid in encounter.combatant_ids if cid in stored]
        ordered.extend(sorted(stored.values(), key=lambda c: c.sort_order))

        self._encounter = encounter
        self._combatants = ordered
        self._next_sort_order = max((c.sort_order for c in ordered), default=-1) + 1
        if ordered and encounter.current_turn_index >= len(ordered):
            encounter.current_turn_index = 0

        self.effects.clear()
        for effect in self.store.list_by_encounter(StatusEffect, encounter_id):
            self.effects.add(effect)

        by_id = {c.id: c for c in ordered}
        self._pools = {}
        for pool in self.store.list_by_encounter(SpellResourcePool, encounter_id):
            owner = by_id.get(pool.combatant_id)
            if owner is not None:
                self._pools[id(owner)] = pool

        if not self.log.for_encounter(encounter_id):
            self.log.restore(self.store.list_by_encounter(LogEntry, encounter_id))

        bind_context(encounter_id=encounter_id)
        logger.info(
            "Encounter loaded",
            name=encounter.name,
            combatants=len(ordered),
            effects=len(self.effects),
        )
        return encounter

    # =========================================================================
    # Combatants
    # =========================================================================

    def add_combatant(
        self,
        name: str,
        kind: CombatantKind = CombatantKind.MONSTER,
        *,
        max_hp: int,
        armor_class: int = 10,
        initiative_bonus: int = 0,
        current_hp: int | None = None,
        initiative: int = 0,
        reference_id: int | None = None,
    ) -> Combatant:
        """Append a combatant to the turn order without moving the turn pointer.

        Returns:
            The new combatant.

        Raises:
            InvalidTransitionError: If no encounter is open.
            InvalidArgumentError: If the combatant data is invalid.
        """
        encounter = self._require_open()
        combatant = _build(
            Combatant,
            encounter_id=encounter.id,
            kind=kind,
            reference_id=reference_id,
            name=name,
            initiative=initiative,
            initiative_bonus=initiative_bonus,
            current_hp=current_hp,
            max_hp=max_hp,
            armor_class=armor_class,
            sort_order=self._next_sort_order,
        )
        self._next_sort_order += 1
        self._combatants.append(combatant)
        logger.info("Combatant added", combatant=combatant.name, kind=combatant.kind)
        self._save([combatant])
        return combatant

    def remove_combatant(self, ref: CombatantRef) -> Combatant:
        """Remove a combatant with its effects and spell pool.

        Removing an entry before the turn pointer shifts the pointer down so
        the acting combatant keeps the turn. Removing the acting combatant
        hands the turn to the next entry, wrapping to the first.
        Effects on other combatants that last until the start or end of the
        removed creature's turn are dropped, with the conditions they held.

        Raises:
            InvalidTransitionError: If the encounter has ended.
            NotFoundError: If the combatant is not in the encounter.
        """
        encounter = self._require_open()
        combatant = self.get_combatant(ref)
        position = self._index_of(combatant)

        effects = self._effects_of(combatant)
        for effect in effects:
            self.effects.remove(effect)
        pool = self._pools.pop(id(combatant), None)
        del self._combatants[position]

        index = encounter.current_turn_index
        if position < index:
            index -= 1
        if index >= len(self._combatants):
            index = 0
        encounter.current_turn_index = index

        # Turn-bound effects waiting on a creature that is gone can never end
        orphaned = [
            e for e in self.effects.all()
            if e.referenced_creature is not None
            and self.find_combatant(e.referenced_creature) is None
        ]
        for effect in orphaned:
            self.effects.remove(effect)
        touched = self._clear_expired(orphaned)

        logger.info("Combatant removed", combatant=combatant.name,
                    dropped_effects=[e.name for e in orphaned])
        deleted: list[BaseModel] = [combatant, *effects, *orphaned]
        if pool is not None:
            deleted.append(pool)
        self._save(touched, deleted=deleted)
        return combatant

    # =========================================================================
    # Initiative
    # =========================================================================

    def roll_initiative(
        self,
        ref: CombatantRef,
        roll: int | None = None,
        *,
        roll_type: RollType = RollType.NORMAL,
    ) -> int:
        """Roll and store a combatant's initiative. The order is not changed.

        Args:
            ref: Combatant to roll for.
            roll: Natural roll to use instead of rolling dice.
            roll_type: Advantage or disadvantage on the roll.

        Returns:
            The initiative total.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        if roll is None:
            result = self.dice.roll_initiative(
                combatant.initiative_bonus,
                dice=self._settings.combat.initiative_dice,
                roll_type=roll_type,
            )
            natural, total = result.total - result.modifier, result.total
        else:
            natural, total = roll, roll + combatant.initiative_bonus

        combatant.initiative = total
        self.log.log_initiative(**self._log_context(), actor=combatant.name,
                                roll=natural, total=total)
        logger.info(
            "Initiative rolled",
            combatant=combatant.name,
            roll=natural,
            bonus=combatant.initiative_bonus,
        )
        self._save([combatant], include_encounter=False)
        return total

    def roll_all_initiative(self) -> None:
        """Roll initiative for every combatant in turn order."""
        for combatant in list(self._combatants):
            self.roll_initiative(combatant)

    def sort_by_initiative(self) -> list[Combatant]:
        """Order combatants by initiative, highest first.

        Ties keep insertion order. The turn pointer keeps its index.

        Returns:
            Combatants in the new turn order.
        """
        self._require_open()
        self._combatants.sort(key=lambda c: (-c.initiative, c.sort_order))
        logger.info(
            "Initiative sorted",
            order=[f"{c.name}({c.initiative})" for c in self._combatants],
        )
        self._save()
        return self.combatants

    # =========================================================================
    # Turns
    # =========================================================================

    def next_turn(self) -> Combatant:
        """Advance to the next combatant.

        Ends the outgoing combatant's turn, starts a new round when the
        pointer wraps, then starts the incoming combatant's turn. Effects
        that expire along the way are removed with their conditions.

        Returns:
            The combatant whose turn it now is.

        Raises:
            InvalidTransitionError: If the encounter is not active or empty.
        """
        encounter = self._require_turns()
        outgoing = self._combatants[encounter.current_turn_index]

        expired = self.effects.process_turn_end(outgoing.name)
        touched = self._clear_expired(expired)

        counting_down: list[StatusEffect] = []
        next_index = (encounter.current_turn_index + 1) % len(self._combatants)
        if next_index == 0:
            encounter.current_round += 1
            self.log.log_round_start(**self._log_context())
            counting_down = [e for e in self.effects.all() if isinstance(e.duration, Rounds)]
            round_expired = self.effects.process_round_start()
            touched += self._clear_expired(round_expired)
            expired += round_expired
            logger.info("New round started", round=encounter.current_round)

        encounter.current_turn_index = next_index
        incoming = self._combatants[next_index]
        turn_expired = self.effects.process_turn_start(incoming.name)
        touched += self._clear_expired(turn_expired)
        expired += turn_expired

        self.log.log_turn_start(**self._log_context(), actor=incoming.name)
        logger.info("Next turn", combatant=incoming.name, round=encounter.current_round)

        still_active = [e for e in counting_down if e in self.effects]
        self._save([*touched, *still_active], deleted=expired)
        return incoming

    def previous_turn(self) -> Combatant:
        """Step back to the previous combatant without running expiry hooks.

        Wrapping from the first combatant to the last decrements the round,
        never below 1.

        Raises:
            InvalidTransitionError: If the encounter is not active or empty.
        """
        encounter = self._require_turns()
        if encounter.current_turn_index == 0:
            encounter.current_turn_index = len(self._combatants) - 1
            encounter.current_round = max(1, encounter.current_round - 1)
        else:
            encounter.current_turn_index -= 1

        current = self._combatants[encounter.current_turn_index]
        self.log.log_turn_start(**self._log_context(), actor=current.name)
        logger.info("Previous turn", combatant=current.name, round=encounter.current_round)
        self._save()
        return current

    # =========================================================================
    # Hit points
    # =========================================================================

    def apply_damage(self, ref: CombatantRef, amount: int, *, source: str = "DM") -> DamageResult:
        """Damage a combatant and log the consequences.

        Args:
            ref: Combatant taking damage.
            amount: Damage dealt.
            source: Name of the attacker.

        Returns:
            What the damage did.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        result = combatant.apply_damage(amount)
        context = self._log_context()

        self.log.log_damage(**context, actor=source, target=combatant.name, amount=amount)
        touched: list[BaseModel] = [combatant]
        removed: list[StatusEffect] = []

        if result.death_save_failures:
            self.log.log_death_save(
                **context,
                actor=combatant.name,
                description=(
                    f"{result.death_save_failures} failure(s) from damage "
                    f"({combatant.death_save_successes}/{combatant.death_save_failures})"
                ),
            )
        if result.concentration_broken:
            dropped, removed = self._drop_concentration(
                combatant, result.concentration_broken, "loses concentration on"
            )
            touched += dropped
        if result.died:
            self.log.log_death(**context, actor=combatant.name)
        elif result.defeated:
            self.log.log_kill(**context, actor=source, target=combatant.name)

        logger.info(
            "Damage applied",
            combatant=combatant.name,
            amount=amount,
            hp=combatant.current_hp,
            defeated=combatant.is_defeated,
        )
        self._save(touched, deleted=removed, include_encounter=False)
        return result

    def apply_healing(self, ref: CombatantRef, amount: int, *, source: str = "DM") -> int:
        """Heal a combatant.

        Returns:
            Hit points actually restored.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        restored = combatant.apply_healing(amount)
        self.log.log_heal(**self._log_context(), actor=source, target=combatant.name,
                          amount=restored)
        logger.info("Healing applied", combatant=combatant.name, restored=restored)
        self._save([combatant], include_encounter=False)
        return restored

    def add_temp_hp(self, ref: CombatantRef, amount: int) -> bool:
        """Grant temporary hit points (no stacking).

        Returns:
            True if the new value replaced the old one.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        applied = combatant.add_temp_hp(amount)
        if applied:
            self.log.log_custom(**self._log_context(), actor=combatant.name,
                                text=f"{combatant.name} gains {amount} temporary HP")
            self._save([combatant], include_encounter=False)
        return applied

    def remove_temp_hp(self, ref: CombatantRef) -> int:
        """Clear temporary hit points, returning the amount removed."""
        self._require_open()
        combatant = self.get_combatant(ref)
        removed = combatant.remove_temp_hp()
        if removed:
            self._save([combatant], include_encounter=False)
        return removed

    def log_attack(
        self,
        attacker: str,
        target: str,
        *,
        roll: int | None = None,
        total: int | None = None,
    ) -> LogEntry:
        """Record an attack in the event log."""
        self._require_open()
        return self.log.log_attack(**self._log_context(), actor=attacker, target=target,
                                   roll=roll, total=total)

    def log_custom(self, text: str, *, actor: str = "") -> LogEntry:
        """Record free text, e.g. a correction of an earlier entry."""
        self._require_open()
        return self.log.log_custom(**self._log_context(), text=text, actor=actor)

    def log_saving_throw(
        self,
        ref: CombatantRef,
        total: int,
        dc: int,
        *,
        ability: Ability | None = None,
        roll: int | None = None,
    ) -> LogEntry:
        """Record a saving throw against a DC."""
        self._require_open()
        combatant = self.get_combatant(ref)
        return self.log.log_saving_throw(
            **self._log_context(),
            actor=combatant.name,
            total=total,
            dc=dc,
            ability=ability.abbreviation if ability else "",
            roll=roll,
        )

    # =========================================================================
    # Death saves
    # =========================================================================

    def add_death_save_success(self, ref: CombatantRef) -> DeathSaveResult:
        """Record a death save success; the third stabilizes."""
        self._require_open()
        combatant = self.get_combatant(ref)
        result = combatant.add_death_save_success()
        self._log_death_save(combatant, result, "success")
        self._save([combatant], include_encounter=False)
        return result

    def add_death_save_failure(self, ref: CombatantRef, count: int = 1) -> DeathSaveResult:
        """Record death save failures; the third kills."""
        self._require_open()
        combatant = self.get_combatant(ref)
        result = combatant.add_death_save_failure(count)
        self._log_death_save(combatant, result, "failure" if count == 1 else f"{count} failures")
        self._save([combatant], include_encounter=False)
        return result

    def roll_death_save(self, ref: CombatantRef, roll: int | None = None) -> DeathSaveResult:
        """Roll a death save.

        A natural 20 or any roll of 10 or more is a success, a natural 1
        counts as two failures, anything else is one failure.

        Args:
            ref: Dying combatant.
            roll: Natural d20 result to use instead of rolling.

        Raises:
            InvalidArgumentError: If roll is outside 1-20.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        if roll is None:
            roll = self.dice.roll_death_save().natural
        elif not 1 <= roll <= 20:
            raise InvalidArgumentError(
                "Death save roll must be between 1 and 20",
                field_name="roll",
                invalid_value=roll,
            )

        if roll >= DEATH_SAVE_DC:
            result = combatant.add_death_save_success()
            label = "natural 20" if roll == 20 else "success"
        else:
            failures = 2 if roll == 1 else 1
            result = combatant.add_death_save_failure(failures)
            label = "natural 1" if roll == 1 else "failure"

        self._log_death_save(combatant, result, label, roll=roll)
        self._save([combatant], include_encounter=False)
        return result

    def reset_death_saves(self, ref: CombatantRef) -> None:
        """Clear both death save counters."""
        self._require_open()
        combatant = self.get_combatant(ref)
        combatant.reset_death_saves()
        self._save([combatant], include_encounter=False)

    def _log_death_save(
        self,
        combatant: Combatant,
        result: DeathSaveResult,
        label: str,
        *,
        roll: int | None = None,
    ) -> None:
        context = self._log_context()
        tally = f"({result.successes}/{result.failures})"
        if result.stabilized:
            description = f"{label}, stabilized {tally}"
        elif result.died:
            description = f"{label}, dead {tally}"
        else:
            description = f"{label} {tally}"
        self.log.log_death_save(**context, actor=combatant.name, description=description,
                                roll=roll)
        if result.died:
            self.log.log_death(**context, actor=combatant.name)

    # =========================================================================
    # Concentration
    # =========================================================================

    def start_concentration(
        self,
        ref: CombatantRef,
        spell_name: str,
        *,
        log_broken: bool = False,
    ) -> str | None:
        """Begin concentrating on a spell, replacing the current one.

        Args:
            ref: Caster.
            spell_name: Spell concentrated on.
            log_broken: Log that the replaced spell's concentration broke.

        Returns:
            The replaced spell, if any.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        previous, touched, removed = self._begin_concentration(
            combatant, spell_name, log_broken=log_broken
        )
        self._save([combatant, *touched], deleted=removed, include_encounter=False)
        return previous

    def _begin_concentration(
        self,
        combatant: Combatant,
        spell_name: str,
        *,
        log_broken: bool,
    ) -> tuple[str | None, list[Combatant], list[StatusEffect]]:
        previous = combatant.start_concentration(spell_name)
        touched: list[Combatant] = []
        removed: list[StatusEffect] = []
        if previous is not None:
            removed = self.effects.remove_concentration_effects(combatant.name)
            touched = self._clear_expired(removed)
            if log_broken:
                self.log.log_concentration(**self._log_context(), actor=combatant.name,
                                           description=f"breaks concentration on {previous}")
        self.log.log_concentration(**self._log_context(), actor=combatant.name,
                                   description=f"begins concentrating on {spell_name.strip()}")
        return previous, touched, removed

    def end_concentration(self, ref: CombatantRef) -> str | None:
        """Stop concentrating and remove the caster's concentration effects.

        Returns:
            The spell that ended, if any.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        spell = combatant.end_concentration()
        if spell is None:
            return None
        touched, removed = self._drop_concentration(combatant, spell, "ends concentration on")
        self._save([combatant, *touched], deleted=removed, include_encounter=False)
        return spell

    def concentration_check(
        self,
        ref: CombatantRef,
        damage: int,
        *,
        constitution_modifier: int = 0,
        roll: int | None = None,
    ) -> bool:
        """Roll a Constitution save to keep concentration after damage.

        The DC is half the damage, minimum 10. A failed save ends
        concentration.

        Args:
            ref: Concentrating combatant.
            damage: Damage taken.
            constitution_modifier: Constitution saving throw modifier.
            roll: Natural d20 result to use instead of rolling.

        Returns:
            True if concentration holds (or there was none).
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        if damage < 0:
            raise InvalidArgumentError("damage must be non-negative", field_name="damage",
                                       invalid_value=damage)
        if not combatant.is_concentrating:
            return True

        dc = max(MIN_CONCENTRATION_DC, damage // 2)
        if roll is None:
            result = self.dice.roll_saving_throw(constitution_modifier)
            natural, total = result.natural, result.total
        else:
            natural, total = roll, roll + constitution_modifier

        self.log.log_saving_throw(**self._log_context(), actor=combatant.name, total=total,
                                  dc=dc, ability=Ability.CON.abbreviation, roll=natural)
        if total >= dc:
            return True

        spell = combatant.end_concentration()
        touched, removed = self._drop_concentration(
            combatant, spell or "", "loses concentration on"
        )
        self._save([combatant, *touched], deleted=removed, include_encounter=False)
        return False

    # =========================================================================
    # Conditions and status effects
    # =========================================================================

    def add_condition(
        self,
        ref: CombatantRef,
        name: str,
        *,
        source: str = "",
        duration_rounds: int = 0,
    ) -> bool:
        """Give a combatant a condition.

        With a positive duration the condition is also tracked as a
        round-based effect and removed when it expires.

        Returns:
            True if the combatant did not have the condition yet.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        if duration_rounds < 0:
            raise InvalidArgumentError("duration_rounds must be non-negative",
                                       field_name="duration_rounds",
                                       invalid_value=duration_rounds)
        if duration_rounds > 0:
            had_condition = combatant.has_condition(name)
            effect = _build_effect(name, combatant.name, source, duration_rounds)
            self.add_effect(combatant, effect, apply_condition=True)
            return not had_condition

        added = combatant.add_condition(name)
        if added:
            self.log.log_condition_applied(**self._log_context(), actor=source,
                                           target=combatant.name, condition=name.strip())
            self._save([combatant], include_encounter=False)
        return added

    def remove_condition(self, ref: CombatantRef, name: str) -> bool:
        """Remove a condition and any effect of the same name on the combatant.

        Returns:
            True if the combatant had the condition.
        """
        self._require_open()
        combatant = self.get_combatant(ref)
        effects = [e for e in self._effects_of(combatant) if _same_name(e.name, name)]
        for effect in effects:
            self.effects.remove(effect)

        removed = combatant.remove_condition(name)
        if removed:
            self.log.log_condition_removed(**self._log_context(), target=combatant.name,
                                           condition=name.strip())
        if removed or effects:
            self._save([combatant], deleted=effects, include_encounter=False)
        return removed

    def add_effect(
        self,
        ref: CombatantRef,
        effect: StatusEffect,
        *,
        apply_condition: bool | None = None,
    ) -> StatusEffect:
        """Attach a status effect to a combatant.

        Args:
            ref: Affected combatant.
            effect: The effect; its owner, target and timing are filled in.
            apply_condition: Also add the effect name as a condition. By
                default only standard condition names are added.

        Returns:
            The registered effect.

        Raises:
            InvalidArgumentError: If a turn-bound duration names a creature
                that is not in the encounter.
        """
        encounter = self._require_open()
        combatant = self.get_combatant(ref)

        creature = effect.referenced_creature
        if creature is not None and (
            not creature.strip() or self.find_combatant(creature) is None
        ):
            raise InvalidArgumentError(
                f"Duration refers to unknown creature '{creature}'",
                field_name="duration.creature",
                invalid_value=creature,
            )

        effect.encounter_id = encounter.id
        effect.combatant_id = combatant.id
        effect.target_name = combatant.name
        effect.applied_on_round = encounter.current_round
        effect.applied_on_turn = encounter.current_turn_index
        effect.holds_condition = False
        self.effects.add(effect)

        if apply_condition is None:
            apply_condition = bool(condition_description(effect.name))
        touched: list[BaseModel] = [effect]
        if apply_condition:
            if combatant.add_condition(effect.name):
                effect.holds_condition = True
                self.log.log_condition_applied(**self._log_context(),
                                               actor=effect.source_name,
                                               target=combatant.name, condition=effect.name)
                touched.append(combatant)
            else:
                # An existing condition is shared only if effects put it there
                effect.holds_condition = (
                    self._condition_holder(combatant, effect.name) is not None
                )

        logger.info(
            "Effect applied",
            effect=effect.name,
            target=combatant.name,
            duration=effect.duration_display,
        )
        self._save(touched, include_encounter=False)
        return effect

    def effects_for(self, ref: CombatantRef) -> list[StatusEffect]:
        """Active effects on a combatant."""
        return self._effects_of(self.get_combatant(ref))

    def _resolve_effect(self, effect: StatusEffect | int) -> StatusEffect:
        if isinstance(effect, StatusEffect):
            if effect not in self.effects:
                raise NotFoundError(
                    f"Effect '{effect.name}' is not active",
                    record_type=StatusEffect.record_kind,
                    record_id=effect.id,
                )
            return effect
        return self.effects.get(effect)

    def dispel_effect(self, effect: StatusEffect | int) -> StatusEffect:
        """Remove an effect and any condition no other effect still holds.

        Raises:
            NotFoundError: If the effect is not active.
        """
        self._require_open()
        target = self._resolve_effect(effect)
        self.effects.remove(target)
        touched = self._clear_expired([target])
        logger.info("Effect dispelled", effect=target.name, target=target.target_name)
        self._save(touched, deleted=[target], include_encounter=False)
        return target

    def resolve_save(
        self,
        effect: StatusEffect | int,
        total: int,
        *,
        roll: int | None = None,
    ) -> bool:
        """Apply a saving throw against an effect.

        A success ends a save-ends effect.

        Returns:
            True if the save succeeded.

        Raises:
            InvalidArgumentError: If the effect calls for no save.
        """
        self._require_open()
        target = self._resolve_effect(effect)
        if isinstance(target.duration, SaveEnds):
            dc, ability = target.duration.dc, target.duration.ability
        elif target.save is not None:
            dc, ability = target.save.dc, target.save.ability
        else:
            raise InvalidArgumentError(
                f"Effect '{target.name}' calls for no saving throw",
                field_name="effect",
                invalid_value=target.name,
            )

        self.log.log_saving_throw(**self._log_context(), actor=target.target_name, total=total,
                                  dc=dc, ability=ability.abbreviation, roll=roll)
        if target.ends_on_save(total):
            self.dispel_effect(target)
        return total >= dc

    # =========================================================================
    # Spell resources
    # =========================================================================

    def get_spell_pool(self, ref: CombatantRef) -> SpellResourcePool | None:
        """Spell pool of a combatant, if it has one."""
        return self._pools.get(id(self.get_combatant(ref)))

    def _require_pool(self, combatant: Combatant) -> SpellResourcePool:
        pool = self._pools.get(id(combatant))
        if pool is None:
            raise NotFoundError(
                f"{combatant.name} has no spell pool",
                record_type=SpellResourcePool.record_kind,
                details={"combatant": combatant.name},
            )
        return pool

    def _set_pool(self, combatant: Combatant, pool: SpellResourcePool) -> SpellResourcePool:
        previous = self._pools.get(id(combatant))
        self._pools[id(combatant)] = pool
        logger.info("Spell pool set", combatant=combatant.name, class_name=pool.class_name,
                    level=pool.class_level)
        self._save([pool], deleted=[previous] if previous else [], include_encounter=False)
        return pool

    def set_spell_pool(self, ref: CombatantRef, class_name: str, class_level: int) -> SpellResourcePool:
        """Give a combatant the spell pool of a class and level."""
        encounter = self._require_open()
        combatant = self.get_combatant(ref)
        pool = SpellResourcePool.for_class_level(
            class_name,
            class_level,
            combatant_id=combatant.id,
            combatant_name=combatant.name,
            encounter_id=encounter.id,
        )
        return self._set_pool(combatant, pool)

    def set_custom_spell_pool(self, ref: CombatantRef, maxima: Sequence[int]) -> SpellResourcePool:
        """Give a combatant a spell pool with explicit slot maxima."""
        encounter = self._require_open()
        combatant = self.get_combatant(ref)
        pool = SpellResourcePool.custom(
            maxima,
            combatant_id=combatant.id,
            combatant_name=combatant.name,
            encounter_id=encounter.id,
        )
        return self._set_pool(combatant, pool)

    def use_spell_slot(self, ref: CombatantRef, level: int) -> bool:
        """Spend a spell slot.

        Returns:
            False if no slot of the level is left.

        Raises:
            InvalidArgumentError: If the level is outside 1-9.
            NotFoundError: If the combatant has no spell pool.
        """
        _validate_spell_level(level)
        self._require_open()
        pool = self._require_pool(self.get_combatant(ref))
        used = pool.use_slot(level)
        if used:
            self._save([pool], include_encounter=False)
        return used

    def restore_spell_slot(self, ref: CombatantRef, level: int) -> bool:
        """Restore a spell slot.

        Returns:
            False if the level's pool is already full.
        """
        _validate_spell_level(level)
        self._require_open()
        pool = self._require_pool(self.get_combatant(ref))
        restored = pool.restore_slot(level)
        if restored:
            self._save([pool], include_encounter=False)
        return restored

    def use_pact_slot(self, ref: CombatantRef) -> bool:
        """Spend a pact slot."""
        self._require_open()
        pool = self._require_pool(self.get_combatant(ref))
        used = pool.use_pact_slot()
        if used:
            self._save([pool], include_encounter=False)
        return used

    def use_sorcery_points(self, ref: CombatantRef, amount: int) -> int:
        """Spend sorcery points, returning the points left."""
        self._require_open()
        pool = self._require_pool(self.get_combatant(ref))
        left = pool.use_sorcery_points(amount)
        self._save([pool], include_encounter=False)
        return left

    def cast_spell(
        self,
        ref: CombatantRef,
        spell_name: str,
        *,
        slot_level: int | None = None,
        use_pact_slot: bool = False,
        target: str = "",
        concentration: bool = False,
    ) -> bool:
        """Cast a spell, spending its slot and starting concentration.

        Args:
            ref: Caster.
            spell_name: Spell cast.
            slot_level: Spell slot spent; None for cantrips.
            use_pact_slot: Spend a pact slot instead of a standard slot.
            target: Name of the spell's target, for the log.
            concentration: The spell requires concentration.

        Returns:
            False if the required slot was not available.
        """
        self._require_open()
        caster = self.get_combatant(ref)
        spell_name = spell_name.strip()
        if not spell_name:
            raise InvalidArgumentError("Spell name cannot be blank", field_name="spell_name")

        pool: SpellResourcePool | None = None
        description = spell_name
        if use_pact_slot:
            pool = self._require_pool(caster)
            if not pool.use_pact_slot():
                return False
            description = f"{spell_name} (pact slot, level {pool.pact.slot_level})"
        elif slot_level is not None:
            _validate_spell_level(slot_level)
            pool = self._require_pool(caster)
            if not pool.use_slot(slot_level):
                return False
            description = f"{spell_name} (level {slot_level})"

        self.log.log_spell_cast(**self._log_context(), actor=caster.name, spell=description,
                                target=target)
        touched: list[BaseModel] = [caster]
        removed: list[StatusEffect] = []
        if concentration:
            _, dropped, removed = self._begin_concentration(caster, spell_name, log_broken=True)
            touched += dropped
        if pool is not None:
            touched.append(pool)
        self._save(touched, deleted=removed, include_encounter=False)
        return True

    def short_rest(self, ref: CombatantRef | None = None) -> None:
        """Refill pact slots of one combatant, or of everyone."""
        self._require_open()
        pools = [self._require_pool(self.get_combatant(ref))] if ref is not None else self.spell_pools
        for pool in pools:
            pool.short_rest()
        self._save(pools, include_encounter=False)

    def long_rest(self, ref: CombatantRef | None = None) -> None:
        """Refill every spell resource of one combatant, or of everyone."""
        self._require_open()
        pools = [self._require_pool(self.get_combatant(ref))] if ref is not None else self.spell_pools
        for pool in pools:
            pool.long_rest()
        self._save(pools, include_encounter=False)


def _build_effect(name: str, target: str, source: str, duration_rounds: int) -> StatusEffect:
    try:
        return create_condition_effect(name, target, source, duration_rounds)
    except ValidationError as exc:
        raise InvalidArgumentError(
            f"Invalid condition effect: {exc.errors()[0]['msg']}",
            field_name="name",
            invalid_value=name,
        ) from exc


__all__ = [
    "CombatantRef",
    "InitiativeTracker",
]
