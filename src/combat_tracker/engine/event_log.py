"""Append-only combat event log.

The EventLog keeps every LogEntry of the session in append order, hands
each new entry to the record store and then to its subscribers. Appending
always succeeds: a failing store or subscriber is reported through the
diagnostic logger and the entry stays in the log. Entries are never
rewritten or deleted; a correction is a new Custom entry.

Example:
    >>> log = EventLog()
    >>> entry = log.log_damage(encounter_id=1, round=1, actor="Goblin", target="Aria", amount=5)
    >>> entry.formatted
    'Goblin deals 5 damage to Aria'
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime

from pydantic import ValidationError

from combat_tracker.core.exceptions import InvalidArgumentError, PersistenceError
from combat_tracker.core.logging import get_logger
from combat_tracker.models.enums import LogEntryKind
from combat_tracker.models.log import LogEntry
from combat_tracker.storage.record_store import RecordStore


logger = get_logger(__name__)

LogSubscriber = Callable[[LogEntry], None]


class EventLog:
    """Ordered, append-only log of combat events.

    Attributes:
        store: Record store entries are persisted to, if any.
    """

    def __init__(self, store: RecordStore | None = None) -> None:
        """Initialize an empty log.

        Args:
            store: Optional record store for persisting entries.
        """
        self.store = store
        self._entries: list[LogEntry] = []
        self._subscribers: list[LogSubscriber] = []

    def __len__(self) -> int:
        return len(self._entries)

    # -------------------------------------------------------------------------
    # Subscribers
    # -------------------------------------------------------------------------

    def subscribe(self, callback: LogSubscriber) -> None:
        """Register a callback notified of every appended entry."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: LogSubscriber) -> bool:
        """Remove a callback.

        Returns:
            True if the callback was registered.
        """
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            return True
        return False

    # -------------------------------------------------------------------------
    # Appending
    # -------------------------------------------------------------------------

    def append(
        self,
        kind: LogEntryKind,
        *,
        encounter_id: int = 0,
        round: int = 0,
        actor: str = "",
        target: str = "",
        description: str = "",
        damage_dealt: int | None = None,
        healing_done: int | None = None,
        dice_roll: int | None = None,
        dice_total: int | None = None,
        difficulty_class: int | None = None,
        condition_applied: str | None = None,
        condition_removed: str | None = None,
        timestamp: datetime | None = None,
    ) -> LogEntry:
        """Append an entry, persist it and notify subscribers.

        Returns:
            The appended entry, carrying its id if the store saved it.

        Raises:
            InvalidArgumentError: If the payload does not form a valid entry.
        """
        try:
            entry = LogEntry(
                sequence=len(self._entries),
                encounter_id=encounter_id,
                round=round,
                timestamp=timestamp or datetime.now(),
                actor_name=actor,
                target_name=target,
                kind=kind,
                description=description,
                damage_dealt=damage_dealt,
                healing_done=healing_done,
                dice_roll=dice_roll,
                dice_total=dice_total,
                difficulty_class=difficulty_class,
                condition_applied=condition_applied,
                condition_removed=condition_removed,
            )
        except ValidationError as exc:
            raise InvalidArgumentError(
                f"Invalid log entry: {exc.error_count()} validation error(s)",
                field_name="entry",
                details={"kind": str(kind)},
            ) from exc

        entry = self._persist(entry)
        self._entries.append(entry)
        logger.debug("Log entry appended", kind=str(kind), text=entry.formatted)
        self._notify(entry)
        return entry

    def _persist(self, entry: LogEntry) -> LogEntry:
        if self.store is None:
            return entry
        try:
            entry_id = self.store.save(entry)
        except PersistenceError as exc:
            logger.error(
                "Failed to persist log entry",
                kind=str(entry.kind),
                sequence=entry.sequence,
                error=exc.message,
            )
            return entry
        return entry.model_copy(update={"id": entry_id})

    def _notify(self, entry: LogEntry) -> None:
        for callback in list(self._subscribers):
            try:
                callback(entry)
            except Exception:
                logger.exception(
                    "Log subscriber failed",
                    subscriber=getattr(callback, "__qualname__", repr(callback)),
                    sequence=entry.sequence,
                )

    def restore(self, entries: Iterable[LogEntry]) -> None:
        """Load previously persisted entries without saving or notifying.

        Entries are ordered by their sequence number and appended after
        any entries already in the log.
        """
        offset = len(self._entries)
        for index, entry in enumerate(sorted(entries, key=lambda e: (e.sequence, e.id))):
            self._entries.append(entry.model_copy(update={"sequence": offset + index}))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def entries(self) -> list[LogEntry]:
        """All entries in append order."""
        return list(self._entries)

    def for_encounter(self, encounter_id: int) -> list[LogEntry]:
        """Entries of one encounter, in append order."""
        return [e for e in self._entries if e.encounter_id == encounter_id]

    def for_round(self, encounter_id: int, round: int) -> list[LogEntry]:
        """Entries of one round of an encounter, in append order."""
        return [
            e for e in self._entries if e.encounter_id == encounter_id and e.round == round
        ]

    def of_kind(self, kind: LogEntryKind) -> list[LogEntry]:
        """Entries of one kind, in append order."""
        return [e for e in self._entries if e.kind == kind]

    # -------------------------------------------------------------------------
    # Typed helpers
    # -------------------------------------------------------------------------

    def log_attack(self, *, encounter_id: int, round: int, actor: str, target: str,
                   roll: int | None = None, total: int | None = None) -> LogEntry:
        return self.append(LogEntryKind.ATTACK, encounter_id=encounter_id, round=round,
                           actor=actor, target=target, dice_roll=roll, dice_total=total)

    def log_damage(self, *, encounter_id: int, round: int, actor: str, target: str,
                   amount: int) -> LogEntry:
        return self.append(LogEntryKind.DAMAGE, encounter_id=encounter_id, round=round,
                           actor=actor, target=target, damage_dealt=amount)

    def log_heal(self, *, encounter_id: int, round: int, actor: str, target: str,
                 amount: int) -> LogEntry:
        return self.append(LogEntryKind.HEAL, encounter_id=encounter_id, round=round,
                           actor=actor, target=target, healing_done=amount)

    def log_kill(self, *, encounter_id: int, round: int, actor: str, target: str) -> LogEntry:
        return self.append(LogEntryKind.KILL, encounter_id=encounter_id, round=round,
                           actor=actor, target=target)

    def log_death(self, *, encounter_id: int, round: int, actor: str) -> LogEntry:
        return self.append(LogEntryKind.DEATH, encounter_id=encounter_id, round=round,
                           actor=actor)

    def log_condition_applied(self, *, encounter_id: int, round: int, target: str,
                              condition: str, actor: str = "") -> LogEntry:
        return self.append(LogEntryKind.CONDITION_APPLIED, encounter_id=encounter_id,
                           round=round, actor=actor, target=target,
                           condition_applied=condition)

    def log_condition_removed(self, *, encounter_id: int, round: int, target: str,
                              condition: str, actor: str = "") -> LogEntry:
        return self.append(LogEntryKind.CONDITION_REMOVED, encounter_id=encounter_id,
                           round=round, actor=actor, target=target,
                           condition_removed=condition)

    def log_turn_start(self, *, encounter_id: int, round: int, actor: str) -> LogEntry:
        return self.append(LogEntryKind.TURN_START, encounter_id=encounter_id, round=round,
                           actor=actor)

    def log_round_start(self, *, encounter_id: int, round: int) -> LogEntry:
        return self.append(LogEntryKind.ROUND_START, encounter_id=encounter_id, round=round)

    def log_combat_start(self, *, encounter_id: int, name: str) -> LogEntry:
        return self.append(LogEntryKind.COMBAT_START, encounter_id=encounter_id, round=1,
                           description=name)

    def log_combat_end(self, *, encounter_id: int, round: int) -> LogEntry:
        return self.append(LogEntryKind.COMBAT_END, encounter_id=encounter_id, round=round)

    def log_initiative(self, *, encounter_id: int, round: int, actor: str, roll: int,
                       total: int) -> LogEntry:
        return self.append(LogEntryKind.INITIATIVE_ROLL, encounter_id=encounter_id,
                           round=round, actor=actor, dice_roll=roll, dice_total=total)

    def log_saving_throw(self, *, encounter_id: int, round: int, actor: str, total: int,
                         dc: int, ability: str = "", roll: int | None = None) -> LogEntry:
        return self.append(LogEntryKind.SAVING_THROW, encounter_id=encounter_id, round=round,
                           actor=actor, description=ability, dice_roll=roll,
                           dice_total=total, difficulty_class=dc)

    def log_spell_cast(self, *, encounter_id: int, round: int, actor: str, spell: str,
                       target: str = "") -> LogEntry:
        return self.append(LogEntryKind.SPELL_CAST, encounter_id=encounter_id, round=round,
                           actor=actor, target=target, description=spell)

    def log_concentration(self, *, encounter_id: int, round: int, actor: str,
                          description: str) -> LogEntry:
        return self.append(LogEntryKind.CONCENTRATION, encounter_id=encounter_id,
                           round=round, actor=actor, description=description)

    def log_death_save(self, *, encounter_id: int, round: int, actor: str,
                       description: str, roll: int | None = None) -> LogEntry:
        return self.append(LogEntryKind.DEATH_SAVE, encounter_id=encounter_id, round=round,
                           actor=actor, description=description, dice_roll=roll)

    def log_custom(self, *, encounter_id: int, round: int, text: str,
                   actor: str = "") -> LogEntry:
        return self.append(LogEntryKind.CUSTOM, encounter_id=encounter_id, round=round,
                           actor=actor, description=text)


__all__ = [
    "EventLog",
    "LogSubscriber",
]
