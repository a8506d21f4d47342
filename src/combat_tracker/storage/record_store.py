"""Record store interface and in-memory implementation.

The rules engine persists its records through the RecordStore protocol.
A store assigns an integer id to a record saved with id 0 and returns it;
the caller owns the in-memory record and copies the id onto it. Stores
never hand out their own copies, so mutating a loaded record does not
change the stored one until it is saved again.
"""

from __future__ import annotations

from itertools import count
from typing import Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

from combat_tracker.core.logging import get_logger

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

ENCOUNTER_KIND = "encounter"


def record_kind(record_type: type[BaseModel]) -> str:
    """Get the storage kind of a record class."""
    return getattr(record_type, "record_kind", record_type.__name__.lower())


def encounter_key(record: BaseModel, record_id: int) -> int:
    """Get the encounter a record belongs to.

    An encounter record belongs to itself.
    """
    if record_kind(type(record)) == ENCOUNTER_KIND:
        return record_id
    return getattr(record, "encounter_id", 0)


@runtime_checkable
class RecordStore(Protocol):
    """Persistence collaborator of the rules engine.

    Implementations raise PersistenceError when the backing storage fails.
    """

    def get(self, record_type: type[RecordT], record_id: int) -> RecordT | None:
        """Load a record by id, or None if it does not exist."""
        ...

    def save(self, record: BaseModel) -> int:
        """Insert (id 0) or update a record, returning its id."""
        ...

    def delete(self, record_type: type[BaseModel], record_id: int) -> bool:
        """Delete a record, returning True if it existed."""
        ...

    def list_by_encounter(self, record_type: type[RecordT], encounter_id: int) -> list[RecordT]:
        """Load every record of a kind belonging to an encounter, in id order."""
        ...


class InMemoryRecordStore:
    """Record store backed by a dictionary.

    Records are deep-copied on the way in and on the way out.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, int], BaseModel] = {}
        self._ids = count(1)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_type: type[RecordT], record_id: int) -> RecordT | None:
        record = self._records.get((record_kind(record_type), record_id))
        if record is None:
            return None
        return record.model_copy(deep=True)  # type: ignore[return-value]

    def save(self, record: BaseModel) -> int:
        kind = record_kind(type(record))
        record_id = getattr(record, "id", 0) or next(self._ids)
        self._records[(kind, record_id)] = record.model_copy(update={"id": record_id}, deep=True)
        logger.debug("Record saved", kind=kind, record_id=record_id)
        return record_id

    def delete(self, record_type: type[BaseModel], record_id: int) -> bool:
        removed = self._records.pop((record_kind(record_type), record_id), None)
        return removed is not None

    def list_by_encounter(self, record_type: type[RecordT], encounter_id: int) -> list[RecordT]:
        kind = record_kind(record_type)
        matches = [
            record
            for (record_kind_, record_id), record in sorted(
                self._records.items(), key=lambda item: item[0][1]
            )
            if record_kind_ == kind and encounter_key(record, record_id) == encounter_id
        ]
        return [record.model_copy(deep=True) for record in matches]  # type: ignore[misc]


__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "record_kind",
    "encounter_key",
]
