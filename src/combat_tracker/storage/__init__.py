"""Storage module for combat tracker persistence.

Provides the record store collaborator of the rules engine:
- RecordStore protocol (get, save, delete, list by encounter)
- In-memory store for tests and throwaway encounters
- SQLite store for persistent encounters
"""

from combat_tracker.storage.database import SqliteRecordStore, create_record_store
from combat_tracker.storage.record_store import InMemoryRecordStore, RecordStore

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "SqliteRecordStore",
    "create_record_store",
]
