"""Tests for the record stores."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

import pytest

from combat_tracker.core.config import Settings, StorageSettings
from combat_tracker.core.exceptions import PersistenceError
from combat_tracker.models.combatant import Combatant
from combat_tracker.models.encounter import CombatEncounter
from combat_tracker.models.enums import EncounterPhase, LogEntryKind
from combat_tracker.models.log import LogEntry
from combat_tracker.models.spell_slots import SpellResourcePool
from combat_tracker.models.status_effect import Rounds, StatusEffect, UntilEndOfTurnOf
from combat_tracker.storage.database import SqliteRecordStore, create_record_store
from combat_tracker.storage.record_store import InMemoryRecordStore, RecordStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> RecordStore:
    """Provide each record store implementation."""
    if request.param == "memory":
        return InMemoryRecordStore()
    return SqliteRecordStore(tmp_path / "records.db")


class TestRecordStoreContract:
    """Behavior shared by every record store."""

    def test_is_record_store(self, store: Any) -> None:
        """Test implementations satisfy the protocol."""
        assert isinstance(store, RecordStore)

    def test_save_assigns_id(self, store: RecordStore) -> None:
        """Test a record with id 0 gets a new id."""
        record_id = store.save(Combatant(name="Goblin", max_hp=7))

        assert record_id > 0
        loaded = store.get(Combatant, record_id)
        assert loaded is not None
        assert loaded.id == record_id
        assert loaded.name == "Goblin"

    def test_save_updates_existing(self, store: RecordStore) -> None:
        """Test saving a record with an id overwrites it."""
        goblin = Combatant(name="Goblin", max_hp=7)
        goblin.id = store.save(goblin)
        goblin.apply_damage(3)

        assert store.save(goblin) == goblin.id
        loaded = store.get(Combatant, goblin.id)
        assert loaded is not None
        assert loaded.current_hp == 4

    def test_records_are_copies(self, store: RecordStore) -> None:
        """Test mutating a loaded record does not change the stored one."""
        record_id = store.save(Combatant(name="Goblin", max_hp=7))
        loaded = store.get(Combatant, record_id)
        assert loaded is not None

        loaded.apply_damage(7)

        again = store.get(Combatant, record_id)
        assert again is not None
        assert again.current_hp == 7

    def test_get_missing(self, store: RecordStore) -> None:
        """Test a missing record is None."""
        assert store.get(Combatant, 999) is None

    def test_get_wrong_kind(self, store: RecordStore) -> None:
        """Test a record is not found under another kind."""
        record_id = store.save(Combatant(name="Goblin", max_hp=7))

        assert store.get(StatusEffect, record_id) is None

    def test_delete(self, store: RecordStore) -> None:
        """Test deleting reports whether the record existed."""
        record_id = store.save(Combatant(name="Goblin", max_hp=7))

        assert store.delete(Combatant, record_id) is True
        assert store.delete(Combatant, record_id) is False
        assert store.get(Combatant, record_id) is None

    def test_list_by_encounter(self, store: RecordStore) -> None:
        """Test records are listed per encounter in id order."""
        store.save(Combatant(name="Aria", max_hp=20, encounter_id=1))
        store.save(Combatant(name="Goblin", max_hp=7, encounter_id=1))
        store.save(Combatant(name="Orc", max_hp=15, encounter_id=2))

        names = [c.name for c in store.list_by_encounter(Combatant, 1)]

        assert names == ["Aria", "Goblin"]

    def test_encounter_belongs_to_itself(self, store: RecordStore) -> None:
        """Test an encounter is listed under its own id."""
        encounter_id = store.save(CombatEncounter(name="Ambush", phase=EncounterPhase.ACTIVE))

        listed = store.list_by_encounter(CombatEncounter, encounter_id)

        assert [e.name for e in listed] == ["Ambush"]

    def test_round_trips_nested_records(self, store: RecordStore) -> None:
        """Test effects, pools and log entries survive storage."""
        effect = StatusEffect(name="Hex", duration=UntilEndOfTurnOf(creature="Goblin"),
                              encounter_id=3)
        counting = StatusEffect(name="Bless", duration=Rounds(count=3), encounter_id=3)
        counting.on_round_start()
        pool = SpellResourcePool.for_class_level("Warlock", 5, encounter_id=3)
        pool.use_pact_slot()
        entry = LogEntry(kind=LogEntryKind.DAMAGE, encounter_id=3, actor_name="Goblin",
                         target_name="Aria", damage_dealt=4)

        ids = [store.save(r) for r in (effect, counting, pool, entry)]

        loaded_effect = store.get(StatusEffect, ids[0])
        loaded_counting = store.get(StatusEffect, ids[1])
        loaded_pool = store.get(SpellResourcePool, ids[2])
        loaded_entry = store.get(LogEntry, ids[3])
        assert loaded_effect is not None and loaded_effect.duration == effect.duration
        assert loaded_counting is not None and loaded_counting.rounds_remaining == 2
        assert loaded_pool is not None and loaded_pool.pact.current == 1
        assert loaded_entry is not None
        assert loaded_entry.formatted == "Goblin deals 4 damage to Aria"


class TestSqliteRecordStore:
    """Tests specific to the SQLite store."""

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        """Test records survive reopening the database."""
        path = tmp_path / "combat.db"
        record_id = SqliteRecordStore(path).save(Combatant(name="Aria", max_hp=20))

        loaded = SqliteRecordStore(path).get(Combatant, record_id)

        assert loaded is not None
        assert loaded.name == "Aria"

    def test_count(self, sqlite_store: SqliteRecordStore) -> None:
        """Test counting records by kind."""
        sqlite_store.save(Combatant(name="Aria", max_hp=20))
        sqlite_store.save(StatusEffect(name="Bless"))

        assert sqlite_store.count(Combatant) == 1
        assert sqlite_store.count() >= 2

    def test_retries_locked_database(
        self,
        sqlite_store: SqliteRecordStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a transient lock is retried and then succeeds."""
        attempts = {"n": 0}
        real_connection = sqlite_store._get_connection

        def flaky_connection() -> Any:
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise sqlite3.OperationalError("database is locked")
            return real_connection()

        monkeypatch.setattr(sqlite_store, "_get_connection", flaky_connection)

        record_id = sqlite_store.save(Combatant(name="Aria", max_hp=20))

        assert record_id > 0
        assert attempts["n"] == 2

    def test_persistent_failure_raises(
        self,
        sqlite_store: SqliteRecordStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a lock that never clears becomes a PersistenceError."""

        def locked() -> Any:
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(sqlite_store, "_get_connection", locked)

        with pytest.raises(PersistenceError) as exc_info:
            sqlite_store.save(Combatant(name="Aria", max_hp=20))

        assert exc_info.value.details["operation"] == "save"


class TestCreateRecordStore:
    """Tests for the store factory."""

    def test_memory_backend(self) -> None:
        """Test the default backend is in-memory."""
        settings = Settings(storage=StorageSettings(backend="memory"))

        assert isinstance(create_record_store(settings), InMemoryRecordStore)

    def test_sqlite_backend(self, tmp_path: Path) -> None:
        """Test the SQLite backend uses the configured path."""
        path = tmp_path / "nested" / "combat.db"
        settings = Settings(storage=StorageSettings(backend="sqlite", database_path=path))

        store = create_record_store(settings)

        assert isinstance(store, SqliteRecordStore)
        assert path.exists()
