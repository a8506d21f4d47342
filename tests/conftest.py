"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the combat tracker test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from combat_tracker.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "COMBAT_TRACKER_DEBUG": "true",
        "COMBAT_TRACKER_LOG_LEVEL": "DEBUG",
        "COMBAT_TRACKER_STORAGE_BACKEND": "sqlite",
        "COMBAT_TRACKER_COMBAT_INITIATIVE_DICE": "1D20",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_combatant_data() -> dict[str, Any]:
    """Provide sample combatant data for testing.

    Returns:
        Dictionary of combatant data.
    """
    return {
        "name": "Aria",
        "kind": "player",
        "max_hp": 20,
        "armor_class": 15,
        "initiative_bonus": 2,
    }


@pytest.fixture
def sample_combatant(sample_combatant_data: dict[str, Any]) -> Any:
    """Create a sample player Combatant.

    Args:
        sample_combatant_data: Combatant data dictionary.

    Returns:
        Combatant instance at full HP.
    """
    from combat_tracker.models.combatant import Combatant

    return Combatant(**sample_combatant_data)


@pytest.fixture
def goblin() -> Any:
    """Create a sample monster Combatant.

    Returns:
        Combatant instance for a goblin.
    """
    from combat_tracker.models.combatant import Combatant
    from combat_tracker.models.enums import CombatantKind

    return Combatant(name="Goblin", kind=CombatantKind.MONSTER, max_hp=7, armor_class=13)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def dice_roller() -> Any:
    """Create a DiceRoller with a fixed seed for reproducible tests.

    Returns:
        DiceRoller instance with fixed seed.
    """
    from combat_tracker.engine.dice import DiceRoller

    return DiceRoller(seed=42)


@pytest.fixture
def record_store() -> Any:
    """Create an empty in-memory record store.

    Returns:
        InMemoryRecordStore instance.
    """
    from combat_tracker.storage.record_store import InMemoryRecordStore

    return InMemoryRecordStore()


@pytest.fixture
def tracker(record_store: Any, dice_roller: Any) -> Any:
    """Create an InitiativeTracker with a started encounter.

    Args:
        record_store: In-memory record store.
        dice_roller: Seeded dice roller.

    Returns:
        InitiativeTracker with an active, empty encounter.
    """
    from combat_tracker.engine.tracker import InitiativeTracker

    tracker = InitiativeTracker(store=record_store, dice_roller=dice_roller)
    tracker.start_encounter("Test Encounter")
    return tracker


@pytest.fixture
def goblin_ambush(tracker: Any) -> Any:
    """Create the Goblin Ambush encounter with fixed initiative.

    Aria rolls 15 (total 17), the Goblin rolls 10 (total 12), so after
    sorting Aria acts first.

    Args:
        tracker: Tracker with an active encounter.

    Returns:
        The tracker with Aria and the Goblin sorted by initiative.
    """
    from combat_tracker.models.enums import CombatantKind

    goblin = tracker.add_combatant(
        "Goblin", CombatantKind.MONSTER, max_hp=7, armor_class=13, initiative_bonus=2
    )
    aria = tracker.add_combatant(
        "Aria", CombatantKind.PLAYER, max_hp=20, armor_class=15, initiative_bonus=2
    )
    tracker.roll_initiative(goblin, roll=10)
    tracker.roll_initiative(aria, roll=15)
    tracker.sort_by_initiative()
    return tracker


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory.

    Args:
        tmp_path: Pytest temporary path fixture.

    Returns:
        Path to temporary data directory.
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def sqlite_store(temp_data_dir: Path) -> Any:
    """Create a SQLite record store in a temporary directory.

    Args:
        temp_data_dir: Temporary data directory.

    Returns:
        SqliteRecordStore instance.
    """
    from combat_tracker.storage.database import SqliteRecordStore

    return SqliteRecordStore(temp_data_dir / "combat.db")
