import pytest
import sys
from pathlib import Path
import tempfile
import os
import json

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_planner.calendar_utils import next_n_weeks
from shift_planner.data_manager import (
    DataManager,
    INITIAL_VERSION_NAME,
    ValidationError,
    VersionNotFoundError,
    clone_week,
)
from shift_planner.scheduler_logic import ShiftScheduler
from shift_planner.version_manager import VersionManager, next_version_key


@pytest.fixture
def data_manager():
    """Fixture for a DataManager with a generated four-week plan."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as temp_file:
        temp_path = temp_file.name
        json.dump({}, temp_file)

    dm = DataManager(temp_path)
    dm.add_employee("Anna", "A")
    dm.add_employee("Carl", "B")
    dm.add_employee("Emil", "C")
    dm.state.week_dates = next_n_weeks(4, "2024-03-04")
    ShiftScheduler(dm).generate_schedule()
    yield dm
    os.unlink(temp_path)
    Path(temp_path).with_suffix(".bak").unlink(missing_ok=True)


@pytest.fixture
def version_manager(data_manager):
    return VersionManager(data_manager)


def _active_keys(versions):
    return [key for key, version in versions.items() if version.is_active]


def _empty_monday(data_manager, week_index=0):
    """Copy of a week's live schedule with nobody on Monday AM."""
    schedule = clone_week(data_manager.state.schedule[week_index])
    schedule["Monday"].am.employees = []
    return schedule


def test_create_version_becomes_only_active(version_manager, data_manager):
    key = version_manager.create_version(0, "Holiday cover", _empty_monday(data_manager))

    versions = data_manager.state.week_versions[0]
    assert key == "v2"
    assert _active_keys(versions) == ["v2"]
    assert versions["v2"].name == "Holiday cover"
    assert data_manager.state.schedule[0] == versions["v2"].schedule
    assert data_manager.state.schedule[0]["Monday"].am.employees == []


def test_create_version_default_name_and_snapshot_of_live_week(version_manager, data_manager):
    """Without a name and schedule the live week is snapshotted as 'Version N'."""
    key = version_manager.create_version(0)

    version = data_manager.state.week_versions[0][key]
    assert version.name == "Version 2"
    assert version.schedule == data_manager.state.week_versions[0]["v1"].schedule


def test_version_snapshot_is_independent_of_live_schedule(version_manager, data_manager):
    key = version_manager.create_version(0, "Snapshot")
    data_manager.state.schedule[0]["Tuesday"].pm.employees.append(99)

    assert 99 not in data_manager.state.week_versions[0][key].schedule["Tuesday"].pm.employees


def test_activate_round_trip(version_manager, data_manager):
    """Switching back and forth between versions restores each snapshot exactly."""
    original = clone_week(data_manager.state.schedule[0])
    empty_monday = _empty_monday(data_manager)
    key = version_manager.create_version(0, "Empty Monday", empty_monday)
    assert data_manager.state.schedule[0] == empty_monday

    version_manager.activate_version(0, "v1")
    assert data_manager.state.schedule[0] == original
    assert _active_keys(data_manager.state.week_versions[0]) == ["v1"]

    version_manager.activate_version(0, key)
    assert data_manager.state.schedule[0] == empty_monday
    assert data_manager.state.schedule[0]["Monday"].am.employees == []
    assert _active_keys(data_manager.state.week_versions[0]) == ["v2"]


def test_activate_is_idempotent(version_manager, data_manager):
    version_manager.create_version(0, "Second")
    version_manager.activate_version(0, "v1")
    first = data_manager.state.clone()

    version_manager.activate_version(0, "v1")

    assert data_manager.state.schedule == first.schedule
    assert data_manager.state.week_versions == first.week_versions


def test_activate_unknown_version_changes_nothing(version_manager, data_manager):
    before = data_manager.state.to_dict()

    with pytest.raises(VersionNotFoundError) as excinfo:
        version_manager.activate_version(0, "v99")

    assert excinfo.value.version_key == "v99"
    assert data_manager.state.to_dict() == before


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_version_name_rejected(version_manager, data_manager, name):
    before = data_manager.state.to_dict()

    with pytest.raises(ValidationError):
        version_manager.create_version(0, name)

    assert data_manager.state.to_dict() == before


def test_versions_are_per_week(version_manager, data_manager):
    version_manager.create_version(2, "Only week three")

    assert list(data_manager.state.week_versions[2]) == ["v1", "v2"]
    assert list(data_manager.state.week_versions[1]) == ["v1"]


def test_versions_persist_across_reload(version_manager, data_manager):
    version_manager.create_version(0, "Persisted")
    version_manager.activate_version(0, "v1")

    reloaded = DataManager(data_manager.data_file)
    versions = reloaded.state.week_versions[0]
    assert versions["v2"].name == "Persisted"
    assert _active_keys(versions) == ["v1"]
    assert versions["v1"].name == INITIAL_VERSION_NAME


def test_sync_active_version_writes_back_live_week(version_manager, data_manager):
    data_manager.state.schedule[0]["Friday"].night.employees = []

    key = version_manager.sync_active_version(0)

    assert key == "v1"
    assert data_manager.state.week_versions[0]["v1"].schedule["Friday"].night.employees == []


def test_next_version_key_ignores_foreign_keys():
    assert next_version_key({}) == "v1"
    assert next_version_key({"v1": None, "v7": None, "draft": None}) == "v8"


def test_get_active_and_all_versions(version_manager):
    version_manager.create_version(1, "Alt")

    key, version = version_manager.get_active_version(1)
    assert key == "v2"
    assert version.name == "Alt"
    assert sorted(version_manager.get_all_versions(1)) == ["v1", "v2"]
    assert version_manager.get_active_version(10) is None
