import pytest
import sys
from pathlib import Path
import tempfile
import os
import json

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_planner.calendar_utils import next_n_weeks
from shift_planner.data_manager import DataManager, DataSaveError
from shift_planner.plan_generator import PlanGenerator
from shift_planner.scheduler_logic import ShiftScheduler
from shift_planner.version_manager import LockManager, VersionManager


@pytest.fixture
def data_manager():
    """Fixture for a DataManager with a generated plan and two versions of week one."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as temp_file:
        temp_path = temp_file.name
        json.dump({}, temp_file)

    dm = DataManager(temp_path)
    dm.add_employee("Anna", "A")
    dm.add_employee("Carl", "B")
    dm.add_employee("Emil", "C")
    dm.state.week_dates = next_n_weeks(2, "2024-03-04")
    ShiftScheduler(dm).generate_schedule()
    versions = VersionManager(dm)
    versions.create_version(0, "Alternative")
    versions.activate_version(0, "v1")
    yield dm
    os.unlink(temp_path)
    Path(temp_path).with_suffix(".bak").unlink(missing_ok=True)


def _break_saving(dm):
    """Point the data file below a regular file so the save cannot create its directory."""
    dm.data_file = Path(dm.data_file) / "nested" / "data.json"


def _create_version(dm):
    VersionManager(dm).create_version(0, "Unsaved")


def _activate_version(dm):
    VersionManager(dm).activate_version(0, "v2")


def _lock_week(dm):
    LockManager(dm).set_locked(0, True)


def _assign(dm):
    ShiftScheduler(dm).assign_employees(0, "Monday", "AM", [dm.get_employee_by_name("Carl").id])


def _regenerate(dm):
    ShiftScheduler(dm).generate_schedule()


def _generate_plan(dm):
    PlanGenerator(dm).generate_plan("2024-03-04", "2024-04-14")


def _import(dm):
    data = dm.export_data()
    data["employees"] = []
    dm.import_data(data)


@pytest.mark.parametrize("operation", [
    _create_version,
    _activate_version,
    _lock_week,
    _assign,
    _regenerate,
    _generate_plan,
    _import,
])
def test_failed_save_restores_state(data_manager, operation):
    """When persisting fails the in-memory state is exactly what it was before the call."""
    before = data_manager.state.to_dict()
    _break_saving(data_manager)

    with pytest.raises(DataSaveError):
        operation(data_manager)

    assert data_manager.state.to_dict() == before


def test_failed_save_keeps_version_count(data_manager):
    _break_saving(data_manager)

    with pytest.raises(DataSaveError):
        _create_version(data_manager)

    assert list(data_manager.state.week_versions[0]) == ["v1", "v2"]
    assert VersionManager(data_manager).get_active_version(0)[0] == "v1"
