import pytest
import sys
from pathlib import Path
import tempfile
import os
import json

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_planner.calendar_utils import next_n_weeks
from shift_planner.data_manager import DataManager, ValidationError
from shift_planner.scheduler_logic import ConstraintViolation, ShiftScheduler
from shift_planner.version_manager import VersionManager


@pytest.fixture
def data_manager():
    """Fixture for a clean DataManager instance for each test."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as temp_file:
        temp_path = temp_file.name
        json.dump({}, temp_file)

    dm = DataManager(temp_path)
    dm.add_employee("Anna", "A")
    dm.add_employee("Ben", "A")
    dm.add_employee("Carl", "B")
    dm.add_employee("Emil", "C")
    dm.state.week_dates = next_n_weeks(2, "2024-03-04")
    yield dm
    os.unlink(temp_path)
    Path(temp_path).with_suffix(".bak").unlink(missing_ok=True)


@pytest.fixture
def scheduler(data_manager):
    """Fixture for a ShiftScheduler with a generated plan."""
    scheduler = ShiftScheduler(data_manager)
    scheduler.generate_schedule()
    return scheduler


def test_assignment_updates_slot_and_active_version(scheduler, data_manager):
    """A direct edit lands in the live schedule and in the active version, and is persisted."""
    anna = data_manager.get_employee_by_name("Anna")

    result = scheduler.assign_employees(0, "Monday", "AM", [anna.id])

    assert result.employee_ids == [anna.id]
    assert result.version_key == "v1"
    assert data_manager.state.schedule[0]["Monday"].am.employees == [anna.id]
    assert data_manager.state.week_versions[0]["v1"].schedule["Monday"].am.employees == [anna.id]

    reloaded = DataManager(data_manager.data_file)
    assert reloaded.state.schedule[0]["Monday"].am.employees == [anna.id]


def test_assignment_follows_newly_activated_version(scheduler, data_manager):
    """Edits go into whichever version is active, not always v1."""
    versions = VersionManager(data_manager)
    versions.create_version(0, "Draft")
    ben = data_manager.get_employee_by_name("Ben")

    scheduler.assign_employees(0, "Tuesday", "AM", [ben.id])

    week_versions = data_manager.state.week_versions[0]
    assert week_versions["v2"].schedule["Tuesday"].am.employees == [ben.id]
    assert ben.id in week_versions["v1"].schedule["Tuesday"].am.employees
    assert len(week_versions["v1"].schedule["Tuesday"].am.employees) == 2


def test_absent_employee_rejects_whole_assignment(scheduler, data_manager):
    """One absent employee blocks the assignment and nothing is written."""
    anna = data_manager.get_employee_by_name("Anna")
    ben = data_manager.get_employee_by_name("Ben")
    monday = data_manager.state.week_dates[0][0]
    data_manager.add_absence(anna.id, monday)
    before = data_manager.state.to_dict()

    with pytest.raises(ValidationError) as excinfo:
        scheduler.assign_employees(0, "Monday", "AM", [ben.id, anna.id])

    assert "Anna" in str(excinfo.value)
    assert data_manager.state.to_dict() == before


def test_unknown_employee_ids_are_skipped(scheduler, data_manager):
    """Ids without an employee are dropped from the selection, the rest is saved."""
    anna = data_manager.get_employee_by_name("Anna")

    result = scheduler.assign_employees(0, "Monday", "AM", [anna.id, 999])

    assert result.employee_ids == [anna.id]
    assert result.skipped_ids == [999]
    assert data_manager.state.schedule[0]["Monday"].am.employees == [anna.id]


def test_resaving_slot_with_deleted_employee(scheduler, data_manager):
    """A slot that still lists a deleted employee can be saved again as it is."""
    ben = data_manager.get_employee_by_name("Ben")
    current = list(data_manager.state.schedule[0]["Monday"].am.employees)
    data_manager.delete_employee(ben.id)

    result = scheduler.assign_employees(0, "Monday", "AM", current)

    assert result.skipped_ids == [ben.id]
    assert data_manager.state.schedule[0]["Monday"].am.employees == [
        emp_id for emp_id in current if emp_id != ben.id
    ]
    assert data_manager.state.week_versions[0]["v1"].schedule["Monday"].am.employees == [
        emp_id for emp_id in current if emp_id != ben.id
    ]


def test_cross_team_assignment_is_flagged(scheduler, data_manager):
    """Employees from another team are allowed but reported."""
    anna = data_manager.get_employee_by_name("Anna")
    emil = data_manager.get_employee_by_name("Emil")

    result = scheduler.assign_employees(0, "Wednesday", "AM", [anna.id, emil.id])

    assert result.cross_team_ids == [emil.id]
    assert result.team_counts == {"A": 1, "C": 1}
    assert "2 employee(s)" in result.message

    wednesday = data_manager.get_shift_details(0)[2]
    assert wednesday["day"] == "Wednesday"
    flags = {e["name"]: e["is_cross_team"] for e in wednesday["shifts"]["AM"]["employees"]}
    assert flags == {"Anna": False, "Emil": True}


def test_duplicate_ids_are_collapsed(scheduler, data_manager):
    anna = data_manager.get_employee_by_name("Anna")

    result = scheduler.assign_employees(0, "Monday", "PM", [anna.id, anna.id])

    assert result.employee_ids == [anna.id]
    assert data_manager.state.schedule[0]["Monday"].pm.employees == [anna.id]


def test_empty_assignment_clears_slot(scheduler, data_manager):
    result = scheduler.assign_employees(1, "Sunday", "Night", [])

    assert data_manager.state.schedule[1]["Sunday"].night.employees == []
    assert result.message.startswith("No employees assigned")


def test_validate_assignment_reports_without_writing(scheduler, data_manager):
    anna = data_manager.get_employee_by_name("Anna")
    carl = data_manager.get_employee_by_name("Carl")
    thursday = data_manager.state.week_dates[0][3]
    data_manager.add_absence(anna.id, thursday)

    problems = scheduler.validate_assignment(0, "Thursday", "AM", [anna.id, carl.id])

    assert problems[anna.id] == [ConstraintViolation.ABSENCE]
    assert problems[carl.id] == [ConstraintViolation.CROSS_TEAM]
    assert anna.id in data_manager.state.schedule[0]["Thursday"].am.employees


@pytest.mark.parametrize("day, shift_type", [("Funday", "AM"), ("Monday", "Evening")])
def test_unknown_day_or_shift_rejected(scheduler, day, shift_type):
    with pytest.raises(ValidationError):
        scheduler.assign_employees(0, day, shift_type, [])


def test_assignable_employees_flags(scheduler, data_manager):
    anna = data_manager.get_employee_by_name("Anna")
    data_manager.add_absence(anna.id, data_manager.state.week_dates[0][0])

    entries = {e["name"]: e for e in scheduler.get_assignable_employees(0, "Monday", "AM")}

    assert entries["Anna"]["is_absent"]
    assert not entries["Anna"]["is_assigned"]
    assert entries["Ben"]["is_default_team"]
    assert entries["Ben"]["is_assigned"]
    assert not entries["Carl"]["is_default_team"]
    assert not entries["Carl"]["is_assigned"]
