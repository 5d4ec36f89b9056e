"""
Scheduler Logic for Shift Planning System

Deterministic team rotation: teams A and B alternate between the AM and PM
shift from one week to the next, team C always works the night shift.
Also handles direct edits of a single shift slot.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Any
from dataclasses import dataclass, field
import logging

from .calendar_utils import DAYS_OF_WEEK, SHIFT_TYPES, format_display
from .data_manager import (
    DataManager,
    DaySchedule,
    Employee,
    INITIAL_VERSION_NAME,
    ShiftSlot,
    ValidationError,
    WeekSchedule,
    clone_week,
)
from .version_manager import LockManager, VersionManager, add_version, find_active_version

logger = logging.getLogger(__name__)

NIGHT_TEAM = "C"


@dataclass
class ScheduleResult:
    """Result of regenerating the live weeks"""
    success: bool
    weeks_generated: int
    locked_weeks_skipped: int
    versions_created: int
    message: str


@dataclass
class AssignmentResult:
    """Result of a direct shift assignment"""
    week_index: int
    day: str
    shift_type: str
    employee_ids: List[int]
    cross_team_ids: List[int] = field(default_factory=list)
    team_counts: Dict[str, int] = field(default_factory=dict)
    skipped_ids: List[int] = field(default_factory=list)
    version_key: Optional[str] = None

    @property
    def message(self) -> str:
        if not self.employee_ids:
            return f"No employees assigned to the {self.shift_type} shift on {self.day}."
        counts = ", ".join(f"{count} from Team {team}" for team, count in sorted(self.team_counts.items()))
        return (f"Successfully assigned {len(self.employee_ids)} employee(s) to the "
                f"{self.shift_type} shift on {self.day} ({counts}).")


class ConstraintViolation:
    """Reasons a shift assignment is rejected or flagged"""
    ABSENCE = "Employee absent on this date"
    UNKNOWN_EMPLOYEE = "Employee does not exist"
    CROSS_TEAM = "Employee belongs to a different team than the shift"


def teams_for_week(week_index: int) -> Tuple[str, str, str]:
    """
    (AM, PM, Night) teams of a week.

    The rotation follows the parity of the week's position in the plan,
    not its calendar week number: even positions put A on AM, odd ones B.
    """
    team_on_am = "A" if week_index % 2 == 0 else "B"
    team_on_pm = "B" if team_on_am == "A" else "A"
    return team_on_am, team_on_pm, NIGHT_TEAM


def employees_for_team(employees: List[Employee], team: str) -> List[int]:
    """All employee ids of a team, absent or not"""
    return [emp.id for emp in employees if emp.team == team]


def generate_schedule(employees: List[Employee], week_dates_list: List[List[str]]) -> Dict[int, WeekSchedule]:
    """
    Build the schedule of every week from the roster.

    Each slot lists every employee of its team. Absent employees stay
    listed; they are flagged where the schedule is consumed.
    """
    schedule = {}
    for week_index, week in enumerate(week_dates_list):
        team_on_am, team_on_pm, team_on_night = teams_for_week(week_index)
        week_schedule = {}
        for day_index, date_str in enumerate(week[:len(DAYS_OF_WEEK)]):
            week_schedule[DAYS_OF_WEEK[day_index]] = DaySchedule(
                date=date_str,
                am=ShiftSlot(team_on_am, employees_for_team(employees, team_on_am)),
                pm=ShiftSlot(team_on_pm, employees_for_team(employees, team_on_pm)),
                night=ShiftSlot(team_on_night, employees_for_team(employees, team_on_night))
            )
        schedule[week_index] = week_schedule
    return schedule


class ShiftScheduler:
    """Generates the live schedule and applies manual shift edits"""

    def __init__(self, data_manager: DataManager, version_manager: Optional[VersionManager] = None):
        self.data_manager = data_manager
        self.version_manager = version_manager or VersionManager(data_manager)
        self.lock_manager: LockManager = self.version_manager.lock_manager

    def generate_schedule(self) -> ScheduleResult:
        """
        Regenerate every week of the current plan from the roster.

        Locked weeks keep their schedule. A week without versions gets its
        initial version; a week whose schedule changed gets a new
        'Regenerated' version so the previous plan stays available.
        """
        state = self.data_manager.state
        generated = generate_schedule(state.employees, state.week_dates)
        snapshot = state.clone()
        timestamp = datetime.now().isoformat()
        label = f"Regenerated {format_display(date.today())}"

        new_schedule = {}
        new_versions = {}
        weeks_generated = locked_skipped = versions_created = 0

        for week_index, week in generated.items():
            if self.lock_manager.is_locked(week_index) and week_index in state.schedule:
                new_schedule[week_index] = state.schedule[week_index]
                new_versions[week_index] = state.week_versions.get(week_index, {})
                locked_skipped += 1
                continue

            versions = {key: v.clone() for key, v in state.week_versions.get(week_index, {}).items()}
            active = find_active_version(versions)
            if not versions:
                add_version(versions, INITIAL_VERSION_NAME, week, timestamp)
                versions_created += 1
            elif active is None or active[1].schedule != week:
                add_version(versions, label, week, timestamp)
                versions_created += 1

            new_schedule[week_index] = clone_week(week)
            new_versions[week_index] = versions
            weeks_generated += 1

        state.schedule = new_schedule
        state.week_versions = new_versions
        self.data_manager.commit(snapshot)

        message = (f"Generated {weeks_generated} week(s), {locked_skipped} locked week(s) left unchanged, "
                   f"{versions_created} version(s) created")
        logger.info(message)
        return ScheduleResult(
            success=True,
            weeks_generated=weeks_generated,
            locked_weeks_skipped=locked_skipped,
            versions_created=versions_created,
            message=message
        )

    def _resolve_slot(self, week_index: int, day: str, shift_type: str) -> Tuple[str, ShiftSlot]:
        if day not in DAYS_OF_WEEK:
            raise ValidationError(f"Unknown day '{day}'")
        if shift_type not in SHIFT_TYPES:
            raise ValidationError(f"Unknown shift type '{shift_type}'")
        week = self.data_manager.get_week_schedule(week_index)
        if week is None or day not in week:
            raise ValidationError(f"Week {week_index + 1} has no schedule for {day}")
        date_str = self.data_manager.get_date_for_day(week_index, day) or week[day].date
        return date_str, week[day].slot(shift_type)

    def validate_assignment(self, week_index: int, day: str, shift_type: str,
                            employee_ids: List[int]) -> Dict[int, List[str]]:
        """
        Check a selection of employees for a shift without writing anything.

        Returns:
            {employee_id: [violations]} for every employee with a problem.
            Absence and unknown ids block the assignment, a cross-team
            assignment is only a warning.
        """
        date_str, slot = self._resolve_slot(week_index, day, shift_type)
        problems: Dict[int, List[str]] = {}
        for emp_id in employee_ids:
            emp = self.data_manager.get_employee_by_id(emp_id)
            if emp is None:
                problems.setdefault(emp_id, []).append(ConstraintViolation.UNKNOWN_EMPLOYEE)
                continue
            if emp.is_absent(date_str):
                problems.setdefault(emp_id, []).append(ConstraintViolation.ABSENCE)
            if emp.team != slot.team:
                problems.setdefault(emp_id, []).append(ConstraintViolation.CROSS_TEAM)
        return problems

    def assign_employees(self, week_index: int, day: str, shift_type: str,
                         employee_ids: List[int]) -> AssignmentResult:
        """
        Replace the employees of one shift slot.

        The whole assignment is rejected if the week is locked or any
        selected employee is absent on that date. Ids that no longer resolve
        to an employee (deleted since the slot was filled) are dropped from
        the selection and reported in `skipped_ids`. On success the week is
        written back into its active version and persisted.
        """
        self.lock_manager.ensure_unlocked(week_index, "edit shifts")
        requested = list(dict.fromkeys(employee_ids))

        problems = self.validate_assignment(week_index, day, shift_type, requested)
        skipped = [emp_id for emp_id, reasons in problems.items()
                   if ConstraintViolation.UNKNOWN_EMPLOYEE in reasons]
        absent = [emp_id for emp_id, reasons in problems.items()
                  if ConstraintViolation.ABSENCE in reasons]
        if absent:
            names = [self.data_manager.get_employee_by_id(emp_id).name for emp_id in absent]
            logger.warning(f"Rejected assignment for {day} {shift_type} in week {week_index + 1}: {', '.join(names)}")
            raise ValidationError(
                f"Cannot assign {', '.join(names)} to the {shift_type} shift on {day}: absent on this date"
            )
        if skipped:
            logger.warning(f"Skipping unknown employee ids {skipped} for {day} {shift_type} in week {week_index + 1}")
        selected = [emp_id for emp_id in requested if emp_id not in skipped]

        snapshot = self.data_manager.state.clone()
        _, slot = self._resolve_slot(week_index, day, shift_type)
        slot.employees = selected
        version_key = self.version_manager.sync_active_version(week_index)
        self.data_manager.commit(snapshot)

        team_counts: Dict[str, int] = {}
        for emp_id in selected:
            team = self.data_manager.get_employee_by_id(emp_id).team
            team_counts[team] = team_counts.get(team, 0) + 1

        result = AssignmentResult(
            week_index=week_index,
            day=day,
            shift_type=shift_type,
            employee_ids=selected,
            cross_team_ids=[emp_id for emp_id, reasons in problems.items()
                            if ConstraintViolation.CROSS_TEAM in reasons],
            team_counts=team_counts,
            skipped_ids=skipped,
            version_key=version_key
        )
        logger.info(result.message)
        return result

    def get_assignable_employees(self, week_index: int, day: str, shift_type: str) -> List[Dict[str, Any]]:
        """Every employee with the flags needed to build a shift selection"""
        date_str, slot = self._resolve_slot(week_index, day, shift_type)
        return [
            {
                "id": emp.id,
                "name": emp.name,
                "team": emp.team,
                "is_absent": emp.is_absent(date_str),
                "is_default_team": emp.team == slot.team,
                "is_assigned": emp.id in slot.employees and not emp.is_absent(date_str)
            }
            for emp in self.data_manager.get_employees()
        ]
