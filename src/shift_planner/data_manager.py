"""
Data Manager for Shift Planning System

Handles JSON persistence of the application state, CRUD operations for
employees and skills, import/export of backups, and the read-only views
used by reporting (shift details, skill coverage, absences).
"""

import copy
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from pathlib import Path

from .calendar_utils import DAYS_OF_WEEK, SHIFT_TYPES, TEAMS, next_n_weeks

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
INITIAL_VERSION_NAME = "Initial Version"
REQUIRED_IMPORT_KEYS = ("employees", "skills", "schedule", "weekVersions", "lockedWeeks", "weekDates")


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


class ShiftPlannerError(Exception):
    """Base exception for rejected planning operations. State is left unchanged."""
    pass


class LockedWeekError(ShiftPlannerError):
    """Raised when a mutation targets a locked week"""

    def __init__(self, week_index: int, action: str = "modify"):
        self.week_index = week_index
        super().__init__(f"Cannot {action}: week {week_index + 1} is locked. Unlock it first.")


class VersionNotFoundError(ShiftPlannerError):
    """Raised when a version key does not exist for a week"""

    def __init__(self, week_index: int, version_key: str):
        self.week_index = week_index
        self.version_key = version_key
        super().__init__(f"Version '{version_key}' not found for week {week_index + 1}")


class ValidationError(ShiftPlannerError):
    """Raised for malformed input (date ranges, names, absent employees)"""
    pass


class ImportFormatError(ShiftPlannerError):
    """Raised when imported data does not have the expected shape"""
    pass


@dataclass
class Skill:
    """Skill catalog entry"""
    id: int
    name: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Skill':
        return cls(
            id=int(data["id"]),
            name=data["name"],
            description=data.get("description") or ""
        )


@dataclass
class Employee:
    """Employee with home team, skills and absence dates"""
    id: int
    name: str
    team: str  # "A", "B" or "C"
    skills: List[int] = field(default_factory=list)
    absent_dates: List[str] = field(default_factory=list)

    def is_absent(self, date_str: str) -> bool:
        return date_str in self.absent_dates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "team": self.team,
            "skills": list(self.skills),
            "absentDates": list(self.absent_dates)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        return cls(
            id=int(data["id"]),
            name=data["name"],
            team=data.get("team", "A"),
            skills=[int(s) for s in data.get("skills") or []],
            absent_dates=list(data.get("absentDates") or [])
        )

    def clone(self) -> 'Employee':
        return Employee(self.id, self.name, self.team, list(self.skills), list(self.absent_dates))


@dataclass
class ShiftSlot:
    """One shift period of a day, bound to a default team"""
    team: str
    employees: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"team": self.team, "employees": list(self.employees)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShiftSlot':
        return cls(team=data.get("team", ""), employees=[int(e) for e in data.get("employees") or []])

    def clone(self) -> 'ShiftSlot':
        return ShiftSlot(self.team, list(self.employees))


@dataclass
class DaySchedule:
    """AM, PM and Night slots of a single date"""
    date: str
    am: ShiftSlot
    pm: ShiftSlot
    night: ShiftSlot

    _SLOT_ATTRS = {"AM": "am", "PM": "pm", "Night": "night"}

    def slot(self, shift_type: str) -> ShiftSlot:
        return getattr(self, self._SLOT_ATTRS[shift_type])

    def slots(self) -> Dict[str, ShiftSlot]:
        return {shift_type: self.slot(shift_type) for shift_type in SHIFT_TYPES}

    def to_dict(self) -> Dict[str, Any]:
        data = {"date": self.date}
        for shift_type, slot in self.slots().items():
            data[shift_type] = slot.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DaySchedule':
        return cls(
            date=data.get("date", ""),
            am=ShiftSlot.from_dict(data.get("AM") or {}),
            pm=ShiftSlot.from_dict(data.get("PM") or {}),
            night=ShiftSlot.from_dict(data.get("Night") or {})
        )

    def clone(self) -> 'DaySchedule':
        return DaySchedule(self.date, self.am.clone(), self.pm.clone(), self.night.clone())


# A week schedule maps day names (Monday..Sunday) to DaySchedule
WeekSchedule = Dict[str, DaySchedule]


def clone_week(week: WeekSchedule) -> WeekSchedule:
    """Deep copy of a week schedule"""
    return {day: day_schedule.clone() for day, day_schedule in week.items()}


def week_schedule_to_dict(week: WeekSchedule) -> Dict[str, Any]:
    return {day: day_schedule.to_dict() for day, day_schedule in week.items()}


def week_schedule_from_dict(data: Dict[str, Any]) -> WeekSchedule:
    ordered_days = [day for day in DAYS_OF_WEEK if day in data]
    ordered_days += [day for day in data if day not in DAYS_OF_WEEK]
    return {day: DaySchedule.from_dict(data[day]) for day in ordered_days}


@dataclass
class Version:
    """Named, timestamped snapshot of a week schedule"""
    name: str
    date: str
    is_active: bool
    schedule: WeekSchedule

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "date": self.date,
            "isActive": self.is_active,
            "schedule": week_schedule_to_dict(self.schedule)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Version':
        return cls(
            name=data.get("name", ""),
            date=data.get("date", ""),
            is_active=bool(data.get("isActive", False)),
            schedule=week_schedule_from_dict(data.get("schedule") or {})
        )

    def clone(self) -> 'Version':
        return Version(self.name, self.date, self.is_active, clone_week(self.schedule))


@dataclass
class AppState:
    """The single persisted application state"""
    employees: List[Employee] = field(default_factory=list)
    skills: List[Skill] = field(default_factory=list)
    schedule: Dict[int, WeekSchedule] = field(default_factory=dict)
    week_versions: Dict[int, Dict[str, Version]] = field(default_factory=dict)
    locked_weeks: Dict[int, bool] = field(default_factory=dict)
    current_week: int = 0
    week_dates: List[List[str]] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": dict(self.settings),
            "employees": [emp.to_dict() for emp in self.employees],
            "skills": [skill.to_dict() for skill in self.skills],
            "schedule": {str(i): week_schedule_to_dict(week) for i, week in self.schedule.items()},
            "weekVersions": {
                str(i): {key: version.to_dict() for key, version in versions.items()}
                for i, versions in self.week_versions.items()
            },
            "lockedWeeks": {str(i): locked for i, locked in self.locked_weeks.items()},
            "currentWeek": self.current_week,
            "weekDates": [list(week) for week in self.week_dates]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppState':
        return cls(
            employees=[Employee.from_dict(e) for e in data.get("employees", [])],
            skills=[Skill.from_dict(s) for s in data.get("skills", [])],
            schedule={int(i): week_schedule_from_dict(week) for i, week in data.get("schedule", {}).items()},
            week_versions={
                int(i): {key: Version.from_dict(v) for key, v in versions.items()}
                for i, versions in data.get("weekVersions", {}).items()
            },
            locked_weeks={int(i): bool(locked) for i, locked in data.get("lockedWeeks", {}).items()},
            current_week=int(data.get("currentWeek", 0) or 0),
            week_dates=[list(week) for week in data.get("weekDates", [])],
            settings=dict(data.get("settings", {}))
        )

    def clone(self) -> 'AppState':
        return AppState(
            employees=[emp.clone() for emp in self.employees],
            skills=[Skill(s.id, s.name, s.description) for s in self.skills],
            schedule={i: clone_week(week) for i, week in self.schedule.items()},
            week_versions={
                i: {key: version.clone() for key, version in versions.items()}
                for i, versions in self.week_versions.items()
            },
            locked_weeks=dict(self.locked_weeks),
            current_week=self.current_week,
            week_dates=[list(week) for week in self.week_dates],
            settings=dict(self.settings)
        )


SAMPLE_SKILLS = [
    {"id": 1, "name": "First Aid", "description": "Certified in basic first aid"},
    {"id": 2, "name": "Forklift", "description": "Licensed to operate forklifts"},
    {"id": 3, "name": "Team Lead", "description": "Can lead a team"},
    {"id": 4, "name": "Technical Support", "description": "Can provide technical assistance"}
]

SAMPLE_EMPLOYEES = [
    {"id": 1, "name": "John Doe", "team": "A", "absentDates": [], "skills": [1, 3]},
    {"id": 2, "name": "Jane Smith", "team": "A", "absentDates": [], "skills": [1, 4]},
    {"id": 3, "name": "Bob Johnson", "team": "B", "absentDates": [], "skills": [2]},
    {"id": 4, "name": "Alice Brown", "team": "B", "absentDates": [], "skills": [2, 3]},
    {"id": 5, "name": "Charlie Davis", "team": "C", "absentDates": [], "skills": [4]}
]


class DataManager:
    """Owns the AppState and handles persistence and roster operations"""

    def __init__(self, data_file: str = "data/shift_planner_data.json"):
        if data_file == "data/shift_planner_data.json":
            # Use path relative to the package directory
            data_file = Path(__file__).parent.parent / "data" / "shift_planner_data.json"
        self.data_file = Path(data_file)
        self.state = self._load_or_create_state()

    def _load_or_create_state(self) -> AppState:
        """Load existing state or create the sample state, recovering from backup if needed"""
        backup_file = self.data_file.with_suffix('.bak')
        if self.data_file.exists():
            try:
                return self._read_state_file(self.data_file)
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading main data file {self.data_file}: {e}")
                if not backup_file.exists():
                    raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
                return self._recover_from_backup(backup_file)

        if backup_file.exists():
            logger.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)

        logger.info("No data file found, creating default data with sample roster")
        return AppState.from_dict(self._create_default_data(with_samples=True))

    def _recover_from_backup(self, backup_file: Path) -> AppState:
        try:
            logger.info(f"Attempting recovery from backup file {backup_file}")
            state = self._read_state_file(backup_file)
            backup_file.replace(self.data_file)
            logger.info("Successfully recovered data from backup")
            return state
        except (json.JSONDecodeError, IOError) as backup_e:
            logger.error(f"Backup file also corrupted: {backup_e}")
            logger.info("Creating default data due to corrupted files")
            return AppState.from_dict(self._create_default_data(with_samples=True))

    def _read_state_file(self, path: Path) -> AppState:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return AppState.from_dict(self._validate_and_migrate_data(data))

    def load_state(self) -> Optional[AppState]:
        """Read the persisted state without touching the in-memory one. None if nothing is saved."""
        if not self.data_file.exists():
            return None
        try:
            return self._read_state_file(self.data_file)
        except (json.JSONDecodeError, IOError) as e:
            raise DataFileCorruptedError(f"Could not read {self.data_file}: {e}")

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in sections missing from older data files"""
        default_data = self._create_default_data(with_samples=False)

        for key in default_data:
            if key not in data or data[key] is None:
                data[key] = default_data[key]

        for emp in data.get("employees", []):
            emp.setdefault("skills", [])
            emp.setdefault("absentDates", [])

        # Every week that has a schedule needs an initial version
        for week_key, week in data.get("schedule", {}).items():
            if not data["weekVersions"].get(week_key):
                logger.info(f"Creating missing initial version for week {week_key}")
                data["weekVersions"][week_key] = {
                    "v1": {
                        "name": INITIAL_VERSION_NAME,
                        "date": datetime.now().isoformat(),
                        "isActive": True,
                        "schedule": copy.deepcopy(week)
                    }
                }

        data["settings"].setdefault("appVersion", APP_VERSION)
        return data

    def _create_default_data(self, with_samples: bool = True) -> Dict[str, Any]:
        """Create default data structure, optionally with the sample roster"""
        return {
            "settings": {
                "appVersion": APP_VERSION,
                "preferredLanguage": "en",
                "dataFile": str(self.data_file)
            },
            "employees": [dict(e) for e in SAMPLE_EMPLOYEES] if with_samples else [],
            "skills": [dict(s) for s in SAMPLE_SKILLS] if with_samples else [],
            "schedule": {},  # {week_index: {day_name: {date, AM, PM, Night}}}
            "weekVersions": {},  # {week_index: {"v1": {name, date, isActive, schedule}}}
            "lockedWeeks": {},  # {week_index: bool}
            "currentWeek": 0,
            "weekDates": next_n_weeks(4) if with_samples else []
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            with open(self.data_file, 'r', encoding='utf-8') as f:
                saved_data = json.load(f)

            for key in REQUIRED_IMPORT_KEYS + ("settings",):
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.state.settings.get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save the whole state to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self.state.settings["lastSaved"] = datetime.now().isoformat()
            self.state.settings.setdefault("appVersion", APP_VERSION)

            # Keep the previous file as backup
            if self.data_file.exists():
                self.data_file.replace(backup_file)

            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.state.to_dict(), f, indent=2, ensure_ascii=False)

            temp_file.replace(self.data_file)

            self._validate_saved_data()

            return True

        except DataValidationError as e:
            logger.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                try:
                    backup_file.replace(self.data_file)
                except OSError as restore_e:
                    logger.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError) as e:
            logger.error(f"I/O error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        finally:
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logger.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    def commit(self, snapshot: AppState) -> bool:
        """
        Persist the current state. If the save fails the in-memory state is
        reset to `snapshot`, taken before the mutation, and the error re-raised.
        """
        try:
            return self.save_data()
        except DataSaveError:
            logger.warning("Save failed, restoring the previous in-memory state")
            self.state = snapshot
            raise

    # Settings Management
    def get_setting(self, key: str, default=None):
        """Get application setting"""
        return self.state.settings.get(key, default)

    def set_setting(self, key: str, value):
        """Set application setting"""
        self.state.settings[key] = value

    # Employee Management
    def get_employees(self, team: Optional[str] = None) -> List[Employee]:
        """Get employees, optionally restricted to one team"""
        return [emp for emp in self.state.employees if team is None or emp.team == team]

    def get_employee_by_id(self, emp_id: int) -> Optional[Employee]:
        for emp in self.state.employees:
            if emp.id == emp_id:
                return emp
        return None

    def get_employee_by_name(self, name: str) -> Optional[Employee]:
        for emp in self.state.employees:
            if emp.name == name:
                return emp
        return None

    def get_employees_by_team(self) -> Dict[str, List[Employee]]:
        """Team overview: employees grouped by team"""
        return {team: self.get_employees(team) for team in TEAMS}

    def _validate_employee_fields(self, name: Optional[str], team: Optional[str],
                                  skills: Optional[List[int]]):
        if name is not None and not name.strip():
            raise ValidationError("Please enter a name for the employee.")
        if team is not None and team not in TEAMS:
            raise ValidationError(f"Unknown team '{team}', expected one of {', '.join(TEAMS)}")
        if skills:
            known = {skill.id for skill in self.state.skills}
            unknown = [s for s in skills if s not in known]
            if unknown:
                raise ValidationError(f"Unknown skill ids: {unknown}")

    def add_employee(self, name: str, team: str, skills: Optional[List[int]] = None,
                     absent_dates: Optional[List[str]] = None) -> Employee:
        """Add new employee"""
        self._validate_employee_fields(name, team, skills)

        existing_ids = [emp.id for emp in self.state.employees]
        next_id = max(existing_ids, default=0) + 1

        employee = Employee(
            id=next_id,
            name=name.strip(),
            team=team,
            skills=list(dict.fromkeys(skills or [])),
            absent_dates=sorted(set(absent_dates or []))
        )
        self.state.employees.append(employee)
        logger.info(f"Added employee {employee.name} (id {employee.id}) to team {team}")
        return employee

    def update_employee(self, emp_id: int, name: str = None, team: str = None,
                        skills: List[int] = None, absent_dates: List[str] = None) -> bool:
        """Update employee information"""
        emp = self.get_employee_by_id(emp_id)
        if emp is None:
            return False

        self._validate_employee_fields(name, team, skills)

        if name is not None:
            emp.name = name.strip()
        if team is not None:
            emp.team = team
        if skills is not None:
            emp.skills = list(dict.fromkeys(skills))
        if absent_dates is not None:
            emp.absent_dates = sorted(set(absent_dates))
        return True

    def delete_employee(self, emp_id: int) -> bool:
        """
        Delete employee (hard delete).

        Shift lists and version snapshots may still reference the id;
        every consumer skips ids it cannot resolve.
        """
        emp = self.get_employee_by_id(emp_id)
        if emp is None:
            return False
        self.state.employees.remove(emp)
        logger.info(f"Deleted employee {emp.name} (id {emp_id})")
        return True

    # Absence Management
    def get_absences(self, emp_id: int) -> List[str]:
        emp = self.get_employee_by_id(emp_id)
        return list(emp.absent_dates) if emp else []

    def add_absence(self, emp_id: int, date_str: str):
        emp = self.get_employee_by_id(emp_id)
        if emp and date_str not in emp.absent_dates:
            emp.absent_dates.append(date_str)
            emp.absent_dates.sort()

    def remove_absence(self, emp_id: int, date_str: str):
        emp = self.get_employee_by_id(emp_id)
        if emp and date_str in emp.absent_dates:
            emp.absent_dates.remove(date_str)

    def is_employee_absent(self, emp_id: int, date_str: str) -> bool:
        """Check if employee is absent on specific date"""
        emp = self.get_employee_by_id(emp_id)
        return bool(emp and emp.is_absent(date_str))

    # Skill Management
    def get_skills(self) -> List[Skill]:
        return list(self.state.skills)

    def get_skill_by_id(self, skill_id: int) -> Optional[Skill]:
        for skill in self.state.skills:
            if skill.id == skill_id:
                return skill
        return None

    def add_skill(self, name: str, description: str = "") -> Skill:
        if not name or not name.strip():
            raise ValidationError("Please enter a name for the skill.")
        next_id = max((s.id for s in self.state.skills), default=0) + 1
        skill = Skill(id=next_id, name=name.strip(), description=description or "")
        self.state.skills.append(skill)
        return skill

    def update_skill(self, skill_id: int, name: str = None, description: str = None) -> bool:
        skill = self.get_skill_by_id(skill_id)
        if skill is None:
            return False
        if name is not None:
            if not name.strip():
                raise ValidationError("Please enter a name for the skill.")
            skill.name = name.strip()
        if description is not None:
            skill.description = description
        return True

    def delete_skill(self, skill_id: int) -> bool:
        """Delete a skill and remove it from every employee"""
        skill = self.get_skill_by_id(skill_id)
        if skill is None:
            return False
        for emp in self.state.employees:
            if skill_id in emp.skills:
                emp.skills = [s for s in emp.skills if s != skill_id]
        self.state.skills.remove(skill)
        logger.info(f"Deleted skill {skill.name} (id {skill_id}) and removed it from all employees")
        return True

    def get_skill_names(self, emp: Employee) -> List[str]:
        names = []
        for skill_id in emp.skills:
            skill = self.get_skill_by_id(skill_id)
            if skill:
                names.append(skill.name)
        return names

    def get_employees_with_skill(self, skill_id: int) -> List[Employee]:
        return [emp for emp in self.state.employees if skill_id in emp.skills]

    # Week Access
    def week_count(self) -> int:
        return len(self.state.week_dates)

    def get_week_dates(self, week_index: int) -> List[str]:
        if 0 <= week_index < len(self.state.week_dates):
            return list(self.state.week_dates[week_index])
        return []

    def get_week_schedule(self, week_index: int) -> Optional[WeekSchedule]:
        return self.state.schedule.get(week_index)

    def get_date_for_day(self, week_index: int, day: str) -> Optional[str]:
        dates = self.get_week_dates(week_index)
        if day not in DAYS_OF_WEEK or len(dates) != 7:
            return None
        return dates[DAYS_OF_WEEK.index(day)]

    def set_current_week(self, week_index: int):
        if not 0 <= week_index < self.week_count():
            raise ValidationError(f"Week index {week_index} is out of range (0-{self.week_count() - 1})")
        self.state.current_week = week_index

    # Import / Export
    @staticmethod
    def validate_import_data(candidate: Any) -> bool:
        """Check that a candidate blob has the required sections"""
        if not isinstance(candidate, dict):
            return False
        for key in REQUIRED_IMPORT_KEYS:
            if key not in candidate:
                return False
        return isinstance(candidate["employees"], list) and isinstance(candidate["skills"], list)

    def import_data(self, candidate: Dict[str, Any]) -> AppState:
        """Replace the whole state with imported data and persist it"""
        if not self.validate_import_data(candidate):
            raise ImportFormatError("Invalid data format. The data does not contain valid Shift Planner data.")
        try:
            state = AppState.from_dict(self._validate_and_migrate_data(copy.deepcopy(candidate)))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ImportFormatError(f"Invalid data format: {e}")

        snapshot = self.state
        self.state = state
        self.commit(snapshot)
        logger.info(f"Imported data with {len(state.employees)} employees and {len(state.week_dates)} weeks")
        return state

    def export_data(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def import_json_file(self, path: str) -> AppState:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                candidate = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportFormatError(f"Error parsing the file: {e}")
        except OSError as e:
            raise ImportFormatError(f"Could not read {path}: {e}")
        return self.import_data(candidate)

    def export_json_file(self, path: str) -> Path:
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(self.export_data(), f, indent=2, ensure_ascii=False)
        logger.info(f"Data exported to {output}")
        return output

    @staticmethod
    def get_default_backup_filename() -> str:
        return f"ShiftPlanner_Backup_{datetime.now().strftime('%Y-%m-%d')}.json"

    # Reporting Views
    def get_shift_details(self, week_index: int) -> List[Dict[str, Any]]:
        """
        Per-day, per-shift employee lists with flags.

        Each employee entry carries is_absent (absent on that date) and
        is_cross_team (home team differs from the slot's team). Ids that no
        longer resolve to an employee are skipped.
        """
        week = self.get_week_schedule(week_index) or {}
        dates = self.get_week_dates(week_index)
        details = []
        for day_index, day in enumerate(DAYS_OF_WEEK):
            day_schedule = week.get(day)
            date_str = dates[day_index] if day_index < len(dates) else (day_schedule.date if day_schedule else "")
            shifts = {}
            for shift_type in SHIFT_TYPES:
                slot = day_schedule.slot(shift_type) if day_schedule else ShiftSlot(team="-")
                entries = []
                for emp_id in slot.employees:
                    emp = self.get_employee_by_id(emp_id)
                    if emp is None:
                        continue
                    entries.append({
                        "id": emp.id,
                        "name": emp.name,
                        "team": emp.team,
                        "skills": self.get_skill_names(emp),
                        "is_absent": emp.is_absent(date_str),
                        "is_cross_team": emp.team != slot.team
                    })
                shifts[shift_type] = {"team": slot.team, "employees": entries}
            details.append({"day": day, "date": date_str, "shifts": shifts})
        return details

    def get_daily_skill_summary(self, week_index: int, day: str) -> List[Dict[str, Any]]:
        """Skill counts over all shifts of one day, absent employees excluded, highest first"""
        week = self.get_week_schedule(week_index) or {}
        day_schedule = week.get(day)
        date_str = self.get_date_for_day(week_index, day)
        if day_schedule is None:
            return []
        if date_str is None:
            date_str = day_schedule.date

        counts: Dict[int, int] = {}
        for slot in day_schedule.slots().values():
            for emp_id in slot.employees:
                emp = self.get_employee_by_id(emp_id)
                if emp is None or emp.is_absent(date_str):
                    continue
                for skill_id in emp.skills:
                    counts[skill_id] = counts.get(skill_id, 0) + 1

        summary = []
        for skill_id, count in counts.items():
            skill = self.get_skill_by_id(skill_id)
            summary.append({"id": skill_id, "name": skill.name if skill else "Unknown", "count": count})
        return sorted(summary, key=lambda item: item["count"], reverse=True)

    def get_weekly_skill_coverage(self, week_index: int) -> Dict[int, Dict[str, Any]]:
        """Per skill, how many present employee-shifts cover it in AM, PM and Night"""
        coverage: Dict[int, Dict[str, Any]] = {}
        for day_detail in self.get_shift_details(week_index):
            for shift_type, shift in day_detail["shifts"].items():
                for entry in shift["employees"]:
                    if entry["is_absent"]:
                        continue
                    emp = self.get_employee_by_id(entry["id"])
                    for skill_id in emp.skills:
                        skill = self.get_skill_by_id(skill_id)
                        if skill is None:
                            continue
                        if skill_id not in coverage:
                            coverage[skill_id] = {"name": skill.name, **{s: 0 for s in SHIFT_TYPES}}
                        coverage[skill_id][shift_type] += 1
        return coverage

    def get_week_absences(self, week_index: int) -> List[Dict[str, Any]]:
        """All employee absences falling inside a week, sorted by date"""
        absences = []
        for date_str in self.get_week_dates(week_index):
            for emp in self.state.employees:
                if emp.is_absent(date_str):
                    absences.append({
                        "employee_id": emp.id,
                        "name": emp.name,
                        "date": date_str,
                        "team": emp.team
                    })
        return sorted(absences, key=lambda a: a["date"])
