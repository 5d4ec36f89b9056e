"""
Version and Lock Management for Shift Planning System

A week's plan can have several named versions, exactly one of which is
active and mirrored into the live schedule. A locked week rejects every
mutation until it is unlocked again.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .data_manager import (
    DataManager,
    INITIAL_VERSION_NAME,
    LockedWeekError,
    ValidationError,
    Version,
    VersionNotFoundError,
    WeekSchedule,
    clone_week,
)

logger = logging.getLogger(__name__)


def version_number(key: str) -> Optional[int]:
    """Numeric suffix of a 'v<N>' key, None for anything else"""
    if key.startswith("v") and key[1:].isdigit():
        return int(key[1:])
    return None


def next_version_key(versions: Dict[str, Version]) -> str:
    numbers = [n for n in (version_number(key) for key in versions) if n is not None]
    return f"v{max(numbers, default=0) + 1}"


def find_active_version(versions: Dict[str, Version]) -> Optional[Tuple[str, Version]]:
    for key, version in versions.items():
        if version.is_active:
            return key, version
    return None


def add_version(versions: Dict[str, Version], name: str, schedule: WeekSchedule,
                timestamp: Optional[str] = None) -> str:
    """
    Append a new active version to a week's version mapping.

    Every existing version is deactivated first so exactly one stays active.
    The schedule is stored as a deep copy.
    """
    key = next_version_key(versions)
    for version in versions.values():
        version.is_active = False
    versions[key] = Version(
        name=name,
        date=timestamp or datetime.now().isoformat(),
        is_active=True,
        schedule=clone_week(schedule)
    )
    return key


class LockManager:
    """Per-week lock flags"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def is_locked(self, week_index: int) -> bool:
        return self.data_manager.state.locked_weeks.get(week_index) is True

    def set_locked(self, week_index: int, locked: bool):
        """Lock or unlock a week and persist"""
        snapshot = self.data_manager.state.clone()
        self.data_manager.state.locked_weeks[week_index] = bool(locked)
        self.data_manager.commit(snapshot)
        logger.info(f"Week {week_index + 1} {'locked' if locked else 'unlocked'}")

    def toggle_lock(self, week_index: int) -> bool:
        locked = not self.is_locked(week_index)
        self.set_locked(week_index, locked)
        return locked

    def locked_week_indices(self) -> List[int]:
        return sorted(i for i, locked in self.data_manager.state.locked_weeks.items() if locked is True)

    def ensure_unlocked(self, week_index: int, action: str = "modify this week"):
        if self.is_locked(week_index):
            logger.warning(f"Rejected '{action}' on locked week {week_index + 1}")
            raise LockedWeekError(week_index, action)


class VersionManager:
    """Creates, activates and looks up the versions of each week"""

    def __init__(self, data_manager: DataManager, lock_manager: Optional[LockManager] = None):
        self.data_manager = data_manager
        self.lock_manager = lock_manager or LockManager(data_manager)

    def create_version(self, week_index: int, name: Optional[str] = None,
                       schedule: Optional[WeekSchedule] = None) -> str:
        """
        Snapshot a schedule into a new active version of the week.

        Args:
            week_index: Position of the week in weekDates
            name: Display name, "Version <N>" when omitted
            schedule: Schedule to snapshot, the live one of the week when omitted

        Returns:
            The new version key, e.g. "v3"
        """
        state = self.data_manager.state
        self.lock_manager.ensure_unlocked(week_index, "create a new version")

        if name is not None and not name.strip():
            raise ValidationError("Version name cannot be empty")

        source = schedule if schedule is not None else state.schedule.get(week_index)
        if source is None:
            raise ValidationError(f"Week {week_index + 1} has no schedule to snapshot")

        snapshot = state.clone()
        versions = state.week_versions.setdefault(week_index, {})
        if name is None:
            name = f"Version {next_version_key(versions)[1:]}"
        key = add_version(versions, name.strip(), source)
        state.schedule[week_index] = clone_week(versions[key].schedule)

        self.data_manager.commit(snapshot)
        logger.info(f"Created version {key} '{name}' for week {week_index + 1}")
        return key

    def create_version_for_current_week(self, name: Optional[str] = None) -> str:
        return self.create_version(self.data_manager.state.current_week, name)

    def activate_version(self, week_index: int, version_key: str):
        """Make a version active and load its schedule into the live week"""
        state = self.data_manager.state
        self.lock_manager.ensure_unlocked(week_index, "switch versions")

        versions = state.week_versions.get(week_index) or {}
        if version_key not in versions:
            logger.warning(f"Version {version_key} not found for week {week_index + 1}")
            raise VersionNotFoundError(week_index, version_key)

        snapshot = state.clone()
        for key, version in versions.items():
            version.is_active = key == version_key
        state.schedule[week_index] = clone_week(versions[version_key].schedule)

        self.data_manager.commit(snapshot)
        logger.info(f"Activated version {version_key} for week {week_index + 1}")

    def get_active_version(self, week_index: int) -> Optional[Tuple[str, Version]]:
        return find_active_version(self.data_manager.state.week_versions.get(week_index) or {})

    def get_all_versions(self, week_index: int) -> Dict[str, Version]:
        return dict(self.data_manager.state.week_versions.get(week_index) or {})

    def ensure_initial_version(self, week_index: int) -> Optional[str]:
        """Create v1 for a week that has a schedule but no versions. Does not persist."""
        state = self.data_manager.state
        if state.week_versions.get(week_index) or week_index not in state.schedule:
            return None
        versions = state.week_versions.setdefault(week_index, {})
        return add_version(versions, INITIAL_VERSION_NAME, state.schedule[week_index])

    def sync_active_version(self, week_index: int) -> str:
        """
        Write the live schedule of a week back into its active version.

        A week without an active version gets a new one. Does not persist.
        """
        state = self.data_manager.state
        versions = state.week_versions.setdefault(week_index, {})
        active = find_active_version(versions)
        if active is None:
            name = INITIAL_VERSION_NAME if not versions else f"Version {next_version_key(versions)[1:]}"
            return add_version(versions, name, state.schedule[week_index])
        key, version = active
        version.schedule = clone_week(state.schedule[week_index])
        return key
