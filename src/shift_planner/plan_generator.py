"""
Plan Range Generation for Shift Planning System

Regenerates the plan for an arbitrary date range. Existing weeks are
matched to the new range by their dates: locked weeks survive untouched,
unlocked overlapping weeks are replanned and keep their version history.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .calendar_utils import DateLike, format_display, parse_date, weeks_in_range, weeks_overlap
from .data_manager import (
    DataManager,
    INITIAL_VERSION_NAME,
    ValidationError,
    Version,
    WeekSchedule,
    clone_week,
)
from .scheduler_logic import generate_schedule
from .version_manager import LockManager, add_version, find_active_version

logger = logging.getLogger(__name__)

FRESH = "fresh"
REPLAN = "replan"
LOCKED = "locked"


@dataclass
class PlanResult:
    """Outcome of a plan range generation"""
    start_date: str
    end_date: str
    week_count: int
    regenerated: int
    preserved_locked: int
    replanned: int
    versions_created: int

    @property
    def message(self) -> str:
        return (f"Plan generated successfully for {format_display(self.start_date)} - "
                f"{format_display(self.end_date)}. {self.replanned} existing unlocked weeks were replanned, "
                f"{self.preserved_locked} locked weeks were preserved.")


@dataclass
class PlannedWeek:
    """A week of the new plan and where it came from"""
    dates: List[str]
    kind: str
    old_index: Optional[int] = None
    label: Optional[str] = None


class PlanGenerator:
    """Regenerates the plan over a date range while respecting locks"""

    def __init__(self, data_manager: DataManager, lock_manager: Optional[LockManager] = None):
        self.data_manager = data_manager
        self.lock_manager = lock_manager or LockManager(data_manager)

    def _match_weeks(self, new_weeks: List[List[str]], old_dates: List[List[str]],
                     locked: List[int]) -> List[PlannedWeek]:
        """
        Decide for each new week whether it is fresh, replans an existing
        week or is replaced by a locked existing week.

        Locked existing weeks outside the range are kept as well. The result
        is ordered by start date.
        """
        planned = []
        placed_locked = set()
        claimed = set()

        for week in new_weeks:
            overlapping = [j for j, old in enumerate(old_dates) if weeks_overlap(week, old)]
            locked_hits = [j for j in overlapping if j in locked]
            if locked_hits:
                for j in locked_hits:
                    if j not in placed_locked:
                        placed_locked.add(j)
                        planned.append(PlannedWeek(dates=list(old_dates[j]), kind=LOCKED, old_index=j))
                        logger.info(f"Week {j + 1} ({format_display(old_dates[j][0])}) is locked and will not be modified")
                continue

            unclaimed = [j for j in overlapping if j not in claimed]
            if unclaimed:
                claimed.add(unclaimed[0])
                planned.append(PlannedWeek(
                    dates=week,
                    kind=REPLAN,
                    old_index=unclaimed[0],
                    label=f"Replan {format_display(week[0])}"
                ))
            else:
                planned.append(PlannedWeek(dates=week, kind=FRESH))

        for j in locked:
            if j not in placed_locked and j < len(old_dates) and old_dates[j]:
                placed_locked.add(j)
                planned.append(PlannedWeek(dates=list(old_dates[j]), kind=LOCKED, old_index=j))

        planned.sort(key=lambda p: p.dates[0])
        return planned

    def generate_plan(self, start_date: DateLike, end_date: DateLike,
                      create_versions_for_existing: bool = True) -> PlanResult:
        """
        Generate the plan for a date range.

        Args:
            start_date: First day of the range, aligned back to its Monday
            end_date: Last day of the range
            create_versions_for_existing: Add a 'Replan' version to every
                replanned week instead of overwriting its active version

        Raises:
            ValidationError: Unparseable dates, end before start, or an empty range.
                Nothing is modified in that case.
        """
        try:
            start = parse_date(start_date)
            end = parse_date(end_date)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}")
        if end < start:
            raise ValidationError("End date cannot be before start date")

        new_weeks = weeks_in_range(start, end)
        if not new_weeks:
            raise ValidationError("No valid weeks found in the selected date range")

        state = self.data_manager.state

        # Snapshot of everything the new plan is built from
        old_dates = [list(week) for week in state.week_dates]
        old_schedule = {i: clone_week(week) for i, week in state.schedule.items()}
        old_versions = {
            i: {key: version.clone() for key, version in versions.items()}
            for i, versions in state.week_versions.items()
        }
        locked = self.lock_manager.locked_week_indices()
        old_current = old_dates[state.current_week] if 0 <= state.current_week < len(old_dates) else None

        planned = self._match_weeks(new_weeks, old_dates, locked)
        new_dates = [p.dates for p in planned]
        generated = generate_schedule(state.employees, new_dates)

        new_schedule: Dict[int, WeekSchedule] = {}
        new_versions: Dict[int, Dict[str, Version]] = {}
        new_locked: Dict[int, bool] = {}
        timestamp = datetime.now().isoformat()
        regenerated = preserved = replanned = versions_created = 0

        for new_index, week in enumerate(planned):
            if week.kind == LOCKED:
                new_schedule[new_index] = old_schedule.get(week.old_index, generated[new_index])
                if week.old_index in old_versions:
                    new_versions[new_index] = old_versions[week.old_index]
                new_locked[new_index] = True
                preserved += 1
                continue

            fresh = generated[new_index]
            new_schedule[new_index] = fresh
            new_locked[new_index] = False
            regenerated += 1

            versions = old_versions.get(week.old_index, {}) if week.kind == REPLAN else {}
            if week.kind == REPLAN:
                replanned += 1

            if week.kind == REPLAN and create_versions_for_existing:
                add_version(versions, week.label, fresh, timestamp)
                versions_created += 1
            elif not versions:
                add_version(versions, INITIAL_VERSION_NAME, fresh, timestamp)
                versions_created += 1
            else:
                active = find_active_version(versions)
                if active is None:
                    add_version(versions, week.label or INITIAL_VERSION_NAME, fresh, timestamp)
                    versions_created += 1
                else:
                    active[1].schedule = clone_week(fresh)
            new_versions[new_index] = versions

        current_week = 0
        if old_current:
            for new_index, dates in enumerate(new_dates):
                if weeks_overlap(dates, old_current):
                    current_week = new_index
                    break

        snapshot = state.clone()
        state.week_dates = new_dates
        state.schedule = new_schedule
        state.week_versions = new_versions
        state.locked_weeks = new_locked
        state.current_week = current_week
        self.data_manager.commit(snapshot)

        result = PlanResult(
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            week_count=len(new_dates),
            regenerated=regenerated,
            preserved_locked=preserved,
            replanned=replanned,
            versions_created=versions_created
        )
        logger.info(result.message)
        return result
