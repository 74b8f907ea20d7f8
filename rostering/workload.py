"""
Running workload counters for a single generation run.

A ``WorkloadTracker`` is created by the solver for one call, seeded from the
existing schedule baseline, updated as assignments are made and thrown away
when the call returns.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Tuple
import datetime as dt

from rostering.catalog import Catalog
from rostering.models import (
    DutyCategory,
    ScheduleEntry,
    ShiftCategory,
    StaffMember,
)
from rostering.utils import week_start, previous_day


@dataclass
class StaffLoad:
    consecutive_shifts: int = 0
    total_shifts: int = 0
    night_shifts: int = 0
    last_shift_date: Optional[dt.date] = None
    last_shift_type: Optional[int] = None
    rest_days: int = 0
    specialization: Optional[str] = None


@dataclass
class DutyPattern:
    pre_duty: int = 0
    duty: int = 0
    post_duty: int = 0
    day_shift: int = 0
    evening_shift: int = 0
    night_shift: int = 0

    @property
    def duty_total(self) -> int:
        return self.duty + self.pre_duty + self.post_duty

    @property
    def shift_total(self) -> int:
        return self.day_shift + self.evening_shift + self.night_shift


_SHIFT_FIELDS = {
    ShiftCategory.DAY: "day_shift",
    ShiftCategory.EVENING: "evening_shift",
    ShiftCategory.NIGHT: "night_shift",
}

_DUTY_FIELDS = {
    DutyCategory.PRE_DUTY: "pre_duty",
    DutyCategory.DUTY: "duty",
    DutyCategory.POST_DUTY: "post_duty",
}


class WorkloadTracker:
    """Per-staff loads, duty patterns and weekly counts for one run."""

    def __init__(self, staff: Iterable[StaffMember], catalog: Catalog):
        self.catalog = catalog
        self.loads: Dict[int, StaffLoad] = {}
        self.patterns: Dict[int, DutyPattern] = {}
        # week start (Sunday) -> staff_id -> entries that week
        self.weekly: Dict[dt.date, Dict[int, int]] = {}

        for s in staff:
            self.loads[s.id] = StaffLoad(specialization=s.specialization)
            self.patterns[s.id] = DutyPattern()

    def seed(self, existing: List[ScheduleEntry], start_date: dt.date) -> None:
        """Fold the existing schedule baseline into the counters.

        Entries for staff who are no longer on the roster are ignored.
        """
        working_days: Dict[int, set] = {}

        for entry in sorted(existing, key=lambda e: e.date):
            load = self.loads.get(entry.staff_id)
            if load is None:
                continue
            pattern = self.patterns[entry.staff_id]

            if entry.shift_type_id is not None:
                load.total_shifts += 1
                load.last_shift_date = entry.date
                load.last_shift_type = entry.shift_type_id
                working_days.setdefault(entry.staff_id, set()).add(entry.date)

                category = self.catalog.category_of(entry.shift_type_id)
                if category is ShiftCategory.NIGHT:
                    load.night_shifts += 1
                if category is not None:
                    self._bump_shift(pattern, category)

            self._bump_duty(pattern, entry.duty_type_id)
            self.add_weekly(entry.staff_id, entry.date)

        # Streak carried into the run: contiguous working days ending the day before start
        for staff_id, days in working_days.items():
            streak = 0
            day = previous_day(start_date)
            while day in days:
                streak += 1
                day = previous_day(day)
            self.loads[staff_id].consecutive_shifts = streak

    def weekly_count(self, staff_id: int, day: dt.date) -> int:
        return self.weekly.get(week_start(day), {}).get(staff_id, 0)

    def add_weekly(self, staff_id: int, day: dt.date) -> None:
        week = self.weekly.setdefault(week_start(day), {})
        week[staff_id] = week.get(staff_id, 0) + 1

    def record_assignment(self, staff_id: int, day: dt.date,
                          shift_type_id: Optional[int], shift: ShiftCategory,
                          duty: DutyCategory) -> None:
        """Apply one generated assignment to the counters."""
        load = self.loads[staff_id]
        load.consecutive_shifts += 1
        load.total_shifts += 1
        if shift is ShiftCategory.NIGHT:
            load.night_shifts += 1
        load.last_shift_date = day
        load.last_shift_type = shift_type_id
        load.rest_days = 0

        pattern = self.patterns[staff_id]
        setattr(pattern, _DUTY_FIELDS[duty], getattr(pattern, _DUTY_FIELDS[duty]) + 1)
        self._bump_shift(pattern, shift)
        self.add_weekly(staff_id, day)

    def record_rest(self, staff_id: int) -> None:
        load = self.loads[staff_id]
        load.consecutive_shifts = 0
        load.rest_days += 1

    def worked_day_shift_on(self, staff_id: int, day: dt.date) -> bool:
        """True when the staff member's last shift was the day shift on ``day``."""
        load = self.loads[staff_id]
        day_id = self.catalog.day_shift_id
        return (
            day_id is not None
            and load.last_shift_type == day_id
            and load.last_shift_date == day
        )

    def snapshot(self) -> Dict[int, Dict[str, int]]:
        stats = {}
        for staff_id, load in self.loads.items():
            pattern = self.patterns[staff_id]
            stats[staff_id] = {
                "total_shifts": load.total_shifts,
                "night_shifts": load.night_shifts,
                "consecutive_shifts": load.consecutive_shifts,
                "rest_days": load.rest_days,
                **asdict(pattern),
            }
        return stats

    # Ordering keys

    def fairness_key(self, staff: StaffMember, day: dt.date, unit: Optional[str],
                     unavailable: set) -> Tuple:
        """Composite ranking key for the main pass; smaller sorts first."""
        load = self.loads[staff.id]
        pattern = self.patterns[staff.id]
        spec_rank = 0
        if unit:
            spec_rank = 0 if load.specialization == unit else 1
        return (
            staff.id in unavailable,
            load.total_shifts,
            self.weekly_count(staff.id, day),
            pattern.duty_total,
            pattern.shift_total,
            pattern.day_shift,
            pattern.evening_shift,
            pattern.night_shift,
            -load.rest_days,
            spec_rank,
            staff.id,
        )

    def shift_key(self, staff: StaffMember, category: ShiftCategory) -> Tuple[int, int]:
        pattern = self.patterns[staff.id]
        return (getattr(pattern, _SHIFT_FIELDS[category]), self.loads[staff.id].total_shifts)

    def duty_key(self, staff: StaffMember, category: DutyCategory) -> Tuple[int, int]:
        pattern = self.patterns[staff.id]
        return (getattr(pattern, _DUTY_FIELDS[category]), self.loads[staff.id].total_shifts)

    @staticmethod
    def _bump_shift(pattern: DutyPattern, category: ShiftCategory) -> None:
        name = _SHIFT_FIELDS[category]
        setattr(pattern, name, getattr(pattern, name) + 1)

    def _bump_duty(self, pattern: DutyPattern, duty_type_id: int) -> None:
        for category, name in _DUTY_FIELDS.items():
            if self.catalog.duty_ids.get(category) == duty_type_id:
                setattr(pattern, name, getattr(pattern, name) + 1)
                return
