"""
Greedy day-by-day rota generator.

For each date in the window the available pool is ranked for fairness and
filled in a fixed order: day, evening and night shifts, then one pre-duty
and one post-duty slot. Policy breaches found while filling slots are
reported as ``Conflict`` records; only a same-day duplicate keeps a
candidate off a shift.
"""

import math
import datetime as dt
from typing import Dict, List, Optional, Set

from rostering.catalog import MISSING_DUTY_ID, Catalog, build_catalog
from rostering.exceptions import InvalidDateRangeError
from rostering.logger import get_logger
from rostering.models import (
    AvailabilityRecord,
    Conflict,
    ConflictType,
    DutyCategory,
    DutyType,
    EngineSettings,
    ScheduleEntry,
    ScheduleInput,
    ScheduleResult,
    Severity,
    ShiftCategory,
    ShiftType,
    StaffMember,
)
from rostering.utils import date_list, next_day, previous_day
from rostering.workload import WorkloadTracker

logger = get_logger(__name__)

# Pool share targeted by each shift pass: ceil(pool / divisor), at least one
SHIFT_DIVISORS = {
    ShiftCategory.DAY: 3,
    ShiftCategory.EVENING: 2,
    ShiftCategory.NIGHT: 3,
}


def shift_target(pool_size: int, divisor: int) -> int:
    return max(1, math.ceil(pool_size / divisor))


class ScheduleGenerator:
    """Holds the state of one generation run. Build a new one per call."""

    def __init__(self, problem: ScheduleInput, settings: Optional[EngineSettings] = None):
        self.problem = problem
        self.settings = settings or EngineSettings()
        self.catalog: Catalog = build_catalog(problem.shift_types, problem.duty_types, self.settings)
        self.unit = problem.unit or None
        self.days = date_list(problem.start_date, problem.end_date)
        self.tracker = WorkloadTracker(problem.staff, self.catalog)

        self.schedules: List[ScheduleEntry] = []
        self.conflicts: List[Conflict] = []

        self._existing_slots = {(s.staff_id, s.date) for s in problem.existing_schedules}
        self._unavailable: Dict[dt.date, Set[int]] = {}
        for record in problem.availabilities:
            if not record.is_available:
                self._unavailable.setdefault(record.date, set()).add(record.staff_id)

    def run(self) -> ScheduleResult:
        missing = self.catalog.missing_categories()
        if missing:
            logger.warning(f"Catalog has no entry for: {', '.join(missing)}; those slots degrade")

        self.tracker.seed(self.problem.existing_schedules, self.problem.start_date)

        for day in self.days:
            self._schedule_day(day)

        errors = sum(1 for c in self.conflicts if c.severity == Severity.ERROR)
        logger.info(
            f"Generated {len(self.schedules)} entries for {len(self.problem.staff)} staff over "
            f"{len(self.days)} days ({errors} errors, {len(self.conflicts) - errors} warnings)"
        )
        return ScheduleResult(
            schedules=self.schedules,
            conflicts=self.conflicts,
            staff_stats=self.tracker.snapshot(),
        )

    def _schedule_day(self, day: dt.date) -> None:
        unavailable = self._unavailable.get(day, set())
        pool = [s for s in self.problem.staff if s.id not in unavailable]
        pool.sort(key=lambda s: self.tracker.fairness_key(s, day, self.unit, unavailable))

        consumed: Set[int] = set()

        # 1. Day shift over the fairness-ranked pool
        self._assign_shift(day, pool, ShiftCategory.DAY, consumed, check_existing=True)

        # 2. Evening shift, least evening shifts first
        remaining = self._remaining(pool, consumed, ShiftCategory.EVENING)
        self._assign_shift(day, remaining, ShiftCategory.EVENING, consumed)

        # 3. Night shift, least night shifts first; no day -> night turnaround
        remaining = self._remaining(pool, consumed, ShiftCategory.NIGHT)
        self._assign_shift(day, remaining, ShiftCategory.NIGHT, consumed)

        # 4. Pre-duty ahead of a day that is still in the window
        if next_day(day) <= self.problem.end_date:
            self._assign_duty(day, pool, DutyCategory.PRE_DUTY, consumed)

        # 5. Post-duty after a day that is in the window
        if previous_day(day) >= self.problem.start_date:
            self._assign_duty(day, pool, DutyCategory.POST_DUTY, consumed)

        # Everyone left over rests today
        for s in self.problem.staff:
            if s.id not in consumed:
                self.tracker.record_rest(s.id)

        logger.debug(
            f"{day}: {len(consumed)} assigned, {len(pool) - len(consumed)} resting, "
            f"{len(unavailable)} unavailable"
        )

    def _remaining(self, pool: List[StaffMember], consumed: Set[int],
                   category: ShiftCategory) -> List[StaffMember]:
        remaining = [s for s in pool if s.id not in consumed]
        remaining.sort(key=lambda s: self.tracker.shift_key(s, category))
        return remaining

    def _assign_shift(self, day: dt.date, candidates: List[StaffMember],
                      category: ShiftCategory, consumed: Set[int],
                      check_existing: bool = False) -> None:
        target = shift_target(len(candidates), SHIFT_DIVISORS[category])
        shift_type_id = self.catalog.shift_ids.get(category)
        assigned = 0

        for staff in candidates:
            if assigned >= target:
                break

            if category is ShiftCategory.NIGHT and self.tracker.worked_day_shift_on(staff.id, previous_day(day)):
                logger.debug(f"{day}: {staff.name} worked yesterday's day shift, skipped for nights")
                continue

            if check_existing and (staff.id, day) in self._existing_slots:
                self._flag(ConflictType.EXISTING_ASSIGNMENT, staff, day,
                           f"Staff already has an assignment on {day.isoformat()}", Severity.ERROR)
                continue

            self._check_workload(staff, day)
            self._assign(staff, day, shift_type_id, category, DutyCategory.DUTY, consumed)
            assigned += 1

    def _assign_duty(self, day: dt.date, pool: List[StaffMember],
                     duty: DutyCategory, consumed: Set[int]) -> None:
        candidates = [s for s in pool if s.id not in consumed]
        candidates.sort(key=lambda s: self.tracker.duty_key(s, duty))

        for staff in candidates:
            if self.tracker.weekly_count(staff.id, day) >= self.settings.max_shifts_per_week:
                self._flag_weekly(staff, day)
                continue
            # Duty framing slots are worked as day shifts
            self._assign(staff, day, self.catalog.day_shift_id, ShiftCategory.DAY, duty, consumed)
            return

    def _check_workload(self, staff: StaffMember, day: dt.date) -> None:
        load = self.tracker.loads[staff.id]
        limit = self.settings.max_consecutive_shifts
        if load.consecutive_shifts >= limit:
            self._flag(ConflictType.CONSECUTIVE_SHIFTS, staff, day,
                       f"Exceeds maximum consecutive shifts ({limit})", Severity.WARNING)
        if self.tracker.weekly_count(staff.id, day) >= self.settings.max_shifts_per_week:
            self._flag_weekly(staff, day)

    def _assign(self, staff: StaffMember, day: dt.date, shift_type_id: Optional[int],
                shift: ShiftCategory, duty: DutyCategory, consumed: Set[int]) -> None:
        self.schedules.append(ScheduleEntry(
            staff_id=staff.id,
            date=day,
            shift_type_id=shift_type_id,
            duty_type_id=self.catalog.duty_ids.get(duty, MISSING_DUTY_ID),
            unit=self.unit,
        ))
        self.tracker.record_assignment(staff.id, day, shift_type_id, shift, duty)
        consumed.add(staff.id)

    def _flag_weekly(self, staff: StaffMember, day: dt.date) -> None:
        self._flag(ConflictType.EXCEEDS_WEEKLY_HOURS, staff, day,
                   f"Exceeds maximum weekly shifts ({self.settings.max_shifts_per_week})",
                   Severity.WARNING)

    def _flag(self, conflict_type: ConflictType, staff: StaffMember, day: dt.date,
              message: str, severity: Severity) -> None:
        self.conflicts.append(Conflict(
            type=conflict_type,
            staff_id=staff.id,
            date=day,
            message=message,
            severity=severity,
            staff_name=staff.name,
        ))


def generate_schedule(problem: ScheduleInput, settings: Optional[EngineSettings] = None) -> ScheduleResult:
    """Generate schedule entries and conflicts for the problem's date window."""
    return ScheduleGenerator(problem, settings).run()


def generate(staff: List[StaffMember], shift_types: List[ShiftType], duty_types: List[DutyType],
             availabilities: List[AvailabilityRecord], start_date: dt.date, end_date: dt.date,
             unit: Optional[str] = None, existing_schedules: Optional[List[ScheduleEntry]] = None,
             settings: Optional[EngineSettings] = None) -> ScheduleResult:
    """Keyword front end for ``generate_schedule``."""
    if start_date > end_date:
        raise InvalidDateRangeError(f"start_date {start_date} is after end_date {end_date}")

    problem = ScheduleInput(
        staff=staff,
        shift_types=shift_types,
        duty_types=duty_types,
        availabilities=availabilities,
        start_date=start_date,
        end_date=end_date,
        unit=unit,
        existing_schedules=existing_schedules or [],
    )
    return generate_schedule(problem, settings)
