"""
Rule-based conflict detection for single schedule entries and alternative
staff recommendations.

Used when a schedule entry is created or edited by hand: the detector reports
every rule the entry breaks, and the advisor ranks other staff members who
could take the slot instead.
"""

from typing import Dict, List, Optional, Set
import datetime as dt

from rostering.catalog import Catalog, build_catalog
from rostering.logger import get_logger
from rostering.models import (
    AvailabilityRecord,
    Conflict,
    ConflictType,
    EngineSettings,
    ScheduleEntry,
    Severity,
    ShiftCategory,
    ShiftType,
    StaffMember,
)
from rostering.utils import next_day, parse_clock, previous_day, week_start

logger = get_logger(__name__)

# (previous day category, candidate category) pairs that leave no rest between shifts
REST_BREAKING_TRANSITIONS = {
    (ShiftCategory.DAY, ShiftCategory.NIGHT): "Insufficient rest period between day and night shift",
    (ShiftCategory.NIGHT, ShiftCategory.DAY): "Insufficient rest period between night and day shift",
}


def has_shift_conflict(staff_id: int, date: dt.date, schedules: List[ScheduleEntry]) -> bool:
    """True when the staff member already has any entry on ``date``."""
    return any(s.staff_id == staff_id and s.date == date for s in schedules)


def _is_same_entry(candidate: ScheduleEntry, other: ScheduleEntry) -> bool:
    if other is candidate:
        return True
    return candidate.id is not None and other.id == candidate.id


def _working_days(staff_id: int, schedules: List[ScheduleEntry]) -> Set[dt.date]:
    return {s.date for s in schedules if s.staff_id == staff_id and s.shift_type_id is not None}


class ConflictDetector:
    """Checks schedule entries against availability, rest and workload rules."""

    def __init__(self, staff: List[StaffMember], availabilities: List[AvailabilityRecord],
                 shift_types: List[ShiftType], settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.staff: Dict[int, StaffMember] = {s.id: s for s in staff}
        self.roster = list(staff)
        self.availabilities = list(availabilities)
        self.catalog: Catalog = build_catalog(shift_types, [], self.settings)

    def detect(self, candidate: ScheduleEntry, all_schedules: List[ScheduleEntry]) -> List[Conflict]:
        """
        Return every conflict the candidate entry raises against the schedule set.

        Args:
            candidate: New or edited entry. It may or may not be part of
                ``all_schedules``; it is never compared against itself.
            all_schedules: Every known entry for the relevant window.

        Returns:
            Conflicts in rule order. Unknown staff produce an empty list.
        """
        staff = self.staff.get(candidate.staff_id)
        if staff is None:
            logger.debug(f"No roster entry for staff {candidate.staff_id}; nothing to check")
            return []

        others = [s for s in all_schedules if not _is_same_entry(candidate, s)]

        conflicts = []
        conflicts.extend(self._check_unavailable(candidate, staff))
        conflicts.extend(self._check_existing_assignment(candidate, staff, others))
        conflicts.extend(self._check_rest_period(candidate, staff, others))
        conflicts.extend(self._check_specialization(candidate, staff))
        conflicts.extend(self._check_consecutive_shifts(candidate, staff, others))
        conflicts.extend(self._check_weekly_shifts(candidate, staff, others))
        return conflicts

    def _conflict(self, conflict_type: ConflictType, candidate: ScheduleEntry, staff: StaffMember,
                  message: str, severity: Severity) -> Conflict:
        return Conflict(
            type=conflict_type,
            staff_id=candidate.staff_id,
            date=candidate.date,
            message=message,
            severity=severity,
            staff_name=staff.name,
        )

    def _check_unavailable(self, candidate, staff) -> List[Conflict]:
        unavailable = any(
            a.staff_id == candidate.staff_id and a.date == candidate.date and not a.is_available
            for a in self.availabilities
        )
        if not unavailable:
            return []
        return [self._conflict(ConflictType.UNAVAILABLE_STAFF, candidate, staff,
                               "Staff marked as unavailable on this date", Severity.ERROR)]

    def _check_existing_assignment(self, candidate, staff, others) -> List[Conflict]:
        if not has_shift_conflict(candidate.staff_id, candidate.date, others):
            return []
        return [self._conflict(ConflictType.EXISTING_ASSIGNMENT, candidate, staff,
                               f"Staff already has an assignment on {candidate.date.isoformat()}",
                               Severity.ERROR)]

    def _check_rest_period(self, candidate, staff, others) -> List[Conflict]:
        """Day/night turnarounds by shift category, plus the optional rest-hours check."""
        if candidate.shift_type_id is None:
            return []

        yesterday = previous_day(candidate.date)
        prev_entry = next(
            (s for s in others
             if s.staff_id == candidate.staff_id and s.date == yesterday and s.shift_type_id is not None),
            None,
        )
        if prev_entry is None:
            return []

        transition = (
            self.catalog.category_of(prev_entry.shift_type_id),
            self.catalog.category_of(candidate.shift_type_id),
        )
        message = REST_BREAKING_TRANSITIONS.get(transition)
        if message:
            return [self._conflict(ConflictType.REST_PERIOD_VIOLATION, candidate, staff,
                                   message, Severity.ERROR)]

        if self.settings.numeric_rest_check:
            rest = self._rest_hours(prev_entry, candidate)
            if rest is not None and rest < self.settings.min_rest_hours:
                return [self._conflict(
                    ConflictType.REST_PERIOD_VIOLATION, candidate, staff,
                    f"Insufficient rest period ({round(rest)}h < {self.settings.min_rest_hours}h)",
                    Severity.ERROR,
                )]
        return []

    def _rest_hours(self, prev_entry: ScheduleEntry, candidate: ScheduleEntry) -> Optional[float]:
        prev_shift = self.catalog.shifts_by_id.get(prev_entry.shift_type_id)
        shift = self.catalog.shifts_by_id.get(candidate.shift_type_id)
        if prev_shift is None or shift is None:
            return None

        try:
            prev_start_time = parse_clock(prev_shift.start_time)
            prev_end_time = parse_clock(prev_shift.end_time)
            start_time = parse_clock(shift.start_time)
        except (ValueError, OverflowError) as e:
            logger.warning(f"Skipping rest-hours check for staff {candidate.staff_id}: {e}")
            return None

        prev_start = dt.datetime.combine(prev_entry.date, prev_start_time)
        prev_end = dt.datetime.combine(prev_entry.date, prev_end_time)
        if prev_end <= prev_start:
            prev_end += dt.timedelta(days=1)  # shift runs past midnight
        start = dt.datetime.combine(candidate.date, start_time)
        return (start - prev_end).total_seconds() / 3600

    def _check_specialization(self, candidate, staff) -> List[Conflict]:
        if not self.settings.specialization_check:
            return []
        if candidate.unit and staff.specialization and candidate.unit != staff.specialization:
            return [self._conflict(
                ConflictType.SPECIALIZATION_MISMATCH, candidate, staff,
                f"Staff specialization ({staff.specialization}) does not match unit ({candidate.unit})",
                Severity.WARNING,
            )]
        return []

    def _check_consecutive_shifts(self, candidate, staff, others) -> List[Conflict]:
        # rest and duty-framing entries do not extend a streak
        if candidate.shift_type_id is None:
            return []
        worked = _working_days(candidate.staff_id, others)

        streak = 1
        day = previous_day(candidate.date)
        while day in worked:
            streak += 1
            day = previous_day(day)
        day = next_day(candidate.date)
        while day in worked:
            streak += 1
            day = next_day(day)

        limit = self.settings.max_consecutive_shifts
        if streak <= limit:
            return []
        return [self._conflict(ConflictType.CONSECUTIVE_SHIFTS, candidate, staff,
                               f"{streak} consecutive shifts exceeds maximum ({limit})",
                               Severity.WARNING)]

    def _check_weekly_shifts(self, candidate, staff, others) -> List[Conflict]:
        if not self.settings.weekly_limit_check:
            return []
        start = week_start(candidate.date)
        end = start + dt.timedelta(days=6)
        # the candidate itself counts towards its week
        count = 1 + sum(
            1 for s in others if s.staff_id == candidate.staff_id and start <= s.date <= end
        )
        limit = self.settings.max_shifts_per_week
        if count <= limit:
            return []
        return [self._conflict(ConflictType.EXCEEDS_WEEKLY_HOURS, candidate, staff,
                               f"Exceeds maximum weekly shifts ({limit})", Severity.WARNING)]

    def suggest_alternatives(self, staff_id: int, date: dt.date, shift_type_id: Optional[int],
                             schedules: List[ScheduleEntry], unit: Optional[str] = None) -> List[StaffMember]:
        """
        Rank staff who could cover a slot instead of ``staff_id``.

        Excludes the staff member being replaced, anyone unavailable or already
        assigned on the date, and anyone whose neighbouring working days would
        push them past the consecutive limit. Specialization matches come
        first when a unit is given, then fewer schedule entries. ``shift_type_id``
        names the slot being covered; the ranking does not depend on it.
        """
        unavailable = {a.staff_id for a in self.availabilities if a.date == date and not a.is_available}
        yesterday, tomorrow = previous_day(date), next_day(date)

        candidates = []
        for s in self.roster:
            if s.id == staff_id or s.id in unavailable:
                continue
            if has_shift_conflict(s.id, date, schedules):
                continue
            worked = _working_days(s.id, schedules)
            streak = 1 + (yesterday in worked) + (tomorrow in worked)
            if streak > self.settings.max_consecutive_shifts:
                continue
            candidates.append(s)

        # every entry counts, including rest and duty-framing ones
        entry_counts = {s.id: sum(1 for e in schedules if e.staff_id == s.id) for s in candidates}

        def rank(s: StaffMember):
            spec_rank = 0
            if unit:
                spec_rank = 0 if s.specialization == unit else 1
            return (spec_rank, entry_counts[s.id])

        ranked = sorted(candidates, key=rank)
        logger.debug(
            f"{len(ranked)} alternatives for staff {staff_id} on {date} (shift {shift_type_id})"
        )
        return ranked


def detect_schedule_conflicts(candidate: ScheduleEntry, all_schedules: List[ScheduleEntry],
                              staff: List[StaffMember], availabilities: List[AvailabilityRecord],
                              shift_types: List[ShiftType],
                              settings: Optional[EngineSettings] = None) -> List[Conflict]:
    return ConflictDetector(staff, availabilities, shift_types, settings).detect(candidate, all_schedules)


def suggest_alternative_staff(staff_id: int, date: dt.date, shift_type_id: Optional[int],
                              staff: List[StaffMember], schedules: List[ScheduleEntry],
                              availabilities: List[AvailabilityRecord], unit: Optional[str] = None,
                              settings: Optional[EngineSettings] = None) -> List[StaffMember]:
    detector = ConflictDetector(staff, availabilities, [], settings)
    return detector.suggest_alternatives(staff_id, date, shift_type_id, schedules, unit)
