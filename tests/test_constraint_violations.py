import pytest

from conftest import DAY, EVENING, NIGHT, DUTY, d, make_staff
from rostering.constraint_violations import (
    ConflictDetector,
    detect_schedule_conflicts,
    has_shift_conflict,
    suggest_alternative_staff,
)
from rostering.models import (
    AvailabilityRecord,
    ConflictType,
    EngineSettings,
    ScheduleEntry,
    Severity,
    ShiftType,
    StaffMember,
)


def entry(staff_id, day, shift_type_id=DAY, entry_id=None, unit=None, month=1):
    return ScheduleEntry(id=entry_id, staff_id=staff_id, date=d(day, month),
                         shift_type_id=shift_type_id, duty_type_id=DUTY, unit=unit)


@pytest.fixture
def staff():
    return make_staff(5)


@pytest.fixture
def detector(staff, shift_types):
    return ConflictDetector(staff, [], shift_types)


def types_of(conflicts):
    return [c.type for c in conflicts]


def test_has_shift_conflict():
    schedules = [entry(1, 10, shift_type_id=None)]
    assert has_shift_conflict(1, d(10), schedules)
    assert not has_shift_conflict(1, d(11), schedules)
    assert not has_shift_conflict(2, d(10), schedules)


def test_clean_entry_has_no_conflicts(detector):
    assert detector.detect(entry(1, 10), [entry(2, 10)]) == []


def test_existing_assignment_is_an_error(detector):
    conflicts = detector.detect(entry(5, 10, EVENING), [entry(5, 10, DAY, entry_id=1)])
    assert types_of(conflicts) == [ConflictType.EXISTING_ASSIGNMENT]
    assert conflicts[0].severity == Severity.ERROR
    assert conflicts[0].staff_name == "Staff 5"
    assert conflicts[0].date == d(10)


def test_candidate_is_not_compared_with_itself(detector):
    stored = entry(1, 10, entry_id=42)
    edited = entry(1, 10, EVENING, entry_id=42)
    assert detector.detect(edited, [stored]) == []

    # Same object inside the schedule list
    assert detector.detect(stored, [stored]) == []


def test_unavailable_staff_is_an_error(staff, shift_types):
    availability = [AvailabilityRecord(staff_id=1, date=d(10), is_available=False, reason="Leave")]
    conflicts = detect_schedule_conflicts(entry(1, 10), [], staff, availability, shift_types)
    assert types_of(conflicts) == [ConflictType.UNAVAILABLE_STAFF]
    assert conflicts[0].severity == Severity.ERROR


@pytest.mark.parametrize("previous, current", [(DAY, NIGHT), (NIGHT, DAY)])
def test_day_night_turnaround_breaks_rest(detector, previous, current):
    conflicts = detector.detect(entry(1, 10, current), [entry(1, 9, previous)])
    assert types_of(conflicts) == [ConflictType.REST_PERIOD_VIOLATION]
    assert conflicts[0].severity == Severity.ERROR


def test_evening_then_night_is_allowed(detector):
    assert detector.detect(entry(1, 10, NIGHT), [entry(1, 9, EVENING)]) == []


def test_numeric_rest_check(staff, shift_types):
    settings = EngineSettings(numeric_rest_check=True)
    detector = ConflictDetector(staff, [], shift_types, settings)

    # Evening ends 23:00, day starts 07:00
    conflicts = detector.detect(entry(1, 10, DAY), [entry(1, 9, EVENING)])
    assert types_of(conflicts) == [ConflictType.REST_PERIOD_VIOLATION]
    assert conflicts[0].message == "Insufficient rest period (8h < 12h)"

    # Night wraps past midnight and ends 07:00, evening starts 15:00
    assert detector.detect(entry(1, 10, EVENING), [entry(1, 9, NIGHT)]) != []
    assert detector.detect(entry(1, 10, DAY), [entry(1, 9, DAY)]) == []


def test_numeric_rest_check_off_by_default(detector):
    assert detector.detect(entry(1, 10, DAY), [entry(1, 9, EVENING)]) == []


def test_consecutive_shifts_counts_both_directions(detector):
    before = [entry(1, day, EVENING) for day in (7, 8, 9)]
    after = [entry(1, day, EVENING) for day in (11, 12)]

    assert detector.detect(entry(1, 10, EVENING), before + after[:1]) == []

    conflicts = detector.detect(entry(1, 10, EVENING), before + after)
    assert ConflictType.CONSECUTIVE_SHIFTS in types_of(conflicts)
    streak = next(c for c in conflicts if c.type == ConflictType.CONSECUTIVE_SHIFTS)
    assert streak.severity == Severity.WARNING
    assert streak.message.startswith("6 consecutive shifts")


def test_rest_entries_break_the_streak(detector):
    schedules = [entry(1, day, EVENING) for day in (5, 6, 7, 8)]
    schedules.append(entry(1, 9, shift_type_id=None))
    conflicts = detector.detect(entry(1, 10, EVENING), schedules)
    assert ConflictType.CONSECUTIVE_SHIFTS not in types_of(conflicts)


def test_weekly_limit(staff, shift_types):
    # 7 Jan 2024 is a Sunday
    schedules = [entry(1, day, EVENING) for day in (7, 8, 9, 11, 12)]
    candidate = entry(1, 13, EVENING)

    conflicts = detect_schedule_conflicts(candidate, schedules, staff, [], shift_types)
    assert types_of(conflicts) == [ConflictType.EXCEEDS_WEEKLY_HOURS]
    assert conflicts[0].severity == Severity.WARNING

    disabled = EngineSettings(weekly_limit_check=False)
    assert detect_schedule_conflicts(candidate, schedules, staff, [], shift_types, disabled) == []


def test_previous_week_does_not_count(detector):
    schedules = [entry(1, day, EVENING) for day in (2, 3, 4, 5, 6)]
    assert ConflictType.EXCEEDS_WEEKLY_HOURS not in types_of(detector.detect(entry(1, 10), schedules))


def test_specialization_mismatch(shift_types):
    staff = make_staff(2, specialization="Cardiology")
    candidate = entry(1, 10, unit="Emergency")

    conflicts = detect_schedule_conflicts(candidate, [], staff, [], shift_types)
    assert types_of(conflicts) == [ConflictType.SPECIALIZATION_MISMATCH]
    assert conflicts[0].severity == Severity.WARNING

    assert detect_schedule_conflicts(entry(1, 10, unit="Cardiology"), [], staff, [], shift_types) == []
    disabled = EngineSettings(specialization_check=False)
    assert detect_schedule_conflicts(candidate, [], staff, [], shift_types, disabled) == []


def test_conflicts_in_rule_order(staff, shift_types):
    availability = [AvailabilityRecord(staff_id=1, date=d(10), is_available=False)]
    schedules = [entry(1, 10, EVENING, entry_id=1), entry(1, 9, DAY, entry_id=2)]
    conflicts = detect_schedule_conflicts(entry(1, 10, NIGHT), schedules, staff, availability, shift_types)
    assert types_of(conflicts) == [
        ConflictType.UNAVAILABLE_STAFF,
        ConflictType.EXISTING_ASSIGNMENT,
        ConflictType.REST_PERIOD_VIOLATION,
    ]


def test_detection_is_repeatable(detector):
    schedules = [entry(1, 9, DAY), entry(1, 10, EVENING, entry_id=3)]
    candidate = entry(1, 10, NIGHT)
    assert detector.detect(candidate, schedules) == detector.detect(candidate, schedules)


def test_unknown_staff_has_no_conflicts(detector):
    assert detector.detect(entry(99, 10), [entry(99, 10, entry_id=1)]) == []


# Alternatives


def test_alternatives_exclude_busy_and_unavailable(staff):
    schedules = [entry(2, 10)]
    availability = [AvailabilityRecord(staff_id=3, date=d(10), is_available=False)]
    suggestions = suggest_alternative_staff(1, d(10), DAY, staff, schedules, availability)
    assert [s.id for s in suggestions] == [4, 5]


def test_alternatives_rank_by_specialization_then_workload():
    staff = [
        StaffMember(id=1, name="Absent"),
        StaffMember(id=2, name="Busy match", specialization="ICU"),
        StaffMember(id=3, name="Idle other", specialization="Surgery"),
        StaffMember(id=4, name="Idle match", specialization="ICU"),
        StaffMember(id=5, name="Idle none"),
    ]
    schedules = [entry(2, 1), entry(2, 3), entry(3, 20, shift_type_id=None)]

    ranked = suggest_alternative_staff(1, d(10), DAY, staff, schedules, [], unit="ICU")
    assert [s.id for s in ranked] == [4, 2, 5, 3]

    # Without a unit only workload matters, ties keep roster order
    ranked = suggest_alternative_staff(1, d(10), DAY, staff, schedules, [])
    assert [s.id for s in ranked] == [4, 5, 3, 2]


def test_alternatives_count_duty_framing_entries():
    staff = make_staff(3)
    schedules = [
        entry(2, 3, shift_type_id=None),
        entry(2, 5, shift_type_id=None),
        entry(3, 4, DAY),
    ]
    ranked = suggest_alternative_staff(1, d(10), DAY, staff, schedules, [])
    assert [s.id for s in ranked] == [3, 2]


def test_alternatives_respect_consecutive_limit(staff):
    settings = EngineSettings(max_consecutive_shifts=2)
    schedules = [entry(2, 9), entry(2, 11), entry(3, 9)]
    ranked = suggest_alternative_staff(1, d(10), DAY, staff, schedules, [], settings=settings)
    assert [s.id for s in ranked] == [4, 5, 3]


def test_rest_candidate_does_not_extend_streak(detector):
    schedules = [entry(1, day, EVENING) for day in (7, 8, 9, 11, 12, 13)]
    conflicts = detector.detect(entry(1, 10, shift_type_id=None), schedules)
    assert ConflictType.CONSECUTIVE_SHIFTS not in types_of(conflicts)


def test_rest_entry_listed_first_does_not_hide_day_shift(detector):
    schedules = [entry(1, 9, shift_type_id=None), entry(1, 9, DAY)]
    conflicts = detector.detect(entry(1, 10, NIGHT), schedules)
    assert types_of(conflicts) == [ConflictType.REST_PERIOD_VIOLATION]


def test_numeric_rest_check_accepts_unpadded_times(staff):
    shifts = [
        ShiftType(id=DAY, name="Day Shift", start_time="7:00", end_time="15:00", duration=8),
        ShiftType(id=EVENING, name="Evening Shift", start_time="15:00", end_time="23:00", duration=8),
    ]
    detector = ConflictDetector(staff, [], shifts, EngineSettings(numeric_rest_check=True))
    conflicts = detector.detect(entry(1, 10, DAY), [entry(1, 9, EVENING)])
    assert [c.message for c in conflicts] == ["Insufficient rest period (8h < 12h)"]


def test_unreadable_shift_times_skip_numeric_rest_check(staff):
    shifts = [
        ShiftType(id=DAY, name="Day Shift", start_time="morning", end_time="15:00", duration=8),
        ShiftType(id=EVENING, name="Evening Shift", start_time="15:00", end_time="23:00", duration=8),
    ]
    detector = ConflictDetector(staff, [], shifts, EngineSettings(numeric_rest_check=True))
    assert detector.detect(entry(1, 10, DAY), [entry(1, 9, EVENING)]) == []
