import datetime as dt

import pytest

from rostering.models import DutyType, ShiftType, StaffMember

DAY, EVENING, NIGHT = 1, 2, 3
PRE_DUTY, DUTY, POST_DUTY = 1, 2, 3


def make_staff(n, start_id=1, specialization=None):
    return [
        StaffMember(id=i, name=f"Staff {i}", role="Nurse", specialization=specialization)
        for i in range(start_id, start_id + n)
    ]


def d(day, month=1, year=2024):
    return dt.date(year, month, day)


@pytest.fixture
def shift_types():
    return [
        ShiftType(id=DAY, name="Day Shift", start_time="07:00", end_time="15:00", duration=8),
        ShiftType(id=EVENING, name="Evening Shift", start_time="15:00", end_time="23:00", duration=8),
        ShiftType(id=NIGHT, name="Night Shift", start_time="23:00", end_time="07:00", duration=8),
    ]


@pytest.fixture
def duty_types():
    return [
        DutyType(id=PRE_DUTY, name="Pre-Duty"),
        DutyType(id=DUTY, name="Duty"),
        DutyType(id=POST_DUTY, name="Post-Duty"),
    ]
