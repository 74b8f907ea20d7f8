from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict
import datetime as dt
from enum import Enum


class ShiftCategory(str, Enum):
    DAY = "day"
    EVENING = "evening"
    NIGHT = "night"


class DutyCategory(str, Enum):
    PRE_DUTY = "pre_duty"
    DUTY = "duty"
    POST_DUTY = "post_duty"


class ConflictType(str, Enum):
    CONSECUTIVE_SHIFTS = "consecutive_shifts"
    EXCEEDS_WEEKLY_HOURS = "exceeds_weekly_hours"
    REST_PERIOD_VIOLATION = "rest_period_violation"
    UNAVAILABLE_STAFF = "unavailable_staff"
    EXISTING_ASSIGNMENT = "existing_assignment"
    SPECIALIZATION_MISMATCH = "specialization_mismatch"


class Severity(str, Enum):
    WARNING = "warning"  # advisory, assignment proceeds
    ERROR = "error"      # callers normally block a save on these


# Names the engine recognises when a catalog entry carries no explicit category
DEFAULT_SHIFT_NAMES = {
    ShiftCategory.DAY: ["Day Shift"],
    ShiftCategory.EVENING: ["Evening Shift", "Mid Shift"],
    ShiftCategory.NIGHT: ["Night Shift"],
}

DEFAULT_DUTY_NAMES = {
    DutyCategory.PRE_DUTY: ["Pre-Duty"],
    DutyCategory.DUTY: ["Duty"],
    DutyCategory.POST_DUTY: ["Post-Duty"],
}


class StaffMember(BaseModel):
    id: int
    name: str
    role: str = "Staff"
    specialization: Optional[str] = None  # compared against the requested unit
    is_active: bool = True


class ShiftType(BaseModel):
    id: int
    name: str
    start_time: str  # "HH:MM" wall clock
    end_time: str    # "HH:MM", may be earlier than start_time (wraps past midnight)
    duration: int    # hours
    category: Optional[ShiftCategory] = None


class DutyType(BaseModel):
    id: int
    name: str
    category: Optional[DutyCategory] = None


class AvailabilityRecord(BaseModel):
    staff_id: int
    date: dt.date
    is_available: bool = True
    reason: Optional[str] = None


class ScheduleEntry(BaseModel):
    id: Optional[int] = None          # assigned by the storage layer
    staff_id: int
    date: dt.date
    shift_type_id: Optional[int] = None  # None = rest day framed by a duty type
    duty_type_id: int
    unit: Optional[str] = None


class Conflict(BaseModel):
    type: ConflictType
    staff_id: int
    date: dt.date
    message: str
    severity: Severity
    staff_name: Optional[str] = None


class EngineSettings(BaseModel):
    # Policy thresholds
    max_consecutive_shifts: int = 5
    max_shifts_per_week: int = 5
    min_rest_hours: int = 12

    # Optional detector rules
    weekly_limit_check: bool = True
    specialization_check: bool = True
    numeric_rest_check: bool = False

    # Catalog names accepted for entries without an explicit category
    shift_name_aliases: Dict[ShiftCategory, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_SHIFT_NAMES.items()}
    )
    duty_name_aliases: Dict[DutyCategory, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_DUTY_NAMES.items()}
    )


class ScheduleInput(BaseModel):
    staff: List[StaffMember]
    shift_types: List[ShiftType]
    duty_types: List[DutyType]
    availabilities: List[AvailabilityRecord] = []
    start_date: dt.date
    end_date: dt.date
    unit: Optional[str] = None
    existing_schedules: List[ScheduleEntry] = []

    @model_validator(mode="after")
    def check_date_range(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        return self


class ScheduleResult(BaseModel):
    schedules: List[ScheduleEntry]
    conflicts: List[Conflict]

    # staff_id -> tracked counters at the end of the run
    staff_stats: Dict[int, Dict[str, int]] = {}

    @property
    def has_errors(self) -> bool:
        return any(c.severity == Severity.ERROR for c in self.conflicts)
