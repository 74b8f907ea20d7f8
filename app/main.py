import os
import datetime as dt
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rostering.constraint_violations import detect_schedule_conflicts, suggest_alternative_staff
from rostering.exceptions import CUSTOM_ERRORS, UnknownStaffError
from rostering.logger import configure_logging, get_logger
from rostering.models import (
    AvailabilityRecord,
    Conflict,
    ScheduleEntry,
    ScheduleInput,
    ScheduleResult,
    ShiftType,
    StaffMember,
)
from rostering.output_formatter import conflict_report
from rostering.solver import generate_schedule
from rostering.utils import load_settings

configure_logging()
logger = get_logger(__name__)

# Optional YAML overrides for thresholds and catalog aliases
settings = load_settings(os.environ.get("ROTA_SETTINGS"))

app = FastAPI(title="Hospital Rota Engine")


def _register_error_handlers(app: FastAPI) -> None:
    for exc_class, status_code in CUSTOM_ERRORS.items():
        def handler(request: Request, exc: Exception, status_code=status_code):
            logger.warning(f"{request.url.path}: {exc}")
            return JSONResponse(
                status_code=status_code,
                content={"error": exc.__class__.__name__, "detail": str(exc)},
            )
        app.add_exception_handler(exc_class, handler)


_register_error_handlers(app)


class ConflictRequest(BaseModel):
    candidate: ScheduleEntry
    schedules: List[ScheduleEntry] = []
    staff: List[StaffMember]
    availabilities: List[AvailabilityRecord] = []
    shift_types: List[ShiftType] = []


class AlternativesRequest(BaseModel):
    staff_id: int
    date: dt.date
    shift_type_id: Optional[int] = None
    staff: List[StaffMember]
    schedules: List[ScheduleEntry] = []
    availabilities: List[AvailabilityRecord] = []
    unit: Optional[str] = None


class GenerateResponse(ScheduleResult):
    report: dict = {}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/generate", response_model=GenerateResponse)
def generate(req: ScheduleInput):
    result = generate_schedule(req, settings)
    return GenerateResponse(**result.model_dump(), report=conflict_report(result.conflicts))


@app.post("/conflicts", response_model=List[Conflict])
def conflicts(req: ConflictRequest):
    return detect_schedule_conflicts(
        req.candidate, req.schedules, req.staff, req.availabilities, req.shift_types, settings
    )


@app.post("/alternatives", response_model=List[StaffMember])
def alternatives(req: AlternativesRequest):
    if not any(s.id == req.staff_id for s in req.staff):
        raise UnknownStaffError(f"Staff {req.staff_id} is not on the roster")
    return suggest_alternative_staff(
        req.staff_id, req.date, req.shift_type_id, req.staff, req.schedules,
        req.availabilities, req.unit, settings,
    )
