"""
Tabular summaries of a generated schedule: rota grid, per-staff workload,
daily coverage and a conflict report.
"""

import pandas as pd
import datetime as dt
from typing import Dict, List

from rostering.catalog import build_catalog
from rostering.models import (
    Conflict,
    DutyCategory,
    DutyType,
    EngineSettings,
    ScheduleEntry,
    Severity,
    ShiftCategory,
    ShiftType,
    StaffMember,
)
from rostering.utils import date_list

REST_LABEL = "REST"

STAT_COLUMNS = [
    "name", "day_shifts", "evening_shifts", "night_shifts",
    "pre_duty", "duty", "post_duty", "total_shifts", "rest_days",
]


def rota_table(schedules: List[ScheduleEntry], staff: List[StaffMember], shift_types: List[ShiftType],
               start_date: dt.date, end_date: dt.date) -> pd.DataFrame:
    """Dates as rows, staff names as columns, shift names as cells."""
    shift_names = {s.id: s.name for s in shift_types}
    days = date_list(start_date, end_date)

    rota_data = {s.name: {day: REST_LABEL for day in days} for s in staff}
    names = {s.id: s.name for s in staff}
    for entry in schedules:
        name = names.get(entry.staff_id)
        if name is None or entry.date not in rota_data[name]:
            continue
        rota_data[name][entry.date] = shift_names.get(entry.shift_type_id, REST_LABEL)

    df = pd.DataFrame(rota_data, index=days, columns=[s.name for s in staff])
    df.index.name = "date"
    return df


def staff_statistics(schedules: List[ScheduleEntry], staff: List[StaffMember],
                     shift_types: List[ShiftType], duty_types: List[DutyType],
                     start_date: dt.date, end_date: dt.date,
                     settings: EngineSettings = None) -> pd.DataFrame:
    """Per-staff counts of each shift and duty category within the window."""
    catalog = build_catalog(shift_types, duty_types, settings or EngineSettings())
    duty_columns = {
        catalog.duty_ids.get(DutyCategory.PRE_DUTY): "pre_duty",
        catalog.duty_ids.get(DutyCategory.DUTY): "duty",
        catalog.duty_ids.get(DutyCategory.POST_DUTY): "post_duty",
    }
    shift_columns = {
        ShiftCategory.DAY: "day_shifts",
        ShiftCategory.EVENING: "evening_shifts",
        ShiftCategory.NIGHT: "night_shifts",
    }
    total_days = len(date_list(start_date, end_date))

    stats = {}
    for s in staff:
        stats[s.id] = {column: 0 for column in STAT_COLUMNS}
        stats[s.id]["name"] = s.name

    worked_days: Dict[int, set] = {s.id: set() for s in staff}
    for entry in schedules:
        if entry.staff_id not in stats or not (start_date <= entry.date <= end_date):
            continue
        person_stats = stats[entry.staff_id]

        category = catalog.category_of(entry.shift_type_id)
        if category is not None:
            person_stats[shift_columns[category]] += 1
        if entry.shift_type_id is not None:
            person_stats["total_shifts"] += 1
            worked_days[entry.staff_id].add(entry.date)

        duty_column = duty_columns.get(entry.duty_type_id)
        if duty_column:
            person_stats[duty_column] += 1

    for staff_id, person_stats in stats.items():
        person_stats["rest_days"] = total_days - len(worked_days[staff_id])

    df = pd.DataFrame.from_dict(stats, orient="index", columns=STAT_COLUMNS)
    df.index.name = "staff_id"
    return df


def daily_coverage(schedules: List[ScheduleEntry], shift_types: List[ShiftType],
                   start_date: dt.date, end_date: dt.date,
                   settings: EngineSettings = None) -> pd.DataFrame:
    """Number of staff on each shift category per date."""
    catalog = build_catalog(shift_types, [], settings or EngineSettings())
    days = date_list(start_date, end_date)
    columns = [c.value for c in ShiftCategory]

    counts = {day: {column: 0 for column in columns} for day in days}
    for entry in schedules:
        category = catalog.category_of(entry.shift_type_id)
        if category is None or entry.date not in counts:
            continue
        counts[entry.date][category.value] += 1

    df = pd.DataFrame.from_dict(counts, orient="index", columns=columns)
    df.index.name = "date"
    return df


def conflict_report(conflicts: List[Conflict]) -> Dict:
    """Counts by severity and type; ``blocking`` is set when any error is present."""
    errors = [c for c in conflicts if c.severity == Severity.ERROR]
    warnings = [c for c in conflicts if c.severity == Severity.WARNING]

    by_type: Dict[str, int] = {}
    for c in conflicts:
        by_type[c.type.value] = by_type.get(c.type.value, 0) + 1

    return {
        "errors": len(errors),
        "warnings": len(warnings),
        "by_type": by_type,
        "blocking": bool(errors),
        "details": [c.model_dump(mode="json") for c in conflicts],
    }
