import datetime as dt
from pathlib import Path
from typing import List, Union

import yaml
from dateutil import parser as date_parser
from dateutil.rrule import rrule, DAILY
from pydantic import ValidationError

from rostering.exceptions import SettingsFileError
from rostering.models import EngineSettings


def date_list(start: dt.date, end: dt.date) -> List[dt.date]:
    return [d.date() for d in rrule(DAILY, dtstart=start, until=end)]


def week_start(day: dt.date) -> dt.date:
    """Sunday that opens the week containing ``day``."""
    return day - dt.timedelta(days=(day.weekday() + 1) % 7)


def previous_day(day: dt.date) -> dt.date:
    return day - dt.timedelta(days=1)


def next_day(day: dt.date) -> dt.date:
    return day + dt.timedelta(days=1)


def parse_clock(value: str) -> dt.time:
    """Parse a wall-clock string such as ``07:00``, ``7:00`` or ``23:30:00``.

    Raises ``ValueError`` when the value is not a time of day.
    """
    return date_parser.parse(value, default=dt.datetime(2000, 1, 1)).time()


def read_yaml(path: Union[str, Path]) -> dict:
    path = Path(path)
    if not path.exists():
        raise SettingsFileError(f"File not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsFileError(f"Could not parse {path}: {e}") from e
    return data or {}


def load_settings(path: Union[str, Path, None] = None) -> EngineSettings:
    """Load engine settings from YAML, falling back to defaults when no path is given."""
    if path is None:
        return EngineSettings()
    raw = read_yaml(path)
    try:
        return EngineSettings.model_validate(raw)
    except ValidationError as e:
        raise SettingsFileError(f"Invalid settings in {path}: {e}") from e
