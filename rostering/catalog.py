"""
Category resolution for shift and duty catalogs.

Catalog entries may carry an explicit ``category``. Entries without one are
matched by name against the aliases in ``EngineSettings`` so that catalogs
using the canonical names ("Day Shift", "Pre-Duty", ...) keep working.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from rostering.models import (
    DutyCategory,
    DutyType,
    EngineSettings,
    ShiftCategory,
    ShiftType,
)

# Duty id used when a duty category is missing from the catalog
MISSING_DUTY_ID = 0


def shift_category(shift: ShiftType, settings: EngineSettings) -> Optional[ShiftCategory]:
    if shift.category is not None:
        return shift.category
    for category, names in settings.shift_name_aliases.items():
        if shift.name in names:
            return category
    return None


def duty_category(duty: DutyType, settings: EngineSettings) -> Optional[DutyCategory]:
    if duty.category is not None:
        return duty.category
    for category, names in settings.duty_name_aliases.items():
        if duty.name in names:
            return category
    return None


@dataclass
class Catalog:
    """Resolved ids for each shift and duty category used by the engine."""

    shift_ids: Dict[ShiftCategory, int] = field(default_factory=dict)
    duty_ids: Dict[DutyCategory, int] = field(default_factory=dict)
    shifts_by_id: Dict[int, ShiftType] = field(default_factory=dict)
    shift_categories: Dict[int, ShiftCategory] = field(default_factory=dict)

    @property
    def day_shift_id(self) -> Optional[int]:
        return self.shift_ids.get(ShiftCategory.DAY)

    @property
    def evening_shift_id(self) -> Optional[int]:
        return self.shift_ids.get(ShiftCategory.EVENING)

    @property
    def night_shift_id(self) -> Optional[int]:
        return self.shift_ids.get(ShiftCategory.NIGHT)

    @property
    def pre_duty_id(self) -> int:
        return self.duty_ids.get(DutyCategory.PRE_DUTY, MISSING_DUTY_ID)

    @property
    def duty_id(self) -> int:
        return self.duty_ids.get(DutyCategory.DUTY, MISSING_DUTY_ID)

    @property
    def post_duty_id(self) -> int:
        return self.duty_ids.get(DutyCategory.POST_DUTY, MISSING_DUTY_ID)

    def category_of(self, shift_type_id: Optional[int]) -> Optional[ShiftCategory]:
        if shift_type_id is None:
            return None
        return self.shift_categories.get(shift_type_id)

    def missing_categories(self) -> List[str]:
        missing = [c.value for c in ShiftCategory if c not in self.shift_ids]
        missing += [c.value for c in DutyCategory if c not in self.duty_ids]
        return missing


def build_catalog(shift_types: List[ShiftType], duty_types: List[DutyType],
                  settings: EngineSettings) -> Catalog:
    """Resolve category ids; the first catalog entry of each category wins."""
    catalog = Catalog()

    for shift in shift_types:
        catalog.shifts_by_id[shift.id] = shift
        category = shift_category(shift, settings)
        if category is None:
            continue
        catalog.shift_categories[shift.id] = category
        catalog.shift_ids.setdefault(category, shift.id)

    for duty in duty_types:
        category = duty_category(duty, settings)
        if category is not None:
            catalog.duty_ids.setdefault(category, duty.id)

    return catalog
