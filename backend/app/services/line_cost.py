"""
LineCostCalculator — cost of a single BSR row.

  materials           cost = quantity × unit_price
  labor / equipment   cost = hours × rate
  tools               cost entered directly

Rows are pydantic models; every function returns a new row and leaves the
input untouched.
"""

import math
from typing import Any, Dict, Tuple, Type, Union

from pydantic import BaseModel

from app.models.boq_models import Equipment, Labor, Material, Tool

Row = Union[Material, Labor, Equipment, Tool]

SECTIONS: Tuple[str, ...] = ("materials", "labor", "equipment", "tools")

SECTION_MODELS: Dict[str, Type[BaseModel]] = {
    "materials": Material,
    "labor": Labor,
    "equipment": Equipment,
    "tools": Tool,
}

# Fields that drive a derived row cost, per section
_COST_DRIVERS: Dict[str, Tuple[str, ...]] = {
    "materials": ("quantity", "unit_price"),
    "labor": ("hours", "rate"),
    "equipment": ("hours", "rate"),
    "tools": (),
}

# Text fields a user may edit, per section
_TEXT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "materials": ("item", "unit"),
    "labor": ("role",),
    "equipment": ("item",),
    "tools": ("item",),
}


def to_number(value: Any, clamp_negative: bool = True) -> float:
    """
    Coerce a user-entered value to float.

    Non-numeric, empty, NaN or infinite input becomes 0.0; negatives are
    clamped to 0.0 unless ``clamp_negative`` is False.
    """
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    if clamp_negative and number < 0:
        return 0.0
    return number


def material_cost(quantity: float, unit_price: float) -> float:
    return (quantity or 0.0) * (unit_price or 0.0)


def hourly_cost(hours: float, rate: float) -> float:
    return (hours or 0.0) * (rate or 0.0)


def _check_section(section: str) -> None:
    if section not in SECTION_MODELS:
        raise ValueError(f"Unknown breakdown section '{section}'. Choose from {list(SECTIONS)}")


def recalculate_row(section: str, row: Row) -> Row:
    """Return a copy of ``row`` with its cost re-derived from its drivers."""
    _check_section(section)
    if section == "materials":
        return row.model_copy(update={"cost": material_cost(row.quantity, row.unit_price)})
    if section in ("labor", "equipment"):
        return row.model_copy(update={"cost": hourly_cost(row.hours, row.rate)})
    return row.model_copy()


def update_row(section: str, row: Row, field: str, value: Any) -> Row:
    """
    Set one field on a row and re-derive its cost when a driver changed.

    Editing ``cost`` directly is only allowed on tool rows; on the other
    sections cost always follows its drivers.
    """
    _check_section(section)
    drivers = _COST_DRIVERS[section]

    if field in _TEXT_FIELDS[section]:
        return row.model_copy(update={field: "" if value is None else str(value)})

    if field in drivers:
        updated = row.model_copy(update={field: to_number(value)})
        return recalculate_row(section, updated)

    if field == "cost" and section == "tools":
        return row.model_copy(update={"cost": to_number(value)})

    raise ValueError(f"Field '{field}' is not editable on a {section} row")


def new_row(section: str) -> Row:
    """Blank row as added from the breakdown editor (materials start at qty 1)."""
    _check_section(section)
    if section == "materials":
        return Material(quantity=1.0)
    return SECTION_MODELS[section]()


def section_cost(rows) -> float:
    """Exactly rounded sum of row costs; independent of row order."""
    return math.fsum(r.cost for r in rows)
