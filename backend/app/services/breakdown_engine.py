"""
RateBreakdownEngine — BSR totals for one BOQ line item.

Covers:
  - Subtotal from the four row sections
  - Overhead on subtotal, then profit on (subtotal + overhead)
  - Building a full breakdown from a raw proposal (quoted price seeded)
  - Editor operations: row edits, add/remove rows, percentages, quoted price

Every operation returns a new, recalculated RateBreakdown; inputs are not
mutated. ``quoted_unit_price`` is only ever set at proposal time or by an
explicit edit — it does not follow ``total``.
"""

import logging
import math
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal
from typing import Any, Optional

from app.config import QUOTE_ROUNDING, ROUNDING_POLICIES
from app.models.boq_models import PercentageAmount, ProposalBreakdown, RateBreakdown
from app.services import line_cost
from app.services.line_cost import SECTIONS, section_cost, to_number

logger = logging.getLogger("bsr-engine")

_DECIMAL_MODES = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
}


def round_quoted_price(value: float, policy: Optional[str] = None) -> float:
    """
    Round a breakdown total to a whole-currency quoted price.

    Rounds on the decimal representation of ``value`` so 0.5 boundaries
    behave as written (221.5 → 222 under half_up).
    """
    policy = (policy or QUOTE_ROUNDING).lower()
    if policy not in ROUNDING_POLICIES:
        raise ValueError(f"Unknown rounding policy '{policy}'. Choose from {list(ROUNDING_POLICIES)}")
    if policy == "none":
        return float(value)
    quantized = Decimal(repr(float(value))).quantize(Decimal("1"), rounding=_DECIMAL_MODES[policy])
    return float(quantized)


def calculate_totals(breakdown: RateBreakdown) -> RateBreakdown:
    """
    Derive subtotal, overhead/profit amounts and total from rows and percentages.

        subtotal = Σ materials + Σ labor + Σ equipment + Σ tools
        overhead = subtotal × overhead% / 100
        profit   = (subtotal + overhead) × profit% / 100
        total    = subtotal + overhead + profit

    Pure and idempotent; only the four derived fields differ in the result.
    """
    subtotal = math.fsum(
        section_cost(getattr(breakdown, section)) for section in SECTIONS
    )
    overhead_pct = breakdown.overhead.percentage
    profit_pct = breakdown.profit.percentage

    overhead_amount = subtotal * overhead_pct / 100
    profit_amount = (subtotal + overhead_amount) * profit_pct / 100
    total = subtotal + overhead_amount + profit_amount

    return breakdown.model_copy(update={
        "subtotal": subtotal,
        "overhead": PercentageAmount(percentage=overhead_pct, amount=overhead_amount),
        "profit": PercentageAmount(percentage=profit_pct, amount=profit_amount),
        "total": total,
    })


def recalculate(breakdown: RateBreakdown) -> RateBreakdown:
    """Re-derive every row cost, then the totals (used on editor save)."""
    rows = {
        section: [line_cost.recalculate_row(section, r) for r in getattr(breakdown, section)]
        for section in SECTIONS
    }
    return calculate_totals(breakdown.model_copy(update=rows))


def build_from_proposal(
    proposal: ProposalBreakdown, rounding: Optional[str] = None
) -> RateBreakdown:
    """
    Turn a raw proposed breakdown into an authoritative one.

    Row costs are re-derived from their drivers (the proposer's own cost
    figures are not trusted), totals computed, and the quoted unit price
    seeded from the rounded total.
    """
    draft = RateBreakdown(
        materials=[row.model_copy() for row in proposal.materials],
        labor=[row.model_copy() for row in proposal.labor],
        equipment=[row.model_copy() for row in proposal.equipment],
        tools=[row.model_copy() for row in proposal.tools],
        overhead=PercentageAmount(percentage=proposal.overhead.percentage),
        profit=PercentageAmount(percentage=proposal.profit.percentage),
    )
    full = recalculate(draft)
    quoted = round_quoted_price(full.total, rounding)
    logger.debug(f"Breakdown built: subtotal={full.subtotal:.2f} total={full.total:.3f} quoted={quoted:.2f}")
    return full.model_copy(update={"quoted_unit_price": quoted})


# ---------------------------------------------------------------------------
# Editor operations
# ---------------------------------------------------------------------------

def _rows(breakdown: RateBreakdown, section: str) -> list:
    if section not in SECTIONS:
        raise ValueError(f"Unknown breakdown section '{section}'. Choose from {list(SECTIONS)}")
    return list(getattr(breakdown, section))


def _row_index(rows: list, index: int, section: str) -> None:
    if not 0 <= index < len(rows):
        raise IndexError(f"{section} row {index} out of range (0..{len(rows) - 1})")


def update_row(breakdown: RateBreakdown, section: str, index: int, field: str, value: Any) -> RateBreakdown:
    rows = _rows(breakdown, section)
    _row_index(rows, index, section)
    rows[index] = line_cost.update_row(section, rows[index], field, value)
    return calculate_totals(breakdown.model_copy(update={section: rows}))


def add_row(breakdown: RateBreakdown, section: str) -> RateBreakdown:
    rows = _rows(breakdown, section)
    rows.append(line_cost.new_row(section))
    return calculate_totals(breakdown.model_copy(update={section: rows}))


def remove_row(breakdown: RateBreakdown, section: str, index: int) -> RateBreakdown:
    rows = _rows(breakdown, section)
    _row_index(rows, index, section)
    del rows[index]
    return calculate_totals(breakdown.model_copy(update={section: rows}))


def set_percentage(breakdown: RateBreakdown, kind: str, value: Any) -> RateBreakdown:
    """Set the overhead or profit percentage and recompute."""
    if kind not in ("overhead", "profit"):
        raise ValueError(f"Percentage kind must be 'overhead' or 'profit', got '{kind}'")
    current = getattr(breakdown, kind)
    updated = current.model_copy(update={"percentage": to_number(value)})
    return calculate_totals(breakdown.model_copy(update={kind: updated}))


def set_quoted_unit_price(breakdown: RateBreakdown, value: Any) -> RateBreakdown:
    """Manual quoted price; totals are left exactly as they were."""
    return breakdown.model_copy(update={"quoted_unit_price": to_number(value)})
