"""
BOQ dashboard rollups.

All figures are recomputed from the item list on every call; items without
a breakdown contribute to ``total_cost`` only.
"""

import math
from typing import Dict, Iterable, List, Optional

from app.config import UNCATEGORIZED
from app.models.boq_models import BOQItem, CostTypeBreakdown, DashboardSummary
from app.services.line_cost import section_cost


def total_cost(items: Iterable[BOQItem]) -> float:
    return math.fsum(i.total or 0.0 for i in items)


def total_dry_cost(items: Iterable[BOQItem]) -> float:
    """Direct cost before overhead and profit: Σ subtotal × quantity."""
    return math.fsum(
        i.rate_breakdown.subtotal * i.quantity
        for i in items
        if i.rate_breakdown is not None and i.quantity > 0
    )


def cost_by_cost_type(items: Iterable[BOQItem]) -> CostTypeBreakdown:
    buckets: Dict[str, List[float]] = {
        "materials": [], "labor": [], "equipment": [], "tools": [], "overhead": [], "profit": [],
    }
    for item in items:
        bsr = item.rate_breakdown
        if bsr is None:
            continue
        qty = item.quantity or 0.0
        buckets["materials"].append(section_cost(bsr.materials) * qty)
        buckets["labor"].append(section_cost(bsr.labor) * qty)
        buckets["equipment"].append(section_cost(bsr.equipment) * qty)
        buckets["tools"].append(section_cost(bsr.tools) * qty)
        buckets["overhead"].append(bsr.overhead.amount * qty)
        buckets["profit"].append(bsr.profit.amount * qty)
    return CostTypeBreakdown(**{k: math.fsum(v) for k, v in buckets.items()})


def cost_by_category(items: Iterable[BOQItem]) -> Dict[str, float]:
    """Item totals (not subtotals) per category, costed items only."""
    buckets: Dict[str, List[float]] = {}
    for item in items:
        if item.rate_breakdown is None:
            continue
        category = item.category or UNCATEGORIZED
        buckets.setdefault(category, []).append(item.total or 0.0)
    return {k: math.fsum(v) for k, v in buckets.items()}


def manpower_roles(items: Iterable[BOQItem]) -> List[str]:
    """Distinct comma-separated manpower tokens across all items, sorted."""
    roles = {
        token.strip()
        for item in items
        for token in (item.manpower or "").split(",")
        if token.strip()
    }
    return sorted(roles)


def summarize(
    items: Iterable[BOQItem],
    project_name: str = "",
    client_name: str = "",
    project_duration_days: int = 0,
    active_client_id: Optional[int] = None,
) -> DashboardSummary:
    items = list(items)
    return DashboardSummary(
        total_cost=total_cost(items),
        total_dry_cost=total_dry_cost(items),
        cost_breakdown=cost_by_cost_type(items),
        cost_by_category=cost_by_category(items),
        manpower_roles=manpower_roles(items),
        item_count=len(items),
        costed_item_count=sum(1 for i in items if i.rate_breakdown is not None),
        project_name=project_name,
        client_name=client_name,
        project_duration_days=project_duration_days,
        active_client_id=active_client_id,
    )
