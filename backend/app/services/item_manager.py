"""
ItemRecordManager — owns the BOQ line items and the selection set.

Invariant: ``item.total == item.quantity * item.unit_price`` after every
operation. ``total`` only changes through ``update_field`` (quantity or
unit_price) or through breakdown acceptance.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from app.models.boq_models import BOQItem, ItemStatus, ProposalResult, RateBreakdown
from app.services.line_cost import to_number

logger = logging.getLogger("bsr-engine")

_NUMERIC_FIELDS = ("quantity", "unit_price")
_TEXT_FIELDS = ("description", "unit", "manpower", "notes", "category")
_READ_ONLY_FIELDS = ("id", "total", "rate_breakdown")


class ItemRecordManager:
    """In-memory BOQ item list with monotonically assigned ids."""

    def __init__(self, items: Optional[Iterable[BOQItem]] = None) -> None:
        self.items: List[BOQItem] = list(items or [])
        self._selected: Set[int] = set()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_item(self, item_id: int) -> BOQItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(f"BOQ item {item_id} not found")

    def _next_id(self) -> int:
        return max((i.id for i in self.items), default=0) + 1

    # ------------------------------------------------------------------
    # Item lifecycle
    # ------------------------------------------------------------------

    def add_item(self) -> BOQItem:
        item = BOQItem(id=self._next_id())
        self.items.append(item)
        logger.info("BOQ item added", extra={"item_id": item.id})
        return item

    def update_field(self, item_id: int, field: str, value: Any) -> BOQItem:
        """
        Set one user-editable field.

        quantity / unit_price are coerced to non-negative numbers and
        ``total`` is recomputed at once. A manual unit_price leaves any
        existing breakdown attached (stale) for later editing.
        """
        item = self.get_item(item_id)

        if field in _READ_ONLY_FIELDS:
            raise ValueError(f"Field '{field}' cannot be edited directly")

        if field in _NUMERIC_FIELDS:
            setattr(item, field, to_number(value))
            item.total = item.quantity * item.unit_price
        elif field in _TEXT_FIELDS:
            setattr(item, field, "" if value is None else str(value))
        elif field == "status":
            item.status = ItemStatus(value)
        elif field == "is_ai_assisted":
            item.is_ai_assisted = bool(value)
        else:
            raise ValueError(f"Unknown BOQ item field '{field}'")
        return item

    def set_status(self, item_id: int, status: ItemStatus) -> BOQItem:
        item = self.get_item(item_id)
        item.status = ItemStatus(status)
        return item

    def remove_items(self, item_ids: Iterable[int]) -> int:
        """Delete matching items and drop them from the selection. Returns count removed."""
        ids = set(item_ids)
        before = len(self.items)
        self.items = [i for i in self.items if i.id not in ids]
        self._selected -= ids
        removed = before - len(self.items)
        logger.info(f"Removed {removed} BOQ item(s)")
        return removed

    # ------------------------------------------------------------------
    # Breakdown integration
    # ------------------------------------------------------------------

    def accept_breakdown(self, item_id: int, breakdown: RateBreakdown) -> BOQItem:
        """
        Make ``breakdown`` authoritative for the item's price.

        The breakdown replaces any previous one wholesale; unit_price takes
        its quoted_unit_price and total follows.
        """
        item = self.get_item(item_id)
        item.rate_breakdown = breakdown
        item.unit_price = breakdown.quoted_unit_price
        item.total = item.quantity * item.unit_price
        item.is_ai_assisted = True
        item.status = ItemStatus.SUCCESS
        return item

    def apply_proposal(
        self, item_id: int, proposal: ProposalResult, breakdown: RateBreakdown
    ) -> BOQItem:
        """Accept a generated breakdown together with its manpower, unit and category."""
        item = self.accept_breakdown(item_id, breakdown)
        item.manpower = proposal.manpower
        item.unit = proposal.unit
        item.category = proposal.category
        return item

    def view_breakdown(self, item_id: int) -> Optional[RateBreakdown]:
        """The item's breakdown, or None when there is nothing to show yet."""
        item = self.get_item(item_id)
        if item.rate_breakdown is None:
            logger.info("No rate breakdown available", extra={"item_id": item_id})
        return item.rate_breakdown

    def is_stale(self, item_id: int) -> bool:
        """True when unit_price was edited away from the breakdown's quoted price."""
        item = self.get_item(item_id)
        return (
            item.rate_breakdown is not None
            and item.unit_price != item.rate_breakdown.quoted_unit_price
        )

    def require_costable(self, item_id: int) -> BOQItem:
        item = self.get_item(item_id)
        if not item.description or not item.description.strip():
            raise ValueError(f"BOQ item {item_id} has no description to cost")
        return item

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, item_id: int, selected: bool = True) -> None:
        self.get_item(item_id)
        if selected:
            self._selected.add(item_id)
        else:
            self._selected.discard(item_id)

    def select_all(self, selected: bool = True) -> None:
        self._selected = {i.id for i in self.items} if selected else set()

    @property
    def selected_ids(self) -> List[int]:
        return sorted(self._selected)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [i.model_dump(mode="json") for i in self.items],
            "selected_ids": self.selected_ids,
        }
