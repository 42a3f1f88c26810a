"""
ProjectSession — the explicitly owned estimating session.

Holds the rate catalog, the BOQ items, the active client and the project
context (names, notes, scope of work). Costing passes run here:

  1. reject items with no description
  2. mark the item ``loading``
  3. apply client mark-up to the catalog rates (once per pass)
  4. await the proposal generator
  5. build the breakdown and accept it (last writer wins)

Any failure in 4–5 marks the item ``error`` and leaves its previous data
untouched. Bulk passes run strictly one item at a time.
"""

import logging
import time
from typing import Dict, Iterable, List, Optional

from app.config import DEFAULT_PROJECT_DURATION_DAYS, QUOTE_ROUNDING
from app.models.boq_models import BOQItem, DashboardSummary, ItemStatus, RateBreakdown
from app.services import boq_aggregator, breakdown_engine
from app.services.client_markup import MarkedUpRates, apply_client_markup
from app.services.item_manager import ItemRecordManager
from app.services.proposal_service import ProposalGenerator, generate_proposal, validate_proposal
from app.services.rate_catalog import RateCatalog, default_catalog

logger = logging.getLogger("bsr-engine")


class ProjectSession:
    """One user's estimating session; volatile, single-process."""

    def __init__(
        self,
        catalog: Optional[RateCatalog] = None,
        items: Optional[ItemRecordManager] = None,
        proposal_generator: Optional[ProposalGenerator] = None,
        rounding: str = QUOTE_ROUNDING,
    ) -> None:
        self.catalog: RateCatalog = catalog if catalog is not None else default_catalog()
        self.items: ItemRecordManager = items if items is not None else ItemRecordManager()
        self.proposal_generator: ProposalGenerator = proposal_generator or generate_proposal
        self.rounding: str = rounding

        first_client = self.catalog.client_profiles[0] if self.catalog.client_profiles else None
        self.active_client_id: Optional[int] = first_client.id if first_client else None
        self.project_name: str = ""
        self.client_name: str = ""
        self.general_notes: str = ""
        self.scope_of_work: str = ""
        self.project_duration_days: int = DEFAULT_PROJECT_DURATION_DAYS

    # ------------------------------------------------------------------
    # Project context
    # ------------------------------------------------------------------

    def update_project(self, **fields) -> None:
        allowed = {
            "project_name", "client_name", "general_notes", "scope_of_work",
            "project_duration_days", "active_client_id",
        }
        for key, value in fields.items():
            if key not in allowed:
                raise ValueError(f"Unknown project field '{key}'")
            if value is None:
                continue
            if key == "active_client_id" and all(c.id != value for c in self.catalog.client_profiles):
                raise KeyError(f"Client profile {value} not found")
            if key == "project_duration_days" and int(value) < 0:
                raise ValueError("project_duration_days must not be negative")
            setattr(self, key, int(value) if key in ("project_duration_days", "active_client_id") else str(value))

    # ------------------------------------------------------------------
    # Costing pass
    # ------------------------------------------------------------------

    def marked_up_rates(self) -> MarkedUpRates:
        client = self.catalog.get_client(self.active_client_id)
        return apply_client_markup(
            client,
            self.catalog.manpower_rates,
            self.catalog.equipment_rates,
            self.catalog.material_rates,
        )

    async def run_costing_pass(
        self, item_id: int, generator: Optional[ProposalGenerator] = None
    ) -> bool:
        """
        Generate and accept a breakdown for one item.

        Returns True when a breakdown was accepted. False means the pass was
        rejected (missing item, empty description), failed (item left in
        ``error``) or its item was deleted before the proposal arrived.
        """
        try:
            item = self.items.require_costable(item_id)
        except (KeyError, ValueError) as e:
            logger.warning(f"Costing pass rejected: {e}", extra={"item_id": item_id})
            return False

        self.items.set_status(item_id, ItemStatus.LOADING)
        rates = self.marked_up_rates()
        generate = generator or self.proposal_generator
        start = time.perf_counter()

        try:
            raw = await generate(
                item.description,
                item.notes or "",
                self.general_notes,
                self.scope_of_work,
                rates.manpower_rates,
                rates.equipment_rates,
                rates.material_rates,
            )
            proposal = validate_proposal(raw)
            breakdown = breakdown_engine.build_from_proposal(proposal.rate_breakdown, self.rounding)
        except Exception as e:
            logger.error(
                f"Costing pass failed ({type(e).__name__}: {e})",
                extra={"item_id": item_id},
            )
            self._mark_error(item_id, item)
            return False

        # Ids are reused after deletion; only the record that was costed may receive the result
        if not self._is_current(item_id, item):
            logger.warning("Proposal arrived for a removed item; discarded", extra={"item_id": item_id})
            return False
        self.items.apply_proposal(item_id, proposal, breakdown)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            f"Breakdown accepted: quoted {breakdown.quoted_unit_price:.2f} QAR/{proposal.unit or 'unit'}",
            extra={"item_id": item_id, "duration_ms": duration_ms},
        )
        return True

    def _is_current(self, item_id: int, item: BOQItem) -> bool:
        try:
            return self.items.get_item(item_id) is item
        except KeyError:
            return False

    def _mark_error(self, item_id: int, item: BOQItem) -> None:
        if not self._is_current(item_id, item):
            logger.warning("Costing failed for a removed item", extra={"item_id": item_id})
            return
        self.items.set_status(item_id, ItemStatus.ERROR)

    async def run_bulk_costing(
        self, item_ids: Optional[Iterable[int]] = None, generator: Optional[ProposalGenerator] = None
    ) -> Dict[int, bool]:
        """Cost each id (default: the selection) sequentially; returns per-id outcome."""
        ids: List[int] = list(item_ids) if item_ids is not None else self.items.selected_ids
        outcomes: Dict[int, bool] = {}
        for item_id in ids:
            outcomes[item_id] = await self.run_costing_pass(item_id, generator)
        logger.info(f"Bulk costing finished: {sum(outcomes.values())}/{len(ids)} succeeded")
        return outcomes

    # ------------------------------------------------------------------
    # Breakdown editor
    # ------------------------------------------------------------------

    def save_breakdown(self, item_id: int, breakdown: RateBreakdown) -> RateBreakdown:
        """Editor save: re-derive rows and totals, then make it authoritative."""
        full = breakdown_engine.recalculate(breakdown)
        self.items.accept_breakdown(item_id, full)
        return full

    def edit_breakdown(self, item_id: int, operation: str, **kwargs) -> RateBreakdown:
        """
        Apply one editor operation to the item's current breakdown and accept it.

        operation: update_row | add_row | remove_row | set_percentage | set_quoted_unit_price
        """
        current = self.items.view_breakdown(item_id)
        if current is None:
            raise LookupError(f"BOQ item {item_id} has no rate breakdown")
        ops = {
            "update_row": breakdown_engine.update_row,
            "add_row": breakdown_engine.add_row,
            "remove_row": breakdown_engine.remove_row,
            "set_percentage": breakdown_engine.set_percentage,
            "set_quoted_unit_price": breakdown_engine.set_quoted_unit_price,
        }
        if operation not in ops:
            raise ValueError(f"Unknown breakdown operation '{operation}'")
        updated = ops[operation](current, **kwargs)
        self.items.accept_breakdown(item_id, updated)
        return updated

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard(self) -> DashboardSummary:
        return boq_aggregator.summarize(
            self.items.items,
            project_name=self.project_name,
            client_name=self.client_name,
            project_duration_days=self.project_duration_days,
            active_client_id=self.active_client_id,
        )
