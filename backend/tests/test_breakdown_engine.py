"""
test_breakdown_engine.py — Unit tests for the BSR totals engine.

Tests cover:
  - calculate_totals: subtotal, overhead on subtotal, profit on subtotal + overhead
  - build_from_proposal: row costs re-derived, quoted price seeded and rounded
  - round_quoted_price: half_up / half_even / none, unknown policy
  - Editor operations: row edit, add/remove row, percentages, manual quoted price
  - Idempotence and row-order independence

All tests are pure unit tests; no database or external services required.
"""

import pytest

from app.models.boq_models import (
    Labor, Material, PercentageAmount, ProposalBreakdown, RateBreakdown, Tool,
)
from app.services import breakdown_engine as engine


# ---------------------------------------------------------------------------
# Worked example (see conftest.proposal_payload)
# ---------------------------------------------------------------------------
SUBTOTAL = 175.0
OVERHEAD_AMOUNT = 17.5
PROFIT_AMOUNT = 28.875
TOTAL = 221.375
QUOTED = 221.0


# ===========================================================================
# Class 1: Totals
# ===========================================================================

class TestCalculateTotals:

    def test_worked_example(self, sample_breakdown):
        """
        subtotal = 100 + 50 + 20 + 5 = 175
        overhead = 175 × 10 % = 17.5
        profit   = (175 + 17.5) × 15 % = 28.875
        total    = 221.375
        """
        assert sample_breakdown.subtotal == pytest.approx(SUBTOTAL)
        assert sample_breakdown.overhead.amount == pytest.approx(OVERHEAD_AMOUNT)
        assert sample_breakdown.profit.amount == pytest.approx(PROFIT_AMOUNT)
        assert sample_breakdown.total == pytest.approx(TOTAL)

    def test_idempotent(self, sample_breakdown):
        once = engine.calculate_totals(sample_breakdown)
        twice = engine.calculate_totals(once)
        assert once == twice

    def test_row_order_does_not_change_totals(self):
        rows = [Tool(cost=c) for c in (0.1, 1e6, 0.2, 0.3, -0.0)]
        forward = engine.calculate_totals(RateBreakdown(tools=rows))
        backward = engine.calculate_totals(RateBreakdown(tools=list(reversed(rows))))
        assert forward.subtotal == backward.subtotal

    def test_zero_percentages(self):
        bd = RateBreakdown(tools=[Tool(cost=40)])
        result = engine.calculate_totals(bd)
        assert result.overhead.amount == 0.0
        assert result.profit.amount == 0.0
        assert result.total == 40.0

    def test_empty_breakdown(self):
        result = engine.calculate_totals(RateBreakdown(overhead=PercentageAmount(percentage=10)))
        assert result.subtotal == 0.0
        assert result.total == 0.0

    def test_quoted_price_untouched(self, sample_breakdown):
        edited = sample_breakdown.model_copy(update={"quoted_unit_price": 300.0})
        assert engine.calculate_totals(edited).quoted_unit_price == 300.0

    def test_input_not_mutated(self, sample_breakdown):
        stale = sample_breakdown.model_copy(update={"total": 0.0})
        engine.calculate_totals(stale)
        assert stale.total == 0.0


# ===========================================================================
# Class 2: Building from a proposal
# ===========================================================================

class TestBuildFromProposal:

    def test_quoted_price_seeded_from_rounded_total(self, sample_breakdown):
        assert sample_breakdown.quoted_unit_price == QUOTED

    def test_proposer_costs_not_trusted(self):
        """A material row claiming cost 999 for 2 × 50 is re-derived to 100."""
        proposal = ProposalBreakdown(
            materials=[Material(item="Sand", quantity=2, unit_price=50, cost=999)],
            labor=[Labor(role="Helper", hours=1, rate=10, cost=0)],
            equipment=[],
            tools=[],
            overhead={"percentage": 0},
            profit={"percentage": 0},
        )
        bd = engine.build_from_proposal(proposal, "half_up")
        assert bd.materials[0].cost == 100.0
        assert bd.labor[0].cost == 10.0
        assert bd.total == 110.0

    def test_rounding_policy_none_keeps_total(self, sample_proposal):
        bd = engine.build_from_proposal(sample_proposal.rate_breakdown, "none")
        assert bd.quoted_unit_price == pytest.approx(TOTAL)


# ===========================================================================
# Class 3: Rounding
# ===========================================================================

class TestRoundQuotedPrice:

    @pytest.mark.parametrize("policy, value, expected", [
        ("half_up", 221.5, 222.0),
        ("half_up", 220.5, 221.0),
        ("half_up", 221.375, 221.0),
        ("half_even", 220.5, 220.0),
        ("half_even", 221.5, 222.0),
        ("none", 221.375, 221.375),
    ])
    def test_policies(self, policy, value, expected):
        assert engine.round_quoted_price(value, policy) == expected

    def test_half_up_small_tie(self):
        """Python's round(0.5) is 0; the quote convention rounds ties up."""
        assert engine.round_quoted_price(0.5, "half_up") == 1.0

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            engine.round_quoted_price(10.0, "bankers")


# ===========================================================================
# Class 4: Editor operations
# ===========================================================================

class TestEditorOperations:

    def test_update_row_recomputes_totals(self, sample_breakdown):
        """materials qty 2 → 4: subtotal 175 → 275."""
        bd = engine.update_row(sample_breakdown, "materials", 0, "quantity", 4)
        assert bd.materials[0].cost == 200.0
        assert bd.subtotal == pytest.approx(275.0)
        assert bd.quoted_unit_price == QUOTED

    def test_add_row(self, sample_breakdown):
        bd = engine.add_row(sample_breakdown, "labor")
        assert len(bd.labor) == 2
        assert bd.total == pytest.approx(TOTAL)

    def test_remove_row(self, sample_breakdown):
        bd = engine.remove_row(sample_breakdown, "tools", 0)
        assert bd.tools == []
        assert bd.subtotal == pytest.approx(170.0)

    def test_remove_row_bad_index(self, sample_breakdown):
        with pytest.raises(IndexError):
            engine.remove_row(sample_breakdown, "tools", 5)

    def test_unknown_section(self, sample_breakdown):
        with pytest.raises(ValueError):
            engine.add_row(sample_breakdown, "overheads")

    def test_set_overhead_percentage(self, sample_breakdown):
        """overhead 20 %: 35; profit (175 + 35) × 15 % = 31.5; total 241.5."""
        bd = engine.set_percentage(sample_breakdown, "overhead", 20)
        assert bd.overhead.amount == pytest.approx(35.0)
        assert bd.profit.amount == pytest.approx(31.5)
        assert bd.total == pytest.approx(241.5)

    def test_set_percentage_bad_kind(self, sample_breakdown):
        with pytest.raises(ValueError):
            engine.set_percentage(sample_breakdown, "margin", 5)

    def test_manual_quoted_price_does_not_touch_totals(self, sample_breakdown):
        bd = engine.set_quoted_unit_price(sample_breakdown, "250")
        assert bd.quoted_unit_price == 250.0
        assert bd.total == pytest.approx(TOTAL)
        assert bd.subtotal == pytest.approx(SUBTOTAL)

    def test_operations_do_not_mutate_input(self, sample_breakdown):
        engine.update_row(sample_breakdown, "labor", 0, "hours", 10)
        assert sample_breakdown.labor[0].hours == 2.0
