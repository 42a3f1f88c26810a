"""
test_line_cost.py — Unit tests for single-row BSR costing.

Tests cover:
  - to_number: numeric strings, junk, NaN/inf, negatives
  - recalculate_row per section
  - update_row: driver edits, text edits, tool cost, rejected fields
  - new_row defaults and section_cost
"""

import math

import pytest

from app.models.boq_models import Equipment, Labor, Material, Tool
from app.services import line_cost


class TestToNumber:

    @pytest.mark.parametrize("raw, expected", [
        ("12.5", 12.5),
        (7, 7.0),
        ("", 0.0),
        (None, 0.0),
        ("abc", 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (-3, 0.0),
    ])
    def test_coercion(self, raw, expected):
        assert line_cost.to_number(raw) == expected

    def test_negative_kept_when_not_clamped(self):
        assert line_cost.to_number("-3", clamp_negative=False) == -3.0


class TestRecalculateRow:

    def test_material_cost_is_quantity_times_price(self):
        row = Material(item="Cement", quantity=3, unit_price=16, cost=999)
        assert line_cost.recalculate_row("materials", row).cost == 48.0

    @pytest.mark.parametrize("section, model", [("labor", Labor), ("equipment", Equipment)])
    def test_hourly_cost(self, section, model):
        row = model(hours=2.5, rate=40, cost=0)
        assert line_cost.recalculate_row(section, row).cost == 100.0

    def test_tool_cost_kept(self):
        row = Tool(item="Trowel", cost=7.5)
        assert line_cost.recalculate_row("tools", row).cost == 7.5

    def test_input_not_mutated(self):
        row = Material(quantity=2, unit_price=5, cost=0)
        line_cost.recalculate_row("materials", row)
        assert row.cost == 0

    def test_unknown_section(self):
        with pytest.raises(ValueError):
            line_cost.recalculate_row("plant", Tool())


class TestUpdateRow:

    def test_driver_edit_rederives_cost(self):
        row = Material(quantity=2, unit_price=50, cost=100)
        updated = line_cost.update_row("materials", row, "quantity", "3")
        assert updated.quantity == 3.0
        assert updated.cost == 150.0

    def test_junk_driver_becomes_zero(self):
        row = Labor(role="Mason", hours=2, rate=25, cost=50)
        updated = line_cost.update_row("labor", row, "rate", "n/a")
        assert updated.rate == 0.0
        assert updated.cost == 0.0

    def test_text_edit_leaves_cost(self):
        row = Equipment(item="Mixer", hours=1, rate=20, cost=20)
        updated = line_cost.update_row("equipment", row, "item", "Vibrator")
        assert updated.item == "Vibrator"
        assert updated.cost == 20

    def test_tool_cost_direct_edit(self):
        updated = line_cost.update_row("tools", Tool(item="Float"), "cost", "12")
        assert updated.cost == 12.0

    def test_cost_not_directly_editable_on_materials(self):
        with pytest.raises(ValueError):
            line_cost.update_row("materials", Material(), "cost", 10)

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            line_cost.update_row("labor", Labor(), "supplier", "x")


class TestNewRowAndSectionCost:

    def test_material_row_starts_at_quantity_one(self):
        row = line_cost.new_row("materials")
        assert row.quantity == 1.0
        assert row.cost == 0.0

    @pytest.mark.parametrize("section, model", [
        ("labor", Labor), ("equipment", Equipment), ("tools", Tool),
    ])
    def test_blank_rows(self, section, model):
        row = line_cost.new_row(section)
        assert isinstance(row, model)
        assert row.cost == 0.0

    def test_section_cost_exact_sum(self):
        rows = [Tool(cost=0.1) for _ in range(10)]
        assert line_cost.section_cost(rows) == math.fsum([0.1] * 10)
        assert line_cost.section_cost([]) == 0.0
