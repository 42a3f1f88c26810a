"""
test_rate_catalog.py — Unit tests for the rate catalog.

Tests cover:
  - calculate_effective_hourly_rate: Qatar worked example, zero inputs, monotonicity
  - ManpowerRate.effective_hourly_rate: always recomputed, override only for copies
  - RateCatalog CRUD: ids, validation, unknown fields, removal
  - Client profile lookup with first-profile fallback
  - Seed catalog contents

All tests are pure unit tests; no database or external services required.
"""

import pytest

from app.models.boq_models import ManpowerRate
from app.services.rate_catalog import RateCatalog, calculate_effective_hourly_rate


# ---------------------------------------------------------------------------
# Constants mirrored from app.config for assertion math
# ---------------------------------------------------------------------------
ANNUAL_WORKING_HOURS = 2496          # 8 h × 26 d × 12 m
GRATUITY_DAY_BASIS = 30

MASON = {
    "monthly_salary": 2500.0,
    "accommodation": 300.0,
    "transport": 200.0,
    "visa_cost_per_year": 500.0,
    "annual_flight_ticket_cost": 1200.0,
    "leave_settlement_days_per_year": 21.0,
}


# ===========================================================================
# Class 1: Effective hourly rate
# ===========================================================================

class TestEffectiveHourlyRate:
    """Tests for calculate_effective_hourly_rate."""

    def test_mason_worked_example(self):
        """
        monthly_direct = 2500 + 300 + 200 = 3000 → annual 36000
        gratuity = (2500 / 30) × 21 = 1750
        annual_indirect = 500 + 1200 + 1750 = 3450
        rate = 39450 / 2496 ≈ 15.805
        """
        rate = calculate_effective_hourly_rate(**MASON)
        assert rate == pytest.approx(39450 / ANNUAL_WORKING_HOURS)
        assert round(rate, 1) == 15.8

    def test_all_zero_inputs_give_zero(self):
        zeros = {k: 0.0 for k in MASON}
        assert calculate_effective_hourly_rate(**zeros) == 0.0

    @pytest.mark.parametrize("field", list(MASON))
    def test_increasing_any_input_increases_rate(self, field):
        """Every cost component carries a positive weight."""
        base = calculate_effective_hourly_rate(**MASON)
        bumped = dict(MASON, **{field: MASON[field] + 100})
        assert calculate_effective_hourly_rate(**bumped) > base

    def test_gratuity_uses_30_day_basis(self):
        """Only salary and leave days set: rate = (salary/30 × days + salary×12) / 2496."""
        rate = calculate_effective_hourly_rate(
            monthly_salary=3000, accommodation=0, transport=0,
            visa_cost_per_year=0, annual_flight_ticket_cost=0,
            leave_settlement_days_per_year=30,
        )
        expected = (3000 * 12 + (3000 / GRATUITY_DAY_BASIS) * 30) / ANNUAL_WORKING_HOURS
        assert rate == pytest.approx(expected)


# ===========================================================================
# Class 2: ManpowerRate computed field
# ===========================================================================

class TestManpowerRateModel:
    """effective_hourly_rate is derived on read, never stored from input."""

    def test_rate_follows_field_edits(self):
        rate = ManpowerRate(id=1, role="Mason", **MASON)
        before = rate.effective_hourly_rate
        rate.monthly_salary = 3000.0
        assert rate.effective_hourly_rate > before
        assert rate.effective_hourly_rate == pytest.approx(
            calculate_effective_hourly_rate(**dict(MASON, monthly_salary=3000.0))
        )

    def test_stale_seed_value_is_ignored(self):
        """A cached effective_hourly_rate in input data does not override the formula."""
        rate = ManpowerRate.model_validate(
            dict(MASON, id=1, role="Mason", effective_hourly_rate=15.80)
        )
        rate.monthly_salary = 5000.0
        assert rate.effective_hourly_rate != pytest.approx(15.80)

    def test_override_pins_rate(self):
        rate = ManpowerRate(id=1, role="Mason", hourly_rate_override=42.0, **MASON)
        assert rate.effective_hourly_rate == 42.0

    def test_rate_serialised_in_dump(self):
        dumped = ManpowerRate(id=1, role="Mason", **MASON).model_dump()
        assert dumped["effective_hourly_rate"] == pytest.approx(39450 / ANNUAL_WORKING_HOURS)


# ===========================================================================
# Class 3: Catalog CRUD
# ===========================================================================

class TestRateCatalogCrud:
    """Add / update / remove across the four record kinds."""

    def test_add_manpower_assigns_next_id(self, catalog):
        rate = catalog.add_manpower_rate("Steel Fixer", **MASON)
        assert rate.id == 4
        assert rate in catalog.manpower_rates

    def test_add_manpower_coerces_bad_numbers(self):
        catalog = RateCatalog()
        rate = catalog.add_manpower_rate("Carpenter", monthly_salary="abc", transport=-50)
        assert rate.id == 1
        assert rate.monthly_salary == 0.0
        assert rate.transport == 0.0

    def test_add_manpower_ignores_unknown_keys(self):
        rate = RateCatalog().add_manpower_rate("Carpenter", effective_hourly_rate=99, **MASON)
        assert rate.effective_hourly_rate == pytest.approx(39450 / ANNUAL_WORKING_HOURS)

    def test_empty_role_rejected(self, catalog):
        with pytest.raises(ValueError):
            catalog.add_manpower_rate("   ")

    def test_update_manpower_cost_field(self, catalog):
        rate = catalog.update_manpower_rate(1, "accommodation", "400")
        assert rate.accommodation == 400.0

    def test_effective_rate_not_editable(self, catalog):
        with pytest.raises(ValueError):
            catalog.update_manpower_rate(1, "effective_hourly_rate", 10)

    def test_update_unknown_id_raises_key_error(self, catalog):
        with pytest.raises(KeyError):
            catalog.update_equipment_rate(999, "hourly_rate", 10)

    def test_remove_equipment(self, catalog):
        catalog.remove_equipment_rate(1)
        assert all(r.id != 1 for r in catalog.equipment_rates)
        assert len(catalog.equipment_rates) == 3

    def test_remove_missing_material_raises(self, catalog):
        with pytest.raises(KeyError):
            catalog.remove_material_rate(42)

    def test_ids_not_reused_after_middle_removal(self, catalog):
        catalog.remove_material_rate(2)
        added = catalog.add_material_rate("Hollow Block 8\"", "pcs", 3.5)
        assert added.id == 6

    def test_material_supplier_can_be_cleared(self, catalog):
        rate = catalog.update_material_rate(1, "supplier", None)
        assert rate.supplier is None

    def test_negative_markup_clamped(self, catalog):
        client = catalog.add_client_profile("Discount", -5)
        assert client.markup_percentage == 0.0


# ===========================================================================
# Class 4: Client lookup and seed data
# ===========================================================================

class TestClientLookupAndSeed:

    def test_get_client_by_id(self, catalog):
        assert catalog.get_client(2).markup_percentage == 10

    def test_get_client_falls_back_to_first(self, catalog):
        assert catalog.get_client(999).id == 1
        assert catalog.get_client(None).id == 1

    def test_get_client_none_when_no_profiles(self):
        assert RateCatalog().get_client(1) is None

    def test_seed_counts(self, catalog):
        assert len(catalog.manpower_rates) == 3
        assert len(catalog.equipment_rates) == 4
        assert len(catalog.material_rates) == 5
        assert [c.markup_percentage for c in catalog.client_profiles] == [0, 10, 5]

    def test_seed_mason_matches_worked_example(self, catalog):
        mason = catalog.manpower_rates[0]
        assert mason.effective_hourly_rate == pytest.approx(39450 / ANNUAL_WORKING_HOURS)

    def test_to_dict_contains_all_sections(self, catalog):
        snapshot = catalog.to_dict()
        assert set(snapshot) == {"manpower_rates", "equipment_rates", "material_rates", "client_profiles"}
        assert "effective_hourly_rate" in snapshot["manpower_rates"][0]
