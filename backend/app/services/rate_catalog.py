"""
rate_catalog.py — Canonical unit rates for manpower, equipment and materials.

Covers:
  - Effective hourly rate from salary and benefit components (Qatar basis)
  - Explicitly owned rate store (one per project session)
  - Client profiles used for mark-up
  - Seed catalog for a fresh session

All monetary values are in QAR unless stated otherwise.
"""

import logging
from typing import Any, Dict, List, Optional

from app.models.boq_models import ClientProfile, EquipmentRate, ManpowerRate, MaterialRate
from app.services.line_cost import to_number
from app.services.manpower_cost import calculate_effective_hourly_rate  # noqa: F401 (re-exported)

logger = logging.getLogger("bsr-engine")

_MANPOWER_COST_FIELDS = (
    "monthly_salary",
    "accommodation",
    "transport",
    "visa_cost_per_year",
    "annual_flight_ticket_cost",
    "leave_settlement_days_per_year",
)


def _next_id(records) -> int:
    return max((r.id for r in records), default=0) + 1


def _find(records, record_id: int, kind: str):
    for r in records:
        if r.id == record_id:
            return r
    raise KeyError(f"{kind} {record_id} not found")


class RateCatalog:
    """
    Rate store for one project session.

    Records are pydantic models; manpower effective rates are computed on
    read, so editing any of the six cost inputs changes the rate at once.
    """

    def __init__(
        self,
        manpower_rates: Optional[List[ManpowerRate]] = None,
        equipment_rates: Optional[List[EquipmentRate]] = None,
        material_rates: Optional[List[MaterialRate]] = None,
        client_profiles: Optional[List[ClientProfile]] = None,
    ) -> None:
        self.manpower_rates: List[ManpowerRate] = list(manpower_rates or [])
        self.equipment_rates: List[EquipmentRate] = list(equipment_rates or [])
        self.material_rates: List[MaterialRate] = list(material_rates or [])
        self.client_profiles: List[ClientProfile] = list(client_profiles or [])

    # ------------------------------------------------------------------
    # Manpower
    # ------------------------------------------------------------------

    def add_manpower_rate(self, role: str, **costs: Any) -> ManpowerRate:
        if not role or not role.strip():
            raise ValueError("Manpower role must not be empty")
        fields = {k: to_number(v) for k, v in costs.items() if k in _MANPOWER_COST_FIELDS}
        rate = ManpowerRate(id=_next_id(self.manpower_rates), role=role.strip(), **fields)
        self.manpower_rates.append(rate)
        logger.info(f"Manpower rate added: {rate.role} @ {rate.effective_hourly_rate:.2f} QAR/hr")
        return rate

    def update_manpower_rate(self, rate_id: int, field: str, value: Any) -> ManpowerRate:
        rate = _find(self.manpower_rates, rate_id, "Manpower rate")
        if field == "role":
            rate.role = str(value)
        elif field in _MANPOWER_COST_FIELDS:
            setattr(rate, field, to_number(value))
        elif field == "hourly_rate_override":
            rate.hourly_rate_override = None if value is None else to_number(value)
        else:
            raise ValueError(f"Field '{field}' is not editable on a manpower rate")
        return rate

    def remove_manpower_rate(self, rate_id: int) -> None:
        _find(self.manpower_rates, rate_id, "Manpower rate")
        self.manpower_rates = [r for r in self.manpower_rates if r.id != rate_id]

    # ------------------------------------------------------------------
    # Equipment
    # ------------------------------------------------------------------

    def add_equipment_rate(self, item: str, hourly_rate: Any = 0.0) -> EquipmentRate:
        if not item or not item.strip():
            raise ValueError("Equipment item must not be empty")
        rate = EquipmentRate(
            id=_next_id(self.equipment_rates), item=item.strip(), hourly_rate=to_number(hourly_rate)
        )
        self.equipment_rates.append(rate)
        return rate

    def update_equipment_rate(self, rate_id: int, field: str, value: Any) -> EquipmentRate:
        rate = _find(self.equipment_rates, rate_id, "Equipment rate")
        if field == "item":
            rate.item = str(value)
        elif field == "hourly_rate":
            rate.hourly_rate = to_number(value)
        else:
            raise ValueError(f"Field '{field}' is not editable on an equipment rate")
        return rate

    def remove_equipment_rate(self, rate_id: int) -> None:
        _find(self.equipment_rates, rate_id, "Equipment rate")
        self.equipment_rates = [r for r in self.equipment_rates if r.id != rate_id]

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------

    def add_material_rate(
        self, name: str, unit: str = "", unit_price: Any = 0.0, supplier: Optional[str] = None
    ) -> MaterialRate:
        if not name or not name.strip():
            raise ValueError("Material name must not be empty")
        rate = MaterialRate(
            id=_next_id(self.material_rates),
            name=name.strip(),
            unit=unit,
            unit_price=to_number(unit_price),
            supplier=supplier,
        )
        self.material_rates.append(rate)
        return rate

    def update_material_rate(self, rate_id: int, field: str, value: Any) -> MaterialRate:
        rate = _find(self.material_rates, rate_id, "Material rate")
        if field in ("name", "unit"):
            setattr(rate, field, str(value))
        elif field == "supplier":
            rate.supplier = None if value is None else str(value)
        elif field == "unit_price":
            rate.unit_price = to_number(value)
        else:
            raise ValueError(f"Field '{field}' is not editable on a material rate")
        return rate

    def remove_material_rate(self, rate_id: int) -> None:
        _find(self.material_rates, rate_id, "Material rate")
        self.material_rates = [r for r in self.material_rates if r.id != rate_id]

    # ------------------------------------------------------------------
    # Client profiles
    # ------------------------------------------------------------------

    def add_client_profile(self, name: str, markup_percentage: Any = 0.0) -> ClientProfile:
        if not name or not name.strip():
            raise ValueError("Client name must not be empty")
        client = ClientProfile(
            id=_next_id(self.client_profiles),
            name=name.strip(),
            markup_percentage=to_number(markup_percentage),
        )
        self.client_profiles.append(client)
        return client

    def update_client_profile(self, client_id: int, field: str, value: Any) -> ClientProfile:
        client = _find(self.client_profiles, client_id, "Client profile")
        if field == "name":
            client.name = str(value)
        elif field == "markup_percentage":
            client.markup_percentage = to_number(value)
        else:
            raise ValueError(f"Field '{field}' is not editable on a client profile")
        return client

    def remove_client_profile(self, client_id: int) -> None:
        _find(self.client_profiles, client_id, "Client profile")
        self.client_profiles = [c for c in self.client_profiles if c.id != client_id]

    def get_client(self, client_id: Optional[int]) -> Optional[ClientProfile]:
        """Client by id, falling back to the first profile (None if there are none)."""
        for c in self.client_profiles:
            if c.id == client_id:
                return c
        return self.client_profiles[0] if self.client_profiles else None

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manpower_rates": [r.model_dump() for r in self.manpower_rates],
            "equipment_rates": [r.model_dump() for r in self.equipment_rates],
            "material_rates": [r.model_dump() for r in self.material_rates],
            "client_profiles": [c.model_dump() for c in self.client_profiles],
        }


# ---------------------------------------------------------------------------
# Seed catalog (Doha market, QAR)
# ---------------------------------------------------------------------------

_SEED_MANPOWER: List[Dict[str, Any]] = [
    {"role": "Skilled Laborer / Mason", "monthly_salary": 2500, "accommodation": 300, "transport": 200,
     "visa_cost_per_year": 500, "annual_flight_ticket_cost": 1200, "leave_settlement_days_per_year": 21},
    {"role": "General Helper", "monthly_salary": 1500, "accommodation": 250, "transport": 150,
     "visa_cost_per_year": 500, "annual_flight_ticket_cost": 1000, "leave_settlement_days_per_year": 21},
    {"role": "Foreman", "monthly_salary": 4500, "accommodation": 500, "transport": 300,
     "visa_cost_per_year": 750, "annual_flight_ticket_cost": 1800, "leave_settlement_days_per_year": 21},
]

_SEED_EQUIPMENT: List[Dict[str, Any]] = [
    {"item": "Excavator (20T)", "hourly_rate": 250},
    {"item": "Concrete Mixer (1 bag)", "hourly_rate": 50},
    {"item": "JCB / Backhoe Loader", "hourly_rate": 150},
    {"item": 'Dewatering Pump (4")', "hourly_rate": 30},
]

_SEED_MATERIALS: List[Dict[str, Any]] = [
    {"name": "OPC Cement (50kg bag)", "unit": "bag", "unit_price": 16, "supplier": "Qatar National Cement"},
    {"name": "Dune Sand", "unit": "m³", "unit_price": 45, "supplier": "Local Supplier"},
    {"name": "Washed Sand", "unit": "m³", "unit_price": 60, "supplier": "Local Supplier"},
    {"name": "Aggregate (20mm)", "unit": "m³", "unit_price": 75, "supplier": "Local Supplier"},
    {"name": "Deformed Steel Bar (12mm)", "unit": "ton", "unit_price": 2400, "supplier": "Qatar Steel"},
]

_SEED_CLIENTS: List[Dict[str, Any]] = [
    {"name": "Standard Client", "markup_percentage": 0},
    {"name": "Premium Client (Ashghal)", "markup_percentage": 10},
    {"name": "Private Villa Client", "markup_percentage": 5},
]


def default_catalog() -> RateCatalog:
    """Fresh catalog populated with the standard Doha seed rates."""
    return RateCatalog(
        manpower_rates=[ManpowerRate(id=i, **r) for i, r in enumerate(_SEED_MANPOWER, start=1)],
        equipment_rates=[EquipmentRate(id=i, **r) for i, r in enumerate(_SEED_EQUIPMENT, start=1)],
        material_rates=[MaterialRate(id=i, **r) for i, r in enumerate(_SEED_MATERIALS, start=1)],
        client_profiles=[ClientProfile(id=i, **r) for i, r in enumerate(_SEED_CLIENTS, start=1)],
    )
