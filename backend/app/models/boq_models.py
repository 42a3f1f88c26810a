"""
BOQ domain models.

A BOQ line item optionally carries a Breakdown of Schedule of Rates (BSR):
materials, labor, equipment and tools rows plus overhead and profit. The
derived fields (row costs, subtotal, overhead/profit amounts, total) are
written by the engines in ``app.services``; nothing here recomputes them
except the manpower effective hourly rate, which is never stored.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.config import DEFAULT_LEAVE_SETTLEMENT_DAYS, UNCATEGORIZED
from app.services.manpower_cost import calculate_effective_hourly_rate


# ── Breakdown rows ────────────────────────────────────────────────────────────

class Material(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    item: str = ""
    unit: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    cost: float = 0.0          # quantity × unit_price


class Labor(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    role: str = ""
    hours: float = 0.0
    rate: float = 0.0
    cost: float = 0.0          # hours × rate


class Equipment(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    item: str = ""
    hours: float = 0.0
    rate: float = 0.0
    cost: float = 0.0          # hours × rate


class Tool(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    item: str = ""
    cost: float = 0.0          # entered directly


class PercentageAmount(BaseModel):
    """Overhead or profit: percentage is edited, amount is derived."""
    percentage: float = 0.0
    amount: float = 0.0


class RateBreakdown(BaseModel):
    materials: List[Material] = Field(default_factory=list)
    labor: List[Labor] = Field(default_factory=list)
    equipment: List[Equipment] = Field(default_factory=list)
    tools: List[Tool] = Field(default_factory=list)
    subtotal: float = 0.0
    overhead: PercentageAmount = Field(default_factory=PercentageAmount)
    profit: PercentageAmount = Field(default_factory=PercentageAmount)
    total: float = 0.0
    quoted_unit_price: float = 0.0


# ── BOQ line item ─────────────────────────────────────────────────────────────

class ItemStatus(str, Enum):
    """Lifecycle of a line item's costing pass."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class BOQItem(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: int
    description: str = ""
    unit: str = ""
    quantity: float = 0.0
    manpower: str = ""          # free text, e.g. "1 Mason, 2 Helpers"
    unit_price: float = 0.0
    total: float = 0.0          # quantity × unit_price
    rate_breakdown: Optional[RateBreakdown] = None
    is_ai_assisted: bool = False
    status: ItemStatus = ItemStatus.IDLE
    notes: str = ""
    category: str = UNCATEGORIZED


# ── Rate catalog records ──────────────────────────────────────────────────────

class ManpowerRate(BaseModel):
    """
    Fully-burdened manpower cost record.

    ``effective_hourly_rate`` is always recomputed from the six cost fields.
    ``hourly_rate_override`` is the only way to pin a different figure
    (used for client mark-up copies); it is never inferred from input data.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: int
    role: str
    monthly_salary: float = 0.0               # QAR/month
    accommodation: float = 0.0                # QAR/month
    transport: float = 0.0                    # QAR/month
    visa_cost_per_year: float = 0.0           # QAR/year
    annual_flight_ticket_cost: float = 0.0    # QAR/year
    leave_settlement_days_per_year: float = DEFAULT_LEAVE_SETTLEMENT_DAYS
    hourly_rate_override: Optional[float] = None

    @computed_field
    @property
    def effective_hourly_rate(self) -> float:
        if self.hourly_rate_override is not None:
            return self.hourly_rate_override
        return calculate_effective_hourly_rate(
            monthly_salary=self.monthly_salary,
            accommodation=self.accommodation,
            transport=self.transport,
            visa_cost_per_year=self.visa_cost_per_year,
            annual_flight_ticket_cost=self.annual_flight_ticket_cost,
            leave_settlement_days_per_year=self.leave_settlement_days_per_year,
        )


class EquipmentRate(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: int
    item: str
    hourly_rate: float = 0.0                  # QAR/hr


class MaterialRate(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: int
    name: str
    unit: str = ""
    unit_price: float = 0.0                   # QAR/unit
    supplier: Optional[str] = None


class ClientProfile(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: int
    name: str
    markup_percentage: float = 0.0            # 10 → +10 % on labour & plant


# ── Proposal generator contract ───────────────────────────────────────────────

class ProposalPercentage(BaseModel):
    percentage: float


class ProposalBreakdown(BaseModel):
    """Raw breakdown as proposed: row costs present, totals not yet derived."""
    materials: List[Material]
    labor: List[Labor]
    equipment: List[Equipment]
    tools: List[Tool]
    overhead: ProposalPercentage
    profit: ProposalPercentage


class ProposalResult(BaseModel):
    manpower: str = ""
    unit: str = ""
    category: str = UNCATEGORIZED
    unit_price: float = 0.0     # ignored; the price is derived locally
    rate_breakdown: ProposalBreakdown


# ── Dashboard ─────────────────────────────────────────────────────────────────

class CostTypeBreakdown(BaseModel):
    materials: float = 0.0
    labor: float = 0.0
    equipment: float = 0.0
    tools: float = 0.0
    overhead: float = 0.0
    profit: float = 0.0


class DashboardSummary(BaseModel):
    total_cost: float = 0.0
    total_dry_cost: float = 0.0
    cost_breakdown: CostTypeBreakdown = Field(default_factory=CostTypeBreakdown)
    cost_by_category: Dict[str, float] = Field(default_factory=dict)
    manpower_roles: List[str] = Field(default_factory=list)
    item_count: int = 0
    costed_item_count: int = 0
    project_name: str = ""
    client_name: str = ""
    project_duration_days: int = 0
    active_client_id: Optional[int] = None
