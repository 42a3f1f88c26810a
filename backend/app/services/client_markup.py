"""
Client mark-up applied to catalog rates before a costing pass.

Manpower and equipment rates are scaled by (1 + markup% / 100); material
rates pass through unchanged. Catalog records are never mutated — the
marked-up lists are copies handed to the proposal generator.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from app.models.boq_models import ClientProfile, EquipmentRate, ManpowerRate, MaterialRate


@dataclass
class MarkedUpRates:
    """Rates for one costing pass, after client mark-up."""
    markup_percentage: float = 0.0
    manpower_rates: List[ManpowerRate] = field(default_factory=list)
    equipment_rates: List[EquipmentRate] = field(default_factory=list)
    material_rates: List[MaterialRate] = field(default_factory=list)


def markup_factor(markup_percentage: float) -> float:
    return 1 + (markup_percentage / 100)


def apply_client_markup(
    client: Optional[ClientProfile],
    manpower_rates: List[ManpowerRate],
    equipment_rates: List[EquipmentRate],
    material_rates: List[MaterialRate],
) -> MarkedUpRates:
    """
    Scale labour and plant rates for ``client``; no client means no mark-up.

    Each manpower copy pins its marked-up figure in ``hourly_rate_override``
    so the copy stays fixed for the whole pass.
    """
    pct = client.markup_percentage if client is not None else 0.0
    factor = markup_factor(pct)

    manpower = [
        r.model_copy(update={"hourly_rate_override": r.effective_hourly_rate * factor})
        for r in manpower_rates
    ]
    equipment = [
        r.model_copy(update={"hourly_rate": r.hourly_rate * factor})
        for r in equipment_rates
    ]

    return MarkedUpRates(
        markup_percentage=pct,
        manpower_rates=manpower,
        equipment_rates=equipment,
        material_rates=list(material_rates),
    )
