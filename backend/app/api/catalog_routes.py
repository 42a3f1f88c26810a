"""
Rate catalog routes — manpower, equipment, material rates and client profiles.

Manpower effective hourly rates are returned as computed values; they
cannot be written.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.api.deps import get_session, service_errors
from app.config import DEFAULT_LEAVE_SETTLEMENT_DAYS
from app.models.boq_models import ClientProfile, EquipmentRate, ManpowerRate, MaterialRate
from app.services import proposal_service
from app.services.costing_session import ProjectSession

router = APIRouter(prefix="/api/catalog", tags=["Rate Catalog"])
logger = logging.getLogger("bsr-api")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class ManpowerRateCreate(BaseModel):
    role: str
    monthly_salary: float = 0.0
    accommodation: float = 0.0
    transport: float = 0.0
    visa_cost_per_year: float = 0.0
    annual_flight_ticket_cost: float = 0.0
    leave_settlement_days_per_year: float = DEFAULT_LEAVE_SETTLEMENT_DAYS


class EquipmentRateCreate(BaseModel):
    item: str
    hourly_rate: float = Field(0.0, ge=0)


class MaterialRateCreate(BaseModel):
    name: str
    unit: str = ""
    unit_price: float = Field(0.0, ge=0)
    supplier: Optional[str] = None


class ClientProfileCreate(BaseModel):
    name: str
    markup_percentage: float = Field(0.0, ge=0)


class FieldUpdate(BaseModel):
    field: str
    value: Any = None


class SuggestRequest(BaseModel):
    name: str


# ─── Catalog snapshot ────────────────────────────────────────────────────────

@router.get("")
async def get_catalog(session: ProjectSession = Depends(get_session)):
    return session.catalog.to_dict()


# ─── Manpower ────────────────────────────────────────────────────────────────

@router.post("/manpower", response_model=ManpowerRate, status_code=201)
async def add_manpower(req: ManpowerRateCreate, session: ProjectSession = Depends(get_session)):
    data = req.model_dump()
    role = data.pop("role")
    with service_errors():
        return session.catalog.add_manpower_rate(role, **data)


@router.patch("/manpower/{rate_id}", response_model=ManpowerRate)
async def update_manpower(rate_id: int, req: FieldUpdate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.update_manpower_rate(rate_id, req.field, req.value)


@router.delete("/manpower/{rate_id}", status_code=204)
async def remove_manpower(rate_id: int, session: ProjectSession = Depends(get_session)):
    with service_errors():
        session.catalog.remove_manpower_rate(rate_id)


# ─── Equipment ───────────────────────────────────────────────────────────────

@router.post("/equipment", response_model=EquipmentRate, status_code=201)
async def add_equipment(req: EquipmentRateCreate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.add_equipment_rate(req.item, req.hourly_rate)


@router.patch("/equipment/{rate_id}", response_model=EquipmentRate)
async def update_equipment(rate_id: int, req: FieldUpdate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.update_equipment_rate(rate_id, req.field, req.value)


@router.delete("/equipment/{rate_id}", status_code=204)
async def remove_equipment(rate_id: int, session: ProjectSession = Depends(get_session)):
    with service_errors():
        session.catalog.remove_equipment_rate(rate_id)


# ─── Materials ───────────────────────────────────────────────────────────────

@router.post("/materials", response_model=MaterialRate, status_code=201)
async def add_material(req: MaterialRateCreate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.add_material_rate(req.name, req.unit, req.unit_price, req.supplier)


@router.patch("/materials/{rate_id}", response_model=MaterialRate)
async def update_material(rate_id: int, req: FieldUpdate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.update_material_rate(rate_id, req.field, req.value)


@router.delete("/materials/{rate_id}", status_code=204)
async def remove_material(rate_id: int, session: ProjectSession = Depends(get_session)):
    with service_errors():
        session.catalog.remove_material_rate(rate_id)


# ─── Client profiles ─────────────────────────────────────────────────────────

@router.post("/clients", response_model=ClientProfile, status_code=201)
async def add_client(req: ClientProfileCreate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.add_client_profile(req.name, req.markup_percentage)


@router.patch("/clients/{client_id}", response_model=ClientProfile)
async def update_client(client_id: int, req: FieldUpdate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.catalog.update_client_profile(client_id, req.field, req.value)


@router.delete("/clients/{client_id}", status_code=204)
async def remove_client(client_id: int, session: ProjectSession = Depends(get_session)):
    if client_id == session.active_client_id:
        raise HTTPException(status_code=409, detail="Cannot remove the active client profile")
    with service_errors():
        session.catalog.remove_client_profile(client_id)


# ─── AI suggestions ──────────────────────────────────────────────────────────

@router.post("/manpower/suggest")
async def suggest_manpower(req: SuggestRequest):
    """Typical cost components for a role; the caller reviews before adding."""
    try:
        return await proposal_service.suggest_manpower_rate(req.name)
    except (RuntimeError, ValueError) as e:
        logger.error(f"Manpower rate suggestion failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to get AI assistance for the database item.")


@router.post("/materials/suggest")
async def suggest_material(req: SuggestRequest):
    try:
        return await proposal_service.suggest_material_rate(req.name)
    except (RuntimeError, ValueError) as e:
        logger.error(f"Material rate suggestion failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to get AI assistance for the material.")
