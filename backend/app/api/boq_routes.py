"""
BOQ routes — line items, BSR editing, AI costing, dashboard, export.

GET    /api/boq/items                                   — list items
POST   /api/boq/items                                   — add empty item
GET    /api/boq/items/{id}                              — one item
PATCH  /api/boq/items/{id}                              — edit one field
POST   /api/boq/items/delete                            — bulk remove
POST   /api/boq/items/{id}/select                       — select / deselect
POST   /api/boq/select-all                              — select all / none
GET    /api/boq/selection                               — selected ids
GET    /api/boq/items/{id}/breakdown                    — BSR (404 if none)
PUT    /api/boq/items/{id}/breakdown                    — save edited BSR
POST   /api/boq/items/{id}/breakdown/rows               — add row
PATCH  /api/boq/items/{id}/breakdown/rows/{section}/{i} — edit row
DELETE /api/boq/items/{id}/breakdown/rows/{section}/{i} — remove row
PATCH  /api/boq/items/{id}/breakdown/percentage         — overhead / profit %
PATCH  /api/boq/items/{id}/breakdown/quoted-price       — manual quoted price
POST   /api/boq/items/{id}/ai-assist                    — costing pass
POST   /api/boq/ai-assist/bulk                          — sequential costing passes
GET    /api/boq/dashboard                               — aggregates
GET    /api/boq/project  |  PUT /api/boq/project        — project context
GET    /api/boq/export                                  — BOQ .xlsx
"""
import logging
import os
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from app.api.deps import get_session, service_errors
from app.config import EXPORT_FILE_NAME
from app.models.boq_models import BOQItem, DashboardSummary, RateBreakdown
from app.services.costing_session import ProjectSession
from app.services.export_engine import write_boq_workbook

router = APIRouter(prefix="/api/boq", tags=["BOQ"])
logger = logging.getLogger("bsr-api")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ── Pydantic schemas ─────────────────────────────────────────────────────────

class FieldUpdate(BaseModel):
    field: str
    value: Any = None


class RemoveItemsRequest(BaseModel):
    ids: List[int]


class SelectRequest(BaseModel):
    selected: bool = True


class AddRowRequest(BaseModel):
    section: str


class PercentageUpdate(BaseModel):
    kind: str           # "overhead" | "profit"
    value: Any = None


class QuotedPriceUpdate(BaseModel):
    value: Any = None


class BulkCostingRequest(BaseModel):
    ids: Optional[List[int]] = None     # default: current selection


class BulkCostingResponse(BaseModel):
    outcomes: dict
    succeeded: int
    failed: int


class ProjectUpdate(BaseModel):
    project_name: Optional[str] = None
    client_name: Optional[str] = None
    general_notes: Optional[str] = None
    scope_of_work: Optional[str] = None
    project_duration_days: Optional[int] = Field(None, ge=0)
    active_client_id: Optional[int] = None


class ProjectInfo(BaseModel):
    project_name: str
    client_name: str
    general_notes: str
    scope_of_work: str
    project_duration_days: int
    active_client_id: Optional[int]


def _project_info(session: ProjectSession) -> ProjectInfo:
    return ProjectInfo(
        project_name=session.project_name,
        client_name=session.client_name,
        general_notes=session.general_notes,
        scope_of_work=session.scope_of_work,
        project_duration_days=session.project_duration_days,
        active_client_id=session.active_client_id,
    )


# ── Items ────────────────────────────────────────────────────────────────────

@router.get("/items", response_model=List[BOQItem])
async def list_items(session: ProjectSession = Depends(get_session)):
    return session.items.items


@router.post("/items", response_model=BOQItem, status_code=201)
async def add_item(session: ProjectSession = Depends(get_session)):
    return session.items.add_item()


@router.get("/items/{item_id}", response_model=BOQItem)
async def get_item(item_id: int, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.items.get_item(item_id)


@router.patch("/items/{item_id}", response_model=BOQItem)
async def update_item(item_id: int, req: FieldUpdate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.items.update_field(item_id, req.field, req.value)


@router.post("/items/delete")
async def remove_items(req: RemoveItemsRequest, session: ProjectSession = Depends(get_session)):
    removed = session.items.remove_items(req.ids)
    return {"removed": removed, "selected_ids": session.items.selected_ids}


# ── Selection ────────────────────────────────────────────────────────────────

@router.post("/items/{item_id}/select")
async def select_item(item_id: int, req: SelectRequest, session: ProjectSession = Depends(get_session)):
    with service_errors():
        session.items.select(item_id, req.selected)
    return {"selected_ids": session.items.selected_ids}


@router.post("/select-all")
async def select_all(req: SelectRequest, session: ProjectSession = Depends(get_session)):
    session.items.select_all(req.selected)
    return {"selected_ids": session.items.selected_ids}


@router.get("/selection")
async def get_selection(session: ProjectSession = Depends(get_session)):
    return {"selected_ids": session.items.selected_ids}


# ── Breakdown (BSR) ──────────────────────────────────────────────────────────

@router.get("/items/{item_id}/breakdown", response_model=RateBreakdown)
async def get_breakdown(item_id: int, session: ProjectSession = Depends(get_session)):
    with service_errors():
        breakdown = session.items.view_breakdown(item_id)
    if breakdown is None:
        raise HTTPException(status_code=404, detail="No rate breakdown available. Use AI Assist first.")
    return breakdown


@router.put("/items/{item_id}/breakdown", response_model=RateBreakdown)
async def save_breakdown(item_id: int, breakdown: RateBreakdown, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.save_breakdown(item_id, breakdown)


@router.post("/items/{item_id}/breakdown/rows", response_model=RateBreakdown)
async def add_breakdown_row(item_id: int, req: AddRowRequest, session: ProjectSession = Depends(get_session)):
    with service_errors():
        return session.edit_breakdown(item_id, "add_row", section=req.section)


@router.patch("/items/{item_id}/breakdown/rows/{section}/{index}", response_model=RateBreakdown)
async def update_breakdown_row(
    item_id: int,
    section: str,
    index: int,
    req: FieldUpdate,
    session: ProjectSession = Depends(get_session),
):
    with service_errors():
        return session.edit_breakdown(
            item_id, "update_row", section=section, index=index, field=req.field, value=req.value
        )


@router.delete("/items/{item_id}/breakdown/rows/{section}/{index}", response_model=RateBreakdown)
async def remove_breakdown_row(
    item_id: int, section: str, index: int, session: ProjectSession = Depends(get_session)
):
    with service_errors():
        return session.edit_breakdown(item_id, "remove_row", section=section, index=index)


@router.patch("/items/{item_id}/breakdown/percentage", response_model=RateBreakdown)
async def update_breakdown_percentage(
    item_id: int, req: PercentageUpdate, session: ProjectSession = Depends(get_session)
):
    with service_errors():
        return session.edit_breakdown(item_id, "set_percentage", kind=req.kind, value=req.value)


@router.patch("/items/{item_id}/breakdown/quoted-price", response_model=RateBreakdown)
async def update_quoted_price(
    item_id: int, req: QuotedPriceUpdate, session: ProjectSession = Depends(get_session)
):
    with service_errors():
        return session.edit_breakdown(item_id, "set_quoted_unit_price", value=req.value)


# ── AI costing ───────────────────────────────────────────────────────────────

@router.post("/items/{item_id}/ai-assist", response_model=BOQItem)
async def ai_assist(item_id: int, session: ProjectSession = Depends(get_session)):
    """Run one costing pass. 400 on empty description, 502 when the proposal fails."""
    with service_errors():
        session.items.require_costable(item_id)
    ok = await session.run_costing_pass(item_id)
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to get AI assistance for this item.")
    return session.items.get_item(item_id)


@router.post("/ai-assist/bulk", response_model=BulkCostingResponse)
async def ai_assist_bulk(req: BulkCostingRequest, session: ProjectSession = Depends(get_session)):
    with service_errors():
        outcomes = await session.run_bulk_costing(req.ids)
    succeeded = sum(1 for ok in outcomes.values() if ok)
    return BulkCostingResponse(
        outcomes={str(k): v for k, v in outcomes.items()},
        succeeded=succeeded,
        failed=len(outcomes) - succeeded,
    )


# ── Dashboard & project ──────────────────────────────────────────────────────

@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(session: ProjectSession = Depends(get_session)):
    return session.dashboard()


@router.get("/project", response_model=ProjectInfo)
async def get_project(session: ProjectSession = Depends(get_session)):
    return _project_info(session)


@router.put("/project", response_model=ProjectInfo)
async def update_project(req: ProjectUpdate, session: ProjectSession = Depends(get_session)):
    with service_errors():
        session.update_project(**req.model_dump(exclude_none=True))
    return _project_info(session)


@router.get("/export")
async def export_boq(session: ProjectSession = Depends(get_session)):
    path = write_boq_workbook(session.items.items, session.project_name, session.client_name)
    # Stored name is unique per call; the download keeps the plain name
    return FileResponse(
        path,
        media_type=XLSX_MEDIA_TYPE,
        filename=f"{EXPORT_FILE_NAME}.xlsx",
        background=BackgroundTask(os.remove, path),
    )
