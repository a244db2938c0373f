"""
Routes for Leads
Intake queue, consultant follow-up, assignment.
"""

from fastapi import APIRouter, Depends

from models import (
    User,
    LeadCreate,
    LeadAssign,
    LeadStatusUpdate,
    LeadNotesUpdate,
)
from routes.deps import get_store
from services import lead_lifecycle
from services.errors import NotFoundError
from services.permissions import require_permission
from services.store import Store

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.post("")
async def register_lead(
    data: LeadCreate,
    user: User = Depends(require_permission("leads.create")),
    store: Store = Depends(get_store),
):
    """Manual registration. A consultant's own registrations are assigned to them."""
    lead = await lead_lifecycle.register_lead(
        store,
        cnpj=data.cnpj,
        company_name=data.company_name,
        phone=data.phone,
        notes=data.notes,
        actor=user,
    )
    return await lead_lifecycle.to_response(store, lead)


@router.get("/pending")
async def list_pending_leads(
    recent_only: bool = False,
    user: User = Depends(require_permission("leads.view")),
    store: Store = Depends(get_store),
):
    """
    Intake queue, most recent first.
    recent_only=true keeps the leads flagged is_new (dashboard polling).
    """
    leads = await lead_lifecycle.pending_leads(store, recent_only=recent_only)
    return await lead_lifecycle.to_responses(store, leads)


@router.get("/all")
async def list_all_leads(
    user: User = Depends(require_permission("leads.view")),
    store: Store = Depends(get_store),
):
    leads = await lead_lifecycle.all_leads(store)
    return await lead_lifecycle.to_responses(store, leads)


@router.get("/consultant/{consultant_id}")
async def list_leads_by_consultant(
    consultant_id: int,
    user: User = Depends(require_permission("leads.view")),
    store: Store = Depends(get_store),
):
    leads = await lead_lifecycle.leads_by_consultant(store, consultant_id)
    return await lead_lifecycle.to_responses(store, leads)


@router.get("/{lead_id}")
async def get_lead(
    lead_id: int,
    user: User = Depends(require_permission("leads.view")),
    store: Store = Depends(get_store),
):
    lead = await store.get_lead(lead_id)
    if lead is None:
        raise NotFoundError("lead", lead_id)
    return await lead_lifecycle.to_response(store, lead)


@router.put("/{lead_id}/assign")
async def assign_lead(
    lead_id: int,
    data: LeadAssign,
    user: User = Depends(require_permission("leads.assign")),
    store: Store = Depends(get_store),
):
    lead = await lead_lifecycle.assign_lead(store, lead_id, data.consultant_id)
    return await lead_lifecycle.to_response(store, lead)


@router.put("/{lead_id}/status")
async def set_lead_status(
    lead_id: int,
    data: LeadStatusUpdate,
    user: User = Depends(require_permission("leads.edit_status")),
    store: Store = Depends(get_store),
):
    lead = await lead_lifecycle.set_lead_status(store, lead_id, data.status, actor=user)
    return await lead_lifecycle.to_response(store, lead)


@router.put("/{lead_id}/notes")
async def update_lead_notes(
    lead_id: int,
    data: LeadNotesUpdate,
    user: User = Depends(require_permission("leads.edit_status")),
    store: Store = Depends(get_store),
):
    lead = await lead_lifecycle.update_lead_notes(store, lead_id, data.notes, actor=user)
    return await lead_lifecycle.to_response(store, lead)
