"""
Routes for Proposals
Creation (form / from lead), listing, status, printable document, WhatsApp text.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from config import now_utc
from models import (
    User,
    ProposalCreate,
    ProposalFromLead,
    ProposalStatusUpdate,
    WhatsappMessageRequest,
)
from routes.deps import get_store
from services import proposal_engine
from services.document_renderer import render_proposal_document
from services.message_templater import render_message, message_fields
from services.permissions import require_permission
from services.settings import get_whatsapp_template
from services.store import Store

router = APIRouter(prefix="/proposals", tags=["Proposals"])
messages_router = APIRouter(tags=["Messages"])


@router.post("")
async def create_proposal(
    data: ProposalCreate,
    user: User = Depends(require_permission("proposals.create")),
    store: Store = Depends(get_store),
):
    return await proposal_engine.create_from_form(store, data)


@router.post("/from-lead")
async def create_proposal_from_lead(
    data: ProposalFromLead,
    user: User = Depends(require_permission("proposals.create")),
    store: Store = Depends(get_store),
):
    """Issue a proposal for a lead; the lead becomes converted."""
    return await proposal_engine.create_from_lead(store, data)


@router.get("")
async def list_proposals(
    user: User = Depends(require_permission("proposals.view")),
    store: Store = Depends(get_store),
):
    proposals = await proposal_engine.list_proposals(store)
    return proposal_engine.most_recent_first(proposals)


@router.get("/consultant/{consultant_id}")
async def list_proposals_by_consultant(
    consultant_id: int,
    user: User = Depends(require_permission("proposals.view")),
    store: Store = Depends(get_store),
):
    proposals = await proposal_engine.list_by_consultant(store, consultant_id)
    return proposal_engine.most_recent_first(proposals)


@router.get("/{proposal_id}")
async def get_proposal(
    proposal_id: int,
    user: User = Depends(require_permission("proposals.view")),
    store: Store = Depends(get_store),
):
    return await proposal_engine.get_proposal(store, proposal_id)


@router.get("/{proposal_id}/pdf", response_class=HTMLResponse)
async def get_proposal_document(
    proposal_id: int,
    user: User = Depends(require_permission("proposals.view")),
    store: Store = Depends(get_store),
):
    """Printable HTML page, saved as PDF from the browser."""
    proposal = await proposal_engine.get_proposal(store, proposal_id)
    return HTMLResponse(render_proposal_document(proposal, now_utc()))


@router.put("/{proposal_id}/status")
async def update_proposal_status(
    proposal_id: int,
    data: ProposalStatusUpdate,
    user: User = Depends(require_permission("proposals.edit_status")),
    store: Store = Depends(get_store),
):
    return await proposal_engine.update_status(store, proposal_id, data.status, actor=user)


@router.delete("/{proposal_id}")
async def delete_proposal(
    proposal_id: int,
    user: User = Depends(require_permission("proposals.delete")),
    store: Store = Depends(get_store),
):
    """Consultants may only delete their own proposals."""
    await proposal_engine.delete_proposal(store, proposal_id, actor=user)
    return {"message": "Proposal deleted successfully"}


@router.delete("")
async def delete_all_proposals(
    user: User = Depends(require_permission("proposals.delete_all")),
    store: Store = Depends(get_store),
):
    count = await store.delete_all_proposals()
    return {"message": "All proposals deleted successfully", "deleted": count}


# ==================== WHATSAPP ====================

@messages_router.post("/whatsapp-message")
async def generate_whatsapp_message(
    data: WhatsappMessageRequest,
    user: User = Depends(require_permission("messages.render")),
    store: Store = Depends(get_store),
):
    """
    Render the stored template. With proposal_id, the proposal fills every
    field the body leaves out.
    """
    source = None
    if data.proposal_id is not None:
        proposal = await proposal_engine.get_proposal(store, data.proposal_id)
        source = proposal.model_dump(mode="json")

    fields = message_fields(source, **data.model_dump(exclude={"proposal_id"}))
    template = await get_whatsapp_template(store)
    return {"message": render_message(template, fields)}
