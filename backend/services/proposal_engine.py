"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Proposal Engine                                                  ║
║                                                                              ║
║  Builds proposals from a staff form or from an existing lead.                ║
║                                                                              ║
║  RATE RESOLUTION (per field):                                                ║
║    1. value given by the caller (None / "" = not given)                      ║
║    2. stored default-rate setting                                            ║
║    3. built-in constant (models.proposal.DEFAULT_RATES)                      ║
║                                                                              ║
║  A proposal issued from a lead converts that lead.                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import Dict, List, Optional

from config import normalize_cnpj, CNPJ_LENGTH
from models import (
    Proposal,
    ProposalCreate,
    ProposalFromLead,
    ProposalStatus,
    RATE_FIELDS,
    User,
    UserRole,
)
from services import lead_lifecycle
from services.errors import (
    InputValidationError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
)
from services.settings import get_default_rates, validate_rates
from services.store import Store

logger = logging.getLogger("proposal_engine")


async def resolve_rates(store: Store, explicit: Dict[str, Optional[str]]) -> Dict[str, str]:
    supplied = validate_rates(explicit)
    defaults = await get_default_rates(store)
    return {field: supplied.get(field, defaults[field]) for field in RATE_FIELDS}


async def _company_size(store: Store, cnpj: str) -> str:
    company = await store.get_company_by_cnpj(cnpj)
    return company.size if company else ""


def _rates_of(data) -> Dict[str, Optional[str]]:
    return {field: getattr(data, field) for field in RATE_FIELDS}


# ==================== CREATE ====================

async def create_from_form(store: Store, data: ProposalCreate) -> Proposal:
    errors = {}
    cnpj = normalize_cnpj(data.cnpj)
    if len(cnpj) != CNPJ_LENGTH:
        errors["cnpj"] = f"must have {CNPJ_LENGTH} digits"
    if not data.company_name.strip():
        errors["company_name"] = "required"
    if not data.consultant_name.strip():
        errors["consultant_name"] = "required"
    if errors:
        raise InputValidationError("Invalid proposal", errors)

    rates = await resolve_rates(store, _rates_of(data))
    company_size = data.company_size or await _company_size(store, cnpj)

    proposal = await store.create_proposal(
        cnpj=cnpj,
        company_name=data.company_name.strip(),
        company_size=company_size,
        consultant_id=data.consultant_id,
        consultant_name=data.consultant_name.strip(),
        phone=data.phone or None,
        status=data.status,
        **rates,
    )
    logger.info(f"[PROPOSAL] Proposal {proposal.id} created from form | rates={rates}")
    return proposal


async def create_from_lead(store: Store, data: ProposalFromLead) -> Proposal:
    """
    Company fields come from the lead (size from the company cache).
    The consultant defaults to the lead's and must exist, its name is
    snapshotted on the proposal.

    The lead is converted first, under the leads lock: of two concurrent
    calls for one lead, the loser fails before any proposal is written.
    """
    lead = await store.get_lead(data.lead_id)
    if lead is None:
        raise NotFoundError("lead", data.lead_id)

    consultant_id = data.consultant_id if data.consultant_id is not None else lead.consultant_id
    if consultant_id is None:
        raise InputValidationError(
            "Lead has no consultant", {"consultant_id": "required"}
        )
    consultant = await store.get_user(consultant_id)
    if consultant is None:
        raise NotFoundError("consultant", consultant_id)

    rates = await resolve_rates(store, _rates_of(data))

    lead = await lead_lifecycle.mark_lead_converted(store, lead.id, consultant.id)
    cnpj = normalize_cnpj(lead.cnpj) or lead.cnpj

    try:
        proposal = await store.create_proposal(
            cnpj=cnpj,
            company_name=lead.company_name,
            company_size=await _company_size(store, cnpj),
            consultant_id=consultant.id,
            consultant_name=consultant.name,
            phone=data.phone or lead.phone,
            lead_id=lead.id,
            **rates,
        )
    except StorageError:
        logger.error(f"[PROPOSAL] Lead {lead.id} converted but its proposal could not be written")
        raise

    logger.info(f"[PROPOSAL] Proposal {proposal.id} created from lead {lead.id}")
    return proposal


# ==================== UPDATE / DELETE ====================

def check_actor_owns_proposal(proposal: Proposal, actor: Optional[User]):
    """Admins (and internal callers, actor=None) may touch any proposal"""
    if actor is None or actor.role == UserRole.ADMIN:
        return
    if proposal.consultant_id != actor.id:
        logger.warning(
            f"[PROPOSAL] Consultant {actor.id} tried to change proposal {proposal.id} "
            f"owned by {proposal.consultant_id}"
        )
        raise PermissionDeniedError(f"Proposal {proposal.id} is not yours")


async def update_status(
    store: Store,
    proposal_id: int,
    status: ProposalStatus,
    actor: Optional[User] = None,
) -> Proposal:
    def guard(proposal: Proposal):
        check_actor_owns_proposal(proposal, actor)

    proposal = await store.update_proposal(proposal_id, guard=guard, status=status)
    if proposal is None:
        raise NotFoundError("proposal", proposal_id)
    logger.info(f"[PROPOSAL] Proposal {proposal_id} -> {status.value}")
    return proposal


async def delete_proposal(store: Store, proposal_id: int, actor: Optional[User] = None):
    def guard(proposal: Proposal):
        check_actor_owns_proposal(proposal, actor)

    if not await store.delete_proposal(proposal_id, guard=guard):
        raise NotFoundError("proposal", proposal_id)


# ==================== QUERIES ====================

async def get_proposal(store: Store, proposal_id: int) -> Proposal:
    proposal = await store.get_proposal(proposal_id)
    if proposal is None:
        raise NotFoundError("proposal", proposal_id)
    return proposal


async def list_proposals(store: Store) -> List[Proposal]:
    return await store.list_proposals()


async def list_by_consultant(store: Store, consultant_id: int) -> List[Proposal]:
    return await store.list_proposals(consultant_id=consultant_id)


def most_recent_first(proposals: List[Proposal]) -> List[Proposal]:
    return sorted(proposals, key=lambda p: (p.created_at, p.id), reverse=True)
