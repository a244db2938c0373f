"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Lead Lifecycle                                                   ║
║                                                                              ║
║  STRICT STATUS TRANSITION RULES                                              ║
║                                                                              ║
║  ONLY THIS MODULE changes lead.status                                        ║
║  (proposal_engine converts through mark_lead_converted)                      ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - status="assigned" IMPLIES consultant_id is set                            ║
║  - "converted" is terminal                                                   ║
║  - completed -> assigned (reopen) keeps the previous consultant              ║
║  - a consultant only moves their own leads                                   ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from config import NEW_LEAD_WINDOW_SECONDS, now_utc
from models import Lead, LeadResponse, LeadStatus, User, UserRole
from services.errors import (
    InputValidationError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from services.store import Store

logger = logging.getLogger("lead_lifecycle")


# ════════════════════════════════════════════════════════════════════════════
# VALID STATE TRANSITIONS
# ════════════════════════════════════════════════════════════════════════════

VALID_LEAD_TRANSITIONS = {
    LeadStatus.PENDING: [LeadStatus.ASSIGNED, LeadStatus.CONVERTED],
    LeadStatus.ASSIGNED: [LeadStatus.COMPLETED, LeadStatus.CONVERTED],
    LeadStatus.COMPLETED: [LeadStatus.ASSIGNED, LeadStatus.CONVERTED],  # reopen
    LeadStatus.CONVERTED: [],  # TERMINAL
}

# assign_lead() also accepts re-assignment of an already assigned lead
ASSIGNABLE_FROM = [LeadStatus.PENDING, LeadStatus.ASSIGNED]


def validate_lead_transition(lead: Lead, to_status: LeadStatus):
    valid_next = VALID_LEAD_TRANSITIONS.get(lead.status, [])
    if to_status not in valid_next:
        raise InvalidTransitionError(
            f"INVALID TRANSITION: lead {lead.id} cannot go from '{lead.status.value}' "
            f"to '{to_status.value}'. Valid transitions: {[s.value for s in valid_next]}"
        )


def check_actor_owns_lead(lead: Lead, actor: Optional[User]):
    """Admins (and internal callers, actor=None) may touch any lead"""
    if actor is None or actor.role == UserRole.ADMIN:
        return
    if lead.consultant_id != actor.id:
        logger.warning(
            f"[LEAD] Consultant {actor.id} tried to change lead {lead.id} "
            f"owned by {lead.consultant_id}"
        )
        raise PermissionDeniedError(f"Lead {lead.id} is not assigned to you")


# ════════════════════════════════════════════════════════════════════════════
# TRANSITIONS
# ════════════════════════════════════════════════════════════════════════════

async def assign_lead(store: Store, lead_id: int, consultant_id: int) -> Lead:
    """
    pending|assigned -> assigned, with consultant_id set.
    The consultant does not have to exist: the id is a lookup key only.
    """
    def guard(lead: Lead):
        if lead.status not in ASSIGNABLE_FROM:
            raise InvalidTransitionError(
                f"INVALID TRANSITION: lead {lead.id} cannot be assigned from '{lead.status.value}'"
            )

    lead = await store.update_lead(
        lead_id,
        guard=guard,
        consultant_id=consultant_id,
        status=LeadStatus.ASSIGNED,
    )
    if lead is None:
        raise NotFoundError("lead", lead_id)

    logger.info(f"[LEAD] Lead {lead_id} -> assigned | consultant={consultant_id}")
    return lead


async def set_lead_status(
    store: Store,
    lead_id: int,
    status: LeadStatus,
    actor: Optional[User] = None,
) -> Lead:
    """
    Move a lead along the transition table. Going to "assigned" from here is
    only the reopen path, so the lead must already carry a consultant.
    """
    def guard(lead: Lead):
        check_actor_owns_lead(lead, actor)
        validate_lead_transition(lead, status)
        if status == LeadStatus.ASSIGNED and lead.consultant_id is None:
            raise InvalidTransitionError(
                f"Lead {lead.id} has no consultant; use assignment instead"
            )

    lead = await store.update_lead(lead_id, guard=guard, status=status)
    if lead is None:
        raise NotFoundError("lead", lead_id)

    logger.info(f"[LEAD] Lead {lead_id} -> {status.value}")
    return lead


async def mark_lead_converted(store: Store, lead_id: int, consultant_id: Optional[int]) -> Lead:
    """A proposal was issued from the lead. Keeps its consultant, or takes the issuer's."""
    def guard(lead: Lead):
        validate_lead_transition(lead, LeadStatus.CONVERTED)

    current = await store.get_lead(lead_id)
    if current is None:
        raise NotFoundError("lead", lead_id)

    fields = {"status": LeadStatus.CONVERTED}
    if current.consultant_id is None and consultant_id is not None:
        fields["consultant_id"] = consultant_id

    lead = await store.update_lead(lead_id, guard=guard, **fields)
    if lead is None:
        raise NotFoundError("lead", lead_id)

    logger.info(f"[LEAD] Lead {lead_id} -> converted | consultant={lead.consultant_id}")
    return lead


async def update_lead_notes(
    store: Store,
    lead_id: int,
    notes: Optional[str],
    actor: Optional[User] = None,
) -> Lead:
    def guard(lead: Lead):
        check_actor_owns_lead(lead, actor)

    lead = await store.update_lead(lead_id, guard=guard, notes=notes)
    if lead is None:
        raise NotFoundError("lead", lead_id)
    return lead


# ════════════════════════════════════════════════════════════════════════════
# CREATION
# ════════════════════════════════════════════════════════════════════════════

async def register_lead(
    store: Store,
    cnpj: str,
    company_name: str,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
    actor: Optional[User] = None,
) -> Lead:
    """
    Manual registration by staff. Starts pending; when a consultant registers
    it, it goes straight to them.
    """
    errors = {}
    if not (cnpj or "").strip():
        errors["cnpj"] = "required"
    if not (company_name or "").strip():
        errors["company_name"] = "required"
    if errors:
        raise InputValidationError("Missing required lead fields", errors)

    lead = await store.create_lead(
        cnpj=cnpj.strip(),
        company_name=company_name.strip(),
        phone=phone or None,
        notes=notes or None,
        status=LeadStatus.PENDING,
    )

    if actor is not None and actor.role == UserRole.CONSULTANT:
        lead = await assign_lead(store, lead.id, actor.id)

    return lead


# ════════════════════════════════════════════════════════════════════════════
# QUERIES
# ════════════════════════════════════════════════════════════════════════════

def is_new_lead(lead: Lead, now: Optional[datetime] = None) -> bool:
    """Pending and created less than NEW_LEAD_WINDOW_SECONDS ago"""
    if lead.status != LeadStatus.PENDING:
        return False
    now = now or now_utc()
    return now - lead.created_at <= timedelta(seconds=NEW_LEAD_WINDOW_SECONDS)


async def pending_leads(store: Store, recent_only: bool = False) -> List[Lead]:
    leads = await store.list_leads(status=LeadStatus.PENDING)
    if recent_only:
        now = now_utc()
        leads = [l for l in leads if is_new_lead(l, now)]
    return leads


async def leads_by_consultant(store: Store, consultant_id: int) -> List[Lead]:
    return await store.list_leads(consultant_id=consultant_id)


async def all_leads(store: Store) -> List[Lead]:
    return await store.list_leads()


async def describe_consultant(store: Store, consultant_id: Optional[int]) -> Tuple[Optional[str], bool]:
    """(name, known). A dangling or missing reference gives (None, False)."""
    if consultant_id is None:
        return None, False
    user = await store.get_user(consultant_id)
    if user is None:
        return None, False
    return user.name, True


async def to_response(store: Store, lead: Lead, now: Optional[datetime] = None) -> LeadResponse:
    name, known = await describe_consultant(store, lead.consultant_id)
    return LeadResponse(
        **lead.model_dump(),
        is_new=is_new_lead(lead, now),
        consultant_name=name,
        consultant_known=known,
    )


async def to_responses(store: Store, leads: List[Lead]) -> List[LeadResponse]:
    """Most recent first"""
    now = now_utc()
    ordered = sorted(leads, key=lambda l: (l.created_at, l.id), reverse=True)
    return [await to_response(store, lead, now) for lead in ordered]
