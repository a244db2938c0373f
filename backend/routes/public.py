"""
LeadDesk - Public routes (no authentication)
- CNPJ intake form: lookup + lead creation
- Cached lookup by URL
- Health check
"""

from fastapi import APIRouter, Depends

from models import CnpjLookup, CnpjAutofill, User
from routes.deps import get_store, get_registry
from services.company_lookup import lookup_company, resolve_company, autofill_company
from services.permissions import require_permission
from services.registry_client import RegistryClient
from services.store import Store

router = APIRouter(tags=["Public"])


@router.post("/cnpj-lookup")
async def cnpj_lookup(
    data: CnpjLookup,
    store: Store = Depends(get_store),
    registry: RegistryClient = Depends(get_registry),
):
    """Intake form: company data for the CNPJ, and a pending lead recorded."""
    company, lead = await lookup_company(store, registry, data.cnpj, data.phone)
    return {**company.model_dump(mode="json"), "lead_id": lead.id}


@router.get("/cnpj/{cnpj}")
async def get_cnpj(
    cnpj: str,
    store: Store = Depends(get_store),
    registry: RegistryClient = Depends(get_registry),
):
    """Direct URL access. Same lookup, no lead."""
    return await resolve_company(store, registry, cnpj)


@router.post("/cnpj-autofill")
async def cnpj_autofill(
    data: CnpjAutofill,
    user: User = Depends(require_permission("companies.autofill")),
    store: Store = Depends(get_store),
    registry: RegistryClient = Depends(get_registry),
):
    """Proposal form prefill for staff."""
    company, default_rates = await autofill_company(store, registry, data.cnpj)
    return {"company": company, "default_rates": default_rates}


@router.get("/health")
async def health(store: Store = Depends(get_store)):
    return {
        "status": "ok",
        "users": len(await store.list_users()),
        "leads": len(await store.list_leads()),
        "proposals": len(await store.list_proposals()),
    }
