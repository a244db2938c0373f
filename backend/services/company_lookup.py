"""
LeadDesk - CNPJ lookup flow

cache hit  -> Company from the store, no registry call
cache miss -> registry fetch (outside any store lock) -> Company cached
Any failure creates nothing.
"""

import logging
from typing import Dict, Optional, Tuple

from config import validate_cnpj
from models import Company, Lead, LeadStatus
from services.errors import InputValidationError
from services.registry_client import RegistryClient
from services.settings import get_default_rates
from services.store import Store

logger = logging.getLogger("company_lookup")


def clean_cnpj(cnpj: str) -> str:
    is_valid, result = validate_cnpj(cnpj)
    if not is_valid:
        raise InputValidationError(result, {"cnpj": result})
    return result


async def resolve_company(store: Store, registry: RegistryClient, cnpj: str) -> Company:
    digits = clean_cnpj(cnpj)

    cached = await store.get_company_by_cnpj(digits)
    if cached is not None:
        logger.info(f"[LOOKUP] CNPJ {digits} served from cache (company {cached.id})")
        return cached

    record = await registry.fetch(digits)
    fields = record.company_fields()
    fields["cnpj"] = digits

    company, created = await store.get_or_create_company(**fields)
    if not created:
        logger.info(f"[LOOKUP] CNPJ {digits} cached concurrently (company {company.id})")
    return company


async def lookup_company(
    store: Store,
    registry: RegistryClient,
    cnpj: str,
    phone: Optional[str] = None,
) -> Tuple[Company, Lead]:
    """Public intake: every successful lookup records a pending lead"""
    company = await resolve_company(store, registry, cnpj)
    lead = await store.create_lead(
        cnpj=company.cnpj,
        company_name=company.name,
        phone=phone or None,
        status=LeadStatus.PENDING,
    )
    logger.info(f"[LOOKUP] Lead {lead.id} recorded for CNPJ {company.cnpj}")
    return company, lead


async def autofill_company(
    store: Store,
    registry: RegistryClient,
    cnpj: str,
) -> Tuple[Company, Dict[str, str]]:
    """Proposal form prefill: company data plus the current default rates"""
    company = await resolve_company(store, registry, cnpj)
    return company, await get_default_rates(store)
