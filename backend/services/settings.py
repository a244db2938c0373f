"""
LeadDesk - Settings service

Flat key -> string settings, persisted by the store (settings.jsonl).

Settings available:
- pix_rate, debit_rate, credit_rate, credit_12x_rate, anticipation_rate:
  default rates used when a proposal does not give its own
- whatsapp_template: outbound message template
"""

import re
import logging
from typing import Dict, Optional

from models import DEFAULT_RATES, RATE_FIELDS, RATE_PATTERN
from services.errors import InputValidationError
from services.message_templater import DEFAULT_WHATSAPP_TEMPLATE
from services.store import Store

logger = logging.getLogger("settings")

WHATSAPP_TEMPLATE_KEY = "whatsapp_template"

_RATE_RE = re.compile(RATE_PATTERN)


def is_supplied(value: Optional[str]) -> bool:
    """None and "" both mean 'not supplied'"""
    return value is not None and value != ""


def validate_rates(rates: Dict[str, Optional[str]]) -> Dict[str, str]:
    """
    Keep the supplied rates only, and check their shape ("1.29").
    Raises InputValidationError listing every bad field.
    """
    supplied = {}
    errors = {}
    for field in RATE_FIELDS:
        value = rates.get(field)
        if not is_supplied(value):
            continue
        value = str(value).strip()
        if not _RATE_RE.fullmatch(value):
            errors[field] = "expected a decimal with two fractional digits, e.g. 1.29"
            continue
        supplied[field] = value

    if errors:
        raise InputValidationError("Invalid rates", errors)
    return supplied


# ---- Default rates ----

async def get_default_rates(store: Store) -> Dict[str, str]:
    """Stored override per key, else the built-in constant"""
    settings = await store.all_settings()
    return {
        field: settings[field] if is_supplied(settings.get(field)) else DEFAULT_RATES[field]
        for field in RATE_FIELDS
    }


async def set_default_rates(store: Store, rates: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Writes only the rates present; returns the full resulting set"""
    supplied = validate_rates(rates)
    for field, value in supplied.items():
        await store.set_setting(field, value)

    if supplied:
        logger.info(f"[SETTINGS] Default rates updated: {supplied}")
    return await get_default_rates(store)


# ---- WhatsApp template ----

async def get_whatsapp_template(store: Store) -> str:
    template = await store.get_setting(WHATSAPP_TEMPLATE_KEY)
    return template if template else DEFAULT_WHATSAPP_TEMPLATE


async def set_whatsapp_template(store: Store, template: str) -> str:
    if not template or not template.strip():
        raise InputValidationError("Template cannot be empty", {"template": "required"})

    await store.set_setting(WHATSAPP_TEMPLATE_KEY, template)
    logger.info(f"[SETTINGS] WhatsApp template updated ({len(template)} chars)")
    return template
