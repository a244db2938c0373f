"""
LeadDesk - Routes Settings

Endpoints for the system settings:
- Default proposal rates
- WhatsApp message template
"""

from fastapi import APIRouter, Depends

from models import User, DefaultRatesUpdate, WhatsappTemplateUpdate
from routes.deps import get_store
from services.permissions import require_permission
from services.settings import (
    get_default_rates,
    set_default_rates,
    get_whatsapp_template,
    set_whatsapp_template,
)
from services.store import Store

router = APIRouter(prefix="/settings", tags=["Settings"])


# ---- Default rates ----

@router.get("/default-rates")
async def read_default_rates(
    user: User = Depends(require_permission("settings.view")),
    store: Store = Depends(get_store),
):
    return await get_default_rates(store)


@router.post("/default-rates")
async def update_default_rates(
    data: DefaultRatesUpdate,
    user: User = Depends(require_permission("settings.edit")),
    store: Store = Depends(get_store),
):
    """Only the rates present in the body change; the others keep their value."""
    rates = await set_default_rates(store, data.model_dump())
    return {"message": "Default rates updated successfully", "rates": rates}


# ---- WhatsApp template ----

@router.get("/whatsapp-template")
async def read_whatsapp_template(
    user: User = Depends(require_permission("settings.view")),
    store: Store = Depends(get_store),
):
    return {"template": await get_whatsapp_template(store)}


@router.post("/whatsapp-template")
async def update_whatsapp_template(
    data: WhatsappTemplateUpdate,
    user: User = Depends(require_permission("settings.edit")),
    store: Store = Depends(get_store),
):
    await set_whatsapp_template(store, data.template)
    return {"message": "WhatsApp template updated successfully"}
