"""
LeadDesk - Permission System
Permission keys + role presets + FastAPI dependencies.
A user's role picks its preset; routes only ever check keys.
"""

import logging
from typing import Dict, List
from fastapi import Depends, HTTPException

from models import User, UserRole

logger = logging.getLogger("permissions")

# ════════════════════════════════════════════════════════════════════════
# ALL PERMISSION KEYS
# ════════════════════════════════════════════════════════════════════════

ALL_PERMISSION_KEYS: List[str] = [
    "leads.view",
    "leads.create",
    "leads.edit_status",
    "leads.assign",

    "proposals.view",
    "proposals.create",
    "proposals.edit_status",
    "proposals.delete",
    "proposals.delete_all",

    "companies.autofill",
    "messages.render",

    "settings.view",
    "settings.edit",

    "users.view",
    "users.manage",
]

# ════════════════════════════════════════════════════════════════════════
# ROLE PRESETS
# ════════════════════════════════════════════════════════════════════════

ROLE_PRESETS: Dict[str, Dict[str, bool]] = {
    UserRole.ADMIN.value: {k: True for k in ALL_PERMISSION_KEYS},

    UserRole.CONSULTANT.value: {
        "leads.view": True, "leads.create": True, "leads.edit_status": True, "leads.assign": False,
        "proposals.view": True, "proposals.create": True, "proposals.edit_status": True,
        "proposals.delete": True, "proposals.delete_all": False,
        "companies.autofill": True, "messages.render": True,
        "settings.view": True, "settings.edit": False,
        "users.view": True, "users.manage": False,
    },
}


def get_preset_permissions(role) -> Dict[str, bool]:
    """Default permissions for a role (unknown role -> consultant preset)."""
    role = role.value if isinstance(role, UserRole) else role
    return dict(ROLE_PRESETS.get(role, ROLE_PRESETS[UserRole.CONSULTANT.value]))


def user_has_permission(user: User, key: str) -> bool:
    return get_preset_permissions(user.role).get(key, False) is True


# ════════════════════════════════════════════════════════════════════════
# FASTAPI DEPENDENCIES
# ════════════════════════════════════════════════════════════════════════

def require_permission(permission_key: str):
    """
    FastAPI dependency factory.
    Usage: user: User = Depends(require_permission("leads.assign"))
    """
    from routes.auth import get_current_user

    async def _check(user: User = Depends(get_current_user)):
        if not user_has_permission(user, permission_key):
            logger.warning(
                f"[PERMISSION_DENIED] user={user.username} "
                f"key={permission_key} role={user.role.value}"
            )
            raise HTTPException(
                status_code=403,
                detail=f"Permission required: {permission_key}"
            )
        return user

    return _check
