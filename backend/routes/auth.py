"""
LeadDesk - Routes Auth
Login / Logout / Session / User management.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import hash_password, verify_password
from models import User, UserLogin, UserCreate, UserUpdate, UserResponse
from routes.deps import get_store, get_sessions
from services.errors import NotFoundError
from services.permissions import require_permission, get_preset_permissions
from services.sessions import SessionRegistry
from services.store import Store

logger = logging.getLogger("auth")

router = APIRouter(prefix="/auth", tags=["Auth"])
users_router = APIRouter(prefix="/users", tags=["Users"])
security = HTTPBearer(auto_error=False)


# ==================== HELPERS ====================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: Store = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
) -> User:
    """Logged-in user from the bearer token."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    session = sessions.resolve(credentials.credentials)
    if session is None:
        raise HTTPException(status_code=401, detail="Session expired")

    user = await store.get_user(session.user_id)
    if user is None:
        sessions.close(credentials.credentials)
        raise HTTPException(status_code=401, detail="User not found")

    return user


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(
    data: UserLogin,
    store: Store = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
):
    """User login: returns the user (no password hash) and a bearer token."""
    user = await store.get_user_by_username(data.username.strip())

    if not user or not verify_password(data.password, user.password_hash):
        logger.info(f"[AUTH] Failed login for '{data.username}'")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    session = sessions.open(user.id)
    logger.info(f"[AUTH] User {user.id} '{user.username}' logged in")

    return {
        "token": session.token,
        "expires_at": session.expires_at.isoformat(),
        "user": UserResponse.from_user(user),
        "permissions": get_preset_permissions(user.role),
    }


@router.post("/logout")
async def logout(
    user: User = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    sessions: SessionRegistry = Depends(get_sessions),
):
    if credentials:
        sessions.close(credentials.credentials)
    return {"success": True}


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """Returns user + permissions."""
    return {
        "user": UserResponse.from_user(user),
        "permissions": get_preset_permissions(user.role),
    }


# ==================== USERS ====================

@users_router.get("/consultants")
async def list_consultants(
    user: User = Depends(require_permission("users.view")),
    store: Store = Depends(get_store),
):
    consultants = await store.list_consultants()
    return [UserResponse.from_user(c) for c in consultants]


@users_router.get("")
async def list_users(
    user: User = Depends(require_permission("users.manage")),
    store: Store = Depends(get_store),
):
    return [UserResponse.from_user(u) for u in await store.list_users()]


@users_router.post("")
async def create_user(
    data: UserCreate,
    user: User = Depends(require_permission("users.manage")),
    store: Store = Depends(get_store),
):
    """Create a user. Duplicate username -> 409."""
    new_user = await store.create_user(
        username=data.username,
        password_hash=hash_password(data.password),
        name=data.name.strip(),
        email=data.email or None,
        role=data.role,
    )
    logger.info(f"[AUTH] User {new_user.id} created by {user.username}")
    return UserResponse.from_user(new_user)


@users_router.put("/{user_id}")
async def update_user(
    user_id: int,
    data: UserUpdate,
    user: User = Depends(require_permission("users.manage")),
    store: Store = Depends(get_store),
):
    update_data = data.model_dump(exclude_none=True, exclude={"password"})
    if data.password:
        update_data["password_hash"] = hash_password(data.password)

    updated = await store.update_user(user_id, **update_data)
    if updated is None:
        raise NotFoundError("user", user_id)

    logger.info(f"[AUTH] User {user_id} updated by {user.username}: {sorted(update_data)}")
    return UserResponse.from_user(updated)


@users_router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    user: User = Depends(require_permission("users.manage")),
    store: Store = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Delete a user. Their leads and proposals keep the (now dangling) id."""
    if user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    if not await store.delete_user(user_id):
        raise NotFoundError("user", user_id)

    sessions.revoke_user(user_id)
    return {"message": "User deleted successfully"}
