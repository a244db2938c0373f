"""
LeadDesk - Users & authentication models
Two roles: admin (configuration + cross-consultant view) and consultant.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator


class UserRole(str, Enum):
    ADMIN = "admin"
    CONSULTANT = "consultant"


VALID_ROLES = [r.value for r in UserRole]


class User(BaseModel):
    """Stored user record (users.jsonl). Never returned as-is over HTTP."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    username: str
    password_hash: str
    name: str
    email: Optional[str] = None
    role: UserRole = UserRole.CONSULTANT
    created_at: datetime


class UserLogin(BaseModel):
    username: str
    password: str


class UserCreate(BaseModel):
    username: str
    password: str
    name: str
    email: Optional[str] = None
    role: UserRole = UserRole.CONSULTANT

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("username is required")
        return v

    @field_validator("password", "name")
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    role: UserRole
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.model_dump(exclude={"password_hash"}))
