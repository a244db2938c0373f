"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Lead model                                                       ║
║                                                                              ║
║  RULES:                                                                      ║
║  1. A lead is created on every CNPJ lookup, or by staff by hand              ║
║  2. Leads are never deleted                                                  ║
║  3. Status changes only through services/lead_lifecycle.py                   ║
║  4. consultant_id is a lookup, not ownership (may dangle)                    ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class LeadStatus(str, Enum):
    PENDING = "pending"       # Waiting in the intake queue
    ASSIGNED = "assigned"     # A consultant owns the follow-up
    COMPLETED = "completed"   # Consultant marked the work done (can be reopened)
    CONVERTED = "converted"   # A proposal was issued from it (terminal)


VALID_LEAD_STATUSES = [s.value for s in LeadStatus]


class Lead(BaseModel):
    """Stored lead record (leads.jsonl)"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    cnpj: str
    company_name: str
    phone: Optional[str] = None
    consultant_id: Optional[int] = None
    status: LeadStatus = LeadStatus.PENDING
    notes: Optional[str] = None
    created_at: datetime


class LeadCreate(BaseModel):
    """Manual registration by staff"""
    cnpj: str
    company_name: str
    phone: Optional[str] = None
    notes: Optional[str] = None


class LeadAssign(BaseModel):
    consultant_id: int


class LeadStatusUpdate(BaseModel):
    status: LeadStatus


class LeadNotesUpdate(BaseModel):
    notes: Optional[str] = None


class LeadResponse(BaseModel):
    """Lead as served to dashboards, with the computed fields"""
    id: int
    cnpj: str
    company_name: str
    phone: Optional[str] = None
    consultant_id: Optional[int] = None
    status: LeadStatus
    notes: Optional[str] = None
    created_at: datetime

    is_new: bool = False
    consultant_name: Optional[str] = None
    consultant_known: bool = False  # False when consultant_id is unset or dangling
