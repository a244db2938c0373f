"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Proposal model                                                   ║
║                                                                              ║
║  RULES:                                                                      ║
║  - The five rates are ALWAYS present, stored as decimal strings ("1.01")     ║
║    and never re-parsed: what was stored is what is rendered                  ║
║  - consultant_name is a snapshot taken at creation                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


RATE_FIELDS = (
    "pix_rate",
    "debit_rate",
    "credit_rate",
    "credit_12x_rate",
    "anticipation_rate",
)

# Last fallback when neither the caller nor the settings give a value
DEFAULT_RATES: Dict[str, str] = {
    "pix_rate": "0.00",
    "debit_rate": "0.51",
    "credit_rate": "1.01",
    "credit_12x_rate": "1.29",
    "anticipation_rate": "2.49",
}

# ASCII digits, two fractional digits, no sign, no exponent
RATE_PATTERN = r"[0-9]+\.[0-9]{2}"


class Proposal(BaseModel):
    """Stored proposal record (proposals.jsonl)"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    cnpj: str
    company_name: str
    company_size: str = ""
    consultant_id: Optional[int] = None
    consultant_name: str
    phone: Optional[str] = None

    pix_rate: str = DEFAULT_RATES["pix_rate"]
    debit_rate: str = DEFAULT_RATES["debit_rate"]
    credit_rate: str = DEFAULT_RATES["credit_rate"]
    credit_12x_rate: str = DEFAULT_RATES["credit_12x_rate"]
    anticipation_rate: str = DEFAULT_RATES["anticipation_rate"]

    status: ProposalStatus = ProposalStatus.DRAFT
    lead_id: Optional[int] = None  # Set when issued from a lead
    created_at: datetime

    def rates(self) -> Dict[str, str]:
        return {field: getattr(self, field) for field in RATE_FIELDS}


class RateOverrides(BaseModel):
    """Any subset of the five rates; missing / empty means 'use the default'"""
    pix_rate: Optional[str] = None
    debit_rate: Optional[str] = None
    credit_rate: Optional[str] = None
    credit_12x_rate: Optional[str] = None
    anticipation_rate: Optional[str] = None


class ProposalCreate(RateOverrides):
    """Free-form proposal typed in by staff"""
    cnpj: str
    company_name: str
    company_size: Optional[str] = None
    consultant_id: int
    consultant_name: str
    phone: Optional[str] = None
    status: ProposalStatus = ProposalStatus.DRAFT


class ProposalFromLead(RateOverrides):
    """Proposal issued from an existing lead"""
    lead_id: int
    consultant_id: Optional[int] = None  # Defaults to the lead's consultant
    phone: Optional[str] = None


class ProposalStatusUpdate(BaseModel):
    status: ProposalStatus
