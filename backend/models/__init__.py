"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Models Package                                                   ║
║                                                                              ║
║  Exports every model for easy import                                         ║
║  from models import Lead, LeadStatus, Proposal, etc.                         ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Users / auth
from .auth import (
    UserRole,
    VALID_ROLES,
    User,
    UserLogin,
    UserCreate,
    UserUpdate,
    UserResponse,
)

# Company (registry cache)
from .company import (
    Company,
    CnpjLookup,
    CnpjAutofill,
)

# Lead
from .lead import (
    LeadStatus,
    VALID_LEAD_STATUSES,
    Lead,
    LeadCreate,
    LeadAssign,
    LeadStatusUpdate,
    LeadNotesUpdate,
    LeadResponse,
)

# Proposal
from .proposal import (
    ProposalStatus,
    RATE_FIELDS,
    DEFAULT_RATES,
    RATE_PATTERN,
    Proposal,
    RateOverrides,
    ProposalCreate,
    ProposalFromLead,
    ProposalStatusUpdate,
)

# Settings / message
from .settings import (
    DefaultRatesUpdate,
    WhatsappTemplateUpdate,
    WhatsappMessageRequest,
)

__all__ = [
    # Auth
    "UserRole",
    "VALID_ROLES",
    "User",
    "UserLogin",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    # Company
    "Company",
    "CnpjLookup",
    "CnpjAutofill",
    # Lead
    "LeadStatus",
    "VALID_LEAD_STATUSES",
    "Lead",
    "LeadCreate",
    "LeadAssign",
    "LeadStatusUpdate",
    "LeadNotesUpdate",
    "LeadResponse",
    # Proposal
    "ProposalStatus",
    "RATE_FIELDS",
    "DEFAULT_RATES",
    "RATE_PATTERN",
    "Proposal",
    "RateOverrides",
    "ProposalCreate",
    "ProposalFromLead",
    "ProposalStatusUpdate",
    # Settings
    "DefaultRatesUpdate",
    "WhatsappTemplateUpdate",
    "WhatsappMessageRequest",
]
