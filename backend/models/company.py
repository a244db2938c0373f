"""
LeadDesk - Company model
Local cache of the external registry, one record per CNPJ, immutable.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Company(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    cnpj: str  # 14 digits, unique
    name: str
    status: str  # registry "situacao", e.g. ATIVA
    size: str  # registry "porte", e.g. MICRO EMPRESA
    activity: Optional[str] = None
    open_date: Optional[str] = None
    created_at: datetime


class CnpjLookup(BaseModel):
    """Public intake form"""
    cnpj: str
    phone: Optional[str] = None


class CnpjAutofill(BaseModel):
    cnpj: str
