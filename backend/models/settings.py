"""
LeadDesk - Settings & message models
"""

from typing import Optional
from pydantic import BaseModel

from .proposal import RateOverrides


class DefaultRatesUpdate(RateOverrides):
    """Only the rates present in the body are written"""


class WhatsappTemplateUpdate(BaseModel):
    template: str


class WhatsappMessageRequest(BaseModel):
    """
    Field values for the message template.
    With proposal_id, the proposal fills every field not given explicitly.
    """
    proposal_id: Optional[int] = None
    consultant_name: Optional[str] = None
    company_name: Optional[str] = None
    cnpj: Optional[str] = None
    company_size: Optional[str] = None
    pix_rate: Optional[str] = None
    debit_rate: Optional[str] = None
    credit_rate: Optional[str] = None
    credit_12x_rate: Optional[str] = None
    anticipation_rate: Optional[str] = None
