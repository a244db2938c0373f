"""
LeadDesk - WhatsApp message templater

Fills {{placeholder}} tokens of a stored template with proposal values.
Total function: unknown tokens are left as they are, missing values
become "", nothing raises.
"""

import re
from typing import Any, Dict, Mapping, Optional

# Placeholder token -> field name
PLACEHOLDERS = {
    "consultantName": "consultant_name",
    "companyName": "company_name",
    "cnpj": "cnpj",
    "companySize": "company_size",
    "pixRate": "pix_rate",
    "debitRate": "debit_rate",
    "creditRate": "credit_rate",
    "credit12xRate": "credit_12x_rate",
    "anticipationRate": "anticipation_rate",
}

MESSAGE_FIELDS = list(PLACEHOLDERS.values())

_TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")

DEFAULT_WHATSAPP_TEMPLATE = """🏦 PROPOSTA EXCLUSIVA PAGBANK

Olá! Meu nome é {{consultantName}}, seu novo gerente de conta no PagBank.

📋 Dados da Empresa:
• Empresa: {{companyName}}
• CNPJ: {{cnpj}}
• Status: Ativa
• Porte: {{companySize}}

🎯 OPORTUNIDADE ESPECIAL
Identificamos uma oportunidade de reduzir significativamente suas taxas de vendas no cartão, contribuindo para a retomada do crescimento do seu negócio.

💳 NOVA PROPOSTA DE TAXAS:
• PIX: {{pixRate}}%
• Cartão de Débito: {{debitRate}}%
• Cartão de Crédito à Vista: {{creditRate}}%
• Cartão de Crédito em 12x: {{credit12xRate}}%
• Antecipação de Recebíveis: {{anticipationRate}}%

✅ VANTAGENS INCLUÍDAS:
• Maquininha GRÁTIS
• Conta digital sem taxa de manutenção
• Saque GRÁTIS ilimitado"""


def render_message(template: str, fields: Mapping[str, Any]) -> str:
    """
    Replace every known {{token}} by str(fields[<field>]), or "" when the
    field is absent or None.
    """
    def replace(match: "re.Match") -> str:
        field = PLACEHOLDERS.get(match.group(1))
        if field is None:
            return match.group(0)
        value = fields.get(field)
        return "" if value is None else str(value)

    return _TOKEN_RE.sub(replace, template or "")


def message_fields(source: Optional[Mapping[str, Any]] = None, **overrides) -> Dict[str, Any]:
    """
    Pick the message fields out of `source` (e.g. a proposal dump), then
    apply every override that is not None.
    """
    source = source or {}
    fields = {field: source.get(field) for field in MESSAGE_FIELDS}
    for field, value in overrides.items():
        if field in PLACEHOLDERS.values() and value is not None:
            fields[field] = value
    return fields
