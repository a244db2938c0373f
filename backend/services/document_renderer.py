"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Proposal document renderer                                       ║
║                                                                              ║
║  Proposal -> standalone printable HTML page ("Salvar como PDF" in browser).  ║
║                                                                              ║
║  RULES:                                                                      ║
║  - pure: same (proposal, generated_at) -> same bytes                         ║
║  - rates printed exactly as stored, with a "%" suffix                        ║
║  - every interpolated value goes through html.escape                         ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import datetime
from html import escape
from typing import List, Tuple

from config import format_cnpj
from models import Proposal

# (field, label, description), in display order
RATE_ROWS: List[Tuple[str, str, str]] = [
    ("pix_rate", "PIX", "Transferência instantânea"),
    ("debit_rate", "Cartão de Débito", "Débito à vista"),
    ("credit_rate", "Cartão de Crédito à Vista", "Crédito à vista"),
    ("credit_12x_rate", "Cartão de Crédito 12x", "Parcelado em 12 vezes"),
    ("anticipation_rate", "Antecipação de Recebíveis", "Antecipação do valor"),
]

_STYLE = """
        @media print {
            body { margin: 0; }
            .no-print { display: none; }
        }
        body { font-family: Arial, sans-serif; margin: 20px; color: #333; }
        .header { text-align: center; margin-bottom: 40px; border-bottom: 3px solid #00a859; padding-bottom: 20px; }
        .company-info { background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 30px; }
        .rates-table { width: 100%; border-collapse: collapse; margin-bottom: 30px; }
        .rates-table th, .rates-table td { border: 1px solid #ddd; padding: 12px; text-align: left; }
        .rates-table th { background-color: #00a859; color: white; }
        .consultant-info { margin-top: 30px; padding: 15px; background: #e8f5e8; border-radius: 8px; }
        .footer { margin-top: 40px; text-align: center; font-size: 12px; color: #666; }
        .print-btn { background: #00a859; color: white; border: none; padding: 10px 20px; border-radius: 5px; cursor: pointer; margin-bottom: 20px; }
"""


def format_generated_at(generated_at: datetime) -> str:
    """dd/mm/yyyy, as printed on Brazilian documents"""
    return generated_at.strftime("%d/%m/%Y")


def _rate_rows(proposal: Proposal) -> str:
    rows = []
    for field, label, description in RATE_ROWS:
        rows.append(
            "            <tr>\n"
            f"                <td>{escape(label)}</td>\n"
            f"                <td>{escape(getattr(proposal, field))}%</td>\n"
            f"                <td>{escape(description)}</td>\n"
            "            </tr>"
        )
    return "\n".join(rows)


def render_proposal_document(proposal: Proposal, generated_at: datetime) -> str:
    company_name = escape(proposal.company_name)
    phone_line = (
        f"\n        <p><strong>Telefone:</strong> {escape(proposal.phone)}</p>"
        if proposal.phone else ""
    )

    return f"""<!DOCTYPE html>
<html lang="pt-BR">
<head>
    <meta charset="utf-8">
    <title>Proposta PagBank - {company_name}</title>
    <style>{_STYLE}    </style>
</head>
<body>
    <button class="print-btn no-print" onclick="window.print()">Imprimir / Salvar como PDF</button>

    <div class="header">
        <h1>Proposta Comercial</h1>
        <p>Data: {escape(format_generated_at(generated_at))}</p>
    </div>

    <div class="company-info">
        <h2>Dados da Empresa</h2>
        <p><strong>Razão Social:</strong> {company_name}</p>
        <p><strong>CNPJ:</strong> {escape(format_cnpj(proposal.cnpj))}</p>{phone_line}
    </div>

    <h2>Taxas Propostas</h2>
    <table class="rates-table">
        <thead>
            <tr>
                <th>Modalidade de Pagamento</th>
                <th>Taxa (%)</th>
                <th>Descrição</th>
            </tr>
        </thead>
        <tbody>
{_rate_rows(proposal)}
        </tbody>
    </table>

    <div class="consultant-info">
        <h3>Consultor Responsável</h3>
        <p><strong>{escape(proposal.consultant_name)}</strong></p>
        <p>Entre em contato para finalizar a contratação e esclarecer dúvidas.</p>
    </div>

    <div class="footer">
        <p>Esta proposta é válida por 30 dias a partir da data de emissão.</p>
        <p>PagBank - Soluções de Pagamento</p>
    </div>
</body>
</html>
"""
