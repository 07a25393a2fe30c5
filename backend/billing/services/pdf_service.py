# Overview: Renders the invoice document payload to an A4 tax-invoice PDF. Bytes are returned, never stored.

from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..errors import PdfGenerationError
from .invoice_service import build_document, get_invoice

ITEM_HEADER = [
    "S.No", "Description", "HSN/SAC", "Qty", "Rate", "Disc.", "Taxable",
    "CGST %", "CGST", "SGST %", "SGST", "IGST %", "IGST",
]


def _text(value) -> str:
    return escape(str(value)) if value not in (None, "") else "-"


def _party_block(title: str, party: dict | None, styles) -> list:
    party = party or {}
    lines = [
        f"<b>{title}</b>",
        _text(party.get("name")),
        _text(party.get("address")),
        f"State: {_text(party.get('state'))} ({_text(party.get('state_code'))})",
        f"GSTIN: {_text(party.get('gstin'))}",
    ]
    return [Paragraph("<br/>".join(lines), styles["Normal"])]


def render_document_pdf(document: dict) -> tuple[bytes, str]:
    """
    Render a build_document() payload.

    Returns (pdf_bytes, filename).
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=24,
        leftMargin=24,
        topMargin=24,
        bottomMargin=24,
        title=f"Invoice {document.get('serial_no')}",
    )
    styles = getSampleStyleSheet()
    small = styles["BodyText"].clone("ItemCell", fontSize=7, leading=8)
    elements = []

    invoice_type = (document.get("invoice_type") or "TAX_INVOICE").replace("_", " ")
    elements.append(Paragraph(f"<b>{_text(invoice_type)}</b> &nbsp;&nbsp; #{_text(document.get('serial_no'))}", styles["Title"]))

    issuer_lines = [
        f"<b>{_text(document.get('shop_legal_name'))}</b>",
        _text(document.get("address")),
        f"State: {_text(document.get('state'))} ({_text(document.get('state_code'))})",
        f"GSTIN: {_text(document.get('gstin'))} | PAN: {_text(document.get('pan_no'))} | CIN: {_text(document.get('cin_no'))}",
        f"Date: {_text(document.get('invoice_date'))}",
    ]
    elements.append(Paragraph("<br/>".join(issuer_lines), styles["Normal"]))
    elements.append(Spacer(1, 10))

    parties = Table(
        [[
            _party_block("Bill To", document.get("bill_to"), styles),
            _party_block("Ship To", document.get("ship_to"), styles),
        ]],
        colWidths=[270, 270],
    )
    parties.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    elements.append(parties)
    elements.append(Spacer(1, 10))

    rows = [ITEM_HEADER]
    for index, item in enumerate(document.get("items") or [], start=1):
        rows.append([
            index,
            Paragraph(_text(item.get("description")), small),
            _text(item.get("hsn_sac_code")),
            item.get("quantity"),
            item.get("unit_value"),
            item.get("discount"),
            item.get("taxable_value"),
            item.get("cgst_rate"),
            item.get("cgst_amount"),
            item.get("sgst_rate"),
            item.get("sgst_amount"),
            item.get("igst_rate"),
            item.get("igst_amount"),
        ])

    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 7),
        ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
    ]))
    elements.append(table)
    elements.append(Spacer(1, 10))

    totals = [
        ["Taxable Value", document.get("total_taxable_value")],
        ["CGST", document.get("total_cgst")],
        ["SGST", document.get("total_sgst")],
        ["IGST", document.get("total_igst")],
        ["Grand Total", document.get("total")],
    ]
    totals_table = Table(totals, colWidths=[120, 120], hAlign="RIGHT")
    totals_table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("BACKGROUND", (0, -1), (-1, -1), colors.whitesmoke),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 6))
    elements.append(Paragraph(f"<b>Amount in words:</b> {_text(document.get('total_in_words'))}", styles["Normal"]))

    bank = document.get("bank_detail") or {}
    if bank:
        elements.append(Spacer(1, 6))
        bank_line = (
            f"Bank: {_text(bank.get('bank_name'))} | A/C: {_text(bank.get('account_number'))}"
            f" | IFSC: {_text(bank.get('IFSC_code'))} | Holder: {_text(bank.get('account_holder_name'))}"
        )
        elements.append(Paragraph(bank_line, styles["Normal"]))

    doc.build(elements)
    stem = str(document.get("serial_no") or document.get("id")).replace("/", "-")
    return buffer.getvalue(), f"Invoice_{stem}.pdf"


def render_invoice_pdf(invoice_id: int, user_id: int) -> tuple[bytes, str]:
    """
    Build and render an invoice the caller may read.

    Raises:
        INVOICE_NOT_FOUND when missing or outside the caller's shops
        PdfGenerationError when rendering fails
    """
    invoice = get_invoice(invoice_id, user_id)
    document = build_document(invoice)
    try:
        return render_document_pdf(document)
    except Exception as exc:
        current_app.logger.exception("PDF generation failed for invoice %s", invoice_id)
        raise PdfGenerationError("Failed to generate PDF") from exc
