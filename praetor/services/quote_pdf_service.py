"""Quote PDF generation with reportlab."""

from datetime import datetime
from io import BytesIO
from typing import Any, Dict
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER
from sqlalchemy.orm import Session

from praetor.models import Quote
from praetor.services.quote_service import get_quote
from praetor.services.totals_service import compute_totals
from praetor.utils.formatters import money, percent


def _quantity(value) -> str:
    return str(int(value)) if value % 1 == 0 else f"{value:.2f}"


def render_quote_pdf(quote: Quote, business_info: Dict[str, Any]) -> BytesIO:
    """
    Render a persisted quote: header, metadata, lines and the totals
    breakdown (subtotal, document discount, taxable amount, tax, total).
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"Quote {quote.quote_code}"
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'QuoteTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'QuoteHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph("QUOTE", title_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{business_info['name']}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(business_info['address'], header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Metadata
    issued = quote.created_at or datetime.now()
    info_data = [
        ['Quote No.:', quote.quote_code],
        ['Issued:', issued.strftime('%Y-%m-%d')],
        ['Client:', quote.client_name],
        ['Payment terms:', quote.payment_terms or '-'],
        ['Status:', quote.status],
    ]
    if quote.expiration_date:
        info_data.insert(2, ['Valid until:', quote.expiration_date.strftime('%Y-%m-%d')])

    info_table = Table(info_data, colWidths=[2*inch, 3*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Lines
    table_data = [['Product', 'Qty', 'Unit price', 'Disc.', 'Tax', 'Net']]
    for item in quote.items:
        line = compute_totals([item], 0)
        table_data.append([
            item.product_name,
            _quantity(item.quantity),
            money(item.unit_price),
            percent(item.discount),
            percent(item.product_tax_rate or 0),
            money(line.subtotal),
        ])

    items_table = Table(table_data, colWidths=[2.6*inch, 0.6*inch, 1*inch, 0.6*inch, 0.6*inch, 1.1*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals = compute_totals(quote.items, quote.discount)
    breakdown = [
        ['Subtotal:', money(totals.subtotal)],
        [f"Discount ({percent(quote.discount)}):", f"-{money(totals.subtotal - totals.taxable_amount)}"],
        ['Taxable amount:', money(totals.taxable_amount)],
        ['Tax:', money(totals.total_tax)],
    ]
    breakdown_table = Table(breakdown, colWidths=[5.4*inch, 1.1*inch])
    breakdown_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(breakdown_table)

    total_table = Table([['TOTAL:', money(totals.total)]], colWidths=[5.4*inch, 1.1*inch])
    total_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 14),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, 0), (-1, -1), 2, colors.HexColor('#27AE60')),
    ]))
    elements.append(total_table)
    elements.append(Spacer(1, 0.4*inch))

    footer_style = ParagraphStyle(
        'Footer', parent=styles['Normal'], fontSize=9,
        textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER
    )
    footer_text = "<i>This quote is not an invoice.</i>"
    if quote.notes:
        footer_text += f"<br/><br/><b>Notes:</b> {escape(quote.notes)}"
    elements.append(Paragraph(footer_text, footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_quote_pdf(session: Session, quote_id: int, business_info: Dict[str, Any]) -> BytesIO:
    """Generate the PDF of a persisted quote."""
    return render_quote_pdf(get_quote(session, quote_id), business_info)
