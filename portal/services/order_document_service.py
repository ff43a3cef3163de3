"""Order confirmation document (PDF) for a submitted order."""

from io import BytesIO
from xml.sax.saxutils import escape
from typing import Dict, Any

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from portal.i18n import normalize_language
from portal.models import Order
from portal.utils.formatters import date_fr, money_fr, num_fr, unit_price_fr

LABELS = {
    'fr': {
        'title': 'BON DE COMMANDE',
        'order_number': 'Commande N° :',
        'date': 'Date :',
        'client': 'Client :',
        'status': 'Statut :',
        'columns': ['Produit', 'Quantité', 'Prix unit. HT', 'Total HT'],
        'subtotal': 'Sous-total HT :',
        'discount': 'Remise ({code}) :',
        'total_ht': 'Total HT :',
        'vat': 'TVA ({rate} %) :',
        'total_ttc': 'TOTAL TTC :',
        'notes': 'Notes :',
    },
    'en': {
        'title': 'ORDER CONFIRMATION',
        'order_number': 'Order no.:',
        'date': 'Date:',
        'client': 'Client:',
        'status': 'Status:',
        'columns': ['Product', 'Quantity', 'Unit price excl. VAT', 'Total excl. VAT'],
        'subtotal': 'Subtotal excl. VAT:',
        'discount': 'Discount ({code}):',
        'total_ht': 'Total excl. VAT:',
        'vat': 'VAT ({rate} %):',
        'total_ttc': 'TOTAL incl. VAT:',
        'notes': 'Notes:',
    },
}


def render_order_pdf(order: Order, business_info: Dict[str, Any], language: str = 'fr') -> BytesIO:
    """Render an order with its line snapshots and totals."""
    labels = LABELS[normalize_language(language)]
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=order.order_number,
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'OrderTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#1F3A5F'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'OrderHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # Title and vendor header
    elements.append(Paragraph(labels['title'], title_style))
    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{escape(business_info['name'])}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(escape(business_info['address']), header_style))
    contact_parts = [value for value in (business_info.get('phone'), business_info.get('email')) if value]
    if contact_parts:
        elements.append(Paragraph(escape(" | ".join(contact_parts)), header_style))
    elements.append(Spacer(1, 0.3*inch))

    # Order metadata
    client = order.client
    client_name = (client.company_name or client.email) if client else str(order.client_id)
    info_table = Table([
        [labels['order_number'], order.order_number],
        [labels['date'], date_fr(order.created_at)],
        [labels['client'], client_name],
        [labels['status'], order.status],
    ], colWidths=[2*inch, 3*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # Line items
    table_data = [labels['columns']]
    for item in order.items:
        name = item.client_product.display_name if item.client_product else f"#{item.client_product_id}"
        table_data.append([
            name,
            num_fr(item.quantity),
            unit_price_fr(item.unit_price),
            money_fr(item.line_total),
        ])
    items_table = Table(table_data, colWidths=[3.2*inch, 0.9*inch, 1.3*inch, 1.3*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1F3A5F')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # Totals
    vat_amount = order.total_ttc - order.total_ht
    totals_data = [[labels['subtotal'], money_fr(order.subtotal)]]
    if order.discount_code:
        totals_data.append([
            labels['discount'].format(code=order.discount_code),
            f"-{money_fr(order.discount_amount)}"
        ])
    totals_data += [
        [labels['total_ht'], money_fr(order.total_ht)],
        [labels['vat'].format(rate=num_fr(order.tva_rate)), money_fr(vat_amount)],
        [labels['total_ttc'], money_fr(order.total_ttc)],
    ]
    totals_table = Table(totals_data, colWidths=[5.2*inch, 1.5*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 13),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#1F3A5F')),
        ('LINEABOVE', (0, -1), (-1, -1), 1.5, colors.HexColor('#1F3A5F')),
    ]))
    elements.append(totals_table)

    if order.notes:
        elements.append(Spacer(1, 0.4*inch))
        notes_style = ParagraphStyle('OrderNotes', parent=styles['Normal'], fontSize=9,
                                     textColor=colors.HexColor('#95A5A6'))
        notes_html = escape(order.notes).replace('\n', '<br/>')
        elements.append(Paragraph(f"<b>{labels['notes']}</b> {notes_html}", notes_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
