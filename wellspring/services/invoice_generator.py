"""
GEODE invoice DOCX generator

Prefills the GEODE invoice template (header table plus Date | Facet-Task |
Description | Fee grid) for one contributor payment milestone.
"""

import base64
import io
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor

from ..geode.payments import format_currency
from ..geode.timeline import format_date
from .file_access import DOCX_MIME

logger = logging.getLogger(__name__)

# DOE Facet-Task code, the same on every GEODE invoice
FACET_TASK = "3-6"
EMPTY_ROWS = 8

SUBMISSION_INSTRUCTIONS = [
    "Submission Instructions",
    "Please categorize fees by Facet-Task, or your invoice cannot be processed by our automated system. "
    'For example, Facet 1, Task 4 should be entered as "1-4" in the table below.',
    "Submit completed invoice to GEODE@projectinnerspace.org for payment.",
    'Please note "INVOICE" must be written in the email subject line for processing.',
    "For queries on the invoicing process, contact accounting@projectinnerspace.org",
    "Invoices submitted in formats other than this template cannot be processed for payment by our system.",
]


@dataclass
class InvoiceParams:
    author_name: str
    author_email: str
    state_name: str
    chapter_title: str
    chapter_num: str
    payment_number: int
    payment_amount: Decimal
    total_grant_amount: Decimal
    milestone_label: str
    invoice_date: Optional[date] = None


@dataclass
class GeneratedInvoice:
    content: bytes
    filename: str
    base64: str
    mime_type: str = DOCX_MIME


def invoice_filename(state_name: str, chapter_num: str, payment_number: int, author_name: str) -> str:
    author_slug = "_".join(author_name.split())
    return f"GEODE_Invoice_{state_name}_Ch{chapter_num}_P{payment_number}_{author_slug}.docx"


def invoice_description(params: InvoiceParams) -> str:
    return (
        f"GEODE {params.state_name} Report - Ch {params.chapter_num}: {params.chapter_title} "
        f"— Payment {params.payment_number} of 3 ({params.milestone_label})"
    )


def _shade(cell, fill: str):
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:fill"), fill)
    cell._tc.get_or_add_tcPr().append(shading)


def _write(cell, text: str, bold: bool = False, size: int = 9, italic: bool = False, color: Optional[str] = None):
    """Write into the cell's first empty paragraph, or append a new one"""
    paragraph = cell.paragraphs[-1] if not cell.paragraphs[-1].text else cell.add_paragraph()
    run = paragraph.add_run(text)
    run.bold = bold
    run.italic = italic
    run.font.size = Pt(size)
    if color:
        run.font.color.rgb = RGBColor.from_string(color)
    return paragraph


def render_invoice(params: InvoiceParams) -> GeneratedInvoice:
    logger.info(f"📄 Generating invoice P{params.payment_number} for {params.author_name}")

    doc = Document()
    fee = format_currency(params.payment_amount)

    # Header: title / invoicing entity | spacer | submission instructions
    header = doc.add_table(rows=2, cols=3)
    title_cell, _, _ = header.rows[0].cells
    _write(title_cell, "PROJECT INNERSPACE", bold=True, size=12, color="333333")
    _write(title_cell, "GEODE Invoice", bold=True, size=10, color="666666")

    entity_cell, _, instructions_cell = header.rows[1].cells
    _write(entity_cell, "Invoicing Entity", bold=True)
    _write(entity_cell, params.author_name)
    contact = entity_cell.add_paragraph()
    contact.add_run("Contact email: ").bold = True
    contact.add_run(params.author_email)
    phone = entity_cell.add_paragraph()
    phone.add_run("Contact phone: ").bold = True
    placeholder = phone.add_run("[Your phone]")
    placeholder.italic = True
    placeholder.font.color.rgb = RGBColor.from_string("999999")

    for i, line in enumerate(SUBMISSION_INSTRUCTIONS):
        _write(instructions_cell, line, bold=i == 0, size=9 if i == 0 else 7, color="333333" if i == 0 else "666666")

    doc.add_paragraph()

    # Invoice grid
    grid = doc.add_table(rows=0, cols=4)
    grid.style = "Table Grid"

    head = grid.add_row().cells
    for cell, label in zip(head, ("Date", "Facet-Task", "Description", "Fee")):
        _write(cell, label, bold=True)
        _shade(cell, "E8E8E8")

    row = grid.add_row().cells
    _write(row[0], format_date(params.invoice_date or date.today()))
    _write(row[1], FACET_TASK)
    _write(row[2], invoice_description(params), size=8)
    _write(row[3], fee)

    for _ in range(EMPTY_ROWS):
        grid.add_row()

    total = grid.add_row().cells
    _write(total[2], "Total Due")
    _write(total[2], "(USD)")
    _write(total[3], fee, bold=True, size=10)
    _shade(total[2], "F0F0F0")
    _shade(total[3], "F0F0F0")

    doc.add_paragraph()
    footer = doc.add_paragraph().add_run(
        f"Total Contract Value: {format_currency(params.total_grant_amount)} | "
        f"This invoice: {fee} (Payment {params.payment_number} of 3)"
    )
    footer.italic = True
    footer.font.size = Pt(8)
    footer.font.color.rgb = RGBColor.from_string("888888")

    buffer = io.BytesIO()
    doc.save(buffer)
    content = buffer.getvalue()
    buffer.close()

    filename = invoice_filename(params.state_name, params.chapter_num, params.payment_number, params.author_name)
    logger.info(f"✅ Generated invoice {filename} ({len(content)} bytes)")
    return GeneratedInvoice(content=content, filename=filename, base64=base64.b64encode(content).decode())
