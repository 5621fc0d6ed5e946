import base64
import io
from datetime import date
from decimal import Decimal

import pytest
from docx import Document

from wellspring.config import ACCOUNTING_EMAIL, GEODE_INVOICE_EMAIL
from wellspring.geode.timeline import compute_timeline
from wellspring.services.contract_generator import (
    ContractFields,
    chapter_scope_text,
    contract_filename,
    generate_and_upload_contract,
    render_contract,
)
from wellspring.services.file_access import DOCX_MIME
from wellspring.services.invoice_generator import InvoiceParams, render_invoice
from wellspring.services.payment_emails import AuthorInfo, payment_email_for_step


class FakeDrive:
    def __init__(self, result=None):
        self.result = result
        self.uploads = []

    async def upload_file(self, content, filename, mime_type):
        self.uploads.append((filename, mime_type, len(content)))
        return self.result


def document_text(content: bytes) -> str:
    return "\n".join(p.text for p in Document(io.BytesIO(content)).paragraphs)


AUTHOR = AuthorInfo(
    name="Jane Smith",
    email="jane@example.edu",
    state_name="Louisiana",
    chapter_num="3",
    chapter_title="Electricity",
)


def test_contract_filename():
    assert contract_filename("LA", "Heat Ownership", "Jane Q Smith") == "InnerSpace_Agreement_LA_Heat_Ownership_JQS.docx"


def test_scope_text_for_builtin_and_custom_chapters():
    assert "Louisiana's subsurface" in chapter_scope_text("ch2_subsurface", "Louisiana")
    assert chapter_scope_text("ch10_workforce", "Idaho") == (
        "This chapter covers Chapter 10 workforce for the Idaho state geothermal data report."
    )


def test_rendered_contract_carries_timeline_and_payments():
    timeline = compute_timeline(date(2025, 2, 1), date(2025, 1, 1))
    content = render_contract(
        ContractFields(
            contractor_name="Jane Smith",
            contractor_email="jane@example.edu",
            state_name="Louisiana",
            chapter_name="Electricity",
            chapter_type="ch3_electricity",
            chapter_num="3",
            timeline=timeline,
        )
    )
    text = document_text(content)

    assert "INDEPENDENT CONTRACTOR AGREEMENT" in text
    assert "made effective as of January 1, 2025" in text
    assert 'Research and answering of "expert" questions: 01/08/2025' in text
    assert "Initial payment (37.5%): $1,875.00 - upon contract signing" in text
    assert "Final payment (25%): $1,250.00" in text
    assert "The Future of Geothermal Energy in Louisiana Report: Electricity" in text
    assert "geothermal electricity potential in Louisiana" in text


@pytest.mark.anyio
async def test_generate_and_upload_contract():
    drive = FakeDrive({"fileId": "f-1", "webViewLink": "https://drive.google.com/file/d/f-1/view"})
    contract = await generate_and_upload_contract(
        contractor_name="Jane Smith",
        contractor_email="jane@example.edu",
        state="louisiana",
        chapter_type="ch6_policy",
        chapter_name="Policy",
        chapter_num="6",
        drive=drive,
        payment_amount=Decimal("8000"),
        signing_date=date(2025, 12, 1),
    )

    assert contract.filename == "InnerSpace_Agreement_LA_Policy_JS.docx"
    assert contract.mime_type == DOCX_MIME
    assert base64.b64decode(contract.base64) == contract.content
    assert contract.drive_file_id == "f-1"
    assert contract.timeline.doe_deadline == date(2026, 2, 15)
    assert drive.uploads == [("InnerSpace_Agreement_LA_Policy_JS.docx", DOCX_MIME, len(contract.content))]
    assert "Total Grant: $8,000.00" in document_text(contract.content)


@pytest.mark.anyio
async def test_failed_upload_still_returns_contract():
    contract = await generate_and_upload_contract(
        "Jane Smith", "jane@example.edu", "idaho", "ch6_policy", "Policy", "6", drive=FakeDrive(None)
    )
    assert contract is not None
    assert contract.drive_web_view_link is None


@pytest.mark.anyio
async def test_unknown_state_generates_nothing():
    assert await generate_and_upload_contract("Jane Smith", "j@example.edu", "texas", "ch6_policy", "Policy", "6") is None


def test_invoice_grid():
    invoice = render_invoice(
        InvoiceParams(
            author_name="Jane Smith",
            author_email="jane@example.edu",
            state_name="Louisiana",
            chapter_title="Electricity",
            chapter_num="3",
            payment_number=1,
            payment_amount=Decimal("1875.00"),
            total_grant_amount=Decimal("5000"),
            milestone_label="Contract Signed & Author Onboarded",
            invoice_date=date(2026, 1, 15),
        )
    )
    assert invoice.filename == "GEODE_Invoice_Louisiana_Ch3_P1_Jane_Smith.docx"

    doc = Document(io.BytesIO(invoice.content))
    grid = doc.tables[1]
    assert [c.text for c in grid.rows[0].cells] == ["Date", "Facet-Task", "Description", "Fee"]
    first_row = grid.rows[1].cells
    assert first_row[0].text == "01/15/2026"
    assert first_row[1].text == "3-6"
    assert "Payment 1 of 3" in first_row[2].text
    assert first_row[3].text == "$1,875.00"
    assert grid.rows[-1].cells[3].text == "$1,875.00"
    assert "Total Contract Value: $5,000.00" in "\n".join(p.text for p in doc.paragraphs)


def test_accounting_setup_email_when_contract_goes_out():
    result = payment_email_for_step("send_contract", AUTHOR, Decimal("5000"))

    assert result.email_type == "accounting_setup"
    assert result.email.to == [ACCOUNTING_EMAIL]
    assert "Total Contract Value: $5,000.00" in result.email.body
    assert result.email.attachment is None


def test_invoice_reminder_carries_prefilled_invoice():
    result = payment_email_for_step("author_approval_round_1", AUTHOR, Decimal("5000"))

    assert result.email_type == "invoice_reminder"
    assert result.payment_number == 2
    assert result.email.to == ["jane@example.edu"]
    assert result.email.cc == [GEODE_INVOICE_EMAIL]
    assert "Payment #2" in result.email.subject
    assert "$1,875.00" in result.email.body
    assert result.email.attachment.filename == "GEODE_Invoice_Louisiana_Ch3_P2_Jane_Smith.docx"
    assert result.email.attachment.mime_type == DOCX_MIME


def test_steps_without_payment_emails():
    result = payment_email_for_step("peer_review", AUTHOR, Decimal("5000"))
    assert result.email is None
    assert result.email_type is None
