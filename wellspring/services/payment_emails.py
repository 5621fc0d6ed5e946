"""
Payment milestone emails
Accounting setup when the contract goes out for signature, invoice reminders
(with a prefilled invoice) when a payment trigger step completes
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from docx.opc.exceptions import OpcError

from ..config import ACCOUNTING_EMAIL, CONTRACT_PROCESSOR_EMAIL, GEODE_INVOICE_EMAIL, SENDER_NAME, SENDER_TITLE
from ..geode.payments import (
    PAYMENT_SCHEDULE_TEXT,
    format_currency,
    milestone_label,
    milestone_payment_amount,
    should_send_payment_email,
)
from .file_access import Attachment
from .invoice_generator import InvoiceParams, render_invoice

logger = logging.getLogger(__name__)


@dataclass
class AuthorInfo:
    name: str
    email: str
    state_name: str
    chapter_num: str
    chapter_title: str


@dataclass
class EmailDraft:
    to: list[str]
    subject: str
    body: str
    cc: list[str] = field(default_factory=list)
    attachment: Optional[Attachment] = None


@dataclass
class PaymentEmailResult:
    email_type: Optional[str] = None  # accounting_setup | invoice_reminder
    email: Optional[EmailDraft] = None
    payment_number: Optional[int] = None


def accounting_setup_email(author: AuthorInfo, grant_amount: Decimal) -> EmailDraft:
    subject = f"GEODE Contractor Payment Setup - {author.name} ({author.state_name})"
    body = f"""Hi Accounting Team,

A contributor agreement for the GEODE {author.state_name} State Report has been sent for signature. Please set up payments for this contractor.

Name: {author.name}
Email: {author.email}
Chapter: {author.chapter_num} - {author.chapter_title}
Total Contract Value: {format_currency(grant_amount)}
Payment Schedule: {PAYMENT_SCHEDULE_TEXT}

The first payment becomes due once the signed agreement is returned and the author is onboarded. The author will submit invoices to {GEODE_INVOICE_EMAIL} using the GEODE invoice template.

Thanks,
{SENDER_NAME}
{SENDER_TITLE}"""
    return EmailDraft(to=[ACCOUNTING_EMAIL], cc=[CONTRACT_PROCESSOR_EMAIL], subject=subject, body=body)


def invoice_reminder_email(
    author: AuthorInfo,
    payment_number: int,
    payment_amount: Decimal,
    attachment: Optional[Attachment] = None,
) -> EmailDraft:
    label = milestone_label(payment_number)
    first_name = author.name.split()[0] if author.name.split() else author.name
    subject = f"GEODE {author.state_name} Report - Invoice for Payment #{payment_number} ({label})"

    if attachment:
        invoice_line = (
            "I've attached a prefilled invoice for this milestone. Please review it, add your phone number, "
            "and send it back as-is or with any corrections."
        )
    else:
        invoice_line = "Please fill out the GEODE invoice template for this milestone."

    body = f"""Dear {first_name},

Thank you for your work on Chapter {author.chapter_num}: {author.chapter_title} of the {author.state_name} State Geothermal Report. You've reached the "{label}" milestone, which means Payment #{payment_number} of {format_currency(payment_amount)} is now ready to be invoiced.

{invoice_line}

Submit the invoice to {GEODE_INVOICE_EMAIL} and include "INVOICE" in the email subject line so it can be processed.

Best regards,
{SENDER_NAME}
{SENDER_TITLE}"""
    return EmailDraft(to=[author.email], cc=[GEODE_INVOICE_EMAIL], subject=subject, body=body, attachment=attachment)


def payment_email_for_step(completed_step: str, author: AuthorInfo, grant_amount: Decimal) -> PaymentEmailResult:
    """The email a completed step produces, if any. Sending is up to the caller"""
    decision = should_send_payment_email(completed_step)

    if decision["sendAccountingSetup"]:
        return PaymentEmailResult(email_type="accounting_setup", email=accounting_setup_email(author, grant_amount))

    if not decision["sendInvoiceReminder"]:
        return PaymentEmailResult()

    payment_number = decision["paymentNumber"]
    amount = milestone_payment_amount(grant_amount, payment_number)

    attachment = None
    try:
        invoice = render_invoice(
            InvoiceParams(
                author_name=author.name,
                author_email=author.email,
                state_name=author.state_name,
                chapter_title=author.chapter_title,
                chapter_num=author.chapter_num,
                payment_number=payment_number,
                payment_amount=amount,
                total_grant_amount=Decimal(str(grant_amount)),
                milestone_label=milestone_label(payment_number),
            )
        )
        attachment = Attachment(filename=invoice.filename, mime_type=invoice.mime_type, content=invoice.content)
    except (OpcError, ValueError, KeyError) as e:
        logger.error(f"❌ Failed to generate invoice for {author.name}, sending reminder without it: {str(e)}")

    return PaymentEmailResult(
        email_type="invoice_reminder",
        email=invoice_reminder_email(author, payment_number, amount, attachment),
        payment_number=payment_number,
    )
