"""Plain-text email drafts for the GEODE author and contract flows"""

from typing import Optional

from ...config import SENDER_NAME, SENDER_TITLE
from ...services.payment_emails import EmailDraft


def _first_name(name: str) -> str:
    parts = name.split()
    return parts[0] if parts else name


def contract_processing_email(
    author_name: str,
    author_email: str,
    state_name: str,
    chapter_title: str,
    chapter_num: str,
    recipient_name: str,
    recipient_email: str,
    cc: Optional[list[str]] = None,
) -> EmailDraft:
    """Ask the contract processor to send the agreement for e-signature"""
    subject = f"{state_name} Geothermal Report - Contractor Agreement ({author_name})"
    body = f"""{recipient_name},

{author_name} ({author_email}) has agreed to contribute to the {state_name} GEODE report as the bylined author for Chapter {chapter_num}: {chapter_title}. Could you please send the contributor agreement for e-signature?

Author: {author_name}
Email: {author_email}
Chapter: {chapter_num} - {chapter_title}
Report: {state_name} State Geothermal Data Report

Once it's signed and returned, please save the executed agreement to the Admin Google Share drive in the Contractor folder and let me know so we can proceed with onboarding.

Thanks,
{_first_name(SENDER_NAME)}"""
    return EmailDraft(to=[recipient_email], cc=cc or [], subject=subject, body=body)


def accounting_onboarding_email(
    author_name: str,
    author_email: str,
    state_name: str,
    state_abbrev: str,
    chapter_title: str,
    chapter_num: str,
    recipient_name: str,
    recipient_email: str,
    cc: Optional[list[str]] = None,
) -> EmailDraft:
    """Ask accounting to set the signed contractor up in Gusto"""
    subject = f"New Contractor Setup - {author_name} ({state_abbrev} GEODE)"
    body = f"""{recipient_name},

We have a new contractor to set up in Gusto. The contract has been signed.

Name: {author_name}
Email: {author_email}
Project: GEODE {state_name} State Report
Chapter: {chapter_num} - {chapter_title}

Could you please set up the contractor in Gusto and trigger the onboarding email? The signed contract details have been uploaded to Monday.com on the GEODE Payments board under the {state_name} group.

Thanks,
{_first_name(SENDER_NAME)}"""
    return EmailDraft(to=[recipient_email], cc=cc or [], subject=subject, body=body)


def outreach_email(
    author_name: str,
    author_email: str,
    state_name: str,
    chapter_title: str,
    chapter_num: str,
) -> EmailDraft:
    subject = f"{state_name} Geothermal Report - {chapter_title} Chapter"
    body = f"""Dear {_first_name(author_name)},

I'm reaching out from Project InnerSpace about a DOE-funded initiative called GEODE (Geothermal Data for Energy Decisions). We're developing a state geothermal data report for {state_name}, and based on your expertise, I wanted to see if you'd be interested in being a named contributor on the {chapter_title.lower()} chapter (Ch {chapter_num}).

The commitment is manageable: providing bulleted responses to a set of questions we supply, and then editing our ghostwritten draft to ensure you're comfortable putting your name on the work.

I'm attaching the formal contributor agreement with details on scope, timeline, and compensation. If you could review it and let me know if everything looks good, my colleague Karine, who is CC'd, can assist with sending it for e-signature.

I'd be happy to jump on a call if you'd like to discuss further. Let me know if you're interested or have any questions.

Best regards,
{SENDER_NAME}
{SENDER_TITLE}"""
    return EmailDraft(to=[author_email], subject=subject, body=body)


def welcome_email(
    author_name: str,
    author_email: str,
    state_name: str,
    chapter_title: str,
    chapter_num: str,
) -> EmailDraft:
    """Executed agreement and next steps for a newly signed author"""
    subject = f"{state_name} Geothermal Report - Next Steps (Ch {chapter_num}: {chapter_title})"
    body = f"""Dear {_first_name(author_name)},

Attached is the fully executed agreement for your files. I'm excited to kick off our work together.

A few next steps:

1. Our accounting team will be in touch shortly to set up your contractor profile for payment processing. You'll receive an email with instructions to complete your profile and submit direct deposit details.

2. On the first of each month, please email an invoice to me for approval. By the 15th of each month, you will be paid by direct deposit.

3. I'll be sharing the chapter outline and expert questions with you shortly.

Please let me know if you have any questions. Looking forward to working with you.

Best regards,
{SENDER_NAME}
{SENDER_TITLE}"""
    return EmailDraft(to=[author_email], subject=subject, body=body)
