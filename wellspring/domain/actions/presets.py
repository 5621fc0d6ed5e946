"""
GEODE workflow presets
The action lists behind each confirmation flow, and the rules that pick a flow
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ...config import ACCOUNTING_EMAIL, CONTRACT_PROCESSOR_EMAIL, CONTRACT_PROCESSOR_NAME, PAYMENTS_BOARD_URL
from .schemas import ConfirmationTask, EmailEvent, SuggestedAction

logger = logging.getLogger(__name__)

TASK_EXPIRY = timedelta(days=7)

# Pre-agreement: draft the contract, send it to the prospective author
AUTHOR_OUTREACH_ACTIONS = [
    SuggestedAction(
        id="generate_outreach_contract",
        actionType="generate_outreach_contract",
        title="Generate Contract Document",
        description="Create the contributor agreement with author and chapter details and upload it to Google Drive",
        priority="high",
        requiresConfirmation=True,
        params={"templateType": "contributor_agreement"},
    ),
    SuggestedAction(
        id="send_outreach_email",
        actionType="send_outreach_email",
        title="Send Contract to Prospective Author",
        description="Create Gmail draft to prospective author with contract attached",
        priority="high",
        requiresConfirmation=True,
    ),
    SuggestedAction(
        id="add_to_monday_payments",
        actionType="upload_contract_monday",
        title="Add Author to Payments Board",
        description="Add author to Monday.com GEODE Payments board under state group (skips if already exists)",
        autoExecutable=True,
        params={"boardUrl": PAYMENTS_BOARD_URL},
    ),
    SuggestedAction(
        id="update_chapter_status_outreach",
        actionType="advance_step",
        title="Update Chapter Status",
        description='Advance chapter to "Explain Project" step',
        autoExecutable=True,
        params={"newStep": "explain_project"},
    ),
    SuggestedAction(
        id="log_outreach",
        actionType="log_communication",
        title="Log Outreach Attempt",
        description="Record that outreach was sent to prospective author",
        autoExecutable=True,
        params={"communicationType": "outreach_sent"},
    ),
]

# Post-agreement: hand the contract to the processor for e-signature
AUTHOR_AGREEMENT_ACTIONS = [
    SuggestedAction(
        id="generate_contract",
        actionType="generate_contract",
        title="Generate Author Contract",
        description="Create the contract document for e-signature",
        priority="high",
        requiresConfirmation=True,
    ),
    SuggestedAction(
        id="send_to_dani",
        actionType="send_contract",
        title=f"Send Contract to {CONTRACT_PROCESSOR_NAME} for Processing",
        description=f"Email contract PDF to {CONTRACT_PROCESSOR_NAME} for e-signature setup, CC Karine",
        priority="high",
        requiresConfirmation=True,
        params={
            "toEmail": CONTRACT_PROCESSOR_EMAIL,
            "toName": CONTRACT_PROCESSOR_NAME,
            "ccEmails": "karine@projectinnerspace.org",
        },
    ),
    SuggestedAction(
        id="update_chapter_status",
        actionType="advance_step",
        title="Update Chapter Status",
        description='Advance chapter to "Send Contract" step',
        autoExecutable=True,
        params={"newStep": "send_contract"},
    ),
    SuggestedAction(
        id="log_author_info",
        actionType="log_communication",
        title="Log Author Information",
        description="Record author name and email in chapter record",
        autoExecutable=True,
    ),
]

# Contract signed: Monday.com upload, Gusto setup by accounting, welcome email
CONTRACT_SIGNED_ACTIONS = [
    SuggestedAction(
        id="notify_accounting",
        actionType="notify_accounting",
        title="Notify Accounting Team",
        description="Email accounting to setup contractor in Gusto for payment processing",
        priority="high",
        requiresConfirmation=True,
        params={
            "toEmail": ACCOUNTING_EMAIL,
            "toName": "Accounting Team",
            "ccEmails": CONTRACT_PROCESSOR_EMAIL,
        },
    ),
    SuggestedAction(
        id="upload_to_monday",
        actionType="upload_contract_monday",
        title="Upload Contract to Monday.com",
        description="Add signed contractor to the GEODE Payments board",
        priority="high",
        requiresConfirmation=True,
        params={"boardUrl": PAYMENTS_BOARD_URL},
    ),
    SuggestedAction(
        id="update_chapter_status_signed",
        actionType="advance_step",
        title="Update Chapter Status",
        description='Advance chapter to "Awaiting Author Responses" step',
        autoExecutable=True,
        params={"newStep": "awaiting_author_responses"},
    ),
    SuggestedAction(
        id="send_welcome_email",
        actionType="send_welcome_email",
        title="Send Welcome Email to Author",
        description="Email author with next steps and Gusto onboarding info",
        requiresConfirmation=True,
    ),
]

WORKFLOW_ACTIONS = {
    "author_outreach": AUTHOR_OUTREACH_ACTIONS,
    "author_agreement": AUTHOR_AGREEMENT_ACTIONS,
    "contract_signed": CONTRACT_SIGNED_ACTIONS,
}

AGREEMENT_KEYWORDS = [
    "agreed", "confirmed", "accepted", "signed", "process",
    "send to dani", "dani", "e-signature", "esignature",
    "contract signed", "signature complete",
]
OUTREACH_KEYWORDS = [
    "outreach", "prospective", "invite", "invitation", "reach out",
    "send contract to", "contact", "initial", "introduce",
    "potential author", "candidate",
]
OUTREACH_STEPS = {"not_started", "outreach_identify_authors", "schedule_meeting", "explain_project"}
AGREEMENT_STEPS = {"send_contract", "awaiting_contract_signature"}


def infer_workflow_type(
    title: str = "",
    description: str = "",
    has_author_confirmation: Optional[bool] = None,
    chapter_status: Optional[str] = None,
) -> str:
    """
    Pick the preset for a task. Chapter status wins, then an explicit author
    confirmation flag, then keywords. Outreach is the fallback since it comes first
    """
    combined = f"{title.lower()} {description.lower()}"
    has_agreement = any(kw in combined for kw in AGREEMENT_KEYWORDS)
    has_outreach = any(kw in combined for kw in OUTREACH_KEYWORDS)

    if chapter_status in OUTREACH_STEPS:
        return "author_outreach"
    if chapter_status in AGREEMENT_STEPS:
        return "author_agreement"

    if has_author_confirmation is True:
        return "author_agreement"
    if has_author_confirmation is False:
        return "author_outreach"

    if has_agreement and not has_outreach:
        return "author_agreement"
    if has_outreach and not has_agreement:
        return "author_outreach"

    if "execute" in combined and ("geode" in combined or "contract" in combined):
        if "to dani" in combined or "for dani" in combined:
            return "author_agreement"
    return "author_outreach"


def get_actions_for_workflow(workflow_type: str) -> list[SuggestedAction]:
    """Fresh copies of a preset's actions; unknown types get the outreach preset"""
    actions = WORKFLOW_ACTIONS.get(workflow_type, AUTHOR_OUTREACH_ACTIONS)
    return [action.model_copy(deep=True) for action in actions]


def _chapter_phrase(chapter_type: Optional[str]) -> str:
    return (chapter_type or "").replace("ch", "Ch ", 1).replace("_", " ", 1)


def create_confirmation_task(event: EmailEvent, now: Optional[datetime] = None) -> ConfirmationTask:
    now = now or datetime.utcnow()
    task = ConfirmationTask(
        id=f"task_{event.id}",
        emailEventId=event.id,
        state=event.detectedState,
        chapterType=event.detectedChapter,
        authorName=event.detectedAuthorName,
        authorEmail=event.detectedAuthorEmail,
        paymentAmount=event.paymentAmount,
        pendingActions=[a.model_copy(deep=True) for a in event.suggestedActions],
        createdAt=now,
        expiresAt=now + TASK_EXPIRY,
    )
    author = event.detectedAuthorName

    if event.eventType == "author_agreed":
        task.title = f"{author} agreed to author {_chapter_phrase(event.detectedChapter)}"
        task.description = (
            f"Professor {author} has agreed to be the bylined author. Generate contract and send to "
            f"{CONTRACT_PROCESSOR_NAME} (CC Karine) for e-signature processing."
        )
        task.category = "author_onboarding"
        task.priority = "high"
        if not task.pendingActions:
            task.pendingActions = get_actions_for_workflow("author_agreement")
    elif event.eventType == "contract_signed":
        task.title = f"Contract signed: {author}"
        task.description = (
            "E-signature completed. Upload to Monday.com, then accounting sets up in Gusto, then send welcome email."
        )
        task.category = "contract"
        task.priority = "high"
        task.pendingActions = get_actions_for_workflow("contract_signed")
    elif event.eventType == "author_declined":
        task.title = f"Author declined: {author}"
        task.description = f"{author} has declined the invitation. Resume author outreach for this chapter."
        task.category = "author_onboarding"
    else:
        task.title = f"Review email: {event.subject}"
        task.description = f"Email from {event.fromName} may require action."

    logger.info(f"📝 Confirmation task {task.id}: {task.title} ({len(task.pendingActions)} actions)")
    return task
