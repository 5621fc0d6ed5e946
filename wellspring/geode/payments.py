"""
Payment milestone rules
Maps completed workflow steps to Payments board milestones and splits the grant
into the three contributor payments
"""

from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

PAYMENT_SCHEDULE_TEXT = "37.5% / 37.5% / 25% across 3 milestones"

# Keyed by the step that just COMPLETED
WORKFLOW_TO_PAYMENT_MAP: dict[str, str] = {
    "send_contract": "sentBoxSignature",
    "awaiting_contract_signature": "distribution1",
    "author_approval_round_1": "roughDraftReceived",
}

# Payment n is due when its step completes
PAYMENT_TRIGGERS: dict[int, str] = {
    1: "awaiting_contract_signature",
    2: "author_approval_round_1",
    3: "author_approval_round_3",
}

MILESTONE_LABELS = {
    1: "Contract Signed & Author Onboarded",
    2: "Author Review of First Draft Complete",
    3: "Final Publication Approval",
}

# Ordered enum of contributor payment states
PAYMENT_STATUS_LABELS: dict[str, str] = {
    "not_started": "Not Started",
    "contract_pending": "Contract Pending",
    "awaiting_signature": "Awaiting Signature",
    "payment_1_pending": "Payment #1 Pending",
    "payment_1_complete": "Payment #1 Complete",
    "in_progress": "In Progress",
    "payment_2_pending": "Payment #2 Pending",
    "payment_2_complete": "Payment #2 Complete",
    "complete": "Complete",
}


@dataclass
class PaymentMilestones:
    drafted: bool = False
    sentForReview: bool = False
    draftApproved: bool = False
    sentBoxSignature: bool = False
    distribution1: bool = False
    payment1: bool = False
    processInvoice1: bool = False
    roughDraftReceived: bool = False
    roughDraftDue: Optional[str] = None

    def mark(self, milestone: str) -> None:
        """Set a boolean milestone; milestones are never unset"""
        if milestone not in {f.name for f in fields(self)} or milestone == "roughDraftDue":
            raise ValueError(f"Unknown payment milestone: {milestone}")
        setattr(self, milestone, True)


def should_trigger_payment(completed_step: str) -> Optional[str]:
    return WORKFLOW_TO_PAYMENT_MAP.get(completed_step)


def payment_number_for_step(completed_step: str) -> Optional[int]:
    for number, step in PAYMENT_TRIGGERS.items():
        if step == completed_step:
            return number
    return None


def should_send_payment_email(completed_step: str) -> dict:
    """Which payment email (if any) a completed step produces"""
    payment_number = payment_number_for_step(completed_step)
    return {
        "sendAccountingSetup": completed_step == "send_contract",
        "sendInvoiceReminder": payment_number is not None,
        "paymentNumber": payment_number,
    }


def get_payment_status(milestones: PaymentMilestones) -> str:
    if not milestones.drafted:
        return "not_started"
    if not milestones.sentBoxSignature:
        return "contract_pending"
    if not milestones.distribution1:
        return "awaiting_signature"
    if not milestones.payment1:
        return "payment_1_pending"
    if not milestones.roughDraftReceived:
        return "payment_1_complete"
    return "in_progress"


def get_payment_status_label(status: str) -> str:
    return PAYMENT_STATUS_LABELS[status]


def milestone_label(payment_number: int) -> str:
    return MILESTONE_LABELS.get(payment_number, "Unknown Milestone")


CENT = Decimal("0.01")


def split_grant(total: Union[int, str, Decimal]) -> tuple[Decimal, Decimal, Decimal]:
    """37.5% / 37.5% / 25%; the final payment absorbs rounding so the parts sum to the total"""
    total = Decimal(str(total))
    first = (total * Decimal("0.375")).quantize(CENT, rounding=ROUND_HALF_UP)
    second = first
    final = total - first - second
    return first, second, final


def milestone_payment_amount(total: Union[int, str, Decimal], payment_number: int) -> Decimal:
    if payment_number not in (1, 2, 3):
        return Decimal("0")
    return split_grant(total)[payment_number - 1]


def format_currency(amount: Union[int, Decimal]) -> str:
    """e.g. $1,875.00"""
    return f"${Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"
