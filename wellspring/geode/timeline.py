"""
Contract timeline calculator
Works milestone dates forward from the signing date and checks the remaining
buffer before the state's DOE deadline
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping, Optional

from ..exceptions import ConfigurationError
from .reference import DEFAULT_DOE_DEADLINES, get_state

logger = logging.getLogger(__name__)

TIGHT_WEEKS_THRESHOLD = 8
MIN_BUFFER_DAYS = 7

# Days between consecutive milestones: expertQ, firstDraft, reviewReturn, grammarProof, finalApproval
TIGHT_OFFSETS = (7, 8, 12, 9, 7)
MEDIUM_OFFSETS = (14, 14, 7, 7, 14)

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def format_date(value: date) -> str:
    """MM/DD/YYYY"""
    return value.strftime("%m/%d/%Y")


def format_date_long(value: date) -> str:
    """e.g. January 1, 2025"""
    return f"{MONTHS[value.month - 1]} {value.day}, {value.year}"


@dataclass(frozen=True)
class ContractTimeline:
    signing_date: date
    expert_q_date: date
    first_draft_date: date
    review_return_date: date
    grammar_proof_date: date
    final_approval_date: date
    doe_deadline: date
    buffer_days: int
    timeline_type: str  # tight | medium
    buffer_warning: bool = False

    @property
    def effective_date(self) -> str:
        return format_date_long(self.signing_date)

    def as_display(self) -> dict:
        """Formatted fields as they appear in the contract and logs"""
        return {
            "effectiveDate": self.effective_date,
            "expertQDate": format_date(self.expert_q_date),
            "firstDraftDate": format_date(self.first_draft_date),
            "reviewReturnDate": format_date(self.review_return_date),
            "grammarProofDate": format_date(self.grammar_proof_date),
            "finalApprovalDate": format_date(self.final_approval_date),
            "doeDeadline": format_date(self.doe_deadline),
            "bufferDays": self.buffer_days,
            "timelineType": self.timeline_type,
            "bufferWarning": self.buffer_warning,
        }


def compute_timeline(deadline: date, signing_date: date, state: str = "") -> ContractTimeline:
    weeks_until_deadline = (deadline - signing_date).days / 7
    is_tight = weeks_until_deadline <= TIGHT_WEEKS_THRESHOLD
    offsets = TIGHT_OFFSETS if is_tight else MEDIUM_OFFSETS

    milestones = []
    cursor = signing_date
    for offset in offsets:
        cursor = cursor + timedelta(days=offset)
        milestones.append(cursor)

    final_approval = milestones[-1]
    buffer_days = (deadline - final_approval).days
    buffer_warning = buffer_days < MIN_BUFFER_DAYS
    if buffer_warning:
        logger.warning(
            f"⚠️ Only {buffer_days} days buffer before DOE deadline for {state or 'this report'}. "
            "Consider whether this timeline is realistic."
        )

    return ContractTimeline(
        signing_date=signing_date,
        expert_q_date=milestones[0],
        first_draft_date=milestones[1],
        review_return_date=milestones[2],
        grammar_proof_date=milestones[3],
        final_approval_date=final_approval,
        doe_deadline=deadline,
        buffer_days=buffer_days,
        timeline_type="tight" if is_tight else "medium",
        buffer_warning=buffer_warning,
    )


def timeline_for_state(
    state: str,
    signing_date: Optional[date] = None,
    deadlines: Optional[Mapping[str, date]] = None,
) -> ContractTimeline:
    """Timeline against the state's DOE deadline from the editable table (defaults if not given)"""
    if not get_state(state):
        raise ConfigurationError(f"Unknown report state: {state}")
    table = deadlines if deadlines is not None else DEFAULT_DOE_DEADLINES
    deadline = table.get(state) or DEFAULT_DOE_DEADLINES[state]
    return compute_timeline(deadline, signing_date or date.today(), state)
