"""
GEODE chapter workflow registry
Ordered step lists for the three workflow types, derived values (days on step,
overdue, progress, next owner) and the transition table used to validate advances
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from ..exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

WORKFLOW_CH101 = "ch101"
WORKFLOW_SUBSURFACE = "subsurface"
WORKFLOW_STANDARD = "standard"


@dataclass(frozen=True)
class StepMeta:
    id: str
    label: str
    short_label: str
    description: str
    default_owner: Optional[str]
    typical_duration_days: Optional[int]
    requires_approval: bool = False
    can_skip: bool = False


_NOT_STARTED = StepMeta("not_started", "Not Started", "Not Started", "Chapter work has not begun", None, 0)

SUBSURFACE_WORKFLOW: list[StepMeta] = [
    _NOT_STARTED,
    StepMeta("state_geologist_prework", "State Geologist Pre-work", "State Geo",
             "Pre-work coordination with the state geologist", "State Geologist", 14),
    StepMeta("veit_summary_draft", "Veit Summary Draft", "Veit Draft",
             "Veit writes the summary report based on state geologist input", "Veit", 7),
    StepMeta("ghost_writer_draft", "Ghost Writer Draft", "Ghost Writer",
             "Ghost writer develops Veit's summary into full chapter", "Ghost Writer", 10),
    StepMeta("trent_review_1", "Trent Review (Round 1)", "Trent R1",
             "Trent approves the ghost writer draft", "Trent", 3, requires_approval=True),
    StepMeta("maria_review_1", "Maria Review (Round 1)", "Maria R1",
             "Maria reviews and approves", "Maria", 3, requires_approval=True),
    StepMeta("peer_review_state_geologist", "Peer Review (State Geologist)", "Peer Review",
             "State geologist conducts peer review", "State Geologist", 7, requires_approval=True),
    StepMeta("veit_review_2", "Veit Review (Round 2)", "Veit R2",
             "Veit reviews after peer review feedback", "Veit", 3, requires_approval=True),
    StepMeta("trent_review_2", "Trent Review (Round 2)", "Trent R2",
             "Trent final review", "Trent", 2, requires_approval=True),
    StepMeta("maria_review_2", "Maria Review (Round 2)", "Maria R2",
             "Maria final review", "Maria", 2, requires_approval=True),
    StepMeta("done", "Complete", "Done", "Chapter is complete and ready for DOE", None, 0),
]

STANDARD_WORKFLOW: list[StepMeta] = [
    _NOT_STARTED,
    StepMeta("outreach_identify_authors", "Outreach - Identify Authors", "Outreach",
             "Conduct outreach to identify prospective authors", "Content Owner", 14),
    StepMeta("schedule_meeting", "Schedule Meeting", "Schedule",
             "Schedule introductory meeting with prospective author", "Content Owner", 7),
    StepMeta("explain_project", "Explain Project", "Meeting",
             "Meet with author to explain the project", "Content Owner", 1),
    StepMeta("send_contract", "Send Contract", "Send Contract",
             "Send contract to author for signature", "Content Owner", 1),
    StepMeta("awaiting_contract_signature", "Awaiting Contract Signature", "Await Sign",
             "Waiting for author to sign and return contract", "Author", 7, requires_approval=True),
    StepMeta("awaiting_author_responses", "Awaiting Author Responses", "Await Responses",
             "Author answering series of questions", "Author", 14),
    StepMeta("ai_deep_research_draft", "AI Deep Research Draft", "AI Draft",
             "AI creates first draft (incorporating author responses if available)", "Deep Research AI", 2),
    StepMeta("maria_initial_review", "Maria Initial Review", "Maria Init",
             "Maria reviews AI draft", "Maria", 3, requires_approval=True),
    StepMeta("content_approver_review_1", "Content Approver Review (Round 1)", "Approver R1",
             "Content approver (per Appendix 1) reviews draft", "Content Approver", 5, requires_approval=True),
    StepMeta("drew_review", "Drew Review", "Drew",
             "Drew reviews (required for Policy, optional for others)", "Drew", 5,
             requires_approval=True, can_skip=True),
    StepMeta("author_approval_round_1", "Author Approval (Round 1)", "Author R1",
             "Author's first approval of the draft", "Author", 7, requires_approval=True),
    StepMeta("content_approver_review_2", "Content Approver Review (Round 2)", "Approver R2",
             "Content approver reviews author's edits", "Content Approver", 3, requires_approval=True),
    StepMeta("maria_edit_pass", "Maria Edit Pass", "Maria Edit",
             "Maria's editing, streamlining, and consolidation pass", "Maria", 5),
    StepMeta("drew_content_approver_review", "Drew/Content Approver Review", "Drew/Approver",
             "Drew and/or content approver review Maria's edits", "Content Approver", 3,
             requires_approval=True, can_skip=True),
    StepMeta("peer_review", "Peer Review", "Peer Review",
             "External peer review of the chapter", "External Reviewer", 7, requires_approval=True),
    StepMeta("author_approval_round_2", "Author Approval (Round 2)", "Author R2",
             "Author's second approval (if changes were made)", "Author", 5,
             requires_approval=True, can_skip=True),
    StepMeta("copywriter_pass", "Copywriter Pass", "Copywriter",
             "Copywriter reviews for grammar and final polish", "Copywriter", 3),
    StepMeta("author_approval_round_3", "Author Approval (Round 3)", "Author R3",
             "Author's final approval of publication-ready draft", "Author", 3, requires_approval=True),
    StepMeta("doe_ready", "DOE Ready", "DOE Ready", "Publication-ready draft submitted to DOE", None, 0),
    StepMeta("design_phase", "Design Phase", "Design",
             "Maria's designers create designed version (not required for DOE)", "Designers", 14,
             can_skip=True),
    StepMeta("done", "Complete", "Done", "Chapter is fully complete including design", None, 0),
]

CH101_WORKFLOW: list[StepMeta] = [
    _NOT_STARTED,
    StepMeta("drafting", "Drafting", "Drafting", "Initial draft being written", "Drew, Dani, Maria, Trent", 14),
    StepMeta("internal_review", "Internal Review", "Review", "Internal team review", "Trent", 7,
             requires_approval=True),
    StepMeta("final_edit", "Final Edit", "Final Edit", "Final editing pass", "Maria", 3),
    StepMeta("done", "Complete", "Done", "Chapter is complete", None, 0),
]

WORKFLOWS: dict[str, list[StepMeta]] = {
    WORKFLOW_CH101: CH101_WORKFLOW,
    WORKFLOW_SUBSURFACE: SUBSURFACE_WORKFLOW,
    WORKFLOW_STANDARD: STANDARD_WORKFLOW,
}


def workflow_type_for_chapter(chapter_type: str) -> str:
    if chapter_type == "ch1_101":
        return WORKFLOW_CH101
    if chapter_type == "ch2_subsurface":
        return WORKFLOW_SUBSURFACE
    return WORKFLOW_STANDARD


def get_workflow(workflow_type: str) -> list[StepMeta]:
    return WORKFLOWS.get(workflow_type, STANDARD_WORKFLOW)


def get_step_meta(workflow_type: str, step_id: str) -> Optional[StepMeta]:
    return next((s for s in get_workflow(workflow_type) if s.id == step_id), None)


def get_step_index(workflow_type: str, step_id: str) -> int:
    """Position of a step in its workflow, -1 if unknown"""
    for index, step in enumerate(get_workflow(workflow_type)):
        if step.id == step_id:
            return index
    return -1


def is_valid_step(workflow_type: str, step_id: str) -> bool:
    return get_step_index(workflow_type, step_id) >= 0


def days_on_step(started_at: Union[datetime, date], now: Optional[datetime] = None) -> int:
    """Whole days on the current step, rounded up"""
    now = now or datetime.utcnow()
    if not isinstance(started_at, datetime):
        started_at = datetime.combine(started_at, datetime.min.time())
    seconds = (now - started_at).total_seconds()
    return math.ceil(seconds / 86400)


def is_step_overdue(
    started_at: Union[datetime, date], typical_days: Optional[int], now: Optional[datetime] = None
) -> bool:
    if typical_days is None:
        return False
    return days_on_step(started_at, now) > typical_days


def calculate_workflow_progress(workflow_type: str, step_id: str) -> int:
    """Percent through the workflow, not counting not_started and done"""
    if step_id == "done":
        return 100
    if step_id == "not_started":
        return 0
    workflow = get_workflow(workflow_type)
    index = get_step_index(workflow_type, step_id)
    if index == -1:
        return 0
    return round((index - 1) / (len(workflow) - 2) * 100)


def get_next_step(workflow_type: str, step_id: str) -> Optional[StepMeta]:
    workflow = get_workflow(workflow_type)
    index = get_step_index(workflow_type, step_id)
    if index == -1 or index + 1 >= len(workflow):
        return None
    return workflow[index + 1]


def get_next_owner(workflow_type: str, step_id: str, content_approver: str) -> str:
    """Default owner of the following step, with "Content Approver" resolved to a person"""
    next_step = get_next_step(workflow_type, step_id)
    if not next_step:
        return ""
    if next_step.default_owner == "Content Approver":
        return content_approver
    return next_step.default_owner or ""


class ChapterStateMachine:
    """
    Transition table for one workflow type

    A step may move to the next step in order, or past a run of consecutive
    skippable steps. Anything else is an override and requires force=True.
    """

    def __init__(self, workflow_type: str):
        self.workflow_type = workflow_type
        self.steps = get_workflow(workflow_type)
        self.transitions: dict[str, list[str]] = self._build_transitions()

    def _build_transitions(self) -> dict[str, list[str]]:
        table = {}
        for index, step in enumerate(self.steps):
            targets = []
            cursor = index + 1
            while cursor < len(self.steps):
                targets.append(self.steps[cursor].id)
                if not self.steps[cursor].can_skip:
                    break
                cursor += 1
            table[step.id] = targets
        return table

    def allowed_targets(self, step_id: str) -> list[str]:
        return list(self.transitions.get(step_id, []))

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, [])

    def check(self, current: str, target: str, force: bool = False) -> bool:
        """
        Validate a transition. Returns True when the move is an override.

        Raises InvalidTransitionError for unknown targets, and for out-of-order
        targets unless force is set.
        """
        if not is_valid_step(self.workflow_type, target):
            raise InvalidTransitionError(current, target, self.allowed_targets(current))
        if self.can_transition(current, target):
            return False
        if not force:
            raise InvalidTransitionError(current, target, self.allowed_targets(current))
        logger.warning(
            f"⚠️ Forced transition {current} → {target} ({self.workflow_type} workflow)"
        )
        return True
