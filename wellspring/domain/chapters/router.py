"""Chapter router - FastAPI endpoints for the GEODE chapter workflow"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...dependencies import get_gmail_service, get_monday_service, get_slack_service
from ...geode.payments import PaymentMilestones, get_payment_status, get_payment_status_label
from ...geode.reference import get_chapter_type, get_state
from ...geode.workflow import (
    ChapterStateMachine,
    calculate_workflow_progress,
    days_on_step,
    get_next_step,
    get_step_meta,
    is_step_overdue,
)
from ...models import Chapter
from ...services.board_sync import sync_chapter_to_monday, sync_state_chapters_to_monday
from ...services.gmail_service import GmailService
from ...services.monday_service import MondayService
from ...services.nudge_service import NudgeService
from ...services.slack_service import SlackService
from .schemas import (
    AdvanceStepRequest,
    AdvanceStepResponse,
    AuthorInfoUpdate,
    BlockerUpdate,
    BoardItemUpdate,
    ChapterResponse,
    ChapterTypeResponse,
    ContractDeadlineUpdate,
    CustomChapterTypeCreate,
    DoeDeadlineUpdate,
    HistoryEntryResponse,
    InitializeResponse,
    NotesUpdate,
    NudgeResponse,
    PaymentStatusRequest,
    PaymentStatusResponse,
    ProgressResponse,
    TimelineResponse,
)
from .service import ChapterService, StepTransitionHandler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geode", tags=["GEODE Chapters"])


def get_chapter_service(
    db: Session = Depends(get_db),
    monday: MondayService = Depends(get_monday_service),
    gmail: GmailService = Depends(get_gmail_service),
) -> ChapterService:
    """Dependency injection for ChapterService"""
    return ChapterService(db, StepTransitionHandler(monday, gmail))


def chapter_response(chapter: Chapter, custom_types=()) -> ChapterResponse:
    step = get_step_meta(chapter.workflow_type, chapter.current_step)
    chapter_type = get_chapter_type(chapter.chapter_type, custom_types)
    typical_days = step.typical_duration_days if step and chapter.current_step not in ("done", "not_started") else None
    return ChapterResponse(
        chapterId=chapter.chapter_id,
        reportState=chapter.report_state,
        chapterType=chapter.chapter_type,
        chapterLabel=chapter_type.label if chapter_type else None,
        workflowType=chapter.workflow_type,
        currentStep=chapter.current_step,
        currentStepLabel=step.label if step else None,
        currentStepStartedAt=chapter.current_step_started_at,
        currentOwner=chapter.current_owner,
        daysOnStep=days_on_step(chapter.current_step_started_at),
        overdue=is_step_overdue(chapter.current_step_started_at, typical_days),
        progress=calculate_workflow_progress(chapter.workflow_type, chapter.current_step),
        notes=chapter.notes,
        blockers=chapter.blockers,
        googleDocUrl=chapter.google_doc_url,
        authorName=chapter.author_name,
        authorEmail=chapter.author_email,
        contractSigned=bool(chapter.contract_signed),
        contractSignedDate=chapter.contract_signed_date,
        grantAmount=chapter.grant_amount,
        contractDeadlines=chapter.contract_deadlines or {},
        mondayItemId=chapter.monday_item_id,
        paymentContributorId=chapter.payment_contributor_id,
        history=[
            HistoryEntryResponse(
                stepId=h.step_id,
                startedAt=h.started_at,
                completedAt=h.completed_at,
                owner=h.owner,
                notes=h.notes,
                durationDays=h.duration_days,
                forced=bool(h.forced),
            )
            for h in chapter.history
        ],
    )


# ============================================================================
# CHAPTER QUERIES
# ============================================================================


@router.get("/chapters", response_model=list[ChapterResponse])
async def list_chapters(
    state: Optional[str] = Query(None),
    owner: Optional[str] = Query(None),
    overdue: bool = Query(False),
    blockers: bool = Query(False),
    service: ChapterService = Depends(get_chapter_service),
):
    """List chapters. Each filter given narrows the result further"""
    chapters = service.get_chapters_for_state(state) if state else service.list_chapters()

    if owner:
        owned = {c.chapter_id for c in service.get_chapters_by_owner(owner)}
        chapters = [c for c in chapters if c.chapter_id in owned]
    if overdue:
        late = {c.chapter_id for c in service.get_overdue_chapters()}
        chapters = [c for c in chapters if c.chapter_id in late]
    if blockers:
        blocked = {c.chapter_id for c in service.get_chapters_with_blockers()}
        chapters = [c for c in chapters if c.chapter_id in blocked]

    custom = service.custom_chapter_types()
    return [chapter_response(c, custom) for c in chapters]


@router.post("/chapters/initialize", response_model=InitializeResponse)
async def initialize_chapters(service: ChapterService = Depends(get_chapter_service)):
    """Seed missing chapter rows for every state"""
    return InitializeResponse(**service.initialize_chapters())


@router.get("/chapters/{chapter_id}", response_model=ChapterResponse)
async def get_chapter(chapter_id: str, service: ChapterService = Depends(get_chapter_service)):
    return chapter_response(service.get_chapter(chapter_id), service.custom_chapter_types())


@router.get("/chapters/{chapter_id}/progress", response_model=ProgressResponse)
async def get_chapter_progress(chapter_id: str, service: ChapterService = Depends(get_chapter_service)):
    chapter = service.get_chapter(chapter_id)
    step = get_step_meta(chapter.workflow_type, chapter.current_step)
    next_step = get_next_step(chapter.workflow_type, chapter.current_step)
    active = chapter.current_step not in ("done", "not_started")
    return ProgressResponse(
        chapterId=chapter.chapter_id,
        currentStep=chapter.current_step,
        progress=calculate_workflow_progress(chapter.workflow_type, chapter.current_step),
        daysOnStep=days_on_step(chapter.current_step_started_at),
        overdue=bool(active and step and is_step_overdue(chapter.current_step_started_at, step.typical_duration_days)),
        nextStep=next_step.id if next_step else None,
        nextOwner=service.default_owner(chapter, next_step.id) if next_step else None,
        allowedTargets=ChapterStateMachine(chapter.workflow_type).allowed_targets(chapter.current_step),
    )


# ============================================================================
# WORKFLOW TRANSITIONS
# ============================================================================


@router.post("/chapters/{chapter_id}/advance", response_model=AdvanceStepResponse)
async def advance_chapter(
    chapter_id: str,
    data: AdvanceStepRequest,
    service: ChapterService = Depends(get_chapter_service),
):
    """Move a chapter to another step, then sync Monday.com and payment emails"""
    event, sync = await service.complete_step(chapter_id, data.targetStep, data.owner, data.notes, data.force)
    return AdvanceStepResponse(
        chapter=chapter_response(service.get_chapter(chapter_id), service.custom_chapter_types()),
        completedStep=event.completed_step,
        newStep=event.new_step,
        forced=event.forced,
        sync=sync.as_dict() if sync else {},
    )


# ============================================================================
# CHAPTER EDITS
# ============================================================================


@router.put("/chapters/{chapter_id}/notes", response_model=ChapterResponse)
async def update_notes(chapter_id: str, data: NotesUpdate, service: ChapterService = Depends(get_chapter_service)):
    return chapter_response(service.update_notes(chapter_id, data.notes))


@router.put("/chapters/{chapter_id}/blocker", response_model=ChapterResponse)
async def update_blocker(chapter_id: str, data: BlockerUpdate, service: ChapterService = Depends(get_chapter_service)):
    return chapter_response(service.update_blocker(chapter_id, data.blocker))


@router.put("/chapters/{chapter_id}/author", response_model=ChapterResponse)
async def update_author(chapter_id: str, data: AuthorInfoUpdate, service: ChapterService = Depends(get_chapter_service)):
    chapter = service.set_author_info(
        chapter_id, data.authorName, data.authorEmail, data.contractSigned, data.contractSignedDate
    )
    return chapter_response(chapter)


@router.put("/chapters/{chapter_id}/deadlines", response_model=ChapterResponse)
async def set_contract_deadline(
    chapter_id: str, data: ContractDeadlineUpdate, service: ChapterService = Depends(get_chapter_service)
):
    return chapter_response(service.set_contract_deadline(chapter_id, data.stepId, data.deadline))


@router.put("/chapters/{chapter_id}/monday-item", response_model=ChapterResponse)
async def set_monday_item(chapter_id: str, data: BoardItemUpdate, service: ChapterService = Depends(get_chapter_service)):
    return chapter_response(service.set_monday_item_id(chapter_id, data.itemId))


@router.put("/chapters/{chapter_id}/payment-contributor", response_model=ChapterResponse)
async def set_payment_contributor(
    chapter_id: str, data: BoardItemUpdate, service: ChapterService = Depends(get_chapter_service)
):
    return chapter_response(service.set_payment_contributor_id(chapter_id, data.itemId))


# ============================================================================
# STATE CHAPTER LISTS AND CHAPTER TYPES
# ============================================================================


@router.post("/states/{state}/chapters/{chapter_type}", response_model=ChapterResponse)
async def add_chapter_to_state(state: str, chapter_type: str, service: ChapterService = Depends(get_chapter_service)):
    chapter = service.add_chapter_to_state(state, chapter_type)
    return chapter_response(chapter, service.custom_chapter_types())


@router.delete("/states/{state}/chapters/{chapter_type}")
async def remove_chapter_from_state(state: str, chapter_type: str, service: ChapterService = Depends(get_chapter_service)):
    if not service.remove_chapter_from_state(state, chapter_type):
        raise HTTPException(status_code=404, detail="Chapter not found")
    return {"success": True}


@router.put("/states/{state}/deadline")
async def set_doe_deadline(state: str, data: DoeDeadlineUpdate, service: ChapterService = Depends(get_chapter_service)):
    deadline = service.set_doe_deadline(state, data.deadline)
    return {"state": state, "deadline": deadline.isoformat()}


@router.get("/chapter-types", response_model=list[ChapterTypeResponse])
async def list_chapter_types(service: ChapterService = Depends(get_chapter_service)):
    return [
        ChapterTypeResponse(value=c.value, label=c.label, chapterNum=c.chapter_num, custom=c.custom)
        for c in service.all_chapter_types()
    ]


@router.post("/chapter-types", response_model=ChapterTypeResponse)
async def add_custom_chapter_type(data: CustomChapterTypeCreate, service: ChapterService = Depends(get_chapter_service)):
    custom = service.add_custom_chapter_type(data.value, data.label, data.chapterNum)
    if not custom:
        raise HTTPException(status_code=409, detail=f"Chapter type {data.value} already exists")
    return ChapterTypeResponse(value=custom.value, label=custom.label, chapterNum=custom.chapter_num, custom=True)


@router.delete("/chapter-types/{value}")
async def remove_custom_chapter_type(value: str, service: ChapterService = Depends(get_chapter_service)):
    if not service.remove_custom_chapter_type(value):
        raise HTTPException(status_code=400, detail="Only existing custom chapter types can be removed")
    return {"success": True}


# ============================================================================
# TIMELINE, PAYMENTS AND NUDGES
# ============================================================================


@router.get("/timeline/{state}", response_model=TimelineResponse)
async def preview_timeline(
    state: str,
    signingDate: Optional[date] = Query(None),
    service: ChapterService = Depends(get_chapter_service),
):
    """Contract timeline for a state's DOE deadline"""
    if not get_state(state):
        raise HTTPException(status_code=404, detail=f"Unknown state: {state}")
    timeline = service.timeline_for_state(state, signingDate)
    return TimelineResponse(state=state, **timeline.as_display())


@router.post("/payments/status", response_model=PaymentStatusResponse)
async def payment_status(data: PaymentStatusRequest):
    status = get_payment_status(PaymentMilestones(**data.model_dump()))
    return PaymentStatusResponse(status=status, label=get_payment_status_label(status))


@router.post("/nudges/overdue", response_model=list[NudgeResponse])
async def nudge_overdue_chapters(
    service: ChapterService = Depends(get_chapter_service),
    slack: SlackService = Depends(get_slack_service),
    gmail: GmailService = Depends(get_gmail_service),
    monday: MondayService = Depends(get_monday_service),
):
    """Remind owners of every overdue chapter"""
    nudges = NudgeService(slack, gmail, monday=monday)
    results = await nudges.nudge_overdue(service.get_overdue_chapters())
    return [NudgeResponse(**r) for r in results]


# ============================================================================
# MONDAY.COM REPORTS PROGRESS SYNC
# ============================================================================


@router.post("/chapters/{chapter_id}/monday-sync")
async def sync_chapter(
    chapter_id: str,
    service: ChapterService = Depends(get_chapter_service),
    monday: MondayService = Depends(get_monday_service),
):
    """Post the chapter's current status as a comment on its Reports Progress item"""
    return await sync_chapter_to_monday(monday, service.get_chapter(chapter_id))


@router.post("/states/{state}/monday-sync")
async def sync_state(
    state: str,
    service: ChapterService = Depends(get_chapter_service),
    monday: MondayService = Depends(get_monday_service),
):
    if not get_state(state):
        raise HTTPException(status_code=404, detail=f"Unknown state: {state}")
    return await sync_state_chapters_to_monday(monday, service.get_chapters_for_state(state))
