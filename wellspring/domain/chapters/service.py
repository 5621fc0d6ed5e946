"""Chapter service - Business logic for the GEODE chapter workflow"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFoundError, PartialFailure
from ...geode.payments import should_send_payment_email, should_trigger_payment
from ...geode.reference import (
    BUILTIN_CHAPTER_VALUES,
    DEFAULT_DOE_DEADLINES,
    GEODE_CHAPTER_TYPES,
    GEODE_STATES,
    ChapterType,
    get_all_chapter_types,
    get_chapter_lead,
    get_chapter_type,
    get_state,
)
from ...geode.timeline import ContractTimeline, timeline_for_state
from ...geode.workflow import (
    ChapterStateMachine,
    get_step_meta,
    is_step_overdue,
    workflow_type_for_chapter,
)
from ...models import Chapter, CustomChapterType
from ...services.board_sync import get_monday_status_label, payment_email_note, sync_chapter_to_payments
from ...services.gmail_service import GmailService
from ...services.monday_service import MondayService
from ...services.payment_emails import AuthorInfo, payment_email_for_step
from .repository import ChapterRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepCompletedEvent:
    chapter_id: str
    completed_step: str
    new_step: str
    forced: bool = False


@dataclass
class TransitionSyncResult:
    """Outcome of the side effects that follow a step transition"""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    details: dict = field(default_factory=dict)

    def raise_for_failures(self) -> None:
        if self.failed:
            raise PartialFailure(self.succeeded, self.failed)

    def as_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "details": self.details,
        }


class StepTransitionHandler:
    """
    Consumes StepCompletedEvent, in order:
    Reports Progress comment, Payments board milestone, payment email draft.
    Each step runs even if an earlier one failed; nothing is rolled back.
    """

    def __init__(self, monday: Optional[MondayService] = None, gmail: Optional[GmailService] = None):
        self.monday = monday
        self.gmail = gmail

    async def handle(self, chapter: Chapter, event: StepCompletedEvent, notes: Optional[str] = None) -> TransitionSyncResult:
        result = TransitionSyncResult()
        await self._comment_progress(chapter, event, notes, result)
        await self._set_payment_milestone(chapter, event, result)
        await self._draft_payment_email(chapter, event, result)

        if result.failed:
            logger.warning(f"⚠️ Transition sync for {event.chapter_id} partially failed: {', '.join(result.failed)}")
        else:
            logger.info(f"✅ Transition sync for {event.chapter_id} complete")
        return result

    async def _comment_progress(self, chapter, event, notes, result):
        if not self.monday or not chapter.monday_item_id:
            result.skipped.append("monday_comment")
            return
        comment = f"[Wellspring] Step advanced to: {get_monday_status_label(event.new_step)}\nOwner: {chapter.current_owner}"
        if notes:
            comment += f"\nNotes: {notes}"
        outcome = await self.monday.add_comment(chapter.monday_item_id, comment)
        if outcome["success"]:
            result.succeeded.append("monday_comment")
        else:
            result.failed.append("monday_comment")
            result.details["monday_comment"] = outcome["error"]

    async def _set_payment_milestone(self, chapter, event, result):
        if not should_trigger_payment(event.completed_step):
            return
        if not self.monday or not chapter.payment_contributor_id:
            result.skipped.append("payment_milestone")
            return
        chapter_type = get_chapter_type(chapter.chapter_type)
        outcome = await sync_chapter_to_payments(
            self.monday,
            chapter.payment_contributor_id,
            event.completed_step,
            chapter_type.label if chapter_type else chapter.chapter_type,
            chapter.author_name or "Unknown author",
        )
        result.details["payment_milestone"] = outcome.get("milestone")
        if outcome["triggered"]:
            result.succeeded.append("payment_milestone")
        else:
            result.failed.append("payment_milestone")

    async def _draft_payment_email(self, chapter, event, result):
        decision = should_send_payment_email(event.completed_step)
        if not (decision["sendAccountingSetup"] or decision["sendInvoiceReminder"]):
            return
        if not chapter.author_name or not chapter.author_email:
            result.skipped.append("payment_email")
            return
        if not self.gmail or not await self.gmail.is_connected():
            logger.warning(f"⚠️ Gmail not connected, payment email skipped for {chapter.author_name}")
            result.skipped.append("payment_email")
            return

        state = get_state(chapter.report_state)
        chapter_type = get_chapter_type(chapter.chapter_type)
        author = AuthorInfo(
            name=chapter.author_name,
            email=chapter.author_email,
            state_name=state.label if state else chapter.report_state,
            chapter_num=chapter_type.chapter_num if chapter_type else "",
            chapter_title=chapter_type.label if chapter_type else chapter.chapter_type,
        )
        email = payment_email_for_step(event.completed_step, author, Decimal(str(chapter.grant_amount or 5000)))
        if not email.email:
            return

        draft = await self.gmail.create_draft(
            email.email.to, email.email.subject, email.email.body, cc=email.email.cc, attachment=email.email.attachment
        )
        if not draft["success"]:
            result.failed.append("payment_email")
            result.details["payment_email"] = draft["error"]
            return

        result.succeeded.append("payment_email")
        result.details["payment_email"] = {"type": email.email_type, "draftId": draft["draftId"]}
        if self.monday and chapter.payment_contributor_id:
            await self.monday.add_comment(
                chapter.payment_contributor_id,
                payment_email_note(email.email_type, chapter.author_name, email.payment_number),
            )


class ChapterService:
    """Service layer for chapter workflow state"""

    def __init__(self, db: Session, transition_handler: Optional[StepTransitionHandler] = None):
        self.db = db
        self.repo = ChapterRepository()
        self.transition_handler = transition_handler

    # Reads

    def custom_chapter_types(self) -> list[ChapterType]:
        return [
            ChapterType(c.value, c.label, c.chapter_num, custom=True)
            for c in self.repo.get_custom_chapter_types(self.db)
        ]

    def all_chapter_types(self) -> list[ChapterType]:
        return get_all_chapter_types(self.custom_chapter_types())

    def _master_order(self) -> dict[str, int]:
        return {c.value: i for i, c in enumerate(self.all_chapter_types())}

    def list_chapters(self) -> list[Chapter]:
        return self.repo.get_all_chapters(self.db)

    def get_chapter(self, chapter_id: str) -> Chapter:
        chapter = self.repo.get_chapter(self.db, chapter_id)
        if not chapter:
            raise NotFoundError("Chapter", chapter_id)
        return chapter

    def find_chapter(self, state: str, chapter_type: str) -> Optional[Chapter]:
        return self.repo.get_chapter(self.db, f"{state}_{chapter_type}")

    def get_chapters_for_state(self, state: str) -> list[Chapter]:
        """Chapters for one state in master chapter order"""
        order = self._master_order()
        chapters = self.repo.get_chapters_for_state(self.db, state)
        return sorted(chapters, key=lambda c: order.get(c.chapter_type, len(order)))

    def get_chapters_by_owner(self, owner_name: str) -> list[Chapter]:
        """Active chapters whose current owner contains the name, case-insensitive"""
        return self.repo.get_chapters_by_owner(self.db, owner_name)

    def get_overdue_chapters(self, now: Optional[datetime] = None) -> list[Chapter]:
        overdue = []
        for chapter in self.repo.get_active_chapters(self.db):
            step = get_step_meta(chapter.workflow_type, chapter.current_step)
            if step and is_step_overdue(chapter.current_step_started_at, step.typical_duration_days, now):
                overdue.append(chapter)
        return overdue

    def get_chapters_with_blockers(self) -> list[Chapter]:
        return self.repo.get_chapters_with_blockers(self.db)

    def doe_deadlines(self) -> dict[str, date]:
        """Editable DOE deadlines layered over the defaults"""
        return {**DEFAULT_DOE_DEADLINES, **self.repo.get_doe_deadlines(self.db)}

    def timeline_for_state(self, state: str, signing_date: Optional[date] = None) -> ContractTimeline:
        return timeline_for_state(state, signing_date, self.doe_deadlines())

    # Transitions

    def default_owner(self, chapter: Chapter, step_id: str) -> str:
        step = get_step_meta(chapter.workflow_type, step_id)
        if not step or not step.default_owner:
            return ""
        if step.default_owner == "Content Approver":
            return get_chapter_lead(chapter.report_state, chapter.chapter_type)
        return step.default_owner

    def advance_step(
        self,
        chapter_id: str,
        target_step: str,
        owner: Optional[str] = None,
        notes: Optional[str] = None,
        force: bool = False,
    ) -> StepCompletedEvent:
        """
        Move a chapter to target_step. The transition table allows the next step or a
        skip over optional steps; anything else raises InvalidTransitionError unless
        force is set, in which case it is logged and recorded as forced in history.
        """
        chapter = self.get_chapter(chapter_id)
        completed_step = chapter.current_step

        forced = ChapterStateMachine(chapter.workflow_type).check(completed_step, target_step, force)

        now = datetime.utcnow()
        duration = math.ceil((now - chapter.current_step_started_at).total_seconds() / 86400)
        new_owner = owner if owner is not None else self.default_owner(chapter, target_step)

        self.repo.record_transition(self.db, chapter, target_step, new_owner, notes, now, duration, forced)
        logger.info(f"🔄 {chapter_id}: {completed_step} → {target_step} (owner: {new_owner or 'none'})")

        return StepCompletedEvent(
            chapter_id=chapter_id, completed_step=completed_step, new_step=target_step, forced=forced
        )

    async def complete_step(
        self,
        chapter_id: str,
        target_step: str,
        owner: Optional[str] = None,
        notes: Optional[str] = None,
        force: bool = False,
    ) -> tuple[StepCompletedEvent, Optional[TransitionSyncResult]]:
        """advance_step, then hand the event to the transition handler"""
        event = self.advance_step(chapter_id, target_step, owner, notes, force)
        if not self.transition_handler:
            return event, None
        sync = await self.transition_handler.handle(self.get_chapter(chapter_id), event, notes)
        return event, sync

    # Edits

    def update_notes(self, chapter_id: str, notes: Optional[str]) -> Chapter:
        return self.repo.update_chapter(self.db, self.get_chapter(chapter_id), notes=notes)

    def update_blocker(self, chapter_id: str, blocker: Optional[str]) -> Chapter:
        chapter = self.repo.update_chapter(self.db, self.get_chapter(chapter_id), blockers=blocker or None)
        if blocker:
            logger.warning(f"⚠️ Blocker on {chapter_id}: {blocker}")
        return chapter

    def set_author_info(
        self,
        chapter_id: str,
        author_name: str,
        author_email: str,
        contract_signed: bool = False,
        contract_signed_date: Optional[date] = None,
    ) -> Chapter:
        logger.info(f"📝 Author for {chapter_id}: {author_name} <{author_email}>")
        return self.repo.update_chapter(
            self.db,
            self.get_chapter(chapter_id),
            author_name=author_name,
            author_email=author_email,
            contract_signed=contract_signed,
            contract_signed_date=contract_signed_date,
        )

    def set_contract_deadline(self, chapter_id: str, step_id: str, deadline: date) -> Chapter:
        chapter = self.get_chapter(chapter_id)
        # Reassign so the JSON column is flagged dirty
        deadlines = {**(chapter.contract_deadlines or {}), step_id: deadline.isoformat()}
        return self.repo.update_chapter(self.db, chapter, contract_deadlines=deadlines)

    def set_doe_deadline(self, state: str, deadline: date) -> date:
        if not get_state(state):
            raise NotFoundError("State", state)
        self.repo.upsert_doe_deadline(self.db, state, deadline)
        logger.info(f"📝 DOE deadline for {state} set to {deadline.isoformat()}")
        return deadline

    def set_monday_item_id(self, chapter_id: str, item_id: str) -> Chapter:
        return self.repo.update_chapter(self.db, self.get_chapter(chapter_id), monday_item_id=item_id)

    def set_payment_contributor_id(self, chapter_id: str, item_id: str) -> Chapter:
        return self.repo.update_chapter(self.db, self.get_chapter(chapter_id), payment_contributor_id=item_id)

    # Seeding and chapter lists

    def _new_chapter(self, state: str, chapter_type: str) -> Chapter:
        return self.repo.build_chapter(
            state,
            chapter_type,
            workflow_type_for_chapter(chapter_type),
            get_chapter_lead(state, chapter_type),
        )

    def initialize_chapters(self) -> dict:
        """Seed every state with the built-in chapter types; existing rows are left untouched"""
        existing = self.repo.existing_chapter_ids(self.db)
        missing = [
            self._new_chapter(state.value, chapter_type.value)
            for state in GEODE_STATES
            for chapter_type in GEODE_CHAPTER_TYPES
            if f"{state.value}_{chapter_type.value}" not in existing
        ]
        created = self.repo.add_chapters(self.db, missing) if missing else 0
        total = len(existing) + created
        logger.info(f"📊 Initialized chapters: {created} created, {total} total")
        return {"created": created, "total": total}

    def add_chapter_to_state(self, state: str, chapter_type: str) -> Chapter:
        if not get_state(state):
            raise NotFoundError("State", state)
        if not get_chapter_type(chapter_type, self.custom_chapter_types()):
            raise NotFoundError("Chapter type", chapter_type)

        existing = self.find_chapter(state, chapter_type)
        if existing:
            return existing

        chapter = self._new_chapter(state, chapter_type)
        self.repo.add_chapters(self.db, [chapter])
        logger.info(f"✅ Added {chapter_type} to {state}")
        return chapter

    def remove_chapter_from_state(self, state: str, chapter_type: str) -> bool:
        chapter = self.find_chapter(state, chapter_type)
        if not chapter:
            return False
        self.repo.delete_chapter(self.db, chapter)
        logger.info(f"🗑️ Removed {chapter_type} from {state}")
        return True

    def add_custom_chapter_type(self, value: str, label: str, chapter_num: str) -> Optional[CustomChapterType]:
        """Register a custom chapter type; duplicates of any existing value are ignored"""
        if any(c.value == value for c in self.all_chapter_types()):
            logger.info(f"ℹ️ Chapter type {value} already exists, ignored")
            return None
        custom = self.repo.create_custom_chapter_type(self.db, value, label, chapter_num)
        logger.info(f"✅ Custom chapter type created: {value} ({label})")
        return custom

    def remove_custom_chapter_type(self, value: str) -> bool:
        """Remove a custom type and its chapters from every state. Built-in types are protected"""
        if value in BUILTIN_CHAPTER_VALUES:
            logger.warning(f"⚠️ Refusing to remove built-in chapter type {value}")
            return False
        custom = self.repo.get_custom_chapter_type(self.db, value)
        if not custom:
            return False
        removed = self.repo.delete_chapters_of_type(self.db, value)
        self.repo.delete_custom_chapter_type(self.db, custom)
        logger.info(f"🗑️ Custom chapter type {value} removed with {removed} chapters")
        return True
