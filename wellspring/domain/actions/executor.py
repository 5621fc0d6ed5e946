"""
GEODE Action Executor

Runs the pending actions of a confirmation task: contract generation, Gmail
drafts (with contract attachment lookup), Payments board upsert, chapter step
changes and author logging. Every action reports its own result; one failing
action never stops the others.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Optional

import httpx

from ...config import ACCOUNTING_EMAIL, CONTRACT_PROCESSOR_EMAIL, CONTRACT_PROCESSOR_NAME, PAYMENTS_BOARD_URL
from ...exceptions import NotConnectedError, UpstreamError, WellspringError
from ...geode.reference import ChapterType, GeodeState, get_chapter_type, get_state
from ...services.contract_generator import GeneratedContract, generate_and_upload_contract
from ...services.drive_service import DriveService
from ...services.file_access import PDF_MIME, Attachment, FileReader, NullFileReader, find_local_contract
from ...services.gmail_service import GMAIL_DRAFTS_URL, GmailService
from ...services.monday_service import GeodeAuthorDetails, MondayService
from ...services.payment_emails import EmailDraft
from ..chapters.service import ChapterService
from .email_templates import accounting_onboarding_email, contract_processing_email, outreach_email, welcome_email
from .schemas import ActionExecutionResult, Artifact, ConfirmationTask, SuggestedAction, TaskExecutionResult

logger = logging.getLogger(__name__)

GMAIL_NOT_CONNECTED = "Gmail is not connected. Please connect your Google account in Settings."
MONDAY_NOT_CONNECTED = "Monday.com is not connected. Please configure API token in Settings."
MISSING_STATE_OR_CHAPTER = "Missing required information (state or chapter)"
MISSING_AUTHOR_DETAILS = "Missing required information (state, chapter, author name, or email)"


@dataclass
class ActionContext:
    """Per-run state shared between the actions of one task"""

    generated_contract: Optional[GeneratedContract] = None

    def take_generated_contract(self) -> Optional[GeneratedContract]:
        """Hand over the generated contract once; the slot is cleared"""
        contract, self.generated_contract = self.generated_contract, None
        return contract


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def summarize(results: list[ActionExecutionResult]) -> str:
    succeeded = sum(1 for r in results if r.success)
    failed = len(results) - succeeded

    if failed == 0:
        summary = f"Successfully executed {succeeded} action{_plural(succeeded)}"
    elif succeeded > 0:
        summary = f"Executed {succeeded} action{_plural(succeeded)}, {failed} failed"
    else:
        summary = f"All {failed} action{_plural(failed)} failed"

    if any(a.type == "draft" for r in results for a in r.artifacts):
        summary += ". Check your Gmail drafts!"
    return summary


def _split_emails(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [e.strip() for e in value.split(",") if e.strip()]


class ActionExecutor:
    """Executes GEODE suggested actions against Gmail, Drive, Monday.com and the chapter store"""

    def __init__(
        self,
        gmail: GmailService,
        drive: Optional[DriveService] = None,
        monday: Optional[MondayService] = None,
        chapters: Optional[ChapterService] = None,
        file_reader: Optional[FileReader] = None,
    ):
        self.gmail = gmail
        self.drive = drive
        self.monday = monday
        self.chapters = chapters
        self.file_reader = file_reader or NullFileReader()

        self.handlers: dict[str, Callable[..., Awaitable[ActionExecutionResult]]] = {
            "generate_outreach_contract": self.generate_outreach_contract,
            "send_outreach_email": self.send_outreach_email,
            "generate_contract": self.generate_contract,
            "send_contract": self.send_contract,
            "advance_step": self.advance_step,
            "log_communication": self.log_communication,
            "notify_accounting": self.notify_accounting,
            "upload_contract_monday": self.upload_contract_monday,
            "send_welcome_email": self.send_welcome_email,
        }

    # ============================================================================
    # Entry points
    # ============================================================================

    async def execute_action(
        self, action: SuggestedAction, task: ConfirmationTask, context: Optional[ActionContext] = None
    ) -> ActionExecutionResult:
        context = context or ActionContext()
        logger.info(f"🔄 Executing action {action.id} ({action.actionType}) for task {task.id}")

        handler = self.handlers.get(action.actionType)
        if not handler:
            return self._fail(action, f"Unknown action type: {action.actionType}")

        try:
            return await handler(action, task, context)
        except WellspringError as e:
            logger.error(f"❌ Action {action.id} failed: {str(e)}")
            return self._fail(action, str(e))
        except Exception as e:
            logger.error(f"❌ Unexpected error in action {action.id} ({action.actionType}): {str(e)}", exc_info=True)
            return self._fail(action, f"{type(e).__name__}: {str(e)}")

    async def execute_task_actions(
        self, task: ConfirmationTask, context: Optional[ActionContext] = None
    ) -> TaskExecutionResult:
        """Run every pending action in order with one shared context"""
        context = context or ActionContext()
        logger.info(f"📥 Executing task {task.id} with {len(task.pendingActions)} actions")

        results = [await self.execute_action(action, task, context) for action in task.pendingActions]
        result = TaskExecutionResult(
            taskId=task.id,
            success=all(r.success for r in results),
            results=results,
            summary=summarize(results),
        )
        logger.info(f"📊 Task {task.id}: {result.summary}")
        return result

    async def can_execute_actions(self) -> dict:
        issues = []
        if not await self.gmail.is_connected():
            issues.append("Gmail is not connected")
        if self.monday is not None and not self.monday.is_configured():
            issues.append("Monday.com API token is not configured")
        return {"ready": not issues, "issues": issues}

    # ============================================================================
    # Helpers
    # ============================================================================

    @staticmethod
    def _fail(action: SuggestedAction, message: str) -> ActionExecutionResult:
        return ActionExecutionResult(actionId=action.id, success=False, message=message)

    def _lookup(self, task: ConfirmationTask) -> tuple[Optional[GeodeState], Optional[ChapterType]]:
        custom = self.chapters.custom_chapter_types() if self.chapters else ()
        return get_state(task.state), get_chapter_type(task.chapterType, custom)

    async def _require_gmail(self) -> None:
        if not await self.gmail.is_connected():
            raise NotConnectedError("Gmail", GMAIL_NOT_CONNECTED)

    async def _create_draft(self, email: EmailDraft, attachment: Optional[Attachment] = None) -> dict:
        if attachment:
            return await self.gmail.create_draft_with_attachment(
                email.to, email.subject, email.body, attachment, cc=email.cc or None
            )
        return await self.gmail.create_draft(email.to, email.subject, email.body, cc=email.cc or None)

    async def _find_in_drive(self, state: GeodeState, author_name: str, chapter: ChapterType) -> Optional[Attachment]:
        if not self.drive:
            return None
        return await self.drive.find_contract(state.abbreviation, author_name, chapter.label)

    def _find_local(self, state: GeodeState, author_name: str, chapter: ChapterType) -> Optional[Attachment]:
        return find_local_contract(self.file_reader, state.abbreviation, author_name, chapter.label)

    async def _from_stored_reference(self, task: ConfirmationTask) -> Optional[Attachment]:
        ref = task.contractAttachment
        if not ref:
            return None
        try:
            content = await self.gmail.get_attachment(ref.sourceEmailId, ref.attachmentId)
        except (UpstreamError, httpx.HTTPError) as e:
            logger.warning(f"⚠️ Stored contract attachment could not be fetched: {str(e)}")
            return None
        logger.info(f"✅ Retrieved contract from stored reference: {ref.filename}")
        return Attachment(filename=ref.filename, mime_type=ref.mimeType, content=content)

    @staticmethod
    def sent_mail_queries(task: ConfirmationTask, state: GeodeState) -> list[str]:
        queries = []
        if task.authorEmail:
            queries.append(f"to:{task.authorEmail} has:attachment in:sent")
        if task.authorName:
            queries.append(f"to:{task.authorName.split()[0]} has:attachment in:sent")
        queries.append(f'subject:"{state.abbreviation} Geothermal Report" has:attachment in:sent')
        queries.append(f"subject:{state.label} has:attachment in:sent")
        queries.append("subject:agreement has:attachment in:sent")
        queries.append("subject:contract has:attachment in:sent")
        return queries

    async def _search_sent_mail(self, task: ConfirmationTask, state: GeodeState) -> Optional[Attachment]:
        """Walk the sent-mail queries; a Word doc is kept until a PDF turns up"""
        found_attachment: Optional[Attachment] = None
        for query in self.sent_mail_queries(task, state):
            found = await self.gmail.find_email_with_attachment(query, None, True)
            if not found["message"] or not found["attachment"]:
                continue
            candidate = found["attachment"]
            if candidate["mimeType"] != PDF_MIME and found_attachment and found_attachment.is_pdf:
                continue
            try:
                content = await self.gmail.get_attachment(found["message"]["id"], candidate["attachmentId"])
            except (UpstreamError, httpx.HTTPError) as e:
                logger.warning(f"⚠️ Failed to retrieve Gmail attachment {candidate['filename']}: {str(e)}")
                continue
            found_attachment = Attachment(filename=candidate["filename"], mime_type=candidate["mimeType"], content=content)
            logger.info(f"📎 Found attachment in Gmail ({query}): {candidate['filename']}")
            if found_attachment.is_pdf:
                break
        return found_attachment

    # ============================================================================
    # Author outreach
    # ============================================================================

    async def generate_outreach_contract(self, action, task, context) -> ActionExecutionResult:
        """Render the agreement, upload it to Drive and keep it for the outreach email"""
        state, chapter = self._lookup(task)
        if not state or not chapter:
            return self._fail(action, MISSING_STATE_OR_CHAPTER)

        author_name = task.authorName or "Author TBD"
        author_email = task.authorEmail or "author@tbd.com"
        contract = await generate_and_upload_contract(
            contractor_name=author_name,
            contractor_email=author_email,
            state=state.value,
            chapter_type=chapter.value,
            chapter_name=chapter.label,
            chapter_num=chapter.chapter_num,
            drive=self.drive,
            payment_amount=Decimal(str(task.paymentAmount)) if task.paymentAmount else None,
            deadlines=self.chapters.doe_deadlines() if self.chapters else None,
        )
        if not contract:
            return self._fail(action, f"Failed to generate contract for {author_name}. Check logs for details.")

        context.generated_contract = contract
        timeline = contract.timeline
        drive_info = (
            f" Uploaded to Google Drive: {contract.drive_web_view_link}"
            if contract.drive_web_view_link
            else " (Drive upload failed, will attach directly to email)"
        )
        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=(
                f"Contract generated: {contract.filename} ({timeline.timeline_type} timeline, "
                f"{timeline.buffer_days} days buffer before DOE deadline).{drive_info}"
            ),
            artifacts=[
                Artifact(
                    type="log_entry",
                    details={
                        "action": "outreach_contract_generation",
                        "authorName": author_name,
                        "authorEmail": author_email,
                        "state": state.value,
                        "stateAbbrev": state.abbreviation,
                        "chapter": chapter.value,
                        "chapterNum": chapter.chapter_num,
                        "chapterTitle": chapter.label,
                        "filename": contract.filename,
                        "driveFileId": contract.drive_file_id,
                        "driveWebViewLink": contract.drive_web_view_link,
                        **timeline.as_display(),
                    },
                )
            ],
        )

    async def send_outreach_email(self, action, task, context) -> ActionExecutionResult:
        """Draft to the prospective author: generated contract, then Drive, then local files"""
        await self._require_gmail()
        state, chapter = self._lookup(task)
        if not state or not chapter:
            return self._fail(action, MISSING_STATE_OR_CHAPTER)
        if not task.authorEmail:
            return self._fail(action, "Author email is required to send outreach email")

        author_name = task.authorName or "Prospective Author"
        email = outreach_email(author_name, task.authorEmail, state.label, chapter.label, chapter.chapter_num)

        attachment, source = None, ""
        generated = context.take_generated_contract()
        if generated:
            logger.info(f"📎 Using freshly generated contract: {generated.filename}")
            attachment = Attachment(filename=generated.filename, mime_type=generated.mime_type, content=generated.content)
            source = "generated"
        if not attachment:
            attachment = await self._find_in_drive(state, author_name, chapter)
            source = "Google Drive" if attachment else ""
        if not attachment:
            attachment = self._find_local(state, author_name, chapter)
            source = "local" if attachment else ""

        draft = await self._create_draft(email, attachment)
        if not draft["success"]:
            return self._fail(action, draft.get("error") or "Failed to create outreach email draft")

        if attachment:
            message = f"Outreach email draft created for {author_name} with contract attached ({attachment.filename})"
        else:
            message = (
                f"Outreach email draft created for {author_name}. "
                "NOTE: Please attach the contract document manually before sending."
            )
        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=message,
            artifacts=[
                Artifact(
                    type="draft",
                    id=draft["draftId"],
                    url=GMAIL_DRAFTS_URL,
                    details={
                        "to": task.authorEmail,
                        "subject": email.subject,
                        "hasAttachment": attachment is not None,
                        "attachmentName": attachment.filename if attachment else None,
                        "attachmentSource": source,
                        "workflowType": "author_outreach",
                    },
                )
            ],
        )

    # ============================================================================
    # Author agreement
    # ============================================================================

    async def generate_contract(self, action, task, context) -> ActionExecutionResult:
        """Render the agreement for e-signature and file it in the Drive contracts folder"""
        state, chapter = self._lookup(task)
        if not state or not chapter:
            return self._fail(action, MISSING_STATE_OR_CHAPTER)

        author_name = task.authorName or "Author TBD"
        contract = await generate_and_upload_contract(
            contractor_name=author_name,
            contractor_email=task.authorEmail or "author@tbd.com",
            state=state.value,
            chapter_type=chapter.value,
            chapter_name=chapter.label,
            chapter_num=chapter.chapter_num,
            drive=self.drive,
            payment_amount=Decimal(str(task.paymentAmount)) if task.paymentAmount else None,
            deadlines=self.chapters.doe_deadlines() if self.chapters else None,
        )
        if not contract:
            return self._fail(action, f"Failed to generate contract for {author_name}. Check logs for details.")

        location = contract.drive_web_view_link or "not uploaded to Drive"
        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=f"Contract generated for {author_name} ({state.abbreviation} {chapter.label}): {contract.filename} ({location})",
            artifacts=[
                Artifact(
                    type="log_entry",
                    id=contract.drive_file_id,
                    url=contract.drive_web_view_link,
                    details={
                        "action": "contract_generation",
                        "authorName": task.authorName,
                        "state": state.value,
                        "chapter": chapter.value,
                        "filename": contract.filename,
                        "timelineType": contract.timeline.timeline_type,
                    },
                )
            ],
        )

    async def send_contract(self, action, task, context) -> ActionExecutionResult:
        """
        Draft to the contract processor. Attachment lookup: Drive, local files,
        the task's stored Gmail reference, then sent-mail search
        """
        await self._require_gmail()
        state, chapter = self._lookup(task)
        if not state or not chapter:
            return self._fail(action, MISSING_STATE_OR_CHAPTER)

        author_name = task.authorName or "Author TBD"
        recipient_email = action.params.get("toEmail") or CONTRACT_PROCESSOR_EMAIL
        recipient_name = action.params.get("toName") or CONTRACT_PROCESSOR_NAME
        cc = _split_emails(action.params.get("ccEmails"))
        email = contract_processing_email(
            author_name,
            task.authorEmail or "author@tbd.com",
            state.label,
            chapter.label,
            chapter.chapter_num,
            recipient_name,
            recipient_email,
            cc,
        )

        attachment = await self._find_in_drive(state, author_name, chapter)
        source = "Google Drive" if attachment else ""
        if not attachment:
            attachment = self._find_local(state, author_name, chapter)
            source = "local" if attachment else ""
        if not attachment:
            attachment = await self._from_stored_reference(task)
            source = "stored reference" if attachment else ""
        if not attachment:
            logger.info("🔄 Searching Gmail sent mail for contract attachment")
            attachment = await self._search_sent_mail(task, state)
            source = "gmail" if attachment else ""

        draft = await self._create_draft(email, attachment)
        if not draft["success"]:
            return self._fail(action, draft.get("error") or "Failed to create email draft")

        is_pdf = bool(attachment and attachment.is_pdf)
        if attachment:
            message = (
                f"Draft email created to {recipient_name} with {'PDF' if is_pdf else 'Word doc'} attached "
                f"({attachment.filename}) [source: {source}]"
            )
        else:
            message = (
                f"Draft email created to {recipient_name} about {task.authorName}'s contract "
                "(no attachment found - please add manually)"
            )
        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=message,
            artifacts=[
                Artifact(
                    type="draft",
                    id=draft["draftId"],
                    url=GMAIL_DRAFTS_URL,
                    details={
                        "to": recipient_email,
                        "cc": cc,
                        "subject": email.subject,
                        "hasAttachment": attachment is not None,
                        "attachmentName": attachment.filename if attachment else None,
                        "attachmentSource": source,
                        "isPdf": is_pdf,
                    },
                )
            ],
        )

    # ============================================================================
    # Chapter record
    # ============================================================================

    async def advance_step(self, action, task, context) -> ActionExecutionResult:
        """
        Move the chapter through the store. The task was confirmed as a whole, so
        out-of-order targets go through as logged overrides unless params.force is "false"
        """
        new_step = action.params.get("newStep")
        if not new_step:
            return self._fail(action, "No target step specified")

        chapter = None
        if self.chapters and task.state and task.chapterType:
            chapter = self.chapters.find_chapter(task.state, task.chapterType)

        if not chapter:
            return ActionExecutionResult(
                actionId=action.id,
                success=True,
                message=f"Chapter status should be updated to: {new_step}",
                artifacts=[
                    Artifact(
                        type="status_update",
                        details={"newStep": new_step, "state": task.state, "chapterType": task.chapterType},
                    )
                ],
            )

        force = action.params.get("force", "true").lower() != "false"
        event, sync = await self.chapters.complete_step(chapter.chapter_id, new_step, force=force)
        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=f"Chapter {event.chapter_id} advanced from {event.completed_step} to {event.new_step}",
            artifacts=[
                Artifact(
                    type="status_update",
                    id=event.chapter_id,
                    details={
                        "previousStep": event.completed_step,
                        "newStep": event.new_step,
                        "forced": event.forced,
                        "state": task.state,
                        "chapterType": task.chapterType,
                        "sync": sync.as_dict() if sync else {},
                    },
                )
            ],
        )

    async def log_communication(self, action, task, context) -> ActionExecutionResult:
        """Record the author on the chapter when the chapter and author are known"""
        saved = False
        if self.chapters and task.state and task.chapterType and task.authorName and task.authorEmail:
            chapter = self.chapters.find_chapter(task.state, task.chapterType)
            if chapter:
                self.chapters.set_author_info(
                    chapter.chapter_id,
                    task.authorName,
                    task.authorEmail,
                    bool(chapter.contract_signed),
                    chapter.contract_signed_date,
                )
                saved = True

        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=f"Logged: {task.authorName} ({task.authorEmail}) for {task.state} {task.chapterType}",
            artifacts=[
                Artifact(
                    type="log_entry",
                    details={
                        "authorName": task.authorName,
                        "authorEmail": task.authorEmail,
                        "state": task.state,
                        "chapterType": task.chapterType,
                        "communicationType": action.params.get("communicationType"),
                        "savedToChapter": saved,
                    },
                )
            ],
        )

    # ============================================================================
    # Contract signed
    # ============================================================================

    async def notify_accounting(self, action, task, context) -> ActionExecutionResult:
        await self._require_gmail()
        state, chapter = self._lookup(task)
        if not state or not chapter or not task.authorName or not task.authorEmail:
            return self._fail(action, MISSING_AUTHOR_DETAILS)

        recipient_email = action.params.get("toEmail") or ACCOUNTING_EMAIL
        recipient_name = action.params.get("toName") or "Accounting Team"
        cc = _split_emails(action.params.get("ccEmails"))
        email = accounting_onboarding_email(
            task.authorName,
            task.authorEmail,
            state.label,
            state.abbreviation,
            chapter.label,
            chapter.chapter_num,
            recipient_name,
            recipient_email,
            cc,
        )

        draft = await self._create_draft(email)
        if not draft["success"]:
            return self._fail(action, draft.get("error") or "Failed to create accounting email draft")

        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=f"Draft email created to {recipient_name} for contractor setup",
            artifacts=[
                Artifact(
                    type="draft",
                    id=draft["draftId"],
                    url=GMAIL_DRAFTS_URL,
                    details={"to": recipient_email, "cc": cc, "subject": email.subject},
                )
            ],
        )

    async def upload_contract_monday(self, action, task, context) -> ActionExecutionResult:
        """Find-or-create the author on the Payments board and remember the item on the chapter"""
        state, chapter = self._lookup(task)
        if not state or not chapter or not task.authorName or not task.authorEmail:
            return self._fail(action, MISSING_AUTHOR_DETAILS)
        if not self.monday or not self.monday.is_configured():
            return self._fail(action, MONDAY_NOT_CONNECTED)

        result = await self.monday.upsert_author_in_payments_board(
            GeodeAuthorDetails(
                name=task.authorName,
                email=task.authorEmail,
                state=state.value,
                chapter_type=chapter.value,
                chapter_title=chapter.label,
                chapter_num=chapter.chapter_num,
                contract_signed_date=date.today().isoformat(),
                grant_amount=float(task.paymentAmount) if task.paymentAmount else None,
            )
        )
        if not result["success"]:
            return self._fail(action, result.get("error") or "Failed to add author to Payments board")

        item_id = result["itemId"]
        if self.chapters:
            record = self.chapters.find_chapter(state.value, chapter.value)
            if record:
                self.chapters.set_payment_contributor_id(record.chapter_id, item_id)

        verb = "added to" if result["created"] else "already on"
        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=f"Author {verb} GEODE Payments board under {state.label} group (Item ID: {item_id})",
            artifacts=[
                Artifact(
                    type="status_update",
                    id=item_id,
                    url=action.params.get("boardUrl") or PAYMENTS_BOARD_URL,
                    details={
                        "itemId": item_id,
                        "created": result["created"],
                        "author": task.authorName,
                        "state": state.label,
                        "chapter": f"{chapter.chapter_num} - {chapter.label}",
                    },
                )
            ],
        )

    async def send_welcome_email(self, action, task, context) -> ActionExecutionResult:
        await self._require_gmail()
        state, chapter = self._lookup(task)
        if not state or not chapter or not task.authorName or not task.authorEmail:
            return self._fail(action, MISSING_AUTHOR_DETAILS)

        email = welcome_email(task.authorName, task.authorEmail, state.label, chapter.label, chapter.chapter_num)
        draft = await self._create_draft(email)
        if not draft["success"]:
            return self._fail(action, draft.get("error") or "Failed to create welcome email draft")

        return ActionExecutionResult(
            actionId=action.id,
            success=True,
            message=f"Welcome email draft created for {task.authorName}",
            artifacts=[
                Artifact(
                    type="draft",
                    id=draft["draftId"],
                    url=GMAIL_DRAFTS_URL,
                    details={"to": task.authorEmail, "subject": email.subject},
                )
            ],
        )
