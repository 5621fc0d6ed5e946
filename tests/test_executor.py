from unittest.mock import AsyncMock, MagicMock

import pytest

from wellspring.config import CONTRACT_PROCESSOR_EMAIL
from wellspring.domain.actions.executor import (
    GMAIL_NOT_CONNECTED,
    ActionContext,
    ActionExecutor,
    summarize,
)
from wellspring.domain.actions.schemas import (
    ActionExecutionResult,
    Artifact,
    ConfirmationTask,
    ContractAttachmentRef,
    SuggestedAction,
)
from wellspring.domain.chapters.service import ChapterService
from wellspring.geode.reference import get_state
from wellspring.services.file_access import DOCX_MIME, PDF_MIME, Attachment


class FakeDrive:
    def __init__(self, contract=None):
        self.contract = contract
        self.lookups = []
        self.uploads = []

    async def find_contract(self, state_abbrev, author_name, chapter_title):
        self.lookups.append((state_abbrev, author_name, chapter_title))
        return self.contract

    async def upload_file(self, content, filename, mime_type):
        self.uploads.append(filename)
        return {"fileId": "drive-1", "webViewLink": "https://drive.google.com/file/d/drive-1/view"}


def action(action_type, action_id=None, **params):
    return SuggestedAction(id=action_id or action_type, actionType=action_type, params=params)


def task(*actions, **fields):
    defaults = {
        "state": "louisiana",
        "chapterType": "ch3_electricity",
        "authorName": "Jane Smith",
        "authorEmail": "jane@example.edu",
    }
    return ConfirmationTask(id="task_1", pendingActions=list(actions), **{**defaults, **fields})


@pytest.fixture
def chapters(db_session):
    service = ChapterService(db_session)
    service.initialize_chapters()
    return service


def test_summary_messages():
    ok = ActionExecutionResult(actionId="a", success=True, message="")
    drafted = ActionExecutionResult(actionId="b", success=True, message="", artifacts=[Artifact(type="draft")])
    failed = ActionExecutionResult(actionId="c", success=False, message="")

    assert summarize([ok, ok]) == "Successfully executed 2 actions"
    assert summarize([drafted, failed]) == "Executed 1 action, 1 failed. Check your Gmail drafts!"
    assert summarize([failed]) == "All 1 action failed"


@pytest.mark.anyio
async def test_unknown_action_type(fake_gmail):
    executor = ActionExecutor(fake_gmail)
    result = await executor.execute_action(action("fax_contract"), task())

    assert result.success is False
    assert result.message == "Unknown action type: fax_contract"


@pytest.mark.anyio
async def test_send_contract_prefers_drive(fake_gmail):
    drive = FakeDrive(Attachment("InnerSpace_Agreement_LA_Electricity_JS.pdf", PDF_MIME, b"%PDF"))
    executor = ActionExecutor(fake_gmail, drive=drive)

    result = await executor.execute_action(action("send_contract", ccEmails="karine@projectinnerspace.org, "), task())

    assert result.success is True
    assert "with PDF attached" in result.message
    assert result.message.endswith("[source: Google Drive]")
    assert drive.lookups == [("LA", "Jane Smith", "Electricity")]
    details = result.artifacts[0].details
    assert details["to"] == CONTRACT_PROCESSOR_EMAIL
    assert details["cc"] == ["karine@projectinnerspace.org"]
    assert details["isPdf"] is True
    assert fake_gmail.drafts[0]["attachment"].filename.endswith(".pdf")
    assert fake_gmail.searches == []


@pytest.mark.anyio
async def test_send_contract_uses_stored_reference(fake_gmail):
    fake_gmail.attachments[("msg-7", "att-7")] = b"PK-docx"
    ref = ContractAttachmentRef(
        sourceEmailId="msg-7", attachmentId="att-7", filename="Agreement_LA.docx", mimeType=DOCX_MIME
    )
    executor = ActionExecutor(fake_gmail)

    result = await executor.execute_action(action("send_contract"), task(contractAttachment=ref))

    assert result.message.endswith("[source: stored reference]")
    assert "Word doc" in result.message
    assert fake_gmail.drafts[0]["attachment"].content == b"PK-docx"


@pytest.mark.anyio
async def test_sent_mail_search_keeps_looking_for_a_pdf(fake_gmail):
    fake_gmail.search_results["to:jane@example.edu has:attachment in:sent"] = {
        "message": {"id": "m1"},
        "attachment": {"attachmentId": "a1", "filename": "Agreement.docx", "mimeType": DOCX_MIME},
    }
    fake_gmail.search_results["to:Jane has:attachment in:sent"] = {
        "message": {"id": "m2"},
        "attachment": {"attachmentId": "a2", "filename": "Agreement.pdf", "mimeType": PDF_MIME},
    }
    fake_gmail.attachments[("m1", "a1")] = b"docx"
    fake_gmail.attachments[("m2", "a2")] = b"pdf"
    executor = ActionExecutor(fake_gmail)

    result = await executor.execute_action(action("send_contract"), task())

    assert result.message.endswith("[source: gmail]")
    assert fake_gmail.drafts[0]["attachment"].filename == "Agreement.pdf"
    assert fake_gmail.searches == ["to:jane@example.edu has:attachment in:sent", "to:Jane has:attachment in:sent"]


def test_sent_mail_queries_without_author_details():
    queries = ActionExecutor.sent_mail_queries(task(authorName=None, authorEmail=None), get_state("oklahoma"))
    assert queries == [
        'subject:"OK Geothermal Report" has:attachment in:sent',
        "subject:Oklahoma has:attachment in:sent",
        "subject:agreement has:attachment in:sent",
        "subject:contract has:attachment in:sent",
    ]


@pytest.mark.anyio
async def test_send_contract_without_attachment(fake_gmail):
    executor = ActionExecutor(fake_gmail)
    result = await executor.execute_action(action("send_contract"), task())

    assert result.success is True
    assert "no attachment found - please add manually" in result.message
    assert result.artifacts[0].details["hasAttachment"] is False
    assert len(fake_gmail.searches) == 6


@pytest.mark.anyio
async def test_disconnected_gmail_fails_only_that_action(fake_gmail, chapters):
    fake_gmail.connected = False
    executor = ActionExecutor(fake_gmail, chapters=chapters)

    result = await executor.execute_task_actions(
        task(action("send_contract"), action("log_communication", communicationType="agreement"))
    )

    assert result.success is False
    assert [r.success for r in result.results] == [False, True]
    assert result.results[0].message == GMAIL_NOT_CONNECTED
    assert result.summary == "Executed 1 action, 1 failed"
    assert chapters.get_chapter("louisiana_ch3_electricity").author_email == "jane@example.edu"


@pytest.mark.anyio
async def test_outreach_attaches_the_generated_contract(fake_gmail):
    drive = FakeDrive()
    executor = ActionExecutor(fake_gmail, drive=drive)
    context = ActionContext()

    result = await executor.execute_task_actions(
        task(action("generate_outreach_contract"), action("send_outreach_email")), context
    )

    assert result.success is True
    assert result.summary == "Successfully executed 2 actions. Check your Gmail drafts!"
    assert drive.uploads == ["InnerSpace_Agreement_LA_Electricity_JS.docx"]
    assert drive.lookups == []
    assert "Uploaded to Google Drive: https://drive.google.com/file/d/drive-1/view" in result.results[0].message

    draft = fake_gmail.drafts[0]
    assert draft["to"] == ["jane@example.edu"]
    assert draft["subject"] == "Louisiana Geothermal Report - Electricity Chapter"
    assert draft["attachment"].filename == "InnerSpace_Agreement_LA_Electricity_JS.docx"
    assert result.results[1].artifacts[0].details["attachmentSource"] == "generated"
    assert context.generated_contract is None


@pytest.mark.anyio
async def test_outreach_needs_author_email(fake_gmail):
    executor = ActionExecutor(fake_gmail)
    result = await executor.execute_action(action("send_outreach_email"), task(authorEmail=None))
    assert result.message == "Author email is required to send outreach email"


@pytest.mark.anyio
async def test_generate_contract_for_unknown_chapter(fake_gmail):
    executor = ActionExecutor(fake_gmail)
    result = await executor.execute_action(action("generate_contract"), task(chapterType="ch99_unknown"))

    assert result.success is False
    assert result.message == "Missing required information (state or chapter)"


@pytest.mark.anyio
async def test_payments_board_upsert_is_idempotent(fake_gmail, fake_monday, chapters):
    executor = ActionExecutor(fake_gmail, monday=fake_monday, chapters=chapters)
    upload = action("upload_contract_monday")

    first = await executor.execute_action(upload, task(chapterType="ch6_policy"))
    second = await executor.execute_action(upload, task(chapterType="ch6_policy"))

    assert first.message == "Author added to GEODE Payments board under Louisiana group (Item ID: 9000)"
    assert second.message == "Author already on GEODE Payments board under Louisiana group (Item ID: 9000)"
    assert second.artifacts[0].details["chapter"] == "6 - Policy"
    assert chapters.get_chapter("louisiana_ch6_policy").payment_contributor_id == "9000"


@pytest.mark.anyio
async def test_payments_board_requires_monday(fake_gmail, fake_monday):
    fake_monday.configured = False
    executor = ActionExecutor(fake_gmail, monday=fake_monday)

    result = await executor.execute_action(action("upload_contract_monday"), task())
    assert result.success is False
    assert "Monday.com is not connected" in result.message


@pytest.mark.anyio
async def test_advance_step_forces_through_the_store(fake_gmail, chapters):
    executor = ActionExecutor(fake_gmail, chapters=chapters)

    result = await executor.execute_action(action("advance_step", newStep="send_contract"), task(state="idaho"))

    assert result.success is True
    assert result.message == "Chapter idaho_ch3_electricity advanced from not_started to send_contract"
    assert result.artifacts[0].details["forced"] is True
    assert chapters.get_chapter("idaho_ch3_electricity").current_step == "send_contract"


@pytest.mark.anyio
async def test_advance_step_without_force_is_rejected(fake_gmail, chapters):
    executor = ActionExecutor(fake_gmail, chapters=chapters)

    result = await executor.execute_action(
        action("advance_step", newStep="send_contract", force="false"), task(state="idaho")
    )

    assert result.success is False
    assert "Cannot move from 'not_started' to 'send_contract'" in result.message
    assert chapters.get_chapter("idaho_ch3_electricity").current_step == "not_started"


@pytest.mark.anyio
async def test_advance_step_without_chapter_store(fake_gmail):
    executor = ActionExecutor(fake_gmail)

    result = await executor.execute_action(action("advance_step", newStep="explain_project"), task())
    assert result.message == "Chapter status should be updated to: explain_project"

    missing = await executor.execute_action(action("advance_step"), task())
    assert missing.message == "No target step specified"


@pytest.mark.anyio
async def test_accounting_and_welcome_drafts(fake_gmail):
    executor = ActionExecutor(fake_gmail)

    result = await executor.execute_task_actions(
        task(action("notify_accounting"), action("send_welcome_email"), chapterType="ch6_policy")
    )

    assert result.success is True
    subjects = [d["subject"] for d in fake_gmail.drafts]
    assert subjects == [
        "New Contractor Setup - Jane Smith (LA GEODE)",
        "Louisiana Geothermal Report - Next Steps (Ch 6: Policy)",
    ]


@pytest.mark.anyio
async def test_readiness(fake_gmail, fake_monday):
    executor = ActionExecutor(fake_gmail, monday=fake_monday)
    assert await executor.can_execute_actions() == {"ready": True, "issues": []}

    fake_gmail.connected = False
    fake_monday.configured = False
    assert await executor.can_execute_actions() == {
        "ready": False,
        "issues": ["Gmail is not connected", "Monday.com API token is not configured"],
    }


@pytest.mark.anyio
async def test_draft_errors_are_reported():
    gmail = AsyncMock()
    gmail.is_connected.return_value = True
    gmail.create_draft.return_value = {"success": False, "error": "Gmail API error: 403"}
    executor = ActionExecutor(gmail)

    result = await executor.execute_action(action("notify_accounting"), task())

    assert result.success is False
    assert result.message == "Gmail API error: 403"
    gmail.create_draft.assert_awaited_once()


@pytest.mark.anyio
async def test_unexpected_errors_do_not_stop_sibling_actions(fake_gmail):
    monday = AsyncMock()
    monday.is_configured = MagicMock(return_value=True)
    monday.upsert_author_in_payments_board.side_effect = TypeError("'NoneType' object is not subscriptable")
    executor = ActionExecutor(fake_gmail, monday=monday)

    result = await executor.execute_task_actions(
        task(action("upload_contract_monday"), action("send_welcome_email"), chapterType="ch6_policy")
    )

    upload, welcome = result.results
    assert upload.success is False
    assert upload.message == "TypeError: 'NoneType' object is not subscriptable"
    assert welcome.success is True
    assert len(fake_gmail.drafts) == 1
    assert result.summary == "Executed 1 action, 1 failed. Check your Gmail drafts!"
