"""
Monday.com board sync
Reports Progress board status comments and Payments board milestone updates
"""
import logging
from typing import Iterable, Optional

from ..geode.payments import should_trigger_payment
from ..models import Chapter
from .monday_service import MondayService

logger = logging.getLogger(__name__)

# Workflow step -> Reports Progress board status label
MONDAY_STATUS_LABELS = {
    "not_started": "Not Started",
    "drafting": "Drafting",
    "internal_review": "Internal Review",
    "content_approver_review_1": "With Trent",
    "drew_review": "With Drew",
    "maria_review_1": "With Maria",
    "maria_edit_pass": "With Maria",
    "author_approval_round_1": "With Author for Review",
    "peer_review": "In Peer Review",
    "copywriter_pass": "In Final Clean Up",
    "final_review": "Final Review",
    "done": "FINISHED",
}

CHAPTER_TO_MONDAY_NAME = {
    "ch1_101": "Chapter 1: Intro To Geothermal",
    "ch2_subsurface": "Chapter 2: Subsurface",
    "ch3_electricity": "Chapter 3: Electricity",
    "ch4_direct_use": "Chapter 4: Direct-Use",
    "ch4_5_commercial_gshp": "Chapter 4.5: Commercial GSHP",
    "ch5_heat_ownership": "Chapter 5: Heat Ownership",
    "ch6_policy": "Chapter 6: Additional Policy and Regulatory Issues",
    "ch7_stakeholders": "Chapter 7: Stakeholders",
    "ch8_environment": "Chapter 8: Land Considerations",
    "ch9_military": "Chapter 9: Military Installations",
    "executive_summary": "Executive Summary",
}


def get_monday_status_label(step_id: str) -> str:
    return MONDAY_STATUS_LABELS.get(step_id, "In Progress")


def get_monday_item_name(chapter_type: str) -> str:
    return CHAPTER_TO_MONDAY_NAME.get(chapter_type, chapter_type)


async def sync_chapter_to_monday(
    monday: MondayService,
    chapter: Chapter,
    comment_text: Optional[str] = None,
) -> dict:
    """Comment the chapter's current status on its Reports Progress item"""
    if not chapter.monday_item_id:
        logger.info(f"ℹ️ No Monday item for {chapter.chapter_id}, sync skipped")
        return {"success": False, "error": "No item ID provided"}

    status_label = get_monday_status_label(chapter.current_step)
    comment = comment_text or f"[Wellspring Update] Status: {status_label}\nOwner: {chapter.current_owner}"
    if not comment_text and chapter.notes:
        comment += f"\nNotes: {chapter.notes}"
    result = await monday.add_comment(chapter.monday_item_id, comment)
    if not result["success"]:
        logger.error(f"❌ Monday sync failed for {chapter.chapter_id}: {result['error']}")
        return {"success": False, "itemId": chapter.monday_item_id, "error": result["error"]}

    logger.info(f"🔄 Synced {chapter.chapter_id} to Monday item {chapter.monday_item_id}: {status_label}")
    return {"success": True, "itemId": chapter.monday_item_id}


async def sync_state_chapters_to_monday(monday: MondayService, chapters: Iterable[Chapter]) -> dict:
    """Post a status comment for every chapter with a Reports Progress item; chapters without one are skipped"""
    synced = errors = 0
    for chapter in chapters:
        if not chapter.monday_item_id:
            continue
        result = await sync_chapter_to_monday(monday, chapter)
        if result["success"]:
            synced += 1
        else:
            errors += 1
    logger.info(f"📊 Monday sync: {synced} synced, {errors} errors")
    return {"synced": synced, "errors": errors}


async def sync_chapter_to_payments(
    monday: MondayService,
    contributor_item_id: str,
    completed_step: str,
    chapter_title: str,
    author_name: str,
) -> dict:
    """
    Set the Payments board milestone column for a completed step and leave a
    comment. Returns {triggered, milestone}; steps without a milestone are no-ops
    """
    milestone = should_trigger_payment(completed_step)
    if not milestone:
        return {"triggered": False, "milestone": None}

    result = await monday.set_payment_milestone(contributor_item_id, milestone, True)
    if not result["success"]:
        logger.error(f"❌ Payment milestone {milestone} not set on {contributor_item_id}: {result['error']}")
        return {"triggered": False, "milestone": milestone, "error": result["error"]}

    await monday.add_comment(
        contributor_item_id,
        f'[Wellspring] Chapter "{chapter_title}" reached step: {completed_step}\n'
        f"Payment milestone triggered: {milestone}\n"
        f"Author: {author_name}",
    )
    logger.info(f"✅ Payment milestone {milestone} set for {author_name}")
    return {"triggered": True, "milestone": milestone}


def payment_email_note(email_type: str, author_name: str, payment_number: Optional[int] = None) -> str:
    if email_type == "accounting_setup":
        return f"[Wellspring] Accounting setup email generated for {author_name}"
    return f"[Wellspring] Invoice reminder email generated for {author_name} - Payment #{payment_number}"


async def send_monday_nudge(monday: MondayService, item_id: str, title: str, message: str) -> bool:
    result = await monday.add_comment(item_id, f"🔔 {title}\n\n{message}")
    return result["success"]
