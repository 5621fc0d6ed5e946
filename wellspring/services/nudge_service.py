"""
Nudge Service
Reminds owners of overdue chapters through their preferred channel
"""
import logging
import re
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..config import GEODE_TEAM_EMAIL_DOMAIN, SLACK_GEODE_CHANNEL
from ..geode.reference import GEODE_TEAM_CONTACTS, get_chapter_type, get_state, render_nudge
from ..geode.timeline import format_date
from ..geode.workflow import days_on_step, get_step_meta
from ..models import Chapter
from .board_sync import send_monday_nudge
from .gmail_service import GmailService
from .monday_service import MondayService
from .slack_service import SlackService

logger = logging.getLogger(__name__)


def primary_contact(owner: Optional[str]) -> Optional[dict]:
    """First listed person of an owner string like 'Smita/Maria' or 'Drew, Dani'"""
    if not owner:
        return None
    first = re.split(r"[/,]", owner)[0].strip().lower()
    return GEODE_TEAM_CONTACTS.get(first)


def contact_email(contact: dict) -> str:
    return f"{contact['name'].lower()}@{GEODE_TEAM_EMAIL_DOMAIN}"


def overdue_nudge(chapter: Chapter, now: Optional[datetime] = None) -> Optional[dict]:
    """deliverable_overdue message for a chapter, or None if it is not overdue"""
    if chapter.current_step in ("done", "not_started"):
        return None
    step = get_step_meta(chapter.workflow_type, chapter.current_step)
    if not step or step.typical_duration_days is None:
        return None
    days = days_on_step(chapter.current_step_started_at, now)
    if days <= step.typical_duration_days:
        return None

    state = get_state(chapter.report_state)
    chapter_type = get_chapter_type(chapter.chapter_type)
    section = f"{state.label if state else chapter.report_state} - {chapter_type.label if chapter_type else chapter.chapter_type}"
    due = chapter.current_step_started_at + timedelta(days=step.typical_duration_days)
    return render_nudge(
        "deliverable_overdue",
        section=f"{section} ({step.label})",
        date=format_date(due),
        days=days - step.typical_duration_days,
    )


class NudgeService:
    def __init__(
        self,
        slack: SlackService,
        gmail: Optional[GmailService] = None,
        channel: str = SLACK_GEODE_CHANNEL,
        monday: Optional[MondayService] = None,
    ):
        self.slack = slack
        self.gmail = gmail
        self.channel = channel
        self.monday = monday

    async def nudge_chapter(self, chapter: Chapter, now: Optional[datetime] = None) -> Optional[dict]:
        nudge = overdue_nudge(chapter, now)
        if not nudge:
            return None

        text = f"*{nudge['title']}*\n{nudge['message']}"
        contact = primary_contact(chapter.current_owner)

        if contact and contact["preferredChannel"] == "email" and self.gmail and await self.gmail.is_connected():
            result = await self.gmail.create_draft([contact_email(contact)], nudge["title"], nudge["message"])
            channel = "email"
        elif contact and contact["preferredChannel"] == "slack":
            user_id = await self.slack.lookup_user_by_email(contact_email(contact))
            if user_id:
                result = await self.slack.send_direct_message(user_id, text)
                channel = "slack_dm"
            else:
                result = await self.slack.post_message(self.channel, f"{contact['name']}: {text}")
                channel = "slack_channel"
        else:
            owner = chapter.current_owner or "Unassigned"
            result = await self.slack.post_message(self.channel, f"{owner}: {text}")
            channel = "slack_channel"

        logger.info(f"📤 Nudge for {chapter.chapter_id} via {channel}: {'sent' if result['success'] else 'failed'}")

        # Leave a trail on the Reports Progress item as well
        if self.monday and chapter.monday_item_id:
            await send_monday_nudge(self.monday, chapter.monday_item_id, nudge["title"], nudge["message"])
        return {"chapterId": chapter.chapter_id, "channel": channel, "success": result["success"], **nudge}

    async def nudge_overdue(self, chapters: Iterable[Chapter], now: Optional[datetime] = None) -> list[dict]:
        results = []
        for chapter in chapters:
            outcome = await self.nudge_chapter(chapter, now)
            if outcome:
                results.append(outcome)
        logger.info(f"📊 Sent {sum(r['success'] for r in results)}/{len(results)} overdue nudges")
        return results
