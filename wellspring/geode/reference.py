"""GEODE reference data - report states, chapter types, leads and contacts"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional


@dataclass(frozen=True)
class GeodeState:
    value: str
    label: str
    abbreviation: str
    doe_deadline: date


@dataclass(frozen=True)
class ChapterType:
    value: str
    label: str
    chapter_num: str
    custom: bool = False


GEODE_STATES: list[GeodeState] = [
    GeodeState("arizona", "Arizona", "AZ", date(2026, 2, 15)),
    GeodeState("louisiana", "Louisiana", "LA", date(2026, 2, 28)),
    GeodeState("oklahoma", "Oklahoma", "OK", date(2026, 3, 15)),
    GeodeState("alaska", "Alaska", "AK", date(2026, 3, 25)),
    GeodeState("idaho", "Idaho", "ID", date(2026, 4, 30)),
    GeodeState("oregon", "Oregon", "OR", date(2026, 4, 30)),
]

GEODE_FINAL_DEADLINE = date(2026, 4, 30)

# Seed values for the editable deadline table (Louisiana moved up to match Arizona)
DEFAULT_DOE_DEADLINES: dict[str, date] = {
    "arizona": date(2026, 2, 15),
    "louisiana": date(2026, 2, 15),
    "oklahoma": date(2026, 3, 15),
    "alaska": date(2026, 3, 25),
    "idaho": date(2026, 4, 30),
    "oregon": date(2026, 4, 30),
}

# Master ordering; chapters for a state are always listed in this order
GEODE_CHAPTER_TYPES: list[ChapterType] = [
    ChapterType("ch1_101", "The 101", "1"),
    ChapterType("ch2_subsurface", "Subsurface", "2"),
    ChapterType("ch3_electricity", "Electricity", "3"),
    ChapterType("ch4_direct_use", "Direct Use", "4"),
    ChapterType("ch4_5_commercial_gshp", "RMI Commercial GSHP", "4.5"),
    ChapterType("ch5_heat_ownership", "Heat Ownership", "5"),
    ChapterType("ch6_policy", "Policy", "6"),
    ChapterType("ch7_stakeholders", "Stakeholders", "7"),
    ChapterType("ch8_environment", "Environment", "8"),
    ChapterType("ch9_military", "Military Installations", "9"),
]

BUILTIN_CHAPTER_VALUES = frozenset(c.value for c in GEODE_CHAPTER_TYPES)

_STANDARD_LEADS = {
    "ch1_101": "Drew, Dani, Maria, Trent",
    "ch2_subsurface": "Trent",
    "ch3_electricity": "Ryan",
    "ch4_direct_use": "Jackson",
    "ch5_heat_ownership": "Smita/Maria",
    "ch6_policy": "Trent",
    "ch7_stakeholders": "Jackson",
    "ch8_environment": "Smita",
    "ch9_military": "Ryan",
}

# Chapter leads / content owners by state (Appendix 1)
GEODE_CHAPTER_LEADS: dict[str, dict[str, str]] = {
    "arizona": {
        "fob": "Trent",
        "exec_summary": "Trent",
        "ch1_101": "Drew, Dani, Maria, Trent",
        "ch2_subsurface": "Trent",
        "ch3_electricity": "Trent",
        "ch4_direct_use": "Trent",
        "ch5_heat_ownership": "Trent",
        "ch6_policy": "Trent",
        "ch7_stakeholders": "Trent",
        "ch8_environment": "Trent",
        "ch9_military": "Trent",
    },
    "louisiana": {
        "fob": "Ryan",
        "exec_summary": "Ryan",
        "ch1_101": "Drew, Dani, Maria, Trent",
        "ch2_subsurface": "Ryan",
        "ch3_electricity": "Ryan",
        "ch4_direct_use": "Jackson",
        "ch5_heat_ownership": "Ryan",
        "ch6_policy": "Ryan",
        "ch7_stakeholders": "Ryan",
        "ch8_environment": "Ryan",
        "ch9_military": "Ryan",
    },
    "alaska": {"fob": "Ryan", "exec_summary": "Drew", **_STANDARD_LEADS, "ch4_direct_use": "Ryan"},
    "oklahoma": {"fob": "Trent", "exec_summary": "Drew", **_STANDARD_LEADS},
    "idaho": {"fob": "Trent", "exec_summary": "Drew", **_STANDARD_LEADS},
    "oregon": {"fob": "Ryan", "exec_summary": "Drew", **_STANDARD_LEADS},
}

# Team member communication preferences
GEODE_TEAM_CONTACTS: dict[str, dict[str, str]] = {
    "trent": {"name": "Trent", "preferredChannel": "slack", "role": "Project Lead / Content Owner"},
    "ryan": {"name": "Ryan", "preferredChannel": "slack", "role": "Content Owner"},
    "drew": {"name": "Drew", "preferredChannel": "email", "role": "Bylined Author"},
    "jackson": {"name": "Jackson", "preferredChannel": "email", "role": "Content Owner"},
    "maria": {"name": "Maria", "preferredChannel": "slack", "role": "Copywriter/Designer Manager"},
    "smita": {"name": "Smita", "preferredChannel": "email", "role": "Content Owner"},
    "dani": {"name": "Dani", "preferredChannel": "email", "role": "Content Owner"},
    "wendy": {"name": "Wendy", "preferredChannel": "email", "role": "Editor/Proofreader"},
}

GEODE_NUDGE_TEMPLATES: dict[str, dict[str, str]] = {
    "deadline_approaching": {
        "title": "Deadline Approaching",
        "message": "Your deliverable for {{section}} is due in {{days}} days ({{date}}). Please ensure you're on track.",
    },
    "deliverable_overdue": {
        "title": "Deliverable Overdue",
        "message": "Your deliverable for {{section}} was due on {{date}} ({{days}} days ago). Please submit as soon as possible or let us know if you're blocked.",
    },
    "review_requested": {
        "title": "Review Requested",
        "message": "A draft of {{section}} is ready for your review. Please complete your review by {{date}}.",
    },
    "revision_needed": {
        "title": "Revision Needed",
        "message": "Your submission for {{section}} requires revisions. Please address the feedback and resubmit by {{date}}.",
    },
    "approval_needed": {
        "title": "Approval Needed",
        "message": "{{section}} is ready for your approval. Please review and approve by {{date}}.",
    },
    "payment_pending": {
        "title": "Payment Processing",
        "message": "Your payment of ${{amount}} for {{deliverable}} is being processed.",
    },
    "milestone_reached": {
        "title": "Milestone Reached",
        "message": "Congratulations! {{milestone}} has been completed for the {{state}} report.",
    },
    "blocker_detected": {
        "title": "Blocker Detected",
        "message": "A potential blocker has been detected for {{section}}. Please address or escalate: {{blocker}}",
    },
}


def get_state(value: Optional[str]) -> Optional[GeodeState]:
    if not value:
        return None
    return next((s for s in GEODE_STATES if s.value == value), None)


def get_all_chapter_types(custom: Iterable[ChapterType] = ()) -> list[ChapterType]:
    """Built-in chapter types followed by custom ones"""
    return [*GEODE_CHAPTER_TYPES, *custom]


def get_chapter_type(value: Optional[str], custom: Iterable[ChapterType] = ()) -> Optional[ChapterType]:
    if not value:
        return None
    return next((c for c in get_all_chapter_types(custom) if c.value == value), None)


def get_chapter_lead(state: str, chapter_type: str) -> str:
    return GEODE_CHAPTER_LEADS.get(state, {}).get(chapter_type, "Unassigned")


def render_nudge(template_key: str, **values) -> dict[str, str]:
    """Fill a nudge template's {{placeholders}}; unknown placeholders are left as-is"""
    template = GEODE_NUDGE_TEMPLATES[template_key]
    message = template["message"]
    for key, value in values.items():
        message = message.replace("{{" + key + "}}", str(value))
    return {"title": template["title"], "message": message}


def author_initials(name: str) -> str:
    return "".join(word[0].upper() for word in name.split() if word)
