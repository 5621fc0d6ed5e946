from datetime import date, datetime, timedelta

import pytest

from wellspring.domain.chapters.service import ChapterService
from wellspring.exceptions import InvalidTransitionError, NotFoundError


@pytest.fixture
def service(db_session):
    chapters = ChapterService(db_session)
    chapters.initialize_chapters()
    return chapters


def test_initialize_seeds_every_state_once(db_session):
    chapters = ChapterService(db_session)

    assert chapters.initialize_chapters() == {"created": 60, "total": 60}
    assert chapters.initialize_chapters() == {"created": 0, "total": 60}


def test_chapter_one_starts_done_with_history(service):
    chapter = service.get_chapter("oregon_ch1_101")

    assert chapter.current_step == "done"
    assert chapter.workflow_type == "ch101"
    assert [h.step_id for h in chapter.history] == ["not_started", "drafting", "internal_review", "final_edit", "done"]


def test_new_chapters_start_not_started_with_lead(service):
    chapter = service.get_chapter("louisiana_ch4_direct_use")

    assert chapter.current_step == "not_started"
    assert chapter.current_owner == "Jackson"
    assert chapter.history == []
    assert service.get_chapter("alaska_ch2_subsurface").workflow_type == "subsurface"


def test_unknown_chapter(service):
    with pytest.raises(NotFoundError):
        service.get_chapter("texas_ch6_policy")
    assert service.find_chapter("texas", "ch6_policy") is None


def test_advance_records_history(service):
    event = service.advance_step("idaho_ch6_policy", "outreach_identify_authors", notes="Kickoff")
    assert event.completed_step == "not_started"
    assert event.new_step == "outreach_identify_authors"
    assert event.forced is False

    service.advance_step("idaho_ch6_policy", "schedule_meeting", owner="Trent")
    chapter = service.get_chapter("idaho_ch6_policy")

    assert chapter.current_step == "schedule_meeting"
    assert chapter.current_owner == "Trent"
    assert [h.step_id for h in chapter.history] == ["outreach_identify_authors", "schedule_meeting"]
    assert chapter.history[0].completed_at is not None
    assert chapter.history[0].notes == "Kickoff"
    assert chapter.history[1].completed_at is None


def test_owner_defaults_to_target_step_owner(service):
    service.advance_step("louisiana_ch3_electricity", "outreach_identify_authors")
    assert service.get_chapter("louisiana_ch3_electricity").current_owner == "Content Owner"

    service.advance_step("louisiana_ch3_electricity", "content_approver_review_1", force=True)
    assert service.get_chapter("louisiana_ch3_electricity").current_owner == "Ryan"


def test_out_of_order_advance_needs_force(service):
    with pytest.raises(InvalidTransitionError):
        service.advance_step("oklahoma_ch7_stakeholders", "send_contract")

    event = service.advance_step("oklahoma_ch7_stakeholders", "send_contract", force=True)
    chapter = service.get_chapter("oklahoma_ch7_stakeholders")

    assert event.forced is True
    assert chapter.current_step == "send_contract"
    assert chapter.history[-1].forced is True


def test_chapters_for_state_follow_master_order(service):
    service.add_custom_chapter_type("ch10_workforce", "Workforce", "10")
    service.add_chapter_to_state("idaho", "ch10_workforce")

    types = [c.chapter_type for c in service.get_chapters_for_state("idaho")]
    assert types[0] == "ch1_101"
    assert types[4] == "ch4_5_commercial_gshp"
    assert types[-1] == "ch10_workforce"
    assert len(service.get_chapters_for_state("oregon")) == 10


def test_owner_search_is_case_insensitive_and_active_only(service):
    service.advance_step("alaska_ch3_electricity", "outreach_identify_authors", owner="Ryan")
    service.advance_step("oregon_ch3_electricity", "outreach_identify_authors", owner="Smita/Ryan")

    found = {c.chapter_id for c in service.get_chapters_by_owner("ryan")}
    assert found == {"alaska_ch3_electricity", "oregon_ch3_electricity"}


def test_overdue_chapters(service, db_session):
    service.advance_step("idaho_ch8_environment", "outreach_identify_authors")
    service.advance_step("oregon_ch8_environment", "outreach_identify_authors")
    late = service.get_chapter("idaho_ch8_environment")
    late.current_step_started_at = datetime.utcnow() - timedelta(days=20)
    db_session.commit()

    assert [c.chapter_id for c in service.get_overdue_chapters()] == ["idaho_ch8_environment"]


def test_blockers_and_notes(service):
    service.update_blocker("idaho_ch9_military", "Waiting on base access")
    service.update_notes("idaho_ch9_military", "Call scheduled")

    assert [c.chapter_id for c in service.get_chapters_with_blockers()] == ["idaho_ch9_military"]
    assert service.get_chapter("idaho_ch9_military").notes == "Call scheduled"

    service.update_blocker("idaho_ch9_military", "")
    assert service.get_chapters_with_blockers() == []


def test_author_and_contract_deadlines(service):
    service.set_author_info("louisiana_ch6_policy", "Jane Smith", "jane@example.edu", True, date(2026, 1, 5))
    service.set_contract_deadline("louisiana_ch6_policy", "awaiting_author_responses", date(2026, 1, 20))
    service.set_contract_deadline("louisiana_ch6_policy", "author_approval_round_1", date(2026, 2, 3))

    chapter = service.get_chapter("louisiana_ch6_policy")
    assert chapter.author_name == "Jane Smith"
    assert chapter.contract_signed is True
    assert chapter.contract_deadlines == {
        "awaiting_author_responses": "2026-01-20",
        "author_approval_round_1": "2026-02-03",
    }


def test_board_item_ids(service):
    service.set_monday_item_id("idaho_ch3_electricity", "1234")
    service.set_payment_contributor_id("idaho_ch3_electricity", "5678")

    chapter = service.get_chapter("idaho_ch3_electricity")
    assert chapter.monday_item_id == "1234"
    assert chapter.payment_contributor_id == "5678"


def test_doe_deadline_overrides_feed_timeline(service):
    service.set_doe_deadline("louisiana", date(2026, 1, 15))

    assert service.doe_deadlines()["louisiana"] == date(2026, 1, 15)
    assert service.doe_deadlines()["idaho"] == date(2026, 4, 30)
    timeline = service.timeline_for_state("louisiana", date(2025, 12, 1))
    assert timeline.timeline_type == "tight"
    assert timeline.buffer_days == 2

    with pytest.raises(NotFoundError):
        service.set_doe_deadline("texas", date(2026, 1, 1))


def test_add_and_remove_chapters(service):
    assert service.remove_chapter_from_state("idaho", "ch9_military") is True
    assert service.remove_chapter_from_state("idaho", "ch9_military") is False

    chapter = service.add_chapter_to_state("idaho", "ch9_military")
    assert chapter.chapter_id == "idaho_ch9_military"
    assert service.add_chapter_to_state("idaho", "ch9_military").id == chapter.id

    with pytest.raises(NotFoundError):
        service.add_chapter_to_state("idaho", "ch99_unknown")
    with pytest.raises(NotFoundError):
        service.add_chapter_to_state("texas", "ch9_military")


def test_custom_chapter_types(service):
    assert service.add_custom_chapter_type("ch10_workforce", "Workforce", "10") is not None
    assert service.add_custom_chapter_type("ch10_workforce", "Workforce again", "10") is None
    assert service.add_custom_chapter_type("ch6_policy", "Policy", "6") is None

    service.add_chapter_to_state("idaho", "ch10_workforce")
    service.add_chapter_to_state("oregon", "ch10_workforce")
    assert service.get_chapter("oregon_ch10_workforce").workflow_type == "standard"

    assert service.remove_custom_chapter_type("ch6_policy") is False
    assert service.remove_custom_chapter_type("ch10_workforce") is True
    assert service.find_chapter("idaho", "ch10_workforce") is None
    assert service.find_chapter("oregon", "ch10_workforce") is None
    assert all(c.value != "ch10_workforce" for c in service.all_chapter_types())
    assert service.remove_custom_chapter_type("ch10_workforce") is False
