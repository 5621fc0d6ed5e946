import pytest

from wellspring.config import BoardColumnConfig
from wellspring.exceptions import ConfigurationError
from wellspring.geode.reference import (
    ChapterType,
    author_initials,
    get_all_chapter_types,
    get_chapter_lead,
    get_chapter_type,
    get_state,
    render_nudge,
)


def test_state_lookup():
    assert get_state("louisiana").abbreviation == "LA"
    assert get_state("texas") is None
    assert get_state(None) is None


def test_custom_chapter_types_follow_builtins():
    custom = [ChapterType("ch10_workforce", "Workforce", "10", custom=True)]
    types = get_all_chapter_types(custom)

    assert types[0].value == "ch1_101"
    assert types[-1].value == "ch10_workforce"
    assert get_chapter_type("ch10_workforce", custom).label == "Workforce"
    assert get_chapter_type("ch10_workforce") is None


def test_chapter_leads():
    assert get_chapter_lead("louisiana", "ch4_direct_use") == "Jackson"
    assert get_chapter_lead("alaska", "ch4_direct_use") == "Ryan"
    assert get_chapter_lead("idaho", "ch5_heat_ownership") == "Smita/Maria"
    assert get_chapter_lead("texas", "ch6_policy") == "Unassigned"


def test_render_nudge_fills_known_placeholders():
    nudge = render_nudge("review_requested", section="Idaho - Policy", date="03/01/2026")
    assert nudge["title"] == "Review Requested"
    assert nudge["message"] == "A draft of Idaho - Policy is ready for your review. Please complete your review by 03/01/2026."

    partial = render_nudge("payment_pending", amount="1,875.00")
    assert "{{deliverable}}" in partial["message"]


def test_author_initials():
    assert author_initials("Jane Q Smith") == "JQS"
    assert author_initials("  maria  ") == "M"


def test_column_overrides_from_environment():
    config = BoardColumnConfig.from_env({"MONDAY_COLUMN_PAYMENT1": "check_p1"})
    assert config.payment1 == "check_p1"
    assert config.column_for("distribution1") == "checkbox__4"


def test_blank_column_override_fails_fast():
    with pytest.raises(ConfigurationError):
        BoardColumnConfig.from_env({"MONDAY_COLUMN_DISTRIBUTION1": "  "})


def test_unknown_milestone_column():
    with pytest.raises(ConfigurationError):
        BoardColumnConfig().column_for("payment9")
