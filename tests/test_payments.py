from decimal import Decimal

import pytest

from wellspring.geode.payments import (
    PaymentMilestones,
    format_currency,
    get_payment_status,
    get_payment_status_label,
    milestone_label,
    milestone_payment_amount,
    should_send_payment_email,
    should_trigger_payment,
    split_grant,
)


def test_split_default_grant():
    assert split_grant(5000) == (Decimal("1875.00"), Decimal("1875.00"), Decimal("1250.00"))


def test_split_rounding_goes_to_final_payment():
    first, second, final = split_grant("1001")
    assert first == Decimal("375.38")
    assert second == Decimal("375.38")
    assert final == Decimal("250.24")
    assert first + second + final == Decimal("1001")


def test_milestone_payment_amount():
    assert milestone_payment_amount(5000, 3) == Decimal("1250.00")
    assert milestone_payment_amount(5000, 4) == Decimal("0")


def test_trigger_map_is_keyed_by_completed_step():
    assert should_trigger_payment("send_contract") == "sentBoxSignature"
    assert should_trigger_payment("awaiting_contract_signature") == "distribution1"
    assert should_trigger_payment("author_approval_round_1") == "roughDraftReceived"
    assert should_trigger_payment("peer_review") is None


def test_payment_email_decision():
    assert should_send_payment_email("send_contract") == {
        "sendAccountingSetup": True,
        "sendInvoiceReminder": False,
        "paymentNumber": None,
    }
    assert should_send_payment_email("author_approval_round_3")["paymentNumber"] == 3
    assert should_send_payment_email("copywriter_pass")["sendInvoiceReminder"] is False


def test_payment_status_progression():
    milestones = PaymentMilestones()
    assert get_payment_status(milestones) == "not_started"

    milestones.mark("drafted")
    assert get_payment_status(milestones) == "contract_pending"

    milestones.mark("sentBoxSignature")
    assert get_payment_status(milestones) == "awaiting_signature"

    milestones.mark("distribution1")
    assert get_payment_status(milestones) == "payment_1_pending"

    milestones.mark("payment1")
    assert get_payment_status(milestones) == "payment_1_complete"

    milestones.mark("roughDraftReceived")
    assert get_payment_status(milestones) == "in_progress"
    assert get_payment_status_label("payment_1_pending") == "Payment #1 Pending"


def test_mark_rejects_unknown_milestones():
    with pytest.raises(ValueError):
        PaymentMilestones().mark("payment2")
    with pytest.raises(ValueError):
        PaymentMilestones().mark("roughDraftDue")


def test_labels_and_currency():
    assert milestone_label(2) == "Author Review of First Draft Complete"
    assert milestone_label(7) == "Unknown Milestone"
    assert format_currency(Decimal("1875")) == "$1,875.00"
    assert format_currency(12500) == "$12,500.00"
