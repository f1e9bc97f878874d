"""Unit tests for wellspring.services.payment_policy — milestone triggers,
split amounts and email drafts."""

import pytest

from wellspring.services.payment_policy import (
    AuthorInfo,
    format_currency,
    generate_accounting_setup_email,
    get_milestone_label,
    get_milestone_payment_amount,
    get_payment_email_for_step,
    get_payment_number,
    get_payment_status,
    get_payment_status_label,
    should_send_payment_email,
    should_trigger_payment,
)


def _make_author(**overrides):
    data = {
        "name": "Lee Park",
        "email": "lee@example.com",
        "chapter": "ch6_policy",
        "chapter_title": "Policy",
        "state": "Oregon",
    }
    data.update(overrides)
    return AuthorInfo(**data)


# ── Triggers ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize("step, number", [
    ("awaiting_contract_signature", 1),
    ("contract_signed", 1),
    ("author_approval_round_1", 2),
    ("author_approval_round_3", 3),
    ("author_approval_round_2", None),
    ("send_contract", None),
    ("peer_review", None),
])
def test_get_payment_number(step, number):
    assert get_payment_number(step) == number


def test_should_trigger_payment_board_columns():
    assert should_trigger_payment("send_contract") == "sentBoxSignature"
    assert should_trigger_payment("contract_signed") == "distribution1"
    assert should_trigger_payment("author_approval_round_1") == "roughDraftReceived"
    assert should_trigger_payment("author_approval_round_3") is None
    assert should_trigger_payment("drafting") is None


def test_decision_for_invoice_step():
    decision = should_send_payment_email("author_approval_round_1")
    assert decision.send_invoice_reminder is True
    assert decision.send_accounting_setup is False
    assert decision.milestone.payment_number == 2
    assert decision.milestone.percentage == 37.5


def test_decision_for_accounting_setup():
    decision = should_send_payment_email("send_contract")
    assert decision.send_accounting_setup is True
    assert decision.send_invoice_reminder is False
    assert decision.milestone.payment_number == 0


def test_decision_for_plain_step():
    decision = should_send_payment_email("maria_edit_pass")
    assert not decision.send_invoice_reminder
    assert not decision.send_accounting_setup
    assert decision.milestone is None


# ── Amounts & labels ─────────────────────────────────────────────────────


def test_split_amounts_sum_to_grant():
    total = sum(get_milestone_payment_amount(5000, n) for n in (1, 2, 3))
    assert total == 5000
    assert get_milestone_payment_amount(5000, 1) == 1875
    assert get_milestone_payment_amount(5000, 3) == 1250
    assert get_milestone_payment_amount(5000, 9) == 0


def test_labels_and_currency():
    assert get_milestone_label(3) == "Final Publication Approval"
    assert get_milestone_label(7) == "Unknown Milestone"
    assert format_currency(1875) == "$1,875.00"


# ── Email drafts ─────────────────────────────────────────────────────────


def test_invoice_email_for_step():
    result = get_payment_email_for_step(
        "contract_signed", _make_author(), 5000, "6", accounting_email="acct@example.org",
    )
    assert result.email_type == "invoice_reminder"
    assert result.milestone.payment_number == 1
    assert result.email.to == ["lee@example.com"]
    assert result.email.cc == ["acct@example.org"]
    assert result.email.subject == "Invoice for Payment #1: Chapter 6: Policy (Oregon GEODE Report)"
    assert "Hi Lee Park" in result.email.body
    assert "$1,875.00" in result.email.body


def test_invoice_email_without_chapter_number():
    result = get_payment_email_for_step("author_approval_round_3", _make_author(chapter_title="Intro"))
    assert result.email.subject == "Invoice for Payment #3: Intro (Oregon GEODE Report)"


def test_accounting_setup_email_for_send_contract():
    result = get_payment_email_for_step("send_contract", _make_author(), 6000, accounting_email="acct@example.org")
    assert result.email_type == "accounting_setup"
    assert result.email.to == ["acct@example.org"]
    assert "$6,000" in result.email.body
    assert "Lee Park" in result.email.subject


def test_no_email_for_plain_step():
    result = get_payment_email_for_step("peer_review", _make_author())
    assert result.email_type is None
    assert result.email is None


def test_accounting_setup_template_defaults():
    draft = generate_accounting_setup_email(_make_author(), "$5,000", "3 milestones")
    assert draft.cc == []
    assert draft.to_draft_kwargs()["subject"].startswith("New contributor setup")


# ── Payments board status ────────────────────────────────────────────────


@pytest.mark.parametrize("milestones, status", [
    ({}, "not_started"),
    ({"drafted": True}, "contract_pending"),
    ({"drafted": True, "sentBoxSignature": True}, "awaiting_signature"),
    ({"drafted": True, "sentBoxSignature": True, "distribution1": True}, "payment_1_pending"),
    ({"drafted": True, "sentBoxSignature": True, "distribution1": True, "payment1": True},
     "payment_1_complete"),
    ({"drafted": True, "sentBoxSignature": True, "distribution1": True, "payment1": True,
      "roughDraftReceived": True}, "in_progress"),
])
def test_get_payment_status(milestones, status):
    assert get_payment_status(milestones) == status


def test_payment_status_label():
    assert get_payment_status_label("payment_1_pending") == "Payment #1 Pending"
    assert get_payment_status_label("mystery") == "mystery"
