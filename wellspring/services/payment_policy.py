"""
Payment policy — maps completed workflow steps to contributor payment
milestones and builds the matching email drafts.

Authors are paid in three installments (37.5% / 37.5% / 25% of the grant).
Triggers are keyed on the step that just COMPLETED, i.e. the step a chapter
leaves when it advances.

Usage:
    from wellspring.services.payment_policy import get_payment_email_for_step

    result = get_payment_email_for_step("author_approval_round_1", author, 5000, "3")
    if result.email:
        gmail.create_draft(**result.email.to_draft_kwargs())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTING_EMAIL = "accounting@wellspring.example"

# Completed step → Payments board milestone column.
WORKFLOW_TO_PAYMENT_MAP: dict[str, str | None] = {
    "send_contract": "sentBoxSignature",
    "awaiting_contract_signature": "distribution1",
    "contract_signed": "distribution1",
    "author_approval_round_1": "roughDraftReceived",
    "author_approval_round_3": None,
}

# Payment number → completed steps that release it.
PAYMENT_TRIGGERS: dict[int, tuple[str, ...]] = {
    1: ("awaiting_contract_signature", "contract_signed"),
    2: ("author_approval_round_1",),
    3: ("author_approval_round_3",),
}

PAYMENT_SPLITS: dict[int, float] = {1: 0.375, 2: 0.375, 3: 0.25}

ACCOUNTING_SETUP_STEPS = ("send_contract",)

_MILESTONE_LABELS = {
    1: "Contract Signed & Author Onboarded",
    2: "Author Review of First Draft Complete",
    3: "Final Publication Approval",
}

PAYMENT_STATUS_LABELS = {
    "not_started": "Not Started",
    "contract_pending": "Contract Pending",
    "awaiting_signature": "Awaiting Signature",
    "payment_1_pending": "Payment #1 Pending",
    "payment_1_complete": "Payment #1 Complete",
    "in_progress": "In Progress",
    "payment_2_pending": "Payment #2 Pending",
    "payment_2_complete": "Payment #2 Complete",
    "complete": "Complete",
}


# ── Data classes ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PaymentMilestoneDefinition:
    payment_number: int
    workflow_step: str
    label: str
    percentage: float


@dataclass
class PaymentEmailDecision:
    send_invoice_reminder: bool = False
    send_accounting_setup: bool = False
    milestone: PaymentMilestoneDefinition | None = None


@dataclass
class AuthorInfo:
    name: str
    email: str
    chapter: str
    chapter_title: str
    state: str


@dataclass
class EmailDraft:
    to: list[str]
    subject: str
    body: str
    cc: list[str] = field(default_factory=list)

    def to_draft_kwargs(self) -> dict:
        return {"to": list(self.to), "cc": list(self.cc), "subject": self.subject, "body": self.body}

    def to_dict(self) -> dict:
        return self.to_draft_kwargs()


@dataclass
class PaymentEmailResult:
    email_type: str | None = None  # "accounting_setup" | "invoice_reminder"
    email: EmailDraft | None = None
    milestone: PaymentMilestoneDefinition | None = None


# ── Policy lookups ───────────────────────────────────────────────────────


def should_trigger_payment(workflow_step: str) -> str | None:
    """Payments board milestone released when ``workflow_step`` completes."""
    return WORKFLOW_TO_PAYMENT_MAP.get(workflow_step)


def get_payment_number(completed_step: str) -> int | None:
    for number, steps in PAYMENT_TRIGGERS.items():
        if completed_step in steps:
            return number
    return None


def get_milestone_payment_amount(total_grant: float, payment_number: int) -> float:
    return total_grant * PAYMENT_SPLITS.get(payment_number, 0)


def get_milestone_label(payment_number: int) -> str:
    return _MILESTONE_LABELS.get(payment_number, "Unknown Milestone")


def should_send_payment_email(completed_step: str) -> PaymentEmailDecision:
    """Which payment email, if any, the completion of ``completed_step`` calls for."""
    number = get_payment_number(completed_step)
    if number is not None:
        milestone = PaymentMilestoneDefinition(
            payment_number=number,
            workflow_step=completed_step,
            label=get_milestone_label(number),
            percentage=PAYMENT_SPLITS[number] * 100,
        )
        return PaymentEmailDecision(send_invoice_reminder=True, milestone=milestone)

    if completed_step in ACCOUNTING_SETUP_STEPS:
        milestone = PaymentMilestoneDefinition(
            payment_number=0,
            workflow_step=completed_step,
            label="Contract Sent for Signature",
            percentage=0.0,
        )
        return PaymentEmailDecision(send_accounting_setup=True, milestone=milestone)

    return PaymentEmailDecision()


# ── Email templates ──────────────────────────────────────────────────────


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def generate_accounting_setup_email(
    author_info: AuthorInfo,
    payment_amount: str,
    payment_schedule: str,
    accounting_email: str = DEFAULT_ACCOUNTING_EMAIL,
) -> EmailDraft:
    subject = f"New contributor setup: {author_info.name} ({author_info.state} - {author_info.chapter_title})"
    body = (
        "Hi Accounting team,\n\n"
        f"A contract has been sent to {author_info.name} ({author_info.email}) for the "
        f"{author_info.state} GEODE report, chapter \"{author_info.chapter_title}\".\n\n"
        "Please set them up as a contributor for payment:\n"
        f"  - Total grant: {payment_amount}\n"
        f"  - Schedule: {payment_schedule}\n\n"
        "Thank you,\nWellspring"
    )
    return EmailDraft(to=[accounting_email], subject=subject, body=body)


def generate_invoice_reminder_email(
    author_info: AuthorInfo,
    milestone_label: str,
    payment_number: int,
    payment_amount: str,
    accounting_email: str = DEFAULT_ACCOUNTING_EMAIL,
) -> EmailDraft:
    subject = (
        f"Invoice for Payment #{payment_number}: {author_info.chapter_title} "
        f"({author_info.state} GEODE Report)"
    )
    body = (
        f"Hi {author_info.name},\n\n"
        f"Thank you for your work on the \"{author_info.chapter_title}\" chapter of the "
        f"{author_info.state} GEODE report. You have reached the milestone "
        f"\"{milestone_label}\", which releases Payment #{payment_number} of {payment_amount}.\n\n"
        "Please reply to this email with your invoice for this payment and we will "
        "forward it to accounting for processing.\n\n"
        "Best regards,\nWellspring"
    )
    return EmailDraft(to=[author_info.email], cc=[accounting_email], subject=subject, body=body)


def get_payment_email_for_step(
    completed_step: str,
    author_info: AuthorInfo,
    grant_amount: float = 5000,
    chapter_num: str | None = None,
    accounting_email: str = DEFAULT_ACCOUNTING_EMAIL,
) -> PaymentEmailResult:
    """Email draft owed after ``completed_step`` finishes, or an empty result."""
    decision = should_send_payment_email(completed_step)

    if decision.send_accounting_setup:
        return PaymentEmailResult(
            email_type="accounting_setup",
            email=generate_accounting_setup_email(
                author_info,
                payment_amount=f"${grant_amount:,.0f}",
                payment_schedule="37.5% / 37.5% / 25% across 3 milestones",
                accounting_email=accounting_email,
            ),
            milestone=decision.milestone,
        )

    if decision.send_invoice_reminder and decision.milestone:
        number = decision.milestone.payment_number
        amount = get_milestone_payment_amount(grant_amount, number)
        chapter_title = author_info.chapter_title
        if chapter_num:
            chapter_title = f"Chapter {chapter_num}: {chapter_title}"
        info = AuthorInfo(
            name=author_info.name,
            email=author_info.email,
            chapter=author_info.chapter,
            chapter_title=chapter_title,
            state=author_info.state,
        )
        return PaymentEmailResult(
            email_type="invoice_reminder",
            email=generate_invoice_reminder_email(
                info,
                milestone_label=decision.milestone.label,
                payment_number=number,
                payment_amount=format_currency(amount),
                accounting_email=accounting_email,
            ),
            milestone=decision.milestone,
        )

    return PaymentEmailResult()


# ── Payments board status ────────────────────────────────────────────────


def get_payment_status(milestones: dict) -> str:
    """Collapse the Payments board checkbox columns into a single status."""
    if not milestones.get("drafted"):
        return "not_started"
    if not milestones.get("sentBoxSignature"):
        return "contract_pending"
    if not milestones.get("distribution1"):
        return "awaiting_signature"
    if not milestones.get("payment1"):
        return "payment_1_pending"
    if not milestones.get("roughDraftReceived"):
        return "payment_1_complete"
    return "in_progress"


def get_payment_status_label(status: str) -> str:
    return PAYMENT_STATUS_LABELS.get(status, status)
