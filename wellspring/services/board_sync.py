"""
Board sync — maps chapter state onto the Monday.com boards.

Two boards are involved:
  - "Reports Progress": one item per chapter; status label + comments.
  - "Payments: Report Contributors": one item per contributor; payment
    milestone updates are posted as comments until the checkbox column ids
    are configured.

Every function takes the board gateway explicitly and only ever uses its
``add_comment(item_id, text) -> bool`` capability.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wellspring.services.payment_policy import (
    AuthorInfo,
    PaymentEmailResult,
    get_payment_email_for_step,
    should_trigger_payment,
)

logger = logging.getLogger(__name__)

DEFAULT_STATUS_LABEL = "In Progress"

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


def get_board_status_label(step_id: str) -> str:
    return MONDAY_STATUS_LABELS.get(step_id, DEFAULT_STATUS_LABEL)


def get_board_item_name(chapter_type: str) -> str:
    return CHAPTER_TO_MONDAY_NAME.get(chapter_type, chapter_type)


def build_transition_comment(new_step: str, owner: str, notes: str | None = None) -> str:
    """Comment posted when a chapter moves to ``new_step``."""
    comment = f"[Wellspring] Step advanced to: {get_board_status_label(new_step)}\nOwner: {owner}"
    if notes:
        comment += f"\nNotes: {notes}"
    return comment


def build_status_comment(chapter) -> str:
    """Comment posted by a manual sync of the chapter's current status."""
    comment = (
        f"[Wellspring Update] Status: {get_board_status_label(chapter.current_step)}\n"
        f"Owner: {chapter.current_owner}"
    )
    if chapter.notes:
        comment += f"\nNotes: {chapter.notes}"
    return comment


def sync_context_chapters(chapters, item_ids: dict[str, str], board) -> dict:
    """Post a status comment for every chapter with a mapped item.

    ``item_ids`` maps chapter type → board item id.  Chapters without a
    mapping are not counted.
    """
    synced = 0
    errors = 0
    for chapter in chapters:
        item_id = item_ids.get(chapter.chapter_type)
        if not item_id:
            continue
        if board.add_comment(item_id, build_status_comment(chapter)):
            synced += 1
        else:
            errors += 1
    logger.info("Board sync finished synced=%d errors=%d", synced, errors)
    return {"synced": synced, "errors": errors}


# ── Payments board ───────────────────────────────────────────────────────


@dataclass
class PaymentsSyncResult:
    triggered: bool = False
    milestone: str | None = None
    email: PaymentEmailResult | None = None

    def to_dict(self) -> dict:
        email = self.email
        return {
            "triggered": self.triggered,
            "milestone": self.milestone,
            "email_type": email.email_type if email else None,
            "email": email.email.to_dict() if email and email.email else None,
        }


def sync_chapter_to_payments(
    board,
    contributor_item_id: str,
    workflow_step: str,
    author_info: AuthorInfo,
    grant_amount: float = 5000,
    chapter_num: str | None = None,
    accounting_email: str | None = None,
) -> PaymentsSyncResult:
    """Record a payment milestone on the contributor's item.

    Returns the email draft the milestone calls for; creating the draft is
    left to the caller.
    """
    milestone = should_trigger_payment(workflow_step)
    if not milestone:
        logger.info("No payment milestone for step %s", workflow_step)
        return PaymentsSyncResult()

    kwargs = {"accounting_email": accounting_email} if accounting_email else {}
    email = get_payment_email_for_step(workflow_step, author_info, grant_amount, chapter_num, **kwargs)

    triggered = board.add_comment(
        contributor_item_id,
        f"[Wellspring] Payment milestone updated: {milestone} = true",
    )
    if triggered:
        board.add_comment(
            contributor_item_id,
            f'[Wellspring] Chapter "{author_info.chapter_title}" reached step: {workflow_step}\n'
            f"Payment milestone triggered: {milestone}\n"
            f"Author: {author_info.name}",
        )

    if email.email_type and email.email:
        if email.email_type == "accounting_setup":
            note = f"[Wellspring] Accounting setup email generated for {author_info.name}"
        else:
            note = (
                f"[Wellspring] Invoice reminder email generated for {author_info.name}"
                f" - Payment #{email.milestone.payment_number}"
            )
        board.add_comment(contributor_item_id, note)

    return PaymentsSyncResult(triggered=triggered, milestone=milestone, email=email)
