"""
Sync Dispatcher — best-effort external notifications after a step transition.

A transition produces up to two outbox events:
  - ``board_comment``: a status comment on the chapter's Monday.com item,
    when external sync is requested and an item id is mapped.
  - ``payment_email``: an invoice-reminder draft for the author, when the
    step that just COMPLETED releases a payment and the chapter has an
    author name and email.

The outbox is drained synchronously right after the transition.  Each event
gets exactly one attempt; failures are logged and recorded on the event and
never propagate to the caller or roll back the transition.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from wellspring.services.board_sync import build_transition_comment
from wellspring.services.payment_policy import (
    DEFAULT_ACCOUNTING_EMAIL,
    AuthorInfo,
    get_payment_email_for_step,
    should_send_payment_email,
)
from wellspring.workflow.chapter import DEFAULT_GRANT_AMOUNT

logger = logging.getLogger(__name__)

EVENT_BOARD_COMMENT = "board_comment"
EVENT_PAYMENT_EMAIL = "payment_email"

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"


@dataclass
class SyncEvent:
    kind: str
    chapter_id: str
    payload: dict = field(default_factory=dict)
    target: str = ""
    status: str = STATUS_PENDING
    error: str | None = None
    attempts: int = 0
    result: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "chapter_id": self.chapter_id,
            "target": self.target,
            "status": self.status,
            "error": self.error,
            "attempts": self.attempts,
            "result": dict(self.result),
        }


class SyncOutbox:
    """In-process queue of pending events plus a bounded log of finished ones."""

    def __init__(self, keep: int = 200) -> None:
        self._pending: deque[SyncEvent] = deque()
        self.processed: deque[SyncEvent] = deque(maxlen=keep)

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, event: SyncEvent) -> SyncEvent:
        self._pending.append(event)
        return event

    def drain(self):
        """Yield and remove pending events in FIFO order."""
        while self._pending:
            event = self._pending.popleft()
            yield event
            self.processed.append(event)


class SyncDispatcher:
    """Turns transitions into outbox events and delivers them once.

    Args:
        board:     object with ``add_comment(item_id, text) -> bool``.
        email:     object with ``is_connected()`` and
                   ``create_draft(to, cc, subject, body, attachment=None)``.
        recorder:  optional callable invoked with each finished event.
    """

    def __init__(self, board=None, email=None, recorder=None,
                 accounting_email: str = DEFAULT_ACCOUNTING_EMAIL,
                 outbox: SyncOutbox | None = None) -> None:
        self.board = board
        self.email = email
        self.recorder = recorder
        self.accounting_email = accounting_email
        self.outbox = outbox or SyncOutbox()

    # ── Event construction ───────────────────────────────────────────────

    def plan_transition(
        self,
        chapter,
        record,
        *,
        board_item_id: str | None,
        sync_externally: bool = True,
        chapter_title: str | None = None,
        chapter_num: str | None = None,
        state_label: str | None = None,
        grant_amount: float | None = None,
    ) -> list[SyncEvent]:
        """Queue the events a transition calls for.

        ``grant_amount`` is the effective grant; the chapter's own grant is
        used when it is not given.
        """
        events = []

        if sync_externally and board_item_id:
            events.append(self.outbox.enqueue(SyncEvent(
                kind=EVENT_BOARD_COMMENT,
                chapter_id=chapter.chapter_id,
                target=str(board_item_id),
                payload={
                    "item_id": str(board_item_id),
                    "text": build_transition_comment(
                        record.new_step, record.new_entry.owner, record.new_entry.notes,
                    ),
                },
            )))

        decision = should_send_payment_email(record.completed_step)
        if decision.send_invoice_reminder and chapter.author_name and chapter.author_email:
            author = AuthorInfo(
                name=chapter.author_name,
                email=chapter.author_email,
                chapter=chapter.chapter_type,
                chapter_title=chapter_title or chapter.chapter_type,
                state=state_label or chapter.report_state,
            )
            if grant_amount is None:
                grant_amount = DEFAULT_GRANT_AMOUNT if chapter.grant_amount is None else chapter.grant_amount
            result = get_payment_email_for_step(
                record.completed_step,
                author,
                grant_amount,
                chapter_num,
                accounting_email=self.accounting_email,
            )
            if result.email is not None:
                events.append(self.outbox.enqueue(SyncEvent(
                    kind=EVENT_PAYMENT_EMAIL,
                    chapter_id=chapter.chapter_id,
                    target=chapter.author_email,
                    payload=result.email.to_draft_kwargs(),
                    result={"payment_number": result.milestone.payment_number},
                )))

        return events

    # ── Delivery ─────────────────────────────────────────────────────────

    def drain(self) -> list[SyncEvent]:
        """Attempt every pending event once; return them with outcomes set."""
        done = []
        for event in self.outbox.drain():
            self._deliver(event)
            done.append(event)
            if self.recorder is not None:
                self.recorder(event)
        return done

    def dispatch_transition(self, chapter, record, **kwargs) -> list[SyncEvent]:
        self.plan_transition(chapter, record, **kwargs)
        return self.drain()

    def _deliver(self, event: SyncEvent) -> None:
        handler = {
            EVENT_BOARD_COMMENT: self._send_board_comment,
            EVENT_PAYMENT_EMAIL: self._send_payment_email,
        }.get(event.kind)
        if handler is None:
            event.status = STATUS_ERROR
            event.error = f"Unknown event kind '{event.kind}'"
            logger.error("Sync event %s for %s has no handler", event.kind, event.chapter_id)
            return

        try:
            handler(event)
        except Exception as exc:
            event.status = STATUS_ERROR
            event.error = str(exc)[:500]
            logger.exception("Sync %s failed for %s", event.kind, event.chapter_id)

    def _send_board_comment(self, event: SyncEvent) -> None:
        if self.board is None:
            event.status = STATUS_SKIPPED
            event.error = "Board gateway not configured"
            logger.warning("Board gateway not configured; comment for %s skipped", event.chapter_id)
            return

        event.attempts += 1
        if self.board.add_comment(event.payload["item_id"], event.payload["text"]):
            event.status = STATUS_SUCCESS
            logger.info("Board synced for %s item=%s", event.chapter_id, event.target)
        else:
            event.status = STATUS_ERROR
            event.error = "Board comment was not accepted"

    def _send_payment_email(self, event: SyncEvent) -> None:
        if self.email is None or not self.email.is_connected():
            event.status = STATUS_SKIPPED
            event.error = "Email gateway not connected"
            logger.warning("Gmail not connected; invoice email skipped for %s", event.chapter_id)
            return

        event.attempts += 1
        logger.info("Creating invoice email draft for %s to=%s", event.chapter_id, event.target)
        draft = self.email.create_draft(**event.payload)
        if draft.success:
            event.status = STATUS_SUCCESS
            event.result["draft_id"] = draft.draft_id
            logger.info("Invoice email draft created: %s", draft.draft_id)
        else:
            event.status = STATUS_ERROR
            event.error = draft.error
            logger.error("Failed to create invoice draft for %s: %s", event.chapter_id, draft.error)
