"""
Chapter aggregate — the per-(report context, chapter type) workflow state.

The aggregate is mutated only through the history ledger
(``wellspring.workflow.history.record_transition``) and the store's field
setters.  ``to_dict``/``from_dict`` define the persisted snapshot layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from wellspring.utils.helpers import parse_timestamp, to_iso
from wellspring.workflow.catalog import STEP_DONE, STEP_NOT_STARTED, resolve_workflow_variant
from wellspring.workflow.chapter_types import UNIVERSAL_CHAPTER_TYPE, get_chapter_lead
from wellspring.workflow.history import WorkflowHistoryEntry

DEFAULT_GRANT_AMOUNT = 5000


def chapter_key(report_state: str, chapter_type: str) -> str:
    """Composite key used for chapters and external-id mappings."""
    return f"{report_state}_{chapter_type}"


@dataclass
class ChapterWorkflowState:
    """Aggregate root for one chapter of one state report."""

    chapter_id: str
    report_state: str
    chapter_type: str
    workflow_type: str
    current_step: str
    current_step_started_at: datetime
    current_owner: str
    history: list[WorkflowHistoryEntry] = field(default_factory=list)
    contract_deadlines: dict[str, str] = field(default_factory=dict)
    notes: str | None = None
    blockers: str | None = None
    google_doc_url: str | None = None
    author_name: str | None = None
    author_email: str | None = None
    contract_signed: bool = False
    contract_signed_date: str | None = None
    grant_amount: int | float | None = None

    @property
    def active_entry(self) -> WorkflowHistoryEntry | None:
        return next((h for h in reversed(self.history) if h.completed_at is None), None)

    def to_dict(self) -> dict:
        return {
            "chapter_id": self.chapter_id,
            "report_state": self.report_state,
            "chapter_type": self.chapter_type,
            "workflow_type": self.workflow_type,
            "current_step": self.current_step,
            "current_step_started_at": to_iso(self.current_step_started_at),
            "current_owner": self.current_owner,
            "history": [h.to_dict() for h in self.history],
            "contract_deadlines": dict(self.contract_deadlines),
            "notes": self.notes,
            "blockers": self.blockers,
            "google_doc_url": self.google_doc_url,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "contract_signed": self.contract_signed,
            "contract_signed_date": self.contract_signed_date,
            "grant_amount": self.grant_amount,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChapterWorkflowState":
        chapter_type = data["chapter_type"]
        return cls(
            chapter_id=data.get("chapter_id") or chapter_key(data["report_state"], chapter_type),
            report_state=data["report_state"],
            chapter_type=chapter_type,
            workflow_type=data.get("workflow_type") or resolve_workflow_variant(chapter_type),
            current_step=data.get("current_step") or STEP_NOT_STARTED,
            current_step_started_at=parse_timestamp(data.get("current_step_started_at")),
            current_owner=data.get("current_owner") or "",
            history=[WorkflowHistoryEntry.from_dict(h) for h in data.get("history") or []],
            contract_deadlines=dict(data.get("contract_deadlines") or {}),
            notes=data.get("notes"),
            blockers=data.get("blockers"),
            google_doc_url=data.get("google_doc_url"),
            author_name=data.get("author_name"),
            author_email=data.get("author_email"),
            contract_signed=bool(data.get("contract_signed", False)),
            contract_signed_date=data.get("contract_signed_date"),
            grant_amount=data.get("grant_amount"),
        )


def _ts(value: str) -> datetime:
    return parse_timestamp(value)


def _ch101_completed_history() -> list[WorkflowHistoryEntry]:
    """Backfill for the intro chapter, finished before tracking began."""
    return [
        WorkflowHistoryEntry("not_started", _ts("2025-10-01"), _ts("2025-10-01"), "", None, 0),
        WorkflowHistoryEntry("drafting", _ts("2025-10-01"), _ts("2025-11-15"),
                             "Drew, Dani, Maria, Trent", "Universal chapter drafted", 45),
        WorkflowHistoryEntry("internal_review", _ts("2025-11-15"), _ts("2025-11-30"), "Trent", None, 15),
        WorkflowHistoryEntry("final_edit", _ts("2025-11-30"), _ts("2025-12-01"), "Maria", None, 1),
        WorkflowHistoryEntry("done", _ts("2025-12-01"), _ts("2025-12-01"), "",
                             "Complete for all 6 states", 0),
    ]


def create_initial_chapter_state(
    report_state: str,
    chapter_type: str,
    now: datetime | None = None,
) -> ChapterWorkflowState:
    """Seed a chapter aggregate.

    New chapters start at ``not_started`` owned by the chapter lead with an
    empty history.  The universal intro chapter is seeded as ``done`` with
    its completed history.
    """
    now = now or datetime.now(timezone.utc)
    is_universal = chapter_type == UNIVERSAL_CHAPTER_TYPE

    return ChapterWorkflowState(
        chapter_id=chapter_key(report_state, chapter_type),
        report_state=report_state,
        chapter_type=chapter_type,
        workflow_type=resolve_workflow_variant(chapter_type),
        current_step=STEP_DONE if is_universal else STEP_NOT_STARTED,
        current_step_started_at=_ts("2025-12-01") if is_universal else now,
        current_owner="" if is_universal else get_chapter_lead(report_state, chapter_type),
        history=_ch101_completed_history() if is_universal else [],
    )
