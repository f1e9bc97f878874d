"""
History Ledger — records step transitions on a chapter aggregate.

A transition closes the chapter's active entry (``completed_at`` and
``duration_days`` are set together) and appends a fresh open entry for the
new step.  Revisiting a step appends a new row; rows are never reused.

Usage:
    from wellspring.workflow.history import record_transition

    record = record_transition(chapter, "schedule_meeting", "Trent", now=now)
    record.closed_entry   # entry that was completed, or None
    record.new_entry      # the newly opened entry
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from wellspring.utils.helpers import parse_timestamp, to_iso
from wellspring.workflow.progress import elapsed_days

logger = logging.getLogger(__name__)


@dataclass
class WorkflowHistoryEntry:
    """One recorded visit to a step."""

    step_id: str
    started_at: datetime
    completed_at: datetime | None = None
    owner: str = ""
    notes: str | None = None
    duration_days: int | None = None

    @property
    def is_active(self) -> bool:
        return self.completed_at is None

    def close(self, now: datetime) -> None:
        self.completed_at = now
        self.duration_days = elapsed_days(self.started_at, now)

    def to_dict(self) -> dict:
        return {
            "step_id": self.step_id,
            "started_at": to_iso(self.started_at),
            "completed_at": to_iso(self.completed_at),
            "owner": self.owner,
            "notes": self.notes,
            "duration_days": self.duration_days,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowHistoryEntry":
        return cls(
            step_id=data["step_id"],
            started_at=parse_timestamp(data.get("started_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
            owner=data.get("owner") or "",
            notes=data.get("notes"),
            duration_days=data.get("duration_days"),
        )


@dataclass
class TransitionRecord:
    """Outcome of a single ledger transition."""

    chapter_id: str
    completed_step: str
    new_step: str
    occurred_at: datetime
    new_entry: WorkflowHistoryEntry
    closed_entry: WorkflowHistoryEntry | None = None
    orphaned_entries: list[WorkflowHistoryEntry] = field(default_factory=list)
    sync_events: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "chapter_id": self.chapter_id,
            "completed_step": self.completed_step,
            "new_step": self.new_step,
            "occurred_at": to_iso(self.occurred_at),
            "closed_entry": self.closed_entry.to_dict() if self.closed_entry else None,
            "new_entry": self.new_entry.to_dict(),
            "orphaned_entries": len(self.orphaned_entries),
            "sync_events": [e.to_dict() for e in self.sync_events],
        }


def find_active_entry(history, step_id: str) -> WorkflowHistoryEntry | None:
    """The open entry for ``step_id``, if any."""
    for entry in history:
        if entry.step_id == step_id and entry.completed_at is None:
            return entry
    return None


def record_transition(
    chapter,
    new_step: str,
    owner: str,
    notes: str | None = None,
    now: datetime | None = None,
) -> TransitionRecord:
    """Move ``chapter`` to ``new_step`` and update its history in place.

    Steps:
      1. Close the active entry for the current step.
      2. A chapter with an empty history (freshly seeded) gets a closed
         entry for its seeded step, spanning current_step_started_at → now.
      3. Otherwise a missing active entry is logged; stray open entries for
         other steps are closed so only one entry stays open.
      4. Append the new open entry and move the chapter's cursor.

    The target step is not validated against the catalog.
    """
    now = now or datetime.now(timezone.utc)
    completed_step = chapter.current_step

    closed = find_active_entry(chapter.history, completed_step)
    orphans: list[WorkflowHistoryEntry] = []

    if closed is not None:
        closed.close(now)
    elif not chapter.history:
        closed = WorkflowHistoryEntry(
            step_id=completed_step,
            started_at=parse_timestamp(chapter.current_step_started_at) or now,
            owner=chapter.current_owner or "",
        )
        closed.close(now)
        chapter.history.append(closed)
    else:
        logger.warning(
            "No active history entry for %s on step '%s'; previous visit left unclosed",
            chapter.chapter_id, completed_step,
        )

    for entry in chapter.history:
        if entry.completed_at is None:
            logger.warning(
                "Closing orphaned open entry '%s' on %s (current step was '%s')",
                entry.step_id, chapter.chapter_id, completed_step,
            )
            entry.close(now)
            orphans.append(entry)

    new_entry = WorkflowHistoryEntry(
        step_id=new_step,
        started_at=now,
        owner=owner,
        notes=notes or None,
    )
    chapter.history.append(new_entry)

    chapter.current_step = new_step
    chapter.current_step_started_at = now
    chapter.current_owner = owner

    return TransitionRecord(
        chapter_id=chapter.chapter_id,
        completed_step=completed_step,
        new_step=new_step,
        occurred_at=now,
        new_entry=new_entry,
        closed_entry=closed,
        orphaned_entries=orphans,
    )
