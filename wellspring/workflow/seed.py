"""
Arizona backfill — chapter states synced from the Monday.com
"Reports Progress" board (last synced 2026-02-05).

Applied once by ``ChapterStore.initialize_chapters``; each override replaces
the seeded aggregate's cursor and history with a completed history through
the board's current step.
"""

from __future__ import annotations

from wellspring.utils.helpers import parse_timestamp
from wellspring.workflow.history import WorkflowHistoryEntry

OVERRIDE_STATE = "arizona"
_RECENT = "2026-02-03"

# (step_id, started_at, owner); a None owner means "the author".
_STANDARD_TIMELINE = (
    ("not_started", "2025-09-01", ""),
    ("outreach_identify_authors", "2025-09-01", "Content Owner"),
    ("schedule_meeting", "2025-09-15", "Content Owner"),
    ("explain_project", "2025-09-20", "Content Owner"),
    ("send_contract", "2025-09-21", "Content Owner"),
    ("awaiting_contract_signature", "2025-09-22", None),
    ("awaiting_author_responses", "2025-10-01", None),
    ("ai_deep_research_draft", "2025-10-15", "Deep Research AI"),
    ("maria_initial_review", "2025-10-20", "Maria"),
    ("content_approver_review_1", "2025-10-25", "Content Approver"),
    ("drew_review", "2025-11-01", "Drew"),
    ("author_approval_round_1", "2025-11-10", None),
    ("content_approver_review_2", "2025-11-20", "Content Approver"),
    ("maria_edit_pass", "2025-12-01", "Maria"),
    ("drew_content_approver_review", "2025-12-15", "Content Approver"),
    ("peer_review", "2026-01-05", "External Reviewer"),
    ("author_approval_round_2", "2026-01-15", None),
    ("copywriter_pass", "2026-01-25", "Copywriter"),
    ("author_approval_round_3", "2026-02-01", None),
    ("doe_ready", "2026-02-05", ""),
    ("design_phase", "2026-02-10", "Designers"),
    ("done", "2026-02-15", ""),
)

_SUBSURFACE_HISTORY = (
    ("not_started", "2025-09-01", "2025-09-01", "", None, 0),
    ("state_geologist_prework", "2025-09-01", "2025-09-20", "State Geologist", None, 19),
    ("veit_summary_draft", "2025-09-20", "2025-10-05", "Veit", None, 15),
    ("ghost_writer_draft", "2025-10-05", "2025-10-25", "Ghost Writer", None, 20),
    ("trent_review_1", "2025-10-25", "2025-10-30", "Trent", None, 5),
    ("maria_review_1", "2025-10-30", "2025-11-05", "Maria", None, 6),
    ("peer_review_state_geologist", "2025-11-05", "2025-11-20", "State Geologist", None, 15),
    ("veit_review_2", "2025-11-20", "2025-11-25", "Veit", None, 5),
    ("trent_review_2", "2025-11-25", "2025-12-01", "Trent", None, 6),
    ("maria_review_2", "2025-12-01", "2025-12-15", "Maria", None, 14),
    ("copywriter_pass", "2026-01-25", None, "Copy Editor (Wendy)", "In Final Clean Up", None),
)


def standard_history_through(through_step: str, author_name: str | None = None) -> list[WorkflowHistoryEntry]:
    """Completed standard-workflow history up to and including ``through_step``.

    Every step before ``through_step`` is closed at the next step's start;
    ``through_step`` itself is left open.  Unknown steps yield [].
    """
    ids = [row[0] for row in _STANDARD_TIMELINE]
    if through_step not in ids:
        return []
    last = ids.index(through_step)

    history = []
    for idx in range(last + 1):
        step_id, started, owner = _STANDARD_TIMELINE[idx]
        is_last = idx == last
        completed = None if is_last else _STANDARD_TIMELINE[idx + 1][1]
        history.append(WorkflowHistoryEntry(
            step_id=step_id,
            started_at=parse_timestamp(started),
            completed_at=parse_timestamp(completed),
            owner=owner if owner is not None else (author_name or "Author"),
            notes=None,
            duration_days=None if is_last else 5,
        ))
    return history


def _override(step, started, owner, notes, history):
    return {
        "current_step": step,
        "current_step_started_at": parse_timestamp(started),
        "current_owner": owner,
        "notes": notes,
        "history": history,
    }


def arizona_chapter_overrides() -> dict[str, dict]:
    """Field overrides keyed by chapter type."""
    subsurface = [
        WorkflowHistoryEntry(step, parse_timestamp(start), parse_timestamp(end), owner, notes, days)
        for step, start, end, owner, notes, days in _SUBSURFACE_HISTORY
    ]
    return {
        "ch2_subsurface": _override(
            "copywriter_pass", "2026-01-25", "Copy Editor (Wendy)",
            "In Final Clean Up per Monday.com", subsurface,
        ),
        "ch3_electricity": _override(
            "drew_content_approver_review", _RECENT, "Ryan",
            "With Ryan per Monday.com. Preparing for Peer Review.",
            standard_history_through("drew_content_approver_review"),
        ),
        "ch4_direct_use": _override(
            "content_approver_review_1", _RECENT, "Trent", "With Trent per Monday.com",
            standard_history_through("content_approver_review_1"),
        ),
        "ch4_5_commercial_gshp": _override(
            "content_approver_review_1", _RECENT, "Trent", None,
            standard_history_through("content_approver_review_1"),
        ),
        "ch5_heat_ownership": _override(
            "peer_review", _RECENT, "External Reviewer", "Ready for Peer Review per Monday.com",
            standard_history_through("peer_review"),
        ),
        "ch6_policy": _override(
            "author_approval_round_1", "2026-02-06", "Author", "With Author for Review per Monday.com",
            standard_history_through("author_approval_round_1"),
        ),
        "ch7_stakeholders": _override(
            "peer_review", _RECENT, "External Reviewer", "Ready for Peer Review per Monday.com",
            standard_history_through("peer_review"),
        ),
        "ch8_environment": _override(
            "peer_review", _RECENT, "External Reviewer", "Ready for Peer Review per Monday.com",
            standard_history_through("peer_review"),
        ),
        "ch9_military": _override(
            "content_approver_review_1", _RECENT, "Trent", "With Trent per Monday.com",
            standard_history_through("content_approver_review_1"),
        ),
    }
