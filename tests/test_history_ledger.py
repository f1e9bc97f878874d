"""
History ledger tests: closing the active entry, opening the next one, and
the repair paths for seeded or inconsistent histories.
"""

from datetime import datetime, timedelta, timezone

from wellspring.workflow.chapter import create_initial_chapter_state
from wellspring.workflow.history import (
    TransitionRecord,
    WorkflowHistoryEntry,
    find_active_entry,
    record_transition,
)

NOW = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


def _make_chapter(chapter_type="ch3_electricity", state="oklahoma", now=NOW):
    return create_initial_chapter_state(state, chapter_type, now=now)


def _open_entries(chapter):
    return [h for h in chapter.history if h.completed_at is None]


# ── First transition ─────────────────────────────────────────────────────


def test_first_transition_from_seeded_chapter():
    chapter = _make_chapter()
    assert chapter.history == []

    record = record_transition(chapter, "outreach_identify_authors", "Ryan", now=NOW)

    assert isinstance(record, TransitionRecord)
    assert len(chapter.history) == 2
    first, second = chapter.history
    assert first.step_id == "not_started"
    assert first.completed_at == NOW
    assert first.duration_days == 0
    assert second.step_id == "outreach_identify_authors"
    assert second.completed_at is None
    assert second.owner == "Ryan"
    assert record.completed_step == "not_started"
    assert record.closed_entry is first


def test_transition_moves_cursor():
    chapter = _make_chapter()
    later = NOW + timedelta(days=2)
    record_transition(chapter, "schedule_meeting", "Jackson", notes="intro call", now=later)

    assert chapter.current_step == "schedule_meeting"
    assert chapter.current_step_started_at == later
    assert chapter.current_owner == "Jackson"
    assert chapter.history[-1].notes == "intro call"


def test_closing_sets_completed_and_duration_together():
    chapter = _make_chapter()
    record_transition(chapter, "outreach_identify_authors", "Ryan", now=NOW)
    record = record_transition(
        chapter, "schedule_meeting", "Ryan", now=NOW + timedelta(days=4, hours=3),
    )

    closed = record.closed_entry
    assert closed.step_id == "outreach_identify_authors"
    assert closed.completed_at == NOW + timedelta(days=4, hours=3)
    assert closed.duration_days == 5
    for entry in chapter.history:
        assert (entry.completed_at is None) == (entry.duration_days is None)


# ── Invariants across many transitions ───────────────────────────────────


def test_exactly_one_open_entry_after_each_transition():
    chapter = _make_chapter()
    steps = ["outreach_identify_authors", "schedule_meeting", "explain_project", "send_contract"]
    for offset, step in enumerate(steps, start=1):
        record_transition(chapter, step, "Ryan", now=NOW + timedelta(days=offset))
        open_entries = _open_entries(chapter)
        assert len(open_entries) == 1
        assert open_entries[0].step_id == chapter.current_step


def test_revisiting_a_step_appends_new_entry():
    chapter = _make_chapter()
    record_transition(chapter, "peer_review", "External Reviewer", now=NOW)
    record_transition(chapter, "maria_edit_pass", "Maria", now=NOW + timedelta(days=1))
    record_transition(chapter, "peer_review", "External Reviewer", now=NOW + timedelta(days=2))

    visits = [h for h in chapter.history if h.step_id == "peer_review"]
    assert len(visits) == 2
    assert visits[0].completed_at is not None
    assert visits[1].completed_at is None


def test_history_is_append_only():
    chapter = _make_chapter()
    record_transition(chapter, "outreach_identify_authors", "Ryan", now=NOW)
    snapshot = [(h.step_id, h.started_at) for h in chapter.history]
    record_transition(chapter, "schedule_meeting", "Ryan", now=NOW + timedelta(days=1))
    assert [(h.step_id, h.started_at) for h in chapter.history[:2]] == snapshot


def test_target_step_is_not_validated():
    chapter = _make_chapter()
    record = record_transition(chapter, "contract_signed", "Author", now=NOW)
    assert chapter.current_step == "contract_signed"
    assert record.new_step == "contract_signed"


# ── Repair paths ─────────────────────────────────────────────────────────


def test_missing_active_entry_closes_orphans():
    chapter = _make_chapter()
    chapter.current_step = "drew_review"
    chapter.history = [
        WorkflowHistoryEntry("not_started", NOW - timedelta(days=9), NOW - timedelta(days=9), "", None, 0),
        WorkflowHistoryEntry("maria_initial_review", NOW - timedelta(days=9)),
    ]

    record = record_transition(chapter, "author_approval_round_1", "Author", now=NOW)

    assert record.closed_entry is None
    assert [e.step_id for e in record.orphaned_entries] == ["maria_initial_review"]
    assert chapter.history[1].completed_at == NOW
    assert chapter.history[1].duration_days == 9
    assert len(_open_entries(chapter)) == 1


def test_missing_active_entry_without_open_rows():
    chapter = _make_chapter()
    chapter.current_step = "drew_review"
    chapter.history = [
        WorkflowHistoryEntry("not_started", NOW, NOW, "", None, 0),
    ]

    record = record_transition(chapter, "author_approval_round_1", "Author", now=NOW)

    assert record.closed_entry is None
    assert record.orphaned_entries == []
    assert len(chapter.history) == 2


# ── Lookup & serialisation ───────────────────────────────────────────────


def test_find_active_entry():
    history = [
        WorkflowHistoryEntry("drafting", NOW, NOW, "Drew", None, 0),
        WorkflowHistoryEntry("internal_review", NOW),
    ]
    assert find_active_entry(history, "internal_review") is history[1]
    assert find_active_entry(history, "drafting") is None


def test_entry_round_trips_through_dict():
    entry = WorkflowHistoryEntry("peer_review", NOW, NOW + timedelta(days=3), "Ann", "ok", 3)
    assert WorkflowHistoryEntry.from_dict(entry.to_dict()) == entry


def test_transition_record_to_dict():
    chapter = _make_chapter()
    record = record_transition(chapter, "outreach_identify_authors", "Ryan", now=NOW)
    data = record.to_dict()
    assert data["chapter_id"] == "oklahoma_ch3_electricity"
    assert data["completed_step"] == "not_started"
    assert data["new_entry"]["step_id"] == "outreach_identify_authors"
    assert data["closed_entry"]["duration_days"] == 0
    assert data["orphaned_entries"] == 0
    assert data["sync_events"] == []
