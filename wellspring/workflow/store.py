"""
Chapter State Store — owns every chapter aggregate and its external-id maps.

One instance is built at startup by ``init_chapter_store(app)`` and kept in
``app.extensions["chapter_store"]``; blueprints fetch it with
``get_chapter_store()``.  State lives in memory and is written to the
snapshot repository with an explicit ``save()``.

Business conditions never raise here: a missing chapter is logged and the
operation returns ``None`` / ``False``.

Usage:
    store = get_chapter_store()
    record = store.update_chapter_step("arizona", "ch6_policy", "peer_review", "Alice")
    store.save()
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from flask import current_app

from wellspring.services.board_sync import (
    PaymentsSyncResult,
    build_status_comment,
    sync_chapter_to_payments,
)
from wellspring.services.payment_policy import AuthorInfo
from wellspring.utils.helpers import parse_timestamp
from wellspring.workflow.catalog import STEP_DONE, STEP_NOT_STARTED
from wellspring.workflow.chapter import (
    DEFAULT_GRANT_AMOUNT,
    ChapterWorkflowState,
    chapter_key,
    create_initial_chapter_state,
)
from wellspring.workflow.chapter_types import (
    BUILTIN_CHAPTER_VALUES,
    DEFAULT_DOE_DEADLINES,
    DEFAULT_STATE_CHAPTERS,
    REPORT_STATE_VALUES,
    ChapterTypeDefinition,
    get_all_chapter_types,
    get_chapter_lead,
    get_chapter_type_info,
    get_report_state_label,
    sort_chapter_types,
)
from wellspring.workflow.history import TransitionRecord, record_transition
from wellspring.workflow.progress import (
    calculate_days_on_step,
    calculate_workflow_progress,
    days_until,
    is_step_overdue,
)
from wellspring.workflow.resolver import get_next_owner, get_step_meta
from wellspring.workflow.seed import OVERRIDE_STATE, arizona_chapter_overrides

logger = logging.getLogger(__name__)

EXTENSION_KEY = "chapter_store"
SNAPSHOT_VERSION = 1

_INACTIVE_STEPS = (STEP_DONE, STEP_NOT_STARTED)
_ROLE_CONTENT_OWNER = "Content Owner"
_ROLE_AUTHOR = "Author"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChapterStore:
    """In-memory chapter aggregates with snapshot persistence.

    Args:
        repository: object with ``load() -> dict | None`` and ``save(dict)``.
        dispatcher: ``SyncDispatcher`` used after each transition (optional).
        clock:      zero-arg callable returning an aware datetime.
        default_grant_amount: grant used when a chapter has none set.
    """

    def __init__(self, repository=None, dispatcher=None, clock=None,
                 default_grant_amount=DEFAULT_GRANT_AMOUNT):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock or _utcnow
        self.default_grant_amount = default_grant_amount
        self._lock = threading.RLock()
        self.loaded = False
        self.reset()

    def reset(self) -> None:
        """Drop all state back to the built-in defaults (no chapters)."""
        with self._lock:
            self.chapters: dict[str, ChapterWorkflowState] = {}
            self.state_chapters: dict[str, list[str]] = {
                state: list(types) for state, types in DEFAULT_STATE_CHAPTERS.items()
            }
            self.custom_chapter_types: list[ChapterTypeDefinition] = []
            self.doe_deadlines: dict[str, str] = dict(DEFAULT_DOE_DEADLINES)
            self.monday_item_ids: dict[str, str] = {}
            self.payment_contributor_ids: dict[str, str] = {}

    def now(self) -> datetime:
        return self.clock()

    def effective_grant_amount(self, chapter: ChapterWorkflowState) -> float:
        """The chapter's grant, or the store default when none is set."""
        if chapter.grant_amount is None:
            return self.default_grant_amount
        return chapter.grant_amount

    # ── Lookup ───────────────────────────────────────────────────────────

    def get_chapter(self, context: str, chapter_type: str) -> ChapterWorkflowState | None:
        return self.chapters.get(chapter_key(context, chapter_type))

    def _require(self, context: str, chapter_type: str, action: str) -> ChapterWorkflowState | None:
        chapter = self.get_chapter(context, chapter_type)
        if chapter is None:
            logger.warning("Chapter not found for %s: %s", action, chapter_key(context, chapter_type))
        return chapter

    def create_chapter(self, context: str, chapter_type: str) -> ChapterWorkflowState:
        """Seed the aggregate for (context, chapter_type) unless it exists."""
        with self._lock:
            key = chapter_key(context, chapter_type)
            chapter = self.chapters.get(key)
            if chapter is None:
                chapter = create_initial_chapter_state(context, chapter_type, now=self.now())
                self.chapters[key] = chapter
                logger.info("Chapter created: %s", key)
            return chapter

    # ── Transitions ──────────────────────────────────────────────────────

    def update_chapter_step(
        self,
        context: str,
        chapter_type: str,
        new_step: str,
        owner: str,
        notes: str | None = None,
        sync_externally: bool = True,
    ) -> TransitionRecord | None:
        """Move a chapter to any step (no catalog check) and run the sync side effects."""
        with self._lock:
            chapter = self._require(context, chapter_type, "step update")
            if chapter is None:
                return None
            record = self._record(chapter, new_step, owner, notes)

        record.sync_events = self._dispatch(chapter, record, sync_externally)
        return record

    force_set_step = update_chapter_step

    def advance_to_next(
        self,
        context: str,
        chapter_type: str,
        owner: str | None = None,
        notes: str | None = None,
        sync_externally: bool = True,
    ) -> TransitionRecord | None:
        """Follow the catalog's ``next_step`` pointer.

        Returns None at ``done`` or when the current step is not in the
        chapter's catalog.
        """
        with self._lock:
            chapter = self._require(context, chapter_type, "advance")
            if chapter is None:
                return None

            meta = get_step_meta(chapter.workflow_type, chapter.current_step)
            if meta is None or not meta.next_step:
                logger.info("Chapter %s cannot advance from '%s'", chapter.chapter_id, chapter.current_step)
                return None

            if not owner:
                owner = self._default_owner(chapter)
            record = self._record(chapter, meta.next_step, owner, notes)

        record.sync_events = self._dispatch(chapter, record, sync_externally)
        return record

    def _record(self, chapter, new_step, owner, notes) -> TransitionRecord:
        record = record_transition(chapter, new_step, owner, notes, now=self.now())
        logger.info(
            "Chapter %s: %s -> %s (owner=%s)",
            chapter.chapter_id, record.completed_step, new_step, owner,
        )
        return record

    def _default_owner(self, chapter: ChapterWorkflowState) -> str:
        lead = get_chapter_lead(chapter.report_state, chapter.chapter_type)
        owner = get_next_owner(chapter.workflow_type, chapter.current_step, content_approver=lead)
        if owner == _ROLE_CONTENT_OWNER:
            return lead
        if owner == _ROLE_AUTHOR and chapter.author_name:
            return chapter.author_name
        return owner

    def _dispatch(self, chapter, record, sync_externally):
        if self.dispatcher is None:
            return []
        info = get_chapter_type_info(chapter.chapter_type, self.custom_chapter_types)
        try:
            return self.dispatcher.dispatch_transition(
                chapter,
                record,
                board_item_id=self.monday_item_ids.get(chapter.chapter_id),
                sync_externally=sync_externally,
                chapter_title=info.label if info else chapter.chapter_type,
                chapter_num=info.chapter_num if info else None,
                state_label=get_report_state_label(chapter.report_state),
                grant_amount=self.effective_grant_amount(chapter),
            )
        except Exception:
            logger.exception("Sync dispatch failed for %s", chapter.chapter_id)
            return []

    # ── Field setters ────────────────────────────────────────────────────

    def update_chapter_notes(self, context, chapter_type, notes) -> bool:
        chapter = self._require(context, chapter_type, "notes update")
        if chapter is None:
            return False
        chapter.notes = notes or None
        return True

    def update_chapter_blocker(self, context, chapter_type, blocker) -> bool:
        chapter = self._require(context, chapter_type, "blocker update")
        if chapter is None:
            return False
        chapter.blockers = blocker or None
        return True

    def set_author_info(
        self,
        context,
        chapter_type,
        author_name,
        author_email,
        contract_signed=False,
        contract_signed_date=None,
        grant_amount=None,
    ) -> bool:
        chapter = self._require(context, chapter_type, "author update")
        if chapter is None:
            return False
        chapter.author_name = author_name or None
        chapter.author_email = author_email or None
        chapter.contract_signed = bool(contract_signed)
        chapter.contract_signed_date = contract_signed_date or None
        if grant_amount is not None:
            chapter.grant_amount = grant_amount
        return True

    def set_contract_deadline(self, context, chapter_type, step_id, deadline) -> bool:
        chapter = self._require(context, chapter_type, "deadline update")
        if chapter is None:
            return False
        if deadline:
            chapter.contract_deadlines[step_id] = deadline
        else:
            chapter.contract_deadlines.pop(step_id, None)
        return True

    def set_doe_deadline(self, context: str, deadline: str) -> None:
        self.doe_deadlines[context] = deadline

    def set_monday_item_id(self, context, chapter_type, item_id) -> None:
        self.monday_item_ids[chapter_key(context, chapter_type)] = str(item_id)

    def get_monday_item_id(self, context, chapter_type) -> str | None:
        return self.monday_item_ids.get(chapter_key(context, chapter_type))

    def set_payment_contributor_id(self, context, chapter_type, item_id) -> None:
        self.payment_contributor_ids[chapter_key(context, chapter_type)] = str(item_id)

    def get_payment_contributor_id(self, context, chapter_type) -> str | None:
        return self.payment_contributor_ids.get(chapter_key(context, chapter_type))

    # ── Enablement & chapter types ───────────────────────────────────────

    def get_state_chapter_types(self, context: str) -> list[str]:
        return list(self.state_chapters.get(context, DEFAULT_STATE_CHAPTERS.get(context, [])))

    def enable_chapter_type(self, context: str, chapter_type: str) -> ChapterWorkflowState | None:
        """Add a chapter type to a context (master order kept) and seed its aggregate."""
        with self._lock:
            current = self.get_state_chapter_types(context)
            if chapter_type in current:
                return self.get_chapter(context, chapter_type)
            self.state_chapters[context] = sort_chapter_types(
                current + [chapter_type], self.custom_chapter_types,
            )
            return self.create_chapter(context, chapter_type)

    add_chapter_to_state = enable_chapter_type

    def disable_chapter_type(self, context: str, chapter_type: str) -> bool:
        """Remove a chapter type from a context and discard its aggregate."""
        with self._lock:
            current = self.get_state_chapter_types(context)
            if chapter_type not in current:
                return False
            self.state_chapters[context] = [c for c in current if c != chapter_type]
            self.chapters.pop(chapter_key(context, chapter_type), None)
            logger.info("Chapter type %s disabled for %s", chapter_type, context)
            return True

    remove_chapter_from_state = disable_chapter_type

    def all_chapter_types(self) -> list[ChapterTypeDefinition]:
        return get_all_chapter_types(self.custom_chapter_types)

    def add_custom_chapter_type(self, definition: ChapterTypeDefinition) -> bool:
        """Register a custom chapter type; duplicate slugs are ignored."""
        with self._lock:
            if any(c.value == definition.value for c in self.all_chapter_types()):
                logger.info("Chapter type '%s' already exists; ignored", definition.value)
                return False
            self.custom_chapter_types.append(ChapterTypeDefinition(
                value=definition.value,
                label=definition.label,
                chapter_num=definition.chapter_num,
                is_custom=True,
            ))
            return True

    def remove_custom_chapter_type(self, value: str) -> bool:
        """Delete a custom chapter type from every context.  Built-ins are kept."""
        if value in BUILTIN_CHAPTER_VALUES:
            logger.warning("Refusing to remove built-in chapter type '%s'", value)
            return False
        with self._lock:
            before = len(self.custom_chapter_types)
            self.custom_chapter_types = [c for c in self.custom_chapter_types if c.value != value]
            for context in set(REPORT_STATE_VALUES) | set(self.state_chapters):
                current = self.get_state_chapter_types(context)
                if value in current:
                    self.state_chapters[context] = [c for c in current if c != value]
                self.chapters.pop(chapter_key(context, value), None)
            return len(self.custom_chapter_types) < before

    # ── Queries ──────────────────────────────────────────────────────────

    def _all_chapters(self) -> list[ChapterWorkflowState]:
        with self._lock:
            return list(self.chapters.values())

    def get_chapters_for_context(self, context: str) -> list[ChapterWorkflowState]:
        with self._lock:
            enabled = self.get_state_chapter_types(context)
            return [
                self.chapters[chapter_key(context, t)]
                for t in enabled
                if chapter_key(context, t) in self.chapters
            ]

    get_chapters_for_state = get_chapters_for_context

    def get_chapters_by_owner(self, owner_name: str) -> list[ChapterWorkflowState]:
        """Active chapters whose owner contains ``owner_name`` (case-insensitive)."""
        needle = (owner_name or "").lower()
        return [
            c for c in self._all_chapters()
            if needle in (c.current_owner or "").lower() and c.current_step not in _INACTIVE_STEPS
        ]

    def get_overdue_chapters(self) -> list[ChapterWorkflowState]:
        now = self.now()
        overdue = []
        for chapter in self._all_chapters():
            if chapter.current_step in _INACTIVE_STEPS:
                continue
            meta = get_step_meta(chapter.workflow_type, chapter.current_step)
            if meta is None:
                continue
            if is_step_overdue(chapter.current_step_started_at, meta.typical_duration_days, now=now):
                overdue.append(chapter)
        return overdue

    def get_chapters_with_blockers(self) -> list[ChapterWorkflowState]:
        return [c for c in self._all_chapters() if c.blockers]

    # ── Read model ───────────────────────────────────────────────────────

    def summarize_chapter(self, chapter: ChapterWorkflowState, include_history: bool = False) -> dict:
        """Chapter fields plus the derived progress/overdue view."""
        now = self.now()
        meta = get_step_meta(chapter.workflow_type, chapter.current_step)
        next_meta = get_step_meta(chapter.workflow_type, meta.next_step) if meta and meta.next_step else None
        info = get_chapter_type_info(chapter.chapter_type, self.custom_chapter_types)

        data = chapter.to_dict()
        if not include_history:
            data.pop("history")
        data.update({
            "chapter_label": info.label if info else chapter.chapter_type,
            "chapter_num": info.chapter_num if info else None,
            "current_step_label": meta.label if meta else chapter.current_step,
            "next_step": meta.next_step if meta else None,
            "next_step_label": next_meta.label if next_meta else None,
            "progress": calculate_workflow_progress(chapter.workflow_type, chapter.current_step),
            "days_on_step": calculate_days_on_step(chapter.current_step_started_at, now=now),
            "typical_duration_days": meta.typical_duration_days if meta else None,
            "is_overdue": bool(
                meta
                and chapter.current_step not in _INACTIVE_STEPS
                and is_step_overdue(chapter.current_step_started_at, meta.typical_duration_days, now=now)
            ),
            "grant_amount": self.effective_grant_amount(chapter),
            "monday_item_id": self.monday_item_ids.get(chapter.chapter_id),
            "payment_contributor_id": self.payment_contributor_ids.get(chapter.chapter_id),
            "doe_deadline": self.doe_deadlines.get(chapter.report_state),
            "days_until_doe": days_until(self.doe_deadlines.get(chapter.report_state), now=now),
        })
        return data

    # ── Manual board sync ────────────────────────────────────────────────

    def _board(self):
        return getattr(self.dispatcher, "board", None)

    def sync_chapter_to_board(self, context, chapter_type, comment=None) -> bool:
        """Post the chapter's current status (or ``comment``) to its board item."""
        chapter = self._require(context, chapter_type, "board sync")
        if chapter is None:
            return False
        item_id = self.get_monday_item_id(context, chapter_type)
        if not item_id:
            logger.warning("No Monday.com item id for %s", chapter.chapter_id)
            return False
        board = self._board()
        if board is None:
            logger.warning("Board gateway not configured; sync of %s skipped", chapter.chapter_id)
            return False
        try:
            ok = board.add_comment(item_id, comment or build_status_comment(chapter))
        except Exception:
            logger.exception("Board sync failed for %s", chapter.chapter_id)
            return False
        if ok:
            logger.info("Synced %s to Monday.com item %s", chapter.chapter_id, item_id)
        return ok

    def sync_chapter_to_payments_board(self, context, chapter_type, workflow_step) -> PaymentsSyncResult:
        """Record a payment milestone for ``workflow_step`` on the contributor's item."""
        chapter = self._require(context, chapter_type, "payments sync")
        if chapter is None:
            return PaymentsSyncResult()
        contributor_id = self.get_payment_contributor_id(context, chapter_type)
        if not contributor_id:
            logger.warning("No Payments board contributor id for %s", chapter.chapter_id)
            return PaymentsSyncResult()
        board = self._board()
        if board is None:
            logger.warning("Board gateway not configured; payments sync of %s skipped", chapter.chapter_id)
            return PaymentsSyncResult()

        info = get_chapter_type_info(chapter_type, self.custom_chapter_types)
        author = AuthorInfo(
            name=chapter.author_name or "Unknown Author",
            email=chapter.author_email or "",
            chapter=chapter_type,
            chapter_title=info.label if info else chapter_type,
            state=get_report_state_label(context),
        )
        kwargs = {}
        accounting_email = getattr(self.dispatcher, "accounting_email", None)
        if accounting_email:
            kwargs["accounting_email"] = accounting_email
        try:
            result = sync_chapter_to_payments(
                board,
                contributor_id,
                workflow_step,
                author,
                grant_amount=self.effective_grant_amount(chapter),
                chapter_num=info.chapter_num if info else None,
                **kwargs,
            )
        except Exception:
            logger.exception("Payments sync failed for %s", chapter.chapter_id)
            return PaymentsSyncResult()
        if result.triggered:
            logger.info("Payment milestone %s triggered for %s", result.milestone, chapter.chapter_id)
        return result

    # ── Seeding ──────────────────────────────────────────────────────────

    def initialize_chapters(self) -> None:
        """Rebuild every enabled chapter from seed data, then apply the board backfill."""
        with self._lock:
            overrides = arizona_chapter_overrides()
            now = self.now()
            chapters = {}
            for context in REPORT_STATE_VALUES:
                enabled = self.get_state_chapter_types(context)
                for definition in self.all_chapter_types():
                    if definition.value not in enabled:
                        continue
                    chapter = create_initial_chapter_state(context, definition.value, now=now)
                    if context == OVERRIDE_STATE and definition.value in overrides:
                        _apply_override(chapter, overrides[definition.value])
                    chapters[chapter.chapter_id] = chapter
            self.chapters = chapters
            logger.info("Initialized %d chapters", len(chapters))

    def backfill_missing_chapters(self) -> int:
        """Seed aggregates for enabled chapter types that have none."""
        created = 0
        for context, enabled in list(self.state_chapters.items()):
            for chapter_type in enabled:
                if chapter_key(context, chapter_type) not in self.chapters:
                    self.create_chapter(context, chapter_type)
                    created += 1
        if created:
            logger.info("Backfilled %d missing chapters", created)
        return created

    # ── Persistence ──────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "chapters": {key: c.to_dict() for key, c in self.chapters.items()},
                "state_chapters": {k: list(v) for k, v in self.state_chapters.items()},
                "custom_chapter_types": [c.to_dict() for c in self.custom_chapter_types],
                "doe_deadlines": dict(self.doe_deadlines),
                "monday_item_ids": dict(self.monday_item_ids),
                "payment_contributor_ids": dict(self.payment_contributor_ids),
            }

    def from_dict(self, data: dict) -> None:
        """Replace in-memory state with a snapshot payload."""
        with self._lock:
            self.reset()
            self.chapters = {
                key: ChapterWorkflowState.from_dict(c)
                for key, c in (data.get("chapters") or {}).items()
            }
            for context, types in (data.get("state_chapters") or {}).items():
                self.state_chapters[context] = list(types)
            self.custom_chapter_types = [
                ChapterTypeDefinition.from_dict(c) for c in data.get("custom_chapter_types") or []
            ]
            self.doe_deadlines.update(data.get("doe_deadlines") or {})
            self.monday_item_ids = dict(data.get("monday_item_ids") or {})
            self.payment_contributor_ids = dict(data.get("payment_contributor_ids") or {})

    def load(self) -> bool:
        """Rehydrate from the repository.

        Returns True when a snapshot existed.  With no snapshot the chapters
        are seeded with ``initialize_chapters()``.
        """
        payload = self.repository.load() if self.repository is not None else None
        if payload is None:
            self.reset()
            self.initialize_chapters()
            self.loaded = True
            return False
        self.from_dict(payload)
        self.backfill_missing_chapters()
        self.loaded = True
        return True

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def save(self) -> None:
        if self.repository is None:
            return
        with self._lock:
            payload = self.to_dict()
        self.repository.save(payload)


def _apply_override(chapter: ChapterWorkflowState, override: dict) -> None:
    chapter.current_step = override["current_step"]
    chapter.current_step_started_at = parse_timestamp(override["current_step_started_at"])
    chapter.current_owner = override["current_owner"]
    chapter.notes = override.get("notes")
    if override.get("history"):
        chapter.history = list(override["history"])


def serialize_chapter_list(store: ChapterStore, chapters) -> list[dict]:
    return [store.summarize_chapter(c) for c in chapters]


# ── App wiring ───────────────────────────────────────────────────────────


def init_chapter_store(app) -> ChapterStore:
    """Build the store, its gateways and dispatcher from app config."""
    from wellspring.integrations.gmail_gateway import GmailGateway
    from wellspring.integrations.monday_gateway import MondayGateway
    from wellspring.services.snapshot_repository import SnapshotRepository, record_sync_attempt
    from wellspring.services.sync_dispatcher import SyncDispatcher

    timeout = app.config.get("SYNC_TIMEOUT_SECONDS", 15)
    board = MondayGateway(
        api_url=app.config["MONDAY_API_URL"],
        token=app.config.get("MONDAY_API_TOKEN"),
        timeout=timeout,
    )
    email = GmailGateway(
        api_url=app.config["GMAIL_API_URL"],
        access_token=app.config.get("GMAIL_ACCESS_TOKEN"),
        timeout=timeout,
    )
    dispatcher = SyncDispatcher(
        board=board,
        email=email,
        recorder=record_sync_attempt,
        accounting_email=app.config["ACCOUNTING_EMAIL"],
    )
    store = ChapterStore(
        repository=SnapshotRepository(app.config["CHAPTER_STORE_NAME"]),
        dispatcher=dispatcher,
        default_grant_amount=app.config.get("DEFAULT_GRANT_AMOUNT", DEFAULT_GRANT_AMOUNT),
    )
    app.extensions[EXTENSION_KEY] = store
    return store


def get_chapter_store() -> ChapterStore:
    """The store of the current app, loaded from its snapshot on first use."""
    store = current_app.extensions[EXTENSION_KEY]
    store.ensure_loaded()
    return store
