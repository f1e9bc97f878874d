"""
Wellspring chapter workflow service
Chapter blueprint — chapter state, transitions, enablement and board sync.

Endpoints summary:
    CONTEXT   /api/v1/contexts                                          GET
              /api/v1/contexts/<ctx>/chapters                           GET
              /api/v1/contexts/<ctx>/chapter-types                      POST  (enable)
              /api/v1/contexts/<ctx>/chapter-types/<type>               DELETE (disable)
              /api/v1/contexts/<ctx>/doe-deadline                       PUT
              /api/v1/contexts/<ctx>/sync                               POST  (board sync, all chapters)

    CHAPTER   /api/v1/contexts/<ctx>/chapters/<type>                    GET
              /api/v1/contexts/<ctx>/chapters/<type>/step               POST  (force-set)
              /api/v1/contexts/<ctx>/chapters/<type>/advance            POST
              /api/v1/contexts/<ctx>/chapters/<type>/notes              PUT
              /api/v1/contexts/<ctx>/chapters/<type>/blocker            PUT
              /api/v1/contexts/<ctx>/chapters/<type>/author             PUT
              /api/v1/contexts/<ctx>/chapters/<type>/deadlines          PUT
              /api/v1/contexts/<ctx>/chapters/<type>/mappings           PUT
              /api/v1/contexts/<ctx>/chapters/<type>/sync               POST

    QUERIES   /api/v1/chapters/by-owner?name=                           GET
              /api/v1/chapters/overdue                                  GET
              /api/v1/chapters/blocked                                  GET
              /api/v1/chapters/sync-log                                 GET

    TYPES     /api/v1/chapter-types                                     GET, POST
              /api/v1/chapter-types/<value>                             DELETE
"""

import logging

from flask import Blueprint, jsonify, request

from wellspring.blueprints import parse_bool, register_error_handlers, text_field
from wellspring.core.exceptions import ConflictError, NotFoundError, ValidationError
from wellspring.services.board_sync import sync_context_chapters
from wellspring.services.snapshot_repository import list_sync_logs
from wellspring.utils.errors import E, api_error
from wellspring.utils.helpers import parse_date
from wellspring.workflow.catalog import resolve_catalog
from wellspring.workflow.chapter_types import (
    BUILTIN_CHAPTER_VALUES,
    REPORT_STATES,
    ChapterTypeDefinition,
    get_report_state,
)
from wellspring.workflow.resolver import classify_step
from wellspring.workflow.store import get_chapter_store, serialize_chapter_list

logger = logging.getLogger(__name__)

chapter_bp = Blueprint("chapters", __name__, url_prefix="/api/v1")
register_error_handlers(chapter_bp)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _require_context(context):
    if get_report_state(context) is None:
        raise NotFoundError("ReportContext", context)


def _get_chapter_or_404(context, chapter_type):
    _require_context(context)
    store = get_chapter_store()
    chapter = store.get_chapter(context, chapter_type)
    if chapter is None:
        raise NotFoundError("Chapter", f"{context}_{chapter_type}")
    return store, chapter


def _timeline(chapter):
    return [
        {
            "step_id": step.id,
            "label": step.short_label,
            "position": classify_step(chapter.workflow_type, step.id, chapter.current_step),
        }
        for step in resolve_catalog(chapter.chapter_type)
    ]


def _chapter_detail(store, chapter):
    data = store.summarize_chapter(chapter, include_history=True)
    data["timeline"] = _timeline(chapter)
    return data


# ═══════════════════════════════════════════════════════════════════════════
#  REPORT CONTEXTS
# ═══════════════════════════════════════════════════════════════════════════

@chapter_bp.route("/contexts", methods=["GET"])
def list_contexts():
    store = get_chapter_store()
    items = []
    for state in REPORT_STATES:
        items.append({
            **state,
            "doe_deadline": store.doe_deadlines.get(state["value"], state["doe_deadline"]),
            "chapter_types": store.get_state_chapter_types(state["value"]),
        })
    return jsonify({"items": items, "total": len(items)})


@chapter_bp.route("/contexts/<context>/chapters", methods=["GET"])
def list_context_chapters(context):
    _require_context(context)
    store = get_chapter_store()
    chapters = store.get_chapters_for_context(context)
    return jsonify({"items": serialize_chapter_list(store, chapters), "total": len(chapters)})


@chapter_bp.route("/contexts/<context>/chapter-types", methods=["POST"])
def enable_chapter_type(context):
    _require_context(context)
    data = request.get_json(silent=True) or {}
    chapter_type = text_field(data, "chapter_type")
    if not chapter_type:
        return api_error(E.VALIDATION_REQUIRED, "chapter_type is required")

    store = get_chapter_store()
    if not any(c.value == chapter_type for c in store.all_chapter_types()):
        raise NotFoundError("ChapterType", chapter_type)
    if chapter_type in store.get_state_chapter_types(context):
        raise ConflictError("ChapterType", "chapter_type", chapter_type)

    chapter = store.enable_chapter_type(context, chapter_type)
    store.save()
    return jsonify(store.summarize_chapter(chapter)), 201


@chapter_bp.route("/contexts/<context>/chapter-types/<chapter_type>", methods=["DELETE"])
def disable_chapter_type(context, chapter_type):
    _require_context(context)
    store = get_chapter_store()
    if not store.disable_chapter_type(context, chapter_type):
        raise NotFoundError("Chapter", f"{context}_{chapter_type}")
    store.save()
    return jsonify({"deleted": True, "chapter_types": store.get_state_chapter_types(context)})


@chapter_bp.route("/contexts/<context>/doe-deadline", methods=["PUT"])
def set_doe_deadline(context):
    _require_context(context)
    data = request.get_json(silent=True) or {}
    deadline = parse_date(data.get("deadline"))
    if deadline is None:
        return api_error(E.VALIDATION_INVALID, "deadline must be a date (YYYY-MM-DD)")

    store = get_chapter_store()
    store.set_doe_deadline(context, deadline.isoformat())
    store.save()
    return jsonify({"report_state": context, "doe_deadline": deadline.isoformat()})


@chapter_bp.route("/contexts/<context>/sync", methods=["POST"])
def sync_context(context):
    """Post the current status of every mapped chapter to the board."""
    _require_context(context)
    store = get_chapter_store()
    board = getattr(store.dispatcher, "board", None)
    if board is None:
        return api_error(E.CONFLICT_STATE, "Board gateway is not configured")

    item_ids = {
        chapter_type: store.get_monday_item_id(context, chapter_type)
        for chapter_type in store.get_state_chapter_types(context)
        if store.get_monday_item_id(context, chapter_type)
    }
    result = sync_context_chapters(store.get_chapters_for_context(context), item_ids, board)
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════
#  CHAPTER DETAIL + TRANSITIONS
# ═══════════════════════════════════════════════════════════════════════════

@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>", methods=["GET"])
def get_chapter(context, chapter_type):
    store, chapter = _get_chapter_or_404(context, chapter_type)
    return jsonify(_chapter_detail(store, chapter))


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/step", methods=["POST"])
def set_chapter_step(context, chapter_type):
    """Force-set the current step.  The target is not checked against the catalog."""
    store, _chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}

    new_step = text_field(data, "new_step")
    owner = text_field(data, "owner")
    missing = [f for f, v in (("new_step", new_step), ("owner", owner)) if not v]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"{', '.join(missing)} required",
            details={f: "missing" for f in missing},
        )

    record = store.update_chapter_step(
        context,
        chapter_type,
        new_step,
        owner,
        notes=text_field(data, "notes") or None,
        sync_externally=parse_bool(data.get("sync_externally"), default=True),
    )
    store.save()
    return jsonify({
        "transition": record.to_dict(),
        "chapter": _chapter_detail(store, store.get_chapter(context, chapter_type)),
    })


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/advance", methods=["POST"])
def advance_chapter(context, chapter_type):
    store, chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}

    record = store.advance_to_next(
        context,
        chapter_type,
        owner=text_field(data, "owner") or None,
        notes=text_field(data, "notes") or None,
        sync_externally=parse_bool(data.get("sync_externally"), default=True),
    )
    if record is None:
        return api_error(
            E.CONFLICT_STATE,
            f"Chapter cannot advance from step '{chapter.current_step}'",
        )
    store.save()
    return jsonify({
        "transition": record.to_dict(),
        "chapter": _chapter_detail(store, chapter),
    })


# ── Field updates ────────────────────────────────────────────────────────────

@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/notes", methods=["PUT"])
def update_notes(context, chapter_type):
    store, chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}
    store.update_chapter_notes(context, chapter_type, text_field(data, "notes"))
    store.save()
    return jsonify(store.summarize_chapter(chapter))


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/blocker", methods=["PUT"])
def update_blocker(context, chapter_type):
    store, chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}
    store.update_chapter_blocker(context, chapter_type, text_field(data, "blocker"))
    store.save()
    return jsonify(store.summarize_chapter(chapter))


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/author", methods=["PUT"])
def update_author(context, chapter_type):
    store, chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}

    email = text_field(data, "author_email")
    if email and "@" not in email:
        return api_error(E.VALIDATION_INVALID, "author_email is not a valid address")

    signed_date = data.get("contract_signed_date")
    if signed_date and parse_date(signed_date) is None:
        return api_error(E.VALIDATION_INVALID, "contract_signed_date must be a date (YYYY-MM-DD)")

    grant_amount = data.get("grant_amount")
    if grant_amount is not None:
        try:
            grant_amount = float(grant_amount)
        except (TypeError, ValueError):
            return api_error(E.VALIDATION_INVALID, "grant_amount must be a number")
        if grant_amount < 0:
            raise ValidationError("grant_amount must not be negative", details={"grant_amount": grant_amount})

    store.set_author_info(
        context,
        chapter_type,
        text_field(data, "author_name"),
        email,
        contract_signed=parse_bool(data.get("contract_signed"), default=False),
        contract_signed_date=signed_date,
        grant_amount=grant_amount,
    )
    store.save()
    return jsonify(store.summarize_chapter(chapter))


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/deadlines", methods=["PUT"])
def update_deadline(context, chapter_type):
    """Set (or clear, with an empty deadline) the contract deadline for one step."""
    store, chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}

    step_id = text_field(data, "step_id")
    if not step_id:
        return api_error(E.VALIDATION_REQUIRED, "step_id is required")

    deadline = data.get("deadline")
    if deadline:
        parsed = parse_date(deadline)
        if parsed is None:
            return api_error(E.VALIDATION_INVALID, "deadline must be a date (YYYY-MM-DD)")
        deadline = parsed.isoformat()

    store.set_contract_deadline(context, chapter_type, step_id, deadline)
    store.save()
    return jsonify({"contract_deadlines": chapter.contract_deadlines})


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/mappings", methods=["PUT"])
def update_mappings(context, chapter_type):
    """Set the Monday.com item ids for the progress and payments boards."""
    store, _chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}

    if "monday_item_id" not in data and "payment_contributor_id" not in data:
        return api_error(E.VALIDATION_REQUIRED, "monday_item_id or payment_contributor_id is required")

    if data.get("monday_item_id"):
        store.set_monday_item_id(context, chapter_type, data["monday_item_id"])
    if data.get("payment_contributor_id"):
        store.set_payment_contributor_id(context, chapter_type, data["payment_contributor_id"])
    store.save()
    return jsonify({
        "monday_item_id": store.get_monday_item_id(context, chapter_type),
        "payment_contributor_id": store.get_payment_contributor_id(context, chapter_type),
    })


@chapter_bp.route("/contexts/<context>/chapters/<chapter_type>/sync", methods=["POST"])
def sync_chapter(context, chapter_type):
    """Manual sync: status comment to the progress board, optionally a payments milestone."""
    store, _chapter = _get_chapter_or_404(context, chapter_type)
    data = request.get_json(silent=True) or {}

    result = {"synced": store.sync_chapter_to_board(context, chapter_type, text_field(data, "comment") or None)}
    payments_step = text_field(data, "payments_step")
    if payments_step:
        result["payments"] = store.sync_chapter_to_payments_board(
            context, chapter_type, payments_step,
        ).to_dict()
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════
#  CROSS-CONTEXT QUERIES
# ═══════════════════════════════════════════════════════════════════════════

@chapter_bp.route("/chapters/by-owner", methods=["GET"])
def chapters_by_owner():
    name = (request.args.get("name") or "").strip()
    if not name:
        return api_error(E.VALIDATION_REQUIRED, "name is required")
    store = get_chapter_store()
    chapters = store.get_chapters_by_owner(name)
    return jsonify({"items": serialize_chapter_list(store, chapters), "total": len(chapters)})


@chapter_bp.route("/chapters/overdue", methods=["GET"])
def overdue_chapters():
    store = get_chapter_store()
    chapters = store.get_overdue_chapters()
    return jsonify({"items": serialize_chapter_list(store, chapters), "total": len(chapters)})


@chapter_bp.route("/chapters/blocked", methods=["GET"])
def blocked_chapters():
    store = get_chapter_store()
    chapters = store.get_chapters_with_blockers()
    return jsonify({"items": serialize_chapter_list(store, chapters), "total": len(chapters)})


@chapter_bp.route("/chapters/sync-log", methods=["GET"])
def sync_log():
    limit = min(request.args.get("limit", 50, type=int), 500)
    rows = list_sync_logs(request.args.get("chapter_id"), limit=limit)
    return jsonify({"items": [r.to_dict() for r in rows], "total": len(rows)})


# ═══════════════════════════════════════════════════════════════════════════
#  CHAPTER TYPES
# ═══════════════════════════════════════════════════════════════════════════

@chapter_bp.route("/chapter-types", methods=["GET"])
def list_chapter_types():
    store = get_chapter_store()
    items = [c.to_dict() for c in store.all_chapter_types()]
    return jsonify({"items": items, "total": len(items)})


@chapter_bp.route("/chapter-types", methods=["POST"])
def create_chapter_type():
    data = request.get_json(silent=True) or {}
    value = text_field(data, "value")
    label = text_field(data, "label")
    missing = [f for f, v in (("value", value), ("label", label)) if not v]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"{', '.join(missing)} required",
            details={f: "missing" for f in missing},
        )

    store = get_chapter_store()
    definition = ChapterTypeDefinition(
        value=value,
        label=label,
        chapter_num=str(data.get("chapter_num") or ""),
        is_custom=True,
    )
    if not store.add_custom_chapter_type(definition):
        raise ConflictError("ChapterType", "value", value)
    store.save()
    return jsonify(definition.to_dict()), 201


@chapter_bp.route("/chapter-types/<value>", methods=["DELETE"])
def delete_chapter_type(value):
    if value in BUILTIN_CHAPTER_VALUES:
        return api_error(E.CONFLICT_STATE, f"Built-in chapter type '{value}' cannot be removed")
    store = get_chapter_store()
    if not store.remove_custom_chapter_type(value):
        raise NotFoundError("ChapterType", value)
    store.save()
    return jsonify({"deleted": True})
