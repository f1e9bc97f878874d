"""
Workflow catalog endpoints (read-only).

    GET /api/v1/workflows/<chapter_type>                 — variant + ordered steps
    GET /api/v1/workflows/<variant>/steps/<step_id>      — one step's metadata
"""

import logging

from flask import Blueprint, jsonify

from wellspring.blueprints import register_error_handlers
from wellspring.core.exceptions import NotFoundError
from wellspring.workflow.catalog import WORKFLOW_VARIANTS, resolve_catalog, resolve_workflow_variant
from wellspring.workflow.progress import calculate_workflow_progress
from wellspring.workflow.resolver import get_step_index, require_step_meta

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflows", __name__, url_prefix="/api/v1")
register_error_handlers(workflow_bp)


@workflow_bp.route("/workflows/<chapter_type>", methods=["GET"])
def get_workflow(chapter_type):
    """Step catalog that applies to a chapter type."""
    variant = resolve_workflow_variant(chapter_type)
    steps = resolve_catalog(chapter_type)
    return jsonify({
        "chapter_type": chapter_type,
        "workflow_type": variant,
        "total_steps": len(steps),
        "steps": [s.to_dict() for s in steps],
    })


@workflow_bp.route("/workflows/<variant>/steps/<step_id>", methods=["GET"])
def get_workflow_step(variant, step_id):
    if variant not in WORKFLOW_VARIANTS:
        raise NotFoundError("WorkflowVariant", variant)
    meta = require_step_meta(variant, step_id)
    data = meta.to_dict()
    data["index"] = get_step_index(variant, step_id)
    data["progress"] = calculate_workflow_progress(variant, step_id)
    return jsonify(data)
