"""
Workflow Resolver — step lookups within a variant's catalog.

Lookups are pure and never raise: an unknown step id yields ``None`` (or -1
for indexes) and the caller decides what an absent step means.  The
``require_step_meta`` variant exists for the HTTP layer, where an unknown
step must become a 404.
"""

from __future__ import annotations

from wellspring.core.exceptions import NotFoundError
from wellspring.workflow.catalog import WorkflowStepMeta, get_catalog

CONTENT_APPROVER_ROLE = "Content Approver"

TIMELINE_COMPLETED = "completed"
TIMELINE_CURRENT = "current"
TIMELINE_FUTURE = "future"


def get_step_meta(variant: str, step_id: str) -> WorkflowStepMeta | None:
    """Return the metadata row for ``step_id`` or None when it is not in the catalog."""
    for step in get_catalog(variant):
        if step.id == step_id:
            return step
    return None


def require_step_meta(variant: str, step_id: str) -> WorkflowStepMeta:
    """Like ``get_step_meta`` but raises NotFoundError for unknown ids."""
    meta = get_step_meta(variant, step_id)
    if meta is None:
        raise NotFoundError(resource="WorkflowStep", resource_id=f"{variant}/{step_id}")
    return meta


def get_step_index(variant: str, step_id: str) -> int:
    """Position of ``step_id`` in the variant's catalog, or -1."""
    for idx, step in enumerate(get_catalog(variant)):
        if step.id == step_id:
            return idx
    return -1


def get_next_owner(variant: str, current_step_id: str, content_approver: str) -> str:
    """Default owner of the step after ``current_step_id``.

    The generic "Content Approver" role is replaced by the given person.
    Returns "" at the end of the chain or for unknown steps.
    """
    meta = get_step_meta(variant, current_step_id)
    if meta is None or not meta.next_step:
        return ""
    next_meta = get_step_meta(variant, meta.next_step)
    if next_meta is None:
        return ""
    if next_meta.default_owner == CONTENT_APPROVER_ROLE:
        return content_approver
    return next_meta.default_owner or ""


def classify_step(variant: str, step_id: str, current_step_id: str) -> str:
    """Timeline position of ``step_id`` relative to the chapter's current step."""
    current_idx = get_step_index(variant, current_step_id)
    idx = get_step_index(variant, step_id)
    if current_idx == -1 or idx > current_idx:
        return TIMELINE_FUTURE
    if idx == current_idx:
        return TIMELINE_CURRENT
    return TIMELINE_COMPLETED
