"""
Step catalog and resolver tests.

Covers:
    - chain shape of the standard / subsurface / ch101 catalogs
    - chapter type → variant resolution (unknown types fall back to standard)
    - step lookup, index and next-owner resolution
    - timeline classification used by the chapter detail view
"""

import dataclasses

import pytest

from wellspring.core.exceptions import NotFoundError
from wellspring.workflow.catalog import (
    CH101_WORKFLOW,
    STANDARD_WORKFLOW,
    SUBSURFACE_WORKFLOW,
    VARIANT_CH101,
    VARIANT_STANDARD,
    VARIANT_SUBSURFACE,
    get_catalog,
    get_workflow_for_chapter,
    get_workflow_type,
    resolve_catalog,
    resolve_workflow_variant,
    validate_catalog,
)
from wellspring.workflow.resolver import (
    TIMELINE_COMPLETED,
    TIMELINE_CURRENT,
    TIMELINE_FUTURE,
    classify_step,
    get_next_owner,
    get_step_index,
    get_step_meta,
    require_step_meta,
)


# ── Catalog shape ────────────────────────────────────────────────────────


@pytest.mark.parametrize("catalog, expected_len", [
    (STANDARD_WORKFLOW, 22),
    (SUBSURFACE_WORKFLOW, 11),
    (CH101_WORKFLOW, 5),
])
def test_catalog_is_a_single_chain(catalog, expected_len):
    assert len(catalog) == expected_len
    assert validate_catalog(catalog) == []
    assert catalog[0].id == "not_started"
    assert catalog[-1].id == "done"


@pytest.mark.parametrize("catalog", [STANDARD_WORKFLOW, SUBSURFACE_WORKFLOW, CH101_WORKFLOW])
def test_pointers_follow_row_order(catalog):
    for prev, nxt in zip(catalog, catalog[1:]):
        assert prev.next_step == nxt.id
        assert nxt.previous_step == prev.id


def test_step_ids_unique_within_catalog():
    for catalog in (STANDARD_WORKFLOW, SUBSURFACE_WORKFLOW, CH101_WORKFLOW):
        ids = [s.id for s in catalog]
        assert len(ids) == len(set(ids))


def test_sentinel_rows_have_no_duration_or_owner():
    for catalog in (STANDARD_WORKFLOW, SUBSURFACE_WORKFLOW, CH101_WORKFLOW):
        for step in (catalog[0], catalog[-1]):
            assert step.typical_duration_days == 0
            assert step.default_owner is None


def test_standard_design_phase_is_skippable_and_after_doe_ready():
    design = get_step_meta(VARIANT_STANDARD, "design_phase")
    assert design.can_skip is True
    assert design.previous_step == "doe_ready"
    assert design.next_step == "done"


def test_validate_catalog_reports_broken_chain():
    broken = list(CH101_WORKFLOW)
    broken[1] = dataclasses.replace(broken[1], next_step="nowhere")
    problems = validate_catalog(broken)
    assert any("unknown step 'nowhere'" in p for p in problems)
    assert any("unreachable" in p for p in problems)


def test_validate_catalog_reports_duplicate_and_bad_ends():
    problems = validate_catalog([CH101_WORKFLOW[1], CH101_WORKFLOW[1]])
    assert any("duplicate" in p for p in problems)
    assert any("must start" in p for p in problems)
    assert any("must end" in p for p in problems)


def test_validate_catalog_empty():
    assert validate_catalog(()) == ["catalog is empty"]


# ── Variant resolution ───────────────────────────────────────────────────


@pytest.mark.parametrize("chapter_type, variant", [
    ("ch1_101", VARIANT_CH101),
    ("ch2_subsurface", VARIANT_SUBSURFACE),
    ("ch3_electricity", VARIANT_STANDARD),
    ("ch6_policy", VARIANT_STANDARD),
    ("custom_appendix", VARIANT_STANDARD),
])
def test_resolve_workflow_variant(chapter_type, variant):
    assert resolve_workflow_variant(chapter_type) == variant
    assert get_workflow_type(chapter_type) == variant


def test_resolve_catalog_by_chapter_type():
    assert resolve_catalog("ch2_subsurface") is SUBSURFACE_WORKFLOW
    assert get_workflow_for_chapter("ch1_101") is CH101_WORKFLOW
    assert resolve_catalog("ch9_military") is STANDARD_WORKFLOW


def test_unknown_variant_falls_back_to_standard():
    assert get_catalog("legacy") is STANDARD_WORKFLOW


# ── Resolver ─────────────────────────────────────────────────────────────


def test_get_step_meta_known_and_unknown():
    meta = get_step_meta(VARIANT_STANDARD, "send_contract")
    assert meta.label == "Send Contract"
    assert meta.next_step == "awaiting_contract_signature"
    assert get_step_meta(VARIANT_STANDARD, "contract_signed") is None
    # Steps belong to one variant only
    assert get_step_meta(VARIANT_CH101, "peer_review") is None


def test_require_step_meta_raises_not_found():
    with pytest.raises(NotFoundError):
        require_step_meta(VARIANT_SUBSURFACE, "drafting")


def test_get_step_index():
    assert get_step_index(VARIANT_STANDARD, "not_started") == 0
    assert get_step_index(VARIANT_STANDARD, "done") == 21
    assert get_step_index(VARIANT_CH101, "final_edit") == 3
    assert get_step_index(VARIANT_STANDARD, "missing") == -1


def test_next_owner_substitutes_content_approver():
    assert get_next_owner(VARIANT_STANDARD, "maria_initial_review", "Ryan") == "Ryan"
    assert get_next_owner(VARIANT_STANDARD, "content_approver_review_1", "Ryan") == "Drew"


def test_next_owner_keeps_role_names():
    assert get_next_owner(VARIANT_STANDARD, "send_contract", "Trent") == "Author"
    assert get_next_owner(VARIANT_SUBSURFACE, "not_started", "Trent") == "State Geologist"


def test_next_owner_empty_at_end_or_unknown():
    assert get_next_owner(VARIANT_STANDARD, "done", "Trent") == ""
    assert get_next_owner(VARIANT_STANDARD, "design_phase", "Trent") == ""
    assert get_next_owner(VARIANT_STANDARD, "contract_signed", "Trent") == ""


def test_classify_step_relative_to_current():
    current = "maria_initial_review"
    assert classify_step(VARIANT_STANDARD, "send_contract", current) == TIMELINE_COMPLETED
    assert classify_step(VARIANT_STANDARD, current, current) == TIMELINE_CURRENT
    assert classify_step(VARIANT_STANDARD, "peer_review", current) == TIMELINE_FUTURE


def test_classify_step_with_off_catalog_current_is_future():
    assert classify_step(VARIANT_STANDARD, "send_contract", "contract_signed") == TIMELINE_FUTURE
