"""
GEODE Chapter Workflow — Step Catalog.

Three ordered step tables, one per workflow variant:

    standard    22 steps  (Electricity, Direct Use, Heat Ownership, Policy, ...)
    subsurface  11 steps  (Ch 2 Subsurface, state geologist driven)
    ch101        5 steps  (Ch 1 "The 101", universal intro chapter)

Each catalog is a singly linked chain ``not_started -> ... -> done``.  The
``next_step`` / ``previous_step`` pointers are derived from row order when the
catalog is built, so a table can never disagree with its own ordering.

Usage:
    from wellspring.workflow.catalog import resolve_catalog, resolve_workflow_variant

    variant = resolve_workflow_variant("ch6_policy")   # "standard"
    steps = resolve_catalog("ch2_subsurface")          # SUBSURFACE_WORKFLOW
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

VARIANT_STANDARD = "standard"
VARIANT_SUBSURFACE = "subsurface"
VARIANT_CH101 = "ch101"

WORKFLOW_VARIANTS = (VARIANT_STANDARD, VARIANT_SUBSURFACE, VARIANT_CH101)

STEP_NOT_STARTED = "not_started"
STEP_DONE = "done"

# Chapter types with a dedicated workflow; every other type is "standard".
_VARIANT_BY_CHAPTER_TYPE = {
    "ch1_101": VARIANT_CH101,
    "ch2_subsurface": VARIANT_SUBSURFACE,
}


@dataclass(frozen=True)
class WorkflowStepMeta:
    """One row of a step catalog."""

    id: str
    label: str
    short_label: str
    description: str
    default_owner: str | None
    typical_duration_days: int
    requires_approval: bool
    can_skip: bool
    next_step: str | None
    previous_step: str | None

    def to_dict(self) -> dict:
        return asdict(self)


def _build_catalog(*rows) -> tuple[WorkflowStepMeta, ...]:
    """Link ``(id, label, short_label, description, owner, days, approval, skip)``
    rows into a chain in the given order."""
    ids = [row[0] for row in rows]
    steps = []
    for idx, (step_id, label, short, description, owner, days, approval, skip) in enumerate(rows):
        steps.append(WorkflowStepMeta(
            id=step_id,
            label=label,
            short_label=short,
            description=description,
            default_owner=owner,
            typical_duration_days=days,
            requires_approval=approval,
            can_skip=skip,
            next_step=ids[idx + 1] if idx + 1 < len(ids) else None,
            previous_step=ids[idx - 1] if idx > 0 else None,
        ))
    return tuple(steps)


_NOT_STARTED_ROW = (
    STEP_NOT_STARTED, "Not Started", "Not Started",
    "Chapter work has not begun", None, 0, False, False,
)

# ═════════════════════════════════════════════════════════════════════════════
# Subsurface workflow
# ═════════════════════════════════════════════════════════════════════════════

SUBSURFACE_WORKFLOW = _build_catalog(
    _NOT_STARTED_ROW,
    ("state_geologist_prework", "State Geologist Pre-work", "State Geo",
     "Pre-work coordination with the state geologist", "State Geologist", 14, False, False),
    ("veit_summary_draft", "Veit Summary Draft", "Veit Draft",
     "Veit writes the summary report based on state geologist input", "Veit", 7, False, False),
    ("ghost_writer_draft", "Ghost Writer Draft", "Ghost Writer",
     "Ghost writer develops Veit's summary into full chapter", "Ghost Writer", 10, False, False),
    ("trent_review_1", "Trent Review (Round 1)", "Trent R1",
     "Trent approves the ghost writer draft", "Trent", 3, True, False),
    ("maria_review_1", "Maria Review (Round 1)", "Maria R1",
     "Maria reviews and approves", "Maria", 3, True, False),
    ("peer_review_state_geologist", "Peer Review (State Geologist)", "Peer Review",
     "State geologist conducts peer review", "State Geologist", 7, True, False),
    ("veit_review_2", "Veit Review (Round 2)", "Veit R2",
     "Veit reviews after peer review feedback", "Veit", 3, True, False),
    ("trent_review_2", "Trent Review (Round 2)", "Trent R2",
     "Trent final review", "Trent", 2, True, False),
    ("maria_review_2", "Maria Review (Round 2)", "Maria R2",
     "Maria final review", "Maria", 2, True, False),
    (STEP_DONE, "Complete", "Done",
     "Chapter is complete and ready for DOE", None, 0, False, False),
)

# ═════════════════════════════════════════════════════════════════════════════
# Standard workflow
# ═════════════════════════════════════════════════════════════════════════════

STANDARD_WORKFLOW = _build_catalog(
    _NOT_STARTED_ROW,
    ("outreach_identify_authors", "Outreach - Identify Authors", "Outreach",
     "Conduct outreach to identify prospective authors", "Content Owner", 14, False, False),
    ("schedule_meeting", "Schedule Meeting", "Schedule",
     "Schedule introductory meeting with prospective author", "Content Owner", 7, False, False),
    ("explain_project", "Explain Project", "Meeting",
     "Meet with author to explain the project", "Content Owner", 1, False, False),
    ("send_contract", "Send Contract", "Send Contract",
     "Send contract to author for signature", "Content Owner", 1, False, False),
    ("awaiting_contract_signature", "Awaiting Contract Signature", "Await Sign",
     "Waiting for author to sign and return contract", "Author", 7, True, False),
    ("awaiting_author_responses", "Awaiting Author Responses", "Await Responses",
     "Author answering series of questions", "Author", 14, False, False),
    ("ai_deep_research_draft", "AI Deep Research Draft", "AI Draft",
     "AI creates first draft (incorporating author responses if available)",
     "Deep Research AI", 2, False, False),
    ("maria_initial_review", "Maria Initial Review", "Maria Init",
     "Maria reviews AI draft", "Maria", 3, True, False),
    ("content_approver_review_1", "Content Approver Review (Round 1)", "Approver R1",
     "Content approver (per Appendix 1) reviews draft", "Content Approver", 5, True, False),
    # Required for Policy; other chapters may skip if Drew opts out.
    ("drew_review", "Drew Review", "Drew",
     "Drew reviews (required for Policy, optional for others)", "Drew", 5, True, True),
    ("author_approval_round_1", "Author Approval (Round 1)", "Author R1",
     "Author's first approval of the draft", "Author", 7, True, False),
    ("content_approver_review_2", "Content Approver Review (Round 2)", "Approver R2",
     "Content approver reviews author's edits", "Content Approver", 3, True, False),
    ("maria_edit_pass", "Maria Edit Pass", "Maria Edit",
     "Maria's editing, streamlining, and consolidation pass", "Maria", 5, False, False),
    ("drew_content_approver_review", "Drew/Content Approver Review", "Drew/Approver",
     "Drew and/or content approver review Maria's edits", "Content Approver", 3, True, True),
    ("peer_review", "Peer Review", "Peer Review",
     "External peer review of the chapter", "External Reviewer", 7, True, False),
    ("author_approval_round_2", "Author Approval (Round 2)", "Author R2",
     "Author's second approval (if changes were made)", "Author", 5, True, True),
    ("copywriter_pass", "Copywriter Pass", "Copywriter",
     "Copywriter reviews for grammar and final polish", "Copywriter", 3, False, False),
    ("author_approval_round_3", "Author Approval (Round 3)", "Author R3",
     "Author's final approval of publication-ready draft", "Author", 3, True, False),
    ("doe_ready", "DOE Ready", "DOE Ready",
     "Publication-ready draft submitted to DOE", None, 0, False, False),
    # Not required for the DOE deadline.
    ("design_phase", "Design Phase", "Design",
     "Maria's designers create designed version (not required for DOE)", "Designers", 14, False, True),
    (STEP_DONE, "Complete", "Done",
     "Chapter is fully complete including design", None, 0, False, False),
)

# ═════════════════════════════════════════════════════════════════════════════
# Ch 101 workflow
# ═════════════════════════════════════════════════════════════════════════════

CH101_WORKFLOW = _build_catalog(
    _NOT_STARTED_ROW,
    ("drafting", "Drafting", "Drafting",
     "Initial draft being written", "Drew, Dani, Maria, Trent", 14, False, False),
    ("internal_review", "Internal Review", "Review",
     "Internal team review", "Trent", 7, True, False),
    ("final_edit", "Final Edit", "Final Edit",
     "Final editing pass", "Maria", 3, False, False),
    (STEP_DONE, "Complete", "Done",
     "Chapter is complete", None, 0, False, False),
)

_CATALOG_BY_VARIANT = {
    VARIANT_STANDARD: STANDARD_WORKFLOW,
    VARIANT_SUBSURFACE: SUBSURFACE_WORKFLOW,
    VARIANT_CH101: CH101_WORKFLOW,
}


# ═════════════════════════════════════════════════════════════════════════════
# Resolution
# ═════════════════════════════════════════════════════════════════════════════


def resolve_workflow_variant(chapter_type: str) -> str:
    """Map a chapter type to its workflow variant tag."""
    return _VARIANT_BY_CHAPTER_TYPE.get(chapter_type, VARIANT_STANDARD)


# Name used by the rest of the report tooling.
get_workflow_type = resolve_workflow_variant


def get_catalog(variant: str) -> tuple[WorkflowStepMeta, ...]:
    """Return the catalog for a variant tag (unknown tags → standard)."""
    return _CATALOG_BY_VARIANT.get(variant, STANDARD_WORKFLOW)


def resolve_catalog(chapter_type: str) -> tuple[WorkflowStepMeta, ...]:
    """Return the step catalog that applies to a chapter type."""
    return get_catalog(resolve_workflow_variant(chapter_type))


get_workflow_for_chapter = resolve_catalog


def validate_catalog(catalog) -> list[str]:
    """Check the chain invariants of a catalog.

    Returns a list of human-readable violations; an empty list means the
    catalog is a single acyclic chain from ``not_started`` to ``done`` with
    consistent back-pointers.
    """
    problems: list[str] = []
    if not catalog:
        return ["catalog is empty"]

    by_id = {}
    for step in catalog:
        if step.id in by_id:
            problems.append(f"duplicate step id '{step.id}'")
        by_id[step.id] = step

    if catalog[0].id != STEP_NOT_STARTED or catalog[0].previous_step is not None:
        problems.append("chain must start at 'not_started' with no previous step")
    if catalog[-1].id != STEP_DONE or catalog[-1].next_step is not None:
        problems.append("chain must end at 'done' with no next step")

    seen = set()
    current = by_id.get(STEP_NOT_STARTED)
    while current is not None:
        if current.id in seen:
            problems.append(f"cycle detected at '{current.id}'")
            break
        seen.add(current.id)
        if current.next_step is None:
            break
        nxt = by_id.get(current.next_step)
        if nxt is None:
            problems.append(f"'{current.id}' points to unknown step '{current.next_step}'")
            break
        if nxt.previous_step != current.id:
            problems.append(
                f"'{nxt.id}'.previous_step is '{nxt.previous_step}', expected '{current.id}'"
            )
        current = nxt

    unreachable = set(by_id) - seen
    if unreachable:
        problems.append(f"unreachable steps: {sorted(unreachable)}")
    return problems
