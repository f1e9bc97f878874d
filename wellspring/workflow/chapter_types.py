"""
Chapter types and report contexts.

Built-in chapter kinds follow the Arizona report structure; users may add
custom kinds (deletable) on top.  Report contexts are the six state reports,
each with a DOE deadline and a per-chapter lead table (Appendix 1).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class ChapterTypeDefinition:
    """A chapter kind with its display label and chapter number."""

    value: str
    label: str
    chapter_num: str
    is_custom: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ChapterTypeDefinition":
        return cls(
            value=data["value"],
            label=data.get("label") or data["value"],
            chapter_num=str(data.get("chapter_num") or ""),
            is_custom=bool(data.get("is_custom", False)),
        )


BUILTIN_CHAPTER_TYPES = (
    ChapterTypeDefinition("ch1_101", "The 101", "1"),
    ChapterTypeDefinition("ch2_subsurface", "Subsurface", "2"),
    ChapterTypeDefinition("ch3_electricity", "Electricity", "3"),
    ChapterTypeDefinition("ch4_direct_use", "Direct Use", "4"),
    ChapterTypeDefinition("ch4_5_commercial_gshp", "RMI Commercial GSHP", "4.5"),
    ChapterTypeDefinition("ch5_heat_ownership", "Heat Ownership", "5"),
    ChapterTypeDefinition("ch6_policy", "Policy", "6"),
    ChapterTypeDefinition("ch7_stakeholders", "Stakeholders", "7"),
    ChapterTypeDefinition("ch8_environment", "Environment", "8"),
    ChapterTypeDefinition("ch9_military", "Military Installations", "9"),
)

BUILTIN_CHAPTER_VALUES = frozenset(c.value for c in BUILTIN_CHAPTER_TYPES)

UNIVERSAL_CHAPTER_TYPE = "ch1_101"


# ── Report contexts ──────────────────────────────────────────────────────

REPORT_STATES = (
    {"value": "arizona", "label": "Arizona", "abbreviation": "AZ", "doe_deadline": "2026-02-15"},
    {"value": "louisiana", "label": "Louisiana", "abbreviation": "LA", "doe_deadline": "2026-02-28"},
    {"value": "oklahoma", "label": "Oklahoma", "abbreviation": "OK", "doe_deadline": "2026-03-15"},
    {"value": "alaska", "label": "Alaska", "abbreviation": "AK", "doe_deadline": "2026-03-25"},
    {"value": "idaho", "label": "Idaho", "abbreviation": "ID", "doe_deadline": "2026-04-30"},
    {"value": "oregon", "label": "Oregon", "abbreviation": "OR", "doe_deadline": "2026-04-30"},
)

REPORT_STATE_VALUES = tuple(s["value"] for s in REPORT_STATES)

# Editable per-context DOE deadlines; Louisiana follows Arizona.
DEFAULT_DOE_DEADLINES = {
    "arizona": "2026-02-15",
    "louisiana": "2026-02-15",
    "oklahoma": "2026-03-15",
    "alaska": "2026-03-25",
    "idaho": "2026-04-30",
    "oregon": "2026-04-30",
}

DEFAULT_STATE_CHAPTERS = {
    state: [c.value for c in BUILTIN_CHAPTER_TYPES] for state in REPORT_STATE_VALUES
}

_TEAM_101 = "Drew, Dani, Maria, Trent"

# Chapter leads / content owners by state (Appendix 1).
CHAPTER_LEADS = {
    "arizona": {
        "ch1_101": _TEAM_101,
        "ch2_subsurface": "Trent",
        "ch3_electricity": "Trent",
        "ch4_direct_use": "Trent",
        "ch5_heat_ownership": "Trent",
        "ch6_policy": "Trent",
        "ch7_stakeholders": "Trent",
        "ch8_environment": "Trent",
        "ch9_military": "Trent",
    },
    "louisiana": {
        "ch1_101": _TEAM_101,
        "ch2_subsurface": "Ryan",
        "ch3_electricity": "Ryan",
        "ch4_direct_use": "Jackson",
        "ch5_heat_ownership": "Ryan",
        "ch6_policy": "Ryan",
        "ch7_stakeholders": "Ryan",
        "ch8_environment": "Ryan",
        "ch9_military": "Ryan",
    },
    "alaska": {
        "ch1_101": _TEAM_101,
        "ch2_subsurface": "Trent",
        "ch3_electricity": "Ryan",
        "ch4_direct_use": "Ryan",
        "ch5_heat_ownership": "Smita/Maria",
        "ch6_policy": "Trent",
        "ch7_stakeholders": "Jackson",
        "ch8_environment": "Smita",
        "ch9_military": "Ryan",
    },
}

# Oklahoma, Idaho and Oregon share one lead table.
for _state in ("oklahoma", "idaho", "oregon"):
    CHAPTER_LEADS[_state] = {
        "ch1_101": _TEAM_101,
        "ch2_subsurface": "Trent",
        "ch3_electricity": "Ryan",
        "ch4_direct_use": "Jackson",
        "ch5_heat_ownership": "Smita/Maria",
        "ch6_policy": "Trent",
        "ch7_stakeholders": "Jackson",
        "ch8_environment": "Smita",
        "ch9_military": "Ryan",
    }


def get_report_state(value: str) -> dict | None:
    """Return the report context record for a state slug."""
    return next((s for s in REPORT_STATES if s["value"] == value), None)


def get_report_state_label(value: str) -> str:
    state = get_report_state(value)
    return state["label"] if state else value


def get_chapter_lead(report_state: str, chapter_type: str) -> str:
    """Content owner for a chapter in a context, "Unassigned" when unknown."""
    return CHAPTER_LEADS.get(report_state, {}).get(chapter_type) or "Unassigned"


def get_all_chapter_types(custom_types=()) -> list[ChapterTypeDefinition]:
    """Built-in chapter types followed by custom ones."""
    return list(BUILTIN_CHAPTER_TYPES) + list(custom_types)


def get_chapter_type_info(value: str, custom_types=()) -> ChapterTypeDefinition | None:
    return next((c for c in get_all_chapter_types(custom_types) if c.value == value), None)


def sort_chapter_types(values, custom_types=()) -> list[str]:
    """Order chapter type slugs by the master list; unknown slugs go last."""
    master = [c.value for c in get_all_chapter_types(custom_types)]

    def _key(value):
        return master.index(value) if value in master else len(master)

    return sorted(values, key=_key)
