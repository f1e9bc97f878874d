"""
Progress & overdue calculations.

All functions are side-effect free.  Each accepts an optional ``now`` so the
caller (the store, or a test) owns the clock; without it, UTC now is used.

``calculate_days_on_step`` does not clamp: a ``started_at`` in the future
(clock skew, manual backdating) yields a negative day count.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from wellspring.utils.helpers import parse_timestamp
from wellspring.workflow.catalog import STEP_DONE, STEP_NOT_STARTED, get_catalog

SECONDS_PER_DAY = 24 * 60 * 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_days(start, end) -> int:
    """Ceiling of the number of days between two timestamps."""
    start_ts = parse_timestamp(start)
    end_ts = parse_timestamp(end)
    if start_ts is None or end_ts is None:
        return 0
    return math.ceil((end_ts - start_ts).total_seconds() / SECONDS_PER_DAY)


def calculate_days_on_step(started_at, now: datetime | None = None) -> int:
    """Days spent on the current step so far (ceiling, unclamped)."""
    return elapsed_days(started_at, now or _utcnow())


def is_step_overdue(started_at, typical_duration_days: int, now: datetime | None = None) -> bool:
    """True when the step has run longer than its typical duration.

    Zero-day marker steps count as overdue as soon as any time has passed.
    """
    return calculate_days_on_step(started_at, now) > typical_duration_days


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_workflow_progress(variant: str, current_step_id: str) -> int:
    """Percent complete (0-100), excluding the not_started/done sentinels."""
    catalog = get_catalog(variant)
    index = next((i for i, s in enumerate(catalog) if s.id == current_step_id), -1)
    if index == -1:
        return 0
    if current_step_id == STEP_DONE:
        return 100
    if current_step_id == STEP_NOT_STARTED:
        return 0

    total_steps = len(catalog) - 2
    completed_steps = index - 1
    return _round_half_up(completed_steps / total_steps * 100)


def days_until(deadline, now: datetime | None = None) -> int | None:
    """Whole days until a deadline date (negative once it has passed)."""
    deadline_ts = parse_timestamp(deadline)
    if deadline_ts is None:
        return None
    today = (now or _utcnow()).date()
    return (deadline_ts.date() - today).days
