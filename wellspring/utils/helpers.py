"""Shared parsing helpers for timestamps and dates.

parse_timestamp:  ISO string / date / datetime → aware UTC datetime (None on bad input)
parse_date:       ISO or DD.MM.YYYY string → date (None on bad input)
to_iso:           datetime → ISO string, None passthrough
"""
import logging
from datetime import date, datetime, timezone

logger = logging.getLogger(__name__)


def parse_timestamp(value):
    """Parse a timestamp into a timezone-aware UTC datetime.

    Accepts:
    - datetime (naive values are treated as UTC)
    - date (midnight UTC)
    - YYYY-MM-DD (midnight UTC)
    - YYYY-MM-DDTHH:MM:SS[.ffffff][Z|+HH:MM]

    Returns None for empty/invalid input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except (ValueError, TypeError):
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def to_iso(value):
    """Serialise a datetime/date to ISO-8601, passing None through."""
    if value is None:
        return None
    return value.isoformat()
