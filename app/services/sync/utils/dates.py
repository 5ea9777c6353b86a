"""Date helpers; all datetimes are stored as naive UTC."""
from datetime import date, datetime, timezone
from typing import Optional


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from a provider into naive UTC.

    Examples:
        >>> parse_iso_datetime("2024-10-05T19:00:00+02:00")
        datetime.datetime(2024, 10, 5, 17, 0)
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Calendar date of an ISO timestamp or date string (UTC)."""
    if not value:
        return None
    if len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    parsed = parse_iso_datetime(value)
    return parsed.date() if parsed else None


def first_of_month(day: date) -> date:
    return day.replace(day=1)
