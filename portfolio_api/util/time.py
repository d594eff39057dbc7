from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def days_ago_iso(days: int) -> str:
    dt = datetime.now(timezone.utc) - timedelta(days=int(days))
    return dt.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_iso_date(value: str) -> date:
    """Parse an ISO-8601 date or datetime string down to a calendar date.

    Accepts `2024-05-01`, `2024-05-01T10:00:00Z` and offset-qualified datetimes.
    """
    s = (value or "").strip()
    if not s:
        raise ValueError("empty date")
    if "T" in s or " " in s:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    return date.fromisoformat(s)


def describe_duration(start: str | None, end: str | None) -> str | None:
    """Human readable span between two ISO dates ("2 years 3 months").

    An open end means "until today".
    """
    if not start:
        return None
    try:
        d0 = parse_iso_date(start)
        d1 = parse_iso_date(end) if end else datetime.now(timezone.utc).date()
    except ValueError:
        return None

    days = abs((d1 - d0).days)
    years = days // 365
    months = (days % 365) // 30

    def _plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'s' if n != 1 else ''}"

    if years > 0:
        if months > 0:
            return f"{_plural(years, 'year')} {_plural(months, 'month')}"
        return _plural(years, "year")
    if months > 0:
        return _plural(months, "month")
    return _plural(days, "day")
