"""Calendar date-range resolution.

Dates are handled as naive local datetimes and converted to UTC only when a
query string is built, so day arithmetic keeps the local time of day.
"""

import re
from datetime import datetime, timedelta, timezone

RELATIVE_PATTERN = re.compile(r"^\+(\d+)([dmy])$")

DEFAULT_RANGE = "+30d"


def local_now() -> datetime:
    return datetime.now()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def add_months(value: datetime, months: int) -> datetime:
    """Advance the month field; a day past the end of the target month rolls forward.

    Jan 31 + 1 month is therefore Mar 2 or 3, not Feb 28.
    """
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    first = value.replace(year=year, month=month, day=1)
    return first + timedelta(days=value.day - 1)


def _parse_iso(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid date: {value!r} (use ISO format, today, tomorrow or +Nd/+Nm/+Ny)") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_date(value: str, base: datetime | None = None) -> datetime:
    """Resolve an ISO date or one of today, tomorrow, +Nd, +Nm, +Ny against base (default now)."""
    base = base or local_now()
    lower = value.strip().lower()

    if lower == "today":
        return start_of_day(base)
    if lower == "tomorrow":
        return start_of_day(base + timedelta(days=1))

    match = RELATIVE_PATTERN.match(lower)
    if match:
        amount, unit = int(match.group(1)), match.group(2)
        if unit == "d":
            return base + timedelta(days=amount)
        if unit == "m":
            return add_months(base, amount)
        return add_months(base, 12 * amount)

    return _parse_iso(value.strip())


def resolve_range(
    command: str,
    start: str | None = None,
    end: str | None = None,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Start and end of the calendar view for a calendar sub-command."""
    now = now or local_now()
    if command == "today":
        return start_of_day(now), end_of_day(now)
    if command == "week":
        return start_of_day(now), now + timedelta(days=7)

    start_date = parse_date(start, now) if start else now
    end_date = parse_date(end or DEFAULT_RANGE, start_date)
    return start_date, end_date


def to_graph_datetime(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision, e.g. 2024-01-01T08:00:00.000Z."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
