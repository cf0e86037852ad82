"""
Timestamp helpers.

Everything is stored as ISO-8601 UTC with millisecond precision so that
string comparison in SQL matches chronological order. Naive values read
back (or sent by clients) are treated as UTC. Weeks start on Sunday.
"""

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_timestamp(value) -> datetime | None:
    """Parse a stored or client-supplied timestamp. Date-only strings mean midnight UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_timestamp(value) -> str | None:
    """Parse then re-serialize to the canonical storage form. Raises ValueError."""
    parsed = parse_timestamp(value)
    return to_iso(parsed) if parsed else None


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime) -> datetime:
    """Sunday 00:00 of the week containing ``now``."""
    days_since_sunday = (now.weekday() + 1) % 7
    return start_of_day(now - timedelta(days=days_since_sunday))


def week_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = start_of_week(now)
    return start, start + timedelta(days=7)


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = start_of_day(now)
    return start, start + timedelta(days=1)


def date_key(value: datetime) -> str:
    """YYYY-MM-DD form used for week_start keys."""
    return value.strftime("%Y-%m-%d")
