"""Calendar helpers for the Monday-aligned timesheet week."""
import re
from datetime import date, datetime, timedelta
from typing import Tuple, Union

from tasktrack.core.errors import InvalidRange

ISO_WEEK_RE = re.compile(r"^(?P<year>\d{4})-W(?P<week>\d{1,2})$")

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def week_bounds(day: date) -> Tuple[date, date]:
    """Return the Monday and Sunday of the week containing ``day``."""
    week_start = day - timedelta(days=day.weekday())
    return week_start, week_start + timedelta(days=6)


def resolve_week(week_id: Union[str, date, datetime]) -> Tuple[date, date]:
    """Resolve an ISO ``YYYY-Www`` token or any date to its week bounds.

    Strings that are not week tokens are parsed as ``YYYY-MM-DD``.
    """
    if isinstance(week_id, datetime):
        return week_bounds(week_id.date())
    if isinstance(week_id, date):
        return week_bounds(week_id)

    token = (week_id or "").strip()
    match = ISO_WEEK_RE.match(token)
    if match:
        try:
            monday = date.fromisocalendar(int(match["year"]), int(match["week"]), 1)
        except ValueError:
            raise InvalidRange(f"Invalid ISO week: {token}")
        return week_bounds(monday)

    try:
        return week_bounds(date.fromisoformat(token))
    except ValueError:
        raise InvalidRange(f"Week must be YYYY-Www or YYYY-MM-DD, got {token!r}")


def iso_week_id(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def format_duration(seconds: int) -> str:
    """Format whole seconds as HH:MM:SS."""
    seconds = max(int(seconds), 0)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
