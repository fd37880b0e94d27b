"""Date helpers for historical series and dashboard chart ranges."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator

from forexapi.core.errors import InvalidDateRange

ISO_FORMAT = "%Y-%m-%d"
ALL_TIME_START = date(2010, 1, 1)
CHART_RANGES = ("1W", "1M", "3M", "6M", "1Y", "ALL")


def parse_iso_date(value: str | date, field: str = "date") -> date:
    """Parse a strict ``YYYY-MM-DD`` string to :class:`date`."""

    if isinstance(value, date):
        return value
    try:
        if len(value) != 10:
            raise ValueError(value)
        return datetime.strptime(value, ISO_FORMAT).date()
    except (TypeError, ValueError) as exc:
        raise InvalidDateRange(
            f"Invalid date format for '{field}': {value!r}. Use YYYY-MM-DD."
        ) from exc


def ensure_ordered(start: date, end: date) -> None:
    if start > end:
        raise InvalidDateRange(
            f"Start date {start.isoformat()} must not be after end date {end.isoformat()}."
        )


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day in the inclusive window."""

    ensure_ordered(start, end)
    # Counting offsets never steps past the end, so date.max is a valid end.
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def _shift_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last valid day (e.g. 31 March minus one month).
    for candidate in (day.day, 30, 29, 28):
        try:
            return date(year, month, min(day.day, candidate))
        except ValueError:
            continue
    raise ValueError(f"cannot shift {day} by {months} months")


def chart_window(range_key: str, today: date) -> tuple[date, date]:
    """Return ``(start, end)`` for a dashboard chart range ending today.

    Unknown keys fall back to one year.
    """

    key = range_key.upper()
    if key == "1W":
        start = today - timedelta(days=7)
    elif key == "1M":
        start = _shift_months(today, 1)
    elif key == "3M":
        start = _shift_months(today, 3)
    elif key == "6M":
        start = _shift_months(today, 6)
    elif key == "ALL":
        start = ALL_TIME_START
    else:
        start = _shift_months(today, 12)
    return start, today
