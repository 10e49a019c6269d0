import math
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[date, datetime, str]

_ONE_DAY_SECONDS = timedelta(days=1).total_seconds()


def days_between_inclusive(from_date: date, to_date: date) -> int:
    """
    Inclusive calendar-day count: ceil((to - from) / 1 day) + 1.
    Callers must check `to_date >= from_date` first; nothing is clamped.
    """
    delta = to_date - from_date
    return math.ceil(delta.total_seconds() / _ONE_DAY_SECONDS) + 1


def start_of_day(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def today() -> date:
    return date.today()


def parse_date(value: DateLike) -> date:
    """Accepts a date, a datetime or an ISO-8601 string (time part ignored)."""
    if isinstance(value, (date, datetime)):
        return start_of_day(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    raise ValueError(f"Unsupported date value: {value!r}")
