"""Date manipulation utilities"""

from datetime import date, timedelta
from typing import Iterable, List

# date.weekday() numbering: Monday=0 ... Sunday=6
DEFAULT_REST_DAYS = frozenset({4, 5})  # Friday, Saturday


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def count_workdays(start: date, end: date, rest_days: Iterable[int] = DEFAULT_REST_DAYS) -> int:
    """
    Count workdays between start and end, both inclusive.

    A workday is any calendar day whose weekday is not one of rest_days.
    An empty range (start after end) has no workdays.
    """
    rest = frozenset(rest_days)
    return sum(1 for day in generate_date_range(start, end) if day.weekday() not in rest)
