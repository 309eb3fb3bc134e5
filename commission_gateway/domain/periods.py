"""Period keys and calendar boundaries shared by the engine and its callers"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, List, Tuple, Union


class PeriodKind(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"


class PeriodStatus(str, Enum):
    """Where a period sits relative to the reference date"""

    UPCOMING = "upcoming"
    CURRENT = "current"
    CLOSED = "closed"


def quarter_of(month: int) -> int:
    """Fiscal quarter (1-4) of a calendar month, i.e. ceil(month / 3)"""
    return (month - 1) // 3 + 1


def quarter_months(quarter: int) -> Tuple[int, int, int]:
    first = (quarter - 1) * 3 + 1
    return first, first + 1, first + 2


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def quarter_bounds(year: int, quarter: int) -> Tuple[date, date]:
    first, _, last = quarter_months(quarter)
    start, _ = month_bounds(year, first)
    _, end = month_bounds(year, last)
    return start, end


@dataclass(frozen=True)
class PeriodKey:
    """Identifies one target period: (month, year) or (quarter, year)"""

    kind: PeriodKind
    index: int  # month 1-12 or quarter 1-4
    year: int

    @classmethod
    def month(cls, year: int, month: int) -> "PeriodKey":
        if not 1 <= month <= 12:
            raise ValueError(f"month out of range: {month}")
        return cls(PeriodKind.MONTH, month, year)

    @classmethod
    def quarter(cls, year: int, quarter: int) -> "PeriodKey":
        if not 1 <= quarter <= 4:
            raise ValueError(f"quarter out of range: {quarter}")
        return cls(PeriodKind.QUARTER, quarter, year)

    @classmethod
    def month_of(cls, moment: Union[date, datetime]) -> "PeriodKey":
        return cls.month(moment.year, moment.month)

    @classmethod
    def quarter_of(cls, moment: Union[date, datetime]) -> "PeriodKey":
        return cls.quarter(moment.year, quarter_of(moment.month))

    @property
    def bounds(self) -> Tuple[date, date]:
        if self.kind is PeriodKind.MONTH:
            return month_bounds(self.year, self.index)
        return quarter_bounds(self.year, self.index)

    def contains(self, moment: Union[date, datetime]) -> bool:
        if moment.year != self.year:
            return False
        if self.kind is PeriodKind.MONTH:
            return moment.month == self.index
        return quarter_of(moment.month) == self.index

    def label(self) -> str:
        if self.kind is PeriodKind.MONTH:
            return f"{self.year}-{self.index:02d}"
        return f"{self.year}-Q{self.index}"


def period_status(period: PeriodKey, today: date) -> PeriodStatus:
    start, end = period.bounds
    if today < start:
        return PeriodStatus.UPCOMING
    if today > end:
        return PeriodStatus.CLOSED
    return PeriodStatus.CURRENT


def deals_in_period(deals: Iterable, period: PeriodKey) -> List:
    """Deals whose created_at falls inside the period"""
    return [deal for deal in deals if period.contains(deal.created_at)]
