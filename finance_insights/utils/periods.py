"""
Calendar helpers shared by the analytics and report code.
Months are always handled as (year, month) pairs, never as day offsets.
"""
import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from finance_insights.core.config import settings

YearMonth = Tuple[int, int]


class InvalidPeriodError(ValueError):
    """Raised when a caller asks for a period that cannot exist."""


def shift_month(year: int, month: int, offset: int) -> YearMonth:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_window(anchor: date, months: int) -> List[YearMonth]:
    """The `months` consecutive (year, month) keys ending at the anchor's month, oldest first."""
    if months < 1:
        raise InvalidPeriodError(f"months must be at least 1, got {months}")
    return [shift_month(anchor.year, anchor.month, -i) for i in range(months - 1, -1, -1)]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"month must be between 1 and 12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def months_ago(day: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the end of shorter months."""
    year, month = shift_month(day.year, day.month, -months)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def days_ago(day: date, days: int) -> date:
    return day - timedelta(days=days)


def validate_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise InvalidPeriodError(f"start date {start.isoformat()} is after end date {end.isoformat()}")


def format_currency(amount: Union[Decimal, float, int], symbol: Optional[str] = None) -> str:
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    return f"{symbol} {Decimal(amount):,.2f}"
