import calendar
from datetime import date
from typing import Iterable, List, Optional, Tuple


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month"""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def working_dates(year: int, month: int, rest_days: Iterable[int],
                  upto_day: Optional[int] = None) -> List[date]:
    """Working days of the month, optionally only through upto_day"""
    days_in_month = calendar.monthrange(year, month)[1]
    limit = min(upto_day, days_in_month) if upto_day else days_in_month
    rest_days = set(rest_days)
    return [
        date(year, month, day) for day in range(1, limit + 1)
        if date(year, month, day).weekday() not in rest_days
    ]


def working_days_in_month(year: int, month: int, rest_days: Iterable[int],
                          upto_day: Optional[int] = None) -> int:
    return len(working_dates(year, month, rest_days, upto_day))


def is_current_month(year: int, month: int, today: date) -> bool:
    return today.year == year and today.month == month
