from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Iterable, Set

from models.employee import AttendanceRecord
from utils.calendar_utils import working_dates


@dataclass
class AttendanceSummary:
    """Attendance figures of one employee-month"""
    total_working_days: int
    working_days_target: int
    present_days: int
    absent_days: int
    total_overtime_hours: Decimal
    total_late_minutes: int
    total_early_minutes: int
    target_dates: List[date] = field(default_factory=list)
    attended_dates: Set[date] = field(default_factory=set)

    @property
    def missed_dates(self) -> List[date]:
        """Working days up to the as-of day without an attended record"""
        return [d for d in self.target_dates if d not in self.attended_dates]


class AttendanceAggregator:
    """Partition a month's working days into present and absent"""

    def __init__(self, rest_days: Iterable[int]):
        self.rest_days = tuple(rest_days)

    def aggregate(self, records: List[AttendanceRecord], year: int, month: int,
                  as_of_day: Optional[int] = None) -> AttendanceSummary:
        """Aggregate records; as_of_day is None for a closed month"""
        all_dates = working_dates(year, month, self.rest_days)
        target_dates = working_dates(year, month, self.rest_days, as_of_day) if as_of_day else all_dates

        cutoff = date(year, month, as_of_day) if as_of_day else None
        present_days = sum(
            1 for r in records
            if r.is_attended and (cutoff is None or r.date <= cutoff)
        )

        return AttendanceSummary(
            total_working_days=len(all_dates),
            working_days_target=len(target_dates),
            present_days=present_days,
            absent_days=max(0, len(target_dates) - present_days),
            total_overtime_hours=sum((Decimal(str(r.overtime_hours or 0)) for r in records), Decimal('0')),
            total_late_minutes=sum(r.late_minutes or 0 for r in records),
            total_early_minutes=sum(r.early_leave_minutes or 0 for r in records),
            target_dates=target_dates,
            attended_dates={r.date for r in records if r.is_attended},
        )
