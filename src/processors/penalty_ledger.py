"""
Daily penalty ledger.

Penalty sources book amounts against calendar days without knowing about
each other. The daily cap is applied to the combined total of a day at
finalization, so a day with a manual deduction and a late arrival can
never exceed ``daily_rate * max_daily_deduction_days``.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from utils.formatters import format_currency, format_date_key

logger = logging.getLogger(__name__)


class PenaltySource:
    MANUAL = 'manual'
    ABSENCE = 'absence'
    LATE = 'late'
    EARLY_LEAVE = 'early_leave'


@dataclass
class PenaltyEntry:
    amount: Decimal
    reason: str
    source: str


@dataclass
class DayPenalties:
    running_total: Decimal = Decimal('0')
    entries: List[PenaltyEntry] = field(default_factory=list)

    def total_for(self, *sources: str) -> Decimal:
        return sum((e.amount for e in self.entries if e.source in sources), Decimal('0'))


@dataclass
class DayResult:
    day: str
    raw_total: Decimal
    capped_total: Decimal
    manual_amount: Decimal
    attendance_amount: Decimal
    reasons: List[str]
    sources: List[str] = field(default_factory=list)

    @property
    def was_capped(self) -> bool:
        return self.capped_total < self.raw_total


@dataclass
class LedgerSummary:
    """Capped ledger totals split into the manual and attendance buckets"""
    manual_total: Decimal
    attendance_total: Decimal
    days: List[DayResult]
    cap_limit: Optional[Decimal]

    @property
    def total(self) -> Decimal:
        return self.manual_total + self.attendance_total

    @property
    def cap_notes(self) -> List[str]:
        return [
            f"{d.day}: reduced from {format_currency(d.raw_total)} to {format_currency(d.capped_total)}"
            f" (daily cap; sources: {', '.join(d.sources)})"
            for d in self.days if d.was_capped
        ]

    @property
    def daily_breakdown(self) -> List[str]:
        return [
            f"{d.day}: {format_currency(d.capped_total)} ({', '.join(d.reasons)})"
            for d in self.days
        ]


class DailyPenaltyLedger:
    """Per-calendar-day penalty accumulator"""

    def __init__(self):
        self._days: Dict[str, DayPenalties] = OrderedDict()

    def add_penalty(self, day: date, amount: Decimal, reason: str, source: str = PenaltySource.ABSENCE):
        """Book an amount against a day; purely additive"""
        key = format_date_key(day)
        day_penalties = self._days.setdefault(key, DayPenalties())
        day_penalties.running_total += amount
        day_penalties.entries.append(PenaltyEntry(amount=amount, reason=reason, source=source))

    def day_total(self, day: date) -> Decimal:
        day_penalties = self._days.get(format_date_key(day))
        return day_penalties.running_total if day_penalties else Decimal('0')

    def __len__(self):
        return len(self._days)

    @staticmethod
    def cap_limit(daily_rate: Decimal, max_daily_deduction_days: Decimal) -> Optional[Decimal]:
        """Per-day ceiling, or None when uncapped"""
        if max_daily_deduction_days is None or max_daily_deduction_days <= 0:
            return None
        return daily_rate * max_daily_deduction_days

    def finalize(self, daily_rate: Decimal, max_daily_deduction_days: Decimal) -> LedgerSummary:
        limit = self.cap_limit(daily_rate, max_daily_deduction_days)
        manual_total = Decimal('0')
        attendance_total = Decimal('0')
        days = []

        for key in sorted(self._days):
            day_penalties = self._days[key]
            raw_total = day_penalties.running_total
            capped_total = raw_total
            if limit is not None and raw_total > limit:
                capped_total = limit
                logger.info("Daily cap applied on %s: %s -> %s", key, raw_total, limit)

            manual_raw = day_penalties.total_for(PenaltySource.MANUAL)
            if raw_total > 0:
                manual_amount = capped_total * manual_raw / raw_total
            else:
                manual_amount = Decimal('0')
            attendance_amount = capped_total - manual_amount

            manual_total += manual_amount
            attendance_total += attendance_amount
            days.append(DayResult(
                day=key,
                raw_total=raw_total,
                capped_total=capped_total,
                manual_amount=manual_amount,
                attendance_amount=attendance_amount,
                reasons=[e.reason for e in day_penalties.entries],
                sources=list(OrderedDict.fromkeys(e.source for e in day_penalties.entries)),
            ))

        return LedgerSummary(
            manual_total=manual_total,
            attendance_total=attendance_total,
            days=days,
            cap_limit=limit,
        )
