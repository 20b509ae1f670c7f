"""Penalty rule engines feeding the daily ledger. None reads another's output."""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from config.settings import EARLY_LEAVE_THRESHOLD_MINUTES
from models.employee import AttendanceRecord
from models.payroll import ManualDeduction
from models.settings import (
    EarlyLeaveAttribution,
    EscalationLatePenalty,
    LatePenaltyStrategy,
    LateWarningLevel,
    TieredLatePenalty,
)
from processors.penalty_ledger import DailyPenaltyLedger, PenaltySource

logger = logging.getLogger(__name__)


def apply_manual_deductions(ledger: DailyPenaltyLedger, deductions: List[ManualDeduction]) -> Decimal:
    total = Decimal('0')
    for deduction in deductions:
        amount = Decimal(str(deduction.amount))
        ledger.add_penalty(deduction.date, amount, f"manual: {deduction.reason}", PenaltySource.MANUAL)
        total += amount
    return total


def apply_absence_penalties(ledger: DailyPenaltyLedger, missed_dates: List[date],
                            daily_rate: Decimal, absence_penalty_rate: Decimal) -> Decimal:
    """One penalty per working day without an attended record"""
    amount = daily_rate * absence_penalty_rate
    for day in missed_dates:
        ledger.add_penalty(day, amount, "absence", PenaltySource.ABSENCE)
    return amount * len(missed_dates)


def late_occurrences(attendance: List[AttendanceRecord]) -> List[AttendanceRecord]:
    return sorted((r for r in attendance if r.is_late), key=lambda r: r.date)


def escalation_level(levels, sequence: int) -> Optional[LateWarningLevel]:
    """Level for the n-th occurrence past the limit; repeats the last level"""
    if not levels:
        return None
    for level in levels:
        if level.occurrence_count == sequence:
            return level
    return levels[-1]


def apply_late_penalties(ledger: DailyPenaltyLedger, attendance: List[AttendanceRecord],
                         strategy: LatePenaltyStrategy, daily_rate: Decimal) -> Decimal:
    total = Decimal('0')
    occurrences = late_occurrences(attendance)

    if isinstance(strategy, TieredLatePenalty):
        for occurrence in occurrences:
            minutes = occurrence.late_minutes or 0
            # tiers are sorted by min_minutes descending
            tier = next((t for t in strategy.tiers if minutes >= t.min_minutes), None)
            if tier is None:
                continue
            amount = daily_rate * Decimal(str(tier.deduction_days))
            logger.debug("Tier penalty on %s: %s min -> %s", occurrence.date, minutes, amount)
            ledger.add_penalty(occurrence.date, amount, f"late {minutes}m", PenaltySource.LATE)
            total += amount

    elif isinstance(strategy, EscalationLatePenalty):
        for rank, occurrence in enumerate(occurrences, start=1):
            if rank <= strategy.monthly_late_limit:
                continue
            level = escalation_level(strategy.levels, rank - strategy.monthly_late_limit)
            if level is None:
                continue
            amount = daily_rate * Decimal(str(level.deduction_factor))
            logger.debug("Escalation penalty on %s: occurrence %s -> %s", occurrence.date, rank, amount)
            ledger.add_penalty(occurrence.date, amount, f"late #{rank}", PenaltySource.LATE)
            total += amount

    else:
        raise TypeError(f"Unknown late penalty strategy: {strategy!r}")

    return total


def apply_early_leave_penalty(ledger: DailyPenaltyLedger, attendance: List[AttendanceRecord],
                              hourly_rate: Decimal, attribution: str = EarlyLeaveAttribution.LAST_CHECKOUT,
                              threshold_minutes: int = EARLY_LEAVE_THRESHOLD_MINUTES) -> Decimal:
    """Penalise whole hours of early leave once the monthly total passes the threshold"""
    total_minutes = sum(r.early_leave_minutes or 0 for r in attendance)
    if total_minutes <= threshold_minutes:
        return Decimal('0')

    hours = total_minutes // 60
    amount = hourly_rate * hours

    if attribution == EarlyLeaveAttribution.PER_DAY:
        offending = [r for r in attendance if (r.early_leave_minutes or 0) > 0]
        for record in offending:
            share = amount * record.early_leave_minutes / total_minutes
            ledger.add_penalty(record.date, share, f"early leave {record.early_leave_minutes}m", PenaltySource.EARLY_LEAVE)
        return amount

    with_checkout = [r for r in attendance if r.check_out is not None]
    if not with_checkout:
        return Decimal('0')
    last = max(with_checkout, key=lambda r: r.date)
    ledger.add_penalty(last.date, amount, f"early leave {hours}h", PenaltySource.EARLY_LEAVE)
    return amount
