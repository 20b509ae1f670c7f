"""Late arrival, absence, manual and early-leave rules"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from models.employee import AttendanceRecord
from models.payroll import ManualDeduction
from models.settings import (
    DelayPenaltyTier, EarlyLeaveAttribution, HRSettings, LateWarningLevel
)
from processors.penalty_ledger import DailyPenaltyLedger
from processors.penalty_rules import (
    apply_absence_penalties, apply_early_leave_penalty, apply_late_penalties,
    apply_manual_deductions, escalation_level
)
from utils.formatters import to_money

DAILY_RATE = Decimal('1000')
HOURLY_RATE = Decimal('125')


def late(day, minutes, status='LATE'):
    return AttendanceRecord(date=date(2025, 2, day), status=status, late_minutes=minutes)


def left_early(day, minutes, check_out=True):
    return AttendanceRecord(
        date=date(2025, 2, day),
        status='PRESENT',
        early_leave_minutes=minutes,
        check_out=datetime(2025, 2, day, 16, 0) if check_out else None
    )


# ========== Late arrival ==========

def test_tiered_penalty_uses_highest_reached_tier():
    settings = HRSettings(company_id='acme', delay_penalty_tiers=(
        DelayPenaltyTier(min_minutes=15, deduction_days=Decimal('0.25')),
        DelayPenaltyTier(min_minutes=60, deduction_days=Decimal('1')),
        DelayPenaltyTier(min_minutes=30, deduction_days=Decimal('0.5')),
    ))
    ledger = DailyPenaltyLedger()
    attendance = [late(3, 20), late(4, 35), late(5, 65), late(6, 10)]

    total = apply_late_penalties(ledger, attendance, settings.late_penalty_strategy(), DAILY_RATE)

    assert total == Decimal('1750')
    assert ledger.day_total(date(2025, 2, 5)) == Decimal('1000')
    assert ledger.day_total(date(2025, 2, 6)) == Decimal('0')


def test_escalation_starts_after_monthly_limit_and_repeats_last_level():
    settings = HRSettings(company_id='acme', monthly_late_limit=2, late_warning_levels=(
        LateWarningLevel(occurrence_count=2, deduction_factor=Decimal('1')),
        LateWarningLevel(occurrence_count=1, deduction_factor=Decimal('0.5')),
    ))
    ledger = DailyPenaltyLedger()
    attendance = [late(day, 5) for day in (2, 3, 4, 5, 6)]

    total = apply_late_penalties(ledger, attendance, settings.late_penalty_strategy(), DAILY_RATE)

    assert total == Decimal('2500')
    assert ledger.day_total(date(2025, 2, 3)) == Decimal('0')
    assert ledger.day_total(date(2025, 2, 4)) == Decimal('500')
    assert ledger.day_total(date(2025, 2, 6)) == Decimal('1000')


def test_status_late_counts_without_minutes():
    settings = HRSettings(company_id='acme', monthly_late_limit=1, late_warning_levels=(
        LateWarningLevel(occurrence_count=1, deduction_factor=Decimal('0.25')),
    ))
    ledger = DailyPenaltyLedger()
    attendance = [late(3, 0), late(4, 0), AttendanceRecord(date=date(2025, 2, 5), status='PRESENT')]

    total = apply_late_penalties(ledger, attendance, settings.late_penalty_strategy(), DAILY_RATE)

    assert total == Decimal('250')


def test_escalation_without_levels_charges_nothing():
    settings = HRSettings(company_id='acme', monthly_late_limit=1)
    ledger = DailyPenaltyLedger()

    total = apply_late_penalties(ledger, [late(d, 30) for d in (2, 3, 4)], settings.late_penalty_strategy(), DAILY_RATE)

    assert total == Decimal('0')
    assert len(ledger) == 0


def test_escalation_level_lookup():
    levels = (
        LateWarningLevel(occurrence_count=1, deduction_factor=Decimal('0.5')),
        LateWarningLevel(occurrence_count=3, deduction_factor=Decimal('2')),
    )
    assert escalation_level(levels, 1).deduction_factor == Decimal('0.5')
    assert escalation_level(levels, 2).deduction_factor == Decimal('2')
    assert escalation_level((), 1) is None


def test_unknown_strategy_rejected():
    with pytest.raises(TypeError):
        apply_late_penalties(DailyPenaltyLedger(), [late(3, 30)], object(), DAILY_RATE)


# ========== Absence and manual ==========

def test_absence_penalty_per_missed_day():
    ledger = DailyPenaltyLedger()
    missed = [date(2025, 2, 3), date(2025, 2, 4)]

    total = apply_absence_penalties(ledger, missed, DAILY_RATE, Decimal('1.5'))

    assert total == Decimal('3000')
    assert ledger.day_total(date(2025, 2, 4)) == Decimal('1500')


def test_manual_deductions_booked_on_their_day():
    ledger = DailyPenaltyLedger()
    deductions = [
        ManualDeduction(1, Decimal('200'), 'Lost badge', date(2025, 2, 3), 2, 2025),
        ManualDeduction(2, Decimal('300'), 'Uniform', date(2025, 2, 3), 2, 2025),
    ]

    total = apply_manual_deductions(ledger, deductions)

    assert total == Decimal('500')
    summary = ledger.finalize(DAILY_RATE, Decimal('0'))
    assert summary.manual_total == Decimal('500')
    assert summary.days[0].reasons == ['manual: Lost badge', 'manual: Uniform']


# ========== Early leave ==========

def test_early_leave_below_threshold_is_free():
    ledger = DailyPenaltyLedger()
    total = apply_early_leave_penalty(ledger, [left_early(3, 30), left_early(4, 30)], HOURLY_RATE)

    assert total == Decimal('0')
    assert len(ledger) == 0


def test_early_leave_charges_whole_hours_on_last_checkout():
    ledger = DailyPenaltyLedger()
    attendance = [left_early(3, 50), left_early(10, 80), left_early(12, 0, check_out=False)]

    total = apply_early_leave_penalty(ledger, attendance, HOURLY_RATE)

    # 130 minutes -> 2 whole hours
    assert total == Decimal('250')
    assert ledger.day_total(date(2025, 2, 10)) == Decimal('250')
    assert ledger.day_total(date(2025, 2, 3)) == Decimal('0')


def test_early_leave_per_day_spreads_same_total():
    ledger = DailyPenaltyLedger()
    attendance = [left_early(3, 30), left_early(10, 100)]

    total = apply_early_leave_penalty(ledger, attendance, HOURLY_RATE, EarlyLeaveAttribution.PER_DAY)

    assert total == Decimal('250')
    summary = ledger.finalize(DAILY_RATE, Decimal('0'))
    assert to_money(summary.total) == Decimal('250.00')
    assert ledger.day_total(date(2025, 2, 10)) > ledger.day_total(date(2025, 2, 3))
    assert [d.reasons for d in summary.days] == [['early leave 30m'], ['early leave 100m']]
