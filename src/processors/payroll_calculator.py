"""
Monthly payroll calculation.

``calculate_payroll`` is a pure function of its inputs: the employee, the
month's attendance, a settings snapshot, manual deductions, advances,
candidate rewards and the as-of date. It never touches the database; the
payroll service loads the inputs and persists the result.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List

from config.settings import HOURS_PER_DAY
from models.employee import AttendanceRecord, Employee
from models.payroll import (
    AdvanceDeduction,
    AdvanceRequest,
    DeductionBreakdown,
    DeductionStatus,
    ManualDeduction,
    PayrollCalculation,
    PayrollLine,
    RewardRecord,
)
from models.settings import HRSettings
from processors.advance_calculator import calculate_advance_deductions
from processors.attendance_aggregator import AttendanceAggregator
from processors.penalty_ledger import DailyPenaltyLedger
from processors.penalty_rules import (
    apply_absence_penalties,
    apply_early_leave_penalty,
    apply_late_penalties,
    apply_manual_deductions,
)
from processors.proration import earned_ratio, prorate
from processors.reward_resolver import calculate_total_rewards, eligible_rewards
from processors.tax_calculator import calculate_social_insurance, calculate_tax
from utils.calendar_utils import is_current_month, month_bounds
from utils.formatters import format_currency, to_money

logger = logging.getLogger(__name__)

MANUAL_DEDUCTIONS = 'Manual deductions'
ATTENDANCE_DEDUCTIONS = 'Absence and lateness'
ADVANCE_REPAYMENT = 'Advance repayment'
AD_HOC_NOTE = 'ad-hoc'


@dataclass
class PayrollInputs:
    employee: Employee
    settings: HRSettings
    month: int
    year: int
    as_of: date
    attendance: List[AttendanceRecord] = field(default_factory=list)
    manual_deductions: List[ManualDeduction] = field(default_factory=list)
    advances: List[AdvanceRequest] = field(default_factory=list)
    rewards: List[RewardRecord] = field(default_factory=list)
    allowances: Dict[str, Decimal] = field(default_factory=dict)
    extra_deductions: Dict[str, Decimal] = field(default_factory=dict)
    bonuses: Decimal = Decimal('0')


def calculate_payroll(inputs: PayrollInputs) -> PayrollCalculation:
    employee = inputs.employee
    settings = inputs.settings
    month, year = inputs.month, inputs.year
    period_start, period_end = month_bounds(year, month)

    current = is_current_month(year, month, inputs.as_of)
    as_of_day = inputs.as_of.day if current else None

    attendance = AttendanceAggregator(settings.weekly_rest_days).aggregate(
        inputs.attendance, year, month, as_of_day
    )

    full_base_salary = Decimal(str(employee.base_salary or 0))
    if attendance.total_working_days:
        daily_rate = full_base_salary / attendance.total_working_days
    else:
        daily_rate = Decimal('0')
    hourly_rate = daily_rate / HOURS_PER_DAY

    ratio = earned_ratio(attendance.working_days_target, attendance.total_working_days) if current else Decimal('1')
    if current:
        logger.info(
            "Current month for %s: %s of %s working days elapsed (ratio %.4f)",
            employee.employee_id, attendance.working_days_target, attendance.total_working_days, ratio
        )

    allowance_lines = [
        PayrollLine(category=name, amount=to_money(amount))
        for name, amount in inputs.allowances.items()
    ]
    full_allowances = sum((line.amount for line in allowance_lines), Decimal('0'))

    # Penalty sources write into the ledger independently
    ledger = DailyPenaltyLedger()
    manual = [
        d for d in inputs.manual_deductions
        if d.status in DeductionStatus.INCLUDED and d.effective_month == month and d.effective_year == year
    ]
    apply_manual_deductions(ledger, manual)

    if not current:
        apply_absence_penalties(ledger, attendance.missed_dates, daily_rate, settings.absence_penalty_rate)

    late_penalty = Decimal('0')
    if employee.auto_deduction_enabled:
        late_penalty = apply_late_penalties(ledger, inputs.attendance, settings.late_penalty_strategy(), daily_rate)
    else:
        logger.debug("Auto deduction disabled for %s, skipping late penalties", employee.employee_id)

    apply_early_leave_penalty(ledger, inputs.attendance, hourly_rate, settings.early_leave_attribution)

    ledger_summary = ledger.finalize(daily_rate, settings.max_daily_deduction_days)

    _, advance_details = calculate_advance_deductions(inputs.advances, ratio)

    breakdown = DeductionBreakdown(
        daily_breakdown=ledger_summary.daily_breakdown,
        cap_notes=ledger_summary.cap_notes,
        manual_details=[f"{d.reason} ({format_currency(d.amount)})" for d in manual],
        advance_details=[AdvanceDeduction(a.advance_id, to_money(a.amount)) for a in advance_details],
    )
    manual_amount = to_money(ledger_summary.manual_total)
    attendance_amount = to_money(ledger_summary.attendance_total)
    advance_amount = sum((a.amount for a in breakdown.advance_details), Decimal('0'))
    if manual_amount > 0:
        breakdown.lines.append(PayrollLine(MANUAL_DEDUCTIONS, manual_amount))
    if attendance_amount > 0:
        breakdown.lines.append(PayrollLine(ATTENDANCE_DEDUCTIONS, attendance_amount))
    if advance_amount > 0:
        breakdown.lines.append(PayrollLine(ADVANCE_REPAYMENT, advance_amount))
    for name, amount in inputs.extra_deductions.items():
        breakdown.lines.append(PayrollLine(name, to_money(amount), note=AD_HOC_NOTE))

    overtime_rate = Decimal(str(settings.overtime_rate))
    overtime_amount = to_money(attendance.total_overtime_hours * hourly_rate * overtime_rate)

    rewards = eligible_rewards(inputs.rewards, month, year)
    reward_total = to_money(calculate_total_rewards(rewards))
    bonuses = to_money(inputs.bonuses) + reward_total

    full_social_insurance = calculate_social_insurance(full_base_salary, settings.social_insurance_rate)
    full_tax = Decimal('0')
    if settings.tax_enabled:
        full_tax = calculate_tax(full_base_salary + full_allowances, settings.tax_brackets)

    prorated = prorate(full_base_salary, full_allowances, full_social_insurance, full_tax, ratio)
    base_salary = to_money(prorated.base_salary)
    total_allowances = to_money(prorated.total_allowances)
    social_insurance = to_money(prorated.social_insurance)
    tax_amount = to_money(prorated.tax_amount)
    if current:
        allowance_lines = [
            PayrollLine(line.category, to_money(line.amount * ratio), note='prorated')
            for line in allowance_lines
        ]

    gross_salary = base_salary + total_allowances + overtime_amount + bonuses
    total_deductions = breakdown.total
    net_salary = max(Decimal('0.00'), gross_salary - total_deductions - social_insurance - tax_amount)

    return PayrollCalculation(
        employee_id=employee.employee_id,
        employee_name=employee.name,
        company_id=employee.company_id,
        month=month,
        year=year,
        period_start=period_start,
        period_end=period_end,
        is_current_month=current,
        base_salary=base_salary,
        full_month_base_salary=full_base_salary,
        total_working_days=attendance.total_working_days,
        working_days_elapsed=attendance.working_days_target,
        present_days=attendance.present_days,
        absent_days=attendance.absent_days,
        earned_ratio=ratio,
        allowances=allowance_lines,
        total_allowances=total_allowances,
        deductions=breakdown,
        total_deductions=total_deductions,
        attendance_deduction=attendance_amount,
        manual_deduction=manual_amount,
        advance_deduction=advance_amount,
        late_penalty=to_money(late_penalty),
        overtime_hours=attendance.total_overtime_hours,
        overtime_rate=overtime_rate,
        overtime_amount=overtime_amount,
        bonuses=bonuses,
        reward_total=reward_total,
        social_insurance=social_insurance,
        tax_amount=tax_amount,
        gross_salary=gross_salary,
        net_salary=net_salary,
        rewards=rewards,
    )
