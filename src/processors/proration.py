from dataclasses import dataclass
from decimal import Decimal


@dataclass
class ProratedAmounts:
    base_salary: Decimal
    total_allowances: Decimal
    social_insurance: Decimal
    tax_amount: Decimal


def earned_ratio(working_days_elapsed: int, total_working_days: int) -> Decimal:
    """Share of the month's working days that have elapsed"""
    if total_working_days <= 0:
        return Decimal('1')
    return Decimal(working_days_elapsed) / Decimal(total_working_days)


def prorate(base_salary: Decimal, total_allowances: Decimal, social_insurance: Decimal,
            tax_amount: Decimal, ratio: Decimal) -> ProratedAmounts:
    """Scale the salary-derived components only; overtime, bonuses and deductions are actuals"""
    return ProratedAmounts(
        base_salary=base_salary * ratio,
        total_allowances=total_allowances * ratio,
        social_insurance=social_insurance * ratio,
        tax_amount=tax_amount * ratio,
    )
