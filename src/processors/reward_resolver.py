from decimal import Decimal
from typing import List

from models.payroll import RewardRecord, RewardStatus


def eligible_rewards(rewards: List[RewardRecord], month: int, year: int) -> List[RewardRecord]:
    """Approved, not yet applied rewards tagged to exactly this period"""
    return [
        r for r in rewards
        if r.status == RewardStatus.APPROVED
        and not r.is_included_in_payroll
        and r.applied_month == month
        and r.applied_year == year
    ]


def calculate_total_rewards(rewards: List[RewardRecord]) -> Decimal:
    """Money total; non-monetary and points rewards are consumed but not paid"""
    return sum((Decimal(str(r.amount or 0)) for r in rewards if r.is_payable), Decimal('0'))
