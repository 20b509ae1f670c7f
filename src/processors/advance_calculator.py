from decimal import Decimal
from typing import List, Tuple

from models.payroll import AdvanceDeduction, AdvanceRequest, AdvanceStatus, RepaymentType


def is_eligible(advance: AdvanceRequest) -> bool:
    return (
        advance.status == AdvanceStatus.APPROVED
        and not advance.is_paid_off
        and Decimal(str(advance.remaining_balance)) > 0
    )


def calculate_advance_deductions(advances: List[AdvanceRequest],
                                 earned_ratio: Decimal = Decimal('1')) -> Tuple[Decimal, List[AdvanceDeduction]]:
    """Installment or payoff due per advance, scaled by the earned ratio when below 1"""
    total = Decimal('0')
    details = []

    for advance in advances:
        if not is_eligible(advance):
            continue

        remaining = Decimal(str(advance.remaining_balance))
        if advance.repayment_type == RepaymentType.INSTALLMENTS:
            deduction = Decimal(str(advance.installment_amount or 0))
        else:
            deduction = remaining
        deduction = min(deduction, remaining)

        if earned_ratio < 1:
            deduction = deduction * earned_ratio

        if deduction > 0:
            total += deduction
            details.append(AdvanceDeduction(advance_id=advance.advance_id, amount=deduction))

    return total, details
