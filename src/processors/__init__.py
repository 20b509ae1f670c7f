from .payroll_calculator import PayrollInputs, calculate_payroll
from .payroll_service import PayrollService
from .penalty_ledger import DailyPenaltyLedger, PenaltySource
from .tax_calculator import calculate_social_insurance, calculate_tax


__all__ = [
    'PayrollInputs',
    'calculate_payroll',
    'PayrollService',
    'DailyPenaltyLedger',
    'PenaltySource',
    'calculate_social_insurance',
    'calculate_tax'
]
