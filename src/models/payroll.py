from dataclasses import dataclass, field, asdict
from datetime import date
from typing import List, Dict, Any, Optional
from decimal import Decimal


class PayrollStatus:
    """Payroll lifecycle states"""
    DRAFT = 'DRAFT'
    APPROVED = 'APPROVED'
    PAID = 'PAID'
    PROJECTION = 'PROJECTION'


class DeductionStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    APPLIED = 'APPLIED'

    INCLUDED = (APPROVED, APPLIED)


class AdvanceStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    COMPLETED = 'COMPLETED'


class RepaymentType:
    INSTALLMENTS = 'INSTALLMENTS'
    FULL = 'FULL'


class RewardStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    APPLIED = 'APPLIED'


class RewardCategory:
    MONETARY = 'MONETARY'
    NON_MONETARY = 'NON_MONETARY'
    POINTS = 'POINTS'

    NOT_PAYABLE = (NON_MONETARY, POINTS)


@dataclass
class ManualDeduction:
    """Approved manual deduction booked against a calendar day"""
    deduction_id: int
    amount: Decimal
    reason: str
    date: date
    effective_month: int
    effective_year: int
    status: str = DeductionStatus.APPROVED


@dataclass
class AdvanceRequest:
    """Employee cash advance being repaid through payroll"""
    advance_id: int
    remaining_balance: Decimal
    repayment_type: str
    installment_amount: Decimal = Decimal('0')
    status: str = AdvanceStatus.APPROVED
    is_paid_off: bool = False


@dataclass
class RewardRecord:
    """Approved reward waiting to be credited through payroll"""
    reward_id: int
    category: str
    amount: Decimal
    applied_month: int
    applied_year: int
    status: str = RewardStatus.APPROVED
    is_included_in_payroll: bool = False
    title: str = ''

    @property
    def is_payable(self) -> bool:
        return self.category not in RewardCategory.NOT_PAYABLE


@dataclass
class PayrollLine:
    """One line of an allowance or deduction breakdown"""
    category: str
    amount: Decimal
    note: str = ''


@dataclass
class AdvanceDeduction:
    """Amount withheld from one advance, settled when the payroll is paid"""
    advance_id: int
    amount: Decimal


@dataclass
class DeductionBreakdown:
    """Structured deduction breakdown, serialized only when persisted"""
    lines: List[PayrollLine] = field(default_factory=list)
    daily_breakdown: List[str] = field(default_factory=list)
    cap_notes: List[str] = field(default_factory=list)
    manual_details: List[str] = field(default_factory=list)
    advance_details: List[AdvanceDeduction] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal('0'))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [_line_to_dict(line) for line in self.lines],
            'daily_breakdown': list(self.daily_breakdown),
            'cap_notes': list(self.cap_notes),
            'manual_details': list(self.manual_details),
            'advance_details': [
                {'advance_id': a.advance_id, 'amount': str(a.amount)} for a in self.advance_details
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeductionBreakdown':
        return cls(
            lines=[_line_from_dict(item) for item in data.get('lines', [])],
            daily_breakdown=list(data.get('daily_breakdown', [])),
            cap_notes=list(data.get('cap_notes', [])),
            manual_details=list(data.get('manual_details', [])),
            advance_details=[
                AdvanceDeduction(advance_id=item['advance_id'], amount=Decimal(item['amount']))
                for item in data.get('advance_details', [])
            ],
        )


def _line_to_dict(line: PayrollLine) -> Dict[str, Any]:
    data = asdict(line)
    data['amount'] = str(line.amount)
    return data


def _line_from_dict(data: Dict[str, Any]) -> PayrollLine:
    return PayrollLine(category=data['category'], amount=Decimal(data['amount']), note=data.get('note', ''))


def lines_to_json_ready(lines: List[PayrollLine]) -> List[Dict[str, Any]]:
    return [_line_to_dict(line) for line in lines]


def lines_from_json_ready(items: List[Dict[str, Any]]) -> List[PayrollLine]:
    return [_line_from_dict(item) for item in items]


@dataclass
class PayrollCalculation:
    """Complete result of one employee-period calculation"""
    employee_id: str
    employee_name: str
    company_id: str
    month: int
    year: int
    period_start: date
    period_end: date
    is_current_month: bool
    base_salary: Decimal
    full_month_base_salary: Decimal
    total_working_days: int
    working_days_elapsed: int
    present_days: int
    absent_days: int
    earned_ratio: Decimal
    allowances: List[PayrollLine] = field(default_factory=list)
    total_allowances: Decimal = Decimal('0')
    deductions: DeductionBreakdown = field(default_factory=DeductionBreakdown)
    total_deductions: Decimal = Decimal('0')
    attendance_deduction: Decimal = Decimal('0')
    manual_deduction: Decimal = Decimal('0')
    advance_deduction: Decimal = Decimal('0')
    late_penalty: Decimal = Decimal('0')
    overtime_hours: Decimal = Decimal('0')
    overtime_rate: Decimal = Decimal('0')
    overtime_amount: Decimal = Decimal('0')
    bonuses: Decimal = Decimal('0')
    reward_total: Decimal = Decimal('0')
    social_insurance: Decimal = Decimal('0')
    tax_amount: Decimal = Decimal('0')
    gross_salary: Decimal = Decimal('0')
    net_salary: Decimal = Decimal('0')
    rewards: List[RewardRecord] = field(default_factory=list)


@dataclass
class ProjectionResult:
    """Ephemeral payroll figures for the month in progress"""
    calculation: PayrollCalculation
    status: str = PayrollStatus.PROJECTION

    @property
    def net_salary(self) -> Decimal:
        return self.calculation.net_salary

    def to_dict(self) -> Dict[str, Any]:
        calc = self.calculation
        return {
            'id': 'projection',
            'status': self.status,
            'is_projection': True,
            'company_id': calc.company_id,
            'employee_id': calc.employee_id,
            'employee_name': calc.employee_name,
            'month': calc.month,
            'year': calc.year,
            'period_start': calc.period_start.isoformat(),
            'period_end': calc.period_end.isoformat(),
            'base_salary': str(calc.base_salary),
            'working_days': calc.total_working_days,
            'days_passed_working': calc.working_days_elapsed,
            'earned_ratio': str(calc.earned_ratio),
            'actual_work_days': calc.present_days,
            'absent_days': calc.absent_days,
            'allowances': lines_to_json_ready(calc.allowances),
            'total_allowances': str(calc.total_allowances),
            'deductions': calc.deductions.to_dict(),
            'total_deductions': str(calc.total_deductions),
            'attendance_deduction': str(calc.attendance_deduction),
            'late_penalty': str(calc.late_penalty),
            'overtime_hours': str(calc.overtime_hours),
            'overtime_amount': str(calc.overtime_amount),
            'bonuses': str(calc.bonuses),
            'social_insurance': str(calc.social_insurance),
            'tax_amount': str(calc.tax_amount),
            'gross_salary': str(calc.gross_salary),
            'net_salary': str(calc.net_salary),
        }


@dataclass
class BatchResult:
    """Per-employee outcome lists of a monthly generation run"""
    success: List[Dict[str, Any]] = field(default_factory=list)
    regenerated: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            'success': self.success,
            'regenerated': self.regenerated,
            'skipped': self.skipped,
            'failed': self.failed,
        }
