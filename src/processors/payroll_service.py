"""
Payroll service.

Loads calculation inputs through the repository, runs the pure calculator
and persists the result. Lifecycle: DRAFT -> APPROVED -> PAID, where PAID is
terminal and every further mutation raises ``PayrollAlreadyPaidError``.
"""
import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from database.models import EmployeeDB, PayrollDB
from database.repository import PayrollRepository
from models.payroll import (
    BatchResult, DeductionBreakdown, PayrollCalculation, PayrollLine, PayrollStatus, ProjectionResult,
    lines_to_json_ready
)
from processors.payroll_calculator import AD_HOC_NOTE, PayrollInputs, calculate_payroll
from utils.errors import DuplicatePayrollError, NotFoundError, PayrollAlreadyPaidError
from utils.formatters import to_money
from utils.validators import (
    validate_amount, validate_amounts, validate_list_filters, validate_payroll_period
)

logger = logging.getLogger(__name__)

# Fields an unpaid payroll may be edited on; totals are recomputed from them
EDITABLE_AMOUNTS = (
    'base_salary', 'overtime_amount', 'bonuses', 'social_insurance', 'tax_amount'
)


class PayrollService:
    """Create, regenerate, project and settle monthly payrolls"""

    def __init__(self, repository: PayrollRepository, today: Callable[[], date] = date.today):
        self.repo = repository
        self.today = today

    # ========== Calculation ==========

    def _load_employee(self, company_id: str, employee_id: str) -> EmployeeDB:
        row = self.repo.get_employee(company_id, employee_id)
        if not row:
            raise NotFoundError('Employee', employee_id)
        return row

    def calculate_payroll_data(self, company_id: str, employee_id: str, month: int, year: int,
                               allowances: Optional[Dict] = None, deductions: Optional[Dict] = None,
                               bonuses=0, as_of: Optional[date] = None) -> PayrollCalculation:
        """Run the calculation pipeline without saving anything"""
        employee = self.repo.to_employee(self._load_employee(company_id, employee_id))

        inputs = PayrollInputs(
            employee=employee,
            settings=self.repo.get_hr_settings(company_id),
            month=month,
            year=year,
            as_of=as_of or self.today(),
            attendance=self.repo.get_attendance(employee_id, year, month),
            manual_deductions=self.repo.get_manual_deductions(company_id, employee_id, month, year),
            advances=self.repo.get_active_advances(employee_id),
            rewards=self.repo.get_approved_rewards_for_payroll(company_id, employee_id, month, year),
            allowances=validate_amounts(allowances, 'allowances'),
            extra_deductions=validate_amounts(deductions, 'deductions'),
            bonuses=validate_amount(bonuses, 'bonuses'),
        )
        return calculate_payroll(inputs)

    # ========== Creation ==========

    def create_payroll(self, company_id: str, employee_id: str, month, year,
                       allowances: Optional[Dict] = None, deductions: Optional[Dict] = None,
                       bonuses=0, bonus_notes: Optional[str] = None,
                       notes: Optional[str] = None) -> PayrollDB:
        """Calculate and persist one employee's payroll for a period"""
        month, year = validate_payroll_period(month, year, self.today())
        # Reject malformed amounts before looking for an existing payroll
        bonuses = validate_amount(bonuses, 'bonuses')
        allowances = validate_amounts(allowances, 'allowances')
        deductions = validate_amounts(deductions, 'deductions')

        if self.repo.get_payroll_record(employee_id, year, month):
            raise DuplicatePayrollError(month, year)

        calculation = self.calculate_payroll_data(
            company_id, employee_id, month, year, allowances, deductions, bonuses
        )
        payroll = self.repo.save_payroll(calculation, bonus_notes=bonus_notes, notes=notes)
        logger.info(
            "Created payroll %s for %s %02d/%s: gross %s, net %s",
            payroll.id, employee_id, month, year, calculation.gross_salary, calculation.net_salary
        )
        return payroll

    def generate_monthly_payroll(self, company_id: str, month, year,
                                 force_regenerate: bool = False) -> BatchResult:
        """Create payrolls for every active employee, isolating per-employee failures"""
        month, year = validate_payroll_period(month, year, self.today())
        if not self.repo.get_company(company_id):
            raise NotFoundError('Company', company_id)

        results = BatchResult()
        previously_generated = set()
        processed = set()

        if force_regenerate:
            previously_generated = set(self.repo.delete_unpaid_period_payrolls(company_id, month, year))
            logger.info("Deleted %s unpaid payrolls for %02d/%s", len(previously_generated), month, year)

        for employee in self.repo.get_active_employees(company_id):
            employee_name = f"{employee.first_name} {employee.last_name}".strip()
            processed.add(employee.id)
            try:
                existing = self.repo.get_payroll_record(employee.id, year, month)
                if existing:
                    results.skipped.append({
                        'employee_id': employee.id,
                        'employee_name': employee_name,
                        'existing_payroll_id': existing.id,
                        'message': 'Payroll already paid' if existing.status == PayrollStatus.PAID
                        else 'Payroll already exists'
                    })
                    continue

                payroll = self.create_payroll(company_id, employee.id, month, year)
                entry = {
                    'employee_id': employee.id,
                    'employee_name': employee_name,
                    'payroll_id': payroll.id
                }
                if employee.id in previously_generated:
                    results.regenerated.append(entry)
                else:
                    results.success.append(entry)
            except Exception as e:
                logger.exception("Payroll generation failed for %s", employee.id)
                results.failed.append({
                    'employee_id': employee.id,
                    'employee_name': employee_name,
                    'error': str(e)
                })

        # Deleted drafts of employees who have since been deactivated
        for employee_id in sorted(previously_generated - processed):
            employee = self.repo.get_employee(company_id, employee_id)
            results.skipped.append({
                'employee_id': employee_id,
                'employee_name': f"{employee.first_name} {employee.last_name}".strip() if employee else '',
                'existing_payroll_id': None,
                'message': 'Employee inactive, unpaid payroll removed'
            })

        logger.info(
            "Monthly payroll %02d/%s for %s: %s created, %s regenerated, %s skipped, %s failed",
            month, year, company_id, len(results.success), len(results.regenerated),
            len(results.skipped), len(results.failed)
        )
        return results

    # ========== Projection ==========

    def get_payroll_projection(self, company_id: str, employee_id: str) -> ProjectionResult:
        """What the employee is owed so far this month; nothing is persisted"""
        today = self.today()
        calculation = self.calculate_payroll_data(company_id, employee_id, today.month, today.year, as_of=today)
        logger.debug(
            "Projection for %s: %s of %s working days, net %s",
            employee_id, calculation.working_days_elapsed, calculation.total_working_days, calculation.net_salary
        )
        return ProjectionResult(calculation=calculation)

    # ========== Lifecycle ==========

    def get_payroll(self, company_id: str, payroll_id: int) -> PayrollDB:
        payroll = self.repo.get_payroll(company_id, payroll_id)
        if not payroll:
            raise NotFoundError('Payroll', payroll_id)
        return payroll

    def get_payrolls(self, company_id: str, employee_id: Optional[str] = None, month=None, year=None,
                     status: Optional[str] = None, page=1, limit=20) -> Dict[str, Any]:
        """One page of a company's payrolls, newest period first"""
        filters = validate_list_filters(month=month, year=year, page=page, limit=limit)
        rows, total = self.repo.get_payrolls(
            company_id, employee_id=employee_id, month=filters['month'], year=filters['year'],
            status=status, page=filters['page'], limit=filters['limit']
        )
        return {
            'payrolls': rows,
            'pagination': {
                'page': filters['page'],
                'limit': filters['limit'],
                'total': total,
                'total_pages': (total + filters['limit'] - 1) // filters['limit'],
            }
        }

    def get_last_payroll_for_employee(self, company_id: str, employee_id: str) -> Optional[PayrollDB]:
        self._load_employee(company_id, employee_id)
        return self.repo.get_last_payroll_for_employee(company_id, employee_id)

    def _get_mutable(self, company_id: str, payroll_id: int) -> PayrollDB:
        payroll = self.get_payroll(company_id, payroll_id)
        if payroll.status == PayrollStatus.PAID:
            raise PayrollAlreadyPaidError(payroll_id)
        return payroll

    def update_payroll(self, company_id: str, payroll_id: int, changes: Optional[Dict] = None) -> PayrollDB:
        """Edit amounts of an unpaid payroll and recompute gross and net

        ``allowances`` replaces the allowance lines. ``deductions`` replaces the
        ad-hoc deduction lines; ledger and advance repayment lines are kept so
        paying the payroll still settles its advances.
        """
        changes = changes or {}
        payroll = self._get_mutable(company_id, payroll_id)
        amounts = {name: validate_amount(changes[name], name) for name in EDITABLE_AMOUNTS if name in changes}
        fields = {}

        total_allowances = Decimal(str(payroll.total_allowances or 0))
        if 'allowances' in changes:
            lines = [
                PayrollLine(category=name, amount=to_money(amount))
                for name, amount in validate_amounts(changes['allowances'], 'allowances').items()
            ]
            total_allowances = sum((line.amount for line in lines), Decimal('0'))
            fields['allowances'] = json.dumps(lines_to_json_ready(lines))
            fields['total_allowances'] = total_allowances

        total_deductions = Decimal(str(payroll.total_deductions or 0))
        if 'deductions' in changes:
            ad_hoc = validate_amounts(changes['deductions'], 'deductions')
            breakdown = DeductionBreakdown.from_dict(json.loads(payroll.deductions or '{}'))
            breakdown.lines = [line for line in breakdown.lines if line.note != AD_HOC_NOTE] + [
                PayrollLine(name, to_money(amount), note=AD_HOC_NOTE) for name, amount in ad_hoc.items()
            ]
            total_deductions = breakdown.total
            fields['deductions'] = json.dumps(breakdown.to_dict())
            fields['total_deductions'] = total_deductions

        def current(name):
            return amounts.get(name, Decimal(str(getattr(payroll, name) or 0)))

        gross = (current('base_salary') + total_allowances
                 + current('overtime_amount') + current('bonuses'))
        net = max(Decimal('0'), gross - total_deductions
                  - current('social_insurance') - current('tax_amount'))

        fields.update({name: to_money(value) for name, value in amounts.items()})
        fields['gross_salary'] = to_money(gross)
        fields['net_salary'] = to_money(net)
        if 'notes' in changes:
            fields['notes'] = changes['notes']
        return self.repo.update_payroll(payroll, **fields)

    def approve_payroll(self, company_id: str, payroll_id: int) -> PayrollDB:
        payroll = self._get_mutable(company_id, payroll_id)
        return self.repo.update_payroll(payroll, status=PayrollStatus.APPROVED)

    def mark_as_paid(self, company_id: str, payroll_id: int, method: str = 'bank_transfer',
                     reference: Optional[str] = None) -> PayrollDB:
        """Pay a payroll and settle the advance repayments it withheld"""
        payroll = self._get_mutable(company_id, payroll_id)
        payroll = self.repo.mark_paid(payroll, method, reference)
        logger.info("Payroll %s marked as paid via %s", payroll_id, method)
        return payroll

    def bulk_mark_as_paid(self, company_id: str, payroll_ids: List[int], method: str = 'bank_transfer',
                          reference: Optional[str] = None) -> Dict[str, List]:
        """Pay several payrolls; each one settles independently"""
        results = {'updated': [], 'failed': []}
        for payroll_id in payroll_ids:
            try:
                self.mark_as_paid(company_id, payroll_id, method, reference)
                results['updated'].append(payroll_id)
            except Exception as e:
                logger.error("Failed to mark payroll %s as paid: %s", payroll_id, e)
                results['failed'].append({'payroll_id': payroll_id, 'error': str(e)})
        return results

    def delete_payroll(self, company_id: str, payroll_id: int):
        payroll = self._get_mutable(company_id, payroll_id)
        self.repo.delete_payroll(payroll)
        logger.info("Deleted payroll %s", payroll_id)
