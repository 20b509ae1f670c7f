from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import and_
from typing import List, Optional, Tuple
from datetime import date, datetime
from decimal import Decimal
import json
import logging
from .models import (
    CompanyDB, EmployeeDB, AttendanceDB, HRSettingsDB, ManualDeductionDB,
    AdvanceRequestDB, RewardRecordDB, PayrollDB
)
from models.employee import Employee, AttendanceRecord
from models.payroll import (
    AdvanceRequest, AdvanceStatus, DeductionBreakdown, DeductionStatus, ManualDeduction,
    PayrollCalculation, PayrollStatus, RewardRecord, RewardStatus,
    lines_from_json_ready, lines_to_json_ready
)
from models.settings import (
    DelayPenaltyTier, EarlyLeaveAttribution, HRSettings, LateWarningLevel, TaxBracket
)
from config.settings import (
    DEFAULT_ABSENCE_PENALTY_RATE, DEFAULT_MONTHLY_LATE_LIMIT, DEFAULT_OVERTIME_RATE, WEEKLY_REST_DAYS
)
from utils.calendar_utils import month_bounds
from utils.errors import DuplicatePayrollError, ValidationError
from utils.validators import validate_rate

logger = logging.getLogger(__name__)

# Remaining balance at or below this counts as paid off
PAID_OFF_TOLERANCE = Decimal('0.01')


def _dec(value, default: Decimal = Decimal('0')) -> Decimal:
    if value is None or value == '':
        return default
    return Decimal(str(value))


def _json_list(raw: Optional[str]) -> list:
    if not raw:
        return []
    return json.loads(raw)


class PayrollRepository:
    """Repository for payroll data operations"""

    def __init__(self, db_session: Session):
        self.db = db_session

    # ========== Tenant and Employee Operations ==========

    def get_company(self, company_id: str) -> Optional[CompanyDB]:
        """Get company by ID"""
        return self.db.query(CompanyDB).filter_by(id=company_id).first()

    def get_employee(self, company_id: str, employee_id: str) -> Optional[EmployeeDB]:
        """Get employee by ID within a company"""
        return self.db.query(EmployeeDB).filter_by(id=employee_id, company_id=company_id).first()

    def get_active_employees(self, company_id: str) -> List[EmployeeDB]:
        """Get all active employees of a company"""
        return self.db.query(EmployeeDB).filter_by(
            company_id=company_id, is_active=True
        ).order_by(EmployeeDB.id).all()

    @staticmethod
    def to_employee(row: EmployeeDB) -> Employee:
        return Employee(
            employee_id=row.id,
            company_id=row.company_id,
            first_name=row.first_name,
            last_name=row.last_name or '',
            base_salary=_dec(row.base_salary),
            is_active=bool(row.is_active),
            auto_deduction_enabled=row.enable_auto_deduction is not False,
        )

    # ========== Calculation Inputs ==========

    def get_hr_settings(self, company_id: str) -> HRSettings:
        """Immutable settings snapshot; defaults when the tenant has none"""
        row = self.db.query(HRSettingsDB).filter_by(company_id=company_id).first()
        if not row:
            return HRSettings(company_id=company_id)

        social_insurance_rate = _dec(row.social_insurance_rate)
        if not validate_rate(social_insurance_rate):
            raise ValidationError('Invalid HR settings', [
                {'field': 'social_insurance_rate', 'message': 'Rate must be between 0 and 100'}
            ])

        tax_brackets = None
        if row.tax_brackets:
            tax_brackets = tuple(
                TaxBracket(
                    min=_dec(b.get('min')),
                    max=None if b.get('max') is None else _dec(b['max']),
                    rate=_dec(b.get('rate')),
                )
                for b in sorted(_json_list(row.tax_brackets), key=lambda b: b.get('min', 0))
            )

        rest_days = WEEKLY_REST_DAYS
        if row.weekly_rest_days:
            rest_days = tuple(int(d) for d in row.weekly_rest_days.split(',') if d.strip())

        return HRSettings(
            company_id=company_id,
            work_start_time=row.work_start_time or '09:00',
            grace_period_minutes=row.grace_period_minutes or 0,
            # zero means "not configured" for these rates
            absence_penalty_rate=_dec(row.absence_penalty_rate) or DEFAULT_ABSENCE_PENALTY_RATE,
            max_daily_deduction_days=_dec(row.max_daily_deduction_days),
            delay_penalty_tiers=tuple(
                DelayPenaltyTier(min_minutes=int(t['min_minutes']), deduction_days=_dec(t.get('deduction_days')))
                for t in _json_list(row.delay_penalty_tiers)
            ),
            late_warning_levels=tuple(
                LateWarningLevel(occurrence_count=int(l['occurrence_count']), deduction_factor=_dec(l.get('deduction_factor')))
                for l in _json_list(row.late_warning_levels)
            ),
            monthly_late_limit=row.monthly_late_limit or DEFAULT_MONTHLY_LATE_LIMIT,
            overtime_rate=_dec(row.overtime_rate) or DEFAULT_OVERTIME_RATE,
            social_insurance_rate=social_insurance_rate,
            tax_rate=_dec(row.tax_rate),
            tax_brackets=tax_brackets,
            weekly_rest_days=rest_days,
            early_leave_attribution=row.early_leave_attribution or EarlyLeaveAttribution.LAST_CHECKOUT,
        )

    def get_attendance(self, employee_id: str, year: int, month: int) -> List[AttendanceRecord]:
        """Attendance records of one employee-month"""
        start, end = month_bounds(year, month)
        rows = self.db.query(AttendanceDB).filter(
            and_(
                AttendanceDB.employee_id == employee_id,
                AttendanceDB.date >= start,
                AttendanceDB.date <= end
            )
        ).order_by(AttendanceDB.date).all()
        return [
            AttendanceRecord(
                date=r.date,
                status=r.status,
                late_minutes=r.late_minutes or 0,
                early_leave_minutes=r.early_leave_minutes or 0,
                overtime_hours=_dec(r.overtime_hours),
                check_in=r.check_in,
                check_out=r.check_out,
            )
            for r in rows
        ]

    def get_manual_deductions(self, company_id: str, employee_id: str, month: int, year: int) -> List[ManualDeduction]:
        """Approved or applied manual deductions tagged to the period"""
        rows = self.db.query(ManualDeductionDB).filter(
            and_(
                ManualDeductionDB.company_id == company_id,
                ManualDeductionDB.employee_id == employee_id,
                ManualDeductionDB.effective_month == month,
                ManualDeductionDB.effective_year == year,
                ManualDeductionDB.status.in_(DeductionStatus.INCLUDED)
            )
        ).order_by(ManualDeductionDB.date, ManualDeductionDB.id).all()
        return [
            ManualDeduction(
                deduction_id=r.id,
                amount=_dec(r.amount),
                reason=r.reason,
                date=r.date,
                effective_month=r.effective_month,
                effective_year=r.effective_year,
                status=r.status,
            )
            for r in rows
        ]

    def get_active_advances(self, employee_id: str) -> List[AdvanceRequest]:
        """Approved advances with a balance left to repay"""
        rows = self.db.query(AdvanceRequestDB).filter(
            and_(
                AdvanceRequestDB.employee_id == employee_id,
                AdvanceRequestDB.status == AdvanceStatus.APPROVED,
                AdvanceRequestDB.is_paid_off.is_(False),
                AdvanceRequestDB.remaining_balance > 0
            )
        ).order_by(AdvanceRequestDB.id).all()
        return [
            AdvanceRequest(
                advance_id=r.id,
                remaining_balance=_dec(r.remaining_balance),
                repayment_type=r.repayment_type,
                installment_amount=_dec(r.installment_amount),
                status=r.status,
                is_paid_off=bool(r.is_paid_off),
            )
            for r in rows
        ]

    def get_approved_rewards_for_payroll(self, company_id: str, employee_id: str,
                                         month: int, year: int) -> List[RewardRecord]:
        """Approved rewards for the period not yet consumed by a payroll"""
        rows = self.db.query(RewardRecordDB).filter(
            and_(
                RewardRecordDB.company_id == company_id,
                RewardRecordDB.employee_id == employee_id,
                RewardRecordDB.status == RewardStatus.APPROVED,
                RewardRecordDB.is_included_in_payroll.is_(False),
                RewardRecordDB.applied_month == month,
                RewardRecordDB.applied_year == year
            )
        ).order_by(RewardRecordDB.id).all()
        return [
            RewardRecord(
                reward_id=r.id,
                category=r.category,
                amount=_dec(r.value),
                applied_month=r.applied_month,
                applied_year=r.applied_year,
                status=r.status,
                is_included_in_payroll=bool(r.is_included_in_payroll),
                title=r.title or '',
            )
            for r in rows
        ]

    # ========== Payroll Operations ==========

    def get_payroll_record(self, employee_id: str, year: int, month: int) -> Optional[PayrollDB]:
        """Get specific payroll record"""
        return self.db.query(PayrollDB).filter(
            and_(
                PayrollDB.employee_id == employee_id,
                PayrollDB.year == year,
                PayrollDB.month == month
            )
        ).first()

    def get_payroll(self, company_id: str, payroll_id: int) -> Optional[PayrollDB]:
        """Get payroll by ID within a company"""
        return self.db.query(PayrollDB).filter_by(id=payroll_id, company_id=company_id).first()

    def get_period_payrolls(self, company_id: str, month: int, year: int) -> List[PayrollDB]:
        """Get all payrolls of a company for a period"""
        return self.db.query(PayrollDB).filter(
            and_(
                PayrollDB.company_id == company_id,
                PayrollDB.month == month,
                PayrollDB.year == year
            )
        ).all()

    def get_payrolls(self, company_id: str, employee_id: Optional[str] = None, month: Optional[int] = None,
                     year: Optional[int] = None, status: Optional[str] = None,
                     page: int = 1, limit: int = 20) -> Tuple[List[PayrollDB], int]:
        """Filtered page of a company's payrolls, newest period first; returns (rows, total)"""
        query = self.db.query(PayrollDB).filter(PayrollDB.company_id == company_id)
        if employee_id:
            query = query.filter(PayrollDB.employee_id == employee_id)
        if month:
            query = query.filter(PayrollDB.month == month)
        if year:
            query = query.filter(PayrollDB.year == year)
        if status:
            query = query.filter(PayrollDB.status == status)

        total = query.count()
        rows = query.order_by(
            PayrollDB.year.desc(), PayrollDB.month.desc(), PayrollDB.employee_id, PayrollDB.id
        ).offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def get_last_payroll_for_employee(self, company_id: str, employee_id: str) -> Optional[PayrollDB]:
        """Most recently created payroll of an employee"""
        return self.db.query(PayrollDB).filter_by(
            company_id=company_id, employee_id=employee_id
        ).order_by(PayrollDB.created_at.desc(), PayrollDB.id.desc()).first()

    def save_payroll(self, calculation: PayrollCalculation, bonus_notes: Optional[str] = None,
                     notes: Optional[str] = None) -> PayrollDB:
        """Persist a calculation and consume its rewards in one transaction"""
        record = PayrollDB(
            company_id=calculation.company_id,
            employee_id=calculation.employee_id,
            month=calculation.month,
            year=calculation.year,
            period_start=calculation.period_start,
            period_end=calculation.period_end,
            base_salary=calculation.base_salary,
            working_days=calculation.total_working_days,
            actual_work_days=calculation.present_days,
            absent_days=calculation.absent_days,
            allowances=json.dumps(lines_to_json_ready(calculation.allowances)),
            deductions=json.dumps(calculation.deductions.to_dict()),
            total_allowances=calculation.total_allowances,
            total_deductions=calculation.total_deductions,
            attendance_deduction=calculation.attendance_deduction,
            late_penalty=calculation.late_penalty,
            overtime_hours=calculation.overtime_hours,
            overtime_rate=calculation.overtime_rate,
            overtime_amount=calculation.overtime_amount,
            bonuses=calculation.bonuses,
            bonus_notes=bonus_notes,
            social_insurance=calculation.social_insurance,
            tax_amount=calculation.tax_amount,
            gross_salary=calculation.gross_salary,
            net_salary=calculation.net_salary,
            status=PayrollStatus.DRAFT,
            notes=notes
        )
        try:
            self.db.add(record)
            self.db.flush()  # Get the ID

            reward_ids = [r.reward_id for r in calculation.rewards]
            if reward_ids:
                self.db.query(RewardRecordDB).filter(
                    RewardRecordDB.id.in_(reward_ids)
                ).update({
                    RewardRecordDB.payroll_id: record.id,
                    RewardRecordDB.is_included_in_payroll: True,
                    RewardRecordDB.status: RewardStatus.APPLIED
                }, synchronize_session=False)

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicatePayrollError(calculation.month, calculation.year)
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(record)
        return record

    def _release_rewards(self, payroll_id: int):
        """Return rewards consumed by a deleted payroll to the approved pool"""
        self.db.query(RewardRecordDB).filter(
            RewardRecordDB.payroll_id == payroll_id
        ).update({
            RewardRecordDB.payroll_id: None,
            RewardRecordDB.is_included_in_payroll: False,
            RewardRecordDB.status: RewardStatus.APPROVED
        }, synchronize_session=False)

    def delete_payroll(self, record: PayrollDB):
        """Delete an unpaid payroll and release its rewards"""
        try:
            self._release_rewards(record.id)
            self.db.delete(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def delete_unpaid_period_payrolls(self, company_id: str, month: int, year: int) -> List[str]:
        """Delete a period's unpaid payrolls; returns the affected employee IDs"""
        records = [r for r in self.get_period_payrolls(company_id, month, year) if r.status != PayrollStatus.PAID]
        employee_ids = [r.employee_id for r in records]
        try:
            for record in records:
                self._release_rewards(record.id)
                self.db.delete(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return employee_ids

    def update_payroll(self, record: PayrollDB, **fields) -> PayrollDB:
        """Write changed payroll fields"""
        try:
            for name, value in fields.items():
                setattr(record, name, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record

    def mark_paid(self, record: PayrollDB, method: str, reference: Optional[str],
                  paid_at: Optional[datetime] = None) -> PayrollDB:
        """Flip a payroll to PAID and settle its advance repayments in one transaction"""
        breakdown = DeductionBreakdown.from_dict(json.loads(record.deductions or '{}'))
        try:
            record.status = PayrollStatus.PAID
            record.paid_at = paid_at or datetime.utcnow()
            record.payment_method = method
            record.payment_reference = reference

            for item in breakdown.advance_details:
                advance = self.db.query(AdvanceRequestDB).filter_by(id=item.advance_id).first()
                if not advance:
                    logger.warning("Advance %s of payroll %s no longer exists", item.advance_id, record.id)
                    continue
                new_balance = _dec(advance.remaining_balance) - item.amount
                is_paid_off = new_balance <= PAID_OFF_TOLERANCE
                advance.remaining_balance = new_balance if new_balance > 0 else Decimal('0')
                advance.is_paid_off = is_paid_off
                if is_paid_off:
                    advance.status = AdvanceStatus.COMPLETED

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(record)
        return record

    # ========== Helper Methods ==========

    @staticmethod
    def payroll_to_dict(record: PayrollDB) -> dict:
        """JSON-ready view of a payroll row"""
        def money(value):
            return str(_dec(value))

        return {
            'id': record.id,
            'company_id': record.company_id,
            'employee_id': record.employee_id,
            'month': record.month,
            'year': record.year,
            'period_start': record.period_start.isoformat(),
            'period_end': record.period_end.isoformat(),
            'base_salary': money(record.base_salary),
            'working_days': record.working_days,
            'actual_work_days': record.actual_work_days,
            'absent_days': record.absent_days,
            'allowances': [
                {'category': l.category, 'amount': str(l.amount), 'note': l.note}
                for l in lines_from_json_ready(json.loads(record.allowances or '[]'))
            ],
            'deductions': json.loads(record.deductions or '{}'),
            'total_allowances': money(record.total_allowances),
            'total_deductions': money(record.total_deductions),
            'attendance_deduction': money(record.attendance_deduction),
            'late_penalty': money(record.late_penalty),
            'overtime_hours': money(record.overtime_hours),
            'overtime_rate': money(record.overtime_rate),
            'overtime_amount': money(record.overtime_amount),
            'bonuses': money(record.bonuses),
            'bonus_notes': record.bonus_notes,
            'social_insurance': money(record.social_insurance),
            'tax_amount': money(record.tax_amount),
            'gross_salary': money(record.gross_salary),
            'net_salary': money(record.net_salary),
            'status': record.status,
            'notes': record.notes,
            'paid_at': record.paid_at.isoformat() if record.paid_at else None,
            'payment_method': record.payment_method,
            'payment_reference': record.payment_reference,
        }
