from sqlalchemy import (
    Boolean, Column, Integer, String, Date, Numeric, Text, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
from .db import Base


class CompanyDB(Base):
    """Tenant database model"""
    __tablename__ = "companies"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    employees = relationship("EmployeeDB", back_populates="company")
    hr_settings = relationship("HRSettingsDB", back_populates="company", uselist=False)

    def __repr__(self):
        return f"<Company(id={self.id}, name={self.name})>"


class EmployeeDB(Base):
    """Employee database model"""
    __tablename__ = "employees"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey('companies.id'), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, default='')
    base_salary = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    enable_auto_deduction = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    company = relationship("CompanyDB", back_populates="employees")
    attendance = relationship("AttendanceDB", back_populates="employee")
    payrolls = relationship("PayrollDB", back_populates="employee")

    def __repr__(self):
        return f"<Employee(id={self.id}, name={self.first_name} {self.last_name})>"


class AttendanceDB(Base):
    """Daily attendance written by the time-tracking system"""
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String, ForeignKey('employees.id'), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False)  # 'PRESENT', 'LATE', 'REMOTE', 'ABSENT'
    late_minutes = Column(Integer, default=0)
    early_leave_minutes = Column(Integer, default=0)
    overtime_hours = Column(Numeric(6, 2), default=0)
    check_in = Column(DateTime)
    check_out = Column(DateTime)

    # Relationships
    employee = relationship("EmployeeDB", back_populates="attendance")

    def __repr__(self):
        return f"<Attendance(employee={self.employee_id}, date={self.date}, status={self.status})>"


class HRSettingsDB(Base):
    """Per-tenant HR rules"""
    __tablename__ = "hr_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String, ForeignKey('companies.id'), nullable=False, unique=True)

    work_start_time = Column(String(5), default='09:00')
    grace_period_minutes = Column(Integer, default=0)
    absence_penalty_rate = Column(Numeric(6, 2))
    max_daily_deduction_days = Column(Numeric(6, 2), default=0)
    monthly_late_limit = Column(Integer)
    overtime_rate = Column(Numeric(6, 2))
    social_insurance_rate = Column(Numeric(5, 2), default=0)
    tax_rate = Column(Numeric(5, 2), default=0)
    weekly_rest_days = Column(String(20))  # comma separated weekday numbers
    early_leave_attribution = Column(String(20))

    # Rule tables stored as JSON
    delay_penalty_tiers = Column(Text)  # [{"min_minutes": 15, "deduction_days": 0.25}]
    late_warning_levels = Column(Text)  # [{"occurrence_count": 1, "deduction_factor": 0.5}]
    tax_brackets = Column(Text)  # [{"min": 0, "max": 15000, "rate": 0}]

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    company = relationship("CompanyDB", back_populates="hr_settings")

    def __repr__(self):
        return f"<HRSettings(company={self.company_id})>"


class ManualDeductionDB(Base):
    """Manually entered deduction for an employee"""
    __tablename__ = "manual_deductions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String, ForeignKey('companies.id'), nullable=False, index=True)
    employee_id = Column(String, ForeignKey('employees.id'), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    reason = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    effective_month = Column(Integer, nullable=False)
    effective_year = Column(Integer, nullable=False)
    status = Column(String(20), default='PENDING')  # 'PENDING', 'APPROVED', 'APPLIED'

    def __repr__(self):
        return f"<ManualDeduction(id={self.id}, employee={self.employee_id}, amount={self.amount})>"


class AdvanceRequestDB(Base):
    """Cash advance repaid through payroll"""
    __tablename__ = "advance_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String, ForeignKey('employees.id'), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    remaining_balance = Column(Numeric(12, 2), nullable=False)
    repayment_type = Column(String(20), nullable=False)  # 'INSTALLMENTS', 'FULL'
    installment_amount = Column(Numeric(12, 2), default=0)
    status = Column(String(20), default='PENDING')  # 'PENDING', 'APPROVED', 'COMPLETED'
    is_paid_off = Column(Boolean, default=False)

    def __repr__(self):
        return f"<AdvanceRequest(id={self.id}, employee={self.employee_id}, remaining={self.remaining_balance})>"


class RewardRecordDB(Base):
    """Reward credited through payroll"""
    __tablename__ = "reward_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String, ForeignKey('companies.id'), nullable=False, index=True)
    employee_id = Column(String, ForeignKey('employees.id'), nullable=False, index=True)
    title = Column(String(255), default='')
    category = Column(String(20), nullable=False)  # 'MONETARY', 'NON_MONETARY', 'POINTS'
    value = Column(Numeric(12, 2), default=0)
    status = Column(String(20), default='PENDING')  # 'PENDING', 'APPROVED', 'APPLIED'
    applied_month = Column(Integer)
    applied_year = Column(Integer)
    is_included_in_payroll = Column(Boolean, default=False)
    payroll_id = Column(Integer, ForeignKey('payrolls.id'))

    def __repr__(self):
        return f"<RewardRecord(id={self.id}, employee={self.employee_id}, value={self.value})>"


class PayrollDB(Base):
    """Payroll database model, one row per employee and period"""
    __tablename__ = "payrolls"
    __table_args__ = (UniqueConstraint('employee_id', 'month', 'year', name='uq_payroll_employee_period'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String, ForeignKey('companies.id'), nullable=False, index=True)
    employee_id = Column(String, ForeignKey('employees.id'), nullable=False)

    # Period information
    month = Column(Integer, nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)

    # Salary and attendance
    base_salary = Column(Numeric(12, 2), nullable=False)
    working_days = Column(Integer, nullable=False)
    actual_work_days = Column(Integer, nullable=False)
    absent_days = Column(Integer, default=0)

    # Detailed data stored as JSON
    allowances = Column(Text, nullable=False, default='[]')
    deductions = Column(Text, nullable=False, default='{}')

    # Financial totals
    total_allowances = Column(Numeric(12, 2), default=0)
    total_deductions = Column(Numeric(12, 2), default=0)
    attendance_deduction = Column(Numeric(12, 2), default=0)
    late_penalty = Column(Numeric(12, 2), default=0)
    overtime_hours = Column(Numeric(8, 2), default=0)
    overtime_rate = Column(Numeric(6, 2), default=0)
    overtime_amount = Column(Numeric(12, 2), default=0)
    bonuses = Column(Numeric(12, 2), default=0)
    bonus_notes = Column(Text)
    social_insurance = Column(Numeric(12, 2), default=0)
    tax_amount = Column(Numeric(12, 2), default=0)
    gross_salary = Column(Numeric(12, 2), nullable=False)
    net_salary = Column(Numeric(12, 2), nullable=False)

    # Workflow
    status = Column(String(20), nullable=False, default='DRAFT')  # 'DRAFT', 'APPROVED', 'PAID'
    notes = Column(Text)
    paid_at = Column(DateTime)
    payment_method = Column(String(50))
    payment_reference = Column(String(100))

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    employee = relationship("EmployeeDB", back_populates="payrolls")
    rewards = relationship("RewardRecordDB")

    def __repr__(self):
        return f"<Payroll(id={self.id}, employee={self.employee_id}, period={self.year}-{self.month:02d})>"
