import os
import sys
import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Add src and project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / 'src'))
sys.path.insert(0, str(ROOT))

# In-memory database, set before the settings module is imported
os.environ['DATABASE_URL'] = 'sqlite://'

from database.db import Base, SessionLocal, engine  # noqa: E402
from database.models import (  # noqa: E402
    AdvanceRequestDB, AttendanceDB, CompanyDB, EmployeeDB, HRSettingsDB,
    ManualDeductionDB, RewardRecordDB
)
from database.repository import PayrollRepository  # noqa: E402
from processors.payroll_service import PayrollService  # noqa: E402
from utils.calendar_utils import working_dates  # noqa: E402

# March 2025 has 22 working days with Friday/Saturday off; 10 have elapsed by the 13th.
# February 2025 has 20 working days.
TODAY = date(2025, 3, 13)
COMPANY_ID = 'acme'
REST_DAYS = (4, 5)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repo(db_session):
    return PayrollRepository(db_session)


@pytest.fixture
def service(repo):
    return PayrollService(repo, today=lambda: TODAY)


@pytest.fixture
def company(db_session):
    company = CompanyDB(id=COMPANY_ID, name='Acme Trading')
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def make_employee(db_session, company):
    """Create an employee; attended_month=(year, month) fills every working day"""
    def _make(employee_id, base_salary, attended_month=None, skip_dates=(), **fields):
        employee = EmployeeDB(
            id=employee_id,
            company_id=COMPANY_ID,
            first_name=fields.pop('first_name', employee_id.title()),
            last_name=fields.pop('last_name', 'Tester'),
            base_salary=Decimal(str(base_salary)),
            **fields
        )
        db_session.add(employee)
        if attended_month:
            year, month = attended_month
            for day in working_dates(year, month, REST_DAYS):
                if day in skip_dates:
                    continue
                db_session.add(AttendanceDB(employee_id=employee_id, date=day, status='PRESENT'))
        db_session.commit()
        return employee
    return _make


@pytest.fixture
def hr_settings(db_session, company):
    def _configure(**fields):
        for key in ('delay_penalty_tiers', 'late_warning_levels', 'tax_brackets'):
            if key in fields and not isinstance(fields[key], str):
                fields[key] = json.dumps(fields[key])
        row = HRSettingsDB(company_id=COMPANY_ID, **fields)
        db_session.add(row)
        db_session.commit()
        return row
    return _configure


@pytest.fixture
def add_reward(db_session):
    def _add(employee_id, value, month=2, year=2025, category='MONETARY', status='APPROVED'):
        reward = RewardRecordDB(
            company_id=COMPANY_ID,
            employee_id=employee_id,
            title='Quarterly bonus',
            category=category,
            value=Decimal(str(value)),
            status=status,
            applied_month=month,
            applied_year=year,
            is_included_in_payroll=False
        )
        db_session.add(reward)
        db_session.commit()
        return reward
    return _add


@pytest.fixture
def add_advance(db_session):
    def _add(employee_id, remaining, repayment_type='INSTALLMENTS', installment=0):
        advance = AdvanceRequestDB(
            employee_id=employee_id,
            amount=Decimal(str(remaining)),
            remaining_balance=Decimal(str(remaining)),
            repayment_type=repayment_type,
            installment_amount=Decimal(str(installment)),
            status='APPROVED',
            is_paid_off=False
        )
        db_session.add(advance)
        db_session.commit()
        return advance
    return _add


@pytest.fixture
def add_manual_deduction(db_session):
    def _add(employee_id, amount, day, reason='Damaged equipment', status='APPROVED'):
        deduction = ManualDeductionDB(
            company_id=COMPANY_ID,
            employee_id=employee_id,
            amount=Decimal(str(amount)),
            reason=reason,
            date=day,
            effective_month=day.month,
            effective_year=day.year,
            status=status
        )
        db_session.add(deduction)
        db_session.commit()
        return deduction
    return _add
