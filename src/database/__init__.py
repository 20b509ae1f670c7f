from .db import engine, SessionLocal, Base, init_db
from .models import (
    CompanyDB,
    EmployeeDB,
    AttendanceDB,
    HRSettingsDB,
    ManualDeductionDB,
    AdvanceRequestDB,
    RewardRecordDB,
    PayrollDB
)
from .repository import PayrollRepository

__all__ = [
    'engine',
    'SessionLocal',
    'Base',
    'init_db',
    'CompanyDB',
    'EmployeeDB',
    'AttendanceDB',
    'HRSettingsDB',
    'ManualDeductionDB',
    'AdvanceRequestDB',
    'RewardRecordDB',
    'PayrollDB',
    'PayrollRepository'
]
