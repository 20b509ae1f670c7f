from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


class AttendanceStatus:
    """Attendance record statuses"""
    PRESENT = 'PRESENT'
    LATE = 'LATE'
    REMOTE = 'REMOTE'
    ABSENT = 'ABSENT'

    ATTENDED = (PRESENT, LATE, REMOTE)


@dataclass
class Employee:
    """Employee data model"""
    employee_id: str
    company_id: str
    first_name: str
    last_name: str
    base_salary: Decimal
    is_active: bool = True
    auto_deduction_enabled: bool = True

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return f"Employee({self.employee_id}, {self.name})"


@dataclass
class AttendanceRecord:
    """One attendance record for a calendar day"""
    date: date
    status: str
    late_minutes: int = 0
    early_leave_minutes: int = 0
    overtime_hours: Decimal = Decimal('0')
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None

    @property
    def is_attended(self) -> bool:
        return self.status in AttendanceStatus.ATTENDED

    @property
    def is_late(self) -> bool:
        return self.late_minutes > 0 or self.status == AttendanceStatus.LATE
