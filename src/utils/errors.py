"""
Payroll error kinds.

Every error a caller can act on has its own class, a machine-readable
``code`` and the HTTP status the web layer answers with. Batch generation
catches these per employee; everything else lets them propagate.
"""
from typing import Dict, List, Optional


class PayrollError(Exception):
    """Base class for payroll errors"""
    code = 'PAYROLL_ERROR'
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {'success': False, 'code': self.code, 'message': self.message}


class ValidationError(PayrollError):
    """Invalid request data, rejected before any computation"""
    code = 'VALIDATION_ERROR'
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data['errors'] = self.errors
        return data


class NotFoundError(PayrollError):
    code = 'NOT_FOUND'
    status_code = 404

    def __init__(self, resource: str, resource_id):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class DuplicatePayrollError(PayrollError):
    code = 'DUPLICATE_PAYROLL'
    status_code = 409

    def __init__(self, month: int, year: int):
        super().__init__(f"Payroll for {month:02d}/{year} already exists")
        self.month = month
        self.year = year


class PayrollAlreadyPaidError(PayrollError):
    code = 'PAYROLL_ALREADY_PAID'
    status_code = 409

    def __init__(self, payroll_id):
        super().__init__(f"Payroll {payroll_id} is already paid and can no longer be changed")
        self.payroll_id = payroll_id
