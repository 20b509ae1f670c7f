from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from config.settings import MIN_PAYROLL_YEAR
from utils.errors import ValidationError


def validate_payroll_period(month, year, today: Optional[date] = None) -> tuple:
    """Validate and normalise a payroll month/year, raising ValidationError"""
    today = today or date.today()
    errors = []

    try:
        month = int(month)
        if month < 1 or month > 12:
            errors.append({'field': 'month', 'message': 'Month must be between 1 and 12'})
    except (TypeError, ValueError):
        errors.append({'field': 'month', 'message': 'Month is required and must be a number'})

    try:
        year = int(year)
        if year < MIN_PAYROLL_YEAR or year > today.year + 1:
            errors.append({
                'field': 'year',
                'message': f'Year must be between {MIN_PAYROLL_YEAR} and {today.year + 1}'
            })
    except (TypeError, ValueError):
        errors.append({'field': 'year', 'message': 'Year is required and must be a number'})

    if errors:
        raise ValidationError('Invalid payroll period', errors)

    return month, year


def _parse_amount(value, field: str, errors: list) -> Optional[Decimal]:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        errors.append({'field': field, 'message': 'Amount must be a number'})
        return None
    if not amount.is_finite():
        errors.append({'field': field, 'message': 'Amount must be a finite number'})
        return None
    if amount < 0:
        errors.append({'field': field, 'message': 'Amount must not be negative'})
        return None
    return amount


def validate_amount(value, field_name: str) -> Decimal:
    """Parse a single non-negative amount; empty means zero"""
    if value is None or value == '':
        return Decimal('0')
    errors = []
    amount = _parse_amount(value, field_name, errors)
    if errors:
        raise ValidationError(f'Invalid {field_name}', errors)
    return amount


def validate_amounts(values: Optional[dict], field_name: str) -> dict:
    """Parse a {name: amount} mapping into non-negative Decimals"""
    if values is not None and not isinstance(values, dict):
        raise ValidationError(f'Invalid {field_name}', [
            {'field': field_name, 'message': 'Must be a mapping of name to amount'}
        ])

    parsed = {}
    errors = []
    for name, value in (values or {}).items():
        amount = _parse_amount(value, f'{field_name}.{name}', errors)
        if amount is not None:
            parsed[name] = amount

    if errors:
        raise ValidationError(f'Invalid {field_name}', errors)

    return parsed


def validate_list_filters(month=None, year=None, page=1, limit=20, max_limit: int = 100) -> dict:
    """Normalise payroll list filters and pagination"""
    filters = {}
    errors = []

    for name, value, minimum, maximum in (
        ('month', month, 1, 12),
        ('year', year, MIN_PAYROLL_YEAR, None),
        ('page', page, 1, None),
        ('limit', limit, 1, max_limit),
    ):
        if value is None or value == '':
            filters[name] = None
            continue
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append({'field': name, 'message': f'{name.title()} must be a number'})
            continue
        if number < minimum or (maximum is not None and number > maximum):
            bound = f'between {minimum} and {maximum}' if maximum is not None else f'at least {minimum}'
            errors.append({'field': name, 'message': f'{name.title()} must be {bound}'})
            continue
        filters[name] = number

    if errors:
        raise ValidationError('Invalid payroll filters', errors)

    filters['page'] = filters['page'] or 1
    filters['limit'] = filters['limit'] or 20
    return filters


def validate_rate(rate: Decimal) -> bool:
    """Validate a percentage rate is within reasonable bounds"""
    return Decimal('0') <= rate <= Decimal('100')
