from decimal import Decimal, ROUND_HALF_UP
from datetime import date

CENT = Decimal('0.01')


def to_money(amount) -> Decimal:
    """Round an amount to cents"""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal) -> str:
    """Format currency amount"""
    return f"{to_money(amount):,.2f}"


def format_date_key(d: date) -> str:
    """Format a calendar day as the ledger key"""
    return d.strftime("%Y-%m-%d")
