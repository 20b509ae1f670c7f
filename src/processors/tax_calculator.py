from decimal import Decimal
from typing import Optional, Sequence

from models.settings import TaxBracket

DEFAULT_TAX_BRACKETS = (
    TaxBracket(min=Decimal('0'), max=Decimal('15000'), rate=Decimal('0')),
    TaxBracket(min=Decimal('15000'), max=Decimal('30000'), rate=Decimal('2.5')),
    TaxBracket(min=Decimal('30000'), max=Decimal('45000'), rate=Decimal('10')),
    TaxBracket(min=Decimal('45000'), max=Decimal('60000'), rate=Decimal('15')),
    TaxBracket(min=Decimal('60000'), max=Decimal('200000'), rate=Decimal('20')),
    TaxBracket(min=Decimal('200000'), max=Decimal('400000'), rate=Decimal('22.5')),
    TaxBracket(min=Decimal('400000'), max=None, rate=Decimal('25')),
)


def calculate_social_insurance(base: Decimal, rate: Optional[Decimal]) -> Decimal:
    """Flat-rate social insurance; zero when the rate is unset"""
    if not rate or rate <= 0:
        return Decimal('0')
    return base * Decimal(str(rate)) / Decimal('100')


def calculate_tax(monthly_income: Decimal, brackets: Optional[Sequence[TaxBracket]] = None) -> Decimal:
    """Monthly share of the progressive tax on the annualised income"""
    brackets = brackets or DEFAULT_TAX_BRACKETS
    annual_income = monthly_income * 12
    tax = Decimal('0')

    for bracket in brackets:
        if annual_income > bracket.min:
            upper = annual_income if bracket.max is None else min(annual_income, bracket.max)
            tax += (upper - bracket.min) * bracket.rate / Decimal('100')

    return tax / 12
