from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple, Union

from config.settings import (
    DEFAULT_ABSENCE_PENALTY_RATE,
    DEFAULT_MONTHLY_LATE_LIMIT,
    DEFAULT_OVERTIME_RATE,
    WEEKLY_REST_DAYS,
)


class EarlyLeaveAttribution:
    """Where the monthly early-leave penalty is booked in the daily ledger"""
    LAST_CHECKOUT = 'last_checkout'
    PER_DAY = 'per_day'


@dataclass(frozen=True)
class DelayPenaltyTier:
    """Late arrival tier keyed by how late a single arrival was"""
    min_minutes: int
    deduction_days: Decimal


@dataclass(frozen=True)
class LateWarningLevel:
    """Escalation level keyed by the occurrence number past the free allowance"""
    occurrence_count: int
    deduction_factor: Decimal


@dataclass(frozen=True)
class TaxBracket:
    """Annual progressive tax bracket; max of None means unbounded"""
    min: Decimal
    max: Optional[Decimal]
    rate: Decimal


@dataclass(frozen=True)
class TieredLatePenalty:
    tiers: Tuple[DelayPenaltyTier, ...]


@dataclass(frozen=True)
class EscalationLatePenalty:
    monthly_late_limit: int
    levels: Tuple[LateWarningLevel, ...]


LatePenaltyStrategy = Union[TieredLatePenalty, EscalationLatePenalty]


@dataclass(frozen=True)
class HRSettings:
    """Per-tenant HR rules snapshot passed into every calculation"""
    company_id: str
    work_start_time: str = '09:00'
    grace_period_minutes: int = 0
    absence_penalty_rate: Decimal = DEFAULT_ABSENCE_PENALTY_RATE
    max_daily_deduction_days: Decimal = Decimal('0')
    delay_penalty_tiers: Tuple[DelayPenaltyTier, ...] = ()
    late_warning_levels: Tuple[LateWarningLevel, ...] = ()
    monthly_late_limit: int = DEFAULT_MONTHLY_LATE_LIMIT
    overtime_rate: Decimal = DEFAULT_OVERTIME_RATE
    social_insurance_rate: Decimal = Decimal('0')
    tax_rate: Decimal = Decimal('0')
    tax_brackets: Optional[Tuple[TaxBracket, ...]] = None
    weekly_rest_days: Tuple[int, ...] = WEEKLY_REST_DAYS
    early_leave_attribution: str = EarlyLeaveAttribution.LAST_CHECKOUT

    @property
    def tax_enabled(self) -> bool:
        return self.tax_rate > 0

    def late_penalty_strategy(self) -> LatePenaltyStrategy:
        """Tiers win when configured; escalation by occurrence otherwise"""
        if self.delay_penalty_tiers:
            return TieredLatePenalty(
                tiers=tuple(sorted(self.delay_penalty_tiers, key=lambda t: t.min_minutes, reverse=True))
            )
        return EscalationLatePenalty(
            monthly_late_limit=self.monthly_late_limit,
            levels=tuple(sorted(self.late_warning_levels, key=lambda l: l.occurrence_count)),
        )
