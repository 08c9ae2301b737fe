"""
Amortization Module

Diminishing-balance (reducing-balance) amortization schedules. Pure
computation: no storage, no clock. Money is integer centavos and every rate
calculation is done in Decimal with explicit rounding.
"""

from decimal import Decimal
from datetime import date, timedelta
from dataclasses import dataclass
from typing import List, Tuple, Union
from enum import Enum
import calendar

from .currency import Money, RateLike, to_decimal, round_half_up, round_up
from .exceptions import ValidationError


# Weeks per month used to derive the weekly equivalent rate
WEEKS_PER_MONTH = Decimal('4.33')


class PaymentInterval(Enum):
    """Repayment frequency"""
    MONTHLY = "monthly"
    SEMI_MONTHLY = "semi_monthly"  # every 15 days
    WEEKLY = "weekly"

    @property
    def periods_per_month(self) -> int:
        return {
            PaymentInterval.MONTHLY: 1,
            PaymentInterval.SEMI_MONTHLY: 2,
            PaymentInterval.WEEKLY: 4
        }[self]


@dataclass(frozen=True)
class ScheduleRow:
    """Single row of a computed amortization schedule"""
    payment_number: int
    due_date: date
    beginning_balance: Money
    principal_due: Money
    interest_due: Money
    total_due: Money
    ending_balance: Money


@dataclass(frozen=True)
class AmortizationResult:
    """Computed schedule with its totals"""
    schedule: List[ScheduleRow]
    total_interest: Money
    total_payable: Money
    emi: Money


def parse_interval(interval: Union[PaymentInterval, str]) -> PaymentInterval:
    """Accept an interval enum or its string value"""
    if isinstance(interval, PaymentInterval):
        return interval
    try:
        return PaymentInterval(interval)
    except ValueError:
        raise ValidationError(f"Unsupported payment interval: {interval}")


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping to the last day of the target month"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def resolve_periodic_rate(monthly_rate: RateLike, term_months: int,
                          interval: PaymentInterval) -> Tuple[Decimal, int]:
    """
    Convert a monthly rate and term into the periodic rate and period count

    Semi-monthly and weekly rates are the compound equivalents of the
    monthly rate: (1 + r) ** (1/2) - 1 and (1 + r) ** (1/4.33) - 1.

    Returns:
        Tuple of (periodic rate, total periods)
    """
    rate = to_decimal(monthly_rate)
    if interval == PaymentInterval.SEMI_MONTHLY:
        return (1 + rate) ** (Decimal(1) / Decimal(2)) - 1, term_months * 2
    if interval == PaymentInterval.WEEKLY:
        return (1 + rate) ** (Decimal(1) / WEEKS_PER_MONTH) - 1, term_months * 4
    return rate, term_months


def compute_emi(principal: Money, periodic_rate: Decimal, periods: int) -> Money:
    """
    Level installment for an annuity, rounded up to a whole centavo

    EMI = P * r(1+r)^n / ((1+r)^n - 1)
    """
    factor = (1 + periodic_rate) ** periods
    return Money(round_up(Decimal(principal.amount) * periodic_rate * factor / (factor - 1)))


def get_due_dates(first_payment_date: date, periods: int, interval: PaymentInterval) -> List[date]:
    """
    Due dates for every period

    Monthly dates are computed from the first date so a month-end anchor
    is kept (Jan 31 -> Feb 28 -> Mar 31).
    """
    if interval == PaymentInterval.MONTHLY:
        return [add_months(first_payment_date, i) for i in range(periods)]
    step = timedelta(days=15) if interval == PaymentInterval.SEMI_MONTHLY else timedelta(days=7)
    return [first_payment_date + step * i for i in range(periods)]


def compute_schedule(
    principal: Money,
    monthly_rate: RateLike,
    term_months: int,
    first_payment_date: date,
    interval: Union[PaymentInterval, str] = PaymentInterval.MONTHLY
) -> AmortizationResult:
    """
    Compute a full diminishing-balance amortization schedule

    Args:
        principal: Loan principal
        monthly_rate: Monthly interest rate, e.g. Decimal('0.015') for 1.5%
        term_months: Loan term in months
        first_payment_date: Due date of the first installment
        interval: Payment interval

    Returns:
        AmortizationResult with schedule rows, total interest, total payable and EMI

    Raises:
        ValidationError: If principal, rate or term is not positive
    """
    if not isinstance(principal, Money):
        raise ValidationError("Principal must be a Money amount")
    if not principal.is_positive():
        raise ValidationError("Principal must be greater than zero")
    try:
        rate = to_decimal(monthly_rate)
    except (TypeError, ArithmeticError):
        raise ValidationError(f"Invalid monthly rate: {monthly_rate}")
    if not rate.is_finite() or rate <= 0:
        raise ValidationError("Monthly rate must be greater than zero")
    if isinstance(term_months, bool) or not isinstance(term_months, int) or term_months <= 0:
        raise ValidationError("Term months must be greater than zero")
    interval = parse_interval(interval)

    periodic_rate, periods = resolve_periodic_rate(rate, term_months, interval)
    emi = compute_emi(principal, periodic_rate, periods)
    due_dates = get_due_dates(first_payment_date, periods, interval)

    schedule = []
    balance = principal
    total_interest = Money.zero()

    for i in range(periods):
        payment_number = i + 1
        interest_due = Money(round_half_up(Decimal(balance.amount) * periodic_rate))

        if payment_number == periods:
            # Last period absorbs the rounding remainder
            principal_due = balance
        else:
            principal_due = emi - interest_due
            if principal_due > balance:
                principal_due = balance
            principal_due = principal_due.floor_zero()

        ending_balance = balance - principal_due
        total_interest = total_interest + interest_due

        schedule.append(ScheduleRow(
            payment_number=payment_number,
            due_date=due_dates[i],
            beginning_balance=balance,
            principal_due=principal_due,
            interest_due=interest_due,
            total_due=principal_due + interest_due,
            ending_balance=ending_balance
        ))

        balance = ending_balance

    return AmortizationResult(
        schedule=schedule,
        total_interest=total_interest,
        total_payable=principal + total_interest,
        emi=emi
    )


def validate_schedule(schedule: List[ScheduleRow], principal: Money) -> bool:
    """Check that the principal column sums back to the principal within 1 centavo"""
    total_principal = Money.total(row.principal_due for row in schedule)
    return abs((total_principal - principal).amount) <= 1
