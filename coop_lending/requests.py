"""
Operation Request Structs

One typed request per state-changing operation. Each request validates its
own shape in ``__post_init__`` and raises ValidationError before any storage
is touched.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import Optional, Union

from .amortization import PaymentInterval, parse_interval
from .currency import Money, to_decimal
from .exceptions import ValidationError
from .models import PaymentMethod


def _require_positive_money(value: Money, label: str) -> None:
    if not isinstance(value, Money):
        raise ValidationError(f"{label} must be a Money amount")
    if not value.is_positive():
        raise ValidationError(f"{label} must be greater than zero")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class LoanApplicationRequest:
    """
    Loan application terms.

    ``interest_rate`` overrides the product rate when given.
    ``first_payment_date`` defaults to the first day of the month after the
    application date; it is recomputed again at disbursement.
    """
    member_id: str
    product_id: str
    principal_amount: Money
    term_months: int
    payment_interval: Union[PaymentInterval, str] = PaymentInterval.MONTHLY
    interest_rate: Optional[Decimal] = None
    purpose: Optional[str] = None
    collateral_description: Optional[str] = None
    application_date: Optional[date] = None
    first_payment_date: Optional[date] = None

    def __post_init__(self):
        if not self.member_id:
            raise ValidationError("Member is required")
        if not self.product_id:
            raise ValidationError("Loan product is required")
        _require_positive_money(self.principal_amount, "Principal amount")
        if isinstance(self.term_months, bool) or not isinstance(self.term_months, int) or self.term_months <= 0:
            raise ValidationError("Term months must be a positive integer")
        self.payment_interval = parse_interval(self.payment_interval)
        if self.interest_rate is not None:
            try:
                self.interest_rate = to_decimal(self.interest_rate)
            except (TypeError, ArithmeticError):
                raise ValidationError(f"Invalid interest rate: {self.interest_rate}")
            if not self.interest_rate.is_finite() or self.interest_rate <= 0:
                raise ValidationError("Interest rate must be greater than zero")
        self.purpose = _clean_text(self.purpose)
        self.collateral_description = _clean_text(self.collateral_description)
        if (self.application_date and self.first_payment_date
                and self.first_payment_date <= self.application_date):
            raise ValidationError("First payment date must be after the application date")


@dataclass
class ApproveLoanRequest:
    approval_date: Optional[date] = None
    notes: Optional[str] = None

    def __post_init__(self):
        self.notes = _clean_text(self.notes)


@dataclass
class DisburseLoanRequest:
    """Release details; dates default from the service clock"""
    disbursement_date: Optional[date] = None
    first_payment_date: Optional[date] = None

    def __post_init__(self):
        if (self.disbursement_date and self.first_payment_date
                and self.first_payment_date <= self.disbursement_date):
            raise ValidationError("First payment date must be after the disbursement date")


@dataclass
class RecordPaymentRequest:
    """Repayment tendered against a loan"""
    amount: Money
    payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH
    payment_date: Optional[date] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        _require_positive_money(self.amount, "Payment amount")
        if not isinstance(self.payment_method, PaymentMethod):
            try:
                self.payment_method = PaymentMethod(self.payment_method)
            except ValueError:
                raise ValidationError(f"Unsupported payment method: {self.payment_method}")
        self.reference_number = _clean_text(self.reference_number)
        self.notes = _clean_text(self.notes)


@dataclass
class WaivePenaltyRequest:
    amount: Money
    reason: str

    def __post_init__(self):
        _require_positive_money(self.amount, "Waived amount")
        self.reason = _clean_text(self.reason)
        if not self.reason:
            raise ValidationError("Waiver reason is required")
