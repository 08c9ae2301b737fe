"""
Loan Domain Records

Loan, schedule entry, payment and penalty records. All money fields are
integer-centavo Money values; rates are Decimal.
"""

from decimal import Decimal
from datetime import datetime, date
from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum

from .amortization import PaymentInterval
from .currency import Money
from .exceptions import StateError
from .storage import StorageRecord


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "pending"              # Application received
    UNDER_REVIEW = "under_review"    # Credit committee reviewing
    APPROVED = "approved"            # Approved, awaiting release
    REJECTED = "rejected"            # Terminal
    ACTIVE = "active"                # Released and being repaid
    CLOSED = "closed"                # Fully repaid


class ScheduleStatus(Enum):
    """Installment status"""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


# Installments still accepting payment
OPEN_SCHEDULE_STATUSES = (ScheduleStatus.PENDING, ScheduleStatus.PARTIAL, ScheduleStatus.OVERDUE)


class PaymentMethod(Enum):
    """Accepted repayment channels"""
    CASH = "cash"
    GCASH = "gcash"
    MAYA = "maya"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    SALARY_DEDUCTION = "salary_deduction"


class PenaltyType(Enum):
    LATE_PAYMENT = "late_payment"  # Up to the late-payment threshold
    NON_PAYMENT = "non_payment"    # Beyond it


@dataclass
class Loan(StorageRecord):
    """Loan account with its terms and running totals"""
    loan_number: str
    member_id: str
    product_id: str
    officer_id: str
    principal_amount: Money
    interest_rate: Decimal  # monthly
    term_months: int
    payment_interval: PaymentInterval
    status: LoanStatus
    application_date: date

    purpose: Optional[str] = None
    collateral_description: Optional[str] = None

    processing_fee: Money = Money(0)
    service_fee: Money = Money(0)
    net_proceeds: Money = Money(0)
    total_interest: Money = Money(0)
    total_payable: Money = Money(0)
    amortization_amount: Money = Money(0)

    outstanding_balance: Money = Money(0)
    total_principal_paid: Money = Money(0)
    total_interest_paid: Money = Money(0)
    total_penalty_paid: Money = Money(0)
    total_penalties_outstanding: Money = Money(0)

    approved_by: Optional[str] = None
    disbursed_by: Optional[str] = None
    approval_date: Optional[date] = None
    disbursement_date: Optional[date] = None
    first_payment_date: Optional[date] = None
    maturity_date: Optional[date] = None
    rejection_reason: Optional[str] = None
    approval_notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self.status == LoanStatus.CLOSED

    def require_status(self, allowed: Tuple[LoanStatus, ...], action: str) -> None:
        """
        Guard a transition

        Raises:
            StateError: naming the current status when it is not allowed
        """
        if self.status not in allowed:
            raise StateError(f"Cannot {action} a loan with status '{self.status.value}'")


@dataclass
class ScheduleEntry(StorageRecord):
    """One installment of a loan's amortization schedule"""
    loan_id: str
    payment_number: int
    due_date: date
    beginning_balance: Money
    principal_due: Money
    interest_due: Money
    total_due: Money
    ending_balance: Money
    principal_paid: Money = Money(0)
    interest_paid: Money = Money(0)
    total_paid: Money = Money(0)
    status: ScheduleStatus = ScheduleStatus.PENDING
    paid_date: Optional[date] = None

    @property
    def balance_due(self) -> Money:
        """Amount still owed on this installment"""
        return (self.total_due - self.total_paid).floor_zero()

    @property
    def interest_balance(self) -> Money:
        return (self.interest_due - self.interest_paid).floor_zero()


@dataclass
class LoanPayment(StorageRecord):
    """
    Repayment ledger record.

    Append-only: a payment is never deleted, only flagged as reversed.
    ``amount`` is the applied total, so it always equals the sum of the three
    portions; anything tendered beyond open obligations is kept in
    ``unapplied_amount``.
    """
    payment_number: str
    loan_id: str
    member_id: str
    operator_id: str
    amount: Money
    principal_portion: Money
    interest_portion: Money
    penalty_portion: Money
    balance_before: Money
    balance_after: Money
    payment_method: PaymentMethod
    payment_date: date
    unapplied_amount: Money = Money(0)
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    is_reversed: bool = False
    reversed_at: Optional[datetime] = None
    reversed_by: Optional[str] = None


@dataclass
class LoanPenalty(StorageRecord):
    """Penalty assessed on an overdue installment"""
    loan_id: str
    schedule_entry_id: str
    seq: int  # creation order within the loan
    penalty_type: PenaltyType
    penalty_rate: Decimal
    days_overdue: int
    penalty_amount: Money
    applied_date: date
    waived_amount: Money = Money(0)
    net_penalty: Money = Money(0)
    amount_paid: Money = Money(0)
    is_paid: bool = False
    paid_date: Optional[date] = None
    waived_by: Optional[str] = None
    waived_at: Optional[datetime] = None
    waiver_reason: Optional[str] = None

    @property
    def collectible(self) -> Money:
        """Net penalty not yet paid"""
        return (self.net_penalty - self.amount_paid).floor_zero()
