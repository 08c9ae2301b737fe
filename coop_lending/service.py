"""
Loan Service

Single entry point for the lending core. Wires storage, audit trail, member
registry, product catalog and the lifecycle, allocation, penalty and reversal
engines around one injected clock.
"""

from datetime import date
from typing import List, Optional, Union

from .allocation import PaymentAllocator
from .amortization import AmortizationResult, PaymentInterval, compute_schedule
from .audit import AuditTrail
from .config import LendingConfig, get_config
from .context import Clock, Operator, SystemClock
from .currency import Money, RateLike
from .ledger_store import LedgerStore
from .lifecycle import LoanLifecycleManager
from .members import MemberRegistry
from .models import Loan, LoanStatus, ScheduleEntry, LoanPayment, LoanPenalty
from .penalties import PenaltyAccrualEngine
from .products import ProductCatalog
from .requests import (
    LoanApplicationRequest, ApproveLoanRequest, DisburseLoanRequest,
    RecordPaymentRequest, WaivePenaltyRequest
)
from .reversal import ReversalEngine
from .sequences import SequenceNumberGenerator
from .storage import StorageInterface


class LoanService:
    """
    Loan amortization and payment-allocation service

    Every state-changing method runs in one storage transaction; on any
    error nothing it wrote (including audit events) is kept.
    """

    def __init__(
        self,
        storage: StorageInterface,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.config = config or get_config()

        self.audit = AuditTrail(storage, clock=self.clock, enabled=self.config.enable_audit_logging)
        self.ledger = LedgerStore(storage)
        self.sequences = SequenceNumberGenerator(storage, padding=self.config.sequence_padding)
        self.members = MemberRegistry(storage, self.audit, self.clock)
        self.products = ProductCatalog(storage, self.audit, self.clock)

        self.lifecycle = LoanLifecycleManager(
            self.ledger, self.members, self.products, self.audit, self.sequences,
            clock=self.clock, config=self.config
        )
        self.allocator = PaymentAllocator(
            self.ledger, self.audit, self.sequences, clock=self.clock, config=self.config
        )
        self.penalties = PenaltyAccrualEngine(self.ledger, self.audit, clock=self.clock, config=self.config)
        self.reversals = ReversalEngine(self.ledger, self.audit, clock=self.clock)

    # Pure computation

    def compute_schedule(
        self,
        principal: Money,
        rate: RateLike,
        term_months: int,
        first_payment_date: date,
        interval: Union[PaymentInterval, str] = PaymentInterval.MONTHLY
    ) -> AmortizationResult:
        return compute_schedule(principal, rate, term_months, first_payment_date, interval)

    # Lifecycle

    def apply_for_loan(self, request: LoanApplicationRequest, operator: Operator) -> Loan:
        return self.lifecycle.apply_for_loan(request, operator)

    def start_review(self, loan_id: str, operator: Operator) -> Loan:
        return self.lifecycle.start_review(loan_id, operator)

    def approve(self, loan_id: str, approver: Operator,
                request: Optional[ApproveLoanRequest] = None) -> Loan:
        return self.lifecycle.approve(loan_id, approver, request)

    def reject(self, loan_id: str, reason: str, rejecter: Operator) -> Loan:
        return self.lifecycle.reject(loan_id, reason, rejecter)

    def disburse(self, loan_id: str, request: DisburseLoanRequest, disburser: Operator) -> Loan:
        return self.lifecycle.disburse(loan_id, request, disburser)

    # Payments and penalties

    def record_payment(self, loan_id: str, request: RecordPaymentRequest, operator: Operator) -> LoanPayment:
        return self.allocator.record_payment(loan_id, request, operator)

    def reverse_payment(self, payment_id: str, operator: Operator) -> LoanPayment:
        return self.reversals.reverse_payment(payment_id, operator)

    def compute_penalties(self, loan_id: str, as_of_date: Optional[date] = None,
                          rate: Optional[RateLike] = None) -> List[LoanPenalty]:
        return self.penalties.compute_penalties(loan_id, as_of_date, rate)

    def waive_penalty(self, penalty_id: str, request: WaivePenaltyRequest, operator: Operator) -> LoanPenalty:
        return self.penalties.waive_penalty(penalty_id, request, operator)

    # Queries

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        return self.ledger.get_loan(loan_id)

    def get_loan_by_number(self, loan_number: str) -> Optional[Loan]:
        return self.ledger.get_loan_by_number(loan_number)

    def list_loans(self, member_id: Optional[str] = None,
                   status: Optional[LoanStatus] = None) -> List[Loan]:
        return self.ledger.list_loans(member_id=member_id, status=status)

    def get_schedule(self, loan_id: str) -> List[ScheduleEntry]:
        self.ledger.require_loan(loan_id)
        return self.ledger.get_schedule(loan_id)

    def get_payments(self, loan_id: str) -> List[LoanPayment]:
        self.ledger.require_loan(loan_id)
        return self.ledger.get_payments(loan_id)

    def get_payment(self, payment_id: str) -> Optional[LoanPayment]:
        return self.ledger.get_payment(payment_id)

    def get_penalties(self, loan_id: str) -> List[LoanPenalty]:
        self.ledger.require_loan(loan_id)
        return self.ledger.get_penalties(loan_id)

    def get_penalty(self, penalty_id: str) -> Optional[LoanPenalty]:
        return self.ledger.get_penalty(penalty_id)

    def payoff_amount(self, loan_id: str) -> Money:
        return self.allocator.payoff_amount(loan_id)
