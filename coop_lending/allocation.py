"""
Payment Allocation Module

Applies a repayment through the FIFO waterfall:
  1. Unpaid penalties, oldest first
  2. Open schedule entries (pending, partial, overdue) by payment number,
     interest before principal within each entry
Whatever is left after every open obligation is covered stays unapplied.
"""

from typing import Optional
import uuid

from .audit import AuditTrail, AuditEventType
from .config import LendingConfig, get_config
from .context import Clock, Operator, SystemClock
from .currency import Money
from .exceptions import ValidationError
from .ledger_store import LedgerStore
from .logging_config import get_logger, log_action
from .models import LoanStatus, LoanPayment, ScheduleStatus
from .requests import RecordPaymentRequest
from .sequences import SequenceNumberGenerator


logger = get_logger("coop_lending.allocation")


class PaymentAllocator:
    """Records loan repayments and distributes them across obligations"""

    def __init__(
        self,
        ledger: LedgerStore,
        audit_trail: AuditTrail,
        sequences: SequenceNumberGenerator,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.ledger = ledger
        self.audit = audit_trail
        self.sequences = sequences
        self.clock = clock or SystemClock()
        self.config = config or get_config()

    def record_payment(self, loan_id: str, request: RecordPaymentRequest, operator: Operator) -> LoanPayment:
        """
        Record a repayment and allocate it

        Args:
            loan_id: Loan being paid
            request: Amount, method, date and reference
            operator: Collector recording the payment

        Returns:
            The LoanPayment ledger record

        Raises:
            StateError: If the loan is not active
            ValidationError: If the loan has nothing left to apply the payment to
        """
        with self.ledger.atomic():
            loan = self.ledger.lock_loan(loan_id)
            loan.require_status((LoanStatus.ACTIVE,), "record a payment on")

            payment_date = request.payment_date or self.clock.today()
            now = self.clock.now()
            remaining = request.amount
            balance_before = loan.outstanding_balance

            penalty_portion = Money.zero()
            interest_portion = Money.zero()
            principal_portion = Money.zero()

            # Tier 1: penalties, oldest first
            for penalty in self.ledger.get_unpaid_penalties(loan.id):
                if not remaining.is_positive():
                    break
                due = penalty.collectible
                if due.is_zero():
                    continue

                applied = min(remaining, due)
                penalty.amount_paid = penalty.amount_paid + applied
                if penalty.amount_paid >= penalty.net_penalty:
                    penalty.is_paid = True
                    penalty.paid_date = payment_date
                penalty.updated_at = now
                self.ledger.save_penalty(penalty)

                penalty_portion = penalty_portion + applied
                remaining = remaining - applied

            # Tier 2: schedule entries in payment-number order
            for entry in self.ledger.get_open_schedule(loan.id):
                if not remaining.is_positive():
                    break
                due = entry.balance_due
                if due.is_zero():
                    continue

                applied = min(remaining, due)
                interest_applied = min(applied, entry.interest_balance)
                principal_applied = applied - interest_applied

                entry.interest_paid = entry.interest_paid + interest_applied
                entry.principal_paid = entry.principal_paid + principal_applied
                entry.total_paid = entry.total_paid + applied
                if entry.total_paid >= entry.total_due:
                    entry.status = ScheduleStatus.PAID
                    entry.paid_date = payment_date
                else:
                    entry.status = ScheduleStatus.PARTIAL
                entry.updated_at = now
                self.ledger.save_schedule_entry(entry)

                interest_portion = interest_portion + interest_applied
                principal_portion = principal_portion + principal_applied
                remaining = remaining - applied

            applied_total = penalty_portion + interest_portion + principal_portion
            if applied_total.is_zero():
                raise ValidationError(
                    f"Loan {loan.loan_number} has no open penalties or installments to apply a payment to"
                )

            loan.outstanding_balance = (balance_before - principal_portion).floor_zero()
            loan.total_penalties_outstanding = (loan.total_penalties_outstanding - penalty_portion).floor_zero()
            loan.total_principal_paid = loan.total_principal_paid + principal_portion
            loan.total_interest_paid = loan.total_interest_paid + interest_portion
            loan.total_penalty_paid = loan.total_penalty_paid + penalty_portion
            closed = loan.outstanding_balance.is_zero()
            if closed:
                loan.status = LoanStatus.CLOSED
            loan.updated_at = now
            self.ledger.save_loan(loan)

            payment = LoanPayment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                payment_number=self.sequences.next_number(
                    self.ledger.payments_table, "payment_number",
                    self.config.payment_number_prefix, payment_date.year
                ),
                loan_id=loan.id,
                member_id=loan.member_id,
                operator_id=operator.id,
                amount=applied_total,
                principal_portion=principal_portion,
                interest_portion=interest_portion,
                penalty_portion=penalty_portion,
                unapplied_amount=remaining,
                balance_before=balance_before,
                balance_after=loan.outstanding_balance,
                payment_method=request.payment_method,
                payment_date=payment_date,
                reference_number=request.reference_number,
                notes=request.notes
            )
            self.ledger.save_payment(payment)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_PAYMENT_RECORDED,
                entity_type="payment",
                entity_id=payment.id,
                metadata={
                    "loan_id": loan.id,
                    "payment_number": payment.payment_number,
                    "amount": payment.amount,
                    "principal_portion": principal_portion,
                    "interest_portion": interest_portion,
                    "penalty_portion": penalty_portion,
                    "unapplied_amount": remaining,
                    "balance_after": loan.outstanding_balance
                },
                user_id=operator.id
            )
            if closed:
                self.audit.log_event(
                    event_type=AuditEventType.LOAN_CLOSED,
                    entity_type="loan",
                    entity_id=loan.id,
                    metadata={"loan_number": loan.loan_number, "closing_payment": payment.payment_number},
                    user_id=operator.id
                )

        log_action(logger, "info", f"Payment {payment.payment_number} recorded on loan {loan.loan_number}",
                   user_id=operator.id, action="record_payment", resource=loan.id,
                   extra={"amount": payment.amount.amount,
                          "principal_portion": principal_portion.amount,
                          "interest_portion": interest_portion.amount,
                          "penalty_portion": penalty_portion.amount})
        if remaining.is_positive():
            log_action(logger, "warning",
                       f"Payment {payment.payment_number} left {remaining.amount} centavos unapplied",
                       user_id=operator.id, action="record_payment", resource=loan.id,
                       extra={"unapplied_amount": remaining.amount})
        if closed:
            log_action(logger, "info", f"Loan {loan.loan_number} closed",
                       user_id=operator.id, action="close_loan", resource=loan.id)
        return payment

    def payoff_amount(self, loan_id: str) -> Money:
        """Amount that settles every open installment and penalty on a loan"""
        loan = self.ledger.require_loan(loan_id)
        schedule_due = Money.total(e.balance_due for e in self.ledger.get_open_schedule(loan.id))
        penalties_due = Money.total(p.collectible for p in self.ledger.get_unpaid_penalties(loan.id))
        return schedule_due + penalties_due
