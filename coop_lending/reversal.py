"""
Payment Reversal Module

Undoes a payment's effect on the loan aggregate (bounced cheque, mis-posted
collection). Only the loan totals are restored; schedule entry and penalty
rows keep the paid state the allocation gave them.
"""

from typing import Optional

from .audit import AuditTrail, AuditEventType
from .context import Clock, Operator, SystemClock
from .exceptions import StateError
from .ledger_store import LedgerStore
from .logging_config import get_logger, log_action
from .models import LoanStatus, LoanPayment


logger = get_logger("coop_lending.reversal")


class ReversalEngine:
    """Reverses recorded loan payments"""

    def __init__(self, ledger: LedgerStore, audit_trail: AuditTrail, clock: Optional[Clock] = None):
        self.ledger = ledger
        self.audit = audit_trail
        self.clock = clock or SystemClock()

    def _latest_live_payment(self, loan_id: str) -> Optional[LoanPayment]:
        live = [p for p in self.ledger.get_payments(loan_id) if not p.is_reversed]
        return live[-1] if live else None

    def reverse_payment(self, payment_id: str, operator: Operator) -> LoanPayment:
        """
        Reverse a payment

        A closed loan can only be reopened through the payment that closed
        it, i.e. its latest non-reversed payment.

        Args:
            payment_id: Payment to reverse
            operator: Staff member authorizing the reversal

        Returns:
            The payment, flagged as reversed

        Raises:
            StateError: Already reversed, or not the closing payment of a closed loan
        """
        with self.ledger.atomic():
            payment = self.ledger.lock_payment(payment_id)
            if payment.is_reversed:
                raise StateError(f"Payment {payment.payment_number} has already been reversed")

            loan = self.ledger.lock_loan(payment.loan_id)
            loan.require_status((LoanStatus.ACTIVE, LoanStatus.CLOSED), "reverse a payment on")
            reopened = loan.status == LoanStatus.CLOSED
            if reopened:
                latest = self._latest_live_payment(loan.id)
                if latest is None or latest.id != payment.id:
                    raise StateError(
                        f"Loan {loan.loan_number} is closed; only its closing payment can be reversed"
                    )

            now = self.clock.now()
            loan.outstanding_balance = loan.outstanding_balance + payment.principal_portion
            loan.total_principal_paid = (loan.total_principal_paid - payment.principal_portion).floor_zero()
            loan.total_interest_paid = (loan.total_interest_paid - payment.interest_portion).floor_zero()
            loan.total_penalty_paid = (loan.total_penalty_paid - payment.penalty_portion).floor_zero()
            loan.total_penalties_outstanding = loan.total_penalties_outstanding + payment.penalty_portion
            loan.status = LoanStatus.ACTIVE
            loan.updated_at = now
            self.ledger.save_loan(loan)

            payment.is_reversed = True
            payment.reversed_at = now
            payment.reversed_by = operator.id
            payment.updated_at = now
            self.ledger.save_payment(payment)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_PAYMENT_REVERSED,
                entity_type="payment",
                entity_id=payment.id,
                metadata={
                    "loan_id": loan.id,
                    "payment_number": payment.payment_number,
                    "principal_portion": payment.principal_portion,
                    "interest_portion": payment.interest_portion,
                    "penalty_portion": payment.penalty_portion,
                    "balance_after": loan.outstanding_balance
                },
                user_id=operator.id
            )
            if reopened:
                self.audit.log_event(
                    event_type=AuditEventType.LOAN_REOPENED,
                    entity_type="loan",
                    entity_id=loan.id,
                    metadata={"loan_number": loan.loan_number, "reversed_payment": payment.payment_number},
                    user_id=operator.id
                )

        log_action(logger, "info", f"Payment {payment.payment_number} reversed",
                   user_id=operator.id, action="reverse_payment", resource=loan.id)
        if reopened:
            log_action(logger, "info", f"Loan {loan.loan_number} reopened",
                       user_id=operator.id, action="reopen_loan", resource=loan.id)
        return payment
