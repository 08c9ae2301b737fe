"""
Loan Lifecycle Module

Owns the loan status state machine: application, review, approval or
rejection, and disbursement. Closing and reopening happen in the payment
allocator and the reversal engine.
"""

from datetime import date
from typing import List, Optional
import uuid

from .amortization import (
    AmortizationResult, compute_schedule, get_due_dates, add_months, validate_schedule
)
from .audit import AuditTrail, AuditEventType
from .config import LendingConfig, get_config
from .context import Clock, Operator, SystemClock
from .exceptions import LendingError, ValidationError
from .ledger_store import LedgerStore
from .logging_config import get_logger, log_action
from .members import MemberRegistry
from .models import Loan, LoanStatus, ScheduleEntry
from .products import ProductCatalog
from .requests import LoanApplicationRequest, ApproveLoanRequest, DisburseLoanRequest
from .sequences import SequenceNumberGenerator


logger = get_logger("coop_lending.lifecycle")

REVIEWABLE_STATUSES = (LoanStatus.PENDING, LoanStatus.UNDER_REVIEW)


def first_of_next_month(day: date) -> date:
    """First calendar day of the month after ``day``"""
    return add_months(day.replace(day=1), 1)


class LoanLifecycleManager:
    """
    Applies, reviews, approves, rejects and disburses loans
    """

    def __init__(
        self,
        ledger: LedgerStore,
        members: MemberRegistry,
        products: ProductCatalog,
        audit_trail: AuditTrail,
        sequences: SequenceNumberGenerator,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.ledger = ledger
        self.members = members
        self.products = products
        self.audit = audit_trail
        self.sequences = sequences
        self.clock = clock or SystemClock()
        self.config = config or get_config()

    def apply_for_loan(self, request: LoanApplicationRequest, operator: Operator) -> Loan:
        """
        Submit a loan application and persist its amortization schedule

        Args:
            request: Application terms
            operator: Loan officer encoding the application

        Returns:
            Loan in PENDING status

        Raises:
            NotFoundError: Unknown member or product
            MemberEligibilityError: Member is not an active cooperative member
            StateError: Product is not active
            ValidationError: Terms outside product limits
        """
        with self.ledger.atomic():
            member = self.members.ensure_eligible(request.member_id)
            product = self.products.require_active(request.product_id)
            product.check_terms(request.principal_amount, request.term_months)

            application_date = request.application_date or self.clock.today()
            first_payment_date = request.first_payment_date or first_of_next_month(application_date)
            rate = request.interest_rate if request.interest_rate is not None else product.interest_rate

            computed = compute_schedule(
                principal=request.principal_amount,
                monthly_rate=rate,
                term_months=request.term_months,
                first_payment_date=first_payment_date,
                interval=request.payment_interval
            )
            if not validate_schedule(computed.schedule, request.principal_amount):
                raise LendingError("Computed schedule does not reconcile to the principal")

            processing_fee = product.processing_fee_for(request.principal_amount)
            service_fee = product.service_fee
            net_proceeds = request.principal_amount - processing_fee - service_fee
            if net_proceeds.is_negative():
                raise ValidationError("Fees exceed the principal amount")

            loan_number = self.sequences.next_number(
                self.ledger.loans_table, "loan_number",
                self.config.loan_number_prefix, application_date.year
            )

            now = self.clock.now()
            loan = Loan(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                loan_number=loan_number,
                member_id=member.id,
                product_id=product.id,
                officer_id=operator.id,
                principal_amount=request.principal_amount,
                interest_rate=rate,
                term_months=request.term_months,
                payment_interval=request.payment_interval,
                status=LoanStatus.PENDING,
                application_date=application_date,
                purpose=request.purpose,
                collateral_description=request.collateral_description,
                processing_fee=processing_fee,
                service_fee=service_fee,
                net_proceeds=net_proceeds,
                total_interest=computed.total_interest,
                total_payable=computed.total_payable,
                amortization_amount=computed.emi,
                outstanding_balance=request.principal_amount,
                first_payment_date=first_payment_date,
                maturity_date=computed.schedule[-1].due_date
            )
            self.ledger.save_loan(loan)
            self._persist_schedule(loan, computed)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_APPLIED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={
                    "loan_number": loan.loan_number,
                    "member_id": member.id,
                    "product_code": product.code,
                    "principal_amount": loan.principal_amount,
                    "term_months": loan.term_months,
                    "payment_interval": loan.payment_interval.value
                },
                user_id=operator.id
            )

        log_action(logger, "info", f"Loan application {loan.loan_number} submitted",
                   user_id=operator.id, action="apply_for_loan", resource=loan.id,
                   extra={"principal_amount": loan.principal_amount.amount,
                          "term_months": loan.term_months})
        return loan

    def _persist_schedule(self, loan: Loan, computed: AmortizationResult) -> List[ScheduleEntry]:
        entries = []
        for row in computed.schedule:
            entry = ScheduleEntry(
                id=str(uuid.uuid4()),
                created_at=loan.created_at,
                updated_at=loan.created_at,
                loan_id=loan.id,
                payment_number=row.payment_number,
                due_date=row.due_date,
                beginning_balance=row.beginning_balance,
                principal_due=row.principal_due,
                interest_due=row.interest_due,
                total_due=row.total_due,
                ending_balance=row.ending_balance
            )
            self.ledger.save_schedule_entry(entry)
            entries.append(entry)
        return entries

    def start_review(self, loan_id: str, operator: Operator) -> Loan:
        """Move a pending application to credit committee review"""
        with self.ledger.atomic():
            loan = self.ledger.lock_loan(loan_id)
            loan.require_status((LoanStatus.PENDING,), "review")

            loan.status = LoanStatus.UNDER_REVIEW
            loan.updated_at = self.clock.now()
            self.ledger.save_loan(loan)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_REVIEW_STARTED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={"loan_number": loan.loan_number},
                user_id=operator.id
            )

        log_action(logger, "info", f"Loan {loan.loan_number} under review",
                   user_id=operator.id, action="start_review", resource=loan.id)
        return loan

    def approve(self, loan_id: str, approver: Operator,
                request: Optional[ApproveLoanRequest] = None) -> Loan:
        """
        Approve a pending or under-review application

        Raises:
            StateError: If the loan is not pending or under review
        """
        request = request or ApproveLoanRequest()

        with self.ledger.atomic():
            loan = self.ledger.lock_loan(loan_id)
            loan.require_status(REVIEWABLE_STATUSES, "approve")

            loan.status = LoanStatus.APPROVED
            loan.approval_date = request.approval_date or self.clock.today()
            loan.approved_by = approver.id
            loan.approval_notes = request.notes
            loan.updated_at = self.clock.now()
            self.ledger.save_loan(loan)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_APPROVED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={"loan_number": loan.loan_number, "approval_date": loan.approval_date},
                user_id=approver.id
            )

        log_action(logger, "info", f"Loan {loan.loan_number} approved",
                   user_id=approver.id, action="approve_loan", resource=loan.id)
        return loan

    def reject(self, loan_id: str, reason: str, rejecter: Operator) -> Loan:
        """
        Reject a pending or under-review application

        Raises:
            ValidationError: If the reason is blank
            StateError: If the loan is not pending or under review
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        with self.ledger.atomic():
            loan = self.ledger.lock_loan(loan_id)
            loan.require_status(REVIEWABLE_STATUSES, "reject")

            loan.status = LoanStatus.REJECTED
            loan.rejection_reason = reason
            loan.updated_at = self.clock.now()
            self.ledger.save_loan(loan)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_REJECTED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={"loan_number": loan.loan_number, "reason": reason},
                user_id=rejecter.id
            )

        log_action(logger, "info", f"Loan {loan.loan_number} rejected",
                   user_id=rejecter.id, action="reject_loan", resource=loan.id)
        return loan

    def disburse(self, loan_id: str, request: DisburseLoanRequest, disburser: Operator) -> Loan:
        """
        Release an approved loan

        Schedule due dates are recomputed from the actual first payment date;
        principal and interest amounts are left exactly as computed at
        application.

        Raises:
            StateError: If the loan is not approved
        """
        with self.ledger.atomic():
            loan = self.ledger.lock_loan(loan_id)
            loan.require_status((LoanStatus.APPROVED,), "disburse")

            disbursement_date = request.disbursement_date or self.clock.today()
            first_payment_date = request.first_payment_date or first_of_next_month(disbursement_date)
            if first_payment_date <= disbursement_date:
                raise ValidationError("First payment date must be after the disbursement date")

            schedule = self.ledger.get_schedule(loan.id)
            due_dates = get_due_dates(first_payment_date, len(schedule), loan.payment_interval)
            now = self.clock.now()
            for entry, due_date in zip(schedule, due_dates):
                entry.due_date = due_date
                entry.updated_at = now
                self.ledger.save_schedule_entry(entry)

            loan.status = LoanStatus.ACTIVE
            loan.disbursement_date = disbursement_date
            loan.disbursed_by = disburser.id
            loan.first_payment_date = first_payment_date
            loan.maturity_date = due_dates[-1] if due_dates else first_payment_date
            loan.net_proceeds = loan.principal_amount - loan.processing_fee - loan.service_fee
            loan.updated_at = now
            self.ledger.save_loan(loan)

            self.audit.log_event(
                event_type=AuditEventType.LOAN_DISBURSED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={
                    "loan_number": loan.loan_number,
                    "disbursement_date": disbursement_date,
                    "first_payment_date": first_payment_date,
                    "maturity_date": loan.maturity_date,
                    "net_proceeds": loan.net_proceeds
                },
                user_id=disburser.id
            )

        log_action(logger, "info", f"Loan {loan.loan_number} disbursed",
                   user_id=disburser.id, action="disburse_loan", resource=loan.id,
                   extra={"net_proceeds": loan.net_proceeds.amount})
        return loan
