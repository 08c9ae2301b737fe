"""
Shared builders for the lending test suite
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple
import uuid

from coop_lending.amortization import PaymentInterval, add_months
from coop_lending.config import LendingConfig
from coop_lending.context import FixedClock, Operator
from coop_lending.currency import Money
from coop_lending.members import MemberStatus
from coop_lending.models import Loan, LoanStatus, ScheduleEntry, LoanPenalty, PenaltyType
from coop_lending.products import LoanType
from coop_lending.requests import LoanApplicationRequest, DisburseLoanRequest
from coop_lending.service import LoanService
from coop_lending.storage import InMemoryStorage, StorageInterface


OFFICER = Operator(id="officer-1", name="Loan Officer")
APPROVER = Operator(id="manager-1", name="Credit Committee Chair")
CASHIER = Operator(id="cashier-1", name="Cashier")

APPLICATION_DATE = date(2026, 1, 5)
DISBURSEMENT_DATE = date(2026, 1, 15)


def make_service(start: date = APPLICATION_DATE,
                 storage: Optional[StorageInterface] = None) -> Tuple[LoanService, FixedClock]:
    clock = FixedClock.on(start)
    service = LoanService(storage or InMemoryStorage(), clock=clock, config=LendingConfig())
    return service, clock


def register_member(service: LoanService, number: str = "M-0001",
                    status: MemberStatus = MemberStatus.REGULAR):
    return service.members.register_member(
        member_number=number,
        first_name="Maria",
        last_name="Santos",
        operator=OFFICER,
        member_status=status
    )


def create_product(service: LoanService, code: str = "REG", **overrides):
    params = dict(
        code=code,
        name="Regular Loan",
        loan_type=LoanType.TERM,
        interest_rate=Decimal("0.01"),
        max_term_months=24,
        max_amount=Money(100_000_000),
        operator=OFFICER,
        min_amount=Money(100_000),
        processing_fee_rate=Decimal("0.01"),
        service_fee=Money(5_000)
    )
    params.update(overrides)
    return service.products.create_product(**params)


def apply_loan(service: LoanService, member, product, principal: int = 1_000_000,
               term_months: int = 2, interval: PaymentInterval = PaymentInterval.MONTHLY,
               **kwargs) -> Loan:
    request = LoanApplicationRequest(
        member_id=member.id,
        product_id=product.id,
        principal_amount=Money(principal),
        term_months=term_months,
        payment_interval=interval,
        purpose="Working capital",
        **kwargs
    )
    return service.apply_for_loan(request, OFFICER)


def active_loan(service: LoanService, principal: int = 1_000_000, term_months: int = 2,
                member_number: str = "M-0001") -> Loan:
    """
    Applied, approved and disbursed loan

    With the default product (1%/month) and terms the schedule is:
      #1 due 2026-02-01: interest 10,000 principal 497,513 total 507,513
      #2 due 2026-03-01: interest 5,025 principal 502,487 total 507,512
    """
    member = service.members.get_member_by_number(member_number) or register_member(service, member_number)
    product = service.products.get_product_by_code("REG") or create_product(service)
    loan = apply_loan(service, member, product, principal=principal, term_months=term_months)
    service.approve(loan.id, APPROVER)
    return service.disburse(loan.id, DisburseLoanRequest(disbursement_date=DISBURSEMENT_DATE), APPROVER)


def seed_active_loan(service: LoanService, entries: List[Tuple[int, int]],
                     penalties: List[int] = ()) -> Loan:
    """
    Store an active loan directly from (principal_due, interest_due) pairs
    and unpaid penalty amounts
    """
    now = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
    principal = Money(sum(p for p, _ in entries))
    loan = Loan(
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
        loan_number="LN-2026-900001",
        member_id="member-seeded",
        product_id="product-seeded",
        officer_id=OFFICER.id,
        principal_amount=principal,
        interest_rate=Decimal("0.01"),
        term_months=len(entries),
        payment_interval=PaymentInterval.MONTHLY,
        status=LoanStatus.ACTIVE,
        application_date=date(2026, 1, 5),
        outstanding_balance=principal,
        total_penalties_outstanding=Money(sum(penalties)),
        disbursement_date=date(2026, 1, 15),
        first_payment_date=date(2026, 2, 1)
    )
    service.ledger.save_loan(loan)

    balance = principal
    saved_entries = []
    for i, (principal_due, interest_due) in enumerate(entries):
        entry = ScheduleEntry(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            loan_id=loan.id,
            payment_number=i + 1,
            due_date=add_months(date(2026, 2, 1), i),
            beginning_balance=balance,
            principal_due=Money(principal_due),
            interest_due=Money(interest_due),
            total_due=Money(principal_due + interest_due),
            ending_balance=balance - Money(principal_due)
        )
        balance = entry.ending_balance
        service.ledger.save_schedule_entry(entry)
        saved_entries.append(entry)

    for seq, amount in enumerate(penalties, start=1):
        penalty = LoanPenalty(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            loan_id=loan.id,
            schedule_entry_id=saved_entries[0].id,
            seq=seq,
            penalty_type=PenaltyType.LATE_PAYMENT,
            penalty_rate=Decimal("0.02"),
            days_overdue=10,
            penalty_amount=Money(amount),
            net_penalty=Money(amount),
            applied_date=date(2026, 2, 11)
        )
        service.ledger.save_penalty(penalty)

    return loan


def loan_totals(loan: Loan) -> dict:
    """Aggregate fields a reversal must restore"""
    return {
        "outstanding_balance": loan.outstanding_balance,
        "total_principal_paid": loan.total_principal_paid,
        "total_interest_paid": loan.total_interest_paid,
        "total_penalty_paid": loan.total_penalty_paid,
        "total_penalties_outstanding": loan.total_penalties_outstanding
    }
