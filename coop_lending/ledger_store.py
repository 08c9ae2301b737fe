"""
Ledger Store

Typed repository for loans, schedule entries, payments and penalties on top
of a StorageInterface. Services never touch raw table names.
"""

from typing import List, Optional

from .exceptions import NotFoundError
from .models import (
    Loan, LoanStatus, ScheduleEntry, LoanPayment, LoanPenalty, OPEN_SCHEDULE_STATUSES
)
from .storage import StorageInterface


class LedgerStore:
    """Read, write and lock-for-update access to loan ledger records"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.loans_table = "loans"
        self.schedule_table = "loan_schedule_entries"
        self.payments_table = "loan_payments"
        self.penalties_table = "loan_penalties"

    def atomic(self):
        return self.storage.atomic()

    # Loans

    def save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, loan.to_dict())

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        data = self.storage.load(self.loans_table, loan_id)
        return Loan.from_dict(data) if data else None

    def require_loan(self, loan_id: str) -> Loan:
        loan = self.get_loan(loan_id)
        if not loan:
            raise NotFoundError(f"Loan {loan_id} not found")
        return loan

    def lock_loan(self, loan_id: str) -> Loan:
        """
        Read a loan for update inside the current transaction

        Raises:
            NotFoundError: If the loan does not exist
        """
        rows = self.storage.find_for_update(self.loans_table, {"id": loan_id})
        if not rows:
            raise NotFoundError(f"Loan {loan_id} not found")
        return Loan.from_dict(rows[0])

    def get_loan_by_number(self, loan_number: str) -> Optional[Loan]:
        rows = self.storage.find(self.loans_table, {"loan_number": loan_number})
        return Loan.from_dict(rows[0]) if rows else None

    def list_loans(self, member_id: Optional[str] = None,
                   status: Optional[LoanStatus] = None) -> List[Loan]:
        filters = {}
        if member_id:
            filters["member_id"] = member_id
        if status:
            filters["status"] = status.value
        loans = [Loan.from_dict(r) for r in self.storage.find(self.loans_table, filters)]
        loans.sort(key=lambda l: l.loan_number)
        return loans

    # Schedule entries

    def save_schedule_entry(self, entry: ScheduleEntry) -> None:
        self.storage.save(self.schedule_table, entry.id, entry.to_dict())

    def get_schedule(self, loan_id: str) -> List[ScheduleEntry]:
        """Schedule entries ordered by payment number"""
        rows = self.storage.find(self.schedule_table, {"loan_id": loan_id})
        entries = [ScheduleEntry.from_dict(r) for r in rows]
        entries.sort(key=lambda e: e.payment_number)
        return entries

    def get_open_schedule(self, loan_id: str) -> List[ScheduleEntry]:
        """Pending, partial and overdue entries in payment-number order"""
        return [e for e in self.get_schedule(loan_id) if e.status in OPEN_SCHEDULE_STATUSES]

    # Payments

    def save_payment(self, payment: LoanPayment) -> None:
        self.storage.save(self.payments_table, payment.id, payment.to_dict())

    def get_payment(self, payment_id: str) -> Optional[LoanPayment]:
        data = self.storage.load(self.payments_table, payment_id)
        return LoanPayment.from_dict(data) if data else None

    def lock_payment(self, payment_id: str) -> LoanPayment:
        rows = self.storage.find_for_update(self.payments_table, {"id": payment_id})
        if not rows:
            raise NotFoundError(f"Payment {payment_id} not found")
        return LoanPayment.from_dict(rows[0])

    def get_payments(self, loan_id: str) -> List[LoanPayment]:
        """Payments for a loan in the order they were recorded"""
        rows = self.storage.find(self.payments_table, {"loan_id": loan_id})
        payments = [LoanPayment.from_dict(r) for r in rows]
        payments.sort(key=lambda p: (p.created_at, p.payment_number))
        return payments

    # Penalties

    def save_penalty(self, penalty: LoanPenalty) -> None:
        self.storage.save(self.penalties_table, penalty.id, penalty.to_dict())

    def get_penalty(self, penalty_id: str) -> Optional[LoanPenalty]:
        data = self.storage.load(self.penalties_table, penalty_id)
        return LoanPenalty.from_dict(data) if data else None

    def lock_penalty(self, penalty_id: str) -> LoanPenalty:
        rows = self.storage.find_for_update(self.penalties_table, {"id": penalty_id})
        if not rows:
            raise NotFoundError(f"Penalty {penalty_id} not found")
        return LoanPenalty.from_dict(rows[0])

    def get_penalties(self, loan_id: str) -> List[LoanPenalty]:
        """Penalties for a loan, oldest first by (applied_date, seq)"""
        rows = self.storage.find(self.penalties_table, {"loan_id": loan_id})
        penalties = [LoanPenalty.from_dict(r) for r in rows]
        penalties.sort(key=lambda p: (p.applied_date, p.seq))
        return penalties

    def get_unpaid_penalties(self, loan_id: str) -> List[LoanPenalty]:
        return [p for p in self.get_penalties(loan_id) if not p.is_paid]

