"""
Penalty Accrual Module

Assesses late penalties on overdue installments and records waivers.

Penalty = overdue amount x monthly rate x days overdue / 30, rounded
half-up to a whole centavo. The month is a flat 30 days.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional
import uuid

from .audit import AuditTrail, AuditEventType
from .config import LendingConfig, get_config
from .context import Clock, Operator, SystemClock
from .currency import Money, RateLike, to_decimal, round_half_up
from .exceptions import StateError, ValidationError
from .ledger_store import LedgerStore
from .logging_config import get_logger, log_action
from .models import LoanStatus, LoanPenalty, PenaltyType, ScheduleStatus, OPEN_SCHEDULE_STATUSES
from .requests import WaivePenaltyRequest


logger = get_logger("coop_lending.penalties")


class PenaltyAccrualEngine:
    """Creates penalty rows for overdue installments and applies waivers"""

    def __init__(
        self,
        ledger: LedgerStore,
        audit_trail: AuditTrail,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.ledger = ledger
        self.audit = audit_trail
        self.clock = clock or SystemClock()
        self.config = config or get_config()

    def _resolve_rate(self, rate: Optional[RateLike]) -> Decimal:
        if rate is None:
            rate = self.config.default_penalty_rate
        try:
            resolved = to_decimal(rate)
        except (TypeError, ArithmeticError):
            raise ValidationError(f"Invalid penalty rate: {rate}")
        if not resolved.is_finite() or resolved <= 0:
            raise ValidationError("Penalty rate must be greater than zero")
        return resolved

    def calculate_penalty(self, overdue: Money, rate: Decimal, days_overdue: int) -> Money:
        """Penalty on an overdue amount, prorated over a 30-day month"""
        days_per_month = Decimal(self.config.penalty_days_per_month)
        return Money(round_half_up(Decimal(overdue.amount) * rate * Decimal(days_overdue) / days_per_month))

    def compute_penalties(self, loan_id: str, as_of_date: Optional[date] = None,
                          rate: Optional[RateLike] = None) -> List[LoanPenalty]:
        """
        Assess penalties on every installment overdue as of a date

        An installment already assessed on the same as-of date is skipped, so
        repeating a run is a no-op; a later as-of date adds new penalties on
        top of earlier ones.

        Args:
            loan_id: Loan to scan
            as_of_date: Assessment date, defaults to today
            rate: Monthly penalty rate, defaults to the configured rate

        Returns:
            Penalties created by this run

        Raises:
            StateError: If the loan is not active
        """
        penalty_rate = self._resolve_rate(rate)
        as_of_date = as_of_date or self.clock.today()
        created = []

        with self.ledger.atomic():
            loan = self.ledger.lock_loan(loan_id)
            loan.require_status((LoanStatus.ACTIVE,), "compute penalties on")

            existing = self.ledger.get_penalties(loan.id)
            assessed = {(p.schedule_entry_id, p.applied_date) for p in existing}
            seq = max((p.seq for p in existing), default=0)
            now = self.clock.now()
            total_new = Money.zero()

            for entry in self.ledger.get_schedule(loan.id):
                if entry.status not in OPEN_SCHEDULE_STATUSES or entry.due_date >= as_of_date:
                    continue
                if (entry.id, as_of_date) in assessed:
                    continue

                days_overdue = (as_of_date - entry.due_date).days
                overdue = entry.total_due - entry.total_paid
                if days_overdue <= 0 or not overdue.is_positive():
                    continue

                amount = self.calculate_penalty(overdue, penalty_rate, days_overdue)
                if not amount.is_positive():
                    continue

                seq += 1
                penalty = LoanPenalty(
                    id=str(uuid.uuid4()),
                    created_at=now,
                    updated_at=now,
                    loan_id=loan.id,
                    schedule_entry_id=entry.id,
                    seq=seq,
                    penalty_type=(PenaltyType.NON_PAYMENT
                                  if days_overdue > self.config.late_payment_threshold_days
                                  else PenaltyType.LATE_PAYMENT),
                    penalty_rate=penalty_rate,
                    days_overdue=days_overdue,
                    penalty_amount=amount,
                    net_penalty=amount,
                    applied_date=as_of_date
                )
                self.ledger.save_penalty(penalty)

                entry.status = ScheduleStatus.OVERDUE
                entry.updated_at = now
                self.ledger.save_schedule_entry(entry)

                self.audit.log_event(
                    event_type=AuditEventType.PENALTY_ASSESSED,
                    entity_type="penalty",
                    entity_id=penalty.id,
                    metadata={
                        "loan_id": loan.id,
                        "payment_number": entry.payment_number,
                        "penalty_amount": amount,
                        "days_overdue": days_overdue,
                        "penalty_rate": penalty_rate
                    }
                )

                total_new = total_new + amount
                created.append(penalty)

            if total_new.is_positive():
                loan.total_penalties_outstanding = loan.total_penalties_outstanding + total_new
                loan.updated_at = now
                self.ledger.save_loan(loan)

        if created:
            log_action(logger, "info",
                       f"Assessed {len(created)} penalties on loan {loan.loan_number}",
                       action="compute_penalties", resource=loan.id,
                       extra={"as_of_date": as_of_date.isoformat(), "total": total_new.amount})
        return created

    def waive_penalty(self, penalty_id: str, request: WaivePenaltyRequest, operator: Operator) -> LoanPenalty:
        """
        Waive part or all of a penalty

        Raises:
            StateError: If the penalty is already paid
            ValidationError: If the waived amount exceeds the collectible net penalty
        """
        with self.ledger.atomic():
            penalty = self.ledger.lock_penalty(penalty_id)
            if penalty.is_paid:
                raise StateError("Cannot waive a penalty that has already been paid")
            if request.amount > penalty.collectible:
                raise ValidationError(
                    f"Waived amount {request.amount.amount} exceeds net penalty {penalty.collectible.amount}"
                )

            loan = self.ledger.lock_loan(penalty.loan_id)
            now = self.clock.now()

            penalty.waived_amount = penalty.waived_amount + request.amount
            penalty.net_penalty = penalty.net_penalty - request.amount
            penalty.waived_by = operator.id
            penalty.waived_at = now
            penalty.waiver_reason = request.reason
            if penalty.amount_paid >= penalty.net_penalty:
                # Nothing left to collect
                penalty.is_paid = True
            penalty.updated_at = now
            self.ledger.save_penalty(penalty)

            loan.total_penalties_outstanding = (loan.total_penalties_outstanding - request.amount).floor_zero()
            loan.updated_at = now
            self.ledger.save_loan(loan)

            self.audit.log_event(
                event_type=AuditEventType.PENALTY_WAIVED,
                entity_type="penalty",
                entity_id=penalty.id,
                metadata={
                    "loan_id": loan.id,
                    "waived_amount": request.amount,
                    "net_penalty": penalty.net_penalty,
                    "reason": request.reason
                },
                user_id=operator.id
            )

        log_action(logger, "info", f"Waived {request.amount.amount} of penalty {penalty.id}",
                   user_id=operator.id, action="waive_penalty", resource=loan.id,
                   extra={"reason": request.reason})
        return penalty
