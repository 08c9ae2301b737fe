"""
Tests for payment recording and the allocation waterfall
"""

import pytest
from datetime import date

from coop_lending.audit import AuditEventType
from coop_lending.currency import Money
from coop_lending.exceptions import ValidationError, StateError, NotFoundError
from coop_lending.models import LoanStatus, ScheduleStatus, PaymentMethod
from coop_lending.requests import RecordPaymentRequest

from builders import (
    make_service, register_member, create_product, apply_loan, active_loan,
    seed_active_loan, CASHIER
)


def pay(service, loan_id, amount, payment_date=date(2026, 2, 1), **kwargs):
    return service.record_payment(
        loan_id,
        RecordPaymentRequest(amount=Money(amount), payment_date=payment_date, **kwargs),
        CASHIER
    )


class TestWaterfall:
    """Test penalty-first, interest-before-principal allocation"""

    def setup_method(self):
        self.service, self.clock = make_service()

    def test_penalty_then_interest_then_principal(self):
        loan = seed_active_loan(self.service, [(50_000, 10_000), (50_000, 5_000)], penalties=[2_000])

        payment = pay(self.service, loan.id, 50_000, payment_date=date(2026, 2, 20))

        assert payment.penalty_portion == Money(2_000)
        assert payment.interest_portion == Money(10_000)
        assert payment.principal_portion == Money(38_000)
        assert payment.amount == Money(50_000)
        assert payment.unapplied_amount == Money(0)
        assert payment.balance_before == Money(100_000)
        assert payment.balance_after == Money(62_000)

        first, second = self.service.get_schedule(loan.id)
        assert first.status == ScheduleStatus.PARTIAL
        assert first.interest_paid == Money(10_000)
        assert first.principal_paid == Money(38_000)
        assert first.total_paid == Money(48_000)
        assert second.status == ScheduleStatus.PENDING
        assert second.total_paid == Money(0)

        penalty = self.service.get_penalties(loan.id)[0]
        assert penalty.is_paid
        assert penalty.amount_paid == Money(2_000)
        assert penalty.paid_date == date(2026, 2, 20)

        loan = self.service.get_loan(loan.id)
        assert loan.outstanding_balance == Money(62_000)
        assert loan.total_penalties_outstanding == Money(0)
        assert loan.total_penalty_paid == Money(2_000)
        assert loan.total_interest_paid == Money(10_000)
        assert loan.total_principal_paid == Money(38_000)

    def test_payment_smaller_than_penalties(self):
        loan = seed_active_loan(self.service, [(50_000, 10_000)], penalties=[2_000, 3_000])

        payment = pay(self.service, loan.id, 3_500)
        assert payment.penalty_portion == Money(3_500)
        assert payment.interest_portion == Money(0)
        assert payment.principal_portion == Money(0)

        first, second = self.service.get_penalties(loan.id)
        assert first.is_paid
        assert not second.is_paid
        assert second.amount_paid == Money(1_500)
        assert second.collectible == Money(1_500)

        loan = self.service.get_loan(loan.id)
        assert loan.total_penalties_outstanding == Money(1_500)
        assert loan.outstanding_balance == Money(50_000)

        # The next payment collects only what is left on the second penalty
        payment = pay(self.service, loan.id, 2_000)
        assert payment.penalty_portion == Money(1_500)
        assert payment.interest_portion == Money(500)
        assert self.service.get_penalties(loan.id)[1].is_paid

    def test_interest_only_payment_keeps_principal(self):
        loan = seed_active_loan(self.service, [(50_000, 10_000), (50_000, 5_000)])
        payment = pay(self.service, loan.id, 8_000)
        assert payment.interest_portion == Money(8_000)
        assert payment.principal_portion == Money(0)
        assert self.service.get_loan(loan.id).outstanding_balance == Money(100_000)
        assert self.service.get_schedule(loan.id)[0].interest_balance == Money(2_000)

    def test_payment_spills_into_next_installment(self):
        loan = seed_active_loan(self.service, [(50_000, 10_000), (50_000, 5_000)])
        payment = pay(self.service, loan.id, 70_000)

        first, second = self.service.get_schedule(loan.id)
        assert first.status == ScheduleStatus.PAID
        assert first.paid_date == date(2026, 2, 1)
        assert second.status == ScheduleStatus.PARTIAL
        assert second.interest_paid == Money(5_000)
        assert second.principal_paid == Money(5_000)
        assert payment.interest_portion == Money(15_000)
        assert payment.principal_portion == Money(55_000)

    def test_portions_always_sum_to_amount(self):
        loan = seed_active_loan(self.service, [(50_000, 10_000), (50_000, 5_000)], penalties=[1_234])
        for amount in (777, 12_345, 40_000, 33_333):
            payment = pay(self.service, loan.id, amount)
            assert payment.penalty_portion + payment.interest_portion + payment.principal_portion == payment.amount
            assert payment.amount + payment.unapplied_amount == Money(amount)


class TestPayoffAndOverpayment:
    """Test closing payments and unapplied excess"""

    def setup_method(self):
        self.service, self.clock = make_service()
        self.loan = active_loan(self.service)

    def test_payoff_amount(self):
        assert self.service.payoff_amount(self.loan.id) == Money(1_015_025)
        pay(self.service, self.loan.id, 100_000)
        assert self.service.payoff_amount(self.loan.id) == Money(915_025)

    def test_exact_payoff_closes_loan(self):
        payment = pay(self.service, self.loan.id, 1_015_025, payment_date=date(2026, 1, 30))

        assert payment.principal_portion == Money(1_000_000)
        assert payment.interest_portion == Money(15_025)
        assert payment.unapplied_amount == Money(0)
        assert payment.balance_after == Money(0)

        loan = self.service.get_loan(self.loan.id)
        assert loan.status == LoanStatus.CLOSED
        assert loan.outstanding_balance == Money(0)
        assert all(e.status == ScheduleStatus.PAID for e in self.service.get_schedule(loan.id))

        events = self.service.audit.get_events_for_entity("loan", loan.id)
        assert events[-1].event_type == AuditEventType.LOAN_CLOSED

    def test_overpayment_is_kept_unapplied(self, caplog):
        with caplog.at_level("WARNING", logger="coop_lending.allocation"):
            payment = pay(self.service, self.loan.id, 1_100_000)

        assert payment.amount == Money(1_015_025)
        assert payment.unapplied_amount == Money(84_975)
        assert self.service.get_loan(self.loan.id).status == LoanStatus.CLOSED
        assert any("unapplied" in record.getMessage() for record in caplog.records)

    def test_installment_by_installment_repayment(self):
        pay(self.service, self.loan.id, 507_513, payment_date=date(2026, 2, 1))
        loan = self.service.get_loan(self.loan.id)
        assert loan.status == LoanStatus.ACTIVE
        assert loan.outstanding_balance == Money(502_487)

        pay(self.service, self.loan.id, 507_512, payment_date=date(2026, 3, 1))
        loan = self.service.get_loan(self.loan.id)
        assert loan.status == LoanStatus.CLOSED
        assert loan.total_interest_paid == Money(15_025)
        assert loan.total_principal_paid == Money(1_000_000)

    def test_closed_loan_rejects_payment(self):
        pay(self.service, self.loan.id, 1_015_025)
        with pytest.raises(StateError, match="closed"):
            pay(self.service, self.loan.id, 1_000)


class TestPaymentGuards:
    """Test payment validation and atomicity"""

    def setup_method(self):
        self.service, self.clock = make_service()

    def test_payment_on_pending_loan(self):
        member = register_member(self.service)
        product = create_product(self.service)
        loan = apply_loan(self.service, member, product)
        with pytest.raises(StateError, match="pending"):
            pay(self.service, loan.id, 10_000)

    def test_unknown_loan(self):
        with pytest.raises(NotFoundError):
            pay(self.service, "missing", 10_000)

    def test_request_validation(self):
        with pytest.raises(ValidationError):
            RecordPaymentRequest(amount=Money(0))
        with pytest.raises(ValidationError):
            RecordPaymentRequest(amount=Money(-100))
        with pytest.raises(ValidationError, match="payment method"):
            RecordPaymentRequest(amount=Money(100), payment_method="bitcoin")

    def test_payment_method_and_reference(self):
        loan = active_loan(self.service)
        payment = pay(self.service, loan.id, 10_000, payment_method="gcash", reference_number=" GC-123 ")
        assert payment.payment_method == PaymentMethod.GCASH
        assert payment.reference_number == "GC-123"
        assert payment.operator_id == CASHIER.id
        assert self.service.get_payment(payment.id) == payment
        assert self.service.get_payments(loan.id) == [payment]

    def test_payment_date_defaults_to_clock(self):
        loan = active_loan(self.service)
        self.clock.set(self.clock.now().replace(month=2, day=3))
        payment = self.service.record_payment(loan.id, RecordPaymentRequest(amount=Money(10_000)), CASHIER)
        assert payment.payment_date == date(2026, 2, 3)

    def test_failure_rolls_back_allocation(self, monkeypatch):
        loan = seed_active_loan(self.service, [(50_000, 10_000)], penalties=[2_000])

        def fail(*args, **kwargs):
            raise RuntimeError("sequence unavailable")

        monkeypatch.setattr(self.service.allocator.sequences, "next_number", fail)
        with pytest.raises(RuntimeError):
            pay(self.service, loan.id, 30_000)

        assert self.service.get_loan(loan.id) == loan
        assert self.service.get_schedule(loan.id)[0].total_paid == Money(0)
        assert not self.service.get_penalties(loan.id)[0].is_paid
        assert self.service.get_payments(loan.id) == []

    def test_nothing_left_to_apply(self):
        loan = active_loan(self.service)
        payment = pay(self.service, loan.id, 1_015_025)
        self.service.reverse_payment(payment.id, CASHIER)

        # Reversal restores totals only; every installment is still marked paid
        with pytest.raises(ValidationError, match="nothing|no open"):
            pay(self.service, loan.id, 10_000)
