"""
Pydantic schemas for API requests

Money travels as integer centavos; rates as decimal strings.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field

from ..amortization import PaymentInterval
from ..currency import Money
from ..members import MemberStatus
from ..products import LoanType
from ..requests import (
    LoanApplicationRequest, ApproveLoanRequest, DisburseLoanRequest,
    RecordPaymentRequest, WaivePenaltyRequest
)


# Member schemas
class RegisterMemberRequest(BaseModel):
    member_number: str
    first_name: str
    last_name: str
    member_status: MemberStatus = MemberStatus.REGULAR
    membership_date: Optional[date] = None


class ChangeMemberStatusRequest(BaseModel):
    member_status: MemberStatus


# Product schemas
class CreateProductRequest(BaseModel):
    code: str
    name: str
    loan_type: LoanType
    interest_rate: str = Field(..., description="Monthly rate as decimal string, e.g. '0.015'")
    max_term_months: int
    max_amount: int = Field(..., description="Centavos")
    min_amount: int = 0
    processing_fee_rate: str = "0"
    service_fee: int = 0
    requires_collateral: bool = False
    description: Optional[str] = None


# Loan schemas
class SchedulePreviewRequest(BaseModel):
    principal_amount: int = Field(..., description="Centavos")
    interest_rate: str = Field(..., description="Monthly rate as decimal string")
    term_months: int
    first_payment_date: date
    payment_interval: PaymentInterval = PaymentInterval.MONTHLY


class LoanApplicationModel(BaseModel):
    member_id: str
    product_id: str
    principal_amount: int = Field(..., description="Centavos")
    term_months: int
    payment_interval: PaymentInterval = PaymentInterval.MONTHLY
    interest_rate: Optional[str] = None  # Overrides the product rate
    purpose: Optional[str] = None
    collateral_description: Optional[str] = None
    application_date: Optional[date] = None
    first_payment_date: Optional[date] = None

    def to_request(self) -> LoanApplicationRequest:
        return LoanApplicationRequest(
            member_id=self.member_id,
            product_id=self.product_id,
            principal_amount=Money(self.principal_amount),
            term_months=self.term_months,
            payment_interval=self.payment_interval,
            interest_rate=self.interest_rate,
            purpose=self.purpose,
            collateral_description=self.collateral_description,
            application_date=self.application_date,
            first_payment_date=self.first_payment_date
        )


class ApproveLoanModel(BaseModel):
    approval_date: Optional[date] = None
    notes: Optional[str] = None

    def to_request(self) -> ApproveLoanRequest:
        return ApproveLoanRequest(approval_date=self.approval_date, notes=self.notes)


class RejectLoanModel(BaseModel):
    reason: str


class DisburseLoanModel(BaseModel):
    disbursement_date: Optional[date] = None
    first_payment_date: Optional[date] = None

    def to_request(self) -> DisburseLoanRequest:
        return DisburseLoanRequest(
            disbursement_date=self.disbursement_date,
            first_payment_date=self.first_payment_date
        )


class RecordPaymentModel(BaseModel):
    amount: int = Field(..., description="Centavos")
    payment_method: str = "cash"
    payment_date: Optional[date] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    def to_request(self) -> RecordPaymentRequest:
        return RecordPaymentRequest(
            amount=Money(self.amount),
            payment_method=self.payment_method,
            payment_date=self.payment_date,
            reference_number=self.reference_number,
            notes=self.notes
        )


class ComputePenaltiesModel(BaseModel):
    as_of_date: Optional[date] = None
    rate: Optional[str] = None  # Monthly penalty rate as decimal string


class WaivePenaltyModel(BaseModel):
    amount: int = Field(..., description="Centavos")
    reason: str

    def to_request(self) -> WaivePenaltyRequest:
        return WaivePenaltyRequest(amount=Money(self.amount), reason=self.reason)
