"""
Loan endpoints
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import LendingSystem, get_lending_system, get_operator, to_http_error
from .schemas import (
    SchedulePreviewRequest, LoanApplicationModel, ApproveLoanModel, RejectLoanModel,
    DisburseLoanModel, RecordPaymentModel, ComputePenaltiesModel, WaivePenaltyModel
)
from ..context import Operator
from ..currency import Money
from ..exceptions import LendingError
from ..models import LoanStatus


router = APIRouter()


@router.post("/schedule/preview")
async def preview_schedule(
    request: SchedulePreviewRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Compute an amortization schedule without saving anything"""
    try:
        result = system.service.compute_schedule(
            principal=Money(request.principal_amount),
            rate=request.interest_rate,
            term_months=request.term_months,
            first_payment_date=request.first_payment_date,
            interval=request.payment_interval
        )
    except LendingError as e:
        raise to_http_error(e)

    return {
        "emi": result.emi.amount,
        "total_interest": result.total_interest.amount,
        "total_payable": result.total_payable.amount,
        "schedule": [
            {
                "payment_number": row.payment_number,
                "due_date": row.due_date.isoformat(),
                "beginning_balance": row.beginning_balance.amount,
                "principal_due": row.principal_due.amount,
                "interest_due": row.interest_due.amount,
                "total_due": row.total_due.amount,
                "ending_balance": row.ending_balance.amount
            }
            for row in result.schedule
        ]
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def apply_for_loan(
    request: LoanApplicationModel,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Submit a loan application"""
    try:
        loan = system.service.apply_for_loan(request.to_request(), operator)
    except LendingError as e:
        raise to_http_error(e)
    return loan.to_dict()


@router.get("")
async def list_loans(
    member_id: Optional[str] = None,
    loan_status: Optional[LoanStatus] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """List loans, optionally by member and status"""
    loans = system.service.list_loans(member_id=member_id, status=loan_status)
    return {"loans": [loan.to_dict() for loan in loans]}


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan details"""
    loan = system.service.get_loan(loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan.to_dict()


@router.post("/{loan_id}/review")
async def start_review(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    try:
        loan = system.service.start_review(loan_id, operator)
    except LendingError as e:
        raise to_http_error(e)
    return loan.to_dict()


@router.post("/{loan_id}/approve")
async def approve_loan(
    loan_id: str,
    request: Optional[ApproveLoanModel] = None,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    try:
        loan = system.service.approve(loan_id, operator, request.to_request() if request else None)
    except LendingError as e:
        raise to_http_error(e)
    return loan.to_dict()


@router.post("/{loan_id}/reject")
async def reject_loan(
    loan_id: str,
    request: RejectLoanModel,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    try:
        loan = system.service.reject(loan_id, request.reason, operator)
    except LendingError as e:
        raise to_http_error(e)
    return loan.to_dict()


@router.post("/{loan_id}/disburse")
async def disburse_loan(
    loan_id: str,
    request: DisburseLoanModel,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Release an approved loan"""
    try:
        loan = system.service.disburse(loan_id, request.to_request(), operator)
    except LendingError as e:
        raise to_http_error(e)
    return loan.to_dict()


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan amortization schedule"""
    try:
        schedule = system.service.get_schedule(loan_id)
    except LendingError as e:
        raise to_http_error(e)
    return {"schedule": [entry.to_dict() for entry in schedule]}


@router.post("/{loan_id}/payments", status_code=status.HTTP_201_CREATED)
async def record_payment(
    loan_id: str,
    request: RecordPaymentModel,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Record a loan repayment"""
    try:
        payment = system.service.record_payment(loan_id, request.to_request(), operator)
    except LendingError as e:
        raise to_http_error(e)
    return payment.to_dict()


@router.get("/{loan_id}/payments")
async def get_loan_payments(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    try:
        payments = system.service.get_payments(loan_id)
    except LendingError as e:
        raise to_http_error(e)
    return {"payments": [payment.to_dict() for payment in payments]}


@router.post("/payments/{payment_id}/reverse")
async def reverse_payment(
    payment_id: str,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Reverse a recorded payment"""
    try:
        payment = system.service.reverse_payment(payment_id, operator)
    except LendingError as e:
        raise to_http_error(e)
    return payment.to_dict()


@router.post("/{loan_id}/penalties")
async def compute_penalties(
    loan_id: str,
    request: ComputePenaltiesModel,
    system: LendingSystem = Depends(get_lending_system)
):
    """Assess penalties on overdue installments"""
    try:
        penalties = system.service.compute_penalties(loan_id, request.as_of_date, request.rate)
    except LendingError as e:
        raise to_http_error(e)
    return {"penalties": [penalty.to_dict() for penalty in penalties]}


@router.get("/{loan_id}/penalties")
async def get_loan_penalties(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    try:
        penalties = system.service.get_penalties(loan_id)
    except LendingError as e:
        raise to_http_error(e)
    return {"penalties": [penalty.to_dict() for penalty in penalties]}


@router.post("/penalties/{penalty_id}/waive")
async def waive_penalty(
    penalty_id: str,
    request: WaivePenaltyModel,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Waive part or all of a penalty"""
    try:
        penalty = system.service.waive_penalty(penalty_id, request.to_request(), operator)
    except LendingError as e:
        raise to_http_error(e)
    return penalty.to_dict()


@router.get("/{loan_id}/payoff")
async def get_payoff_amount(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Amount that settles every open installment and penalty"""
    try:
        amount = system.service.payoff_amount(loan_id)
    except LendingError as e:
        raise to_http_error(e)
    return {"loan_id": loan_id, "payoff_amount": amount.amount}
