"""
Loan product endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import LendingSystem, get_lending_system, get_operator, to_http_error
from .schemas import CreateProductRequest
from ..context import Operator
from ..currency import Money
from ..exceptions import LendingError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: CreateProductRequest,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Create a loan product"""
    try:
        product = system.service.products.create_product(
            code=request.code,
            name=request.name,
            loan_type=request.loan_type,
            interest_rate=request.interest_rate,
            max_term_months=request.max_term_months,
            max_amount=Money(request.max_amount),
            operator=operator,
            min_amount=Money(request.min_amount),
            processing_fee_rate=request.processing_fee_rate,
            service_fee=Money(request.service_fee),
            requires_collateral=request.requires_collateral,
            description=request.description
        )
    except LendingError as e:
        raise to_http_error(e)
    return product.to_dict()


@router.get("")
async def list_products(
    active_only: bool = False,
    system: LendingSystem = Depends(get_lending_system)
):
    products = system.service.products.list_products(active_only=active_only)
    return {"products": [product.to_dict() for product in products]}


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    product = system.service.products.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Loan product not found")
    return product.to_dict()
