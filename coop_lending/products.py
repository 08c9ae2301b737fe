"""
Loan Product Catalog

Loan products define the rate, term and amount limits, and fees applied to
each application.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import List, Optional
from enum import Enum
import uuid

from .audit import AuditTrail, AuditEventType
from .context import Clock, Operator, SystemClock
from .currency import Money, RateLike, to_decimal, round_half_up
from .exceptions import NotFoundError, StateError, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord


logger = get_logger("coop_lending.products")


class LoanType(Enum):
    TERM = "term"
    EMERGENCY = "emergency"
    SALARY = "salary"
    AGRICULTURAL = "agricultural"
    LIVELIHOOD = "livelihood"


@dataclass
class LoanProduct(StorageRecord):
    """Loan product definition"""
    code: str
    name: str
    loan_type: LoanType
    interest_rate: Decimal  # monthly, e.g. 0.015 = 1.5%/month
    max_term_months: int
    max_amount: Money
    min_amount: Money = Money(0)
    processing_fee_rate: Decimal = Decimal('0')
    service_fee: Money = Money(0)
    requires_collateral: bool = False
    description: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        if not self.code or not self.name:
            raise ValidationError("Product code and name are required")
        if self.interest_rate <= 0:
            raise ValidationError("Product interest rate must be greater than zero")
        if self.max_term_months <= 0:
            raise ValidationError("Product max term must be greater than zero")
        if self.min_amount.is_negative() or self.service_fee.is_negative():
            raise ValidationError("Product amounts cannot be negative")
        if self.max_amount < self.min_amount:
            raise ValidationError("Product max amount must not be below min amount")
        if self.processing_fee_rate < 0 or self.processing_fee_rate >= 1:
            raise ValidationError("Processing fee rate must be between 0 and 1")

    def processing_fee_for(self, principal: Money) -> Money:
        """Processing fee charged on a principal, rounded half-up"""
        return Money(round_half_up(Decimal(principal.amount) * self.processing_fee_rate))

    def check_terms(self, principal: Money, term_months: int) -> None:
        """
        Validate requested terms against product limits

        Raises:
            ValidationError: If the principal or term is outside the product limits
        """
        if principal < self.min_amount or principal > self.max_amount:
            raise ValidationError(
                f"Principal {principal.amount} is outside product limits "
                f"{self.min_amount.amount}-{self.max_amount.amount}"
            )
        if term_months > self.max_term_months:
            raise ValidationError(
                f"Term of {term_months} months exceeds product maximum of {self.max_term_months}"
            )


class ProductCatalog:
    """Manages loan products"""

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail, clock: Optional[Clock] = None):
        self.storage = storage
        self.audit = audit_trail
        self.clock = clock or SystemClock()
        self.table_name = "loan_products"

    def create_product(
        self,
        code: str,
        name: str,
        loan_type: LoanType,
        interest_rate: RateLike,
        max_term_months: int,
        max_amount: Money,
        operator: Operator,
        min_amount: Money = Money(0),
        processing_fee_rate: RateLike = Decimal('0'),
        service_fee: Money = Money(0),
        requires_collateral: bool = False,
        description: Optional[str] = None
    ) -> LoanProduct:
        """
        Create a loan product

        Returns:
            Created LoanProduct

        Raises:
            ValidationError: Invalid limits or a duplicate product code
        """
        try:
            rate = to_decimal(interest_rate)
            fee_rate = to_decimal(processing_fee_rate)
        except (TypeError, ArithmeticError):
            raise ValidationError(f"Invalid product rate: {interest_rate}, {processing_fee_rate}")

        now = self.clock.now()
        product = LoanProduct(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            code=code.strip().upper(),
            name=name.strip(),
            loan_type=loan_type,
            interest_rate=rate,
            max_term_months=max_term_months,
            max_amount=max_amount,
            min_amount=min_amount,
            processing_fee_rate=fee_rate,
            service_fee=service_fee,
            requires_collateral=requires_collateral,
            description=description
        )

        with self.storage.atomic():
            if self.get_product_by_code(product.code):
                raise ValidationError(f"Loan product code {product.code} already exists")

            self.storage.save(self.table_name, product.id, product.to_dict())
            self.audit.log_event(
                event_type=AuditEventType.PRODUCT_CREATED,
                entity_type="product",
                entity_id=product.id,
                metadata={
                    "code": product.code,
                    "loan_type": product.loan_type.value,
                    "interest_rate": product.interest_rate
                },
                user_id=operator.id
            )

        log_action(logger, "info", f"Created loan product {product.code}",
                   user_id=operator.id, action="create_product", resource=product.id)
        return product

    def set_active(self, product_id: str, is_active: bool, operator: Operator) -> LoanProduct:
        """Open or close a product for new applications"""
        with self.storage.atomic():
            product = self.get_product(product_id)
            if not product:
                raise NotFoundError(f"Loan product {product_id} not found")
            product.is_active = is_active
            product.updated_at = self.clock.now()
            self.storage.save(self.table_name, product.id, product.to_dict())
            self.audit.log_event(
                event_type=AuditEventType.PRODUCT_UPDATED,
                entity_type="product",
                entity_id=product.id,
                metadata={"is_active": is_active},
                user_id=operator.id
            )
        return product

    def get_product(self, product_id: str) -> Optional[LoanProduct]:
        data = self.storage.load(self.table_name, product_id)
        return LoanProduct.from_dict(data) if data else None

    def get_product_by_code(self, code: str) -> Optional[LoanProduct]:
        matches = self.storage.find(self.table_name, {"code": code.strip().upper()})
        return LoanProduct.from_dict(matches[0]) if matches else None

    def list_products(self, active_only: bool = False) -> List[LoanProduct]:
        records = self.storage.load_all(self.table_name)
        products = [LoanProduct.from_dict(r) for r in records]
        if active_only:
            products = [p for p in products if p.is_active]
        return products

    def require_active(self, product_id: str) -> LoanProduct:
        """
        Return a product open for applications

        Raises:
            NotFoundError: Unknown product
            StateError: Product is inactive
        """
        product = self.get_product(product_id)
        if not product:
            raise NotFoundError(f"Loan product {product_id} not found")
        if not product.is_active:
            raise StateError(f"Loan product {product.code} is not active")
        return product
