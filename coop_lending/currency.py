"""
Money Module

Integer minor-unit (centavo) money representation. NEVER uses float for
monetary values: amounts are plain ints and every rate multiplication goes
through Decimal with explicit half-up rounding back to a whole centavo.
"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_CEILING, getcontext
from dataclasses import dataclass
from typing import Iterable, Union

# Set global decimal context for financial precision
getcontext().prec = 28

RateLike = Union[Decimal, int, str, float]


def to_decimal(value: RateLike) -> Decimal:
    """
    Convert a rate-like value to Decimal without binary float artifacts

    Args:
        value: Decimal, int, numeric string or float

    Returns:
        Decimal value
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a valid rate")
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round a Decimal to the nearest whole unit, halves away from zero"""
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def round_up(value: Decimal) -> int:
    """Round a Decimal up to the next whole unit"""
    return int(value.to_integral_value(rounding=ROUND_CEILING))


@dataclass(frozen=True)
class Money:
    """
    Immutable money amount in centavos.

    The only public representation is the integer ``amount``. Conversion to
    a display currency belongs to the presentation layer.
    """
    amount: int

    def __post_init__(self):
        value = self.amount
        if isinstance(value, bool):
            raise TypeError("Money amount must be an integer number of centavos")
        if isinstance(value, Decimal):
            if value != value.to_integral_value():
                raise ValueError(f"Money amount must be whole centavos, got {value}")
            object.__setattr__(self, 'amount', int(value))
        elif not isinstance(value, int):
            raise TypeError(
                f"Money amount must be an integer number of centavos, got {type(value).__name__}"
            )

    @classmethod
    def zero(cls) -> 'Money':
        return cls(0)

    @classmethod
    def total(cls, amounts: Iterable['Money']) -> 'Money':
        """Sum an iterable of Money values"""
        result = 0
        for money in amounts:
            result += money.amount
        return cls(result)

    def __add__(self, other: 'Money') -> 'Money':
        return Money(self.amount + self._coerce(other))

    def __sub__(self, other: 'Money') -> 'Money':
        return Money(self.amount - self._coerce(other))

    def __mul__(self, multiplier: RateLike) -> 'Money':
        """Multiply by a rate, rounding half-up to whole centavos"""
        return Money(round_half_up(Decimal(self.amount) * to_decimal(multiplier)))

    def __neg__(self) -> 'Money':
        return Money(-self.amount)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount))

    def __lt__(self, other: 'Money') -> bool:
        return self.amount < self._coerce(other)

    def __le__(self, other: 'Money') -> bool:
        return self.amount <= self._coerce(other)

    def __gt__(self, other: 'Money') -> bool:
        return self.amount > self._coerce(other)

    def __ge__(self, other: 'Money') -> bool:
        return self.amount >= self._coerce(other)

    def floor_zero(self) -> 'Money':
        """Clamp negative amounts to zero"""
        return self if self.amount >= 0 else Money(0)

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == 0

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > 0

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < 0

    @staticmethod
    def _coerce(other: 'Money') -> int:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        return other.amount
