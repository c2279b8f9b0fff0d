"""
Money - exact decimal amounts for every pricing calculation

Amounts carry 2 decimal places, rates and multipliers carry 4.
Rounding is ROUND_HALF_UP and is applied on every operation, so a
computation rounds per line and then sums the rounded lines.

Author: TM3
Date: 2026-10-12
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

Numeric = Union[Decimal, int, str]


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert an exact numeric value to Decimal.

    Floats are rejected: they would bring binary rounding drift into
    the calculation.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Money arithmetic does not accept {type(value).__name__} values")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        return Decimal(value)
    raise TypeError(f"Unsupported numeric type: {type(value).__name__}")


def round_amount(value: Numeric) -> Decimal:
    """Round to 2 decimal places (currency amounts)"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def round_rate(value: Numeric) -> Decimal:
    """Round to 4 decimal places (rates and multipliers)"""
    return to_decimal(value).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, order=True)
class Money:
    """Immutable currency amount"""

    amount: Decimal = Decimal("0.00")

    def __post_init__(self):
        object.__setattr__(self, "amount", round_amount(self.amount))

    @classmethod
    def zero(cls) -> "Money":
        return cls(Decimal("0"))

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount)

    def times(self, factor: Union[Decimal, int]) -> "Money":
        """Multiply by a rate or a quantity, rounding the result to cents"""
        return Money(self.amount * to_decimal(factor))

    def __mul__(self, factor: Union[Decimal, int]) -> "Money":
        if isinstance(factor, Money):
            return NotImplemented
        return self.times(factor)

    __rmul__ = __mul__

    def is_negative(self) -> bool:
        return self.amount < 0

    def __str__(self) -> str:
        return str(self.amount)


def sum_money(amounts) -> Money:
    """Sum an iterable of Money values"""
    total = Money.zero()
    for amount in amounts:
        total = total + amount
    return total
