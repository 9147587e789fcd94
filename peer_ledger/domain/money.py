"""Fixed-point money type stored as integer cents"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from peer_ledger.domain.exceptions import InvalidInput

CENT = Decimal("0.01")


@dataclass(frozen=True, order=True)
class Money:
    """
    Currency amount as a whole number of minor units (cents).

    All arithmetic stays in integers; the only place a fraction can appear is
    when a rate is applied, and that result is rounded half-up to the cent.
    """

    cents: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise TypeError(f"Money requires integer cents, got {type(self.cents).__name__}")

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def parse(cls, value: Union[str, int, Decimal]) -> "Money":
        """
        Build Money from a major-unit value like "318", "11.16" or Decimal("0.5").

        Raises:
            InvalidInput: value is not a number or carries sub-cent precision
        """
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidInput(f"Not a valid amount: {value!r}") from e

        if not amount.is_finite():
            raise InvalidInput(f"Not a valid amount: {value!r}")
        try:
            quantized = amount.quantize(CENT)
        except InvalidOperation as e:
            # Too many digits for the decimal context
            raise InvalidInput(f"Amount {value} is out of range") from e
        if amount != quantized:
            raise InvalidInput(f"Amount {value} has more than two decimal places")

        return cls(int(amount * 100))

    def to_decimal(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(CENT)

    def apply_rate(self, rate: Decimal) -> "Money":
        """Multiply by a rate, rounding half-up at the cent boundary"""
        product = (Decimal(self.cents) * rate).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return Money(int(product))

    def is_zero(self) -> bool:
        return self.cents == 0

    def is_positive(self) -> bool:
        return self.cents > 0

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __neg__(self) -> "Money":
        return Money(-self.cents)

    def __str__(self) -> str:
        return f"{self.to_decimal():.2f}"


def total(amounts) -> Money:
    """Sum an iterable of Money"""
    return Money(sum(amount.cents for amount in amounts))
