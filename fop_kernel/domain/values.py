"""
Values -- Immutable, self-validating value objects.

Responsibility:
    Money (currency-tagged, non-negative, cent-precision amounts) and Weight
    (unit-tagged aircraft weights) used by every fee, invoice and balance
    computation, plus the MTOW tier classification derived from weight.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Money amounts are Decimal, never negative, rounded half-up to cents.
    - Arithmetic never mixes currencies.
    - Weight keeps its original unit; conversions are computed, not stored.

Failure modes:
    - NegativeMoneyError on negative amounts or subtraction below zero.
    - CurrencyMismatchError when combining different currencies.
    - InvalidCurrencyError on unsupported currency codes.
    - ValueError on negative weights or multiplication factors.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from fop_kernel.db.types import round_money
from fop_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidCurrencyError,
    NegativeMoneyError,
)


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Convert to Decimal, refusing floats."""
    if isinstance(value, float):
        raise TypeError("Monetary and weight values must not be floats")
    try:
        return Decimal(str(value)) if not isinstance(value, Decimal) else value
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal value: {value!r}") from exc


class Currency(str, Enum):
    """Currencies the authority invoices in."""

    USD = "USD"
    XCD = "XCD"

    @classmethod
    def parse(cls, code: str | Currency) -> Currency:
        if isinstance(code, Currency):
            return code
        try:
            return cls((code or "").strip().upper())
        except ValueError as exc:
            raise InvalidCurrencyError(str(code)) from exc


@dataclass(frozen=True, slots=True)
class Money:
    """
    Non-negative monetary amount paired with its currency.

    Guarantees:
        - amount is a Decimal quantized to 2 places (ROUND_HALF_UP)
        - amount >= 0
    """

    amount: Decimal
    currency: Currency = Currency.USD

    def __post_init__(self) -> None:
        amount = round_money(to_decimal(self.amount))
        if amount < 0:
            raise NegativeMoneyError(amount)
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", Currency.parse(self.currency))

    @classmethod
    def of(cls, amount: Decimal | int | str, currency: str | Currency = Currency.USD) -> Money:
        return cls(amount=to_decimal(amount), currency=Currency.parse(currency))

    @classmethod
    def zero(cls, currency: str | Currency = Currency.USD) -> Money:
        return cls(amount=Decimal("0"), currency=Currency.parse(currency))

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                self.currency.value, other.currency.value, operation
            )

    def __add__(self, other: Money) -> Money:
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check_currency(other, "subtract")
        result = self.amount - other.amount
        if result < 0:
            raise NegativeMoneyError(result)
        return Money(result, self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        factor = to_decimal(factor)
        if factor < 0:
            raise ValueError(f"Multiplication factor cannot be negative: {factor}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency.value}"


class WeightUnit(str, Enum):
    KG = "KG"
    LBS = "LBS"


LBS_PER_KG = Decimal("2.20462")


class MtowTier(str, Enum):
    """Maximum-takeoff-weight bands used to select revenue fee rates."""

    TIER1 = "TIER1"  # up to 12,500 lbs
    TIER2 = "TIER2"  # up to 75,000 lbs
    TIER3 = "TIER3"  # up to 100,000 lbs
    TIER4 = "TIER4"  # above 100,000 lbs

    @classmethod
    def from_pounds(cls, pounds: Decimal) -> MtowTier:
        if pounds <= 12_500:
            return cls.TIER1
        if pounds <= 75_000:
            return cls.TIER2
        if pounds <= 100_000:
            return cls.TIER3
        return cls.TIER4


@dataclass(frozen=True, slots=True)
class Weight:
    """A weight in its original unit; conversions round to 2 places."""

    value: Decimal
    unit: WeightUnit = WeightUnit.KG

    def __post_init__(self) -> None:
        value = to_decimal(self.value)
        if value < 0:
            raise ValueError(f"Weight cannot be negative: {value}")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "unit", WeightUnit(self.unit))

    @classmethod
    def kilograms(cls, value: Decimal | int | str) -> Weight:
        return cls(to_decimal(value), WeightUnit.KG)

    @classmethod
    def pounds(cls, value: Decimal | int | str) -> Weight:
        return cls(to_decimal(value), WeightUnit.LBS)

    def to_kg(self) -> Decimal:
        if self.unit is WeightUnit.KG:
            return self.value
        return round_money(self.value / LBS_PER_KG)

    def to_lbs(self) -> Decimal:
        if self.unit is WeightUnit.LBS:
            return self.value
        return round_money(self.value * LBS_PER_KG)

    @property
    def tier(self) -> MtowTier:
        return MtowTier.from_pounds(self.to_lbs())

    def __str__(self) -> str:
        return f"{self.value} {self.unit.value}"
