"""
Module: fop_kernel.db.types
Responsibility: Annotated column type aliases and the single sanctioned
    rounding function for monetary values.
Architecture position: Kernel > DB.  Imported by models, domain and services.
    MUST NOT import from any of those layers.

Invariants enforced:
    No floats for money.  Amounts are Decimal stored as Numeric(38, 9) and
    rounded half-up to cents with ``round_money()``.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
MoneyAmount = Annotated[Decimal, Numeric(38, 9)]

# Percentages, multipliers and per-kg rates
Rate = Annotated[Decimal, Numeric(18, 6)]

# ISO 4217 currency code
CurrencyCode = Annotated[str, String(3)]

# Status / enum values stored by name
ShortCode = Annotated[str, String(50)]

# Identifiers generated for humans (FOP-..., BVIA-INV-...)
DocumentNumber = Annotated[str, String(40)]

# Free text
LongText = Annotated[str, String(4000)]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places``.

    The only sanctioned rounding function for money in the FOP core.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return Decimal(value).quantize(quantum, rounding=rounding)
