"""Human-facing document numbers (application, permit, invoice, receipt)."""

from datetime import date
from typing import Callable
from uuid import uuid4

from fop_kernel.exceptions import DocumentNumberExhaustedError

MAX_NUMBER_ATTEMPTS = 5


def generate_number(prefix: str, on: date, *, date_format: str = "%Y%m%d", suffix_len: int = 8) -> str:
    """``{prefix}-{date}-{HEX}``, e.g. ``BVIA-INV-20260115-3F9A0C1B``."""
    return f"{prefix}-{on.strftime(date_format)}-{uuid4().hex[:suffix_len].upper()}"


def unique_number(
    generate: Callable[[], str],
    is_taken: Callable[[str], bool],
    *,
    attempts: int = MAX_NUMBER_ATTEMPTS,
) -> str:
    """First generated number that ``is_taken`` does not report as used."""
    for _ in range(attempts):
        number = generate()
        if not is_taken(number):
            return number
    raise DocumentNumberExhaustedError(attempts)
