"""
Typed Exception Hierarchy for the FOP core.

Every error raised by domain or service code is a subclass of ``FopError``
with a ``code`` class attribute (machine-readable, API-safe) and structured
attributes for the data needed to act on it.  Callers catch by type and read
attributes; they never parse messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FopError (base)
    |
    +-- ValidationFailedError          Error.Validation
    +-- NotFoundError                  Error.NotFound
    +-- ConcurrencyConflictError       Error.Concurrency
    |
    +-- MoneyError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |   +-- NegativeMoneyError
    |
    +-- ApplicationError
    |   +-- InvalidApplicationStateError
    |   +-- MissingDocumentsError
    |   +-- DocumentsNotVerifiedError
    |   +-- DocumentNotFoundError
    |   +-- DocumentExpiredError
    |   +-- ApplicationPaymentError
    |   +-- WaiverError
    |   |   +-- PendingWaiverExistsError
    |   |   +-- WaiverNotFoundError
    |   +-- FeeOverrideError
    |
    +-- InvoiceError
    |   +-- InvalidInvoiceStateError
    |   +-- InvoiceFinalizeError
    |   +-- PaymentExceedsBalanceError
    |   +-- InterestNotAllowedError
    |   +-- LineItemNotFoundError
    |
    +-- AccountBalanceError
    |   +-- NegativeOverdueError
    |
    +-- PermitError
    |   +-- InvalidPermitStateError
    |   +-- PermitBlockedDueToDebtError    Permit.BlockedDueToDebt
    |   +-- InvalidBypassError
    |
    +-- FeeConfigurationError

===============================================================================
HANDLING PATTERNS
===============================================================================

Aggregates raise.  Services catch ``FopError`` at the boundary and translate
to a ``Result`` failure whose ``code`` names the failed operation
(e.g. ``Payment.InvalidOperation``) and whose ``cause_code`` carries the
domain code below.  ``NotFoundError``, ``ConcurrencyConflictError`` and
``PermitBlockedDueToDebtError`` keep their own code at the boundary.
"""

from decimal import Decimal
from typing import Any


class FopError(Exception):
    """
    Base exception for all FOP core errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "Fop.Error"


# Boundary-level errors


class ValidationFailedError(FopError):
    """Command input failed shape validation."""

    code: str = "Error.Validation"

    def __init__(self, command: str, errors: list[dict[str, Any]]):
        self.command = command
        self.errors = errors
        fields = ", ".join(
            ".".join(str(p) for p in e.get("loc", ())) or "<root>" for e in errors
        )
        super().__init__(f"Invalid {command}: {fields}")


class NotFoundError(FopError):
    """An aggregate with the given identity does not exist for the tenant."""

    code: str = "Error.NotFound"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = str(entity_id)
        super().__init__(f"{entity} not found: {entity_id}")


class ConcurrencyConflictError(FopError):
    """Another transaction modified the same aggregate first."""

    code: str = "Error.Concurrency"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Concurrent modification detected: {detail}")


class DocumentNumberExhaustedError(FopError):
    code: str = "Fop.DocumentNumberExhausted"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No unused document number after {attempts} attempts")


# Money


class MoneyError(FopError):
    code: str = "Money.Invalid"


class InvalidCurrencyError(MoneyError):
    code: str = "Money.InvalidCurrency"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unsupported currency: {currency}")


class CurrencyMismatchError(MoneyError):
    code: str = "Money.CurrencyMismatch"

    def __init__(self, left: str, right: str, operation: str):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(f"Cannot {operation} {left} and {right}")


class NegativeMoneyError(MoneyError):
    code: str = "Money.Negative"

    def __init__(self, amount: Decimal):
        self.amount = amount
        super().__init__(f"Money amount cannot be negative: {amount}")


# Application


class ApplicationError(FopError):
    """Base exception for permit-application rule violations."""

    code: str = "Application.InvalidOperation"


class InvalidApplicationStateError(ApplicationError):
    code: str = "Application.InvalidStatus"

    def __init__(self, application_number: str, status: str, action: str):
        self.application_number = application_number
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} application {application_number} in status {status}"
        )


class MissingDocumentsError(ApplicationError):
    code: str = "Application.MissingDocuments"

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required documents: {', '.join(missing)}")


class DocumentsNotVerifiedError(ApplicationError):
    code: str = "Application.DocumentsNotVerified"

    def __init__(self, unverified: list[str]):
        self.unverified = unverified
        super().__init__(
            f"All required documents must be verified: {', '.join(unverified)}"
        )


class DocumentNotFoundError(ApplicationError):
    code: str = "Application.DocumentNotFound"

    def __init__(self, document_id: Any):
        self.document_id = str(document_id)
        super().__init__(f"Document not found: {document_id}")


class DocumentExpiredError(ApplicationError):
    code: str = "Application.DocumentExpired"

    def __init__(self, document_type: str, expiry_date: Any):
        self.document_type = document_type
        self.expiry_date = expiry_date
        super().__init__(f"Document {document_type} expired on {expiry_date}")


class ApplicationPaymentError(ApplicationError):
    """Invalid operation on the application's single payment."""

    code: str = "Application.PaymentInvalid"

    def __init__(self, message: str, payment_status: str | None = None):
        self.payment_status = payment_status
        super().__init__(message)


class WaiverError(ApplicationError):
    code: str = "Waiver.Invalid"


class PendingWaiverExistsError(WaiverError):
    code: str = "Waiver.PendingExists"

    def __init__(self, waiver_id: Any):
        self.waiver_id = str(waiver_id)
        super().__init__(
            f"A pending waiver already exists for this application: {waiver_id}"
        )


class WaiverNotFoundError(WaiverError):
    code: str = "Waiver.NotFound"

    def __init__(self, waiver_id: Any):
        self.waiver_id = str(waiver_id)
        super().__init__(f"Waiver not found: {waiver_id}")


class FeeOverrideError(ApplicationError):
    code: str = "FeeOverride.Invalid"


# Invoice ledger


class InvoiceError(FopError):
    """Base exception for invoice ledger violations."""

    code: str = "Invoice.InvalidOperation"


class InvalidInvoiceStateError(InvoiceError):
    code: str = "Invoice.InvalidState"

    def __init__(self, invoice_number: str, status: str, action: str):
        self.invoice_number = invoice_number
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} invoice {invoice_number} in status {status}"
        )


class InvoiceFinalizeError(InvoiceError):
    code: str = "Invoice.CannotFinalize"

    def __init__(self, invoice_number: str, reason: str):
        self.invoice_number = invoice_number
        self.reason = reason
        super().__init__(f"Cannot finalize invoice {invoice_number}: {reason}")


class PaymentExceedsBalanceError(InvoiceError):
    code: str = "Invoice.PaymentExceedsBalance"

    def __init__(self, invoice_number: str, amount: Decimal, balance_due: Decimal):
        self.invoice_number = invoice_number
        self.amount = amount
        self.balance_due = balance_due
        super().__init__(
            f"Payment {amount} exceeds balance due {balance_due} "
            f"on invoice {invoice_number}"
        )


class InterestNotAllowedError(InvoiceError):
    code: str = "Invoice.InterestNotAllowed"

    def __init__(self, invoice_number: str, status: str):
        self.invoice_number = invoice_number
        self.status = status
        super().__init__(
            f"Interest can only be charged on overdue invoices; "
            f"invoice {invoice_number} is {status}"
        )


class LineItemNotFoundError(InvoiceError):
    code: str = "Invoice.LineItemNotFound"

    def __init__(self, line_item_id: Any):
        self.line_item_id = str(line_item_id)
        super().__init__(f"Line item not found: {line_item_id}")


# Operator account balance


class AccountBalanceError(FopError):
    code: str = "AccountBalance.InvalidOperation"


class NegativeOverdueError(AccountBalanceError):
    code: str = "AccountBalance.NegativeOverdue"

    def __init__(self, operator_id: Any, total_overdue: Decimal, cleared: Decimal):
        self.operator_id = str(operator_id)
        self.total_overdue = total_overdue
        self.cleared = cleared
        super().__init__(
            f"Cannot clear {cleared} overdue for operator {operator_id}: "
            f"only {total_overdue} is recorded"
        )


# Permits


class PermitError(FopError):
    code: str = "Permit.InvalidOperation"


class InvalidPermitStateError(PermitError):
    code: str = "Permit.InvalidState"

    def __init__(self, permit_number: str, status: str, action: str):
        self.permit_number = permit_number
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} permit {permit_number} in status {status}")


class PermitBlockedDueToDebtError(PermitError):
    """Permit issuance refused because the operator owes the authority money."""

    code: str = "Permit.BlockedDueToDebt"

    def __init__(self, operator_id: Any, outstanding: Any, reasons: list[str]):
        self.operator_id = str(operator_id)
        self.outstanding = outstanding
        self.reasons = reasons
        super().__init__(
            f"Permit issuance blocked due to outstanding debt of {outstanding}: "
            f"{'; '.join(reasons)}"
        )


class InvalidBypassError(PermitError):
    code: str = "Permit.InvalidBypass"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Eligibility bypass rejected: {reason}")


# Fee configuration


class FeeConfigurationError(FopError):
    code: str = "FeeConfiguration.Invalid"


class FeeRateError(FopError):
    code: str = "FeeRate.Invalid"
