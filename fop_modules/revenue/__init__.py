"""
Revenue Ledger Module.

Per-flight invoices with itemized airport-authority charges, payments,
overdue interest and the per-operator account balance that gates permit
issuance.
"""

from fop_modules.revenue.models import (
    BviAirport,
    FeeCategory,
    FeeRate,
    Invoice,
    InvoiceStatus,
    LineItem,
    OperationType,
    OperatorAccountBalance,
)
from fop_modules.revenue.workflows import INVOICE_WORKFLOW

__all__ = [
    "BviAirport",
    "FeeCategory",
    "FeeRate",
    "Invoice",
    "InvoiceStatus",
    "LineItem",
    "OperationType",
    "OperatorAccountBalance",
    "INVOICE_WORKFLOW",
]
