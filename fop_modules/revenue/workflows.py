"""
Invoice Ledger Workflow (``fop_modules.revenue.workflows``).

The invoice status is derived from amounts and markers after every
mutation; this table declares which actions each status accepts and the
statuses a derivation may land on.  ``Invoice`` consults it before mutating.
"""

from fop_kernel.domain.workflow import Guard, Transition, Workflow
from fop_kernel.logging_config import get_logger

logger = get_logger("modules.revenue.workflows")

HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="At least one line item before finalization",
)

PAST_DUE = Guard(
    name="past_due",
    description="Today is after the due date",
)

WITHIN_BALANCE = Guard(
    name="within_balance",
    description="Payment amount does not exceed the balance due",
)

DRAFT = "DRAFT"
PENDING = "PENDING"
PARTIALLY_PAID = "PARTIALLY_PAID"
PAID = "PAID"
OVERDUE = "OVERDUE"
CANCELLED = "CANCELLED"

_PAYABLE = (PENDING, PARTIALLY_PAID, OVERDUE)

INVOICE_WORKFLOW = Workflow(
    name="bvia_invoice",
    description="Per-flight revenue invoice lifecycle",
    initial_state=DRAFT,
    states=(DRAFT, PENDING, PARTIALLY_PAID, PAID, OVERDUE, CANCELLED),
    terminal_states=(PAID, CANCELLED),
    transitions=(
        Transition(DRAFT, DRAFT, action="add_line_item"),
        Transition(DRAFT, DRAFT, action="remove_line_item"),
        Transition(DRAFT, PENDING, action="finalize", guard=HAS_LINE_ITEMS),
        Transition(PENDING, PARTIALLY_PAID, action="record_payment", guard=WITHIN_BALANCE),
        Transition(PENDING, PAID, action="record_payment", guard=WITHIN_BALANCE),
        Transition(PARTIALLY_PAID, PARTIALLY_PAID, action="record_payment", guard=WITHIN_BALANCE),
        Transition(PARTIALLY_PAID, PAID, action="record_payment", guard=WITHIN_BALANCE),
        Transition(OVERDUE, OVERDUE, action="record_payment", guard=WITHIN_BALANCE),
        Transition(OVERDUE, PAID, action="record_payment", guard=WITHIN_BALANCE),
        Transition(PENDING, OVERDUE, action="mark_overdue", guard=PAST_DUE),
        Transition(PARTIALLY_PAID, OVERDUE, action="mark_overdue", guard=PAST_DUE),
        Transition(OVERDUE, OVERDUE, action="add_interest_charge"),
        *(Transition(s, CANCELLED, action="cancel") for s in (DRAFT, *_PAYABLE)),
    ),
)

logger.info(
    "invoice_workflow_registered",
    extra={
        "workflow": INVOICE_WORKFLOW.name,
        "states": len(INVOICE_WORKFLOW.states),
        "transitions": len(INVOICE_WORKFLOW.transitions),
    },
)
