"""
Permit Lifecycle Workflow (``fop_modules.permits.workflows``).

A permit is born ACTIVE by issuance; there is no draft state.  EXPIRED and
REVOKED are terminal.  A SUSPENDED permit can be reinstated or revoked but
never expires in place; the expiry job only touches ACTIVE permits.
"""

from fop_kernel.domain.workflow import Guard, Transition, Workflow
from fop_kernel.logging_config import get_logger

logger = get_logger("modules.permits.workflows")

VALIDITY_ELAPSED = Guard(
    name="validity_elapsed",
    description="valid_until is before the expiry date",
)

ACTIVE = "ACTIVE"
SUSPENDED = "SUSPENDED"
EXPIRED = "EXPIRED"
REVOKED = "REVOKED"

PERMIT_WORKFLOW = Workflow(
    name="foreign_operator_permit",
    description="Issued permit lifecycle",
    initial_state=ACTIVE,
    states=(ACTIVE, SUSPENDED, EXPIRED, REVOKED),
    terminal_states=(EXPIRED, REVOKED),
    transitions=(
        Transition(ACTIVE, EXPIRED, action="expire", guard=VALIDITY_ELAPSED),
        Transition(ACTIVE, SUSPENDED, action="suspend"),
        Transition(SUSPENDED, ACTIVE, action="reinstate"),
        Transition(ACTIVE, REVOKED, action="revoke"),
        Transition(SUSPENDED, REVOKED, action="revoke"),
    ),
)

logger.info(
    "permit_workflow_registered",
    extra={
        "workflow": PERMIT_WORKFLOW.name,
        "states": len(PERMIT_WORKFLOW.states),
        "transitions": len(PERMIT_WORKFLOW.transitions),
    },
)
