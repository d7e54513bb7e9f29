"""
Permit Application Workflow (``fop_modules.applications.workflows``).

Responsibility
--------------
Declares the fixed state machine of a permit application.  The aggregate in
``models.py`` consults ``APPLICATION_WORKFLOW`` before every status-bearing
operation; self-transitions mark operations that are legal in a state but
leave the status unchanged.

Invariants enforced
-------------------
* APPROVED, REJECTED, EXPIRED and CANCELLED are terminal.
* Approval always requires a completed payment and a passed eligibility
  check (guards evaluated by the aggregate and the issuance gate).
"""

from fop_kernel.domain.workflow import Guard, Transition, Workflow
from fop_kernel.logging_config import get_logger

logger = get_logger("modules.applications.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

REQUIRED_DOCUMENTS_ATTACHED = Guard(
    name="required_documents_attached",
    description="Airworthiness, registration, AOC and insurance documents attached",
)

REQUIRED_DOCUMENTS_VERIFIED = Guard(
    name="required_documents_verified",
    description="Every required document individually verified",
)

PAYMENT_COMPLETED = Guard(
    name="payment_completed",
    description="Payment completed; issuance gate consulted by the service",
)


# -----------------------------------------------------------------------------
# States
# -----------------------------------------------------------------------------

DRAFT = "DRAFT"
SUBMITTED = "SUBMITTED"
UNDER_REVIEW = "UNDER_REVIEW"
PENDING_DOCUMENTS = "PENDING_DOCUMENTS"
PENDING_PAYMENT = "PENDING_PAYMENT"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
EXPIRED = "EXPIRED"
CANCELLED = "CANCELLED"

_OPEN = (DRAFT, SUBMITTED, UNDER_REVIEW, PENDING_DOCUMENTS, PENDING_PAYMENT)
_DOCUMENT_REVIEW = (SUBMITTED, UNDER_REVIEW, PENDING_DOCUMENTS)
_FEE_ADJUSTABLE = (DRAFT, SUBMITTED, UNDER_REVIEW, PENDING_DOCUMENTS)


def _self(states: tuple[str, ...], action: str) -> tuple[Transition, ...]:
    return tuple(Transition(s, s, action=action) for s in states)


def _to(states: tuple[str, ...], target: str, action: str) -> tuple[Transition, ...]:
    return tuple(Transition(s, target, action=action) for s in states)


APPLICATION_WORKFLOW = Workflow(
    name="fop_application",
    description="Foreign operator permit application lifecycle",
    initial_state=DRAFT,
    states=(
        DRAFT,
        SUBMITTED,
        UNDER_REVIEW,
        PENDING_DOCUMENTS,
        PENDING_PAYMENT,
        APPROVED,
        REJECTED,
        EXPIRED,
        CANCELLED,
    ),
    terminal_states=(APPROVED, REJECTED, EXPIRED, CANCELLED),
    transitions=(
        Transition(DRAFT, SUBMITTED, action="submit", guard=REQUIRED_DOCUMENTS_ATTACHED),
        Transition(SUBMITTED, UNDER_REVIEW, action="start_review"),
        *_self((DRAFT, PENDING_DOCUMENTS), "add_document"),
        *_self(_DOCUMENT_REVIEW, "verify_document"),
        Transition(PENDING_DOCUMENTS, UNDER_REVIEW, action="documents_verified"),
        *_to(_DOCUMENT_REVIEW, PENDING_DOCUMENTS, "reject_document"),
        Transition(
            UNDER_REVIEW, PENDING_PAYMENT,
            action="request_payment", guard=REQUIRED_DOCUMENTS_VERIFIED,
        ),
        Transition(PENDING_PAYMENT, PENDING_PAYMENT, action="complete_payment"),
        Transition(PENDING_PAYMENT, PENDING_PAYMENT, action="fail_payment"),
        Transition(UNDER_REVIEW, APPROVED, action="approve", guard=PAYMENT_COMPLETED),
        Transition(PENDING_PAYMENT, APPROVED, action="approve", guard=PAYMENT_COMPLETED),
        *_to(_OPEN, REJECTED, "reject"),
        *_self(_FEE_ADJUSTABLE, "override_fee"),
        *_self(_FEE_ADJUSTABLE, "request_waiver"),
        *_self(_FEE_ADJUSTABLE, "decide_waiver"),
        *_to(_OPEN, CANCELLED, "cancel"),
        *_to(_OPEN, EXPIRED, "expire"),
    ),
)

logger.info(
    "application_workflow_registered",
    extra={
        "workflow": APPLICATION_WORKFLOW.name,
        "states": len(APPLICATION_WORKFLOW.states),
        "transitions": len(APPLICATION_WORKFLOW.transitions),
    },
)
