"""
Permit Issuance Gate (``fop_modules.permits.gate``).

Responsibility
--------------
Decides whether an operator may be issued a permit, based on what it owes
the airport authority.  Called from application approval after the payment
check and before any state changes.

Algorithm
---------
1. Bypass requested: require a justification, write the audit log entry
   and authorize without looking at the balance.
2. Load the operator's account balance.  No balance means no debt.
3. Evaluate ``OperatorAccountBalance.eligibility`` against the policy and
   raise ``PermitBlockedDueToDebtError`` when it is not eligible.

Failure modes
-------------
* ``InvalidBypassError`` -- bypass without an adequate justification.
* ``PermitBlockedDueToDebtError`` -- ``Permit.BlockedDueToDebt``; the message
  names the outstanding amount and every block reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from fop_config.schema import EligibilitySettings
from fop_kernel.exceptions import InvalidBypassError, PermitBlockedDueToDebtError
from fop_kernel.logging_config import get_logger
from fop_modules.revenue.models import (
    EligibilityDecision,
    EligibilityPolicy,
    OperatorAccountBalance,
)

logger = get_logger("modules.permits.gate")

BalanceLookup = Callable[[UUID], "OperatorAccountBalance | None"]


@dataclass(frozen=True)
class GateOutcome:
    authorized: bool
    bypassed: bool
    decision: EligibilityDecision | None


class PermitIssuanceGate:
    """Debt check in front of permit issuance."""

    def __init__(
        self,
        balance_lookup: BalanceLookup,
        policy: EligibilityPolicy | None = None,
        min_justification_length: int = 10,
    ):
        self._balance_lookup = balance_lookup
        self._policy = policy or EligibilityPolicy()
        self._min_justification_length = min_justification_length

    @classmethod
    def from_settings(cls, balance_lookup: BalanceLookup, settings: EligibilitySettings) -> PermitIssuanceGate:
        return cls(
            balance_lookup,
            EligibilityPolicy.from_settings(settings),
            settings.min_bypass_justification_length,
        )

    def authorize(
        self,
        operator_id: UUID,
        *,
        actor: str,
        bypass: bool = False,
        bypass_justification: str | None = None,
    ) -> GateOutcome:
        if bypass:
            justification = (bypass_justification or "").strip()
            if len(justification) < self._min_justification_length:
                raise InvalidBypassError(
                    f"justification must be at least {self._min_justification_length} characters"
                )
            logger.warning(
                "permit_gate_bypassed",
                extra={
                    "operator_id": str(operator_id),
                    "actor": actor,
                    "justification": justification,
                },
            )
            return GateOutcome(authorized=True, bypassed=True, decision=None)

        balance = self._balance_lookup(operator_id)
        if balance is None:
            logger.info("permit_gate_no_balance", extra={"operator_id": str(operator_id)})
            return GateOutcome(authorized=True, bypassed=False, decision=None)

        decision = balance.eligibility(self._policy)
        if not decision.eligible:
            logger.warning(
                "permit_gate_blocked",
                extra={
                    "operator_id": str(operator_id),
                    "outstanding": str(decision.outstanding),
                    "reasons": list(decision.reasons),
                },
            )
            raise PermitBlockedDueToDebtError(
                operator_id, decision.outstanding, list(decision.reasons)
            )
        logger.info("permit_gate_passed", extra={"operator_id": str(operator_id)})
        return GateOutcome(authorized=True, bypassed=False, decision=decision)
