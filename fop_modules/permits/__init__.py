"""
Permits Module.

Issued Foreign Operator Permits, their lifecycle and the debt-gated
issuance check run on application approval.
"""

from fop_modules.permits.models import Permit, PermitStatus
from fop_modules.permits.workflows import PERMIT_WORKFLOW

__all__ = [
    "Permit",
    "PermitStatus",
    "PERMIT_WORKFLOW",
]
