"""
Permit Applications Module.

Handles foreign operator permit applications: documents, fee calculation,
payment, waivers and fee overrides.
"""

from fop_modules.applications.models import (
    Application,
    ApplicationStatus,
    ApplicationType,
    FeeConfiguration,
    FlightDetails,
)
from fop_modules.applications.workflows import APPLICATION_WORKFLOW

__all__ = [
    "Application",
    "ApplicationStatus",
    "ApplicationType",
    "FeeConfiguration",
    "FlightDetails",
    "APPLICATION_WORKFLOW",
]
