"""
FOP settings schema.

Typed, frozen settings for the FOP core.  YAML documents are parsed into
these types by ``fop_config.loader``; every section validates itself in
``__post_init__`` so a bad file fails at startup, not in the middle of a
nightly batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///fop.db"
    echo: bool = False

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url is required")


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class SchedulingSettings:
    """Daily job timing.  Times are local to the fixed ``utc_offset_hours``."""

    utc_offset_hours: int = -4
    expiry_job_time: time = time(0, 0)
    overdue_job_time: time = time(1, 0)
    retry_backoff_seconds: int = 300
    expiry_warning_thresholds: tuple[int, ...] = (30, 14, 7, 1)

    def __post_init__(self) -> None:
        if not -12 <= self.utc_offset_hours <= 14:
            raise ValueError(f"utc_offset_hours out of range: {self.utc_offset_hours}")
        if self.retry_backoff_seconds <= 0:
            raise ValueError("retry_backoff_seconds must be positive")
        if any(t <= 0 for t in self.expiry_warning_thresholds):
            raise ValueError("expiry_warning_thresholds must be positive day counts")


@dataclass(frozen=True)
class RevenueSettings:
    currency: str = "USD"
    payment_terms_days: int = 30
    interest_grace_days: int = 30
    monthly_interest_rate: Decimal = Decimal("0.015")
    interest_accrual_period_days: int = 30
    auto_invoice_on_submission: bool = True

    def __post_init__(self) -> None:
        if self.payment_terms_days <= 0:
            raise ValueError("payment_terms_days must be positive")
        if self.interest_grace_days < 0 or self.interest_accrual_period_days <= 0:
            raise ValueError("interest periods must be positive")
        if not Decimal("0") <= self.monthly_interest_rate < Decimal("1"):
            raise ValueError(
                f"monthly_interest_rate must be in [0, 1): {self.monthly_interest_rate}"
            )


@dataclass(frozen=True)
class EligibilitySettings:
    """Debt thresholds above which permit issuance is blocked."""

    max_overdue_amount: Decimal = Decimal("0")
    max_overdue_invoices: int = 0
    min_bypass_justification_length: int = 10

    def __post_init__(self) -> None:
        if self.max_overdue_amount < 0 or self.max_overdue_invoices < 0:
            raise ValueError("eligibility thresholds cannot be negative")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FopSettings:
    tenant_id: str = "bvi"
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    scheduling: SchedulingSettings = field(default_factory=SchedulingSettings)
    revenue: RevenueSettings = field(default_factory=RevenueSettings)
    eligibility: EligibilitySettings = field(default_factory=EligibilitySettings)

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("tenant_id is required")
