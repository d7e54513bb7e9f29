"""
Command shapes for permit-application operations.

Checked by ``parse_command`` before the service touches an aggregate.  These
models only validate presence, ranges and formats; state rules stay in the
aggregate.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fop_modules.applications.models import (
    ApplicationType,
    DocumentType,
    FlightPurpose,
    PaymentMethod,
    WaiverType,
)
from fop_kernel.domain.values import WeightUnit

ICAO_PATTERN = r"^[A-Za-z]{4}$"
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class CreateApplicationCommand(Command):
    application_type: ApplicationType
    operator_id: UUID
    aircraft_id: UUID
    seat_count: int = Field(ge=0, le=1000)
    mtow_value: Decimal = Field(gt=0)
    mtow_unit: WeightUnit = WeightUnit.KG
    purpose: FlightPurpose
    purpose_description: str | None = Field(default=None, max_length=500)
    arrival_airport: str = Field(pattern=ICAO_PATTERN)
    departure_airport: str = Field(pattern=ICAO_PATTERN)
    estimated_flight_date: date
    number_of_passengers: int = Field(default=0, ge=0, le=1000)
    flight_number: str | None = Field(default=None, max_length=20)
    requested_start: date
    requested_end: date

    @model_validator(mode="after")
    def _check_window(self) -> CreateApplicationCommand:
        if self.requested_end < self.requested_start:
            raise ValueError("requested_end must not precede requested_start")
        if self.purpose is FlightPurpose.OTHER and not self.purpose_description:
            raise ValueError("purpose_description is required when purpose is OTHER")
        return self


class AddDocumentCommand(Command):
    document_type: DocumentType
    file_name: str = Field(min_length=1, max_length=255)
    file_size: int = Field(gt=0, le=MAX_DOCUMENT_BYTES)
    mime_type: str = Field(min_length=1, max_length=100)
    storage_url: str = Field(min_length=1)
    uploaded_by: str = Field(min_length=1, max_length=100)
    expiry_date: date | None = None


class ReviewerCommand(Command):
    actor: str = Field(min_length=1, max_length=100)


class RejectDocumentCommand(Command):
    actor: str = Field(min_length=1, max_length=100)
    reason: str = Field(min_length=1, max_length=1000)


class RequestPaymentCommand(Command):
    method: PaymentMethod


class CompletePaymentCommand(Command):
    transaction_reference: str = Field(min_length=1, max_length=100)
    receipt_number: str = Field(min_length=1, max_length=100)


class ApproveCommand(Command):
    approved_by: str = Field(min_length=1, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)
    bypass_eligibility: bool = False
    bypass_justification: str | None = Field(default=None, max_length=1000)


class RejectCommand(Command):
    rejected_by: str = Field(min_length=1, max_length=100)
    reason: str = Field(min_length=1, max_length=2000)


class CancelCommand(Command):
    reason: str | None = Field(default=None, max_length=1000)


class OverrideFeeCommand(Command):
    new_amount: Decimal = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)
    overridden_by: str = Field(min_length=1, max_length=100)
    justification: str = Field(min_length=10, max_length=1000)

    @field_validator("currency")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


class RequestWaiverCommand(Command):
    waiver_type: WaiverType
    reason: str = Field(min_length=20, max_length=1000)
    requested_by: str = Field(min_length=1, max_length=100)


class ApproveWaiverCommand(Command):
    waiver_id: UUID
    approved_by: str = Field(min_length=1, max_length=100)
    percentage: Decimal = Field(ge=0, le=100)


class RejectWaiverCommand(Command):
    waiver_id: UUID
    rejected_by: str = Field(min_length=1, max_length=100)
    reason: str = Field(min_length=10, max_length=1000)


class CreateFeeConfigurationCommand(Command):
    base_fee: Decimal = Field(ge=0)
    per_seat_fee: Decimal = Field(ge=0)
    per_kg_fee: Decimal = Field(ge=0)
    one_time_multiplier: Decimal = Field(default=Decimal("1.0"), gt=0)
    blanket_multiplier: Decimal = Field(default=Decimal("2.5"), gt=0)
    emergency_multiplier: Decimal = Field(default=Decimal("0.5"), gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    effective_from: date | None = None
    effective_to: date | None = None
    modified_by: str = Field(min_length=1, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)
    activate: bool = True
