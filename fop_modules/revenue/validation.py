"""Command shapes for revenue ledger operations."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fop_kernel.domain.values import MtowTier, WeightUnit
from fop_modules.revenue.models import (
    BviAirport,
    FeeCategory,
    LedgerPaymentMethod,
    OperationType,
)


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class CreateInvoiceCommand(Command):
    operator_id: UUID
    arrival_airport: BviAirport
    operation_type: OperationType
    flight_date: date
    mtow_value: Decimal = Field(gt=0)
    mtow_unit: WeightUnit = WeightUnit.LBS
    seat_count: int = Field(ge=0, le=1000)
    passenger_count: int | None = Field(default=None, ge=0, le=1000)
    departure_airport: str | None = Field(default=None, pattern=r"^[A-Za-z]{4}$")
    aircraft_registration: str | None = Field(default=None, max_length=20)
    application_id: UUID | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("departure_airport")
    @classmethod
    def _upper(cls, value: str | None) -> str | None:
        return value.upper() if value else value


class AddLineItemCommand(Command):
    category: FeeCategory
    description: str = Field(min_length=1, max_length=500)
    quantity: Decimal = Field(gt=0)
    unit: str | None = Field(default=None, max_length=50)
    unit_rate: Decimal = Field(ge=0)

    @field_validator("category")
    @classmethod
    def _not_interest(cls, value: FeeCategory) -> FeeCategory:
        if value is FeeCategory.LATE_PAYMENT_INTEREST:
            raise ValueError("interest lines are added by the overdue job only")
        return value


class FlightChargesCommand(Command):
    parking_hours: int = Field(default=0, ge=0, le=24 * 365)
    fuel_gallons: Decimal = Field(default=Decimal("0"), ge=0)
    lighting_hours: int = Field(default=0, ge=0, le=24)
    operation_hour: int | None = Field(default=None, ge=0, le=23)
    include_flight_plan_filing: bool = False
    requires_cat_vi_fire: bool = False


class FinalizeInvoiceCommand(Command):
    finalized_by: str = Field(min_length=1, max_length=100)


class RecordPaymentCommand(Command):
    amount: Decimal = Field(gt=0)
    method: LedgerPaymentMethod
    reference: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)
    recorded_by: str = Field(min_length=1, max_length=100)


class CancelInvoiceCommand(Command):
    cancelled_by: str = Field(min_length=1, max_length=100)
    reason: str = Field(min_length=1, max_length=1000)


class CreateFeeRateCommand(Command):
    category: FeeCategory
    rate: Decimal = Field(ge=0)
    effective_from: date
    operation_type: OperationType | None = None
    airport: BviAirport | None = None
    mtow_tier: MtowTier | None = None
    is_per_unit: bool = False
    unit_description: str | None = Field(default=None, max_length=100)
    minimum_fee: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: str | None = Field(default=None, max_length=1000)


class DeactivateFeeRateCommand(Command):
    effective_to: date
