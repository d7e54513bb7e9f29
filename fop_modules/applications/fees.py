"""
Permit Fee Calculation Engine (``fop_modules.applications.fees``).

Responsibility
--------------
Pure computation of a permit application's fee from seat count, maximum
takeoff weight and application type, with an itemized breakdown for
display.

Formula::

    total = (base + per_seat * seats + per_kg * mtow_kg) * multiplier(type)

Architecture position
---------------------
**Modules layer** -- stateless engine.  The service resolves the active
``FeeConfiguration`` and passes it in; when none is effective the engine
falls back to ``DEFAULT_POLICY``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fop_kernel.domain.values import Currency, Money, Weight
from fop_modules.applications.models import ApplicationType, FeeConfiguration

DEFAULT_POLICY_NAME = "Default Policy"


@dataclass(frozen=True)
class FeePolicy:
    """Rates and multipliers the engine needs, independent of persistence."""

    name: str
    base_fee: Decimal
    per_seat_fee: Decimal
    per_kg_fee: Decimal
    one_time_multiplier: Decimal
    blanket_multiplier: Decimal
    emergency_multiplier: Decimal
    currency: Currency = Currency.USD

    @classmethod
    def from_configuration(cls, config: FeeConfiguration) -> FeePolicy:
        return cls(
            name=f"Fee Configuration {config.id}",
            base_fee=config.base_fee,
            per_seat_fee=config.per_seat_fee,
            per_kg_fee=config.per_kg_fee,
            one_time_multiplier=config.one_time_multiplier,
            blanket_multiplier=config.blanket_multiplier,
            emergency_multiplier=config.emergency_multiplier,
            currency=config.currency,
        )

    def multiplier(self, application_type: ApplicationType) -> Decimal:
        return {
            ApplicationType.ONE_TIME: self.one_time_multiplier,
            ApplicationType.BLANKET: self.blanket_multiplier,
            ApplicationType.EMERGENCY: self.emergency_multiplier,
        }[ApplicationType(application_type)]


DEFAULT_POLICY = FeePolicy(
    name=DEFAULT_POLICY_NAME,
    base_fee=Decimal("150"),
    per_seat_fee=Decimal("10"),
    per_kg_fee=Decimal("0.02"),
    one_time_multiplier=Decimal("1.0"),
    blanket_multiplier=Decimal("2.5"),
    emergency_multiplier=Decimal("0.5"),
)


@dataclass(frozen=True)
class FeeBreakdownItem:
    description: str
    amount: Money


@dataclass(frozen=True)
class FeeCalculation:
    total: Money
    breakdown: tuple[FeeBreakdownItem, ...]
    policy_name: str
    multiplier: Decimal


def _fmt(value: Decimal) -> str:
    """Render a number without trailing zeros (``2.50`` -> ``2.5``)."""
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")


class FeeCalculationEngine:
    """Stateless permit-fee calculator."""

    def calculate(
        self,
        application_type: ApplicationType | str,
        seat_count: int,
        mtow: Weight,
        policy: FeePolicy = DEFAULT_POLICY,
    ) -> FeeCalculation:
        if seat_count < 0:
            raise ValueError("Seat count cannot be negative")
        application_type = ApplicationType(application_type)
        currency = policy.currency
        mtow_kg = mtow.to_kg()

        base = Money(policy.base_fee, currency)
        seats = Money(policy.per_seat_fee * seat_count, currency)
        weight = Money(policy.per_kg_fee * mtow_kg, currency)
        subtotal = base + seats + weight
        multiplier = policy.multiplier(application_type)
        total = subtotal * multiplier

        items = [
            FeeBreakdownItem("Base Fee", base),
            FeeBreakdownItem(
                f"Seat Fee ({seat_count} seats × ${_fmt(policy.per_seat_fee)})", seats
            ),
            FeeBreakdownItem(
                f"Weight Fee ({_fmt(mtow_kg)} kg × ${_fmt(policy.per_kg_fee)})", weight
            ),
        ]
        if multiplier > 1:
            items.append(FeeBreakdownItem(
                f"{self._type_label(application_type)} Surcharge ({_fmt(multiplier)}×)",
                total - subtotal,
            ))
        elif multiplier < 1:
            items.append(FeeBreakdownItem(
                f"{self._type_label(application_type)} Discount ({_fmt(multiplier)}×)",
                subtotal - total,
            ))

        return FeeCalculation(
            total=total,
            breakdown=tuple(items),
            policy_name=policy.name,
            multiplier=multiplier,
        )

    @staticmethod
    def _type_label(application_type: ApplicationType) -> str:
        return {
            ApplicationType.ONE_TIME: "One-Time Permit",
            ApplicationType.BLANKET: "Blanket Permit",
            ApplicationType.EMERGENCY: "Emergency",
        }[application_type]


def select_policy(configurations: list[FeeConfiguration], on: date) -> FeePolicy:
    """The active configuration effective on ``on``, else the default policy."""
    for config in configurations:
        if config.is_active and config.is_effective_on(on):
            return FeePolicy.from_configuration(config)
    return DEFAULT_POLICY
