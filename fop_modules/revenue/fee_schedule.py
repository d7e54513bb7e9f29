"""
Revenue Fee Schedule Engine (``fop_modules.revenue.fee_schedule``).

Responsibility
--------------
Itemizes the airport-authority charges for one flight (landing, navigation,
parking, passenger fees and the optional services) and computes overdue
interest.  Every emitted line carries quantity and unit rate so an invoice
can record it as-is.

Rates come from ``RevenueRatePolicy``: persisted ``FeeRate`` rows that are
active and effective on the pricing date win, and the built-in default
table fills every gap.

Architecture position
---------------------
**Modules layer** -- stateless engine.  Pure functions over Decimal; no I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_UP, Decimal
from typing import Sequence
from uuid import UUID

from fop_kernel.domain.values import Currency, Money, MtowTier, Weight, to_decimal
from fop_modules.revenue.models import BviAirport, FeeCategory, FeeRate, OperationType

DEFAULT_POLICY_SOURCE = "Default Policy"

EXEMPT_OPERATIONS = frozenset(
    {OperationType.EMERGENCY, OperationType.MILITARY, OperationType.GOVERNMENT}
)

_LOCAL_LANDING = {
    MtowTier.TIER1: Decimal("2.50"),
    MtowTier.TIER2: Decimal("3.00"),
    MtowTier.TIER3: Decimal("3.50"),
    MtowTier.TIER4: Decimal("5.00"),
}
_GA_LANDING = {
    MtowTier.TIER1: Decimal("5.00"),
    MtowTier.TIER2: Decimal("10.00"),
    MtowTier.TIER3: Decimal("12.00"),
    MtowTier.TIER4: Decimal("15.00"),
}

DEFAULT_LANDING_RATES: dict[OperationType, dict[MtowTier, Decimal]] = {
    OperationType.LOCAL_SCHEDULED: _LOCAL_LANDING,
    OperationType.INTERISLAND: _LOCAL_LANDING,
    OperationType.GENERAL_AVIATION: _GA_LANDING,
    OperationType.CHARTER: _GA_LANDING,
}

DEFAULT_MINIMUM_LANDING: dict[OperationType, Decimal] = {
    OperationType.LOCAL_SCHEDULED: Decimal("15.00"),
    OperationType.INTERISLAND: Decimal("10.00"),
    OperationType.GENERAL_AVIATION: Decimal("20.00"),
    OperationType.CHARTER: Decimal("20.00"),
    OperationType.EMERGENCY: Decimal("0"),
    OperationType.MILITARY: Decimal("0"),
    OperationType.GOVERNMENT: Decimal("0"),
}

DEFAULT_NAVIGATION: dict[MtowTier, Decimal] = {
    MtowTier.TIER1: Decimal("5.00"),
    MtowTier.TIER2: Decimal("10.00"),
    MtowTier.TIER3: Decimal("15.00"),
    MtowTier.TIER4: Decimal("20.00"),
}

DEFAULT_AIRPORT_DEVELOPMENT: dict[BviAirport, Decimal] = {
    BviAirport.TUPJ: Decimal("15.00"),
    BviAirport.TUPW: Decimal("10.00"),
    BviAirport.TUPY: Decimal("10.00"),
}

INTERISLAND_AIRPORT_DEVELOPMENT = Decimal("5.00")
SECURITY_PER_PASSENGER = Decimal("5.00")
HOLD_BAGGAGE_PER_PASSENGER = Decimal("7.00")
PARKING_FRACTION_OF_LANDING = Decimal("0.20")
PARKING_BLOCK_HOURS = 8
CAT_VI_FIRE_UPGRADE = Decimal("100.00")
FLIGHT_PLAN_FILING = Decimal("20.00")
FUEL_FLOW_PER_GALLON = Decimal("0.20")
LIGHTING_PER_HOUR = Decimal("35.00")

# (start hour inclusive, end hour exclusive, fee)
EXTENDED_OPERATION_WINDOWS: tuple[tuple[int, int, Decimal], ...] = (
    (4, 6, Decimal("975.00")),
    (22, 24, Decimal("1650.00")),
    (0, 2, Decimal("3225.00")),
)

MONTHLY_INTEREST_RATE = Decimal("0.015")
INTEREST_GRACE_DAYS = 30
INTEREST_PERIOD_DAYS = 30
CENT = Decimal("0.01")


@dataclass(frozen=True)
class RateQuote:
    amount: Decimal
    fee_rate_id: UUID | None = None


class RevenueRatePolicy:
    """Rate lookups: matching persisted rows first, defaults otherwise."""

    def __init__(self, rates: Sequence[FeeRate] = (), effective_on: date | None = None):
        self._effective_on = effective_on
        self._rates = [
            r for r in rates
            if effective_on is None or r.is_effective_on(effective_on)
        ]

    @property
    def source(self) -> str:
        if not self._rates:
            return DEFAULT_POLICY_SOURCE
        return f"Database Policy (Effective: {self._effective_on}, Rates: {len(self._rates)})"

    def _find(
        self,
        category: FeeCategory,
        operation_type: OperationType | None = None,
        airport: BviAirport | None = None,
        tier: MtowTier | None = None,
    ) -> FeeRate | None:
        candidates = [
            r for r in self._rates
            if r.category is category
            and (operation_type is None or r.operation_type in (None, operation_type))
            and (airport is None or r.airport in (None, airport))
            and (tier is None or r.mtow_tier in (None, tier))
        ]
        if not candidates:
            return None
        candidates.sort(
            key=lambda r: (
                r.mtow_tier is not None,
                r.airport is not None,
                r.operation_type is not None,
                r.effective_from,
            ),
            reverse=True,
        )
        return candidates[0]

    def _quote(self, row: FeeRate | None, default: Decimal) -> RateQuote:
        if row is None:
            return RateQuote(default)
        return RateQuote(row.rate, row.id)

    def landing_rate(self, operation_type: OperationType, tier: MtowTier) -> RateQuote:
        row = self._find(FeeCategory.LANDING, operation_type, tier=tier)
        table = DEFAULT_LANDING_RATES.get(operation_type, _GA_LANDING)
        return self._quote(row, table[tier])

    def minimum_landing_fee(self, operation_type: OperationType) -> Decimal:
        row = self._find(FeeCategory.LANDING, operation_type)
        if row is not None and row.minimum_fee is not None:
            return row.minimum_fee
        return DEFAULT_MINIMUM_LANDING.get(operation_type, Decimal("15.00"))

    def navigation_fee(self, tier: MtowTier) -> RateQuote:
        return self._quote(self._find(FeeCategory.NAVIGATION, tier=tier), DEFAULT_NAVIGATION[tier])

    def airport_development_fee(self, airport: BviAirport, interisland: bool) -> RateQuote:
        if interisland:
            row = self._find(FeeCategory.AIRPORT_DEVELOPMENT, OperationType.INTERISLAND, airport)
            return self._quote(row, INTERISLAND_AIRPORT_DEVELOPMENT)
        row = self._find(FeeCategory.AIRPORT_DEVELOPMENT, airport=airport)
        return self._quote(row, DEFAULT_AIRPORT_DEVELOPMENT.get(airport, Decimal("10.00")))

    def flat(self, category: FeeCategory, default: Decimal) -> RateQuote:
        return self._quote(self._find(category), default)

    def extended_operations_fee(self, hour: int) -> RateQuote:
        for start, end, fee in EXTENDED_OPERATION_WINDOWS:
            if start <= hour < end:
                return self.flat(FeeCategory.EXTENDED_OPERATIONS, fee)
        return RateQuote(Decimal("0"))


@dataclass(frozen=True)
class FlightChargeRequest:
    mtow: Weight
    operation_type: OperationType
    airport: BviAirport
    passenger_count: int = 0
    parking_hours: int = 0
    fuel_gallons: Decimal = Decimal("0")
    lighting_hours: int = 0
    operation_hour: int | None = None
    include_flight_plan_filing: bool = False
    requires_cat_vi_fire: bool = False

    def __post_init__(self) -> None:
        if self.passenger_count < 0 or self.parking_hours < 0 or self.lighting_hours < 0:
            raise ValueError("Counts and hours cannot be negative")
        if to_decimal(self.fuel_gallons) < 0:
            raise ValueError("Fuel gallons cannot be negative")
        if self.operation_hour is not None and not 0 <= self.operation_hour <= 23:
            raise ValueError(f"operation_hour must be 0-23: {self.operation_hour}")

    @property
    def is_interisland(self) -> bool:
        return self.operation_type is OperationType.INTERISLAND


@dataclass(frozen=True)
class ChargeLine:
    category: FeeCategory
    description: str
    quantity: Decimal
    unit: str | None
    unit_rate: Money
    fee_rate_id: UUID | None = None

    @property
    def amount(self) -> Money:
        return self.unit_rate * self.quantity


@dataclass(frozen=True)
class FlightCharges:
    lines: tuple[ChargeLine, ...]
    mtow_tier: MtowTier
    landing_fee: Money
    navigation_fee: Money
    policy_source: str

    @property
    def total(self) -> Money:
        total = Money.zero(self.landing_fee.currency)
        for line in self.lines:
            total = total + line.amount
        return total


class RevenueFeeScheduleEngine:
    """Stateless per-flight charge calculator."""

    def __init__(self, currency: Currency = Currency.USD):
        self._currency = currency

    def _money(self, amount: Decimal) -> Money:
        return Money(amount, self._currency)

    def landing_fee(
        self, mtow: Weight, operation_type: OperationType, policy: RevenueRatePolicy
    ) -> ChargeLine:
        tier = mtow.tier
        label = f"Landing Fee ({tier.value}, {operation_type.value})"
        if operation_type in EXEMPT_OPERATIONS:
            return ChargeLine(FeeCategory.LANDING, label, Decimal("1"), None, self._money(Decimal("0")))
        quote = policy.landing_rate(operation_type, tier)
        units = Decimal(math.ceil(mtow.to_lbs() / Decimal("1000")))
        minimum = policy.minimum_landing_fee(operation_type)
        if units * quote.amount < minimum:
            return ChargeLine(
                FeeCategory.LANDING, f"{label} minimum", Decimal("1"), None,
                self._money(minimum), quote.fee_rate_id,
            )
        return ChargeLine(
            FeeCategory.LANDING, label, units, "1000 lbs",
            self._money(quote.amount), quote.fee_rate_id,
        )

    def calculate(self, request: FlightChargeRequest, policy: RevenueRatePolicy | None = None) -> FlightCharges:
        policy = policy or RevenueRatePolicy()
        tier = request.mtow.tier
        lines: list[ChargeLine] = []

        landing = self.landing_fee(request.mtow, request.operation_type, policy)
        lines.append(landing)

        nav = policy.navigation_fee(tier)
        navigation = ChargeLine(
            FeeCategory.NAVIGATION, f"Navigation/Communication Fee ({tier.value})",
            Decimal("1"), None, self._money(nav.amount), nav.fee_rate_id,
        )
        lines.append(navigation)

        if request.requires_cat_vi_fire:
            quote = policy.flat(FeeCategory.CAT_VI_FIRE_UPGRADE, CAT_VI_FIRE_UPGRADE)
            lines.append(ChargeLine(
                FeeCategory.CAT_VI_FIRE_UPGRADE, "CAT-VI Fire Upgrade",
                Decimal("1"), None, self._money(quote.amount), quote.fee_rate_id,
            ))

        if request.parking_hours > 0:
            blocks = math.ceil(request.parking_hours / PARKING_BLOCK_HOURS)
            quote = policy.flat(FeeCategory.PARKING, PARKING_FRACTION_OF_LANDING)
            per_block = landing.amount * quote.amount
            lines.append(ChargeLine(
                FeeCategory.PARKING, f"Parking/Ramp Fee ({blocks} × 8-hour blocks)",
                Decimal(blocks), "8-hour blocks", per_block, quote.fee_rate_id,
            ))

        if request.passenger_count > 0:
            pax = Decimal(request.passenger_count)
            for category, label, quote in (
                (
                    FeeCategory.AIRPORT_DEVELOPMENT, "Airport Development Fee",
                    policy.airport_development_fee(request.airport, request.is_interisland),
                ),
                (
                    FeeCategory.SECURITY, "Security Charge",
                    policy.flat(FeeCategory.SECURITY, SECURITY_PER_PASSENGER),
                ),
                (
                    FeeCategory.HOLD_BAGGAGE_SCREENING, "Hold Baggage Screening",
                    policy.flat(FeeCategory.HOLD_BAGGAGE_SCREENING, HOLD_BAGGAGE_PER_PASSENGER),
                ),
            ):
                lines.append(ChargeLine(
                    category,
                    f"{label} ({request.passenger_count} pax × ${quote.amount:.2f})",
                    pax, "passengers", self._money(quote.amount), quote.fee_rate_id,
                ))

        if request.operation_hour is not None:
            quote = policy.extended_operations_fee(request.operation_hour)
            if quote.amount > 0:
                lines.append(ChargeLine(
                    FeeCategory.EXTENDED_OPERATIONS, "Extended/Early Operations Fee",
                    Decimal("1"), None, self._money(quote.amount), quote.fee_rate_id,
                ))

        if request.lighting_hours > 0:
            quote = policy.flat(FeeCategory.LIGHTING, LIGHTING_PER_HOUR)
            lines.append(ChargeLine(
                FeeCategory.LIGHTING, f"Lighting Fee ({request.lighting_hours} hours)",
                Decimal(request.lighting_hours), "hours", self._money(quote.amount), quote.fee_rate_id,
            ))

        if request.include_flight_plan_filing:
            quote = policy.flat(FeeCategory.FLIGHT_PLAN_FILING, FLIGHT_PLAN_FILING)
            lines.append(ChargeLine(
                FeeCategory.FLIGHT_PLAN_FILING, "Flight Plan Filing Fee",
                Decimal("1"), None, self._money(quote.amount), quote.fee_rate_id,
            ))

        gallons = to_decimal(request.fuel_gallons)
        if gallons > 0:
            quote = policy.flat(FeeCategory.FUEL_FLOW, FUEL_FLOW_PER_GALLON)
            lines.append(ChargeLine(
                FeeCategory.FUEL_FLOW,
                f"Fuel Flow Fee ({gallons:,.0f} gallons × ${quote.amount:.2f})",
                gallons, "gallons", self._money(quote.amount), quote.fee_rate_id,
            ))

        return FlightCharges(
            lines=tuple(lines),
            mtow_tier=tier,
            landing_fee=landing.amount,
            navigation_fee=navigation.amount,
            policy_source=policy.source,
        )


def calculate_interest(
    balance_due: Money,
    days_overdue: int,
    *,
    monthly_rate: Decimal = MONTHLY_INTEREST_RATE,
    grace_days: int = INTEREST_GRACE_DAYS,
    period_days: int = INTEREST_PERIOD_DAYS,
) -> Money:
    """
    Compound monthly interest on an overdue balance.

    Zero within the grace period.  Past it, ``months`` counts the started
    period as one plus the fraction of the days beyond grace::

        months   = (days_overdue - grace_days) / period_days + 1
        interest = balance * ((1 + monthly_rate) ** months - 1)

    Fractional months keep the result strictly increasing in
    ``days_overdue`` before cent rounding.  Any positive interest is
    rounded up to the next cent so a small balance never accrues 0.00.
    """
    if days_overdue <= grace_days or balance_due.is_zero:
        return Money.zero(balance_due.currency)
    months = Decimal(days_overdue - grace_days) / Decimal(period_days) + 1
    factor = (Decimal(1) + monthly_rate) ** months - 1
    interest = (balance_due.amount * factor).quantize(CENT, rounding=ROUND_UP)
    return Money(interest, balance_due.currency)
