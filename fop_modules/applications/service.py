"""
Permit Application Service - Orchestrates the application lifecycle.

Thin glue layer that:
1. Validates command input with the pydantic models in ``validation.py``
2. Calls FeeCalculationEngine with the fee policy in force on the day
3. Drives the Application aggregate through its state machine
4. On approval, runs PermitIssuanceGate and issues the Permit in the same
   unit of work, so an application is never APPROVED without its permit

Usage:
    service = ApplicationService(session, tenant_id="bvi", clock=clock)
    result = service.create_application(
        application_type="ONE_TIME", operator_id=op_id, aircraft_id=ac_id, ...
    )
    result = service.approve(app_id, approved_by="officer.smith")
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from fop_config.schema import EligibilitySettings
from fop_kernel.domain.clock import Clock, SystemClock
from fop_kernel.domain.result import Result
from fop_kernel.domain.values import Weight
from fop_kernel.logging_config import get_logger
from fop_kernel.services.boundary import parse_command, run_operation
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_kernel.services.unit_of_work import UnitOfWork
from fop_modules.applications.fees import FeeCalculation, FeeCalculationEngine, select_policy
from fop_modules.applications.models import (
    Application,
    ApplicationDocument,
    ApplicationPayment,
    ApplicationType,
    FeeConfiguration,
    FlightDetails,
    Waiver,
)
from fop_modules.applications.repository import (
    ApplicationRepository,
    FeeConfigurationRepository,
)
from fop_modules.applications.validation import (
    AddDocumentCommand,
    ApproveCommand,
    ApproveWaiverCommand,
    CancelCommand,
    CompletePaymentCommand,
    CreateApplicationCommand,
    CreateFeeConfigurationCommand,
    OverrideFeeCommand,
    RejectCommand,
    RejectDocumentCommand,
    RejectWaiverCommand,
    RequestPaymentCommand,
    RequestWaiverCommand,
    ReviewerCommand,
)
from fop_modules.permits.gate import BalanceLookup, PermitIssuanceGate
from fop_modules._numbering import unique_number
from fop_modules.permits.models import Permit, generate_permit_number
from fop_modules.permits.repository import PermitRepository
from fop_modules.revenue.repository import AccountBalanceRepository

logger = get_logger("modules.applications.service")

APPLICATION_OPERATION = "Application.InvalidOperation"
PAYMENT_OPERATION = "Payment.InvalidOperation"
WAIVER_OPERATION = "Waiver.InvalidOperation"
FEE_OVERRIDE_OPERATION = "FeeOverride.InvalidOperation"
FEE_CONFIGURATION_OPERATION = "FeeConfiguration.InvalidOperation"


class _ApplicationWork:
    """Repositories sharing one unit of work."""

    def __init__(self, session: Session, tenant_id: str, dispatcher: EventDispatcher | None):
        self.uow = UnitOfWork(session, dispatcher)
        self.applications = ApplicationRepository(session, tenant_id, self.uow)
        self.fee_configurations = FeeConfigurationRepository(session, tenant_id, self.uow)
        self.balances = AccountBalanceRepository(session, tenant_id, self.uow)
        self.permits = PermitRepository(session, tenant_id, self.uow)


class ApplicationService:
    """
    Orchestrates permit applications through engines and the issuance gate.

    Engine composition:
    - FeeCalculationEngine: permit fee from the active FeeConfiguration
    - PermitIssuanceGate: debt check before approval

    Transaction boundary: this service commits on success, rolls back on failure.
    ``balance_lookup`` replaces the repository lookup the gate uses; tests
    pass a spy here.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        dispatcher: EventDispatcher | None = None,
        eligibility: EligibilitySettings | None = None,
        balance_lookup: BalanceLookup | None = None,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher
        self._eligibility = eligibility or EligibilitySettings()
        self._balance_lookup = balance_lookup
        self._fee_engine = FeeCalculationEngine()

    def _work(self) -> _ApplicationWork:
        return _ApplicationWork(self._session, self._tenant_id, self._dispatcher)

    def _mutate(
        self,
        application_id: UUID,
        code: str,
        log_event: str,
        mutate,
        command_cls: type | None = None,
        data: dict[str, Any] | None = None,
    ) -> Result[Application]:
        """Validate ``data``, load, mutate and commit one application."""
        work = self._work()

        def operation() -> Application:
            cmd = parse_command(command_cls, **(data or {})) if command_cls else None
            application = work.applications.get(application_id)
            mutate(application, cmd, self._clock.now_utc())
            return application

        return run_operation(
            work.uow, code, operation,
            log_event=log_event,
            log_extra={"application_id": str(application_id)},
        )

    # =========================================================================
    # Fees
    # =========================================================================

    def calculate_fee(
        self,
        application_type: ApplicationType | str,
        seat_count: int,
        mtow: Weight,
        work: _ApplicationWork | None = None,
    ) -> FeeCalculation:
        """Fee under the configuration in force today, or the default policy."""
        work = work or self._work()
        policy = select_policy(work.fee_configurations.list_active(), self._clock.today())
        return self._fee_engine.calculate(application_type, seat_count, mtow, policy)

    # =========================================================================
    # Creation and documents
    # =========================================================================

    def create_application(self, **data: Any) -> Result[Application]:
        work = self._work()

        def operation() -> Application:
            cmd = parse_command(CreateApplicationCommand, **data)
            now = self._clock.now_utc()
            mtow = Weight(cmd.mtow_value, cmd.mtow_unit)
            fee = self.calculate_fee(cmd.application_type, cmd.seat_count, mtow, work)
            application = Application.create(
                tenant_id=self._tenant_id,
                application_type=cmd.application_type,
                operator_id=cmd.operator_id,
                aircraft_id=cmd.aircraft_id,
                flight_details=FlightDetails(
                    purpose=cmd.purpose,
                    purpose_description=cmd.purpose_description,
                    arrival_airport=cmd.arrival_airport,
                    departure_airport=cmd.departure_airport,
                    estimated_flight_date=cmd.estimated_flight_date,
                    number_of_passengers=cmd.number_of_passengers,
                    flight_number=cmd.flight_number,
                ),
                requested_start=cmd.requested_start,
                requested_end=cmd.requested_end,
                seat_count=cmd.seat_count,
                mtow=mtow,
                calculated_fee=fee.total,
                now=now,
            )
            work.applications.add(application)
            logger.info(
                "application_fee_calculated",
                extra={
                    "application_number": application.application_number,
                    "fee": str(fee.total),
                    "policy": fee.policy_name,
                },
            )
            return application

        return run_operation(
            work.uow, APPLICATION_OPERATION, operation,
            log_event="application_create",
            log_extra={"operator_id": str(data.get("operator_id"))},
        )

    def add_document(self, application_id: UUID, **data: Any) -> Result[ApplicationDocument]:
        work = self._work()

        def operation() -> ApplicationDocument:
            cmd = parse_command(AddDocumentCommand, **data)
            now = self._clock.now_utc()
            application = work.applications.get(application_id)
            document = ApplicationDocument.create(
                document_type=cmd.document_type,
                file_name=cmd.file_name,
                file_size=cmd.file_size,
                mime_type=cmd.mime_type,
                storage_url=cmd.storage_url,
                uploaded_by=cmd.uploaded_by,
                uploaded_at=now,
                expiry_date=cmd.expiry_date,
            )
            application.add_document(document, now)
            return document

        return run_operation(
            work.uow, APPLICATION_OPERATION, operation,
            log_event="application_add_document",
            log_extra={"application_id": str(application_id)},
        )

    def verify_document(self, application_id: UUID, document_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_verify_document",
            lambda app, cmd, now: app.verify_document(document_id, cmd.actor, now),
            ReviewerCommand, data,
        )

    def reject_document(self, application_id: UUID, document_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_reject_document",
            lambda app, cmd, now: app.reject_document(document_id, cmd.actor, cmd.reason, now),
            RejectDocumentCommand, data,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def submit(self, application_id: UUID) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_submit",
            lambda app, cmd, now: app.submit(now),
        )

    def start_review(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_start_review",
            lambda app, cmd, now: app.start_review(cmd.actor, now),
            ReviewerCommand, data,
        )

    def approve(self, application_id: UUID, **data: Any) -> Result[Permit]:
        """
        Approve and issue the permit.

        Order: approval preconditions, issuance gate, approval, permit.  A
        blocked gate fails with ``Permit.BlockedDueToDebt`` and nothing is
        written.
        """
        work = self._work()
        lookup = self._balance_lookup or work.balances.find_by_operator
        gate = PermitIssuanceGate.from_settings(lookup, self._eligibility)

        def operation() -> Permit:
            cmd = parse_command(ApproveCommand, **data)
            now = self._clock.now_utc()
            application = work.applications.get(application_id)
            application.ensure_approvable(cmd.approved_by)
            gate.authorize(
                application.operator_id,
                actor=cmd.approved_by,
                bypass=cmd.bypass_eligibility,
                bypass_justification=cmd.bypass_justification,
            )
            application.approve(cmd.approved_by, cmd.notes, now)
            permit_type = application.application_type.value
            permit_number = unique_number(
                lambda: generate_permit_number(permit_type, now.date()),
                work.permits.number_taken,
            )
            permit = Permit.issue(
                tenant_id=self._tenant_id,
                application_id=application.id,
                application_number=application.application_number,
                permit_type=permit_type,
                operator_id=application.operator_id,
                aircraft_id=application.aircraft_id,
                valid_from=application.requested_start,
                valid_until=application.requested_end,
                fees_paid=application.calculated_fee,
                issued_by=cmd.approved_by,
                now=now,
                permit_number=permit_number,
            )
            work.permits.add(permit)
            return permit

        return run_operation(
            work.uow, APPLICATION_OPERATION, operation,
            log_event="application_approve",
            log_extra={"application_id": str(application_id)},
        )

    def reject(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_reject",
            lambda app, cmd, now: app.reject(cmd.rejected_by, cmd.reason, now),
            RejectCommand, data,
        )

    def cancel(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_cancel",
            lambda app, cmd, now: app.cancel(cmd.reason, now),
            CancelCommand, data,
        )

    def expire(self, application_id: UUID) -> Result[Application]:
        return self._mutate(
            application_id, APPLICATION_OPERATION, "application_expire",
            lambda app, cmd, now: app.expire(now),
        )

    # =========================================================================
    # Payment
    # =========================================================================

    def request_payment(self, application_id: UUID, **data: Any) -> Result[ApplicationPayment]:
        work = self._work()

        def operation() -> ApplicationPayment:
            cmd = parse_command(RequestPaymentCommand, **data)
            application = work.applications.get(application_id)
            return application.request_payment(cmd.method, self._clock.now_utc())

        return run_operation(
            work.uow, PAYMENT_OPERATION, operation,
            log_event="application_request_payment",
            log_extra={"application_id": str(application_id)},
        )

    def complete_payment(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, PAYMENT_OPERATION, "application_complete_payment",
            lambda app, cmd, now: app.complete_payment(
                cmd.transaction_reference, cmd.receipt_number, now
            ),
            CompletePaymentCommand, data,
        )

    def fail_payment(self, application_id: UUID, reason: str) -> Result[Application]:
        return self._mutate(
            application_id, PAYMENT_OPERATION, "application_fail_payment",
            lambda app, cmd, now: app.fail_payment(reason, now),
        )

    # =========================================================================
    # Fee override and waivers
    # =========================================================================

    def override_fee(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, FEE_OVERRIDE_OPERATION, "application_override_fee",
            lambda app, cmd, now: app.override_fee(
                cmd.new_amount, cmd.currency, cmd.overridden_by, cmd.justification, now
            ),
            OverrideFeeCommand, data,
        )

    def request_waiver(self, application_id: UUID, **data: Any) -> Result[Waiver]:
        work = self._work()

        def operation() -> Waiver:
            cmd = parse_command(RequestWaiverCommand, **data)
            application = work.applications.get(application_id)
            return application.request_waiver(
                cmd.waiver_type, cmd.reason, cmd.requested_by, self._clock.now_utc()
            )

        return run_operation(
            work.uow, WAIVER_OPERATION, operation,
            log_event="application_request_waiver",
            log_extra={"application_id": str(application_id)},
        )

    def approve_waiver(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, WAIVER_OPERATION, "application_approve_waiver",
            lambda app, cmd, now: app.approve_waiver(
                cmd.waiver_id, cmd.approved_by, cmd.percentage, now
            ),
            ApproveWaiverCommand, data,
        )

    def reject_waiver(self, application_id: UUID, **data: Any) -> Result[Application]:
        return self._mutate(
            application_id, WAIVER_OPERATION, "application_reject_waiver",
            lambda app, cmd, now: app.reject_waiver(cmd.waiver_id, cmd.rejected_by, cmd.reason, now),
            RejectWaiverCommand, data,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, application_id: UUID) -> Application:
        return self._work().applications.get(application_id)

    def find_by_number(self, application_number: str) -> Application | None:
        return self._work().applications.find_by_number(application_number)

    def list_for_operator(self, operator_id: UUID) -> list[Application]:
        return self._work().applications.list_for_operator(operator_id)

    # =========================================================================
    # Fee configurations
    # =========================================================================

    def create_fee_configuration(self, **data: Any) -> Result[FeeConfiguration]:
        """Store a new configuration; activating it deactivates the others."""
        work = self._work()

        def operation() -> FeeConfiguration:
            cmd = parse_command(CreateFeeConfigurationCommand, **data)
            now = self._clock.now_utc()
            config = FeeConfiguration.create(
                base_fee=cmd.base_fee,
                per_seat_fee=cmd.per_seat_fee,
                per_kg_fee=cmd.per_kg_fee,
                one_time_multiplier=cmd.one_time_multiplier,
                blanket_multiplier=cmd.blanket_multiplier,
                emergency_multiplier=cmd.emergency_multiplier,
                currency=cmd.currency,
                effective_from=cmd.effective_from,
                effective_to=cmd.effective_to,
                modified_by=cmd.modified_by,
                notes=cmd.notes,
                now=now,
            )
            if cmd.activate:
                for active in work.fee_configurations.list_active():
                    active.deactivate(cmd.modified_by, now)
                config.activate(cmd.modified_by, now)
            work.fee_configurations.add(config)
            return config

        return run_operation(
            work.uow, FEE_CONFIGURATION_OPERATION, operation,
            log_event="fee_configuration_create",
            log_extra={"modified_by": str(data.get("modified_by"))},
        )

    def deactivate_fee_configuration(self, configuration_id: UUID, modified_by: str) -> Result[FeeConfiguration]:
        work = self._work()

        def operation() -> FeeConfiguration:
            config = work.fee_configurations.get(configuration_id)
            config.deactivate(modified_by, self._clock.now_utc())
            return config

        return run_operation(
            work.uow, FEE_CONFIGURATION_OPERATION, operation,
            log_event="fee_configuration_deactivate",
            log_extra={"configuration_id": str(configuration_id)},
        )
