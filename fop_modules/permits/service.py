"""
Permit Service - lifecycle operations on issued permits.

Issuance is not here: it belongs to application approval, which runs the
issuance gate and creates the permit in the approval's own unit of work.
Expiry is driven by the nightly expiry job.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from fop_kernel.domain.clock import Clock, SystemClock
from fop_kernel.domain.result import Result
from fop_kernel.logging_config import get_logger
from fop_kernel.services.boundary import parse_command, run_operation
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_kernel.services.unit_of_work import UnitOfWork
from fop_modules.permits.models import Permit
from fop_modules.permits.repository import PermitRepository
from fop_modules.permits.validation import (
    AttachPermitDocumentCommand,
    RevokePermitCommand,
    SuspendPermitCommand,
)

logger = get_logger("modules.permits.service")

PERMIT_OPERATION = "Permit.InvalidOperation"


class PermitService:
    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        dispatcher: EventDispatcher | None = None,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher

    def _work(self) -> tuple[UnitOfWork, PermitRepository]:
        uow = UnitOfWork(self._session, self._dispatcher)
        return uow, PermitRepository(self._session, self._tenant_id, uow)

    # -- queries -------------------------------------------------------------

    def get(self, permit_id: UUID) -> Permit:
        return self._work()[1].get(permit_id)

    def find_by_number(self, permit_number: str) -> Permit | None:
        return self._work()[1].find_by_number(permit_number)

    def find_by_application(self, application_id: UUID) -> Permit | None:
        return self._work()[1].find_by_application(application_id)

    def list_for_operator(self, operator_id: UUID) -> list[Permit]:
        return self._work()[1].list_for_operator(operator_id)

    # -- lifecycle -----------------------------------------------------------

    def suspend(self, permit_id: UUID, **data: Any) -> Result[Permit]:
        uow, permits = self._work()

        def operation() -> Permit:
            cmd = parse_command(SuspendPermitCommand, **data)
            permit = permits.get(permit_id)
            permit.suspend(cmd.reason, self._clock.now_utc(), cmd.suspended_until)
            return permit

        return run_operation(
            uow, PERMIT_OPERATION, operation,
            log_event="permit_suspend", log_extra={"permit_id": str(permit_id)},
        )

    def reinstate(self, permit_id: UUID) -> Result[Permit]:
        uow, permits = self._work()

        def operation() -> Permit:
            permit = permits.get(permit_id)
            permit.reinstate(self._clock.now_utc())
            return permit

        return run_operation(
            uow, PERMIT_OPERATION, operation,
            log_event="permit_reinstate", log_extra={"permit_id": str(permit_id)},
        )

    def revoke(self, permit_id: UUID, **data: Any) -> Result[Permit]:
        uow, permits = self._work()

        def operation() -> Permit:
            cmd = parse_command(RevokePermitCommand, **data)
            permit = permits.get(permit_id)
            permit.revoke(cmd.reason, self._clock.now_utc())
            return permit

        return run_operation(
            uow, PERMIT_OPERATION, operation,
            log_event="permit_revoke", log_extra={"permit_id": str(permit_id)},
        )

    def attach_document(self, permit_id: UUID, **data: Any) -> Result[Permit]:
        uow, permits = self._work()

        def operation() -> Permit:
            cmd = parse_command(AttachPermitDocumentCommand, **data)
            permit = permits.get(permit_id)
            permit.attach_document(cmd.document_url, self._clock.now_utc())
            return permit

        return run_operation(
            uow, PERMIT_OPERATION, operation,
            log_event="permit_attach_document", log_extra={"permit_id": str(permit_id)},
        )
