"""
Service boundary helpers: input validation and exception-to-Result mapping.

Responsibility:
    - ``parse_command`` validates raw input against a pydantic command model
      before any aggregate is touched.
    - ``run_operation`` runs a mutation inside a unit of work, commits once
      and translates domain exceptions into ``Result`` failures with stable
      codes.

Architecture position:
    Kernel > Services.  Used by every module service.

Invariants enforced:
    - Malformed input never reaches domain logic (Error.Validation).
    - A failed operation leaves nothing committed; the unit of work is
      rolled back before the failure is returned.
    - Unexpected (non-FopError) exceptions propagate after rollback.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from fop_kernel.domain.result import Error, Result
from fop_kernel.exceptions import (
    ConcurrencyConflictError,
    FopError,
    NotFoundError,
    PermitBlockedDueToDebtError,
    ValidationFailedError,
)
from fop_kernel.logging_config import get_logger
from fop_kernel.services.unit_of_work import UnitOfWork

logger = get_logger("services.boundary")

T = TypeVar("T")
C = TypeVar("C", bound=BaseModel)

# These keep their own code at the boundary instead of the operation code.
PASSTHROUGH_ERRORS: tuple[type[FopError], ...] = (
    ValidationFailedError,
    NotFoundError,
    ConcurrencyConflictError,
    PermitBlockedDueToDebtError,
)


def parse_command(model_cls: type[C], **data: Any) -> C:
    try:
        return model_cls(**data)
    except ValidationError as exc:
        raise ValidationFailedError(model_cls.__name__, exc.errors()) from exc


def to_error(exc: FopError, operation_code: str) -> Error:
    if isinstance(exc, PASSTHROUGH_ERRORS):
        return Error(code=exc.code, message=str(exc), cause_code=exc.code)
    return Error(code=operation_code, message=str(exc), cause_code=exc.code)


def run_operation(
    uow: UnitOfWork,
    operation_code: str,
    operation: Callable[[], T],
    *,
    log_event: str,
    log_extra: dict[str, Any] | None = None,
) -> Result[T]:
    """
    Execute ``operation`` and commit its unit of work.

    Postconditions:
        - Success: all tracked aggregates committed, events dispatched.
        - FopError: rolled back, Result.failure with a stable code.
    Raises:
        Exception: anything that is not a FopError, after rollback.
    """
    extra = dict(log_extra or {})
    try:
        value = operation()
        uow.save_changes()
    except FopError as exc:
        uow.rollback()
        error = to_error(exc, operation_code)
        logger.warning(
            f"{log_event}_failed",
            extra={**extra, "error_code": error.code, "cause_code": error.cause_code},
        )
        return Result.failure(error)
    except Exception:
        uow.rollback()
        logger.exception(f"{log_event}_error", extra=extra)
        raise

    logger.info(f"{log_event}_committed", extra=extra)
    return Result.success(value)
