"""
Permit ORM Model (``fop_modules.permits.orm``).

Conditions are a short list of free-text strings stored as JSON on the
permit row.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fop_kernel.db.base import TrackedBase, ensure_utc
from fop_kernel.db.types import CurrencyCode, DocumentNumber, LongText, MoneyAmount, ShortCode
from fop_kernel.domain.values import Money


class PermitModel(TrackedBase):
    """
    ORM model for issued permits.

    Guarantees:
        - permit_number is unique.
        - One permit per application.
        - version is the optimistic-lock counter.
    """

    __tablename__ = "fop_permits"

    __table_args__ = (
        UniqueConstraint("permit_number", name="uq_fop_permits_number"),
        UniqueConstraint("application_id", name="uq_fop_permits_application"),
        Index("idx_fop_permits_operator_id", "operator_id"),
        Index("idx_fop_permits_status_valid_until", "status", "valid_until"),
    )

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    permit_number: Mapped[DocumentNumber] = mapped_column(nullable=False)
    application_id: Mapped[UUID] = mapped_column(nullable=False)
    application_number: Mapped[DocumentNumber] = mapped_column(nullable=False)
    permit_type: Mapped[ShortCode] = mapped_column(nullable=False)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    operator_id: Mapped[UUID] = mapped_column(nullable=False)
    aircraft_id: Mapped[UUID] = mapped_column(nullable=False)
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date] = mapped_column(Date, nullable=False)
    fees_paid: Mapped[MoneyAmount] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    conditions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    document_url: Mapped[LongText | None] = mapped_column(nullable=True)
    issued_by: Mapped[str] = mapped_column(String(100), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(nullable=False)
    suspension_reason: Mapped[LongText | None] = mapped_column(nullable=True)
    suspended_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    revocation_reason: Mapped[LongText | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from fop_modules.permits.models import Permit, PermitStatus

        return Permit.restore(
            id=self.id,
            tenant_id=self.tenant_id,
            permit_number=self.permit_number,
            application_id=self.application_id,
            application_number=self.application_number,
            permit_type=self.permit_type,
            status=PermitStatus(self.status),
            operator_id=self.operator_id,
            aircraft_id=self.aircraft_id,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            fees_paid=Money.of(self.fees_paid, self.currency),
            conditions=list(self.conditions or ()),
            document_url=self.document_url,
            issued_by=self.issued_by,
            issued_at=ensure_utc(self.issued_at),
            suspension_reason=self.suspension_reason,
            suspended_until=self.suspended_until,
            revocation_reason=self.revocation_reason,
            revoked_at=ensure_utc(self.revoked_at),
            expired_at=ensure_utc(self.expired_at),
            created_at=ensure_utc(self.created_at),
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: str) -> PermitModel:
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            permit_number=dto.permit_number,
            application_id=dto.application_id,
            application_number=dto.application_number,
            permit_type=dto.permit_type,
            operator_id=dto.operator_id,
            aircraft_id=dto.aircraft_id,
            valid_from=dto.valid_from,
            valid_until=dto.valid_until,
            fees_paid=dto.fees_paid.amount,
            currency=dto.fees_paid.currency.value,
            conditions=list(dto.conditions),
            issued_by=dto.issued_by,
            issued_at=dto.issued_at,
            created_at=dto.created_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.status = dto.status.value
        self.document_url = dto.document_url
        self.suspension_reason = dto.suspension_reason
        self.suspended_until = dto.suspended_until
        self.revocation_reason = dto.revocation_reason
        self.revoked_at = dto.revoked_at
        self.expired_at = dto.expired_at
        self.updated_at = dto.updated_at

    def __repr__(self) -> str:
        return f"<PermitModel {self.permit_number} status={self.status}>"
