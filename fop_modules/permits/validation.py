"""Command shapes for permit lifecycle operations."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class SuspendPermitCommand(Command):
    reason: str = Field(min_length=1, max_length=1000)
    suspended_until: date | None = None


class RevokePermitCommand(Command):
    reason: str = Field(min_length=1, max_length=1000)


class AttachPermitDocumentCommand(Command):
    document_url: str = Field(min_length=1, max_length=2000)
