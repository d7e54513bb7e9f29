"""
Tests for fop_kernel.logging_config.

The suite-wide fixture in conftest.py has already configured logging;
``captured_logs`` attaches a second JSON handler to the ``fop`` logger.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest

from fop_kernel.exceptions import InvalidPermitStateError
from fop_kernel.logging_config import LogContext, StructuredFormatter, get_logger

logger = get_logger("tests.logging")


class TestStructuredFormatter:
    def test_extras_at_top_level(self, captured_logs):
        logger.info(
            "invoice_finalize_committed",
            extra={
                "invoice_id": UUID("00000000-0000-4000-a000-00000000000a"),
                "total": Decimal("510.00"),
                "due_date": date(2026, 2, 14),
            },
        )

        record = captured_logs()[-1]
        assert record["message"] == "invoice_finalize_committed"
        assert record["level"] == "INFO"
        assert record["logger"] == "fop.tests.logging"
        assert record["invoice_id"] == "00000000-0000-4000-a000-00000000000a"
        assert record["total"] == "510.00"
        assert record["due_date"] == "2026-02-14"

    def test_exception_fields(self, captured_logs):
        try:
            raise InvalidPermitStateError("BVI-FOP-OT-2026-ABCDEF", "REVOKED", "suspend")
        except InvalidPermitStateError:
            logger.exception("permit_suspend_failed")

        record = captured_logs()[-1]
        assert record["exc_type"] == "InvalidPermitStateError"
        assert record["exc_code"] == "Permit.InvalidState"
        assert "traceback" in record

    def test_single_json_line(self):
        record = logging.LogRecord("fop.x", logging.WARNING, __file__, 1, "daily_job_backoff", (), None)
        line = StructuredFormatter().format(record)

        assert "\n" not in line
        assert json.loads(line)["message"] == "daily_job_backoff"


class TestLogContext:
    def test_bound_fields_on_records(self, captured_logs):
        with LogContext.bind(job="permit-expiry", tenant_id="bvi"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = captured_logs()[-2:]
        assert (inside["job"], inside["tenant_id"]) == ("permit-expiry", "bvi")
        assert "job" not in outside

    def test_nested_bind_restores(self):
        LogContext.set(actor="officer.penn")
        with LogContext.bind(actor="system", job="invoice-overdue"):
            assert LogContext.get_all() == {"actor": "system", "job": "invoice-overdue"}
        assert LogContext.get_all() == {"actor": "officer.penn"}

    def test_none_values_ignored(self):
        LogContext.set(tenant_id="bvi", actor=None)
        assert LogContext.get_all() == {"tenant_id": "bvi"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="shoe_size"):
            LogContext.set(shoe_size="9")
