"""
Settings loader (``fop_config.loader``).

Responsibility
--------------
Reads the packaged ``defaults.yaml`` plus an optional override document and
parses the merged mapping into ``fop_config.schema`` dataclasses.

Failure modes
-------------
* Missing override file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError`` naming the section.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import time
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from fop_config.schema import (
    DatabaseSettings,
    EligibilitySettings,
    FopSettings,
    LoggingSettings,
    RevenueSettings,
    SchedulingSettings,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, int):
        # YAML 1.1 reads unquoted HH:MM as sexagesimal minutes
        return time(value // 60, value % 60)
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"Cannot parse time from {value!r}")


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _check_keys(section: str, data: dict[str, Any], cls: type) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in {section}: {sorted(unknown)}")


def parse_scheduling(data: dict[str, Any]) -> SchedulingSettings:
    _check_keys("scheduling", data, SchedulingSettings)
    kwargs = dict(data)
    for key in ("expiry_job_time", "overdue_job_time"):
        if key in kwargs:
            kwargs[key] = parse_time(kwargs[key])
    if "expiry_warning_thresholds" in kwargs:
        kwargs["expiry_warning_thresholds"] = tuple(
            int(t) for t in kwargs["expiry_warning_thresholds"]
        )
    return SchedulingSettings(**kwargs)


def parse_revenue(data: dict[str, Any]) -> RevenueSettings:
    _check_keys("revenue", data, RevenueSettings)
    kwargs = dict(data)
    if "monthly_interest_rate" in kwargs:
        kwargs["monthly_interest_rate"] = parse_decimal(kwargs["monthly_interest_rate"])
    return RevenueSettings(**kwargs)


def parse_eligibility(data: dict[str, Any]) -> EligibilitySettings:
    _check_keys("eligibility", data, EligibilitySettings)
    kwargs = dict(data)
    if "max_overdue_amount" in kwargs:
        kwargs["max_overdue_amount"] = parse_decimal(kwargs["max_overdue_amount"])
    return EligibilitySettings(**kwargs)


def parse_settings(data: dict[str, Any]) -> FopSettings:
    _check_keys("root", data, FopSettings)
    database = data.get("database") or {}
    logging_cfg = data.get("logging") or {}
    _check_keys("database", database, DatabaseSettings)
    _check_keys("logging", logging_cfg, LoggingSettings)
    return FopSettings(
        tenant_id=str(data.get("tenant_id", "bvi")),
        database=DatabaseSettings(**database),
        logging=LoggingSettings(**logging_cfg),
        scheduling=parse_scheduling(data.get("scheduling") or {}),
        revenue=parse_revenue(data.get("revenue") or {}),
        eligibility=parse_eligibility(data.get("eligibility") or {}),
    )


def load_settings(override_path: Path | None = None) -> FopSettings:
    data = load_yaml_file(DEFAULTS_PATH)
    if override_path is not None:
        data = merge(data, load_yaml_file(override_path))
    return parse_settings(data)
