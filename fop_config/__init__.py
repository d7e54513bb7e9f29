"""
fop_config -- single public entrypoint for FOP settings.

``get_settings()`` is the only way runtime code obtains configuration.  The
packaged defaults are merged with the YAML file named by ``FOP_CONFIG`` when
that variable is set.
"""

from __future__ import annotations

import os
from pathlib import Path

from fop_config.loader import load_settings
from fop_config.schema import (
    DatabaseSettings,
    EligibilitySettings,
    FopSettings,
    LoggingSettings,
    RevenueSettings,
    SchedulingSettings,
)
from fop_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "FOP_CONFIG"


def get_settings(path: Path | str | None = None) -> FopSettings:
    """Load settings from ``path``, else ``$FOP_CONFIG``, else defaults."""
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else None
    settings = load_settings(Path(path) if path is not None else None)
    logger.info(
        "settings_loaded",
        extra={
            "source": str(path) if path else "defaults",
            "tenant_id": settings.tenant_id,
            "utc_offset_hours": settings.scheduling.utc_offset_hours,
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "DatabaseSettings",
    "EligibilitySettings",
    "FopSettings",
    "LoggingSettings",
    "RevenueSettings",
    "SchedulingSettings",
    "get_settings",
]
