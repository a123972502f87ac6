"""
billing_config -- single public entrypoint for company billing settings.

Responsibility:
    Provides the one way to obtain settings at runtime through
    ``get_settings()``.  Returns a frozen ``BillingSettings``.

Architecture position:
    Configuration -- sits above ``billing_kernel``.  The kernel MUST NEVER
    import from ``billing_config``; ``billing_config.bridges`` translates
    settings into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ConfigurationError`` -- malformed YAML or invalid values.

Every successful ``get_settings()`` call emits a ``settings_loaded`` log
entry carrying the source path and checksum, tying generated invoice
numbers back to the settings that formatted them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from billing_config.loader import load_settings
from billing_config.schema import BillingSettings

_logger = logging.getLogger("billing_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "settings.yaml"


def get_settings(path: Path | str | None = None) -> BillingSettings:
    """
    Load company billing settings.

    Args:
        path: Settings YAML file.  Defaults to the packaged
            billing_config/defaults/settings.yaml.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ConfigurationError: If the file content is invalid.
    """
    source = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = load_settings(source)

    _logger.info(
        "settings_loaded",
        extra={
            "source": str(source),
            "checksum": settings.checksum,
            "currency": settings.currency,
            "invoice_due_days": settings.invoice_due_days,
        },
    )
    return settings


__all__ = ["BillingSettings", "DEFAULT_SETTINGS_PATH", "get_settings"]
