"""Logging setup for applications embedding impact-ledger."""

import logging
import sys

from impact_ledger.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Send ``impact_ledger`` log records to stdout at ``level``.

    ``level`` defaults to ``LedgerSettings.log_level``
    (``IMPACT_LEDGER_LOG_LEVEL``). Library modules only create loggers;
    nothing is emitted until the embedding application calls this (or
    configures logging itself).
    """
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"unknown log level: {name!r}")

    root = logging.getLogger("impact_ledger")
    root.setLevel(level)
    if not any(getattr(h, "_impact_ledger", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._impact_ledger = True  # type: ignore[attr-defined]
        root.addHandler(handler)
