"""Logging setup shared by scripts and embedding applications."""

from __future__ import annotations

import logging

from .config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the package logger (idempotent)."""
    settings = get_settings()
    logger = logging.getLogger("marketplace")
    logger.setLevel((level or settings.log_level).upper())
    if any(getattr(h, "_marketplace", False) for h in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._marketplace = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
