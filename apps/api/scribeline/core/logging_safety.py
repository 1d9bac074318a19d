"""Logging setup and helpers for safe structured log fields."""

from __future__ import annotations

import hashlib
import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_PACKAGE_LOGGER = "scribeline"


def configure_logging(level: str) -> None:
    """Apply the configured level to the package logger, adding a handler when none is installed."""
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(level.upper())
    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(handler)


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for principal ids in log lines."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def redact_url(url: str | None) -> str:
    """Drop query string and fragment, which may carry share tokens."""
    text = (url or "").strip()
    if not text:
        return "url-missing"
    try:
        parts = urlsplit(text)
    except ValueError:
        return "url-unparseable"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
