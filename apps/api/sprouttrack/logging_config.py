"""Process-wide logging setup."""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the package logger. Safe to call repeatedly."""
    global _configured
    package_logger = logging.getLogger("sprouttrack")
    package_logger.setLevel(level.upper())
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    package_logger.addHandler(handler)
    _configured = True
