"""
Logging setup for PPRL.

Library modules log through ``logging.getLogger(__name__)`` and never attach
handlers; the CLI calls :func:`configure_from_settings` once at startup.

Records may carry structured ``extra`` fields. Before they reach a sink,
fields named like key material or plaintext are redacted and raw ``bytes``
(serialized ciphertexts, sealed chunks) are reduced to their length.

Usage:
    from pprl.config import get_settings
    from pprl.logging import configure_from_settings

    configure_from_settings(get_settings())
    logging.getLogger("pprl.protocol").info("Table committed", extra={"states": 16})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional, TextIO

if TYPE_CHECKING:
    from .config import PPRLSettings

# Substrings of extra-field names whose values never reach a sink
SENSITIVE_PATTERNS = frozenset(
    {
        "secret",
        "private_key",
        "privatekey",
        "relin_key",
        "plaintext",
        "q_value",
        "slots",
    }
)

# Everything a bare LogRecord carries; any other attribute came in via ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}


def _scrub(key: str, value: Any) -> Any:
    if any(pattern in key.lower() for pattern in SENSITIVE_PATTERNS):
        return "[REDACTED]"
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, dict):
        return {k: _scrub(str(k), v) for k, v in value.items()}
    return value


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """The scrubbed ``extra`` fields of ``record``."""
    return {k: _scrub(k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = record_extras(record)
        if extras:
            entry["extra"] = extras
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output with extras appended as ``key=value``."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        level = f"{color}{record.levelname:8}{self.RESET if color else ''}"
        clock = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        # pprl.protocol.secure -> protocol.secure
        source = record.name.split(".", 1)[-1][:20].ljust(20)

        line = f"{clock} {level} {source} {record.getMessage()}"
        extras = record_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: str = "INFO", json_format: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    Attach a single handler to the ``pprl`` logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines instead of colored development output
        stream: Output stream. Default: sys.stderr
    """
    package_logger = logging.getLogger("pprl")
    package_logger.setLevel(getattr(logging, level.upper()))
    package_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter() if json_format else DevelopmentFormatter())
    package_logger.addHandler(handler)
    package_logger.propagate = False


def configure_from_settings(settings: "PPRLSettings", stream: Optional[TextIO] = None) -> None:
    """Level from ``PPRL_LOG_LEVEL``; JSON output in production."""
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.is_production(), stream=stream)


__all__ = [
    "configure_from_settings",
    "configure_logging",
    "record_extras",
    "StructuredFormatter",
    "DevelopmentFormatter",
]
