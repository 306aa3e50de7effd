"""
Structured Logging Configuration Module

Ledger modules log through logging.getLogger(__name__), so every record ends
up under the "loan_ledger" logger that setup_logging configures. Request
failures are logged with log_action, which attaches the error kind and the
request path as structured fields.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes log_action may set on a record
STRUCTURED_FIELDS = ("action", "resource", "extra")


class JSONFormatter(logging.Formatter):
    """One JSON object per log record"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "loan_ledger",
                  format_type: str = "json") -> logging.Logger:
    """
    Configure the ledger logger.

    Args:
        level: Log level name, case-insensitive
        logger_name: Logger to configure
        format_type: "json" for structured output, anything else for text lines

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    # Calling again replaces the handler instead of stacking a second one
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, resource: Optional[str] = None,
               extra: Optional[dict] = None):
    """Log a message carrying action, resource and extra as structured fields"""
    level_no = getattr(logging, level.upper())
    if not logger.isEnabledFor(level_no):
        return

    record = logger.makeRecord(
        logger.name, level_no, __name__, 0, message, (), None
    )
    fields = {"action": action, "resource": resource, "extra": extra}
    for name, value in fields.items():
        if value:
            setattr(record, name, value)

    logger.handle(record)
