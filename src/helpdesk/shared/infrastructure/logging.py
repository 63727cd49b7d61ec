"""
Structured Logging
==================

One JSON object per line on stdout (python-json-logger).

Every call site passes its context through ``extra``::

    logger = get_logger(__name__)
    logger.info("Ticket analyzed", extra={"ticket_id": ticket_id, "category": "SUPPORT"})

The formatter stamps a UTC timestamp and the environment on each record and
masks string values whose key looks like a credential (api keys, passwords,
authorization headers, tokens).
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

from pythonjsonlogger import jsonlogger

REDACTED = "***REDACTED***"

# third-party loggers that are only interesting at WARNING and above
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler", "httpx", "watchdog")


def _is_secret(key: str) -> bool:
    key = key.lower()
    if key.endswith("tokens"):
        return False
    return any(marker in key for marker in ("password", "api_key", "authorization", "token"))


class HelpdeskJsonFormatter(jsonlogger.JsonFormatter):

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["environment"] = self.environment

        for key, value in log_record.items():
            if isinstance(value, str) and _is_secret(key):
                log_record[key] = REDACTED


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """Route all logging through a single JSON stdout handler."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        HelpdeskJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **context: Any) -> Iterator[None]:
    """
    Log how long the wrapped block took, even when it raises.

    Usage:
        with log_latency(logger, "kb_search", ticket_id=ticket_id):
            matches = await responder.find_relevant_articles(title, description)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                **context,
            },
        )
