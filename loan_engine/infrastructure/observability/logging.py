"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from loan_engine.config import settings

logger = logging.getLogger("loan_engine.lifecycle")


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_transition(
    aggregate: str,
    aggregate_id: int,
    from_status: Optional[str],
    to_status: str,
    actor: str,
    **fields: Any,
) -> None:
    """Log a lifecycle transition with structured fields for analysis"""
    logger.info(
        "%s transition",
        aggregate,
        extra={
            "aggregate": aggregate,
            "aggregate_id": aggregate_id,
            "from_status": from_status,
            "to_status": to_status,
            "actor": actor,
            **fields,
        },
    )
