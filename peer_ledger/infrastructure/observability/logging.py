"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from peer_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_command(
    request_id: str,
    command: str,
    actor_id: Optional[str],
    outcome: str,
    duration_ms: float,
    version: Optional[int] = None,
    error_code: Optional[str] = None,
) -> None:
    """Log structured command outcome at the API edge"""
    logging.info(
        "Command handled",
        extra={
            "request_id": request_id,
            "command": command,
            "actor_id": actor_id,
            "outcome": outcome,
            "version": version,
            "error_code": error_code,
            "duration_ms": duration_ms,
        },
    )
