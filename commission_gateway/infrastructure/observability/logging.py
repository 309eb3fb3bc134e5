"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from commission_gateway.domain.models import CompensationBreakdown


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "commission-gateway"


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


def log_breakdown(
    request_id: str,
    rep_id: str,
    breakdown: CompensationBreakdown,
    duration_ms: float,
) -> None:
    """Log structured breakdown outcome for payroll auditing"""
    logging.info(
        "Breakdown computed",
        extra={
            "request_id": request_id,
            "rep_id": rep_id,
            "step": "breakdown_complete",
            "period": breakdown.context.monthly_period.label(),
            "as_of": breakdown.context.today.isoformat(),
            "new_clients": breakdown.new_client_count,
            "total": str(breakdown.total),
            "projected_total": str(breakdown.projected_total),
            "duration_ms": duration_ms,
        },
    )
