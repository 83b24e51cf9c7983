"""
Structured Logging Configuration

JSON log lines with:
- Request ID tracking
- Entity context (resource, reservation, rule)
- Engine timings
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional, Any, Dict
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
resource_id_var: ContextVar[str] = ContextVar('resource_id', default='')


class JSONFormatter(logging.Formatter):
    """One JSON object per record, ready for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            payload["request_id"] = request_id
        resource_id = resource_id_var.get()
        if resource_id:
            payload["resource_id"] = resource_id

        for attr in ("entity_type", "entity_id", "duration_ms"):
            value = getattr(record, attr, None)
            if value is not None:
                payload[attr] = value

        data = getattr(record, "extra_data", None)
        if data:
            payload["data"] = data

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter carrying structured fields for engine events.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        **extra_data
    ):
        """Log with additional structured context."""
        extra = {}
        if entity_type:
            extra['entity_type'] = entity_type
        if entity_id:
            extra['entity_id'] = entity_id
        if duration_ms is not None:
            extra['duration_ms'] = round(duration_ms, 3)
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def availability_checked(
        self,
        resource_id: str,
        is_available: bool,
        reasons: tuple = (),
        duration_ms: float = None
    ):
        verdict = "available" if is_available else "unavailable"
        self.log_with_context(
            logging.INFO,
            f"Availability checked: {resource_id} {verdict}",
            entity_type="resource",
            entity_id=resource_id,
            duration_ms=duration_ms,
            is_available=is_available,
            reasons=list(reasons)
        )

    def rule_resolved(self, resource_id: str, day: str, rule_id: Optional[str], multiplier):
        self.log_with_context(
            logging.DEBUG,
            f"Pricing rule resolved for {resource_id} on {day}: {rule_id or 'none'}",
            entity_type="pricing_rule",
            entity_id=rule_id,
            resource_id=resource_id,
            day=day,
            multiplier=str(multiplier)
        )

    def quote_computed(self, resource_id: str, total, flags: tuple = (), duration_ms: float = None):
        self.log_with_context(
            logging.INFO,
            f"Quote computed for {resource_id}: {total}",
            entity_type="resource",
            entity_id=resource_id,
            duration_ms=duration_ms,
            total=str(total),
            flags=list(flags)
        )

    def reservation_committed(self, reservation_id: str, resource_id: str, status: str):
        self.log_with_context(
            logging.INFO,
            f"Reservation {reservation_id} committed on {resource_id}",
            entity_type="reservation",
            entity_id=reservation_id,
            resource_id=resource_id,
            status=status
        )

    def reservation_status_changed(self, reservation_id: str, old_status: str, new_status: str):
        self.log_with_context(
            logging.INFO,
            f"Reservation status changed: {old_status} -> {new_status}",
            entity_type="reservation",
            entity_id=reservation_id,
            old_status=old_status,
            new_status=new_status
        )

    def api_request(self, method: str, path: str, status_code: int, duration_ms: float):
        """Log API request with performance data."""
        self.log_with_context(
            logging.INFO,
            f"{method} {path} - {status_code}",
            duration_ms=duration_ms,
            method=method,
            path=path,
            status_code=status_code
        )


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines (production) or plain text (development)
        include_uvicorn: Route uvicorn loggers through the same handler
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    logging.getLogger("hospitality_engine").setLevel(log_level)

    if include_uvicorn:
        for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
            logging.getLogger(logger_name).handlers = [handler]

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module."""
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str, resource_id: Optional[str] = None):
    """Set context for the current request."""
    request_id_var.set(request_id)
    if resource_id:
        resource_id_var.set(resource_id)


def set_resource_context(resource_id: str):
    """Tag the rest of the request's log lines with the resource being evaluated."""
    resource_id_var.set(resource_id)


def clear_request_context():
    request_id_var.set('')
    resource_id_var.set('')
