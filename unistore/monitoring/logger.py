# unistore/monitoring/logger.py
"""
Structured JSON logger for the unistore service.
"""
import logging
import json
from datetime import datetime, timezone

from unistore.config import settings

_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}
_CONTEXT_FIELDS = ("component", "request_id", "storage", "operation")

def get_request_context():
    # Import lazily to avoid import cycles
    from unistore.monitoring.context import get_request_context as _g
    return _g()

class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "component": getattr(record, "component", None) or record.module,
            "request_id": getattr(record, "request_id", None),
            "storage": getattr(record, "storage", None),
            "operation": getattr(record, "operation", None),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED or key in _CONTEXT_FIELDS or key.startswith("_"):
                continue
            log_record[key] = value
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)

logger = logging.getLogger("unistore")
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())
logger.handlers = [handler]
logger.propagate = False

# Helper to log with context
def log(level: str, message: str, component: str = None, request_id: str = None, storage: str = None, operation: str = None, **kwargs):
    # Map legacy 'module' kwarg to 'component' to avoid LogRecord collision
    if "module" in kwargs and not component:
        component = kwargs.pop("module")
    kwargs = {k: v for k, v in kwargs.items() if k not in _RESERVED}
    # Fill missing fields from contextvars
    ctx = get_request_context()
    if request_id is None:
        request_id = ctx.get("request_id")
    if storage is None:
        storage = ctx.get("storage")
    if operation is None:
        operation = ctx.get("operation")

    extra = {
        "request_id": request_id,
        "storage": storage,
        "operation": operation,
        "component": component,
        **kwargs
    }
    logger.log(getattr(logging, level.upper(), logging.INFO), message, extra=extra)
