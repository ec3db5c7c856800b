import json
import logging
from typing import Any, Dict, Optional

from apps.common.correlation import get_correlation_id

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__
) | {'message', 'asctime'}


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or __name__)


def build_log_extra(
    correlation_id: Optional[str] = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    extra: Dict[str, Any] = {}
    resolved_correlation_id = correlation_id or get_correlation_id()
    if resolved_correlation_id:
        extra["correlation_id"] = resolved_correlation_id
    if kwargs:
        extra.update(kwargs)
    return extra


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including any `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)
