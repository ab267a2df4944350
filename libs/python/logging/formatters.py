"""JSON formatter for structured logging."""

import json
import logging
from typing import Any, Dict, Optional

from libs.python.logging.context import LogContext, get_context

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter that includes context attributes and ``extra`` fields."""

    def __init__(self, global_context: Optional[LogContext] = None, include_source: bool = True):
        super().__init__()
        self.global_context = global_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source:
            log_data["source"] = {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            }

        if self.global_context:
            log_data.update(self.global_context.to_dict())

        current_context = get_context()
        if current_context and current_context is not self.global_context:
            log_data.update(current_context.to_dict())

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)
