"""Structured logging with context injection.

Example:
    ```python
    from libs.python.logging import configure_logging, get_logger, update_context

    configure_logging(service_name="billing-worker", json_format=True)

    logger = get_logger(__name__)
    update_context(consumer_tag="billing-invoices-consumer")
    logger.info("Message acknowledged")  # record carries consumer_tag
    ```
"""

from libs.python.logging.config import configure_logging, get_global_context, is_configured
from libs.python.logging.factory import ContextLogger, get_logger
from libs.python.logging.formatters import StructuredFormatter
from libs.python.logging.context import (
    LogContext,
    set_context,
    get_context,
    clear_context,
    update_context,
)

__all__ = [
    "configure_logging",
    "get_global_context",
    "is_configured",
    "ContextLogger",
    "get_logger",
    "StructuredFormatter",
    "LogContext",
    "set_context",
    "get_context",
    "clear_context",
    "update_context",
]
