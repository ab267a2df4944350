"""Logging configuration and setup."""

import logging
import sys
from typing import Optional

from libs.python.logging.context import LogContext, set_context
from libs.python.logging.formatters import StructuredFormatter

_configured = False
_global_context: Optional[LogContext] = None


def configure_logging(
    service_name: Optional[str] = None,
    service_version: Optional[str] = None,
    environment: Optional[str] = None,
    log_level: str = "INFO",
    json_format: bool = False,
    force_reconfigure: bool = False,
    **context_kwargs,
) -> LogContext:
    """Configure console logging for the application.

    Should be called once at startup. Values not passed explicitly are
    auto-detected from APP_NAME, APP_VERSION, APP_ENV and HOSTNAME.

    Args:
        service_name: Service name (defaults to APP_NAME)
        service_version: Service version (defaults to APP_VERSION)
        environment: Deployment environment (defaults to APP_ENV)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of plain text
        force_reconfigure: Replace handlers installed by a previous call
        **context_kwargs: Additional context attributes

    Returns:
        LogContext: The configured global log context
    """
    global _configured, _global_context

    if _configured and not force_reconfigure:
        return _global_context

    root_logger = logging.getLogger()
    if force_reconfigure:
        root_logger.handlers.clear()

    context = LogContext.from_environment()
    if service_name:
        context.app_name = service_name
    if service_version:
        context.version = service_version
    if environment:
        context.environment = environment
    for key, value in context_kwargs.items():
        if hasattr(context, key):
            setattr(context, key, value)
        else:
            context.custom[key] = value

    if not context.app_name:
        context.app_name = "unknown-app"
    if not context.environment:
        context.environment = "development"

    set_context(context)
    _global_context = context

    root_logger.setLevel(getattr(logging, log_level.upper()))

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(StructuredFormatter(context))
    else:
        handler.setFormatter(logging.Formatter(
            f"%(asctime)s - [{context.app_name}] %(name)s - %(levelname)s - %(message)s"
        ))
    root_logger.addHandler(handler)

    # amqpstorm is chatty at INFO about heartbeats and channel churn
    logging.getLogger("amqpstorm").setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).info(
        "Logging configured for %s (json=%s)", context.app_name, json_format
    )
    return context


def get_global_context() -> Optional[LogContext]:
    """Get the global log context set during configuration."""
    return _global_context


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
