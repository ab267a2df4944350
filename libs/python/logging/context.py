"""Context management for structured logging.

Provides contextvars-based storage for log attributes that should be
automatically included in all log records. Every thread starts with an empty
context, so long-running consumer threads set their own on start.
"""

import contextvars
import os
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any

_log_context: contextvars.ContextVar[Optional["LogContext"]] = contextvars.ContextVar(
    "log_context", default=None
)


@dataclass
class LogContext:
    """Standard attributes for structured logging.

    Application metadata is set once at startup; messaging attributes are set
    per consumer thread.
    """

    # Application metadata
    environment: Optional[str] = None
    app_name: Optional[str] = None
    version: Optional[str] = None
    hostname: Optional[str] = None

    # Messaging context
    consumer_scope: Optional[str] = None
    consumer_tag: Optional[str] = None
    queue: Optional[str] = None
    exchange: Optional[str] = None
    subject: Optional[str] = None

    custom: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        custom = data.pop("custom", {})
        result = {key: value for key, value in data.items() if value is not None}
        result.update(custom)
        return result

    @classmethod
    def from_environment(cls) -> "LogContext":
        """Create LogContext from environment variables."""
        return cls(
            environment=os.getenv("APP_ENV") or os.getenv("ENVIRONMENT"),
            app_name=os.getenv("APP_NAME"),
            version=os.getenv("APP_VERSION"),
            hostname=os.getenv("HOSTNAME"),
        )


def set_context(context: LogContext) -> None:
    """Set the current log context."""
    _log_context.set(context)


def get_context() -> Optional[LogContext]:
    """Get the current log context, or None if not set."""
    return _log_context.get()


def clear_context() -> None:
    """Clear the current log context."""
    _log_context.set(None)


def update_context(**kwargs) -> None:
    """Update the current context with new values.

    Args:
        **kwargs: Attributes to update in the current context. Unknown
            attributes go to ``custom``.
    """
    current = get_context()
    if current is None:
        current = LogContext()
        set_context(current)

    for key, value in kwargs.items():
        if key == "custom":
            current.custom.update(value)
        elif hasattr(current, key):
            setattr(current, key, value)
        else:
            current.custom[key] = value
