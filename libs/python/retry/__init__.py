"""
Retry utilities for handling transient failures.

This module provides a decorator for retrying operations that may fail due
to transient issues such as a broker that is not reachable yet.
"""

from libs.python.retry.retry import (
    RetryConfig,
    retry,
    is_transient_rmq_error,
)

__all__ = [
    "RetryConfig",
    "retry",
    "is_transient_rmq_error",
]
