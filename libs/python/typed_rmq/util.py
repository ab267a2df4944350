"""Naming helpers for consumers and queue arguments."""

import logging
from typing import Any, Mapping, Optional

from libs.python.typed_rmq.config import QUEUE_TYPE_ARGUMENT, QUORUM_QUEUE_TYPE

logger = logging.getLogger(__name__)


def make_consumer_tag(scope_name: str, queue: str, number: Optional[int] = None) -> str:
    """
    Build a deterministic consumer tag.

    Args:
        scope_name: Consumer scope name
        queue: Queue name
        number: Optional instance number for parallel consumers of one type

    Returns:
        Consumer tag

    Examples:
        >>> make_consumer_tag("Billing", "invoice.created")
        'billing-invoice-created-consumer'
        >>> make_consumer_tag("Billing", "invoice.created", 2)
        'billing-invoice-created-consumer-2'
    """
    tag = f"{scope_name.lower()}-{queue.replace('.', '-')}-consumer"
    if number is not None:
        tag = f"{tag}-{number}"
    return tag


def build_queue_arguments(
    queue: str,
    arguments: Mapping[str, Any],
    exclusive: bool,
) -> dict[str, Any]:
    """
    Merge caller-supplied queue arguments with the fixed queue-type policy.

    Exclusive queues keep the caller's arguments untouched. Every other queue
    is declared as a quorum queue and the caller cannot override that.

    Examples:
        >>> build_queue_arguments("q1", {"x-max-length": 10}, exclusive=False)
        {'x-max-length': 10, 'x-queue-type': 'quorum'}
        >>> build_queue_arguments("q1", {}, exclusive=True)
        {}
    """
    merged = dict(arguments)
    if exclusive:
        return merged

    requested = merged.get(QUEUE_TYPE_ARGUMENT)
    if requested is not None and requested != QUORUM_QUEUE_TYPE:
        logger.warning(
            "Ignoring %s=%r for queue %s, non-exclusive queues are always %s",
            QUEUE_TYPE_ARGUMENT,
            requested,
            queue,
            QUORUM_QUEUE_TYPE,
        )
    merged[QUEUE_TYPE_ARGUMENT] = QUORUM_QUEUE_TYPE
    return merged
