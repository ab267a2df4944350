"""Queue declaration and binding on a broker channel."""

import logging
from typing import Iterable

from amqpstorm import Channel

from libs.python.typed_rmq.config import InternalQueueDeclaration, QueueDeclaration
from libs.python.typed_rmq.exceptions import DuplicateDeclarationError
from libs.python.typed_rmq.registry import TopologyRegistry
from libs.python.typed_rmq.util import build_queue_arguments

logger = logging.getLogger(__name__)


def declare_queues(
    channel: Channel,
    declarations: Iterable[QueueDeclaration],
    registry: TopologyRegistry,
) -> None:
    """
    Declare queues, bind them to their exchanges and rebuild the queue registry.

    Runs on startup and again on every topology recovery, so the registry is
    always replaced as a whole.

    Args:
        channel: Open channel to declare on
        declarations: Queue declarations
        registry: Registry receiving the type to queue record entries

    Raises:
        DuplicateDeclarationError: If a subject type is declared twice
    """
    declarations = list(declarations)
    queues: dict[type, InternalQueueDeclaration] = {}
    for declaration in declarations:
        if declaration.subject in queues:
            raise DuplicateDeclarationError("queue", declaration.subject)
        queues[declaration.subject] = InternalQueueDeclaration(
            queue=declaration.queue,
            consumer_scope=declaration.consumer_scope,
            routing_key=declaration.routing_key,
            exchange=declaration.exchange.wire_name if declaration.exchange else "",
        )

    for declaration in declarations:
        channel.queue.declare(
            queue=declaration.queue,
            durable=declaration.durable,
            exclusive=declaration.exclusive,
            auto_delete=False,
            arguments=build_queue_arguments(
                declaration.queue, declaration.arguments, declaration.exclusive
            ),
        )
        logger.info("Queue declared: %s", declaration.queue)

        if declaration.exchange is not None:
            channel.queue.bind(
                queue=declaration.queue,
                exchange=declaration.exchange.wire_name,
                routing_key=declaration.routing_key,
            )
            logger.info(
                "Queue %s bound to exchange %s with routing key '%s'",
                declaration.queue,
                declaration.exchange.wire_name,
                declaration.routing_key,
            )

    registry.replace_queues(queues)
