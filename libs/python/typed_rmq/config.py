"""
RabbitMQ topology declarations.

Declarations tie a Python type (the subject) to the exchange and queue its
values travel through. They are supplied once at configuration time and never
mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping, Optional

# Fixed policy: every non-exclusive queue is a replicated quorum queue.
QUEUE_TYPE_ARGUMENT = "x-queue-type"
QUORUM_QUEUE_TYPE = "quorum"


class ExchangeType(StrEnum):
    """AMQP exchange kinds."""
    DIRECT = "direct"
    FANOUT = "fanout"
    TOPIC = "topic"
    HEADERS = "headers"


@dataclass(frozen=True)
class ConsumerScope:
    """
    Description of the microservice (or instance) that owns a consumer.

    Attributes:
        name: Scope name, used to build consumer tags
    """
    name: str


@dataclass(frozen=True)
class ExchangeDeclaration:
    """
    Exchange declaration.

    Attributes:
        subject: Type of the values published through this exchange
        name: Logical exchange name
        exchange_type: Exchange kind
    """
    subject: type
    name: str
    exchange_type: ExchangeType

    @property
    def wire_name(self) -> str:
        """Name the exchange is declared under on the broker, e.g. ``events.fanout``."""
        return f"{self.name}.{ExchangeType(self.exchange_type).value}"


@dataclass(frozen=True)
class QueueDeclaration:
    """
    Queue declaration.

    Attributes:
        subject: Type of the values consumed from this queue
        queue: Queue name
        consumer_scope: Scope of the microservice consuming the queue
        exchange: Exchange to bind the queue to (None for no binding)
        routing_key: Binding routing key (defaults to the queue name)
        arguments: Extra queue arguments (empty by default)
        exclusive: Declare an exclusive queue (never durable)
    """
    subject: type
    queue: str
    consumer_scope: ConsumerScope
    exchange: Optional[ExchangeDeclaration] = None
    routing_key: Optional[str] = None
    arguments: Mapping[str, Any] = field(default_factory=dict)
    exclusive: bool = False

    def __post_init__(self) -> None:
        if self.routing_key is None:
            object.__setattr__(self, "routing_key", self.queue)
        object.__setattr__(self, "arguments", dict(self.arguments))

    @property
    def durable(self) -> bool:
        return not self.exclusive


@dataclass(frozen=True)
class InternalQueueDeclaration:
    """
    Resolved queue record kept in the topology registry.

    Attributes:
        queue: Queue name
        consumer_scope: Scope of the consuming microservice
        routing_key: Routing key used when publishing by type
        exchange: Exchange wire name, or "" for the default exchange
    """
    queue: str
    consumer_scope: ConsumerScope
    routing_key: str
    exchange: str


def direct_queue_declaration(
    subject: type,
    queue: str,
    scope: ConsumerScope,
    arguments: Optional[Mapping[str, Any]] = None,
) -> QueueDeclaration:
    """
    Build a declaration for a queue that is not bound to any exchange.

    Values of ``subject`` are then published through the default exchange
    using the queue name as routing key.

    Args:
        subject: Type of the values carried by the queue
        queue: Queue name
        scope: Scope of the consuming microservice
        arguments: Extra queue arguments

    Returns:
        QueueDeclaration without an exchange
    """
    return QueueDeclaration(
        subject=subject,
        queue=queue,
        consumer_scope=scope,
        exchange=None,
        arguments=arguments or {},
    )
