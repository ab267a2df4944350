"""
Type-directed RabbitMQ topology and routing.

This package lets a process declare exchanges and queues once, associating
each with a Python type, and then publish or consume values by type alone:
- Declarations for exchanges, queues and consumer scopes
- A thread-safe topology registry rebuilt on every declaration pass
- A connection manager that reconnects and re-declares queues after outages
- Typed publisher and consumer with an explicit acknowledgment policy
"""

from libs.python.typed_rmq.config import (
    ConsumerScope,
    ExchangeDeclaration,
    ExchangeType,
    InternalQueueDeclaration,
    QueueDeclaration,
    direct_queue_declaration,
)
from libs.python.typed_rmq.connection import (
    ConnectionManager,
    ConnectionState,
    RecoveryListener,
    create_connection_factory,
    get_rabbitmq_ssl_options,
)
from libs.python.typed_rmq.consumer import (
    DeliveryOutcome,
    TypedConsumer,
    is_duplicate_key_error,
    process_delivery,
)
from libs.python.typed_rmq.exceptions import (
    ConnectionClosedError,
    DeclarationNotFoundError,
    DuplicateDeclarationError,
    TypedRmqError,
)
from libs.python.typed_rmq.exchanges import declare_exchanges
from libs.python.typed_rmq.interface import (
    MessageConsumerInterface,
    MessagePublisherInterface,
)
from libs.python.typed_rmq.messaging import RabbitMessaging, configure_rabbitmq
from libs.python.typed_rmq.publisher import TypedPublisher
from libs.python.typed_rmq.queues import declare_queues
from libs.python.typed_rmq.registry import TopologyRegistry
from libs.python.typed_rmq.serialization import JsonSerializer, Serializer
from libs.python.typed_rmq.util import build_queue_arguments, make_consumer_tag

__all__ = [
    # Declarations
    "ConsumerScope",
    "ExchangeDeclaration",
    "ExchangeType",
    "InternalQueueDeclaration",
    "QueueDeclaration",
    "direct_queue_declaration",
    # Topology
    "TopologyRegistry",
    "declare_exchanges",
    "declare_queues",
    # Connection
    "ConnectionManager",
    "ConnectionState",
    "RecoveryListener",
    "create_connection_factory",
    "get_rabbitmq_ssl_options",
    # Messaging
    "RabbitMessaging",
    "configure_rabbitmq",
    "TypedPublisher",
    "TypedConsumer",
    "DeliveryOutcome",
    "process_delivery",
    "is_duplicate_key_error",
    "JsonSerializer",
    "Serializer",
    # Interfaces
    "MessageConsumerInterface",
    "MessagePublisherInterface",
    # Errors
    "ConnectionClosedError",
    "DeclarationNotFoundError",
    "DuplicateDeclarationError",
    "TypedRmqError",
    # Utilities
    "build_queue_arguments",
    "make_consumer_tag",
]
