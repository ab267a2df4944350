"""
Typed RabbitMQ publisher.

Resolves the exchange and routing key of a value from its type and publishes
the serialized value. Publish failures are logged and never raised.
"""

import logging
import threading
from typing import Any, Callable, Mapping, Optional

from amqpstorm import Channel

from libs.python.typed_rmq.interface import MessagePublisherInterface
from libs.python.typed_rmq.registry import TopologyRegistry
from libs.python.typed_rmq.serialization import Serializer

logger = logging.getLogger(__name__)

DEFAULT_PROPERTIES = {
    "content_type": "application/json",
    "delivery_mode": 2,
}


class TypedPublisher(MessagePublisherInterface):
    """
    Publisher bound to a single channel.

    A channel must not be shared between threads, so create one publisher per
    concurrent user. After a failed publish the channel is discarded and the
    next publish opens a fresh one, since protocol errors leave a channel
    unusable.

    Publishing blocks while the broker signals a resource alarm.
    """

    def __init__(
        self,
        channel_factory: Callable[[], Channel],
        registry: TopologyRegistry,
        serializer: Serializer,
    ) -> None:
        """
        Args:
            channel_factory: Callable opening a new channel
            registry: Topology registry used to resolve exchanges
            serializer: Encoder for message bodies
        """
        self._channel_factory = channel_factory
        self._registry = registry
        self._serializer = serializer
        self._channel: Optional[Channel] = None
        self._lock = threading.Lock()

    def _ensure_channel(self) -> Channel:
        if self._channel is None or not self._channel.is_open:
            if self._channel is not None:
                logger.warning("Channel is closed, recreating from connection")
            self._channel = self._channel_factory()
        return self._channel

    def publish(
        self,
        value: Any,
        routing_key: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Publish ``value`` to the exchange declared for its type.

        Without ``routing_key`` both exchange and routing key come from the
        queue declaration of the value's type. With it, only the exchange is
        resolved from the type.

        Raises:
            DeclarationNotFoundError: If the value's type has no declaration.
                Raised before anything is sent.
        """
        subject = type(value)
        if routing_key is None:
            declaration = self._registry.resolve_queue(subject)
            exchange, routing_key = declaration.exchange, declaration.routing_key
        else:
            exchange = self._registry.resolve_exchange(subject)

        self._publish(exchange, routing_key, value, properties)

    def _publish(
        self,
        exchange: str,
        routing_key: str,
        value: Any,
        properties: Optional[Mapping[str, Any]],
    ) -> None:
        with self._lock:
            try:
                body = self._serializer.encode(value)
                channel = self._ensure_channel()
                channel.basic.publish(
                    body=body,
                    routing_key=routing_key,
                    exchange=exchange,
                    properties=dict(properties) if properties is not None else dict(DEFAULT_PROPERTIES),
                )
                logger.debug(
                    "Message published to exchange %s with routing key %s",
                    exchange,
                    routing_key,
                )
            except Exception:
                logger.exception(
                    "Error publishing message to exchange %s with routing key %s",
                    exchange,
                    routing_key,
                )
                self._discard_channel()

    def _discard_channel(self) -> None:
        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            if channel.is_open:
                channel.close()
        except Exception as e:
            logger.debug("Ignoring error while discarding channel: %s", e)

    def shutdown(self) -> None:
        """Shutdown the publisher by closing its channel."""
        logger.info("Shutting down TypedPublisher...")
        with self._lock:
            self._discard_channel()
