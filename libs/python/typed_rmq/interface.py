"""Abstract interfaces for typed message publishers and consumers."""

import abc
from typing import Any, Mapping, Optional


class MessagePublisherInterface(abc.ABC):
    """Abstract interface for message publishers."""

    @abc.abstractmethod
    def publish(
        self,
        value: Any,
        routing_key: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Publish a value to the exchange declared for its type.

        Args:
            value: Value to publish
            routing_key: Explicit routing key (resolved from the queue
                declaration of the value's type when omitted)
            properties: AMQP message properties
        """
        pass

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Shutdown the publisher and cleanup resources."""
        pass


class MessageConsumerInterface(abc.ABC):
    """Abstract interface for message consumers."""

    @abc.abstractmethod
    def start(self) -> None:
        """Start consuming in the background."""
        pass

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Stop consuming and cleanup resources."""
        pass
