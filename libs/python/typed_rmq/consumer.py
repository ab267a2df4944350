"""
Typed RabbitMQ consumer.

Each consumer runs on its own daemon thread and channel, decodes deliveries
as its subject type and acknowledges them according to the handler's result:

- success: acknowledged
- duplicate key reported by the data layer: acknowledged (already processed)
- any other failure: logged with the raw payload and left unacknowledged, so
  the broker redelivers it
- empty body: ignored, neither handled nor acknowledged
"""

import dataclasses
import enum
import threading
from typing import Callable, Generic, Optional, TypeVar

from amqpstorm import Channel, Message
from amqpstorm.exception import AMQPError
from sqlalchemy.exc import IntegrityError

from libs.python.logging import LogContext, get_global_context, get_logger, set_context
from libs.python.typed_rmq.connection import ConnectionManager
from libs.python.typed_rmq.exceptions import ConnectionClosedError
from libs.python.typed_rmq.interface import MessageConsumerInterface
from libs.python.typed_rmq.registry import TopologyRegistry
from libs.python.typed_rmq.serialization import Serializer
from libs.python.typed_rmq.util import make_consumer_tag

logger = get_logger(__name__)

T = TypeVar("T")

# Bounds in-flight unacknowledged deliveries per consumer
DEFAULT_PREFETCH_COUNT = 2

DUPLICATE_KEY_MESSAGE = "duplicate key value violates unique constraint"
UNIQUE_VIOLATION_SQLSTATE = "23505"

DuplicatePredicate = Callable[[BaseException], bool]


def is_duplicate_key_error(exception: BaseException) -> bool:
    """
    Tell whether a handler failure is a unique constraint violation.

    Looks through the exception, the DBAPI error wrapped by SQLAlchemy
    (``orig``) and the ``__cause__``/``__context__`` chain for either a
    SQLAlchemy ``IntegrityError`` carrying the PostgreSQL duplicate key message
    or a driver error with SQLSTATE 23505.
    """
    pending = [exception]
    seen = set()
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))

        if isinstance(current, IntegrityError) and DUPLICATE_KEY_MESSAGE in str(current):
            return True
        sqlstate = getattr(current, "pgcode", None) or getattr(current, "sqlstate", None)
        if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
            return True

        pending.extend([
            getattr(current, "orig", None),
            current.__cause__,
            current.__context__,
        ])
    return False


class DeliveryOutcome(enum.Enum):
    IGNORED = "ignored"
    ACKNOWLEDGED = "acknowledged"
    DUPLICATE = "duplicate"
    FAILED = "failed"


def _payload_text(body: bytes) -> str:
    if isinstance(body, str):
        return body
    return body.decode("utf-8", errors="replace")


def process_delivery(
    body: Optional[bytes],
    subject: type[T],
    handler: Callable[[T], None],
    serializer: Serializer,
    ack: Callable[[], None],
    is_duplicate: DuplicatePredicate = is_duplicate_key_error,
) -> DeliveryOutcome:
    """
    Apply the acknowledgment policy to one delivery.

    Args:
        body: Raw message body
        subject: Type to decode the body as
        handler: User callback
        serializer: Decoder for the body
        ack: Acknowledges this single delivery
        is_duplicate: Recognises handler failures that mean "already processed"

    Returns:
        What happened to the delivery
    """
    if not body:
        logger.debug("Ignoring delivery with empty body")
        return DeliveryOutcome.IGNORED

    try:
        handler(serializer.decode(body, subject))
    except Exception as e:
        if is_duplicate(e):
            logger.info("Duplicate delivery acknowledged: %s", e)
            ack()
            return DeliveryOutcome.DUPLICATE
        logger.error("Faulty payload: %s", _payload_text(body), exc_info=e)
        return DeliveryOutcome.FAILED

    ack()
    return DeliveryOutcome.ACKNOWLEDGED


class TypedConsumer(MessageConsumerInterface, Generic[T]):
    """
    Non-exclusive, non-local consumer of the queue declared for ``subject``.

    The consumer resubscribes on a fresh channel whenever its channel or the
    connection dies, re-resolving its queue from the registry rebuilt by the
    recovery pass.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        registry: TopologyRegistry,
        subject: type[T],
        handler: Callable[[T], None],
        serializer: Serializer,
        number: Optional[int] = None,
        is_duplicate: DuplicatePredicate = is_duplicate_key_error,
        prefetch_count: int = DEFAULT_PREFETCH_COUNT,
        resubscribe_delay: float = 1.0,
    ) -> None:
        """
        Args:
            connection: Connection manager providing channels
            registry: Registry holding the queue declaration for ``subject``
            subject: Type of the consumed values
            handler: Callback invoked with each decoded value
            serializer: Decoder for message bodies
            number: Instance number when running parallel consumers of one type
            is_duplicate: Predicate for "already processed" handler failures
            prefetch_count: Maximum unacknowledged deliveries in flight
            resubscribe_delay: Seconds to wait before resubscribing

        Raises:
            DeclarationNotFoundError: If ``subject`` has no queue declaration
        """
        declaration = registry.resolve_queue(subject)

        self._connection = connection
        self._registry = registry
        self._subject = subject
        self._handler = handler
        self._serializer = serializer
        self._is_duplicate = is_duplicate
        self._prefetch_count = prefetch_count
        self._resubscribe_delay = resubscribe_delay
        self._consumer_tag = make_consumer_tag(
            declaration.consumer_scope.name, declaration.queue, number
        )
        self._channel: Optional[Channel] = None
        self._thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()

    @property
    def consumer_tag(self) -> str:
        return self._consumer_tag

    @property
    def subject(self) -> type[T]:
        return self._subject

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        logger.info("Consumer launched: for %s", self._subject.__name__)
        self._thread = threading.Thread(
            target=self._run,
            name=f"rmq-consumer-{self._consumer_tag}",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        declaration = self._registry.resolve_queue(self._subject)
        base = get_global_context() or LogContext()
        set_context(dataclasses.replace(
            base,
            custom=dict(base.custom),
            consumer_scope=declaration.consumer_scope.name,
            consumer_tag=self._consumer_tag,
            queue=declaration.queue,
            subject=self._subject.__name__,
        ))

        while not self._stopped.is_set():
            try:
                self._consume_once()
            except ConnectionClosedError:
                break
            except AMQPError as e:
                if self._stopped.is_set() or self._connection.closed:
                    break
                logger.warning("Consumer %s lost its channel: %s", self._consumer_tag, e)
            except Exception:
                logger.exception("Consumer %s stopped", self._consumer_tag)
                break
            else:
                if self._stopped.is_set() or self._connection.closed:
                    break
                logger.warning("Consumer %s was cancelled by the broker", self._consumer_tag)

            self._stopped.wait(self._resubscribe_delay)

        logger.info("Consumer %s exited", self._consumer_tag)

    def _consume_once(self) -> None:
        declaration = self._registry.resolve_queue(self._subject)
        channel = self._connection.channel()
        self._channel = channel

        channel.basic.qos(prefetch_count=self._prefetch_count)
        channel.basic.consume(
            callback=self._on_message,
            queue=declaration.queue,
            consumer_tag=self._consumer_tag,
            exclusive=False,
            no_ack=False,
            no_local=False,
        )
        logger.info("Consuming queue %s as %s", declaration.queue, self._consumer_tag)
        channel.start_consuming(auto_decode=False)

    def _on_message(self, message: Message) -> None:
        outcome = process_delivery(
            message.body,
            self._subject,
            self._handler,
            self._serializer,
            ack=lambda: message.ack(),
            is_duplicate=self._is_duplicate,
        )
        logger.debug("Delivery %s %s", message.delivery_tag, outcome.value)

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Stop consuming, close the channel and wait for the thread to exit."""
        logger.info("Shutting down consumer %s...", self._consumer_tag)
        self._stopped.set()

        channel = self._channel
        if channel is not None:
            try:
                if channel.is_open:
                    channel.stop_consuming()
            except Exception as e:
                logger.warning("Error stopping consumer %s: %s", self._consumer_tag, e)
            try:
                if channel.is_open:
                    channel.close()
            except Exception as e:
                logger.warning("Error closing channel of %s: %s", self._consumer_tag, e)

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
