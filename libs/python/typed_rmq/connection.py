"""
RabbitMQ connection management with automatic recovery.

The manager owns the single broker connection of a messaging context. It
opens it lazily, never gives up on the initial connection, and when a channel
is requested on a dead connection it reconnects and lets recovery listeners
re-declare topology before any channel is handed out again.
"""

import dataclasses
import enum
import logging
import ssl
import threading
import time
from typing import Callable, Optional, Protocol
from urllib.parse import urlparse

import amqpstorm
from amqpstorm import Channel, Connection
from amqpstorm.exception import AMQPConnectionError

from libs.python.retry import RetryConfig, is_transient_rmq_error, retry
from libs.python.typed_rmq.exceptions import ConnectionClosedError

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], Connection]


class ConnectionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECOVERING = "recovering"
    CLOSED = "closed"


class RecoveryListener(Protocol):
    """Receives recovery signals from a :class:`ConnectionManager`."""

    def handle_recovery_started(self, manager: "ConnectionManager") -> None:
        """Called when a dead connection is detected, before reconnecting."""

    def handle_topology_recovery_started(self, connection: Connection) -> None:
        """Called on the fresh connection before any channel is handed out."""

    def handle_recovery(self, connection: Connection) -> None:
        """Called once recovery has completed."""


def default_retry_config() -> RetryConfig:
    """Retry forever on transient broker errors, backing off up to 30s."""
    return RetryConfig(
        max_attempts=None,
        initial_delay=1.0,
        max_delay=30.0,
        exponential_base=2.0,
        exception_filter=is_transient_rmq_error,
    )


def get_rabbitmq_ssl_options(hostname: Optional[str]) -> dict:
    """
    Create SSL options for a RabbitMQ connection.

    Args:
        hostname: Server hostname for SSL certificate verification

    Returns:
        Dictionary with SSL context and server hostname

    Raises:
        RuntimeError: If hostname is empty or None
    """
    if hostname is None or len(hostname) == 0:
        raise RuntimeError(
            "SSL is enabled but no hostname provided. "
            "Please set RABBITMQ_SSL_HOSTNAME"
        )
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.load_default_certs(purpose=ssl.Purpose.SERVER_AUTH)
    return {
        "context": context,
        "server_hostname": hostname,
    }


def create_connection_factory(uri: str, ssl_hostname: Optional[str] = None) -> ConnectionFactory:
    """
    Build a factory opening a new connection to ``uri`` on every call.

    For ``amqps`` URIs a fresh SSL context is created per connection so that
    forked workers never share one.

    Args:
        uri: AMQP URI including credentials and vhost
        ssl_hostname: Hostname to verify (defaults to the URI host)

    Returns:
        Zero-argument callable returning an open connection
    """
    use_ssl = urlparse(uri).scheme == "amqps"

    def open_connection() -> Connection:
        ssl_options = None
        if use_ssl:
            ssl_options = get_rabbitmq_ssl_options(ssl_hostname or urlparse(uri).hostname)
        return amqpstorm.UriConnection(uri, ssl_options=ssl_options)

    return open_connection


def _close_quietly(connection: Connection) -> None:
    try:
        connection.close()
    except Exception as e:
        logger.debug("Ignoring error while closing connection: %s", e)


class ConnectionManager:
    """
    Owner of the broker connection.

    States move ``UNINITIALIZED -> CONNECTING -> CONNECTED`` and, whenever a
    dead connection is found, ``CONNECTED -> RECOVERING -> CONNECTED``.
    Recovery runs with the manager lock held, so :meth:`channel` only returns
    once listeners have finished re-declaring topology. A recovery that fails
    on a non-transient error leaves the manager ``RECOVERING`` and the next
    channel request runs it again.

    Only transient broker errors are retried. :meth:`shutdown` interrupts any
    connect or recovery pass in progress.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Args:
            connection_factory: Callable returning a new open connection. Called
                for the initial connection and for every recovery.
            retry_config: Backoff for connection attempts. Defaults to retrying
                transient errors forever.
        """
        self._connection_factory = connection_factory
        self._retry_config = self._interruptible(retry_config or default_retry_config())
        self._connection: Optional[Connection] = None
        # Connection opened by a recovery pass, not yet handed out
        self._pending: Optional[Connection] = None
        self._state = ConnectionState.UNINITIALIZED
        # Serializes connect and recovery, held across broker I/O
        self._lock = threading.RLock()
        # Guards the connection swap, never held across broker I/O
        self._state_lock = threading.Lock()
        self._closed = threading.Event()
        self._listeners: list[RecoveryListener] = []

    def _interruptible(self, config: RetryConfig) -> RetryConfig:
        caller_filter = config.exception_filter

        def should_retry(exception: Exception) -> bool:
            if isinstance(exception, ConnectionClosedError) or not is_transient_rmq_error(exception):
                return False
            return caller_filter is None or caller_filter(exception)

        sleep = config.sleep
        if sleep is time.sleep:
            sleep = self._wait_unless_closed
        return dataclasses.replace(config, exception_filter=should_retry, sleep=sleep)

    def _wait_unless_closed(self, delay: float) -> None:
        if self._closed.wait(delay):
            raise ConnectionClosedError("RabbitMQ connection has been shut down")

    def _ensure_not_closed(self) -> None:
        if self._closed.is_set():
            raise ConnectionClosedError("RabbitMQ connection has been shut down")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def is_open(self) -> bool:
        connection = self._connection
        return connection is not None and connection.is_open

    def add_recovery_listener(self, listener: RecoveryListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_recovery_listener(self, listener: RecoveryListener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def connect(self) -> Connection:
        """
        Return the open connection, connecting or recovering when needed.

        Raises:
            ConnectionClosedError: If the manager was shut down
        """
        with self._lock:
            self._ensure_not_closed()

            if self._state in (ConnectionState.UNINITIALIZED, ConnectionState.CONNECTING):
                self._state = ConnectionState.CONNECTING
                logger.info("Connecting to RabbitMQ")
                connection = retry(self._retry_config)(self._open_connection)()
                self._install(connection)
                logger.info("RabbitMQ connection established")
                return connection

            connection = self._connection
            if connection is None or not connection.is_open:
                connection = self._recover()
            return connection

    def channel(self) -> Channel:
        """
        Create a new channel on the current connection.

        Blocks while a recovery is in progress.
        """
        with self._lock:
            connection = self.connect()
            try:
                return connection.channel()
            except AMQPConnectionError as e:
                self._ensure_not_closed()
                logger.warning("Channel creation failed with %s, recovering connection", e)
                return self._recover().channel()

    def recover(self) -> None:
        """Force a recovery pass, e.g. after an externally detected outage."""
        with self._lock:
            self._ensure_not_closed()
            self._recover()

    def _open_connection(self) -> Connection:
        self._ensure_not_closed()
        return self._connection_factory()

    def _install(self, connection: Connection) -> None:
        with self._state_lock:
            if not self._closed.is_set():
                self._connection, self._pending = connection, None
                self._state = ConnectionState.CONNECTED
                return
        _close_quietly(connection)
        raise ConnectionClosedError("RabbitMQ connection has been shut down")

    def _recover(self) -> Connection:
        with self._state_lock:
            self._ensure_not_closed()
            self._state = ConnectionState.RECOVERING
            stale, self._connection = self._connection, None
        logger.warning("RabbitMQ connection lost, starting recovery")
        if stale is not None:
            _close_quietly(stale)

        for listener in list(self._listeners):
            listener.handle_recovery_started(self)

        def reconnect_and_redeclare() -> Connection:
            connection = self._open_connection()
            with self._state_lock:
                self._pending = connection
            try:
                self._ensure_not_closed()
                for listener in list(self._listeners):
                    listener.handle_topology_recovery_started(connection)
            except Exception:
                with self._state_lock:
                    if self._pending is connection:
                        self._pending = None
                _close_quietly(connection)
                raise
            return connection

        try:
            connection = retry(self._retry_config)(reconnect_and_redeclare)()
        except ConnectionClosedError:
            raise
        except Exception as e:
            logger.error("RabbitMQ recovery failed, retrying on the next channel request: %s", e)
            raise

        self._install(connection)
        logger.info("RabbitMQ connection recovered")

        for listener in list(self._listeners):
            listener.handle_recovery(connection)
        return connection

    def shutdown(self) -> None:
        """
        Abort the connection and all its channels.

        Does not wait for a connect or recovery pass in progress: the pass is
        interrupted and raises ``ConnectionClosedError`` in its own thread.
        Best effort: errors raised while closing are discarded.

        amqpstorm's ``Connection.close()`` sends ``Connection.Close`` with reply
        code 0 rather than 200. The broker still records a client initiated
        close.
        """
        logger.info("Shutdown RabbitMQ connection")
        self._closed.set()
        with self._state_lock:
            self._state = ConnectionState.CLOSED
            connection, self._connection = self._connection, None
            pending, self._pending = self._pending, None
        for opened in (connection, pending):
            if opened is not None:
                _close_quietly(opened)

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False
