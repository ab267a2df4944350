"""
Topology registry.

Maps subject types to the exchange wire name and the resolved queue record
that publish and consume calls use instead of explicit exchange, queue and
routing key arguments.
"""

import logging
import threading
from types import MappingProxyType
from typing import Mapping

from libs.python.typed_rmq.config import InternalQueueDeclaration
from libs.python.typed_rmq.exceptions import DeclarationNotFoundError

logger = logging.getLogger(__name__)


class TopologyRegistry:
    """
    Thread-safe type to topology lookup.

    Both mappings are swapped wholesale by each declaration pass, so entries
    from a previous pass never linger after a recovery. Lookups for a type
    that was never declared raise :class:`DeclarationNotFoundError`.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._exchanges: Mapping[type, str] = MappingProxyType({})
        self._queues: Mapping[type, InternalQueueDeclaration] = MappingProxyType({})

    def register_exchange(self, subject: type, wire_name: str) -> None:
        with self._lock:
            exchanges = dict(self._exchanges)
            exchanges[subject] = wire_name
            self._exchanges = MappingProxyType(exchanges)

    def register_queue(self, subject: type, declaration: InternalQueueDeclaration) -> None:
        with self._lock:
            queues = dict(self._queues)
            queues[subject] = declaration
            self._queues = MappingProxyType(queues)

    def replace_exchanges(self, exchanges: Mapping[type, str]) -> None:
        """Replace every exchange entry with ``exchanges``."""
        with self._lock:
            self._exchanges = MappingProxyType(dict(exchanges))
        logger.debug("Exchange registry rebuilt with %d entries", len(exchanges))

    def replace_queues(self, queues: Mapping[type, InternalQueueDeclaration]) -> None:
        """Replace every queue entry with ``queues``."""
        with self._lock:
            self._queues = MappingProxyType(dict(queues))
        logger.debug("Queue registry rebuilt with %d entries", len(queues))

    def resolve_exchange(self, subject: type) -> str:
        with self._lock:
            try:
                return self._exchanges[subject]
            except KeyError:
                raise DeclarationNotFoundError("exchange", subject) from None

    def resolve_queue(self, subject: type) -> InternalQueueDeclaration:
        with self._lock:
            try:
                return self._queues[subject]
            except KeyError:
                raise DeclarationNotFoundError("queue", subject) from None

    @property
    def exchanges(self) -> Mapping[type, str]:
        """Read-only snapshot of the exchange entries."""
        with self._lock:
            return self._exchanges

    @property
    def queues(self) -> Mapping[type, InternalQueueDeclaration]:
        """Read-only snapshot of the queue entries."""
        with self._lock:
            return self._queues
