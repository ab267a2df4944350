"""Exchange declaration on a broker channel."""

import logging
from typing import Iterable

from amqpstorm import Channel

from libs.python.typed_rmq.config import ExchangeDeclaration
from libs.python.typed_rmq.exceptions import DuplicateDeclarationError
from libs.python.typed_rmq.registry import TopologyRegistry

logger = logging.getLogger(__name__)


def declare_exchanges(
    channel: Channel,
    declarations: Iterable[ExchangeDeclaration],
    registry: TopologyRegistry,
) -> None:
    """
    Declare durable exchanges and rebuild the exchange registry.

    Redeclaring an identical exchange is a no-op on the broker. Declaring an
    existing name with different parameters fails the channel and the error
    propagates to the caller.

    Args:
        channel: Open channel to declare on
        declarations: Exchange declarations
        registry: Registry receiving the type to wire name entries

    Raises:
        DuplicateDeclarationError: If a subject type is declared twice
    """
    declarations = list(declarations)
    exchanges: dict[type, str] = {}
    for declaration in declarations:
        if declaration.subject in exchanges:
            raise DuplicateDeclarationError("exchange", declaration.subject)
        exchanges[declaration.subject] = declaration.wire_name

    for declaration in declarations:
        channel.exchange.declare(
            exchange=declaration.wire_name,
            exchange_type=str(declaration.exchange_type),
            durable=True,
        )
        logger.info(
            "Exchange declared: %s for %s",
            declaration.wire_name,
            declaration.subject.__name__,
        )

    registry.replace_exchanges(exchanges)
