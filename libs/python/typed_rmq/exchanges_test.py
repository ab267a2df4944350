"""Tests for exchange declaration."""

from unittest.mock import call

import pytest

from libs.python.typed_rmq.config import ExchangeDeclaration, ExchangeType
from libs.python.typed_rmq.exceptions import DuplicateDeclarationError
from libs.python.typed_rmq.exchanges import declare_exchanges
from libs.python.typed_rmq.registry import TopologyRegistry


def test_declares_durable_exchanges_by_wire_name(channel, events_exchange, invoices_exchange):
    registry = TopologyRegistry()

    declare_exchanges(channel, [events_exchange, invoices_exchange], registry)

    assert channel.exchange.declare.call_args_list == [
        call(exchange="events.fanout", exchange_type="fanout", durable=True),
        call(exchange="invoices.direct", exchange_type="direct", durable=True),
    ]


def test_populates_registry(channel, events_exchange, invoices_exchange, order_type, invoice_type):
    registry = TopologyRegistry()

    declare_exchanges(channel, [events_exchange, invoices_exchange], registry)

    assert registry.resolve_exchange(order_type) == "events.fanout"
    assert registry.resolve_exchange(invoice_type) == "invoices.direct"


def test_duplicate_subject_is_rejected_before_declaring(channel, events_exchange, order_type):
    other = ExchangeDeclaration(subject=order_type, name="other", exchange_type=ExchangeType.TOPIC)

    with pytest.raises(DuplicateDeclarationError):
        declare_exchanges(channel, [events_exchange, other], TopologyRegistry())

    channel.exchange.declare.assert_not_called()


def test_broker_errors_propagate(channel, events_exchange):
    from amqpstorm.exception import AMQPChannelError

    channel.exchange.declare.side_effect = AMQPChannelError("PRECONDITION_FAILED - inequivalent arg 'type'")
    registry = TopologyRegistry()

    with pytest.raises(AMQPChannelError):
        declare_exchanges(channel, [events_exchange], registry)

    assert dict(registry.exchanges) == {}
