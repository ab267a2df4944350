"""Tests for the typed publisher."""

import unittest
from dataclasses import dataclass
from unittest.mock import Mock

from amqpstorm.exception import AMQPChannelError, AMQPConnectionError

from libs.python.typed_rmq.config import ConsumerScope, InternalQueueDeclaration
from libs.python.typed_rmq.exceptions import DeclarationNotFoundError
from libs.python.typed_rmq.publisher import DEFAULT_PROPERTIES, TypedPublisher
from libs.python.typed_rmq.registry import TopologyRegistry
from libs.python.typed_rmq.serialization import JsonSerializer


@dataclass
class OrderPlaced:
    order_id: int


@dataclass
class InvoiceIssued:
    invoice_id: int


@dataclass
class Unknown:
    value: int


def _registry() -> TopologyRegistry:
    registry = TopologyRegistry()
    registry.replace_exchanges({
        OrderPlaced: "events.fanout",
        InvoiceIssued: "invoices.direct",
    })
    registry.replace_queues({
        OrderPlaced: InternalQueueDeclaration(
            queue="q1",
            consumer_scope=ConsumerScope("billing"),
            routing_key="q1",
            exchange="events.fanout",
        ),
        InvoiceIssued: InternalQueueDeclaration(
            queue="billing.invoices",
            consumer_scope=ConsumerScope("billing"),
            routing_key="invoice.issued",
            exchange="invoices.direct",
        ),
    })
    return registry


def _channel(is_open: bool = True) -> Mock:
    channel = Mock()
    channel.is_open = is_open
    return channel


class TestTypedPublisher(unittest.TestCase):

    def test_publish_routes_by_queue_declaration_of_type(self):
        channel = _channel()
        publisher = TypedPublisher(Mock(return_value=channel), _registry(), JsonSerializer())

        publisher.publish(OrderPlaced(order_id=1))
        publisher.publish(InvoiceIssued(invoice_id=2))

        first, second = channel.basic.publish.call_args_list
        self.assertEqual(first.kwargs["exchange"], "events.fanout")
        self.assertEqual(first.kwargs["routing_key"], "q1")
        self.assertEqual(first.kwargs["body"], b'{"order_id":1}')
        self.assertEqual(first.kwargs["properties"], DEFAULT_PROPERTIES)
        self.assertEqual(second.kwargs["exchange"], "invoices.direct")
        self.assertEqual(second.kwargs["routing_key"], "invoice.issued")

    def test_explicit_routing_key_resolves_only_the_exchange(self):
        registry = _registry()
        registry.replace_queues({})
        channel = _channel()
        publisher = TypedPublisher(Mock(return_value=channel), registry, JsonSerializer())

        publisher.publish(InvoiceIssued(invoice_id=2), routing_key="invoice.corrected")

        channel.basic.publish.assert_called_once()
        kwargs = channel.basic.publish.call_args.kwargs
        self.assertEqual(kwargs["exchange"], "invoices.direct")
        self.assertEqual(kwargs["routing_key"], "invoice.corrected")

    def test_caller_properties_are_passed_through(self):
        channel = _channel()
        publisher = TypedPublisher(Mock(return_value=channel), _registry(), JsonSerializer())

        publisher.publish(OrderPlaced(order_id=1), properties={"headers": {"tenant": "acme"}})

        self.assertEqual(
            channel.basic.publish.call_args.kwargs["properties"],
            {"headers": {"tenant": "acme"}},
        )

    def test_undeclared_type_fails_before_any_network_call(self):
        channel_factory = Mock()
        publisher = TypedPublisher(channel_factory, _registry(), JsonSerializer())

        with self.assertRaisesRegex(DeclarationNotFoundError, "declaration for class .*Unknown is not found"):
            publisher.publish(Unknown(value=1))
        with self.assertRaises(DeclarationNotFoundError):
            publisher.publish(Unknown(value=1), routing_key="anything")

        channel_factory.assert_not_called()

    def test_publish_failure_is_logged_and_swallowed(self):
        channel = _channel()
        channel.basic.publish.side_effect = AMQPChannelError("NOT_FOUND - no exchange 'events.fanout'")
        publisher = TypedPublisher(Mock(return_value=channel), _registry(), JsonSerializer())

        with self.assertLogs("libs.python.typed_rmq.publisher", level="ERROR") as logs:
            publisher.publish(OrderPlaced(order_id=1))

        self.assertIn("Error publishing message", logs.output[0])

    def test_failed_channel_is_discarded(self):
        broken = _channel()
        broken.basic.publish.side_effect = AMQPConnectionError("connection lost")
        healthy = _channel()
        channel_factory = Mock(side_effect=[broken, healthy])
        publisher = TypedPublisher(channel_factory, _registry(), JsonSerializer())

        publisher.publish(OrderPlaced(order_id=1))
        publisher.publish(OrderPlaced(order_id=2))

        broken.close.assert_called_once()
        healthy.basic.publish.assert_called_once()
        self.assertEqual(channel_factory.call_count, 2)

    def test_closed_channel_is_recreated(self):
        closed = _channel(is_open=False)
        healthy = _channel()
        channel_factory = Mock(side_effect=[closed, healthy])
        publisher = TypedPublisher(channel_factory, _registry(), JsonSerializer())
        publisher._channel = channel_factory()

        publisher.publish(OrderPlaced(order_id=1))

        closed.basic.publish.assert_not_called()
        healthy.basic.publish.assert_called_once()

    def test_channel_is_reused_between_publishes(self):
        channel = _channel()
        channel_factory = Mock(return_value=channel)
        publisher = TypedPublisher(channel_factory, _registry(), JsonSerializer())

        publisher.publish(OrderPlaced(order_id=1))
        publisher.publish(OrderPlaced(order_id=2))

        channel_factory.assert_called_once()
        self.assertEqual(channel.basic.publish.call_count, 2)

    def test_shutdown_closes_channel(self):
        channel = _channel()
        publisher = TypedPublisher(Mock(return_value=channel), _registry(), JsonSerializer())
        publisher.publish(OrderPlaced(order_id=1))

        publisher.shutdown()

        channel.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
