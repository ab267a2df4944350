"""Shared fixtures for typed_rmq tests."""

from dataclasses import dataclass
from unittest.mock import Mock

import pytest

from libs.python.typed_rmq.config import (
    ConsumerScope,
    ExchangeDeclaration,
    ExchangeType,
    QueueDeclaration,
)


@dataclass
class OrderPlaced:
    order_id: int
    customer: str


@dataclass
class InvoiceIssued:
    invoice_id: str
    amount: float


@pytest.fixture
def scope():
    return ConsumerScope(name="Billing")


@pytest.fixture
def order_type():
    return OrderPlaced


@pytest.fixture
def invoice_type():
    return InvoiceIssued


@pytest.fixture
def events_exchange():
    return ExchangeDeclaration(subject=OrderPlaced, name="events", exchange_type=ExchangeType.FANOUT)


@pytest.fixture
def invoices_exchange():
    return ExchangeDeclaration(subject=InvoiceIssued, name="invoices", exchange_type=ExchangeType.DIRECT)


@pytest.fixture
def orders_queue(scope, events_exchange):
    return QueueDeclaration(
        subject=OrderPlaced,
        queue="q1",
        consumer_scope=scope,
        exchange=events_exchange,
    )


@pytest.fixture
def invoices_queue(scope, invoices_exchange):
    return QueueDeclaration(
        subject=InvoiceIssued,
        queue="billing.invoices",
        consumer_scope=scope,
        exchange=invoices_exchange,
        routing_key="invoice.issued",
    )


@pytest.fixture
def channel():
    channel = Mock()
    channel.is_open = True
    return channel
