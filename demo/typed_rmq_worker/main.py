"""Demo worker publishing and consuming typed messages.

Orders are published to a fanout exchange and consumed from a queue bound to
it. Each processed order produces an audit entry, sent through the default
exchange to a queue that is not bound to any exchange.

Run against a local broker:
    python -m demo.typed_rmq_worker.main publish --count 5
    python -m demo.typed_rmq_worker.main consume --consumers 2

Connection settings come from RABBITMQ_* environment variables or options.
"""

import signal
import threading
from typing import Annotated

import typer
from pydantic import BaseModel

from libs.python.cli.providers.logging import logging_params
from libs.python.cli.providers.rabbitmq import rmq_params
from libs.python.logging import get_logger
from libs.python.typed_rmq import (
    ConsumerScope,
    ExchangeDeclaration,
    ExchangeType,
    QueueDeclaration,
    RabbitMessaging,
    configure_rabbitmq,
    direct_queue_declaration,
)

SERVICE_NAME = "typed-rmq-worker"

app = typer.Typer()
logger = get_logger(__name__)


class OrderPlaced(BaseModel):
    order_id: int
    customer: str
    amount: float


class AuditEntry(BaseModel):
    order_id: int
    note: str


AUDIT_SCOPE = ConsumerScope("Audit")

ORDERS_EXCHANGE = ExchangeDeclaration(
    subject=OrderPlaced,
    name="orders",
    exchange_type=ExchangeType.FANOUT,
)

EXCHANGES = [ORDERS_EXCHANGE]

QUEUES = [
    QueueDeclaration(
        subject=OrderPlaced,
        queue="audit.orders",
        consumer_scope=AUDIT_SCOPE,
        exchange=ORDERS_EXCHANGE,
    ),
    direct_queue_declaration(AuditEntry, "audit.entries", AUDIT_SCOPE),
]


class AuditWorker:
    """Turns every placed order into an audit entry."""

    def __init__(self, messaging: RabbitMessaging):
        self._messaging = messaging

    def handle_order(self, order: OrderPlaced) -> None:
        logger.info("Order %s placed by %s", order.order_id, order.customer)
        self._messaging.publish(AuditEntry(
            order_id=order.order_id,
            note=f"{order.customer} paid {order.amount:.2f}",
        ))

    def handle_audit_entry(self, entry: AuditEntry) -> None:
        logger.info("Audit entry for order %s: %s", entry.order_id, entry.note)


def _connect(ctx: typer.Context) -> RabbitMessaging:
    rmq = ctx.obj["rabbitmq"]
    return configure_rabbitmq(EXCHANGES, QUEUES, uri=rmq.build_uri())


@app.callback()
@rmq_params
@logging_params
def callback(ctx: typer.Context):
    ctx.obj["logging"].apply(service_name=SERVICE_NAME)


@app.command()
def publish(
    ctx: typer.Context,
    count: Annotated[int, typer.Option(help="Number of orders to publish")] = 1,
    customer: Annotated[str, typer.Option(help="Customer placing the orders")] = "acme",
):
    """Publish placed orders."""
    with _connect(ctx) as messaging:
        for order_id in range(1, count + 1):
            messaging.publish(OrderPlaced(order_id=order_id, customer=customer, amount=order_id * 10.0))
        logger.info("Published %d orders", count)


@app.command()
def consume(
    ctx: typer.Context,
    consumers: Annotated[int, typer.Option(help="Parallel consumers of the orders queue")] = 1,
):
    """Consume orders and audit entries until interrupted."""
    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    with _connect(ctx) as messaging:
        worker = AuditWorker(messaging)
        for number in range(1, consumers + 1):
            messaging.consume(OrderPlaced, worker.handle_order, number=number if consumers > 1 else None)
        messaging.consume(AuditEntry, worker.handle_audit_entry)

        logger.info("Worker started with %d order consumers", consumers)
        try:
            stop.wait()
        except KeyboardInterrupt:
            logger.info("Interrupted")


if __name__ == "__main__":
    app()
