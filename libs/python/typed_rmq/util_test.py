"""Tests for naming helpers."""

from libs.python.typed_rmq.util import build_queue_arguments, make_consumer_tag


class TestMakeConsumerTag:

    def test_lowercases_scope_and_replaces_dots(self):
        assert make_consumer_tag("Billing", "billing.invoices") == "billing-billing-invoices-consumer"

    def test_numbered_instances_differ_only_by_suffix(self):
        first = make_consumer_tag("Billing", "q1", 1)
        second = make_consumer_tag("Billing", "q1", 2)

        assert first == "billing-q1-consumer-1"
        assert second == "billing-q1-consumer-2"
        assert first[:-1] == second[:-1]

    def test_zero_is_a_valid_number(self):
        assert make_consumer_tag("s", "q", 0) == "s-q-consumer-0"


class TestBuildQueueArguments:

    def test_non_exclusive_queue_is_quorum(self):
        assert build_queue_arguments("q1", {}, exclusive=False) == {"x-queue-type": "quorum"}

    def test_caller_arguments_are_merged(self):
        arguments = build_queue_arguments("q1", {"x-delivery-limit": 5}, exclusive=False)
        assert arguments == {"x-delivery-limit": 5, "x-queue-type": "quorum"}

    def test_caller_cannot_override_queue_type(self, caplog):
        arguments = build_queue_arguments("q1", {"x-queue-type": "classic"}, exclusive=False)

        assert arguments["x-queue-type"] == "quorum"
        assert "Ignoring x-queue-type='classic'" in caplog.text

    def test_exclusive_queue_keeps_arguments_untouched(self):
        source = {"x-message-ttl": 1000}
        arguments = build_queue_arguments("q1", source, exclusive=True)

        assert arguments == {"x-message-ttl": 1000}
        assert arguments is not source
