"""
Tests for the Event System (Observer Pattern)
"""

import logging
from datetime import datetime
from unittest.mock import Mock

from wallet_ledger.events import DomainEvent, EventPayload, EventDispatcher, EventLogger


def make_event(event_type=DomainEvent.TRANSFER_COMPLETED):
    return EventPayload(
        event_type=event_type,
        entity_type="transfer",
        entity_id="t-123",
        data={"amount": "100.00"}
    )


class TestEventPayload:
    """Test EventPayload creation and serialization"""

    def test_event_payload_creation(self):
        event = make_event()

        assert event.event_type == DomainEvent.TRANSFER_COMPLETED
        assert event.entity_id == "t-123"
        assert isinstance(event.timestamp, datetime)
        assert event.timestamp.tzinfo is not None
        assert len(event.event_id) > 0

    def test_event_payload_serialization(self):
        event = make_event()

        data = event.to_dict()
        assert data["event_type"] == "transfer.completed"

        restored = EventPayload.from_dict(data)
        assert restored == event


class TestEventDispatcher:
    """Test publish/subscribe"""

    def setup_method(self):
        self.dispatcher = EventDispatcher()

    def test_subscribe_and_publish(self):
        handler = Mock()
        self.dispatcher.subscribe(DomainEvent.TRANSFER_COMPLETED, handler)

        event = make_event()
        self.dispatcher.publish(event)
        self.dispatcher.publish(make_event(DomainEvent.ACCOUNT_REGISTERED))

        handler.assert_called_once_with(event)

    def test_global_handler_receives_all_events(self):
        handler = Mock()
        self.dispatcher.subscribe_all(handler)

        self.dispatcher.publish(make_event())
        self.dispatcher.publish(make_event(DomainEvent.BALANCE_CHANGED))

        assert handler.call_count == 2

    def test_unsubscribe(self):
        handler = Mock()
        self.dispatcher.subscribe(DomainEvent.TRANSFER_COMPLETED, handler)
        self.dispatcher.unsubscribe(DomainEvent.TRANSFER_COMPLETED, handler)

        self.dispatcher.publish(make_event())

        handler.assert_not_called()
        # Unknown handler only logs
        self.dispatcher.unsubscribe(DomainEvent.TRANSFER_COMPLETED, handler)

    def test_handler_exceptions_dont_break_publisher(self):
        failing = Mock(side_effect=RuntimeError("boom"))
        working = Mock()
        self.dispatcher.subscribe(DomainEvent.TRANSFER_COMPLETED, failing)
        self.dispatcher.subscribe(DomainEvent.TRANSFER_COMPLETED, working)

        self.dispatcher.publish(make_event())

        working.assert_called_once()

    def test_handler_counts_and_clear(self):
        self.dispatcher.subscribe(DomainEvent.TRANSFER_COMPLETED, Mock())
        self.dispatcher.subscribe(DomainEvent.BALANCE_CHANGED, Mock())
        self.dispatcher.subscribe_all(Mock())

        assert self.dispatcher.get_handler_count(DomainEvent.TRANSFER_COMPLETED) == 1
        assert self.dispatcher.get_handler_count() == 3

        self.dispatcher.clear()
        assert self.dispatcher.get_handler_count() == 0

    def test_unsubscribe_all(self):
        handler = Mock()
        self.dispatcher.subscribe_all(handler)
        self.dispatcher.unsubscribe_all(handler)

        self.dispatcher.publish(make_event())

        handler.assert_not_called()
        assert self.dispatcher.get_handler_count() == 0


class TestEventLogger:
    """Test the structured-log subscriber"""

    def setup_method(self):
        self.dispatcher = EventDispatcher()
        self.event_logger = EventLogger(self.dispatcher, logger_name="wallet_ledger.test_events")

    def test_logs_every_event(self, caplog):
        self.event_logger.start()
        self.event_logger.start()

        with caplog.at_level(logging.INFO, logger="wallet_ledger.test_events"):
            self.dispatcher.publish(make_event())
            self.dispatcher.publish(make_event(DomainEvent.BALANCE_CHANGED))

        records = [r for r in caplog.records if r.name == "wallet_ledger.test_events"]
        assert [r.action for r in records] == ["transfer.completed", "balance.changed"]
        assert records[0].resource == "transfer:t-123"
        assert records[0].extra["data"] == {"amount": "100.00"}

    def test_stop_detaches(self, caplog):
        self.event_logger.start()
        self.event_logger.stop()

        with caplog.at_level(logging.INFO, logger="wallet_ledger.test_events"):
            self.dispatcher.publish(make_event())

        assert self.dispatcher.get_handler_count() == 0
        assert not [r for r in caplog.records if r.name == "wallet_ledger.test_events"]
