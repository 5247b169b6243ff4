"""
Event System Module

In-process domain event dispatcher using the Observer pattern. Handlers are
called synchronously by the publisher; a failing handler is logged and never
affects the operation that published the event.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
from threading import RLock

from .logging_config import get_logger, log_action


class DomainEvent(Enum):
    """Domain events that can occur in the wallet ledger"""

    TRANSFER_COMPLETED = "transfer.completed"
    ACCOUNT_REGISTERED = "account.registered"
    BALANCE_CHANGED = "balance.changed"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=DomainEvent(data['event_type']),
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            data=data['data'],
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


class EventDispatcher:
    """Central event dispatcher, publish/subscribe"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []
        self._lock = RLock()
        self.logger = get_logger("wallet_ledger.events")

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
            except ValueError:
                self.logger.warning(f"Handler {_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Unsubscribe a global handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing {event.event_type.value} for {event.entity_type}:{event.entity_id}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(
                    f"Error in event handler {_name(handler)} for {event.event_type.value}: {e}",
                    exc_info=True
                )

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            return sum(len(h) for h in self._handlers.values()) + len(self._global_handlers)


def _name(handler: Callable) -> str:
    return getattr(handler, '__name__', repr(handler))


class EventLogger:
    """
    Writes every published domain event to the structured log

    Attached for the lifetime of the running application so that
    transfer.completed, balance.changed and account.registered leave a
    JSON log line with the event data.
    """

    def __init__(self, event_dispatcher: EventDispatcher, logger_name: str = "wallet_ledger.events.log"):
        self.event_dispatcher = event_dispatcher
        self.logger = get_logger(logger_name)
        self.running = False
        self._lock = RLock()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self.event_dispatcher.subscribe_all(self._on_event)
            self.running = True

    def stop(self) -> None:
        with self._lock:
            if not self.running:
                return
            self.event_dispatcher.unsubscribe_all(self._on_event)
            self.running = False

    def _on_event(self, event: EventPayload) -> None:
        log_action(
            self.logger, "info", f"Event {event.event_type.value}",
            action=event.event_type.value,
            resource=f"{event.entity_type}:{event.entity_id}",
            extra={"event_id": event.event_id, "data": event.data}
        )
