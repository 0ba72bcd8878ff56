"""In-memory event bus implementation."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Type
from uuid import UUID

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    Event classes are registered by name on ``subscribe`` so that events
    read back from the outbox (where only the name and a JSON payload are
    stored) can be rebuilt and dispatched.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}
        self._event_types: Dict[str, Type[DomainEvent]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        self._event_types[event_class.__name__] = event_class
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(type(event), []):
            handler.handle(event)

    def publish_serialized(self, event_type: str, payload: Dict[str, Any]) -> bool:
        """Rebuild an event from its outbox payload and publish it.

        Returns ``False`` when ``event_type`` is not a registered event class.
        """
        event_class = self._event_types.get(event_type)
        if event_class is None:
            logger.warning("event_bus.unknown_event_type", event_type=event_type)
            return False

        event = event_class(
            aggregate_id=UUID(payload["aggregate_id"]),
            event_id=UUID(payload["event_id"]),
            occurred_on=datetime.fromisoformat(payload["occurred_on"]),
        )
        self.publish(event)
        return True


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
