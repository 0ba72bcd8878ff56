"""Domain bus interfaces for in-process event handling."""

from __future__ import annotations

from typing import Any, Dict, Generic, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> None: ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def publish_serialized(self, event_type: str, payload: Dict[str, Any]) -> bool: ...
