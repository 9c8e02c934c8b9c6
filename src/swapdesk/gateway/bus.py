"""Typed publish/subscribe bus owned by the swap client."""

from __future__ import annotations

from collections.abc import Callable

from swapdesk.domain.events import SwapEvent

Handler = Callable[[SwapEvent], None]


class EventBus:
    """Synchronous fan-out in subscription order; handlers are enumerable."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that removes it again."""
        self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(event_type, None)

        return unsubscribe

    def publish(self, event: SwapEvent) -> int:
        """Deliver ``event`` to every handler of its type; returns the delivery count."""
        handlers = list(self._handlers.get(event.type, ()))
        for handler in handlers:
            handler(event)
        return len(handlers)

    def subscribers(self, event_type: str | None = None) -> dict[str, int]:
        if event_type is not None:
            return {event_type: len(self._handlers.get(event_type, ()))}
        return {key: len(value) for key, value in self._handlers.items()}
