"""Named-event delivery from the core to the application layer."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from pydantic import BaseModel

from harbormaster.infrastructure.logger import logger

EventHandler = Callable[[str, Any], Awaitable[None] | None]


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event: str, payload: Any) -> Awaitable[None] | None: ...


def to_payload(payload: Any) -> Any:
    """Serialize models to camelCase JSON-compatible data."""
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(payload, list):
        return [to_payload(p) for p in payload]
    return payload


async def emit_to(sink: EventSink, event: str, payload: Any) -> None:
    """Emit on a sink that may be sync or async."""
    result = sink.emit(event, payload)
    if asyncio.iscoroutine(result):
        await result


class EventBus:
    """In-process event fan-out. A failing handler never blocks the others."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register handler for event. Returns a function that unsubscribes it."""
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    async def emit(self, event: str, payload: Any = None) -> None:
        data = to_payload(payload)
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(event, data)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Event handler failed", event_name=event)
