"""Ordered event fan-out.

Listeners are called in registration order with a context dict. A listener's
return value is ignored, so no listener can stop the others.

Usage:
    emitter.on("save, delete", lambda context: print(context["error"]))
    emitter.emit("save", {"error": None})
"""

from __future__ import annotations

from typing import Any

from restrecord.core.types import Listener


class EventEmitter:
    """Registry of listeners keyed by event name."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def default_event_context(self) -> dict[str, Any]:
        """Context merged under every emitted event's own context."""
        return {"target": self}

    def on(self, event: str, listener: Listener) -> None:
        """Register a listener.

        Args:
            event: Event name, or several names separated by commas.
            listener: Callable receiving the event context.
        """
        for name in (part.strip() for part in event.split(",")):
            if name:
                self._listeners.setdefault(name, []).append(listener)

    def off(self, event: str, listener: Listener | None = None) -> None:
        """Remove one listener, or every listener of an event if none given."""
        if listener is None:
            self._listeners.pop(event, None)
            return
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, context: dict[str, Any] | None = None) -> None:
        """Call every listener of an event.

        Args:
            event: Event name.
            context: Event payload; keys override the default context.
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return
        payload = {**self.default_event_context(), **(context or {})}
        for listener in list(listeners):
            listener(payload)
