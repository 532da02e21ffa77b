"""Synchronous publish/subscribe for session events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import suppress

from aiovoicerooms.models.types import SessionEvent, SessionEventType

logger = logging.getLogger(__name__)

# Callback invoked with the emitted event.
SessionEventHandler = Callable[[SessionEvent], None]


class EventEmitter:
    """
    Delivers session events to presentation handlers.

    All handlers registered for an event type run synchronously, in
    registration order, before emit() returns. A handler that raises is logged
    and skipped; the remaining handlers still run.
    """

    _handlers: dict[SessionEventType, list[SessionEventHandler]]
    """Registered handlers per event type."""

    def __init__(self) -> None:
        """Initialize an emitter without handlers."""
        self._handlers = {}

    def on(
        self, event_type: SessionEventType, handler: SessionEventHandler
    ) -> Callable[[], None]:
        """
        Register a handler for one event type.

        Returns a function to remove the handler.
        """
        self._handlers.setdefault(event_type, []).append(handler)

        def _remove() -> None:
            with suppress(ValueError):
                self._handlers[event_type].remove(handler)

        return _remove

    def emit(self, event_type: SessionEventType, event: SessionEvent) -> int:
        """
        Deliver ``event`` to all handlers of ``event_type``.

        Returns the number of handlers that failed.
        """
        failures = 0
        # Copy so handlers may unsubscribe while being called
        for handler in list(self._handlers.get(event_type, ())):
            try:
                handler(event)
            except Exception:
                failures += 1
                logger.exception("Error in %s handler %s", event_type.value, handler)
        return failures

    def handler_count(self, event_type: SessionEventType) -> int:
        """Number of handlers registered for ``event_type``."""
        return len(self._handlers.get(event_type, ()))
