"""Typed event listeners and dispatch.

A listener declares which events it handles through ``can_process``; the
typed listener classes answer True for exactly one EventData variant. Every
matching listener receives the event, in registration order.
"""

import logging
import threading
from typing import Callable

from .events import (
    Event,
    EventData,
    ExperienceExecute,
    Meter,
    NonSite,
    ShowLogin,
    ShowTemplate,
    UserSegment,
)

logger = logging.getLogger(__name__)


class EventTypeListener:
    """Generic event listener.

    Subclass and override ``on_executed``, or pass a callable. The default
    ``can_process`` declines every event.
    """

    def __init__(self, callback: Callable[[Event], None] | None = None):
        self._callback = callback

    def can_process(self, event: Event) -> bool:
        return False

    def on_executed(self, event: Event) -> None:
        if self._callback is None:
            raise NotImplementedError(f"{type(self).__name__} has no handler")
        self._callback(event)


class _VariantListener(EventTypeListener):
    event_type: type[EventData] = EventData

    def can_process(self, event: Event) -> bool:
        return isinstance(event.event_data, self.event_type)


class ExperienceExecuteListener(_VariantListener):
    event_type = ExperienceExecute


class MeterListener(_VariantListener):
    event_type = Meter


class NonSiteListener(_VariantListener):
    event_type = NonSite


class UserSegmentListener(_VariantListener):
    event_type = UserSegment


class ShowTemplateListener(_VariantListener):
    event_type = ShowTemplate


class ShowLoginListener(_VariantListener):
    event_type = ShowLogin


class EventDispatchError(Exception):
    """One or more listeners failed while handling an event.

    Attributes:
        event: The event being dispatched
        failures: (listener, exception) pairs in dispatch order
    """

    def __init__(self, event: Event, failures: list[tuple[EventTypeListener, Exception]]):
        names = ", ".join(type(listener).__name__ for listener, _ in failures)
        super().__init__(f"{len(failures)} listener(s) failed: {names}")
        self.event = event
        self.failures = failures


class EventDispatcher:
    """Delivers events to registered listeners.

    A failing listener does not stop delivery to the others; failures are
    collected and raised together once every listener has run.
    """

    def __init__(self) -> None:
        self._listeners: list[EventTypeListener] = []
        self._lock = threading.Lock()

    @property
    def listeners(self) -> list[EventTypeListener]:
        with self._lock:
            return list(self._listeners)

    def add_listener(self, listener: EventTypeListener) -> "EventDispatcher":
        with self._lock:
            self._listeners.append(listener)
        return self

    def remove_listener(self, listener: EventTypeListener) -> bool:
        """Unregister a listener, False if it was not registered."""
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
            return True

    def dispatch(self, event: Event) -> int:
        """Deliver an event to every listener that can process it.

        Returns:
            Number of listeners invoked

        Raises:
            EventDispatchError: If any listener raised
        """
        invoked = 0
        failures: list[tuple[EventTypeListener, Exception]] = []

        for listener in self.listeners:
            if not listener.can_process(event):
                continue
            invoked += 1
            try:
                listener.on_executed(event)
            except Exception as e:
                logger.warning(
                    f"{type(listener).__name__} failed on {type(event.event_data).__name__}: {e}"
                )
                failures.append((listener, e))

        if failures:
            raise EventDispatchError(event, failures)

        logger.debug(f"Dispatched {type(event.event_data).__name__} to {invoked} listener(s)")
        return invoked
