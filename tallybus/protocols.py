"""Publisher/subscriber capability shared by every event bus.

Code that only posts or (un)registers should depend on these protocols,
never on :class:`~tallybus.bus.RecordingEventBus` directly. Any object
exposing the same three methods, e.g. a thin wrapper around a third-party
bus, can then be substituted.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EventPublisher(Protocol):
    """Can post events on a bus."""

    def post(self, event: Any) -> None: ...


@runtime_checkable
class EventSubscriber(Protocol):
    """Can subscribe and unsubscribe objects to events posted on a bus."""

    def register(self, subscriber: Any) -> None: ...

    def unregister(self, subscriber: Any) -> None: ...


@runtime_checkable
class EventBus(EventPublisher, EventSubscriber, Protocol):
    """Both publisher and subscriber."""
