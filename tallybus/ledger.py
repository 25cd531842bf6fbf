"""Posted-event ledger.

Append-only, insertion-ordered record of every successful delivery.
Type filters match the event's exact runtime type, the same way
dispatch does.
"""

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict


class PostedEvent(BaseModel):
    """An event and the subscriber that accepted it.

    Instances are immutable. ``event`` and ``subscriber`` are stored as
    given (no copy), so identity checks against the originals hold.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event: Any
    subscriber: Any
    handler_name: str = ""

    @property
    def event_type(self) -> type:
        return type(self.event)


class PostedEventLedger:
    """Ordered log of :class:`PostedEvent` entries.

    Entries are never reordered or deduplicated. ``clear()`` is the only
    bulk mutation. Not thread-safe on its own; the owning bus serialises
    access.
    """

    def __init__(self) -> None:
        self._entries: list[PostedEvent] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PostedEvent]:
        return iter(list(self._entries))

    def append(self, entry: PostedEvent) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    @staticmethod
    def _matches(entry: PostedEvent, event_type: type | None) -> bool:
        return event_type is None or type(entry.event) is event_type

    def all(self, event_type: type | None = None) -> list[PostedEvent]:
        """Return a snapshot of all entries, optionally of one event type."""
        return [e for e in self._entries if self._matches(e, event_type)]

    def first(self, event_type: type | None = None) -> PostedEvent | None:
        """Return the earliest matching entry, or None."""
        return next(
            (e for e in self._entries if self._matches(e, event_type)), None
        )

    def last(self, event_type: type | None = None) -> PostedEvent | None:
        """Return the latest matching entry, or None.

        Scans from the end of the log.
        """
        return next(
            (e for e in reversed(self._entries) if self._matches(e, event_type)),
            None,
        )

    def has_any(self, event_type: type | None = None) -> bool:
        return self.first(event_type) is not None
