"""Exception hierarchy for tallybus.

All custom exceptions inherit from TallybusError base class.
"""

from typing import Any


class TallybusError(Exception):
    """Base exception for all tallybus errors.

    All custom exceptions in tallybus inherit from this class, allowing
    users to catch all bus-specific errors with a single except clause.
    """


class ConfigurationError(TallybusError, ValueError):
    """Bus setup is invalid.

    Raised when:
    - Adding a marker that does not fit the active mode
    - Adding an empty marker collection, or a None/empty/invalid marker
    - Registering before any marker was configured
    - Setting a failure hook that is None, not callable, or already set
    - Loading settings that fail pydantic validation
    """


class ValidationError(TallybusError, ValueError):
    """Call-time input is invalid.

    Raised when:
    - Registering or posting None
    - Registering an already registered subscriber
    - Unregistering a subscriber that is not registered
    - A handler is private, takes the wrong number of parameters, or is
      typed on a standard library class

    Registration failures leave the registry untouched.
    """


class DispatchError(TallybusError, RuntimeError):
    """Posting an event failed.

    Raised when no listener exists for the event's exact type, or when a
    handler raises while no failure hook is set. In the latter case the
    handler's exception is chained via ``__cause__``.

    Attributes:
        event_type: Runtime type of the posted event.
        subscriber: Subscriber whose handler failed, or None.
    """

    def __init__(
        self,
        message: str,
        *,
        event_type: type | None = None,
        subscriber: Any = None,
    ) -> None:
        super().__init__(message)
        self.event_type = event_type
        self.subscriber = subscriber
