"""tallybus - a synchronous, recording event bus for Python.

Subscribers are discovered by marker decorator or method name, events are
dispatched by exact runtime type, and every delivery is recorded in a
queryable ledger.
"""

__version__ = "0.1.0"

from loguru import logger

# Disable all tallybus logging by default.  Users opt in with:
#     from loguru import logger
#     logger.enable("tallybus")
logger.disable("tallybus")

from tallybus.bus import RecordingEventBus
from tallybus.config import BusSettings, load_settings
from tallybus.descriptors import Marker, Mode, subscribe
from tallybus.exceptions import (
    ConfigurationError,
    DispatchError,
    TallybusError,
    ValidationError,
)
from tallybus.failures import HandlerFailure
from tallybus.ledger import PostedEvent
from tallybus.protocols import EventBus, EventPublisher, EventSubscriber
from tallybus.registry import ListenerBinding

__all__ = [
    # Version
    "__version__",
    # Bus
    "RecordingEventBus",
    "Mode",
    "Marker",
    "subscribe",
    # Records
    "ListenerBinding",
    "PostedEvent",
    "HandlerFailure",
    # Protocols
    "EventBus",
    "EventPublisher",
    "EventSubscriber",
    # Configuration
    "BusSettings",
    "load_settings",
    # Exception classes
    "TallybusError",
    "ConfigurationError",
    "ValidationError",
    "DispatchError",
]
