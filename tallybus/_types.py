"""Shared type definitions for tallybus.

All type aliases use PEP 695 ``type`` statement syntax.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tallybus.failures import HandlerFailure

type Handler = Callable[[Any], Any]
"""A bound handler: called with the event, return value is ignored."""

type FailureHook = Callable[["HandlerFailure"], None]
"""Callback receiving handler-invocation failures during ``post``."""
