"""Handler discovery and signature validation.

Scans a subscriber's own class for handler methods and turns each one
into a :class:`ListenerBinding`. Inherited methods are not considered:
only attributes declared directly on ``type(subscriber)`` are scanned.
"""

import inspect
import types
import typing
from collections.abc import Callable
from typing import Any

from loguru import logger

from tallybus.descriptors import DescriptorStore
from tallybus.exceptions import ValidationError
from tallybus.registry import ListenerBinding
from tallybus.utils import callable_name, describe, is_stdlib_type

log = logger.bind(source=__name__)


def _declared_functions(cls: type) -> list[tuple[str, Any, Any]]:
    """Return ``(name, raw_attr, inner_function)`` for functions declared on *cls*.

    ``staticmethod`` and ``classmethod`` wrappers are unwrapped so that
    markers stamped on the inner function are visible.
    """
    found = []
    for name, attr in vars(cls).items():
        inner = attr
        if isinstance(attr, (staticmethod, classmethod)):
            inner = attr.__func__
        if isinstance(inner, types.FunctionType):
            found.append((name, attr, inner))
    return found


def resolve_event_type(func: Callable[..., Any], owner: str) -> type:
    """Validate a bound handler's signature and return its event type.

    Args:
        func: Bound handler (``self``/``cls`` already bound).
        owner: Subscriber description used in error messages.

    Returns:
        The class the single parameter is annotated with.

    Raises:
        ValidationError: If the handler does not take exactly one positional
            parameter, the parameter is not annotated with a class, or the
            class comes from the standard library.
    """
    name = callable_name(func)
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"can not inspect handler {name} of {owner}: {exc}"
        ) from exc

    params = list(signature.parameters.values())
    if len(params) != 1 or params[0].kind not in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        raise ValidationError(
            f"event handler {name} of {owner} must take exactly one "
            f"positional parameter: the event object"
        )

    param = params[0]
    try:
        hints = typing.get_type_hints(getattr(func, "__func__", func))
    except Exception as exc:
        raise ValidationError(
            f"can not resolve the event type annotation of handler {name} "
            f"of {owner}: {exc}"
        ) from exc

    annotation = hints.get(param.name)
    if annotation is None:
        raise ValidationError(
            f"parameter {param.name!r} of event handler {name} of {owner} "
            f"must be annotated with the event type"
        )

    origin = typing.get_origin(annotation)
    event_type = origin or annotation
    if origin in (typing.Union, types.UnionType) or not isinstance(event_type, type):
        raise ValidationError(
            f"event handler {name} of {owner} must be annotated with a single "
            f"event class, got {annotation!r}"
        )
    if is_stdlib_type(event_type):
        raise ValidationError(
            f"event handler {name} of {owner} is typed on "
            f"{event_type.__module__}.{event_type.__qualname__}; "
            f"standard library types are not allowed as events"
        )
    return event_type


def discover_bindings(
    subscriber: Any, descriptors: DescriptorStore
) -> list[ListenerBinding]:
    """Find and validate every handler declared on the subscriber's class.

    Args:
        subscriber: Object to scan.
        descriptors: Markers or method names of the active mode.

    Returns:
        One binding per handler, in declaration order.

    Raises:
        ValidationError: If any candidate is invalid, or there is none.
    """
    owner = describe(subscriber)
    bindings: list[ListenerBinding] = []

    for name, attr, inner in _declared_functions(type(subscriber)):
        if not (descriptors.matches(name, inner) or descriptors.matches(name, attr)):
            continue

        if name.startswith("_"):
            raise ValidationError(
                f"event handler methods must be public: {name} of {owner}"
            )

        handler = getattr(subscriber, name)
        event_type = resolve_event_type(handler, owner)
        bindings.append(
            ListenerBinding(
                subscriber=subscriber,
                handler=handler,
                event_type=event_type,
                name=name,
            )
        )

    if not bindings:
        raise ValidationError(
            f"no event handler methods in subscriber {owner} "
            f"(mode={descriptors.mode}, markers={list(descriptors.markers)})"
        )

    log.debug(
        "Discovered {} handler(s) on {}: {}",
        len(bindings),
        owner,
        [(b.name, b.event_type.__qualname__) for b in bindings],
    )
    return bindings


def binding_for_callback(event_type: Any, callback: Any) -> ListenerBinding:
    """Build the binding for an explicitly subscribed callable.

    The callable is its own subscriber. Its parameter does not need an
    annotation since the event type is given explicitly.

    Raises:
        ValidationError: If *event_type* is not a non-stdlib class or
            *callback* does not take exactly one positional parameter.
    """
    if callback is None:
        raise ValidationError("callback can not be None")
    if not callable(callback):
        raise ValidationError(f"callback {callback!r} is not callable")
    if not isinstance(event_type, type):
        raise ValidationError(f"event type must be a class, got {event_type!r}")
    if is_stdlib_type(event_type):
        raise ValidationError(
            f"standard library types are not allowed as events: "
            f"{event_type.__qualname__}"
        )

    name = callable_name(callback)
    try:
        params = list(inspect.signature(callback).parameters.values())
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"can not inspect callback {name}: {exc}") from exc
    positional = [
        p
        for p in params
        if p.kind
        in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if len(params) != 1 or len(positional) != 1:
        raise ValidationError(
            f"callback {name} must take exactly one positional parameter: "
            f"the event object"
        )

    return ListenerBinding(
        subscriber=callback, handler=callback, event_type=event_type, name=name
    )
