"""Synchronous, recording event bus."""

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger

from tallybus._types import FailureHook
from tallybus.config import BusSettings, load_settings
from tallybus.descriptors import DescriptorStore, Marker, Mode
from tallybus.discovery import binding_for_callback, discover_bindings
from tallybus.exceptions import ConfigurationError, DispatchError, ValidationError
from tallybus.failures import HandlerFailure
from tallybus.ledger import PostedEvent, PostedEventLedger
from tallybus.registry import ListenerBinding, SubscriptionRegistry
from tallybus.utils import callable_name, describe

log = logger.bind(source=__name__)


class RecordingEventBus:
    """Event bus that discovers handlers by introspection and records deliveries.

    Handlers are found on a subscriber's own class, either by a
    :class:`Marker` decorator (``Mode.ANNOTATION``) or by method name
    (``Mode.METHOD_NAME``). Posted events are delivered synchronously, in
    registration order, to handlers of the event's exact type. Every
    successful delivery is appended to a ledger that can be queried
    afterwards, which makes the bus convenient in tests::

        bus = RecordingEventBus(Mode.METHOD_NAME, ["on_event"])
        bus.register(audit)
        bus.post(UserLoggedIn(user_id=1))
        assert bus.get_last_posted().subscriber is audit

    A handler failure aborts the post with :class:`DispatchError` unless a
    failure hook is installed with :meth:`set_failure_hook`, in which case
    the hook receives the failure and the remaining handlers still run.

    All state is guarded by one reentrant lock. Handlers run with the lock
    released, so they may post, register or unregister on the same bus.
    Changes they make apply to later posts only.
    """

    def __init__(
        self,
        mode: Mode | str,
        markers: Iterable[Marker | str] | None = None,
    ) -> None:
        """Initialize bus.

        Args:
            mode: Handler discovery mode, fixed for the bus lifetime.
            markers: Optional markers or method names to add right away.

        Raises:
            ConfigurationError: If mode is unknown or markers are invalid.
        """
        self._lock = threading.RLock()
        self._descriptors = DescriptorStore(mode)
        self._registry = SubscriptionRegistry()
        self._ledger = PostedEventLedger()
        self._failure_hook: FailureHook | None = None
        if markers is not None:
            self.add_markers(markers)

    @classmethod
    def from_settings(cls, settings: BusSettings) -> "RecordingEventBus":
        """Build a bus from validated settings."""
        markers = settings.resolve_markers()
        return cls(settings.mode, markers or None)

    @classmethod
    def from_pyproject(cls, pyproject_path: Path) -> "RecordingEventBus":
        """Build a bus from ``[tool.tallybus]`` in a ``pyproject.toml``."""
        return cls.from_settings(load_settings(pyproject_path))

    @property
    def mode(self) -> Mode:
        return self._descriptors.mode

    @property
    def markers(self) -> tuple[Marker | str, ...]:
        with self._lock:
            return self._descriptors.markers

    @property
    def failure_hook(self) -> FailureHook | None:
        return self._failure_hook

    # -- descriptors ----------------------------------------------------------

    def add_marker(self, marker: Marker | str) -> None:
        """Add a single marker or method name. See :meth:`add_markers`."""
        self.add_markers([marker])

    def add_markers(self, markers: Iterable[Marker | str]) -> None:
        """Add markers (annotation mode) or method names (method name mode).

        Raises:
            ConfigurationError: If the collection is empty, or any element is
                None, empty, or does not fit the active mode.
        """
        with self._lock:
            self._descriptors.add(markers)

    def add_annotation(self, marker: Marker) -> None:
        self.add_annotations([marker])

    def add_annotations(self, markers: Iterable[Marker]) -> None:
        if self.mode is not Mode.ANNOTATION:
            raise ConfigurationError(
                f"can not add annotations when the selected mode is {self.mode}"
            )
        self.add_markers(markers)

    def add_method_name(self, name: str) -> None:
        self.add_method_names([name])

    def add_method_names(self, names: Iterable[str]) -> None:
        if self.mode is not Mode.METHOD_NAME:
            raise ConfigurationError(
                f"can not add method names when the selected mode is {self.mode}"
            )
        self.add_markers(names)

    # -- registration ---------------------------------------------------------

    def register(self, subscriber: Any) -> None:
        """Register every handler declared on the subscriber's class.

        Either all handlers are registered or none is.

        Args:
            subscriber: Object whose class declares handler methods.

        Post:
            One binding per handler; subscriber marked registered.

        Raises:
            ValidationError: If subscriber is None or already registered, a
                handler is invalid, or there is no handler.
            ConfigurationError: If no marker was added yet.
        """
        if subscriber is None:
            raise ValidationError("subscriber can not be None")

        with self._lock:
            if not self._descriptors:
                raise ConfigurationError(
                    f"add markers before registering subscribers (mode={self.mode})"
                )
            if subscriber in self._registry:
                raise ValidationError(f"already registered: {describe(subscriber)}")

            bindings = discover_bindings(subscriber, self._descriptors)
            self._registry.add(subscriber, bindings)

        log.debug(
            "Registered {} with {} handler(s)", describe(subscriber), len(bindings)
        )

    def subscribe(self, event_type: type, callback: Callable[[Any], Any]) -> None:
        """Subscribe a plain callable to one event type.

        The callable is its own subscriber: remove it with
        ``unregister(callback)``. Works in both modes and needs no marker.

        Raises:
            ValidationError: If the callback is None, already subscribed,
                does not take exactly one positional parameter, or the
                event type is not a non-stdlib class.
        """
        binding = binding_for_callback(event_type, callback)
        with self._lock:
            if callback in self._registry:
                raise ValidationError(f"already registered: {describe(callback)}")
            self._registry.add(callback, [binding])

        log.debug(
            "Subscribed {} to {}", callable_name(callback), event_type.__qualname__
        )

    def on[F: Callable[[Any], Any]](self, event_type: type) -> Callable[[F], F]:
        """Decorator form of :meth:`subscribe`.

        Returns:
            Decorator function that returns the original function unchanged.
        """

        def decorator(func: F) -> F:
            self.subscribe(event_type, func)
            return func

        return decorator

    def unregister(self, subscriber: Any) -> None:
        """Remove every binding owned by a subscriber.

        Raises:
            ValidationError: If the subscriber is not registered.
        """
        with self._lock:
            if subscriber is None or subscriber not in self._registry:
                raise ValidationError(
                    f"subscriber is not registered: {describe(subscriber)}"
                )
            removed = self._registry.remove(subscriber)

        log.debug(
            "Unregistered {} ({} handler(s))", describe(subscriber), len(removed)
        )

    @contextmanager
    def subscribed(self, subscriber: Any) -> Iterator[Any]:
        """Register a subscriber for the duration of a ``with`` block.

        Example::

            with bus.subscribed(Audit()) as audit:
                bus.post(UserLoggedIn(user_id=1))
            # audit handlers unregistered here

        Leaving the block is safe when the subscriber already unregistered
        itself, e.g. from one of its handlers.
        """
        self.register(subscriber)
        try:
            yield subscriber
        finally:
            with self._lock:
                removed = (
                    self._registry.remove(subscriber)
                    if subscriber in self._registry
                    else []
                )
            if removed:
                log.debug(
                    "Unregistered {} on scope exit ({} handler(s))",
                    describe(subscriber),
                    len(removed),
                )

    def is_registered(self, subscriber: Any) -> bool:
        with self._lock:
            return subscriber is not None and subscriber in self._registry

    def listeners(self, event_type: type) -> tuple[ListenerBinding, ...]:
        """Bindings that a post of *event_type* would invoke, in order."""
        with self._lock:
            return self._registry.listeners(event_type)

    def subscriptions(self, subscriber: Any) -> tuple[ListenerBinding, ...]:
        """Bindings owned by *subscriber* (empty if not registered)."""
        with self._lock:
            return tuple(self._registry.subscriptions(subscriber))

    # -- failure hook ---------------------------------------------------------

    def set_failure_hook(self, hook: FailureHook) -> None:
        """Install the callback that receives handler failures. Set once.

        Raises:
            ConfigurationError: If hook is None or not callable, or a hook
                is already set.
        """
        if hook is None:
            raise ConfigurationError("failure hook can not be None")
        if not callable(hook):
            raise ConfigurationError(f"failure hook {hook!r} is not callable")
        with self._lock:
            if self._failure_hook is not None:
                raise ConfigurationError(
                    f"failure hook is already set: {callable_name(self._failure_hook)}"
                )
            self._failure_hook = hook

    # -- dispatch -------------------------------------------------------------

    def post(self, event: Any) -> None:
        """Deliver an event to every handler of its exact type.

        Handlers run in registration order on the calling thread. Each
        successful delivery is recorded in the ledger.

        Args:
            event: Event instance.

        Post:
            One ledger entry per handler that returned normally.

        Raises:
            ValidationError: If event is None.
            DispatchError: If no handler listens to ``type(event)``, or a
                handler raised and no failure hook is set. The handler's
                exception is chained as ``__cause__``.
        """
        if event is None:
            raise ValidationError("event can not be None")

        event_type = type(event)
        with self._lock:
            bindings = self._registry.listeners(event_type)
            hook = self._failure_hook

        if not bindings:
            raise DispatchError(
                f"no listeners for event type {event_type.__module__}."
                f"{event_type.__qualname__} (mode={self.mode})",
                event_type=event_type,
            )

        log.debug("Post {} to {} listener(s)", event_type.__qualname__, len(bindings))

        for binding in bindings:
            try:
                binding.handler(event)
            except Exception as exc:
                if hook is None:
                    raise DispatchError(
                        f"exception during invocation of listener "
                        f"{binding.name} of {describe(binding.subscriber)} for "
                        f"{event_type.__qualname__}: {exc!r}; use "
                        f"set_failure_hook() to handle subscriber exceptions",
                        event_type=event_type,
                        subscriber=binding.subscriber,
                    ) from exc

                log.warning(
                    "Listener {} of {} failed on {}: {!r}",
                    binding.name,
                    describe(binding.subscriber),
                    event_type.__qualname__,
                    exc,
                )
                hook(
                    HandlerFailure(
                        event=event,
                        subscriber=binding.subscriber,
                        listener_name=binding.name,
                        exception=exc,
                    )
                )
                continue

            with self._lock:
                self._ledger.append(
                    PostedEvent(
                        event=event,
                        subscriber=binding.subscriber,
                        handler_name=binding.name,
                    )
                )

    # -- ledger ---------------------------------------------------------------

    def get_all_posted(self, event_type: type | None = None) -> list[PostedEvent]:
        """All recorded deliveries, optionally of one exact event type."""
        with self._lock:
            return self._ledger.all(event_type)

    def get_first_posted(self, event_type: type | None = None) -> PostedEvent | None:
        with self._lock:
            return self._ledger.first(event_type)

    def get_last_posted(self, event_type: type | None = None) -> PostedEvent | None:
        with self._lock:
            return self._ledger.last(event_type)

    def has_posted(self, event_type: type | None = None) -> bool:
        with self._lock:
            return self._ledger.has_any(event_type)

    def clear_posted(self) -> None:
        """Empty the ledger. Registrations are kept."""
        with self._lock:
            self._ledger.clear()
