"""Subscriber descriptors: what counts as an event handler.

A bus runs in one of two modes. In ``ANNOTATION`` mode a method is a
handler when it is decorated with a configured :class:`Marker`; in
``METHOD_NAME`` mode a method is a handler when its name is one of the
configured names.
"""

from collections.abc import Callable, Iterable
from enum import StrEnum
from typing import Any

from loguru import logger

from tallybus.exceptions import ConfigurationError

log = logger.bind(source=__name__)

MARKERS_ATTR = "__tallybus_markers__"


class Mode(StrEnum):
    """Handler discovery mode, fixed for the lifetime of a bus."""

    ANNOTATION = "annotation"
    METHOD_NAME = "method_name"

    @classmethod
    def _missing_(cls, value: object) -> "Mode | None":
        # Member names ("ANNOTATION") are accepted as well as values.
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None


class Marker:
    """Decorator that flags a method as an event handler.

    Applying a marker stamps it onto the function and returns the function
    unchanged, so markers stack and can sit under ``@staticmethod`` or
    ``@classmethod``::

        handles = Marker("handles")

        class Audit:
            @handles
            def on_login(self, event: UserLoggedIn) -> None: ...

    A bus in ``ANNOTATION`` mode only honours the markers added to it.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__[F: Callable[..., Any]](self, func: F) -> F:
        stamped: frozenset[Marker] = getattr(func, MARKERS_ATTR, frozenset())
        setattr(func, MARKERS_ATTR, stamped | {self})
        return func

    def marks(self, func: Any) -> bool:
        """Return True if *func* carries this marker."""
        return self in getattr(func, MARKERS_ATTR, ())

    def __repr__(self) -> str:
        return f"Marker({self.name!r})"


subscribe = Marker("subscribe")
"""Ready-made marker for buses in ``ANNOTATION`` mode."""


class DescriptorStore:
    """Append-only set of markers or method names for one mode.

    Insertion order is preserved. There is no removal; a store is filled
    during setup and read by every ``register`` call afterwards.
    """

    def __init__(self, mode: Mode | str) -> None:
        try:
            self.mode = Mode(mode)
        except ValueError as exc:
            raise ConfigurationError(
                f"unknown mode: {mode!r}; expected one of {[m.value for m in Mode]}"
            ) from exc
        self._markers: dict[Marker | str, None] = {}

    @property
    def markers(self) -> tuple[Marker | str, ...]:
        return tuple(self._markers)

    def __bool__(self) -> bool:
        return bool(self._markers)

    def add(self, markers: Iterable[Marker | str]) -> None:
        """Validate and append markers.

        The whole collection is validated before anything is added.

        Args:
            markers: Marker objects (``ANNOTATION``) or method names
                (``METHOD_NAME``).

        Raises:
            ConfigurationError: If the collection is empty, or an element is
                None, empty, or of the wrong kind for the mode.
        """
        if markers is None:
            raise ConfigurationError(
                f"marker collection can not be None (mode={self.mode})"
            )
        if isinstance(markers, (str, Marker)):
            raise ConfigurationError(
                f"expected a collection of markers, got {markers!r}; "
                "use add_marker() for a single marker"
            )
        items = list(markers)
        if not items:
            raise ConfigurationError(f"marker collection is empty (mode={self.mode})")
        for item in items:
            self._check(item)
        self._markers.update(dict.fromkeys(items))
        log.debug("Markers for mode {}: {}", self.mode, list(self._markers))

    def _check(self, item: Any) -> None:
        if item is None:
            raise ConfigurationError(f"marker can not be None (mode={self.mode})")

        match self.mode:
            case Mode.ANNOTATION:
                if isinstance(item, str):
                    raise ConfigurationError(
                        f"can not add method name {item!r} when the mode is "
                        f"{self.mode}"
                    )
                if not isinstance(item, Marker):
                    raise ConfigurationError(
                        f"{item!r} is not a Marker (mode={self.mode})"
                    )
            case Mode.METHOD_NAME:
                if isinstance(item, Marker):
                    raise ConfigurationError(
                        f"can not add marker {item!r} when the mode is {self.mode}"
                    )
                if not isinstance(item, str):
                    raise ConfigurationError(
                        f"method name must be a string, got "
                        f"{type(item).__name__} (mode={self.mode})"
                    )
                if not item:
                    raise ConfigurationError(
                        f"method name can not be empty (mode={self.mode})"
                    )

    def matches(self, name: str, func: Any) -> bool:
        """Return True if the attribute *name* holding *func* is a handler candidate."""
        match self.mode:
            case Mode.ANNOTATION:
                return any(
                    marker.marks(func)
                    for marker in self._markers
                    if isinstance(marker, Marker)
                )
            case Mode.METHOD_NAME:
                return name in self._markers
