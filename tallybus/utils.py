import functools
import sys
import sysconfig
from pathlib import Path
from typing import Any


def callable_name(cb: Any) -> str:
    """Return a human-readable name for a callable, safe for logging.

    Falls back through ``__qualname__``, ``__name__``, and ``repr()``
    so that ``functools.partial``, callable instances, and other exotic
    callables never raise ``AttributeError``.

    Args:
        cb: Any callable object.

    Returns:
        Display name string.
    """
    return (
        getattr(cb, "__qualname__", None) or getattr(cb, "__name__", None) or repr(cb)
    )


def describe(subscriber: Any) -> str:
    """Return ``<qualname at 0x...>`` for a subscriber, used in messages.

    Plain callables are described by name only.
    """
    if callable(subscriber) and not isinstance(subscriber, type):
        name = getattr(subscriber, "__qualname__", None)
        if name is not None:
            return name
    return f"<{type(subscriber).__qualname__} at {id(subscriber):#x}>"


@functools.cache
def _install_dirs() -> tuple[tuple[Path, ...], tuple[Path, ...]]:
    """Return ``(stdlib_dirs, site_dirs)`` of the running interpreter, resolved."""
    paths = sysconfig.get_paths()
    stdlib = {Path(paths[key]).resolve() for key in ("stdlib", "platstdlib")}
    site = {Path(paths[key]).resolve() for key in ("purelib", "platlib")}
    return tuple(stdlib), tuple(site)


def is_stdlib_type(cls: type) -> bool:
    """Check whether *cls* is defined in ``builtins`` or a standard library module.

    The defining module is looked up in ``sys.modules`` and judged by where
    it was loaded from: built-in and frozen modules, and files under the
    interpreter's ``stdlib`` directory (but not its ``site-packages``),
    count as standard library. A project package named like a standard
    module, such as ``calendar.events``, is therefore not rejected.

    Modules that are not loaded fall back to comparing the top-level name
    with ``sys.stdlib_module_names``.
    """
    module_name = getattr(cls, "__module__", None) or "builtins"
    if module_name == "builtins":
        return True

    module = sys.modules.get(module_name)
    if module is None:
        return module_name.partition(".")[0] in sys.stdlib_module_names

    spec = getattr(module, "__spec__", None)
    origin = getattr(spec, "origin", None)
    if origin in ("built-in", "frozen"):
        return True
    location = getattr(module, "__file__", None) or origin
    if not location:
        return False

    path = Path(location).resolve()
    stdlib_dirs, site_dirs = _install_dirs()
    if any(path.is_relative_to(d) for d in site_dirs):
        return False
    return any(path.is_relative_to(d) for d in stdlib_dirs)
