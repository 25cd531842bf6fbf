"""Bus settings loaded from ``pyproject.toml``.

Projects can keep the discovery mode and markers next to the rest of
their tooling configuration::

    [tool.tallybus]
    mode = "method_name"
    method_names = ["on_event"]

or, in annotation mode, with dotted paths to :class:`Marker` objects::

    [tool.tallybus]
    mode = "annotation"
    markers = ["myapp.events:handles"]
"""

import importlib
import tomllib
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from tallybus.descriptors import Marker, Mode
from tallybus.exceptions import ConfigurationError

log = logger.bind(source=__name__)

TOOL_TABLE = "tallybus"


class BusSettings(BaseModel):
    """Validated bus configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Mode
    method_names: list[str] = []
    markers: list[str] = []

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> Any:
        return Mode(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_mode(self) -> "BusSettings":
        if self.mode is Mode.ANNOTATION and self.method_names:
            raise ValueError("method_names can not be used in annotation mode")
        if self.mode is Mode.METHOD_NAME and self.markers:
            raise ValueError("markers can not be used in method_name mode")
        return self

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "BusSettings":
        """Validate raw settings, wrapping pydantic errors.

        Raises:
            ConfigurationError: If *data* fails validation.
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"invalid bus settings: {exc}") from exc

    def resolve_markers(self) -> list[Marker | str]:
        """Return the markers to add to a bus for the configured mode.

        Raises:
            ConfigurationError: If a dotted path can not be imported or
                does not point at a Marker.
        """
        if self.mode is Mode.METHOD_NAME:
            return list(self.method_names)
        return [load_marker(path) for path in self.markers]


def load_marker(path: str) -> Marker:
    """Import a marker from ``package.module:attribute``.

    Raises:
        ConfigurationError: If the path is malformed, the import fails, or
            the attribute is not a Marker.
    """
    module_path, sep, attribute = path.partition(":")
    if not sep or not module_path or not attribute:
        raise ConfigurationError(
            f"marker path must look like 'package.module:attribute', got {path!r}"
        )
    try:
        module = importlib.import_module(module_path)
    except Exception as exc:
        log.exception("Failed to import marker module '{}'", module_path)
        raise ConfigurationError(
            f"failed to import marker module '{module_path}'"
        ) from exc

    marker = getattr(module, attribute, None)
    if not isinstance(marker, Marker):
        raise ConfigurationError(f"{path!r} does not point at a Marker")
    return marker


def load_settings(pyproject_path: Path) -> BusSettings:
    """Read ``[tool.tallybus]`` from a ``pyproject.toml`` file.

    Args:
        pyproject_path: Path to the ``pyproject.toml`` file.

    Raises:
        ConfigurationError: If the file has no ``[tool.tallybus]`` table or
            its content is invalid.
    """
    with open(pyproject_path, "rb") as fh:
        config = tomllib.load(fh)

    table = config.get("tool", {}).get(TOOL_TABLE)
    if table is None:
        raise ConfigurationError(f"no [tool.{TOOL_TABLE}] table in {pyproject_path}")

    log.debug("Loaded bus settings from {}", pyproject_path)
    return BusSettings.parse(table)
