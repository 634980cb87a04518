"""Parameter definitions for gate submissions.

A definition knows its name and how to turn one raw submitted entry into a
typed :class:`ParameterValue`.  Raw entries are plain dicts as posted by the
request surface, e.g. ``{"name": "target", "value": "staging"}``.  A
definition may decline an entry by returning ``None``; malformed entries
raise :class:`~aumos_input_gate.errors.ParameterBindingError`.

Definitions can also be built from configuration dicts::

    parameters:
      - type: choice
        name: target
        choices: [staging, production]
      - type: boolean
        name: dry_run
        default: true

Example
-------
>>> choice = ChoiceParameter("target", choices=["staging", "production"])
>>> choice.create_value({"name": "target", "value": "staging"}).value
'staging'
"""
from __future__ import annotations

import base64
import binascii
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar, Mapping

from aumos_input_gate.errors import ParameterBindingError


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


@dataclass
class ParameterValue:
    """A materialized parameter value."""

    name: str
    value: object


@dataclass
class FileParameterValue(ParameterValue):
    """An uploaded file, still held as an open binary stream.

    The binder streams :attr:`stream` into storage owned by the execution
    record and binds the stored path in place of this object.
    """

    filename: str = ""
    stream: BinaryIO = field(default_factory=io.BytesIO)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


@dataclass
class ParameterDefinition(ABC):
    """Base class for all parameter definitions.

    Attributes
    ----------
    name:
        Parameter name; raw entries are matched against it.
    description:
        Human-readable help text.
    default:
        Value used when an entry carries no ``value`` key.  ``None`` makes
        the definition decline such entries.
    """

    type_name: ClassVar[str] = ""

    name: str
    description: str = ""
    default: object = None

    @abstractmethod
    def create_value(self, entry: Mapping[str, object]) -> ParameterValue | None:
        """Materialize *entry* or return ``None`` to decline it."""

    def _raw(self, entry: Mapping[str, object]) -> object:
        return entry["value"] if "value" in entry else self.default

    def to_dict(self) -> dict[str, object]:
        """Serialisable description used by the pending-gate listing."""
        return {
            "type": self.type_name,
            "name": self.name,
            "description": self.description,
            "default": self.default,
        }


@dataclass
class StringParameter(ParameterDefinition):
    """Single-line string; optionally stripped of surrounding whitespace."""

    type_name: ClassVar[str] = "string"

    trim: bool = False

    def create_value(self, entry: Mapping[str, object]) -> ParameterValue | None:
        raw = self._raw(entry)
        if raw is None:
            return None
        text = str(raw)
        return ParameterValue(self.name, text.strip() if self.trim else text)


@dataclass
class TextParameter(StringParameter):
    """Multi-line string."""

    type_name: ClassVar[str] = "text"


@dataclass
class PasswordParameter(StringParameter):
    """Secret string; never echoed back by :meth:`to_dict`."""

    type_name: ClassVar[str] = "password"

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["default"] = None
        return data


_TRUTHY = frozenset({"true", "on", "yes", "1"})
_FALSY = frozenset({"false", "off", "no", "0", ""})


@dataclass
class BooleanParameter(ParameterDefinition):
    """Checkbox-style flag.  Accepts booleans and the usual form strings."""

    type_name: ClassVar[str] = "boolean"

    def create_value(self, entry: Mapping[str, object]) -> ParameterValue | None:
        raw = self._raw(entry)
        if raw is None:
            return ParameterValue(self.name, False)
        if isinstance(raw, bool):
            return ParameterValue(self.name, raw)
        text = str(raw).strip().lower()
        if text in _TRUTHY:
            return ParameterValue(self.name, True)
        if text in _FALSY:
            return ParameterValue(self.name, False)
        raise ParameterBindingError(f"Parameter {self.name!r} expects a boolean, got {raw!r}.")


@dataclass
class ChoiceParameter(ParameterDefinition):
    """One value out of a fixed list; the first choice is the default."""

    type_name: ClassVar[str] = "choice"

    choices: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.choices:
            raise ValueError(f"Choice parameter {self.name!r} needs at least one choice.")
        if self.default is None:
            self.default = self.choices[0]

    def create_value(self, entry: Mapping[str, object]) -> ParameterValue | None:
        raw = self._raw(entry)
        text = str(raw)
        if text not in self.choices:
            raise ParameterBindingError(
                f"Illegal choice for parameter {self.name!r}: {text!r} (expected one of {self.choices})."
            )
        return ParameterValue(self.name, text)

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["choices"] = list(self.choices)
        return data


@dataclass
class FileParameter(ParameterDefinition):
    """An uploaded file.

    The raw entry carries the content under ``file``, either as bytes, a
    binary stream, or ``{"filename": ..., "content_base64": ...}`` as sent
    in a JSON payload.  Entries without ``file`` are declined.
    """

    type_name: ClassVar[str] = "file"

    def create_value(self, entry: Mapping[str, object]) -> ParameterValue | None:
        raw = entry.get("file")
        if raw is None:
            return None
        filename = str(entry.get("filename", self.name))

        if isinstance(raw, (bytes, bytearray)):
            stream: BinaryIO = io.BytesIO(bytes(raw))
        elif isinstance(raw, Mapping):
            filename = str(raw.get("filename", filename))
            try:
                content = base64.b64decode(str(raw.get("content_base64", "")), validate=True)
            except (binascii.Error, ValueError) as exc:
                raise ParameterBindingError(
                    f"Parameter {self.name!r} carries malformed base64 content."
                ) from exc
            stream = io.BytesIO(content)
        elif hasattr(raw, "read"):
            stream = raw  # type: ignore[assignment]
        else:
            raise ParameterBindingError(f"Parameter {self.name!r} expects file content.")

        return FileParameterValue(self.name, None, filename=filename, stream=stream)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_TYPES: dict[str, type[ParameterDefinition]] = {
    cls.type_name: cls
    for cls in (
        StringParameter,
        TextParameter,
        PasswordParameter,
        BooleanParameter,
        ChoiceParameter,
        FileParameter,
    )
}


def build_definition(data: Mapping[str, object]) -> ParameterDefinition:
    """Build a definition from a configuration dict.

    Parameters
    ----------
    data:
        Dict with ``type`` (default ``"string"``), ``name`` and the
        type-specific keys.

    Raises
    ------
    ValueError
        When ``name`` is missing or ``type`` is unknown.
    """
    fields = dict(data)
    type_name = str(fields.pop("type", "string")).lower()
    if type_name not in _TYPES:
        raise ValueError(f"Unknown parameter type {type_name!r}. Valid: {sorted(_TYPES)}")
    if not fields.get("name"):
        raise ValueError("Parameter definitions need a 'name'.")
    return _TYPES[type_name](**fields)  # type: ignore[arg-type]
