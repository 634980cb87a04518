"""Binding of raw submissions to the value handed to a resumed execution.

Example
-------
>>> binder = ParameterBinder([StringParameter("target"), BooleanParameter("dry_run")])
>>> binder.bind([{"name": "target", "value": "staging"}], principal)
'staging'
>>> binder.bind(
...     [{"name": "target", "value": "staging"}, {"name": "dry_run", "value": "on"}],
...     principal,
... )
{'target': 'staging', 'dry_run': True}
"""
from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from aumos_input_gate.errors import ParameterBindingError
from aumos_input_gate.parameters.definitions import (
    FileParameterValue,
    ParameterDefinition,
    ParameterValue,
)
from aumos_input_gate.permissions.principal import Principal

logger = logging.getLogger(__name__)


class ParameterBinder:
    """Converts raw parameter entries into a single value or a mapping.

    Parameters
    ----------
    definitions:
        Parameter definitions declared by the gate.
    submitter_parameter:
        Optional name of a slot that receives the approving principal's
        name.
    storage_dir:
        Directory owned by the execution record; uploaded files are
        written to ``storage_dir / <parameter name>``.  Required only when
        a file parameter is actually submitted.
    """

    def __init__(
        self,
        definitions: Sequence[ParameterDefinition] = (),
        submitter_parameter: str | None = None,
        storage_dir: Path | None = None,
    ) -> None:
        self._definitions = list(definitions)
        self._submitter_parameter = submitter_parameter or None
        self._storage_dir = storage_dir

    def bind(
        self,
        entries: Iterable[Mapping[str, object]] | None,
        principal: Principal,
    ) -> object:
        """Bind *entries* submitted by *principal*.

        Returns
        -------
        object
            ``None`` when nothing was bound, the value itself when exactly
            one entry was bound, otherwise a ``{name: value}`` dict.

        Raises
        ------
        ParameterBindingError
            When an entry is malformed or names no declared parameter.
        """
        bound: dict[str, object] = {}

        for entry in entries or ():
            if not isinstance(entry, Mapping) or not entry.get("name"):
                raise ParameterBindingError(f"Malformed parameter entry: {entry!r}")
            name = str(entry["name"])
            definition = self._find(name)
            if definition is None:
                raise ParameterBindingError(f"No such parameter definition: {name}")

            value = definition.create_value(entry)
            if value is None:
                continue
            bound[name] = self._convert(value)

        if self._submitter_parameter:
            bound[self._submitter_parameter] = principal.name

        match len(bound):
            case 0:
                return None
            case 1:
                return next(iter(bound.values()))
            case _:
                return bound

    def _find(self, name: str) -> ParameterDefinition | None:
        for definition in self._definitions:
            if definition.name == name:
                return definition
        return None

    def _convert(self, value: ParameterValue) -> object:
        if not isinstance(value, FileParameterValue):
            return value.value

        if self._storage_dir is None:
            raise ParameterBindingError(
                f"File parameter {value.name!r} submitted but no storage is configured."
            )
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        target = self._storage_dir / value.name
        with target.open("wb") as fh:
            shutil.copyfileobj(value.stream, fh)
        logger.debug("Stored uploaded file %r for parameter %r at %s", value.filename, value.name, target)
        return target

    @property
    def definitions(self) -> list[ParameterDefinition]:
        return list(self._definitions)

    @property
    def accepts_empty(self) -> bool:
        """``True`` when an empty submission is valid: no parameters and no submitter slot."""
        return not self._definitions and not self._submitter_parameter
