"""Parameter definitions and the binder that turns submissions into values."""
from __future__ import annotations

from aumos_input_gate.parameters.binder import ParameterBinder
from aumos_input_gate.parameters.definitions import (
    BooleanParameter,
    ChoiceParameter,
    FileParameter,
    FileParameterValue,
    ParameterDefinition,
    ParameterValue,
    PasswordParameter,
    StringParameter,
    TextParameter,
    build_definition,
)

__all__ = [
    "BooleanParameter",
    "ChoiceParameter",
    "FileParameter",
    "FileParameterValue",
    "ParameterBinder",
    "ParameterDefinition",
    "ParameterValue",
    "PasswordParameter",
    "StringParameter",
    "TextParameter",
    "build_definition",
]
