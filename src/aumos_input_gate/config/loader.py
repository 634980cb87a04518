"""Input gate configuration loader with Pydantic v2 validation.

Loads and validates an ``input_gate.yaml`` file into a typed
:class:`InputGateConfig` object.  Unknown keys are allowed to support
future schema additions without breakage.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load(Path("input_gate.yaml"))
>>> config.server.port
8080
>>> [gate.id for gate in config.gates]
['Deploy']
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from aumos_input_gate.approval.request import GateRequest
from aumos_input_gate.parameters.definitions import build_definition


class ServerConfig(BaseModel):
    """Configuration for the HTTP surface."""

    model_config = {"extra": "allow"}

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1024, le=65535)
    crumb_secret: str | None = Field(default=None)


class SecurityConfig(BaseModel):
    """Users and groups holding the cancel permission on every run."""

    model_config = {"extra": "allow"}

    cancel_users: list[str] = Field(default_factory=list)
    cancel_groups: list[str] = Field(default_factory=list)


class AuditConfig(BaseModel):
    """Configuration for the audit trail subsystem."""

    model_config = {"extra": "allow"}

    log_path: Path = Field(default=Path("./input_gate_audit.jsonl"))
    enabled: bool = Field(default=True)


class ExecutionConfig(BaseModel):
    """The execution record gates are attached to when serving from the CLI."""

    model_config = {"extra": "allow"}

    name: str = Field(default="demo #1")
    url: str = Field(default="job/demo/1/")
    root_dir: Path = Field(default=Path("./input_gate_run"))

    @field_validator("url")
    @classmethod
    def normalize_url(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("execution.url must not be empty")
        return value + "/"


class WorkerConfig(BaseModel):
    """Sizing of the shared background executor."""

    model_config = {"extra": "allow"}

    max_workers: int = Field(default=4, ge=1)


class GateConfig(BaseModel):
    """One configured pause point."""

    model_config = {"extra": "allow"}

    id: str | None = Field(default=None)
    message: str
    ok: str = Field(default="Proceed")
    submitter: str | None = Field(default=None)
    submitter_parameter: str | None = Field(default=None)
    parameters: list[dict[str, object]] = Field(default_factory=list)

    @field_validator("parameters")
    @classmethod
    def validate_parameters(cls, values: list[dict[str, object]]) -> list[dict[str, object]]:
        for value in values:
            try:
                build_definition(value)
            except TypeError as exc:
                raise ValueError(f"Invalid parameter definition {value!r}: {exc}") from exc
        return values

    def to_request(self) -> GateRequest:
        """Build the :class:`GateRequest` this entry describes."""
        return GateRequest.from_dict(self.model_dump())


class InputGateConfig(BaseModel):
    """Top-level input gate configuration schema.

    Loaded from ``input_gate.yaml``.  All sections are optional and
    fall back to sensible defaults.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    workers: WorkerConfig = Field(default_factory=WorkerConfig)
    gates: list[GateConfig] = Field(default_factory=list)


class ConfigLoader:
    """Loads and validates input gate YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load(Path("input_gate.yaml"))
    """

    def load(self, config_path: Path) -> InputGateConfig:
        """Load and validate an input gate YAML file.

        Parameters
        ----------
        config_path:
            Path to the ``input_gate.yaml`` file.

        Returns
        -------
        InputGateConfig
            Validated configuration object.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ValueError:
            When the YAML content fails Pydantic validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Input gate config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return InputGateConfig.model_validate(raw)

    def load_string(self, yaml_content: str) -> InputGateConfig:
        """Load and validate a YAML string directly."""
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return InputGateConfig.model_validate(raw)

    def defaults(self) -> InputGateConfig:
        """Return a default configuration with all defaults applied."""
        return InputGateConfig()
