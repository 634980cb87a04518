"""Tests for ConfigLoader and the configuration models."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from aumos_input_gate.approval.request import GateRequest
from aumos_input_gate.config.loader import ConfigLoader, InputGateConfig
from aumos_input_gate.parameters.definitions import BooleanParameter, ChoiceParameter

_YAML = textwrap.dedent(
    """\
    server:
      host: 0.0.0.0
      port: 9090
      crumb_secret: s3cret
    security:
      cancel_users: [admin]
      cancel_groups: [release-admins]
    audit:
      log_path: /var/log/input_gate/audit.jsonl
      enabled: true
    execution:
      name: "deploy #42"
      url: /job/deploy/42
      root_dir: runs/42
    workers:
      max_workers: 2
    gates:
      - id: Deploy
        message: Deploy to production?
        ok: Ship it
        submitter: alice and bob
        parameters:
          - type: choice
            name: target
            choices: [canary, full]
          - type: boolean
            name: dry_run
    """
)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_returns_config(self) -> None:
        assert isinstance(ConfigLoader().defaults(), InputGateConfig)

    def test_server_defaults(self) -> None:
        config = ConfigLoader().defaults()
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 8080
        assert config.server.crumb_secret is None

    def test_audit_defaults(self) -> None:
        config = ConfigLoader().defaults()
        assert config.audit.log_path == Path("./input_gate_audit.jsonl")
        assert config.audit.enabled is True

    def test_execution_defaults(self) -> None:
        assert ConfigLoader().defaults().execution.url == "job/demo/1/"

    def test_workers_default(self) -> None:
        assert ConfigLoader().defaults().workers.max_workers == 4

    def test_no_gates(self) -> None:
        assert ConfigLoader().defaults().gates == []


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_load_string(self) -> None:
        config = ConfigLoader().load_string(_YAML)
        assert config.server.port == 9090
        assert config.security.cancel_groups == ["release-admins"]
        assert config.workers.max_workers == 2

    def test_url_normalized(self) -> None:
        assert ConfigLoader().load_string(_YAML).execution.url == "job/deploy/42/"

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "input_gate.yaml"
        path.write_text(_YAML, encoding="utf-8")
        assert ConfigLoader().load(path).gates[0].id == "Deploy"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            ConfigLoader().load(tmp_path / "absent.yaml")

    def test_empty_document_uses_defaults(self) -> None:
        assert ConfigLoader().load_string("").server.port == 8080

    def test_extra_keys_allowed(self) -> None:
        config = ConfigLoader().load_string("server:\n  port: 8081\n  tls: true\n")
        assert config.server.port == 8081

    @pytest.mark.parametrize(
        "text",
        [
            "server:\n  port: 80\n",
            "workers:\n  max_workers: 0\n",
            "execution:\n  url: '/'\n",
            "gates:\n  - id: x\n",
            "gates:\n  - message: m\n    parameters:\n      - type: color\n        name: c\n",
            "gates:\n  - message: m\n    parameters:\n      - type: string\n        name: c\n        colour: red\n",
        ],
    )
    def test_invalid_content(self, text: str) -> None:
        with pytest.raises(ValidationError):
            ConfigLoader().load_string(text)


# ---------------------------------------------------------------------------
# GateConfig.to_request
# ---------------------------------------------------------------------------


class TestGateConfig:
    def test_to_request(self) -> None:
        request = ConfigLoader().load_string(_YAML).gates[0].to_request()
        assert isinstance(request, GateRequest)
        assert request.id == "Deploy"
        assert request.ok == "Ship it"
        assert request.uses_ledger is True
        assert isinstance(request.parameters[0], ChoiceParameter)
        assert isinstance(request.parameters[1], BooleanParameter)

    def test_to_request_derives_id(self) -> None:
        config = ConfigLoader().load_string("gates:\n  - message: Go?\n")
        assert len(config.gates[0].to_request().id) == 32
