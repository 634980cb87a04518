"""Configuration loading for aumos-input-gate."""
from __future__ import annotations

from aumos_input_gate.config.loader import (
    AuditConfig,
    ConfigLoader,
    ExecutionConfig,
    GateConfig,
    InputGateConfig,
    SecurityConfig,
    ServerConfig,
    WorkerConfig,
)

__all__ = [
    "AuditConfig",
    "ConfigLoader",
    "ExecutionConfig",
    "GateConfig",
    "InputGateConfig",
    "SecurityConfig",
    "ServerConfig",
    "WorkerConfig",
]
