"""aumos-input-gate: human approval gates for paused executions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_input_gate as ig
>>> ig.__version__
'0.1.0'
>>> record = ig.ExecutionRecord("deploy #42", "job/deploy/42/", root_dir=tmp_path)
>>> gate = ig.PauseGate(
...     ig.GateRequest("Ship it?", submitter="alice and bob"),
...     record=record,
...     node=ig.FlowNode("3"),
...     context=ig.CallbackStepContext(),
...     identity=ig.ContextIdentityProvider(),
... )
>>> gate.start()
>>> gate.cast_vote(ig.Principal("alice")) is None
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from aumos_input_gate.convenience import InputStep

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from aumos_input_gate.errors import (
    AlreadySettledError,
    AuthorizationError,
    FormulaError,
    InputGateError,
    ParameterBindingError,
)

# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------
from aumos_input_gate.approval.gate import GateState, PauseGate
from aumos_input_gate.approval.ledger import ApprovalLedger
from aumos_input_gate.approval.outcome import (
    FlowInterruptedError,
    Outcome,
    OutcomeKind,
    Rejection,
)
from aumos_input_gate.approval.registry import PauseRegistry
from aumos_input_gate.approval.request import GateRequest

# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------
from aumos_input_gate.expressions.formula import Formula

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
from aumos_input_gate.permissions.policy import AuthorizationPolicy
from aumos_input_gate.permissions.principal import ANONYMOUS, SYSTEM, Principal, impersonate
from aumos_input_gate.permissions.provider import (
    ContextIdentityProvider,
    IdentityProvider,
    Permission,
)

# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------
from aumos_input_gate.parameters.binder import ParameterBinder
from aumos_input_gate.parameters.definitions import (
    BooleanParameter,
    ChoiceParameter,
    FileParameter,
    PasswordParameter,
    StringParameter,
    TextParameter,
)

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
from aumos_input_gate.engine.context import CallbackStepContext, StepContext
from aumos_input_gate.engine.execution import ExecutionRecord, FlowNode
from aumos_input_gate.engine.output import ExecutionOutput

# ---------------------------------------------------------------------------
# Audit and configuration
# ---------------------------------------------------------------------------
from aumos_input_gate.audit.logger import AuditLogger
from aumos_input_gate.config.loader import ConfigLoader, InputGateConfig

__all__ = [
    "__version__",
    "InputStep",
    # Errors
    "AlreadySettledError",
    "AuthorizationError",
    "FormulaError",
    "InputGateError",
    "ParameterBindingError",
    # Approval
    "ApprovalLedger",
    "FlowInterruptedError",
    "GateRequest",
    "GateState",
    "Outcome",
    "OutcomeKind",
    "PauseGate",
    "PauseRegistry",
    "Rejection",
    # Expressions
    "Formula",
    # Permissions
    "ANONYMOUS",
    "SYSTEM",
    "AuthorizationPolicy",
    "ContextIdentityProvider",
    "IdentityProvider",
    "Permission",
    "Principal",
    "impersonate",
    # Parameters
    "BooleanParameter",
    "ChoiceParameter",
    "FileParameter",
    "ParameterBinder",
    "PasswordParameter",
    "StringParameter",
    "TextParameter",
    # Engine
    "CallbackStepContext",
    "ExecutionOutput",
    "ExecutionRecord",
    "FlowNode",
    "StepContext",
    # Audit and configuration
    "AuditLogger",
    "ConfigLoader",
    "InputGateConfig",
]
