"""Human approval gates for paused executions.

Provides the gate request model, the per-approver ledger, the pause gate
state machine with its exactly-once settlement, the terminal outcomes and
the per-record registry of pending gates.
"""
from __future__ import annotations

from aumos_input_gate.approval.gate import GateState, PauseGate
from aumos_input_gate.approval.ledger import ApprovalLedger
from aumos_input_gate.approval.outcome import (
    FlowInterruptedError,
    Outcome,
    OutcomeKind,
    Rejection,
)
from aumos_input_gate.approval.registry import PauseRegistry
from aumos_input_gate.approval.request import GateRequest, derive_id

__all__ = [
    "ApprovalLedger",
    "FlowInterruptedError",
    "GateRequest",
    "GateState",
    "Outcome",
    "OutcomeKind",
    "PauseGate",
    "PauseRegistry",
    "Rejection",
    "derive_id",
]
