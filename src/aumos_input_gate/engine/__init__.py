"""Collaborators owned by the execution engine that gates interact with.

Provides the execution record (pause registry owner, approver trail,
persistence), flow nodes with pause markers, the step context used to
resume or abort the paused branch, the execution output stream and the
shared background executor.
"""
from __future__ import annotations

from aumos_input_gate.engine.context import CallbackStepContext, StepContext
from aumos_input_gate.engine.execution import (
    ApproverAction,
    ExecutionRecord,
    FlowNode,
    PausePeriod,
)
from aumos_input_gate.engine.output import (
    ExecutionOutput,
    hyperlink,
    post_hyperlink,
    principal_link,
    strip_markup,
    to_rich,
)

__all__ = [
    "ApproverAction",
    "CallbackStepContext",
    "ExecutionOutput",
    "ExecutionRecord",
    "FlowNode",
    "PausePeriod",
    "StepContext",
    "hyperlink",
    "post_hyperlink",
    "principal_link",
    "strip_markup",
    "to_rich",
]
