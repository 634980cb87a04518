"""Audit trail for gate requests, approvals and settlements."""
from __future__ import annotations

from aumos_input_gate.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
