"""Execution record and flow node.

These are the parts of the owning execution engine a gate touches: the
record that owns the pause registry, the approver trail and the output
stream, and the flow node whose pause periods are marked around the
pending period of a gate.

Example
-------
>>> record = ExecutionRecord("deploy #42", url="job/deploy/42/", root_dir=tmp_path)
>>> registry = record.pause_registry()
>>> record.pause_registry() is registry
True
>>> node = FlowNode("7")
>>> node.begin_pause("Input")
>>> node.is_paused
True
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from aumos_input_gate.engine.output import ExecutionOutput

if TYPE_CHECKING:
    from aumos_input_gate.approval.registry import PauseRegistry
    from aumos_input_gate.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class ApproverAction:
    """Records that a principal approved an input of the execution."""

    principal: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class PausePeriod:
    """One period during which a flow node was paused."""

    label: str
    started_at: datetime = field(default_factory=_utcnow)
    ended_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


class FlowNode:
    """A node of the execution graph that can be marked as paused.

    Parameters
    ----------
    node_id:
        Identifier of the node within its graph.
    """

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        self._pauses: list[PausePeriod] = []
        self._lock = threading.Lock()

    def begin_pause(self, label: str) -> PausePeriod:
        """Open a new pause period."""
        period = PausePeriod(label)
        with self._lock:
            self._pauses.append(period)
        return period

    def end_current_pause(self) -> PausePeriod | None:
        """Close the most recent open pause period.

        Returns
        -------
        PausePeriod | None
            The closed period, or ``None`` when no period was open.
        """
        with self._lock:
            for period in reversed(self._pauses):
                if period.is_open:
                    period.ended_at = _utcnow()
                    return period
        return None

    @property
    def is_paused(self) -> bool:
        with self._lock:
            return any(period.is_open for period in self._pauses)

    @property
    def pauses(self) -> list[PausePeriod]:
        with self._lock:
            return list(self._pauses)


class ExecutionRecord:
    """The execution a gate pauses.

    Parameters
    ----------
    name:
        Display name, e.g. ``"deploy #42"``.
    url:
        URL of the record relative to the server root, ending in ``/``
        (e.g. ``"job/deploy/42/"``).
    root_dir:
        Directory owned by the record: uploaded files and the persisted
        ``execution.json`` live here.
    output:
        Output stream gates write notices to.  A fresh buffer by default.
    audit:
        Optional audit trail receiving gate events.
    """

    STATE_FILE = "execution.json"

    def __init__(
        self,
        name: str,
        url: str,
        root_dir: Path,
        output: ExecutionOutput | None = None,
        audit: "AuditLogger | None" = None,
    ) -> None:
        self.name = name
        self.url = url if url.endswith("/") else url + "/"
        self.root_dir = Path(root_dir)
        self.output = output or ExecutionOutput()
        self.audit = audit
        self._registry: PauseRegistry | None = None
        self._approvers: list[ApproverAction] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Pause registry
    # ------------------------------------------------------------------

    def pause_registry(self) -> "PauseRegistry":
        """Return the record's pause registry, creating it on first use."""
        from aumos_input_gate.approval.registry import PauseRegistry

        with self._lock:
            if self._registry is None:
                self._registry = PauseRegistry()
            return self._registry

    @property
    def registry(self) -> "PauseRegistry | None":
        """The pause registry, or ``None`` if nothing has paused yet."""
        return self._registry

    # ------------------------------------------------------------------
    # Approvers and audit
    # ------------------------------------------------------------------

    def add_approver(self, principal: str) -> ApproverAction:
        action = ApproverAction(principal)
        with self._lock:
            self._approvers.append(action)
        return action

    @property
    def approvers(self) -> list[ApproverAction]:
        with self._lock:
            return list(self._approvers)

    def audit_event(self, event: str, **fields: object) -> None:
        """Write a gate event to the audit trail, if one is attached."""
        if self.audit is not None:
            self.audit.log({"event": event, **fields})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> Path:
        """Persist the record's state to ``root_dir / execution.json``.

        Raises
        ------
        OSError
            When the file cannot be written.
        """
        with self._lock:
            pending = [gate.id for gate in self._registry] if self._registry is not None else []
            state: dict[str, object] = {
                "name": self.name,
                "url": self.url,
                "pending_inputs": pending,
                "approvers": [
                    {"principal": a.principal, "timestamp": a.timestamp.isoformat()}
                    for a in self._approvers
                ],
                "saved_at": _utcnow().isoformat(),
            }
            self.root_dir.mkdir(parents=True, exist_ok=True)
            path = self.root_dir / self.STATE_FILE
            path.write_text(json.dumps(state, indent=2), encoding="utf-8")
        logger.debug("Saved execution record %s to %s", self.url, path)
        return path

    def __repr__(self) -> str:
        return f"ExecutionRecord({self.url!r})"
