"""Registry of the pending gates of one execution record.

Each execution record owns at most one registry, created the first time
a gate pauses it.  Gates add themselves when they start and are removed
when they settle.  The registry is thread-safe.

Example
-------
>>> registry = record.pause_registry()
>>> gate.start()
>>> registry.get(gate.id) is gate
True
>>> [g.id for g in registry.pending()]
['Deploy']
"""
from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from aumos_input_gate.approval.gate import PauseGate


class PauseRegistry:
    """Ordered, id-keyed collection of pending gates."""

    #: Path segment under the record URL that pending gates are served from.
    URL_NAME = "input"

    def __init__(self) -> None:
        self._gates: dict[str, PauseGate] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def add(self, gate: "PauseGate") -> None:
        """Register *gate*.

        Raises
        ------
        ValueError
            When another pending gate already uses the same identifier.
        """
        with self._lock:
            if gate.id in self._gates:
                raise ValueError(f"An input with id {gate.id!r} is already pending.")
            self._gates[gate.id] = gate

    def remove(self, gate: "PauseGate") -> None:
        """Remove *gate*.

        Raises
        ------
        KeyError
            When the gate is not registered.
        """
        with self._lock:
            if self._gates.get(gate.id) is not gate:
                raise KeyError(f"No pending input with id: {gate.id}")
            del self._gates[gate.id]

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get(self, gate_id: str) -> "PauseGate":
        """Return the pending gate with *gate_id*.

        Raises
        ------
        KeyError
            When no such gate is pending.
        """
        with self._lock:
            if gate_id not in self._gates:
                raise KeyError(f"No pending input with id: {gate_id}")
            return self._gates[gate_id]

    def find(self, gate_id: str) -> "PauseGate | None":
        with self._lock:
            return self._gates.get(gate_id)

    def pending(self) -> list["PauseGate"]:
        """Pending gates in registration order."""
        with self._lock:
            return list(self._gates.values())

    def __iter__(self) -> Iterator["PauseGate"]:
        return iter(self.pending())

    def __len__(self) -> int:
        with self._lock:
            return len(self._gates)

    def __contains__(self, gate_id: object) -> bool:
        with self._lock:
            return gate_id in self._gates
