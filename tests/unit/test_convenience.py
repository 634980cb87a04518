"""Tests for the blocking InputStep helper."""
from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from aumos_input_gate import InputStep
from aumos_input_gate.approval.outcome import FlowInterruptedError
from aumos_input_gate.engine.execution import ExecutionRecord
from aumos_input_gate.parameters.definitions import ChoiceParameter
from aumos_input_gate.permissions.principal import Principal


@pytest.fixture()
def step(tmp_path: Path) -> InputStep:
    return InputStep(ExecutionRecord("deploy #42", "job/deploy/42/", root_dir=tmp_path))


def _answer_when_pending(step: InputStep, action: str, principal: Principal, entries: list | None = None) -> threading.Thread:
    def _run() -> None:
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            registry = step.record.registry
            gates = registry.pending() if registry is not None else []
            if gates:
                if action == "vote":
                    gates[0].cast_vote(principal, entries)
                else:
                    gates[0].cancel(principal)
                return
            time.sleep(0.01)

    thread = threading.Thread(target=_run)
    thread.start()
    return thread


class TestInputStep:
    def test_returns_bound_value(self, step: InputStep) -> None:
        thread = _answer_when_pending(step, "vote", Principal("alice"), [{"name": "target", "value": "full"}])
        value = step.input(
            "Deploy?",
            submitter="alice",
            parameters=[ChoiceParameter("target", choices=["canary", "full"])],
            timeout=5,
        )
        thread.join()
        assert value == "full"

    def test_abort_raises(self, step: InputStep) -> None:
        thread = _answer_when_pending(step, "cancel", Principal("alice"))
        with pytest.raises(FlowInterruptedError) as info:
            step.input("Deploy?", submitter="alice", timeout=5)
        thread.join()
        assert info.value.causes[0].principal == "alice"

    def test_timeout_stops_gate(self, step: InputStep) -> None:
        with pytest.raises(FlowInterruptedError) as info:
            step.input("Deploy?", timeout=0.05)
        assert info.value.causes[0].principal is None
        assert len(step.record.pause_registry()) == 0

    def test_start_does_not_block(self, step: InputStep) -> None:
        gate, context = step.start("Deploy?", id="Deploy")
        assert context.done is False
        assert step.record.pause_registry().get("Deploy") is gate
