#!/usr/bin/env python3
"""Example: Quickstart for aumos-input-gate

Minimal working example: pause an execution on a single-approver gate,
answer it from another thread, and read the resulting value.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-input-gate
"""
from __future__ import annotations

import tempfile
import threading
import time
from pathlib import Path

import aumos_input_gate as ig


def main() -> None:
    print(f"aumos-input-gate version: {ig.__version__}")

    # Step 1: An execution record owns the pending inputs of one run
    root = Path(tempfile.mkdtemp(prefix="input-gate-"))
    record = ig.ExecutionRecord("deploy #42", "job/deploy/42/", root_dir=root)
    step = ig.InputStep(record)

    # Step 2: A release manager answers once the gate is pending
    def answer() -> None:
        while not (record.registry and record.registry.pending()):
            time.sleep(0.01)
        gate = record.registry.pending()[0]
        manager = ig.Principal("alice", frozenset({"release-managers"}))
        gate.cast_vote(manager, [{"name": "target", "value": "canary"}])

    threading.Thread(target=answer, daemon=True).start()

    # Step 3: Block until the gate settles
    target = step.input(
        "Deploy to production?",
        submitter="release-managers",
        parameters=[ig.ChoiceParameter("target", choices=["canary", "full"])],
        timeout=10,
    )
    print(f"Approved target: {target}")

    print("\nExecution output:")
    print(record.output.text())


if __name__ == "__main__":
    main()
