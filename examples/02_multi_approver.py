#!/usr/bin/env python3
"""Example: Multi-approver gates with submitter formulas.

Shows how a formula such as ``alice and (bob or carol)`` tracks each
approver in a ledger, how repeated votes are ignored, and how a principal
holding the cancel permission aborts a gate it could not approve.

Usage:
    python examples/02_multi_approver.py
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import aumos_input_gate as ig


def _gate(record: ig.ExecutionRecord, identity: ig.ContextIdentityProvider, gate_id: str, submitter: str) -> ig.PauseGate:
    context = ig.CallbackStepContext(
        success=lambda value: print(f"  -> {gate_id} resumed with {value!r}"),
        failure=lambda error: print(f"  -> {gate_id} failed: {error}"),
    )
    gate = ig.PauseGate(
        ig.GateRequest(f"Release {gate_id}?", id=gate_id, submitter=submitter),
        record=record,
        node=ig.FlowNode(gate_id),
        context=context,
        identity=identity,
    )
    gate.start()
    return gate


def main() -> None:
    root = Path(tempfile.mkdtemp(prefix="input-gate-"))
    record = ig.ExecutionRecord("release #7", "job/release/7/", root_dir=root)
    identity = ig.ContextIdentityProvider(cancel_groups=["admins"])

    alice, bob, carol = ig.Principal("alice"), ig.Principal("bob"), ig.Principal("carol")

    print("Gate 'Backend' needs alice and (bob or carol):")
    backend = _gate(record, identity, "Backend", "alice and (bob or carol)")
    backend.cast_vote(alice)
    print(f"  ledger after alice: {backend.ledger}")
    backend.cast_vote(alice)
    print(f"  ledger after alice again: {backend.ledger}")
    backend.cast_vote(carol)
    print(f"  state: {backend.state.value}")

    print("\nGate 'Frontend' needs alice, bob; an admin aborts it:")
    frontend = _gate(record, identity, "Frontend", "alice, bob")
    try:
        frontend.cast_vote(carol)
    except ig.AuthorizationError as exc:
        print(f"  carol denied: {exc}")
    outcome = frontend.cancel(ig.Principal("root", frozenset({"admins"})))
    print(f"  outcome: {outcome.kind.value} by {outcome.rejected_by}")

    try:
        frontend.cast_vote(alice)
    except ig.AlreadySettledError as exc:
        print(f"  late vote: {exc}")


if __name__ == "__main__":
    main()
