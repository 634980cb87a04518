#!/usr/bin/env python3
"""Example: Answering a gate over HTTP.

Starts the input server in the background, fetches a crumb for the
approver, and posts the approval the way a reverse proxy would forward
it, with the user in ``X-Remote-User``.

Usage:
    python examples/03_http_server.py
"""
from __future__ import annotations

import json
import tempfile
import urllib.request
from pathlib import Path

import aumos_input_gate as ig
from aumos_input_gate.server import CrumbIssuer, InputGateApi, InputGateServer


def _call(url: str, user: str, data: bytes | None = None, headers: dict[str, str] | None = None) -> object:
    request = urllib.request.Request(url, data=data, headers={"X-Remote-User": user, **(headers or {})})
    with urllib.request.urlopen(request) as resp:
        return json.loads(resp.read())


def main() -> None:
    root = Path(tempfile.mkdtemp(prefix="input-gate-"))
    record = ig.ExecutionRecord("deploy #42", "job/deploy/42/", root_dir=root)
    identity = ig.ContextIdentityProvider()
    context = ig.CallbackStepContext()

    gate = ig.PauseGate(
        ig.GateRequest(
            "Deploy to production?",
            id="Deploy",
            submitter="alice",
            parameters=(ig.BooleanParameter("dry_run"),),
        ),
        record=record,
        node=ig.FlowNode("1"),
        context=context,
        identity=identity,
    )
    gate.start()

    api = InputGateApi(identity=identity, crumbs=CrumbIssuer("example-secret"))
    api.add_record(record)
    server = InputGateServer(api=api, host="127.0.0.1", port=8765)
    server.start_background()
    try:
        pending = _call(f"{server.url}job/deploy/42/input/", "alice")
        print(f"Pending inputs: {[g['id'] for g in pending]}")  # type: ignore[union-attr,index]

        crumb = _call(f"{server.url}crumbIssuer", "alice")["crumb"]  # type: ignore[index]
        body = json.dumps({"parameter": [{"name": "dry_run", "value": True}]}).encode()
        result = _call(
            f"{server.url}job/deploy/42/input/Deploy/proceed",
            "alice",
            data=body,
            headers={"Content-Type": "application/json", "X-Input-Crumb": crumb},
        )
        print(f"Proceed response: {result}")
        context.wait(5)
        print(f"Resumed with dry_run={context.result}")
    finally:
        server.stop()


if __name__ == "__main__":
    main()
