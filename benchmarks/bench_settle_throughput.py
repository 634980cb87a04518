"""Benchmark: Gate settlement throughput.

Starts a multi-approver gate per iteration and votes it through to
acceptance, measuring the full start-vote-settle cycle including the
state save to disk.
"""
from __future__ import annotations

import json
import sys
import tempfile
import time
import tracemalloc
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_input_gate.approval.gate import PauseGate
from aumos_input_gate.approval.request import GateRequest
from aumos_input_gate.engine.context import CallbackStepContext
from aumos_input_gate.engine.execution import ExecutionRecord, FlowNode
from aumos_input_gate.permissions.principal import Principal
from aumos_input_gate.permissions.provider import ContextIdentityProvider

_ITERATIONS: int = 500
_APPROVERS: tuple[Principal, ...] = (Principal("alice"), Principal("bob"), Principal("carol"))


def _settle_one(record: ExecutionRecord, identity: ContextIdentityProvider, index: int) -> None:
    gate = PauseGate(
        GateRequest("Ship it?", id=f"Gate{index}", submitter="alice and bob and carol"),
        record=record,
        node=FlowNode(str(index)),
        context=CallbackStepContext(),
        identity=identity,
    )
    gate.start()
    for principal in _APPROVERS:
        gate.cast_vote(principal)


def bench_settle_throughput() -> dict[str, object]:
    """Benchmark the start-vote-settle cycle of a three-approver gate.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    identity = ContextIdentityProvider()
    with tempfile.TemporaryDirectory() as tmp:
        record = ExecutionRecord("bench #1", "job/bench/1/", root_dir=Path(tmp))

        tracemalloc.start()
        latencies_ms: list[float] = []
        for i in range(_ITERATIONS):
            t0 = time.perf_counter()
            _settle_one(record, identity, i)
            latencies_ms.append((time.perf_counter() - t0) * 1000)
        _, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "gate_settle_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
        "memory_peak_mb": round(peak / (1024 * 1024), 3),
    }
    print(
        f"[bench_settle_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"p99={result['p99_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_settle_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "settle_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
