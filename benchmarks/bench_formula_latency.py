"""Benchmark: Submitter formula latency, per-evaluation p99.

Measures the per-call latency of Formula.evaluate() for a formula with a
typical number of approvers, capturing the latency distribution.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_input_gate.expressions.formula import Formula

_WARMUP: int = 100
_ITERATIONS: int = 5_000
_EXPRESSION: str = "(alice or bob) and (carol or dave) and not mallory, 'release managers'"


def _make_bindings(formula: Formula) -> dict[str, bool]:
    """Approve every other approver, in a fixed order."""
    return {name: i % 2 == 0 for i, name in enumerate(sorted(formula.variables))}


def bench_formula_evaluate_latency() -> dict[str, object]:
    """Benchmark Formula.evaluate() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    formula = Formula.parse(_EXPRESSION)
    bindings = _make_bindings(formula)

    for _ in range(_WARMUP):
        formula.evaluate(bindings)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        formula.evaluate(bindings)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "formula_evaluate_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_formula_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_formula_evaluate_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "formula_latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
