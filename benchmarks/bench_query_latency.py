"""Benchmark: is_allowed latency — per-query p50/p99 over a deep hierarchy.

Builds an engine with a chain of inherited roles and a deep resource tree,
places the only matching rule at the far end of both, and measures the
per-call latency of AclManager.is_allowed() for that worst-case walk.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_acl.acl.manager import AclManager

_WARMUP: int = 100
_ITERATIONS: int = 5_000
_ROLE_DEPTH: int = 8
_RESOURCE_DEPTH: int = 8


def _build_engine() -> AclManager:
    """Role chain role-0 <- ... <- role-N and resource chain res-0 -> ... -> res-N."""
    acl = AclManager()
    acl.add_role("role-0")
    for i in range(1, _ROLE_DEPTH):
        acl.add_role(f"role-{i}", [f"role-{i - 1}"])
    acl.add_resource("res-0")
    for i in range(1, _RESOURCE_DEPTH):
        acl.add_resource(f"res-{i}", f"res-{i - 1}")
    acl.allow("role-0", "res-0", "read")
    return acl


def bench_query_latency() -> dict[str, object]:
    """Benchmark AclManager.is_allowed() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p50_latency_ms, p99_latency_ms.
    """
    acl = _build_engine()
    role = f"role-{_ROLE_DEPTH - 1}"
    resource = f"res-{_RESOURCE_DEPTH - 1}"

    for _ in range(_WARMUP):
        acl.is_allowed(role, resource, "read")

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        acl.is_allowed(role, resource, "read")
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "acl_query_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1) if total > 0 else 0.0,
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p50_latency_ms": round(sorted_lats[n // 2], 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_query_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_query_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "query_latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
