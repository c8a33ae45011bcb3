from __future__ import annotations

from pathlib import Path

from .config import BenchSettings, iter_geometries
from .export import load_results, record_key, validate_results_schema, write_results
from .runner import timing_run
from .strategies import STRATEGIES


def expected_record_keys(*, geometry_set: str) -> set[tuple]:
    return {
        (g.channel_count, g.channel_capacity, name)
        for g in iter_geometries(geometry_set)
        for name in STRATEGIES
    }


def sweep_run(*, out_dir: Path, geometry_set: str, settings: BenchSettings) -> int:
    out_dir.mkdir(parents=True, exist_ok=True)

    timing_run(out_dir=out_dir, strategy="all", geometry_set=geometry_set, settings=settings)

    results_path = out_dir / "results.json"
    results = load_results(results_path)

    expected = expected_record_keys(geometry_set=geometry_set)
    actual = {record_key(r) for r in results.get("records", []) or []}
    missing = sorted(expected - actual)
    if missing:
        results.setdefault("run", {})["status"] = "fail"
        results["run"]["failure_reason"] = f"missing {len(missing)} expected record(s)"
        # Keep the message short; details can be computed from expected/actual.
        validate_results_schema(results)
        write_results(results_path, results)

    return 0 if results.get("run", {}).get("status") == "pass" else 1
