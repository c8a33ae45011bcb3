from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import BenchSettings, FrameGeometry, iter_geometries
from .export import build_results, find_repo_root, git_info, load_results, make_record, merge_results, now_rfc3339, write_results
from .harness import benchmark, summarize
from .source import seeded_bytes
from .strategies import iter_strategy_names, make_strategy
from .verify import Verification, check_strategy

logger = logging.getLogger(__name__)


def verify_all(*, strategy: str, geometry_set: str, seed: int) -> list[tuple[FrameGeometry, str, Verification]]:
    out: list[tuple[FrameGeometry, str, Verification]] = []
    names = list(iter_strategy_names(strategy))
    for geometry in iter_geometries(geometry_set):
        for name in names:
            v = check_strategy(make_strategy(name, geometry), seed=seed)
            logger.info("verify %-22s %-9s %s", name, geometry.to_axis_value(), v.status)
            out.append((geometry, name, v))
    return out


def measure_strategy(name: str, geometry: FrameGeometry, settings: BenchSettings) -> dict[str, Any]:
    """Verify one strategy and, only if it matches the reference, time it."""
    strategy = make_strategy(name, geometry)
    verification = check_strategy(strategy, seed=settings.seed)
    if verification.status != "pass":
        logger.info("skip timing %s on %s: verification failed", name, geometry.to_axis_value())
        return make_record(geometry=geometry, strategy=name, verification=verification, settings=settings)

    src = seeded_bytes(geometry.frame_size, seed=settings.seed)
    samples = benchmark(
        strategy,
        src,
        iterations=settings.iterations,
        repetitions=settings.repetitions,
        warmup=settings.warmup,
    )
    summary = summarize(samples, iterations=settings.iterations, frame_size=geometry.frame_size)
    logger.info(
        "time   %-22s %-9s best=%.6fs median=%.6fs",
        name,
        geometry.to_axis_value(),
        summary.min_s,
        summary.median_s,
    )
    return make_record(
        geometry=geometry,
        strategy=name,
        verification=verification,
        settings=settings,
        samples=samples,
        summary=summary,
    )


def timing_run(*, out_dir: Path, strategy: str, geometry_set: str, settings: BenchSettings) -> int:
    out_dir.mkdir(parents=True, exist_ok=True)

    names = list(iter_strategy_names(strategy))
    geometries = list(iter_geometries(geometry_set))
    started_at = now_rfc3339()

    records = [measure_strategy(name, g, settings) for g in geometries for name in names]

    results = build_results(
        records,
        settings=settings,
        git=git_info(find_repo_root()),
        artifacts_dir=out_dir,
        started_at=started_at,
    )
    results_path = out_dir / "results.json"
    if results_path.exists():
        results = merge_results(load_results(results_path), results)
    write_results(results_path, results)

    # Fail overall run if any verification failed.
    return 0 if results["run"]["status"] == "pass" else 1
