from __future__ import annotations

import logging
import statistics
import time
from collections.abc import Callable, Sequence
from typing import Any

import attrs

from .strategies import DemuxStrategy, Src, allocate_outputs

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_MIB = 1024 * 1024


def benchmark(
    strategy: DemuxStrategy,
    src: Src,
    *,
    iterations: int,
    repetitions: int,
    warmup: int = 0,
    clock: Clock = time.perf_counter,
) -> list[float]:
    """Time `repetitions` rounds of `iterations` calls each; return per-round seconds.

    Output buffers are allocated once and reused for every call: each call
    overwrites them completely. The strategy is expected to be verified already.
    """
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")
    if repetitions < 1:
        raise ValueError(f"repetitions must be positive, got {repetitions}")
    if warmup < 0:
        raise ValueError(f"warmup must be non-negative, got {warmup}")

    dst = allocate_outputs(strategy.geometry)
    demux = strategy.demux

    for _ in range(warmup):
        demux(src, dst)

    samples: list[float] = []
    for rep in range(repetitions):
        start = clock()
        for _ in range(iterations):
            demux(src, dst)
        elapsed = max(0.0, clock() - start)
        logger.debug("%s round %d: %.6fs for %d call(s)", strategy.name, rep, elapsed, iterations)
        samples.append(elapsed)
    return samples


@attrs.define(frozen=True, slots=True)
class TimingSummary:
    min_s: float
    median_s: float
    mean_s: float
    best_call_us: float | None
    throughput_mib_s: float | None

    def to_dict(self) -> dict[str, Any]:
        return attrs.asdict(self)


def summarize(samples: Sequence[float], *, iterations: int, frame_size: int) -> TimingSummary:
    if not samples:
        raise ValueError("Cannot summarize an empty sample list")
    best = min(samples)
    best_call_us: float | None = None
    throughput: float | None = None
    if iterations > 0:
        best_call_us = best / iterations * 1e6
        if best > 0:
            throughput = frame_size * iterations / best / _MIB
    return TimingSummary(
        min_s=best,
        median_s=statistics.median(samples),
        mean_s=statistics.fmean(samples),
        best_call_us=best_call_us,
        throughput_mib_s=throughput,
    )
