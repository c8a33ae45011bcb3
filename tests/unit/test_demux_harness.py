from __future__ import annotations

import itertools

import pytest

from e1_demux.demux_bench.config import E1
from e1_demux.demux_bench.harness import benchmark, summarize
from e1_demux.demux_bench.source import seeded_bytes
from e1_demux.demux_bench.strategies import Reference, make_strategy


class _CountingReference(Reference):
    name = "counting_reference"
    description = "Reference that counts calls and the output buffers it was given."

    def __init__(self, geometry):
        super().__init__(geometry)
        self.calls = 0
        self.buffer_ids: set[int] = set()

    def _transpose(self, src, dst):
        self.calls += 1
        self.buffer_ids.add(id(dst))
        super()._transpose(src, dst)


def _fake_clock(step: float = 0.25):
    ticks = itertools.count(0.0, step)
    return lambda: next(ticks)


def test_benchmark_returns_one_sample_per_repetition() -> None:
    strategy = make_strategy("dest_major_hoisted", E1)
    samples = benchmark(strategy, seeded_bytes(E1.frame_size), iterations=1000, repetitions=5)
    assert len(samples) == 5
    assert all(s >= 0.0 for s in samples)


def test_benchmark_uses_injected_clock_and_reuses_buffers() -> None:
    strategy = _CountingReference(E1)
    samples = benchmark(
        strategy,
        seeded_bytes(E1.frame_size),
        iterations=3,
        repetitions=4,
        warmup=2,
        clock=_fake_clock(0.25),
    )
    assert samples == [0.25, 0.25, 0.25, 0.25]
    assert strategy.calls == 2 + 3 * 4
    assert len(strategy.buffer_ids) == 1


def test_benchmark_clamps_backwards_clock_to_zero() -> None:
    ticks = iter([5.0, 4.0])
    samples = benchmark(
        make_strategy("reference", E1),
        seeded_bytes(E1.frame_size),
        iterations=1,
        repetitions=1,
        clock=lambda: next(ticks),
    )
    assert samples == [0.0]


def test_benchmark_with_zero_iterations() -> None:
    strategy = _CountingReference(E1)
    samples = benchmark(strategy, seeded_bytes(E1.frame_size), iterations=0, repetitions=2, clock=_fake_clock())
    assert len(samples) == 2
    assert strategy.calls == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"iterations": -1, "repetitions": 1},
        {"iterations": 1, "repetitions": 0},
        {"iterations": 1, "repetitions": 1, "warmup": -1},
    ],
)
def test_benchmark_rejects_bad_counts(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        benchmark(make_strategy("reference", E1), seeded_bytes(E1.frame_size), **kwargs)


def test_summarize() -> None:
    s = summarize([0.004, 0.002, 0.003], iterations=1000, frame_size=2048)
    assert s.min_s == 0.002
    assert s.median_s == 0.003
    assert s.mean_s == pytest.approx(0.003)
    assert s.best_call_us == pytest.approx(2.0)
    assert s.throughput_mib_s == pytest.approx(2048 * 1000 / 0.002 / (1024 * 1024))
    assert set(s.to_dict()) == {"min_s", "median_s", "mean_s", "best_call_us", "throughput_mib_s"}


def test_summarize_without_calls_or_time() -> None:
    s = summarize([0.0, 0.0], iterations=0, frame_size=2048)
    assert s.best_call_us is None
    assert s.throughput_mib_s is None

    s2 = summarize([0.0], iterations=10, frame_size=2048)
    assert s2.best_call_us == 0.0
    assert s2.throughput_mib_s is None

    with pytest.raises(ValueError):
        summarize([], iterations=1, frame_size=1)
