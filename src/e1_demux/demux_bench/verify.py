from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Literal

import attrs

from .errors import ResultMismatch
from .source import DEFAULT_SEED, ByteSource, seeded_source
from .strategies import DemuxStrategy, allocate_outputs, make_oracle

logger = logging.getLogger(__name__)

VerificationStatus = Literal["pass", "fail"]


@attrs.define(frozen=True, slots=True)
class Verification:
    status: VerificationStatus
    mode: str = "full"
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status, "mode": self.mode}
        if self.details is not None:
            out["details"] = self.details
        return out


def find_first_mismatch(
    expected: Sequence[Sequence[int]], actual: Sequence[Sequence[int]]
) -> tuple[int, int] | None:
    """Return the first (channel, offset) where the buffer sets differ, or None."""
    if len(expected) != len(actual):
        # A missing channel differs at its first byte.
        return min(len(expected), len(actual)), 0
    for ch, (exp, act) in enumerate(zip(expected, actual)):
        if exp == act:
            continue
        for pos, (e, a) in enumerate(zip(exp, act)):
            if e != a:
                return ch, pos
        if len(exp) != len(act):
            return ch, min(len(exp), len(act))
    return None


def _byte_at(buffers: Sequence[Sequence[int]], channel: int, offset: int) -> int | None:
    if channel >= len(buffers) or offset >= len(buffers[channel]):
        return None
    return int(buffers[channel][offset])


def verify(strategy: DemuxStrategy, *, source: ByteSource | None = None, seed: int = DEFAULT_SEED) -> None:
    """Check `strategy` against the reference strategy on one deterministic frame.

    Raises ResultMismatch at the first differing (channel, offset).
    """
    geometry = strategy.geometry
    source = seeded_source(seed) if source is None else source
    src = source(geometry.frame_size)

    oracle = make_oracle(geometry)
    expected = allocate_outputs(geometry)
    oracle.demux(src, expected)

    actual = allocate_outputs(geometry)
    strategy.demux(src, actual)

    loc = find_first_mismatch(expected, actual)
    if loc is not None:
        channel, offset = loc
        raise ResultMismatch(
            strategy=strategy.name,
            channel=channel,
            offset=offset,
            expected=_byte_at(expected, channel, offset),
            actual=_byte_at(actual, channel, offset),
        )
    logger.debug("verified %s on %s", strategy.name, geometry.to_axis_value())


def check_strategy(strategy: DemuxStrategy, *, source: ByteSource | None = None, seed: int = DEFAULT_SEED) -> Verification:
    """Run `verify` and fold the outcome into a Verification record.

    A strategy that raises instead of producing output is recorded as failed.
    """
    try:
        verify(strategy, source=source, seed=seed)
    except ResultMismatch as e:
        logger.warning("%s", e)
        return Verification(status="fail", details=str(e))
    except Exception as e:
        # Buffers are sized by the geometry here, so any error is the strategy's own.
        logger.warning("%s raised on %s", strategy.name, strategy.geometry.to_axis_value(), exc_info=True)
        return Verification(status="fail", details=f"Strategy {strategy.name!r} raised {type(e).__name__}: {e}")
    return Verification(status="pass")
