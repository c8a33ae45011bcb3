from __future__ import annotations

import random
from collections.abc import Callable

ByteSource = Callable[[int], bytes]

DEFAULT_SEED = 1


def seeded_bytes(n: int, *, seed: int = DEFAULT_SEED) -> bytes:
    """Deterministic pseudo-random bytes; the same (n, seed) always yields the same buffer."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return random.Random(seed).randbytes(n)


def seeded_source(seed: int = DEFAULT_SEED) -> ByteSource:
    def _source(n: int) -> bytes:
        return seeded_bytes(n, seed=seed)

    return _source
