"""E1 demultiplexer benchmark.

This package holds the family of interchangeable demultiplex strategies, a
verifier that checks each of them byte-for-byte against the reference
strategy, and a timing harness. The orchestration layer runs verified
strategies over named frame geometries, writes a schema-validated
`results.json` and renders a Markdown report from it.
"""

from __future__ import annotations

from .config import E1, FrameGeometry
from .errors import DemuxError, PreconditionViolation, ResultMismatch
from .harness import benchmark
from .strategies import STRATEGIES, DemuxStrategy, allocate_outputs, make_oracle, make_strategy
from .verify import verify

__all__ = [
    "E1",
    "STRATEGIES",
    "DemuxError",
    "DemuxStrategy",
    "FrameGeometry",
    "PreconditionViolation",
    "ResultMismatch",
    "allocate_outputs",
    "benchmark",
    "make_oracle",
    "make_strategy",
    "verify",
]
