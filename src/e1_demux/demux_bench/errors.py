from __future__ import annotations


class DemuxError(Exception):
    """Base class for demultiplexer failures."""


class PreconditionViolation(DemuxError, ValueError):
    """Buffers passed to a strategy do not match its frame geometry."""


class ResultMismatch(DemuxError):
    """A strategy disagrees with the reference strategy on one output byte."""

    def __init__(self, *, strategy: str, channel: int, offset: int, expected: int | None, actual: int | None) -> None:
        self.strategy = strategy
        self.channel = channel
        self.offset = offset
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Strategy {strategy!r} differs from reference at channel {channel} offset {offset}: "
            f"expected {_fmt_byte(expected)}, got {_fmt_byte(actual)}"
        )


def _fmt_byte(v: int | None) -> str:
    if v is None:
        return "<missing>"
    return f"0x{v:02x}"
