"""Demultiplex strategies.

Every strategy realizes the same mapping from one interleaved frame to its
channels, `dst[c][p] = src[p * C + c]`, and differs only in traversal order and
index arithmetic. `DemuxStrategy.demux` checks buffer sizes against the
strategy's geometry before any byte is written; subclasses implement
`_transpose` only.
"""

from __future__ import annotations

import abc
from collections.abc import Iterable, MutableSequence, Sequence
from typing import ClassVar

from . import codegen
from .config import FrameGeometry
from .errors import PreconditionViolation

Src = Sequence[int]
Dst = Sequence[MutableSequence[int]]


def allocate_outputs(geometry: FrameGeometry) -> list[bytearray]:
    return [bytearray(geometry.channel_capacity) for _ in range(geometry.channel_count)]


class DemuxStrategy(abc.ABC):
    name: ClassVar[str]
    description: ClassVar[str]

    def __init__(self, geometry: FrameGeometry) -> None:
        self.geometry = geometry

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.geometry.to_axis_value()})"

    def check_buffers(self, src: Src, dst: Dst) -> None:
        g = self.geometry
        if len(src) != g.frame_size:
            raise PreconditionViolation(
                f"{self.name}: input length {len(src)} != {g.channel_count}*{g.channel_capacity}={g.frame_size}"
            )
        if len(dst) != g.channel_count:
            raise PreconditionViolation(f"{self.name}: got {len(dst)} output buffers, expected {g.channel_count}")
        for c, d in enumerate(dst):
            if len(d) != g.channel_capacity:
                raise PreconditionViolation(
                    f"{self.name}: output buffer {c} has length {len(d)}, expected {g.channel_capacity}"
                )

    def demux(self, src: Src, dst: Dst) -> None:
        self.check_buffers(src, dst)
        self._transpose(src, dst)

    @abc.abstractmethod
    def _transpose(self, src: Src, dst: Dst) -> None: ...


class Reference(DemuxStrategy):
    name = "reference"
    description = "Walk the input once; channel/offset counters wrap every C bytes."

    def _transpose(self, src: Src, dst: Dst) -> None:
        num_channels = self.geometry.channel_count
        dst_pos = 0
        dst_num = 0
        for b in src:
            dst[dst_num][dst_pos] = b
            dst_num += 1
            if dst_num == num_channels:
                dst_num = 0
                dst_pos += 1


class SourceMajorMul(DemuxStrategy):
    name = "source_major_mul"
    description = "Outer loop over offset, inner over channel; input index offset*C + channel."

    def _transpose(self, src: Src, dst: Dst) -> None:
        num_channels = self.geometry.channel_count
        for pos in range(self.geometry.channel_capacity):
            for ch in range(num_channels):
                dst[ch][pos] = src[pos * num_channels + ch]


class SourceMajorDivmod(DemuxStrategy):
    name = "source_major_divmod"
    description = "One loop over the input; offset, channel = divmod(i, C) per byte."

    def _transpose(self, src: Src, dst: Dst) -> None:
        num_channels = self.geometry.channel_count
        for i, b in enumerate(src):
            pos, ch = divmod(i, num_channels)
            dst[ch][pos] = b


class DestMajor(DemuxStrategy):
    name = "dest_major"
    description = "Outer loop over channel, inner over offset; strided reads."

    def _transpose(self, src: Src, dst: Dst) -> None:
        num_channels = self.geometry.channel_count
        for ch in range(num_channels):
            for pos in range(len(dst[ch])):
                dst[ch][pos] = src[pos * num_channels + ch]


class DestMajorHoisted(DemuxStrategy):
    name = "dest_major_hoisted"
    description = "Channel-major; output buffer and input cursor bound once per channel."

    def _transpose(self, src: Src, dst: Dst) -> None:
        num_channels = len(dst)
        for ch in range(num_channels):
            d = dst[ch]
            s = ch
            for pos in range(len(d)):
                d[pos] = src[s]
                s += num_channels


class DestMajorFixed(DemuxStrategy):
    name = "dest_major_fixed"
    description = "As dest_major_hoisted, bounds taken from the geometry constants."

    def __init__(self, geometry: FrameGeometry) -> None:
        super().__init__(geometry)
        self._channels = range(geometry.channel_count)
        self._offsets = range(geometry.channel_capacity)

    def _transpose(self, src: Src, dst: Dst) -> None:
        step = self.geometry.channel_count
        offsets = self._offsets
        for ch in self._channels:
            d = dst[ch]
            s = ch
            for pos in offsets:
                d[pos] = src[s]
                s += step


class StridedSlice(DemuxStrategy):
    name = "strided_slice"
    description = "One extended-slice copy per channel: dst[c][:] = src[c::C]."

    def _transpose(self, src: Src, dst: Dst) -> None:
        step = self.geometry.channel_count
        for ch in range(step):
            dst[ch][:] = src[ch::step]


class _Generated(DemuxStrategy):
    """Strategy backed by a function rendered by `codegen` for one geometry."""

    def __init__(self, geometry: FrameGeometry) -> None:
        super().__init__(geometry)
        self._fn = codegen.compile_unrolled(self.name, geometry)

    def _transpose(self, src: Src, dst: Dst) -> None:
        self._fn(src, dst)


class UnrolledInner(_Generated):
    name = "unrolled_inner"
    description = "Channel loop kept; offset loop expanded to literal assignments."


class UnrolledFull(_Generated):
    name = "unrolled_full"
    description = "Every (channel, offset) assignment written against a literal input index."


class UnrolledPerChannel(_Generated):
    name = "unrolled_per_channel"
    description = "One generated function per channel, called from a dispatcher."


STRATEGIES: dict[str, type[DemuxStrategy]] = {
    cls.name: cls
    for cls in (
        Reference,
        SourceMajorMul,
        SourceMajorDivmod,
        DestMajor,
        DestMajorHoisted,
        DestMajorFixed,
        UnrolledInner,
        UnrolledFull,
        UnrolledPerChannel,
        StridedSlice,
    )
}

ORACLE_NAME = Reference.name


def make_strategy(name: str, geometry: FrameGeometry) -> DemuxStrategy:
    if name not in STRATEGIES:
        raise KeyError(f"Unknown strategy={name!r}. Known: {list(STRATEGIES)}")
    return STRATEGIES[name](geometry)


def make_oracle(geometry: FrameGeometry) -> DemuxStrategy:
    return make_strategy(ORACLE_NAME, geometry)


def iter_strategy_names(selection: str) -> Iterable[str]:
    """Resolve `all`, a single name, or a comma-separated list of names."""
    if selection == "all":
        return tuple(STRATEGIES)
    names = [s.strip() for s in selection.split(",") if s.strip()]
    if not names:
        raise KeyError(f"Empty strategy selection. Known: {list(STRATEGIES)}")
    unknown = [n for n in names if n not in STRATEGIES]
    if unknown:
        raise KeyError(f"Unknown strategy={unknown[0]!r}. Known: {list(STRATEGIES)}")
    return tuple(dict.fromkeys(names))
