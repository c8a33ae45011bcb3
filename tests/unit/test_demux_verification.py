from __future__ import annotations

import pytest

from e1_demux.demux_bench.config import E1, FrameGeometry
from e1_demux.demux_bench.errors import DemuxError, ResultMismatch
from e1_demux.demux_bench.strategies import STRATEGIES, Dst, Reference, Src, make_strategy
from e1_demux.demux_bench.verify import check_strategy, find_first_mismatch, verify


class _FlipOneByte(Reference):
    name = "flip_one_byte"
    description = "Reference with channel 2 offset 5 corrupted."

    def _transpose(self, src: Src, dst: Dst) -> None:
        super()._transpose(src, dst)
        dst[2][5] ^= 0xFF


class _SkipsLastChannel(Reference):
    name = "skips_last_channel"
    description = "Off-by-one channel loop."

    def _transpose(self, src: Src, dst: Dst) -> None:
        c = self.geometry.channel_count
        for ch in range(c - 1):
            for pos in range(self.geometry.channel_capacity):
                dst[ch][pos] = src[pos * c + ch]


@pytest.mark.parametrize("name", list(STRATEGIES))
def test_every_registered_strategy_verifies(name: str) -> None:
    verify(make_strategy(name, E1))
    verify(make_strategy(name, FrameGeometry(7, 9)), seed=42)


def test_mismatch_reports_channel_and_offset() -> None:
    with pytest.raises(ResultMismatch) as ei:
        verify(_FlipOneByte(E1))
    err = ei.value
    assert err.strategy == "flip_one_byte"
    assert (err.channel, err.offset) == (2, 5)
    assert err.expected is not None and err.actual == err.expected ^ 0xFF
    assert "channel 2 offset 5" in str(err)
    assert isinstance(err, DemuxError)


def test_mismatch_on_untouched_channel() -> None:
    # Constant non-zero input so the untouched zero-filled channel always differs.
    with pytest.raises(ResultMismatch) as ei:
        verify(_SkipsLastChannel(E1), source=lambda n: b"\x01" * n)
    assert (ei.value.channel, ei.value.offset) == (31, 0)
    assert ei.value.expected == 1
    assert ei.value.actual == 0


def test_verify_uses_supplied_source() -> None:
    calls: list[int] = []

    def source(n: int) -> bytes:
        calls.append(n)
        return bytes(n)

    verify(make_strategy("dest_major", E1), source=source)
    assert calls == [E1.frame_size]


def test_find_first_mismatch() -> None:
    a = [bytearray(b"abc"), bytearray(b"def")]
    assert find_first_mismatch(a, [bytearray(b"abc"), bytearray(b"def")]) is None
    assert find_first_mismatch(a, [bytearray(b"abc"), bytearray(b"dxf")]) == (1, 1)
    assert find_first_mismatch(a, [bytearray(b"ab"), bytearray(b"def")]) == (0, 2)
    assert find_first_mismatch(a, [bytearray(b"abc")]) == (1, 0)
    assert find_first_mismatch(a, [list(b"abc"), list(b"def")]) is None


def test_check_strategy_records_outcome() -> None:
    ok = check_strategy(make_strategy("strided_slice", E1))
    assert ok.status == "pass"
    assert ok.to_dict() == {"status": "pass", "mode": "full"}

    bad = check_strategy(_FlipOneByte(E1))
    assert bad.status == "fail"
    assert bad.details is not None and "flip_one_byte" in bad.details
    assert bad.to_dict()["details"] == bad.details


class _RunsPastFrame(Reference):
    name = "runs_past_frame"
    description = "Reads one byte beyond the input."

    def _transpose(self, src: Src, dst: Dst) -> None:
        dst[0][0] = src[len(src)]


def test_check_strategy_records_raising_strategy_as_failed() -> None:
    v = check_strategy(_RunsPastFrame(E1))
    assert v.status == "fail"
    assert v.details is not None
    assert "runs_past_frame" in v.details
    assert "IndexError" in v.details
