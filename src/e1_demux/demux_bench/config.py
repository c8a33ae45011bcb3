from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from typing import Any

import attrs


def _positive_int(instance: Any, attribute: attrs.Attribute, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{attribute.name} must be an int, got {value!r}")
    if value <= 0:
        raise ValueError(f"{attribute.name} must be positive, got {value}")


def _non_negative_int(instance: Any, attribute: attrs.Attribute, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{attribute.name} must be an int, got {value!r}")
    if value < 0:
        raise ValueError(f"{attribute.name} must be non-negative, got {value}")


@attrs.define(frozen=True, slots=True)
class FrameGeometry:
    """Number of interleaved channels and bytes per channel in one frame."""

    channel_count: int = attrs.field(validator=_positive_int)
    channel_capacity: int = attrs.field(validator=_positive_int)

    @property
    def frame_size(self) -> int:
        return self.channel_count * self.channel_capacity

    def to_axis_value(self) -> str:
        return f"{self.channel_count}x{self.channel_capacity}"

    @staticmethod
    def from_axis_value(v: str) -> "FrameGeometry":
        parts = v.split("x")
        if len(parts) != 2:
            raise ValueError(f"Invalid geometry axis value: {v!r}")
        c_s, l_s = parts
        try:
            return FrameGeometry(channel_count=int(c_s), channel_capacity=int(l_s))
        except ValueError as e:
            raise ValueError(f"Invalid geometry axis value: {v!r} ({e})") from e


NUM_TIMESLOTS = 32
DST_SIZE = 64
SRC_SIZE = NUM_TIMESLOTS * DST_SIZE

E1 = FrameGeometry(channel_count=NUM_TIMESLOTS, channel_capacity=DST_SIZE)


# Named geometry sets. The E1 frame is the primary target; the others probe how
# the traversal orders behave as the channel count or buffer depth changes.
GEOMETRY_SETS: dict[str, list[FrameGeometry]] = {
    "e1": [E1],
    # Minimal set intended for fast smoke runs (CI/local sanity).
    "smoke": [FrameGeometry(4, 8)],
    # Several E1 multiframes buffered per channel.
    "e1_multiframe": [FrameGeometry(NUM_TIMESLOTS, n) for n in (16, 64, 256, 1024)],
    # Same per-channel depth, varying channel count (T1-like 24, E1 32, and wider).
    "channel_scaling": [FrameGeometry(c, DST_SIZE) for c in (8, 24, 32, 64, 128)],
    "full_sweep": [
        FrameGeometry(4, 8),
        FrameGeometry(8, 64),
        FrameGeometry(24, 64),
        FrameGeometry(32, 16),
        FrameGeometry(32, 64),
        FrameGeometry(32, 256),
        FrameGeometry(32, 1024),
        FrameGeometry(64, 64),
        FrameGeometry(128, 64),
    ],
}


def iter_geometries(geometry_set: str) -> Iterable[FrameGeometry]:
    if geometry_set == "all":
        seen: set[FrameGeometry] = set()
        for named in GEOMETRY_SETS.values():
            for g in named:
                if g not in seen:
                    seen.add(g)
                    yield g
        return

    if geometry_set not in GEOMETRY_SETS:
        if "x" in geometry_set:
            # A single geometry given by its axis value, e.g. "32x64".
            yield FrameGeometry.from_axis_value(geometry_set)
            return
        raise KeyError(f"Unknown geometry_set={geometry_set!r}. Known: {sorted(GEOMETRY_SETS)}")
    yield from GEOMETRY_SETS[geometry_set]


ENV_PREFIX = "E1_DEMUX_"


@attrs.define(frozen=True, slots=True)
class BenchSettings:
    iterations: int = attrs.field(default=1000, validator=_non_negative_int)
    repetitions: int = attrs.field(default=5, validator=_positive_int)
    warmup: int = attrs.field(default=10, validator=_non_negative_int)
    seed: int = attrs.field(default=1, validator=_non_negative_int)

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "BenchSettings":
        """Defaults overridden by `E1_DEMUX_<FIELD>` environment variables."""
        env = os.environ if environ is None else environ
        overrides: dict[str, int] = {}
        for field in attrs.fields(BenchSettings):
            raw = env.get(f"{ENV_PREFIX}{field.name.upper()}")
            if raw is None or not raw.strip():
                continue
            try:
                overrides[field.name] = int(raw)
            except ValueError as e:
                raise ValueError(f"{ENV_PREFIX}{field.name.upper()} must be an integer, got {raw!r}") from e
        return BenchSettings(**overrides)

    def with_overrides(self, **kwargs: int | None) -> "BenchSettings":
        changes = {k: v for k, v in kwargs.items() if v is not None}
        return attrs.evolve(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return attrs.asdict(self)
