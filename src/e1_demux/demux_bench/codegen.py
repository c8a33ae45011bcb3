"""Source generation for the unrolled strategies.

Each unrolled variant is rendered as Python source from the frame geometry,
compiled once and cached per (variant, geometry). Every index in the rendered
body is a literal, so the generated functions carry no loop control (or, for
`unrolled_inner`, only the channel loop).
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import cast

from .config import FrameGeometry

DemuxFn = Callable[..., None]

INDENT = "    "


def _function_name(kind: str) -> str:
    return f"demux_{kind}"


def _src_index(channel: int, offset: int, channel_count: int) -> int:
    return offset * channel_count + channel


def render_unrolled_inner(geometry: FrameGeometry) -> str:
    c = geometry.channel_count
    lines = [f"def {_function_name('unrolled_inner')}(src, dst):"]
    lines.append(f"{INDENT}for ch in range({c}):")
    lines.append(f"{INDENT * 2}d = dst[ch]")
    for p in range(geometry.channel_capacity):
        base = p * c
        expr = "src[ch]" if base == 0 else f"src[ch + {base}]"
        lines.append(f"{INDENT * 2}d[{p}] = {expr}")
    return "\n".join(lines) + "\n"


def render_unrolled_full(geometry: FrameGeometry) -> str:
    c = geometry.channel_count
    lines = [f"def {_function_name('unrolled_full')}(src, dst):"]
    for ch in range(c):
        lines.append(f"{INDENT}d = dst[{ch}]")
        for p in range(geometry.channel_capacity):
            lines.append(f"{INDENT}d[{p}] = src[{_src_index(ch, p, c)}]")
    return "\n".join(lines) + "\n"


def render_unrolled_per_channel(geometry: FrameGeometry) -> str:
    c = geometry.channel_count
    lines: list[str] = []
    for ch in range(c):
        lines.append(f"def _channel_{ch}(src, d):")
        for p in range(geometry.channel_capacity):
            lines.append(f"{INDENT}d[{p}] = src[{_src_index(ch, p, c)}]")
        lines.append("")
    lines.append(f"def {_function_name('unrolled_per_channel')}(src, dst):")
    for ch in range(c):
        lines.append(f"{INDENT}_channel_{ch}(src, dst[{ch}])")
    return "\n".join(lines) + "\n"


_RENDERERS: dict[str, Callable[[FrameGeometry], str]] = {
    "unrolled_inner": render_unrolled_inner,
    "unrolled_full": render_unrolled_full,
    "unrolled_per_channel": render_unrolled_per_channel,
}


def render(kind: str, geometry: FrameGeometry) -> str:
    if kind not in _RENDERERS:
        raise KeyError(f"Unknown unrolled kind={kind!r}. Known: {sorted(_RENDERERS)}")
    return _RENDERERS[kind](geometry)


@functools.lru_cache(maxsize=None)
def compile_unrolled(kind: str, geometry: FrameGeometry) -> DemuxFn:
    """Return the generated demux function for `kind` specialized to `geometry`."""
    source = render(kind, geometry)
    filename = f"<e1_demux {kind} {geometry.to_axis_value()}>"
    code = compile(source, filename, "exec")
    namespace: dict[str, object] = {}
    exec(code, namespace)
    return cast(DemuxFn, namespace[_function_name(kind)])
