from __future__ import annotations

from pathlib import Path
from typing import Any

from mdutils.mdutils import MdUtils  # type: ignore[import-untyped]

from .config import FrameGeometry
from .export import geometry_from_dict, load_results
from .strategies import ORACLE_NAME, STRATEGIES


def _format_float(v: float | None, digits: int = 3) -> str:
    if v is None:
        return "NA"
    return f"{v:.{digits}f}"


def _geometry(rec: dict[str, Any]) -> FrameGeometry:
    return geometry_from_dict(rec["geometry"])


def _best_call_us(rec: dict[str, Any]) -> float | None:
    timing = rec.get("timing")
    if not isinstance(timing, dict):
        return None
    v = timing.get("best_call_us")
    return float(v) if isinstance(v, (int, float)) else None


def _safe_ratio(num: float | None, den: float | None) -> float | None:
    if num is None or den is None or den == 0:
        return None
    return num / den


def _group_by_geometry(records: list[dict[str, Any]]) -> dict[FrameGeometry, list[dict[str, Any]]]:
    by_geometry: dict[FrameGeometry, list[dict[str, Any]]] = {}
    for r in records:
        by_geometry.setdefault(_geometry(r), []).append(r)
    return dict(sorted(by_geometry.items(), key=lambda kv: (kv[0].channel_count, kv[0].channel_capacity)))


def compute_ratios_in_place(results: dict[str, Any]) -> None:
    """Fill per-record ratios relative to the reference strategy of the same geometry.

    - ratio_to_reference: best per-call time / reference best per-call time.
    - speedup_over_reference: the inverse.
    """
    for recs in _group_by_geometry(results.get("records", [])).values():
        by_strategy = {r["strategy"]: r for r in recs}
        ref = by_strategy.get(ORACLE_NAME)
        ref_t = None if ref is None else _best_call_us(ref)

        for r in recs:
            existing = r.get("ratios")
            ratios: dict[str, Any] = existing if isinstance(existing, dict) else {}
            t = _best_call_us(r)
            ratio = _safe_ratio(t, ref_t)
            if ratio is not None:
                ratios["ratio_to_reference"] = float(ratio)
            speedup = _safe_ratio(ref_t, t)
            if speedup is not None:
                ratios["speedup_over_reference"] = float(speedup)
            r["ratios"] = ratios


def fastest_strategy(recs: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Fastest verified, timed record of one geometry group."""
    timed = [r for r in recs if r["verification"]["status"] == "pass" and _best_call_us(r) is not None]
    if not timed:
        return None
    return min(timed, key=lambda r: _best_call_us(r) or 0.0)


def _sort_key(rec: dict[str, Any]) -> tuple[int, float, str]:
    t = _best_call_us(rec)
    return (0 if t is not None else 1, t if t is not None else 0.0, str(rec["strategy"]))


def build_report(results: dict[str, Any], *, file_name: str) -> MdUtils:
    compute_ratios_in_place(results)
    records = list(results.get("records", []))
    run = results.get("run", {})

    md = MdUtils(file_name=file_name, title="E1 Demultiplexer Benchmark Report")
    md.new_header(level=1, title="Run Metadata")
    git = run.get("git", {})
    env = run.get("environment", {})
    bench = run.get("settings", {}).get("bench", {})
    md.new_list(
        [
            f"Branch: `{git.get('branch', '')}`",
            f"Commit: `{git.get('commit', '')}`",
            f"Status: `{run.get('status', '')}`",
            f"Platform: `{env.get('platform', {}).get('os', '')}/{env.get('platform', {}).get('arch', '')}`",
            f"Python: `{env.get('python', {}).get('implementation', '')} {env.get('python', {}).get('version', '')}`",
            f"Iterations x repetitions: `{bench.get('iterations', 'NA')} x {bench.get('repetitions', 'NA')}`",
        ]
    )
    if run.get("failure_reason"):
        md.new_paragraph(f"Failure reason: `{run['failure_reason']}`")

    header = ["strategy", "best_call_us", "median_round_ms", "throughput_MiB_s", "ratio_to_reference", "speedup", "verify"]
    for geometry, recs in _group_by_geometry(records).items():
        md.new_header(level=1, title=f"Geometry {geometry.to_axis_value()} ({geometry.frame_size} bytes/frame)")

        best = fastest_strategy(recs)
        if best is None:
            md.new_paragraph("No verified timings for this geometry.")
        else:
            md.new_paragraph(f"Fastest: `{best['strategy']}` at {_format_float(_best_call_us(best))} us/frame.")

        table_lines = [
            "| " + " | ".join(header) + " |",
            "|---|--:|--:|--:|--:|--:|---|",
        ]
        for r in sorted(recs, key=_sort_key):
            timing = r.get("timing") or {}
            ratios = r.get("ratios") or {}
            median_s = timing.get("median_s")
            table_lines.append(
                "| "
                + " | ".join(
                    [
                        f"`{r['strategy']}`",
                        _format_float(_best_call_us(r)),
                        _format_float(None if median_s is None else median_s * 1e3),
                        _format_float(timing.get("throughput_mib_s"), 1),
                        _format_float(ratios.get("ratio_to_reference")),
                        _format_float(ratios.get("speedup_over_reference"), 2),
                        r["verification"]["status"],
                    ]
                )
                + " |"
            )
        md.new_paragraph("\n".join(table_lines))

        failed = [r for r in recs if r["verification"]["status"] == "fail"]
        if failed:
            md.new_header(level=2, title="Verification failures")
            md.new_list([f"`{r['strategy']}`: {r['verification'].get('details', '')}" for r in failed])

    md.new_header(level=1, title="Column Definitions")
    md.new_list(
        [
            "`strategy`: Registered demultiplex strategy name.",
            "`best_call_us`: Fastest round divided by calls per round, in microseconds per frame.",
            "`median_round_ms`: Median round duration in milliseconds.",
            "`throughput_MiB_s`: Input bytes demultiplexed per second in the fastest round.",
            f"`ratio_to_reference`: `best_call_us` relative to `{ORACLE_NAME}` (lower is faster).",
            f"`speedup`: `{ORACLE_NAME}` time divided by this strategy's time (higher is faster).",
            "`verify`: `pass` if the strategy matched the reference byte-for-byte; failed strategies are not timed.",
        ]
    )
    md.new_header(level=1, title="Strategies")
    md.new_list([f"`{name}`: {cls.description}" for name, cls in STRATEGIES.items()])
    md.new_paragraph("`NA` means the value is missing (e.g., verification failed and timing was skipped).")
    return md


def report_run(*, out_dir: Path) -> int:
    results_path = out_dir / "results.json"
    if not results_path.exists():
        raise FileNotFoundError(f"Missing results.json at {results_path}")

    results = load_results(results_path)
    md = build_report(results, file_name=str(out_dir / "report"))
    md.create_md_file()
    return 0
