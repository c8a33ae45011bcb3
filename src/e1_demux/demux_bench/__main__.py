from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import GEOMETRY_SETS, BenchSettings
from .report import report_run
from .runner import timing_run, verify_all
from .strategies import ORACLE_NAME, STRATEGIES
from .sweep import sweep_run


def _abs_path(p: str) -> Path:
    return Path(p).expanduser().resolve()


def _add_settings_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--iterations", type=int, default=None, help="Calls per timed round (default: 1000 or $E1_DEMUX_ITERATIONS).")
    p.add_argument("--repetitions", type=int, default=None, help="Timed rounds (default: 5 or $E1_DEMUX_REPETITIONS).")
    p.add_argument("--warmup", type=int, default=None, help="Untimed calls before the first round (default: 10 or $E1_DEMUX_WARMUP).")
    p.add_argument("--seed", type=int, default=None, help="Seed of the input frame (default: 1 or $E1_DEMUX_SEED).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="e1_demux.demux_bench",
        description="E1 demultiplexer strategy verification and benchmark.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("list", help="List registered strategies and geometry sets.")

    verify = sub.add_parser("verify", help="Check strategies against the reference (no timing).")
    verify.add_argument("--strategy", default="all", help="Strategy name, comma list, or 'all'.")
    verify.add_argument("--geometry-set", default="e1", help="Named geometry set, a single CxL geometry, or 'all'.")
    verify.add_argument("--seed", type=int, default=None, help="Seed of the input frame.")

    timing = sub.add_parser("timing", help="Verify, then time strategies; writes results.json.")
    timing.add_argument("--out-dir", type=_abs_path, required=True)
    timing.add_argument("--strategy", default="all", help="Strategy name, comma list, or 'all'.")
    timing.add_argument("--geometry-set", default="e1", help="Named geometry set, a single CxL geometry, or 'all'.")
    _add_settings_args(timing)

    report = sub.add_parser("report", help="Generate report.md from results.json (no benchmark run).")
    report.add_argument("--out-dir", type=_abs_path, required=True)

    sweep = sub.add_parser("sweep", help="Time every strategy on every geometry of a set.")
    sweep.add_argument("--out-dir", type=_abs_path, required=True)
    sweep.add_argument("--geometry-set", default="full_sweep", help="Named geometry set (default: full_sweep).")
    _add_settings_args(sweep)

    return parser


def _settings(ns: argparse.Namespace) -> BenchSettings:
    return BenchSettings.from_env().with_overrides(
        iterations=ns.iterations,
        repetitions=ns.repetitions,
        warmup=ns.warmup,
        seed=ns.seed,
    )


def _list() -> int:
    print("Strategies:")
    for name, cls in STRATEGIES.items():
        marker = " (reference)" if name == ORACLE_NAME else ""
        print(f"  {name}{marker}: {cls.description}")
    print("Geometry sets:")
    for name, geometries in GEOMETRY_SETS.items():
        print(f"  {name}: {', '.join(g.to_axis_value() for g in geometries)}")
    return 0


def _verify(ns: argparse.Namespace) -> int:
    seed = BenchSettings.from_env().with_overrides(seed=ns.seed).seed
    outcomes = verify_all(strategy=ns.strategy, geometry_set=ns.geometry_set, seed=seed)
    failed = 0
    for geometry, name, v in outcomes:
        print(f"{v.status:4}  {geometry.to_axis_value():>9}  {name}")
        if v.status == "fail":
            failed += 1
            print(f"      {v.details}", file=sys.stderr)
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if ns.cmd == "list":
            return _list()
        if ns.cmd == "verify":
            return _verify(ns)
        if ns.cmd == "timing":
            return timing_run(out_dir=ns.out_dir, strategy=ns.strategy, geometry_set=ns.geometry_set, settings=_settings(ns))
        if ns.cmd == "report":
            return report_run(out_dir=ns.out_dir)
        if ns.cmd == "sweep":
            return sweep_run(out_dir=ns.out_dir, geometry_set=ns.geometry_set, settings=_settings(ns))
    except (KeyError, ValueError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    raise AssertionError(f"Unhandled cmd: {ns.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
