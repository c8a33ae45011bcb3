from __future__ import annotations

import argparse
import logging
from pathlib import Path

from e1_demux.demux_bench.config import BenchSettings
from e1_demux.demux_bench.report import report_run
from e1_demux.demux_bench.runner import timing_run


def _abs_path(p: str) -> Path:
    return Path(p).expanduser().resolve()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manual smoke: time every strategy on the E1 frame and render report.md.")
    parser.add_argument("--out-dir", type=_abs_path, required=True)
    parser.add_argument("--iterations", type=int, default=2000)
    ns = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    rc = timing_run(
        out_dir=ns.out_dir,
        strategy="all",
        geometry_set="e1",
        settings=BenchSettings(iterations=ns.iterations, repetitions=5, warmup=50),
    )
    if rc != 0:
        return rc

    report_run(out_dir=ns.out_dir)
    print(f"Report: {ns.out_dir / 'report.md'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
