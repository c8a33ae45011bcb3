from __future__ import annotations

import json
from pathlib import Path

import pytest

from e1_demux.demux_bench.__main__ import build_parser, main


def test_list_prints_strategies_and_geometry_sets(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "reference (reference)" in out
    assert "unrolled_per_channel" in out
    assert "e1: 32x64" in out


def test_verify_smoke_set_passes(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["verify", "--geometry-set", "smoke", "--seed", "3"]) == 0
    out = capsys.readouterr().out
    assert "pass        4x8  strided_slice" in out
    assert "fail" not in out


def test_unknown_strategy_is_a_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["verify", "--strategy", "bogus"]) == 2
    assert "Unknown strategy" in capsys.readouterr().err


def test_timing_then_report(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("E1_DEMUX_REPETITIONS", "2")
    out_dir = tmp_path / "out"
    rc = main(
        [
            "timing",
            "--out-dir",
            str(out_dir),
            "--strategy",
            "reference,strided_slice",
            "--geometry-set",
            "smoke",
            "--iterations",
            "5",
            "--warmup",
            "0",
        ]
    )
    assert rc == 0
    results = json.loads((out_dir / "results.json").read_text())
    assert results["run"]["settings"]["bench"] == {"iterations": 5, "repetitions": 2, "warmup": 0, "seed": 1}
    assert [r["strategy"] for r in results["records"]] == ["reference", "strided_slice"]
    assert all(len(r["timing"]["samples_s"]) == 2 for r in results["records"])

    assert main(["report", "--out-dir", str(out_dir)]) == 0
    assert (out_dir / "report.md").exists()


def test_bad_setting_is_a_usage_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["timing", "--out-dir", str(tmp_path), "--geometry-set", "smoke", "--repetitions", "0"])
    assert rc == 2
    assert "repetitions" in capsys.readouterr().err


def test_report_without_results_is_a_usage_error(tmp_path: Path) -> None:
    assert main(["report", "--out-dir", str(tmp_path)]) == 2


def test_parser_requires_subcommand() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
