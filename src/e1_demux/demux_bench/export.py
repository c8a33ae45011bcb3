from __future__ import annotations

import json
import platform
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .config import BenchSettings, FrameGeometry
from .harness import TimingSummary
from .verify import Verification

SCHEMA_VERSION = "0.1.0"


def find_repo_root() -> Path:
    return Path(__file__).resolve().parents[3]


def default_results_schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "results.schema.json"


def validate_results_schema(results: dict[str, Any], *, schema_path: Path | None = None) -> None:
    schema_path = default_results_schema_path() if schema_path is None else schema_path
    schema = json.loads(schema_path.read_text())
    Draft202012Validator(schema).validate(results)


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def git_info(repo_root: Path) -> dict[str, Any]:
    def _run(cmd: list[str]) -> str:
        out = subprocess.check_output(cmd, cwd=repo_root, stderr=subprocess.DEVNULL)
        return out.decode().strip()

    try:
        branch = _run(["git", "rev-parse", "--abbrev-ref", "HEAD"])
        commit = _run(["git", "rev-parse", "HEAD"])
        dirty = bool(_run(["git", "status", "--porcelain=v1"]))
        return {"branch": branch, "commit": commit, "dirty": dirty}
    except (OSError, subprocess.CalledProcessError):
        return {"branch": "unknown", "commit": "unknown", "dirty": False}


def environment_info() -> dict[str, Any]:
    plat: dict[str, str] = {"os": platform.system().lower(), "arch": platform.machine().lower()}
    processor = platform.processor()
    if processor:
        plat["processor"] = processor
    return {
        "platform": plat,
        "python": {"implementation": platform.python_implementation(), "version": platform.python_version()},
    }


def geometry_to_dict(geometry: FrameGeometry) -> dict[str, int]:
    return {
        "channel_count": geometry.channel_count,
        "channel_capacity": geometry.channel_capacity,
        "frame_size": geometry.frame_size,
    }


def geometry_from_dict(d: dict[str, Any]) -> FrameGeometry:
    return FrameGeometry(channel_count=int(d["channel_count"]), channel_capacity=int(d["channel_capacity"]))


def make_record(
    *,
    geometry: FrameGeometry,
    strategy: str,
    verification: Verification,
    settings: BenchSettings,
    samples: list[float] | None = None,
    summary: TimingSummary | None = None,
) -> dict[str, Any]:
    timing: dict[str, Any] | None = None
    if samples is not None and summary is not None:
        timing = {
            "iterations": settings.iterations,
            "repetitions": settings.repetitions,
            "warmup": settings.warmup,
            "samples_s": list(samples),
            **summary.to_dict(),
        }
    return {
        "geometry": geometry_to_dict(geometry),
        "strategy": strategy,
        "timing": timing,
        "ratios": {},
        "verification": verification.to_dict(),
    }


def build_results(
    records: list[dict[str, Any]],
    *,
    settings: BenchSettings,
    git: dict[str, Any],
    artifacts_dir: Path,
    started_at: str,
    finished_at: str | None = None,
) -> dict[str, Any]:
    run_obj: dict[str, Any] = {
        "run_id": f"{git.get('commit', 'unknown')}@{started_at}",
        "started_at": started_at,
        "finished_at": finished_at or now_rfc3339(),
        "status": "pass",
        "failure_reason": "",
        "git": git,
        "environment": environment_info(),
        "settings": {"bench": settings.to_dict()},
        "artifacts_dir": str(artifacts_dir),
    }

    # Mark run fail if any record verification fails.
    failures = [r for r in records if r["verification"]["status"] == "fail"]
    if failures:
        run_obj["status"] = "fail"
        run_obj["failure_reason"] = f"{len(failures)} record(s) failed verification"

    out = {"schema_version": SCHEMA_VERSION, "run": run_obj, "records": records}
    validate_results_schema(out)
    return out


def record_key(rec: dict[str, Any]) -> tuple:
    g = rec.get("geometry", {}) or {}
    return (int(g.get("channel_count", 0)), int(g.get("channel_capacity", 0)), rec.get("strategy"))


def merge_results(existing: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    merged = dict(existing)
    merged_run = dict(existing.get("run", {}))

    # Keep the original started_at; take everything else that describes the newest run.
    new_run = new.get("run", {})
    if isinstance(new_run, dict):
        for k in ("finished_at", "artifacts_dir", "git", "environment", "settings"):
            if k in new_run:
                merged_run[k] = new_run[k]

    by_key: dict[tuple, dict[str, Any]] = {}
    for r in existing.get("records", []) or []:
        by_key[record_key(r)] = r
    for r in new.get("records", []) or []:
        by_key[record_key(r)] = r
    merged["records"] = sorted(by_key.values(), key=record_key)

    # Run status is derived from the merged records; a rerun may flip a record
    # from fail to pass. Completeness failures from a sweep are preserved.
    reasons: list[str] = []
    prior_reason = str(merged_run.get("failure_reason", "")).strip()
    for part in (p.strip() for p in prior_reason.split(";") if prior_reason):
        if part.startswith("missing "):
            reasons.append(part)

    failures = [r for r in merged["records"] if r.get("verification", {}).get("status") == "fail"]
    if failures:
        reasons.append(f"{len(failures)} record(s) failed verification")

    if reasons:
        merged_run["status"] = "fail"
        merged_run["failure_reason"] = "; ".join(dict.fromkeys(reasons))
    else:
        merged_run["status"] = "pass"
        merged_run["failure_reason"] = ""

    merged["run"] = merged_run
    validate_results_schema(merged)
    return merged


def load_results(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text())


def write_results(path: Path, results: dict[str, Any]) -> None:
    path.write_text(json.dumps(results, indent=2, sort_keys=True) + "\n")
