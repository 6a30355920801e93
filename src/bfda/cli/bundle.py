from __future__ import annotations

import os
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from bfda.io.writer import _safe_json, package_version, write_json


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def ensure_subdirs(out_dir: Path, names: list[str]) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for n in names:
        (out_dir / n).mkdir(parents=True, exist_ok=True)


def prepare_out_dir(out: str | None, command: str) -> Path:
    if out is None or str(out).strip() == "":
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        out_dir = Path("results") / command / ts
    else:
        out_dir = Path(out)

    ensure_subdirs(out_dir, ["tables"])
    return out_dir


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_run_meta(out_dir: Path, args: Any, extra: dict[str, Any] | None = None) -> None:
    if isinstance(args, dict):
        args_dict = dict(args)
    else:
        # argparse.Namespace / SimpleNamespace
        args_dict = dict(vars(args))

    # Remove argparse dispatch function pointer if present
    args_dict.pop("func", None)

    meta: dict[str, Any] = {
        "timestamp_utc": _now_utc_iso(),
        "bfda_version": package_version(),
        "python_version": sys.version,
        "platform": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
            "python_implementation": platform.python_implementation(),
        },
        "cwd": os.getcwd(),
        "args": _safe_json(args_dict),
    }
    if extra:
        meta["extra"] = _safe_json(extra)

    write_json(out_dir / "run_meta.json", meta)


def write_results_json(out_dir: Path, payload: dict[str, Any]) -> None:
    write_json(out_dir / "results.json", payload)


def write_report_md(out_dir: Path, text: str) -> None:
    write_text(out_dir / "report.md", text)


def write_table(out_dir: Path, name: str, df) -> str:
    """
    Writes tables/<name>.csv and returns relative path for artifacts registry.
    """
    rel = Path("tables") / f"{name}.csv"
    path = out_dir / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return str(rel).replace("\\", "/")
