from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Any

import numpy as np

from bfda.io.schema import FORMAT_NAME, FORMAT_VERSION, META_FILE, TRAJECTORIES_FILE
from bfda.schema import SimulationResult


def _safe_json(obj: Any) -> Any:
    """
    Make an object JSON-serializable (best-effort).
    """
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return [_safe_json(x) for x in obj.tolist()]
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (list, tuple)):
        return [_safe_json(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): _safe_json(v) for k, v in obj.items()}
    if is_dataclass(obj):
        return _safe_json(asdict(obj))
    if hasattr(obj, "__dict__"):
        return _safe_json(vars(obj))
    return str(obj)


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_safe_json(payload), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def package_version() -> str | None:
    try:
        return pkg_version("bayes-factor-design-analysis")
    except PackageNotFoundError:
        return None


def save_result(result: SimulationResult, out_dir: str | Path) -> Path:
    """Write a SimulationResult as simulation.json + tables/trajectories.csv under out_dir."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    meta = {
        "format": FORMAT_NAME,
        "format_version": FORMAT_VERSION,
        "bfda_version": package_version(),
        "config": result.config.to_dict(),
        "seed_entropy": result.seed_entropy,
        "failures": [{"id": f.id, "message": f.message} for f in result.failures],
        "warnings": list(result.warnings),
    }
    write_json(out / META_FILE, meta)

    path = out / TRAJECTORIES_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    result.sim.to_csv(path, index=False)
    return out
