from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import yaml

from bfda.cli.commands.analyze import cmd_analyze
from bfda.cli.commands.simulate import cmd_simulate
from bfda.cli.commands.ssd import cmd_ssd


SIMULATE_DEFAULTS: dict[str, Any] = {
    "type": "t.between",
    "es": "0.5",
    "es_file": None,
    "es_col": None,
    "prior": "cauchy",
    "prior_location": 0.0,
    "prior_scale": 0.7071067811865476,
    "prior_df": 1.0,
    "prior_mean": 0.0,
    "prior_variance": 1.0,
    "kappa": 1.0,
    "alternative": "two.sided",
    "design": "sequential",
    "n_min": 10,
    "n_max": 200,
    "stepsize": 10,
    "B": 1000,
    "cores": 1,
    "seed": None,
    "hypothesis": "unspecified",
    "boundary": None,
    "verbose": False,
}

ANALYZE_DEFAULTS: dict[str, Any] = {
    "design": "sequential",
    "boundary": 6.0,
    "boundary_lower": None,
    "n": None,
    "n_min": None,
    "n_max": None,
}

SSD_DEFAULTS: dict[str, Any] = {
    "design": "fixed",
    "boundary": 6.0,
    "boundary_lower": None,
    "power": 0.8,
    "alpha": 0.025,
    "h0_power": None,
}


def _fail(msg: str) -> int:
    print(f"[bfda][error] {msg}", file=sys.stderr)
    return 2


def _as_args(d: dict[str, Any]) -> SimpleNamespace:
    # cmd_* functions expect attribute access (args.foo)
    return SimpleNamespace(**d)


def _load_yaml(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping (YAML dict).")
    return data


def _normalize_keys(params: dict[str, Any]) -> dict[str, Any]:
    # Accept both n_max and n.max / n-max spellings
    return {str(k).replace(".", "_").replace("-", "_"): v for k, v in params.items()}


def cmd_run_config(args) -> int:
    cfg_path = str(args.config)
    cfg = _load_yaml(cfg_path)

    command = str(cfg.get("command", "")).strip()
    if not command:
        return _fail("Missing required field: command")

    out_dir = cfg.get("out", None)

    params = cfg.get("params", {}) or {}
    if not isinstance(params, dict):
        return _fail("Field `params` must be a mapping (YAML dict).")
    params = _normalize_keys(params)

    if command == "simulate":
        unknown = sorted(set(params) - set(SIMULATE_DEFAULTS))
        if unknown:
            return _fail(f"simulate: unknown params: {unknown}")
        merged = {**SIMULATE_DEFAULTS, **params, "out": out_dir}
        if isinstance(merged["es"], (list, tuple)):
            merged["es"] = ",".join(str(x) for x in merged["es"])
        if isinstance(merged["boundary"], (list, tuple)):
            merged["boundary"] = ",".join(str(x) for x in merged["boundary"])
        return int(cmd_simulate(_as_args(merged)))

    if command in {"analyze", "ssd"}:
        sim_path = cfg.get("sim", params.pop("sim", None))
        if sim_path is None:
            return _fail(f"{command} requires `sim` (simulation directory)")
        defaults = ANALYZE_DEFAULTS if command == "analyze" else SSD_DEFAULTS
        unknown = sorted(set(params) - set(defaults))
        if unknown:
            return _fail(f"{command}: unknown params: {unknown}")
        merged = {**defaults, **params, "sim": sim_path, "out": out_dir}
        if isinstance(merged["boundary"], (list, tuple)):
            merged["boundary_lower"], merged["boundary"] = merged["boundary"]
        handler = cmd_analyze if command == "analyze" else cmd_ssd
        return int(handler(_as_args(merged)))

    return _fail(f"Unknown command: {command}")
