from __future__ import annotations

import math
from typing import Any, List, Optional

import pandas as pd

from bfda.cli.bundle import prepare_out_dir, write_report_md, write_results_json, write_run_meta
from bfda.io.writer import save_result
from bfda.priors import DEFAULT_CAUCHY_SCALE, Prior, PriorFamily
from bfda.reporting import render_simulation_md
from bfda.schema import EffectSize, SimulationConfig
from bfda.simulation import simulate


def _parse_floats_csv(s: str) -> List[float]:
    parts = [p.strip() for p in str(s).split(",") if p.strip()]
    return [float(p) for p in parts]


def _build_prior(args) -> Prior:
    family = PriorFamily(str(getattr(args, "prior", "cauchy")).lower())
    if family == PriorFamily.STRETCHED_BETA:
        return Prior.stretched_beta(kappa=float(getattr(args, "kappa", 1.0)))
    if family == PriorFamily.NORMAL:
        return Prior.normal(
            mean=float(getattr(args, "prior_mean", 0.0)),
            variance=float(getattr(args, "prior_variance", 1.0)),
        )
    location = float(getattr(args, "prior_location", 0.0))
    scale = float(getattr(args, "prior_scale", DEFAULT_CAUCHY_SCALE))
    if family == PriorFamily.CAUCHY:
        return Prior.cauchy(location=location, scale=scale)
    return Prior.t(location=location, scale=scale, df=float(getattr(args, "prior_df", 1.0)))


def _build_effect_size(args) -> EffectSize:
    es_file = getattr(args, "es_file", None)
    if es_file:
        col = getattr(args, "es_col", None)
        df = pd.read_csv(es_file)
        values = df[col] if col else df.iloc[:, 0]
        return EffectSize.empirical(pd.to_numeric(values, errors="coerce").dropna().tolist())
    vals = _parse_floats_csv(getattr(args, "es", "0.5"))
    return EffectSize.fixed(vals[0]) if len(vals) == 1 else EffectSize.empirical(vals)


def _build_boundary(args) -> Optional[tuple]:
    b = getattr(args, "boundary", None)
    if b is None or str(b).strip().lower() in ("", "inf"):
        return None
    vals = _parse_floats_csv(str(b))
    if len(vals) == 1 and math.isinf(vals[0]):
        return None
    return tuple(vals) if len(vals) > 1 else (1.0 / vals[0], vals[0])


def build_sim_config(args) -> SimulationConfig:
    seed = getattr(args, "seed", None)
    return SimulationConfig(
        test_type=str(getattr(args, "type", "t.between")),
        prior=_build_prior(args),
        effect_size=_build_effect_size(args),
        alternative=str(getattr(args, "alternative", "two.sided")),
        n_min=int(getattr(args, "n_min", 10)),
        n_max=int(getattr(args, "n_max", 200)),
        stepsize=int(getattr(args, "stepsize", 10)),
        B=int(getattr(args, "B", 1000)),
        seed=int(seed) if seed is not None else None,
        hypothesis=str(getattr(args, "hypothesis", "unspecified")),
        design=str(getattr(args, "design", "sequential")),
        boundary=_build_boundary(args),
    )


def cmd_simulate(args) -> int:
    cfg = build_sim_config(args)
    res = simulate(cfg, cores=int(getattr(args, "cores", 1)), verbose=bool(getattr(args, "verbose", False)))

    out_dir = prepare_out_dir(getattr(args, "out", None), command="simulate")
    write_run_meta(out_dir, vars(args), extra={"command": "simulate"})
    save_result(res, out_dir)

    payload: dict[str, Any] = {
        "command": "simulate",
        "inputs": cfg.to_dict(),
        "estimates": {
            "n_replications": res.n_replications,
            "n_failed": res.n_failed,
            "checkpoints": res.checkpoints,
            "seed_entropy": res.seed_entropy,
        },
        "warnings": list(res.warnings),
        "artifacts": {"report_md": "report.md", "simulation": "simulation.json", "tables": ["tables/trajectories.csv"]},
    }
    write_results_json(out_dir, payload)
    write_report_md(out_dir, render_simulation_md(res))

    for w in res.warnings:
        print(f"[bfda][warning] {w}")
    print(f"[bfda] simulation written to {out_dir}")
    return 0
