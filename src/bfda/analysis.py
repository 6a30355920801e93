from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from bfda.errors import AnalysisRangeError, BFDAError, ConfigurationError
from bfda.schema import (
    AnalysisConfig,
    AnalysisDesign,
    AnalysisSummary,
    BoundaryLike,
    Decision,
    SimDesign,
    SimulationResult,
)
from bfda.simulation import checkpoints_for


QUANTILES = (0.25, 0.5, 0.75, 0.8, 0.9, 0.95)


def _classify(log_bf: pd.Series, log_lo: float, log_hi: float) -> pd.Series:
    out = np.where(
        log_bf >= log_hi,
        Decision.UPPER.value,
        np.where(log_bf <= log_lo, Decision.LOWER.value, Decision.INCONCLUSIVE.value),
    )
    return pd.Series(out, index=log_bf.index)


def _sequential_endpoints(
    result: SimulationResult, cfg: AnalysisConfig, warnings: List[str]
) -> Tuple[pd.DataFrame, int, int]:
    sim_cfg = result.config
    if sim_cfg.design == SimDesign.FIXED_N:
        raise AnalysisRangeError("sequential analysis needs a sequential simulation (design='sequential').")

    n_min = int(cfg.n_min) if cfg.n_min is not None else int(sim_cfg.n_min)
    n_max = int(cfg.n_max) if cfg.n_max is not None else int(sim_cfg.n_max)
    if n_min > n_max:
        raise ConfigurationError(f"analysis n_min ({n_min}) must be <= n_max ({n_max}).")
    if n_max > sim_cfg.n_max:
        raise AnalysisRangeError(
            f"analysis n_max={n_max} exceeds the simulated n_max={sim_cfg.n_max}; "
            "no data exist beyond the simulated range. Re-run the simulation with a larger n_max."
        )
    if n_min < sim_cfg.n_min:
        raise AnalysisRangeError(f"analysis n_min={n_min} is below the simulated n_min={sim_cfg.n_min}.")

    if sim_cfg.boundary is not None:
        lower, upper = cfg.boundary
        sim_lo, sim_hi = sim_cfg.boundary
        if lower < sim_lo or upper > sim_hi:
            raise AnalysisRangeError(
                f"boundary ({lower:.4g}, {upper:.4g}) is wider than the early-stop boundary "
                f"({sim_lo:.4g}, {sim_hi:.4g}) used in the simulation; trajectories were truncated."
            )
        if n_min > sim_cfg.n_min:
            raise AnalysisRangeError("analysis n_min must equal the simulated n_min for early-stop simulations.")

    grid = [n for n in checkpoints_for(sim_cfg) if n_min <= n <= n_max]
    if not grid:
        raise AnalysisRangeError(f"no simulated checkpoint lies within [{n_min}, {n_max}].")
    if grid[-1] != n_max:
        warnings.append(f"n_max={n_max} is not a simulated checkpoint; the last look is at n={grid[-1]}.")

    window = result.sim[(result.sim["n"] >= n_min) & (result.sim["n"] <= n_max)]
    window = window.sort_values(["id", "n"], kind="mergesort")

    log_lo, log_hi = math.log(cfg.boundary[0]), math.log(cfg.boundary[1])
    hit = (window["log_bf"] >= log_hi) | (window["log_bf"] <= log_lo)

    last = window.groupby("id", sort=True).tail(1).set_index("id")
    first_hit = window[hit].groupby("id", sort=True).head(1).set_index("id")
    ends = pd.concat([first_hit, last[~last.index.isin(first_hit.index)]]).sort_index()

    ends["decision"] = _classify(ends["log_bf"], log_lo, log_hi)
    return ends.reset_index(), n_min, grid[-1]


def _fixed_endpoints(
    result: SimulationResult, cfg: AnalysisConfig, warnings: List[str]
) -> Tuple[pd.DataFrame, int, int]:
    sim_cfg = result.config
    n = int(cfg.n)
    grid = checkpoints_for(sim_cfg)
    if n < grid[0] or n > grid[-1]:
        raise AnalysisRangeError(f"fixed n={n} is outside the simulated range [{grid[0]}, {grid[-1]}].")

    if n in grid:
        chosen = n
    else:
        # Nearest checkpoint, ties go to the smaller n.
        chosen = min(grid, key=lambda g: (abs(g - n), g))
        warnings.append(f"n={n} is not a simulated checkpoint; using the nearest one, n={chosen}.")

    upto = result.sim[result.sim["n"] <= chosen].sort_values(["id", "n"], kind="mergesort")
    ends = upto.groupby("id", sort=True).tail(1).set_index("id")

    stopped = int((ends["n"] < chosen).sum())
    if stopped:
        raise AnalysisRangeError(
            f"{stopped} trajectories stopped at the early-stop boundary before n={chosen}; "
            f"their Bayes factor at n={chosen} was never simulated. Analyze at n <= {int(ends['n'].min())} "
            "or re-run the simulation without an early-stop boundary."
        )

    log_lo, log_hi = math.log(cfg.boundary[0]), math.log(cfg.boundary[1])
    ends["decision"] = _classify(ends["log_bf"], log_lo, log_hi)
    return ends.reset_index(), chosen, chosen


def _mean_or_none(x: pd.Series) -> Optional[float]:
    return float(x.mean()) if len(x) else None


def analyze(result: SimulationResult, cfg: AnalysisConfig) -> AnalysisSummary:
    """Reduce simulated trajectories to the operating characteristics of a design.

    Sequential: each trajectory stops at its first checkpoint with BF10 >= upper
    or BF10 <= lower within [n_min, n_max]; otherwise it is inconclusive at n_max.
    Fixed: each trajectory is classified by its BF10 at n.

    Does not modify `result`.
    """
    warnings: List[str] = list(result.warnings)
    if result.sim.empty:
        raise BFDAError("simulation result contains no successful replications to analyze.")

    if cfg.design == AnalysisDesign.SEQUENTIAL:
        ends, n_lo, n_hi = _sequential_endpoints(result, cfg, warnings)
    else:
        ends, n_lo, n_hi = _fixed_endpoints(result, cfg, warnings)

    total = len(ends)
    dec = ends["decision"]
    upper = dec == Decision.UPPER.value
    lower = dec == Decision.LOWER.value
    incon = dec == Decision.INCONCLUSIVE.value

    endpoint_n = ends["n"].to_numpy(dtype=int)
    quantiles: Dict[str, float] = {
        f"{int(round(q * 100))}%": float(np.quantile(endpoint_n, q)) for q in QUANTILES
    }

    endpoints = ends[["id", "n", "log_bf", "bf", "decision"]].reset_index(drop=True)

    return AnalysisSummary(
        design=cfg.design.value,
        boundary=tuple(cfg.boundary),
        n_min=int(n_lo),
        n_max=int(n_hi),
        n_used=int(total),
        n_failed=int(result.n_failed),
        upper_hit_frac=float(upper.mean()),
        lower_hit_frac=float(lower.mean()),
        n_max_hit_frac=float(incon.mean()),
        n_max_hit_h1_frac=float((incon & (ends["log_bf"] > 0)).mean()),
        n_max_hit_h0_frac=float((incon & (ends["log_bf"] < 0)).mean()),
        asn=float(endpoint_n.mean()),
        upper_hit_asn=_mean_or_none(ends.loc[upper, "n"]),
        lower_hit_asn=_mean_or_none(ends.loc[lower, "n"]),
        endpoint_n=endpoint_n,
        endpoint_quantiles=quantiles,
        endpoints=endpoints,
        warnings=warnings,
    )


def analyze_sequential(
    result: SimulationResult,
    boundary: BoundaryLike = 6.0,
    n_min: Optional[int] = None,
    n_max: Optional[int] = None,
) -> AnalysisSummary:
    return analyze(
        result, AnalysisConfig(design=AnalysisDesign.SEQUENTIAL, boundary=boundary, n_min=n_min, n_max=n_max)
    )


def analyze_fixed(result: SimulationResult, n: int, boundary: BoundaryLike = 6.0) -> AnalysisSummary:
    return analyze(result, AnalysisConfig(design=AnalysisDesign.FIXED, boundary=boundary, n=n))
