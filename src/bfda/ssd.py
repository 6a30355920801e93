"""
Sample-size determination from an existing simulation.

The simulation is run once at a generous n_max; candidate sample sizes are
the simulated checkpoints. For every candidate the design analyzer is run and
the smallest candidate meeting the target is returned:

- H1 populations (a true effect exists): rate of BF10 >= upper ("power")
  must reach `power`.
- H0 populations (no effect): the rate of BF10 <= lower (correct evidence
  for H0) must reach `h0_power` (default: `power`) while the rate of
  BF10 >= upper (false positive evidence) stays at or below `alpha`.

For fixed-n designs the candidate is the sample size n; for sequential
designs it is the maximal sample size n_max of the stopping rule.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from bfda.analysis import analyze_fixed, analyze_sequential
from bfda.errors import AmbiguousHypothesisError, ConfigurationError
from bfda.schema import (
    AnalysisDesign,
    BoundaryLike,
    Hypothesis,
    SimDesign,
    SimulationResult,
    resolve_boundary,
)
from bfda.simulation import checkpoints_for


@dataclass
class SSDResult:
    hypothesis: str
    design: str
    boundary: Tuple[float, float]
    criterion: str
    targets: Dict[str, Optional[float]]

    n: Optional[int]
    achieved: Dict[str, float]

    table: pd.DataFrame
    warnings: List[str] = field(default_factory=list)

    @property
    def reached(self) -> bool:
        return self.n is not None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["boundary"] = list(self.boundary)
        d["table"] = self.table.to_dict(orient="list")
        return d


def _check_rate(name: str, value: Optional[float]) -> None:
    if value is not None and not 0 < value < 1:
        raise ConfigurationError(f"{name} must be in (0, 1), got {value}.")


def sample_size_determination(
    result: SimulationResult,
    boundary: BoundaryLike = 6.0,
    design: str = "fixed",
    power: float = 0.8,
    alpha: float = 0.025,
    h0_power: Optional[float] = None,
) -> SSDResult:
    """
    Find the smallest n (fixed design) or n_max (sequential design) meeting a target.

    Parameters
    ----------
    result : SimulationResult
        Must carry an explicit H0/H1 tag.
    boundary : float or (lower, upper)
        Evidence thresholds for BF10.
    design : {"fixed", "sequential"}
    power : float
        Target rate of BF10 >= upper for H1 populations.
    alpha : float
        Maximal rate of BF10 >= upper (false positives) for H0 populations.
    h0_power : float, optional
        Target rate of BF10 <= lower for H0 populations; defaults to `power`.

    Returns
    -------
    SSDResult
        `n` is None when no simulated sample size meets the target.

    Raises
    ------
    AmbiguousHypothesisError
        If the simulation is not tagged as H0 or H1.
    """
    hyp = result.hypothesis
    if hyp == Hypothesis.UNSPECIFIED:
        raise AmbiguousHypothesisError(
            "cannot tell whether the simulated effect sizes represent H1 or H0; "
            "re-run the simulation with hypothesis='H1' or hypothesis='H0'."
        )
    design_enum = AnalysisDesign(design)
    bounds = resolve_boundary(boundary)
    _check_rate("power", power)
    _check_rate("alpha", alpha)
    _check_rate("h0_power", h0_power)

    if design_enum == AnalysisDesign.SEQUENTIAL and result.config.design == SimDesign.FIXED_N:
        raise ConfigurationError("sequential SSD needs a sequential simulation.")
    if design_enum == AnalysisDesign.FIXED and result.config.boundary is not None:
        raise ConfigurationError(
            "fixed-n SSD needs a simulation without an early-stop boundary; trajectories end before n_max."
        )

    rows: List[Dict[str, Any]] = []
    for n in checkpoints_for(result.config):
        if design_enum == AnalysisDesign.FIXED:
            s = analyze_fixed(result, n=n, boundary=bounds)
        else:
            s = analyze_sequential(result, boundary=bounds, n_max=n)
        rows.append(
            {
                "n": int(n),
                "upper_hit_frac": s.upper_hit_frac,
                "lower_hit_frac": s.lower_hit_frac,
                "n_max_hit_frac": s.n_max_hit_frac,
                "asn": s.asn,
            }
        )
    table = pd.DataFrame(rows)

    if hyp == Hypothesis.H1:
        criterion = "power"
        targets: Dict[str, Optional[float]] = {"power": float(power)}
        meets = table["upper_hit_frac"] >= power
    else:
        h0_target = float(power if h0_power is None else h0_power)
        criterion = "alpha+h0_power"
        targets = {"alpha": float(alpha), "h0_power": h0_target}
        meets = (table["upper_hit_frac"] <= alpha) & (table["lower_hit_frac"] >= h0_target)
    table["meets_target"] = meets

    warnings: List[str] = list(result.warnings)
    if meets.any():
        row = table[meets].iloc[0]
        n_star: Optional[int] = int(row["n"])
        achieved = {
            "upper_hit_frac": float(row["upper_hit_frac"]),
            "lower_hit_frac": float(row["lower_hit_frac"]),
            "n_max_hit_frac": float(row["n_max_hit_frac"]),
            "asn": float(row["asn"]),
        }
    else:
        n_star = None
        achieved = {}
        warnings.append(
            f"Target not reached within the simulated range (n <= {result.config.n_max}). "
            "Re-run the simulation with a larger n_max or relax the target."
        )

    return SSDResult(
        hypothesis=hyp.value,
        design=design_enum.value,
        boundary=bounds,
        criterion=criterion,
        targets=targets,
        n=n_star,
        achieved=achieved,
        table=table,
        warnings=warnings,
    )
