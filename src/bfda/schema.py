from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from bfda.errors import (
    AmbiguousHypothesisError,
    AnalysisRangeError,
    BFDAError,
    ConfigurationError,
    NumericError,
)
from bfda.priors import Prior


class DesignType(str, Enum):
    T_BETWEEN = "t.between"
    T_PAIRED = "t.paired"
    CORRELATION = "correlation"


class Alternative(str, Enum):
    TWO_SIDED = "two.sided"
    GREATER = "greater"
    LESS = "less"


class Hypothesis(str, Enum):
    H1 = "H1"
    H0 = "H0"
    UNSPECIFIED = "unspecified"


class SimDesign(str, Enum):
    SEQUENTIAL = "sequential"
    FIXED_N = "fixed.n"


class AnalysisDesign(str, Enum):
    SEQUENTIAL = "sequential"
    FIXED = "fixed"


class Decision(str, Enum):
    UPPER = "upper"
    LOWER = "lower"
    INCONCLUSIVE = "inconclusive"


BoundaryLike = Union[float, Sequence[float]]

TRAJECTORY_COLUMNS = ["id", "true_es", "n", "stat", "emp_es", "log_bf", "bf"]


def resolve_boundary(boundary: BoundaryLike) -> Tuple[float, float]:
    """Turn a scalar b (> 1) or a (lower, upper) pair into (lower, upper)."""
    if isinstance(boundary, (int, float, np.floating, np.integer)):
        b = float(boundary)
        if not math.isfinite(b) or b <= 1:
            raise ConfigurationError(f"Scalar boundary must be a finite number > 1, got {boundary!r}.")
        return (1.0 / b, b)

    vals = [float(x) for x in boundary]
    if len(vals) == 1:
        return resolve_boundary(vals[0])
    if len(vals) != 2:
        raise ConfigurationError("boundary must be a scalar or a (lower, upper) pair.")
    lower, upper = vals
    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise ConfigurationError("boundary values must be finite.")
    if not (lower > 0 and upper > lower):
        raise ConfigurationError(f"boundary pair must satisfy 0 < lower < upper, got ({lower}, {upper}).")
    return (lower, upper)


@dataclass(frozen=True)
class EffectSize:
    """Expected effect size: a fixed value or an empirical sample resampled per replication."""

    values: Tuple[float, ...]

    @classmethod
    def fixed(cls, value: float) -> "EffectSize":
        return cls(values=(float(value),))

    @classmethod
    def empirical(cls, values: Sequence[float]) -> "EffectSize":
        return cls(values=tuple(float(v) for v in values))

    @classmethod
    def coerce(cls, es: Union["EffectSize", float, Sequence[float]]) -> "EffectSize":
        if isinstance(es, EffectSize):
            return es
        if isinstance(es, (int, float, np.floating, np.integer)):
            return cls.fixed(float(es))
        return cls.empirical(list(es))

    @property
    def is_fixed(self) -> bool:
        return len(self.values) == 1

    def draw(self, rng: np.random.Generator) -> float:
        if self.is_fixed:
            return self.values[0]
        return float(self.values[int(rng.integers(len(self.values)))])

    def validate(self, test_type: DesignType) -> None:
        if len(self.values) == 0:
            raise ConfigurationError("effect size source is empty.")
        arr = np.asarray(self.values, dtype=float)
        if not np.all(np.isfinite(arr)):
            raise ConfigurationError("effect sizes must be finite.")
        if test_type == DesignType.CORRELATION and np.any(np.abs(arr) >= 1):
            raise ConfigurationError("correlation effect sizes must lie in (-1, 1).")


@dataclass(frozen=True)
class SimulationConfig:
    """Everything needed to reproduce one BFDA simulation."""

    test_type: DesignType = DesignType.T_BETWEEN
    prior: Prior = field(default_factory=Prior.cauchy)
    effect_size: EffectSize = field(default_factory=lambda: EffectSize.fixed(0.5))
    alternative: Alternative = Alternative.TWO_SIDED
    n_min: int = 10
    n_max: int = 200
    stepsize: int = 10
    B: int = 1000
    seed: Optional[int] = None
    hypothesis: Hypothesis = Hypothesis.UNSPECIFIED
    design: SimDesign = SimDesign.SEQUENTIAL

    # Stop each trajectory at its first crossing of this boundary (None = simulate to n_max).
    boundary: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        # Coerce plain values passed by callers (CLI, YAML, JSON).
        object.__setattr__(self, "test_type", DesignType(self.test_type))
        object.__setattr__(self, "alternative", Alternative(self.alternative))
        object.__setattr__(self, "design", SimDesign(self.design))
        object.__setattr__(self, "effect_size", EffectSize.coerce(self.effect_size))
        if self.boundary is not None:
            object.__setattr__(self, "boundary", resolve_boundary(self.boundary))

        hyp = Hypothesis(self.hypothesis)
        es = self.effect_size
        if hyp == Hypothesis.UNSPECIFIED and es.is_fixed:
            hyp = Hypothesis.H0 if es.values[0] == 0 else Hypothesis.H1
        if hyp == Hypothesis.H0 and es.is_fixed and es.values[0] != 0:
            raise ConfigurationError(
                f"hypothesis=H0 contradicts the fixed effect size {es.values[0]}; H0 populations need ES=0."
            )
        if hyp == Hypothesis.H1 and es.is_fixed and es.values[0] == 0:
            raise ConfigurationError("hypothesis=H1 contradicts a fixed effect size of 0.")
        object.__setattr__(self, "hypothesis", hyp)

    def validate(self) -> None:
        """Fail fast on invalid settings; called before any replication runs."""
        for name in ("n_min", "n_max", "stepsize", "B"):
            v = getattr(self, name)
            if int(v) != v:
                raise ConfigurationError(f"{name} must be an integer, got {v!r}.")
        if self.B <= 0:
            raise ConfigurationError("B (number of replications) must be > 0.")
        if self.stepsize <= 0:
            raise ConfigurationError("stepsize must be > 0.")
        if self.n_min > self.n_max:
            raise ConfigurationError(f"n_min ({self.n_min}) must be <= n_max ({self.n_max}).")
        min_allowed = 4 if self.test_type == DesignType.CORRELATION else 2
        if self.n_min < min_allowed:
            raise ConfigurationError(f"n_min must be >= {min_allowed} for {self.test_type.value}.")
        self.prior.validate(self.test_type.value)
        self.effect_size.validate(self.test_type)

    @property
    def expected_es(self) -> float:
        return float(np.mean(self.effect_size.values))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_type": self.test_type.value,
            "prior": self.prior.to_dict(),
            "effect_size": list(self.effect_size.values),
            "alternative": self.alternative.value,
            "n_min": int(self.n_min),
            "n_max": int(self.n_max),
            "stepsize": int(self.stepsize),
            "B": int(self.B),
            "seed": self.seed,
            "hypothesis": self.hypothesis.value,
            "design": self.design.value,
            "boundary": list(self.boundary) if self.boundary is not None else None,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SimulationConfig":
        es = d.get("effect_size", 0.5)
        if isinstance(es, (list, tuple)) and len(es) == 1:
            es = es[0]
        return cls(
            test_type=DesignType(d.get("test_type", "t.between")),
            prior=Prior.from_dict(d["prior"]) if "prior" in d else Prior.cauchy(),
            effect_size=EffectSize.coerce(es),
            alternative=Alternative(d.get("alternative", "two.sided")),
            n_min=int(d.get("n_min", 10)),
            n_max=int(d.get("n_max", 200)),
            stepsize=int(d.get("stepsize", 10)),
            B=int(d.get("B", 1000)),
            seed=d.get("seed"),
            hypothesis=Hypothesis(d.get("hypothesis", "unspecified")),
            design=SimDesign(d.get("design", "sequential")),
            boundary=tuple(d["boundary"]) if d.get("boundary") is not None else None,
        )


@dataclass(frozen=True)
class AnalysisConfig:
    design: AnalysisDesign = AnalysisDesign.SEQUENTIAL
    boundary: Tuple[float, float] = (1.0 / 6.0, 6.0)

    # Sequential range (None = simulation's own range)
    n_min: Optional[int] = None
    n_max: Optional[int] = None

    # Fixed-n design
    n: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "design", AnalysisDesign(self.design))
        object.__setattr__(self, "boundary", resolve_boundary(self.boundary))
        if self.design == AnalysisDesign.FIXED and self.n is None:
            raise ConfigurationError("fixed-n analysis requires n.")


@dataclass(frozen=True)
class FailedReplication:
    id: int
    message: str


@dataclass(frozen=True)
class SimulationResult:
    """B simulated trajectories plus the configuration that produced them.

    `sim` is a long table with one row per (replication id, checkpoint n).
    Treat it as read-only; analyses copy what they need.
    """

    config: SimulationConfig
    sim: pd.DataFrame
    failures: Tuple[FailedReplication, ...] = ()
    seed_entropy: Optional[int] = None
    warnings: Tuple[str, ...] = ()

    @property
    def hypothesis(self) -> Hypothesis:
        return self.config.hypothesis

    @property
    def n_replications(self) -> int:
        return int(self.sim["id"].nunique()) if len(self.sim) else 0

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    @property
    def checkpoints(self) -> List[int]:
        return sorted(int(n) for n in pd.unique(self.sim["n"])) if len(self.sim) else []

    def trajectory(self, rep_id: int) -> pd.DataFrame:
        out = self.sim[self.sim["id"] == rep_id]
        if out.empty:
            raise KeyError(f"No trajectory with id={rep_id}")
        return out.reset_index(drop=True)


SUMMARY_ALIASES = {
    "endpoint.n": "endpoint_n",
    "ASN": "asn",
    "upper.hit.frac": "upper_hit_frac",
    "lower.hit.frac": "lower_hit_frac",
    "n.max.hit.frac": "n_max_hit_frac",
    "n.max.hit.H1": "n_max_hit_h1_frac",
    "n.max.hit.H0": "n_max_hit_h0_frac",
}


@dataclass
class AnalysisSummary:
    design: str
    boundary: Tuple[float, float]
    n_min: int
    n_max: int

    n_used: int
    n_failed: int

    upper_hit_frac: float
    lower_hit_frac: float
    n_max_hit_frac: float
    n_max_hit_h1_frac: float
    n_max_hit_h0_frac: float

    asn: float
    upper_hit_asn: Optional[float]
    lower_hit_asn: Optional[float]
    endpoint_n: np.ndarray
    endpoint_quantiles: Dict[str, float]

    endpoints: pd.DataFrame
    warnings: List[str] = field(default_factory=list)

    def __getitem__(self, key: str) -> Any:
        return getattr(self, SUMMARY_ALIASES.get(key, key))

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["endpoint_n"] = [int(x) for x in self.endpoint_n]
        d["endpoints"] = self.endpoints.to_dict(orient="list")
        d["boundary"] = list(self.boundary)
        return d
