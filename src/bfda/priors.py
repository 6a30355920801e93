"""
Prior distributions on the effect-size parameter.

t-tests place the prior on the standardized effect size delta
(Cauchy, shifted/scaled t, or normal). Correlations place a stretched
beta prior on rho: Beta(1/kappa, 1/kappa) rescaled from [0, 1] to [-1, 1];
kappa = 1 is the uniform prior.

Densities are written out with scipy.special instead of calling the
scipy.stats frozen distributions, because the Bayes-factor integrals
evaluate them hundreds of times per checkpoint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

import numpy as np
from scipy import special
from scipy.stats import norm
from scipy.stats import t as student_t

from bfda.errors import ConfigurationError


class PriorFamily(str, Enum):
    CAUCHY = "cauchy"
    T = "t"
    NORMAL = "normal"
    STRETCHED_BETA = "stretchedbeta"


T_TEST_FAMILIES = (PriorFamily.CAUCHY, PriorFamily.T, PriorFamily.NORMAL)
CORRELATION_FAMILIES = (PriorFamily.STRETCHED_BETA,)

DEFAULT_CAUCHY_SCALE = math.sqrt(2.0) / 2.0


@dataclass(frozen=True)
class Prior:
    """
    Prior on the effect size.

    Attributes
    ----------
    family : PriorFamily
    location : float
        Location of the Cauchy/t prior, mean of the normal prior.
    scale : float
        Scale of the Cauchy/t prior, standard deviation of the normal prior.
    df : float
        Degrees of freedom of the t prior (1 for Cauchy).
    kappa : float
        Width parameter of the stretched beta prior.
    """

    family: PriorFamily = PriorFamily.CAUCHY
    location: float = 0.0
    scale: float = DEFAULT_CAUCHY_SCALE
    df: float = 1.0
    kappa: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "family", PriorFamily(self.family))

    @classmethod
    def cauchy(cls, location: float = 0.0, scale: float = DEFAULT_CAUCHY_SCALE) -> "Prior":
        return cls(family=PriorFamily.CAUCHY, location=float(location), scale=float(scale), df=1.0)

    @classmethod
    def t(cls, location: float = 0.0, scale: float = DEFAULT_CAUCHY_SCALE, df: float = 1.0) -> "Prior":
        return cls(family=PriorFamily.T, location=float(location), scale=float(scale), df=float(df))

    @classmethod
    def normal(cls, mean: float = 0.0, variance: float = 1.0) -> "Prior":
        variance = float(variance)
        if not math.isfinite(variance) or variance <= 0:
            raise ConfigurationError(f"normal prior variance must be > 0, got {variance}.")
        return cls(family=PriorFamily.NORMAL, location=float(mean), scale=math.sqrt(variance))

    @classmethod
    def stretched_beta(cls, kappa: float = 1.0) -> "Prior":
        return cls(family=PriorFamily.STRETCHED_BETA, location=0.0, scale=1.0, kappa=float(kappa))

    # Validation

    def validate(self, test_type: str) -> None:
        allowed = CORRELATION_FAMILIES if test_type == "correlation" else T_TEST_FAMILIES
        if self.family not in allowed:
            names = ", ".join(f.value for f in allowed)
            raise ConfigurationError(
                f"prior family '{self.family.value}' is not available for {test_type}; use one of: {names}."
            )
        for name in ("location", "scale", "df", "kappa"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigurationError(f"prior {name} must be finite.")
        if self.family == PriorFamily.STRETCHED_BETA:
            if self.kappa <= 0:
                raise ConfigurationError(f"stretched beta kappa must be > 0, got {self.kappa}.")
            return
        if self.scale <= 0:
            raise ConfigurationError(f"prior scale must be > 0, got {self.scale}.")
        if self.df <= 0:
            raise ConfigurationError(f"prior df must be > 0, got {self.df}.")

    # Densities

    def logpdf(self, x):
        x = np.asarray(x, dtype=float)
        if self.family == PriorFamily.STRETCHED_BETA:
            a = 1.0 / self.kappa
            u = (x + 1.0) / 2.0
            inside = (u > 0) & (u < 1)
            uc = np.where(inside, u, 0.5)
            out = (a - 1.0) * (np.log(uc) + np.log1p(-uc)) - special.betaln(a, a) - math.log(2.0)
            return np.where(inside, out, -np.inf)

        z = (x - self.location) / self.scale
        if self.family == PriorFamily.NORMAL:
            return -0.5 * z * z - math.log(self.scale) - 0.5 * math.log(2.0 * math.pi)

        nu = self.df
        const = (
            special.gammaln((nu + 1.0) / 2.0)
            - special.gammaln(nu / 2.0)
            - 0.5 * math.log(nu * math.pi)
            - math.log(self.scale)
        )
        return const - (nu + 1.0) / 2.0 * np.log1p(z * z / nu)

    def pdf(self, x):
        return np.exp(self.logpdf(x))

    def mass(self, direction: str) -> float:
        """Prior probability of the region tested by `direction` ('two.sided', 'greater', 'less')."""
        if direction == "two.sided":
            return 1.0
        if self.family == PriorFamily.STRETCHED_BETA:
            return 0.5
        z0 = (0.0 - self.location) / self.scale
        if self.family == PriorFamily.NORMAL:
            upper = float(norm.sf(z0))
        else:
            upper = float(student_t.sf(z0, self.df))
        if direction == "greater":
            return upper
        if direction == "less":
            return 1.0 - upper
        raise ConfigurationError(f"Unknown alternative: {direction!r}")

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        if self.family == PriorFamily.STRETCHED_BETA:
            return {"family": self.family.value, "kappa": self.kappa}
        if self.family == PriorFamily.NORMAL:
            return {"family": self.family.value, "mean": self.location, "variance": self.scale**2}
        if self.family == PriorFamily.CAUCHY:
            return {"family": self.family.value, "location": self.location, "scale": self.scale}
        return {"family": self.family.value, "location": self.location, "scale": self.scale, "df": self.df}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Prior":
        family = PriorFamily(str(d.get("family", "cauchy")).lower())
        if family == PriorFamily.STRETCHED_BETA:
            return cls.stretched_beta(kappa=float(d.get("kappa", 1.0)))
        if family == PriorFamily.NORMAL:
            return cls.normal(mean=float(d.get("mean", 0.0)), variance=float(d.get("variance", 1.0)))
        if family == PriorFamily.CAUCHY:
            return cls.cauchy(location=float(d.get("location", 0.0)), scale=float(d.get("scale", DEFAULT_CAUCHY_SCALE)))
        return cls.t(
            location=float(d.get("location", 0.0)),
            scale=float(d.get("scale", DEFAULT_CAUCHY_SCALE)),
            df=float(d.get("df", 1.0)),
        )
