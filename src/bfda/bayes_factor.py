"""
Bayes factors BF10 for the three supported designs.

t-tests (one-sample/paired and two-sample, equal group sizes):

    BF10 = int nct(t; nu, delta * sqrt(N)) p(delta) d delta  /  t(t; nu)

with N = n (paired) or N = n / 2 (two groups of n each) and nu = N_total - groups.
This is the "informed t-test" integral; a Cauchy prior gives the default JZS
Bayes factor.

Correlation (Pearson r from n bivariate-normal pairs):

    BF10 = int L(rho) p(rho) d rho  /  L(0)

    L(rho) = (1 - rho^2)^((n-1)/2) (1 - rho r)^(-(n - 3/2)) 2F1(1/2, 1/2; n - 1/2; (rho r + 1)/2)

which is the exact sampling density of r up to factors that do not depend on rho.

Directional hypotheses integrate the half line (greater: effect > 0, less:
effect < 0) and divide by the prior mass there.

Everything is done on the log scale: the likelihood is divided by its value
at the observed effect before integrating, so the integrand is O(1) even when
BF10 is astronomically large or small.
"""

from __future__ import annotations

import math
import warnings
from typing import Callable, Dict, List, Tuple, Type

import numpy as np
from scipy import integrate, special
from scipy.stats import nct
from scipy.stats import t as student_t

from bfda.errors import ConfigurationError, NumericError
from bfda.priors import Prior, PriorFamily
from bfda.schema import Alternative, DesignType


# Half-width of the integration windows, in units of the likelihood / prior scale
WINDOW = 12.0


def _region(alternative: Alternative, lo: float, hi: float) -> Tuple[float, float]:
    if alternative == Alternative.GREATER:
        return (0.0, hi)
    if alternative == Alternative.LESS:
        return (lo, 0.0)
    return (lo, hi)


def _segments(lo: float, hi: float, points: List[float]) -> List[Tuple[float, float]]:
    """Split [lo, hi] at the interior points, dropping empty pieces."""
    inner = sorted({float(p) for p in points if np.isfinite(p) and lo < p < hi})
    edges = [lo] + inner + [hi]
    return [(a, b) for a, b in zip(edges[:-1], edges[1:]) if b > a]


def _integrate(f: Callable[[float], float], segments: List[Tuple[float, float]], what: str) -> float:
    total = 0.0
    with warnings.catch_warnings():
        warnings.simplefilter("error", integrate.IntegrationWarning)
        # Far tails underflow to -inf/nan; the integrands map those to 0.
        warnings.simplefilter("ignore", RuntimeWarning)
        for a, b in segments:
            try:
                val, _ = integrate.quad(f, a, b, limit=200)
            except integrate.IntegrationWarning as e:
                raise NumericError(f"integration did not converge for {what} on [{a:.4g}, {b:.4g}]: {e}") from e
            total += val
    if not np.isfinite(total) or total <= 0:
        raise NumericError(f"degenerate Bayes factor integral ({total!r}) for {what}")
    return total


def _nct_logpdf(t: float, nu: float, nc: float) -> float:
    # Boost raises OverflowError far from the observed t, where the density is 0 in double precision.
    try:
        return float(nct.logpdf(t, nu, nc))
    except OverflowError:
        return -np.inf


class BayesFactorModel:
    """Uniform contract: log BF10 from the sample size and the observed statistic."""

    test_type: DesignType
    families: Tuple[PriorFamily, ...] = ()

    def __init__(self, prior: Prior, alternative: Alternative = Alternative.TWO_SIDED):
        self.prior = prior
        self.alternative = Alternative(alternative)
        if prior.family not in self.families:
            raise ConfigurationError(
                f"{type(self).__name__} does not support a '{prior.family.value}' prior."
            )
        prior.validate(self.test_type.value)
        self.log_mass = math.log(prior.mass(self.alternative.value))

    def log_bf10(self, n: int, stat: float) -> float:
        raise NotImplementedError

    def bf10(self, n: int, stat: float) -> float:
        return float(np.exp(self.log_bf10(n, stat)))


class _TTestBayesFactor(BayesFactorModel):
    families = (PriorFamily.CAUCHY, PriorFamily.T, PriorFamily.NORMAL)

    def effective_n(self, n: int) -> Tuple[float, float]:
        """(N, nu) for n observations (per group)."""
        raise NotImplementedError

    def log_bf10(self, n: int, stat: float) -> float:
        t = float(stat)
        if not np.isfinite(t):
            raise NumericError(f"non-finite t statistic at n={n}")
        N, nu = self.effective_n(n)
        sqrt_n = math.sqrt(N)
        lo, hi = _region(self.alternative, -np.inf, np.inf)

        d_hat = t / sqrt_n
        d_ref = min(max(d_hat, lo), hi)
        offset = _nct_logpdf(t, nu, d_ref * sqrt_n)
        log_null = float(student_t.logpdf(t, nu))
        if not (np.isfinite(offset) and np.isfinite(log_null)):
            raise NumericError(f"t likelihood not finite at n={n}, t={t:.6g}")

        prior = self.prior

        def integrand(d: float) -> float:
            v = _nct_logpdf(t, nu, d * sqrt_n) - offset + float(prior.logpdf(d))
            return float(np.exp(v)) if np.isfinite(v) else 0.0

        w = math.sqrt(1.0 + t * t / (2.0 * nu)) / sqrt_n
        points = [
            d_hat - WINDOW * w,
            d_hat,
            d_hat + WINDOW * w,
            prior.location - WINDOW * prior.scale,
            prior.location,
            prior.location + WINDOW * prior.scale,
        ]
        total = _integrate(integrand, _segments(lo, hi, points), f"n={n}, t={t:.6g}")
        return math.log(total) + offset - log_null - self.log_mass


class TwoSampleTTestBayesFactor(_TTestBayesFactor):
    test_type = DesignType.T_BETWEEN

    def effective_n(self, n: int) -> Tuple[float, float]:
        return n / 2.0, 2.0 * n - 2.0


class PairedTTestBayesFactor(_TTestBayesFactor):
    test_type = DesignType.T_PAIRED

    def effective_n(self, n: int) -> Tuple[float, float]:
        return float(n), n - 1.0


def _log_corr_likelihood(rho: float, r: float, n: int) -> float:
    return (
        (n - 1.0) / 2.0 * math.log1p(-rho * rho)
        - (n - 1.5) * math.log1p(-rho * r)
        + math.log(special.hyp2f1(0.5, 0.5, n - 0.5, (rho * r + 1.0) / 2.0))
    )


class CorrelationBayesFactor(BayesFactorModel):
    test_type = DesignType.CORRELATION
    families = (PriorFamily.STRETCHED_BETA,)

    def log_bf10(self, n: int, stat: float) -> float:
        r = float(stat)
        if not (np.isfinite(r) and -1.0 < r < 1.0):
            raise NumericError(f"correlation must lie in (-1, 1), got r={r!r} at n={n}")
        lo, hi = _region(self.alternative, -1.0, 1.0)

        rho_ref = min(max(r, lo), hi)
        offset = _log_corr_likelihood(rho_ref, r, n)
        log_null = _log_corr_likelihood(0.0, r, n)
        if not (np.isfinite(offset) and np.isfinite(log_null)):
            raise NumericError(f"correlation likelihood not finite at n={n}, r={r:.6g}")

        prior = self.prior

        def integrand(rho: float) -> float:
            if not -1.0 < rho < 1.0:
                return 0.0
            v = _log_corr_likelihood(rho, r, n) - offset + float(prior.logpdf(rho))
            return math.exp(v) if np.isfinite(v) else 0.0

        w = (1.0 - r * r) / math.sqrt(n)
        points = [r - WINDOW * w, r, r + WINDOW * w]
        total = _integrate(integrand, _segments(lo, hi, points), f"n={n}, r={r:.6g}")
        return math.log(total) + offset - log_null - self.log_mass


BF_STRATEGIES: Dict[Tuple[DesignType, PriorFamily], Type[BayesFactorModel]] = {
    (DesignType.T_BETWEEN, PriorFamily.CAUCHY): TwoSampleTTestBayesFactor,
    (DesignType.T_BETWEEN, PriorFamily.T): TwoSampleTTestBayesFactor,
    (DesignType.T_BETWEEN, PriorFamily.NORMAL): TwoSampleTTestBayesFactor,
    (DesignType.T_PAIRED, PriorFamily.CAUCHY): PairedTTestBayesFactor,
    (DesignType.T_PAIRED, PriorFamily.T): PairedTTestBayesFactor,
    (DesignType.T_PAIRED, PriorFamily.NORMAL): PairedTTestBayesFactor,
    (DesignType.CORRELATION, PriorFamily.STRETCHED_BETA): CorrelationBayesFactor,
}


def bayes_factor_model(test_type, prior: Prior, alternative=Alternative.TWO_SIDED) -> BayesFactorModel:
    """Pick the BF10 implementation for a (design, prior family) pair."""
    key = (DesignType(test_type), prior.family)
    cls = BF_STRATEGIES.get(key)
    if cls is None:
        raise ConfigurationError(f"No Bayes factor for design '{key[0].value}' with a '{key[1].value}' prior.")
    return cls(prior, alternative)


def bf10_t(t: float, n: int, prior: Prior, paired: bool = False, alternative="two.sided") -> float:
    """BF10 for an observed t statistic (n per group when paired=False)."""
    test_type = DesignType.T_PAIRED if paired else DesignType.T_BETWEEN
    return bayes_factor_model(test_type, prior, alternative).bf10(n, t)


def bf10_r(r: float, n: int, prior: Prior, alternative="two.sided") -> float:
    """BF10 for an observed Pearson correlation from n pairs."""
    return bayes_factor_model(DesignType.CORRELATION, prior, alternative).bf10(n, r)
