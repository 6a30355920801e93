import math

import numpy as np
import pytest
from scipy import integrate, special, stats

from bfda.bayes_factor import (
    CorrelationBayesFactor,
    PairedTTestBayesFactor,
    TwoSampleTTestBayesFactor,
    bayes_factor_model,
    bf10_r,
    bf10_t,
)
from bfda.errors import ConfigurationError, NumericError
from bfda.priors import Prior


def _jzs_bf10(t: float, N: float, nu: float, r: float) -> float:
    """Default (JZS) Bayes factor via the g-prior mixture representation."""

    def f(g):
        s2 = 1.0 + N * g * r * r
        return (
            s2**-0.5
            * (1.0 + t * t / (s2 * nu)) ** (-(nu + 1) / 2)
            * (2 * math.pi) ** -0.5
            * g**-1.5
            * math.exp(-1.0 / (2 * g))
        )

    num, _ = integrate.quad(f, 0, np.inf)
    return num / (1.0 + t * t / nu) ** (-(nu + 1) / 2)


def _corr_bf10_closed_form(n: int, r: float, kappa: float) -> float:
    a = 1.0 / kappa
    log_c = (
        (kappa - 2.0) / kappa * math.log(2.0)
        + 0.5 * math.log(math.pi)
        - special.betaln(a, a)
        + special.gammaln((n + 2.0 / kappa - 1.0) / 2.0)
        - special.gammaln((n + 2.0 / kappa) / 2.0)
    )
    return math.exp(log_c) * special.hyp2f1((n - 1) / 2.0, (n - 1) / 2.0, (n + 2.0 / kappa) / 2.0, r * r)


def test_two_sample_cauchy_matches_jzs():
    prior = Prior.cauchy(scale=math.sqrt(2) / 2)
    n, t = 20, 2.1
    expected = _jzs_bf10(t, N=n / 2, nu=2 * n - 2, r=math.sqrt(2) / 2)
    assert math.isclose(bf10_t(t, n, prior), expected, rel_tol=1e-5)


def test_paired_cauchy_matches_jzs():
    prior = Prior.cauchy(scale=1.0)
    n, t = 15, -1.4
    expected = _jzs_bf10(t, N=n, nu=n - 1, r=1.0)
    assert math.isclose(bf10_t(t, n, prior, paired=True), expected, rel_tol=1e-5)


def test_normal_prior_matches_closed_form_marginal():
    # delta ~ N(mu, sigma^2)  =>  t / s ~ nct(nu, mu sqrt(N) / s),  s = sqrt(1 + N sigma^2)
    mu, var = 0.3, 0.2
    n, t = 25, 2.5
    N, nu = float(n), n - 1.0
    s = math.sqrt(1.0 + N * var)
    marginal = stats.nct.pdf(t / s, nu, mu * math.sqrt(N) / s) / s
    expected = marginal / stats.t.pdf(t, nu)
    got = bf10_t(t, n, Prior.normal(mean=mu, variance=var), paired=True)
    assert math.isclose(got, expected, rel_tol=1e-5)


@pytest.mark.parametrize("kappa", [1.0, 0.5, 2.0])
def test_correlation_matches_closed_form(kappa):
    n, r = 30, 0.4
    expected = _corr_bf10_closed_form(n, r, kappa)
    assert math.isclose(bf10_r(r, n, Prior.stretched_beta(kappa)), expected, rel_tol=1e-5)


@pytest.mark.parametrize(
    "model_cls, prior, stat, n",
    [
        (TwoSampleTTestBayesFactor, Prior.cauchy(), 1.7, 30),
        (PairedTTestBayesFactor, Prior.t(location=0.35, scale=0.102, df=3), 2.2, 40),
        (PairedTTestBayesFactor, Prior.normal(mean=-0.2, variance=0.5), -0.8, 12),
        (CorrelationBayesFactor, Prior.stretched_beta(1.0), 0.25, 50),
    ],
)
def test_two_sided_bf_is_mass_weighted_mix_of_one_sided(model_cls, prior, stat, n):
    two = model_cls(prior, "two.sided").bf10(n, stat)
    plus = model_cls(prior, "greater").bf10(n, stat)
    minus = model_cls(prior, "less").bf10(n, stat)
    m_plus, m_minus = prior.mass("greater"), prior.mass("less")
    assert math.isclose(two, m_plus * plus + m_minus * minus, rel_tol=1e-5)
    # Positive statistics favour the 'greater' hypothesis.
    if stat > 0:
        assert plus > minus


def test_large_samples_stay_finite_on_log_scale():
    model = bayes_factor_model("t.between", Prior.cauchy())
    log_bf = model.log_bf10(2000, 12.0)
    assert np.isfinite(log_bf) and log_bf > 30

    log_bf0 = model.log_bf10(5000, 0.0)
    assert np.isfinite(log_bf0) and log_bf0 < 0

    corr = bayes_factor_model("correlation", Prior.stretched_beta(1.0))
    assert np.isfinite(corr.log_bf10(3000, 0.3))


def test_evidence_for_h0_grows_with_n_at_zero_effect():
    model = bayes_factor_model("t.paired", Prior.cauchy())
    bfs = [model.bf10(n, 0.0) for n in (20, 80, 320)]
    assert bfs[0] > bfs[1] > bfs[2]


def test_unsupported_design_prior_pair():
    with pytest.raises(ConfigurationError):
        bayes_factor_model("correlation", Prior.cauchy())
    with pytest.raises(ConfigurationError):
        bayes_factor_model("t.between", Prior.stretched_beta(1.0))


def test_invalid_statistics_raise_numeric_error():
    with pytest.raises(NumericError):
        bf10_r(1.0, 20, Prior.stretched_beta())
    with pytest.raises(NumericError):
        bf10_t(float("nan"), 20, Prior.cauchy())


@pytest.mark.parametrize("alternative", ["two.sided", "greater", "less"])
def test_large_t_far_from_prior_bulk_stays_finite(alternative):
    log_bf = bayes_factor_model("t.between", Prior.cauchy(), alternative).log_bf10(200, 8.0)
    assert np.isfinite(log_bf)
    if alternative == "less":
        assert log_bf < 0
    else:
        assert log_bf > 10


def test_large_t_matches_jzs():
    expected = _jzs_bf10(8.0, N=100, nu=398, r=math.sqrt(2) / 2)
    assert math.isclose(bf10_t(8.0, 200, Prior.cauchy()), expected, rel_tol=1e-4)
