import math

import numpy as np
import pytest
from scipy import integrate, stats

from bfda.errors import ConfigurationError
from bfda.priors import DEFAULT_CAUCHY_SCALE, Prior, PriorFamily


def test_cauchy_and_t_densities_match_scipy():
    x = np.array([-2.0, -0.3, 0.0, 0.4, 3.0])

    p = Prior.cauchy(location=0.1, scale=DEFAULT_CAUCHY_SCALE)
    np.testing.assert_allclose(p.logpdf(x), stats.cauchy.logpdf(x, loc=0.1, scale=DEFAULT_CAUCHY_SCALE), rtol=1e-12)

    q = Prior.t(location=0.35, scale=0.102, df=3)
    np.testing.assert_allclose(q.logpdf(x), stats.t.logpdf(x, 3, loc=0.35, scale=0.102), rtol=1e-10)


def test_normal_prior_is_parameterized_by_variance():
    p = Prior.normal(mean=0.2, variance=0.25)
    assert p.family == PriorFamily.NORMAL
    assert math.isclose(p.scale, 0.5)
    np.testing.assert_allclose(p.pdf(0.7), stats.norm.pdf(0.7, loc=0.2, scale=0.5), rtol=1e-12)
    assert p.to_dict() == {"family": "normal", "mean": 0.2, "variance": 0.25}


def test_stretched_beta_is_a_density_on_minus_one_one():
    uniform = Prior.stretched_beta(kappa=1.0)
    assert math.isclose(float(uniform.pdf(0.3)), 0.5, rel_tol=1e-12)
    assert float(uniform.pdf(1.5)) == 0.0

    for kappa in (0.5, 1.0, 2.0):
        p = Prior.stretched_beta(kappa=kappa)
        total, _ = integrate.quad(lambda r: float(p.pdf(r)), -1, 1)
        assert abs(total - 1.0) < 1e-6


def test_prior_mass_for_directional_hypotheses():
    assert Prior.cauchy().mass("two.sided") == 1.0
    assert math.isclose(Prior.cauchy().mass("greater"), 0.5)
    assert math.isclose(Prior.stretched_beta(2.0).mass("less"), 0.5)

    p = Prior.normal(mean=0.5, variance=1.0)
    assert math.isclose(p.mass("greater"), stats.norm.sf(-0.5))
    assert math.isclose(p.mass("greater") + p.mass("less"), 1.0)


@pytest.mark.parametrize(
    "prior, design",
    [
        (Prior.cauchy(scale=0.0), "t.between"),
        (Prior.t(scale=1.0, df=0.0), "t.paired"),
        (Prior.stretched_beta(kappa=0.0), "correlation"),
        (Prior.stretched_beta(kappa=-1.0), "correlation"),
        (Prior.cauchy(), "correlation"),
        (Prior.stretched_beta(), "t.between"),
    ],
)
def test_invalid_priors_fail_validation(prior, design):
    with pytest.raises(ConfigurationError):
        prior.validate(design)


def test_normal_prior_rejects_nonpositive_variance():
    with pytest.raises(ConfigurationError):
        Prior.normal(mean=0.0, variance=0.0)


def test_prior_dict_round_trip():
    for p in (Prior.cauchy(0.0, 1.0), Prior.t(0.35, 0.102, 3.0), Prior.stretched_beta(0.5)):
        assert Prior.from_dict(p.to_dict()) == p
