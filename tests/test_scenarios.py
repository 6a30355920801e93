import numpy as np
import pandas as pd
import pytest

from bfda.analysis import analyze_fixed, analyze_sequential
from bfda.priors import Prior
from bfda.schema import SimulationConfig
from bfda.simulation import simulate
from bfda.ssd import sample_size_determination


def _cfg(es: float, n_max: int = 100, **kw) -> SimulationConfig:
    base = dict(
        test_type="t.between",
        prior=Prior.cauchy(scale=np.sqrt(2) / 2),
        effect_size=es,
        alternative="greater",
        n_min=20,
        n_max=n_max,
        stepsize=10,
        B=200,
        seed=31,
    )
    base.update(kw)
    return SimulationConfig(**base)


@pytest.fixture(scope="module")
def h1_sim():
    return simulate(_cfg(0.5), cores=2)


@pytest.fixture(scope="module")
def h0_sim():
    return simulate(_cfg(0.0, B=100), cores=2)


def test_power_grows_with_maximal_sample_size(h1_sim):
    rates = [analyze_sequential(h1_sim, boundary=6, n_max=n).upper_hit_frac for n in range(40, 101, 10)]
    assert all(a <= b for a, b in zip(rates, rates[1:]))
    asns = [analyze_sequential(h1_sim, boundary=6, n_max=n).asn for n in range(40, 101, 10)]
    assert all(a <= b for a, b in zip(asns, asns[1:]))


def test_stricter_boundary_means_fewer_false_positives(h0_sim):
    loose = analyze_fixed(h0_sim, n=50, boundary=2)
    strict = analyze_fixed(h0_sim, n=50, boundary=6)
    assert strict.upper_hit_frac <= loose.upper_hit_frac
    assert strict.lower_hit_frac <= loose.lower_hit_frac


def test_effect_is_detected_more_often_than_under_h0(h1_sim, h0_sim):
    h1 = analyze_sequential(h1_sim, boundary=6)
    h0 = analyze_sequential(h0_sim, boundary=6)
    assert h1.upper_hit_frac > h0.upper_hit_frac
    assert h0.lower_hit_frac > h1.lower_hit_frac


def test_fixed_n_result_does_not_depend_on_simulated_n_max(h1_sim):
    short = simulate(_cfg(0.5, n_max=60), cores=2)
    a = analyze_fixed(short, n=60, boundary=6)
    b = analyze_fixed(h1_sim, n=60, boundary=6)
    pd.testing.assert_frame_equal(a.endpoints, b.endpoints)
    assert a.upper_hit_frac == b.upper_hit_frac


def test_ssd_result_is_monotone_in_power(h1_sim):
    low = sample_size_determination(h1_sim, boundary=3, design="fixed", power=0.3)
    high = sample_size_determination(h1_sim, boundary=3, design="fixed", power=0.6)
    if low.reached and high.reached:
        assert low.n <= high.n
    assert low.reached or not high.reached


@pytest.mark.parametrize("design", ["fixed", "sequential"])
def test_h0_ssd_does_not_recommend_an_all_inconclusive_design(h0_sim, design):
    res = sample_size_determination(h0_sim, boundary=6, design=design, alpha=0.025, h0_power=0.3)
    if res.reached:
        assert res.achieved["n_max_hit_frac"] < 1.0
        assert res.achieved["lower_hit_frac"] >= 0.3
        assert res.achieved["upper_hit_frac"] <= 0.025
    else:
        assert not res.table["meets_target"].any()
