import numpy as np
import pytest
from scipy import stats

from bfda.errors import ConfigurationError, NumericError
from bfda.generate import draw_sample_path, n_points, statistic_at, statistic_path
from bfda.schema import DesignType


def test_n_points_grid():
    assert n_points(20, 100, 10) == [20, 30, 40, 50, 60, 70, 80, 90, 100]
    assert n_points(10, 95, 10)[-2:] == [90, 95]
    assert n_points(5, 5, 3) == [5]
    with pytest.raises(ConfigurationError):
        n_points(50, 10, 5)
    with pytest.raises(ConfigurationError):
        n_points(10, 50, 0)


@pytest.mark.parametrize("design", list(DesignType))
def test_sample_prefix_does_not_depend_on_n_max(design):
    short = draw_sample_path(design, 0.3, 50, np.random.default_rng(7))
    long = draw_sample_path(design, 0.3, 120, np.random.default_rng(7))
    np.testing.assert_array_equal(short, long[:50])


def test_statistics_match_scipy():
    rng = np.random.default_rng(3)

    x = draw_sample_path(DesignType.T_BETWEEN, 0.5, 40, rng)
    t, d = statistic_at(DesignType.T_BETWEEN, x, 25)
    ref = stats.ttest_ind(x[:25, 0], x[:25, 1], equal_var=True).statistic
    assert np.isclose(t, ref)
    assert np.isclose(d, ref * np.sqrt(2 / 25))

    p = draw_sample_path(DesignType.T_PAIRED, 0.2, 40, rng)
    t, d = statistic_at(DesignType.T_PAIRED, p, 30)
    assert np.isclose(t, stats.ttest_1samp(p[:30], 0.0).statistic)

    c = draw_sample_path(DesignType.CORRELATION, 0.4, 60, rng)
    r, _ = statistic_at(DesignType.CORRELATION, c, 60)
    assert np.isclose(r, stats.pearsonr(c[:, 0], c[:, 1])[0])


def test_correlation_sample_has_target_correlation():
    c = draw_sample_path(DesignType.CORRELATION, -0.6, 20000, np.random.default_rng(11))
    assert abs(np.corrcoef(c[:, 0], c[:, 1])[0, 1] + 0.6) < 0.02


def test_statistic_path_is_ordered_by_n():
    x = draw_sample_path(DesignType.T_PAIRED, 0.0, 60, np.random.default_rng(1))
    df = statistic_path(DesignType.T_PAIRED, x, n_points(10, 60, 25))
    assert df["n"].tolist() == [10, 35, 60]
    assert np.all(np.isfinite(df["stat"]))


def test_degenerate_samples_raise_numeric_error():
    const = np.ones((10, 2))
    with pytest.raises(NumericError):
        statistic_at(DesignType.T_BETWEEN, const, 10)
    with pytest.raises(NumericError):
        statistic_at(DesignType.T_PAIRED, np.zeros(10), 10)
    with pytest.raises(NumericError):
        statistic_at(DesignType.CORRELATION, np.column_stack([np.arange(5.0), np.arange(5.0)]), 5)
