from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pandas as pd

from bfda.errors import ConfigurationError, NumericError
from bfda.schema import DesignType


def n_points(n_min: int, n_max: int, stepsize: int) -> List[int]:
    """Checkpoints n_min, n_min + step, ..., always ending exactly at n_max."""
    if stepsize <= 0:
        raise ConfigurationError("stepsize must be > 0.")
    if n_min > n_max:
        raise ConfigurationError(f"n_min ({n_min}) must be <= n_max ({n_max}).")
    pts = list(range(int(n_min), int(n_max) + 1, int(stepsize)))
    if pts[-1] != int(n_max):
        pts.append(int(n_max))
    return pts


def draw_sample_path(test_type: DesignType, es: float, n_max: int, rng: np.random.Generator) -> np.ndarray:
    """Draw the full raw sample of one replication, shape (n_max, 2) or (n_max,).

    Draws are filled row by row, so the first n rows do not depend on n_max.
    """
    test_type = DesignType(test_type)
    if test_type == DesignType.T_BETWEEN:
        x = rng.standard_normal((n_max, 2))
        x[:, 0] += es
        return x
    if test_type == DesignType.T_PAIRED:
        return rng.standard_normal(n_max) + es
    z = rng.standard_normal((n_max, 2))
    # Bivariate normal with unit variances and correlation es
    y = es * z[:, 0] + np.sqrt(1.0 - es * es) * z[:, 1]
    return np.column_stack([z[:, 0], y])


def _t_between(x: np.ndarray, n: int) -> float:
    a = x[:n, 0]
    b = x[:n, 1]
    sp2 = (np.var(a, ddof=1) + np.var(b, ddof=1)) / 2.0
    if not np.isfinite(sp2) or sp2 <= 0:
        raise NumericError(f"zero pooled variance at n={n}")
    return float((np.mean(a) - np.mean(b)) / np.sqrt(sp2 * 2.0 / n))


def _t_paired(d: np.ndarray, n: int) -> float:
    s = np.std(d[:n], ddof=1)
    if not np.isfinite(s) or s <= 0:
        raise NumericError(f"zero variance of differences at n={n}")
    return float(np.mean(d[:n]) / (s / np.sqrt(n)))


def _pearson_r(xy: np.ndarray, n: int) -> float:
    x = xy[:n, 0] - np.mean(xy[:n, 0])
    y = xy[:n, 1] - np.mean(xy[:n, 1])
    den = np.sqrt(np.sum(x * x) * np.sum(y * y))
    if not np.isfinite(den) or den <= 0:
        raise NumericError(f"correlation undefined at n={n}")
    r = float(np.sum(x * y) / den)
    if abs(r) >= 1.0:
        raise NumericError(f"degenerate correlation r={r} at n={n}")
    return r


def statistic_at(test_type: DesignType, sample: np.ndarray, n: int) -> Tuple[float, float]:
    """(test statistic, empirical effect size) on the first n observations of a sample path."""
    if test_type == DesignType.T_BETWEEN:
        t = _t_between(sample, n)
        return t, float(t * np.sqrt(2.0 / n))
    if test_type == DesignType.T_PAIRED:
        t = _t_paired(sample, n)
        return t, float(t / np.sqrt(n))
    r = _pearson_r(sample, n)
    return r, r


def statistic_path(test_type: DesignType, sample: np.ndarray, points: List[int]) -> pd.DataFrame:
    """Test statistic and empirical effect size at every checkpoint of one sample path."""
    test_type = DesignType(test_type)
    rows = [statistic_at(test_type, sample, n) for n in points]
    return pd.DataFrame(
        {"n": list(points), "stat": [r[0] for r in rows], "emp_es": [r[1] for r in rows]}
    )
