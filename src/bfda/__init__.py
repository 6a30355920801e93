"""Bayes Factor Design Analysis.

Monte Carlo design analysis for studies evaluated with Bayes factors:

* Three designs: two-sample t-test (`t.between`), paired t-test (`t.paired`)
  and Pearson correlation (`correlation`)
* Default and informed priors (Cauchy, t, normal; stretched beta for rho)
* Sequential designs with BF boundaries and fixed-n designs
* Sample-size determination from one simulation

Typical use::

    cfg = SimulationConfig(test_type="t.between", effect_size=0.5, n_min=20, n_max=100, B=1000, seed=1)
    res = simulate(cfg, cores=4)
    summary = analyze_sequential(res, boundary=6)
    ssd = sample_size_determination(res, boundary=6, design="fixed", power=0.8)

Simulation precision grows with B; results are reproducible for a given seed,
regardless of the number of worker processes.
"""

from bfda.errors import (
    AmbiguousHypothesisError,
    AnalysisRangeError,
    BFDAError,
    ConfigurationError,
    NumericError,
)
from bfda.priors import Prior, PriorFamily
from bfda.schema import (
    Alternative,
    AnalysisConfig,
    AnalysisDesign,
    AnalysisSummary,
    EffectSize,
    Hypothesis,
    SimDesign,
    SimulationConfig,
    SimulationResult,
    DesignType,
)
from bfda.bayes_factor import bayes_factor_model, bf10_r, bf10_t
from bfda.simulation import simulate
from bfda.analysis import analyze, analyze_fixed, analyze_sequential
from bfda.ssd import SSDResult, sample_size_determination
from bfda.io.reader import load_result
from bfda.io.writer import save_result
