from __future__ import annotations

from typing import Optional

from bfda.schema import AnalysisSummary, SimulationResult
from bfda.ssd import SSDResult


def _fmt(x: Optional[float], nd: int = 4) -> str:
    return f"{x:.{nd}g}" if x is not None else "(n/a)"


def _warn_block(warnings) -> str:
    return ("- " + "\n- ".join(warnings)) if warnings else "(none)"


def render_simulation_md(result: SimulationResult) -> str:
    cfg = result.config
    prior = ", ".join(f"{k}={v}" for k, v in cfg.prior.to_dict().items())
    es = cfg.effect_size
    es_str = f"{es.values[0]:g}" if es.is_fixed else f"empirical ({len(es.values)} values, mean {cfg.expected_es:.4g})"
    return f"""# bfda simulation

## Inputs
- design: `{cfg.test_type.value}` ({cfg.design.value})
- prior: `{prior}`
- expected effect size: `{es_str}` (hypothesis: `{cfg.hypothesis.value}`)
- alternative: `{cfg.alternative.value}`
- n: `{cfg.n_min}` to `{cfg.n_max}` by `{cfg.stepsize}`
- replications: `{cfg.B}` (failed: `{result.n_failed}`)
- seed entropy: `{result.seed_entropy}`

## Warnings
{_warn_block(result.warnings)}
"""


def render_analysis_md(summary: AnalysisSummary) -> str:
    lower, upper = summary.boundary
    q = summary.endpoint_quantiles
    if summary.design == "sequential":
        range_str = f"n_min=`{summary.n_min}`, n_max=`{summary.n_max}`"
        stop_str = (
            f"- ASN (average sample number): **{summary.asn:.2f}**\n"
            f"- 80% of studies stop at n <= **{q.get('80%', float('nan')):.0f}**\n"
            f"- mean n at upper boundary: `{_fmt(summary.upper_hit_asn)}`\n"
            f"- mean n at lower boundary: `{_fmt(summary.lower_hit_asn)}`"
        )
    else:
        range_str = f"n=`{summary.n_max}`"
        stop_str = f"- all studies stop at n = **{summary.n_max}**"

    return f"""# bfda design analysis

## Design
- design: `{summary.design}` ({range_str})
- boundary: BF10 <= `{lower:.4g}` (H0) / BF10 >= `{upper:.4g}` (H1)
- trajectories used: `{summary.n_used}` (failed and excluded: `{summary.n_failed}`)

## Decisions
- upper boundary hit (evidence for H1): **{summary.upper_hit_frac:.1%}**
- lower boundary hit (evidence for H0): **{summary.lower_hit_frac:.1%}**
- inconclusive at n_max: **{summary.n_max_hit_frac:.1%}**
  - of which pointing to H1 (BF10 > 1): `{summary.n_max_hit_h1_frac:.1%}`
  - of which pointing to H0 (BF10 < 1): `{summary.n_max_hit_h0_frac:.1%}`

## Sample size
{stop_str}

## Warnings
{_warn_block(summary.warnings)}
"""


def render_ssd_md(res: SSDResult) -> str:
    lower, upper = res.boundary
    targets = ", ".join(f"{k}={v}" for k, v in res.targets.items() if v is not None)
    if res.reached:
        n_label = "n" if res.design == "fixed" else "n_max"
        found = (
            f"- required {n_label}: **{res.n}**\n"
            f"- rate BF10 >= {upper:.4g}: `{res.achieved['upper_hit_frac']:.1%}`\n"
            f"- rate BF10 <= {lower:.4g}: `{res.achieved['lower_hit_frac']:.1%}`\n"
            f"- inconclusive: `{res.achieved['n_max_hit_frac']:.1%}`"
        )
    else:
        found = "- target **not reached** within the simulated range"

    return f"""# bfda sample size determination

## Inputs
- population: `{res.hypothesis}`
- design: `{res.design}`
- boundary: `({lower:.4g}, {upper:.4g})`
- criterion: `{res.criterion}` ({targets})

## Result
{found}

## Warnings
{_warn_block(res.warnings)}
"""
