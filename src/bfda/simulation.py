"""
Monte Carlo driver: B independent replications of a sequential study.

Each replication gets its own numpy Generator spawned from one
SeedSequence, so results are reproducible and identical for any number of
worker processes. Replications are independent and can run in a process pool;
the driver only waits for all of them and re-orders the rows by replication id.
"""

from __future__ import annotations

import math
import os
import sys
import time
import warnings
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from bfda.bayes_factor import bayes_factor_model
from bfda.errors import NumericError
from bfda.generate import draw_sample_path, n_points, statistic_at
from bfda.schema import (
    TRAJECTORY_COLUMNS,
    FailedReplication,
    SimDesign,
    SimulationConfig,
    SimulationResult,
)


ReplicationOutcome = Tuple[int, Optional[pd.DataFrame], Optional[str]]

MAX_LOG_FLOAT = math.log(sys.float_info.max)


def checkpoints_for(cfg: SimulationConfig) -> List[int]:
    if cfg.design == SimDesign.FIXED_N:
        return [int(cfg.n_max)]
    return n_points(cfg.n_min, cfg.n_max, cfg.stepsize)


def run_replication(cfg: SimulationConfig, rep_id: int, seed_seq: np.random.SeedSequence) -> pd.DataFrame:
    """Simulate one study: draw an effect size, the full sample path, and BF10 at every checkpoint."""
    rng = np.random.default_rng(seed_seq)
    es = cfg.effect_size.draw(rng)
    sample = draw_sample_path(cfg.test_type, es, int(cfg.n_max), rng)
    model = bayes_factor_model(cfg.test_type, cfg.prior, cfg.alternative)

    log_lo = log_hi = None
    if cfg.boundary is not None:
        log_lo, log_hi = math.log(cfg.boundary[0]), math.log(cfg.boundary[1])

    rows = []
    for n in checkpoints_for(cfg):
        with np.errstate(divide="raise", invalid="raise"):
            stat, emp_es = statistic_at(cfg.test_type, sample, n)
        log_bf = model.log_bf10(n, stat)
        bf = math.exp(log_bf) if log_bf < MAX_LOG_FLOAT else math.inf
        rows.append((rep_id, es, n, stat, emp_es, log_bf, bf))
        if log_hi is not None and (log_bf >= log_hi or log_bf <= log_lo):
            break

    return pd.DataFrame(rows, columns=TRAJECTORY_COLUMNS)


def _replication_task(cfg: SimulationConfig, rep_id: int, seed_seq: np.random.SeedSequence) -> ReplicationOutcome:
    try:
        return rep_id, run_replication(cfg, rep_id, seed_seq), None
    except ArithmeticError as e:
        return rep_id, None, f"{type(e).__name__}: {e}"


def _progress(done: int, total: int, start: float) -> None:
    elapsed = time.time() - start
    eta = elapsed / done * (total - done)
    print(f"[bfda] [{done}/{total}] replications done. Elapsed={elapsed:.1f}s ETA={eta:.1f}s", file=sys.stderr)


def simulate(cfg: SimulationConfig, cores: int = 1, verbose: bool = False) -> SimulationResult:
    """Run B replications of the configured study and collect their BF trajectories.

    Parameters
    ----------
    cfg : SimulationConfig
        Validated before any replication is dispatched.
    cores : int, optional
        Worker processes; 1 runs in-process, <= 0 uses all CPUs.
    verbose : bool, optional
        Print progress lines to stderr.

    Returns
    -------
    SimulationResult
        Failed replications are listed in `failures` and absent from `sim`.
    """
    cfg.validate()
    # Build once so an unsupported design/prior pair fails before dispatch.
    bayes_factor_model(cfg.test_type, cfg.prior, cfg.alternative)

    root = np.random.SeedSequence(cfg.seed)
    children = root.spawn(int(cfg.B))

    jobs = int(cores)
    if jobs <= 0:
        jobs = os.cpu_count() or 1
    jobs = min(jobs, int(cfg.B))

    outcomes: List[ReplicationOutcome] = []
    start = time.time()
    report_every = max(1, int(cfg.B) // 10)

    if jobs <= 1:
        for i, ss in enumerate(children):
            outcomes.append(_replication_task(cfg, i, ss))
            if verbose and ((i + 1) % report_every == 0 or i + 1 == cfg.B):
                _progress(i + 1, int(cfg.B), start)
    else:
        with ProcessPoolExecutor(max_workers=jobs) as ex:
            futures = [ex.submit(_replication_task, cfg, i, ss) for i, ss in enumerate(children)]
            for done, fut in enumerate(as_completed(futures), 1):
                outcomes.append(fut.result())
                if verbose and (done % report_every == 0 or done == cfg.B):
                    _progress(done, int(cfg.B), start)

    outcomes.sort(key=lambda o: o[0])
    frames = [df for _, df, _ in outcomes if df is not None]
    failures = tuple(FailedReplication(id=i, message=msg) for i, df, msg in outcomes if df is None)

    if frames:
        sim = pd.concat(frames, ignore_index=True)
    else:
        sim = pd.DataFrame({c: pd.Series(dtype=float) for c in TRAJECTORY_COLUMNS})
    sim["id"] = sim["id"].astype(int)
    sim["n"] = sim["n"].astype(int)

    warn_msgs: List[str] = []
    if failures:
        msg = f"{len(failures)} of {cfg.B} replications failed and were excluded."
        warn_msgs.append(msg)
        warnings.warn(msg, RuntimeWarning, stacklevel=2)

    return SimulationResult(
        config=cfg,
        sim=sim,
        failures=failures,
        seed_entropy=int(root.entropy),
        warnings=tuple(warn_msgs),
    )
