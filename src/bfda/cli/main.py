from __future__ import annotations

import argparse
import sys

from bfda.cli.commands.analyze import cmd_analyze
from bfda.cli.commands.run_config import cmd_run_config
from bfda.cli.commands.simulate import cmd_simulate
from bfda.cli.commands.ssd import cmd_ssd
from bfda.cli.commands.version import cmd_version
from bfda.errors import BFDAError
from bfda.priors import DEFAULT_CAUCHY_SCALE


def _add_boundary_args(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--boundary", type=float, default=6.0, help="Upper BF10 boundary; lower defaults to 1/boundary.")
    sp.add_argument("--boundary-lower", dest="boundary_lower", type=float, default=None, help="Explicit lower boundary.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bfda", description="Bayes Factor Design Analysis CLI.")
    sub = p.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("simulate", help="Simulate sequential Bayes factor trajectories.")
    sp.add_argument("--type", choices=["t.between", "t.paired", "correlation"], default="t.between")
    sp.add_argument("--es", default="0.5", help="Expected effect size, or a comma-separated sample to resample from.")
    sp.add_argument("--es-file", dest="es_file", default=None, help="CSV with an empirical effect-size sample.")
    sp.add_argument("--es-col", dest="es_col", default=None, help="Column of --es-file (default: first).")
    sp.add_argument("--prior", choices=["cauchy", "t", "normal", "stretchedbeta"], default="cauchy")
    sp.add_argument("--prior-location", dest="prior_location", type=float, default=0.0)
    sp.add_argument("--prior-scale", dest="prior_scale", type=float, default=DEFAULT_CAUCHY_SCALE)
    sp.add_argument("--prior-df", dest="prior_df", type=float, default=1.0)
    sp.add_argument("--prior-mean", dest="prior_mean", type=float, default=0.0)
    sp.add_argument("--prior-variance", dest="prior_variance", type=float, default=1.0)
    sp.add_argument("--kappa", type=float, default=1.0, help="Stretched beta prior width (correlation).")
    sp.add_argument("--alternative", choices=["two.sided", "greater", "less"], default="two.sided")
    sp.add_argument("--design", choices=["sequential", "fixed.n"], default="sequential")
    sp.add_argument("--n-min", dest="n_min", type=int, default=10)
    sp.add_argument("--n-max", dest="n_max", type=int, default=200)
    sp.add_argument("--stepsize", type=int, default=10)
    sp.add_argument("--B", dest="B", type=int, default=1000, help="Number of replications.")
    sp.add_argument("--cores", type=int, default=1, help="Worker processes (<=0: all CPUs).")
    sp.add_argument("--seed", type=int, default=None)
    sp.add_argument("--hypothesis", choices=["H1", "H0", "unspecified"], default="unspecified")
    sp.add_argument("--boundary", default=None, help="Early-stop boundary: b or 'lower,upper' (default: none).")
    sp.add_argument("--verbose", action="store_true")
    sp.add_argument("--out", default=None)
    sp.set_defaults(func=cmd_simulate)

    sp = sub.add_parser("analyze", help="Analyze a saved simulation under a fixed or sequential design.")
    sp.add_argument("--sim", required=True, help="Directory written by `bfda simulate`.")
    sp.add_argument("--design", choices=["sequential", "fixed"], default="sequential")
    _add_boundary_args(sp)
    sp.add_argument("--n", type=int, default=None, help="Sample size of the fixed design.")
    sp.add_argument("--n-min", dest="n_min", type=int, default=None)
    sp.add_argument("--n-max", dest="n_max", type=int, default=None)
    sp.add_argument("--out", default=None)
    sp.set_defaults(func=cmd_analyze)

    sp = sub.add_parser("ssd", help="Sample size determination from a saved simulation.")
    sp.add_argument("--sim", required=True)
    sp.add_argument("--design", choices=["fixed", "sequential"], default="fixed")
    _add_boundary_args(sp)
    sp.add_argument("--power", type=float, default=0.8)
    sp.add_argument("--alpha", type=float, default=0.025)
    sp.add_argument("--h0-power", dest="h0_power", type=float, default=None, help="H0 target rate of BF10 <= lower (default: --power).")
    sp.add_argument("--out", default=None)
    sp.set_defaults(func=cmd_ssd)

    sp = sub.add_parser("run-config", help="Run a command from a YAML config.")
    sp.add_argument("--config", required=True)
    sp.set_defaults(func=cmd_run_config)

    sp = sub.add_parser("version", help="Print installed package version.")
    sp.set_defaults(func=cmd_version)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    try:
        return int(args.func(args))
    except (BFDAError, FileNotFoundError) as e:
        print(f"[bfda][error] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
