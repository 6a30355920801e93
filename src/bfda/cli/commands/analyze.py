from __future__ import annotations

from typing import Any, Optional

from bfda.analysis import analyze
from bfda.cli.bundle import prepare_out_dir, write_report_md, write_results_json, write_run_meta, write_table
from bfda.io.reader import load_result
from bfda.reporting import render_analysis_md
from bfda.schema import AnalysisConfig, AnalysisDesign


def parse_boundary(upper: float, lower: Optional[float] = None):
    if lower is None:
        return float(upper)
    return (float(lower), float(upper))


def _opt_int(v) -> Optional[int]:
    return int(v) if v is not None else None


def cmd_analyze(args) -> int:
    result = load_result(args.sim)
    design = AnalysisDesign(str(getattr(args, "design", "sequential")))
    cfg = AnalysisConfig(
        design=design,
        boundary=parse_boundary(getattr(args, "boundary", 6.0), getattr(args, "boundary_lower", None)),
        n_min=_opt_int(getattr(args, "n_min", None)),
        n_max=_opt_int(getattr(args, "n_max", None)),
        n=_opt_int(getattr(args, "n", None)),
    )
    summary = analyze(result, cfg)

    out_dir = prepare_out_dir(getattr(args, "out", None), command="analyze")
    write_run_meta(out_dir, vars(args), extra={"command": "analyze"})

    artifacts: dict[str, Any] = {"report_md": "report.md", "tables": []}
    artifacts["tables"].append(write_table(out_dir, "endpoints", summary.endpoints))

    d = summary.to_dict()
    d.pop("endpoints")
    d.pop("endpoint_n")
    payload: dict[str, Any] = {
        "command": "analyze",
        "inputs": {"sim": str(args.sim), "design": design.value, "boundary": list(cfg.boundary)},
        "estimates": d,
        "warnings": summary.warnings,
        "artifacts": artifacts,
    }
    write_results_json(out_dir, payload)
    report = render_analysis_md(summary)
    write_report_md(out_dir, report)
    print(report)
    return 0
