from __future__ import annotations

from typing import Any

from bfda.cli.bundle import prepare_out_dir, write_report_md, write_results_json, write_run_meta, write_table
from bfda.cli.commands.analyze import parse_boundary
from bfda.io.reader import load_result
from bfda.reporting import render_ssd_md
from bfda.ssd import sample_size_determination


def cmd_ssd(args) -> int:
    result = load_result(args.sim)
    h0_power = getattr(args, "h0_power", None)
    res = sample_size_determination(
        result,
        boundary=parse_boundary(getattr(args, "boundary", 6.0), getattr(args, "boundary_lower", None)),
        design=str(getattr(args, "design", "fixed")),
        power=float(getattr(args, "power", 0.8)),
        alpha=float(getattr(args, "alpha", 0.025)),
        h0_power=float(h0_power) if h0_power is not None else None,
    )

    out_dir = prepare_out_dir(getattr(args, "out", None), command="ssd")
    write_run_meta(out_dir, vars(args), extra={"command": "ssd"})

    artifacts: dict[str, Any] = {"report_md": "report.md", "tables": []}
    artifacts["tables"].append(write_table(out_dir, "ssd_candidates", res.table))

    d = res.to_dict()
    d.pop("table")
    payload: dict[str, Any] = {
        "command": "ssd",
        "inputs": {"sim": str(args.sim)},
        "estimates": d,
        "warnings": res.warnings,
        "artifacts": artifacts,
    }
    write_results_json(out_dir, payload)
    report = render_ssd_md(res)
    write_report_md(out_dir, report)
    print(report)
    return 0
