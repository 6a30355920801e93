import json

import yaml

from bfda.cli.main import main


def _simulate(out, *extra):
    argv = [
        "simulate",
        "--type", "t.paired",
        "--es", "0.6",
        "--n-min", "10",
        "--n-max", "40",
        "--stepsize", "10",
        "--B", "6",
        "--seed", "5",
        "--out", str(out),
        *extra,
    ]
    return main(argv)


def test_simulate_writes_bundle(tmp_path):
    out = tmp_path / "sim"
    assert _simulate(out) == 0
    for name in ("simulation.json", "tables/trajectories.csv", "results.json", "report.md", "run_meta.json"):
        assert (out / name).exists(), name

    payload = json.loads((out / "results.json").read_text(encoding="utf-8"))
    assert payload["command"] == "simulate"
    assert payload["inputs"]["hypothesis"] == "H1"
    assert payload["estimates"]["checkpoints"] == [10, 20, 30, 40]


def test_analyze_and_ssd_from_saved_simulation(tmp_path, capsys):
    sim = tmp_path / "sim"
    assert _simulate(sim) == 0

    rc = main(["analyze", "--sim", str(sim), "--boundary", "3", "--n-max", "30", "--out", str(tmp_path / "an")])
    assert rc == 0
    payload = json.loads((tmp_path / "an" / "results.json").read_text(encoding="utf-8"))
    est = payload["estimates"]
    assert est["n_max"] == 30
    assert abs(est["upper_hit_frac"] + est["lower_hit_frac"] + est["n_max_hit_frac"] - 1) < 1e-12
    assert (tmp_path / "an" / "tables" / "endpoints.csv").exists()

    rc = main(["ssd", "--sim", str(sim), "--boundary", "3", "--power", "0.5", "--out", str(tmp_path / "ssd")])
    assert rc == 0
    assert (tmp_path / "ssd" / "tables" / "ssd_candidates.csv").exists()
    assert "sample size determination" in capsys.readouterr().out


def test_analysis_outside_simulated_range_exits_with_error(tmp_path, capsys):
    sim = tmp_path / "sim"
    assert _simulate(sim) == 0
    rc = main(["analyze", "--sim", str(sim), "--n-max", "80", "--out", str(tmp_path / "an")])
    assert rc == 2
    assert "[bfda][error]" in capsys.readouterr().err


def test_ssd_on_untagged_simulation_fails(tmp_path, capsys):
    sim = tmp_path / "sim"
    assert main(
        ["simulate", "--type", "t.paired", "--es", "0.2,0.4,0.6", "--n-min", "10", "--n-max", "20",
         "--B", "4", "--seed", "1", "--out", str(sim)]
    ) == 0
    rc = main(["ssd", "--sim", str(sim), "--out", str(tmp_path / "ssd")])
    assert rc == 2
    assert "hypothesis" in capsys.readouterr().err


def test_run_config_simulate_then_analyze(tmp_path):
    sim = tmp_path / "sim"
    sim_cfg = {
        "command": "simulate",
        "out": str(sim),
        "params": {
            "type": "correlation",
            "prior": "stretchedbeta",
            "kappa": 1.0,
            "es": 0.3,
            "n.min": 10,
            "n.max": 30,
            "stepsize": 10,
            "B": 5,
            "seed": 8,
        },
    }
    p = tmp_path / "sim.yaml"
    p.write_text(yaml.safe_dump(sim_cfg), encoding="utf-8")
    assert main(["run-config", "--config", str(p)]) == 0

    an_cfg = {
        "command": "analyze",
        "sim": str(sim),
        "out": str(tmp_path / "an"),
        "params": {"design": "fixed", "n": 20, "boundary": [0.2, 4.0]},
    }
    p = tmp_path / "an.yaml"
    p.write_text(yaml.safe_dump(an_cfg), encoding="utf-8")
    assert main(["run-config", "--config", str(p)]) == 0
    payload = json.loads((tmp_path / "an" / "results.json").read_text(encoding="utf-8"))
    assert payload["inputs"]["boundary"] == [0.2, 4.0]
    assert payload["estimates"]["design"] == "fixed"


def test_run_config_rejects_unknown_params(tmp_path, capsys):
    p = tmp_path / "bad.yaml"
    p.write_text(yaml.safe_dump({"command": "simulate", "params": {"n_maximum": 10}}), encoding="utf-8")
    assert main(["run-config", "--config", str(p)]) == 2
    assert "unknown params" in capsys.readouterr().err
