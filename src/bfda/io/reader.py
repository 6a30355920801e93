from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from bfda.errors import ConfigurationError
from bfda.io.schema import FORMAT_NAME, META_FILE, TRAJECTORIES_FILE, TableSchema, TRAJECTORY_SCHEMA
from bfda.schema import FailedReplication, SimulationConfig, SimulationResult


def read_csv(path: str | Path) -> pd.DataFrame:
    # round_trip keeps every float bit-identical to what was written
    return pd.read_csv(path, float_precision="round_trip")


def validate_df(df: pd.DataFrame, schema: TableSchema) -> list[str]:
    errors: list[str] = []

    cols = set(df.columns)
    for c in schema.required:
        if c.name not in cols:
            errors.append(f"Missing required column: {c.name}")

    if errors:
        return errors

    for c in schema.required:
        if df[c.name].isna().any():
            errors.append(f"Column '{c.name}' contains missing values")

    if not errors and len(df):
        increasing = df.groupby("id", sort=False)["n"].apply(lambda s: bool(s.is_monotonic_increasing and s.is_unique))
        bad = sorted(int(i) for i in increasing[~increasing].index)
        if bad:
            errors.append(f"Checkpoints are not strictly increasing for trajectory ids: {bad[:10]}")

    return errors


def load_result(in_dir: str | Path) -> SimulationResult:
    """Read a SimulationResult written by `save_result`."""
    d = Path(in_dir)
    meta_path = d / META_FILE
    if not meta_path.exists():
        raise FileNotFoundError(f"Simulation not found: {meta_path}")
    meta = json.loads(meta_path.read_text(encoding="utf-8"))
    if meta.get("format") != FORMAT_NAME:
        raise ConfigurationError(f"{meta_path} is not a bfda simulation file.")

    sim = read_csv(d / TRAJECTORIES_FILE)
    errors = validate_df(sim, TRAJECTORY_SCHEMA)
    if errors:
        raise ConfigurationError("Invalid trajectory table: " + "; ".join(errors))
    for c in TRAJECTORY_SCHEMA.required:
        sim[c.name] = sim[c.name].astype(int if c.dtype == "int" else float)
    sim = sim[[c.name for c in TRAJECTORY_SCHEMA.required]]

    return SimulationResult(
        config=SimulationConfig.from_dict(meta["config"]),
        sim=sim,
        failures=tuple(FailedReplication(id=int(f["id"]), message=str(f["message"])) for f in meta.get("failures", [])),
        seed_entropy=meta.get("seed_entropy"),
        warnings=tuple(meta.get("warnings", [])),
    )
