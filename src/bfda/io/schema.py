from __future__ import annotations

from dataclasses import dataclass
from typing import List

FORMAT_NAME = "bfda-simulation"
FORMAT_VERSION = 1

META_FILE = "simulation.json"
TRAJECTORIES_FILE = "tables/trajectories.csv"


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    dtype: str  # "int", "float"


@dataclass(frozen=True)
class TableSchema:
    name: str
    required: List[ColumnSpec]


TRAJECTORY_SCHEMA = TableSchema(
    name="trajectories",
    required=[
        ColumnSpec("id", "int"),
        ColumnSpec("true_es", "float"),
        ColumnSpec("n", "int"),
        ColumnSpec("stat", "float"),
        ColumnSpec("emp_es", "float"),
        ColumnSpec("log_bf", "float"),
        ColumnSpec("bf", "float"),
    ],
)
