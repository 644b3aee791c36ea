"""Tab-separated output of per-generation statistics.

File layout (one file per run, shared by all replicates):

    #simulation.n_replicates=1          ← one line per parameter
    ...
    simu  gen  nC  meanC ... empty  nL  meanL  varL  sdL   ← header
    1     0    98  9.8   ... 0.84                          ← data rows
    ...
    #startTime: ...                     ← written by close()
    #endTime: ...
    #elapsed time: 00h 00m 01s

Rows carry the first twelve header columns only: the locus-frequency
columns (nL, meanL, varL, sdL) are declared but never filled.
"""

from __future__ import annotations

import csv
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

from te_dynamics.config import SimulationConfig, parameter_items
from te_dynamics.population import LoadSummary
from te_dynamics.types import N_WRITTEN_COLUMNS, OUTPUT_COLUMNS
from te_dynamics.utils import format_elapsed, format_timestamp

SEP = '\t'


def format_parameter(value) -> str:
    """Prologue value at full precision (YAML-style booleans and null)."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return 'null'
    return str(value)


def _format_statistic(value) -> str:
    if isinstance(value, float):
        return f"{value:.3g}"
    return str(value)


def format_row(replicate_id: int, generation: int, summary: LoadSummary) -> List[str]:
    """Data row for one (replicate, generation), as strings.

    Float statistics keep 3 significant digits.
    """
    values = (replicate_id, generation) + summary.as_row()
    return [_format_statistic(v) for v in values]


class TsvWriter:
    """Append-only writer for one simulation run.

    Args:
        path: Output file. An existing file is replaced by ``open``.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.start_time: Optional[float] = None
        self.n_rows = 0

    def open(self, config: SimulationConfig) -> None:
        """Start a new file with the parameter prologue and header line."""
        self.start_time = time.time()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', newline='') as f:
            for key, value in parameter_items(config):
                if key == 'output.path':
                    continue
                f.write(f"#{key}={format_parameter(value)}\n")
            csv.writer(f, delimiter=SEP, lineterminator='\n').writerow(OUTPUT_COLUMNS)

    def write_row(self, replicate_id: int, generation: int, summary: LoadSummary) -> None:
        """Append the statistics of one generation."""
        with open(self.path, 'a', newline='') as f:
            csv.writer(f, delimiter=SEP, lineterminator='\n').writerow(
                format_row(replicate_id, generation, summary)
            )
        self.n_rows += 1

    def close(self) -> None:
        """Append start/end timestamps and the elapsed wall time."""
        end_time = time.time()
        start_time = self.start_time if self.start_time is not None else end_time
        with open(self.path, 'a') as f:
            f.write(f"#startTime: {format_timestamp(start_time)}\n")
            f.write(f"#endTime: {format_timestamp(end_time)}\n")
            f.write(f"#elapsed time: {format_elapsed(end_time - start_time)}\n")


def read_output(path: Union[str, Path]) -> Dict[str, object]:
    """Parse a file written by TsvWriter.

    Returns:
        Dict with 'parameters' ({key: raw string}), 'columns' (header) and
        'rows' (list of {column: float} for the written columns).
    """
    parameters: Dict[str, str] = {}
    columns: List[str] = []
    rows: List[Dict[str, float]] = []
    with open(path, newline='') as f:
        for fields in csv.reader(f, delimiter=SEP):
            if not fields:
                continue
            if fields[0].startswith('#'):
                key, sep, value = SEP.join(fields)[1:].partition('=')
                if sep:
                    parameters[key] = value
                continue
            if not columns:
                columns = fields
                continue
            rows.append({
                name: float(v)
                for name, v in zip(columns[:N_WRITTEN_COLUMNS], fields)
            })
    return {'parameters': parameters, 'columns': columns, 'rows': rows}
