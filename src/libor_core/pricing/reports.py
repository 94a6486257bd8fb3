# src/libor_core/pricing/reports.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def _report_times(simulation) -> list:
    """Tenor times that the simulation reaches."""
    last = simulation.time_discretization.get_time(simulation.time_discretization.number_of_times - 1)
    return [t for t in simulation.libor_period_discretization if t <= last]


# ---------- tables ----------

def forward_rate_table(simulation) -> pd.DataFrame:
    """
    Long table of simulated forwards L_j(t) on the tenor periods.

    Columns: time, libor_index, period_start, period_end, mean, std.
    Only periods that have not fixed before ``time`` are listed.
    """
    tenor = simulation.libor_period_discretization
    td = simulation.time_discretization
    rows = []
    for time in _report_times(simulation):
        time_index = td.get_time_index_nearest_less_or_equal(time)
        for j in range(tenor.number_of_time_steps):
            start = tenor.get_time(j)
            if start < time:
                continue
            libor = simulation.get_libor(time_index, j)
            rows.append(
                {
                    "time": time,
                    "libor_index": j,
                    "period_start": start,
                    "period_end": tenor.get_time(j + 1),
                    "mean": libor.average(),
                    "std": float(np.sqrt(libor.variance())),
                }
            )
    return pd.DataFrame(rows)


def numeraire_table(simulation) -> pd.DataFrame:
    """
    Numeraire statistics on the tenor times.

    ``zero_bond`` is the Monte Carlo bond E[N(0)/N(t)], which should match
    the initial curve.
    """
    numeraire_0 = simulation.get_numeraire(0.0)
    rows = []
    for time in _report_times(simulation):
        numeraire = simulation.get_numeraire(time)
        rows.append(
            {
                "time": time,
                "mean": numeraire.average(),
                "std": float(np.sqrt(numeraire.variance())),
                "zero_bond": numeraire_0.div(numeraire).average(),
            }
        )
    return pd.DataFrame(rows)


def model_parameter_table(model) -> pd.DataFrame:
    """Initial forwards per tenor period plus any numeraire adjustment."""
    params = model.get_model_parameters()
    tenor = model.libor_period_discretization
    forwards = np.asarray(params["forward_initial_values"], dtype=float)
    adjustments = params.get("numeraire_adjustments") or {}
    return pd.DataFrame(
        {
            "period_start": [tenor.get_time(j) for j in range(len(forwards))],
            "period_end": [tenor.get_time(j + 1) for j in range(len(forwards))],
            "forward_initial_value": forwards,
            "numeraire_adjustment": [adjustments.get(tenor.get_time(j), np.nan) for j in range(len(forwards))],
        }
    )


# ---------- export ----------

def export_simulation_report(simulation, out_dir: Path) -> Dict[str, Path]:
    """
    Write the report tables as CSV plus one Excel workbook:

        <out_dir>/forwards.csv
        <out_dir>/numeraire.csv
        <out_dir>/model_parameters.csv
        <out_dir>/simulation_report.xlsx   (FORWARDS_MEAN wide, NUMERAIRE, PARAMS)
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    forwards = forward_rate_table(simulation)
    numeraire = numeraire_table(simulation)
    params = model_parameter_table(simulation.model)

    paths = {
        "forwards": out_dir / "forwards.csv",
        "numeraire": out_dir / "numeraire.csv",
        "model_parameters": out_dir / "model_parameters.csv",
        "workbook": out_dir / "simulation_report.xlsx",
    }
    forwards.to_csv(paths["forwards"], index=False)
    numeraire.to_csv(paths["numeraire"], index=False)
    params.to_csv(paths["model_parameters"], index=False)

    # Wide forwards: one row per simulation time, one column per period start.
    forwards_wide = forwards.pivot(index="time", columns="period_start", values="mean").reset_index()
    forwards_wide.columns = [str(c) for c in forwards_wide.columns]

    with pd.ExcelWriter(paths["workbook"], engine="openpyxl") as writer:
        forwards_wide.to_excel(writer, sheet_name="FORWARDS_MEAN", index=False)
        numeraire.to_excel(writer, sheet_name="NUMERAIRE", index=False)
        params.to_excel(writer, sheet_name="PARAMS", index=False)

    logger.info("Exported simulation report to %s", out_dir)
    return paths


__all__ = [
    "forward_rate_table",
    "numeraire_table",
    "model_parameter_table",
    "export_simulation_report",
]
