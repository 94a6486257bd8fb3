from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from libor_core.pricing import (
    export_simulation_report,
    forward_rate_table,
    model_parameter_table,
    numeraire_table,
)


@pytest.fixture
def simulation(make_lmm, make_simulation, flat_discount_2pct):
    return make_simulation(make_lmm(volatility=0.2, discount_curve=flat_discount_2pct), number_of_paths=100)


def test_forward_rate_table(simulation):
    table = forward_rate_table(simulation)
    assert list(table.columns) == ["time", "libor_index", "period_start", "period_end", "mean", "std"]
    # 5 + 4 + 3 + 2 + 1 periods not yet fixed on the tenor times 0..4.
    assert len(table) == 15
    assert (table["period_start"] >= table["time"]).all()

    at_zero = table[table["time"] == 0.0]
    assert np.allclose(at_zero["mean"], 0.03)
    assert np.allclose(at_zero["std"], 0.0)


def test_numeraire_table(simulation):
    table = numeraire_table(simulation)
    assert list(table["time"]) == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
    assert np.allclose(table["zero_bond"], np.exp(-0.02 * table["time"]))


def test_model_parameter_table(simulation):
    simulation.get_numeraire(1.0)
    table = model_parameter_table(simulation.model)
    assert list(table["period_start"]) == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert np.allclose(table["forward_initial_value"], 0.03)
    assert np.allclose(table["numeraire_adjustment"], np.exp(0.02) - 1.0)


def test_model_parameter_table_for_hull_white(make_hull_white):
    table = model_parameter_table(make_hull_white())
    assert np.allclose(table["forward_initial_value"], 0.02)
    assert table["numeraire_adjustment"].isna().all()


def test_export_simulation_report(simulation, tmp_path):
    paths = export_simulation_report(simulation, tmp_path / "out")
    for path in paths.values():
        assert path.exists()

    sheets = pd.read_excel(paths["workbook"], sheet_name=None)
    assert set(sheets) == {"FORWARDS_MEAN", "NUMERAIRE", "PARAMS"}
    assert list(sheets["FORWARDS_MEAN"]["time"]) == [0.0, 1.0, 2.0, 3.0, 4.0]

    forwards = pd.read_csv(paths["forwards"])
    assert len(forwards) == 15
