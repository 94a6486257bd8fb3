from __future__ import annotations

import math
from pathlib import Path

import pytest
import yaml

from libor_core import build_simulation
from libor_core.config import AppConfig, ModelConfig, SimulationConfig, VolatilityConfig
from libor_core.errors import ConfigurationError
from libor_core.models import HullWhiteModel, LIBORMarketModel, Measure, ModelFamily, Scheme


def _write_config(root: Path, data: dict) -> Path:
    cfg_dir = root / "config"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    cfg_path = cfg_dir / "test_config.yaml"
    cfg_path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return cfg_path


def test_example_config_loads(repo_root):
    cfg = AppConfig.from_yaml(repo_root / "config" / "example_config.yaml")
    assert cfg.model.family is ModelFamily.LIBOR_MARKET_MODEL
    assert cfg.model.measure is Measure.SPOT
    assert cfg.simulation.scheme is Scheme.EULER
    assert cfg.tenor.period_length == 0.5
    assert cfg.curves.forward_file is None


def test_defaults_fill_missing_sections(tmp_path):
    cfg = AppConfig.from_yaml(_write_config(tmp_path, {"model": {"measure": "Terminal"}}))
    assert cfg.model.measure is Measure.TERMINAL
    assert cfg.simulation == SimulationConfig()
    assert cfg.volatility == VolatilityConfig()


def test_curve_files_resolve_against_repo_root(tmp_path):
    cfg_path = _write_config(
        tmp_path,
        {"curves": {"forward_file": "data/forward.csv", "discount_file": str(tmp_path / "abs.csv")}},
    )
    cfg = AppConfig.from_yaml(cfg_path)
    assert cfg.curves.forward_file == (tmp_path / "data" / "forward.csv").resolve()
    assert cfg.curves.discount_file == (tmp_path / "abs.csv").resolve()


def test_top_level_must_be_mapping(tmp_path):
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    cfg_path = cfg_dir / "bad.yaml"
    cfg_path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        AppConfig.from_yaml(cfg_path)


@pytest.mark.parametrize(
    "section, values",
    [
        ("model", {"measure": "annuity"}),
        ("model", {"libor_cap": 0}),
        ("simulation", {"dt": -0.5}),
        ("simulation", {"number_of_paths": 0}),
        ("simulation", {"scheme": "milstein"}),
        ("volatility", {"mean_reversion": 0.0}),
        ("volatility", {"correlation_decay": -1.0}),
    ],
)
def test_invalid_values_raise(section, values):
    with pytest.raises(ConfigurationError):
        AppConfig.from_dict({section: values})


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        ModelConfig(family="black_karasinski")


def _small_config(**model):
    return AppConfig.from_dict(
        {
            "model": model,
            "simulation": {"last_time": 3.0, "dt": 0.5, "number_of_paths": 64, "number_of_factors": 2},
            "tenor": {"last_time": 3.0, "period_length": 0.5},
            "curves": {"flat_forward_rate": 0.03},
        }
    )


def test_build_simulation_libor_market_model():
    simulation = build_simulation(_small_config(measure="terminal"), seed=7)
    assert isinstance(simulation.model, LIBORMarketModel)
    assert simulation.model.measure is Measure.TERMINAL
    assert simulation.model.number_of_factors == 2
    assert simulation.number_of_paths == 64
    assert simulation.process.brownian_motion.seed == 7
    assert simulation.get_numeraire(0.0).average() == pytest.approx(1.0)


def test_build_simulation_hull_white():
    cfg = _small_config(family="hull_white")
    cfg.curves.flat_discount_rate = 0.02
    simulation = build_simulation(cfg, number_of_paths=32)
    assert isinstance(simulation.model, HullWhiteModel)
    assert simulation.number_of_paths == 32
    bond = simulation.get_numeraire(2.0).invert().average()
    assert bond == pytest.approx(math.exp(-0.04), rel=1e-10)


def test_build_simulation_reads_curve_files(tmp_path):
    forward_file = tmp_path / "forward.csv"
    forward_file.write_text("time,forward\n0.0,0.02\n10.0,0.02\n", encoding="utf-8")
    cfg = _small_config()
    cfg.curves.forward_file = forward_file
    simulation = build_simulation(cfg)
    assert simulation.get_forward_rate(0.0, 1.0, 1.5).average() == pytest.approx(0.02)
