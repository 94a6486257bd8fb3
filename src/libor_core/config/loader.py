# src/libor_core/config/loader.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from libor_core.errors import ConfigurationError
from libor_core.models.enums import (
    DriftApproximation,
    InterpolationMethod,
    Measure,
    ModelFamily,
    Scheme,
    SimulationTimeInterpolationMethod,
    StateSpace,
)
from libor_core.models.libor_market_model import DEFAULT_LIBOR_CAP


def _positive(name: str, value: float) -> float:
    value = float(value)
    if not value > 0.0:
        raise ConfigurationError(f"{name} must be > 0, got {value}")
    return value


# ---------- Model ----------

@dataclass
class ModelConfig:
    """
    Which model family to build and how it evolves.

    Strings are accepted for every enum field (case-insensitive), which is
    what the YAML loader passes in.
    """
    family: ModelFamily = ModelFamily.LIBOR_MARKET_MODEL
    measure: Measure = Measure.SPOT
    state_space: StateSpace = StateSpace.LOGNORMAL
    interpolation_method: InterpolationMethod = InterpolationMethod.LOG_LINEAR_UNCORRECTED
    simulation_time_interpolation_method: SimulationTimeInterpolationMethod = (
        SimulationTimeInterpolationMethod.ROUND_DOWN
    )
    drift_approximation: DriftApproximation = DriftApproximation.EULER
    libor_cap: float = DEFAULT_LIBOR_CAP
    use_analytic_approximation: bool = True

    def __post_init__(self) -> None:
        self.family = ModelFamily.parse(self.family)
        self.measure = Measure.parse(self.measure)
        self.state_space = StateSpace.parse(self.state_space)
        self.interpolation_method = InterpolationMethod.parse(self.interpolation_method)
        self.simulation_time_interpolation_method = SimulationTimeInterpolationMethod.parse(
            self.simulation_time_interpolation_method
        )
        self.drift_approximation = DriftApproximation.parse(self.drift_approximation)
        self.libor_cap = _positive("libor_cap", self.libor_cap)
        self.use_analytic_approximation = bool(self.use_analytic_approximation)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ModelConfig":
        data = data or {}
        defaults = cls()
        return cls(
            family=data.get("family", defaults.family),
            measure=data.get("measure", defaults.measure),
            state_space=data.get("state_space", defaults.state_space),
            interpolation_method=data.get("interpolation_method", defaults.interpolation_method),
            simulation_time_interpolation_method=data.get(
                "simulation_time_interpolation_method", defaults.simulation_time_interpolation_method
            ),
            drift_approximation=data.get("drift_approximation", defaults.drift_approximation),
            libor_cap=data.get("libor_cap", defaults.libor_cap),
            use_analytic_approximation=data.get("use_analytic_approximation", defaults.use_analytic_approximation),
        )


# ---------- Simulation / tenor grids ----------

@dataclass
class SimulationConfig:
    last_time: float = 10.0
    dt: float = 0.5
    number_of_paths: int = 1000
    seed: int = 3141
    number_of_factors: int = 3
    scheme: Scheme = Scheme.EULER

    def __post_init__(self) -> None:
        self.last_time = _positive("simulation.last_time", self.last_time)
        self.dt = _positive("simulation.dt", self.dt)
        self.number_of_paths = int(self.number_of_paths)
        self.number_of_factors = int(self.number_of_factors)
        self.seed = int(self.seed)
        if self.number_of_paths < 1:
            raise ConfigurationError(f"simulation.number_of_paths must be >= 1, got {self.number_of_paths}")
        if self.number_of_factors < 1:
            raise ConfigurationError(f"simulation.number_of_factors must be >= 1, got {self.number_of_factors}")
        self.scheme = Scheme.parse(self.scheme)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SimulationConfig":
        data = data or {}
        defaults = cls()
        return cls(
            last_time=data.get("last_time", defaults.last_time),
            dt=data.get("dt", defaults.dt),
            number_of_paths=data.get("number_of_paths", defaults.number_of_paths),
            seed=data.get("seed", defaults.seed),
            number_of_factors=data.get("number_of_factors", defaults.number_of_factors),
            scheme=data.get("scheme", defaults.scheme),
        )


@dataclass
class TenorConfig:
    """LIBOR period grid 0, p, 2p, ..., last_time."""
    last_time: float = 10.0
    period_length: float = 0.5

    def __post_init__(self) -> None:
        self.last_time = _positive("tenor.last_time", self.last_time)
        self.period_length = _positive("tenor.period_length", self.period_length)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TenorConfig":
        data = data or {}
        defaults = cls()
        return cls(
            last_time=data.get("last_time", defaults.last_time),
            period_length=data.get("period_length", defaults.period_length),
        )


# ---------- Curves & volatility ----------

@dataclass
class CurvesConfig:
    """
    Initial curves. A file, when given, wins over the flat rate.

    - forward_file: CSV / Excel with columns ``time``, ``forward``
    - discount_file: CSV / Excel with columns ``time``, ``discount_factor``
    - flat_discount_rate: None means "no separate discount curve"
    """
    flat_forward_rate: float = 0.03
    flat_discount_rate: Optional[float] = None
    forward_file: Optional[Path] = None
    discount_file: Optional[Path] = None


@dataclass
class VolatilityConfig:
    """
    LMM:  sigma(t, T) = (a + b (T - t)) exp(-c (T - t)) + d,
          rho(T_i, T_j) = exp(-correlation_decay |T_i - T_j|)
    HW:   constant mean_reversion and short_rate_volatility
    """
    a: float = 0.20
    b: float = 0.0
    c: float = 0.25
    d: float = 0.0
    correlation_decay: float = 0.1
    mean_reversion: float = 0.1
    short_rate_volatility: float = 0.01

    def __post_init__(self) -> None:
        if self.correlation_decay < 0.0:
            raise ConfigurationError(f"volatility.correlation_decay must be >= 0, got {self.correlation_decay}")
        self.mean_reversion = _positive("volatility.mean_reversion", self.mean_reversion)
        if self.short_rate_volatility < 0.0:
            raise ConfigurationError(
                f"volatility.short_rate_volatility must be >= 0, got {self.short_rate_volatility}"
            )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "VolatilityConfig":
        data = data or {}
        defaults = cls()
        return cls(**{name: float(data.get(name, getattr(defaults, name))) for name in (
            "a", "b", "c", "d", "correlation_decay", "mean_reversion", "short_rate_volatility",
        )})


# ---------- Top level ----------

@dataclass
class AppConfig:
    """
    Top-level configuration object for libor_core.

    - model: family, measure, state space, interpolation, drift
    - simulation: time grid, paths, seed, factors
    - tenor: LIBOR period grid
    - curves: initial forward / discount curves
    - volatility: covariance or short-rate coefficients
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    tenor: TenorConfig = field(default_factory=TenorConfig)
    curves: CurvesConfig = field(default_factory=CurvesConfig)
    volatility: VolatilityConfig = field(default_factory=VolatilityConfig)

    # ---------- constructors ----------

    @classmethod
    def from_yaml(cls, cfg_path: Path) -> "AppConfig":
        """
        Load configuration from a YAML file.

        Curve file paths in the YAML are interpreted as relative to the repo
        root. We assume this file lives in: <repo root>/config/example_config.yaml
        """
        cfg_path = Path(cfg_path)
        text = cfg_path.read_text(encoding="utf-8")
        data: Dict[str, Any] = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{cfg_path}: expected a mapping at the top level")

        # repo root ~ parent of the "config" directory
        return cls.from_dict(data, base_dir=cfg_path.parent.parent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "AppConfig":
        def resolve_path(p: Optional[str]) -> Optional[Path]:
            if not p:
                return None
            path = Path(p)
            if not path.is_absolute() and base_dir is not None:
                path = base_dir / path
            return path.resolve()

        # ----- Curves -----
        curves_data: Dict[str, Any] = data.get("curves", {}) or {}
        flat_discount_rate = curves_data.get("flat_discount_rate")
        curves_cfg = CurvesConfig(
            flat_forward_rate=float(curves_data.get("flat_forward_rate", 0.03)),
            flat_discount_rate=None if flat_discount_rate is None else float(flat_discount_rate),
            forward_file=resolve_path(curves_data.get("forward_file")),
            discount_file=resolve_path(curves_data.get("discount_file")),
        )

        return cls(
            model=ModelConfig.from_dict(data.get("model")),
            simulation=SimulationConfig.from_dict(data.get("simulation")),
            tenor=TenorConfig.from_dict(data.get("tenor")),
            curves=curves_cfg,
            volatility=VolatilityConfig.from_dict(data.get("volatility")),
        )
