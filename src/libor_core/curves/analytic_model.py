# src/libor_core/curves/analytic_model.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable


@dataclass
class AnalyticModel:
    """
    Named collection of curves.

    Curves that reference another curve by name (e.g. a forward curve derived
    from a discount curve) resolve it through this object.
    """

    curves: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, curves: Iterable[Any]) -> "AnalyticModel":
        return cls(curves={c.name: c for c in curves})

    def get_curve(self, name: str) -> Any:
        try:
            return self.curves[name]
        except KeyError:
            raise KeyError(
                f"Curve '{name}' not found in AnalyticModel. Available: {sorted(self.curves)}"
            ) from None

    def get_discount_curve(self, name: str) -> Any:
        curve = self.get_curve(name)
        if not hasattr(curve, "get_discount_factor"):
            raise TypeError(f"Curve '{name}' is not a discount curve: {type(curve).__name__}")
        return curve

    def get_forward_curve(self, name: str) -> Any:
        curve = self.get_curve(name)
        if not hasattr(curve, "get_forward"):
            raise TypeError(f"Curve '{name}' is not a forward curve: {type(curve).__name__}")
        return curve

    def with_curves(self, *curves: Any) -> "AnalyticModel":
        merged = dict(self.curves)
        for c in curves:
            merged[c.name] = c
        return AnalyticModel(curves=merged)
