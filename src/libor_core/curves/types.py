from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from .analytic_model import AnalyticModel


class DiscountCurve(Protocol):
    """What the models need from a discount curve."""

    name: str

    def get_discount_factor(self, time: float, model: Optional["AnalyticModel"] = None) -> float:
        ...


class ForwardCurve(Protocol):
    """What the models need from a forward curve."""

    name: str

    def get_forward(
        self,
        time: float,
        period_length: Optional[float] = None,
        model: Optional["AnalyticModel"] = None,
    ) -> float:
        ...

