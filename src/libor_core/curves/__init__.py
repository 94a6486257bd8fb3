"""
Discount and forward curves consumed by the models.
"""

from .analytic_model import AnalyticModel
from .discount import (
    DiscountCurveFromForwardCurve,
    DiscountCurveInterpolation,
    discount_curve_from_pairs,
    flat_discount_curve,
)
from .forward import (
    ForwardCurveFromDiscountCurve,
    ForwardCurveInterpolation,
    flat_forward_curve,
)
from .loader import load_discount_curve, load_forward_curve
from .types import DiscountCurve, ForwardCurve

__all__ = [
    # curve types
    "DiscountCurve",
    "ForwardCurve",
    "DiscountCurveInterpolation",
    "DiscountCurveFromForwardCurve",
    "ForwardCurveInterpolation",
    "ForwardCurveFromDiscountCurve",
    "AnalyticModel",

    # helpers
    "flat_discount_curve",
    "flat_forward_curve",
    "discount_curve_from_pairs",

    # loaders
    "load_discount_curve",
    "load_forward_curve",
]
