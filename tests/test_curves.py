from __future__ import annotations

import math

import pandas as pd
import pytest

from libor_core.curves import (
    AnalyticModel,
    DiscountCurveFromForwardCurve,
    DiscountCurveInterpolation,
    ForwardCurveFromDiscountCurve,
    discount_curve_from_pairs,
    flat_discount_curve,
    flat_forward_curve,
    load_discount_curve,
    load_forward_curve,
)


def test_discount_curve_interpolates_log_linear():
    curve = discount_curve_from_pairs("test", [(1.0, math.exp(-0.02)), (3.0, math.exp(-0.08))])
    # A time-0 point is added.
    assert curve.times[0] == 0.0
    assert curve.get_discount_factor(0.5) == pytest.approx(math.exp(-0.01))
    assert curve.get_discount_factor(2.0) == pytest.approx(math.exp(-0.05))
    # Flat extrapolation of the last segment's rate.
    assert curve.get_discount_factor(4.0) == pytest.approx(math.exp(-0.11))
    # Before the first point: the first segment's rate.
    assert curve.get_discount_factor(-1.0) == pytest.approx(math.exp(0.01))
    assert curve.get_discount_factor(3.0) == pytest.approx(math.exp(-0.08))


def test_discount_curve_rejects_bad_input():
    with pytest.raises(ValueError):
        DiscountCurveInterpolation("bad", (1.0, 2.0), (0.99,))
    with pytest.raises(ValueError):
        discount_curve_from_pairs("bad", [(1.0, -0.5)])


def test_flat_curves():
    assert flat_discount_curve(0.02).get_discount_factor(5.0) == pytest.approx(math.exp(-0.1))
    assert flat_discount_curve(0.02).get_zero_rate(3.0) == pytest.approx(0.02)
    assert flat_forward_curve(0.03).get_forward(7.0, 0.5) == 0.03


def test_discount_curve_from_forward_curve():
    curve = DiscountCurveFromForwardCurve(flat_forward_curve(0.04), period_length=0.5)
    assert curve.get_discount_factor(0.0) == 1.0
    assert curve.get_discount_factor(1.0) == pytest.approx(1.02 ** -2)
    # Short last period.
    assert curve.get_discount_factor(1.25) == pytest.approx(1.02 ** -2 / 1.01)
    assert curve.get_discount_factor(-1.0) == pytest.approx(1.02 ** 2)


def test_forward_curve_from_discount_curve():
    discount = flat_discount_curve(0.02, name="ois")
    direct = ForwardCurveFromDiscountCurve(discount, payment_offset=1.0)
    assert direct.get_forward(2.0) == pytest.approx(math.exp(0.02) - 1.0)

    by_name = ForwardCurveFromDiscountCurve("ois", payment_offset=0.5)
    model = AnalyticModel.of([discount])
    assert by_name.get_forward(1.0, model=model) == pytest.approx((math.exp(0.01) - 1.0) / 0.5)
    with pytest.raises(ValueError):
        by_name.get_forward(1.0)


def test_load_curves_from_csv(tmp_path):
    forward_path = tmp_path / "forward.csv"
    pd.DataFrame({"time": [0.0, 2.0], "forward": [0.01, 0.03]}).to_csv(forward_path, index=False)
    forward = load_forward_curve(forward_path, payment_offset=1.0)
    assert forward.payment_offset == 1.0
    assert forward.get_forward(1.0) == pytest.approx(0.02)

    discount_path = tmp_path / "discount.csv"
    pd.DataFrame({"time": [1.0, 2.0], "zero_rate": [0.02, 0.02]}).to_csv(discount_path, index=False)
    discount = load_discount_curve(discount_path, value_col="zero_rate")
    assert discount.get_discount_factor(1.5) == pytest.approx(math.exp(-0.03))


def test_load_curve_from_excel(tmp_path):
    path = tmp_path / "curves.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame({"time": [1.0, 5.0], "discount_factor": [0.98, 0.9]}).to_excel(
            writer, sheet_name="DF", index=False
        )
    curve = load_discount_curve(path, sheet_name="DF")
    assert curve.get_discount_factor(5.0) == pytest.approx(0.9)


def test_loader_reports_missing_columns(tmp_path):
    path = tmp_path / "forward.csv"
    pd.DataFrame({"t": [0.0], "f": [0.01]}).to_csv(path, index=False)
    with pytest.raises(KeyError):
        load_forward_curve(path)
