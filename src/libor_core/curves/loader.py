from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from .discount import DiscountCurveInterpolation
from .forward import ForwardCurveInterpolation


def _read_table(file_path: Path, sheet_name: Optional[str] = None) -> pd.DataFrame:
    suffix = Path(file_path).suffix.lower()
    if suffix in (".xlsx", ".xlsm", ".xls"):
        return pd.read_excel(file_path, sheet_name=sheet_name or 0)
    return pd.read_csv(file_path)


def _require_columns(df: pd.DataFrame, cols, file_path: Path) -> pd.DataFrame:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise KeyError(f"{file_path}: missing columns {missing}; found {list(df.columns)}")
    out = df[list(cols)].dropna()
    if out.empty:
        raise ValueError(f"{file_path}: no usable rows in columns {list(cols)}")
    return out


def load_discount_curve(
    file_path: Path,
    name: str = "discount",
    sheet_name: Optional[str] = None,
    time_col: str = "time",
    value_col: str = "discount_factor",
) -> DiscountCurveInterpolation:
    """
    Load a discount curve. ``value_col`` holds discount factors; if the
    column is called ``zero_rate`` the values are read as continuously
    compounded zero rates instead.
    """
    df = _require_columns(_read_table(file_path, sheet_name), [time_col, value_col], file_path)
    times = df[time_col].astype(float).tolist()
    values = df[value_col].astype(float).tolist()
    if value_col == "zero_rate":
        return DiscountCurveInterpolation.from_zero_rates(name, times, values)
    return DiscountCurveInterpolation(name=name, times=tuple(times), discount_factors=tuple(values))


def load_forward_curve(
    file_path: Path,
    name: str = "forward",
    sheet_name: Optional[str] = None,
    time_col: str = "time",
    forward_col: str = "forward",
    payment_offset: float = 0.5,
) -> ForwardCurveInterpolation:
    """Load simply compounded forwards on fixing times."""
    df = _require_columns(_read_table(file_path, sheet_name), [time_col, forward_col], file_path)
    return ForwardCurveInterpolation.from_forwards(
        name,
        df[time_col].astype(float).tolist(),
        df[forward_col].astype(float).tolist(),
        payment_offset=payment_offset,
    )
