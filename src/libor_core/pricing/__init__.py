"""
Products valued on a simulation, and tabular reports.
"""

from .reports import (
    export_simulation_report,
    forward_rate_table,
    model_parameter_table,
    numeraire_table,
)
from .swaption import (
    SwaptionAnalyticApproximation,
    SwaptionMonteCarlo,
    ValueUnit,
    black_swaption_value,
    forward_swaprate_and_annuity,
    value_swaption,
)

__all__ = [
    # swaption
    "ValueUnit",
    "SwaptionAnalyticApproximation",
    "SwaptionMonteCarlo",
    "black_swaption_value",
    "forward_swaprate_and_annuity",
    "value_swaption",

    # reports
    "forward_rate_table",
    "numeraire_table",
    "model_parameter_table",
    "export_simulation_report",
]
