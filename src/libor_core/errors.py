# src/libor_core/errors.py

"""
Exception types raised by the model engine.

Two families:

  * CalculationError   - a valuation could not be carried out (curve or
                         covariance lookup failed, unsupported measure, ...).
                         Callers may retry with different inputs.
  * ConfigurationError - the inputs themselves are malformed (bad time
                         indices, interpolation outside the representable
                         range, NaN in tenor refinement, bad YAML values).

Out-of-range tenor / component indices surface as a plain IndexError.
"""

from __future__ import annotations


class CalculationError(RuntimeError):
    """A drift, numeraire, bond or forward-rate computation failed."""


class ConfigurationError(ValueError):
    """Inputs are malformed; the computation cannot be set up."""


__all__ = ["CalculationError", "ConfigurationError"]
