"""Centralized unit conversion utilities."""

from __future__ import annotations

import numpy as np

KELVIN_OFFSET: float = 273.15
PERCENT_PER_FRACTION: float = 100.0


def celsius_to_kelvin(temperature_c):
    """Convert a temperature (scalar or array) from degrees Celsius to kelvin.

    Args:
        temperature_c (float | numpy.ndarray): Temperature in degrees Celsius.

    Returns:
        float | numpy.ndarray: Absolute temperature in K.

    Note:
        The Redlich-Kister temperature coefficients multiply absolute
        temperature, so tabulated data in degrees Celsius must pass through
        this conversion before fitting.
    """
    converted = np.asarray(temperature_c, dtype=float) + KELVIN_OFFSET
    return float(converted) if converted.ndim == 0 else converted


def percent_to_fraction(composition_pct):
    """Convert an atomic percentage to a mole fraction in ``[0, 1]``."""
    converted = np.asarray(composition_pct, dtype=float) / PERCENT_PER_FRACTION
    return float(converted) if converted.ndim == 0 else converted
