"""Define standardized column names for input and result DataFrames."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DataColumns:
    """Column labels of tabulated excess Gibbs energy measurements.

    Attributes:
        temperature_c: Measurement temperature in degrees Celsius. Converted
            to kelvin before fitting.
        composition_pct: Composition of the second component in at.%.
            Converted to a mole fraction before fitting.
        gibbs: Measured excess Gibbs energy of mixing in J/mol.
    """

    temperature_c: str = "Temperature (°C)"
    composition_pct: str = "Composition (at.%)"
    gibbs: str = "G (J/mol)"


@dataclass(frozen=True)
class ResultColumns:
    """Column labels shared by coefficient, residual and curve tables.

    Attributes:
        order: Redlich-Kister term index ``k``.
        l_const: Temperature-independent coefficient ``L_k`` (J/mol).
        l_temp: Temperature coefficient ``L_k,T`` (J/(mol K)), multiplied by
            absolute temperature.
        temperature: Absolute temperature in K.
        composition: Mole fraction ``x`` of the second component.
        measured: Measured excess Gibbs energy (J/mol).
        model: Model excess Gibbs energy (J/mol).
        residual: ``measured - model`` (J/mol).
    """

    order: str = "Order"
    l_const: str = "L (J/mol)"
    l_temp: str = "L_T (J/(mol K))"
    temperature: str = "Temperature (K)"
    composition: str = "x"
    measured: str = "G measured (J/mol)"
    model: str = "G model (J/mol)"
    residual: str = "Residual (J/mol)"


DATA_COLUMNS = DataColumns()
RESULT_COLUMNS = ResultColumns()
