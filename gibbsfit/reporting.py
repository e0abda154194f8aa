"""Turn fitted Redlich-Kister coefficients into tables for reporting.

These helpers sit on the output boundary: they consume a parameter vector
(and optionally the dataset it was fitted to) and return pandas tables or
text. Plotting and file formats are left to the consumer.
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .config import validate_model_order
from .schema import RESULT_COLUMNS
from .thermo.objective import GibbsDataset
from .thermo.redlich_kister import (
    RegressionFunction,
    redlich_kister_gibbs,
    validate_parameters,
)


def coefficient_table(params, order: int) -> pd.DataFrame:
    """Tabulate coefficients as one ``(k, L_k, L_k,T)`` row per order term.

    Args:
        params (Sequence[float]): Fitted vector ``[L_0, L_0,T, ...]``.
        order (int): Redlich-Kister order ``n``.

    Returns:
        pandas.DataFrame: Columns ``Order``, ``L (J/mol)`` and
        ``L_T (J/(mol K))`` with ``n + 1`` rows.
    """
    p = validate_parameters(params, order)
    cols = RESULT_COLUMNS
    return pd.DataFrame(
        {
            cols.order: np.arange(order + 1),
            cols.l_const: p[0::2],
            cols.l_temp: p[1::2],
        }
    )


def format_coefficients(params, order: int) -> str:
    """Format coefficients as tab-separated ``L0:``/``L0T:`` lines."""
    p = validate_parameters(params, order)
    lines = []
    for k in range(order + 1):
        lines.append(f"L{k}:\t{p[2 * k]}")
        lines.append(f"L{k}T:\t{p[2 * k + 1]}")
    return "\n".join(lines)


def residual_table(dataset: GibbsDataset, params, order: int) -> pd.DataFrame:
    """Compare measured and modelled Gibbs energies point by point.

    Returns:
        pandas.DataFrame: One row per measurement with temperature,
        composition, measured value, model value and residual
        (measured - model).
    """
    order = validate_model_order(order)
    model = np.asarray(
        redlich_kister_gibbs(params, order, dataset.temperature, dataset.x),
        dtype=float,
    )
    cols = RESULT_COLUMNS
    return pd.DataFrame(
        {
            cols.temperature: dataset.temperature,
            cols.composition: dataset.x,
            cols.measured: dataset.gibbs,
            cols.model: model,
            cols.residual: dataset.gibbs - model,
        }
    )


def model_curves(
    params,
    order: int,
    temperatures: Iterable[float],
    n_points: int = 101,
    x_grid: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    """Evaluate the fitted model along composition for each temperature.

    Args:
        params (Sequence[float]): Fitted coefficients.
        order (int): Redlich-Kister order ``n``.
        temperatures (Iterable[float]): Absolute temperatures in K, typically
            ``dataset.temperatures`` so each measured isotherm gets a curve.
        n_points (int): Size of the evenly spaced grid over ``[0, 1]`` used
            when ``x_grid`` is not given.
        x_grid (numpy.ndarray, optional): Explicit composition grid.

    Returns:
        pandas.DataFrame: Long-form table with temperature, composition and
        model value columns, grouped by temperature in the order given.

    Raises:
        ValueError: If ``n_points < 2`` and no grid is given.
    """
    if x_grid is None:
        if n_points < 2:
            raise ValueError("n_points must be >= 2")
        x_grid = np.linspace(0.0, 1.0, int(n_points))
    x_grid = np.asarray(x_grid, dtype=float)

    cols = RESULT_COLUMNS
    frames = []
    for temperature in temperatures:
        curve = RegressionFunction(params, order, temperature)
        frames.append(
            pd.DataFrame(
                {
                    cols.temperature: np.full(x_grid.shape, float(temperature)),
                    cols.composition: x_grid,
                    cols.model: np.asarray(curve(x_grid), dtype=float),
                }
            )
        )
    if not frames:
        return pd.DataFrame(columns=[cols.temperature, cols.composition, cols.model])
    return pd.concat(frames, ignore_index=True)
