"""
Redlich-Kister fitting of excess Gibbs energy measurements.

This module runs the complete fit for one binary system:
- validate the invocation tuple (model order, iteration budget, tolerance),
- build the sum-of-squares objective from a :class:`GibbsDataset`,
- minimize it with Levenberg-Marquardt from a zero (or supplied) initial
  guess, and
- summarize the result with goodness-of-fit diagnostics.

Fits are local: the returned coefficients minimize the objective near the
initial guess only. Because the model is linear in its coefficients the
minimum is unique whenever the data determine every coefficient.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from .config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    MODEL_ORDERS,
    FitConfig,
    LMSettings,
)
from .stats.levenberg_marquardt import STATUS_CONVERGED, LevenbergMarquardt
from .thermo.objective import GibbsDataset, ObjectiveFunction
from .thermo.redlich_kister import validate_parameters

logger = logging.getLogger(__name__)


def fit_redlich_kister(
    dataset: GibbsDataset,
    model_order: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    initial_params=None,
    settings: Optional[LMSettings] = None,
) -> Dict[str, object]:
    """Fit Redlich-Kister coefficients of order ``model_order`` to ``dataset``.

    Args:
        dataset (GibbsDataset): Measurements in K, mole fraction and J/mol.
        model_order (int): Redlich-Kister order ``n`` in ``{0, 1, 2, 3}``.
        max_iterations (int): Optimizer iteration budget.
        tolerance (float): Objective-decrease convergence threshold.
        initial_params (Sequence[float], optional): Starting coefficients of
            length ``2 * (n + 1)``. Defaults to zeros.
        settings (LMSettings, optional): Optimizer tuning constants.

    Returns:
        dict[str, object]: Fit summary with keys ``params`` (numpy.ndarray),
        ``model_order``, ``iterations``, ``status``, ``converged``,
        ``objective`` (final sum of squared residuals), ``initial_objective``,
        ``rmse`` (J/mol), ``r2``, ``n_points`` and ``dof``.

    Raises:
        ValueError: If the configuration or initial coefficients are invalid.

    Note:
        ``r2`` is NaN when the measured values have no variance. A status of
        ``"max_iterations"`` means the budget ran out and the coefficients
        may be unreliable.
    """
    config = FitConfig(
        model_order=model_order,
        max_iterations=max_iterations,
        tolerance=tolerance,
        settings=settings if settings is not None else LMSettings(),
    )
    n_params = config.n_parameters

    if initial_params is None:
        start = np.zeros(n_params, dtype=float)
    else:
        start = validate_parameters(initial_params, config.model_order).copy()

    n_points = len(dataset)
    if n_points < n_params:
        logger.warning(
            "Order %d fit has %d parameters but only %d data points; "
            "coefficients are underdetermined",
            config.model_order,
            n_params,
            n_points,
        )

    objective = ObjectiveFunction.from_dataset(dataset, config.model_order)
    initial_objective = objective(start)

    optimizer = LevenbergMarquardt(config.settings)
    params, iterations = optimizer.minimize(
        objective, start, config.max_iterations, config.tolerance
    )
    final_objective = objective(params)

    gibbs = dataset.gibbs
    sst = float(np.sum((gibbs - gibbs.mean()) ** 2)) if n_points else 0.0
    r2 = 1.0 - final_objective / sst if sst > 0 else math.nan
    rmse = math.sqrt(final_objective / n_points) if n_points else math.nan

    logger.info(
        "Order %d fit: %s after %d iterations, SSE=%.6g, RMSE=%.4g J/mol",
        config.model_order,
        optimizer.status,
        iterations,
        final_objective,
        rmse,
    )

    return {
        "params": params,
        "model_order": config.model_order,
        "iterations": int(iterations),
        "status": optimizer.status,
        "converged": optimizer.status == STATUS_CONVERGED,
        "objective": float(final_objective),
        "initial_objective": float(initial_objective),
        "rmse": rmse,
        "r2": r2,
        "n_points": int(n_points),
        "dof": int(n_points - n_params),
    }


def fit_all_orders(
    dataset: GibbsDataset,
    orders: Iterable[int] = MODEL_ORDERS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    settings: Optional[LMSettings] = None,
):
    """Fit every order in ``orders`` and tabulate the goodness of fit.

    Returns:
        tuple[list[dict], pandas.DataFrame]: Individual fit summaries (as
        returned by :func:`fit_redlich_kister`) and a comparison table with one
        row per order.
    """
    fits = []
    rows = []
    for order in orders:
        fit = fit_redlich_kister(
            dataset,
            order,
            max_iterations=max_iterations,
            tolerance=tolerance,
            settings=settings,
        )
        fits.append(fit)
        rows.append(
            {
                "Order": fit["model_order"],
                "Points": fit["n_points"],
                "Parameters": len(fit["params"]),
                "Iterations": fit["iterations"],
                "Status": fit["status"],
                "SSE": fit["objective"],
                "RMSE (J/mol)": fit["rmse"],
                "R2": fit["r2"],
            }
        )
    return fits, pd.DataFrame(rows)


def select_best_order(summary_df: pd.DataFrame) -> int:
    """Pick the order with the lowest residual mean square.

    The residual mean square ``SSE / (N - p)`` penalizes extra coefficients,
    so a higher order is chosen only when it lowers the residuals by more than
    the degree of freedom it consumes.
    """
    if summary_df.empty:
        raise ValueError("No fits to compare.")
    return int(summary_df.loc[_residual_mean_square(summary_df).idxmin(), "Order"])


def _residual_mean_square(summary_df: pd.DataFrame) -> pd.Series:
    dof = summary_df["Points"] - summary_df["Parameters"]
    return (summary_df["SSE"] / dof.where(dof > 0)).fillna(np.inf)
