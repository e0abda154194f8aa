"""
A Python package for fitting Redlich-Kister models of binary liquid mixing.

Fits temperature-dependent Redlich-Kister coefficients (orders 0-3) to
measured excess Gibbs energies by Levenberg-Marquardt least squares.

Modules:
    - thermo: Model function, dataset container and sum-of-squares objective.
    - stats: Levenberg-Marquardt optimizer with finite-difference derivatives.
    - analysis: High-level fit routine and order comparison.
    - reporting: Coefficient, residual and model-curve tables.
    - config: Fit configuration and optimizer settings.
"""

__version__ = "1.0.0"

from .analysis import fit_all_orders, fit_redlich_kister, select_best_order
from .config import FitConfig, LMSettings
from .reporting import (
    coefficient_table,
    format_coefficients,
    model_curves,
    residual_table,
)
from .stats.levenberg_marquardt import LevenbergMarquardt, minimize
from .thermo.objective import GibbsDataset, ObjectiveFunction
from .thermo.redlich_kister import RegressionFunction, redlich_kister_gibbs

__all__ = [
    # Model
    "GibbsDataset",
    "ObjectiveFunction",
    "RegressionFunction",
    "redlich_kister_gibbs",
    # Optimizer
    "LevenbergMarquardt",
    "minimize",
    # Analysis
    "fit_redlich_kister",
    "fit_all_orders",
    "select_best_order",
    # Reporting
    "coefficient_table",
    "format_coefficients",
    "model_curves",
    "residual_table",
    # Configuration
    "FitConfig",
    "LMSettings",
]
