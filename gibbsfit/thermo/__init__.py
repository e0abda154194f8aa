"""
Thermodynamic model of binary liquid mixing.

Modules:
    redlich_kister:
        Ideal mixing term, Redlich-Kister excess term and the combined model
        ``G(x, T)`` for orders 0-3, plus a fixed-temperature curve wrapper.

    objective:
        Immutable ``(x, T, G)`` dataset container and the sum-of-squares
        objective minimized by the optimizer.
"""

from .objective import GibbsDataset, ObjectiveFunction
from .redlich_kister import (
    RegressionFunction,
    excess_gibbs,
    ideal_mixing_gibbs,
    redlich_kister_gibbs,
    validate_parameters,
)

__all__ = [
    "GibbsDataset",
    "ObjectiveFunction",
    "RegressionFunction",
    "excess_gibbs",
    "ideal_mixing_gibbs",
    "redlich_kister_gibbs",
    "validate_parameters",
]
