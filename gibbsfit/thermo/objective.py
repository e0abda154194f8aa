"""Dataset container and sum-of-squares objective for Redlich-Kister fits.

The objective is the hot path of the optimizer: it is evaluated once per
trial step and twice per parameter for every Jacobian estimate. The
parameter-independent ideal mixing term and the composition basis
``x(1 - x)(2x - 1)^k`` are therefore computed once when the objective is
built, and each evaluation is two matrix-vector products over the dataset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from ..config import parameter_count, validate_model_order
from ..schema import DATA_COLUMNS
from ..units import celsius_to_kelvin, percent_to_fraction
from .redlich_kister import ideal_mixing_gibbs, redlich_kister_gibbs

logger = logging.getLogger(__name__)


def _as_readonly_vector(values, name: str) -> np.ndarray:
    arr = np.array(values, dtype=float, copy=True)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def _check_equal_lengths(x: np.ndarray, temperature: np.ndarray, gibbs: np.ndarray):
    if not (len(x) == len(temperature) == len(gibbs)):
        raise ValueError(
            "Composition, temperature and Gibbs energy sequences must have equal "
            f"length, got {len(x)}, {len(temperature)} and {len(gibbs)}."
        )


@dataclass(frozen=True, eq=False)
class GibbsDataset:
    """Measured ``(x, T, G)`` triples of one binary system.

    Attributes:
        x: Mole fraction of the second component, in ``[0, 1]``.
        temperature: Absolute temperature in K, ``> 0``.
        gibbs: Measured Gibbs energy of mixing in J/mol.

    Datasets compare by identity.

    Raises:
        ValueError: If the arrays differ in length, contain non-finite values,
            have compositions outside ``[0, 1]`` or non-positive temperatures.
    """

    x: np.ndarray
    temperature: np.ndarray
    gibbs: np.ndarray

    def __post_init__(self):
        x = _as_readonly_vector(self.x, "x")
        temperature = _as_readonly_vector(self.temperature, "temperature")
        gibbs = _as_readonly_vector(self.gibbs, "gibbs")
        _check_equal_lengths(x, temperature, gibbs)

        if not (
            np.all(np.isfinite(x))
            and np.all(np.isfinite(temperature))
            and np.all(np.isfinite(gibbs))
        ):
            raise ValueError("Dataset values must be finite.")
        if np.any((x < 0.0) | (x > 1.0)):
            raise ValueError("Compositions must lie in [0, 1].")
        if np.any(temperature <= 0.0):
            raise ValueError("Temperatures must be absolute (K) and > 0.")

        object.__setattr__(self, "x", x)
        object.__setattr__(self, "temperature", temperature)
        object.__setattr__(self, "gibbs", gibbs)

    def __len__(self) -> int:
        return int(len(self.x))

    @property
    def temperatures(self) -> np.ndarray:
        """Distinct temperatures of the dataset, sorted ascending."""
        return np.unique(self.temperature)

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        temperature_col: str = DATA_COLUMNS.temperature_c,
        composition_col: str = DATA_COLUMNS.composition_pct,
        gibbs_col: str = DATA_COLUMNS.gibbs,
        temperature_in_celsius: bool = True,
        composition_in_percent: bool = True,
    ) -> "GibbsDataset":
        """Build a dataset from a tabular reader's DataFrame.

        Args:
            df: Table with one measurement per row.
            temperature_col: Temperature column (degrees Celsius by default).
            composition_col: Composition column (at.% by default).
            gibbs_col: Gibbs energy column in J/mol.
            temperature_in_celsius: Convert temperatures with
                :func:`gibbsfit.units.celsius_to_kelvin`.
            composition_in_percent: Convert compositions with
                :func:`gibbsfit.units.percent_to_fraction`.

        Returns:
            GibbsDataset: Dataset in K and mole fraction.

        Raises:
            ValueError: If a required column is missing or no complete rows
                remain.

        Note:
            Rows with a non-numeric value in any of the three columns are
            dropped with a warning, mirroring how incomplete CSV lines are
            skipped when the table is read.
        """
        required = [temperature_col, composition_col, gibbs_col]
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

        working = df[required].apply(pd.to_numeric, errors="coerce")
        complete = working.dropna()
        dropped = len(working) - len(complete)
        if dropped:
            logger.warning("Dropped %d incomplete rows from Gibbs energy table", dropped)
        if complete.empty:
            raise ValueError("No complete (T, x, G) rows in table.")

        temperature = complete[temperature_col].to_numpy(dtype=float)
        composition = complete[composition_col].to_numpy(dtype=float)
        if temperature_in_celsius:
            temperature = celsius_to_kelvin(temperature)
        if composition_in_percent:
            composition = percent_to_fraction(composition)

        return cls(
            x=composition,
            temperature=temperature,
            gibbs=complete[gibbs_col].to_numpy(dtype=float),
        )


class ObjectiveFunction:
    """Sum of squared residuals between measured and modelled Gibbs energies.

    Calling the object with a parameter vector returns
    ``sum_i (G_i - model(P, n, T_i)(x_i))**2``. The :meth:`residuals` method
    exposes the individual residuals so a least-squares optimizer can estimate
    their Jacobian.
    """

    def __init__(self, x, temperature, gibbs, order: int):
        x_arr = _as_readonly_vector(x, "x")
        t_arr = _as_readonly_vector(temperature, "temperature")
        g_arr = _as_readonly_vector(gibbs, "gibbs")
        _check_equal_lengths(x_arr, t_arr, g_arr)

        self.order = validate_model_order(order)
        self.x = x_arr
        self.temperature = t_arr
        self.gibbs = g_arr
        self._target = g_arr - np.asarray(ideal_mixing_gibbs(t_arr, x_arr), dtype=float)

        # Row k holds x(1 - x)(2x - 1)^k; the second matrix is weighted by T.
        weight = x_arr * (1.0 - x_arr)
        asym = 2.0 * x_arr - 1.0
        self._basis = np.vstack([weight * asym**k for k in range(self.order + 1)])
        self._t_basis = self._basis * t_arr
        self._n_params = parameter_count(self.order)

    @classmethod
    def from_dataset(cls, dataset: GibbsDataset, order: int) -> "ObjectiveFunction":
        return cls(dataset.x, dataset.temperature, dataset.gibbs, order)

    @property
    def n_parameters(self) -> int:
        return self._n_params

    def __len__(self) -> int:
        return int(len(self.x))

    def residuals(self, params) -> np.ndarray:
        """Return ``G_i - model_i`` for every data point.

        The excess term is a product of the precomputed basis with the
        ``L_k`` and ``L_k,T`` coefficients. Its terms are summed by the
        matrix product instead of from ``k = n`` down to ``0``, so it can
        differ from :func:`excess_gibbs` in the last bits.
        """
        p = np.asarray(params, dtype=float)
        if p.shape != (self._n_params,):
            raise ValueError(
                f"Order {self.order} requires {self._n_params} parameters, "
                f"got shape {p.shape}"
            )
        excess = self._basis.T @ p[0::2] + self._t_basis.T @ p[1::2]
        return self._target - excess

    def __call__(self, params) -> float:
        resid = self.residuals(params)
        return float(np.sum(resid**2))

    evaluate = __call__

    def predict(self, params, temperature: Optional[np.ndarray] = None, x=None):
        """Model values at the dataset points, or at explicit ``(T, x)``."""
        t_arr = self.temperature if temperature is None else temperature
        x_arr = self.x if x is None else x
        return redlich_kister_gibbs(params, self.order, t_arr, x_arr)
