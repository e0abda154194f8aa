"""Redlich-Kister model of the Gibbs energy of mixing of a binary liquid.

The molar Gibbs energy of mixing is the ideal (configurational) term plus a
Redlich-Kister excess term with temperature-dependent coefficients:

    G(x, T) = R T [x ln x + (1 - x) ln(1 - x)]
              + x (1 - x) * sum_{k=0}^{n} (L_k + L_k,T * T) (2x - 1)^k

The parameter vector is ordered ``[L_0, L_0,T, L_1, L_1,T, ..., L_n, L_n,T]``
and therefore has ``2 * (n + 1)`` entries. ``x`` is the mole fraction of the
second component and ``T`` is absolute temperature in K.

All functions accept scalars or numpy arrays for ``x`` and ``temperature``;
scalar inputs return Python floats.
"""

from __future__ import annotations

import numpy as np

from ..config import GAS_CONSTANT, parameter_count


def _as_result(values: np.ndarray):
    return float(values) if values.ndim == 0 else values


def validate_parameters(params, order: int) -> np.ndarray:
    """Return ``params`` as a float array of the length required by ``order``.

    Raises:
        ValueError: If the order is unsupported or the length does not equal
            ``2 * (order + 1)``.
    """
    expected = parameter_count(order)
    p = np.asarray(params, dtype=float)
    if p.ndim != 1 or p.size != expected:
        raise ValueError(
            f"Order {order} requires {expected} parameters, got shape {p.shape}"
        )
    return p


def ideal_mixing_gibbs(temperature, x):
    r"""Ideal mixing contribution ``R T [x ln x + (1 - x) ln(1 - x)]``.

    Args:
        temperature (float | numpy.ndarray): Absolute temperature in K.
        x (float | numpy.ndarray): Mole fraction of the second component.

    Returns:
        float | numpy.ndarray: Ideal Gibbs energy of mixing in J/mol.

    Note:
        At exactly ``x == 0`` only the ``(1 - x) ln(1 - x)`` half is evaluated
        and at exactly ``x == 1`` only the ``x ln x`` half, so ``ln(0)`` is
        never taken and both endpoints give 0. Values merely close to 0 or 1
        use the full expression without any clipping.
    """
    t_arr, x_arr = np.broadcast_arrays(
        np.asarray(temperature, dtype=float), np.asarray(x, dtype=float)
    )
    entropy = np.empty(x_arr.shape, dtype=float)

    pure_first = x_arr == 0.0
    pure_second = x_arr == 1.0
    mixed = ~(pure_first | pure_second)

    x_lo = x_arr[pure_first]
    entropy[pure_first] = (1.0 - x_lo) * np.log(1.0 - x_lo)
    x_hi = x_arr[pure_second]
    entropy[pure_second] = x_hi * np.log(x_hi)
    x_mid = x_arr[mixed]
    entropy[mixed] = x_mid * np.log(x_mid) + (1.0 - x_mid) * np.log(1.0 - x_mid)

    return _as_result(GAS_CONSTANT * t_arr * entropy)


def excess_gibbs(params, order: int, temperature, x):
    """Redlich-Kister excess term ``x (1 - x) sum_k (L_k + L_k,T T)(2x - 1)^k``.

    Terms are accumulated from the highest order ``k = n`` down to ``k = 0``.
    """
    p = validate_parameters(params, order)
    t_arr = np.asarray(temperature, dtype=float)
    x_arr = np.asarray(x, dtype=float)
    asym = 2.0 * x_arr - 1.0

    total = np.zeros(np.broadcast(t_arr, x_arr).shape, dtype=float)
    for k in range(order, -1, -1):
        total = total + (p[2 * k] + p[2 * k + 1] * t_arr) * asym**k

    return _as_result(x_arr * (1.0 - x_arr) * total)


def redlich_kister_gibbs(params, order: int, temperature, x):
    """Evaluate the full model (ideal + excess) at ``(x, T)``.

    Args:
        params (Sequence[float]): Coefficients
            ``[L_0, L_0,T, ..., L_n, L_n,T]``.
        order (int): Redlich-Kister order ``n`` in ``{0, 1, 2, 3}``.
        temperature (float | numpy.ndarray): Absolute temperature in K.
        x (float | numpy.ndarray): Mole fraction of the second component.

    Returns:
        float | numpy.ndarray: Gibbs energy of mixing in J/mol.

    Raises:
        ValueError: If ``order`` is unsupported or ``params`` has the wrong
            length.
    """
    ideal = ideal_mixing_gibbs(temperature, x)
    excess = excess_gibbs(params, order, temperature, x)
    return _as_result(np.asarray(ideal + excess, dtype=float))


class RegressionFunction:
    """Model curve ``G(x)`` at a fixed temperature.

    The coefficients are copied at construction, so later changes to the
    caller's parameter vector do not alter an existing curve.
    """

    def __init__(self, params, order: int, temperature: float):
        self.params = validate_parameters(params, order).copy()
        self.order = int(order)
        self.temperature = float(temperature)

    def __call__(self, x):
        return redlich_kister_gibbs(self.params, self.order, self.temperature, x)

    evaluate = __call__

    def __repr__(self) -> str:
        return (
            f"RegressionFunction(order={self.order}, "
            f"temperature={self.temperature:g}, params={self.params.tolist()})"
        )
