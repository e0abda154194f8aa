"""Levenberg-Marquardt minimization of sum-of-squares objectives.

Each iteration estimates the derivatives at the current parameter vector,
solves the damped normal equations

    (A + lambda * diag(A)) delta = -g

and evaluates the objective at ``p + delta``. An improving step is accepted
and lambda shrinks (toward Gauss-Newton); a non-improving or unsolvable step is
rejected and lambda grows (toward short gradient-descent steps). The fit ends
when the objective stops decreasing by more than ``tolerance``, when the
iteration budget is spent, or when no damping below the ceiling yields an
improvement. In the last case the fit still counts as converged if the
gradient vanishes there (see :func:`is_stationary`).

Derivatives:
    If the objective exposes ``residuals(p) -> ndarray``, the residual
    Jacobian ``J`` is estimated by central differences and ``A = J^T J``,
    ``g = J^T r``. Otherwise the scalar objective is differentiated directly:
    ``g = grad f / 2`` and ``A = H / 2``, which reduce to the same quantities
    for ``f = r^T r``.

    Central-difference step for parameter ``j``: ``relative_step * |p_j|``,
    or ``absolute_step`` when ``p_j == 0``.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Tuple

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from ..config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    LMSettings,
    validate_iteration_budget,
)

logger = logging.getLogger(__name__)

STATUS_CONVERGED = "converged"
STATUS_MAX_ITERATIONS = "max_iterations"
STATUS_STAGNATED = "stagnated"

MAX_CONDITION_NUMBER = 1.0 / np.finfo(float).eps


def finite_difference_steps(
    params: np.ndarray, relative_step: float, absolute_step: float
) -> np.ndarray:
    """Per-parameter difference steps, proportional to ``|p_j|``."""
    p = np.asarray(params, dtype=float)
    return np.where(p != 0.0, relative_step * np.abs(p), absolute_step)


def residual_jacobian(
    residuals: Callable[[np.ndarray], np.ndarray],
    params: np.ndarray,
    steps: np.ndarray,
) -> np.ndarray:
    """Central-difference Jacobian ``d r_i / d p_j`` of a residual vector."""
    columns = []
    for j, h in enumerate(steps):
        forward = params.copy()
        backward = params.copy()
        forward[j] += h
        backward[j] -= h
        # Divide by the representable step, not the nominal 2h.
        width = forward[j] - backward[j]
        diff = np.asarray(residuals(forward), dtype=float) - np.asarray(
            residuals(backward), dtype=float
        )
        columns.append(diff / width)
    return np.column_stack(columns)


def objective_gradient(
    objective: Callable[[np.ndarray], float],
    params: np.ndarray,
    steps: np.ndarray,
) -> np.ndarray:
    """Central-difference gradient of a scalar objective."""
    grad = np.empty(len(params), dtype=float)
    for j, h in enumerate(steps):
        forward = params.copy()
        backward = params.copy()
        forward[j] += h
        backward[j] -= h
        grad[j] = (float(objective(forward)) - float(objective(backward))) / (
            forward[j] - backward[j]
        )
    return grad


def objective_hessian(
    objective: Callable[[np.ndarray], float],
    params: np.ndarray,
    steps: np.ndarray,
    center_value: Optional[float] = None,
) -> np.ndarray:
    """Symmetric second-difference Hessian of a scalar objective."""
    n = len(params)
    f0 = float(objective(params)) if center_value is None else float(center_value)
    hess = np.empty((n, n), dtype=float)

    def shifted(offsets):
        p = params.copy()
        for idx, delta in offsets:
            p[idx] += delta
        return float(objective(p))

    for j in range(n):
        hj = steps[j]
        hess[j, j] = (shifted([(j, hj)]) - 2.0 * f0 + shifted([(j, -hj)])) / hj**2
        for k in range(j + 1, n):
            hk = steps[k]
            value = (
                shifted([(j, hj), (k, hk)])
                - shifted([(j, hj), (k, -hk)])
                - shifted([(j, -hj), (k, hk)])
                + shifted([(j, -hj), (k, -hk)])
            ) / (4.0 * hj * hk)
            hess[j, k] = value
            hess[k, j] = value
    return hess


def solve_damped_normal_equations(
    normal: np.ndarray, gradient: np.ndarray, damping: float
) -> Optional[np.ndarray]:
    """Solve ``(A + damping * diag(A)) delta = -g``.

    The system is solved in Jacobi-scaled form, ``S^-1 A S^-1`` with
    ``S = sqrt(|diag(A)|)``, where the Marquardt term becomes
    ``damping * I``. Parameters with a zero diagonal entry (no influence on
    the objective) keep unit scale and receive a zero step.

    Returns:
        numpy.ndarray | None: The step ``delta``, or ``None`` when the damped
        matrix is not finite, is ill-conditioned beyond ``1 / eps``, or is not
        positive definite.
    """
    if not (np.all(np.isfinite(normal)) and np.all(np.isfinite(gradient))):
        return None

    scale = np.sqrt(np.abs(np.diag(normal)))
    scale[scale == 0.0] = 1.0
    damped = normal / np.outer(scale, scale) + damping * np.eye(len(scale))

    if np.linalg.cond(damped) > MAX_CONDITION_NUMBER:
        return None
    try:
        factor = cho_factor(damped)
    except LinAlgError:
        return None

    step = cho_solve(factor, -gradient / scale) / scale
    if not np.all(np.isfinite(step)):
        return None
    return step


def is_stationary(
    normal: np.ndarray, gradient: np.ndarray, value: float, gradient_tolerance: float
) -> bool:
    """Whether the gradient vanishes relative to the objective.

    For a sum of squares ``f = r^T r`` each component
    ``|g_j| / (sqrt(A_jj) * sqrt(f))`` is the cosine between Jacobian column
    ``j`` and the residual vector. It is zero at a least-squares minimum
    whatever the size of the remaining residuals.
    """
    if not (
        math.isfinite(value)
        and np.all(np.isfinite(normal))
        and np.all(np.isfinite(gradient))
    ):
        return False
    if value == 0.0:
        return bool(np.all(gradient == 0.0))
    scale = np.sqrt(np.abs(np.diag(normal)))
    scale[scale == 0.0] = 1.0
    cosine = np.abs(gradient) / (scale * math.sqrt(abs(value)))
    return bool(np.max(cosine) <= gradient_tolerance)


def _validate_initial_params(params) -> np.ndarray:
    p = np.array(params, dtype=float, copy=True)
    if p.ndim != 1 or p.size == 0:
        raise ValueError(
            f"Initial parameters must be a non-empty vector, got shape {p.shape}"
        )
    if not np.all(np.isfinite(p)):
        raise ValueError("Initial parameters must be finite.")
    return p


class LevenbergMarquardt:
    """Reusable Levenberg-Marquardt minimizer.

    The outcome of the most recent :meth:`minimize` call is available through
    ``iterations``, ``status`` and ``objective_value``.
    """

    def __init__(self, settings: Optional[LMSettings] = None):
        self.settings = settings if settings is not None else LMSettings()
        self.iterations = 0
        self.status: Optional[str] = None
        self.objective_value = math.nan

    def _normal_equations(self, objective, residuals, params, value):
        settings = self.settings
        if residuals is not None:
            steps = finite_difference_steps(
                params, settings.relative_step, settings.absolute_step
            )
            jac = residual_jacobian(residuals, params, steps)
            resid = np.asarray(residuals(params), dtype=float)
            return jac.T @ jac, jac.T @ resid

        grad_steps = finite_difference_steps(
            params, settings.relative_step, settings.absolute_step
        )
        hess_steps = finite_difference_steps(
            params, settings.hessian_step, settings.hessian_step
        )
        grad = objective_gradient(objective, params, grad_steps)
        hess = objective_hessian(objective, params, hess_steps, center_value=value)
        return 0.5 * hess, 0.5 * grad

    def minimize(
        self,
        objective: Callable[[np.ndarray], float],
        params,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> Tuple[np.ndarray, int]:
        """Minimize ``objective`` starting from ``params``.

        Args:
            objective: Callable returning the scalar objective for a parameter
                vector. An optional ``residuals`` method enables the
                Gauss-Newton approximation of the Hessian.
            params: Initial parameter vector. A writable float ndarray is
                updated in place with the final values.
            max_iterations: Iteration budget. ``0`` returns the initial vector.
            tolerance: The fit converges once an accepted step lowers the
                objective by no more than ``tolerance`` times its previous
                value, or the objective itself drops to ``tolerance``.

        Returns:
            tuple[numpy.ndarray, int]: Best parameter vector found and the
            number of iterations used. Equal to ``max_iterations`` when the
            budget ran out before convergence.

        Raises:
            ValueError: For an empty or non-finite initial vector, a negative
                iteration budget or an invalid tolerance. Numerical failures
                during the iterations are never raised.
        """
        validate_iteration_budget(max_iterations, tolerance)
        max_iterations = int(max_iterations)
        tolerance = float(tolerance)
        settings = self.settings

        p = _validate_initial_params(params)
        residuals = getattr(objective, "residuals", None)
        if not callable(residuals):
            residuals = None

        value = float(objective(p))
        damping = settings.initial_damping
        iterations = 0
        status = None
        if np.isfinite(value) and value <= tolerance:
            status = STATUS_CONVERGED

        while status is None and iterations < max_iterations:
            iterations += 1
            normal, gradient = self._normal_equations(objective, residuals, p, value)

            accepted = False
            for _ in range(settings.max_retries):
                step = solve_damped_normal_equations(normal, gradient, damping)
                if step is not None:
                    trial = p + step
                    trial_value = float(objective(trial))
                    if np.isfinite(trial_value) and trial_value < value:
                        accepted = True
                        break
                damping *= settings.damping_increase
                if damping > settings.damping_ceiling:
                    break

            if not accepted:
                logger.debug(
                    "Iteration %d: no improving step (damping=%.3g)", iterations, damping
                )
                if is_stationary(
                    normal, gradient, value, settings.gradient_tolerance
                ):
                    logger.debug("Iteration %d: gradient vanishes", iterations)
                    status = STATUS_CONVERGED
                else:
                    status = STATUS_STAGNATED
                break

            decrease = value - trial_value
            previous = value
            p, value = trial, trial_value
            damping = max(damping / settings.damping_decrease, settings.damping_floor)
            logger.debug(
                "Iteration %d: objective=%.10g damping=%.3g", iterations, value, damping
            )

            if value <= tolerance or (
                np.isfinite(previous) and decrease <= tolerance * previous
            ):
                status = STATUS_CONVERGED

        if status is None:
            status = STATUS_MAX_ITERATIONS
            if max_iterations > 0:
                logger.warning(
                    "Levenberg-Marquardt did not converge within %d iterations "
                    "(objective=%.6g)",
                    max_iterations,
                    value,
                )
        elif status == STATUS_STAGNATED:
            logger.warning(
                "Levenberg-Marquardt stopped after %d iterations: no further "
                "improvement (objective=%.6g)",
                iterations,
                value,
            )

        self.iterations = iterations
        self.status = status
        self.objective_value = value

        if (
            isinstance(params, np.ndarray)
            and params.dtype.kind == "f"
            and params.flags.writeable
            and params.shape == p.shape
        ):
            params[...] = p
        return p.copy(), iterations


def minimize(
    objective: Callable[[np.ndarray], float],
    initial_params,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    settings: Optional[LMSettings] = None,
) -> Tuple[np.ndarray, int]:
    """Run a one-off :class:`LevenbergMarquardt` minimization.

    Returns:
        tuple[numpy.ndarray, int]: Final parameter vector and iterations used.
    """
    return LevenbergMarquardt(settings).minimize(
        objective, initial_params, max_iterations, tolerance
    )
