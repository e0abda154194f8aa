"""Define fit configuration objects and shared numerical defaults.

The hosting application collects the model order and iteration budget and
passes them here before any fitting starts. Everything below the invocation
boundary assumes these values were already validated.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass, field
from typing import Tuple

GAS_CONSTANT: float = 8.314
MODEL_ORDERS: Tuple[int, ...] = (0, 1, 2, 3)

DEFAULT_MAX_ITERATIONS = 10000
DEFAULT_TOLERANCE = 1e-20


def validate_model_order(order) -> int:
    """Return ``order`` as an int after checking it is a supported order.

    Args:
        order (int): Redlich-Kister order ``n``. The parameter vector holds
            ``2 * (n + 1)`` coefficients.

    Returns:
        int: The validated order.

    Raises:
        ValueError: If ``order`` is not an integer in ``MODEL_ORDERS``.
    """
    if isinstance(order, bool) or not hasattr(order, "__index__"):
        raise ValueError(f"Model order must be an integer, got {order!r}")
    order = operator.index(order)
    if order not in MODEL_ORDERS:
        raise ValueError(
            f"Model order must be one of {MODEL_ORDERS}, got {order}"
        )
    return order


def parameter_count(order: int) -> int:
    """Number of coefficients for a Redlich-Kister expansion of ``order``."""
    return 2 * (validate_model_order(order) + 1)


@dataclass(frozen=True)
class LMSettings:
    """Tuning constants for the Levenberg-Marquardt optimizer.

    Attributes:
        initial_damping: Starting value of the damping factor lambda.
        damping_decrease: Divisor applied to lambda after an accepted step.
        damping_increase: Multiplier applied to lambda after a rejected step.
        damping_floor: Lower bound for lambda after repeated accepted steps.
        damping_ceiling: Lambda above which the fit is declared stagnated.
        max_retries: Rejected trial steps allowed within one iteration.
        relative_step: Finite-difference step as a fraction of ``|p_j|``.
        absolute_step: Finite-difference step used when ``p_j == 0``.
        hessian_step: Relative/absolute step for second differences when the
            objective only exposes a scalar value.
        gradient_tolerance: Largest scaled gradient component (the cosine
            between a Jacobian column and the residual vector) at which a
            point where no improving step exists still counts as converged.
    """

    initial_damping: float = 1e-3
    damping_decrease: float = 10.0
    damping_increase: float = 10.0
    damping_floor: float = 1e-12
    damping_ceiling: float = 1e16
    max_retries: int = 20
    relative_step: float = 1e-6
    absolute_step: float = 1e-6
    hessian_step: float = 1e-4
    gradient_tolerance: float = 1e-6

    def __post_init__(self):
        positive = {
            "gradient_tolerance": self.gradient_tolerance,
            "initial_damping": self.initial_damping,
            "damping_floor": self.damping_floor,
            "damping_ceiling": self.damping_ceiling,
            "relative_step": self.relative_step,
            "absolute_step": self.absolute_step,
            "hessian_step": self.hessian_step,
        }
        for name, value in positive.items():
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be finite and > 0, got {value!r}")
        for name in ("damping_decrease", "damping_increase"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 1.0:
                raise ValueError(f"{name} must be finite and > 1, got {value!r}")
        if self.damping_floor > self.initial_damping:
            raise ValueError("damping_floor must not exceed initial_damping.")
        if self.initial_damping >= self.damping_ceiling:
            raise ValueError("initial_damping must be below damping_ceiling.")
        if int(self.max_retries) < 1:
            raise ValueError("max_retries must be >= 1")


@dataclass(frozen=True)
class FitConfig:
    """Invocation tuple for a single Redlich-Kister fit.

    Attributes:
        model_order: Redlich-Kister order ``n`` in ``MODEL_ORDERS``.
        max_iterations: Optimizer iteration budget (``0`` returns the initial
            guess untouched).
        tolerance: Relative (and absolute) objective-decrease threshold.
        settings: Optimizer tuning constants.
    """

    model_order: int = 0
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    settings: LMSettings = field(default_factory=LMSettings)

    def __post_init__(self):
        object.__setattr__(self, "model_order", validate_model_order(self.model_order))
        validate_iteration_budget(self.max_iterations, self.tolerance)

    @property
    def n_parameters(self) -> int:
        return parameter_count(self.model_order)


def validate_iteration_budget(max_iterations, tolerance) -> None:
    """Raise ``ValueError`` for a negative budget or an invalid tolerance."""
    if isinstance(max_iterations, bool) or not hasattr(max_iterations, "__index__"):
        raise ValueError(
            f"max_iterations must be an integer, got {max_iterations!r}"
        )
    if int(max_iterations) < 0:
        raise ValueError("max_iterations must be >= 0")
    tol = float(tolerance)
    if not math.isfinite(tol) or tol < 0:
        raise ValueError(f"tolerance must be finite and >= 0, got {tolerance!r}")
