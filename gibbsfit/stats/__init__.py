"""
Numerical optimization utilities.

Modules:
    levenberg_marquardt:
        Damped Gauss-Newton minimization of a sum-of-squares objective with
        finite-difference derivatives and adaptive damping.

Design Principle:
    This subpackage has no dependencies on thermo/. The optimizer accepts any
    callable objective and can be tested independently.
"""

from .levenberg_marquardt import (
    STATUS_CONVERGED,
    STATUS_MAX_ITERATIONS,
    STATUS_STAGNATED,
    LevenbergMarquardt,
    finite_difference_steps,
    is_stationary,
    minimize,
    objective_gradient,
    objective_hessian,
    residual_jacobian,
    solve_damped_normal_equations,
)

__all__ = [
    "STATUS_CONVERGED",
    "STATUS_MAX_ITERATIONS",
    "STATUS_STAGNATED",
    "LevenbergMarquardt",
    "finite_difference_steps",
    "is_stationary",
    "minimize",
    "objective_gradient",
    "objective_hessian",
    "residual_jacobian",
    "solve_damped_normal_equations",
]
