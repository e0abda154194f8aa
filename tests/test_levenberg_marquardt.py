import logging
import math

import numpy as np
import pytest
from scipy.optimize import least_squares

from gibbsfit.config import DEFAULT_MAX_ITERATIONS, LMSettings
from gibbsfit.stats.levenberg_marquardt import (
    STATUS_CONVERGED,
    STATUS_MAX_ITERATIONS,
    STATUS_STAGNATED,
    LevenbergMarquardt,
    finite_difference_steps,
    is_stationary,
    minimize,
    residual_jacobian,
    solve_damped_normal_equations,
)
from gibbsfit.thermo.objective import ObjectiveFunction
from gibbsfit.thermo.redlich_kister import redlich_kister_gibbs

TRUE_PARAMS = np.array([1000.0, 0.5, -200.0, 0.1])


def make_objective(noise_sd=0.0, seed=42, order=1, params=TRUE_PARAMS):
    temperatures = np.array([1000.0, 1200.0, 1400.0, 1600.0])
    compositions = np.linspace(0.05, 0.95, 19)
    t_grid, x_grid = np.meshgrid(temperatures, compositions, indexing="ij")
    x = x_grid.ravel()
    T = t_grid.ravel()
    G = redlich_kister_gibbs(params, order, T, x)
    if noise_sd:
        G = G + np.random.default_rng(seed).normal(0.0, noise_sd, size=G.shape)
    return ObjectiveFunction(x, T, G, order)


def test_recovers_generating_parameters_from_zero_start():
    objective = make_objective()
    params, iterations = minimize(objective, np.zeros(4), 200, 1e-12)

    np.testing.assert_allclose(params, TRUE_PARAMS, rtol=1e-5)
    assert iterations < 200
    assert objective(params) < 1e-10


def test_fitted_model_reproduces_noiseless_data():
    objective = make_objective()
    params, _ = minimize(objective, np.zeros(4), 200, 1e-12)
    predicted = objective.predict(params)
    np.testing.assert_allclose(predicted, objective.gibbs, rtol=0, atol=1e-4)


def test_zero_iteration_budget_returns_initial_vector():
    objective = make_objective()
    start = np.array([1.0, 2.0, 3.0, 4.0])
    optimizer = LevenbergMarquardt()
    params, iterations = optimizer.minimize(objective, start, 0, 1e-12)

    assert iterations == 0
    np.testing.assert_array_equal(params, [1.0, 2.0, 3.0, 4.0])
    np.testing.assert_array_equal(start, [1.0, 2.0, 3.0, 4.0])
    assert optimizer.status == STATUS_MAX_ITERATIONS


def test_noisy_fit_does_not_increase_objective():
    objective = make_objective(noise_sd=20.0)
    zeros = np.zeros(4)
    params, _ = minimize(objective, zeros, 500, 1e-12)
    assert objective(params) <= objective(zeros)


def test_noisy_fit_agrees_with_scipy_least_squares():
    objective = make_objective(noise_sd=20.0)
    params, iterations = minimize(objective, np.zeros(4), 500, 1e-12)
    reference = least_squares(
        objective.residuals,
        np.zeros(4),
        method="lm",
        x_scale="jac",
        xtol=1e-15,
        ftol=1e-15,
        gtol=1e-15,
    )

    assert iterations < 500
    assert objective(params) <= objective(reference.x) * (1.0 + 1e-8)
    np.testing.assert_allclose(params, reference.x, rtol=1e-3, atol=1e-4)


def test_updates_float_array_in_place():
    objective = make_objective()
    start = np.zeros(4)
    params, _ = minimize(objective, start, 200, 1e-12)
    np.testing.assert_array_equal(start, params)

    from_list, _ = minimize(objective, [0.0, 0.0, 0.0, 0.0], 200, 1e-12)
    np.testing.assert_allclose(from_list, TRUE_PARAMS, rtol=1e-5)


def test_scalar_objective_without_residuals():
    def bowl(p):
        return (p[0] - 3.0) ** 2 + 10.0 * (p[1] + 2.0) ** 2

    optimizer = LevenbergMarquardt()
    params, iterations = optimizer.minimize(bowl, [0.0, 0.0], 100, 1e-14)
    np.testing.assert_allclose(params, [3.0, -2.0], atol=1e-6)
    assert iterations < 100
    assert optimizer.status == STATUS_CONVERGED


def test_rosenbrock_from_standard_start():
    def rosenbrock(p):
        return 100.0 * (p[1] - p[0] ** 2) ** 2 + (1.0 - p[0]) ** 2

    params, iterations = minimize(rosenbrock, [-1.2, 1.0], 1000, 1e-8)
    np.testing.assert_allclose(params, [1.0, 1.0], atol=1e-3)
    assert iterations < 1000


def test_constant_objective_is_stationary():
    optimizer = LevenbergMarquardt()
    params, iterations = optimizer.minimize(lambda p: 5.0, [1.0, -1.0], 50, 1e-12)
    np.testing.assert_array_equal(params, [1.0, -1.0])
    assert iterations == 1
    assert optimizer.status == STATUS_CONVERGED


def test_nan_objective_returns_initial_vector(caplog):
    optimizer = LevenbergMarquardt()
    with caplog.at_level(logging.DEBUG, logger="gibbsfit.stats.levenberg_marquardt"):
        params, iterations = optimizer.minimize(
            lambda p: math.nan, [0.5, 0.5], 50, 1e-12
        )
    np.testing.assert_array_equal(params, [0.5, 0.5])
    assert iterations < 50
    assert optimizer.status == STATUS_STAGNATED

    stagnation = [r for r in caplog.records if "no further improvement" in r.message]
    assert len(stagnation) == 1
    assert stagnation[0].levelno == logging.WARNING


def test_noisy_fit_at_default_tolerance_reports_convergence(caplog):
    # No accepted step decreases the objective by only 1e-20 of itself, so
    # the fit ends at the least-squares minimum where no step improves.
    objective = make_objective(noise_sd=20.0)
    optimizer = LevenbergMarquardt()
    with caplog.at_level(logging.WARNING, logger="gibbsfit.stats.levenberg_marquardt"):
        params, iterations = optimizer.minimize(objective, np.zeros(4))
    reference = least_squares(
        objective.residuals,
        np.zeros(4),
        method="lm",
        x_scale="jac",
        xtol=1e-15,
        ftol=1e-15,
        gtol=1e-15,
    )

    assert optimizer.status == STATUS_CONVERGED
    assert iterations < DEFAULT_MAX_ITERATIONS
    assert objective(params) == pytest.approx(objective(reference.x), rel=1e-8)
    assert not caplog.records


def test_is_stationary():
    normal = np.array([[4.0, 0.0], [0.0, 9.0]])
    assert is_stationary(normal, np.array([0.0, 1e-9]), 1.0, 1e-6)
    assert not is_stationary(normal, np.array([0.0, 1e-3]), 1.0, 1e-6)
    # Same gradient, but large residuals left: still a minimum.
    assert is_stationary(normal, np.array([0.0, 1e-3]), 1e8, 1e-6)
    assert is_stationary(normal, np.zeros(2), 0.0, 1e-6)
    assert not is_stationary(normal, np.array([1e-300, 0.0]), 0.0, 1e-6)
    assert not is_stationary(normal, np.zeros(2), math.nan, 1e-6)
    assert not is_stationary(normal, np.array([math.nan, 0.0]), 1.0, 1e-6)


def test_degenerate_data_does_not_raise():
    # One composition at x = 0.5 and one temperature: only L0 + L0_T*T is
    # determined and the L1 terms have no influence at all.
    objective = ObjectiveFunction(
        [0.5, 0.5, 0.5], [1000.0, 1000.0, 1000.0], [-5000.0, -5010.0, -4990.0], 1
    )
    zeros = np.zeros(4)
    params, iterations = minimize(objective, zeros, 100, 1e-12)

    assert np.all(np.isfinite(params))
    assert objective(params) <= objective(zeros)
    assert params[2] == 0.0
    assert params[3] == 0.0
    assert iterations <= 100


def test_budget_exhaustion_reports_full_iteration_count():
    objective = make_objective(noise_sd=20.0)
    optimizer = LevenbergMarquardt()
    _, iterations = optimizer.minimize(objective, np.zeros(4), 1, 0.0)
    assert iterations == 1
    assert optimizer.status == STATUS_MAX_ITERATIONS
    assert optimizer.iterations == 1


def test_custom_settings_are_used():
    objective = make_objective()
    settings = LMSettings(initial_damping=1.0, damping_floor=1e-6)
    optimizer = LevenbergMarquardt(settings)
    params, _ = optimizer.minimize(objective, np.zeros(4), 500, 1e-12)
    np.testing.assert_allclose(params, TRUE_PARAMS, rtol=1e-5)
    assert optimizer.objective_value == pytest.approx(objective(params))


@pytest.mark.parametrize(
    "params, max_iterations, tolerance",
    [
        ([], 10, 1e-6),
        ([np.nan, 0.0], 10, 1e-6),
        ([[0.0, 0.0]], 10, 1e-6),
        ([0.0, 0.0], -1, 1e-6),
        ([0.0, 0.0], 2.5, 1e-6),
        ([0.0, 0.0], 10, -1.0),
    ],
)
def test_invalid_arguments_raise(params, max_iterations, tolerance):
    with pytest.raises(ValueError):
        minimize(lambda p: float(np.sum(p**2)), params, max_iterations, tolerance)


def test_finite_difference_steps_fall_back_for_zero():
    steps = finite_difference_steps(np.array([0.0, 2.0, -500.0]), 1e-6, 1e-7)
    np.testing.assert_allclose(steps, [1e-7, 2e-6, 5e-4])


def test_residual_jacobian_of_linear_residuals():
    design = np.array([[1.0, 2.0], [0.5, -1.0], [3.0, 0.0]])
    target = np.array([1.0, 2.0, 3.0])

    def residuals(p):
        return target - design @ p

    steps = finite_difference_steps(np.array([0.0, 4.0]), 1e-6, 1e-6)
    jac = residual_jacobian(residuals, np.array([0.0, 4.0]), steps)
    np.testing.assert_allclose(jac, -design, rtol=1e-6, atol=1e-8)


def test_solve_damped_normal_equations_zero_influence_parameter():
    normal = np.array([[4.0, 0.0], [0.0, 0.0]])
    gradient = np.array([2.0, 0.0])
    step = solve_damped_normal_equations(normal, gradient, 1e-3)
    assert step is not None
    assert step[0] == pytest.approx(-0.5 / (1.0 + 1e-3))
    assert step[1] == 0.0


def test_solve_damped_normal_equations_rejects_unusable_systems():
    indefinite = np.array([[1.0, 0.0], [0.0, -1.0]])
    assert solve_damped_normal_equations(indefinite, np.ones(2), 1e-3) is None

    invalid = np.array([[np.nan, 0.0], [0.0, 1.0]])
    assert solve_damped_normal_equations(invalid, np.ones(2), 1e-3) is None
