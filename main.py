#!/usr/bin/env python3
"""
Main script for running a Redlich-Kister fit.
"""

# Pipeline overview:
# 1) Build a synthetic Gibbs energy dataset for a binary liquid (four
#    isotherms, noisy order-2 Redlich-Kister excess term).
# 2) Fit orders 0-3 by Levenberg-Marquardt from zero-initialized coefficients.
# 3) Compare the fits and select the order with the lowest residual mean square.
# 4) Report the selected coefficients and the residuals per isotherm.

import logging
import sys
import time

import numpy as np

from gibbsfit.analysis import fit_all_orders, select_best_order
from gibbsfit.reporting import coefficient_table, format_coefficients, residual_table
from gibbsfit.schema import RESULT_COLUMNS
from gibbsfit.stats import STATUS_MAX_ITERATIONS
from gibbsfit.thermo.objective import GibbsDataset
from gibbsfit.thermo.redlich_kister import redlich_kister_gibbs

TRUE_ORDER = 2
TRUE_PARAMS = [-21000.0, 4.5, 3500.0, -1.2, 900.0, 0.0]
NOISE_SD = 40.0  # J/mol


def build_synthetic_dataset(seed: int = 0) -> GibbsDataset:
    rng = np.random.default_rng(seed)
    temperatures = np.array([1400.0, 1500.0, 1600.0, 1700.0])
    compositions = np.linspace(0.02, 0.98, 25)
    t_grid, x_grid = np.meshgrid(temperatures, compositions, indexing="ij")
    t_flat = t_grid.ravel()
    x_flat = x_grid.ravel()
    gibbs = redlich_kister_gibbs(TRUE_PARAMS, TRUE_ORDER, t_flat, x_flat)
    gibbs = gibbs + rng.normal(0.0, NOISE_SD, size=gibbs.shape)
    return GibbsDataset(x=x_flat, temperature=t_flat, gibbs=gibbs)


def main():
    """Main execution function with step timing."""

    start_time = time.time()
    logging.info("Initializing Redlich-Kister fitting pipeline")

    dataset = build_synthetic_dataset()
    logging.info(
        "Synthetic dataset: %d points at %d temperatures",
        len(dataset),
        len(dataset.temperatures),
    )

    step_start = time.time()
    fits, summary_df = fit_all_orders(dataset, max_iterations=10000, tolerance=1e-20)
    step_duration = time.time() - step_start
    logging.info("Fitted %d model orders in %.2f seconds", len(fits), step_duration)

    usable = [
        fit
        for fit in fits
        if fit["status"] != STATUS_MAX_ITERATIONS and np.isfinite(fit["objective"])
    ]
    if not usable:
        logging.error("No fit reached a minimum. Terminating execution.")
        return 1

    print(summary_df.to_string(index=False))

    best_order = select_best_order(summary_df)
    best = next(fit for fit in fits if fit["model_order"] == best_order)
    logging.info("Selected order %d (true order %d)", best_order, TRUE_ORDER)

    print(best["iterations"])
    print(format_coefficients(best["params"], best_order))
    print(coefficient_table(best["params"], best_order).to_string(index=False))

    residuals = residual_table(dataset, best["params"], best_order)
    cols = RESULT_COLUMNS
    per_isotherm = residuals.groupby(cols.temperature)[cols.residual].agg(
        ["mean", "std", "count"]
    )
    print(per_isotherm.to_string())

    total_duration = time.time() - start_time
    logging.info(f"Total execution time: {total_duration:.2f} seconds")
    logging.info("Fitting pipeline completed successfully")
    return 0


def configure_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler("gibbsfit.log", mode="w"),
        ],
    )


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
