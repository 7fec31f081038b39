"""
spectratraitpy
==============

Permutation analysis for PLSR models of plant traits from reflectance
spectra.

This package provides three complementary pieces:

1. Permutation runs
   ----------------
   Repeated random train/validation splits, each scored across the whole
   PLSR component sweep. The result holds a PRESS matrix
   (iterations x components) and a coefficient array
   (bands + 1 x iterations x components).

   Main entry points
   -----------------
   - :func:`pls_permutation`
   - :func:`pls_permutation_by_groups`
   - :class:`PermutationResult`

2. Choice of the number of components
   ----------------------------------
   Cross-validation with the one-sigma rule, or the first plateau / first
   minimum of the permutation PRESS curves.

   Main entry points
   -----------------
   - :func:`find_optimal_components`
   - :func:`select_components_from_press`

3. Jackknife uncertainty
   ---------------------
   Confidence and prediction intervals from the per-iteration models.

   Main entry points
   -----------------
   - :func:`jackknife_predictions`
   - :func:`prediction_intervals`
   - :func:`percent_rmse`

All PLSR fits use scikit-learn's :class:`~sklearn.cross_decomposition.PLSRegression`
on centred, unscaled spectra.

Example
-------
    >>> import pandas as pd
    >>> from spectratraitpy import (
    ...     find_optimal_components,
    ...     pls_permutation,
    ...     jackknife_predictions,
    ...     prediction_intervals,
    ... )

    # (1) Number of components from permutation PRESS
    >>> ncomp = find_optimal_components(
    ...     cal_data, "LMA_g_m2", method="firstMin",
    ...     max_comps=15, iterations=50, prop=0.7, random_state=7529075,
    ... )

    # (2) Jackknife models for that component count
    >>> res = pls_permutation(
    ...     cal_data, "LMA_g_m2", max_comps=ncomp, iterations=100, prop=0.7,
    ... )
    >>> jk = jackknife_predictions(val_spectra, res.coefficients(ncomp))

    # (3) Intervals around the final model's predictions
    >>> bands = prediction_intervals(val_pred, jk, val_pred - val_obs)
"""

from __future__ import annotations

# Public version (update in sync with pyproject.toml)
__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Permutation runs
# ---------------------------------------------------------------------------

from .permutation import (
    PermutationResult,
    pls_permutation,
    pls_permutation_by_groups,
)
from .plsr import PLSRFit, PLSRFitError, fit_plsr
from .partition import (
    Partition,
    RandomPartitioner,
    StratifiedPartitioner,
    make_partitioner,
)

# ---------------------------------------------------------------------------
# Component selection and uncertainty
# ---------------------------------------------------------------------------

from .selection import (
    cv_rmsep,
    find_optimal_components,
    select_components_from_press,
)
from .uncertainty import jackknife_predictions, prediction_intervals
from .metrics import percent_rmse, press_by_component, rmse

__all__ = [
    "__version__",
    # permutation
    "PermutationResult",
    "pls_permutation",
    "pls_permutation_by_groups",
    "PLSRFit",
    "PLSRFitError",
    "fit_plsr",
    "Partition",
    "RandomPartitioner",
    "StratifiedPartitioner",
    "make_partitioner",
    # selection
    "cv_rmsep",
    "find_optimal_components",
    "select_components_from_press",
    # uncertainty / metrics
    "jackknife_predictions",
    "prediction_intervals",
    "percent_rmse",
    "press_by_component",
    "rmse",
]
