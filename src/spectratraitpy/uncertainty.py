# SPDX-License-Identifier: MIT
"""
Jackknife uncertainty for PLSR trait predictions.

The coefficient array of a permutation run holds one PLSR model per
iteration. Applying all of them to new spectra gives a spread of predictions
per observation, from which two intervals are derived:

- a *confidence* interval: empirical quantiles of the jackknife predictions;
- a *prediction* interval: ``y_pred ± z * sqrt(sd_jk**2 + sd_resid**2)``,
  combining the jackknife spread with the residual scatter of the final
  model.

Back-transforms (e.g. squaring predictions of a ``sqrt(LMA)`` model) are the
caller's business; apply them to the inputs before computing the intervals.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
import pandas as pd
from scipy import stats


def jackknife_predictions(X, coef_table) -> np.ndarray:
    """
    Predictions of every jackknife model.

    Parameters
    ----------
    X : array-like, shape (n_rows, n_bands)
        Spectra.
    coef_table : array-like or DataFrame, shape (n_bands + 1, n_models)
        Intercept-first coefficients, e.g.
        ``PermutationResult.coefficients(ncomp)``.

    Returns
    -------
    ndarray, shape (n_rows, n_models)
    """
    X = np.asarray(X, dtype=float)
    coef = np.asarray(coef_table, dtype=float)
    if coef.ndim == 1:
        coef = coef[:, None]
    if X.ndim != 2 or coef.shape[0] != X.shape[1] + 1:
        raise ValueError(
            f"coef_table must have {X.shape[-1] + 1} rows (intercept + bands); "
            f"got {coef.shape[0]}."
        )
    return X @ coef[1:] + coef[0][None, :]


def prediction_intervals(
    y_pred: Iterable[float],
    jk_pred,
    residuals: Iterable[float],
    *,
    interval: Tuple[float, float] = (0.025, 0.975),
) -> pd.DataFrame:
    """
    Confidence and prediction intervals from jackknife predictions.

    Parameters
    ----------
    y_pred : array-like, shape (n_rows,)
        Predictions of the final model.
    jk_pred : array-like, shape (n_rows, n_models)
        Output of :func:`jackknife_predictions`.
    residuals : array-like
        Residuals of the final model on its calibration or validation data.
    interval : (lower, upper), default (0.025, 0.975)
        Quantiles for the confidence interval. The prediction interval uses
        ``z = norm.ppf(upper)``, i.e. 1.96 for the default.

    Returns
    -------
    DataFrame
        Columns ``LCI``, ``UCI`` (confidence) and ``LPI``, ``UPI``
        (prediction), one row per observation.
    """
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    jk_pred = np.asarray(jk_pred, dtype=float)
    res = np.asarray(residuals, dtype=float).ravel()
    res = res[np.isfinite(res)]

    if jk_pred.ndim != 2 or jk_pred.shape[0] != y_pred.size:
        raise ValueError(
            f"jk_pred must have shape ({y_pred.size}, n_models); got {jk_pred.shape}."
        )
    if jk_pred.shape[1] < 2:
        raise ValueError("At least 2 jackknife models are needed.")
    if res.size < 2:
        raise ValueError("At least 2 finite residuals are needed.")

    lo_q, hi_q = (float(q) for q in interval)
    if not 0.0 < lo_q < hi_q < 1.0:
        raise ValueError(f"interval must satisfy 0 < lower < upper < 1; got {interval}.")

    lci, uci = np.quantile(jk_pred, [lo_q, hi_q], axis=1)
    sd_mean = jk_pred.std(axis=1, ddof=1)
    sd_res = res.std(ddof=1)
    sd_tot = np.sqrt(sd_mean ** 2 + sd_res ** 2)
    z = float(stats.norm.ppf(hi_q))

    return pd.DataFrame(
        {
            "LCI": lci,
            "UCI": uci,
            "LPI": y_pred - z * sd_tot,
            "UPI": y_pred + z * sd_tot,
        }
    )


__all__ = [
    "jackknife_predictions",
    "prediction_intervals",
]
