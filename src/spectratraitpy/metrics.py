# src/spectratraitpy/metrics.py
# SPDX-License-Identifier: MIT
"""
Prediction-error metrics for PLSR trait models.

This module provides the small set of error summaries used across
spectratraitpy:

- :func:`press_by_component` — prediction error sum of squares (PRESS),
  one value per PLSR component count.
- :func:`rmse` — root mean squared error.
- :func:`percent_rmse` — RMSE expressed as a percentage of the observed
  data range (full range or an inter-quantile range).

Key design choices
------------------
* Inputs are accepted as any iterable (lists, NumPy arrays, pandas Series).
* Outputs are plain ``float`` or NumPy arrays of ``dtype=float``.
* Shape mismatches raise ``ValueError`` instead of broadcasting silently.
"""

from __future__ import annotations

from typing import Dict, Iterable, Tuple, Union

import numpy as np
from sklearn.metrics import mean_squared_error


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------


def _as_arrays(
    y_true: Iterable[float],
    y_pred: Iterable[float],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert *y_true* and *y_pred* to NumPy arrays of ``dtype=float`` and
    verify that they share the same shape.

    Raises
    ------
    ValueError
        If the shapes of *y_true* and *y_pred* do not match.
    """
    yt = np.asarray(y_true, dtype=float)
    yp = np.asarray(y_pred, dtype=float)

    if yt.shape != yp.shape:
        raise ValueError(
            f"Shapes of y_true {yt.shape} and y_pred {yp.shape} do not match."
        )
    return yt, yp


# ---------------------------------------------------------------------
# PRESS
# ---------------------------------------------------------------------


def press_by_component(
    y_true: Iterable[float],
    y_pred: np.ndarray,
) -> np.ndarray:
    """
    Prediction error sum of squares for every component count.

    Parameters
    ----------
    y_true
        Observed target values, length ``n``.
    y_pred
        Predictions of shape ``(n, n_components)``; column ``k-1`` holds the
        predictions of the ``k``-component model.

    Returns
    -------
    np.ndarray
        Vector of length ``n_components`` with
        ``sum_i (y_pred[i, k] - y_true[i]) ** 2``.
    """
    yt = np.asarray(y_true, dtype=float).ravel()
    yp = np.asarray(y_pred, dtype=float)
    if yp.ndim == 1:
        yp = yp.reshape(-1, 1)
    if yp.ndim != 2 or yp.shape[0] != yt.size:
        raise ValueError(
            f"y_pred must have shape ({yt.size}, n_components); got {yp.shape}."
        )

    sq_resid = (yp - yt[:, None]) ** 2
    return sq_resid.sum(axis=0)


# ---------------------------------------------------------------------
# RMSE and %RMSE
# ---------------------------------------------------------------------


def rmse(y_true: Iterable[float], y_pred: Iterable[float]) -> float:
    """Root mean squared error; ``np.nan`` for empty input."""
    yt, yp = _as_arrays(y_true, y_pred)
    if yt.size == 0:
        return np.nan
    return float(np.sqrt(mean_squared_error(yt, yp)))


def percent_rmse(
    y_true: Iterable[float],
    residuals: Iterable[float],
    *,
    quantile_range: Union[str, Tuple[float, float]] = "full",
) -> Dict[str, float]:
    """
    RMSE of *residuals* and the same error as a percentage of the data range.

    Parameters
    ----------
    y_true
        Observed target values, used only to derive the reference range.
    residuals
        Model residuals (predicted minus observed, or the reverse; the sign
        does not matter).
    quantile_range : {"full"} or (lower_quantile, upper_quantile), default "full"
        ``"full"`` divides by ``max(y_true) - min(y_true)``. A pair of
        quantiles, e.g. ``(0.025, 0.975)``, divides by the inter-quantile
        range instead, which is less sensitive to extreme observations.

    Returns
    -------
    dict
        ``{"rmse": float, "perc_rmse": float}``. ``perc_rmse`` is
        ``np.nan`` when the reference range is zero.
    """
    yt = np.asarray(y_true, dtype=float).ravel()
    res = np.asarray(residuals, dtype=float).ravel()
    yt = yt[np.isfinite(yt)]
    res = res[np.isfinite(res)]
    if yt.size == 0 or res.size == 0:
        raise ValueError("percent_rmse needs at least one finite value and residual.")

    err = float(np.sqrt(np.mean(res ** 2)))

    if isinstance(quantile_range, str):
        if quantile_range != "full":
            raise ValueError("quantile_range must be 'full' or a (lower, upper) quantile pair.")
        span = float(np.max(yt) - np.min(yt))
    else:
        lo_q, hi_q = (float(q) for q in quantile_range)
        if not 0.0 <= lo_q < hi_q <= 1.0:
            raise ValueError(
                f"Quantile range must satisfy 0 <= lower < upper <= 1; got {quantile_range}."
            )
        lo, hi = np.quantile(yt, [lo_q, hi_q])
        span = float(hi - lo)

    perc = err / span * 100.0 if span > 0.0 else np.nan
    return {"rmse": err, "perc_rmse": float(perc)}


__all__ = [
    "press_by_component",
    "rmse",
    "percent_rmse",
]
