# SPDX-License-Identifier: MIT
"""
Choice of the number of PLSR components.

Three strategies are available through :func:`find_optimal_components`:

``"pls"``
    Interleaved K-segment cross-validation on the full dataset followed by
    the one-sigma rule: the smallest model whose cross-validated RMSEP is
    below ``min(RMSEP) + SE`` of the best model.
``"firstPlateau"``
    Permutation PRESS (:func:`~spectratraitpy.permutation.pls_permutation`);
    the first component count whose PRESS distribution is not significantly
    different (Welch t-test) from that of the next component count.
``"firstMin"``
    Permutation PRESS; the first component count whose PRESS distribution is
    not significantly different from the one with the lowest mean PRESS.

The permutation-based rules are exposed separately as
:func:`select_components_from_press`, a pure function of a PRESS matrix.
"""

from __future__ import annotations

import warnings
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from scipy import stats

from .data import extract_arrays, resolve_spectra_columns, validate_dataset
from .permutation import pls_permutation_by_groups
from .plsr import fit_plsr

_METHODS = {
    "pls": "pls",
    "firstplateau": "firstPlateau",
    "firstmin": "firstMin",
}


def _canonical_method(method: str) -> str:
    key = str(method).replace("_", "").lower()
    if key not in _METHODS:
        raise ValueError(
            f"Unknown method {method!r}; choose one of {sorted(_METHODS.values())}."
        )
    return _METHODS[key]


def _welch_pvalue(a: np.ndarray, b: np.ndarray) -> float:
    """Two-sided Welch t-test p-value; identical constant samples give 1.0."""
    p = float(stats.ttest_ind(a, b, equal_var=False).pvalue)
    if np.isnan(p):
        return 1.0 if np.isclose(a.mean(), b.mean()) else 0.0
    return p


# ---------------------------------------------------------------------
# Cross-validation (method="pls")
# ---------------------------------------------------------------------


def cv_rmsep(X, y, max_comps: int, segments: int = 10) -> pd.DataFrame:
    """
    Cross-validated RMSEP for 0 .. *max_comps* components.

    Rows are assigned to segments in interleaved order (row ``i`` goes to
    segment ``i % segments``). The 0-component model predicts the mean of
    the training segments, not the leave-one-out mean, so its RMSEP can
    differ slightly from ``pls::RMSEP`` for the intercept-only model.

    Returns
    -------
    DataFrame
        Indexed by ``ncomp`` with columns ``rmsep`` and ``se`` (standard
        deviation of the residuals divided by ``sqrt(n)``).
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    n = y.size
    segments = min(int(segments), n)
    if segments < 2:
        raise ValueError(f"Need at least 2 segments; got {segments}.")

    largest_fold = int(np.ceil(n / segments))
    if n - largest_fold <= max_comps:
        raise ValueError(
            f"Cross-validation training folds of {n - largest_fold} rows cannot "
            f"support max_comps={max_comps}."
        )

    folds = np.arange(n) % segments
    resid = np.empty((n, max_comps + 1), dtype=float)
    for k in range(segments):
        test = folds == k
        train = ~test
        fit = fit_plsr(X[train], y[train], max_comps)
        resid[test, 0] = y[test] - y[train].mean()
        resid[test, 1:] = y[test][:, None] - fit.predict(X[test])

    rmsep = np.sqrt(np.mean(resid ** 2, axis=0))
    se = resid.std(axis=0, ddof=1) / np.sqrt(n)
    return pd.DataFrame(
        {"rmsep": rmsep, "se": se},
        index=pd.Index(np.arange(max_comps + 1), name="ncomp"),
    )


def _onesigma(table: pd.DataFrame) -> int:
    """Smallest ``ncomp`` with RMSEP strictly below ``min(RMSEP) + SE``."""
    rmsep = table["rmsep"].to_numpy()
    best = int(rmsep.argmin())
    cutoff = rmsep[best] + table["se"].iloc[best]
    below = np.flatnonzero(rmsep < cutoff)
    # a zero SE leaves nothing strictly below the cutoff
    chosen = int(below[0]) if below.size else best
    # an intercept-only model is not a PLSR model
    return max(chosen, 1)


# ---------------------------------------------------------------------
# Permutation PRESS rules
# ---------------------------------------------------------------------


def select_components_from_press(
    press: np.ndarray,
    method: str = "firstMin",
    *,
    alpha: float = 0.05,
) -> int:
    """
    Pick a component count from a permutation PRESS matrix.

    Parameters
    ----------
    press : ndarray, shape (iterations, max_comps)
        PRESS per iteration and component count, e.g.
        :attr:`PermutationResult.press`.
    method : {"firstPlateau", "firstMin"}
        Selection rule (see module docstring).
    alpha : float, default 0.05
        Significance level of the Welch t-tests.

    Returns
    -------
    int
        Selected number of components (1-based).
    """
    method = _canonical_method(method)
    if method == "pls":
        raise ValueError("method='pls' uses cross-validation, not a PRESS matrix.")

    press = np.asarray(press, dtype=float)
    if press.ndim != 2 or press.shape[1] < 1:
        raise ValueError(f"press must be a 2-D (iterations, max_comps) array; got {press.shape}.")
    if press.shape[0] < 2:
        raise ValueError("At least 2 iterations are needed for the t-tests.")

    n_comp = press.shape[1]
    mean_press = press.mean(axis=0)
    lowest = int(mean_press.argmin()) + 1

    if method == "firstPlateau":
        for k in range(1, n_comp):
            if _welch_pvalue(press[:, k - 1], press[:, k]) > alpha:
                return k
        warnings.warn(
            "No PRESS plateau found; falling back to the lowest mean PRESS "
            f"({lowest} components). Consider a larger max_comps.",
            stacklevel=2,
        )
        return lowest

    # firstMin
    for k in range(1, lowest):
        if _welch_pvalue(press[:, k - 1], press[:, lowest - 1]) > alpha:
            return k
    return lowest


# ---------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------


def find_optimal_components(
    dataset: pd.DataFrame,
    target_col: str,
    *,
    method: str = "pls",
    spectra_cols: Optional[Iterable[str]] = None,
    spectra_prefix: str = "Wave_",
    max_comps: int = 20,
    iterations: int = 20,
    segments: int = 100,
    prop: float = 0.70,
    group_cols: Optional[Iterable[str]] = None,
    alpha: float = 0.05,
    random_state: Optional[int] = None,
    n_jobs: int = 1,
    verbose: bool = False,
) -> int:
    """
    Select the number of PLSR components for *target_col*.

    Parameters
    ----------
    dataset, target_col, spectra_cols, spectra_prefix :
        As in :func:`~spectratraitpy.permutation.pls_permutation`.
    method : {"pls", "firstPlateau", "firstMin"}, default "pls"
        Selection strategy (see module docstring).
    max_comps : int, default 20
        Largest component count considered.
    iterations, prop, group_cols, random_state, n_jobs :
        Permutation settings for ``"firstPlateau"`` / ``"firstMin"``;
        *group_cols* switches to stratified splits.
    segments : int, default 100
        Number of interleaved CV segments for ``"pls"`` (capped at the
        number of rows).
    alpha : float, default 0.05
        Significance level of the t-tests.
    verbose : bool, default False
        Print run banners and a progress bar.

    Returns
    -------
    int
        Selected number of components.
    """
    method = _canonical_method(method)

    if method == "pls":
        bands = resolve_spectra_columns(dataset, spectra_cols, spectra_prefix)
        validate_dataset(dataset, target_col, bands)
        if max_comps > len(bands):
            raise ValueError(
                f"max_comps={max_comps} exceeds the number of spectral bands ({len(bands)})."
            )
        X, y = extract_arrays(dataset, target_col, bands)
        table = cv_rmsep(X, y, max_comps, segments=segments)
        return _onesigma(table)

    res = pls_permutation_by_groups(
        dataset,
        target_col,
        group_cols=group_cols,
        spectra_cols=spectra_cols,
        spectra_prefix=spectra_prefix,
        max_comps=max_comps,
        iterations=iterations,
        prop=prop,
        random_state=random_state,
        n_jobs=n_jobs,
        verbose=verbose,
    )
    return select_components_from_press(res.press, method, alpha=alpha)


__all__ = [
    "cv_rmsep",
    "select_components_from_press",
    "find_optimal_components",
]
