# SPDX-License-Identifier: MIT
"""
PLSR fitting for the component sweep.

One :class:`sklearn.cross_decomposition.PLSRegression` model is fitted at the
maximum component count. Because NIPALS extracts components sequentially,
the ``k``-component model is the truncation of that fit to its first ``k``
rotations and loadings, so every smaller model comes out of the same fit.

Spectra are centred but not scaled, which is the usual choice for
reflectance data where all bands share one unit.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

import numpy as np
from sklearn.cross_decomposition import PLSRegression


class PLSRFitError(ValueError):
    """Raised when a PLSR fit on a partition is degenerate."""


@dataclass(frozen=True)
class PLSRFit:
    """Coefficients of the 1 .. ``max_comps`` component models of one fit.

    Attributes
    ----------
    intercepts :
        Shape ``(max_comps,)``.
    slopes :
        Shape ``(n_bands, max_comps)``; column ``k-1`` belongs to the
        ``k``-component model.
    """

    intercepts: np.ndarray
    slopes: np.ndarray

    @property
    def max_comps(self) -> int:
        return int(self.slopes.shape[1])

    def coefficients(self) -> np.ndarray:
        """Intercept-first coefficient matrix, shape ``(n_bands + 1, max_comps)``."""
        return np.vstack([self.intercepts[None, :], self.slopes])

    def predict(self, X) -> np.ndarray:
        """Predictions for every component count, shape ``(n_rows, max_comps)``."""
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[1] != self.slopes.shape[0]:
            raise ValueError(
                f"X must have shape (n_rows, {self.slopes.shape[0]}); got {X.shape}."
            )
        return X @ self.slopes + self.intercepts[None, :]


def fit_plsr(
    X,
    y,
    max_comps: int,
    *,
    max_iter: int = 500,
    tol: float = 1e-6,
) -> PLSRFit:
    """
    Fit a single-target PLSR model and return the whole component sweep.

    Parameters
    ----------
    X : array-like, shape (n_rows, n_bands)
        Spectra of the training rows.
    y : array-like, shape (n_rows,)
        Target values.
    max_comps : int
        Number of latent components of the fit. Must not exceed the number
        of bands and must be smaller than the number of rows.
    max_iter, tol :
        Forwarded to :class:`~sklearn.cross_decomposition.PLSRegression`.

    Raises
    ------
    PLSRFitError
        If scikit-learn rejects the fit or the resulting coefficients are
        not finite (constant target, rank-deficient spectra, ...).
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    n_rows, n_bands = X.shape
    max_comps = int(max_comps)

    if max_comps < 1:
        raise ValueError(f"max_comps must be >= 1; got {max_comps}.")
    if max_comps > n_bands:
        raise PLSRFitError(
            f"max_comps={max_comps} exceeds the number of bands ({n_bands})."
        )
    if n_rows <= max_comps:
        raise PLSRFitError(
            f"{n_rows} training rows cannot support {max_comps} components."
        )
    if np.ptp(y) == 0.0:
        raise PLSRFitError("Target is constant on the training rows.")

    model = PLSRegression(n_components=max_comps, scale=False, max_iter=max_iter, tol=tol)
    with warnings.catch_warnings():
        # sklearn warns and stops early when the target residual vanishes
        warnings.filterwarnings("error", message=".*residual is constant.*")
        try:
            model.fit(X, y.reshape(-1, 1))
        except (ValueError, UserWarning, np.linalg.LinAlgError) as exc:
            raise PLSRFitError(f"PLSR fit failed: {exc}") from exc

    # B_k = R[:, :k] @ q[:k]; with scale=False the model only centres X and y
    contrib = model.x_rotations_ * model.y_loadings_[0][None, :]
    slopes = np.cumsum(contrib, axis=1)
    intercepts = y.mean() - X.mean(axis=0) @ slopes

    if not (np.isfinite(slopes).all() and np.isfinite(intercepts).all()):
        raise PLSRFitError("PLSR fit produced non-finite coefficients.")
    return PLSRFit(intercepts=intercepts, slopes=slopes)


__all__ = [
    "PLSRFit",
    "PLSRFitError",
    "fit_plsr",
]
