# SPDX-License-Identifier: MIT
"""
PLSR permutation analysis
=========================

Repeated random train/validation splits of a spectra–trait dataset, each
scored across the whole PLSR component sweep. The outputs are the raw
material for choosing the number of components (see
:mod:`spectratraitpy.selection`) and for jackknife uncertainty estimates
(see :mod:`spectratraitpy.uncertainty`):

- a PRESS matrix, ``iterations x max_comps``;
- a coefficient array, ``(n_bands + 1) x iterations x max_comps`` with the
  intercept in row 0.

Entry points
------------
- :func:`pls_permutation` — uniform random splits.
- :func:`pls_permutation_by_groups` — splits stratified by one or more
  grouping columns (species, site, growth form, ...).

Both share one loop; only the partitioner differs
(:mod:`spectratraitpy.partition`).

Reproducibility
---------------
``random_state`` seeds a :class:`numpy.random.SeedSequence` that spawns one
independent child seed per iteration *before* any work is dispatched. The
splits therefore depend only on the seed and the iteration index, and are
identical for sequential (``n_jobs=1``) and parallel runs.

Example
-------
    >>> from spectratraitpy import pls_permutation_by_groups
    >>> res = pls_permutation_by_groups(
    ...     cal_data,
    ...     "LMA_g_m2",
    ...     group_cols=["Species_Code"],
    ...     max_comps=15,
    ...     iterations=50,
    ...     prop=0.7,
    ...     random_state=7529075,
    ... )
    >>> res.press.shape
    (50, 15)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed, dump, load
from tqdm.auto import tqdm

from .data import extract_arrays, resolve_spectra_columns, validate_dataset
from .metrics import press_by_component
from .partition import make_partitioner
from .plsr import fit_plsr

ProgressCallback = Callable[[int, int], None]


# ---------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class PermutationResult:
    """Output of a permutation run.

    Attributes
    ----------
    press :
        PRESS per iteration (rows) and component count (columns).
    coef_array :
        Coefficients, shape ``(n_bands + 1, iterations, max_comps)``;
        ``coef_array[0]`` holds intercepts.
    train_indices :
        Positional training rows of every iteration. Validation rows are
        the complement (see :meth:`validation_indices`).
    target_col, spectra_cols, group_cols :
        Columns used by the run.
    max_comps, iterations, prop :
        Run settings.
    random_state :
        Seed entropy of the run. Passing it back as ``random_state``
        reproduces the run exactly, also when the original call used
        ``random_state=None``.
    n_rows :
        Number of dataset rows.
    """

    press: np.ndarray
    coef_array: np.ndarray
    train_indices: Tuple[np.ndarray, ...]
    target_col: str
    spectra_cols: Tuple[str, ...]
    group_cols: Tuple[str, ...]
    max_comps: int
    iterations: int
    prop: float
    random_state: int
    n_rows: int

    @property
    def n_bands(self) -> int:
        return len(self.spectra_cols)

    def mean_press(self) -> np.ndarray:
        """Mean PRESS per component count (length ``max_comps``)."""
        return self.press.mean(axis=0)

    def press_frame(self) -> pd.DataFrame:
        """Long table ``iteration | ncomp | press`` (1-based labels)."""
        it, comp = np.meshgrid(
            np.arange(1, self.iterations + 1),
            np.arange(1, self.max_comps + 1),
            indexing="ij",
        )
        return pd.DataFrame(
            {
                "iteration": it.ravel(),
                "ncomp": comp.ravel(),
                "press": self.press.ravel(),
            }
        )

    def coefficients(self, ncomp: int) -> pd.DataFrame:
        """
        Jackknife coefficient table for the *ncomp*-component model.

        Rows are ``"Intercept"`` followed by the band names, columns are
        iterations (``"iter_1"``, ``"iter_2"``, ...).
        """
        ncomp = int(ncomp)
        if not 1 <= ncomp <= self.max_comps:
            raise ValueError(f"ncomp must be in [1, {self.max_comps}]; got {ncomp}.")
        return pd.DataFrame(
            self.coef_array[:, :, ncomp - 1],
            index=["Intercept", *self.spectra_cols],
            columns=[f"iter_{i}" for i in range(1, self.iterations + 1)],
        )

    def validation_indices(self, iteration: int) -> np.ndarray:
        """Positional validation rows of *iteration* (0-based)."""
        mask = np.ones(self.n_rows, dtype=bool)
        mask[self.train_indices[iteration]] = False
        return np.flatnonzero(mask)

    def save(self, path: str) -> str:
        """Persist the result with :func:`joblib.dump` and return *path*."""
        dump(self, path)
        return path

    @staticmethod
    def load(path: str) -> "PermutationResult":
        """Load a result written by :meth:`save`."""
        obj = load(path)
        if not isinstance(obj, PermutationResult):
            raise TypeError(f"{path} does not contain a PermutationResult.")
        return obj


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------


def _seed_sequence(random_state) -> np.random.SeedSequence:
    if random_state is not None and (
        isinstance(random_state, bool) or not isinstance(random_state, (int, np.integer))
    ):
        raise TypeError(
            f"random_state must be an int or None; got {type(random_state).__name__}."
        )
    return np.random.SeedSequence(None if random_state is None else int(random_state))


def _check_positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be an int; got {type(value).__name__}.")
    if value < 1:
        raise ValueError(f"{name} must be >= 1; got {value}.")
    return int(value)


def _run_iteration(
    seed: np.random.SeedSequence,
    X: np.ndarray,
    y: np.ndarray,
    partitioner,
    max_comps: int,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """One split, one fit, PRESS and coefficients for every component count."""
    rng = np.random.default_rng(seed)
    part = partitioner.split(rng)

    fit = fit_plsr(X[part.train], y[part.train], max_comps)
    pred_val = fit.predict(X[part.validation])
    press = press_by_component(y[part.validation], pred_val)
    return part.train, press, fit.coefficients()


def _permutation_run(
    dataset: pd.DataFrame,
    target_col: str,
    *,
    spectra_cols: Optional[Iterable[str]],
    spectra_prefix: str,
    group_cols: Optional[Iterable[str]],
    max_comps: int,
    iterations: int,
    prop: float,
    random_state: Optional[int],
    n_jobs: int,
    verbose: bool,
    progress: Optional[ProgressCallback],
) -> PermutationResult:
    max_comps = _check_positive_int("max_comps", max_comps)
    iterations = _check_positive_int("iterations", iterations)
    if progress is not None and not callable(progress):
        raise TypeError("progress must be callable as progress(done, total).")

    if isinstance(group_cols, str):
        group_cols = [group_cols]
    groups: List[str] = [g for g in (group_cols or []) if g is not None]

    if not isinstance(dataset, pd.DataFrame):
        raise TypeError(f"dataset must be a pandas DataFrame, got {type(dataset).__name__}.")
    bands = resolve_spectra_columns(dataset, spectra_cols, spectra_prefix)
    validate_dataset(dataset, target_col, bands, groups)
    if max_comps > len(bands):
        raise ValueError(
            f"max_comps={max_comps} exceeds the number of spectral bands ({len(bands)})."
        )

    partitioner = make_partitioner(dataset, prop, groups)
    if partitioner.n_train <= max_comps:
        raise ValueError(
            f"Training draws of {partitioner.n_train} rows cannot support "
            f"max_comps={max_comps}; increase prop or reduce max_comps."
        )

    X, y = extract_arrays(dataset, target_col, bands)
    root = _seed_sequence(random_state)
    seeds = root.spawn(iterations)

    if verbose:
        tqdm.write("*** Running permutation test. Please hang tight, this can take a while ***")
        tqdm.write(
            f"Max Components: {max_comps}  Iterations: {iterations}  "
            f"Data Proportion (percent): {prop * 100:g}  "
            f"Sampling: {partitioner!r}"
        )

    press_out = np.empty((iterations, max_comps), dtype=float)
    coefs = np.zeros((len(bands) + 1, iterations, max_comps), dtype=float)
    train_indices: List[np.ndarray] = []

    tasks = (
        delayed(_run_iteration)(seed, X, y, partitioner, max_comps) for seed in seeds
    )
    results = Parallel(n_jobs=n_jobs, return_as="generator")(tasks)

    with tqdm(
        total=iterations,
        desc="PLSR permutations",
        unit="it",
        disable=not verbose,
    ) as bar:
        # the generator yields in submission order, so i is the iteration index
        for i, (train, press, coef) in enumerate(results):
            press_out[i, :] = press
            coefs[:, i, :] = coef
            train_indices.append(train)
            bar.update(1)
            if progress is not None:
                progress(i + 1, iterations)

    if verbose:
        tqdm.write("*** Providing PRESS and coefficient array output ***")

    return PermutationResult(
        press=press_out,
        coef_array=coefs,
        train_indices=tuple(train_indices),
        target_col=target_col,
        spectra_cols=tuple(bands),
        group_cols=tuple(groups),
        max_comps=max_comps,
        iterations=iterations,
        prop=float(prop),
        random_state=int(root.entropy),
        n_rows=len(dataset),
    )


# ---------------------------------------------------------------------
# Public runners
# ---------------------------------------------------------------------


def pls_permutation(
    dataset: pd.DataFrame,
    target_col: str,
    *,
    spectra_cols: Optional[Iterable[str]] = None,
    spectra_prefix: str = "Wave_",
    max_comps: int = 20,
    iterations: int = 20,
    prop: float = 0.70,
    random_state: Optional[int] = None,
    n_jobs: int = 1,
    verbose: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> PermutationResult:
    """
    PLSR permutation analysis with uniform random splits.

    In every iteration ``floor(prop * N)`` rows are drawn without
    replacement for training and the remaining rows are used for
    validation. One PLSR model with ``max_comps`` components is fitted on
    the training rows; PRESS on the validation rows and the coefficients
    are recorded for every component count ``1 .. max_comps``.

    Parameters
    ----------
    dataset : DataFrame
        Calibration table with the target and the spectral bands.
    target_col : str
        Name of the trait column (the PLSR response).
    spectra_cols : iterable of str, optional
        Band columns. Defaults to every column starting with
        *spectra_prefix*.
    spectra_prefix : str, default "Wave_"
        Prefix identifying band columns when *spectra_cols* is None.
    max_comps : int, default 20
        Number of components of every fit.
    iterations : int, default 20
        Number of random splits.
    prop : float, default 0.70
        Training fraction, strictly between 0 and 1.
    random_state : int, optional
        Seed for the splits. ``None`` draws fresh entropy, recorded on the
        result.
    n_jobs : int, default 1
        Number of joblib workers (``-1`` for all cores).
    verbose : bool, default False
        Print run banners and a progress bar.
    progress : callable, optional
        Called as ``progress(done, total)`` after each iteration.

    Returns
    -------
    PermutationResult

    Raises
    ------
    ValueError
        Invalid settings or dataset (checked before any iteration).
    PLSRFitError
        A split produced a degenerate fit; the whole run is aborted.
    """
    return _permutation_run(
        dataset,
        target_col,
        spectra_cols=spectra_cols,
        spectra_prefix=spectra_prefix,
        group_cols=None,
        max_comps=max_comps,
        iterations=iterations,
        prop=prop,
        random_state=random_state,
        n_jobs=n_jobs,
        verbose=verbose,
        progress=progress,
    )


def pls_permutation_by_groups(
    dataset: pd.DataFrame,
    target_col: str,
    *,
    group_cols: Optional[Iterable[str]] = None,
    spectra_cols: Optional[Iterable[str]] = None,
    spectra_prefix: str = "Wave_",
    max_comps: int = 20,
    iterations: int = 20,
    prop: float = 0.70,
    random_state: Optional[int] = None,
    n_jobs: int = 1,
    verbose: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> PermutationResult:
    """
    PLSR permutation analysis with splits stratified by *group_cols*.

    Rows are grouped by the unique combinations of *group_cols*; every
    iteration draws ``floor(prop * group_size)`` training rows inside each
    group. A group too small to contribute at least one training row is
    rejected up front. Without *group_cols* this is
    :func:`pls_permutation`.

    See :func:`pls_permutation` for the remaining parameters, return value
    and errors.
    """
    return _permutation_run(
        dataset,
        target_col,
        spectra_cols=spectra_cols,
        spectra_prefix=spectra_prefix,
        group_cols=group_cols,
        max_comps=max_comps,
        iterations=iterations,
        prop=prop,
        random_state=random_state,
        n_jobs=n_jobs,
        verbose=verbose,
        progress=progress,
    )


__all__ = [
    "PermutationResult",
    "pls_permutation",
    "pls_permutation_by_groups",
]
