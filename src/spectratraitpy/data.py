# SPDX-License-Identifier: MIT
"""
Dataset helpers: locate the spectral block and the target in a table.

A PLSR dataset is a wide :class:`pandas.DataFrame` with one row per leaf
(or canopy) observation::

    Species | Site | LMA_g_m2 | Wave_500 | Wave_501 | ... | Wave_2400

The target is a single numeric column. The spectral block is either given
explicitly or taken as every column starting with a common prefix
(``"Wave_"`` by default), kept in table order.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype


def _as_list(cols) -> List[str]:
    if cols is None:
        return []
    if isinstance(cols, str):
        return [cols]
    return [c for c in cols if c is not None]


def resolve_spectra_columns(
    df: pd.DataFrame,
    spectra_cols: Optional[Iterable[str]] = None,
    spectra_prefix: str = "Wave_",
) -> List[str]:
    """
    Return the ordered list of spectral band columns.

    Parameters
    ----------
    df : DataFrame
        Input table.
    spectra_cols : iterable of str, optional
        Explicit band columns. Every name must exist in *df*.
    spectra_prefix : str, default "Wave_"
        Used only when *spectra_cols* is None: every column whose name
        starts with this prefix is a band.

    Raises
    ------
    ValueError
        If named columns are missing or no band column is found.
    """
    if spectra_cols is not None:
        cols = _as_list(spectra_cols)
        missing = [c for c in cols if c not in df.columns]
        if missing:
            raise ValueError(
                f"Spectral columns not found in dataset: {missing[:10]}"
            )
    else:
        cols = [c for c in df.columns if str(c).startswith(spectra_prefix)]

    if not cols:
        raise ValueError(
            f"No spectral columns found (prefix={spectra_prefix!r}). "
            f"Available (first 10): {list(df.columns)[:10]}"
        )
    return cols


def validate_dataset(
    df: pd.DataFrame,
    target_col: str,
    spectra_cols: Sequence[str],
    group_cols: Optional[Sequence[str]] = None,
) -> None:
    """
    Reject tables that cannot feed a PLSR permutation run.

    Checks that the table has at least two rows, that the target, band and
    grouping columns exist, and that target and bands are numeric and
    finite (PLSR cannot handle gaps; clean the table first, e.g. with
    ``df.dropna(subset=[target_col, *spectra_cols])``).
    """
    if not isinstance(df, pd.DataFrame):
        raise TypeError(f"dataset must be a pandas DataFrame, got {type(df).__name__}.")
    if len(df) < 2:
        raise ValueError(f"Dataset must have more than one row; got {len(df)}.")

    if target_col not in df.columns:
        raise ValueError(f"Target column {target_col!r} not found in dataset.")
    if target_col in spectra_cols:
        raise ValueError(f"Target column {target_col!r} is also listed as a band.")

    missing_groups = [g for g in _as_list(group_cols) if g not in df.columns]
    if missing_groups:
        raise ValueError(f"Grouping columns not found in dataset: {missing_groups}")

    for col in [target_col, *spectra_cols]:
        if not is_numeric_dtype(df[col]):
            raise ValueError(f"Column {col!r} must be numeric; got {df[col].dtype}.")

    sub = df[[target_col, *spectra_cols]]
    finite = np.isfinite(sub.to_numpy(dtype=float))
    if not finite.all():
        bad = sub.columns[~finite.all(axis=0)].tolist()
        raise ValueError(
            "Target and spectra must be finite (no NaN/inf). "
            f"Columns with non-finite values (first 10): {bad[:10]}"
        )


def extract_arrays(
    df: pd.DataFrame,
    target_col: str,
    spectra_cols: Sequence[str],
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(X, y)`` as dense float64 arrays (bands, target)."""
    X = np.asarray(df[list(spectra_cols)].to_numpy(copy=False), dtype=float)
    y = np.asarray(df[target_col].to_numpy(copy=False), dtype=float)
    return X, y


__all__ = [
    "resolve_spectra_columns",
    "validate_dataset",
    "extract_arrays",
]
