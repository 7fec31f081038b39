# SPDX-License-Identifier: MIT
"""
Train/validation partitioning for permutation runs.

Every permutation iteration asks a *partitioner* for one random split of
the dataset rows. Two partitioners share the same contract:

- :class:`RandomPartitioner` draws ``floor(prop * n_rows)`` rows uniformly
  without replacement.
- :class:`StratifiedPartitioner` draws ``floor(prop * group_size)`` rows
  without replacement inside every group and concatenates the draws, so
  each group keeps its relative weight in both training and validation.

The validation set is always the complement of the training set. All
indices are positional (``0 .. n_rows - 1``), never DataFrame labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Mapping, Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Partition:
    """A single train/validation split.

    Attributes
    ----------
    train, validation :
        Sorted positional row indices; disjoint, and together they cover
        every row of the dataset.
    """

    train: np.ndarray
    validation: np.ndarray


def _check_prop(prop: float) -> float:
    prop = float(prop)
    if not 0.0 < prop < 1.0:
        raise ValueError(f"prop must lie strictly between 0 and 1; got {prop}.")
    return prop


def _complement(train: np.ndarray, n_rows: int) -> np.ndarray:
    mask = np.ones(n_rows, dtype=bool)
    mask[train] = False
    return np.flatnonzero(mask)


class RandomPartitioner:
    """Uniform random split of ``n_rows`` rows."""

    def __init__(self, n_rows: int, prop: float):
        self.n_rows = int(n_rows)
        self.prop = _check_prop(prop)
        self.n_train = int(np.floor(self.prop * self.n_rows))

        if self.n_train == 0:
            raise ValueError(
                f"prop={self.prop} leaves no training rows out of {self.n_rows}."
            )
        if self.n_train >= self.n_rows:
            raise ValueError(
                f"prop={self.prop} leaves no validation rows out of {self.n_rows}."
            )

    def split(self, rng: np.random.Generator) -> Partition:
        train = np.sort(rng.choice(self.n_rows, size=self.n_train, replace=False))
        return Partition(train=train, validation=_complement(train, self.n_rows))

    def __repr__(self) -> str:
        return f"RandomPartitioner(n_rows={self.n_rows}, prop={self.prop})"


class StratifiedPartitioner:
    """
    Split drawn independently inside every group.

    Parameters
    ----------
    groups :
        Mapping ``group label -> positional row indices``. Groups must not
        overlap and together must cover ``0 .. n_rows - 1``.
    prop :
        Training fraction per group; ``floor(prop * group_size)`` rows are
        drawn from each group.
    """

    def __init__(self, groups: Mapping[Hashable, Iterable[int]], prop: float):
        self.prop = _check_prop(prop)
        self.groups: Dict[Hashable, np.ndarray] = {
            label: np.asarray(idx, dtype=np.intp) for label, idx in groups.items()
        }
        if not self.groups:
            raise ValueError("At least one group is required for stratified sampling.")

        self.n_rows = int(sum(idx.size for idx in self.groups.values()))
        if self.n_rows == 0:
            raise ValueError("Groups contain no rows.")
        covered = np.concatenate(list(self.groups.values()))
        if np.unique(covered).size != self.n_rows or (
            covered.min() != 0 or covered.max() != self.n_rows - 1
        ):
            raise ValueError("Groups must partition the rows 0 .. n_rows - 1 exactly.")

        self.group_sizes: Dict[Hashable, int] = {
            label: int(np.floor(self.prop * idx.size))
            for label, idx in self.groups.items()
        }
        empty = [label for label, k in self.group_sizes.items() if k == 0]
        if empty:
            raise ValueError(
                f"prop={self.prop} draws no training rows from group(s) "
                f"{empty[:10]}; increase prop or merge small groups."
            )
        self.n_train = int(sum(self.group_sizes.values()))

    def split(self, rng: np.random.Generator) -> Partition:
        draws = [
            rng.choice(idx, size=self.group_sizes[label], replace=False)
            for label, idx in self.groups.items()
        ]
        train = np.sort(np.concatenate(draws))
        return Partition(train=train, validation=_complement(train, self.n_rows))

    def __repr__(self) -> str:
        return (
            f"StratifiedPartitioner(n_groups={len(self.groups)}, "
            f"n_rows={self.n_rows}, prop={self.prop})"
        )


def group_row_indices(df: pd.DataFrame, group_cols) -> Dict[Hashable, np.ndarray]:
    """
    Positional row indices for every unique combination of *group_cols*.

    Missing values form their own group (labelled ``"<NA>"``) rather than
    being dropped.
    """
    if isinstance(group_cols, str):
        group_cols = [group_cols]
    keys = list(group_cols)
    labels = df[keys].reset_index(drop=True).astype(object)
    labels = labels.where(labels.notna(), "<NA>")
    by = keys[0] if len(keys) == 1 else keys
    grouped = labels.groupby(by, sort=False)
    return {label: np.asarray(idx, dtype=np.intp) for label, idx in grouped.indices.items()}


def make_partitioner(
    df: pd.DataFrame,
    prop: float,
    group_cols: Optional[Iterable[str]] = None,
):
    """
    Build the partitioner for *df*: stratified when *group_cols* is
    non-empty, uniform otherwise.
    """
    if isinstance(group_cols, str):
        group_cols = [group_cols]
    group_cols = [g for g in (group_cols or []) if g is not None]
    if not group_cols:
        return RandomPartitioner(len(df), prop)

    missing = [g for g in group_cols if g not in df.columns]
    if missing:
        raise ValueError(f"Grouping columns not found in dataset: {missing}")
    return StratifiedPartitioner(group_row_indices(df, group_cols), prop)


__all__ = [
    "Partition",
    "RandomPartitioner",
    "StratifiedPartitioner",
    "group_row_indices",
    "make_partitioner",
]
