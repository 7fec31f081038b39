# tests/test_partition.py
import numpy as np
import pandas as pd
import pytest

from spectratraitpy.partition import (
    RandomPartitioner,
    StratifiedPartitioner,
    group_row_indices,
    make_partitioner,
)


def _assert_exhaustive(part, n_rows):
    assert np.intersect1d(part.train, part.validation).size == 0
    assert np.array_equal(
        np.sort(np.concatenate([part.train, part.validation])),
        np.arange(n_rows),
    )


# ----------------------------------------------------------------------
# Uniform splits
# ----------------------------------------------------------------------


def test_random_partitioner_sizes_and_complement():
    p = RandomPartitioner(100, 0.7)
    part = p.split(np.random.default_rng(1))
    assert p.n_train == 70
    assert part.train.size == 70
    assert part.validation.size == 30
    _assert_exhaustive(part, 100)


def test_random_partitioner_floors_the_training_size():
    p = RandomPartitioner(11, 0.5)
    assert p.n_train == 5
    assert p.split(np.random.default_rng(0)).validation.size == 6


def test_random_partitioner_is_reproducible_for_a_seed():
    p = RandomPartitioner(50, 0.6)
    a = p.split(np.random.default_rng(42))
    b = p.split(np.random.default_rng(42))
    c = p.split(np.random.default_rng(43))
    assert np.array_equal(a.train, b.train)
    assert not np.array_equal(a.train, c.train)


@pytest.mark.parametrize("prop", [0.0, 1.0, -0.2, 1.5])
def test_random_partitioner_rejects_prop_outside_unit_interval(prop):
    with pytest.raises(ValueError):
        RandomPartitioner(100, prop)


def test_random_partitioner_rejects_empty_training_draw():
    with pytest.raises(ValueError, match="no training rows"):
        RandomPartitioner(3, 0.2)


# ----------------------------------------------------------------------
# Stratified splits
# ----------------------------------------------------------------------


def test_stratified_partitioner_draws_within_each_group():
    groups = {"a": np.arange(0, 50), "b": np.arange(50, 100)}
    p = StratifiedPartitioner(groups, 0.7)
    part = p.split(np.random.default_rng(3))

    assert p.n_train == 70
    assert np.sum(part.train < 50) == 35
    assert np.sum(part.train >= 50) == 35
    _assert_exhaustive(part, 100)


def test_stratified_partitioner_floors_per_group():
    groups = {"x": np.arange(0, 7), "y": np.arange(7, 20)}
    p = StratifiedPartitioner(groups, 0.5)
    # floor(3.5) + floor(6.5)
    assert p.group_sizes == {"x": 3, "y": 6}
    assert p.n_train == 9


def test_stratified_partitioner_rejects_group_without_training_rows():
    groups = {"big": np.arange(0, 50), "tiny": np.array([50])}
    with pytest.raises(ValueError, match="tiny"):
        StratifiedPartitioner(groups, 0.7)


def test_stratified_partitioner_rejects_overlapping_groups():
    groups = {"a": np.arange(0, 6), "b": np.arange(4, 10)}
    with pytest.raises(ValueError):
        StratifiedPartitioner(groups, 0.5)


def test_single_group_matches_uniform_counts():
    strat = StratifiedPartitioner({"all": np.arange(100)}, 0.7)
    unif = RandomPartitioner(100, 0.7)
    assert strat.n_train == unif.n_train == 70


# ----------------------------------------------------------------------
# Building from a DataFrame
# ----------------------------------------------------------------------


def test_group_row_indices_are_positional():
    df = pd.DataFrame(
        {"species": ["A", "B", "A", "B", "C"], "site": [1, 1, 2, 1, 1]},
        index=[10, 20, 30, 40, 50],
    )
    one = group_row_indices(df, "species")
    assert {k: v.tolist() for k, v in one.items()} == {"A": [0, 2], "B": [1, 3], "C": [4]}

    two = group_row_indices(df, ["species", "site"])
    assert len(two) == 4
    assert two[("B", 1)].tolist() == [1, 3]


def test_group_row_indices_keeps_missing_labels_as_a_group():
    df = pd.DataFrame({"species": ["A", None, "A", None]})
    groups = group_row_indices(df, ["species"])
    assert sum(v.size for v in groups.values()) == 4
    assert len(groups) == 2


def test_make_partitioner_falls_back_to_uniform_without_groups():
    df = pd.DataFrame({"g": ["a"] * 10})
    assert isinstance(make_partitioner(df, 0.5), RandomPartitioner)
    assert isinstance(make_partitioner(df, 0.5, []), RandomPartitioner)
    assert isinstance(make_partitioner(df, 0.5, ["g"]), StratifiedPartitioner)


def test_make_partitioner_unknown_group_column():
    df = pd.DataFrame({"g": ["a"] * 10})
    with pytest.raises(ValueError, match="not found"):
        make_partitioner(df, 0.5, ["site"])
