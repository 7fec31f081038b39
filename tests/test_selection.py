# tests/test_selection.py
import numpy as np
import pandas as pd
import pytest

from spectratraitpy.selection import (
    _onesigma,
    cv_rmsep,
    find_optimal_components,
    select_components_from_press,
)


def _make_spectral_df(n_rows: int = 80, n_bands: int = 12, seed: int = 1) -> pd.DataFrame:
    """Two strong latent factors drive both the spectra and the trait."""
    rng = np.random.default_rng(seed)
    scores = rng.normal(size=(n_rows, 2))
    loadings = rng.normal(size=(2, n_bands))
    spectra = scores @ loadings + 0.02 * rng.normal(size=(n_rows, n_bands))
    trait = 5.0 + scores @ np.array([3.0, -2.0]) + 0.1 * rng.normal(size=n_rows)
    df = pd.DataFrame(spectra, columns=[f"Wave_{1000 + 10 * i}" for i in range(n_bands)])
    df["Nmass"] = trait
    df["Site"] = np.tile(["A", "B"], n_rows // 2)
    return df


@pytest.fixture
def spectral_df() -> pd.DataFrame:
    return _make_spectral_df()


# ----------------------------------------------------------------------
# PRESS-based rules
# ----------------------------------------------------------------------


def _press_matrix(levels, seed=0, n_iter=20, sd=1.0):
    """Columns share one noise draw, shifted by *levels*."""
    noise = np.random.default_rng(seed).normal(0.0, sd, size=n_iter)
    return np.column_stack([lvl + noise for lvl in levels])


def test_first_plateau_finds_first_flat_step():
    press = _press_matrix([100.0, 50.0, 20.0, 20.0, 20.0])
    assert select_components_from_press(press, "firstPlateau") == 3


def test_first_min_returns_minimum_when_all_earlier_differ():
    press = _press_matrix([100.0, 50.0, 20.0, 20.0, 20.0])
    assert select_components_from_press(press, "firstMin") == 3


def test_first_min_prefers_smaller_model_close_to_minimum():
    press = _press_matrix([100.0, 50.0, 20.5, 20.0, 30.0], sd=5.0)
    assert int(press.mean(axis=0).argmin()) + 1 == 4
    assert select_components_from_press(press, "firstMin") == 3


def test_first_min_with_minimum_at_one_component():
    press = _press_matrix([10.0, 20.0, 30.0])
    assert select_components_from_press(press, "firstMin") == 1


def test_first_plateau_without_plateau_warns_and_uses_minimum():
    press = _press_matrix([100.0, 80.0, 60.0], sd=1.0)
    with pytest.warns(UserWarning, match="plateau"):
        k = select_components_from_press(press, "firstPlateau")
    assert k == 3


def test_method_names_are_case_insensitive():
    press = _press_matrix([100.0, 50.0, 20.0, 20.0])
    assert select_components_from_press(press, "first_plateau") == 3
    assert select_components_from_press(press, "FIRSTMIN") == 3


def test_press_rules_reject_bad_input():
    with pytest.raises(ValueError):
        select_components_from_press(np.ones((1, 4)), "firstMin")
    with pytest.raises(ValueError):
        select_components_from_press(np.ones(4), "firstMin")
    with pytest.raises(ValueError):
        select_components_from_press(np.ones((5, 4)), "pls")
    with pytest.raises(ValueError, match="Unknown method"):
        select_components_from_press(np.ones((5, 4)), "lastMax")


# ----------------------------------------------------------------------
# Cross-validation
# ----------------------------------------------------------------------


def test_cv_rmsep_table(spectral_df):
    bands = [c for c in spectral_df.columns if c.startswith("Wave_")]
    X = spectral_df[bands].to_numpy()
    y = spectral_df["Nmass"].to_numpy()
    table = cv_rmsep(X, y, 5, segments=10)

    assert list(table.columns) == ["rmsep", "se"]
    assert table.index.tolist() == [0, 1, 2, 3, 4, 5]
    assert (table["se"] > 0).all()
    # two latent factors explain the trait far better than the mean
    assert table["rmsep"].iloc[2] < 0.2 * table["rmsep"].iloc[0]


def test_cv_rmsep_rejects_folds_too_small():
    X = np.random.default_rng(0).normal(size=(6, 8))
    y = np.arange(6, dtype=float)
    with pytest.raises(ValueError):
        cv_rmsep(X, y, 5, segments=3)


def _cv_table(rmsep, se):
    return pd.DataFrame(
        {"rmsep": rmsep, "se": se},
        index=pd.Index(np.arange(len(rmsep)), name="ncomp"),
    )


def test_onesigma_excludes_rmsep_equal_to_cutoff():
    # cutoff = 2.0 + 0.5; ncomp=1 sits exactly on it and is skipped
    table = _cv_table([4.0, 2.5, 2.25, 2.0], [0.1, 0.1, 0.1, 0.5])
    assert _onesigma(table) == 2


def test_onesigma_zero_se_returns_minimum():
    table = _cv_table([3.0, 1.5, 1.0, 1.0], [0.0, 0.0, 0.0, 0.0])
    assert _onesigma(table) == 2


def test_onesigma_never_returns_intercept_only_model():
    table = _cv_table([1.0, 1.5, 2.0], [0.1, 0.1, 0.1])
    assert _onesigma(table) == 1


# ----------------------------------------------------------------------
# Public entry point
# ----------------------------------------------------------------------


def test_find_optimal_components_pls_method(spectral_df):
    k = find_optimal_components(spectral_df, "Nmass", method="pls", max_comps=6, segments=20)
    assert isinstance(k, int)
    assert 2 <= k <= 6


def test_find_optimal_components_permutation_methods(spectral_df):
    for method in ("firstPlateau", "firstMin"):
        kw = dict(method=method, max_comps=6, iterations=10, prop=0.7, random_state=11)
        k1 = find_optimal_components(spectral_df, "Nmass", **kw)
        k2 = find_optimal_components(spectral_df, "Nmass", **kw)
        assert k1 == k2
        assert 1 <= k1 <= 6


def test_find_optimal_components_stratified(spectral_df):
    k = find_optimal_components(
        spectral_df,
        "Nmass",
        method="firstMin",
        group_cols=["Site"],
        max_comps=5,
        iterations=8,
        random_state=3,
    )
    assert 1 <= k <= 5


def test_find_optimal_components_rejects_unknown_method(spectral_df):
    with pytest.raises(ValueError, match="Unknown method"):
        find_optimal_components(spectral_df, "Nmass", method="aic")


def test_find_optimal_components_rejects_too_many_components(spectral_df):
    with pytest.raises(ValueError):
        find_optimal_components(spectral_df, "Nmass", method="pls", max_comps=13)
