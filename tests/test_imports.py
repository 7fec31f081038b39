import importlib


def test_import_package():
    pkg = importlib.import_module("spectratraitpy")
    assert hasattr(pkg, "__version__")


def test_public_api():
    pkg = importlib.import_module("spectratraitpy")
    for name in ("pls_permutation", "pls_permutation_by_groups", "find_optimal_components"):
        assert callable(getattr(pkg, name))
    assert set(pkg.__all__) >= {"PermutationResult", "prediction_intervals"}
