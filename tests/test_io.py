"""
test_io.py - Tests for Result Serialization and Deserialization

Tests cover:
- NPZ and JSON round trips for FactorResult and TSPCAResult
- Zero-factor results
- Error handling
"""

import pytest
import numpy as np
import json

from hdtsa import (
    FactorResult,
    TSPCAResult,
    factors,
    pca_ts,
)
from hdtsa.io import (
    save_result,
    load_result,
    ResultFormat,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def factor_result(small_series):
    """Factor estimate on the small AR(1) series."""
    return factors(small_series, lag_k=2)


@pytest.fixture
def tspca_result():
    """Hand-built segmentation result with uneven groups."""
    rng = np.random.default_rng(0)
    return TSPCAResult(
        B=rng.standard_normal((4, 4)),
        X=rng.standard_normal((20, 4)),
        no_groups=3,
        no_of_members=(2, 1, 1),
        groups=((0, 3), (1,), (2,)),
        method="Maximum cross correlation method",
    )


def assert_factor_equal(a: FactorResult, b: FactorResult):
    assert a.factor_num == b.factor_num
    assert a.lag_k == b.lag_k
    assert a.method == b.method
    assert np.allclose(a.loading_mat, b.loading_mat)
    assert np.allclose(a.X, b.X)
    assert np.allclose(a.eigenvalues, b.eigenvalues)


def assert_tspca_equal(a: TSPCAResult, b: TSPCAResult):
    assert a.groups == b.groups
    assert a.no_of_members == b.no_of_members
    assert a.no_groups == b.no_groups
    assert a.method == b.method
    assert np.allclose(a.B, b.B)
    assert np.allclose(a.X, b.X)


# =============================================================================
# Round trips
# =============================================================================

class TestNPZ:
    """NPZ format."""

    def test_factor_round_trip(self, factor_result, tmp_path):
        """FactorResult survives save/load."""
        path = tmp_path / "factors.npz"
        save_result(factor_result, path)
        loaded = load_result(path)

        assert isinstance(loaded, FactorResult)
        assert_factor_equal(factor_result, loaded)

    def test_tspca_round_trip(self, tspca_result, tmp_path):
        """TSPCAResult survives save/load, groups included."""
        path = tmp_path / "seg.npz"
        save_result(tspca_result, path, ResultFormat.NPZ)
        loaded = load_result(path)

        assert isinstance(loaded, TSPCAResult)
        assert_tspca_equal(tspca_result, loaded)

    def test_zero_factors(self, tmp_path):
        """A result with r=0 keeps its (p, 0) and (n, 0) shapes."""
        res = factors(np.ones((30, 4)), lag_k=1)
        path = tmp_path / "empty.npz"
        save_result(res, path)
        loaded = load_result(path)

        assert loaded.factor_num == 0
        assert loaded.loading_mat.shape == (4, 0)
        assert loaded.X.shape == (30, 0)


class TestJSON:
    """JSON format."""

    def test_factor_round_trip(self, factor_result, tmp_path):
        """FactorResult survives save/load."""
        path = tmp_path / "factors.json"
        save_result(factor_result, path, ResultFormat.JSON)
        assert_factor_equal(factor_result, load_result(path))

    def test_tspca_round_trip(self, tspca_result, tmp_path):
        """TSPCAResult survives save/load."""
        path = tmp_path / "seg.json"
        save_result(tspca_result, path, format=ResultFormat.JSON)
        assert_tspca_equal(tspca_result, load_result(path))

    def test_human_readable(self, tspca_result, tmp_path):
        """The JSON file lists the groups."""
        path = tmp_path / "seg.json"
        save_result(tspca_result, path, format=ResultFormat.JSON)

        with open(path) as f:
            data = json.load(f)
        assert data["kind"] == "tspca"
        assert data["groups"] == [[0, 3], [1], [2]]

    def test_end_to_end(self, segmented_dataset, tmp_path):
        """A real pca_ts result round-trips."""
        Y, _, _ = segmented_dataset
        res = pca_ts(Y, lag_k=3, permutation="fdr", beta=1e-10)
        path = tmp_path / "real.json"
        save_result(res, path, format=ResultFormat.JSON)
        assert_tspca_equal(res, load_result(path))


# =============================================================================
# Errors
# =============================================================================

class TestErrors:
    """Error handling."""

    def test_missing_file(self, tmp_path):
        """Loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_result(tmp_path / "nope.npz")

    def test_unknown_extension(self, tmp_path):
        """Unknown extensions raise ValueError."""
        path = tmp_path / "result.txt"
        path.write_text("hello")
        with pytest.raises(ValueError, match="Unknown result format"):
            load_result(path)

    def test_unknown_kind(self, tmp_path):
        """A JSON file without a known kind raises ValueError."""
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"kind": "arima"}))
        with pytest.raises(ValueError, match="Unknown result kind"):
            load_result(path)

    def test_wrong_type(self, tmp_path):
        """Only result objects can be saved."""
        with pytest.raises(TypeError):
            save_result({"B": np.eye(2)}, tmp_path / "x.npz")
