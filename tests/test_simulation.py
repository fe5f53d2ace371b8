"""
test_simulation.py - Tests for the Synthetic Data Generators

Tests cover:
- ARMA path length, stationarity check and reproducibility
- Factor design shapes
- Segmented design block structure
"""

import pytest
import numpy as np

from hdtsa import (
    arma_series,
    simulate_factor_series,
    simulate_segmented_series,
    ConfigError,
)
from hdtsa.simulation import DEFAULT_BLOCKS


class TestARMASeries:
    """Tests for arma_series."""

    def test_length(self, rng):
        """The returned path has length n."""
        assert arma_series(250, ar=(0.5,), ma=(0.3,), rng=rng).shape == (250,)

    def test_white_noise(self, rng):
        """No coefficients gives iid noise with the requested sd."""
        x = arma_series(20000, rng=rng, sd=2.0)
        assert np.std(x) == pytest.approx(2.0, rel=0.05)

    def test_ar1_autocorrelation(self, rng):
        """An AR(1) path has lag-1 autocorrelation close to phi."""
        x = arma_series(20000, ar=(0.7,), rng=rng)
        assert np.corrcoef(x[1:], x[:-1])[0, 1] == pytest.approx(0.7, abs=0.03)

    def test_reproducible(self):
        """Same seed, same path."""
        a = arma_series(100, ar=(0.5, 0.3), rng=np.random.default_rng(3))
        b = arma_series(100, ar=(0.5, 0.3), rng=np.random.default_rng(3))
        assert np.array_equal(a, b)

    def test_non_stationary(self, rng):
        """A unit root raises ConfigError."""
        with pytest.raises(ConfigError):
            arma_series(100, ar=(1.0,), rng=rng)


class TestSimulateFactorSeries:
    """Tests for simulate_factor_series."""

    def test_shapes(self, rng):
        """Y is (n, p), A is (p, r), X is (n, r)."""
        Y, A, X = simulate_factor_series(n=120, p=30, ar=(0.5, -0.4), rng=rng)
        assert Y.shape == (120, 30)
        assert A.shape == (30, 2)
        assert X.shape == (120, 2)

    def test_noise_free(self, rng):
        """noise_sd=0 gives Y = X A' exactly."""
        Y, A, X = simulate_factor_series(n=50, p=10, rng=rng, noise_sd=0.0)
        assert np.allclose(Y, X @ A.T)

    def test_weak_factors(self, rng):
        """Weak factors follow the strong ones with sparse +-1 loadings."""
        Y, A, X = simulate_factor_series(
            n=100, p=40, ar=(0.5,), weak_ar=(0.8, -0.8), weak_support=3, rng=rng, noise_sd=0.0
        )
        assert A.shape == (40, 3)
        assert X.shape == (100, 3)
        assert np.allclose(Y, X @ A.T)

        weak = A[:, 1:]
        assert np.all(np.sum(weak != 0, axis=0) == 3)
        assert set(np.unique(weak[weak != 0])) <= {-1.0, 1.0}
        # disjoint supports
        assert not np.any((weak[:, 0] != 0) & (weak[:, 1] != 0))

    def test_weak_supports_must_fit(self, rng):
        """Supports that do not fit in p coordinates raise ConfigError."""
        with pytest.raises(ConfigError):
            simulate_factor_series(n=50, p=5, weak_ar=(0.5, 0.5), weak_support=3, rng=rng)


class TestSimulateSegmentedSeries:
    """Tests for simulate_segmented_series."""

    def test_shapes(self, segmented_dataset):
        """Default design has p=6."""
        Y, A, X = segmented_dataset
        assert Y.shape == (1500, 6)
        assert A.shape == (6, 6)
        assert X.shape == (1500, 6)
        assert sum(size for _, _, size in DEFAULT_BLOCKS) == 6

    def test_mixing(self, segmented_dataset):
        """Y = X A' with bounded mixing entries."""
        Y, A, X = segmented_dataset
        assert np.allclose(Y, X @ A.T)
        assert np.all(np.abs(A) <= 3.0)

    def test_blocks_hold_lagged_copies(self, segmented_dataset):
        """Within the first block, column i+1 is column i shifted by one step."""
        _, _, X = segmented_dataset
        assert np.array_equal(X[:-1, 1], X[1:, 0])
        assert np.array_equal(X[:-1, 2], X[1:, 1])
        assert np.array_equal(X[:-1, 4], X[1:, 3])

    def test_blocks_independent(self, segmented_dataset):
        """Contemporaneous correlation across blocks is small."""
        _, _, X = segmented_dataset
        C = np.corrcoef(X, rowvar=False)
        assert abs(C[0, 3]) < 0.15
        assert abs(C[3, 5]) < 0.15

    def test_custom_blocks(self, rng):
        """Custom block definitions set p."""
        blocks = (((0.5,), (), 2), ((), (0.4,), 1))
        Y, A, X = simulate_segmented_series(n=80, blocks=blocks, rng=rng)
        assert Y.shape == (80, 3)
