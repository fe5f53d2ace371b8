"""
conftest.py - Pytest Configuration and Shared Fixtures

This file contains fixtures used across all test modules. Fixtures are
organized by category:
- Random number generators (for reproducibility)
- Small series for the shared autocovariance pipeline
- Simulated datasets with known factor / group structure
"""

import pytest
import numpy as np

from hdtsa import (
    simulate_factor_series,
    simulate_segmented_series,
)


# =============================================================================
# RANDOM NUMBER GENERATORS
# =============================================================================

@pytest.fixture
def rng():
    """
    Provide a seeded random number generator for reproducible tests.

    All tests should use this fixture (or derive from it) to ensure
    reproducibility across runs.
    """
    return np.random.default_rng(seed=42)


@pytest.fixture
def rng_alternate():
    """Alternate RNG with different seed for comparison tests."""
    return np.random.default_rng(seed=12345)


# =============================================================================
# SMALL SERIES
# =============================================================================

@pytest.fixture
def small_series(rng):
    """
    A 200 x 8 series with some serial dependence.

    Each column is an independent AR(1) with coefficient 0.5, so
    autocovariances are nonzero at every lag.
    """
    n, p = 200, 8
    e = rng.standard_normal((n, p))
    Y = np.empty_like(e)
    Y[0] = e[0]
    for t in range(1, n):
        Y[t] = 0.5 * Y[t - 1] + e[t]
    return Y


@pytest.fixture
def white_noise(rng):
    """Independent N(0, 1) entries, n=300, p=4."""
    return rng.standard_normal((300, 4))


# =============================================================================
# SIMULATED STRUCTURE
# =============================================================================

@pytest.fixture
def factor_dataset(rng):
    """
    n=400, p=200 with three strong AR(1) factors.

    Returns (Y, A, X) where A is the (200, 3) true loading matrix.
    """
    return simulate_factor_series(n=400, p=200, ar=(0.8, -0.7, 0.6), rng=rng)


@pytest.fixture
def segmented_dataset(rng):
    """
    p=6 mixture of three independent blocks of sizes 3, 2 and 1.

    Returns (Y, A, X) with Y of shape (1500, 6).
    """
    return simulate_segmented_series(n=1500, rng=rng)
