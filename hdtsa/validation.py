"""
validation.py - Precondition checks shared by every entry point.

All checks fail fast with a typed error; nothing is coerced silently.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from .exceptions import ConfigError, DimensionError, NumericalError


def validate_series(Y, name: str = "Y") -> np.ndarray:
    """
    Validate an (n, p) series matrix and return it as a float64 array.

    Raises
    ------
    DimensionError
        If Y is not 2D, or has fewer than 2 rows or no columns.
    NumericalError
        If Y contains NaN or Inf.
    """
    Y = np.asarray(Y, dtype=float)

    if Y.ndim != 2:
        logger.error(f"{name} must be a 2D array, got ndim={Y.ndim}")
        raise DimensionError(
            f"{name} must be a 2D array (n observations x p variables)",
            array_name=name,
            expected_shape="(n, p)",
            actual_shape=Y.shape,
        )

    n, p = Y.shape
    if n < 2 or p < 1:
        raise DimensionError(
            f"{name} needs at least 2 observations and 1 variable, got n={n}, p={p}",
            array_name=name,
            expected_shape="(n >= 2, p >= 1)",
            actual_shape=Y.shape,
        )

    if not np.all(np.isfinite(Y)):
        n_bad = int(np.size(Y) - np.count_nonzero(np.isfinite(Y)))
        logger.error(f"{name} contains {n_bad} non-finite values")
        raise NumericalError(
            f"{name} contains {n_bad} NaN or Inf values",
            details="Missing values are not supported; clean or impute the series first.",
        )

    return Y


def validate_lag(lag_k: int, n: int, name: str = "lag_k") -> int:
    """Check 1 <= lag_k < n."""
    if isinstance(lag_k, bool) or int(lag_k) != lag_k:
        raise ConfigError(f"{name} must be an integer", param_name=name, param_value=lag_k)
    lag_k = int(lag_k)

    if lag_k < 1:
        raise ConfigError(f"{name} must be >= 1, got {lag_k}", param_name=name, param_value=lag_k)

    if lag_k >= n:
        logger.error(f"{name}={lag_k} is not smaller than the sample size n={n}")
        raise DimensionError(
            f"{name} must be smaller than the number of observations: {name}={lag_k}, n={n}",
            array_name="Y",
            expected_shape=f"(n > {lag_k}, p)",
        )

    return lag_k


def validate_square(M: np.ndarray, name: str = "M") -> np.ndarray:
    """Check that M is a finite square 2D matrix."""
    M = np.asarray(M, dtype=float)

    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        logger.error(f"{name} must be square, got shape {M.shape}")
        raise DimensionError(
            f"{name} must be a square matrix",
            array_name=name,
            expected_shape="(p, p)",
            actual_shape=M.shape,
        )

    if not np.all(np.isfinite(M)):
        raise NumericalError(f"{name} contains NaN or Inf entries")

    return M
