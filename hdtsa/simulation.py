"""
simulation.py - Synthetic Series with Known Structure

This module generates test data for the two inference procedures:
- arma_series: a univariate ARMA(p, q) path
- simulate_factor_series: y_t = A x_t + eps_t with r AR(1) factors
- simulate_segmented_series: y_t = A x_t where x_t is made of independent
  blocks, each block holding lagged copies of one ARMA series

Mathematical Background:
-----------------------
An ARMA path solves phi(L) x_t = theta(L) e_t with
    phi(L)   = 1 - phi_1 L - ... - phi_p L^p
    theta(L) = 1 + theta_1 L + ... + theta_q L^q
and is produced by filtering Gaussian noise with scipy.signal.lfilter,
discarding a burn-in so that the start-up transient is gone.

Every function takes an explicit numpy Generator; nothing touches the
global numpy random state.

Example Usage:
-------------
    >>> rng = np.random.default_rng(42)
    >>> Y, A, X = simulate_segmented_series(n=1500, rng=rng)
    >>> Y.shape
    (1500, 6)
"""

from __future__ import annotations

import numpy as np
from typing import Optional, Sequence, Tuple
import scipy.signal

from .exceptions import ConfigError


# The three blocks of Example 1 in Chang, Guo & Yao (2018): (ar, ma, size).
DEFAULT_BLOCKS: Tuple[Tuple[Tuple[float, ...], Tuple[float, ...], int], ...] = (
    ((0.5, 0.3), (-0.9, 0.3, 1.2, 1.3), 3),
    ((0.8, -0.5), (1.0, 0.8, 1.8), 2),
    ((-0.7, -0.5), (-1.0, -0.8), 1),
)


def arma_series(
    n: int,
    ar: Sequence[float] = (),
    ma: Sequence[float] = (),
    rng: Optional[np.random.Generator] = None,
    sd: float = 1.0,
    burn_in: int = 500,
) -> np.ndarray:
    """
    Simulate a univariate ARMA path of length n.

    Parameters
    ----------
    n : int
        Length of the returned path.
    ar : sequence of float
        AR coefficients phi_1..phi_p. Must define a stationary process.
    ma : sequence of float
        MA coefficients theta_1..theta_q.
    rng : np.random.Generator, optional
        Random stream. A fresh default_rng() if None.
    sd : float, default=1.0
        Innovation standard deviation.
    burn_in : int, default=500
        Number of initial values discarded.

    Returns
    -------
    np.ndarray
        Shape (n,).
    """
    ar_poly = np.r_[1.0, -np.asarray(ar, dtype=float)]
    if len(ar_poly) > 1 and np.any(np.abs(np.roots(ar_poly)) >= 1.0):
        raise ConfigError("AR coefficients do not define a stationary process", param_name="ar", param_value=tuple(ar))

    ma_poly = np.r_[1.0, np.asarray(ma, dtype=float)]
    rng = rng or np.random.default_rng()

    e = rng.normal(0.0, sd, size=n + burn_in)
    return scipy.signal.lfilter(ma_poly, ar_poly, e)[burn_in:]


def simulate_factor_series(
    n: int = 400,
    p: int = 200,
    ar: Sequence[float] = (0.6, -0.5, 0.3),
    rng: Optional[np.random.Generator] = None,
    noise_sd: float = 1.0,
    weak_ar: Sequence[float] = (),
    weak_support: int = 4,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Simulate y_t = A x_t + eps_t with one AR(1) factor per entry of `ar`.

    Loadings are Uniform(-1, 1); eps_t is iid N(0, noise_sd^2 I_p).
    Each entry of `weak_ar` adds a weak AR(1) factor whose loading is +-1 on
    `weak_support` coordinates and 0 elsewhere; weak supports are disjoint.
    Weak columns come after the strong ones in A and X.

    Returns
    -------
    Y : ndarray (n, p)
        Observed series.
    A : ndarray (p, r)
        True loadings.
    X : ndarray (n, r)
        True factors.
    """
    rng = rng or np.random.default_rng()
    r = len(ar)

    A = rng.uniform(-1.0, 1.0, size=(p, r))
    X = np.column_stack([arma_series(n, ar=(phi,), rng=rng) for phi in ar])
    eps = rng.normal(0.0, noise_sd, size=(n, p))

    if len(weak_ar) > 0:
        if weak_support < 1 or len(weak_ar) * weak_support > p:
            raise ConfigError(
                "Weak factor supports must be nonempty and fit in p coordinates",
                param_name="weak_support",
                param_value=weak_support,
            )
        support = rng.choice(p, size=(len(weak_ar), weak_support), replace=False)
        A_weak = np.zeros((p, len(weak_ar)))
        for j, rows in enumerate(support):
            A_weak[rows, j] = rng.choice([-1.0, 1.0], size=weak_support)
        X_weak = np.column_stack([arma_series(n, ar=(phi,), rng=rng) for phi in weak_ar])
        A = np.hstack([A, A_weak])
        X = np.hstack([X, X_weak])

    return X @ A.T + eps, A, X


def simulate_segmented_series(
    n: int = 1500,
    blocks: Sequence[Tuple[Sequence[float], Sequence[float], int]] = DEFAULT_BLOCKS,
    rng: Optional[np.random.Generator] = None,
    mixing_bound: float = 3.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Simulate y_t = A x_t where x_t consists of independent blocks.

    Block b with size s holds s consecutive lags of one ARMA path, so
    components are correlated within a block and uncorrelated across
    blocks. A has Uniform(-mixing_bound, mixing_bound) entries.

    Parameters
    ----------
    n : int
        Number of observations.
    blocks : sequence of (ar, ma, size)
        Block definitions; default is the 3/2/1 design with p = 6.
    rng : np.random.Generator, optional
        Random stream.
    mixing_bound : float
        Half-width of the uniform mixing-matrix entries.

    Returns
    -------
    Y : ndarray (n, p)
        Observed (mixed) series.
    A : ndarray (p, p)
        Mixing matrix.
    X : ndarray (n, p)
        Latent block series.
    """
    rng = rng or np.random.default_rng()

    columns = []
    for ar, ma, size in blocks:
        x = arma_series(n + size - 1, ar=ar, ma=ma, rng=rng)
        columns.extend(x[i:i + n] for i in range(size))

    X = np.column_stack(columns)
    p = X.shape[1]
    A = rng.uniform(-mixing_bound, mixing_bound, size=(p, p))

    return X @ A.T, A, X
