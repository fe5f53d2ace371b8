# computation.py: Autocovariance, thresholding and the aggregate matrix.

from typing import Optional

import numpy as np
from loguru import logger

from .exceptions import ConfigError, DimensionError
from .validation import validate_lag, validate_series


def default_delta(n: int, p: int) -> float:
    """Default threshold level 2 * sqrt(log(p) / n)."""
    return float(2.0 * np.sqrt(np.log(p) / n))


def sample_autocovariance(Y: np.ndarray, k: int, center: bool = True) -> np.ndarray:
    """
    Sample lag-k autocovariance (1/n) * sum_t (y_{t+k} - ybar)(y_t - ybar)'.

    Parameters
    ----------
    Y : ndarray (n, p)
        Series matrix, rows ordered in time.
    k : int
        Lag, 0 <= k < n. k = 0 gives the (1/n) sample covariance.
    center : bool, default=True
        Subtract the column means first.

    Returns
    -------
    S : ndarray (p, p)
        Generally asymmetric for k > 0. S[i, j] pairs y_{i, t+k} with y_{j, t}.
    """
    n = Y.shape[0]
    if k < 0 or k >= n:
        raise DimensionError(
            f"Lag must satisfy 0 <= k < n, got k={k}, n={n}",
            array_name="Y",
            actual_shape=Y.shape,
        )

    Z = Y - Y.mean(axis=0) if center else Y
    return Z[k:].T @ Z[:n - k] / n


def threshold(W: np.ndarray, delta: float) -> np.ndarray:
    """
    Hard-threshold operator T_delta(W) = {w_ij * 1(|w_ij| >= delta)}.

    delta = 0 returns an unchanged copy of W.
    """
    if not delta >= 0:
        raise ConfigError("Threshold level delta must be a number >= 0", param_name="delta", param_value=delta)

    W = np.asarray(W, dtype=float)
    if delta == 0:
        return W.copy()
    return np.where(np.abs(W) >= delta, W, 0.0)


def aggregate_autocovariance(
    Y: np.ndarray,
    lag_k: int,
    thresh: bool = False,
    delta: Optional[float] = None,
    add_identity: bool = False,
) -> np.ndarray:
    """
    Build the nonnegative definite matrix

        M = [I_p] + sum_{k=1}^{K} T_delta(S(k)) T_delta(S(k))'

    Parameters
    ----------
    Y : ndarray (n, p)
        Series matrix (already whitened when used for segmentation).
    lag_k : int
        Number of lags K, 1 <= K < n.
    thresh : bool, default=False
        Apply the threshold operator to each S(k).
    delta : float, optional
        Threshold level. Defaults to 2 * sqrt(log(p) / n). Ignored when
        thresh is False.
    add_identity : bool, default=False
        Add I_p to the sum (segmentation).

    Returns
    -------
    M : ndarray (p, p)
        Exactly symmetric, positive semidefinite.

    Raises
    ------
    DimensionError
        If lag_k >= n. Checked before any matrix is formed.
    """
    Y = validate_series(Y)
    n, p = Y.shape
    lag_k = validate_lag(lag_k, n)

    if thresh:
        if delta is None:
            delta = default_delta(n, p)
        if not delta >= 0:
            raise ConfigError("Threshold level delta must be a number >= 0", param_name="delta", param_value=delta)
        logger.debug(f"Thresholding autocovariances at delta={delta:.4g}")
    else:
        delta = 0.0

    Z = Y - Y.mean(axis=0)
    M = np.eye(p) if add_identity else np.zeros((p, p))

    for k in range(1, lag_k + 1):
        S = threshold(sample_autocovariance(Z, k, center=False), delta)
        M += S @ S.T

    # Round-off in the products can leave M asymmetric in the last bits.
    M = 0.5 * (M + M.T)

    logger.debug(f"Aggregate matrix built | p={p}, K={lag_k}, identity={add_identity}")
    return M
