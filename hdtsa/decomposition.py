"""
decomposition.py - Eigenanalysis and Factor-Number Estimation
=============================================================

Eigen-decomposes the aggregate autocovariance matrix and reads the number
of factors off the eigenvalue ratios (Lam & Yao, 2012).
Uses loguru for diagnostics.
"""

from __future__ import annotations
from typing import Optional
import numpy as np
import scipy.linalg
from loguru import logger

from .computation import aggregate_autocovariance
from .exceptions import ConfigError, NumericalError
from .types import Eigenpairs, FactorResult
from .validation import validate_lag, validate_series, validate_square

# =============================================================================
# EIGENANALYSIS
# =============================================================================

def _normalize_signs(vecs: np.ndarray) -> np.ndarray:
    """Flip each column so that its largest-magnitude entry is positive."""
    if vecs.size == 0:
        return vecs
    idx = np.argmax(np.abs(vecs), axis=0)
    signs = np.sign(vecs[idx, np.arange(vecs.shape[1])])
    signs[signs == 0] = 1.0
    return vecs * signs


def eigen_decomposition(M: np.ndarray) -> Eigenpairs:
    """
    Eigen-decompose a symmetric matrix, eigenvalues in descending order.

    Parameters
    ----------
    M : ndarray (p, p)
        Symmetric (typically PSD) matrix.

    Returns
    -------
    Eigenpairs
        values descending; vectors orthonormal columns with deterministic signs
        (largest-magnitude entry of each column is positive).

    Raises
    ------
    DimensionError
        If M is not square.
    NumericalError
        If M has NaN/Inf entries or LAPACK fails to converge.
    """
    M = validate_square(M, name="M")

    try:
        vals, vecs = scipy.linalg.eigh(M)
    except (np.linalg.LinAlgError, ValueError) as e:
        logger.exception("Eigen-decomposition failed.")
        raise NumericalError("Eigen-decomposition did not converge", details=str(e)) from e

    order = np.argsort(vals)[::-1]
    vals, vecs = vals[order], vecs[:, order]

    return Eigenpairs(values=vals, vectors=_normalize_signs(vecs))

# =============================================================================
# RANK SELECTION
# =============================================================================

def _tolerance(values: np.ndarray) -> float:
    return values.shape[0] * np.finfo(float).eps * max(float(values[0]), 0.0)


def select_rank(eigenvalues: np.ndarray, max_rank: Optional[int] = None) -> int:
    """
    Eigenvalue-ratio estimator r = argmin_{1<=j<=R} lambda_{j+1} / lambda_j.

    Parameters
    ----------
    eigenvalues : ndarray (p,)
        Eigenvalues in descending order.
    max_rank : int, optional
        Upper bound R on the candidate index. Defaults to floor(p / 2)
        (at least 1). Always capped at p - 1 and at the number of
        eigenvalues above the numerical tolerance.

    Returns
    -------
    r : int
        Number of dominant eigenvalues. 0 when every eigenvalue is below
        tolerance. Ties go to the smallest index.
    """
    values = np.asarray(eigenvalues, dtype=float)
    p = values.shape[0]

    if p == 0 or values[0] <= 0:
        return 0

    tol = _tolerance(values)
    n_positive = int(np.sum(values > tol))
    if n_positive == 0:
        return 0
    if p == 1:
        return 1

    R = max(p // 2, 1) if max_rank is None else int(max_rank)
    R = max(1, min(R, p - 1, n_positive))

    # Entries below tol count as exact zeros so tail ratios never divide by ~0.
    clean = np.where(values > tol, values, 0.0)
    ratios = clean[1:R + 1] / clean[:R]
    r = int(np.argmin(ratios)) + 1

    logger.debug(f"Eigenvalue ratios (first {R}): min {ratios[r - 1]:.4f} at r={r}")
    return r

# =============================================================================
# FACTOR ESTIMATION
# =============================================================================

def factors(
    Y: np.ndarray,
    lag_k: int = 5,
    thresh: bool = False,
    delta: Optional[float] = None,
    twostep: bool = False,
    max_rank: Optional[int] = None,
    max_rank_second: Optional[int] = None,
) -> FactorResult:
    """
    Estimate the number of factors and the factor loadings of a
    high-dimensional time series.

    Model: y_t = A x_t + eps_t, where x_t is an r-dimensional latent factor
    process and eps_t is white noise. The column space of A is spanned by the
    leading eigenvectors of

        M = sum_{k=1}^{K} T_delta(S(k)) T_delta(S(k))'

    Parameters
    ----------
    Y : ndarray (n, p)
        Data matrix with n observations of a p-dimensional series.
    lag_k : int, default=5
        Number of lags K used to build M.
    thresh : bool, default=False
        Threshold each autocovariance before aggregation.
    delta : float, optional
        Threshold level; defaults to 2 * sqrt(log(p) / n).
    twostep : bool, default=False
        Use the two-step estimator: after removing the factors found in the
        first pass, re-estimate on the residual subspace to pick up weaker
        factors.
    max_rank : int, optional
        Upper bound on the ratio search in the first pass (default floor(p / 2)).
    max_rank_second : int, optional
        Upper bound on the ratio search in the second pass. Defaults to the
        number of factors found in the first pass, so that the noise
        spectrum of the residual is not read as a run of weak factors.

    Returns
    -------
    FactorResult
        factor_num, loading_mat (p, r), X = Y @ loading_mat (n, r), lag_k.

    Raises
    ------
    ConfigError
        If max_rank_second is not a positive integer.
    DimensionError
        If Y is not 2D or lag_k >= n.
    NumericalError
        If Y has non-finite values or the eigen-decomposition fails.
    """
    Y = validate_series(Y)
    n, p = Y.shape
    lag_k = validate_lag(lag_k, n)
    if max_rank_second is not None and (
        isinstance(max_rank_second, bool) or int(max_rank_second) != max_rank_second or max_rank_second < 1
    ):
        raise ConfigError(
            "max_rank_second must be a positive integer",
            param_name="max_rank_second",
            param_value=max_rank_second,
        )

    logger.info(f"Starting factor estimation: n={n}, p={p}, K={lag_k}, twostep={twostep}")

    # 1. First pass
    M = aggregate_autocovariance(Y, lag_k, thresh=thresh, delta=delta)
    eig = eigen_decomposition(M)
    r1 = select_rank(eig.values, max_rank=max_rank)
    A = eig.vectors[:, :r1]

    # 2. Optional second pass on the orthogonal complement
    if twostep and r1 > 0:
        Y_resid = Y - (Y @ A) @ A.T
        M2 = aggregate_autocovariance(Y_resid, lag_k, thresh=thresh, delta=delta)
        eig2 = eigen_decomposition(M2)
        r2 = select_rank(eig2.values, max_rank=r1 if max_rank_second is None else int(max_rank_second))
        r2 = min(r2, p - r1)
        logger.debug(f"Two-step estimation: r1={r1}, r2={r2}")
        A = np.hstack([A, eig2.vectors[:, :r2]])

    r = A.shape[1]
    if r == 0:
        logger.warning("No factor structure detected: all eigenvalues are numerically zero.")

    X = Y @ A
    logger.success(f"Factor estimation complete. Estimated r={r}")

    return FactorResult(
        factor_num=r,
        loading_mat=A,
        X=X,
        lag_k=lag_k,
        eigenvalues=eig.values,
        method="two-step" if twostep else "standard",
    )
