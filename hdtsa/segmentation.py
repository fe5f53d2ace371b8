"""
segmentation.py - Principal Component Analysis for Vector Time Series
=====================================================================

Seeks a contemporaneous linear transformation y_t = A x_t such that x_t
splits into q >= 1 subseries that are uncorrelated with each other at all
lags (Chang, Guo & Yao, 2018).

Pipeline:
1. Normalize y_t -> V^{-1/2} y_t (sample covariance or sparse precision).
2. W_y = I_p + sum_{k=1}^{K} T_delta(S(k)) T_delta(S(k))'.
3. Eigen-decompose W_y = Gamma D Gamma'.
4. B = Gamma' V^{-1/2},  z_t = B y_t.
5. Group the components of z_t (see grouping.py).

Example Usage:
-------------
    >>> from hdtsa import pca_ts
    >>>
    >>> res = pca_ts(Y, lag_k=5, permutation="max", rng=7)
    >>> res.groups
    ((0, 2, 5), (1, 3), (4,))
    >>>
    >>> res = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
from loguru import logger

from .computation import aggregate_autocovariance
from .decomposition import eigen_decomposition
from .grouping import make_grouping
from .types import (
    CLIMEControl,
    GroupingMethod,
    PrecisionEstimator,
    RandomState,
    SegmentationResult,
    TSPCAResult,
    WhiteningMethod,
)
from .validation import validate_lag, validate_series
from .whitening import whiten


def segment_ts(
    Y: np.ndarray,
    lag_k: int = 5,
    thresh: bool = False,
    delta: Optional[float] = None,
    opt: Union[int, str, WhiteningMethod] = 1,
    control: Optional[CLIMEControl] = None,
    precision_estimator: Optional[PrecisionEstimator] = None,
) -> SegmentationResult:
    """
    Compute the segmentation transform B and the transformed series Z.

    Parameters
    ----------
    Y : ndarray (n, p)
        Data matrix, rows are time.
    lag_k : int, default=5
        Number of lags K in W_y.
    thresh : bool, default=False
        Threshold the autocovariances of the normalized series.
    delta : float, optional
        Threshold level, default 2 * sqrt(log(p) / n).
    opt : {1, 2} or WhiteningMethod, default=1
        1: sample covariance; 2: precision matrix from `precision_estimator`
        (CLIME with `control` by default).
    control : CLIMEControl, optional
        Controls for the CLIME estimator.
    precision_estimator : callable, optional
        Replacement precision-matrix estimator for opt=2.

    Returns
    -------
    SegmentationResult
        B (p, p), Z = Y @ B.T (n, p), lag_k, eigenvalues of W_y.
    """
    Y = validate_series(Y)
    n, p = Y.shape
    lag_k = validate_lag(lag_k, n)
    method = WhiteningMethod.from_option(opt)

    logger.info(f"Starting segmentation: n={n}, p={p}, K={lag_k}, whitening={method.value}")

    # 1. Normalize
    Y_tilde, V_inv_sqrt = whiten(Y, method, control=control, precision_estimator=precision_estimator)

    # 2-3. Aggregate and eigen-decompose
    W = aggregate_autocovariance(Y_tilde, lag_k, thresh=thresh, delta=delta, add_identity=True)
    eig = eigen_decomposition(W)

    # 4. Transform
    B = eig.vectors.T @ V_inv_sqrt
    Z = Y @ B.T

    logger.success(f"Segmentation transform complete. Leading eigenvalue of W_y: {eig.values[0]:.4f}")
    return SegmentationResult(B=B, Z=Z, lag_k=lag_k, eigenvalues=eig.values)


def pca_ts(
    Y: np.ndarray,
    lag_k: int = 5,
    opt: Union[int, str, WhiteningMethod] = 1,
    permutation: Union[str, GroupingMethod] = "max",
    thresh: bool = False,
    delta: Optional[float] = None,
    prewhiten: bool = True,
    m: Optional[int] = None,
    beta: Optional[float] = None,
    control: Optional[CLIMEControl] = None,
    n_permutations: int = 100,
    alpha: float = 0.05,
    rng: RandomState = None,
    precision_estimator: Optional[PrecisionEstimator] = None,
) -> TSPCAResult:
    """
    Principal component analysis for vector time series.

    Parameters
    ----------
    Y : ndarray (n, p)
        Data matrix.
    lag_k : int, default=5
        Number of lags K in W_y.
    opt : {1, 2}, default=1
        Covariance normalization (see `segment_ts`).
    permutation : {"max", "fdr"}, default="max"
        Grouping procedure.
    thresh, delta
        Thresholding of the autocovariances (see `segment_ts`).
    prewhiten : bool, default=True
        Prewhiten each transformed component with an AR(0..5) fit chosen by
        AIC before testing.
    m : int, optional
        Largest lag of the cross-correlations tested (default 10).
    beta : float, optional
        FDR level; required when permutation="fdr".
    control : CLIMEControl, optional
        CLIME controls for opt=2.
    n_permutations : int, default=100
        Permutation draws for the "max" procedure.
    alpha : float, default=0.05
        Level of the permutation test in the "max" procedure.
    rng : Generator or int, optional
        Random stream (or seed) for the "max" procedure. Pass a seed for
        reproducible groups.
    precision_estimator : callable, optional
        Replacement precision-matrix estimator for opt=2.

    Returns
    -------
    TSPCAResult
        B, X, no_groups, no_of_members, groups (0-based), method.

    Raises
    ------
    ConfigError
        Unknown `opt` or `permutation`, or missing `beta` for "fdr".
    DimensionError
        Y not 2D, lag_k >= n, a series too short for the grouping test, or
        a bad precision estimate.
    NumericalError
        Non-finite data or failed linear algebra.
    EstimationError
        Precision-matrix estimation failed.
    """
    # Resolve the strategy first so that bad options fail before any computation.
    strategy = make_grouping(
        permutation,
        prewhiten=prewhiten,
        m=m,
        beta=beta,
        n_permutations=n_permutations,
        alpha=alpha,
        rng=rng,
    )
    Y = validate_series(Y)
    strategy.check_length(*Y.shape)

    seg = segment_ts(
        Y,
        lag_k=lag_k,
        thresh=thresh,
        delta=delta,
        opt=opt,
        control=control,
        precision_estimator=precision_estimator,
    )
    grouping = strategy.group(seg.Z)

    return TSPCAResult(
        B=seg.B,
        X=seg.Z,
        no_groups=grouping.no_groups,
        no_of_members=grouping.no_of_members,
        groups=grouping.groups,
        method=grouping.method,
    )
