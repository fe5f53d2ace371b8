"""
types.py - Core Data Structures and Type Definitions for hdtsa

This module defines the value objects passed between the pipeline stages
and returned by the public entry points:
- Eigenpairs: ordered eigenvalues/eigenvectors of an aggregate matrix
- FactorResult: output of factor-number/loading estimation
- SegmentationResult: the linear transform stage of time-series PCA
- GroupingResult: a partition of the transformed components into groups
- TSPCAResult: segmentation plus grouping
- CLIMEControl: solver controls for the sparse precision-matrix estimator
- WhiteningMethod / GroupingMethod: the enumerated strategy selectors

Design Principles:
-----------------
1. Immutability (frozen dataclasses for results)
2. Validation at construction time (fail-fast)
3. Enumerated options are str-Enums so plain strings keep working
4. Numpy-style docstrings throughout

Example Usage:
-------------
    >>> import numpy as np
    >>> from hdtsa import pca_ts
    >>>
    >>> res = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)
    >>> print(f"{res.no_groups} groups, sizes {res.no_of_members}")
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union
from enum import Enum

from .exceptions import ConfigError


# =============================================================================
# TYPE ALIASES
# =============================================================================

# A precision estimator maps an (n, p) series to a (p, p) symmetric PSD matrix.
PrecisionEstimator = Callable[[np.ndarray], np.ndarray]

# Anything accepted where a random stream is needed.
RandomState = Union[None, int, np.random.Generator]


# =============================================================================
# STRATEGY SELECTORS
# =============================================================================

class WhiteningMethod(str, Enum):
    """
    How the covariance V of y_t is estimated before segmentation.

    SAMPLE_COVARIANCE (opt=1): V is the sample covariance matrix.
    PRECISION (opt=2): V^{-1} is estimated directly by a sparse
                       precision-matrix estimator (CLIME by default).
    """
    SAMPLE_COVARIANCE = "sample_covariance"
    PRECISION = "precision"

    @classmethod
    def from_option(cls, opt: Union[int, str, "WhiteningMethod"]) -> "WhiteningMethod":
        """Resolve the integer option (1 or 2), a name, or a member."""
        if isinstance(opt, cls):
            return opt
        if isinstance(opt, (int, np.integer)) and not isinstance(opt, bool):
            if opt == 1:
                return cls.SAMPLE_COVARIANCE
            if opt == 2:
                return cls.PRECISION
        elif isinstance(opt, str):
            try:
                return cls(opt.lower())
            except ValueError:
                pass
        raise ConfigError(
            "opt must be 1 (sample covariance) or 2 (precision matrix)",
            param_name="opt",
            param_value=opt,
        )


class GroupingMethod(str, Enum):
    """Procedure used to assign transformed components to groups."""
    MAX = "max"
    FDR = "fdr"

    @property
    def label(self) -> str:
        """Human-readable method description stored on results."""
        if self is GroupingMethod.MAX:
            return "Maximum cross correlation method"
        return "FDR based on multiple tests"

    @classmethod
    def parse(cls, value: Union[str, "GroupingMethod"]) -> "GroupingMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigError(
                "permutation must be 'max' or 'fdr'",
                param_name="permutation",
                param_value=value,
            ) from None


# =============================================================================
# SOLVER CONTROLS
# =============================================================================

@dataclass(frozen=True)
class CLIMEControl:
    """
    Controls for the CLIME precision-matrix estimator.

    Parameters
    ----------
    nlambda : int
        Number of regularization values on the log-spaced grid.
    lambda_max : float
        Largest regularization value.
    lambda_min : float, optional
        Smallest regularization value. Defaults to 1e-4 when n > p and
        1e-2 otherwise.
    standardize : bool
        Estimate on standardized variables, then map back to the original scale.
    perturb : bool
        Shift the covariance diagonal so its condition number is at most p.
    folds : int
        Number of cross-validation folds used to pick lambda.
    loss : str
        Cross-validation loss, "likelihood" or "tracel2".
    solver : str, optional
        CVXPY solver name (e.g. "CLARABEL", "HIGHS", "SCS"). None lets
        CVXPY choose.
    """
    nlambda: int = 10
    lambda_max: float = 0.8
    lambda_min: Optional[float] = None
    standardize: bool = False
    perturb: bool = True
    folds: int = 5
    loss: str = "likelihood"
    solver: Optional[str] = None

    def __post_init__(self):
        if self.nlambda < 1:
            raise ConfigError("nlambda must be >= 1", param_name="nlambda", param_value=self.nlambda)
        if self.lambda_max <= 0:
            raise ConfigError("lambda_max must be positive", param_name="lambda_max", param_value=self.lambda_max)
        if self.lambda_min is not None and not (0 < self.lambda_min <= self.lambda_max):
            raise ConfigError(
                "lambda_min must lie in (0, lambda_max]",
                param_name="lambda_min",
                param_value=self.lambda_min,
            )
        if self.folds < 2:
            raise ConfigError("folds must be >= 2", param_name="folds", param_value=self.folds)
        if self.loss not in ("likelihood", "tracel2"):
            raise ConfigError(
                "loss must be 'likelihood' or 'tracel2'",
                param_name="loss",
                param_value=self.loss,
            )

    def lambda_grid(self, n: int, p: int) -> np.ndarray:
        """Log-spaced regularization grid, ascending."""
        if self.nlambda == 1:
            return np.array([float(self.lambda_max)])
        lam_min = self.lambda_min
        if lam_min is None:
            lam_min = 1e-4 if n > p else 1e-2
        lam_min = min(lam_min, self.lambda_max)
        return np.logspace(np.log10(lam_min), np.log10(self.lambda_max), self.nlambda)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class Eigenpairs:
    """
    Eigen-decomposition of a symmetric matrix.

    Parameters
    ----------
    values : np.ndarray
        Eigenvalues with shape (p,), in descending order.
    vectors : np.ndarray
        Orthonormal eigenvectors as the columns of a (p, p) matrix;
        column j pairs with values[j].
    """
    values: np.ndarray
    vectors: np.ndarray

    def __post_init__(self):
        if self.vectors.ndim != 2 or self.vectors.shape[1] != self.values.shape[0]:
            raise ValueError(
                f"vectors shape {self.vectors.shape} does not match "
                f"{self.values.shape[0]} eigenvalues"
            )

    @property
    def p(self) -> int:
        return int(self.values.shape[0])


@dataclass(frozen=True)
class FactorResult:
    """
    Result of factor-number and loading estimation.

    Parameters
    ----------
    factor_num : int
        Estimated number of factors r.
    loading_mat : np.ndarray
        Estimated loading matrix with shape (p, r).
    X : np.ndarray
        Estimated factor series Y @ loading_mat with shape (n, r).
    lag_k : int
        Number of lags used to build the aggregate matrix.
    eigenvalues : np.ndarray
        Eigenvalues of the aggregate matrix, descending.
    method : str
        "standard" or "two-step".
    """
    factor_num: int
    loading_mat: np.ndarray
    X: np.ndarray
    lag_k: int
    eigenvalues: np.ndarray
    method: str = "standard"

    def __post_init__(self):
        if self.loading_mat.shape[1] != self.factor_num:
            raise ValueError(
                f"loading_mat has {self.loading_mat.shape[1]} columns, "
                f"expected factor_num={self.factor_num}"
            )
        if self.X.shape[1] != self.factor_num:
            raise ValueError(
                f"X has {self.X.shape[1]} columns, expected factor_num={self.factor_num}"
            )

    @property
    def p(self) -> int:
        return int(self.loading_mat.shape[0])


@dataclass(frozen=True)
class SegmentationResult:
    """
    Linear transform stage of time-series PCA.

    Parameters
    ----------
    B : np.ndarray
        (p, p) transformation matrix Gamma' V^{-1/2}; row j holds the
        loadings of component j.
    Z : np.ndarray
        (n, p) transformed series Y @ B.T, columns ordered by descending
        eigenvalue of W_y.
    lag_k : int
        Number of lags used to build W_y.
    eigenvalues : np.ndarray
        Eigenvalues of W_y, descending.
    """
    B: np.ndarray
    Z: np.ndarray
    lag_k: int
    eigenvalues: np.ndarray


@dataclass(frozen=True)
class GroupingResult:
    """
    Partition of the p transformed components into groups.

    Parameters
    ----------
    no_groups : int
        Number of groups q.
    no_of_members : Tuple[int, ...]
        Size of each group.
    groups : Tuple[Tuple[int, ...], ...]
        0-based component indices of each group, sorted ascending within a
        group; groups are ordered by their smallest member.
    method : str
        Label of the grouping procedure.
    """
    no_groups: int
    no_of_members: Tuple[int, ...]
    groups: Tuple[Tuple[int, ...], ...]
    method: str

    def __post_init__(self):
        if self.no_groups != len(self.groups):
            raise ValueError(f"no_groups={self.no_groups} but {len(self.groups)} groups given")
        if tuple(len(g) for g in self.groups) != tuple(self.no_of_members):
            raise ValueError("no_of_members does not match group sizes")

    @classmethod
    def from_groups(cls, groups, method: str) -> "GroupingResult":
        """Build a result from any iterable of index collections."""
        ordered = sorted((tuple(sorted(int(i) for i in g)) for g in groups), key=lambda g: g[0])
        return cls(
            no_groups=len(ordered),
            no_of_members=tuple(len(g) for g in ordered),
            groups=tuple(ordered),
            method=method,
        )


@dataclass(frozen=True)
class TSPCAResult:
    """
    Result of principal component analysis for vector time series.

    Parameters
    ----------
    B : np.ndarray
        (p, p) transformation matrix.
    X : np.ndarray
        (n, p) transformed series x_t = B y_t.
    no_groups : int
        Number of groups.
    no_of_members : Tuple[int, ...]
        Number of members in each group.
    groups : Tuple[Tuple[int, ...], ...]
        0-based indices of the components of x_t in each group.
    method : str
        Which grouping procedure was performed.
    """
    B: np.ndarray
    X: np.ndarray
    no_groups: int
    no_of_members: Tuple[int, ...]
    groups: Tuple[Tuple[int, ...], ...]
    method: str

    @property
    def p(self) -> int:
        return int(self.B.shape[0])

    def __repr__(self) -> str:
        return (
            f"TSPCAResult(p={self.p}, no_groups={self.no_groups}, "
            f"no_of_members={list(self.no_of_members)}, method='{self.method}')"
        )
