"""
grouping.py - Assigning Transformed Components to Uncorrelated Groups
=====================================================================

Given the transformed series Z (n, p) from segmentation, components i and j
are "linked" when their cross-correlations over lags |h| <= m are
significantly nonzero. Groups are the connected components of the link
graph.

Two strategies share the GroupingStrategy contract:

- MaxCrossCorrelationGrouping: the pairwise statistics
  T_ij = max_{|h|<=m} |rho_ij(h)| are ranked and the cut between linked and
  unlinked pairs is placed at the largest ratio T_(j) / T_(j+1). A
  family-wise permutation null (rows of each column shuffled independently
  with a caller-owned Generator) decides whether any pair is linked at all
  and bounds the ratio search.
- FDRGrouping: each pair gets the p-value 1 - (2 Phi(sqrt(n) T_ij) - 1)^(2m+1)
  and the Benjamini-Hochberg procedure at level beta selects linked pairs.

Components may first be prewhitened one by one with an AR(0..5) fit chosen
by AIC.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Union

import numpy as np
import scipy.stats
from loguru import logger
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from statsmodels.tsa.ar_model import AutoReg

from .computation import sample_autocovariance
from .exceptions import ConfigError, DimensionError, NumericalError
from .types import GroupingMethod, GroupingResult, RandomState

# Share of the ranked pairs searched by the ratio rule.
RATIO_SEARCH_FRACTION = 0.75

# Largest AR order tried when prewhitening; also the number of rows held back.
PREWHITEN_ORDER = 5


# =============================================================================
# PREWHITENING
# =============================================================================

def prewhiten(Z: np.ndarray, max_order: int = PREWHITEN_ORDER) -> np.ndarray:
    """
    Replace each column by the residuals of a univariate AR fit.

    The AR order is chosen in 0..max_order by AIC. Every candidate is fit on
    the same sample (the first max_order observations are held back), so the
    returned matrix has n - max_order rows.

    Parameters
    ----------
    Z : ndarray (n, p)
        Component series.
    max_order : int, default=5
        Largest AR order considered.

    Returns
    -------
    ndarray (n - max_order, p)
    """
    n, p = Z.shape
    if n - max_order < 3:
        raise DimensionError(
            f"Too few observations to prewhiten with AR order up to {max_order}",
            array_name="Z",
            actual_shape=Z.shape,
        )

    resid = np.empty((n - max_order, p))
    orders = []
    for j in range(p):
        fits = [
            AutoReg(Z[:, j], lags=order, trend="c", hold_back=max_order).fit()
            for order in range(max_order + 1)
        ]
        best = int(np.argmin([fit.aic for fit in fits]))
        orders.append(best)
        resid[:, j] = np.asarray(fits[best].resid)

    logger.debug(f"Prewhitening AR orders by AIC: {orders}")
    return resid


# =============================================================================
# PAIRWISE STATISTICS
# =============================================================================

def max_cross_correlation(Z: np.ndarray, m: int) -> np.ndarray:
    """
    Matrix of T_ij = max_{|h| <= m} |rho_ij(h)|.

    Entry (i, j) of the lag-h autocovariance of the standardized series is
    rho_ij(h); entry (j, i) is rho_ij(-h), so lags 0..m cover -m..m.

    Returns
    -------
    T : ndarray (p, p)
        Symmetric, zero diagonal.
    """
    n, p = Z.shape
    sd = Z.std(axis=0)
    if np.any(sd == 0):
        raise NumericalError("Cannot compute cross-correlations of a constant component")

    X = (Z - Z.mean(axis=0)) / sd
    T = np.zeros((p, p))
    for h in range(m + 1):
        R = np.abs(sample_autocovariance(X, h, center=False))
        T = np.maximum(T, np.maximum(R, R.T))

    np.fill_diagonal(T, 0.0)
    return T


def _pairs(p: int):
    return np.triu_indices(p, k=1)


def _groups_from_links(p: int, rows: np.ndarray, cols: np.ndarray, method: str) -> GroupingResult:
    graph = coo_matrix((np.ones(len(rows)), (rows, cols)), shape=(p, p))
    n_comp, labels = connected_components(graph, directed=False)
    groups = [np.flatnonzero(labels == c) for c in range(n_comp)]
    return GroupingResult.from_groups(groups, method)


def _resolve_rng(rng: RandomState) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def _validate_components(Z) -> np.ndarray:
    Z = np.asarray(Z, dtype=float)
    if Z.ndim != 2:
        raise DimensionError("Z must be a 2D array", array_name="Z", expected_shape="(n, p)", actual_shape=Z.shape)
    if not np.all(np.isfinite(Z)):
        raise NumericalError("Z contains NaN or Inf values")
    return Z


# =============================================================================
# STRATEGIES
# =============================================================================

class GroupingStrategy(ABC):
    """
    Common contract: partition the columns of Z into groups.

    Parameters
    ----------
    prewhiten : bool
        Prewhiten each component with an AR fit before testing.
    m : int
        Largest absolute lag of the cross-correlations tested.
    """

    method: GroupingMethod

    def __init__(self, prewhiten: bool = True, m: Optional[int] = None):
        m = 10 if m is None else m
        if isinstance(m, bool) or int(m) != m or m < 0:
            raise ConfigError("m must be a nonnegative integer", param_name="m", param_value=m)
        self.prewhiten = prewhiten
        self.m = int(m)

    def group(self, Z: np.ndarray) -> GroupingResult:
        """Partition the p columns of Z; indices are 0-based."""
        Z = _validate_components(Z)
        n, p = Z.shape

        if p == 1:
            return GroupingResult.from_groups([[0]], self.method.label)

        self.check_length(n, p)
        if self.prewhiten:
            Z = prewhiten(Z)

        T = max_cross_correlation(Z, self.m)
        rows, cols = self._linked_pairs(Z, T)
        result = _groups_from_links(p, rows, cols, self.method.label)

        logger.info(f"{self.method.label}: {result.no_groups} groups, sizes {list(result.no_of_members)}")
        return result

    def check_length(self, n: int, p: int) -> None:
        """
        Raise DimensionError if an (n, p) series is too short to be grouped.

        Prewhitening leaves n - PREWHITEN_ORDER rows (at least 3 are needed),
        and m must be smaller than the number of rows tested. A single
        component needs no test and is always accepted.
        """
        if p == 1:
            return

        n_tested = n - PREWHITEN_ORDER if self.prewhiten else n
        if self.prewhiten and n_tested < 3:
            raise DimensionError(
                f"Too few observations to prewhiten with AR order up to {PREWHITEN_ORDER}",
                array_name="Z",
                actual_shape=(n, p),
            )
        if self.m >= n_tested:
            raise DimensionError(
                f"m={self.m} must be smaller than the series length {n_tested}",
                array_name="Z",
                actual_shape=(n, p),
            )

    @abstractmethod
    def _linked_pairs(self, Z: np.ndarray, T: np.ndarray):
        """Return (rows, cols) of linked pairs, i < j."""


class MaxCrossCorrelationGrouping(GroupingStrategy):
    """
    Maximum cross-correlation method with a permutation-calibrated cut.

    Parameters
    ----------
    prewhiten : bool, default=True
        Prewhiten each component first.
    m : int, optional
        Largest lag tested (default 10).
    n_permutations : int, default=100
        Number of permutation draws for the null distribution of
        max_{i<j} T_ij.
    alpha : float, default=0.05
        Level of the family-wise permutation test.
    rng : Generator or int, optional
        Random stream or seed owned by the caller. None draws fresh entropy
        for this call only.

    Examples
    --------
    >>> strategy = MaxCrossCorrelationGrouping(m=10, rng=np.random.default_rng(1))
    >>> strategy.group(Z).groups
    ((0, 1, 2), (3, 4), (5,))
    """

    method = GroupingMethod.MAX

    def __init__(
        self,
        prewhiten: bool = True,
        m: Optional[int] = None,
        n_permutations: int = 100,
        alpha: float = 0.05,
        rng: RandomState = None,
    ):
        super().__init__(prewhiten=prewhiten, m=m)
        if n_permutations < 1:
            raise ConfigError("n_permutations must be >= 1", param_name="n_permutations", param_value=n_permutations)
        if not 0 < alpha < 1:
            raise ConfigError("alpha must lie in (0, 1)", param_name="alpha", param_value=alpha)
        self.n_permutations = int(n_permutations)
        self.alpha = float(alpha)
        self.rng = _resolve_rng(rng)
        self.critical_value_: Optional[float] = None

    def critical_value(self, Z: np.ndarray) -> float:
        """(1 - alpha) permutation quantile of max_{i<j} T_ij, with the B+1 rule."""
        iu = _pairs(Z.shape[1])
        draws = np.empty(self.n_permutations)
        for b in range(self.n_permutations):
            shuffled = self.rng.permuted(Z, axis=0)
            draws[b] = max_cross_correlation(shuffled, self.m)[iu].max()

        B = self.n_permutations
        k = int(np.ceil((B + 1) * (1.0 - self.alpha)))
        k = min(max(k, 1), B)
        return float(np.partition(draws, k - 1)[k - 1])

    def _linked_pairs(self, Z, T):
        rows, cols = _pairs(Z.shape[1])
        stats = T[rows, cols]
        order = np.argsort(-stats, kind="stable")
        ranked = stats[order]

        c = self.critical_value(Z)
        self.critical_value_ = c
        n_exceed = int(np.sum(ranked > c))
        logger.debug(f"Permutation critical value {c:.4f}; {n_exceed} of {len(ranked)} pairs exceed it")

        if n_exceed == 0:
            r = 0
        elif len(ranked) == 1:
            r = 1
        else:
            J = max(1, min(int(np.floor(RATIO_SEARCH_FRACTION * len(ranked))), n_exceed))
            with np.errstate(divide="ignore", invalid="ignore"):
                ratios = np.where(ranked[1:J + 1] > 0, ranked[:J] / ranked[1:J + 1], np.inf)
            r = int(np.argmax(ratios)) + 1

        keep = order[:r]
        return rows[keep], cols[keep]


class FDRGrouping(GroupingStrategy):
    """
    Multiple-testing method controlling the false discovery rate.

    Parameters
    ----------
    beta : float
        FDR level of the Benjamini-Hochberg procedure, 0 < beta < 1.
    prewhiten : bool, default=True
        Prewhiten each component first.
    m : int, optional
        Largest lag tested (default 10).
    """

    method = GroupingMethod.FDR

    def __init__(self, beta: Optional[float], prewhiten: bool = True, m: Optional[int] = None):
        super().__init__(prewhiten=prewhiten, m=m)
        if beta is None:
            raise ConfigError("beta is required when permutation='fdr'", param_name="beta")
        if not 0 < beta < 1:
            raise ConfigError("beta must lie in (0, 1)", param_name="beta", param_value=beta)
        self.beta = float(beta)

    def p_values(self, T: np.ndarray, n: int) -> np.ndarray:
        """1 - (2 Phi(sqrt(n) T) - 1)^(2m+1), evaluated without cancellation."""
        tail = 2.0 * scipy.stats.norm.sf(np.sqrt(n) * T)
        with np.errstate(divide="ignore"):
            return -np.expm1((2 * self.m + 1) * np.log1p(-tail))

    def _linked_pairs(self, Z, T):
        rows, cols = _pairs(Z.shape[1])
        pvals = self.p_values(T[rows, cols], Z.shape[0])
        adjusted = scipy.stats.false_discovery_control(pvals, method="bh")
        linked = adjusted <= self.beta
        logger.debug(f"FDR at beta={self.beta:g}: {int(linked.sum())} of {len(pvals)} pairs linked")
        return rows[linked], cols[linked]


def make_grouping(
    method: Union[str, GroupingMethod] = GroupingMethod.MAX,
    prewhiten: bool = True,
    m: Optional[int] = None,
    beta: Optional[float] = None,
    n_permutations: int = 100,
    alpha: float = 0.05,
    rng: RandomState = None,
) -> GroupingStrategy:
    """Build the grouping strategy named by `method` ("max" or "fdr")."""
    method = GroupingMethod.parse(method)
    if method == GroupingMethod.MAX:
        return MaxCrossCorrelationGrouping(
            prewhiten=prewhiten, m=m, n_permutations=n_permutations, alpha=alpha, rng=rng
        )
    return FDRGrouping(beta=beta, prewhiten=prewhiten, m=m)
