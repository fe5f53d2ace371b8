"""
whitening.py - Normalization of a Vector Series Before Segmentation
===================================================================

Rescales y_t to V^{-1/2} y_t where V estimates Cov(y_t). Two strategies:

- SAMPLE_COVARIANCE: V is the sample covariance matrix.
- PRECISION: V^{-1} is estimated directly by a sparse precision-matrix
  estimator. The default estimator is CLIME (Cai, Liu & Luo, 2011),
  solved here as a linear program with CVXPY.

Example Usage:
-------------
    >>> from hdtsa.whitening import whiten, CLIMEEstimator
    >>> from hdtsa.types import CLIMEControl, WhiteningMethod
    >>>
    >>> Y_tilde, V_inv_sqrt = whiten(Y, WhiteningMethod.PRECISION,
    ...                              control=CLIMEControl(nlambda=5))
"""

from __future__ import annotations

from typing import Optional, Tuple, Union

import cvxpy as cp
import numpy as np
import scipy.linalg
from loguru import logger

from .exceptions import DimensionError, EstimationError, HDTSAError, NumericalError
from .types import CLIMEControl, PrecisionEstimator, WhiteningMethod
from .validation import validate_series


# =============================================================================
# CLIME PRECISION-MATRIX ESTIMATOR
# =============================================================================

class CLIMEEstimator:
    """
    Constrained L1-minimization estimator of a sparse precision matrix.

    For each lambda on a log-spaced grid this solves

        min ||Omega||_1   s.t.   |S @ Omega - I|_max <= lambda

    over the full (p, p) variable (the problem separates by column, so one
    LP is equivalent to p column-wise LPs), symmetrizes the solution by
    keeping the smaller-magnitude entry of each (i, j)/(j, i) pair, and picks
    lambda by K-fold cross-validation.

    Parameters
    ----------
    control : CLIMEControl, optional
        Grid, cross-validation and solver settings.

    Examples
    --------
    >>> estimator = CLIMEEstimator(CLIMEControl(nlambda=5, folds=3))
    >>> Omega = estimator(Y)
    >>> estimator.lambda_opt_
    0.0123...
    """

    def __init__(self, control: Optional[CLIMEControl] = None):
        self.control = control or CLIMEControl()
        self.lambda_opt_: Optional[float] = None
        self.cv_loss_: Optional[np.ndarray] = None

    # -- covariance preparation ------------------------------------------------

    def _covariance(self, Y: np.ndarray) -> np.ndarray:
        n, p = Y.shape
        S = np.cov(Y, rowvar=False, bias=True).reshape(p, p)
        if self.control.perturb and p > 1:
            ev = np.linalg.eigvalsh(S)
            shift = max(ev[-1] - p * ev[0], 0.0) / (p - 1)
            S = S + shift * np.eye(p)
        return S

    # -- core LP ---------------------------------------------------------------

    def _solve_path(self, S: np.ndarray, lambdas: np.ndarray) -> list:
        """Solve the CLIME LP for every lambda; returns symmetrized estimates."""
        p = S.shape[0]
        omega = cp.Variable((p, p))
        lam = cp.Parameter(nonneg=True)
        problem = cp.Problem(
            cp.Minimize(cp.sum(cp.abs(omega))),
            [cp.abs(S @ omega - np.eye(p)) <= lam],
        )

        path = []
        for value in lambdas:
            lam.value = float(value)
            try:
                problem.solve(solver=self.control.solver)
            except cp.SolverError as e:
                logger.exception(f"CLIME solver crashed at lambda={value:.4g}")
                raise EstimationError(
                    "CLIME linear program failed",
                    details=str(e),
                    context={"lambda": value, "p": p},
                ) from e

            if problem.status not in (cp.OPTIMAL, cp.OPTIMAL_INACCURATE) or omega.value is None:
                logger.error(f"CLIME finished with status: {problem.status}")
                raise EstimationError(
                    f"CLIME did not reach an optimal solution (status={problem.status})",
                    context={"lambda": value, "p": p},
                )

            path.append(self._symmetrize(np.asarray(omega.value)))
        return path

    @staticmethod
    def _symmetrize(omega: np.ndarray) -> np.ndarray:
        keep = np.abs(omega) <= np.abs(omega.T)
        return np.where(keep, omega, omega.T)

    # -- cross-validation ------------------------------------------------------

    def _loss(self, S_test: np.ndarray, omega: np.ndarray) -> float:
        if self.control.loss == "likelihood":
            sign, logdet = np.linalg.slogdet(omega)
            if sign <= 0:
                return np.inf
            return float(np.trace(S_test @ omega) - logdet)
        p = omega.shape[0]
        return float(np.linalg.norm(S_test @ omega - np.eye(p), ord="fro") ** 2)

    def _cross_validate(self, Y: np.ndarray, lambdas: np.ndarray) -> np.ndarray:
        n = Y.shape[0]
        folds = np.array_split(np.arange(n), self.control.folds)
        losses = np.zeros((len(folds), len(lambdas)))

        for f, test_idx in enumerate(folds):
            train = np.delete(Y, test_idx, axis=0)
            S_test = np.cov(Y[test_idx], rowvar=False, bias=True).reshape(Y.shape[1], Y.shape[1])
            path = self._solve_path(self._covariance(train), lambdas)
            losses[f] = [self._loss(S_test, omega) for omega in path]

        return losses.mean(axis=0)

    # -- public API ------------------------------------------------------------

    def __call__(self, Y: np.ndarray) -> np.ndarray:
        """
        Estimate the precision matrix of the columns of Y.

        Returns
        -------
        Omega : ndarray (p, p)
            Symmetric precision-matrix estimate in the original scale of Y.
        """
        Y = np.asarray(Y, dtype=float)
        n, p = Y.shape

        scale = np.ones(p)
        if self.control.standardize:
            scale = Y.std(axis=0)
            if np.any(scale == 0):
                raise EstimationError("Cannot standardize a constant column")
            Y = (Y - Y.mean(axis=0)) / scale

        lambdas = self.control.lambda_grid(n, p)
        logger.info(f"Estimating CLIME precision matrix: p={p}, {len(lambdas)} lambda values")

        if len(lambdas) > 1:
            cv_loss = self._cross_validate(Y, lambdas)
            if not np.any(np.isfinite(cv_loss)):
                raise EstimationError(
                    "Cross-validation loss is infinite for every lambda",
                    details="All fold estimates were indefinite; try loss='tracel2' or a larger lambda_max.",
                )
            self.cv_loss_ = cv_loss
            self.lambda_opt_ = float(lambdas[int(np.argmin(cv_loss))])
        else:
            self.lambda_opt_ = float(lambdas[0])

        logger.debug(f"CLIME lambda selected: {self.lambda_opt_:.4g}")
        omega = self._solve_path(self._covariance(Y), np.array([self.lambda_opt_]))[0]

        return omega / np.outer(scale, scale)


# =============================================================================
# MATRIX SQUARE ROOTS
# =============================================================================

def _symmetric_power(M: np.ndarray, power: float, name: str) -> np.ndarray:
    """M^power for a symmetric PSD matrix via eigen-decomposition."""
    try:
        vals, vecs = scipy.linalg.eigh(M)
    except (np.linalg.LinAlgError, ValueError) as e:
        raise NumericalError(f"Eigen-decomposition of {name} failed", details=str(e)) from e

    # Relative to the spectrum; condition numbers beyond 1e12 count as singular.
    tol = max(M.shape[0] * np.finfo(float).eps, 1e-12) * np.max(np.abs(vals))

    if power < 0:
        if np.min(vals) <= tol:
            logger.error(f"{name} is singular: smallest eigenvalue {np.min(vals):.3g}")
            raise NumericalError(
                f"{name} is singular or indefinite and cannot be inverted",
                details="With p close to or above n, use opt=2 (precision-matrix estimator).",
                context={"min_eigenvalue": float(np.min(vals))},
            )
    else:
        if np.min(vals) < -tol:
            logger.error(f"{name} is indefinite: smallest eigenvalue {np.min(vals):.3g}")
            raise NumericalError(
                f"{name} has negative eigenvalues and has no real square root",
                context={"min_eigenvalue": float(np.min(vals))},
            )
        vals = np.clip(vals, 0.0, None)

    return (vecs * vals ** power) @ vecs.T


def _check_estimate(Omega, p: int) -> np.ndarray:
    Omega = np.asarray(Omega, dtype=float)
    if Omega.shape != (p, p):
        raise DimensionError(
            "Precision estimator returned a matrix of the wrong shape",
            array_name="Omega",
            expected_shape=(p, p),
            actual_shape=Omega.shape,
        )
    if not np.all(np.isfinite(Omega)):
        raise NumericalError("Precision estimator returned NaN or Inf entries")
    if not np.allclose(Omega, Omega.T, rtol=1e-8, atol=1e-10):
        raise DimensionError(
            "Precision estimator returned an asymmetric matrix",
            array_name="Omega",
            details=f"max |Omega - Omega'| = {np.max(np.abs(Omega - Omega.T)):.3g}",
        )
    return 0.5 * (Omega + Omega.T)


# =============================================================================
# WHITENING
# =============================================================================

def whiten(
    Y: np.ndarray,
    method: Union[int, str, WhiteningMethod] = WhiteningMethod.SAMPLE_COVARIANCE,
    control: Optional[CLIMEControl] = None,
    precision_estimator: Optional[PrecisionEstimator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Normalize a series as y_t -> V^{-1/2} y_t.

    Parameters
    ----------
    Y : ndarray (n, p)
        Data matrix.
    method : WhiteningMethod, int or str
        1 / "sample_covariance" or 2 / "precision".
    control : CLIMEControl, optional
        Controls for the default CLIME estimator (PRECISION only).
    precision_estimator : callable, optional
        Replacement for CLIME: maps Y to a (p, p) symmetric PSD precision
        matrix (PRECISION only).

    Returns
    -------
    Y_tilde : ndarray (n, p)
        Y @ V^{-1/2}.
    V_inv_sqrt : ndarray (p, p)
        Symmetric V^{-1/2}.

    Raises
    ------
    DimensionError
        If the estimator returns a non (p, p) or asymmetric matrix.
    NumericalError
        If the covariance is singular or the precision estimate indefinite.
    EstimationError
        If the precision estimator fails.
    """
    method = WhiteningMethod.from_option(method)
    Y = validate_series(Y)
    p = Y.shape[1]

    if method == WhiteningMethod.SAMPLE_COVARIANCE:
        V = np.cov(Y, rowvar=False).reshape(p, p)
        V_inv_sqrt = _symmetric_power(V, -0.5, "Sample covariance")
    else:
        estimator = precision_estimator or CLIMEEstimator(control)
        try:
            Omega = estimator(Y)
        except HDTSAError:
            raise
        except Exception as e:
            logger.exception("Precision-matrix estimator failed.")
            raise EstimationError("Precision-matrix estimation failed", details=str(e)) from e
        Omega = _check_estimate(Omega, p)
        V_inv_sqrt = _symmetric_power(Omega, 0.5, "Precision matrix")

    logger.debug(f"Whitening complete ({method.value})")
    return Y @ V_inv_sqrt, V_inv_sqrt
