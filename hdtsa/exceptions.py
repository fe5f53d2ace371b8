"""
exceptions.py - Error Hierarchy for hdtsa

Every failure raised by the library derives from HDTSAError. The concrete
kinds also derive from the matching builtin so that callers catching
ValueError / ArithmeticError / RuntimeError keep working:

- DimensionError:  shapes that do not fit (Y not 2D, lag_k >= n, collaborator
                   returning a non p x p or asymmetric matrix)
- NumericalError:  NaN/Inf, LAPACK failures, indefinite matrices
- ConfigError:     invalid option values or missing required parameters
- EstimationError: failure inside the precision-matrix collaborator
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class HDTSAError(Exception):
    """
    Base class for all hdtsa errors.

    Parameters
    ----------
    message : str
        Primary error message.
    details : str, optional
        Extra explanation appended to the message.
    context : dict, optional
        Key/value diagnostics (shapes, parameter values) appended to the message.
    """

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"
        if self.context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in self.context.items())
            full_message += f"\n\nContext:\n{context_str}"

        super().__init__(full_message)


class DimensionError(HDTSAError, ValueError):
    """Raised when an array has the wrong shape for the requested operation."""

    def __init__(
        self,
        message: str,
        array_name: Optional[str] = None,
        expected_shape: Optional[Any] = None,
        actual_shape: Optional[Any] = None,
        details: Optional[str] = None,
    ) -> None:
        self.array_name = array_name
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape

        context: Dict[str, Any] = {}
        if array_name:
            context["Array"] = array_name
        if expected_shape is not None:
            context["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context["Actual Shape"] = actual_shape

        super().__init__(message, details, context)


class NumericalError(HDTSAError, ArithmeticError):
    """Raised for non-finite values or failed/ill-posed linear algebra."""


class ConfigError(HDTSAError, ValueError):
    """Raised when an option is outside its enumerated or admissible range."""

    def __init__(
        self,
        message: str,
        param_name: Optional[str] = None,
        param_value: Optional[Any] = None,
        details: Optional[str] = None,
    ) -> None:
        self.param_name = param_name
        self.param_value = param_value

        context: Dict[str, Any] = {}
        if param_name:
            context["Parameter"] = param_name
        if param_value is not None:
            context["Value"] = param_value

        super().__init__(message, details, context)


class EstimationError(HDTSAError, RuntimeError):
    """Raised when the precision-matrix estimator fails."""
