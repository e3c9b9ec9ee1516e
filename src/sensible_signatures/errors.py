"""Exception and warning types raised by sensible_signatures."""

from __future__ import annotations

from typing import Any, Dict


class SignatureFitError(Exception):
    """Base class for all fitting failures.

    Keyword arguments are kept as diagnostic context (backend name,
    condition number, iteration count, ...) and appended to the message.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    @property
    def backend(self) -> Any:
        return self.context.get("backend")

    def __str__(self) -> str:
        if not self.context:
            return self.message
        extra = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({extra})"


class DimensionMismatch(SignatureFitError, ValueError):
    """Rows of the signature matrix do not match the observed profile length."""


class InvalidInput(SignatureFitError, ValueError):
    """Malformed, non-finite or negative input data."""


class NumericalInstability(SignatureFitError, ArithmeticError):
    """Ill-conditioned problem or solver-internal near-singularity."""


class MaxIterationsExceeded(SignatureFitError, RuntimeError):
    """An iterative backend stopped before reaching optimality."""


class InternalInfeasibility(SignatureFitError, RuntimeError):
    """A provably feasible formulation was reported infeasible."""


class UnderdeterminedWarning(UserWarning):
    """Fewer channels than signatures: the solution is not unique."""


class NonOptimalWarning(UserWarning):
    """A backend returned its best iterate without reaching optimality."""
