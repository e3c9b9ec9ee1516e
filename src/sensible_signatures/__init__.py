"""sensible_signatures public API."""
from .backends import AVAILABLE_BACKENDS, get_backend
from .batch import BatchSolution, solve_many
from .dispatch import SolverDispatcher, solve
from .errors import (
    DimensionMismatch,
    InternalInfeasibility,
    InvalidInput,
    MaxIterationsExceeded,
    NonOptimalWarning,
    NumericalInstability,
    SignatureFitError,
    UnderdeterminedWarning,
)
from .inputs import classify_determinacy, validate_inputs
from .options import SolveOptions
from .result import Solution
from . import synthetic

__all__ = [
    "AVAILABLE_BACKENDS",
    "BatchSolution",
    "DimensionMismatch",
    "InternalInfeasibility",
    "InvalidInput",
    "MaxIterationsExceeded",
    "NonOptimalWarning",
    "NumericalInstability",
    "SignatureFitError",
    "Solution",
    "SolveOptions",
    "SolverDispatcher",
    "UnderdeterminedWarning",
    "classify_determinacy",
    "get_backend",
    "solve",
    "solve_many",
    "synthetic",
    "validate_inputs",
]
