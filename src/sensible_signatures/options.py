from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional

METHODS = ("auto", "nnls", "lp", "qp", "lstsq")


@dataclass(frozen=True)
class SolveOptions:
    """Configuration for one solve call.

    method:
        "auto" (NNLS), or an explicit backend name.
    max_iterations:
        Iteration budget; None lets each backend pick its own default.
    tolerance:
        Relative optimality tolerance (KKT dual threshold for NNLS,
        convergence tolerance for the scipy solvers).
    fallback_on_failure:
        Retry once with the LP backend on numerical instability or
        non-convergence.
    timeout:
        Wall-clock seconds per backend attempt, checked once per iteration.
    condition_threshold:
        Largest acceptable condition number of the QP Gram matrix.
    compute_floor:
        Also run the unconstrained least-squares backend and record its
        residual norm in ``Solution.diagnostics["residual_floor"]``.
    backend_options:
        Extra solver options keyed by backend name, e.g.
        ``{"lp": {"presolve": False}, "qp": {"maxcor": 20}}``.
    """

    method: str = "auto"
    max_iterations: Optional[int] = None
    tolerance: float = 1e-10
    fallback_on_failure: bool = False
    timeout: Optional[float] = None
    condition_threshold: float = 1e10
    compute_floor: bool = False
    backend_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        method = "auto" if self.method is None else str(self.method).lower().strip()
        if method not in METHODS:
            raise ValueError(f"Unknown method {self.method!r}. Available: {METHODS}")
        object.__setattr__(self, "method", method)

        if self.max_iterations is not None:
            if int(self.max_iterations) < 1:
                raise ValueError("max_iterations must be >= 1.")
            object.__setattr__(self, "max_iterations", int(self.max_iterations))

        tol = float(self.tolerance)
        if not math.isfinite(tol) or tol < 0.0:
            raise ValueError("tolerance must be a finite value >= 0.")
        object.__setattr__(self, "tolerance", tol)

        if self.timeout is not None:
            t = float(self.timeout)
            if math.isnan(t) or t <= 0.0:
                raise ValueError("timeout must be > 0 seconds.")
            object.__setattr__(self, "timeout", t)

        thr = float(self.condition_threshold)
        if not thr > 1.0:
            raise ValueError("condition_threshold must be > 1.")
        object.__setattr__(self, "condition_threshold", thr)

        object.__setattr__(self, "fallback_on_failure", bool(self.fallback_on_failure))
        object.__setattr__(self, "compute_floor", bool(self.compute_floor))
        object.__setattr__(self, "backend_options", dict(self.backend_options or {}))

    @staticmethod
    def from_mapping(mapping: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "SolveOptions":
        """Build options from a plain mapping (e.g. a parsed config file)."""
        merged: Dict[str, Any] = dict(mapping or {})
        merged.update(overrides)
        known = {f.name for f in fields(SolveOptions)}
        unknown = sorted(set(merged) - known)
        if unknown:
            raise TypeError(f"Unknown solve options: {unknown}. Known: {sorted(known)}")
        return SolveOptions(**merged)

    def for_backend(self, name: str) -> Dict[str, Any]:
        """Return a copy of the extra options for one backend."""
        return dict(self.backend_options.get(name, None) or {})

    def with_method(self, method: str) -> "SolveOptions":
        """Return a copy using a different backend."""
        return replace(self, method=method)


def coerce_options(
    options: Optional[SolveOptions | Mapping[str, Any]] = None, **overrides: Any
) -> SolveOptions:
    """Accept SolveOptions, a mapping, or None, plus keyword overrides."""
    if options is None:
        return SolveOptions.from_mapping(None, **overrides)
    if isinstance(options, SolveOptions):
        return replace(options, **overrides) if overrides else options
    if isinstance(options, Mapping):
        return SolveOptions.from_mapping(options, **overrides)
    raise TypeError("options must be SolveOptions, a mapping, or None.")
