from __future__ import annotations

from typing import Optional

import numpy as np

from ..options import SolveOptions
from ..util import deadline_after, expired
from .common import BackendResult, Status
from .lstsq import min_norm_lstsq


def _passive_solve(A: np.ndarray, b: np.ndarray, passive: np.ndarray) -> np.ndarray:
    """Unconstrained least squares restricted to the passive columns."""
    z = np.zeros(A.shape[1], dtype=float)
    idx = np.flatnonzero(passive)
    if idx.size:
        z[idx], _ = min_norm_lstsq(A[:, idx], b)
    return z


def active_set_nnls(
    A: np.ndarray,
    b: np.ndarray,
    *,
    max_iterations: int,
    tolerance: float,
    deadline: Optional[float] = None,
) -> tuple[np.ndarray, Status, int, np.ndarray]:
    """Lawson-Hanson active-set NNLS.

    Returns (x, status, iterations, dual) where dual = A^T (b - A x).
    Ties are broken towards the lowest index, both when choosing the
    variable entering the passive set and when choosing the bound that
    limits an interpolation step. x is feasible after every step, so the
    iterate returned on budget exhaustion is a valid non-negative point.
    """
    N = A.shape[1]
    x = np.zeros(N, dtype=float)
    passive = np.zeros(N, dtype=bool)
    skip = np.zeros(N, dtype=bool)
    tol = float(tolerance) * max(1.0, float(np.max(np.abs(A.T @ b))))
    iterations = 0

    while True:
        w = A.T @ (b - A @ x)
        candidates = ~passive & ~skip & (w > tol)
        if not np.any(candidates):
            return x, "converged", iterations, w
        if iterations >= max_iterations:
            return x, "max_iterations", iterations, w
        if expired(deadline):
            return x, "timeout", iterations, w

        # np.argmax returns the first maximum: lowest index on ties.
        j = int(np.argmax(np.where(candidates, w, -np.inf)))
        passive[j] = True
        iterations += 1

        z = _passive_solve(A, b, passive)
        if z[j] <= 0.0:
            # Rounding keeps j from entering; try the next candidate.
            passive[j] = False
            skip[j] = True
            continue
        skip[:] = False

        while not np.all(z[passive] > 0.0):
            if iterations >= max_iterations or expired(deadline):
                # x is the last feasible iterate but the passive set has not
                # settled, so it is not optimal whatever the zero set says.
                status: Status = "timeout" if expired(deadline) else "max_iterations"
                return x, status, iterations, A.T @ (b - A @ x)

            blocking = passive & (z <= 0.0)
            ratios = np.full(N, np.inf)
            ratios[blocking] = x[blocking] / (x[blocking] - z[blocking])
            k = int(np.argmin(ratios))

            x = x + ratios[k] * (z - x)
            x[k] = 0.0
            zero_tol = 10.0 * np.finfo(float).eps * max(1.0, float(np.max(x)))
            x[x <= zero_tol] = 0.0
            passive &= x > 0.0
            iterations += 1
            z = _passive_solve(A, b, passive)
        else:
            x = z


class NNLSBackend:
    """Non-negative least squares, minimising ||A x - b||^2 with x >= 0."""

    name = "nnls"
    constrained = True

    def solve(
        self,
        *,
        A: np.ndarray,
        b: np.ndarray,
        options: SolveOptions,
    ) -> BackendResult:
        N = A.shape[1]
        max_iterations = options.max_iterations
        if max_iterations is None:
            max_iterations = int(options.for_backend(self.name).get("maxiter", 3 * N))

        x, status, iterations, w = active_set_nnls(
            A,
            b,
            max_iterations=max_iterations,
            tolerance=options.tolerance,
            deadline=deadline_after(options.timeout),
        )
        passive = x > 0.0
        kkt_violation = max(
            float(np.max(w[~passive], initial=0.0)),
            float(np.max(np.abs(w[passive]), initial=0.0)),
        )

        if status == "converged":
            message = "ok"
        elif status == "max_iterations":
            message = f"iteration budget of {max_iterations} exhausted before KKT optimality"
        else:
            message = f"timed out after {options.timeout}s before KKT optimality"

        return BackendResult(
            x=x,
            status=status,
            iterations=iterations,
            message=message,
            stats={
                "backend": self.name,
                "max_iterations": max_iterations,
                "passive_set": tuple(int(i) for i in np.flatnonzero(passive)),
                "kkt_violation": kkt_violation,
            },
        )
