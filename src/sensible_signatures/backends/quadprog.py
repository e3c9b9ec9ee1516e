from __future__ import annotations

from typing import Any, Dict

import numpy as np
from scipy.optimize import minimize

from ..errors import NumericalInstability
from ..options import SolveOptions
from ..util import deadline_after, expired
from .common import BackendResult


class QPBackend:
    name = "qp"
    constrained = True

    def solve(
        self,
        *,
        A: np.ndarray,
        b: np.ndarray,
        options: SolveOptions,
    ) -> BackendResult:
        """Bound-constrained quadratic program on the Gram matrix.

        Minimises x^T G x - 2 c^T x with G = A^T A, c = A^T b and x >= 0,
        which equals ||A x - b||^2 up to a constant. The problem is rescaled
        by max(b) so the objective is O(1) regardless of the count scale.

        Backend options:
        - method: scipy.optimize.minimize method (default: L-BFGS-B)
        - options: dict forwarded to scipy.optimize.minimize
        """
        N = A.shape[1]
        gram = A.T @ A
        cond = float(np.linalg.cond(gram))
        if not np.isfinite(cond) or cond > options.condition_threshold:
            raise NumericalInstability(
                "Gram matrix A^T A is singular or ill-conditioned",
                backend=self.name,
                condition_number=cond,
                threshold=options.condition_threshold,
            )

        scale = float(np.max(b))
        if scale == 0.0:
            return BackendResult(
                x=np.zeros(N, dtype=float),
                status="converged",
                iterations=0,
                message="zero observed profile",
                stats={"backend": self.name, "condition_number": cond},
            )
        c = A.T @ (b / scale)

        def objective(y: np.ndarray) -> tuple[float, np.ndarray]:
            gy = gram @ y
            return float(y @ gy - 2.0 * c @ y), 2.0 * (gy - c)

        backend_opts: Dict[str, Any] = options.for_backend(self.name)
        method = str(backend_opts.pop("method", "L-BFGS-B"))
        scipy_opts: Dict[str, Any] = dict(backend_opts.pop("options", {}) or {})
        scipy_opts.update(backend_opts)
        if options.max_iterations is not None:
            scipy_opts["maxiter"] = int(options.max_iterations)
        if method.upper() == "L-BFGS-B":
            scipy_opts.setdefault("ftol", max(options.tolerance, 1e-12))
            scipy_opts.setdefault("gtol", max(options.tolerance, 1e-10))

        deadline = deadline_after(options.timeout)
        timed_out = False

        def callback(intermediate_result: Any) -> None:
            nonlocal timed_out
            if expired(deadline):
                timed_out = True
                raise StopIteration

        res = minimize(
            objective,
            np.zeros(N, dtype=float),
            jac=True,
            method=method,
            bounds=[(0.0, None)] * N,
            options=scipy_opts,
            callback=callback if deadline is not None else None,
        )

        y = np.maximum(np.asarray(res.x, dtype=float), 0.0)
        y = _polish_on_support(gram, c, y)
        kkt_violation = _projected_gradient_norm(gram, c, y)
        kkt_tol = max(options.tolerance, 1e-8) * max(1.0, float(np.max(np.abs(c))))

        iterations = int(getattr(res, "nit", 0) or 0)
        if timed_out:
            status = "timeout"
        elif kkt_violation <= kkt_tol or bool(res.success):
            status = "converged"
        elif int(res.status) == 1:
            status = "max_iterations"
        else:
            raise NumericalInstability(
                "quadratic program did not converge",
                backend=self.name,
                condition_number=cond,
                iterations=iterations,
                solver_message=str(res.message),
            )

        return BackendResult(
            x=y * scale,
            status=status,
            iterations=iterations,
            message=str(res.message),
            stats={
                "backend": self.name,
                "method": method,
                "condition_number": cond,
                "kkt_violation": kkt_violation,
            },
        )


def _projected_gradient_norm(gram: np.ndarray, c: np.ndarray, y: np.ndarray) -> float:
    """Largest KKT violation of x^T G x - 2 c^T x at y under y >= 0."""
    grad = 2.0 * (gram @ y - c)
    pg = np.where(y > 0.0, grad, np.minimum(grad, 0.0))
    return float(np.max(np.abs(pg), initial=0.0))


def _polish_on_support(gram: np.ndarray, c: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Solve the equality-constrained problem on the support of y.

    Quasi-Newton iterates stop short of the exact optimum; when the
    support has been identified correctly, one linear solve on it lands on
    the vertex. The clipped polished point is kept only if it does not raise the
    KKT violation.
    """
    support = y > 1e-9 * max(1.0, float(np.max(y, initial=0.0)))
    if not np.any(support):
        return y
    idx = np.ix_(support, support)
    try:
        sub = np.linalg.solve(gram[idx], c[support])
    except np.linalg.LinAlgError:
        return y
    polished = np.zeros_like(y)
    polished[support] = np.maximum(sub, 0.0)
    if _projected_gradient_norm(gram, c, polished) <= _projected_gradient_norm(gram, c, y):
        return polished
    return y
