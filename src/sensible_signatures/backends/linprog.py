from __future__ import annotations

from typing import Any, Dict

import numpy as np
from scipy.optimize import linprog

from ..errors import InternalInfeasibility, NumericalInstability
from ..options import SolveOptions
from .common import BackendResult


class LPBackend:
    name = "lp"
    constrained = True

    def solve(
        self,
        *,
        A: np.ndarray,
        b: np.ndarray,
        options: SolveOptions,
    ) -> BackendResult:
        """Least absolute deviation fit with scipy.optimize.linprog.

        Variables are [x (N), s (K)]; minimise sum(s) subject to
        A x - s <= b, -A x - s <= -b, x >= 0, s >= 0. The point x = 0,
        s = b is always feasible for non-negative b, so an infeasible or
        unbounded report means the constraints were built wrongly.

        Backend options (forwarded to linprog's ``options``):
        - method (default: "highs")
        - any HiGHS option, e.g. presolve, dual_feasibility_tolerance
        """
        K, N = A.shape
        c = np.concatenate([np.zeros(N), np.ones(K)])
        eye = np.eye(K)
        A_ub = np.block([[A, -eye], [-A, -eye]])
        b_ub = np.concatenate([b, -b])

        backend_opts: Dict[str, Any] = options.for_backend(self.name)
        method = str(backend_opts.pop("method", "highs"))
        lp_opts: Dict[str, Any] = dict(backend_opts.pop("options", {}) or {})
        lp_opts.update(backend_opts)
        if options.max_iterations is not None:
            lp_opts["maxiter"] = int(options.max_iterations)
        if options.timeout is not None:
            lp_opts["time_limit"] = float(options.timeout)

        res = linprog(
            c,
            A_ub=A_ub,
            b_ub=b_ub,
            bounds=[(0.0, None)] * (N + K),
            method=method,
            options=lp_opts,
        )

        status_code = int(res.status)
        iterations = int(getattr(res, "nit", 0) or 0)
        stats: Dict[str, Any] = {
            "backend": self.name,
            "method": method,
            "linprog_status": status_code,
        }

        if status_code in (2, 3):
            raise InternalInfeasibility(
                f"linprog reported an {'infeasible' if status_code == 2 else 'unbounded'} "
                "L1 formulation that is feasible by construction",
                backend=self.name,
                iterations=iterations,
                solver_message=str(res.message),
            )
        if status_code == 4:
            raise NumericalInstability(
                "linprog ran into numerical difficulties",
                backend=self.name,
                iterations=iterations,
                solver_message=str(res.message),
            )

        if res.x is None:
            # Iteration or time limit hit before any point was reported.
            x = np.zeros(N, dtype=float)
        else:
            x = np.maximum(np.asarray(res.x[:N], dtype=float), 0.0)
            stats["l1_residual"] = float(res.fun)

        if status_code == 0:
            status = "converged"
        elif "time" in str(res.message).lower():
            status = "timeout"
        else:
            status = "max_iterations"

        return BackendResult(
            x=x,
            status=status,
            iterations=iterations,
            message=str(res.message),
            stats=stats,
        )
