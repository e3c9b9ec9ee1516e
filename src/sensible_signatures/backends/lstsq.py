from __future__ import annotations

import numpy as np
from scipy.linalg import qr, solve_triangular

from ..options import SolveOptions
from .common import BackendResult


def min_norm_lstsq(A: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, int]:
    """Minimum-norm least-squares solution of A x = b and the numerical rank.

    Uses column-pivoted QR, A P = Q R. When A is rank deficient the leading
    rows of R are factorised once more (a complete orthogonal decomposition)
    so the returned x has the smallest norm among all minimisers.
    """
    K, N = A.shape
    Q, R, perm = qr(A, mode="economic", pivoting=True)
    qtb = Q.T @ b

    diag = np.abs(np.diag(R))
    if diag.size == 0 or diag[0] == 0.0:
        return np.zeros(N, dtype=float), 0
    tol = max(K, N) * np.finfo(float).eps * diag[0]
    rank = int(np.count_nonzero(diag > tol))

    x_perm = np.zeros(N, dtype=float)
    if rank == N:
        x_perm = solve_triangular(R[:N, :N], qtb[:N], lower=False)
    else:
        # R1 = T^T Z^T with Z (N, rank) orthonormal.
        Z, T = np.linalg.qr(R[:rank, :].T)
        y = solve_triangular(T, qtb[:rank], trans="T", lower=False)
        x_perm = Z @ y

    x = np.zeros(N, dtype=float)
    x[perm] = x_perm
    return x, rank


class LeastSquaresBackend:
    """Unconstrained least squares; coefficients may be negative."""

    name = "lstsq"
    constrained = False

    def solve(
        self,
        *,
        A: np.ndarray,
        b: np.ndarray,
        options: SolveOptions,
    ) -> BackendResult:
        x, rank = min_norm_lstsq(A, b)
        return BackendResult(
            x=x,
            status="converged",
            iterations=0,
            message="ok",
            stats={"backend": self.name, "rank": rank},
        )
