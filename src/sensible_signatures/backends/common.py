from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Protocol

import numpy as np

from ..options import SolveOptions

Status = Literal["converged", "max_iterations", "timeout"]


@dataclass(frozen=True)
class BackendResult:
    """Raw result returned by any backend."""

    x: np.ndarray  # coefficients, shape (N,)
    status: Status = "converged"
    iterations: int = 0
    message: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def optimal(self) -> bool:
        return self.status == "converged"


class Backend(Protocol):
    """Backend protocol: solve A x = b for one observed profile."""

    name: str
    constrained: bool

    def solve(
        self,
        *,
        A: np.ndarray,
        b: np.ndarray,
        options: SolveOptions,
    ) -> BackendResult: ...
