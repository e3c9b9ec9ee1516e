from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from .backends.common import BackendResult, Status
from .errors import MaxIterationsExceeded
from .inputs import Determinacy
from .util import readonly


@dataclass(frozen=True)
class Solution:
    """Immutable result of fitting one observed profile."""

    exposures: np.ndarray  # (N,)
    reconstruction: np.ndarray  # A @ x, (K,)
    residual: np.ndarray  # b - A @ x, (K,)
    residual_norm: float
    backend: str
    status: Status
    iterations: int
    determinacy: Determinacy
    signature_names: Optional[Tuple[str, ...]] = None
    diagnostics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "diagnostics", MappingProxyType(dict(self.diagnostics)))

    # mappingproxy cannot be pickled; process pools ship solutions back.
    def __getstate__(self) -> Dict[str, Any]:
        state = dict(self.__dict__)
        state["diagnostics"] = dict(self.diagnostics)
        return state

    def __setstate__(self, state: Dict[str, Any]) -> None:
        for key, value in state.items():
            if isinstance(value, np.ndarray):
                value.setflags(write=False)
            object.__setattr__(self, key, value)
        object.__setattr__(self, "diagnostics", MappingProxyType(dict(state["diagnostics"])))

    @property
    def optimal(self) -> bool:
        return self.status == "converged"

    @property
    def observed(self) -> np.ndarray:
        return self.reconstruction + self.residual

    @property
    def total_exposure(self) -> float:
        return float(np.sum(self.exposures))

    @property
    def proportions(self) -> np.ndarray:
        """Exposures normalised to sum to one (all zeros if nothing is attributed)."""
        total = self.total_exposure
        if total == 0.0:
            return np.zeros_like(self.exposures)
        return self.exposures / total

    @property
    def relative_residual(self) -> float:
        """||b - A x|| / ||b||, zero for an all-zero profile."""
        norm_b = float(np.linalg.norm(self.observed))
        if norm_b == 0.0:
            return 0.0
        return self.residual_norm / norm_b

    @property
    def cosine_similarity(self) -> float:
        """Cosine similarity between the observed and reconstructed profiles."""
        b = self.observed
        nb = float(np.linalg.norm(b))
        nr = float(np.linalg.norm(self.reconstruction))
        if nb == 0.0 and nr == 0.0:
            return 1.0
        if nb == 0.0 or nr == 0.0:
            return 0.0
        return float(b @ self.reconstruction) / (nb * nr)

    def as_dict(self) -> Dict[str, float]:
        """Map signature name (or column index) to exposure."""
        names = self.signature_names or tuple(str(i) for i in range(self.exposures.shape[0]))
        return {n: float(v) for n, v in zip(names, self.exposures)}

    def raise_for_status(self) -> "Solution":
        """Raise MaxIterationsExceeded unless the backend reached optimality."""
        if not self.optimal:
            raise MaxIterationsExceeded(
                f"{self.backend} stopped before optimality ({self.status})",
                backend=self.backend,
                iterations=self.iterations,
                status=self.status,
            )
        return self

    def summary(self, digits: int = 4) -> str:
        """Return a human-readable summary string for the solution."""
        lines = [
            f"Solution(backend={self.backend!r}, status={self.status!r}, "
            f"determinacy={self.determinacy!r}, iterations={self.iterations})",
            f"  {'residual':>12s}: {self.residual_norm:.{digits}g}",
            f"  {'cosine':>12s}: {self.cosine_similarity:.{digits}g}",
        ]
        props = self.proportions
        for (name, v), p in zip(self.as_dict().items(), props):
            lines.append(f"  {name:>12s}: {v:.{digits}g} ({100.0 * float(p):.1f}%)")
        return "\n".join(lines)


def normalize_result(
    A: np.ndarray,
    b: np.ndarray,
    raw: BackendResult,
    *,
    backend: str,
    determinacy: Determinacy,
    signature_names: Optional[Sequence[str]] = None,
    diagnostics: Optional[Dict[str, Any]] = None,
) -> Solution:
    """Build a Solution from raw backend coefficients."""
    x = np.asarray(raw.x, dtype=float).reshape((-1,))
    if x.shape != (A.shape[1],):
        raise ValueError(
            f"{backend} returned {x.shape[0]} coefficients for {A.shape[1]} signatures."
        )
    reconstruction = A @ x
    residual = b - reconstruction

    diag: Dict[str, Any] = {"message": raw.message}
    diag.update(raw.stats or {})
    diag.update(diagnostics or {})

    return Solution(
        exposures=readonly(x),
        reconstruction=readonly(reconstruction),
        residual=readonly(residual),
        residual_norm=float(np.linalg.norm(residual)),
        backend=str(backend),
        status=raw.status,
        iterations=int(raw.iterations),
        determinacy=determinacy,
        signature_names=None if signature_names is None else tuple(str(n) for n in signature_names),
        diagnostics=diag,
    )
