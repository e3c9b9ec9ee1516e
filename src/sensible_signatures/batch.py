from __future__ import annotations

from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple

import numpy as np

from .dispatch import SolverDispatcher
from .errors import DimensionMismatch, InvalidInput
from .inputs import as_signature_matrix
from .options import SolveOptions
from .result import Solution
from .util import flatten_batch, prod, unflatten_batch


@dataclass(frozen=True)
class BatchSolution:
    """Per-sample solutions for a batch of observed profiles."""

    solutions: Tuple[Solution, ...]  # flat, in input order
    batch_shape: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.solutions)

    def __iter__(self) -> Iterator[Solution]:
        return iter(self.solutions)

    def __getitem__(self, idx: Any) -> Solution:
        """Index by flat position or by a tuple into batch_shape."""
        if isinstance(idx, tuple):
            idx = int(np.ravel_multi_index(idx, self.batch_shape))
        return self.solutions[idx]

    @property
    def exposures(self) -> np.ndarray:
        """Exposure vectors stacked to batch_shape + (N,)."""
        return unflatten_batch(np.stack([s.exposures for s in self.solutions]), self.batch_shape)

    @property
    def residual_norms(self) -> np.ndarray:
        return np.asarray([s.residual_norm for s in self.solutions], dtype=float).reshape(self.batch_shape)

    @property
    def optimal(self) -> np.ndarray:
        return np.asarray([s.optimal for s in self.solutions], dtype=bool).reshape(self.batch_shape)


def _make_executor(kind: str, workers: Optional[int]) -> Executor:
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=workers)
    if kind == "process":
        return ProcessPoolExecutor(max_workers=workers)
    raise ValueError(f"Unknown executor {kind!r}. Use 'thread', 'process' or 'serial'.")


def solve_many(
    A: Any,
    B: Any,
    options: Optional[SolveOptions | Mapping[str, Any]] = None,
    *,
    signature_names: Optional[Sequence[str]] = None,
    workers: Optional[int] = None,
    executor: Literal["thread", "process", "serial"] = "thread",
    **overrides: Any,
) -> BatchSolution:
    """Fit every profile in B independently against the same signature matrix.

    B has shape batch_shape + (K,). Samples share nothing but A and the
    options, so they are mapped over a worker pool and collected in order.
    The first failing sample's error propagates.
    """
    dispatcher = SolverDispatcher(options, **overrides)
    A_arr = as_signature_matrix(A)
    try:
        B_arr = np.array(B, dtype=float, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Observed profiles are not numeric: {e}") from e
    if B_arr.ndim < 1:
        raise InvalidInput("Observed profiles must have at least one dimension.")

    rows, batch_shape = flatten_batch(B_arr)
    if rows.shape[1] != A_arr.shape[0]:
        raise DimensionMismatch(
            f"Signature matrix has {A_arr.shape[0]} channels but profiles have length {rows.shape[1]}.",
            channels=A_arr.shape[0],
            profile_length=rows.shape[1],
        )
    if prod(batch_shape) == 0:
        raise InvalidInput("No observed profiles to fit.")

    fit_one = partial(dispatcher.solve, A_arr, signature_names=signature_names)
    if executor == "serial" or workers == 1 or rows.shape[0] == 1:
        solutions: List[Solution] = [fit_one(row) for row in rows]
    else:
        with _make_executor(executor, workers) as pool:
            solutions = list(pool.map(fit_one, list(rows)))

    return BatchSolution(solutions=tuple(solutions), batch_shape=batch_shape)
