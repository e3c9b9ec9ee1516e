from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple
from warnings import warn

import numpy as np

from .backends import AVAILABLE_BACKENDS, Backend, BackendResult, get_backend
from .errors import (
    InvalidInput,
    NonOptimalWarning,
    NumericalInstability,
    SignatureFitError,
    UnderdeterminedWarning,
)
from .inputs import Determinacy, classify_determinacy, validate_inputs
from .options import SolveOptions, coerce_options
from .result import Solution, normalize_result

DispatchState = Literal["validating", "dispatching", "solving", "normalizing", "done", "failed"]

DEFAULT_METHOD = "nnls"
FALLBACK_METHOD = "lp"


class SolverDispatcher:
    """Select a backend for (A, b), run it, and normalise the outcome.

    Each call walks validating -> dispatching -> solving -> normalizing ->
    done; the visited states end up in ``Solution.diagnostics["states"]``,
    and a failure records them (ending in "failed") in the error context.
    The dispatcher holds no per-call state, so one instance can be shared
    between threads.
    """

    def __init__(
        self,
        options: Optional[SolveOptions | Mapping[str, Any]] = None,
        *,
        backends: Optional[Mapping[str, Backend]] = None,
        **overrides: Any,
    ) -> None:
        self.options = coerce_options(options, **overrides)
        table: Dict[str, Backend] = {name: get_backend(name) for name in AVAILABLE_BACKENDS}
        table.update(dict(backends or {}))
        self.backends: Dict[str, Backend] = table

    def select_method(self, determinacy: Determinacy) -> str:
        """Explicit method wins; otherwise NNLS for every problem shape."""
        if self.options.method != "auto":
            return self.options.method
        return DEFAULT_METHOD

    def solve(
        self,
        A: Any,
        b: Any,
        *,
        signature_names: Optional[Sequence[str]] = None,
    ) -> Solution:
        states: List[DispatchState] = ["validating"]
        try:
            A_arr, b_arr = validate_inputs(A, b)
            names = _check_signature_names(signature_names, A_arr.shape[1])
            determinacy = classify_determinacy(A_arr)

            states.append("dispatching")
            method = self.select_method(determinacy)
            if method not in self.backends:
                raise ValueError(
                    f"Unknown backend {method!r}. Available: {tuple(self.backends.keys())}"
                )
            if determinacy == "underdetermined":
                warn(
                    f"Signature matrix is underdetermined ({A_arr.shape[0]} channels, "
                    f"{A_arr.shape[1]} signatures): the {method} solution is one of "
                    "possibly infinitely many.",
                    UnderdeterminedWarning,
                    stacklevel=2,
                )

            states.append("solving")
            raw, used, attempts = self._run_with_fallback(A_arr, b_arr, method)
            if not raw.optimal:
                warn(
                    f"{used} returned a non-optimal result ({raw.status}): {raw.message}",
                    NonOptimalWarning,
                    stacklevel=2,
                )

            states.append("normalizing")
            diagnostics: Dict[str, Any] = {
                "requested_method": method,
                "fallback_used": used != method,
                "attempts": tuple(attempts),
            }
            if self.options.compute_floor:
                floor = self.backends["lstsq"].solve(A=A_arr, b=b_arr, options=self.options)
                diagnostics.update(_residual_floor(A_arr, b_arr, floor.x))
            diagnostics["states"] = tuple(states) + ("done",)

            return normalize_result(
                A_arr,
                b_arr,
                raw,
                backend=used,
                determinacy=determinacy,
                signature_names=names,
                diagnostics=diagnostics,
            )
        except SignatureFitError as e:
            states.append("failed")
            e.context.setdefault("states", tuple(states))
            raise

    def _attempt(
        self,
        name: str,
        A: np.ndarray,
        b: np.ndarray,
        attempts: List[Dict[str, Any]],
    ) -> BackendResult:
        options = self.options.with_method(name)
        try:
            r = self.backends[name].solve(A=A, b=b, options=options)
        except SignatureFitError as e:
            attempts.append({"backend": name, "error": type(e).__name__, "message": str(e)})
            raise
        attempts.append(
            {
                "backend": name,
                "status": r.status,
                "iterations": int(r.iterations),
                "message": str(r.message),
            }
        )
        return r

    def _can_fall_back(self, method: str) -> bool:
        return (
            self.options.fallback_on_failure
            and method != FALLBACK_METHOD
            and FALLBACK_METHOD in self.backends
        )

    def _run_with_fallback(
        self, A: np.ndarray, b: np.ndarray, method: str
    ) -> Tuple[BackendResult, str, List[Dict[str, Any]]]:
        """Run `method`, retrying once with LP when configured.

        Only NumericalInstability and non-optimal results are retried.
        InternalInfeasibility is a defect and always propagates.
        """
        attempts: List[Dict[str, Any]] = []
        primary: Optional[BackendResult] = None
        try:
            primary = self._attempt(method, A, b, attempts)
        except NumericalInstability as e:
            if not self._can_fall_back(method):
                raise
            primary_error: Optional[NumericalInstability] = e
        else:
            if primary.optimal or not self._can_fall_back(method):
                return primary, method, attempts
            primary_error = None

        try:
            retry = self._attempt(FALLBACK_METHOD, A, b, attempts)
        except NumericalInstability as e:
            if primary is None:
                raise e from primary_error
            return primary, method, attempts

        if primary is not None and not retry.optimal:
            return primary, method, attempts
        return retry, FALLBACK_METHOD, attempts


def _check_signature_names(names: Optional[Sequence[str]], n: int) -> Optional[Tuple[str, ...]]:
    if names is None:
        return None
    if isinstance(names, str):
        raise InvalidInput("signature_names must be a sequence of names, not a string.")
    out = tuple(str(s) for s in names)
    if len(out) != n:
        raise InvalidInput(
            f"Got {len(out)} signature names for {n} signatures.",
            signature_count=n,
        )
    if len(set(out)) != len(out):
        raise InvalidInput("Duplicate signature names.")
    return out


def _residual_floor(A: np.ndarray, b: np.ndarray, x_ls: np.ndarray) -> Dict[str, float]:
    """Unconstrained residual floor and the residual of its non-negative clip."""
    x_clip = np.maximum(x_ls, 0.0)
    return {
        "residual_floor": float(np.linalg.norm(b - A @ x_ls)),
        "projected_residual": float(np.linalg.norm(b - A @ x_clip)),
    }


def solve(
    A: Any,
    b: Any,
    options: Optional[SolveOptions | Mapping[str, Any]] = None,
    *,
    signature_names: Optional[Sequence[str]] = None,
    **overrides: Any,
) -> Solution:
    """Fit observed profile b against the signature columns of A.

    Options can be passed as SolveOptions, a mapping, or keyword overrides
    (method=..., max_iterations=..., tolerance=..., fallback_on_failure=...).
    """
    return SolverDispatcher(options, **overrides).solve(A, b, signature_names=signature_names)
