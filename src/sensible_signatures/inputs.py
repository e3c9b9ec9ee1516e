from __future__ import annotations

from typing import Any, Literal, Tuple

import numpy as np

from .errors import DimensionMismatch, InvalidInput

Determinacy = Literal["overdetermined", "underdetermined", "exactly-determined"]


def _as_float_array(value: Any, what: str) -> np.ndarray:
    try:
        return np.array(value, dtype=float, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"{what} is not numeric: {e}") from e


def _check_length(channels: int, length: int) -> None:
    if channels != length:
        raise DimensionMismatch(
            f"Signature matrix has {channels} channels but observed profile has length {length}.",
            channels=channels,
            profile_length=length,
        )


def as_signature_matrix(A: Any) -> np.ndarray:
    """Return A as a float64 (K, N) array, checking shape and finiteness."""
    arr = _as_float_array(A, "Signature matrix")
    _check_matrix_shape(arr)
    if not np.all(np.isfinite(arr)):
        raise InvalidInput("Signature matrix contains non-finite values.")
    return arr


def _check_matrix_shape(arr: np.ndarray) -> None:
    if arr.ndim != 2:
        raise InvalidInput(
            f"Signature matrix must be 2-D (channels x signatures); got ndim={arr.ndim}.",
            shape=arr.shape,
        )
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise InvalidInput(
            "Signature matrix must have at least one row and one column.", shape=arr.shape
        )


def as_observed_profile(b: Any, *, length: int | None = None) -> np.ndarray:
    """Return b as a float64 (K,) array, checking shape, finiteness and sign.

    When `length` is given the shape is checked against it before the values
    are inspected, so a wrongly sized profile always reports DimensionMismatch.
    """
    arr = _as_float_array(b, "Observed profile")
    if arr.ndim != 1:
        raise InvalidInput(
            f"Observed profile must be 1-D; got shape {arr.shape}.",
            shape=arr.shape,
        )
    if length is not None:
        _check_length(int(length), arr.shape[0])
    if not np.all(np.isfinite(arr)):
        raise InvalidInput("Observed profile contains non-finite values.")
    if np.any(arr < 0.0):
        bad = int(np.flatnonzero(arr < 0.0)[0])
        raise InvalidInput("Observed profile contains negative counts.", first_index=bad)
    return arr


def validate_inputs(A: Any, b: Any) -> Tuple[np.ndarray, np.ndarray]:
    """Check (A, b) and return float64 copies.

    Raises DimensionMismatch when the row count of A differs from len(b),
    and InvalidInput for malformed, non-finite or negative data. The row
    count is compared before the values of either array are inspected.
    """
    A_arr = _as_float_array(A, "Signature matrix")
    _check_matrix_shape(A_arr)
    b_arr = _as_float_array(b, "Observed profile")
    if b_arr.ndim == 1:
        _check_length(A_arr.shape[0], b_arr.shape[0])
    return as_signature_matrix(A_arr), as_observed_profile(b_arr, length=A_arr.shape[0])


def classify_determinacy(A: np.ndarray) -> Determinacy:
    """Classify a (K, N) signature matrix by the shape of A x = b.

    A square matrix without full rank has no unique solution either and is
    reported as underdetermined.
    """
    K, N = A.shape
    if K > N:
        return "overdetermined"
    if K < N:
        return "underdetermined"
    if np.linalg.matrix_rank(A) < N:
        return "underdetermined"
    return "exactly-determined"
