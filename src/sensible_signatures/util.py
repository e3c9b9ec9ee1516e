from __future__ import annotations

import time
from typing import Any, Optional, Tuple

import numpy as np


def prod(shape: Tuple[int, ...]) -> int:
    n = 1
    for s in shape:
        n *= int(s)
    return int(n)


def flatten_batch(arr: np.ndarray) -> Tuple[np.ndarray, Tuple[int, ...]]:
    """Flatten batch dimensions of an array shaped batch_shape + (K,).

    Returns
    -------
    arr_flat : ndarray, shape (B, K) where B=prod(batch_shape)
    batch_shape : tuple
        Empty tuple means a single profile.
    """
    arr = np.asarray(arr)
    if arr.ndim == 1:
        return arr[None, :], ()
    batch_shape = tuple(arr.shape[:-1])
    B = prod(batch_shape)
    K = arr.shape[-1]
    return arr.reshape(B, K), batch_shape


def unflatten_batch(values: np.ndarray, batch_shape: Tuple[int, ...]) -> np.ndarray:
    """Unflatten arrays with leading dimension B back to batch_shape."""
    values = np.asarray(values)
    if batch_shape == ():
        return values.reshape(values.shape[1:])
    return values.reshape(batch_shape + values.shape[1:])


def readonly(arr: Any) -> np.ndarray:
    """Return a float copy of arr that cannot be written to."""
    out = np.array(arr, dtype=float, copy=True)
    out.setflags(write=False)
    return out


def deadline_after(timeout: Optional[float]) -> Optional[float]:
    """Monotonic deadline for a timeout in seconds (None means no limit)."""
    if timeout is None:
        return None
    return time.monotonic() + float(timeout)


def expired(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline

