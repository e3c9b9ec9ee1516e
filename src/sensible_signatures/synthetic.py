"""Seeded synthetic signature matrices and profiles for tests and examples."""

from __future__ import annotations

from typing import Any, Literal, Optional

import numpy as np


def make_signatures(
    n_channels: int,
    n_signatures: int,
    *,
    seed: int | np.random.Generator,
    concentration: float = 1.0,
) -> np.ndarray:
    """Random (n_channels, n_signatures) matrix whose columns sum to one.

    Each column is a Dirichlet draw, so it is a probability distribution
    over channels. The seed is required; nothing reads global RNG state.
    """
    if int(n_channels) < 1 or int(n_signatures) < 1:
        raise ValueError("n_channels and n_signatures must be >= 1.")
    if not concentration > 0.0:
        raise ValueError("concentration must be > 0.")
    rng = np.random.default_rng(seed)
    alpha = np.full(int(n_channels), float(concentration))
    return rng.dirichlet(alpha, size=int(n_signatures)).T


def make_profile(
    A: Any,
    exposures: Any,
    *,
    noise: Literal["none", "poisson"] = "none",
    seed: Optional[int | np.random.Generator] = None,
) -> np.ndarray:
    """Observed profile A @ exposures, optionally with Poisson count noise."""
    A = np.asarray(A, dtype=float)
    x = np.asarray(exposures, dtype=float)
    if A.ndim != 2 or x.shape != (A.shape[1],):
        raise ValueError(f"exposures must have shape ({A.shape[-1]},); got {x.shape}.")
    if np.any(x < 0.0):
        raise ValueError("exposures must be non-negative.")
    mean = A @ x
    if noise == "none":
        return mean
    if noise == "poisson":
        if seed is None:
            raise ValueError("noise='poisson' requires an explicit seed.")
        rng = np.random.default_rng(seed)
        return rng.poisson(mean).astype(float)
    raise ValueError(f"Unknown noise model {noise!r}.")
