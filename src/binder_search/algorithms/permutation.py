"""
Random item orderings for sequential allocation.
"""

from __future__ import annotations

from typing import Optional
import numpy as np


def random_permutation(n: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Draw a uniformly random permutation of ``0..n-1``.

    Args:
        n: Number of items
        rng: Generator owned by the caller. When omitted a fresh generator
            seeded from OS entropy is created, so concurrent callers never
            share random state.

    Returns:
        1-D integer array of length *n*
    """
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    if rng is None:
        rng = np.random.default_rng()
    return rng.permutation(n)
