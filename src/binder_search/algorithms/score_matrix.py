"""
Shifted co-clustering probability matrix shared by all search workers.

The matrix is validated and shifted once per run, then frozen: workers only
ever read it (or take permuted copies), so no locking is needed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
import numpy as np

Array2D = np.ndarray


def validate_probabilities(probabilities: Array2D) -> np.ndarray:
    """
    Check that *probabilities* is a usable N×N co-clustering matrix.

    Args:
        probabilities: Array-like of shape (N, N)

    Returns:
        The matrix as a float64 array

    Raises:
        ValueError: If the matrix is empty, not square, contains non-finite
            entries or is not symmetric
    """
    P = np.asarray(probabilities, dtype=np.float64)
    if P.ndim != 2:
        raise ValueError(f"Probability matrix must be 2-D, got {P.ndim} dimension(s)")
    n_rows, n_cols = P.shape
    if n_rows != n_cols:
        raise ValueError(f"Probability matrix must be square, got shape {P.shape}")
    if n_rows == 0:
        raise ValueError("Probability matrix must contain at least one item")
    if not np.all(np.isfinite(P)):
        raise ValueError("Probability matrix contains non-finite entries")
    if not np.allclose(P, P.T):
        raise ValueError("Probability matrix must be symmetric")
    return P


def validate_threshold(threshold: float) -> float:
    """Return *threshold* as a float, rejecting negative or non-finite values."""
    c = float(threshold)
    if not math.isfinite(c) or c < 0:
        raise ValueError(f"threshold must be a finite, non-negative number, got {threshold}")
    return c


@dataclass(frozen=True)
class ScoreMatrix:
    """Read-only ``P - c`` together with what is needed to report the loss."""

    shifted: np.ndarray
    threshold: float
    total_probability: float

    @classmethod
    def from_probabilities(cls, probabilities: Array2D, threshold: float = 0.5) -> "ScoreMatrix":
        """Validate, shift and freeze a probability matrix."""
        P = validate_probabilities(probabilities)
        c = validate_threshold(threshold)
        shifted = P - c
        shifted.setflags(write=False)
        return cls(shifted=shifted, threshold=c, total_probability=float(P.sum()))

    @property
    def n_items(self) -> int:
        return self.shifted.shape[0]

    def permuted(self, order: np.ndarray) -> np.ndarray:
        """Return ``shifted[order][:, order]`` as a new (worker-owned) array."""
        return self.shifted[np.ix_(order, order)]
