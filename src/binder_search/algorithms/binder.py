"""
Binder loss evaluation.

Internally the search maximizes the *score* of a partition: the sum of the
shifted matrix entries ``P[i, j] - c`` over all pairs ``i < j`` placed in the
same cluster. The expected Binder loss reported to callers is a fixed linear
transform of that score.

Two evaluation paths are provided. ``"naive"`` walks the upper triangle pair
by pair; ``"tiled"`` walks it in square blocks and selects same-cluster
entries with vectorized masks. Both feed the selected entries to an
exactly-rounded sum (``math.fsum``), so the result does not depend on the
order entries are visited in and the two paths agree bit for bit.
"""

from __future__ import annotations

import math
from typing import List
import numpy as np

from .score_matrix import validate_probabilities, validate_threshold

TILE_SIZE = 64

EVALUATION_METHODS = ("naive", "tiled")


def _check_labels(scores: np.ndarray, labels: np.ndarray) -> np.ndarray:
    labels = np.asarray(labels)
    if labels.ndim != 1 or labels.shape[0] != scores.shape[0]:
        raise ValueError(
            f"labels must have length {scores.shape[0]}, got shape {labels.shape}"
        )
    return labels


def binder_score_naive(scores: np.ndarray, labels: np.ndarray) -> float:
    """Reference pair-by-pair evaluation of the partition score."""
    labels = _check_labels(scores, labels).tolist()
    n = len(labels)
    selected: List[float] = []
    for i in range(n):
        row = scores[i]
        for j in range(i + 1, n):
            if labels[i] == labels[j]:
                selected.append(float(row[j]))
    return math.fsum(selected)


def binder_score_tiled(
    scores: np.ndarray, labels: np.ndarray, tile_size: int = TILE_SIZE
) -> float:
    """
    Block-wise evaluation of the partition score.

    The upper triangle is covered by ``tile_size`` × ``tile_size`` blocks;
    diagonal blocks keep only their strict upper triangle.
    """
    labels = _check_labels(scores, labels)
    if tile_size < 1:
        raise ValueError(f"tile_size must be >= 1, got {tile_size}")
    n = labels.shape[0]
    parts: List[np.ndarray] = []
    for r0 in range(0, n, tile_size):
        r1 = min(r0 + tile_size, n)
        row_labels = labels[r0:r1, None]
        for c0 in range(r0, n, tile_size):
            c1 = min(c0 + tile_size, n)
            same = row_labels == labels[None, c0:c1]
            if c0 == r0:
                same = np.triu(same, k=1)
            if same.any():
                parts.append(scores[r0:r1, c0:c1][same])
    if not parts:
        return 0.0
    return math.fsum(np.concatenate(parts).tolist())


def binder_score(scores: np.ndarray, labels: np.ndarray, method: str = "tiled") -> float:
    """
    Score a partition: sum of ``scores[i, j]`` over same-cluster pairs ``i < j``.

    Args:
        scores: Shifted score matrix of shape (N, N), possibly permuted
        labels: Cluster labels of length N in the same item order
        method: "tiled" (default) or "naive"

    Returns:
        The partition score (higher is better)
    """
    if method == "tiled":
        return binder_score_tiled(scores, labels)
    if method == "naive":
        return binder_score_naive(scores, labels)
    raise ValueError(f"method must be one of {EVALUATION_METHODS}, got {method!r}")


def reported_loss(score: float, total_probability: float, threshold: float) -> float:
    """
    Convert an internal score into the reported Binder loss.

    ``loss = (1 - c) * sum(P) - 2 * score`` where ``sum(P)`` runs over the
    whole unshifted matrix (diagonal and both triangles) while *score* only
    covers the upper triangle. Lower is better.
    """
    return (1.0 - threshold) * total_probability - 2.0 * score


def binder_loss(probabilities: np.ndarray, labels: np.ndarray, threshold: float = 0.5) -> float:
    """
    Reported Binder loss of an arbitrary labelling.

    Args:
        probabilities: Co-clustering probability matrix of shape (N, N)
        labels: Cluster labels of length N (any integer coding)
        threshold: Binder loss constant ``c``

    Returns:
        Loss on the same scale as ``RunResult.binder_loss``
    """
    P = validate_probabilities(probabilities)
    c = validate_threshold(threshold)
    score = binder_score(P - c, labels)
    return reported_loss(score, float(P.sum()), c)
