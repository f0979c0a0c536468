"""
Canonical relabelling of search results.
"""

from __future__ import annotations

import numpy as np


def canonicalize_labels(labels: np.ndarray) -> np.ndarray:
    """
    Relabel clusters ``1..k`` in order of first appearance.

    Scanning items by index, the first label seen becomes 1, the next new
    label 2, and so on, so equivalent partitions get identical labels.

    Args:
        labels: Cluster labels of shape (n_samples,), any integer coding

    Returns:
        Integer array of shape (n_samples,) with values in ``1..k``
    """
    labels = np.asarray(labels)
    if labels.ndim != 1:
        raise ValueError(f"labels must be 1-D, got shape {labels.shape}")
    if labels.size == 0:
        return np.zeros(0, dtype=int)
    _, first_index, inverse = np.unique(labels, return_index=True, return_inverse=True)
    rank = np.empty(len(first_index), dtype=int)
    rank[np.argsort(first_index)] = np.arange(1, len(first_index) + 1)
    return rank[inverse.reshape(-1)]
