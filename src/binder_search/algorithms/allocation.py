"""
Greedy sequential allocation: the warm start for each search iteration.
"""

from __future__ import annotations

import numpy as np

from .partition import Partition, cluster_affinities


def sequential_allocation(scores: np.ndarray, max_clusters: int) -> Partition:
    """
    Build a partition by placing items one at a time in matrix order.

    Item 0 opens cluster 0. Each following item ``k`` is scored against every
    existing cluster plus one new-cluster slot (never more than
    *max_clusters* clusters in total); the score of cluster ``t`` is the sum
    of ``scores[k, j]`` over items ``j < k`` already in ``t``. The first
    maximum wins, so an existing cluster beats opening a new one on ties.

    Args:
        scores: Shifted score matrix of shape (N, N), already permuted into
            the order the items should be visited in
        max_clusters: Upper bound on the number of clusters (>= 1)

    Returns:
        Partition of the N items (in the permuted order)
    """
    n = scores.shape[0]
    if max_clusters < 1:
        raise ValueError(f"max_clusters must be >= 1, got {max_clusters}")

    partition = Partition(n)
    if n == 0:
        return partition
    partition.assign(0, 0)

    for k in range(1, n):
        n_candidates = partition.n_candidates(max_clusters)
        # Only items 0..k-1 are placed, the rest are still UNASSIGNED.
        affinity = cluster_affinities(scores[k, :k], partition.labels[:k], n_candidates)
        partition.assign(k, int(np.argmax(affinity)))

    return partition
