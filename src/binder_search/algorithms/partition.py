"""
Partition of items into dense cluster ids with a membership index.

Cluster ids are always ``0..n_clusters-1`` and are handed out in first-use
order. Alongside the label array the partition keeps, per cluster id, the
sorted list of member items, so a move or a gap compaction only touches the
items of the clusters involved. Affinity scoring reads the label array
directly with one ``bincount`` per row.
"""

from __future__ import annotations

from bisect import bisect_left, insort
from typing import List, Optional
import numpy as np

UNASSIGNED = -1


class Partition:
    """Mutable clustering of ``n_items`` items, owned by a single worker."""

    def __init__(self, n_items: int):
        if n_items < 0:
            raise ValueError(f"n_items must be >= 0, got {n_items}")
        self.labels = np.full(n_items, UNASSIGNED, dtype=np.intp)
        self.members: List[List[int]] = []

    @classmethod
    def from_labels(cls, labels: np.ndarray) -> "Partition":
        """
        Build a partition from any integer labelling.

        Labels are renumbered densely in order of first appearance, so
        ``[7, 7, 3, 7, 9]`` becomes ``[0, 0, 1, 0, 2]``.
        """
        labels = np.asarray(labels)
        partition = cls(len(labels))
        mapping = {}
        for item, label in enumerate(labels.tolist()):
            if label not in mapping:
                mapping[label] = len(mapping)
            partition.assign(item, mapping[label])
        return partition

    @property
    def n_items(self) -> int:
        return len(self.labels)

    @property
    def n_clusters(self) -> int:
        return len(self.members)

    def n_candidates(self, max_clusters: int) -> int:
        """Existing clusters plus one new-cluster slot, capped at *max_clusters*."""
        return min(self.n_clusters + 1, max_clusters, self.n_items)

    def assign(self, item: int, cluster: int) -> None:
        """
        Place an unassigned *item* into *cluster*.

        ``cluster == n_clusters`` opens a new cluster.
        """
        if self.labels[item] != UNASSIGNED:
            raise ValueError(f"Item {item} is already assigned to cluster {self.labels[item]}")
        self._insert(item, cluster)

    def move(self, item: int, cluster: int) -> None:
        """
        Reassign an already placed *item* to *cluster* (or a new one).

        If the move empties the item's old cluster, the highest-numbered
        cluster takes over the freed id so ids stay gap-free.
        """
        old = int(self.labels[item])
        if old == UNASSIGNED:
            raise ValueError(f"Item {item} is not assigned")
        if cluster == old:
            return
        if cluster == self.n_clusters and len(self.members[old]) == 1:
            # Moving a singleton into a fresh cluster changes nothing.
            return
        self._insert(item, cluster)
        old_members = self.members[old]
        del old_members[bisect_left(old_members, item)]
        if not old_members:
            self._drop_cluster(old)

    def check(self) -> None:
        """Raise ``AssertionError`` if the label array and membership index disagree."""
        assert np.all(self.labels >= 0), "unassigned items"
        seen = np.zeros(self.n_items, dtype=bool)
        for cluster, members in enumerate(self.members):
            assert members, f"cluster {cluster} is empty"
            assert members == sorted(members), f"cluster {cluster} members out of order"
            assert np.all(self.labels[members] == cluster), f"cluster {cluster} label mismatch"
            seen[members] = True
        assert seen.all(), "items missing from membership index"

    def _insert(self, item: int, cluster: int) -> None:
        if cluster == self.n_clusters:
            self.members.append([])
        elif not 0 <= cluster < self.n_clusters:
            raise ValueError(
                f"cluster must be in [0, {self.n_clusters}], got {cluster}"
            )
        insort(self.members[cluster], item)
        self.labels[item] = cluster

    def _drop_cluster(self, cluster: int) -> None:
        last = self.n_clusters - 1
        if cluster != last:
            moved = self.members[last]
            self.members[cluster] = moved
            self.labels[moved] = cluster
        self.members.pop()


def cluster_affinities(
    row: np.ndarray,
    labels: np.ndarray,
    n_candidates: int,
    exclude: Optional[int] = None,
) -> np.ndarray:
    """
    Sum *row* entries per cluster for the first *n_candidates* cluster ids.

    Unassigned items (label ``UNASSIGNED``) and the *exclude* item are left
    out. Ids without members (such as the new-cluster slot) score 0.

    Args:
        row: Matrix row of the item being placed
        labels: Current labels, ``UNASSIGNED`` for items not yet placed
        n_candidates: Number of candidate cluster ids to score
        exclude: Item whose own entry must not count (normally the item itself)

    Returns:
        Array of length *n_candidates*
    """
    mask = labels >= 0
    if exclude is not None:
        mask[exclude] = False
    sums = np.bincount(labels[mask], weights=row[mask], minlength=n_candidates)
    return sums[:n_candidates]
