"""
Algorithm Core Library - Binder-loss partition search.

This module provides the search engine (sequential allocation, sweetening,
Binder loss evaluation and the parallel driver) with minimal dependencies,
separate from the CLI. Designed for reuse and testing.
"""

from .permutation import random_permutation
from .score_matrix import ScoreMatrix, validate_probabilities, validate_threshold
from .partition import Partition, cluster_affinities
from .allocation import sequential_allocation
from .sweetening import SweetenResult, sweeten, sweeten_pass
from .binder import (
    binder_score,
    binder_score_naive,
    binder_score_tiled,
    binder_loss,
    reported_loss,
)
from .canonical import canonicalize_labels
from .search import RunResult, SearchConfig, run, run_search, search_iteration

__all__ = [
    # Building blocks
    "random_permutation",
    "ScoreMatrix",
    "validate_probabilities",
    "validate_threshold",
    "Partition",
    "cluster_affinities",
    # Local search
    "sequential_allocation",
    "SweetenResult",
    "sweeten",
    "sweeten_pass",
    # Objective
    "binder_score",
    "binder_score_naive",
    "binder_score_tiled",
    "binder_loss",
    "reported_loss",
    "canonicalize_labels",
    # Search orchestration
    "RunResult",
    "SearchConfig",
    "run",
    "run_search",
    "search_iteration",
]
