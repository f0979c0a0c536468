"""
Binder Search - Core Package

Summarizes a co-clustering probability matrix (for example, one estimated
from a collection of sampled partitions) by a single partition that
minimizes the expected Binder loss.

This package provides:
- A parallel random-restart search (sequential allocation + sweetening)
- Binder loss evaluation for arbitrary labellings
- A command-line interface (``binder-search``)
"""

__version__ = "0.1.0"

from .algorithms import (
    RunResult,
    SearchConfig,
    binder_loss,
    canonicalize_labels,
    run,
    run_search,
)

# Explicitly import subpackages to ensure they're discoverable
from . import algorithms
from . import utils

__all__ = [
    "RunResult",
    "SearchConfig",
    "binder_loss",
    "canonicalize_labels",
    "run",
    "run_search",
    "algorithms",
    "utils",
]
