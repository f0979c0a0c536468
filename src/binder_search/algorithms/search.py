"""
Parallel random-restart search for the Binder-loss point estimate.

Every worker thread repeats the same iteration until its own budget runs
out: draw a random item order, permute the score matrix, build a partition
by sequential allocation, sweeten it, score it and keep it if it beats the
worker's best so far. Workers never talk to each other during the search;
each merges its best result into the global one exactly once, under a lock,
when its loop ends.
"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional
import numpy as np

from ..config import SearchDefaults
from ..utils.logging_config import get_logger
from .allocation import sequential_allocation
from .binder import binder_score, reported_loss
from .canonical import canonicalize_labels
from .permutation import random_permutation
from .score_matrix import ScoreMatrix
from .sweetening import SweetenResult, sweeten

logger = get_logger(__name__)


@dataclass
class SearchConfig:
    """Options for a search run. Zero means "default" / "unbounded"."""

    max_clusters: int = 0  # 0 -> number of items
    threshold: float = 0.5
    target_iterations: int = 1000  # per worker; 0 -> rely on the time limit
    max_sweetening_passes: int = 3
    max_threads: int = 0  # 0 -> os.cpu_count()
    time_limit_ms: int = 0  # 0 -> no time limit
    seed: Optional[int] = None  # None -> fresh OS entropy per worker
    exact_sweetening: bool = False

    @classmethod
    def from_defaults(
        cls, defaults: Optional[SearchDefaults] = None, **overrides: Any
    ) -> "SearchConfig":
        """Build a config from environment defaults, then apply *overrides*."""
        if defaults is None:
            from ..config import config as app_config

            defaults = app_config.search
        d = defaults
        cfg = cls(
            max_clusters=d.max_clusters,
            threshold=d.threshold,
            target_iterations=d.target_iterations,
            max_sweetening_passes=d.max_sweetening_passes,
            max_threads=d.max_threads,
            time_limit_ms=d.time_limit_ms,
        )
        return replace(cfg, **overrides)


@dataclass
class RunResult:
    """Best partition found by a search run."""

    labels: np.ndarray
    binder_loss: float
    score: float
    n_clusters: int
    n_iterations: int
    elapsed_ms: float
    time_limit_reached: bool
    n_threads: int
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        """Initialize metadata if None."""
        if self.metadata is None:
            self.metadata = {}

    def to_dict(self) -> Dict[str, Any]:
        """Plain-Python form, suitable for JSON."""
        return {
            "labels": [int(x) for x in self.labels],
            "binder_loss": float(self.binder_loss),
            "n_clusters": int(self.n_clusters),
            "n_iterations": int(self.n_iterations),
            "elapsed_ms": float(self.elapsed_ms),
            "time_limit_reached": bool(self.time_limit_reached),
            "n_threads": int(self.n_threads),
        }


@dataclass
class WorkerResult:
    """Best result of one worker (or the merge of several)."""

    labels: Optional[np.ndarray] = None
    score: float = -np.inf
    n_iterations: int = 0
    elapsed_ms: float = 0.0
    time_limit_reached: bool = False
    iterations_by_worker: List[int] = field(default_factory=list)


class ResultReducer:
    """Merges per-worker results into one; the only lock of a run."""

    def __init__(self):
        self._lock = threading.Lock()
        self.result = WorkerResult()

    def merge(self, partial: WorkerResult) -> None:
        with self._lock:
            best = self.result
            if partial.labels is not None and partial.score > best.score:
                best.labels = partial.labels
                best.score = partial.score
            best.n_iterations += partial.n_iterations
            best.elapsed_ms = max(best.elapsed_ms, partial.elapsed_ms)
            best.time_limit_reached = best.time_limit_reached or partial.time_limit_reached
            best.iterations_by_worker.append(partial.n_iterations)


def search_iteration(
    matrix: ScoreMatrix,
    max_clusters: int,
    max_passes: int,
    rng: Optional[np.random.Generator] = None,
    *,
    exact: bool = False,
) -> tuple[np.ndarray, float, SweetenResult]:
    """
    Run one restart: permute, allocate, sweeten and score.

    Args:
        matrix: Shared score matrix (read only)
        max_clusters: Upper bound on the number of clusters
        max_passes: Maximum number of sweetening passes
        rng: Generator for the item order (fresh entropy when omitted)
        exact: Use exact current-cluster scores while sweetening

    Returns:
        Tuple of (labels in original item order, score, sweetening outcome)
    """
    order = random_permutation(matrix.n_items, rng)
    scores = matrix.permuted(order)
    partition = sequential_allocation(scores, max_clusters)
    outcome = sweeten(partition, scores, max_clusters, max_passes, exact=exact)
    score = binder_score(scores, partition.labels)

    labels = np.empty(matrix.n_items, dtype=int)
    labels[order] = partition.labels
    return labels, score, outcome


def _search_worker(
    worker_id: int,
    matrix: ScoreMatrix,
    cfg: SearchConfig,
    max_clusters: int,
    rng: np.random.Generator,
    started: float,
    reducer: ResultReducer,
) -> WorkerResult:
    local = WorkerResult()
    while True:
        labels, score, _ = search_iteration(
            matrix,
            max_clusters,
            cfg.max_sweetening_passes,
            rng,
            exact=cfg.exact_sweetening,
        )
        local.n_iterations += 1
        if score > local.score:
            local.labels = labels
            local.score = score

        local.elapsed_ms = (time.perf_counter() - started) * 1000.0
        if cfg.time_limit_ms and local.elapsed_ms >= cfg.time_limit_ms:
            local.time_limit_reached = True
            break
        if cfg.target_iterations and local.n_iterations >= cfg.target_iterations:
            break

    logger.debug(
        "Worker %d finished: %d iterations, best score %.6f, %.1f ms",
        worker_id,
        local.n_iterations,
        local.score,
        local.elapsed_ms,
    )
    reducer.merge(local)
    return local


def _resolve_options(cfg: SearchConfig, n_items: int) -> tuple[int, int]:
    """Validate counts and return (max_clusters, n_threads)."""
    for name in ("max_clusters", "target_iterations", "max_sweetening_passes", "max_threads", "time_limit_ms"):
        value = getattr(cfg, name)
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")
    if cfg.target_iterations == 0 and cfg.time_limit_ms == 0:
        raise ValueError(
            "At least one of target_iterations or time_limit_ms must be positive"
        )
    max_clusters = cfg.max_clusters or n_items
    if max_clusters > n_items:
        raise ValueError(
            f"max_clusters ({max_clusters}) cannot exceed number of items ({n_items})"
        )
    n_threads = cfg.max_threads or os.cpu_count() or 1
    return max_clusters, n_threads


def run_search(
    probabilities: np.ndarray, config: Optional[SearchConfig] = None, **overrides: Any
) -> RunResult:
    """
    Find the partition minimizing expected Binder loss for *probabilities*.

    All validation happens before any worker starts. Budget exhaustion is not
    an error: the best partition found so far is always returned, with
    ``time_limit_reached`` telling whether the clock cut the search short.

    Args:
        probabilities: Symmetric (N, N) co-clustering probability matrix
        config: Search options (default: ``SearchConfig()``)
        **overrides: Individual ``SearchConfig`` fields to replace

    Returns:
        RunResult with canonical 1-based labels and the reported loss

    Raises:
        ValueError: If the matrix or any option is invalid
    """
    cfg = replace(config or SearchConfig(), **overrides)
    matrix = ScoreMatrix.from_probabilities(probabilities, cfg.threshold)
    max_clusters, n_threads = _resolve_options(cfg, matrix.n_items)

    if cfg.seed is None:
        rngs = [np.random.default_rng() for _ in range(n_threads)]
    else:
        rngs = [np.random.default_rng(s) for s in np.random.SeedSequence(cfg.seed).spawn(n_threads)]

    logger.info(
        "Searching %d items with %d thread(s): %s iterations per thread, time limit %s",
        matrix.n_items,
        n_threads,
        cfg.target_iterations or "unbounded",
        f"{cfg.time_limit_ms} ms" if cfg.time_limit_ms else "none",
    )

    reducer = ResultReducer()
    started = time.perf_counter()
    with ThreadPoolExecutor(max_workers=n_threads, thread_name_prefix="binder-search") as executor:
        futures = [
            executor.submit(
                _search_worker, i, matrix, cfg, max_clusters, rngs[i], started, reducer
            )
            for i in range(n_threads)
        ]
        for future in futures:
            future.result()

    merged = reducer.result
    labels = canonicalize_labels(merged.labels)
    loss = reported_loss(merged.score, matrix.total_probability, matrix.threshold)
    result = RunResult(
        labels=labels,
        binder_loss=loss,
        score=merged.score,
        n_clusters=int(labels.max()),
        n_iterations=merged.n_iterations,
        elapsed_ms=merged.elapsed_ms,
        time_limit_reached=merged.time_limit_reached,
        n_threads=n_threads,
        metadata={
            "config": asdict(cfg),
            "max_clusters": max_clusters,
            "iterations_by_worker": list(merged.iterations_by_worker),
        },
    )

    logger.info(
        "Scanned %d permutations on %d thread(s) in %.1f ms: Binder loss %.6f, %d cluster(s)%s",
        result.n_iterations,
        result.n_threads,
        result.elapsed_ms,
        result.binder_loss,
        result.n_clusters,
        " (time limit reached)" if result.time_limit_reached else "",
    )
    return result


def run(
    matrix: np.ndarray,
    max_clusters: int = 0,
    threshold: float = 0.5,
    target_iterations: int = 1000,
    max_sweetening_passes: int = 3,
    max_threads: int = 0,
    time_limit_ms: int = 0,
    *,
    seed: Optional[int] = None,
    exact_sweetening: bool = False,
) -> RunResult:
    """
    Positional-argument entry point mirroring the engine's call contract.

    See ``run_search`` for details; zero values carry the same meaning as in
    ``SearchConfig``.
    """
    cfg = SearchConfig(
        max_clusters=max_clusters,
        threshold=threshold,
        target_iterations=target_iterations,
        max_sweetening_passes=max_sweetening_passes,
        max_threads=max_threads,
        time_limit_ms=time_limit_ms,
        seed=seed,
        exact_sweetening=exact_sweetening,
    )
    return run_search(matrix, cfg)
