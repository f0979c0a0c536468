"""
Tests for the parallel search driver.
"""

import numpy as np
import pytest

from binder_search.algorithms.binder import binder_loss, binder_score
from binder_search.algorithms.score_matrix import ScoreMatrix
from binder_search.algorithms.search import (
    ResultReducer,
    RunResult,
    SearchConfig,
    WorkerResult,
    run,
    run_search,
    search_iteration,
)
from binder_search.config import SearchDefaults


def test_search_config_defaults():
    """Test SearchConfig default values."""
    cfg = SearchConfig()
    assert cfg.max_clusters == 0
    assert cfg.threshold == 0.5
    assert cfg.target_iterations == 1000
    assert cfg.max_sweetening_passes == 3
    assert cfg.max_threads == 0
    assert cfg.time_limit_ms == 0
    assert cfg.seed is None
    assert cfg.exact_sweetening is False


def test_search_config_from_defaults():
    defaults = SearchDefaults(threshold=0.3, target_iterations=20, max_threads=2)
    cfg = SearchConfig.from_defaults(defaults, seed=4)
    assert cfg.threshold == 0.3
    assert cfg.target_iterations == 20
    assert cfg.max_threads == 2
    assert cfg.seed == 4


# ------------------------------------------------------------------
# search_iteration
# ------------------------------------------------------------------


def test_search_iteration_returns_original_order_labels(block_psm):
    P, truth = block_psm
    matrix = ScoreMatrix.from_probabilities(P)
    labels, score, outcome = search_iteration(
        matrix, len(P), 3, np.random.default_rng(0)
    )
    assert labels.shape == truth.shape
    # Un-permuted labels score the same on the unpermuted matrix.
    assert binder_score(matrix.shifted, labels) == score
    assert np.array_equal(labels[:, None] == labels[None, :], truth[:, None] == truth[None, :])
    assert outcome.converged


# ------------------------------------------------------------------
# run_search
# ------------------------------------------------------------------


@pytest.mark.parametrize("seed", [None, 0, 1, 2])
def test_two_pair_scenario(two_pair_psm, seed):
    result = run_search(two_pair_psm, target_iterations=50, max_threads=2, seed=seed)
    assert isinstance(result, RunResult)
    np.testing.assert_array_equal(result.labels, [1, 1, 2, 2])
    assert result.n_clusters == 2
    assert result.binder_loss == pytest.approx(binder_loss(two_pair_psm, [0, 0, 1, 1]))
    assert result.n_iterations == 100
    assert result.n_threads == 2
    assert result.time_limit_reached is False


def test_run_positional_contract(two_pair_psm):
    result = run(two_pair_psm, 0, 0.5, 10, 3, 1, 0)
    np.testing.assert_array_equal(result.labels, [1, 1, 2, 2])
    assert result.n_iterations == 10
    assert result.n_threads == 1


def test_labels_are_canonical(random_psm):
    result = run_search(random_psm, target_iterations=5, max_threads=2, seed=3)
    labels = result.labels
    assert labels.shape == (len(random_psm),)
    assert labels[0] == 1
    assert set(labels.tolist()) == set(range(1, result.n_clusters + 1))
    _, first = np.unique(labels, return_index=True)
    assert np.all(np.diff(first) > 0)


def test_single_item():
    result = run_search(np.array([[1.0]]), target_iterations=3, max_threads=1)
    np.testing.assert_array_equal(result.labels, [1])
    assert result.n_clusters == 1
    assert result.score == 0.0
    assert result.binder_loss == pytest.approx(0.5)


def test_recovers_blocks(block_psm):
    P, truth = block_psm
    result = run_search(P, target_iterations=10, max_threads=2, seed=0)
    assert result.n_clusters == 3
    np.testing.assert_array_equal(result.labels, truth + 1)


def test_max_clusters_one_forces_single_cluster(block_psm):
    P, _ = block_psm
    result = run_search(P, max_clusters=1, target_iterations=5, max_threads=2)
    np.testing.assert_array_equal(result.labels, np.ones(len(P), dtype=int))
    assert result.n_clusters == 1


def test_max_clusters_bound(random_psm):
    result = run_search(
        random_psm, max_clusters=2, target_iterations=5, max_threads=2, exact_sweetening=True
    )
    assert result.n_clusters <= 2


def test_reported_loss_matches_evaluator(random_psm):
    result = run_search(random_psm, target_iterations=5, max_threads=2, threshold=0.4, seed=8)
    assert result.binder_loss == pytest.approx(binder_loss(random_psm, result.labels, threshold=0.4))


def test_larger_budget_never_worse(random_psm):
    losses = [
        run_search(random_psm, target_iterations=n, max_threads=1, seed=123).binder_loss
        for n in (1, 5, 20)
    ]
    assert losses[1] <= losses[0]
    assert losses[2] <= losses[1]


def test_seeded_run_is_reproducible(random_psm):
    a = run_search(random_psm, target_iterations=8, max_threads=3, seed=99)
    b = run_search(random_psm, target_iterations=8, max_threads=3, seed=99)
    assert a.binder_loss == b.binder_loss
    assert a.metadata["iterations_by_worker"] == [8, 8, 8]


def test_time_limit_reached():
    rng = np.random.default_rng(0)
    n = 300
    A = rng.uniform(0.0, 1.0, size=(n, n))
    P = (A + A.T) / 2.0
    np.fill_diagonal(P, 1.0)
    result = run_search(P, target_iterations=0, time_limit_ms=1, max_threads=2)
    assert result.time_limit_reached is True
    assert result.labels.shape == (n,)
    assert result.labels.min() == 1
    assert result.n_iterations >= 2  # every worker completes at least one iteration
    assert result.elapsed_ms >= 1.0


def test_time_limit_with_iteration_target(two_pair_psm):
    result = run_search(two_pair_psm, target_iterations=3, time_limit_ms=60_000, max_threads=1)
    assert result.n_iterations == 3
    assert result.time_limit_reached is False


def test_default_thread_count(two_pair_psm, monkeypatch):
    monkeypatch.setattr("binder_search.algorithms.search.os.cpu_count", lambda: 3)
    result = run_search(two_pair_psm, target_iterations=2)
    assert result.n_threads == 3
    assert result.n_iterations == 6


def test_to_dict(two_pair_psm):
    result = run_search(two_pair_psm, target_iterations=5, max_threads=1)
    d = result.to_dict()
    assert d["labels"] == [1, 1, 2, 2]
    assert d["n_clusters"] == 2
    assert d["n_iterations"] == 5
    assert d["n_threads"] == 1
    assert d["time_limit_reached"] is False
    assert isinstance(d["binder_loss"], float)


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "overrides, match",
    [
        ({"threshold": -0.5}, "threshold"),
        ({"threshold": float("nan")}, "threshold"),
        ({"max_clusters": 5}, "cannot exceed number of items"),
        ({"max_clusters": -1}, "max_clusters must be >= 0"),
        ({"max_threads": -2}, "max_threads must be >= 0"),
        ({"target_iterations": 0, "time_limit_ms": 0}, "At least one of"),
    ],
)
def test_invalid_options_rejected(two_pair_psm, overrides, match):
    with pytest.raises(ValueError, match=match):
        run_search(two_pair_psm, **overrides)


def test_invalid_matrix_rejected():
    with pytest.raises(ValueError, match="at least one item"):
        run_search(np.zeros((0, 0)))
    with pytest.raises(ValueError, match="square"):
        run_search(np.ones((3, 2)))


def test_worker_errors_propagate(two_pair_psm, monkeypatch):
    def broken(*args, **kwargs):
        raise MemoryError("no room")

    monkeypatch.setattr("binder_search.algorithms.search.sequential_allocation", broken)
    with pytest.raises(MemoryError, match="no room"):
        run_search(two_pair_psm, target_iterations=1, max_threads=2)


# ------------------------------------------------------------------
# ResultReducer
# ------------------------------------------------------------------


def test_reducer_merges_best_and_totals():
    reducer = ResultReducer()
    reducer.merge(WorkerResult(labels=np.array([0, 0]), score=1.0, n_iterations=4, elapsed_ms=10.0))
    reducer.merge(WorkerResult(labels=np.array([0, 1]), score=2.0, n_iterations=3, elapsed_ms=5.0,
                               time_limit_reached=True))
    reducer.merge(WorkerResult(labels=np.array([1, 1]), score=2.0, n_iterations=2, elapsed_ms=7.0))
    merged = reducer.result
    np.testing.assert_array_equal(merged.labels, [0, 1])  # ties keep the earlier result
    assert merged.score == 2.0
    assert merged.n_iterations == 9
    assert merged.elapsed_ms == 10.0
    assert merged.time_limit_reached is True
    assert merged.iterations_by_worker == [4, 3, 2]
