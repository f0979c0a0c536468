"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import numpy as np
import pytest


def make_block_psm(sizes, within=0.9, between=0.1, rng=None, noise=0.0):
    """
    Build a symmetric co-clustering matrix with diagonal blocks.

    Items in the same block get *within*, others *between*; optional uniform
    noise is added symmetrically and the result clipped to [0, 1].
    """
    labels = np.repeat(np.arange(len(sizes)), sizes)
    same = labels[:, None] == labels[None, :]
    P = np.where(same, within, between).astype(float)
    if noise and rng is not None:
        E = rng.uniform(-noise, noise, size=P.shape)
        P = np.clip(P + (E + E.T) / 2.0, 0.0, 1.0)
    np.fill_diagonal(P, 1.0)
    return P, labels


@pytest.fixture
def two_pair_psm():
    """
    Four items forming two obvious pairs {0, 1} and {2, 3}.
    """
    P, _ = make_block_psm([2, 2], within=0.9, between=0.1)
    return P


@pytest.fixture
def block_psm():
    """
    Three noisy blocks of sizes 5, 4 and 6 with their true labels.
    """
    rng = np.random.default_rng(7)
    return make_block_psm([5, 4, 6], within=0.85, between=0.1, rng=rng, noise=0.05)


@pytest.fixture
def random_psm():
    """
    Unstructured symmetric matrix with entries in [0, 1] and unit diagonal.
    """
    rng = np.random.default_rng(42)
    A = rng.uniform(0.0, 1.0, size=(25, 25))
    P = (A + A.T) / 2.0
    np.fill_diagonal(P, 1.0)
    return P
