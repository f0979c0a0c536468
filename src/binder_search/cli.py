"""
Command-line interface: ``binder-search MATRIX [options]``.

Loads a co-clustering probability matrix from ``.npy`` or delimited text,
runs the search and prints a short summary. Defaults come from the
``BINDER_SEARCH_*`` environment variables (see ``binder_search.config``).

Usage:
    binder-search psm.npy --iterations 500 --threads 4 --output result.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from .algorithms.search import SearchConfig, run_search
from .config import config
from .utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

TEXT_DELIMITERS = {".csv": ",", ".tsv": "\t"}
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_matrix(path: Path) -> np.ndarray:
    """Read a square matrix from ``.npy`` or a delimited text file."""
    suffix = path.suffix.lower()
    if suffix == ".npy":
        return np.load(path, allow_pickle=False)
    delimiter = TEXT_DELIMITERS.get(suffix)
    return np.loadtxt(path, delimiter=delimiter, ndmin=2)


def build_parser() -> argparse.ArgumentParser:
    defaults = config.search
    parser = argparse.ArgumentParser(
        prog="binder-search",
        description="Summarize a co-clustering probability matrix by the partition minimizing Binder loss",
    )
    parser.add_argument("matrix", type=Path, help="Probability matrix (.npy, .csv, .tsv or whitespace-separated text)")
    parser.add_argument(
        "--max-clusters", type=int, default=defaults.max_clusters,
        help="Maximum number of clusters (0 = number of items)",
    )
    parser.add_argument(
        "--threshold", type=float, default=defaults.threshold,
        help="Binder loss constant c",
    )
    parser.add_argument(
        "--iterations", type=int, default=defaults.target_iterations,
        help="Permutations per thread (0 = rely on the time limit)",
    )
    parser.add_argument(
        "--passes", type=int, default=defaults.max_sweetening_passes,
        help="Maximum sweetening passes per permutation",
    )
    parser.add_argument(
        "--threads", type=int, default=defaults.max_threads,
        help="Number of worker threads (0 = CPU count)",
    )
    parser.add_argument(
        "--time-limit-ms", type=int, default=defaults.time_limit_ms,
        help="Wall-clock limit in milliseconds (0 = none)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
    parser.add_argument(
        "--exact-sweetening", action="store_true",
        help="Score an item's current cluster exactly instead of as zero",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write the result as JSON")
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default=defaults.log_level.upper(),
        help="Logging level",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    try:
        parser = build_parser()
    except ValueError as e:
        # Malformed BINDER_SEARCH_* defaults
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    args = parser.parse_args(argv)
    try:
        setup_logging(args.log_level)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    cfg = SearchConfig(
        max_clusters=args.max_clusters,
        threshold=args.threshold,
        target_iterations=args.iterations,
        max_sweetening_passes=args.passes,
        max_threads=args.threads,
        time_limit_ms=args.time_limit_ms,
        seed=args.seed,
        exact_sweetening=args.exact_sweetening,
    )

    try:
        matrix = load_matrix(args.matrix)
        result = run_search(matrix, cfg)
    except (OSError, ValueError) as e:
        logger.error("Search failed: %s", e)
        return 1

    print(f"Threads:        {result.n_threads}")
    print(f"Permutations:   {result.n_iterations}")
    print(f"Binder loss:    {result.binder_loss:.6f}")
    print(f"Clusters:       {result.n_clusters}")
    if result.time_limit_reached:
        print("Time limit reached")

    if args.output is not None:
        args.output.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        print(f"Result written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
