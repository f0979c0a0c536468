"""
Configuration management for Binder Search.

Loads search defaults from environment variables (typically from a .env file).
Uses python-dotenv to load .env automatically.

Usage:
    from binder_search.config import config

    # Access search defaults
    threshold = config.search.threshold
"""

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Look for .env in project root (parent of src/)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


ENV_PREFIX = "BINDER_SEARCH_"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name, "")
    if raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(
            f"{ENV_PREFIX}{name} must be an integer, got {raw!r}"
        ) from e
    if value < 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be >= 0, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name, "")
    if raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(
            f"{ENV_PREFIX}{name} must be a number, got {raw!r}"
        ) from e
    if not math.isfinite(value):
        raise ValueError(f"{ENV_PREFIX}{name} must be finite, got {raw!r}")
    return value


@dataclass
class SearchDefaults:
    """Default search options, overridable per run."""
    max_clusters: int = 0
    threshold: float = 0.5
    target_iterations: int = 1000
    max_sweetening_passes: int = 3
    max_threads: int = 0
    time_limit_ms: int = 0
    log_level: str = "INFO"


class Config:
    """
    Application configuration loaded from environment variables.

    Environment variables can be set:
    1. In a .env file in the project root
    2. In the system environment
    3. In a container/deployment environment
    """

    def __init__(self):
        """Set up configuration; values are read from the environment on first use."""
        # Lazy-loaded so a malformed variable only fails the code that reads it
        self._search: Optional[SearchDefaults] = None

    @property
    def search(self) -> SearchDefaults:
        """
        Search defaults from the environment.

        Raises:
            ValueError: If a BINDER_SEARCH_* variable is malformed
        """
        if self._search is None:
            self._search = SearchDefaults(
                max_clusters=_env_int("MAX_CLUSTERS", 0),
                threshold=_env_float("THRESHOLD", 0.5),
                target_iterations=_env_int("ITERATIONS", 1000),
                max_sweetening_passes=_env_int("PASSES", 3),
                max_threads=_env_int("THREADS", 0),
                time_limit_ms=_env_int("TIME_LIMIT_MS", 0),
                log_level=os.getenv(ENV_PREFIX + "LOG_LEVEL", "INFO") or "INFO",
            )
        return self._search

    def reload(self) -> None:
        """Forget cached values so the environment is read again."""
        self._search = None


# Global config instance
config = Config()
