"""Shared test fixtures for fscache.

Provides an isolated cache root per test, ready-made configurations and
stores, helpers for ageing files on disk, and automatic reset of the
global output state.
"""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from fscache.models import CacheConfig
from fscache.output import reset_output
from fscache.store import FileSystemStore


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager caches references to sys.stdout/sys.stderr at creation
    time; CliRunner and capture fixtures swap those streams per test.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """A cache root that does not exist yet."""
    return tmp_path / "cache"


@pytest.fixture
def config(cache_root: Path) -> CacheConfig:
    """Configuration with a one-hour TTL rooted at ``cache_root``."""
    return CacheConfig(cache_path=cache_root, ttl_seconds=3600)


@pytest.fixture
def store(config: CacheConfig) -> FileSystemStore:
    """A store over the isolated cache root."""
    return FileSystemStore(config)


# ---------------------------------------------------------------------------
# File ageing
# ---------------------------------------------------------------------------


@pytest.fixture
def age_file():
    """Return a helper that moves a file's mtime *seconds* into the past."""

    def _age(path: Path, seconds: float) -> None:
        stamp = time.time() - seconds
        os.utime(path, (stamp, stamp))

    return _age
