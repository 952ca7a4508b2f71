"""Canonical Pydantic models shared across all fscache modules.

The models fall into three groups:

**Configuration** -- :class:`CacheConfig`, loaded from the environment by
:func:`fscache.config.load_config`.

**On-disk records** -- :class:`EntryMetadata`, the JSON document stored in
each ``<hash>.meta`` file. Field aliases keep the serialised form identical
to the one written by earlier deployments (``{"statusCode": ..,
"headers": {..}}``) so existing cache directories remain readable.

**Results** -- :class:`CachedResponse` returned on a hit,
:class:`SweepReport` returned by a tree sweep, and :class:`CacheStats`
returned by :meth:`fscache.store.FileSystemStore.stats`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CACHE_PATH = "/tmp/prerender-cache"
DEFAULT_TTL_SECONDS = 86400
DEFAULT_STATUS_CODES = [200, 301, 302, 303, 304, 307, 308, 404]


# --- Configuration ---


class CacheConfig(BaseModel):
    """Process-wide cache settings.

    A single TTL applies uniformly to every entry; there is no per-entry
    override. ``sweep_interval`` of ``0`` disables the periodic tree sweep,
    leaving the startup sweep and the per-write timers in charge of cleanup.

    Example::

        CacheConfig(cache_path="/var/cache/render", ttl_seconds=3600)
    """

    cache_path: Path = Field(
        default=Path(DEFAULT_CACHE_PATH),
        description="Base directory holding the shard directories",
    )
    ttl_seconds: float = Field(
        default=DEFAULT_TTL_SECONDS, gt=0, description="Seconds before an entry expires"
    )
    status_codes: list[int] = Field(
        default_factory=lambda: list(DEFAULT_STATUS_CODES),
        description="Response status codes eligible for storage",
    )
    disable_logging: bool = Field(
        default=False, description="Suppress all diagnostic output"
    )
    remove_expired_on_startup: bool = Field(
        default=True, description="Sweep the cache tree when the cache starts"
    )
    sweep_interval: float = Field(
        default=0, ge=0, description="Seconds between periodic sweeps (0 disables)"
    )

    @field_validator("cache_path")
    @classmethod
    def _non_empty_path(cls, value: Path) -> Path:
        if not str(value).strip() or str(value) == ".":
            raise ValueError("cache path must not be empty")
        return value

    @field_validator("status_codes")
    @classmethod
    def _valid_status_codes(cls, value: list[int]) -> list[int]:
        for code in value:
            if not 100 <= code <= 599:
                raise ValueError(f"invalid HTTP status code: {code}")
        return value


# --- On-disk records ---


class EntryMetadata(BaseModel):
    """Contents of a ``.meta`` file: status code plus filtered headers."""

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    headers: dict[str, str] = Field(default_factory=dict)


# --- Results ---


class CachedResponse(BaseModel):
    """A cache hit: the stored status, filtered headers, and decompressed body."""

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""


class SweepReport(BaseModel):
    """Counters produced by one pass of :meth:`fscache.sweeper.ExpirySweeper.sweep`."""

    removed_files: int = 0
    removed_bytes: int = 0
    timers_created: int = 0


class CacheStats(BaseModel):
    """Snapshot of the cache tree returned by :meth:`fscache.store.FileSystemStore.stats`."""

    directory: str
    ttl_seconds: float
    entries: int = 0
    expired_entries: int = 0
    shards: int = 0
    total_bytes: int = 0
