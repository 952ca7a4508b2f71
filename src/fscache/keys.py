"""URL hashing and on-disk path resolution.

Every entry lives at ``<cache_root>/<hash[0:2]>/<hash>`` with two sibling
files, ``.data`` (gzip body) and ``.meta`` (JSON metadata). Sharding on
the first two hex characters caps the fan-out of the root directory at
256 subdirectories regardless of how many URLs are cached.

The URL is hashed verbatim, with no normalisation, so
``http://a/?x=1&y=2`` and ``http://a/?y=2&x=1`` are distinct entries.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import NamedTuple

DATA_SUFFIX = ".data"
META_SUFFIX = ".meta"
SHARD_WIDTH = 2


def url_hash(url: str) -> str:
    """Return the 40-character SHA-1 hex digest of *url* (UTF-8 encoded)."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest()


class EntryPaths(NamedTuple):
    """Locations of one cache entry. Nothing here touches the filesystem."""

    base: Path
    data: Path
    meta: Path

    @property
    def shard_dir(self) -> Path:
        """The shard directory containing both files."""
        return self.base.parent


def entry_paths(cache_root: Path, digest: str) -> EntryPaths:
    """Resolve the path pair for a content hash under *cache_root*."""
    base = Path(cache_root) / digest[:SHARD_WIDTH] / digest
    return EntryPaths(
        base=base,
        data=base.with_name(digest + DATA_SUFFIX),
        meta=base.with_name(digest + META_SUFFIX),
    )


def paths_for_url(cache_root: Path, url: str) -> EntryPaths:
    """Shortcut for ``entry_paths(cache_root, url_hash(url))``."""
    return entry_paths(cache_root, url_hash(url))
