"""Filesystem store: ``get``, ``set`` and ``delete`` for URL-keyed entries.

Layout::

    <cache_path>/<hash[0:2]>/<hash>.data   gzip-compressed body
    <cache_path>/<hash[0:2]>/<hash>.meta   {"statusCode": ..., "headers": {...}}

An entry's age is the modification time of its ``.meta`` file. ``set``
writes ``.data`` before ``.meta``, so a reader that finds no ``.meta``
reports a miss rather than returning headers without a body.

No locks are taken. Concurrent ``set`` calls for one URL leave the last
writer's files in place, and a ``delete`` racing a ``set`` may remove the
fresh entry; both outcomes are plain cache misses. Filesystem work runs in
worker threads via :func:`asyncio.to_thread`, so a slow disk suspends only
the calling request.

Errors never escape to the caller: reads degrade to a miss, writes and
cleanup are logged and abandoned.
"""

from __future__ import annotations

import asyncio
import errno
import os
import tempfile
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from fscache.codec import decode_body, decode_metadata, encode_body, encode_metadata
from fscache.exceptions import CodecError, StorageError
from fscache.keys import DATA_SUFFIX, META_SUFFIX, EntryPaths, paths_for_url
from fscache.models import CacheConfig, CachedResponse, CacheStats, EntryMetadata
from fscache.output import debug, error
from fscache.policy import filter_headers
from fscache.scheduler import ExpiryScheduler

TMP_SUFFIX = ".tmp"
ENTRY_SUFFIXES = (DATA_SUFFIX, META_SUFFIX, TMP_SUFFIX)

_RACE_ERRNOS = (errno.ENOTEMPTY, errno.EEXIST, errno.ENOENT)


# --- Filesystem helpers (blocking; run in worker threads) ---


def _atomic_write(path: Path, data: bytes) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up and the error re-raised.
    """
    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=TMP_SUFFIX,
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def unlink_quietly(path: Path) -> Optional[int]:
    """Remove *path*, returning the bytes freed.

    Returns ``None`` when nothing was removed: a missing file is not an
    error, other failures are logged.
    """
    try:
        size = path.stat().st_size
        path.unlink()
        return size
    except FileNotFoundError:
        return None
    except OSError as exc:
        error(f"Cannot remove cache file {path}: {exc}")
        return None


def remove_dir_if_empty(path: Path) -> bool:
    """Remove *path* if it is an empty directory.

    Losing a race (the directory gained a file or already vanished) is
    expected and silent. Other failures are logged.

    Returns:
        ``True`` if the directory was removed by this call.
    """
    try:
        path.rmdir()
        return True
    except OSError as exc:
        if exc.errno not in _RACE_ERRNOS:
            error(f"Cannot remove cache directory {path}: {exc}")
        return False


def _read_pair(paths: EntryPaths) -> tuple[bytes, bytes]:
    return paths.data.read_bytes(), paths.meta.read_bytes()


def _write_pair(paths: EntryPaths, data: bytes, meta: bytes) -> None:
    paths.shard_dir.mkdir(parents=True, exist_ok=True)
    _atomic_write(paths.data, data)
    _atomic_write(paths.meta, meta)


def _pair_exists(paths: EntryPaths) -> bool:
    return paths.data.is_file() and paths.meta.is_file()


def _remove_pair(paths: EntryPaths) -> int:
    freed = (unlink_quietly(paths.meta) or 0) + (unlink_quietly(paths.data) or 0)
    remove_dir_if_empty(paths.shard_dir)
    return freed


class FileSystemStore:
    """URL-keyed response store rooted at ``config.cache_path``.

    Args:
        config: Cache settings; ``cache_path`` and ``ttl_seconds`` are used.
        scheduler: Timer registry for per-write expiry. A private one is
            created when omitted.

    Example::

        store = FileSystemStore(CacheConfig(cache_path=tmp_dir, ttl_seconds=60))
        await store.set("http://a", 200, {"content-type": "text/html"}, b"hi")
        hit = await store.get("http://a")
    """

    def __init__(
        self, config: CacheConfig, scheduler: Optional[ExpiryScheduler] = None
    ) -> None:
        self._config = config
        self._root = Path(config.cache_path)
        self.scheduler = scheduler if scheduler is not None else ExpiryScheduler()

    @property
    def root(self) -> Path:
        """The cache root directory."""
        return self._root

    @property
    def ttl(self) -> float:
        """Entry lifetime in seconds."""
        return self._config.ttl_seconds

    def paths(self, url: str) -> EntryPaths:
        """Resolve the on-disk path pair for *url*."""
        return paths_for_url(self._root, url)

    def is_expired(self, mtime: float, now: Optional[float] = None) -> bool:
        """Return True if a file modified at *mtime* has outlived the TTL."""
        if now is None:
            now = time.time()
        return now - mtime >= self.ttl

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    async def get(self, url: str) -> Optional[CachedResponse]:
        """Look up *url*.

        Returns:
            The cached response, or ``None`` when the entry is absent,
            expired (its files are removed as a side effect), or cannot be
            read or decoded.
        """
        paths = self.paths(url)
        if not await asyncio.to_thread(_pair_exists, paths):
            return None

        try:
            mtime = (await asyncio.to_thread(paths.meta.stat)).st_mtime
        except OSError:
            return None
        if self.is_expired(mtime):
            debug(f"Expired: {url}")
            await self.delete(url)
            return None

        try:
            raw_data, raw_meta = await asyncio.to_thread(_read_pair, paths)
            body = await asyncio.to_thread(decode_body, raw_data)
            metadata = decode_metadata(raw_meta)
        except (OSError, CodecError) as exc:
            debug(f"Unreadable cache entry {paths.base}: {exc}")
            return None

        return CachedResponse(
            status_code=metadata.status_code,
            headers=metadata.headers,
            body=body,
        )

    async def set(
        self,
        url: str,
        status_code: int,
        headers: Mapping[str, Any],
        body: bytes,
    ) -> bool:
        """Store a response for *url* and schedule its expiry.

        Non-cacheable headers are dropped before the metadata is written.

        Returns:
            ``True`` if both files were written; ``False`` if the write was
            abandoned after a logged filesystem error.
        """
        paths = self.paths(url)
        metadata = EntryMetadata(status_code=status_code, headers=filter_headers(headers))
        compressed = await asyncio.to_thread(encode_body, body)

        try:
            await asyncio.to_thread(_write_pair, paths, compressed, encode_metadata(metadata))
        except OSError as exc:
            error(f"Cannot write to files: {paths.data}, {paths.meta}: {exc}")
            return False

        self.scheduler.schedule(str(paths.base), self.ttl, lambda: self.delete(url))
        return True

    async def delete(self, url: str) -> int:
        """Remove both files for *url* and its shard directory if now empty.

        Idempotent: deleting an absent entry is not an error. Pending expiry
        timers for the entry are cancelled.

        Returns:
            Number of bytes freed.
        """
        paths = self.paths(url)
        for key in (paths.base, paths.data, paths.meta):
            self.scheduler.cancel(str(key))
        return await asyncio.to_thread(_remove_pair, paths)

    async def exists(self, url: str) -> bool:
        """Return True if both files for *url* are present, expired or not."""
        return await asyncio.to_thread(_pair_exists, self.paths(url))

    async def clear(self) -> int:
        """Remove every entry file and shard directory under the root.

        The root directory itself is kept. Unrelated files and directories
        are left alone.

        Returns:
            Number of entry files removed.

        Raises:
            StorageError: If the root directory cannot be listed.
        """
        self.scheduler.cancel_all()
        return await asyncio.to_thread(self._clear_tree)

    async def stats(self) -> CacheStats:
        """Count entries, expired entries, shards and bytes on disk.

        Raises:
            StorageError: If the root directory cannot be listed.
        """
        return await asyncio.to_thread(self._collect_stats)

    # ------------------------------------------------------------------ #
    # Tree helpers
    # ------------------------------------------------------------------ #

    def shard_dirs(self) -> list[Path]:
        """List shard directories under the root (empty if the root is missing).

        Raises:
            StorageError: If the root exists but cannot be listed.
        """
        try:
            with os.scandir(self._root) as it:
                return sorted(
                    Path(entry.path)
                    for entry in it
                    if entry.is_dir(follow_symlinks=False)
                )
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f"Cannot list cache directory {self._root}: {exc}") from exc

    def _clear_tree(self) -> int:
        removed = 0
        for shard in self.shard_dirs():
            try:
                with os.scandir(shard) as it:
                    files = [Path(e.path) for e in it if e.name.endswith(ENTRY_SUFFIXES)]
            except FileNotFoundError:
                continue
            for path in files:
                if unlink_quietly(path) is not None:
                    removed += 1
            if not remove_dir_if_empty(shard):
                debug(f"Keeping directory {shard}")
        return removed

    def _collect_stats(self) -> CacheStats:
        stats = CacheStats(directory=str(self._root), ttl_seconds=self.ttl)
        now = time.time()
        for shard in self.shard_dirs():
            stats.shards += 1
            try:
                with os.scandir(shard) as it:
                    files = [e for e in it if e.is_file(follow_symlinks=False)]
            except FileNotFoundError:
                continue
            for entry in files:
                try:
                    st = entry.stat()
                except FileNotFoundError:
                    continue
                stats.total_bytes += st.st_size
                if entry.name.endswith(META_SUFFIX):
                    stats.entries += 1
                    if self.is_expired(st.st_mtime, now):
                        stats.expired_entries += 1
        return stats

