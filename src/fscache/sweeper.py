"""Background reclamation of expired cache files.

Per-write timers alone lose track of entries whenever the process restarts,
so the sweeper walks the cache tree on startup (and, optionally, every
``sweep_interval`` seconds):

* expired ``.data``/``.meta`` files are deleted immediately;
* every other file gets a one-shot timer for its *remaining* lifetime, so
  each file on disk always has a pending deletion trigger;
* a shard directory left empty afterwards is removed.

The tree is always exactly two levels deep (root/shard/file), so the walk
is a flat iteration over shard directories. A shard that disappears or
fails mid-walk is logged and skipped; the rest of the sweep carries on.
"""

from __future__ import annotations

import asyncio
import functools
import os
import time
from pathlib import Path
from typing import Optional

from fscache.exceptions import StorageError
from fscache.models import SweepReport
from fscache.output import debug, error, info
from fscache.store import ENTRY_SUFFIXES, FileSystemStore, remove_dir_if_empty, unlink_quietly

FileInfo = tuple[Path, float, int]


def _scan_shard(shard: Path) -> list[FileInfo]:
    """Return ``(path, mtime, size)`` for each entry file in *shard*."""
    found: list[FileInfo] = []
    try:
        with os.scandir(shard) as it:
            entries = [e for e in it if e.name.endswith(ENTRY_SUFFIXES)]
    except FileNotFoundError:
        return found
    for entry in entries:
        try:
            st = entry.stat(follow_symlinks=False)
        except FileNotFoundError:
            continue
        found.append((Path(entry.path), st.st_mtime, st.st_size))
    return found


class ExpirySweeper:
    """Walks the cache tree deleting expired files and arming timers for the rest.

    Args:
        store: The store whose root, TTL and timer registry are used.
        interval: Seconds between periodic sweeps started by :meth:`start`.
            ``0`` disables the periodic loop.
    """

    def __init__(self, store: FileSystemStore, interval: float = 0) -> None:
        self._store = store
        self._interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        """Whether the periodic sweep loop is active."""
        return self._running

    async def sweep(self, schedule_remaining: bool = True) -> SweepReport:
        """Run one pass over the cache tree.

        Args:
            schedule_remaining: Arm a deletion timer for every unexpired
                file. One-shot maintenance runs pass ``False``.

        Returns:
            Counts of removed files, freed bytes and timers created.
        """
        info("Removing expired cache files (if any)")
        report = SweepReport()
        try:
            shards = await asyncio.to_thread(self._store.shard_dirs)
        except StorageError as exc:
            error(str(exc))
            return report

        for shard in shards:
            try:
                await self._sweep_shard(shard, report, schedule_remaining)
            except OSError as exc:
                error(f"Cannot clean up directory {shard}: {exc}")

        info(
            f"Removed {report.removed_files} files ({report.removed_bytes} bytes), "
            f"scheduled {report.timers_created} cache expire events"
        )
        return report

    async def expire_file(self, path: Path) -> None:
        """Delete a single entry file once it has expired.

        A file rewritten since the timer was armed is not yet expired; its
        timer is re-armed for the remaining lifetime instead.
        """
        try:
            mtime = (await asyncio.to_thread(path.stat)).st_mtime
        except FileNotFoundError:
            return
        except OSError as exc:
            error(f"Cannot inspect cache file {path}: {exc}")
            return
        now = time.time()
        if not self._store.is_expired(mtime, now):
            remaining = self._store.ttl - (now - mtime)
            self._schedule(path, remaining)
            return
        await asyncio.to_thread(unlink_quietly, path)
        await asyncio.to_thread(remove_dir_if_empty, path.parent)

    # ------------------------------------------------------------------ #
    # Periodic loop
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Start the periodic sweep task. No-op when the interval is ``0``."""
        if self._running or self._interval <= 0:
            return
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        debug(f"Periodic sweep every {self._interval}s")

    async def stop(self) -> None:
        """Stop the periodic sweep task gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception as exc:
                error(f"Periodic sweep failed: {exc}")

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _sweep_shard(
        self, shard: Path, report: SweepReport, schedule_remaining: bool
    ) -> None:
        files = await asyncio.to_thread(_scan_shard, shard)
        now = time.time()
        for path, mtime, size in files:
            if self._store.is_expired(mtime, now):
                if await asyncio.to_thread(unlink_quietly, path) is not None:
                    report.removed_files += 1
                    report.removed_bytes += size
            elif schedule_remaining:
                self._schedule(path, self._store.ttl - (now - mtime))
                report.timers_created += 1
        await asyncio.to_thread(remove_dir_if_empty, shard)

    def _schedule(self, path: Path, delay: float) -> None:
        self._store.scheduler.schedule(
            str(path), delay, functools.partial(self.expire_file, path)
        )
