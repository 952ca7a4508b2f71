"""Tests for the expiry sweeper."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

from fscache.models import CacheConfig
from fscache.store import FileSystemStore
from fscache.sweeper import ExpirySweeper


def _populate(store: FileSystemStore, urls: list[str]) -> None:
    async def scenario():
        for url in urls:
            await store.set(url, 200, {}, b"body")
        store.scheduler.cancel_all()

    asyncio.run(scenario())


class TestSweep:
    def test_missing_root_is_empty_report(self, store: FileSystemStore) -> None:
        report = asyncio.run(ExpirySweeper(store).sweep())
        assert report.removed_files == 0
        assert report.timers_created == 0

    def test_removes_expired_and_empty_shards(self, store: FileSystemStore, age_file) -> None:
        _populate(store, ["http://old"])
        paths = store.paths("http://old")
        age_file(paths.data, 4000)
        age_file(paths.meta, 4000)
        size = paths.data.stat().st_size + paths.meta.stat().st_size

        report = asyncio.run(ExpirySweeper(store).sweep())
        assert report.removed_files == 2
        assert report.removed_bytes == size
        assert report.timers_created == 0
        assert not paths.shard_dir.exists()

    def test_arms_timers_for_fresh_files(self, store: FileSystemStore) -> None:
        _populate(store, ["http://fresh"])
        paths = store.paths("http://fresh")

        async def scenario():
            report = await ExpirySweeper(store).sweep()
            keys = (str(paths.data) in store.scheduler, str(paths.meta) in store.scheduler)
            store.scheduler.cancel_all()
            return report, keys

        report, keys = asyncio.run(scenario())
        assert report.removed_files == 0
        assert report.timers_created == 2
        assert keys == (True, True)
        assert paths.meta.exists()

    def test_timer_uses_remaining_lifetime(self, store: FileSystemStore, age_file) -> None:
        _populate(store, ["http://a"])
        paths = store.paths("http://a")
        age_file(paths.meta, 3000)

        async def scenario():
            loop = asyncio.get_running_loop()
            now = loop.time()
            await ExpirySweeper(store).sweep()
            deadline = store.scheduler.deadline(str(paths.meta))
            store.scheduler.cancel_all()
            return deadline - now

        remaining = asyncio.run(scenario())
        assert 590 <= remaining <= 610

    def test_one_shot_sweep_arms_no_timers(self, store: FileSystemStore) -> None:
        _populate(store, ["http://fresh"])

        async def scenario():
            report = await ExpirySweeper(store).sweep(schedule_remaining=False)
            return report, len(store.scheduler)

        report, pending = asyncio.run(scenario())
        assert report.timers_created == 0
        assert pending == 0

    def test_mixed_tree(self, store: FileSystemStore, age_file) -> None:
        urls = [f"http://site/{i}" for i in range(20)]
        _populate(store, urls)
        for url in urls[:10]:
            age_file(store.paths(url).meta, 5000)
            age_file(store.paths(url).data, 5000)

        async def scenario():
            report = await ExpirySweeper(store).sweep()
            store.scheduler.cancel_all()
            return report

        report = asyncio.run(scenario())
        assert report.removed_files == 20
        assert report.timers_created == 20
        for url in urls[10:]:
            assert store.paths(url).meta.exists()

    def test_stray_temp_files_are_swept(self, store: FileSystemStore, age_file) -> None:
        _populate(store, ["http://a"])
        shard = store.paths("http://a").shard_dir
        stray = shard / ".abc.data.xyz.tmp"
        stray.write_bytes(b"partial")
        age_file(stray, 9999)

        async def scenario():
            report = await ExpirySweeper(store).sweep()
            store.scheduler.cancel_all()
            return report

        report = asyncio.run(scenario())
        assert report.removed_files == 1
        assert not stray.exists()

    def test_unrelated_files_are_left_alone(self, store: FileSystemStore, age_file) -> None:
        _populate(store, ["http://a"])
        shard = store.paths("http://a").shard_dir
        other = shard / "README"
        other.write_text("keep me")
        age_file(other, 9999)
        for path in (store.paths("http://a").data, store.paths("http://a").meta):
            age_file(path, 9999)

        asyncio.run(ExpirySweeper(store).sweep())
        assert other.exists()
        assert shard.is_dir()

    def test_vanishing_shard_does_not_abort_sweep(self, store: FileSystemStore, age_file) -> None:
        urls = [f"http://site/{i}" for i in range(8)]
        _populate(store, urls)
        for url in urls:
            age_file(store.paths(url).meta, 5000)
            age_file(store.paths(url).data, 5000)
        shards = store.shard_dirs()
        ghost = shards[0].parent / "zz-ghost"

        with patch.object(store, "shard_dirs", return_value=[ghost] + shards):
            report = asyncio.run(ExpirySweeper(store).sweep())

        assert report.removed_files == 16
        for url in urls:
            assert not store.paths(url).meta.exists()

    def test_shard_failure_is_isolated_and_logged(
        self, store: FileSystemStore, age_file, capfd
    ) -> None:
        urls = [f"http://site/{i}" for i in range(8)]
        _populate(store, urls)
        for url in urls:
            age_file(store.paths(url).meta, 5000)
            age_file(store.paths(url).data, 5000)
        shards = store.shard_dirs()
        broken = shards[0]

        from fscache import sweeper as sweeper_module

        real_scan = sweeper_module._scan_shard

        def flaky_scan(shard: Path):
            if shard == broken:
                raise PermissionError(13, "denied")
            return real_scan(shard)

        with patch.object(sweeper_module, "_scan_shard", side_effect=flaky_scan):
            report = asyncio.run(ExpirySweeper(store).sweep())

        assert "Cannot clean up directory" in capfd.readouterr().err
        assert broken.exists()
        assert report.removed_files > 0

    def test_summary_is_logged(self, store: FileSystemStore, capfd) -> None:
        asyncio.run(ExpirySweeper(store).sweep())
        err = capfd.readouterr().err
        assert "Removed 0 files (0 bytes), scheduled 0 cache expire events" in err


class TestExpireFile:
    def test_removes_expired_file_and_empty_shard(self, store: FileSystemStore, age_file) -> None:
        _populate(store, ["http://a"])
        paths = store.paths("http://a")
        for path in (paths.data, paths.meta):
            age_file(path, 9999)

        async def scenario():
            sweeper = ExpirySweeper(store)
            await sweeper.expire_file(paths.data)
            await sweeper.expire_file(paths.meta)

        asyncio.run(scenario())
        assert not paths.shard_dir.exists()

    def test_rewritten_file_is_rearmed(self, store: FileSystemStore) -> None:
        _populate(store, ["http://a"])
        paths = store.paths("http://a")

        async def scenario():
            await ExpirySweeper(store).expire_file(paths.meta)
            armed = str(paths.meta) in store.scheduler
            store.scheduler.cancel_all()
            return armed

        assert asyncio.run(scenario()) is True
        assert paths.meta.exists()

    def test_missing_file_is_noop(self, store: FileSystemStore, tmp_path: Path) -> None:
        asyncio.run(ExpirySweeper(store).expire_file(tmp_path / "gone.data"))

    def test_sweep_timers_fire(self, cache_root: Path) -> None:
        store = FileSystemStore(CacheConfig(cache_path=cache_root, ttl_seconds=0.2))

        async def scenario():
            await store.set("http://a", 200, {}, b"x")
            store.scheduler.cancel_all()
            report = await ExpirySweeper(store).sweep()
            await asyncio.sleep(0.5)
            await store.scheduler.drain()
            return report

        report = asyncio.run(scenario())
        assert report.timers_created == 2
        assert not store.paths("http://a").shard_dir.exists()


class TestPeriodic:
    def test_zero_interval_does_not_start(self, store: FileSystemStore) -> None:
        async def scenario():
            sweeper = ExpirySweeper(store, interval=0)
            await sweeper.start()
            return sweeper.running

        assert asyncio.run(scenario()) is False

    def test_periodic_sweep_runs_and_stops(self, store: FileSystemStore, age_file) -> None:
        _populate(store, ["http://a"])
        paths = store.paths("http://a")

        async def scenario():
            sweeper = ExpirySweeper(store, interval=0.05)
            await sweeper.start()
            assert sweeper.running
            age_file(paths.meta, 9999)
            age_file(paths.data, 9999)
            await asyncio.sleep(0.3)
            await sweeper.stop()
            store.scheduler.cancel_all()
            return sweeper.running

        assert asyncio.run(scenario()) is False
        assert not paths.meta.exists()
