"""Tests for CacheMiddleware on a FastAPI application."""

from __future__ import annotations

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from fscache.cache import URLCache
from fscache.middleware import CacheMiddleware, cache_lifespan
from fscache.models import CacheConfig
from fscache.store import FileSystemStore


def _build_app(cache: URLCache, lifespan: bool = True) -> tuple[FastAPI, dict[str, int]]:
    calls = {"count": 0}
    app = FastAPI(lifespan=cache_lifespan(cache)) if lifespan else FastAPI()
    app.add_middleware(CacheMiddleware, cache=cache)

    @app.get("/page")
    def page() -> PlainTextResponse:
        calls["count"] += 1
        return PlainTextResponse(
            f"render {calls['count']}",
            headers={"x-rendered": "yes", "set-cookie": "sid=1"},
        )

    @app.get("/missing")
    def missing() -> PlainTextResponse:
        calls["count"] += 1
        return PlainTextResponse("nope", status_code=404)

    @app.get("/broken")
    def broken() -> PlainTextResponse:
        calls["count"] += 1
        return PlainTextResponse("boom", status_code=500)

    @app.post("/page")
    def post_page() -> PlainTextResponse:
        calls["count"] += 1
        return PlainTextResponse(f"posted {calls['count']}")

    return app, calls


@pytest.fixture
def cache(config: CacheConfig) -> URLCache:
    return URLCache(config)


class TestCacheMiddleware:
    def test_miss_then_hit(self, cache: URLCache) -> None:
        app, calls = _build_app(cache)
        with TestClient(app) as client:
            first = client.get("/page")
            second = client.get("/page")

        assert first.text == "render 1"
        assert second.status_code == 200
        assert second.text == "render 1"
        assert second.headers["x-rendered"] == "yes"
        assert calls["count"] == 1

    def test_hit_drops_non_cacheable_headers(self, cache: URLCache) -> None:
        app, _ = _build_app(cache)
        with TestClient(app) as client:
            first = client.get("/page")
            second = client.get("/page")

        assert "set-cookie" in first.headers
        assert "set-cookie" not in second.headers
        assert second.headers["content-length"] == str(len(b"render 1"))

    def test_entry_written_to_disk(self, cache: URLCache) -> None:
        app, _ = _build_app(cache)
        with TestClient(app) as client:
            client.get("/page")

        paths = cache.store.paths("http://testserver/page")
        assert paths.data.exists()
        assert paths.meta.exists()

    def test_not_found_is_cached(self, cache: URLCache) -> None:
        app, calls = _build_app(cache)
        with TestClient(app) as client:
            client.get("/missing")
            second = client.get("/missing")

        assert second.status_code == 404
        assert second.text == "nope"
        assert calls["count"] == 1

    def test_server_error_is_not_cached(self, cache: URLCache) -> None:
        app, calls = _build_app(cache)
        with TestClient(app) as client:
            client.get("/broken")
            client.get("/broken")

        assert calls["count"] == 2
        assert not cache.store.paths("http://testserver/broken").meta.exists()

    def test_post_is_not_cached(self, cache: URLCache) -> None:
        app, calls = _build_app(cache)
        with TestClient(app) as client:
            first = client.post("/page")
            second = client.post("/page")

        assert first.text == "posted 1"
        assert second.text == "posted 2"
        assert calls["count"] == 2

    def test_no_cache_request_bypasses_and_refreshes(self, cache: URLCache) -> None:
        app, calls = _build_app(cache)
        with TestClient(app) as client:
            client.get("/page")
            fresh = client.get("/page", headers={"Cache-Control": "no-cache"})
            after = client.get("/page")

        assert fresh.text == "render 2"
        assert after.text == "render 2"
        assert calls["count"] == 2


class TestCacheLifecycle:
    def _seed_expired(self, store: FileSystemStore, age_file) -> None:
        async def seed():
            await store.set("http://testserver/old", 200, {}, b"stale")
            store.scheduler.cancel_all()

        asyncio.run(seed())
        paths = store.paths("http://testserver/old")
        age_file(paths.data, 99999)
        age_file(paths.meta, 99999)

    def test_lifespan_sweeps_expired_entries(
        self, cache: URLCache, store: FileSystemStore, age_file
    ) -> None:
        self._seed_expired(store, age_file)
        app, _ = _build_app(cache)
        with TestClient(app) as client:
            report = client.portal.call(cache.wait_startup_sweep)

        assert report.removed_files == 2
        assert not store.paths("http://testserver/old").shard_dir.exists()

    def test_lifespan_closes_cache(self, cache: URLCache) -> None:
        app, _ = _build_app(cache)
        with TestClient(app) as client:
            client.get("/page")
            pending = len(cache.store.scheduler)

        assert pending >= 1
        assert len(cache.store.scheduler) == 0

    def test_first_request_starts_cache_without_lifespan(
        self, cache: URLCache, store: FileSystemStore, age_file
    ) -> None:
        self._seed_expired(store, age_file)
        app, _ = _build_app(cache, lifespan=False)
        with TestClient(app) as client:
            assert client.portal.call(cache.wait_startup_sweep) is None
            client.get("/page")
            report = client.portal.call(cache.wait_startup_sweep)
            client.portal.call(cache.close)

        assert report.removed_files == 2
        assert not store.paths("http://testserver/old").meta.exists()

    def test_disable_logging_silences_requests(self, cache_root, capfd) -> None:
        cache = URLCache(CacheConfig(cache_path=cache_root, disable_logging=True))
        app, _ = _build_app(cache)
        with TestClient(app) as client:
            client.get("/page")
            client.get("/page")

        assert capfd.readouterr().err == ""
