"""Starlette/FastAPI integration: :class:`CacheMiddleware` and :func:`cache_lifespan`."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from fastapi import Request
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from fscache.cache import URLCache
from fscache.pipeline import RequestContext


def cache_lifespan(cache: URLCache) -> Callable[[Any], AbstractAsyncContextManager[None]]:
    """Build an application lifespan that starts *cache* and closes it on shutdown.

    Starting the cache launches the startup sweep in the background and the
    periodic sweep when configured; shutdown cancels both and every pending
    expiry timer.

    Example::

        cache = URLCache(load_config())
        app = FastAPI(lifespan=cache_lifespan(cache))
        app.add_middleware(CacheMiddleware, cache=cache)
    """

    @asynccontextmanager
    async def lifespan(app: Any) -> AsyncIterator[None]:
        async with cache:
            yield

    return lifespan


class CacheMiddleware(BaseHTTPMiddleware):
    """Answer GET requests from the filesystem cache and cache fresh responses.

    A hit is replayed with its stored status, filtered headers and body.
    A cacheable miss is sent to the client unchanged and then written to
    disk in a background task, so storage never delays the response.

    The cache is started on the first request if the application lifespan
    has not already done so; only :func:`cache_lifespan` also closes it.
    """

    def __init__(self, app: ASGIApp, cache: URLCache) -> None:
        super().__init__(app)
        self.cache = cache

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        await self.cache.start()
        ctx = RequestContext(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
        )

        cached = await self.cache.request_received(ctx)
        if cached is not None:
            # Content-Length is recomputed from the decompressed body.
            headers = {k: v for k, v in cached.headers.items() if k != "content-length"}
            return Response(
                content=cached.body,
                status_code=cached.status_code,
                headers=headers,
            )

        response = await call_next(request)
        ctx.status_code = response.status_code
        if not self.cache.should_store(ctx):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        ctx.response_headers = dict(response.headers)
        ctx.content = body
        return Response(
            content=body,
            status_code=response.status_code,
            headers=response.headers,
            background=BackgroundTask(self.cache.before_send, ctx),
        )
