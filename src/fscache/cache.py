"""Cache facade: policy and lifecycle around the filesystem store.

:class:`URLCache` is the object a server constructs once and passes to
whatever drives the request pipeline (see :mod:`fscache.middleware`). It
owns the :class:`~fscache.store.FileSystemStore` and the
:class:`~fscache.sweeper.ExpirySweeper`, and exposes two hooks:

* :meth:`URLCache.request_received` -- looks the URL up for GET requests
  that do not carry ``Cache-Control: no-cache``.
* :meth:`URLCache.before_send` -- stores GET responses whose status is in
  the allow-list and that were not themselves served from cache.

Neither hook ever raises: the cache is strictly additive, and a failure
inside it must not fail the request it is attached to.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Optional

from fscache.exceptions import FSCacheError
from fscache.models import CacheConfig, CachedResponse, SweepReport
from fscache.output import configure_output, debug, error, info
from fscache.pipeline import RequestContext
from fscache.policy import is_cacheable_status, wants_fresh_response
from fscache.store import FileSystemStore
from fscache.sweeper import ExpirySweeper


class URLCache:
    """Process-wide response cache with explicit lifecycle.

    Constructing a cache installs the timestamped diagnostics manager for
    *config*, so ``disable_logging`` silences every message the cache and
    its sweeper emit.

    Args:
        config: Cache settings.
        store: Store to use. Built from *config* when omitted.

    Example::

        async with URLCache(load_config()) as cache:
            hit = await cache.get("https://example.com/")
    """

    def __init__(
        self, config: CacheConfig, store: Optional[FileSystemStore] = None
    ) -> None:
        self.config = config
        configure_output(config)
        self.store = store if store is not None else FileSystemStore(config)
        self.sweeper = ExpirySweeper(self.store, interval=config.sweep_interval)
        self._status_codes = frozenset(config.status_codes)
        self._startup_sweep: Optional[asyncio.Task] = None
        self._started = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Prepare the cache root and start background expiry.

        Creates the root directory if missing (a failure is logged, not
        raised), launches the startup sweep as a background task when
        ``remove_expired_on_startup`` is set, and starts the periodic sweep
        when ``sweep_interval`` is positive. Returns without waiting for
        the startup sweep; see :meth:`wait_startup_sweep`.
        """
        if self._started:
            return
        self._started = True
        root = self.store.root
        try:
            await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            error(f"Cannot create directory {root}: {exc}")
        else:
            if self.config.remove_expired_on_startup:
                self._startup_sweep = asyncio.create_task(self.sweeper.sweep())
        await self.sweeper.start()

    async def wait_startup_sweep(self) -> Optional[SweepReport]:
        """Wait for the startup sweep to finish.

        Returns:
            The sweep report, or ``None`` if no startup sweep was launched.
        """
        if self._startup_sweep is None:
            return None
        return await self._startup_sweep

    async def close(self) -> None:
        """Stop background sweeps and cancel every pending expiry timer."""
        if self._startup_sweep is not None:
            self._startup_sweep.cancel()
            try:
                await self._startup_sweep
            except asyncio.CancelledError:
                pass
            self._startup_sweep = None
        await self.sweeper.stop()
        self.store.scheduler.cancel_all()
        self._started = False

    async def __aenter__(self) -> URLCache:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Direct API
    # ------------------------------------------------------------------ #

    async def get(self, url: str) -> Optional[CachedResponse]:
        """Return the cached response for *url*, or ``None`` on a miss."""
        return await self.store.get(url)

    async def set(
        self,
        url: str,
        status_code: int,
        headers: Mapping[str, Any],
        body: bytes,
    ) -> bool:
        """Store a response for *url* without applying the hook policy."""
        return await self.store.set(url, status_code, headers, body)

    async def delete(self, url: str) -> None:
        """Remove the entry for *url* if present."""
        await self.store.delete(url)

    # ------------------------------------------------------------------ #
    # Policy
    # ------------------------------------------------------------------ #

    def should_lookup(self, ctx: RequestContext) -> bool:
        """Return True if the request may be answered from cache."""
        if ctx.method.upper() != "GET":
            return False
        return not wants_fresh_response(ctx.headers)

    def should_store(self, ctx: RequestContext) -> bool:
        """Return True if the response is eligible for storage."""
        if ctx.method.upper() != "GET" or ctx.from_cache:
            return False
        return is_cacheable_status(ctx.status_code, self._status_codes)

    # ------------------------------------------------------------------ #
    # Pipeline hooks
    # ------------------------------------------------------------------ #

    async def request_received(self, ctx: RequestContext) -> Optional[CachedResponse]:
        """Hook run when a request arrives.

        Returns:
            The cached response to emit in place of the normal pipeline,
            or ``None`` to let the request continue. On a hit
            ``ctx.from_cache`` is set.
        """
        if not self.should_lookup(ctx):
            return None
        try:
            cached = await self.store.get(ctx.url)
        except (OSError, FSCacheError) as exc:
            error(f"Cache lookup failed for {ctx.url}: {exc}")
            return None
        if cached is None:
            debug(f"Miss: {ctx.url}")
            return None
        info(f"Serving {ctx.url} from {self.store.paths(ctx.url).base}")
        ctx.from_cache = True
        return cached

    async def before_send(self, ctx: RequestContext) -> bool:
        """Hook run before a response is sent.

        Returns:
            ``True`` if the response was written to the cache.
        """
        if not self.should_store(ctx):
            return False
        info(f"Caching {ctx.url} to {self.store.paths(ctx.url).base}")
        try:
            return await self.store.set(
                ctx.url, ctx.status_code, ctx.response_headers, ctx.content
            )
        except (OSError, FSCacheError) as exc:
            error(f"Cannot cache {ctx.url}: {exc}")
            return False
