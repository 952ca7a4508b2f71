"""fscache -- filesystem cache for rendered HTTP responses.

Persists a response's status code, a filtered subset of its headers, and a
gzip-compressed body under a path derived from the SHA-1 of the request
URL, then serves identical GET requests straight from disk until the entry
expires.

Typical use inside a Starlette/FastAPI server::

    from fscache.cache import URLCache
    from fscache.config import load_config
    from fscache.middleware import CacheMiddleware, cache_lifespan

    cache = URLCache(load_config())
    app = FastAPI(lifespan=cache_lifespan(cache))
    app.add_middleware(CacheMiddleware, cache=cache)

Modules:
    keys: URL hashing and on-disk path resolution.
    codec: Body compression and metadata serialisation.
    store: The ``get``/``set``/``delete`` filesystem store.
    sweeper: Background reclamation of expired entries.
    cache: The policy facade and its two pipeline hooks.
    config: Environment-based configuration loading.
    output: Diagnostics and CLI output with Rich support.
"""

__version__ = "1.2.0"
