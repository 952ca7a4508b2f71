"""Request/response record exchanged between a server pipeline and the cache.

:class:`RequestContext` is filled progressively as a request moves through
the server:

* **Request received**: ``method``, ``url`` and ``headers`` are populated
  before :meth:`fscache.cache.URLCache.request_received` is called. On a
  hit the cache sets ``from_cache``.
* **Before send**: ``status_code``, ``response_headers`` and ``content``
  are populated before :meth:`fscache.cache.URLCache.before_send`, which
  skips responses with ``from_cache`` set so hits are never re-cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RequestContext:
    """Mutable per-request state threaded through the cache hooks.

    Attributes:
        method: HTTP method (e.g. ``"GET"``).
        url: The request URL, used verbatim as the cache key.
        headers: Request headers.
        from_cache: Set by the cache when the response came from disk.
        status_code: Response status code.
        response_headers: Response headers as produced upstream.
        content: Response body.
    """

    method: str = "GET"
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False
    status_code: int = 0
    response_headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""
