"""Cacheability rules applied at the edges of the cache.

Response headers that describe a single transfer, carry credentials, or
identify an edge/proxy hop are never persisted and therefore never
replayed on a hit. The set below matches the headers stripped by earlier
deployments so entries written by either remain interchangeable.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

NON_CACHEABLE_HEADERS = frozenset(
    [
        "age",
        "authorization",
        "cf-cache-status",
        "cf-ray",
        "cache-control",
        "connection",
        "content-encoding",
        "content-security-policy",
        "cookie",
        "date",
        "etag",
        "expect-ct",
        "expires",
        "feature-policy",
        "last-modified",
        "nel",
        "proxy-authorization",
        "referrer-policy",
        "report-to",
        "server",
        "set-cookie",
        "strict-transport-security",
        "transfer-encoding",
        "vary",
        "via",
        "x-cache",
        "x-cache-hit",
        "x-content-type-options",
        "x-correlation-id",
        "x-edge-ip",
        "x-edge-location",
        "x-edge-origin-shield-skipped",
        "x-frame-options",
        "x-powered-by",
        "x-request-id",
    ]
)

BYPASS_DIRECTIVE = "no-cache"


def filter_headers(headers: Mapping[str, Any]) -> dict[str, str]:
    """Drop non-cacheable headers and lower-case the remaining names."""
    filtered: dict[str, str] = {}
    for name, value in headers.items():
        key = name.lower()
        if key in NON_CACHEABLE_HEADERS:
            continue
        filtered[key] = str(value)
    return filtered


def wants_fresh_response(request_headers: Mapping[str, str]) -> bool:
    """Return True if the request's ``Cache-Control`` forbids serving from cache."""
    value = None
    for name, header_value in request_headers.items():
        if name.lower() == "cache-control":
            value = header_value
            break
    if not value:
        return False
    directives = (part.strip().lower() for part in value.split(","))
    return BYPASS_DIRECTIVE in directives


def is_cacheable_status(status_code: int, allowed: Collection[int]) -> bool:
    """Return True if *status_code* is in the storage allow-list.

    Pass a frozenset when checking many responses against one list.
    """
    return status_code in allowed
