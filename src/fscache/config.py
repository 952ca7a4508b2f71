"""Environment-based configuration with strict parsing and precedence resolution.

Recognised variables:

==================================  ===================================  ============
Variable                            Effect                               Default
==================================  ===================================  ============
``CACHE_PATH``                      base directory for shard dirs        ``/tmp/prerender-cache``
``CACHE_TTL``                       seconds before an entry expires      ``86400``
``CACHE_STATUS_CODES``              comma-separated storage allow-list   ``200,301,302,303,304,307,308,404``
``DISABLE_LOGGING``                 suppress diagnostic output           off
``CACHE_REMOVE_EXPIRED_ON_STARTUP`` sweep the tree when the cache starts on
``CACHE_SWEEP_INTERVAL``            seconds between periodic sweeps      ``0`` (off)
==================================  ===================================  ============

Any value that cannot be parsed raises :class:`~fscache.exceptions.ConfigError`:
the process must not start with an ambiguous configuration.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from fscache.exceptions import ConfigError
from fscache.models import CacheConfig

_TRUE_VALUES = ("1", "true", "t")
_FALSE_VALUES = ("0", "false", "f")


def parse_bool(value: Optional[str], default: bool) -> bool:
    """Parse a boolean environment value.

    Args:
        value: Raw value, or ``None`` when the variable is unset.
        default: Returned when *value* is unset or blank.

    Returns:
        The parsed boolean.

    Raises:
        ConfigError: If *value* is not one of ``1/true/t`` or ``0/false/f``
            (case-insensitive).
    """
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid bool value: {value!r}")


def parse_status_codes(value: str) -> list[int]:
    """Parse a comma-separated list of HTTP status codes.

    Blank items are ignored, so a trailing comma is tolerated.

    Raises:
        ConfigError: If an item is not an integer or the list is empty.
    """
    codes: list[int] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            codes.append(int(item))
        except ValueError as exc:
            raise ConfigError(f"Invalid status code {item!r} in {value!r}") from exc
    if not codes:
        raise ConfigError(f"No status codes found in {value!r}")
    return codes


def _parse_number(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid numeric value for {name}: {value!r}") from exc


def _build(data: dict[str, Any]) -> CacheConfig:
    try:
        return CacheConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid cache configuration: {exc}") from exc


def _env_values(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect the settings present in *environ* as raw model input."""
    data: dict[str, Any] = {}

    cache_path = environ.get("CACHE_PATH")
    if cache_path:
        data["cache_path"] = Path(cache_path)

    ttl = environ.get("CACHE_TTL")
    if ttl:
        data["ttl_seconds"] = _parse_number("CACHE_TTL", ttl)

    status_codes = environ.get("CACHE_STATUS_CODES")
    if status_codes:
        data["status_codes"] = parse_status_codes(status_codes)

    interval = environ.get("CACHE_SWEEP_INTERVAL")
    if interval:
        data["sweep_interval"] = _parse_number("CACHE_SWEEP_INTERVAL", interval)

    data["disable_logging"] = parse_bool(environ.get("DISABLE_LOGGING"), False)
    data["remove_expired_on_startup"] = parse_bool(
        environ.get("CACHE_REMOVE_EXPIRED_ON_STARTUP"), True
    )
    return data


def load_config(environ: Optional[Mapping[str, str]] = None) -> CacheConfig:
    """Load the cache configuration from environment variables.

    Args:
        environ: Mapping to read from. Defaults to :data:`os.environ`.

    Returns:
        A validated :class:`~fscache.models.CacheConfig`.

    Raises:
        ConfigError: If any recognised variable holds an invalid value.
    """
    if environ is None:
        environ = os.environ
    return _build(_env_values(environ))


def resolve_config(
    cli_cache_path: Optional[str] = None,
    cli_ttl: Optional[float] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CacheConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_cache_path``, ``cli_ttl``)
        2. Environment variables
        3. Defaults

    Raises:
        ConfigError: If the merged settings are invalid.
    """
    if environ is None:
        environ = os.environ
    data = _env_values(environ)
    if cli_cache_path is not None:
        data["cache_path"] = Path(cli_cache_path)
    if cli_ttl is not None:
        data["ttl_seconds"] = cli_ttl
    return _build(data)
