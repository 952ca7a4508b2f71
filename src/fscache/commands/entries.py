"""Entry commands -- sweep, stats, show, get, delete and clear.

All commands operate on the cache directory resolved by the root callback
(``ctx.obj["config"]``). ``show`` never modifies the tree; ``get`` behaves
like a server lookup and removes the entry if it has expired.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import typer

from fscache.exit_codes import EXIT_NOT_FOUND
from fscache.models import CacheConfig
from fscache.output import error, format_response, info, success, warning


def _config(ctx: typer.Context) -> CacheConfig:
    return ctx.obj["config"]


def sweep_command(ctx: typer.Context) -> None:
    """Delete expired entries and empty shard directories once.

    Example::

        fscache sweep
        fscache --ttl 3600 sweep --json
    """
    from fscache.exceptions import StorageError
    from fscache.store import FileSystemStore
    from fscache.sweeper import ExpirySweeper

    async def _run() -> Any:
        store = FileSystemStore(_config(ctx))
        return await ExpirySweeper(store).sweep(schedule_remaining=False)

    try:
        report = asyncio.run(_run())
    except StorageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    format_response(report.model_dump())


def stats_command(ctx: typer.Context) -> None:
    """Show entry counts and disk usage of the cache directory."""
    from fscache.exceptions import StorageError
    from fscache.store import FileSystemStore

    try:
        stats = asyncio.run(FileSystemStore(_config(ctx)).stats())
    except StorageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    format_response(stats.model_dump())


def show_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL, exactly as it was cached."),
) -> None:
    """Show where an entry lives, its age, status code and headers.

    The entry is only inspected; an expired entry is reported, not removed.
    """
    from fscache.codec import decode_metadata
    from fscache.exceptions import CodecError
    from fscache.keys import url_hash
    from fscache.store import FileSystemStore

    store = FileSystemStore(_config(ctx))
    paths = store.paths(url)
    details: dict[str, Any] = {
        "url": url,
        "hash": url_hash(url),
        "data": str(paths.data),
        "meta": str(paths.meta),
    }
    try:
        meta_stat = paths.meta.stat()
        data_size = paths.data.stat().st_size
        raw_meta = paths.meta.read_bytes()
    except FileNotFoundError:
        error(f"No cached entry for {url}")
        format_response(details)
        raise typer.Exit(code=EXIT_NOT_FOUND)

    age = time.time() - meta_stat.st_mtime
    details["age_seconds"] = round(age, 3)
    details["expired"] = store.is_expired(meta_stat.st_mtime)
    if details["expired"]:
        warning(f"Entry for {url} has expired and will be removed on the next lookup")
    details["compressed_bytes"] = data_size
    try:
        metadata = decode_metadata(raw_meta)
    except CodecError as exc:
        details["error"] = str(exc)
    else:
        details["status_code"] = metadata.status_code
        details["headers"] = metadata.headers
    format_response(details)


def get_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL, exactly as it was cached."),
) -> None:
    """Write the cached, decompressed body for URL to stdout."""
    from fscache.output import get_output
    from fscache.store import FileSystemStore

    cached = asyncio.run(FileSystemStore(_config(ctx)).get(url))
    if cached is None:
        error(f"No cached entry for {url}")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    info(f"Status: {cached.status_code}")
    get_output().write_bytes(cached.body)


def delete_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL, exactly as it was cached."),
) -> None:
    """Delete the entry for URL. Deleting a missing entry is not an error."""
    from fscache.store import FileSystemStore

    freed = asyncio.run(FileSystemStore(_config(ctx)).delete(url))
    success(f"Removed entry for {url} ({freed} bytes)")


def clear_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete every cached entry under the cache directory."""
    from fscache.exceptions import StorageError
    from fscache.store import FileSystemStore

    config = _config(ctx)
    if not force:
        typer.confirm(f"Delete all cached entries under {config.cache_path}?", abort=True)
    try:
        removed = asyncio.run(FileSystemStore(config).clear())
    except StorageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    success(f"Removed {removed} files from {config.cache_path}")


def register_entry_commands(app: typer.Typer) -> None:
    """Attach the entry commands to the root application."""
    app.command("sweep")(sweep_command)
    app.command("stats")(stats_command)
    app.command("show")(show_command)
    app.command("get")(get_command)
    app.command("delete")(delete_command)
    app.command("clear")(clear_command)
