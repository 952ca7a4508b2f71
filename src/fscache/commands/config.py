"""Config commands -- view the effective cache configuration.

Settings come from environment variables (see :mod:`fscache.config`) and
the root ``--cache-path``/``--ttl`` flags; there is no config file to edit.
"""

from __future__ import annotations

import typer

from fscache.output import format_response, info


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the configuration the cache would run with.

    Example::

        fscache config show
        CACHE_TTL=3600 fscache config show --json
    """
    config = ctx.obj["config"]
    info(f"Cache directory: {config.cache_path}")
    format_response(config.model_dump(mode="json"))
