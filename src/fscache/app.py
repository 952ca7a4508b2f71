"""Typer application and CLI entry point for cache maintenance.

The ``fscache`` command inspects and maintains a cache directory from the
shell: one-off sweeps, statistics, looking at or deleting the entry for a
URL, and wiping the whole tree. It reads the same environment variables as
a server embedding the cache (see :mod:`fscache.config`); ``--cache-path``
and ``--ttl`` override them.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Optional

import typer

from fscache import __version__
from fscache.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="fscache",
    help="Inspect and maintain a filesystem response cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"fscache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    cache_path: Optional[str] = typer.Option(
        None, "--cache-path", "-d", help="Cache root directory (overrides CACHE_PATH)."
    ),
    ttl: Optional[float] = typer.Option(
        None, "--ttl", help="Entry lifetime in seconds (overrides CACHE_TTL)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Resolves the cache configuration (CLI flags over environment over
    defaults), installs the global :class:`~fscache.output.OutputManager`,
    and stores the configuration in ``ctx.obj["config"]``.
    """
    from fscache.config import resolve_config
    from fscache.exceptions import ConfigError
    from fscache.output import OutputFormat, OutputManager, error, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )

    try:
        config = resolve_config(cli_cache_path=cache_path, cli_ttl=ttl)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            disabled=config.disable_logging,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _register_commands() -> None:
    from fscache.commands.config import config_app
    from fscache.commands.entries import register_entry_commands

    register_entry_commands(app)
    app.add_typer(config_app, name="config", help="Configuration inspection.")


_register_commands()


def main() -> None:
    """CLI entry point invoked by the ``fscache`` console script.

    Unhandled :class:`~fscache.exceptions.FSCacheError` instances cause a
    clean exit with the error's ``exit_code``; anything else exits with
    :data:`~fscache.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from fscache.exceptions import FSCacheError
        from fscache.output import error

        if isinstance(exc, FSCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
