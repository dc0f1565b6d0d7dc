"""Typer application and CLI entry point for playfetch.

Each command resolves the configuration (flags, environment, config file),
opens a :class:`~playfetch.client.engine.RequestEngine`, logs in, and runs
one operation. :class:`~playfetch.exceptions.PlayfetchError` failures are
printed to stderr and turned into the error's exit code.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, TypeVar

import typer

from playfetch import __version__
from playfetch.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from playfetch.client.engine import RequestEngine
    from playfetch.models import ClientConfig

T = TypeVar("T")

app = typer.Typer(
    name="playfetch",
    help="Query package details, related apps, and downloads from the store API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"playfetch {__version__}")
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
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Disable request deduplication and prefetch caching."
    ),
) -> None:
    """Initialise output and logging, and stash config overrides in ``ctx.obj``."""
    from playfetch.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    set_output(output)

    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "use_cache": False if no_cache else None,
        "debug": True if verbose else None,
    }


def _load_config(ctx: typer.Context) -> ClientConfig:
    """Resolve config for this invocation, prompting for a password on a TTY."""
    from playfetch.config import require_credentials, resolve_config
    from playfetch.output import configure_logging

    obj = ctx.obj or {}
    config = resolve_config(overrides=obj.get("overrides"))
    configure_logging(verbose=config.debug)

    if not config.password and config.username and sys.stdin.isatty():
        password = typer.prompt(f"Password for {config.username}", hide_input=True)
        config = config.model_copy(update={"password": password})
    require_credentials(config)
    return config


def _build_engine(config: ClientConfig) -> RequestEngine:
    """Create the engine used by commands."""
    from playfetch.client.engine import RequestEngine

    return RequestEngine(config)


def _run(ctx: typer.Context, operation: Callable[[RequestEngine], Awaitable[T]]) -> T:
    """Log in, run *operation* against the engine, and map errors to exit codes."""
    from playfetch.exceptions import PlayfetchError
    from playfetch.output import error

    async def _session() -> T:
        config = _load_config(ctx)
        async with _build_engine(config) as engine:
            await engine.login()
            return await operation(engine)

    try:
        return asyncio.run(_session())
    except PlayfetchError as exc:
        error(str(exc))
        raise typer.Exit(exc.exit_code) from exc


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("details")
def details_command(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name, e.g. com.example.app."),
) -> None:
    """Show the details document for a package."""
    from playfetch.output import print_document

    doc = _run(ctx, lambda engine: engine.package_details(package))
    print_document(doc)


@app.command("related")
def related_command(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name, e.g. com.example.app."),
) -> None:
    """List apps related to a package."""
    from playfetch.output import print_documents

    apps = _run(ctx, lambda engine: engine.related_apps(package))
    print_documents(apps, ["docid", "title", "creator"], title=f"Related to {package}")


@app.command("download-info")
def download_info_command(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name."),
    version_code: int = typer.Argument(..., help="Version code to download."),
) -> None:
    """Show the download URL and cookies for a package version."""
    from playfetch.output import print_document

    grant = _run(ctx, lambda engine: engine.download_grant(package, version_code))
    print_document(grant.model_dump())


@app.command("download")
def download_command(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name."),
    version_code: Optional[int] = typer.Option(
        None, "--version-code", "-c", help="Version code; the latest when omitted."
    ),
    output_path: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Destination file (default: <package>.apk)."
    ),
) -> None:
    """Download a package file."""
    from playfetch.output import success

    destination = output_path or Path(f"{package}.apk")
    written = _run(ctx, lambda engine: engine.save(package, destination, version_code))
    success(f"Saved {written} bytes to {destination}")


@app.command("cache-keys")
def cache_keys_command(
    ctx: typer.Context,
    packages: list[str] = typer.Argument(..., help="Packages to fetch details for."),
) -> None:
    """Fetch details for packages and list the resulting cache keys."""
    from playfetch.output import print_documents

    async def _collect(engine: RequestEngine) -> list[str]:
        await asyncio.gather(*(engine.package_details(pkg) for pkg in packages))
        return engine.cached_keys()

    keys = _run(ctx, _collect)
    rows = [{"fingerprint": key} for key in keys]
    print_documents(rows, ["fingerprint"], title="Cache keys")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``playfetch`` console script.

    Unexpected exceptions are reported on stderr and exit with
    :data:`~playfetch.exit_codes.EXIT_GENERIC_FAILURE`.
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
        from playfetch.output import error

        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
