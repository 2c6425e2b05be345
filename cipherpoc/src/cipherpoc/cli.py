"""cipherpoc command-line interface.

What:
  Provide a Typer-based entry point. Invoked without a subcommand it runs the
  demo sequence (open, ensure schema, insert, query, print); ``inspect`` prints
  the schema and statistics of the configured database.

Why:
  The demo takes no flags: path and key come from the runtime configuration.
  Wiring both commands through the same configuration and error handling keeps
  exit codes predictable for scripts.

How:
  Load the runtime configuration, configure logging from it, then call
  :func:`~cipherpoc.core.runner.run_demo` or the inspector. Every taxonomy,
  configuration or missing-driver error is logged, echoed to stderr as
  ``error: <description>`` and turned into exit code ``1``.

Interfaces:
  ``app`` (Typer application), ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - No step is retried; the first failure ends the run.
"""
from __future__ import annotations

import logging
from typing import NoReturn

import typer

from .config.loader import ConfigLoadError, load_runtime_config
from .config.schema import RuntimeConfig
from .core.inspector import describe_schema, render_report, table_statistics
from .core.runner import run_demo
from .errors import CipherPocError
from .utils.sqlcipher import SqlCipherUnavailable, encrypted_database


app = typer.Typer(help="Encrypted SQLite (SQLCipher) proof of concept")

LOGGER = logging.getLogger("cipherpoc.cli")

_HANDLED_ERRORS = (CipherPocError, ConfigLoadError, SqlCipherUnavailable)


def _fail(stage: str, exc: Exception) -> NoReturn:
    LOGGER.error("%s_failed error_type=%s error=%s", stage, type(exc).__name__, exc)
    typer.echo(f"error: {exc}", err=True)
    raise typer.Exit(code=1) from exc


def _load_runtime() -> RuntimeConfig:
    """Load configuration and apply its log level to the root logger."""

    try:
        runtime = load_runtime_config()
    except ConfigLoadError as exc:
        _fail("runtime_load", exc)
    logging.basicConfig(
        level=runtime.logging.level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return runtime


@app.callback(invoke_without_command=True)
def demo(ctx: typer.Context) -> None:
    """Run the encrypted database demo once.

    What:
      Open the configured database with its key, ensure the ``entries`` table,
      insert one random entry and print every stored entry, one per line.

    How:
      Skipped when a subcommand was requested; otherwise delegates to
      :func:`run_demo` with :func:`typer.echo` as the report sink.
    """

    if ctx.invoked_subcommand is not None:
        return
    runtime = _load_runtime()
    try:
        run_demo(runtime.database, echo=typer.echo)
    except _HANDLED_ERRORS as exc:
        _fail("demo", exc)


@app.command("inspect")
def inspect_database() -> None:
    """Print the schema and table statistics of the configured database."""

    runtime = _load_runtime()
    try:
        with encrypted_database(runtime.database) as connection:
            lines = render_report(describe_schema(connection), table_statistics(connection))
    except _HANDLED_ERRORS as exc:
        _fail("inspect", exc)
    for line in lines:
        typer.echo(line)


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
