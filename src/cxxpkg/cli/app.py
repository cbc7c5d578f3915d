"""CLI application entry point for cxxpkg.

This module is the **sole error boundary** for the entire application.
It catches :class:`~cxxpkg.exceptions.CxxpkgError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering one clean line via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here; control flow belongs to
  :class:`~cxxpkg.cli.orchestrator.Orchestrator`.
* This module is the only place that wires concrete ``infra`` adapters
  to the process context and translates the result into the OS process
  exit code.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

from cxxpkg.cli import exit_codes
from cxxpkg.cli.console import console, escape
from cxxpkg.cli.orchestrator import Collaborators, Orchestrator
from cxxpkg.core.context import ProcessContext, bootstrap, shutdown
from cxxpkg.core.models import ReplaceStrategy
from cxxpkg.core.protocols import ProgressCallback
from cxxpkg.core.update_service import UpdateAgent
from cxxpkg.exceptions import CxxpkgError

_VERBOSE_FLAGS = frozenset({"-v", "--verbose"})
_LOG_JSON_FLAG = "--log-json"


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def _logging_flags(operands: Sequence[str]) -> tuple[bool, bool]:
    """Pre-scan *operands* for logging flags; the logger exists before parsing."""
    if not operands or not operands[0].startswith("-"):
        return False, False
    verbose = any(arg in _VERBOSE_FLAGS for arg in operands)
    return verbose, _LOG_JSON_FLAG in operands


def _make_context(operands: Sequence[str]) -> ProcessContext:
    from cxxpkg.config.logging import configure_logging
    from cxxpkg.config.settings import cxxpkg_home, load_user_settings
    from cxxpkg.infra.database import DATABASE_FILENAME, SqliteServiceDatabase

    verbose, log_json = _logging_flags(operands)
    return bootstrap(
        configure_logger=lambda: configure_logging(verbose=verbose, log_json=log_json),
        load_settings=load_user_settings,
        open_service_database=lambda _settings: SqliteServiceDatabase(
            cxxpkg_home() / DATABASE_FILENAME
        ),
    )


def build_collaborators(context: ProcessContext) -> Collaborators:
    """Wire the default ``infra`` adapters to *context*."""
    from cxxpkg.infra.archive import ShutilUnpacker
    from cxxpkg.infra.build_driver import CMakeBuildDriver
    from cxxpkg.infra.config_session import TomlConfigLoader
    from cxxpkg.infra.database import SqlitePackagesDatabase
    from cxxpkg.infra.http_client import RequestsHttpClient
    from cxxpkg.infra.self_replace import (
        current_executable,
        default_replacer,
        platform_strategy,
        run_deferred_copy,
    )
    from cxxpkg.infra.tools import LocalTools

    http = RequestsHttpClient(context.http_settings)
    unpacker = ShutilUnpacker()
    packages = SqlitePackagesDatabase(context.service_db.connection)  # type: ignore[attr-defined]

    def _update_agent(host: str, progress: ProgressCallback | None) -> UpdateAgent:
        return UpdateAgent(
            http,
            unpacker,
            default_replacer(),
            host=host,
            progress_callback=progress,
        )

    return Collaborators(
        loader=TomlConfigLoader(context.settings, packages),
        build_driver=CMakeBuildDriver(context.settings, http, unpacker),
        tools=LocalTools(packages),
        packages=packages,
        update_agent=_update_agent,
        executable=current_executable,
        deferred_copy=(
            run_deferred_copy
            if platform_strategy() is ReplaceStrategy.DEFERRED_COPY
            else None
        ),
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: Sequence[str] | None = None) -> int:
    """Run the cxxpkg CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    operands = list(sys.argv[1:] if argv is None else argv)
    orchestrator = Orchestrator(lambda: _make_context(operands), build_collaborators)
    return orchestrator.run(operands)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except CxxpkgError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {escape(str(exc))}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
    finally:
        shutdown()
