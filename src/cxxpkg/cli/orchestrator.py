"""Top-level control flow: bootstrap, classify, run one terminal action.

The :class:`Orchestrator` is a small explicit state machine::

    BOOTSTRAPPING -> DISPATCHING -> {INTERNAL_COMMAND, DEFAULT_RUN,
    BUILD_TARGET, FLAGGED_OPTIONS_RUN} -> TERMINATED

Every transition is logged at debug level.  Errors are never caught
here; they travel to the boundary in :mod:`cxxpkg.cli.app`.
"""

from __future__ import annotations

import argparse
import enum
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from cxxpkg.cli import exit_codes
from cxxpkg.cli.commands import COMMANDS, CommandSpec
from cxxpkg.cli.console import console, escape, out
from cxxpkg.cli.dispatch import classify
from cxxpkg.cli.options import format_help, primary_action
from cxxpkg.cli.progress import DownloadProgress
from cxxpkg.core.context import ProcessContext, scoped_chdir
from cxxpkg.core.models import (
    BuildTarget,
    DefaultRun,
    DispatchOutcome,
    FlaggedOptions,
    InternalCommand,
    UnknownCommand,
)
from cxxpkg.core.protocols import (
    BuildDriver,
    ConfigLoader,
    ConfigSession,
    InternalTools,
    PackagesDatabase,
    ProgressCallback,
)
from cxxpkg.core.update_service import UpdateAgent
from cxxpkg.exceptions import ArchiveWriteError, CxxpkgError, UnknownCommandError, UsageError
from cxxpkg.version import __version__

logger = logging.getLogger(__name__)


class State(enum.Enum):
    BOOTSTRAPPING = "bootstrapping"
    DISPATCHING = "dispatching"
    INTERNAL_COMMAND = "internal-command"
    DEFAULT_RUN = "default-run"
    BUILD_TARGET = "build-target"
    FLAGGED_OPTIONS_RUN = "flagged-options-run"
    TERMINATED = "terminated"


@dataclass(slots=True)
class Collaborators:
    """Everything the orchestrator drives, already wired to the process context."""

    loader: ConfigLoader
    build_driver: BuildDriver
    tools: InternalTools
    packages: PackagesDatabase
    update_agent: Callable[[str, ProgressCallback | None], UpdateAgent]
    """``(host, progress_callback) -> UpdateAgent``."""

    executable: Callable[[], Path]
    deferred_copy: Callable[[Path], None] | None = None
    """Set only where the running binary is replaced by a spawned helper."""


class Orchestrator:
    """Runs exactly one terminal action per invocation.

    Parameters
    ----------
    bootstrap:
        Returns the process context; called once per :meth:`run`.
    wire:
        Builds the collaborators for a bootstrapped context.
    """

    def __init__(
        self,
        bootstrap: Callable[[], ProcessContext],
        wire: Callable[[ProcessContext], Collaborators],
        *,
        commands: Mapping[str, CommandSpec] = COMMANDS,
    ) -> None:
        self._bootstrap = bootstrap
        self._wire = wire
        self._commands = commands
        self._state = State.BOOTSTRAPPING
        self._context: ProcessContext | None = None
        self._deps: Collaborators | None = None

    @property
    def state(self) -> State:
        return self._state

    def _transition(self, state: State) -> None:
        logger.debug("Orchestrator %s -> %s", self._state.value, state.value)
        self._state = state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, operands: Sequence[str]) -> int:
        """Bootstrap, classify *operands* and return the process exit code."""
        try:
            self._context = self._bootstrap()
            self._deps = self._wire(self._context)
            self._transition(State.DISPATCHING)
            outcome = classify(operands, commands=self._commands)
            code = self._execute(outcome)
            logger.debug("Exit code %d", code)
            return code
        finally:
            self._transition(State.TERMINATED)

    def _execute(self, outcome: DispatchOutcome) -> int:
        if isinstance(outcome, InternalCommand):
            self._transition(State.INTERNAL_COMMAND)
            spec = self._commands[outcome.name]
            return spec.handler(self.deps, outcome.args)

        if isinstance(outcome, DefaultRun):
            self._transition(State.DEFAULT_RUN)
            if outcome.directory is None:
                return self._default_run()
            with scoped_chdir(outcome.directory):
                return self._default_run()

        if isinstance(outcome, BuildTarget):
            self._transition(State.BUILD_TARGET)
            logger.debug("Building %s target %s", "remote" if outcome.remote else "local", outcome.source)
            return self.deps.build_driver.build(outcome.source)

        if isinstance(outcome, FlaggedOptions):
            self._transition(State.FLAGGED_OPTIONS_RUN)
            return self._flagged_run(outcome)

        if isinstance(outcome, UnknownCommand):
            raise UnknownCommandError(
                f"unknown command: {outcome.name}",
                hint="Run 'cxxpkg --help' for usage.",
            )
        raise CxxpkgError(f"Unhandled dispatch outcome: {outcome!r}")

    @property
    def context(self) -> ProcessContext:
        if self._context is None:
            raise CxxpkgError("Orchestrator used before bootstrap")
        return self._context

    @property
    def deps(self) -> Collaborators:
        if self._deps is None:
            raise CxxpkgError("Orchestrator used before bootstrap")
        return self._deps

    # ------------------------------------------------------------------
    # Configuration helpers
    # ------------------------------------------------------------------

    def _apply_proxy(self, session: ConfigSession) -> None:
        self.context.http_settings.proxy = session.settings.proxy

    def _load_user(self) -> ConfigSession:
        session = self.deps.loader.load_user()
        self._apply_proxy(session)
        return session

    def _load_local(self, session: ConfigSession) -> ConfigSession:
        session = self.deps.loader.load_local(session, Path.cwd())
        # The loaded configuration always has the last word on the proxy.
        self._apply_proxy(session)
        return session

    def _default_run(self) -> int:
        session = self._load_local(self._load_user())
        session.process()
        return exit_codes.SUCCESS

    # ------------------------------------------------------------------
    # Flagged invocations
    # ------------------------------------------------------------------

    def _flagged_run(self, outcome: FlaggedOptions) -> int:
        if outcome.error is not None or outcome.options is None:
            console.print(f"[bold red]Error:[/bold red] {escape(outcome.error or 'invalid options')}")
            out.print(escape(format_help()))
            return exit_codes.USAGE_ERROR

        options = outcome.options
        if options.help:
            out.print(escape(format_help()))
            return exit_codes.SUCCESS
        if options.version:
            out.print(f"cxxpkg version {__version__}")
            return exit_codes.SUCCESS

        maintenance = self._maintenance(options)
        if maintenance is not None:
            return maintenance

        action = primary_action(options)
        if action is not None:
            logger.debug("Primary action %s", action)
            return self._primary(action, options)

        if options.clean_packages is not None:
            removed = self.deps.tools.clean_packages(
                self.context.settings.storage_dir, options.clean_packages
            )
            console.print(f"Removed {len(removed)} package(s).")
            return exit_codes.SUCCESS

        if options.dir is not None:
            with scoped_chdir(options.dir):
                return self._default_processing(options)
        return self._default_processing(options)

    def _storage(self, value: str) -> Path:
        return Path(value) if value else self.context.settings.storage_dir

    def _maintenance(self, options: argparse.Namespace) -> int | None:
        if options.self_upgrade_copy is not None:
            if self.deps.deferred_copy is None:
                raise UsageError(
                    "--self-upgrade-copy is not supported on this platform",
                    hint="Use 'cxxpkg --self-upgrade' instead.",
                )
            self.deps.deferred_copy(Path(options.self_upgrade_copy))
            return exit_codes.SUCCESS
        if options.clear_cache is not None:
            self.deps.tools.clear_cache(self._storage(options.clear_cache))
            return exit_codes.SUCCESS
        if options.clear_vars_cache is not None:
            self.deps.tools.clear_vars_cache(self._storage(options.clear_vars_cache))
            return exit_codes.SUCCESS
        return None

    def _primary(self, action: str, options: argparse.Namespace) -> int:
        driver = self.deps.build_driver
        config = options.config
        if action == "build":
            return driver.build(options.build, config)
        if action == "build_only":
            return driver.build_only(options.build_only, config)
        if action == "rebuild":
            return driver.build(options.rebuild, config, rebuild=True)
        if action == "generate":
            return driver.generate(options.generate, config)
        if action == "dry_run":
            return driver.dry_run(options.dry_run, config)
        return driver.build_package(options.build_package, options.settings, config)

    def _default_processing(self, options: argparse.Namespace) -> int:
        http_settings = self.context.http_settings
        http_settings.verbose = options.curl_verbose
        http_settings.ignore_ssl_checks = options.ignore_ssl_checks

        session = self._load_user()
        if options.self_upgrade:
            return self._self_upgrade(session)

        session = self._load_local(session)
        if options.prepare_archive:
            self._prepare_archives(session)
        else:
            session.process()
        return exit_codes.SUCCESS

    def _self_upgrade(self, session: ConfigSession) -> int:
        executable = self.deps.executable()
        with DownloadProgress() as progress:
            agent = self.deps.update_agent(session.settings.host, progress)
            result = agent.upgrade(executable)
        if result.completed:
            console.print(f"[bold green]Upgraded[/bold green] {escape(str(result.destination))}")
        else:
            console.print("[yellow]Upgrade will complete after this process exits.[/yellow]")
        return exit_codes.SUCCESS

    def _prepare_archives(self, session: ConfigSession) -> None:
        from cxxpkg.infra.archive import make_archive_name

        failed: list[str] = []
        for path, project in sorted(session.projects.items()):
            name = make_archive_name(path)
            if session.write_archive(project, name):
                console.print(f"Wrote {escape(name)}")
            else:
                failed.append(str(path))
        if failed:
            raise ArchiveWriteError(
                f"Cannot write archives for: {', '.join(failed)}",
                hint="Check that the project sources are readable and the directory is writable.",
            )
