"""Long-option grammar for flagged invocations (``cxxpkg --build . …``).

``argparse`` is configured not to exit: parse errors surface as
:class:`~cxxpkg.exceptions.UsageError` and ``--help`` is a plain flag,
so the orchestrator decides what to print and which exit code to use.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from cxxpkg.core.models import FlaggedOptions
from cxxpkg.exceptions import UsageError

PROG = "cxxpkg"

PRIMARY_ACTIONS: tuple[str, ...] = (
    "build",
    "build_only",
    "rebuild",
    "generate",
    "dry_run",
    "build_package",
)
"""Option destinations in priority order; at most one of them runs."""


class _OptionParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _OptionParser(
        prog=PROG,
        description="C/C++ dependency manager and build driver.",
        usage=f"{PROG} [command | url | directory | file | options]",
        add_help=False,
        allow_abbrev=False,
    )

    general = parser.add_argument_group("general")
    general.add_argument("-h", "--help", action="store_true", help="Show this help and exit.")
    general.add_argument("-V", "--version", action="store_true", help="Print the version and exit.")
    general.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    general.add_argument("--log-json", action="store_true", help="JSON log lines on stderr.")

    actions = parser.add_argument_group("build actions (first match wins)")
    actions.add_argument("--build", metavar="PATH", help="Configure and build PATH.")
    actions.add_argument("--build-only", metavar="PATH", help="Build PATH without reconfiguring.")
    actions.add_argument("--rebuild", metavar="PATH", help="Clean and build PATH.")
    actions.add_argument("--generate", metavar="PATH", help="Only generate build files for PATH.")
    actions.add_argument("--dry-run", metavar="PATH", help="Configure PATH in a scratch directory.")
    actions.add_argument("--build-package", metavar="PKG", help="Build a stored package.")
    actions.add_argument("--settings", metavar="FILE", help="Settings file for --build-package.")
    actions.add_argument("--config", metavar="NAME", help="Build configuration (Debug, Release…).")

    run = parser.add_argument_group("default processing")
    run.add_argument("--dir", metavar="PATH", help="Work in PATH instead of the current directory.")
    run.add_argument("--curl-verbose", action="store_true", help="Log every HTTP transfer.")
    run.add_argument("--ignore-ssl-checks", action="store_true", help="Skip TLS verification.")
    run.add_argument("--prepare-archive", action="store_true", help="Write project archives only.")
    run.add_argument("--clean-packages", metavar="PATTERN", help="Remove stored packages under PATTERN.")
    run.add_argument("--self-upgrade", action="store_true", help="Upgrade this client.")

    maintenance = parser.add_argument_group("maintenance")
    maintenance.add_argument("--clear-cache", nargs="?", const="", metavar="STORAGE",
                             help="Remove the download cache.")
    maintenance.add_argument("--clear-vars-cache", nargs="?", const="", metavar="STORAGE",
                             help="Remove cached configure checks.")
    maintenance.add_argument("--self-upgrade-copy", metavar="DEST", help=argparse.SUPPRESS)
    return parser


def parse_options(argv: Sequence[str]) -> FlaggedOptions:
    """Parse *argv*; parse failures are returned, not raised."""
    parser = build_parser()
    try:
        namespace = parser.parse_args(list(argv))
    except UsageError as exc:
        return FlaggedOptions(options=None, error=str(exc))
    if namespace.build_package is not None and namespace.settings is None:
        return FlaggedOptions(options=None, error="--build-package requires --settings")
    return FlaggedOptions(options=namespace)


def primary_action(options: argparse.Namespace) -> str | None:
    """Return the highest-priority primary action present in *options*."""
    for name in PRIMARY_ACTIONS:
        if getattr(options, name) is not None:
            return name
    return None


def format_help() -> str:
    return build_parser().format_help()
