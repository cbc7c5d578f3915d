"""Classification of command-line operands.

Precedence for a first operand without a leading ``-``: registered
command, URL, existing directory, existing regular file, unknown.
Operands starting with ``-`` go to the long-option grammar.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from cxxpkg.cli.commands import COMMANDS, CommandSpec
from cxxpkg.cli.options import parse_options
from cxxpkg.core.models import (
    BuildTarget,
    DefaultRun,
    DispatchOutcome,
    InternalCommand,
    UnknownCommand,
)
from cxxpkg.utils.urls import is_url

OPTION_MARKER = "-"


def classify(
    operands: Sequence[str],
    *,
    commands: Mapping[str, CommandSpec] = COMMANDS,
) -> DispatchOutcome:
    """Map *operands* (argv without the program name) to a dispatch outcome.

    Raises
    ------
    UsageError
        When a registered command receives the wrong number of arguments.
    """
    if not operands:
        return DefaultRun()

    first, rest = operands[0], tuple(operands[1:])
    if first.startswith(OPTION_MARKER):
        return parse_options(operands)

    spec = commands.get(first)
    if spec is not None:
        spec.check_arity(rest)
        return InternalCommand(first, rest)

    if is_url(first):
        return BuildTarget(first, remote=True)

    path = Path(first)
    if path.is_dir():
        return DefaultRun(path)
    if path.is_file():
        return BuildTarget(first)
    return UnknownCommand(first)
