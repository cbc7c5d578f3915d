"""Domain models for cxxpkg.

All models are **frozen** dataclasses: immutable value objects with no
behaviour beyond data access.  The only exception is :class:`HttpSettings`,
the mutable, process-wide network configuration.
"""

from __future__ import annotations

import argparse
import enum
from dataclasses import dataclass, field
from pathlib import Path

from cxxpkg.core.project_path import ProjectPath


# ---------------------------------------------------------------------------
# Dispatch outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class InternalCommand:
    """A registered utility command with its extra operands."""

    name: str
    args: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DefaultRun:
    """Config-driven build of a directory (``None`` = current directory)."""

    directory: Path | None = None


@dataclass(frozen=True, slots=True)
class BuildTarget:
    """Build a single target: a remote URL or a local config/source file."""

    source: str
    remote: bool = False


@dataclass(frozen=True, slots=True)
class UnknownCommand:
    """First operand matched nothing the dispatcher knows about."""

    name: str


@dataclass(frozen=True, slots=True)
class FlaggedOptions:
    """Result of parsing the long-option grammar.

    Exactly one of :attr:`options` and :attr:`error` is set.
    """

    options: argparse.Namespace | None
    error: str | None = None


DispatchOutcome = InternalCommand | DefaultRun | BuildTarget | UnknownCommand | FlaggedOptions
"""Tagged union produced by classification and consumed by the orchestrator."""


# ---------------------------------------------------------------------------
# Packages and projects
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PackageRecord:
    """One entry of the package index."""

    path: ProjectPath
    version: str


@dataclass(frozen=True, slots=True)
class Project:
    """A project declared by a local configuration file."""

    path: ProjectPath
    root: Path
    sources: tuple[str, ...] = ("**/*",)
    dependencies: dict[ProjectPath, str] = field(default_factory=dict, hash=False)


# ---------------------------------------------------------------------------
# Network / self-upgrade
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class HttpSettings:
    """Process-wide network settings read by the HTTP client on every call.

    Written twice during a flagged run: once from command-line options
    (``verbose``, ``ignore_ssl_checks``) and once, for ``proxy`` only, from
    the freshly loaded configuration.  The configuration value wins.
    """

    verbose: bool = False
    ignore_ssl_checks: bool = False
    proxy: str | None = None


class ReplaceStrategy(enum.Enum):
    """How the running executable is swapped for a staged build."""

    IN_PLACE = "in-place"
    DEFERRED_COPY = "deferred-copy"


@dataclass(frozen=True, slots=True)
class UpdateAsset:
    """Published client archive and its checksum location."""

    url: str
    checksum_url: str
    binary_name: str


@dataclass(frozen=True, slots=True)
class ReplaceOutcome:
    """What the replacer did with the staged binary."""

    strategy: ReplaceStrategy
    destination: Path
    completed: bool
    """``False`` when a helper process will finish the copy after exit."""
