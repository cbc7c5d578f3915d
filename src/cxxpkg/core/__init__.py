"""Core layer: package identifiers, dispatch models and protocols.

Rules
-----
* No ``print()`` calls.
* No imports from ``cli`` or ``infra``.
* Network, database and build I/O only through the protocols in
  :mod:`cxxpkg.core.protocols`.
"""

from cxxpkg.core.models import (
    BuildTarget,
    DefaultRun,
    DispatchOutcome,
    FlaggedOptions,
    HttpSettings,
    InternalCommand,
    UnknownCommand,
)
from cxxpkg.core.project_path import ProjectPath, RootNamespace
from cxxpkg.core.update_service import UpdateAgent

__all__: list[str] = [
    "BuildTarget",
    "DefaultRun",
    "DispatchOutcome",
    "FlaggedOptions",
    "HttpSettings",
    "InternalCommand",
    "ProjectPath",
    "RootNamespace",
    "UnknownCommand",
    "UpdateAgent",
]
