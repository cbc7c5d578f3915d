"""Infrastructure layer: external system integration.

This layer wraps all interaction with the network (``requests``), the
filesystem, sqlite and the ``cmake`` executable.  Every raw third-party
exception must be caught here and re-raised as a
:class:`~cxxpkg.exceptions.CxxpkgError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from cxxpkg.infra.archive import ShutilUnpacker
from cxxpkg.infra.build_driver import CMakeBuildDriver
from cxxpkg.infra.config_session import LocalConfigSession, TomlConfigLoader
from cxxpkg.infra.database import SqlitePackagesDatabase, SqliteServiceDatabase
from cxxpkg.infra.http_client import RequestsHttpClient
from cxxpkg.infra.self_replace import DeferredCopyReplacer, InPlaceReplacer
from cxxpkg.infra.tools import LocalTools

__all__: list[str] = [
    "CMakeBuildDriver",
    "DeferredCopyReplacer",
    "InPlaceReplacer",
    "LocalConfigSession",
    "LocalTools",
    "RequestsHttpClient",
    "ShutilUnpacker",
    "SqlitePackagesDatabase",
    "SqliteServiceDatabase",
    "TomlConfigLoader",
]
