"""Protocols (interfaces) for the collaborators cxxpkg drives.

Dependency resolution, build-system generation, index storage, HTTP
transport and archive extraction all live behind these contracts.  The
orchestrator and the update agent depend ONLY on these protocols; the
concrete adapters in :mod:`cxxpkg.infra` are injected at start-up.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from cxxpkg.core.models import PackageRecord, Project, ReplaceOutcome
from cxxpkg.core.project_path import ProjectPath

ProgressCallback = Callable[[dict[str, Any]], None]


class HttpClient(Protocol):
    """Contract for file transfer backends."""

    def download(
        self,
        url: str,
        destination: Path,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> str:
        """Stream *url* into *destination* and return the hex MD5 of the bytes.

        Raises
        ------
        NetworkError
            When the transfer fails for any reason.
        """
        ...  # pragma: no cover


class Unpacker(Protocol):
    """Contract for archive extraction backends."""

    def unpack(self, archive: Path, destination: Path) -> None:
        """Extract *archive* into *destination*.

        Raises
        ------
        UnpackError
            When the archive is unreadable or unsupported.
        """
        ...  # pragma: no cover


class SessionSettings(Protocol):
    """The subset of effective settings the orchestrator reads."""

    host: str
    proxy: str | None
    storage_dir: Path


class ConfigSession(Protocol):
    """A loaded configuration: user settings plus, optionally, local projects."""

    @property
    def settings(self) -> SessionSettings: ...  # pragma: no cover

    @property
    def projects(self) -> Mapping[ProjectPath, Project]: ...  # pragma: no cover

    def process(self) -> None:
        """Run the full configuration-driven pipeline.

        Raises
        ------
        ConfigProcessingError
            Propagated unmodified to the error boundary.
        """
        ...  # pragma: no cover

    def write_archive(self, project: Project, archive_name: str) -> bool:
        """Write *project*'s sources into *archive_name*; ``False`` on failure."""
        ...  # pragma: no cover


class ConfigLoader(Protocol):
    """Factory for :class:`ConfigSession` objects."""

    def load_user(self) -> ConfigSession:
        """Return a session holding only the user configuration."""
        ...  # pragma: no cover

    def load_local(self, session: ConfigSession, directory: Path) -> ConfigSession:
        """Return *session* extended with the configuration found in *directory*."""
        ...  # pragma: no cover


class BuildDriver(Protocol):
    """Contract for the native build backend.  Every method returns an exit code."""

    def build(self, target: str, config: str | None = None, *, rebuild: bool = False) -> int:
        ...  # pragma: no cover

    def build_only(self, target: str, config: str | None = None) -> int:
        ...  # pragma: no cover

    def generate(self, target: str, config: str | None = None) -> int:
        ...  # pragma: no cover

    def dry_run(self, target: str, config: str | None = None) -> int:
        ...  # pragma: no cover

    def build_package(self, package: str, settings: str | None, config: str | None = None) -> int:
        ...  # pragma: no cover


class PackagesDatabase(Protocol):
    """Read side of the package index."""

    def list_packages(self, name_filter: str = "") -> list[PackageRecord]:
        """Return packages whose identifier contains *name_filter*, sorted."""
        ...  # pragma: no cover


class ServiceDatabase(Protocol):
    """Process-local bookkeeping store, bootstrapped once per run."""

    def perform_startup_actions(self) -> None:
        ...  # pragma: no cover

    def close(self) -> None:
        ...  # pragma: no cover


class InternalTools(Protocol):
    """Utility commands invoked through the operand grammar or maintenance flags."""

    def fix_imports(self, target: str, aliases_file: Path, old_file: Path, new_file: Path) -> None:
        ...  # pragma: no cover

    def parallel_vars_check(
        self,
        vars_dir: Path,
        vars_file: Path,
        checks_file: Path,
        generator: str,
        toolchain: str | None = None,
    ) -> None:
        ...  # pragma: no cover

    def parse_configure_ac(self, path: Path) -> dict[str, list[str]]:
        ...  # pragma: no cover

    def clear_cache(self, storage_dir: Path) -> None:
        ...  # pragma: no cover

    def clear_vars_cache(self, storage_dir: Path) -> None:
        ...  # pragma: no cover

    def clean_packages(self, storage_dir: Path, pattern: str) -> list[ProjectPath]:
        ...  # pragma: no cover


class Replacer(Protocol):
    """Strategy that swaps the live executable for a staged binary."""

    def replace(self, staged: Path, destination: Path) -> ReplaceOutcome:
        """Raises :class:`~cxxpkg.exceptions.ReplaceFailureError` on failure."""
        ...  # pragma: no cover
