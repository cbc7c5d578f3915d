"""TOML-backed :class:`~cxxpkg.core.protocols.ConfigSession` and its loader.

A session starts from the bootstrapped user settings and is extended
with the ``cxxpkg.toml`` of a project directory.  ``process()`` checks
every declared dependency against the package index; version selection
and build-file generation are left to the build backend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from cxxpkg.config.settings import LOCAL_CONFIG_FILENAME, UserSettings, load_local_config
from cxxpkg.core.models import Project
from cxxpkg.core.project_path import ProjectPath
from cxxpkg.core.protocols import PackagesDatabase
from cxxpkg.exceptions import ConfigProcessingError, InvalidPathFormatError
from cxxpkg.infra.archive import collect_sources, write_tar_archive

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LocalConfigSession:
    """Effective settings plus the projects declared in the working directory."""

    settings: UserSettings
    packages: PackagesDatabase
    projects: dict[ProjectPath, Project] = field(default_factory=dict)
    source: Path | None = None

    def process(self) -> None:
        if not self.projects:
            raise ConfigProcessingError(
                "No projects to process",
                hint=f"Declare projects in {LOCAL_CONFIG_FILENAME}.",
            )

        known = {record.path for record in self.packages.list_packages()}
        missing: list[str] = []
        for path in sorted(self.projects):
            for dependency, version in sorted(self.projects[path].dependencies.items()):
                if dependency in known or dependency in self.projects:
                    continue
                missing.append(f"{dependency} ({version}) required by {path}")

        if missing:
            raise ConfigProcessingError(
                "Unknown packages: " + "; ".join(missing),
                hint="Run 'cxxpkg list' to see the packages known locally.",
            )

        for path in sorted(self.projects):
            logger.info(
                "Processed %s with %d dependencies",
                path,
                len(self.projects[path].dependencies),
            )

    def write_archive(self, project: Project, archive_name: str) -> bool:
        files = collect_sources(project.root, project.sources)
        if not files:
            logger.warning("No sources matched for %s", project.path)
        return write_tar_archive(Path(archive_name), project.root, files)


class TomlConfigLoader:
    """Concrete :class:`~cxxpkg.core.protocols.ConfigLoader`."""

    def __init__(self, settings: UserSettings, packages: PackagesDatabase) -> None:
        self._settings = settings
        self._packages = packages

    def load_user(self) -> LocalConfigSession:
        return LocalConfigSession(settings=self._settings, packages=self._packages)

    def load_local(self, session: LocalConfigSession, directory: Path) -> LocalConfigSession:
        path = directory / LOCAL_CONFIG_FILENAME
        if not path.is_file():
            raise ConfigProcessingError(
                f"No {LOCAL_CONFIG_FILENAME} found in {directory}",
                hint="Run cxxpkg from a project directory or pass --dir.",
            )

        local = load_local_config(path)
        root = path.resolve().parent
        projects: dict[ProjectPath, Project] = {}
        for project_path, spec in local.project_paths().items():
            try:
                dependencies = {
                    ProjectPath.parse(name): version for name, version in spec.dependencies.items()
                }
            except InvalidPathFormatError as exc:
                raise ConfigProcessingError(
                    f"Invalid dependency in {project_path}: {exc}", hint=exc.hint
                ) from exc
            projects[project_path] = Project(
                path=project_path,
                root=root,
                sources=tuple(spec.sources),
                dependencies=dependencies,
            )

        logger.debug("Loaded %d projects from %s", len(projects), path)
        return LocalConfigSession(
            settings=session.settings.merged(local.settings),
            packages=self._packages,
            projects=projects,
            source=path,
        )
