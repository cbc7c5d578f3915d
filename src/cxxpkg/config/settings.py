"""User and local configuration files.

User settings live in ``$CXXPKG_HOME/config.toml`` (default
``~/.cxxpkg``) and may be redirected with ``CXXPKG_CONFIG``.  A project
directory carries ``cxxpkg.toml`` whose ``[settings]`` table overrides
the user values for that run.

Sparse TOML contract: defaults are baked into the models, files only
contain overrides.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from cxxpkg.core.project_path import ProjectPath
from cxxpkg.exceptions import ConfigProcessingError, InvalidPathFormatError

HOME_ENV_VAR = "CXXPKG_HOME"
CONFIG_ENV_VAR = "CXXPKG_CONFIG"
USER_CONFIG_FILENAME = "config.toml"
LOCAL_CONFIG_FILENAME = "cxxpkg.toml"
DEFAULT_HOST = "https://cxxpkg.org"


def cxxpkg_home() -> Path:
    """Directory holding user config, storage and the service database."""
    env_home = os.environ.get(HOME_ENV_VAR)
    if env_home:
        return Path(env_home)
    return Path.home() / ".cxxpkg"


class UserSettings(BaseModel):
    """Effective settings; user file values, optionally overridden locally."""

    model_config = {"frozen": True, "extra": "ignore"}

    host: str = DEFAULT_HOST
    proxy: str | None = None
    storage_dir: Path = Field(default_factory=lambda: cxxpkg_home() / "storage")
    build_dir: Path = Field(default_factory=lambda: cxxpkg_home() / "build")
    generator: str | None = None

    @field_validator("host")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("proxy")
    @classmethod
    def _empty_proxy_is_none(cls, value: str | None) -> str | None:
        return value or None

    def merged(self, overrides: dict[str, Any]) -> UserSettings:
        """Return a copy with *overrides* applied and re-validated."""
        if not overrides:
            return self
        try:
            return UserSettings.model_validate({**self.model_dump(), **overrides})
        except ValidationError as exc:
            raise ConfigProcessingError(f"Invalid [settings] table: {exc}") from exc


class ProjectSpec(BaseModel):
    """One ``[projects."<path>"]`` table of a local configuration."""

    model_config = {"frozen": True}

    sources: list[str] = Field(default_factory=lambda: ["**/*"])
    dependencies: dict[str, str] = Field(default_factory=dict)


class LocalConfig(BaseModel):
    """Parsed ``cxxpkg.toml``."""

    model_config = {"frozen": True}

    settings: dict[str, Any] = Field(default_factory=dict)
    projects: dict[str, ProjectSpec] = Field(default_factory=dict)

    def project_paths(self) -> dict[ProjectPath, ProjectSpec]:
        try:
            return {ProjectPath.parse(name): spec for name, spec in self.projects.items()}
        except InvalidPathFormatError as exc:
            raise ConfigProcessingError(str(exc), hint=exc.hint) from exc


def find_user_config() -> Path | None:
    """Return the user config file, honouring ``CXXPKG_CONFIG``; ``None`` if absent."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    candidate = Path(env_path) if env_path else cxxpkg_home() / USER_CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigProcessingError(f"Malformed configuration file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigProcessingError(f"Cannot read configuration file {path}: {exc}") from exc


def load_user_settings(path: Path | None = None) -> UserSettings:
    """Load user settings, returning defaults when no file exists."""
    if path is None:
        path = find_user_config()
    if path is None:
        return UserSettings()
    try:
        return UserSettings.model_validate(_read_toml(path))
    except ValidationError as exc:
        raise ConfigProcessingError(f"Invalid user configuration {path}: {exc}") from exc


def load_local_config(path: Path) -> LocalConfig:
    """Load and validate a ``cxxpkg.toml`` file."""
    try:
        return LocalConfig.model_validate(_read_toml(path))
    except ValidationError as exc:
        raise ConfigProcessingError(f"Invalid local configuration {path}: {exc}") from exc
