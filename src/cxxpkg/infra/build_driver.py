"""CMake-backed implementation of :class:`~cxxpkg.core.protocols.BuildDriver`.

The driver only runs ``cmake``; generating the build files is CMake's
job.  Remote targets are downloaded and unpacked into a temporary
directory first.  ``FileNotFoundError`` / ``OSError`` from ``subprocess``
are mapped to :class:`~cxxpkg.exceptions.BuildError`.
"""

from __future__ import annotations

import contextlib
import logging
import subprocess
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from cxxpkg.config.settings import UserSettings
from cxxpkg.core.project_path import ProjectPath
from cxxpkg.core.protocols import HttpClient, Unpacker
from cxxpkg.exceptions import BuildError
from cxxpkg.utils.urls import is_url

logger = logging.getLogger(__name__)

CMAKE = "cmake"

Runner = Callable[..., "subprocess.CompletedProcess[Any]"]


class CMakeBuildDriver:
    """Runs CMake configure/build steps for local and remote targets."""

    def __init__(
        self,
        settings: UserSettings,
        http: HttpClient,
        unpacker: Unpacker,
        *,
        runner: Runner = subprocess.run,
    ) -> None:
        self._settings = settings
        self._http = http
        self._unpacker = unpacker
        self._runner = runner

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def build(self, target: str, config: str | None = None, *, rebuild: bool = False) -> int:
        with contextlib.ExitStack() as stack:
            source = self._source_dir(target, stack)
            build_dir = self._build_dir(source)
            code = self._configure(source, build_dir, config)
            if code != 0:
                return code
            return self._build(build_dir, clean_first=rebuild)

    def build_only(self, target: str, config: str | None = None) -> int:
        with contextlib.ExitStack() as stack:
            source = self._source_dir(target, stack)
            build_dir = self._build_dir(source)
            if not (build_dir / "CMakeCache.txt").is_file():
                code = self._configure(source, build_dir, config)
                if code != 0:
                    return code
            return self._build(build_dir)

    def generate(self, target: str, config: str | None = None) -> int:
        with contextlib.ExitStack() as stack:
            source = self._source_dir(target, stack)
            return self._configure(source, self._build_dir(source), config)

    def dry_run(self, target: str, config: str | None = None) -> int:
        with contextlib.ExitStack() as stack:
            source = self._source_dir(target, stack)
            scratch = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="cxxpkg-dry-")))
            return self._configure(source, scratch, config)

    def build_package(self, package: str, settings: str | None, config: str | None = None) -> int:
        path = ProjectPath.parse(package)
        source = self._settings.storage_dir / "src" / path.to_filesystem_path()
        if not source.is_dir():
            raise BuildError(
                f"Package is not in local storage: {path}",
                hint="Add it as a dependency and run cxxpkg in that project first.",
            )
        extra = ["-C", settings] if settings else []
        build_dir = self._settings.build_dir / "packages" / path.to_filesystem_path()
        code = self._configure(source, build_dir, config, extra=extra)
        if code != 0:
            return code
        return self._build(build_dir)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _source_dir(self, target: str, stack: contextlib.ExitStack) -> Path:
        if is_url(target):
            workdir = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="cxxpkg-")))
            archive = workdir / "download"
            logger.info("Downloading %s", target)
            self._http.download(target, archive)
            unpacked = workdir / "src"
            self._unpacker.unpack(archive, unpacked)
            children = [p for p in unpacked.iterdir() if p.is_dir()]
            return children[0] if len(children) == 1 else unpacked

        path = Path(target).resolve()
        if path.is_file():
            return path.parent
        if path.is_dir():
            return path
        raise BuildError(f"Build target does not exist: {target}")

    def _build_dir(self, source: Path) -> Path:
        return self._settings.build_dir / source.name

    def _configure(
        self,
        source: Path,
        build_dir: Path,
        config: str | None,
        *,
        extra: Sequence[str] = (),
    ) -> int:
        cmd = [CMAKE, *extra, "-S", str(source), "-B", str(build_dir)]
        if self._settings.generator:
            cmd += ["-G", self._settings.generator]
        if config:
            cmd.append(f"-DCMAKE_BUILD_TYPE={config}")
        return self._run(cmd)

    def _build(self, build_dir: Path, *, clean_first: bool = False) -> int:
        cmd = [CMAKE, "--build", str(build_dir)]
        if clean_first:
            cmd.append("--clean-first")
        return self._run(cmd)

    def _run(self, cmd: list[str]) -> int:
        logger.debug("Running %s", " ".join(cmd))
        try:
            completed = self._runner(cmd, check=False)
        except FileNotFoundError as exc:
            raise BuildError(
                "cmake is not installed or not on PATH.",
                hint="Install CMake 3.13 or newer.",
            ) from exc
        except OSError as exc:
            raise BuildError(f"Cannot run {cmd[0]}: {exc}") from exc
        return int(completed.returncode)
