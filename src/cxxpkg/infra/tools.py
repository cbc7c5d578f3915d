"""Internal utility commands and storage maintenance.

Implements :class:`~cxxpkg.core.protocols.InternalTools`.  These are
the handlers behind ``internal-fix-imports``,
``internal-parallel-vars-check``, ``parse-configure-ac`` and the cache
maintenance flags.  Filesystem and subprocess errors are mapped to
:class:`~cxxpkg.exceptions.CxxpkgError` subclasses.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from cxxpkg.core.project_path import ProjectPath
from cxxpkg.core.protocols import PackagesDatabase
from cxxpkg.exceptions import BuildError, ConfigProcessingError, UsageError

logger = logging.getLogger(__name__)

CACHE_DIRNAME = "cache"
VARS_DIRNAME = "vars"
SOURCES_DIRNAME = "src"

# configure.ac macro → report group
_AC_GROUPS: dict[str, str] = {
    "AC_CHECK_HEADER": "headers",
    "AC_CHECK_HEADERS": "headers",
    "AC_CHECK_FUNC": "functions",
    "AC_CHECK_FUNCS": "functions",
    "AC_CHECK_TYPE": "types",
    "AC_CHECK_TYPES": "types",
    "AC_CHECK_DECL": "declarations",
    "AC_CHECK_DECLS": "declarations",
    "AC_CHECK_LIB": "libraries",
    "AC_CHECK_SIZEOF": "sizeof",
}

_AC_MACRO_RE = re.compile(
    r"\b(AC_CHECK_[A-Z]+)\s*\(\s*(?:\[([^\]]*)\]|([^,)]*))",
)
_AC_COMMENT_RE = re.compile(r"(^|\s)(dnl\b|#).*$", re.MULTILINE)
_CACHE_VAR_RE = re.compile(r"^((?:HAVE|SIZEOF)_\w+):\w+=(.*)$")


class LocalTools:
    """Concrete tool set operating on local files and the package storage."""

    def __init__(
        self,
        packages: PackagesDatabase,
        *,
        runner: Any = subprocess.run,
    ) -> None:
        self._packages = packages
        self._runner = runner

    # ------------------------------------------------------------------
    # internal-fix-imports
    # ------------------------------------------------------------------

    def fix_imports(self, target: str, aliases_file: Path, old_file: Path, new_file: Path) -> None:
        """Rewrite imported target names into ``<target>::<alias>`` form.

        Each non-comment line of *aliases_file* is ``<old> <new>``; every
        whole-word ``<old>`` in *old_file* becomes ``<target>::<new>``.
        """
        aliases = _read_aliases(aliases_file)
        text = _read_text(old_file)
        for old, new in aliases:
            text = re.sub(rf"(?<![\w:]){re.escape(old)}(?![\w:])", f"{target}::{new}", text)
        try:
            new_file.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ConfigProcessingError(f"Cannot write {new_file}: {exc}") from exc
        logger.debug("Fixed %d aliases for %s into %s", len(aliases), target, new_file)

    # ------------------------------------------------------------------
    # internal-parallel-vars-check
    # ------------------------------------------------------------------

    def parallel_vars_check(
        self,
        vars_dir: Path,
        vars_file: Path,
        checks_file: Path,
        generator: str,
        toolchain: str | None = None,
    ) -> None:
        """Run the CMake checks of *checks_file* in parallel chunks.

        Every chunk is configured in its own sub-directory of *vars_dir*;
        the resulting ``HAVE_*`` / ``SIZEOF_*`` cache entries are merged
        into *vars_file* as ``set()`` commands.
        """
        checks = [
            line.strip()
            for line in _read_text(checks_file).splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        ]
        if not checks:
            vars_file.write_text("", encoding="utf-8")
            return

        workers = max(1, min(os.cpu_count() or 1, len(checks)))
        chunks = [checks[i::workers] for i in range(workers)]
        build_dirs: list[Path] = []
        for index, chunk in enumerate(chunks):
            chunk_dir = vars_dir / str(index)
            chunk_dir.mkdir(parents=True, exist_ok=True)
            (chunk_dir / "CMakeLists.txt").write_text(
                "cmake_minimum_required(VERSION 3.13)\n"
                "project(cxxpkg_vars_check C CXX)\n" + "\n".join(chunk) + "\n",
                encoding="utf-8",
            )
            build_dirs.append(chunk_dir)

        def _configure(chunk_dir: Path) -> int:
            cmd = ["cmake", "-S", str(chunk_dir), "-B", str(chunk_dir / "build"), "-G", generator]
            if toolchain:
                cmd.append(f"-DCMAKE_TOOLCHAIN_FILE={toolchain}")
            try:
                return int(self._runner(cmd, check=False, capture_output=True).returncode)
            except OSError as exc:
                raise BuildError(f"Cannot run cmake: {exc}") from exc

        with ThreadPoolExecutor(max_workers=workers) as pool:
            codes = list(pool.map(_configure, build_dirs))
        failed = [str(d) for d, code in zip(build_dirs, codes) if code != 0]
        if failed:
            raise BuildError("Variable checks failed in: " + ", ".join(failed))

        variables: dict[str, str] = {}
        for chunk_dir in build_dirs:
            cache = chunk_dir / "build" / "CMakeCache.txt"
            if not cache.is_file():
                continue
            for line in cache.read_text(encoding="utf-8").splitlines():
                match = _CACHE_VAR_RE.match(line)
                if match:
                    variables[match.group(1)] = match.group(2)

        vars_file.write_text(
            "".join(f'set({name} "{value}" CACHE INTERNAL "")\n' for name, value in sorted(variables.items())),
            encoding="utf-8",
        )

    # ------------------------------------------------------------------
    # parse-configure-ac
    # ------------------------------------------------------------------

    def parse_configure_ac(self, path: Path) -> dict[str, list[str]]:
        """Extract autotools checks from *path*, grouped and sorted."""
        text = _AC_COMMENT_RE.sub("", _read_text(path))
        found: dict[str, set[str]] = {}
        for match in _AC_MACRO_RE.finditer(text):
            group = _AC_GROUPS.get(match.group(1))
            if group is None:
                continue
            argument = match.group(2) if match.group(2) is not None else match.group(3)
            items = [item for item in re.split(r"[\s,]+", argument or "") if item]
            if group == "libraries":
                items = items[:1]
            found.setdefault(group, set()).update(items)
        return {group: sorted(items) for group, items in sorted(found.items())}

    # ------------------------------------------------------------------
    # Storage maintenance
    # ------------------------------------------------------------------

    def clear_cache(self, storage_dir: Path) -> None:
        _remove_tree(storage_dir / CACHE_DIRNAME)

    def clear_vars_cache(self, storage_dir: Path) -> None:
        _remove_tree(storage_dir / VARS_DIRNAME)

    def clean_packages(self, storage_dir: Path, pattern: str) -> list[ProjectPath]:
        """Remove stored sources of every indexed package rooted at *pattern*."""
        if not pattern.strip():
            raise UsageError(
                "--clean-packages needs a non-empty package path",
                hint="Pass a prefix such as 'org.boost'.",
            )
        root = ProjectPath.parse(pattern)
        removed: list[ProjectPath] = []
        for record in self._packages.list_packages():
            if not root.is_root_of(record.path) or record.path in removed:
                continue
            target = storage_dir / SOURCES_DIRNAME / record.path.to_filesystem_path()
            if target.exists():
                _remove_tree(target)
                removed.append(record.path)
        return removed


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigProcessingError(f"Cannot read {path}: {exc}") from exc


def _read_aliases(path: Path) -> list[tuple[str, str]]:
    aliases: list[tuple[str, str]] = []
    for number, line in enumerate(_read_text(path).splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split()
        if len(parts) != 2:
            raise ConfigProcessingError(f"{path}:{number}: expected '<old> <new>'")
        aliases.append((parts[0], parts[1]))
    return aliases


def _remove_tree(path: Path) -> None:
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as exc:
        raise ConfigProcessingError(f"Cannot remove {path}: {exc}") from exc
    logger.debug("Removed %s", path)
