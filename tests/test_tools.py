"""Tests for the internal utility commands (infra/tools.py).

``cmake`` is never executed: the runner is a ``MagicMock`` that writes
the cache file a real configure step would leave behind.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from cxxpkg.core.models import PackageRecord
from cxxpkg.core.project_path import ProjectPath
from cxxpkg.exceptions import BuildError, ConfigProcessingError, UsageError
from cxxpkg.infra.tools import LocalTools

CONFIGURE_AC = """\
AC_INIT([demo], [1.0])
dnl AC_CHECK_HEADERS([ignored.h])
AC_CHECK_HEADERS([stdio.h unistd.h])
AC_CHECK_HEADER(zlib.h)
AC_CHECK_FUNCS([mmap strlcpy])
AC_CHECK_TYPES([ssize_t])
AC_CHECK_LIB([m], [cos])
AC_CHECK_DECLS([strnlen])
AC_CHECK_SIZEOF([long])
"""


def _packages(*names: str) -> MagicMock:
    packages = MagicMock()
    packages.list_packages.return_value = [
        PackageRecord(ProjectPath.parse(name), "1.0") for name in names
    ]
    return packages


# ---------------------------------------------------------------------------
# internal-fix-imports
# ---------------------------------------------------------------------------

class TestFixImports:
    def test_rewrites_whole_words(self, tmp_path: Path) -> None:
        aliases = tmp_path / "aliases.txt"
        aliases.write_text("# old new\nzlib zlibstatic\n\nssl crypto\n")
        old = tmp_path / "old.cmake"
        old.write_text("target_link_libraries(app zlib ssl zlib_extra)\n")
        new = tmp_path / "new.cmake"

        LocalTools(_packages()).fix_imports("org.deps", aliases, old, new)

        assert new.read_text() == (
            "target_link_libraries(app org.deps::zlibstatic org.deps::crypto zlib_extra)\n"
        )

    def test_malformed_alias_line(self, tmp_path: Path) -> None:
        aliases = tmp_path / "aliases.txt"
        aliases.write_text("only-one-column\n")
        old = tmp_path / "old.cmake"
        old.write_text("")
        with pytest.raises(ConfigProcessingError, match=":1:"):
            LocalTools(_packages()).fix_imports("t", aliases, old, tmp_path / "new.cmake")

    def test_missing_input(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigProcessingError):
            LocalTools(_packages()).fix_imports(
                "t", tmp_path / "nope", tmp_path / "old", tmp_path / "new"
            )


# ---------------------------------------------------------------------------
# parse-configure-ac
# ---------------------------------------------------------------------------

class TestParseConfigureAc:
    def test_groups(self, tmp_path: Path) -> None:
        path = tmp_path / "configure.ac"
        path.write_text(CONFIGURE_AC)
        checks = LocalTools(_packages()).parse_configure_ac(path)
        assert checks == {
            "declarations": ["strnlen"],
            "functions": ["mmap", "strlcpy"],
            "headers": ["stdio.h", "unistd.h", "zlib.h"],
            "libraries": ["m"],
            "sizeof": ["long"],
            "types": ["ssize_t"],
        }


# ---------------------------------------------------------------------------
# internal-parallel-vars-check
# ---------------------------------------------------------------------------

class TestParallelVarsCheck:
    def _runner(self, returncode: int = 0) -> MagicMock:
        def _run(cmd: list[str], **_kwargs: Any) -> MagicMock:
            build_dir = Path(cmd[cmd.index("-B") + 1])
            build_dir.mkdir(parents=True, exist_ok=True)
            source = Path(cmd[cmd.index("-S") + 1])
            (build_dir / "CMakeCache.txt").write_text(
                f"HAVE_CHUNK_{source.name}:INTERNAL=1\nCMAKE_C_COMPILER:FILEPATH=/usr/bin/cc\n"
            )
            return MagicMock(returncode=returncode)

        return MagicMock(side_effect=_run)

    def test_merges_cache_variables(self, tmp_path: Path) -> None:
        checks = tmp_path / "checks.cmake"
        checks.write_text("check_include_file(stdio.h HAVE_STDIO_H)\n# comment\n")
        vars_file = tmp_path / "vars.cmake"
        runner = self._runner()

        LocalTools(_packages(), runner=runner).parallel_vars_check(
            tmp_path / "vars", vars_file, checks, "Ninja", "clang.cmake"
        )

        assert vars_file.read_text() == 'set(HAVE_CHUNK_0 "1" CACHE INTERNAL "")\n'
        cmd = runner.call_args.args[0]
        assert cmd[cmd.index("-G") + 1] == "Ninja"
        assert "-DCMAKE_TOOLCHAIN_FILE=clang.cmake" in cmd

    def test_failed_chunk(self, tmp_path: Path) -> None:
        checks = tmp_path / "checks.cmake"
        checks.write_text("check_include_file(x.h HAVE_X_H)\n")
        with pytest.raises(BuildError):
            LocalTools(_packages(), runner=self._runner(1)).parallel_vars_check(
                tmp_path / "vars", tmp_path / "vars.cmake", checks, "Ninja"
            )

    def test_no_checks_writes_empty_file(self, tmp_path: Path) -> None:
        checks = tmp_path / "checks.cmake"
        checks.write_text("\n")
        vars_file = tmp_path / "vars.cmake"
        runner = MagicMock()
        LocalTools(_packages(), runner=runner).parallel_vars_check(
            tmp_path / "vars", vars_file, checks, "Ninja"
        )
        assert vars_file.read_text() == ""
        runner.assert_not_called()


# ---------------------------------------------------------------------------
# Storage maintenance
# ---------------------------------------------------------------------------

class TestMaintenance:
    def test_clear_cache_and_vars(self, tmp_path: Path) -> None:
        for name in ("cache", "vars", "src"):
            (tmp_path / name).mkdir()
        tools = LocalTools(_packages())
        tools.clear_cache(tmp_path)
        tools.clear_vars_cache(tmp_path)
        assert not (tmp_path / "cache").exists()
        assert not (tmp_path / "vars").exists()
        assert (tmp_path / "src").exists()

    def test_clear_missing_cache_is_noop(self, tmp_path: Path) -> None:
        LocalTools(_packages()).clear_cache(tmp_path)

    def test_clean_packages_under_prefix(self, tmp_path: Path) -> None:
        names = ["org.boost.asio", "org.boost.algorithm", "org.boostx.core", "com.acme.w"]
        for name in names:
            (tmp_path / "src" / ProjectPath.parse(name).to_filesystem_path()).mkdir(parents=True)

        removed = LocalTools(_packages(*names)).clean_packages(tmp_path, "org.boost")

        assert sorted(str(p) for p in removed) == ["org.boost.algorithm", "org.boost.asio"]
        assert (tmp_path / "src" / "org" / "boostx" / "core").is_dir()
        assert (tmp_path / "src" / "com" / "acme" / "w").is_dir()

    @pytest.mark.parametrize("pattern", ["", "  "])
    def test_clean_packages_rejects_empty_pattern(self, tmp_path: Path, pattern: str) -> None:
        stored = tmp_path / "src" / "org" / "zlib"
        stored.mkdir(parents=True)
        with pytest.raises(UsageError, match="non-empty"):
            LocalTools(_packages("org.zlib")).clean_packages(tmp_path, pattern)
        assert stored.is_dir()
