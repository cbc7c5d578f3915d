"""Tests for domain models (core/models.py).

Dispatch outcomes and records are frozen dataclasses; these tests verify
immutability, equality semantics and the one mutable settings object.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from cxxpkg.core.models import (
    BuildTarget,
    DefaultRun,
    HttpSettings,
    InternalCommand,
    PackageRecord,
    Project,
    UnknownCommand,
)
from cxxpkg.core.project_path import ProjectPath


class TestDispatchOutcomes:
    def test_default_run_defaults_to_cwd(self) -> None:
        assert DefaultRun().directory is None

    def test_build_target_is_local_by_default(self) -> None:
        assert not BuildTarget("CMakeLists.txt").remote

    def test_frozen(self) -> None:
        outcome = InternalCommand("list", ())
        with pytest.raises(AttributeError):
            outcome.name = "other"  # type: ignore[misc]

    def test_equality(self) -> None:
        assert UnknownCommand("x") == UnknownCommand("x")
        assert UnknownCommand("x") != UnknownCommand("y")


class TestRecords:
    def test_package_records_sort_by_path(self) -> None:
        records = [
            PackageRecord(ProjectPath.parse("org.b"), "1"),
            PackageRecord(ProjectPath.parse("org.a"), "2"),
        ]
        assert sorted(records, key=lambda r: r.path)[0].path == ProjectPath.parse("org.a")

    def test_project_defaults(self) -> None:
        project = Project(ProjectPath.parse("org.demo"), Path("."))
        assert project.sources == ("**/*",)
        assert project.dependencies == {}


class TestHttpSettings:
    def test_defaults(self) -> None:
        settings = HttpSettings()
        assert not settings.verbose
        assert not settings.ignore_ssl_checks
        assert settings.proxy is None

    def test_mutable(self) -> None:
        settings = HttpSettings()
        settings.proxy = "http://proxy:3128"
        assert settings.proxy == "http://proxy:3128"
