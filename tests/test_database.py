"""Tests for the sqlite service database and package index (infra/database.py)."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from cxxpkg import __version__
from cxxpkg.core.project_path import ProjectPath
from cxxpkg.exceptions import BootstrapError
from cxxpkg.infra.database import SqlitePackagesDatabase, SqliteServiceDatabase


@pytest.fixture()
def service_db(tmp_path: Path) -> Iterator[SqliteServiceDatabase]:
    db = SqliteServiceDatabase(tmp_path / "home" / "service.db")
    db.perform_startup_actions()
    yield db
    db.close()


@pytest.fixture()
def packages(service_db: SqliteServiceDatabase) -> SqlitePackagesDatabase:
    index = SqlitePackagesDatabase(service_db.connection)
    for name, version in [
        ("org.boost.asio", "1.83"),
        ("org.boost.algorithm", "1.83"),
        ("org.boost.algorithm", "1.82"),
        ("com.acme.widgets", "2.0"),
    ]:
        index.add_package(ProjectPath.parse(name), version)
    return index


class TestServiceDatabase:
    def test_startup_records_version(self, service_db: SqliteServiceDatabase) -> None:
        assert service_db.get_value("client_version") == __version__
        assert service_db.get_value("last_run") is not None

    def test_run_count_increments(self, tmp_path: Path) -> None:
        path = tmp_path / "service.db"
        for _ in range(3):
            db = SqliteServiceDatabase(path)
            db.perform_startup_actions()
            count = db.get_value("run_count")
            db.close()
        assert count == "3"

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db = SqliteServiceDatabase(tmp_path / "a" / "b" / "service.db")
        db.close()
        assert (tmp_path / "a" / "b").is_dir()

    def test_unopenable_path_is_bootstrap_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(BootstrapError):
            SqliteServiceDatabase(blocker / "service.db")

    def test_missing_key(self, service_db: SqliteServiceDatabase) -> None:
        assert service_db.get_value("nope") is None


class TestPackagesDatabase:
    def test_list_is_sorted(self, packages: SqlitePackagesDatabase) -> None:
        listed = [(str(r.path), r.version) for r in packages.list_packages()]
        assert listed == [
            ("com.acme.widgets", "2.0"),
            ("org.boost.algorithm", "1.82"),
            ("org.boost.algorithm", "1.83"),
            ("org.boost.asio", "1.83"),
        ]

    def test_filter_is_substring(self, packages: SqlitePackagesDatabase) -> None:
        listed = {str(r.path) for r in packages.list_packages("algo")}
        assert listed == {"org.boost.algorithm"}

    def test_filter_without_match(self, packages: SqlitePackagesDatabase) -> None:
        assert packages.list_packages("zlib") == []

    def test_duplicate_insert_ignored(self, packages: SqlitePackagesDatabase) -> None:
        packages.add_package(ProjectPath.parse("com.acme.widgets"), "2.0")
        assert len(packages.list_packages("widgets")) == 1

    def test_has_package(self, packages: SqlitePackagesDatabase) -> None:
        assert packages.has_package(ProjectPath.parse("org.boost.asio"))
        assert not packages.has_package(ProjectPath.parse("org.boost"))
