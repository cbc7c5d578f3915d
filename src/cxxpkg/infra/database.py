"""sqlite3-backed service database and package index.

One file, ``$CXXPKG_HOME/service.db``, holds the per-client bookkeeping
(``service`` table) and the locally known package index (``packages``
table).  Both classes satisfy the protocols in
:mod:`cxxpkg.core.protocols`; ``sqlite3.Error`` never escapes them.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from cxxpkg.core.models import PackageRecord
from cxxpkg.core.project_path import ProjectPath
from cxxpkg.exceptions import BootstrapError, ConfigProcessingError, InvalidPathFormatError
from cxxpkg.version import __version__

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "service.db"


def _connect(path: Path) -> sqlite3.Connection:
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


class SqliteServiceDatabase:
    """Process-local bookkeeping store."""

    def __init__(self, path: Path) -> None:
        self._path = path
        try:
            self._conn = _connect(path)
        except (sqlite3.Error, OSError) as exc:
            raise BootstrapError(f"Cannot open service database {path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS service (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS packages (
                path TEXT NOT NULL,
                version TEXT NOT NULL,
                PRIMARY KEY (path, version)
            )
            """
        )

    def perform_startup_actions(self) -> None:
        """Create the schema, record the client version and count the run."""
        try:
            with self._conn:
                self._ensure_schema()
                self._conn.execute(
                    "INSERT OR REPLACE INTO service (key, value) VALUES ('client_version', ?)",
                    (__version__,),
                )
                self._conn.execute(
                    "INSERT OR REPLACE INTO service (key, value) VALUES ('last_run', ?)",
                    (datetime.now(timezone.utc).isoformat(),),
                )
                self._conn.execute(
                    """
                    INSERT INTO service (key, value) VALUES ('run_count', '1')
                    ON CONFLICT(key) DO UPDATE SET value = CAST(value AS INTEGER) + 1
                    """
                )
        except sqlite3.Error as exc:
            raise BootstrapError(f"Service database startup failed: {exc}") from exc
        logger.debug("Service database ready at %s", self._path)

    def get_value(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM service WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row["value"])

    def close(self) -> None:
        self._conn.close()


class SqlitePackagesDatabase:
    """Read/write access to the ``packages`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def add_package(self, path: ProjectPath, version: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO packages (path, version) VALUES (?, ?)",
                (str(path), version),
            )

    def has_package(self, path: ProjectPath) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM packages WHERE path = ? LIMIT 1", (str(path),)
        ).fetchone()
        return row is not None

    def list_packages(self, name_filter: str = "") -> list[PackageRecord]:
        """Return packages containing *name_filter*, sorted by identifier then version."""
        try:
            rows = self._conn.execute("SELECT path, version FROM packages").fetchall()
        except sqlite3.Error as exc:
            raise ConfigProcessingError(f"Cannot read package index: {exc}") from exc

        records: list[PackageRecord] = []
        for row in rows:
            if name_filter not in row["path"]:
                continue
            try:
                records.append(PackageRecord(ProjectPath.parse(row["path"]), row["version"]))
            except InvalidPathFormatError:
                logger.warning("Skipping malformed index entry: %r", row["path"])
        return sorted(records, key=lambda r: (r.path, r.version))
