"""Shared pytest fixtures and configuration for the cxxpkg test suite.

Guidelines
----------
* No internet access in any test.
* ``requests`` and ``cmake`` must be mocked at the infra boundary.
* Core tests must be pure: no side effects.
* Tests must not depend on the user's home directory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from cxxpkg.core.context import shutdown


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point ``CXXPKG_HOME`` at a scratch directory and reset the init-once gate."""
    home = tmp_path / "home"
    monkeypatch.setenv("CXXPKG_HOME", str(home))
    monkeypatch.delenv("CXXPKG_CONFIG", raising=False)
    yield home
    shutdown()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo ``configure_logging()`` so handlers never outlive a captured stream."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("cxxpkg").setLevel(logging.NOTSET)
