"""Tests for structlog configuration (config/logging.py)."""

from __future__ import annotations

import json
import logging

import pytest

from cxxpkg.config.logging import configure_logging


class TestConfigureLogging:
    def test_default_level_is_warning(self) -> None:
        configure_logging()
        assert logging.getLogger("cxxpkg").level == logging.WARNING

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("cxxpkg").level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_idempotent_handlers(self) -> None:
        configure_logging()
        configure_logging(verbose=True)
        assert len(logging.getLogger().handlers) == 1

    def test_json_lines_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        logging.getLogger("cxxpkg.test").warning("Disk %s", "full")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "Disk full"
        assert payload["level"] == "warning"
        assert payload["logger"] == "cxxpkg.test"
