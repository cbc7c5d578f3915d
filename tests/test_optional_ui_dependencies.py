"""Regression tests for running without the optional ``rich`` renderer.

Bootstrap commands (``--help``, ``--version``, ``list``) must keep
working through the plain-print fallback, and the progress display must
fail cleanly only when it is actually used.
"""

from __future__ import annotations

import sys

import pytest

from cxxpkg.cli import exit_codes
from cxxpkg.cli.app import main
from cxxpkg.cli.console import _ConsoleProxy, escape
from cxxpkg.cli.progress import DownloadProgress
from cxxpkg.exceptions import CxxpkgError


def _hide_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("rich", "rich.console", "rich.markup", "rich.table", "rich.progress"):
        monkeypatch.setitem(sys.modules, name, None)


def test_help_works_without_rich(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _hide_rich(monkeypatch)
    assert main(["--help"]) == exit_codes.SUCCESS
    assert "--self-upgrade" in capsys.readouterr().out


def test_version_works_without_rich(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _hide_rich(monkeypatch)
    assert main(["--version"]) == exit_codes.SUCCESS
    assert capsys.readouterr().out.startswith("cxxpkg version ")


def test_list_works_without_rich(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _hide_rich(monkeypatch)
    assert main(["list"]) == exit_codes.SUCCESS
    assert "No packages found." in capsys.readouterr().out


def test_fallback_strips_style_markup_only(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _hide_rich(monkeypatch)
    _ConsoleProxy(stderr=True).print("[bold red]Error:[/bold red] usage: cxxpkg x [toolchain]")
    assert capsys.readouterr().err == "Error: usage: cxxpkg x [toolchain]\n"


def test_escape_is_identity_without_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)
    assert escape("[toolchain]") == "[toolchain]"


def test_progress_errors_cleanly_when_rich_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)
    with pytest.raises(CxxpkgError, match="rich is not installed"):
        DownloadProgress()
