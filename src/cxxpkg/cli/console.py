"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of Rich so
bootstrap paths (``--help``, ``--version``) remain functional even when
it is not importable.
"""

from __future__ import annotations

import re
import sys
from typing import Any

from cxxpkg.exceptions import CxxpkgError

_STYLE = r"(?:bold|dim|red|green|yellow|cyan)"
_MARKUP_TAG_RE = re.compile(rf"\[/?(?:{_STYLE}(?: {_STYLE})*)?\]")


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``CxxpkgError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise CxxpkgError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console(*, stderr: bool = True) -> Any:
    """Create a Rich console instance targeting stderr (or stdout)."""
    console_class = _load_rich_console_class()
    return console_class(stderr=stderr, highlight=False, soft_wrap=True)


def escape(text: str) -> str:
    """Escape Rich markup in user-derived *text* (usage strings, paths)."""
    try:
        from rich.markup import escape as rich_escape
    except ModuleNotFoundError:
        return text
    return rich_escape(text)


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with plain-print fallback."""

    def __init__(self, *, stderr: bool = True) -> None:
        self._stderr = stderr

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain print without markup."""
        try:
            rich_console = get_rich_console(stderr=self._stderr)
        except CxxpkgError:
            stream = sys.stderr if self._stderr else sys.stdout
            plain = [_MARKUP_TAG_RE.sub("", o) if isinstance(o, str) else o for o in objects]
            print(*plain, file=stream)
            return
        rich_console.print(*objects)


console = _ConsoleProxy(stderr=True)
"""Diagnostics, errors and progress (stderr)."""

out = _ConsoleProxy(stderr=False)
"""Command results: help, version, listings (stdout)."""
