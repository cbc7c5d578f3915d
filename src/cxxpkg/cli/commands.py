"""Declarative table of operand-style commands.

Each :class:`CommandSpec` names its arguments once; the table is used
both to check arity before any handler runs and to render the usage
line printed on mismatch.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from cxxpkg.cli import exit_codes
from cxxpkg.cli.console import escape, out
from cxxpkg.exceptions import UsageError

if TYPE_CHECKING:
    from cxxpkg.cli.orchestrator import Collaborators

Handler = Callable[["Collaborators", Sequence[str]], int]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    name: str
    arguments: tuple[str, ...]
    optional: tuple[str, ...]
    handler: Handler

    @property
    def min_args(self) -> int:
        return len(self.arguments)

    @property
    def max_args(self) -> int:
        return len(self.arguments) + len(self.optional)

    def usage(self) -> str:
        parts = [*self.arguments, *(f"[{name}]" for name in self.optional)]
        return " ".join(["usage: cxxpkg", self.name, *parts])

    def check_arity(self, args: Sequence[str]) -> None:
        if not self.min_args <= len(args) <= self.max_args:
            raise UsageError(f"invalid number of arguments: {len(args)}", hint=self.usage())


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _fix_imports(deps: Collaborators, args: Sequence[str]) -> int:
    target, aliases, old, new = args
    deps.tools.fix_imports(target, Path(aliases), Path(old), Path(new))
    return exit_codes.SUCCESS


def _parallel_vars_check(deps: Collaborators, args: Sequence[str]) -> int:
    vars_dir, vars_file, checks_file, generator, *toolchain = args
    deps.tools.parallel_vars_check(
        Path(vars_dir),
        Path(vars_file),
        Path(checks_file),
        generator,
        toolchain[0] if toolchain else None,
    )
    return exit_codes.SUCCESS


def _parse_configure_ac(deps: Collaborators, args: Sequence[str]) -> int:
    checks = deps.tools.parse_configure_ac(Path(args[0]))
    for group, items in checks.items():
        out.print(f"[bold]{group}[/bold]")
        for item in items:
            out.print(f"  {escape(item)}")
    return exit_codes.SUCCESS


def _list_packages(deps: Collaborators, args: Sequence[str]) -> int:
    records = deps.packages.list_packages(args[0] if args else "")
    if not records:
        out.print("No packages found.")
        return exit_codes.SUCCESS
    try:
        from rich.table import Table
    except ModuleNotFoundError:
        for record in records:
            out.print(f"{record.path} {record.version}")
        return exit_codes.SUCCESS

    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("Package", style="bold")
    table.add_column("Version")
    for record in records:
        table.add_row(escape(str(record.path)), escape(record.version))
    out.print(table)
    return exit_codes.SUCCESS


COMMANDS: dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec(
            "internal-fix-imports",
            ("target", "aliases.file", "old.file", "new.file"),
            (),
            _fix_imports,
        ),
        CommandSpec(
            "internal-parallel-vars-check",
            ("vars_dir", "vars_file", "checks_file", "generator"),
            ("toolchain",),
            _parallel_vars_check,
        ),
        CommandSpec("parse-configure-ac", ("configure.ac",), (), _parse_configure_ac),
        CommandSpec("list", (), ("filter",), _list_packages),
    )
}
