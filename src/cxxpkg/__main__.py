"""Allow ``python -m cxxpkg`` invocation.

Delegates to the CLI error-boundary entry point so that
``python -m cxxpkg`` behaves identically to the ``cxxpkg`` console script.
"""

from __future__ import annotations

from cxxpkg.cli.app import cli

if __name__ == "__main__":
    cli()
