"""cxxpkg: C/C++ dependency manager and build driver.

Orchestration core: command dispatch, package identifiers and self-upgrade.
"""

from cxxpkg.version import __version__

__all__: list[str] = ["__version__"]
