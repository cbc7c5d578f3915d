"""Custom exception hierarchy for cxxpkg.

All exceptions that cross layer boundaries must inherit from
:class:`CxxpkgError`.  Raw third-party exceptions (``requests``,
``sqlite3``, ``subprocess``, ``OSError`` …) must NEVER propagate beyond
the infrastructure layer; they are caught and re-raised as a typed
subclass defined here.

Hierarchy
---------
CxxpkgError
├── BootstrapError
├── UsageError
├── UnknownCommandError
├── PathError
│   ├── InvalidPathFormatError
│   ├── NoOwnerError
│   └── EmptyPathError
├── NetworkError
├── ChecksumMismatchError
├── ReplaceFailureError
├── ArchiveError
│   ├── UnpackError
│   └── ArchiveWriteError
├── ConfigProcessingError
└── BuildError
"""

from __future__ import annotations


class CxxpkgError(Exception):
    """Base exception for all cxxpkg errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary can render a single clean
    line without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Process lifecycle -----------------------------------------------------

class BootstrapError(CxxpkgError):
    """Raised when process-wide state (logger, config, service db) cannot be set up."""


# --- Command line ----------------------------------------------------------

class UsageError(CxxpkgError):
    """Raised on wrong argument arity or malformed option grammar."""


class UnknownCommandError(CxxpkgError):
    """Raised when the first operand is not a command, URL, directory or file."""


# --- Package identifiers ---------------------------------------------------

class PathError(CxxpkgError):
    """Base for package identifier errors."""


class InvalidPathFormatError(PathError):
    """Raised when a dotted identifier contains an empty element."""


class NoOwnerError(PathError):
    """Raised when an identifier has no reserved root or no owner element."""


class EmptyPathError(PathError):
    """Raised when an element is requested from an identifier that is too short."""


# --- Transfer / self-upgrade -----------------------------------------------

class NetworkError(CxxpkgError):
    """Raised when an HTTP transfer fails."""


class ChecksumMismatchError(CxxpkgError):
    """Raised when a downloaded file does not match its published checksum."""


class ReplaceFailureError(CxxpkgError):
    """Raised when the running executable cannot be relaunched or overwritten."""


# --- Archives --------------------------------------------------------------

class ArchiveError(CxxpkgError):
    """Base for archive handling errors."""


class UnpackError(ArchiveError):
    """Raised when an archive cannot be extracted."""


class ArchiveWriteError(ArchiveError):
    """Raised when a project archive cannot be written."""


# --- Configuration / build -------------------------------------------------

class ConfigProcessingError(CxxpkgError):
    """Raised when a configuration cannot be loaded or processed."""


class BuildError(CxxpkgError):
    """Raised when the native build tool fails or cannot be started."""
