"""Hierarchical package identifiers.

A :class:`ProjectPath` is the canonical key for everything that refers
to a package: the dependency graph, the package index and the on-disk
storage layout.  It is a dotted name such as ``org.boost.algorithm``,
analogous to a reverse-domain name.

The first element may be one of four reserved roots (see
:class:`RootNamespace`); such identifiers are *absolute* and carry an
owner in their second element.  Everything else is *relative*.

All instances are immutable values.  Derived identifiers (``parent()``,
``/``) are new instances.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from cxxpkg.exceptions import EmptyPathError, InvalidPathFormatError, NoOwnerError

DELIMITER: str = "."


class RootNamespace(enum.Enum):
    """Reserved top-level namespaces."""

    COM = "com"
    """Company projects."""

    ORG = "org"
    """Organisation / open-source projects."""

    LOC = "loc"
    """Local, unpublished projects."""

    PVT = "pvt"
    """Private per-user projects."""

    @classmethod
    def lookup(cls, element: str) -> RootNamespace | None:
        """Return the member named by *element*, or ``None``."""
        try:
            return cls(element)
        except ValueError:
            return None


class PathElementKind(enum.Enum):
    """Sections of an absolute identifier, used by :meth:`ProjectPath.slice_by`."""

    NAMESPACE = "namespace"
    OWNER = "owner"
    TAIL = "tail"


@dataclass(frozen=True, order=True, slots=True)
class ProjectPath:
    """Immutable, totally ordered package identifier.

    Ordering is element-wise lexicographic (plain tuple comparison), so
    instances sort deterministically and work as ``dict`` keys.
    """

    elements: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.elements, str):
            raise InvalidPathFormatError(
                f"Invalid package path: {self.elements!r}",
                hint="Use ProjectPath.parse() for dotted strings.",
            )
        elements = tuple(self.elements)
        for element in elements:
            if not element:
                raise InvalidPathFormatError(
                    f"Invalid package path: {DELIMITER.join(elements)!r}",
                    hint="Path elements must not be empty.",
                )
            if DELIMITER in element:
                raise InvalidPathFormatError(
                    f"Invalid package path element: {element!r}",
                    hint=f"Path elements must not contain {DELIMITER!r}.",
                )
        object.__setattr__(self, "elements", elements)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> ProjectPath:
        """Build an identifier from a dotted string.

        The empty string yields the empty identifier.  Leading, trailing
        or doubled delimiters raise :class:`InvalidPathFormatError`.
        """
        if not text:
            return cls()
        return cls(tuple(text.split(DELIMITER)))

    @classmethod
    def from_elements(cls, elements: Iterable[str]) -> ProjectPath:
        return cls(tuple(elements))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_string(self, delimiter: str = DELIMITER) -> str:
        return delimiter.join(self.elements)

    def to_filesystem_path(self) -> Path:
        """Map elements to nested directory segments, in order."""
        return Path(*self.elements)

    def __str__(self) -> str:
        return self.to_string()

    # ------------------------------------------------------------------
    # Sequence behaviour
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[str]:
        return iter(self.elements)

    def __truediv__(self, other: str | ProjectPath) -> ProjectPath:
        """Append *other*'s elements; an empty suffix string is the identity."""
        if isinstance(other, ProjectPath):
            suffix = other
        elif isinstance(other, str):
            if not other:
                return self
            suffix = ProjectPath.parse(other)
        else:
            return NotImplemented
        return ProjectPath(self.elements + suffix.elements)

    # ------------------------------------------------------------------
    # Namespace semantics
    # ------------------------------------------------------------------

    def namespace(self) -> RootNamespace | None:
        """Return the reserved root this identifier starts with, if any."""
        if not self.elements:
            return None
        return RootNamespace.lookup(self.elements[0])

    def has_namespace(self) -> bool:
        return self.namespace() is not None

    def is_absolute(self, username: str | None = None) -> bool:
        """True when rooted at a reserved namespace.

        With *username*, an identifier whose first element is that user's
        personal namespace (the ``pvt`` shorthand) is absolute as well.
        """
        if not self.elements:
            return False
        if self.has_namespace():
            return True
        return bool(username) and self.elements[0] == username

    def is_relative(self, username: str | None = None) -> bool:
        return not self.is_absolute(username)

    def is_root_of(self, other: ProjectPath) -> bool:
        """True when this identifier is an equal-or-strict prefix of *other*."""
        if len(self.elements) > len(other.elements):
            return False
        return other.elements[: len(self.elements)] == self.elements

    def owner(self) -> str:
        """Return the owner element (index 1) of an absolute identifier."""
        if len(self.elements) < 2 or not self.has_namespace():
            raise NoOwnerError(f"Package path has no owner: {self!s}")
        return self.elements[1]

    def name(self) -> str:
        if not self.elements:
            raise EmptyPathError("Empty package path has no name")
        return self.elements[-1]

    def parent(self) -> ProjectPath:
        if len(self.elements) < 2:
            raise EmptyPathError(f"Package path has no parent: {self!s}")
        return ProjectPath(self.elements[:-1])

    def slice_by(self, kind: PathElementKind) -> ProjectPath:
        """Return the namespace, owner or tail section of the identifier.

        Relative identifiers have no namespace or owner, so their tail is
        the whole identifier.
        """
        if not self.has_namespace():
            if kind is PathElementKind.TAIL:
                return self
            return ProjectPath()
        if kind is PathElementKind.NAMESPACE:
            return ProjectPath(self.elements[:1])
        if kind is PathElementKind.OWNER:
            return ProjectPath(self.elements[1:2])
        return ProjectPath(self.elements[2:])
