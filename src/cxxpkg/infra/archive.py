"""Archive extraction and project archive writing.

Extraction implements :class:`~cxxpkg.core.protocols.Unpacker` on top of
:func:`shutil.unpack_archive`; writing produces ``<package>.tar.gz``
files for ``--prepare-archive``.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
from collections.abc import Iterable
from pathlib import Path

from cxxpkg.core.project_path import ProjectPath
from cxxpkg.exceptions import UnpackError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".tar.gz"


class ShutilUnpacker:
    """Concrete :class:`Unpacker` for zip and tar archives."""

    def unpack(self, archive: Path, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        try:
            shutil.unpack_archive(str(archive), str(destination), format=_guess_format(archive))
        except (shutil.ReadError, ValueError, OSError) as exc:
            raise UnpackError(f"Cannot unpack {archive}: {exc}") from exc
        logger.debug("Unpacked %s into %s", archive, destination)


def _guess_format(archive: Path) -> str | None:
    """Infer the format for downloads saved under extension-less temp names."""
    name = archive.name.lower()
    if name.endswith((".tar.gz", ".tgz")):
        return "gztar"
    if name.endswith(".zip"):
        return "zip"
    if name.endswith(".tar"):
        return "tar"
    if archive.is_file():
        with archive.open("rb") as fh:
            magic = fh.read(4)
        if magic.startswith(b"PK"):
            return "zip"
        if magic[:2] == b"\x1f\x8b":
            return "gztar"
    return None


def make_archive_name(path: ProjectPath) -> str:
    """Archive file name for a package, e.g. ``org.foo.bar.tar.gz``."""
    return f"{path}{ARCHIVE_EXTENSION}"


def collect_sources(root: Path, patterns: Iterable[str]) -> list[Path]:
    """Expand glob *patterns* under *root* into a sorted list of files."""
    found: set[Path] = set()
    for pattern in patterns:
        found.update(p for p in root.glob(pattern) if p.is_file())
    return sorted(found)


def write_tar_archive(archive: Path, root: Path, files: Iterable[Path]) -> bool:
    """Write *files* (relative to *root*) into a gzipped tarball.

    Returns ``False`` when the archive could not be written; the partial
    file is removed.
    """
    try:
        with tarfile.open(archive, "w:gz") as tar:
            for file in files:
                tar.add(file, arcname=str(file.relative_to(root)))
    except (OSError, tarfile.TarError, ValueError):
        logger.warning("Archive write failed: %s", archive, exc_info=True)
        archive.unlink(missing_ok=True)
        return False
    return True
