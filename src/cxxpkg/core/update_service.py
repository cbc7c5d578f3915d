"""Self-upgrade protocol: download, verify, unpack and replace.

Pipeline
--------
1. Pick the published client archive for the current OS.
2. Download ``<archive>.md5`` into a fresh temp file, read and strip it.
3. Download the archive into a second fresh temp file; the HTTP client
   hashes the bytes while streaming.
4. Compare.  A mismatch raises :class:`ChecksumMismatchError` before
   anything outside the temp area is touched.
5. Unpack into the fixed staging directory.
6. Hand the staged binary to the injected :class:`Replacer`.

Guarantees
----------
* Network and checksum failures never touch the live executable.
* Temp downloads are removed on every exit path.
* Only :class:`~cxxpkg.exceptions.CxxpkgError` subclasses escape.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import tempfile
from pathlib import Path

from cxxpkg.core.models import ReplaceOutcome, UpdateAsset
from cxxpkg.core.protocols import HttpClient, ProgressCallback, Replacer, Unpacker
from cxxpkg.exceptions import ChecksumMismatchError, CxxpkgError, NetworkError, UnpackError

logger = logging.getLogger(__name__)

CHECKSUM_SUFFIX = ".md5"
STAGING_DIRNAME = "cxxpkg.bak"

_CLIENT_ASSETS: dict[str, str] = {
    "windows": "/client/cxxpkg-master-Windows-client.zip",
    "darwin": "/client/cxxpkg-master-macOS-client.zip",
}
_DEFAULT_CLIENT_ASSET = "/client/.service/cxxpkg-master-Linux-client.zip"


def select_asset(host: str, system: str | None = None) -> UpdateAsset:
    """Return the client archive for *system* (default: this OS) on *host*."""
    system = (system or platform.system()).lower()
    remote = _CLIENT_ASSETS.get(system, _DEFAULT_CLIENT_ASSET)
    url = host.rstrip("/") + remote
    binary = "cxxpkg.exe" if system == "windows" else "cxxpkg"
    return UpdateAsset(url=url, checksum_url=url + CHECKSUM_SUFFIX, binary_name=binary)


class UpdateAgent:
    """Drives the self-upgrade protocol through injected collaborators.

    Parameters
    ----------
    http:
        Any object satisfying :class:`HttpClient`.
    unpacker:
        Any object satisfying :class:`Unpacker`.
    replacer:
        Strategy that swaps the live executable.
    host:
        Base URL of the distribution server.
    """

    def __init__(
        self,
        http: HttpClient,
        unpacker: Unpacker,
        replacer: Replacer,
        *,
        host: str,
        system: str | None = None,
        temp_root: Path | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._http = http
        self._unpacker = unpacker
        self._replacer = replacer
        self._host = host
        self._system = system
        self._temp_root = temp_root or Path(tempfile.gettempdir())
        self._progress_callback = progress_callback

    @property
    def staging_dir(self) -> Path:
        return self._temp_root / STAGING_DIRNAME

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def upgrade(self, executable: Path) -> ReplaceOutcome:
        """Replace *executable* with the latest verified client.

        Raises
        ------
        NetworkError
            When either download fails.
        ChecksumMismatchError
            When the archive does not match the published checksum.
        UnpackError
            When the archive is unreadable or lacks the client binary.
        ReplaceFailureError
            When the replacer cannot swap the binary.
        """
        asset = select_asset(self._host, self._system)
        checksum_file = self._fresh_temp_file()
        archive_file = self._fresh_temp_file()
        try:
            logger.info("Downloading checksum file %s", asset.checksum_url)
            self._http.download(asset.checksum_url, checksum_file)
            expected = _read_checksum(checksum_file)

            logger.info("Downloading the latest client %s", asset.url)
            actual = self._http.download(
                asset.url, archive_file, progress_callback=self._progress_callback
            )
            if expected.lower() != actual.strip().lower():
                raise ChecksumMismatchError(
                    "Downloaded bad file (md5 check failed)",
                    hint=f"expected {expected or '<empty>'}, got {actual}",
                )

            logger.info("Unpacking into %s", self.staging_dir)
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            self._unpacker.unpack(archive_file, self.staging_dir)
        finally:
            checksum_file.unlink(missing_ok=True)
            archive_file.unlink(missing_ok=True)

        staged = self.staging_dir / asset.binary_name
        if not staged.is_file():
            raise UnpackError(f"Client binary {asset.binary_name} missing from {asset.url}")

        logger.info("Replacing client %s", executable)
        return self._replacer.replace(staged, executable)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fresh_temp_file(self) -> Path:
        try:
            fd, name = tempfile.mkstemp(prefix="cxxpkg-", dir=self._temp_root)
        except OSError as exc:
            raise CxxpkgError(f"Cannot create temporary file: {exc}") from exc
        os.close(fd)
        return Path(name)


def _read_checksum(path: Path) -> str:
    """First token of the checksum file (``md5sum`` output is accepted)."""
    try:
        text = path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError as exc:
        raise NetworkError(f"Cannot read downloaded checksum: {exc}") from exc
    return text.split()[0] if text else ""
