"""requests-backed implementation of :class:`~cxxpkg.core.protocols.HttpClient`.

This module is the **only** place in the codebase that imports
``requests``.  All transport exceptions are caught here and re-raised as
:class:`~cxxpkg.exceptions.NetworkError`, so nothing raw escapes the
infrastructure boundary.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

import requests

from cxxpkg.core.models import HttpSettings
from cxxpkg.core.protocols import ProgressCallback
from cxxpkg.exceptions import NetworkError
from cxxpkg.version import __version__

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
TIMEOUT_SECONDS = 60


class RequestsHttpClient:
    """Streaming downloader that hashes bytes as they arrive.

    The :class:`HttpSettings` instance is read on every call, so later
    changes to the process-wide proxy take effect immediately.
    """

    def __init__(self, settings: HttpSettings, session: requests.Session | None = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", f"cxxpkg/{__version__}")

    def _request_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "stream": True,
            "timeout": TIMEOUT_SECONDS,
            "verify": not self._settings.ignore_ssl_checks,
        }
        if self._settings.proxy:
            kwargs["proxies"] = {"http": self._settings.proxy, "https": self._settings.proxy}
        return kwargs

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def download(
        self,
        url: str,
        destination: Path,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> str:
        """Stream *url* into *destination*; return the MD5 hex digest.

        Raises
        ------
        NetworkError
            For connection errors, timeouts, HTTP error statuses and local
            write failures.
        """
        if self._settings.verbose:
            logger.info("GET %s -> %s (proxy=%s)", url, destination, self._settings.proxy)

        digest = hashlib.md5()
        downloaded = 0
        try:
            with self._session.get(url, **self._request_kwargs()) as response:
                response.raise_for_status()
                total = _content_length(response.headers.get("Content-Length"))
                with destination.open("wb") as fh:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        fh.write(chunk)
                        digest.update(chunk)
                        downloaded += len(chunk)
                        if progress_callback is not None:
                            progress_callback({
                                "status": "downloading",
                                "downloaded_bytes": downloaded,
                                "total_bytes": total,
                                "filename": url,
                            })
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            raise NetworkError(
                f"Download failed ({status}): {url}",
                hint="Check the host setting in your cxxpkg configuration.",
            ) from exc
        except requests.RequestException as exc:
            raise NetworkError(
                f"Download failed: {url}: {exc}",
                hint="Check your network connection or proxy setting.",
            ) from exc
        except OSError as exc:
            raise NetworkError(f"Cannot write {destination}: {exc}") from exc

        if progress_callback is not None:
            progress_callback({"status": "finished"})
        logger.debug("Downloaded %d bytes from %s", downloaded, url)
        return digest.hexdigest()


def _content_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
