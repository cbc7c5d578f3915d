"""URL recognition for command-line operands."""

from __future__ import annotations

from urllib.parse import urlparse

URL_SCHEMES: frozenset[str] = frozenset({"http", "https", "ftp", "file"})


def is_url(text: str) -> bool:
    """Return ``True`` when *text* is an absolute URL with a supported scheme.

    ``file`` URLs need a path; every other scheme needs a network location.
    Windows drive paths such as ``C:\\src`` are not URLs.
    """
    try:
        parsed = urlparse(text.strip())
    except ValueError:
        return False
    scheme = parsed.scheme.lower()
    if scheme not in URL_SCHEMES:
        return False
    if scheme == "file":
        return bool(parsed.path)
    return bool(parsed.netloc)
