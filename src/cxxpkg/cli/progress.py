"""Rich download progress driven by the HTTP client's progress callback.

:class:`DownloadProgress` is the callable handed to
:meth:`~cxxpkg.core.protocols.HttpClient.download`.  The infra layer
only emits plain dicts; rendering happens here.

Callback dicts carry ``"status"`` (``"downloading"`` / ``"finished"``)
plus ``"downloaded_bytes"``, ``"total_bytes"`` and ``"filename"`` while
downloading.
"""

from __future__ import annotations

from typing import Any

from cxxpkg.cli.console import get_rich_console
from cxxpkg.exceptions import CxxpkgError

MAX_LABEL = 50


class DownloadProgress:
    """Callable progress adapter for Rich, usable as a context manager::

        with DownloadProgress() as progress:
            http.download(url, dest, progress_callback=progress)
    """

    def __init__(self) -> None:
        try:
            from rich.progress import (
                BarColumn,
                DownloadColumn,
                Progress,
                TextColumn,
                TransferSpeedColumn,
            )
        except ModuleNotFoundError as exc:
            raise CxxpkgError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._progress: Any = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=get_rich_console(),
            transient=True,
        )
        self._task_id: Any = None
        self._started = False

    def __enter__(self) -> DownloadProgress:
        if not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, *_args: object) -> None:
        if self._started:
            self._progress.stop()
            self._started = False

    def __call__(self, event: dict[str, Any]) -> None:
        if not self._started:
            return
        status = event.get("status")
        if status == "downloading":
            self._advance(event)
        elif status == "finished" and self._task_id is not None:
            task = next(t for t in self._progress.tasks if t.id == self._task_id)
            if task.total is not None:
                self._progress.update(self._task_id, completed=task.total)
            self._task_id = None

    def _advance(self, event: dict[str, Any]) -> None:
        total = event.get("total_bytes")
        downloaded = int(event.get("downloaded_bytes") or 0)
        if self._task_id is None:
            label = str(event.get("filename", "Downloading")).rsplit("/", 1)[-1]
            if len(label) > MAX_LABEL:
                label = label[: MAX_LABEL - 3] + "..."
            self._task_id = self._progress.add_task(label, total=total)
        self._progress.update(self._task_id, total=total, completed=downloaded)
