"""Tests for the Rich download progress adapter (cli/progress.py)."""

from __future__ import annotations

from cxxpkg.cli.progress import MAX_LABEL, DownloadProgress


class TestDownloadProgress:
    def test_ignores_events_before_start(self) -> None:
        progress = DownloadProgress()
        progress({"status": "downloading", "downloaded_bytes": 1, "total_bytes": 2})
        assert progress._progress.tasks == []

    def test_tracks_one_task_per_download(self) -> None:
        with DownloadProgress() as progress:
            url = "https://cxxpkg.test/client/cxxpkg-master-Linux-client.zip"
            progress({"status": "downloading", "downloaded_bytes": 10,
                      "total_bytes": 40, "filename": url})
            progress({"status": "downloading", "downloaded_bytes": 30,
                      "total_bytes": 40, "filename": url})
            (task,) = progress._progress.tasks
            assert task.description == "cxxpkg-master-Linux-client.zip"
            assert task.completed == 30
            progress({"status": "finished"})
            assert task.completed == 40

    def test_long_labels_are_truncated(self) -> None:
        with DownloadProgress() as progress:
            progress({"status": "downloading", "downloaded_bytes": 1,
                      "total_bytes": None, "filename": "x" * 80})
            (task,) = progress._progress.tasks
            assert len(task.description) == MAX_LABEL
            assert task.description.endswith("...")
