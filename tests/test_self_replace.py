"""Tests for the executable replacement strategies (infra/self_replace.py)."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cxxpkg.core.models import ReplaceStrategy
from cxxpkg.exceptions import ReplaceFailureError
from cxxpkg.infra.self_replace import (
    FALLBACK_DELAY_SECONDS,
    SELF_UPGRADE_COPY_FLAG,
    DeferredCopyReplacer,
    InPlaceReplacer,
    default_replacer,
    platform_strategy,
    run_deferred_copy,
    wait_until_writable,
)


@pytest.fixture()
def staged(tmp_path: Path) -> Path:
    path = tmp_path / "staging" / "cxxpkg"
    path.parent.mkdir()
    path.write_bytes(b"new")
    return path


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------

class TestStrategy:
    def test_windows_defers(self) -> None:
        assert platform_strategy("Windows") is ReplaceStrategy.DEFERRED_COPY
        assert isinstance(default_replacer("Windows"), DeferredCopyReplacer)

    @pytest.mark.parametrize("system", ["Linux", "Darwin"])
    def test_posix_in_place(self, system: str) -> None:
        assert platform_strategy(system) is ReplaceStrategy.IN_PLACE
        assert isinstance(default_replacer(system), InPlaceReplacer)


# ---------------------------------------------------------------------------
# In-place
# ---------------------------------------------------------------------------

@pytest.mark.skipif(os.name == "nt", reason="POSIX only")
class TestInPlaceReplacer:
    def test_replaces_and_removes_staged(self, tmp_path: Path, staged: Path) -> None:
        live = tmp_path / "cxxpkg"
        live.write_bytes(b"old")
        outcome = InPlaceReplacer().replace(staged, live)
        assert outcome.completed
        assert live.read_bytes() == b"new"
        assert stat.S_IMODE(live.stat().st_mode) == 0o755
        assert not staged.exists()

    def test_missing_destination_dir_is_replace_failure(
        self, tmp_path: Path, staged: Path
    ) -> None:
        with pytest.raises(ReplaceFailureError) as exc_info:
            InPlaceReplacer().replace(staged, tmp_path / "missing" / "cxxpkg")
        assert exc_info.value.hint is not None


# ---------------------------------------------------------------------------
# Deferred copy
# ---------------------------------------------------------------------------

class TestDeferredCopyReplacer:
    def test_spawns_helper(self, tmp_path: Path, staged: Path) -> None:
        spawn = MagicMock()
        live = tmp_path / "cxxpkg.exe"
        outcome = DeferredCopyReplacer(spawn=spawn).replace(staged, live)
        assert spawn.call_args.args[0] == [str(staged), SELF_UPGRADE_COPY_FLAG, str(live)]
        assert outcome.strategy is ReplaceStrategy.DEFERRED_COPY
        assert not outcome.completed

    def test_spawn_failure(self, tmp_path: Path, staged: Path) -> None:
        spawn = MagicMock(side_effect=OSError("denied"))
        with pytest.raises(ReplaceFailureError):
            DeferredCopyReplacer(spawn=spawn).replace(staged, tmp_path / "cxxpkg.exe")


class TestWaitUntilWritable:
    def test_missing_file_is_writable(self, tmp_path: Path) -> None:
        assert wait_until_writable(tmp_path / "absent")
        assert not (tmp_path / "absent").exists()

    def test_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "live"
        target.write_bytes(b"x")
        assert wait_until_writable(target)
        assert target.read_bytes() == b"x"

    def test_locked_file_times_out(self) -> None:
        locked = MagicMock()
        locked.open.side_effect = PermissionError("locked")
        ticks = iter([0.0, 0.5, 1.0, 1.5, 2.0])
        sleep = MagicMock()
        assert not wait_until_writable(
            locked, timeout=1.0, interval=0.5, sleep=sleep, clock=lambda: next(ticks)
        )
        assert sleep.call_count == 1

    def test_lock_released(self) -> None:
        target = MagicMock()
        target.open.side_effect = [PermissionError("locked"), MagicMock()]
        sleep = MagicMock()
        assert wait_until_writable(target, sleep=sleep, clock=lambda: 0.0)
        sleep.assert_called_once()


class TestRunDeferredCopy:
    def test_copies_source(self, tmp_path: Path, staged: Path) -> None:
        live = tmp_path / "cxxpkg"
        live.write_bytes(b"old")
        sleep = MagicMock()
        run_deferred_copy(live, source=staged, sleep=sleep, waiter=lambda _p: True)
        assert live.read_bytes() == b"new"
        sleep.assert_not_called()

    def test_falls_back_to_fixed_delay(self, tmp_path: Path, staged: Path) -> None:
        sleep = MagicMock()
        run_deferred_copy(tmp_path / "cxxpkg", source=staged, sleep=sleep,
                          waiter=lambda _p: False)
        sleep.assert_called_once_with(FALLBACK_DELAY_SECONDS)

    def test_copy_failure(self, tmp_path: Path, staged: Path) -> None:
        with pytest.raises(ReplaceFailureError):
            run_deferred_copy(tmp_path / "missing" / "cxxpkg", source=staged,
                              sleep=MagicMock(), waiter=lambda _p: True)
