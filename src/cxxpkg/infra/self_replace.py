"""Replacing the running executable.

Two strategies implement :class:`~cxxpkg.core.protocols.Replacer`:

* :class:`InPlaceReplacer` (POSIX): a running binary may be unlinked, so
  the staged file is copied straight over the live path.  **Not atomic**:
  if the copy fails after the unlink, no binary is left at the
  destination and the user has to reinstall manually.

* :class:`DeferredCopyReplacer` (Windows): the live file is locked while
  it runs.  The staged binary is launched with ``--self-upgrade-copy
  <destination>`` and the current process exits.  The helper
  (:func:`run_deferred_copy`) waits until the destination can be opened
  for writing, then copies itself over it.  There is a race window
  between the parent's exit and the helper's first successful probe;
  when the probe is unusable the helper falls back to a fixed delay.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import subprocess
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from cxxpkg.core.models import ReplaceOutcome, ReplaceStrategy
from cxxpkg.core.protocols import Replacer
from cxxpkg.exceptions import ReplaceFailureError

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755
SELF_UPGRADE_COPY_FLAG = "--self-upgrade-copy"
FALLBACK_DELAY_SECONDS = 1.0
UNLOCK_TIMEOUT_SECONDS = 30.0
UNLOCK_POLL_SECONDS = 0.2


def current_executable() -> Path:
    """Path of the running client (frozen binary or console script)."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()


def platform_strategy(system: str | None = None) -> ReplaceStrategy:
    system = (system or platform.system()).lower()
    if system == "windows":
        return ReplaceStrategy.DEFERRED_COPY
    return ReplaceStrategy.IN_PLACE


def default_replacer(system: str | None = None) -> Replacer:
    if platform_strategy(system) is ReplaceStrategy.DEFERRED_COPY:
        return DeferredCopyReplacer()
    return InPlaceReplacer()


class InPlaceReplacer:
    """chmod → unlink live → copy staged → unlink staged."""

    def replace(self, staged: Path, destination: Path) -> ReplaceOutcome:
        try:
            staged.chmod(EXECUTABLE_MODE)
            destination.unlink(missing_ok=True)
            shutil.copy2(staged, destination)
            staged.unlink()
        except OSError as exc:
            raise ReplaceFailureError(
                f"Cannot replace {destination}: {exc}",
                hint=(
                    f"The client at {destination} may be missing. "
                    f"Copy {staged} there manually."
                ),
            ) from exc
        logger.debug("Replaced %s in place", destination)
        return ReplaceOutcome(ReplaceStrategy.IN_PLACE, destination, completed=True)


class DeferredCopyReplacer:
    """Hand the copy over to a helper process started from the staged binary."""

    def __init__(self, *, spawn: Callable[..., Any] = subprocess.Popen) -> None:
        self._spawn = spawn

    def replace(self, staged: Path, destination: Path) -> ReplaceOutcome:
        cmd = [str(staged), SELF_UPGRADE_COPY_FLAG, str(destination)]
        try:
            self._spawn(cmd, close_fds=True)
        except OSError as exc:
            raise ReplaceFailureError(
                f"Cannot start the upgrade helper: {exc}",
                hint="Replace this file with a newer client manually.",
            ) from exc
        logger.debug("Deferred copy of %s to %s handed to helper", staged, destination)
        return ReplaceOutcome(ReplaceStrategy.DEFERRED_COPY, destination, completed=False)


def wait_until_writable(
    path: Path,
    *,
    timeout: float = UNLOCK_TIMEOUT_SECONDS,
    interval: float = UNLOCK_POLL_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll until *path* can be opened for appending; ``False`` on timeout.

    A missing destination counts as writable.
    """
    if not path.exists():
        return True
    deadline = clock() + timeout
    while True:
        try:
            with path.open("ab"):
                return True
        except FileNotFoundError:
            return True
        except PermissionError:
            pass
        except OSError:
            return False
        if clock() >= deadline:
            return False
        sleep(interval)


def run_deferred_copy(
    destination: Path,
    *,
    source: Path | None = None,
    sleep: Callable[[float], None] = time.sleep,
    waiter: Callable[[Path], bool] = wait_until_writable,
) -> None:
    """Helper side of :class:`DeferredCopyReplacer`: copy *source* over *destination*.

    *source* defaults to the running executable.
    """
    source = source or current_executable()
    if not waiter(destination):
        logger.debug("Destination still locked, falling back to fixed delay")
        sleep(FALLBACK_DELAY_SECONDS)
    try:
        shutil.copyfile(source, destination)
        if os.name != "nt":
            destination.chmod(EXECUTABLE_MODE)
    except OSError as exc:
        raise ReplaceFailureError(
            f"Cannot overwrite {destination}: {exc}",
            hint=f"Copy {source} to {destination} manually.",
        ) from exc
