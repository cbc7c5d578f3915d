"""Process-wide context and its single-initialisation gate.

The logger, the user settings and the service database are created
exactly once per process by :func:`bootstrap` and handed to everything
that needs them through a :class:`ProcessContext`.  There are no lazy
module-level singletons: the :class:`InitOnce` gate is the only place
that decides whether initialisation has happened.

:func:`scoped_chdir` is the other process-wide resource: a working
directory change that is always reverted.
"""

from __future__ import annotations

import contextlib
import logging
import os
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from cxxpkg.core.models import HttpSettings
from cxxpkg.core.protocols import ServiceDatabase
from cxxpkg.exceptions import BootstrapError, CxxpkgError, UsageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InitOnce(Generic[T]):
    """Explicit run-at-most-once gate.

    The first successful :meth:`run` stores its result; later calls
    return it without invoking the initialiser again.  A failing
    initialiser leaves the gate open.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: T | None = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def run(self, initialiser: Callable[[], T]) -> T:
        with self._lock:
            if not self._done:
                self._value = initialiser()
                self._done = True
            return self._value  # type: ignore[return-value]

    def reset(self) -> T | None:
        """Re-open the gate and hand back the stored value (for teardown)."""
        with self._lock:
            value, self._value, self._done = self._value, None, False
            return value


@dataclass(slots=True)
class ProcessContext:
    """Handles created by :func:`bootstrap`, passed by reference."""

    logger: Any
    settings: Any
    """Effective user settings (:class:`~cxxpkg.config.settings.UserSettings`)."""

    service_db: ServiceDatabase
    http_settings: HttpSettings = field(default_factory=HttpSettings)

    def close(self) -> None:
        self.service_db.close()


_GATE: InitOnce[ProcessContext] = InitOnce()


def bootstrap(
    *,
    configure_logger: Callable[[], Any],
    load_settings: Callable[[], Any],
    open_service_database: Callable[[Any], ServiceDatabase],
) -> ProcessContext:
    """Initialise process-wide state, once.

    Order: logger, user settings, service database startup actions.
    Any failure is reported as :class:`BootstrapError`.
    """

    def _initialise() -> ProcessContext:
        try:
            log_handle = configure_logger()
            settings = load_settings()
            service_db = open_service_database(settings)
            service_db.perform_startup_actions()
        except BootstrapError:
            raise
        except CxxpkgError as exc:
            raise BootstrapError(f"Initialization failed: {exc}", hint=exc.hint) from exc
        except OSError as exc:
            raise BootstrapError(f"Initialization failed: {exc}") from exc
        logger.debug("Process context initialised")
        return ProcessContext(logger=log_handle, settings=settings, service_db=service_db)

    return _GATE.run(_initialise)


def is_bootstrapped() -> bool:
    return _GATE.done


def shutdown() -> None:
    """Tear down the process context, if one was created."""
    context = _GATE.reset()
    if context is not None:
        context.close()


@contextlib.contextmanager
def scoped_chdir(path: str | os.PathLike[str]) -> Iterator[Path]:
    """Change the working directory for the duration of the block.

    The previous directory is restored on every exit path, including
    exceptions raised inside the block.
    """
    previous = Path.cwd()
    try:
        os.chdir(path)
    except OSError as exc:
        raise UsageError(
            f"Cannot change directory to {os.fspath(path)}: {exc.strerror}",
            hint="Check that the directory exists and is accessible.",
        ) from exc
    try:
        yield Path.cwd()
    finally:
        os.chdir(previous)
