"""Process-wide cleanup registry for readers that are never closed.

Each open :class:`~ingestkit_sheets.reader.SheetReader` registers a cleanup
callback here and removes it again on ``close()``.  Whatever is still
registered when the interpreter exits is run once from an ``atexit``
handler.  SIGTERM normally bypasses ``atexit``; ``install_sigterm_handler``
turns it into ``SystemExit`` so the handler runs there too.  Hard kills
(SIGKILL, ``os._exit``) cannot be covered.
"""

from __future__ import annotations

import atexit
import itertools
import logging
import signal
import threading
from typing import Callable

from ingestkit_sheets.errors import ErrorCode

logger = logging.getLogger("ingestkit_sheets")


class ResourceGuard:
    """Thread-safe registry of cleanup callbacks run at interpreter exit."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._tokens = itertools.count(1)
        self._atexit_installed = False
        self._sigterm_installed = False

    @property
    def pending(self) -> int:
        """Number of callbacks that would run at exit."""
        with self._lock:
            return len(self._callbacks)

    def register(self, callback: Callable[[], None]) -> int:
        """Register *callback* and return a token for :meth:`unregister`."""
        with self._lock:
            token = next(self._tokens)
            self._callbacks[token] = callback
            if not self._atexit_installed:
                atexit.register(self.run_all)
                self._atexit_installed = True
        return token

    def unregister(self, token: int) -> bool:
        """Drop the callback for *token*.  Returns False if it was not registered."""
        with self._lock:
            return self._callbacks.pop(token, None) is not None

    def run_all(self) -> int:
        """Run and drop every registered callback; return how many ran.

        Failures are logged and never raised.  Callbacks run outside the
        lock so they may themselves call :meth:`unregister`.
        """
        with self._lock:
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                logger.warning(
                    "ingestkit_sheets | code=%s | detail=%s",
                    ErrorCode.W_GUARD_CLEANUP_FAILED.value,
                    exc,
                )
        if callbacks:
            logger.info(
                "ingestkit_sheets | exit guard released %d open reader(s)",
                len(callbacks),
            )
        return len(callbacks)

    def install_sigterm_handler(self) -> bool:
        """Make SIGTERM raise ``SystemExit`` so :meth:`run_all` gets to run.

        Signal handlers can only be set from the main thread; from any other
        thread this is a no-op returning False.  A previously installed
        Python-level handler is still called first.
        """
        if threading.current_thread() is not threading.main_thread():
            return False

        with self._lock:
            if self._sigterm_installed:
                return True
            previous = signal.getsignal(signal.SIGTERM)

            def _handler(signum, frame):
                if callable(previous):
                    previous(signum, frame)
                raise SystemExit(128 + signum)

            signal.signal(signal.SIGTERM, _handler)
            self._sigterm_installed = True
        return True


_default_guard = ResourceGuard()


def default_guard() -> ResourceGuard:
    """Return the process-wide guard shared by all readers."""
    return _default_guard
