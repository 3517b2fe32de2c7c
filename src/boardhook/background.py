"""Detached best-effort tasks that must never fail or delay a request."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger("boardhook.background")


class BackgroundRunner:
    """Runs fire-and-forget callables on a small thread pool.

    Exceptions raised by a task are logged and swallowed. Callers get the
    Future back but are not expected to wait on it; tests use ``drain``.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="boardhook-bg"
        )
        self._cond = threading.Condition()
        self._pending: set[Future[Any]] = set()
        self._closed = False

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future[Any] | None:
        """Schedule ``fn(*args, **kwargs)`` without waiting for it.

        Returns:
            The task's Future, or None if the runner is already shut down.
        """
        with self._cond:
            if self._closed:
                logger.warning("Background runner closed, dropping task %s", name)
                return None
            future = self._executor.submit(fn, *args, **kwargs)
            self._pending.add(future)

        def _done(f: Future[Any]) -> None:
            exc = f.exception()
            if exc is not None:
                logger.warning("Background task %s failed: %s", name, exc, exc_info=exc)
            with self._cond:
                self._pending.discard(f)
                self._cond.notify_all()

        future.add_done_callback(_done)
        return future

    def drain(self, timeout: float | None = 10.0) -> bool:
        """Block until every task submitted so far has finished and been logged.

        Returns:
            False if the timeout expired first.
        """
        with self._cond:
            return self._cond.wait_for(lambda: not self._pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks and optionally wait for running ones."""
        with self._cond:
            self._closed = True
        self._executor.shutdown(wait=wait)
