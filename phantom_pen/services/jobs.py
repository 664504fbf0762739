"""
Delayed, cancellable job runner.

The synthesis scheduler only needs three things from a job system:

  submit(delay_seconds, fn, *args, handle=None) -> handle
  cancel(handle)                   -> bool   (True if it was still pending)
  shutdown()

ThreadedJobRunner keeps one `threading.Timer` per job in process memory.
It is meant for a single-instance deployment (gunicorn runs one worker,
see gunicorn.conf.py); the `synthesis_schedules` table stays the source of
truth for whether a fired job should still do anything.
"""
from __future__ import annotations

import threading
import uuid
from typing import Any, Callable, Protocol

from phantom_pen.core.logging import get_logger

logger = get_logger(__name__)


class JobRunner(Protocol):
    def submit(
        self, delay_seconds: float, fn: Callable[..., Any], *args: Any, handle: str | None = None
    ) -> str: ...

    def cancel(self, handle: str) -> bool: ...

    def shutdown(self) -> None: ...


def new_handle() -> str:
    return uuid.uuid4().hex


class ThreadedJobRunner:
    def __init__(self) -> None:
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._closed = False

    def submit(
        self, delay_seconds: float, fn: Callable[..., Any], *args: Any, handle: str | None = None
    ) -> str:
        handle = handle or new_handle()
        timer = threading.Timer(max(0.0, delay_seconds), self._fire, args=(handle, fn, args))
        timer.daemon = True
        with self._lock:
            if self._closed:
                raise RuntimeError("job runner is shut down")
            self._timers[handle] = timer
        timer.start()
        return handle

    def cancel(self, handle: str) -> bool:
        with self._lock:
            timer = self._timers.pop(handle, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            logger.info("Job runner shut down, %d pending job(s) dropped", len(timers))

    def _fire(self, handle: str, fn: Callable[..., Any], args: tuple) -> None:
        with self._lock:
            if self._timers.pop(handle, None) is None:
                return  # cancelled between expiry and dispatch
        try:
            fn(*args)
        except Exception:
            logger.exception("Job %s failed", handle)
