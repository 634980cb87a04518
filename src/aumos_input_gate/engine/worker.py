"""Shared background executor for work that must not run on the caller's thread.

External teardown may reach a gate from a thread that cannot block; the
resulting abort is submitted here instead.

Example
-------
>>> future = submit(lambda: 42)
>>> future.result(timeout=1)
42
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_MAX_WORKERS = 4

_executor: ThreadPoolExecutor | None = None
_max_workers = _DEFAULT_MAX_WORKERS
_lock = threading.Lock()


def configure(max_workers: int) -> None:
    """Set the pool size.  Takes effect the next time the pool is created."""
    global _max_workers
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1.")
    with _lock:
        _max_workers = max_workers


def get_executor() -> ThreadPoolExecutor:
    """Return the shared executor, creating it on first use."""
    global _executor
    with _lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=_max_workers,
                thread_name_prefix="input-gate-worker",
            )
            logger.debug("Started background executor with %d workers", _max_workers)
        return _executor


def submit(task: Callable[[], T]) -> "Future[T]":
    """Run *task* on the shared executor."""
    return get_executor().submit(task)


def shutdown(wait: bool = True) -> None:
    """Stop the shared executor; a later :func:`submit` starts a new one."""
    global _executor
    with _lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=wait)
