"""Step context: the engine's resume and failure entry points.

A gate hands its outcome to the engine through a :class:`StepContext`
exactly once.  :class:`CallbackStepContext` forwards to plain callables and
lets the thread that owns the paused branch block until that happens.

Example
-------
>>> context = CallbackStepContext()
>>> context.on_success("staging")
>>> context.wait(timeout=1.0)
True
>>> context.result
'staging'
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class StepContext(ABC):
    """Entry points of the execution engine for one paused step."""

    @abstractmethod
    def on_success(self, value: object) -> None:
        """Resume the paused branch with *value*."""

    @abstractmethod
    def on_failure(self, error: BaseException) -> None:
        """Abort the paused branch with *error*."""


class CallbackStepContext(StepContext):
    """Step context that records the outcome and calls optional callbacks.

    Parameters
    ----------
    success:
        Called with the bound value on resume.
    failure:
        Called with the error on abort.

    Raises
    ------
    RuntimeError
        From :meth:`on_success` / :meth:`on_failure` when the context was
        already completed; the engine must never be entered twice.
    """

    def __init__(
        self,
        success: Callable[[object], None] | None = None,
        failure: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._success = success
        self._failure = failure
        self._done = threading.Event()
        self._lock = threading.Lock()
        self.result: object = None
        self.error: BaseException | None = None
        self.calls = 0

    def on_success(self, value: object) -> None:
        self._complete()
        self.result = value
        self._done.set()
        if self._success is not None:
            self._success(value)

    def on_failure(self, error: BaseException) -> None:
        self._complete()
        self.error = error
        self._done.set()
        if self._failure is not None:
            self._failure(error)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the step completed; return ``False`` on timeout."""
        return self._done.wait(timeout)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def _complete(self) -> None:
        with self._lock:
            self.calls += 1
            if self.calls > 1:
                raise RuntimeError("Step context completed more than once.")
