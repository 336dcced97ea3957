"""
Cancellation tokens and the debounce primitive

A CancellationToken is handed to every suspension point (retry sleeps,
HTTP calls). Cancelling it wakes any pending wait at once.
"""

import threading
import time
from typing import Callable, Optional

from .errors import Aborted


class CancellationToken:
    """One-shot cancellation flag shared between a controller and its fetch"""

    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Aborted()

    def sleep(self, seconds: float) -> None:
        """Wait for seconds, raising Aborted as soon as the token is cancelled"""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        if self._event.wait(timeout=seconds):
            raise Aborted()


class Debouncer:
    """
    Runs a callback once a burst of triggers has been quiet for `delay` seconds

    Each trigger pushes the deadline back, so only the last trigger in a
    burst fires. One worker thread serves the whole burst and exits once
    nothing is scheduled.
    """

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self._callback = callback
        self._cond = threading.Condition()
        self._deadline: Optional[float] = None
        self._running = False
        self._worker: Optional[threading.Thread] = None

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._deadline is not None or self._running

    def trigger(self) -> None:
        with self._cond:
            self._deadline = time.monotonic() + self.delay
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name="debounce", daemon=True)
                self._worker.start()
            self._cond.notify_all()

    def cancel(self) -> None:
        with self._cond:
            self._deadline = None
            self._cond.notify_all()

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._deadline is not None:
                    remaining = self._deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if self._deadline is None:
                    self._worker = None
                    return
                self._deadline = None
                self._running = True
            try:
                self._callback()
            finally:
                with self._cond:
                    self._running = False
