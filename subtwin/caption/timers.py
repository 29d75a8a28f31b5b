from __future__ import annotations

import threading
from typing import Any, Callable, Protocol


class Scheduler(Protocol):
    def schedule(self, delay_sec: float, fn: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class ThreadingScheduler:
    """
    Runs callbacks on daemon threading.Timer threads.
    Callbacks must do their own locking.
    """

    def __init__(self, name: str = "subtwin-timer") -> None:
        self.name = name

    def schedule(self, delay_sec: float, fn: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(0.0, float(delay_sec)), fn)
        timer.name = self.name
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()


class Debouncer:
    """Single cancellable slot: scheduling again cancels the previous timer."""

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self._handle: Any = None
        self._generation = 0
        self._lock = threading.Lock()

    def schedule(self, delay_sec: float, fn: Callable[[], None]) -> None:
        with self._lock:
            if self._handle is not None:
                self.scheduler.cancel(self._handle)
            self._generation += 1
            generation = self._generation
            self._handle = self.scheduler.schedule(delay_sec, lambda: self._fire(generation, fn))

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._handle is not None:
                self.scheduler.cancel(self._handle)
                self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _fire(self, generation: int, fn: Callable[[], None]) -> None:
        # A timer thread that already started cannot be cancelled; drop it here.
        with self._lock:
            if generation != self._generation:
                return
            self._handle = None
        fn()
