from __future__ import annotations

from concurrent.futures import Future
from typing import Callable

import pytest

from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.base import Translator
from subtwin.nlp.translator.errors import ProviderLogicFailure


class ManualScheduler:
    """Deterministic clock: timers only fire inside advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self.timers: dict[int, tuple[float, Callable[[], None]]] = {}

    def schedule(self, delay_sec: float, fn: Callable[[], None]) -> int:
        self._seq += 1
        self.timers[self._seq] = (self.now + max(0.0, float(delay_sec)), fn)
        return self._seq

    def cancel(self, handle) -> None:
        self.timers.pop(handle, None)

    def advance(self, seconds: float = 0.0) -> None:
        target = self.now + seconds
        while True:
            due = [(t, h) for h, (t, _) in self.timers.items() if t <= target]
            if not due:
                break
            t, h = min(due)
            _, fn = self.timers.pop(h)
            self.now = t
            fn()
        self.now = target


class ManualExecutor:
    """Queues submitted work until run_all(), so tests control completion."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, Callable, tuple, dict]] = []
        self.submitted = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        fut: Future = Future()
        self.jobs.append((fut, fn, args, kwargs))
        self.submitted += 1
        return fut

    def run_all(self) -> None:
        while self.jobs:
            fut, fn, args, kwargs = self.jobs.pop(0)
            try:
                fut.set_result(fn(*args, **kwargs))
            except BaseException as exc:
                fut.set_exception(exc)


class RecordingOverlay:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def show_loading(self) -> None:
        self.events.append(("loading",))

    def show_result(self, text: str) -> None:
        self.events.append(("result", text))

    def show_error(self) -> None:
        self.events.append(("error",))

    def hide(self) -> None:
        self.events.append(("hide",))


class FakeTranslator(Translator):
    def __init__(self, name: str = "fake") -> None:
        self._name = name
        self.calls: list[tuple[TranslationRequest, ProviderConfig]] = []
        self.failing: set[str] = set()

    @property
    def name(self) -> str:
        return self._name

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        self.calls.append((req, config))
        if req.text in self.failing:
            raise ProviderLogicFailure(f"cannot translate {req.text!r}")
        return self._result(req, f"{req.target_lang}:{req.text}")


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def overlay() -> RecordingOverlay:
    return RecordingOverlay()


@pytest.fixture
def make_translator():
    return FakeTranslator
