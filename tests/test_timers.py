from __future__ import annotations

import threading

from subtwin.caption.timers import Debouncer, ThreadingScheduler


def test_debouncer_latest_schedule_wins(scheduler) -> None:
    fired: list[str] = []
    d = Debouncer(scheduler)
    d.schedule(0.3, lambda: fired.append("a"))
    scheduler.advance(0.1)
    d.schedule(0.3, lambda: fired.append("b"))
    assert d.pending
    scheduler.advance(0.25)
    assert fired == []
    scheduler.advance(0.1)
    assert fired == ["b"]
    assert not d.pending


def test_debouncer_cancel_drops_callback(scheduler) -> None:
    fired: list[str] = []
    d = Debouncer(scheduler)
    d.schedule(0.3, lambda: fired.append("a"))
    d.cancel()
    scheduler.advance(1.0)
    assert fired == []


def test_debouncer_ignores_timer_that_escaped_cancel() -> None:
    # a scheduler whose cancel() is a no-op, like a timer thread already running
    captured: list = []

    class LeakyScheduler:
        def schedule(self, delay_sec, fn):
            captured.append(fn)
            return len(captured)

        def cancel(self, handle) -> None:
            pass

    fired: list[str] = []
    d = Debouncer(LeakyScheduler())
    d.schedule(0.3, lambda: fired.append("old"))
    d.schedule(0.3, lambda: fired.append("new"))
    for fn in captured:
        fn()
    assert fired == ["new"]


def test_threading_scheduler_runs_and_cancels() -> None:
    done = threading.Event()
    never = threading.Event()
    sched = ThreadingScheduler()
    sched.schedule(0.0, done.set)
    handle = sched.schedule(5.0, never.set)
    sched.cancel(handle)
    sched.cancel(None)
    assert done.wait(2.0)
    assert not never.is_set()
